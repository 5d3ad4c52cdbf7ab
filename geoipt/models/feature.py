"""Geometry features, query points, and containment matches.

A ``GeometryFeature`` is one KML Placemark or one GeoJSON Feature after
parsing: its polygon outer rings as ``(lon, lat)`` tuples plus a flat
string attribute mapping.  Interior rings (holes) are not carried, so a
point inside a hole still counts as contained.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field

from geoipt.models.bbox import BoundingBox, bbox_from_coords

Ring = list[tuple[float, float]]


class GeometryType(enum.Enum):
    POLYGON = "Polygon"
    MULTI_POLYGON = "MultiPolygon"


@dataclass(frozen=True, slots=True)
class GeometryFeature:
    """A polygon or multipolygon with its attributes.

    Attributes:
        geometry_type: ``Polygon`` or ``MultiPolygon``.
        rings: One outer ring per polygon part, each a list of ``(lon, lat)``.
        attributes: Stringified properties / ExtendedData values.
    """

    geometry_type: GeometryType
    rings: list[Ring] = field(default_factory=list)
    attributes: dict[str, str] = field(default_factory=dict)

    @property
    def bounds(self) -> BoundingBox | None:
        """Tight box over every ring vertex."""
        return bbox_from_coords(c for ring in self.rings for c in ring)

    @property
    def vertex_count(self) -> int:
        return sum(len(ring) for ring in self.rings)

    def geometry_dict(self) -> dict[str, object]:
        """GeoJSON geometry object for the feature's rings."""
        rings = [[list(c) for c in _closed(ring)] for ring in self.rings]
        if self.geometry_type is GeometryType.POLYGON:
            return {"type": "Polygon", "coordinates": rings[:1]}
        return {"type": "MultiPolygon", "coordinates": [[ring] for ring in rings]}

    def to_geojson(self) -> dict[str, object]:
        """Serialise as a GeoJSON Feature."""
        return {
            "type": "Feature",
            "properties": dict(self.attributes),
            "geometry": self.geometry_dict(),
        }


def _closed(ring: Ring) -> Ring:
    if ring and ring[0] != ring[-1]:
        return [*ring, ring[0]]
    return ring


@dataclass(frozen=True, slots=True)
class QueryPoint:
    """A clicked map location in WGS 84 degrees."""

    lat: float
    lon: float

    def to_dict(self) -> dict[str, float]:
        return {"lat": self.lat, "lon": self.lon}


@dataclass(frozen=True, slots=True)
class MatchResult:
    """One polygon that contains the query point, with its provenance.

    Attributes:
        source_file: Geometry file name within the region folder.
        folder_key: Region folder the file was loaded from.
        feature: The matched feature.
        feature_index: Position of the feature within its file.
    """

    source_file: str
    folder_key: str
    feature: GeometryFeature
    feature_index: int = 0

    def to_dict(self) -> dict[str, object]:
        return {
            "source_file": self.source_file,
            "folder_key": self.folder_key,
            "feature_index": self.feature_index,
            "feature": self.feature.to_geojson(),
        }
