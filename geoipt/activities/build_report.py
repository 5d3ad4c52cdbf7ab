"""Report building activity.

Turns a ``QueryResult`` into the ``QueryReport`` document: the query
point with its UTM projection, one block per containing zone with its
geodesic area and centroid, and the candidate table.

Units are explicit: degrees for WGS 84, metres for UTM, hectares for
area.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from geoipt.models.report import (
    CandidateReport,
    PointReport,
    QueryReport,
    UtmCoordinates,
    ZoneReport,
)

if TYPE_CHECKING:
    from geoipt.models.bbox import BoundingBox
    from geoipt.models.feature import GeometryFeature, MatchResult, QueryPoint
    from geoipt.orchestrators.query_pipeline import QueryResult

logger = logging.getLogger("geoipt.activities.build_report")

# Square metres per hectare
SQ_METRES_PER_HECTARE = 10_000.0

# Attribute keys tried in order for a zone's label.
ZONE_NAME_KEYS = ("NOM", "ZONA", "NOMBRE_PM", "NAME")


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def build_report(
    result: QueryResult,
    point: QueryPoint | None = None,
    viewport: BoundingBox | None = None,
) -> QueryReport:
    """Build the report document for one query.

    Args:
        result: Outcome of ``resolve_query``.
        point: Overrides ``result.point`` when given.
        viewport: Overrides ``result.viewport`` when given.
    """
    point = point or result.point
    viewport = viewport or result.viewport

    zones = [zone_report(m) for m in result.matches]
    report = QueryReport(
        status=result.status.value,
        message=result.message,
        correlation_id=result.correlation_id,
        point=PointReport(lat=point.lat, lon=point.lon, utm=project_to_utm(point.lon, point.lat)),
        viewport=viewport.to_nesw(),
        used_fallback=result.used_fallback,
        zones=zones,
        candidates=[CandidateReport(**row.to_dict()) for row in result.candidate_table],
        error=result.error,
    )

    logger.info(
        "Report built | status=%s | zones=%d | candidates=%d | correlation_id=%s",
        report.status,
        len(zones),
        len(report.candidates),
        result.correlation_id,
    )
    return report


def zone_report(match: MatchResult) -> ZoneReport:
    """Build the report block for one containing polygon."""
    feature = match.feature
    return ZoneReport(
        source_file=match.source_file,
        folder_key=match.folder_key,
        feature_index=match.feature_index,
        display_name=zone_display_name(feature, match.feature_index),
        attributes=dict(feature.attributes),
        area_hectares=compute_geodesic_area_ha(feature),
        centroid=compute_centroid(feature),
        geometry=feature.geometry_dict(),
    )


def zone_display_name(feature: GeometryFeature, feature_index: int = 0) -> str:
    """Label a zone from ``NOM``, ``ZONA``, ``NOMBRE_PM`` or ``NAME``."""
    for key in ZONE_NAME_KEYS:
        value = feature.attributes.get(key, "").strip()
        if value:
            return value
    return f"Zona {feature_index + 1}"


# ---------------------------------------------------------------------------
# UTM projection
# ---------------------------------------------------------------------------


def utm_zone(lon: float) -> int:
    """UTM zone number for a longitude, clamped to 1-60."""
    zone_number = int((lon + 180) / 6) + 1
    return max(1, min(60, zone_number))


def _get_utm_crs(lon: float, lat: float) -> str:
    """EPSG code of the UTM zone holding ``(lon, lat)``.

    ``EPSG:326xx`` north of the equator, ``EPSG:327xx`` south of it.
    """
    zone_number = utm_zone(lon)
    if lat >= 0:
        return f"EPSG:{32600 + zone_number}"
    return f"EPSG:{32700 + zone_number}"


def project_to_utm(lon: float, lat: float) -> UtmCoordinates:
    """Project a WGS 84 point to its own UTM zone."""
    from pyproj import Transformer

    epsg = _get_utm_crs(lon, lat)
    to_utm = Transformer.from_crs("EPSG:4326", epsg, always_xy=True)
    easting, northing = to_utm.transform(lon, lat)
    return UtmCoordinates(
        zone=utm_zone(lon),
        hemisphere="N" if lat >= 0 else "S",
        epsg=epsg,
        easting=float(easting),
        northing=float(northing),
    )


# ---------------------------------------------------------------------------
# Zone metrics
# ---------------------------------------------------------------------------


def compute_geodesic_area_ha(feature: GeometryFeature) -> float:
    """Geodesic area of every outer ring, summed, in hectares.

    Uses ``pyproj.Geod`` on the WGS 84 ellipsoid.  Winding order does not
    matter; holes are not subtracted because they are never parsed.
    """
    from pyproj import Geod

    geod = Geod(ellps="WGS84")
    total_m2 = 0.0
    for ring in feature.rings:
        if len(ring) < 3:
            continue
        lons = [c[0] for c in ring]
        lats = [c[1] for c in ring]
        area_m2, _perimeter = geod.polygon_area_perimeter(lons, lats)
        total_m2 += abs(area_m2)
    return total_m2 / SQ_METRES_PER_HECTARE


def compute_centroid(feature: GeometryFeature) -> list[float]:
    """Planar centroid ``[lon, lat]`` via Shapely; ``[]`` if undefined."""
    from shapely.geometry import shape

    if not feature.rings:
        return []
    geometry = shape(feature.geometry_dict())
    if geometry.is_empty:
        return []
    centroid = geometry.centroid
    if centroid.is_empty:
        return []
    return [centroid.x, centroid.y]
