"""Pydantic report model for a point query.

The report is the document the map front end renders after a click:
where the point is (WGS 84 and UTM), which zones contain it, and which
instrument files were examined.

The schema is split into nested sections:
- **point**: Query location in degrees plus its UTM projection
- **zones**: One block per containing polygon, with area and centroid
- **candidates**: One row per examined instrument file
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel, Field

# Schema version for forward compatibility.
SCHEMA_VERSION = "geoipt-report-v1"


class UtmCoordinates(BaseModel):
    """Query point projected to its UTM zone.

    Attributes:
        zone: UTM zone number (1-60).
        hemisphere: ``"N"`` or ``"S"``.
        epsg: CRS identifier, e.g. ``"EPSG:32719"``.
        easting: Easting in metres.
        northing: Northing in metres.
    """

    zone: int
    hemisphere: str
    epsg: str
    easting: float
    northing: float


class PointReport(BaseModel):
    """Query location section."""

    lat: float
    lon: float
    utm: UtmCoordinates | None = None


class ZoneReport(BaseModel):
    """One containing polygon.

    Attributes:
        source_file: Instrument file the zone came from.
        folder_key: Region folder of that file.
        feature_index: Position of the feature within its file.
        display_name: Zone label taken from its attributes.
        attributes: Every attribute of the feature.
        area_hectares: Geodesic area of the outer rings in hectares.
        centroid: Centroid as ``[lon, lat]``; empty if undefined.
        geometry: GeoJSON geometry object.
    """

    source_file: str
    folder_key: str
    feature_index: int = 0
    display_name: str = ""
    attributes: dict[str, str] = Field(default_factory=dict)
    area_hectares: float = 0.0
    centroid: list[float] = Field(default_factory=list)
    geometry: dict[str, Any] = Field(default_factory=dict)


class CandidateReport(BaseModel):
    """One examined instrument file."""

    file_name: str
    folder_key: str
    name: str = ""
    instrument_type: str = ""
    commune: str = ""
    region_name: str = ""
    contains_point: bool = False
    error: str = ""


class QueryReport(BaseModel):
    """Top-level report document for one point query.

    Serialise with ``model_dump(mode="json")``.
    """

    schema_version: str = SCHEMA_VERSION
    status: str
    message: str = ""
    generated_at: datetime = Field(default_factory=lambda: datetime.now(tz=UTC))
    correlation_id: str = ""
    point: PointReport
    viewport: list[float] = Field(default_factory=list)
    used_fallback: bool = False
    zones: list[ZoneReport] = Field(default_factory=list)
    candidates: list[CandidateReport] = Field(default_factory=list)
    error: dict[str, Any] | None = None
