"""Geometry parsing activity: composable pipeline.

Turns a raw geometry payload (KML text or a GeoJSON object) into a list
of ``GeometryFeature`` objects with attached attributes.

The parsing pipeline is split into focused stages:
- **_validation**: exceptions, WGS 84 bounds, ring viability
- **_normalization**: coordinate text / arrays → tuples, attributes
- **_kml_parser**: lxml element-tree walk over Placemarks
- **_geojson_parser**: FeatureCollection walk

Two calling styles are offered:

- ``decode_geometry`` / ``read_*`` raise ``GeometryParseError`` so the
  containment engine can record *why* a file contributed nothing.
- ``parse_kml`` / ``parse_geojson`` / ``parse_geometry`` log a warning
  and return an empty list for unreadable or polygon-free payloads.
"""

from __future__ import annotations

import logging
from pathlib import PurePosixPath

from geoipt.activities.parse_geometry._geojson_parser import read_geojson_features
from geoipt.activities.parse_geometry._kml_parser import (
    DESCRIPTION_ATTRIBUTE,
    NAME_ATTRIBUTES,
    read_kml_features,
)
from geoipt.activities.parse_geometry._normalization import (
    coords_to_tuples,
    extract_extended_data,
    extract_properties,
    parse_coordinates_text,
    strip_html,
)
from geoipt.activities.parse_geometry._validation import (
    MIN_RING_COORDS,
    GeometryParseError,
    GeometryUnavailableError,
    UnsupportedGeometryFormatError,
    is_valid_coordinate,
)
from geoipt.core.constants import GEOJSON_EXTENSIONS, KML_EXTENSIONS
from geoipt.models.feature import GeometryFeature

logger = logging.getLogger("geoipt.activities.parse_geometry")

# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

__all__ = [
    "DESCRIPTION_ATTRIBUTE",
    "MIN_RING_COORDS",
    "NAME_ATTRIBUTES",
    "GeometryParseError",
    "GeometryUnavailableError",
    "UnsupportedGeometryFormatError",
    "coords_to_tuples",
    "decode_geometry",
    "extract_extended_data",
    "extract_properties",
    "geometry_format",
    "is_valid_coordinate",
    "parse_coordinates_text",
    "parse_geojson",
    "parse_geometry",
    "parse_kml",
    "read_geojson_features",
    "read_kml_features",
    "strip_html",
]

KML = "kml"
GEOJSON = "geojson"


def geometry_format(file_name: str) -> str | None:
    """Return ``"kml"``, ``"geojson"``, or ``None`` from a file extension."""
    suffix = PurePosixPath(file_name).suffix.lower()
    if suffix in KML_EXTENSIONS:
        return KML
    if suffix in GEOJSON_EXTENSIONS:
        return GEOJSON
    return None


def decode_geometry(file_name: str, payload: object) -> list[GeometryFeature]:
    """Parse *payload* with the parser implied by *file_name*'s extension.

    Raises:
        UnsupportedGeometryFormatError: If the extension is not
            ``.kml``, ``.json`` or ``.geojson``.
        GeometryParseError: If the payload yields no usable polygon.
    """
    fmt = geometry_format(file_name)
    if fmt == KML:
        if not isinstance(payload, str | bytes):
            msg = f"KML payload must be text or bytes, got {type(payload).__name__}"
            raise GeometryParseError(msg, code="INVALID_PAYLOAD")
        return read_kml_features(payload, file_name)
    if fmt == GEOJSON:
        return read_geojson_features(payload, file_name)

    msg = f"Unsupported geometry format for {file_name!r}"
    raise UnsupportedGeometryFormatError(msg)


def parse_kml(payload: str | bytes, *, source: str = "") -> list[GeometryFeature]:
    """Parse KML text, returning ``[]`` (with a warning) on any failure."""
    try:
        return read_kml_features(payload, source)
    except GeometryParseError as exc:
        logger.warning("KML parse produced no features | source=%s | %s", source, exc)
        return []


def parse_geojson(payload: object, *, source: str = "") -> list[GeometryFeature]:
    """Parse GeoJSON, returning ``[]`` (with a warning) on any failure."""
    try:
        return read_geojson_features(payload, source)
    except GeometryParseError as exc:
        logger.warning("GeoJSON parse produced no features | source=%s | %s", source, exc)
        return []


def parse_geometry(file_name: str, payload: object) -> list[GeometryFeature]:
    """Dispatch by extension; unreadable payloads yield ``[]``.

    Raises:
        UnsupportedGeometryFormatError: If the extension maps to no parser.
    """
    if geometry_format(file_name) is None:
        msg = f"Unsupported geometry format for {file_name!r}"
        raise UnsupportedGeometryFormatError(msg)
    try:
        return decode_geometry(file_name, payload)
    except GeometryParseError as exc:
        logger.warning("Geometry parse produced no features | file=%s | %s", file_name, exc)
        return []
