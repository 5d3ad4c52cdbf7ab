"""GeoJSON parser.

Turns a FeatureCollection into polygon features.  Heterogeneous
collections are expected (points and lines next to zoning polygons), so
features with any geometry type other than ``Polygon`` or
``MultiPolygon`` are skipped without a warning.

A bare Feature or a bare geometry object is accepted as a one-feature
collection.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from typing import Any

from geoipt.activities.parse_geometry._normalization import (
    coords_to_tuples,
    extract_properties,
)
from geoipt.activities.parse_geometry._validation import GeometryParseError, keep_ring
from geoipt.models.feature import GeometryFeature, GeometryType

logger = logging.getLogger("geoipt.activities.parse_geometry")

_GEOMETRY_TYPES = {
    "Polygon": GeometryType.POLYGON,
    "MultiPolygon": GeometryType.MULTI_POLYGON,
}


def read_geojson_features(payload: object, source: str = "") -> list[GeometryFeature]:
    """Parse a GeoJSON payload into polygon features.

    Args:
        payload: Decoded JSON mapping, or JSON text / bytes.
        source: File name used in log lines and error messages.

    Raises:
        GeometryParseError: If the payload is not JSON, is not a GeoJSON
            object, or yields no usable polygon ring.
    """
    document = _decode(payload, source)
    raw_features = _feature_list(document, source)

    features: list[GeometryFeature] = []
    for idx, raw in enumerate(raw_features):
        if not isinstance(raw, Mapping):
            continue
        geometry = raw.get("geometry")
        if not isinstance(geometry, Mapping):
            continue
        geometry_type = _GEOMETRY_TYPES.get(str(geometry.get("type", "")))
        if geometry_type is None:
            continue

        context = f"{source or '<geojson>'} feature {idx}"
        rings = _outer_rings(geometry_type, geometry.get("coordinates"), context)
        if not rings:
            logger.warning("Skipping feature without usable rings | %s", context)
            continue

        features.append(
            GeometryFeature(
                geometry_type=geometry_type,
                rings=rings,
                attributes=extract_properties(raw.get("properties")),
            )
        )

    if not features:
        msg = f"No usable polygon rings in GeoJSON {source or '<payload>'}"
        raise GeometryParseError(msg, code="NO_USABLE_GEOMETRY")

    return features


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _decode(payload: object, source: str) -> Mapping[str, Any]:
    if isinstance(payload, bytes):
        payload = payload.decode("utf-8-sig", errors="replace")
    if isinstance(payload, str):
        try:
            payload = json.loads(payload)
        except (json.JSONDecodeError, ValueError) as exc:
            msg = f"Not valid JSON: {source or '<payload>'}: {exc}"
            raise GeometryParseError(msg, code="INVALID_JSON") from exc
        except RecursionError as exc:
            msg = f"JSON nested too deeply: {source or '<payload>'}"
            raise GeometryParseError(msg, code="INVALID_JSON") from exc
    if not isinstance(payload, Mapping):
        msg = (
            f"GeoJSON payload must be an object, got {type(payload).__name__}: "
            f"{source or '<payload>'}"
        )
        raise GeometryParseError(msg, code="INVALID_GEOJSON")
    return payload


def _feature_list(document: Mapping[str, Any], source: str) -> list[object]:
    doc_type = document.get("type")
    if doc_type == "FeatureCollection" or "features" in document:
        features = document.get("features")
        if not isinstance(features, list):
            msg = f"FeatureCollection has no features array: {source or '<payload>'}"
            raise GeometryParseError(msg, code="INVALID_GEOJSON")
        return features
    if doc_type == "Feature":
        return [document]
    if doc_type in _GEOMETRY_TYPES:
        return [{"type": "Feature", "properties": {}, "geometry": document}]
    msg = f"Unrecognised GeoJSON type {doc_type!r}: {source or '<payload>'}"
    raise GeometryParseError(msg, code="INVALID_GEOJSON")


def _outer_rings(
    geometry_type: GeometryType, coordinates: object, context: str
) -> list[list[tuple[float, float]]]:
    """Return the outer ring of each polygon part; holes are ignored."""
    if not isinstance(coordinates, list):
        return []

    polygons = [coordinates] if geometry_type is GeometryType.POLYGON else coordinates
    rings: list[list[tuple[float, float]]] = []
    for polygon in polygons:
        if not isinstance(polygon, list) or not polygon:
            continue
        ring = coords_to_tuples(polygon[0])
        if keep_ring(ring, context):
            rings.append(ring)
    return rings
