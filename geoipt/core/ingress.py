"""Thin ingress boundary helpers for the HTTP entry points.

Centralises request-parameter parsing so that ``function_app.py``
contains only trigger bindings and handoff:

- **parse_query_params** turns ``lat``, ``lon`` and ``bbox`` into a
  ``QueryPoint`` and a viewport ``BoundingBox``.
- **parse_export_params** adds the ``file``, ``index`` and ``format``
  selectors that pick one matched zone for download.

Every malformed parameter raises ``ContractError`` with stage
``ingress`` so the entry point can answer 400.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import TYPE_CHECKING

from geoipt.core.constants import MAX_LATITUDE, MAX_LONGITUDE, MIN_LATITUDE, MIN_LONGITUDE
from geoipt.core.exceptions import ContractError
from geoipt.models.bbox import ORDER_NESW, ORDER_WSEN, BoundingBox, parse_bbox_param
from geoipt.models.feature import QueryPoint

if TYPE_CHECKING:
    from collections.abc import Mapping

logger = logging.getLogger("geoipt.core.ingress")

_BBOX_ORDERS = frozenset({ORDER_NESW, ORDER_WSEN})
_EXPORT_FORMATS = frozenset({"kml", "json"})


@dataclass(frozen=True, slots=True)
class ExportRequest:
    """Validated parameters of an export request."""

    point: QueryPoint
    viewport: BoundingBox
    file_name: str
    feature_index: int = 0
    fmt: str = "kml"
    folder_key: str = ""


# ---------------------------------------------------------------------------
# Query parameters
# ---------------------------------------------------------------------------


def parse_query_params(params: Mapping[str, str]) -> tuple[QueryPoint, BoundingBox]:
    """Parse ``lat``, ``lon`` and ``bbox`` request parameters.

    ``bbox`` is ``N,E,S,W`` unless ``bbox_order=wsen`` selects
    ``minLon,minLat,maxLon,maxLat``.  Without ``bbox`` the viewport
    collapses to the point itself.

    Raises:
        ContractError: If a coordinate is missing, non-numeric, outside
            WGS 84 bounds, or the bbox is malformed.
    """
    lat = _coordinate(params, "lat", MIN_LATITUDE, MAX_LATITUDE)
    lon = _coordinate(params, "lon", MIN_LONGITUDE, MAX_LONGITUDE)
    point = QueryPoint(lat=lat, lon=lon)

    raw_bbox = (params.get("bbox") or "").strip()
    if not raw_bbox:
        logger.debug("No bbox parameter, using point viewport | lat=%s | lon=%s", lat, lon)
        return point, BoundingBox(north=lat, east=lon, south=lat, west=lon)

    order = (params.get("bbox_order") or ORDER_NESW).strip().lower()
    if order not in _BBOX_ORDERS:
        msg = f"bbox_order must be one of {sorted(_BBOX_ORDERS)}, got {order!r}"
        raise ContractError(msg, stage="ingress", code="INVALID_BBOX_ORDER")

    return point, parse_bbox_param(raw_bbox, order=order)


def parse_export_params(params: Mapping[str, str]) -> ExportRequest:
    """Parse an export request: query parameters plus zone selectors.

    ``folder`` is optional; without it the first matching file name wins.

    Raises:
        ContractError: If ``file`` is missing, ``index`` is not a
            non-negative integer, or ``format`` is not ``kml``/``json``.
    """
    point, viewport = parse_query_params(params)

    file_name = (params.get("file") or "").strip()
    if not file_name:
        msg = "Missing required parameter 'file'"
        raise ContractError(msg, stage="ingress", code="MISSING_PARAMETER")

    raw_index = (params.get("index") or "0").strip()
    try:
        feature_index = int(raw_index)
    except ValueError as exc:
        msg = f"Parameter 'index' must be an integer, got {raw_index!r}"
        raise ContractError(msg, stage="ingress", code="INVALID_PARAMETER") from exc
    if feature_index < 0:
        msg = f"Parameter 'index' must not be negative, got {feature_index}"
        raise ContractError(msg, stage="ingress", code="INVALID_PARAMETER")

    fmt = (params.get("format") or "kml").strip().lower()
    if fmt not in _EXPORT_FORMATS:
        msg = f"Parameter 'format' must be 'kml' or 'json', got {fmt!r}"
        raise ContractError(msg, stage="ingress", code="INVALID_PARAMETER")

    return ExportRequest(
        point=point,
        viewport=viewport,
        file_name=file_name,
        feature_index=feature_index,
        fmt=fmt,
        folder_key=(params.get("folder") or "").strip(),
    )


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _coordinate(params: Mapping[str, str], name: str, low: float, high: float) -> float:
    raw = (params.get(name) or "").strip()
    if not raw:
        msg = f"Missing required parameter {name!r}"
        raise ContractError(msg, stage="ingress", code="MISSING_PARAMETER")
    try:
        value = float(raw)
    except ValueError as exc:
        msg = f"Parameter {name!r} must be a number, got {raw!r}"
        raise ContractError(msg, stage="ingress", code="INVALID_COORDINATE") from exc
    if math.isnan(value) or not low <= value <= high:
        msg = f"Parameter {name!r} out of range [{low}, {high}]: {raw!r}"
        raise ContractError(msg, stage="ingress", code="INVALID_COORDINATE")
    return value
