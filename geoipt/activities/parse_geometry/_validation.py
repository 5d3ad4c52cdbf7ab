"""Validation helpers and exceptions for geometry parsing.

Responsibilities:
- Exception types for unreadable / unparseable / unsupported payloads
- Coordinate bounds checking (WGS 84)
- Ring viability (minimum coordinate pairs)
"""

from __future__ import annotations

import logging
import math

from geoipt.core.constants import (
    MAX_LATITUDE,
    MAX_LONGITUDE,
    MIN_LATITUDE,
    MIN_LONGITUDE,
)
from geoipt.core.exceptions import GeoIptError, PermanentError

logger = logging.getLogger("geoipt.activities.parse_geometry")

# A ring needs three coordinate pairs to enclose anything.
MIN_RING_COORDS = 3


# ---------------------------------------------------------------------------
# Exceptions (public API, re-exported from __init__)
# ---------------------------------------------------------------------------


class GeometryParseError(GeoIptError):
    """Raised when a geometry payload cannot be turned into polygons."""

    default_stage = "parse_geometry"
    default_code = "GEOMETRY_PARSE_FAILED"


class UnsupportedGeometryFormatError(GeometryParseError):
    """Raised when a file extension maps to no known parser."""

    default_code = "GEOMETRY_FORMAT_UNSUPPORTED"


class GeometryUnavailableError(PermanentError):
    """Raised when a candidate's geometry file cannot be fetched."""

    default_stage = "find_containing"
    default_code = "GEOMETRY_UNAVAILABLE"


# ---------------------------------------------------------------------------
# Coordinate validation
# ---------------------------------------------------------------------------


def is_valid_coordinate(lon: float, lat: float) -> bool:
    """Return ``True`` for a finite pair inside WGS 84 bounds."""
    if math.isnan(lon) or math.isnan(lat) or math.isinf(lon) or math.isinf(lat):
        return False
    return MIN_LONGITUDE <= lon <= MAX_LONGITUDE and MIN_LATITUDE <= lat <= MAX_LATITUDE


# ---------------------------------------------------------------------------
# Ring validation
# ---------------------------------------------------------------------------


def keep_ring(ring: list[tuple[float, float]], context: str) -> bool:
    """Return ``True`` if *ring* has enough pairs to be a polygon ring.

    Degenerate rings are logged and must be discarded by the caller.
    """
    if len(ring) < MIN_RING_COORDS:
        logger.warning(
            "Discarding degenerate ring with %d coordinate pair(s) | %s",
            len(ring),
            context,
        )
        return False
    return True
