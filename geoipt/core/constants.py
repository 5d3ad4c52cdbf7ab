"""Shared lookup constants: single source of truth.

Centralises the catalog layout (``capas/regiones.json`` and
``capas/<folder>/listado.json``), recognised geometry file extensions,
and the query status tags returned to the report layer.
"""

from __future__ import annotations

import enum

# ---------------------------------------------------------------------------
# Catalog layout
# ---------------------------------------------------------------------------

DEFAULT_LAYERS_PREFIX: str = "capas"
"""Root folder that holds the region manifest and every region folder."""

DEFAULT_MANIFEST_NAME: str = "regiones.json"
"""Region manifest file name, directly under the layers prefix."""

DEFAULT_LISTING_NAME: str = "listado.json"
"""Per-region instrument listing file name, inside each region folder."""

# ---------------------------------------------------------------------------
# Geometry file extensions
# ---------------------------------------------------------------------------

KML_EXTENSIONS: frozenset[str] = frozenset({".kml"})
GEOJSON_EXTENSIONS: frozenset[str] = frozenset({".json", ".geojson"})

# ---------------------------------------------------------------------------
# WGS 84 coordinate bounds
# ---------------------------------------------------------------------------

MIN_LONGITUDE = -180.0
MAX_LONGITUDE = 180.0
MIN_LATITUDE = -90.0
MAX_LATITUDE = 90.0

# ---------------------------------------------------------------------------
# Containment
# ---------------------------------------------------------------------------

RAY_CAST_EPSILON: float = 1e-12
"""Substituted for a zero ``yj - yi`` so horizontal edges never divide by zero."""


class QueryStatus(enum.Enum):
    """Outcome tag of a single point query.

    Values:
        MATCHED: At least one polygon contains the point.
        NO_CANDIDATES_IN_VIEWPORT: The catalog loaded but no instrument
            file was available for the viewport.
        NO_CONTAINING_POLYGON: Candidate files were examined and none of
            their polygons contains the point.
        CATALOG_UNAVAILABLE: The region manifest could not be loaded.
    """

    MATCHED = "matched"
    NO_CANDIDATES_IN_VIEWPORT = "no_candidates_in_viewport"
    NO_CONTAINING_POLYGON = "no_containing_polygon"
    CATALOG_UNAVAILABLE = "catalog_unavailable"


STATUS_MESSAGES: dict[QueryStatus, str] = {
    QueryStatus.MATCHED: (
        "The queried point lies inside at least one PRC/SCC polygon."
    ),
    QueryStatus.NO_CANDIDATES_IN_VIEWPORT: (
        "No planning instrument covers the visible map area. "
        "Try a different area or zoom out."
    ),
    QueryStatus.NO_CONTAINING_POLYGON: (
        "No instrument has a polygon containing exactly the clicked point. "
        "Return to the main map and click over an urban area."
    ),
    QueryStatus.CATALOG_UNAVAILABLE: (
        "The layer catalog could not be loaded, so no data is available. "
        "Try again later."
    ),
}
"""User-facing guidance per query status."""
