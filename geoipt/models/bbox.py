"""Axis-aligned bounding boxes and the two-box intersection test.

The catalog and the map front end describe boxes in several shapes:

- a corner pair ``[[south, west], [north, east]]`` (region manifest and
  instrument listings),
- a flat ``[north, east, south, west]`` list (viewport URL parameter),
- a mapping with ``north/east/south/west`` or ``min_lat/min_lon/
  max_lat/max_lon`` style keys.

``normalize_bbox`` folds all of them into one immutable ``BoundingBox``
and returns ``None`` for anything absent or malformed.  ``None`` means
"unknown extent" and callers must never filter a record out because of
it.

The study area (continental Chile) never crosses the antimeridian, so
``west <= east`` always holds and no wrap-around handling is done.
"""

from __future__ import annotations

import math
from collections.abc import Iterable, Mapping
from dataclasses import dataclass

from geoipt.core.exceptions import ContractError

# Accepted key spellings for mapping-shaped boxes, in priority order.
_NESW_KEYS = (
    ("north", "east", "south", "west"),
    ("n", "e", "s", "w"),
)
_MINMAX_KEYS = (
    ("max_lat", "max_lon", "min_lat", "min_lon"),
    ("maxLat", "maxLon", "minLat", "minLon"),
    ("max_lat", "max_lng", "min_lat", "min_lng"),
    ("maxLat", "maxLng", "minLat", "minLng"),
    ("ymax", "xmax", "ymin", "xmin"),
)

# URL parameter orders understood by ``parse_bbox_param``.
ORDER_NESW = "nesw"
ORDER_WSEN = "wsen"


@dataclass(frozen=True, slots=True)
class BoundingBox:
    """A WGS 84 rectangle in degrees.

    Attributes:
        north: Northern latitude edge.
        east: Eastern longitude edge.
        south: Southern latitude edge.
        west: Western longitude edge.
    """

    north: float
    east: float
    south: float
    west: float

    def contains_point(self, lat: float, lon: float) -> bool:
        """Closed-interval test for a single point."""
        return self.south <= lat <= self.north and self.west <= lon <= self.east

    def to_nesw(self) -> list[float]:
        """Return ``[north, east, south, west]``."""
        return [self.north, self.east, self.south, self.west]

    def to_corner_pair(self) -> list[list[float]]:
        """Return ``[[south, west], [north, east]]`` as used by the catalog."""
        return [[self.south, self.west], [self.north, self.east]]

    def to_dict(self) -> dict[str, float]:
        return {
            "north": self.north,
            "east": self.east,
            "south": self.south,
            "west": self.west,
        }


# ---------------------------------------------------------------------------
# Normalization
# ---------------------------------------------------------------------------


def normalize_bbox(raw: object) -> BoundingBox | None:
    """Normalize any supported box encoding into a ``BoundingBox``.

    Args:
        raw: A ``BoundingBox``, a corner pair ``[[S, W], [N, E]]``, a flat
            ``[N, E, S, W]`` sequence, or a mapping with named edges.

    Returns:
        The normalized box, or ``None`` when *raw* is absent, has the
        wrong arity, holds non-numeric values, or describes an inverted
        rectangle.
    """
    if raw is None:
        return None
    if isinstance(raw, BoundingBox):
        return raw
    if isinstance(raw, Mapping):
        return _from_mapping(raw)
    if isinstance(raw, list | tuple):
        if len(raw) == 2:
            return _from_corner_pair(raw)
        if len(raw) == 4:
            return _build(raw[0], raw[1], raw[2], raw[3])
    return None


def _from_corner_pair(raw: list[object] | tuple[object, ...]) -> BoundingBox | None:
    south_west, north_east = raw
    if not isinstance(south_west, list | tuple) or not isinstance(north_east, list | tuple):
        return None
    if len(south_west) != 2 or len(north_east) != 2:
        return None
    south, west = south_west
    north, east = north_east
    return _build(north, east, south, west)


def _from_mapping(raw: Mapping[str, object]) -> BoundingBox | None:
    for keys in (*_NESW_KEYS, *_MINMAX_KEYS):
        if all(key in raw for key in keys):
            north, east, south, west = (raw[key] for key in keys)
            return _build(north, east, south, west)
    return None


def _build(north: object, east: object, south: object, west: object) -> BoundingBox | None:
    values = [_to_float(v) for v in (north, east, south, west)]
    if any(v is None for v in values):
        return None
    n, e, s, w = values  # type: ignore[misc]
    if s > n or w > e:
        return None
    return BoundingBox(north=n, east=e, south=s, west=w)


def _to_float(value: object) -> float | None:
    if isinstance(value, bool):
        return None
    try:
        if isinstance(value, int | float):
            number = float(value)
        elif isinstance(value, str):
            number = float(value.strip())
        else:
            return None
    except (ValueError, OverflowError):
        return None
    if math.isnan(number) or math.isinf(number):
        return None
    return number


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------


def intersects(a: BoundingBox, b: BoundingBox) -> bool:
    """Return ``True`` if two boxes overlap.

    Intervals are closed: boxes that only share an edge or a corner
    intersect.  The test is symmetric.
    """
    return not (a.south > b.north or a.north < b.south or a.west > b.east or a.east < b.west)


def bbox_from_coords(coords: Iterable[tuple[float, float]]) -> BoundingBox | None:
    """Compute a tight box over ``(lon, lat)`` pairs, or ``None`` if empty."""
    lons: list[float] = []
    lats: list[float] = []
    for lon, lat in coords:
        lons.append(lon)
        lats.append(lat)
    if not lons:
        return None
    return BoundingBox(north=max(lats), east=max(lons), south=min(lats), west=min(lons))


def parse_bbox_param(text: str, *, order: str = ORDER_NESW) -> BoundingBox:
    """Parse a comma-separated viewport parameter.

    Args:
        text: Four comma-separated numbers.
        order: ``"nesw"`` for ``N,E,S,W`` or ``"wsen"`` for
            ``minLon,minLat,maxLon,maxLat``.

    Raises:
        ContractError: If the text does not hold four numbers in a
            consistent order.
    """
    parts = [p.strip() for p in text.split(",")]
    if len(parts) != 4:
        msg = f"bbox must have 4 comma-separated values, got {len(parts)}: {text!r}"
        raise ContractError(msg, stage="ingress", code="INVALID_BBOX")

    if order == ORDER_NESW:
        north, east, south, west = parts
    elif order == ORDER_WSEN:
        west, south, east, north = parts
    else:
        msg = f"Unknown bbox order {order!r}"
        raise ValueError(msg)

    box = _build(north, east, south, west)
    if box is None:
        msg = f"bbox values are not a valid rectangle: {text!r}"
        raise ContractError(msg, stage="ingress", code="INVALID_BBOX")
    return box
