"""Data models and schemas.

Defines the data structures used throughout the lookup pipeline:
- BoundingBox: Normalized WGS 84 rectangle and intersection test
- RegionDescriptor / InstrumentRecord: Decoded catalog records
- GeometryFeature: Parsed polygon/multipolygon with attributes
- QueryPoint / MatchResult: Query input and containment output
- QueryReport: Report document consumed by the front end
"""

from geoipt.models.bbox import (
    BoundingBox,
    bbox_from_coords,
    intersects,
    normalize_bbox,
    parse_bbox_param,
)
from geoipt.models.catalog import InstrumentRecord, RegionDescriptor
from geoipt.models.feature import (
    GeometryFeature,
    GeometryType,
    MatchResult,
    QueryPoint,
)

__all__ = [
    "BoundingBox",
    "GeometryFeature",
    "GeometryType",
    "InstrumentRecord",
    "MatchResult",
    "QueryPoint",
    "RegionDescriptor",
    "bbox_from_coords",
    "intersects",
    "normalize_bbox",
    "parse_bbox_param",
]
