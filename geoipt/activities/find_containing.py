"""Containment activity: exact point-in-polygon resolution.

For each candidate instrument file the engine fetches the payload,
parses it by extension, and tests every ring of every feature with an
even-odd ray cast.  The first ring that contains the point qualifies
its feature; testing continues with the next feature and the next file,
so one point may match several zones.

Per-file problems (missing file, unreadable payload, unsupported
extension, no polygons) are logged and the file is skipped.  A point
inside no polygon is a normal outcome, not an error.

Fetches fan out over a thread pool sized by ``LookupConfig.max_workers``
and results are returned in candidate order.  A ``GeometryCache`` keeps
each ``(folder_key, file_name)`` to one fetch and one parse per batch.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from geoipt.activities.parse_geometry import (
    GeometryParseError,
    GeometryUnavailableError,
    UnsupportedGeometryFormatError,
    decode_geometry,
    geometry_format,
)
from geoipt.core.constants import RAY_CAST_EPSILON
from geoipt.core.context import GeometryCache
from geoipt.core.exceptions import ContractError
from geoipt.models.feature import MatchResult
from geoipt.storage.base import StorageError
from geoipt.utils.catalog_paths import build_geometry_path

if TYPE_CHECKING:
    from collections.abc import Iterable

    from geoipt.core.context import QueryContext
    from geoipt.models.catalog import InstrumentRecord
    from geoipt.models.feature import GeometryFeature, QueryPoint, Ring

logger = logging.getLogger("geoipt.activities.find_containing")


# ---------------------------------------------------------------------------
# Ray casting
# ---------------------------------------------------------------------------


def point_in_ring(lon: float, lat: float, ring: Ring) -> bool:
    """Even-odd ray-casting test of ``(lon, lat)`` against one ring.

    The ring is treated as closed whether or not its last vertex repeats
    the first.  Points on an edge or a vertex get whatever the crossing
    rule yields; for the square ``(0,0)-(10,10)`` the corner ``(0, 0)``
    is inside and the corner ``(10, 10)`` is outside.
    """
    inside = False
    n = len(ring)
    if n < 3:
        return False

    j = n - 1
    for i in range(n):
        xi, yi = ring[i]
        xj, yj = ring[j]
        if (yi > lat) != (yj > lat):
            dy = (yj - yi) or RAY_CAST_EPSILON
            x_cross = (xj - xi) * (lat - yi) / dy + xi
            if lon < x_cross:
                inside = not inside
        j = i
    return inside


def feature_contains(feature: GeometryFeature, point: QueryPoint) -> bool:
    """``True`` if any ring of *feature* contains *point*."""
    box = feature.bounds
    if box is None or not box.contains_point(point.lat, point.lon):
        return False
    return any(point_in_ring(point.lon, point.lat, ring) for ring in feature.rings)


# ---------------------------------------------------------------------------
# Per-candidate evaluation
# ---------------------------------------------------------------------------


@dataclass(slots=True)
class CandidateEvaluation:
    """Outcome of testing one candidate file.

    Attributes:
        record: The candidate instrument.
        matches: Features of this file that contain the point.
        feature_count: Features parsed from the file.
        error: Structured error payload when the file was skipped.
    """

    record: InstrumentRecord
    matches: list[MatchResult] = field(default_factory=list)
    feature_count: int = 0
    error: dict[str, object] | None = None

    @property
    def matched(self) -> bool:
        return bool(self.matches)


def load_features(record: InstrumentRecord, context: QueryContext) -> list[GeometryFeature]:
    """Fetch and parse one candidate file.

    Raises:
        GeometryUnavailableError: If the file cannot be fetched.
        GeometryParseError: If the payload is unreadable, holds no
            polygon, or has an unsupported extension.
    """
    if geometry_format(record.file_name) is None:
        msg = f"Unsupported geometry format for {record.file_name!r}"
        raise UnsupportedGeometryFormatError(msg, correlation_id=context.correlation_id)

    try:
        path = build_geometry_path(
            record.folder_key,
            record.file_name,
            prefix=context.config.layers_prefix,
        )
        payload = context.storage.fetch_bytes(path)
    except (StorageError, ContractError) as exc:
        msg = f"Geometry file unavailable: {record.folder_key}/{record.file_name}: {exc}"
        raise GeometryUnavailableError(
            msg,
            retryable=exc.retryable,
            correlation_id=context.correlation_id,
        ) from exc

    return decode_geometry(record.file_name, payload)


def evaluate_candidate(
    point: QueryPoint,
    record: InstrumentRecord,
    context: QueryContext,
    cache: GeometryCache[list[GeometryFeature]] | None = None,
) -> CandidateEvaluation:
    """Test *point* against every feature of one candidate file.

    Never raises for per-file problems; they are recorded in
    ``CandidateEvaluation.error`` and logged.
    """
    evaluation = CandidateEvaluation(record=record)

    def loader() -> list[GeometryFeature]:
        return load_features(record, context)

    try:
        if cache is None:
            features = loader()
        else:
            features = cache.get_or_load(record.path_key, loader)
    except (GeometryUnavailableError, GeometryParseError) as exc:
        logger.warning(
            "Candidate skipped | file=%s/%s | code=%s | correlation_id=%s | %s",
            record.folder_key,
            record.file_name,
            exc.code,
            context.correlation_id,
            exc,
        )
        evaluation.error = exc.to_error_dict()
        return evaluation

    evaluation.feature_count = len(features)
    for idx, feature in enumerate(features):
        if feature_contains(feature, point):
            evaluation.matches.append(
                MatchResult(
                    source_file=record.file_name,
                    folder_key=record.folder_key,
                    feature=feature,
                    feature_index=idx,
                )
            )

    logger.debug(
        "Candidate evaluated | file=%s/%s | features=%d | matches=%d",
        record.folder_key,
        record.file_name,
        evaluation.feature_count,
        len(evaluation.matches),
    )
    return evaluation


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def evaluate_candidates(
    point: QueryPoint,
    candidates: Iterable[InstrumentRecord],
    context: QueryContext,
) -> list[CandidateEvaluation]:
    """Evaluate every candidate, in candidate order.

    A fresh ``GeometryCache`` is used per call, so a file listed twice
    is fetched once.
    """
    records = list(candidates)
    if not records:
        return []

    cache: GeometryCache[list[GeometryFeature]] = GeometryCache()
    workers = max(1, min(context.config.max_workers, len(records)))

    if workers == 1:
        evaluations = [evaluate_candidate(point, r, context, cache) for r in records]
    else:
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="geoipt") as pool:
            evaluations = list(
                pool.map(lambda r: evaluate_candidate(point, r, context, cache), records)
            )

    logger.info(
        "Containment resolved | candidates=%d | files_loaded=%d | matches=%d | "
        "correlation_id=%s",
        len(records),
        cache.load_count,
        sum(len(e.matches) for e in evaluations),
        context.correlation_id,
    )
    return evaluations


def find_containing(
    point: QueryPoint,
    candidates: Iterable[InstrumentRecord],
    context: QueryContext,
) -> list[MatchResult]:
    """Return every polygon among *candidates* that contains *point*.

    Matches are ordered by candidate order, then feature order.
    """
    return [m for e in evaluate_candidates(point, candidates, context) for m in e.matches]


__all__ = [
    "RAY_CAST_EPSILON",
    "CandidateEvaluation",
    "evaluate_candidate",
    "evaluate_candidates",
    "feature_contains",
    "find_containing",
    "load_features",
    "point_in_ring",
]
