"""Point query orchestrator.

``resolve_query`` is the single entry point of the lookup pipeline.  It
never raises for the expected outcomes; every query ends in one of four
status tags:

- ``MATCHED``: at least one polygon contains the point.
- ``NO_CANDIDATES_IN_VIEWPORT``: the catalog loaded, nothing to test.
- ``NO_CONTAINING_POLYGON``: candidates were tested, none contains it.
- ``CATALOG_UNAVAILABLE``: the region manifest could not be loaded; the
  structured error is attached to the result.

Configuration errors (``ConfigValidationError``) still propagate: a
misconfigured deployment should fail loudly, not report "no data".
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from geoipt.activities.assemble_results import assemble_results
from geoipt.activities.find_containing import evaluate_candidates
from geoipt.activities.resolve_catalog import CatalogUnavailableError, candidates_for_viewport
from geoipt.core.constants import STATUS_MESSAGES, QueryStatus
from geoipt.core.context import QueryContext

if TYPE_CHECKING:
    from geoipt.activities.assemble_results import CandidateRow
    from geoipt.models.bbox import BoundingBox
    from geoipt.models.catalog import InstrumentRecord
    from geoipt.models.feature import MatchResult, QueryPoint

logger = logging.getLogger("geoipt.orchestrators.query_pipeline")


@dataclass(slots=True)
class QueryResult:
    """Tagged outcome of one point query.

    Attributes:
        status: Outcome tag.
        point: The queried location.
        viewport: The viewport the candidates were filtered by.
        matches: Containing polygons, in candidate then feature order.
        candidates_examined: Instrument records tested for containment, in
            candidate order.
        candidate_table: One row per examined instrument file.
        used_fallback: ``True`` when the viewport filter was bypassed.
        error: Structured error payload for ``CATALOG_UNAVAILABLE``.
        correlation_id: Identifier shared with the query's log lines.
    """

    status: QueryStatus
    point: QueryPoint
    viewport: BoundingBox
    matches: list[MatchResult] = field(default_factory=list)
    candidates_examined: list[InstrumentRecord] = field(default_factory=list)
    candidate_table: list[CandidateRow] = field(default_factory=list)
    used_fallback: bool = False
    error: dict[str, object] | None = None
    correlation_id: str = ""

    @property
    def candidate_count(self) -> int:
        return len(self.candidates_examined)

    @property
    def message(self) -> str:
        """User-facing guidance for the status."""
        return STATUS_MESSAGES[self.status]

    def to_dict(self) -> dict[str, object]:
        return {
            "status": self.status.value,
            "message": self.message,
            "point": self.point.to_dict(),
            "viewport": self.viewport.to_dict(),
            "matches": [m.to_dict() for m in self.matches],
            "candidate_count": self.candidate_count,
            "candidates_examined": [r.to_dict() for r in self.candidates_examined],
            "candidate_table": [row.to_dict() for row in self.candidate_table],
            "used_fallback": self.used_fallback,
            "error": self.error,
            "correlation_id": self.correlation_id,
        }


def resolve_query(
    point: QueryPoint,
    viewport: BoundingBox,
    context: QueryContext | None = None,
) -> QueryResult:
    """Find every catalog polygon that contains *point*.

    Args:
        point: Clicked map location.
        viewport: Visible map rectangle used to pre-filter instruments.
        context: Session object; when omitted one is built from the
            environment and closed before returning.

    Returns:
        A ``QueryResult`` carrying the status tag.
    """
    if context is None:
        with QueryContext.from_config() as owned:
            return _run(point, viewport, owned)
    return _run(point, viewport, context)


def _run(point: QueryPoint, viewport: BoundingBox, context: QueryContext) -> QueryResult:
    logger.info(
        "Query started | lat=%.6f | lon=%.6f | viewport=%s | correlation_id=%s",
        point.lat,
        point.lon,
        viewport.to_nesw(),
        context.correlation_id,
    )

    # -----------------------------------------------------------------------
    # Phase 1: Resolve catalog candidates
    # -----------------------------------------------------------------------
    try:
        candidate_set = candidates_for_viewport(viewport, context)
    except CatalogUnavailableError as exc:
        exc.correlation_id = exc.correlation_id or context.correlation_id
        logger.error(
            "Catalog unavailable | code=%s | correlation_id=%s | %s",
            exc.code,
            context.correlation_id,
            exc,
        )
        return QueryResult(
            status=QueryStatus.CATALOG_UNAVAILABLE,
            point=point,
            viewport=viewport,
            error=exc.to_error_dict(),
            correlation_id=context.correlation_id,
        )

    if not candidate_set.candidates:
        logger.info(
            "Query finished | status=%s | correlation_id=%s",
            QueryStatus.NO_CANDIDATES_IN_VIEWPORT.value,
            context.correlation_id,
        )
        return QueryResult(
            status=QueryStatus.NO_CANDIDATES_IN_VIEWPORT,
            point=point,
            viewport=viewport,
            correlation_id=context.correlation_id,
        )

    # -----------------------------------------------------------------------
    # Phase 2: Fan-out containment per candidate file
    # -----------------------------------------------------------------------
    evaluations = evaluate_candidates(point, candidate_set.candidates, context)

    # -----------------------------------------------------------------------
    # Phase 3: Fan-in
    # -----------------------------------------------------------------------
    matches = [m for e in evaluations for m in e.matches]
    assembled = assemble_results(matches, evaluations)
    status = QueryStatus.MATCHED if assembled.matches else QueryStatus.NO_CONTAINING_POLYGON

    logger.info(
        "Query finished | status=%s | candidates=%d | matches=%d | fallback=%s | "
        "correlation_id=%s",
        status.value,
        assembled.candidates_examined,
        len(assembled.matches),
        candidate_set.used_fallback,
        context.correlation_id,
    )
    return QueryResult(
        status=status,
        point=point,
        viewport=viewport,
        matches=assembled.matches,
        candidates_examined=list(candidate_set.candidates),
        candidate_table=assembled.candidate_table,
        used_fallback=candidate_set.used_fallback,
        correlation_id=context.correlation_id,
    )
