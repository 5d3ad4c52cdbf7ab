"""Result assembly activity.

Projects the containment outcome into the two views the report needs:
the flat list of matching zones, and a candidate table with one row per
examined instrument file saying whether it contains the point.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

    from geoipt.activities.find_containing import CandidateEvaluation
    from geoipt.models.feature import MatchResult

logger = logging.getLogger("geoipt.activities.assemble_results")

# Listing metadata keys, first match wins.
_TYPE_KEYS = ("tipo", "instrument_type", "type")
_COMMUNE_KEYS = ("comuna", "commune")


@dataclass(frozen=True, slots=True)
class CandidateRow:
    """One examined instrument file in the candidate table."""

    file_name: str
    folder_key: str
    name: str
    instrument_type: str = ""
    commune: str = ""
    region_name: str = ""
    contains_point: bool = False
    error: str = ""

    def to_dict(self) -> dict[str, object]:
        return {
            "file_name": self.file_name,
            "folder_key": self.folder_key,
            "name": self.name,
            "instrument_type": self.instrument_type,
            "commune": self.commune,
            "region_name": self.region_name,
            "contains_point": self.contains_point,
            "error": self.error,
        }


@dataclass(slots=True)
class AssembledResult:
    """Matches plus the per-file candidate table."""

    matches: list[MatchResult] = field(default_factory=list)
    candidate_table: list[CandidateRow] = field(default_factory=list)

    @property
    def candidates_examined(self) -> int:
        return len(self.candidate_table)

    def to_dict(self) -> dict[str, object]:
        return {
            "matches": [m.to_dict() for m in self.matches],
            "candidate_table": [row.to_dict() for row in self.candidate_table],
        }


def assemble_results(
    matches: Iterable[MatchResult],
    evaluations: Iterable[CandidateEvaluation],
) -> AssembledResult:
    """Build the match list and candidate table.

    Args:
        matches: Containment matches, in candidate order.
        evaluations: One evaluation per examined candidate file.

    Returns:
        ``AssembledResult`` preserving the input order of both sequences.
    """
    table = [_row(e) for e in evaluations]
    result = AssembledResult(matches=list(matches), candidate_table=table)
    logger.debug(
        "Results assembled | matches=%d | rows=%d | containing=%d",
        len(result.matches),
        len(table),
        sum(1 for row in table if row.contains_point),
    )
    return result


def _row(evaluation: CandidateEvaluation) -> CandidateRow:
    record = evaluation.record
    meta = record.raw_metadata
    error = ""
    if evaluation.error:
        error = str(evaluation.error.get("code") or evaluation.error.get("message") or "")
    return CandidateRow(
        file_name=record.file_name,
        folder_key=record.folder_key,
        name=record.display_name,
        instrument_type=_text(meta, _TYPE_KEYS),
        commune=_text(meta, _COMMUNE_KEYS),
        region_name=record.region_name,
        contains_point=evaluation.matched,
        error=error,
    )


def _text(meta: Mapping[str, Any], keys: tuple[str, ...]) -> str:
    for key in keys:
        value = meta.get(key)
        if value not in (None, ""):
            return str(value)
    return ""
