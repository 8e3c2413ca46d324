"""Append-only analysis versions with upgrade-only merging.

A criterion's strength can only rise through ``merge_criteria``; evidence
excerpts are an ordered, case-sensitive set union. Every write appends
``previous + 1``; concurrent writers for one case are serialized by a
per-case lock and, across processes, by the unique ``(case_id, version)``
constraint with a bounded re-read-and-retry.
"""

import asyncio
from contextlib import asynccontextmanager
from typing import Dict, Iterable, List, Optional, Sequence, Tuple, Union

from petition_ai.core.exceptions import UnknownCriterionError, VersionConflictError
from petition_ai.schemas.analysis import AnalysisSummary, AnalysisVersion, CriterionResult, CriterionUpdate
from petition_ai.schemas.criteria import ALL_CRITERIA, STRENGTH_RANK, criterion_order, is_known_criterion, max_strength
from petition_ai.schemas.extraction import ExtractionDocument
from petition_ai.services.store.base import CaseStore
from petition_ai.utils.logging import get_logger

LOGGER = get_logger(__name__)

NOT_EVALUATED = "Not yet evaluated"
MAX_APPEND_ATTEMPTS = 3

UpdateLike = Union[CriterionUpdate, Dict]


def seed_criteria() -> List[CriterionResult]:
    """All ten criteria at None, the implicit version 0."""
    return [
        CriterionResult(criterion_id=c, strength="None", reason=NOT_EVALUATED, evidence=[])
        for c in ALL_CRITERIA
    ]


def count_strengths(criteria: Iterable[CriterionResult]) -> Tuple[int, int]:
    """Return ``(strong_count, weak_count)``."""
    strong = weak = 0
    for result in criteria:
        if result.strength == "Strong":
            strong += 1
        elif result.strength == "Weak":
            weak += 1
    return strong, weak


def merge_evidence(existing: Sequence[str], proposed: Sequence[str]) -> List[str]:
    merged = list(existing)
    seen = set(merged)
    for excerpt in proposed:
        if excerpt not in seen:
            merged.append(excerpt)
            seen.add(excerpt)
    return merged


def merge_criterion(current: CriterionResult, update: CriterionUpdate) -> CriterionResult:
    """Upgrade-only merge of one update into one criterion."""
    upgrade_or_equal = STRENGTH_RANK[update.strength] >= STRENGTH_RANK[current.strength]
    return CriterionResult(
        criterion_id=current.criterion_id,
        strength=max_strength(current.strength, update.strength),
        reason=update.reason if upgrade_or_equal else current.reason,
        evidence=merge_evidence(current.evidence, update.evidence),
    )


def merge_criteria(
    base: Optional[Sequence[CriterionResult]],
    updates: Sequence[CriterionUpdate],
) -> List[CriterionResult]:
    """Apply ``updates`` onto ``base`` and return the new criteria list.

    Known criteria missing from ``base`` are seeded at None first.
    Several updates for one criterion are folded in order. Criteria
    without an update pass through unchanged.
    """
    merged: Dict[str, CriterionResult] = {r.criterion_id: r for r in seed_criteria()}
    for result in base or []:
        merged[result.criterion_id] = result

    for update in updates:
        current = merged.get(update.criterion_id)
        if current is None:
            raise UnknownCriterionError(f"Unknown criterion: {update.criterion_id}")
        merged[update.criterion_id] = merge_criterion(current, update)

    return sorted(merged.values(), key=lambda r: criterion_order(r.criterion_id))


def _coerce_updates(updates: Sequence[UpdateLike]) -> List[CriterionUpdate]:
    coerced = [u if isinstance(u, CriterionUpdate) else CriterionUpdate.model_validate(u) for u in updates]
    unknown = [u.criterion_id for u in coerced if not is_known_criterion(u.criterion_id)]
    if unknown:
        raise UnknownCriterionError(f"Unknown criteria: {', '.join(unknown)}")
    return coerced


class AnalysisVersionService:
    """Creates analysis versions on top of a ``CaseStore``."""

    def __init__(self, store: CaseStore, max_attempts: int = MAX_APPEND_ATTEMPTS):
        self.store = store
        self.max_attempts = max_attempts
        self._locks: Dict[str, asyncio.Lock] = {}
        self._lock_holders: Dict[str, int] = {}

    @asynccontextmanager
    async def _case_lock(self, case_id: str):
        """Per-case lock, dropped once no task holds or awaits it."""
        lock = self._locks.setdefault(case_id, asyncio.Lock())
        self._lock_holders[case_id] = self._lock_holders.get(case_id, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._lock_holders[case_id] -= 1
            if not self._lock_holders[case_id]:
                del self._lock_holders[case_id]
                del self._locks[case_id]

    async def get_latest(self, case_id: str) -> Optional[AnalysisVersion]:
        return await self.store.get_latest_version(case_id)

    async def apply_updates(self, case_id: str, updates: Sequence[UpdateLike]) -> AnalysisVersion:
        """Merge ``updates`` onto the latest version and append the result.

        Raises:
            UnknownCriterionError: An update names a criterion outside C1..C10;
                nothing is written
            VersionConflictError: Another writer kept winning the race
        """
        coerced = _coerce_updates(updates)

        async with self._case_lock(case_id):
            for attempt in range(1, self.max_attempts + 1):
                latest = await self.store.get_latest_version(case_id)
                previous = latest.version if latest else 0
                criteria = merge_criteria(latest.criteria if latest else None, coerced)
                strong, weak = count_strengths(criteria)

                candidate = AnalysisVersion(
                    case_id=case_id,
                    version=previous + 1,
                    criteria=criteria,
                    strong_count=strong,
                    weak_count=weak,
                )
                try:
                    stored = await self.store.append_version(candidate)
                except VersionConflictError:
                    LOGGER.warning(
                        f"Version {previous + 1} for case {case_id} already exists, retrying",
                        extra={"case_id": case_id, "attempt": attempt},
                    )
                    if attempt >= self.max_attempts:
                        raise
                    continue

                LOGGER.info(
                    f"Appended analysis version v{previous} -> v{stored.version} for case {case_id}",
                    extra={
                        "case_id": case_id,
                        "updated": [u.criterion_id for u in coerced],
                        "strong_count": strong,
                        "weak_count": weak,
                    },
                )
                return stored

        raise VersionConflictError(f"Could not append analysis version for case {case_id}")

    async def seed_from_extraction(
        self,
        case_id: str,
        extraction: Optional[ExtractionDocument] = None,
    ) -> Optional[AnalysisVersion]:
        """Apply the extraction's criteria summaries as one batch of updates."""
        extraction = extraction or await self.store.get_latest_extraction(case_id)
        if extraction is None:
            LOGGER.info(f"No extraction to seed analysis from for case {case_id}")
            return None

        updates = [
            CriterionUpdate(
                criterion_id=item.criterion_id,
                strength=item.strength,
                reason=item.summary,
                evidence=item.key_evidence,
            )
            for item in extraction.criteria_summary
        ]
        return await self.apply_updates(case_id, updates)

    async def get_summary(self, case_id: str) -> Optional[AnalysisSummary]:
        """Counts for the latest version against the case threshold."""
        latest = await self.store.get_latest_version(case_id)
        if latest is None:
            return None

        strong, weak = count_strengths(latest.criteria)
        threshold = await self.store.get_criteria_threshold(case_id)
        return AnalysisSummary(
            case_id=case_id,
            version=latest.version,
            strong_count=strong,
            weak_count=weak,
            none_count=len(latest.criteria) - strong - weak,
            criteria_satisfied_count=strong,
            criteria_threshold=threshold,
            threshold_met=strong >= threshold,
        )
