"""
Composite investment score.

Component weights (sum to 1.0):
- pedigree (25%): executive team size, tenure and specialization diversity
- filing_velocity (20%): filing frequency and regularity
- red_flag (25%): 100 minus the detected flag total
- growth (15%): market cap and price momentum
- governance (15%): team size, material filings and tenure stability

Adjustments:
- +5 for an audit-related filing in the trailing year
- -10 for no filings in the trailing 180 days, or a disclosure gap flag >= 10

The final score is clamped to [0, 100] and truncated to an integer. Scores
are cached per entity for 24 hours and every fresh computation is appended
to the score and flag history.
"""

import logging
import operator
from collections.abc import Sequence
from datetime import datetime

from stock_intel.analytics.flags import DetectionContext, FlagDetector, total_score
from stock_intel.data.cache import ScoreCache
from stock_intel.data.memory import InMemoryHistoryStore
from stock_intel.data.sources import EntitySource, ExecutiveSource, FilingSource, HistoryStore
from stock_intel.models import (
    COMPONENT_KEYS,
    CompositeScore,
    DetectedFlag,
    EntityMetadata,
    ExecutiveRecord,
    FilingRecord,
    FlagHistoryRecord,
    FlagType,
    ScoreHistoryRecord,
)
from stock_intel.utils.bands import clamp, contains_any, step_score
from stock_intel.utils.clock import Clock, days_before, utc_now, whole_days
from stock_intel.utils.locks import GlobalLock, KeyedLock

logger = logging.getLogger(__name__)

COMPONENT_WEIGHTS: dict[str, float] = {
    "pedigree": 0.25,
    "filing_velocity": 0.20,
    "red_flag": 0.25,
    "growth": 0.15,
    "governance": 0.15,
}

AUDIT_BONUS = 5
OVERDUE_PENALTY = -10
OVERDUE_WINDOW_DAYS = 180
YEAR_DAYS = 365
REGULATORY_GAP_SCORE = 10.0

AUDIT_TYPE_TERMS = ("audit",)
AUDIT_SUMMARY_TERMS = ("audited", "audit report")

PEDIGREE_TENURE_BANDS = ((5.0, 40), (3.0, 30), (1.0, 20))
FILING_FREQUENCY_BANDS = ((4, 60), (3, 45), (2, 30), (1, 15))
# Average gap in days, lower is better
FILING_CONSISTENCY_BANDS = ((100, 40), (150, 30), (200, 20))
MARKET_CAP_BANDS = (
    (1_000_000_000, 40),
    (500_000_000, 35),
    (250_000_000, 30),
    (100_000_000, 25),
    (50_000_000, 20),
)
PRICE_MOMENTUM_BANDS = ((20.0, 60), (10.0, 50), (5.0, 40), (0.0, 30), (-5.0, 20), (-10.0, 10))
GOVERNANCE_TEAM_BANDS = ((5, 35), (3, 25), (2, 15))
GOVERNANCE_MATERIAL_BANDS = ((10, 35), (5, 25), (2, 15))
GOVERNANCE_TENURE_BANDS = ((5.0, 30), (3.0, 25), (2.0, 20), (1.0, 15))


def _average_tenure(executives: Sequence[ExecutiveRecord]) -> float:
    if not executives:
        return 0.0
    return sum(e.years_at_company for e in executives) / len(executives)


def pedigree_score(executives: Sequence[ExecutiveRecord]) -> int:
    """Team size (max 30) + average tenure (max 40) + specialization diversity (max 30)."""
    if not executives:
        return 0
    size_score = min(len(executives) * 10, 30)
    tenure_score = step_score(_average_tenure(executives), PEDIGREE_TENURE_BANDS, default=10)
    diversity = len({e.specialization for e in executives})
    diversity_score = min(diversity * 10, 30)
    return int(clamp(size_score + tenure_score + diversity_score))


def filing_velocity_score(filings: Sequence[FilingRecord], now: datetime) -> int:
    """Filing frequency over the trailing year (max 60) + regularity of the latest four (max 40)."""
    if not filings:
        return 0

    cutoff = days_before(now, YEAR_DAYS)
    recent_count = sum(1 for f in filings if f.filed_at >= cutoff)
    frequency_score = step_score(recent_count, FILING_FREQUENCY_BANDS, default=0)

    latest = sorted(filings, key=lambda f: f.filed_at, reverse=True)[:4]
    if len(latest) >= 2:
        gaps = [whole_days(a.filed_at, b.filed_at) for a, b in zip(latest, latest[1:])]
        avg_gap = sum(gaps) / len(gaps)
        consistency_score = step_score(avg_gap, FILING_CONSISTENCY_BANDS, operator.le, default=10)
    else:
        # Not enough filings to judge regularity
        consistency_score = 20

    return int(clamp(frequency_score + consistency_score))


def red_flag_score(flags: Sequence[DetectedFlag]) -> int:
    """Inverse of the flag total: no flags scores 100."""
    return int(clamp(100.0 - total_score(flags)))


def growth_score(entity: EntityMetadata) -> int:
    """Market cap band (15-40) + price momentum band (0-60)."""
    cap_score = step_score(entity.market_cap, MARKET_CAP_BANDS, default=15)
    momentum_score = step_score(entity.price_change_percent, PRICE_MOMENTUM_BANDS, default=0)
    return int(clamp(cap_score + momentum_score))


def governance_score(
    executives: Sequence[ExecutiveRecord],
    filings: Sequence[FilingRecord],
) -> int:
    """Team size (5-35) + material filing count (5-35) + tenure stability (10-30)."""
    team_score = step_score(len(executives), GOVERNANCE_TEAM_BANDS, default=5)
    material_count = sum(1 for f in filings if f.is_material)
    transparency_score = step_score(material_count, GOVERNANCE_MATERIAL_BANDS, default=5)
    stability_score = step_score(_average_tenure(executives), GOVERNANCE_TENURE_BANDS, default=10)
    return int(clamp(team_score + transparency_score + stability_score))


def has_audited_financials(filings: Sequence[FilingRecord], now: datetime) -> bool:
    cutoff = days_before(now, YEAR_DAYS)
    return any(
        f.filed_at >= cutoff
        and (
            contains_any(f.filing_type, AUDIT_TYPE_TERMS)
            or contains_any(f.summary, AUDIT_SUMMARY_TERMS)
        )
        for f in filings
    )


def has_overdue_filings(filings: Sequence[FilingRecord], now: datetime) -> bool:
    """No filings at all, or none in the trailing 180 days."""
    cutoff = days_before(now, OVERDUE_WINDOW_DAYS)
    return not any(f.filed_at >= cutoff for f in filings)


def has_regulatory_issues(flags: Sequence[DetectedFlag]) -> bool:
    return any(
        f.flag_type is FlagType.DISCLOSURE_GAPS and f.score >= REGULATORY_GAP_SCORE
        for f in flags
    )


def score_adjustments(
    filings: Sequence[FilingRecord],
    flags: Sequence[DetectedFlag],
    now: datetime,
) -> int:
    adjustment = 0
    if has_audited_financials(filings, now):
        adjustment += AUDIT_BONUS
    if has_overdue_filings(filings, now) or has_regulatory_issues(flags):
        adjustment += OVERDUE_PENALTY
    return adjustment


def weighted_base_score(components: dict[str, int]) -> float:
    return sum(components[key] * COMPONENT_WEIGHTS[key] for key in COMPONENT_KEYS)


class CompositeScorer:
    """
    Computes and caches composite scores.

    Locking is per entity: a given entity is never computed twice at the
    same time, while different entities score in parallel. Pass
    serialize_all=True to serialize every call behind one lock instead.
    """

    def __init__(
        self,
        entity_source: EntitySource,
        filing_source: FilingSource,
        executive_source: ExecutiveSource,
        detector: FlagDetector | None = None,
        cache: ScoreCache | None = None,
        score_history: HistoryStore[ScoreHistoryRecord] | None = None,
        flag_history: HistoryStore[FlagHistoryRecord] | None = None,
        clock: Clock = utc_now,
        serialize_all: bool = False,
    ):
        self.entity_source = entity_source
        self.filing_source = filing_source
        self.executive_source = executive_source
        self.detector = detector or FlagDetector(filing_source, executive_source, clock=clock)
        self.cache = cache if cache is not None else ScoreCache()
        self.score_history = score_history if score_history is not None else InMemoryHistoryStore()
        self.flag_history = flag_history if flag_history is not None else InMemoryHistoryStore()
        self._clock = clock
        self._locks: KeyedLock | GlobalLock = GlobalLock() if serialize_all else KeyedLock()

    def score(self, entity_id: str) -> CompositeScore:
        """
        Get the composite score for an entity, computing it if the cache is stale.

        Args:
            entity_id: Entity identifier

        Returns:
            Cached score if younger than the TTL, otherwise a fresh score

        Raises:
            NotFoundError: If the entity has no metadata record
        """
        with self._locks.hold(entity_id):
            now = self._clock()
            cached = self.cache.get(entity_id, now)
            if cached is not None:
                logger.debug(f"score({entity_id}): cache hit from {cached.computed_at.isoformat()}")
                return cached

            result, flags = self._compute(entity_id, now)

            self.cache.store(result)
            self.score_history.append(ScoreHistoryRecord.from_score(result))
            for flag in flags:
                self.flag_history.append(FlagHistoryRecord.from_flag(flag))
            return result

    def _compute(self, entity_id: str, now: datetime) -> tuple[CompositeScore, list[DetectedFlag]]:
        # Raises NotFoundError before anything is cached or recorded
        entity = self.entity_source.get_entity(entity_id)
        filings = tuple(self.filing_source.get_filings(entity_id))
        executives = tuple(self.executive_source.get_executives(entity_id))

        flags = self.detector.detect_in_context(
            DetectionContext(entity_id=entity_id, filings=filings, executives=executives, now=now)
        )

        components = {
            "pedigree": pedigree_score(executives),
            "filing_velocity": filing_velocity_score(filings, now),
            "red_flag": red_flag_score(flags),
            "growth": growth_score(entity),
            "governance": governance_score(executives, filings),
        }
        base = weighted_base_score(components)
        adjustment = score_adjustments(filings, flags, now)
        overall = int(clamp(base + adjustment))

        logger.info(
            f"score({entity_id}): {overall} (base={base:.2f}, adjustment={adjustment:+d}, "
            f"flags={len(flags)})"
        )
        result = CompositeScore(
            entity_id=entity_id,
            overall_score=overall,
            components=components,
            computed_at=now,
        )
        return result, flags

    def get_cached(self, entity_id: str) -> CompositeScore | None:
        """Cached score if still fresh, without computing."""
        with self._locks.hold(entity_id):
            return self.cache.get(entity_id, self._clock())

    def invalidate(self, entity_id: str | None = None) -> None:
        """Drop the cached score for one entity, or for all entities."""
        if entity_id is None:
            if isinstance(self._locks, GlobalLock):
                # An in-flight computation must not write back after the clear
                with self._locks.hold(None):
                    self.cache.invalidate()
            else:
                self.cache.invalidate()
            logger.debug("Score cache cleared")
            return
        with self._locks.hold(entity_id):
            self.cache.invalidate(entity_id)
