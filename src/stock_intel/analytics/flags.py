"""
Risk flag detection over filing and executive history.

Five independent heuristics each derive one metric from the records and map
it through a band table to an optional weighted flag:

- consolidation_velocity (30%): consolidation filings in the trailing year
- financing_velocity (25%): financing filings in the trailing year
- executive_churn (20%): share of executives with under two years tenure
- disclosure_gaps (15%): longest gap (> 120 days) between filings
- debt_trend (10%): share of trailing-180-day filings that mention debt

Heuristics are pure functions of a DetectionContext. New heuristics are
added by registering a FlagHeuristic, without touching existing ones.
"""

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from datetime import datetime

from stock_intel.data.sources import ExecutiveSource, FilingSource
from stock_intel.errors import InvalidArgumentError
from stock_intel.models import (
    DetectedFlag,
    ExecutiveRecord,
    FilingRecord,
    FlagReport,
    FlagType,
    Severity,
)
from stock_intel.utils.bands import contains_any, step_score
from stock_intel.utils.clock import Clock, days_before, utc_now, whole_days

logger = logging.getLogger(__name__)

VELOCITY_WINDOW_DAYS = 365
DEBT_WINDOW_DAYS = 180
MIN_DISCLOSURE_GAP_DAYS = 120
SHORT_TENURE_YEARS = 2.0

CONSOLIDATION_TERMS = ("consolidation",)
FINANCING_TYPE_TERMS = ("financing", "offering")
FINANCING_SUMMARY_TERMS = ("private placement", "equity financing")
DEBT_TERMS = ("debt", "loan", "borrowing", "credit facility")

# Band tables: (metric threshold, flag score), first match wins
CONSOLIDATION_BANDS = ((3, 30.0), (2, 22.5), (1, 15.0))
FINANCING_BANDS = ((4, 25.0), (3, 18.75), (2, 12.5), (1, 6.25))
CHURN_RATE_BANDS = ((60, 20.0), (40, 15.0), (25, 10.0))
DISCLOSURE_GAP_BANDS = ((240, 15.0), (180, 11.25), (120, 7.5))
DEBT_RATE_BANDS = ((60, 10.0), (40, 7.5), (25, 5.0))


@dataclass(frozen=True)
class DetectionContext:
    """Everything a heuristic may look at for one entity."""

    entity_id: str
    filings: tuple[FilingRecord, ...]
    executives: tuple[ExecutiveRecord, ...]
    now: datetime

    def filings_since(self, days: int) -> list[FilingRecord]:
        cutoff = days_before(self.now, days)
        return [f for f in self.filings if f.filed_at >= cutoff]


@dataclass(frozen=True)
class FlagHeuristic:
    flag_type: FlagType
    detect: Callable[[DetectionContext], DetectedFlag | None]


def _flag(
    context: DetectionContext,
    flag_type: FlagType,
    score: float | None,
    description: str,
) -> DetectedFlag | None:
    # Zero-score flags are never emitted
    if not score:
        return None
    return DetectedFlag(
        flag_type=flag_type,
        entity_id=context.entity_id,
        score=score,
        description=description,
        detected_at=context.now,
    )


# ============================================================================
# Consolidation velocity
# ============================================================================


def is_consolidation(filing: FilingRecord) -> bool:
    return contains_any(filing.filing_type, CONSOLIDATION_TERMS) or contains_any(
        filing.summary, CONSOLIDATION_TERMS
    )


def recent_consolidation_count(context: DetectionContext) -> int:
    return sum(1 for f in context.filings_since(VELOCITY_WINDOW_DAYS) if is_consolidation(f))


def consolidation_score(count: int) -> float | None:
    return step_score(count, CONSOLIDATION_BANDS)


def detect_consolidation_velocity(context: DetectionContext) -> DetectedFlag | None:
    count = recent_consolidation_count(context)
    return _flag(
        context,
        FlagType.CONSOLIDATION_VELOCITY,
        consolidation_score(count),
        f"Detected {count} share consolidation(s) in the past year. "
        "Frequent consolidations may indicate ongoing dilution concerns.",
    )


# ============================================================================
# Financing velocity
# ============================================================================


def is_financing(filing: FilingRecord) -> bool:
    return contains_any(filing.filing_type, FINANCING_TYPE_TERMS) or contains_any(
        filing.summary, FINANCING_SUMMARY_TERMS
    )


def recent_financing_count(context: DetectionContext) -> int:
    return sum(1 for f in context.filings_since(VELOCITY_WINDOW_DAYS) if is_financing(f))


def financing_score(count: int) -> float | None:
    return step_score(count, FINANCING_BANDS)


def detect_financing_velocity(context: DetectionContext) -> DetectedFlag | None:
    count = recent_financing_count(context)
    return _flag(
        context,
        FlagType.FINANCING_VELOCITY,
        financing_score(count),
        f"Detected {count} equity financing(s) in the past year. "
        "Frequent financings may indicate cash burn or operational challenges.",
    )


# ============================================================================
# Executive churn
# ============================================================================


def executive_churn_rate(executives: Sequence[ExecutiveRecord]) -> float | None:
    """Percent of executives with tenure under two years, None without a roster."""
    if not executives:
        return None
    recent_hires = sum(1 for e in executives if e.years_at_company < SHORT_TENURE_YEARS)
    return recent_hires / len(executives) * 100


def churn_score(churn_rate: float | None) -> float | None:
    return step_score(churn_rate, CHURN_RATE_BANDS)


def detect_executive_churn(context: DetectionContext) -> DetectedFlag | None:
    churn_rate = executive_churn_rate(context.executives)
    if churn_rate is None:
        return None
    recent_hires = sum(1 for e in context.executives if e.years_at_company < SHORT_TENURE_YEARS)
    return _flag(
        context,
        FlagType.EXECUTIVE_CHURN,
        churn_score(churn_rate),
        f"High executive turnover detected: {recent_hires} of {len(context.executives)} "
        f"executives have less than 2 years tenure ({int(churn_rate)}%). "
        "May indicate leadership instability.",
    )


# ============================================================================
# Disclosure gaps
# ============================================================================


def filing_gaps_days(filings: Sequence[FilingRecord]) -> list[int]:
    """Whole-day gaps between consecutive filings, newest first."""
    ordered = sorted(filings, key=lambda f: f.filed_at, reverse=True)
    return [whole_days(a.filed_at, b.filed_at) for a, b in zip(ordered, ordered[1:])]


def max_disclosure_gap_days(filings: Sequence[FilingRecord]) -> int | None:
    """Longest gap exceeding the minimum, None if fewer than two filings or no such gap."""
    if len(filings) < 2:
        return None
    gaps = [gap for gap in filing_gaps_days(filings) if gap > MIN_DISCLOSURE_GAP_DAYS]
    return max(gaps) if gaps else None


def disclosure_gap_score(max_gap_days: int | None) -> float | None:
    return step_score(max_gap_days, DISCLOSURE_GAP_BANDS)


def detect_disclosure_gaps(context: DetectionContext) -> DetectedFlag | None:
    max_gap = max_disclosure_gap_days(context.filings)
    return _flag(
        context,
        FlagType.DISCLOSURE_GAPS,
        disclosure_gap_score(max_gap),
        f"Significant filing gap detected: {max_gap} days between disclosures. "
        "Delays may indicate disclosure issues or operational challenges.",
    )


# ============================================================================
# Debt trend
# ============================================================================


def debt_mention_rate(filings: Sequence[FilingRecord]) -> float | None:
    """Percent of filings whose summary mentions debt terms, None without filings."""
    if not filings:
        return None
    mentions = sum(1 for f in filings if contains_any(f.summary, DEBT_TERMS))
    return mentions / len(filings) * 100


def debt_score(debt_rate: float | None) -> float | None:
    return step_score(debt_rate, DEBT_RATE_BANDS)


def detect_debt_trend(context: DetectionContext) -> DetectedFlag | None:
    recent = context.filings_since(DEBT_WINDOW_DAYS)
    debt_rate = debt_mention_rate(recent)
    if debt_rate is None:
        return None
    mentions = sum(1 for f in recent if contains_any(f.summary, DEBT_TERMS))
    return _flag(
        context,
        FlagType.DEBT_TREND,
        debt_score(debt_rate),
        f"Increasing debt mentions: {mentions} of {len(recent)} recent filings "
        f"({int(debt_rate)}%) reference debt or borrowing. "
        "May indicate financial leverage concerns.",
    )


DEFAULT_HEURISTICS: tuple[FlagHeuristic, ...] = (
    FlagHeuristic(FlagType.CONSOLIDATION_VELOCITY, detect_consolidation_velocity),
    FlagHeuristic(FlagType.FINANCING_VELOCITY, detect_financing_velocity),
    FlagHeuristic(FlagType.EXECUTIVE_CHURN, detect_executive_churn),
    FlagHeuristic(FlagType.DISCLOSURE_GAPS, detect_disclosure_gaps),
    FlagHeuristic(FlagType.DEBT_TREND, detect_debt_trend),
)


def run_heuristics(
    context: DetectionContext,
    heuristics: Sequence[FlagHeuristic] = DEFAULT_HEURISTICS,
) -> list[DetectedFlag]:
    """Run every heuristic over the context and keep the flags that fired."""
    flags: list[DetectedFlag] = []
    for heuristic in heuristics:
        flag = heuristic.detect(context)
        if flag is None:
            continue
        if flag.flag_type is not heuristic.flag_type:
            raise InvalidArgumentError(
                f"Heuristic registered for {heuristic.flag_type.label} "
                f"emitted a {flag.flag_type.label} flag"
            )
        flags.append(flag)
    return flags


def total_score(flags: Sequence[DetectedFlag]) -> float:
    return sum(flag.score for flag in flags)


def severity(flags: Sequence[DetectedFlag]) -> Severity:
    """Severity bucket of a flag set's total score."""
    return Severity.from_total(total_score(flags))


def build_flag_report(entity_id: str, flags: Sequence[DetectedFlag]) -> FlagReport:
    total = total_score(flags)
    return FlagReport(
        entity_id=entity_id,
        flags=tuple(flags),
        total_score=total,
        severity=Severity.from_total(total),
    )


class FlagDetector:
    """
    Detects risk flags for an entity from its filing and executive history.

    Stateless apart from its collaborators: safe to call concurrently for
    the same or different entities.
    """

    def __init__(
        self,
        filing_source: FilingSource,
        executive_source: ExecutiveSource,
        heuristics: Sequence[FlagHeuristic] = DEFAULT_HEURISTICS,
        clock: Clock = utc_now,
    ):
        kinds = [h.flag_type for h in heuristics]
        if len(kinds) != len(set(kinds)):
            raise InvalidArgumentError("At most one heuristic may be registered per flag type")
        self.filing_source = filing_source
        self.executive_source = executive_source
        self.heuristics = tuple(heuristics)
        self._clock = clock

    def build_context(self, entity_id: str) -> DetectionContext:
        return DetectionContext(
            entity_id=entity_id,
            filings=tuple(self.filing_source.get_filings(entity_id)),
            executives=tuple(self.executive_source.get_executives(entity_id)),
            now=self._clock(),
        )

    def detect(self, entity_id: str) -> list[DetectedFlag]:
        """
        Detect all flags for an entity.

        Args:
            entity_id: Entity identifier

        Returns:
            Flags that fired, in heuristic registration order, at most one per type
        """
        return self.detect_in_context(self.build_context(entity_id))

    def detect_in_context(self, context: DetectionContext) -> list[DetectedFlag]:
        flags = run_heuristics(context, self.heuristics)
        logger.debug(
            f"detect({context.entity_id}): {len(flags)} flag(s) "
            f"from {len(context.filings)} filings, {len(context.executives)} executives"
        )
        return flags
