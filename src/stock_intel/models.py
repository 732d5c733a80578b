"""Value objects shared by the detection, scoring, trend and sync layers."""

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

from stock_intel.errors import InvalidArgumentError

# Sub-score keys of a composite score, in weighting order
COMPONENT_KEYS: tuple[str, ...] = (
    "pedigree",
    "filing_velocity",
    "red_flag",
    "growth",
    "governance",
)


@dataclass(frozen=True)
class FilingRecord:
    """One disclosure event for an entity. Read-only to the engine."""

    filing_type: str
    summary: str
    filed_at: datetime
    is_material: bool = False
    title: str = ""


@dataclass(frozen=True)
class ExecutiveRecord:
    """One officer/director entry for an entity."""

    name: str
    title: str
    years_at_company: float
    specialization: str


@dataclass(frozen=True)
class EntityMetadata:
    """Market metadata used by the growth sub-score and peer comparison."""

    entity_id: str
    market_cap: float
    price_change_percent: float
    sector: str
    name: str = ""


class FlagType(Enum):
    """Risk flag categories. Weights sum to 1.0."""

    CONSOLIDATION_VELOCITY = ("consolidation_velocity", 0.30)
    FINANCING_VELOCITY = ("financing_velocity", 0.25)
    EXECUTIVE_CHURN = ("executive_churn", 0.20)
    DISCLOSURE_GAPS = ("disclosure_gaps", 0.15)
    DEBT_TREND = ("debt_trend", 0.10)

    def __init__(self, label: str, weight: float):
        self.label = label
        self.weight = weight

    @property
    def max_score(self) -> float:
        """Maximum contribution of this category to a flag total."""
        return round(self.weight * 100, 2)


class Severity(Enum):
    """Bucketing of a flag set's total score."""

    LOW = "low"  # < 30
    MODERATE = "moderate"  # 30 - 60
    HIGH = "high"  # 60 - 85
    CRITICAL = "critical"  # >= 85

    @classmethod
    def from_total(cls, total: float) -> "Severity":
        if total < 30:
            return cls.LOW
        if total < 60:
            return cls.MODERATE
        if total < 85:
            return cls.HIGH
        return cls.CRITICAL


@dataclass(frozen=True)
class DetectedFlag:
    """A single detected risk signal with a bounded weighted score."""

    flag_type: FlagType
    entity_id: str
    score: float
    description: str
    detected_at: datetime

    def __post_init__(self) -> None:
        if self.score <= 0:
            raise InvalidArgumentError(
                f"{self.flag_type.label} flag score must be positive, got {self.score}"
            )
        if self.score > self.flag_type.max_score:
            raise InvalidArgumentError(
                f"{self.flag_type.label} flag score {self.score} exceeds "
                f"category maximum {self.flag_type.max_score}"
            )


@dataclass(frozen=True)
class FlagReport:
    """Flags detected in one run with their total and severity."""

    entity_id: str
    flags: tuple[DetectedFlag, ...]
    total_score: float
    severity: Severity


@dataclass(frozen=True)
class CompositeScore:
    """
    Aggregate investment score.

    overall_score and every component are integers in [0, 100].
    Superseded, never mutated, by the next computation.
    """

    entity_id: str
    overall_score: int
    components: dict[str, int]
    computed_at: datetime

    def __post_init__(self) -> None:
        if set(self.components) != set(COMPONENT_KEYS):
            raise InvalidArgumentError(
                f"Composite score components must be {COMPONENT_KEYS}, "
                f"got {sorted(self.components)}"
            )
        for key, value in [("overall", self.overall_score), *self.components.items()]:
            if not 0 <= value <= 100:
                raise InvalidArgumentError(f"{key} score {value} outside [0, 100]")


@dataclass(frozen=True)
class ScoreHistoryRecord:
    """Persisted snapshot of one composite score computation."""

    entity_id: str
    overall_score: int
    pedigree_score: int
    filing_velocity_score: int
    red_flag_score: int
    growth_score: int
    governance_score: int
    calculated_at: datetime
    record_id: str = field(default_factory=lambda: str(uuid.uuid4()))

    @classmethod
    def from_score(cls, score: CompositeScore) -> "ScoreHistoryRecord":
        return cls(
            entity_id=score.entity_id,
            overall_score=score.overall_score,
            pedigree_score=score.components["pedigree"],
            filing_velocity_score=score.components["filing_velocity"],
            red_flag_score=score.components["red_flag"],
            growth_score=score.components["growth"],
            governance_score=score.components["governance"],
            calculated_at=score.computed_at,
        )

    @property
    def recorded_at(self) -> datetime:
        return self.calculated_at


@dataclass(frozen=True)
class FlagHistoryRecord:
    """Persisted copy of one detected flag."""

    entity_id: str
    flag_type: FlagType
    severity: Severity
    score: float
    description: str
    detected_at: datetime
    record_id: str = field(default_factory=lambda: str(uuid.uuid4()))

    @classmethod
    def from_flag(cls, flag: DetectedFlag) -> "FlagHistoryRecord":
        # Severity of the flag on its own, as shown next to a single history row
        return cls(
            entity_id=flag.entity_id,
            flag_type=flag.flag_type,
            severity=Severity.from_total(flag.score),
            score=flag.score,
            description=flag.description,
            detected_at=flag.detected_at,
        )

    @property
    def recorded_at(self) -> datetime:
        return self.detected_at


class ScoreTrendDirection(Enum):
    IMPROVING = "improving"
    STABLE = "stable"
    DECLINING = "declining"


class FlagTrendDirection(Enum):
    IMPROVING = "improving"
    WORSENING = "worsening"
    STABLE = "stable"


@dataclass(frozen=True)
class TrendResult:
    """Direction and per-week momentum of a history series."""

    direction: ScoreTrendDirection | FlagTrendDirection
    momentum: float


@dataclass(frozen=True)
class ScoreTrend(TrendResult):
    score_change: int
    current_score: int
    previous_score: int
    sample_count: int


@dataclass(frozen=True)
class FlagTrend(TrendResult):
    current_score: float
    previous_score: float
    flag_count: int
    new_flags_count: int
    resolved_flags_count: int


@dataclass(frozen=True)
class PeerScore:
    entity_id: str
    name: str
    score: int


@dataclass(frozen=True)
class PeerComparison:
    """Entity score compared against same-sector peers."""

    entity_id: str
    score: int
    sector_average: int
    percentile: int
    peer_scores: tuple[PeerScore, ...]
