"""Engine facade consumed by presentation and sync layers."""

import logging
import os
from collections.abc import Iterable, Sequence
from concurrent.futures import Future, ThreadPoolExecutor
from datetime import datetime
from typing import Any, TypeVar

from stock_intel.analytics.flags import (
    DEFAULT_HEURISTICS,
    FlagDetector,
    FlagHeuristic,
    build_flag_report,
    severity,
)
from stock_intel.analytics.peers import PeerComparator
from stock_intel.analytics.scoring import CompositeScorer
from stock_intel.analytics.trend import TrendAnalyzer
from stock_intel.data.cache import ScoreCache
from stock_intel.data.memory import InMemoryHistoryStore, InMemoryRecordSource
from stock_intel.data.sources import EntitySource, ExecutiveSource, FilingSource, HistoryStore
from stock_intel.errors import InvalidArgumentError, NotFoundError
from stock_intel.models import (
    CompositeScore,
    DetectedFlag,
    FlagHistoryRecord,
    FlagReport,
    FlagTrend,
    PeerComparison,
    ScoreHistoryRecord,
    ScoreTrend,
    Severity,
)
from stock_intel.sync.resolver import (
    ConflictCandidate,
    ConflictResolver,
    ResolutionOutcome,
    ResolutionStrategy,
)
from stock_intel.utils.clock import Clock, days_before, utc_now

logger = logging.getLogger(__name__)

# Worker pool size for batch scoring
_max_workers = int(os.environ.get("ENGINE_MAX_WORKERS", "4"))

# Months are counted as 30-day blocks for history queries
DAYS_PER_MONTH = 30

T = TypeVar("T")


class StockIntelEngine:
    """
    Wires detection, scoring, trend, peer and conflict components together.

    All components share one clock and one pair of history stores, so
    scores and flags recorded here are what the trend queries read back.
    """

    def __init__(
        self,
        entity_source: EntitySource,
        filing_source: FilingSource,
        executive_source: ExecutiveSource,
        *,
        cache: ScoreCache | None = None,
        score_history: HistoryStore[ScoreHistoryRecord] | None = None,
        flag_history: HistoryStore[FlagHistoryRecord] | None = None,
        heuristics: Sequence[FlagHeuristic] = DEFAULT_HEURISTICS,
        clock: Clock = utc_now,
        serialize_scoring: bool = False,
        max_workers: int | None = None,
    ):
        self.score_store = score_history if score_history is not None else InMemoryHistoryStore()
        self.flag_store = flag_history if flag_history is not None else InMemoryHistoryStore()
        self.max_workers = max_workers or _max_workers
        self.entity_source = entity_source
        self._clock = clock

        self.detector = FlagDetector(filing_source, executive_source, heuristics, clock=clock)
        self.scorer = CompositeScorer(
            entity_source,
            filing_source,
            executive_source,
            detector=self.detector,
            cache=cache,
            score_history=self.score_store,
            flag_history=self.flag_store,
            clock=clock,
            serialize_all=serialize_scoring,
        )
        self.trends = TrendAnalyzer(self.score_store, self.flag_store, clock=clock)
        self.resolver = ConflictResolver()
        self.peers: PeerComparator | None = None
        if hasattr(entity_source, "list_entities"):
            self.peers = PeerComparator(entity_source, self.scorer, self.score_store)

    @classmethod
    def from_records(cls, records: InMemoryRecordSource, **kwargs: Any) -> "StockIntelEngine":
        """Build an engine over a single keyed record store."""
        return cls(records, records, records, **kwargs)

    # ========================================================================
    # Flags
    # ========================================================================

    def detect_flags(self, entity_id: str) -> list[DetectedFlag]:
        """
        Detect flags for an entity and append them to the flag history.

        Raises:
            NotFoundError: If the entity has no metadata record
        """
        self.entity_source.get_entity(entity_id)
        flags = self.detector.detect(entity_id)
        for flag in flags:
            self.flag_store.append(FlagHistoryRecord.from_flag(flag))
        return flags

    def flag_report(self, entity_id: str) -> FlagReport:
        """Detect flags and summarize them with their total and severity."""
        return build_flag_report(entity_id, self.detect_flags(entity_id))

    def flag_history(
        self, entity_id: str, since: datetime | None = None
    ) -> list[FlagHistoryRecord]:
        """Recorded flags for an entity detected at or after `since`, oldest first."""
        return self.flag_store.query(entity_id, since=since)

    @staticmethod
    def severity(flags: Sequence[DetectedFlag]) -> Severity:
        return severity(flags)

    # ========================================================================
    # Scores
    # ========================================================================

    def compute_score(self, entity_id: str) -> CompositeScore:
        """Composite score, served from cache within the TTL window."""
        return self.scorer.score(entity_id)

    def compute_scores(
        self, entity_ids: Iterable[str]
    ) -> tuple[dict[str, CompositeScore], list[str]]:
        """
        Score many entities on a worker pool.

        Args:
            entity_ids: Entity identifiers (duplicates are scored once)

        Returns:
            Tuple of (scores by entity, entities with no metadata record)
        """
        ordered = list(dict.fromkeys(entity_ids))
        with ThreadPoolExecutor(max_workers=self.max_workers) as pool:
            futures: dict[str, Future[CompositeScore]] = {
                entity_id: pool.submit(self.scorer.score, entity_id) for entity_id in ordered
            }

        scores: dict[str, CompositeScore] = {}
        not_found: list[str] = []
        for entity_id, future in futures.items():
            try:
                scores[entity_id] = future.result()
            except NotFoundError:
                logger.warning(f"compute_scores: entity not found: {entity_id}")
                not_found.append(entity_id)
        return scores, not_found

    def invalidate_score_cache(self, entity_id: str | None = None) -> None:
        self.scorer.invalidate(entity_id)

    def score_history(self, entity_id: str, months: int = 1) -> list[ScoreHistoryRecord]:
        """Recorded scores within the trailing `months` 30-day blocks, oldest first."""
        if months <= 0:
            raise InvalidArgumentError(f"months must be positive, got {months}")
        since = days_before(self._clock(), months * DAYS_PER_MONTH)
        return self.score_store.query(entity_id, since=since)

    def compare_peers(self, entity_id: str) -> PeerComparison:
        if self.peers is None:
            raise InvalidArgumentError("Entity source cannot list sector peers")
        return self.peers.compare(entity_id)

    # ========================================================================
    # Trends
    # ========================================================================

    def score_trend(self, entity_id: str) -> ScoreTrend:
        return self.trends.score_trend(entity_id)

    def flag_trend(self, entity_id: str) -> FlagTrend:
        return self.trends.flag_trend(entity_id)

    # ========================================================================
    # Conflict resolution
    # ========================================================================

    def resolve(
        self, candidate: ConflictCandidate[T], strategy: ResolutionStrategy
    ) -> ResolutionOutcome[T]:
        return self.resolver.resolve(candidate, strategy)

    def resolve_all(
        self, candidates: Sequence[ConflictCandidate[T]], strategy: ResolutionStrategy
    ) -> tuple[list[T], list[ConflictCandidate[T]]]:
        return self.resolver.resolve_all(candidates, strategy)
