"""Score and flag trend analysis over the history stores."""

import logging
from collections.abc import Sequence

import pandas as pd

from stock_intel.data.sources import HistoryStore
from stock_intel.models import (
    FlagHistoryRecord,
    FlagTrend,
    FlagTrendDirection,
    ScoreHistoryRecord,
    ScoreTrend,
    ScoreTrendDirection,
)
from stock_intel.utils.clock import Clock, days_before, utc_now, weeks_between

logger = logging.getLogger(__name__)

TREND_WINDOW_DAYS = 30
SCORE_CHANGE_THRESHOLD = 5
FLAG_IMPROVING_RATIO = 0.9
FLAG_WORSENING_RATIO = 1.1


def _score_frame(records: Sequence[ScoreHistoryRecord]) -> pd.DataFrame:
    df = pd.DataFrame(
        {
            "calculated_at": pd.to_datetime([r.calculated_at for r in records], utc=True),
            "overall_score": [r.overall_score for r in records],
        }
    )
    return df.sort_values("calculated_at", kind="stable").reset_index(drop=True)


def _flag_frame(records: Sequence[FlagHistoryRecord]) -> pd.DataFrame:
    return pd.DataFrame(
        {
            "detected_at": pd.to_datetime([r.detected_at for r in records], utc=True),
            "score": [float(r.score) for r in records],
        }
    )


def classify_score_change(score_change: int) -> ScoreTrendDirection:
    if score_change > SCORE_CHANGE_THRESHOLD:
        return ScoreTrendDirection.IMPROVING
    if score_change < -SCORE_CHANGE_THRESHOLD:
        return ScoreTrendDirection.DECLINING
    return ScoreTrendDirection.STABLE


def classify_flag_change(current: float, previous: float) -> FlagTrendDirection:
    if current < previous * FLAG_IMPROVING_RATIO:
        return FlagTrendDirection.IMPROVING
    if current > previous * FLAG_WORSENING_RATIO:
        return FlagTrendDirection.WORSENING
    return FlagTrendDirection.STABLE


class TrendAnalyzer:
    """
    Classifies the recent trajectory of an entity's scores and flags.

    Pure reads: nothing is cached or written. Sparse history is not an
    error; it reports STABLE with zero momentum.
    """

    def __init__(
        self,
        score_history: HistoryStore[ScoreHistoryRecord],
        flag_history: HistoryStore[FlagHistoryRecord],
        clock: Clock = utc_now,
    ):
        self.score_history = score_history
        self.flag_history = flag_history
        self._clock = clock

    def score_trend(self, entity_id: str) -> ScoreTrend:
        """
        Compare the latest score with the oldest score of the trailing 30 days.

        Momentum is the score change per week between those two records.
        """
        records = self.score_history.query(entity_id)
        if not records:
            return ScoreTrend(
                direction=ScoreTrendDirection.STABLE,
                momentum=0.0,
                score_change=0,
                current_score=0,
                previous_score=0,
                sample_count=0,
            )

        df = _score_frame(records)
        current_at = df["calculated_at"].iloc[-1]
        current_score = int(df["overall_score"].iloc[-1])

        cutoff = pd.Timestamp(days_before(self._clock(), TREND_WINDOW_DAYS))
        window = df[df["calculated_at"] >= cutoff]

        if len(window) < 2:
            # Not enough data for trend analysis
            return ScoreTrend(
                direction=ScoreTrendDirection.STABLE,
                momentum=0.0,
                score_change=0,
                current_score=current_score,
                previous_score=current_score,
                sample_count=len(window),
            )

        previous_at = window["calculated_at"].iloc[0]
        previous_score = int(window["overall_score"].iloc[0])
        score_change = current_score - previous_score

        weeks = weeks_between(current_at, previous_at)
        momentum = score_change / weeks if weeks > 0 else 0.0

        trend = ScoreTrend(
            direction=classify_score_change(score_change),
            momentum=momentum,
            score_change=score_change,
            current_score=current_score,
            previous_score=previous_score,
            sample_count=len(window),
        )
        logger.debug(f"score_trend({entity_id}): {trend.direction.value} ({score_change:+d})")
        return trend

    def flag_trend(self, entity_id: str) -> FlagTrend:
        """
        Compare the flag total of the last 30 days with the 30 days before.

        Momentum is the change in flag total per week across the two windows.
        """
        now = self._clock()
        recent_cutoff = pd.Timestamp(days_before(now, TREND_WINDOW_DAYS))
        previous_cutoff = pd.Timestamp(days_before(now, 2 * TREND_WINDOW_DAYS))

        records = self.flag_history.query(
            entity_id, since=days_before(now, 2 * TREND_WINDOW_DAYS)
        )
        if not records:
            return FlagTrend(
                direction=FlagTrendDirection.STABLE,
                momentum=0.0,
                current_score=0.0,
                previous_score=0.0,
                flag_count=0,
                new_flags_count=0,
                resolved_flags_count=0,
            )

        df = _flag_frame(records)
        recent = df[df["detected_at"] >= recent_cutoff]
        previous = df[(df["detected_at"] >= previous_cutoff) & (df["detected_at"] < recent_cutoff)]

        current_score = float(recent["score"].sum())
        previous_score = float(previous["score"].sum())
        window_weeks = TREND_WINDOW_DAYS / 7

        trend = FlagTrend(
            direction=classify_flag_change(current_score, previous_score),
            momentum=(current_score - previous_score) / window_weeks,
            current_score=current_score,
            previous_score=previous_score,
            flag_count=len(recent),
            new_flags_count=len(recent),
            resolved_flags_count=max(len(previous) - len(recent), 0),
        )
        logger.debug(
            f"flag_trend({entity_id}): {trend.direction.value} "
            f"({previous_score:.2f} -> {current_score:.2f})"
        )
        return trend
