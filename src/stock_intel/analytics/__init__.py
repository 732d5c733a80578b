"""Detection, scoring, trend and peer analytics."""

from stock_intel.analytics.flags import (
    DEFAULT_HEURISTICS,
    DetectionContext,
    FlagDetector,
    FlagHeuristic,
    build_flag_report,
    severity,
    total_score,
)
from stock_intel.analytics.peers import PeerComparator
from stock_intel.analytics.scoring import COMPONENT_WEIGHTS, CompositeScorer
from stock_intel.analytics.trend import TrendAnalyzer

__all__ = [
    "DEFAULT_HEURISTICS",
    "DetectionContext",
    "FlagDetector",
    "FlagHeuristic",
    "build_flag_report",
    "severity",
    "total_score",
    "PeerComparator",
    "COMPONENT_WEIGHTS",
    "CompositeScorer",
    "TrendAnalyzer",
]
