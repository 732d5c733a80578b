"""Record sources, history stores and the score cache."""

from stock_intel.data.cache import DEFAULT_SCORE_TTL_SECONDS, ScoreCache
from stock_intel.data.history import DiskHistoryStore
from stock_intel.data.memory import InMemoryHistoryStore, InMemoryRecordSource
from stock_intel.data.sources import (
    EntitySource,
    ExecutiveSource,
    FilingSource,
    HistoryRecord,
    HistoryStore,
    PeerSource,
)

__all__ = [
    # Cache
    "DEFAULT_SCORE_TTL_SECONDS",
    "ScoreCache",
    # History
    "DiskHistoryStore",
    "InMemoryHistoryStore",
    # Sources
    "InMemoryRecordSource",
    "EntitySource",
    "ExecutiveSource",
    "FilingSource",
    "HistoryRecord",
    "HistoryStore",
    "PeerSource",
]
