"""Pytest configuration and fixtures."""

from collections.abc import Iterator

import pytest

from helpers import FrozenClock, add_acme
from stock_intel.data.cache import ScoreCache
from stock_intel.data.memory import InMemoryHistoryStore, InMemoryRecordSource


@pytest.fixture
def clock() -> FrozenClock:
    """Frozen clock at a fixed UTC instant."""
    return FrozenClock()


@pytest.fixture
def records() -> InMemoryRecordSource:
    """Record source holding one well-documented entity, ACME."""
    return add_acme(InMemoryRecordSource())


@pytest.fixture
def score_cache(tmp_path) -> Iterator[ScoreCache]:
    """Score cache in a per-test directory."""
    cache = ScoreCache(cache_dir=str(tmp_path / "scores"))
    yield cache
    cache.close()


@pytest.fixture
def score_history() -> InMemoryHistoryStore:
    return InMemoryHistoryStore()


@pytest.fixture
def flag_history() -> InMemoryHistoryStore:
    return InMemoryHistoryStore()
