"""Tests for local/remote conflict resolution."""

import logging

import pytest

from stock_intel.errors import BatchResolutionError, InvalidArgumentError
from stock_intel.sync.resolver import (
    ConflictCandidate,
    ConflictResolver,
    ManualRequired,
    ResolutionStrategy,
    Resolved,
)

LWW = ResolutionStrategy.LAST_WRITE_WINS


@pytest.fixture
def resolver() -> ConflictResolver:
    return ConflictResolver()


class TestLastWriteWins:
    """Tests for LAST_WRITE_WINS."""

    def test_newer_local_wins(self, resolver) -> None:
        candidate = ConflictCandidate("local", "remote", local_timestamp=200, remote_timestamp=100)
        assert resolver.resolve(candidate, LWW) == Resolved("local")

    def test_newer_remote_wins(self, resolver) -> None:
        candidate = ConflictCandidate("local", "remote", local_timestamp=100, remote_timestamp=200)
        assert resolver.resolve(candidate, LWW) == Resolved("remote")

    def test_tie_favors_local(self, resolver) -> None:
        candidate = ConflictCandidate("local", "remote", local_timestamp=100, remote_timestamp=100)
        assert resolver.resolve(candidate, LWW) == Resolved("local")

    def test_single_side_present(self, resolver) -> None:
        """Test a one-sided candidate resolves to the present side whatever the timestamps."""
        only_remote = ConflictCandidate(None, "remote", local_timestamp=500, remote_timestamp=1)
        only_local = ConflictCandidate("local", None, local_timestamp=1, remote_timestamp=500)
        assert resolver.resolve(only_remote, LWW) == Resolved("remote")
        assert resolver.resolve(only_local, LWW) == Resolved("local")

    def test_both_absent_raises(self, resolver) -> None:
        with pytest.raises(InvalidArgumentError, match="Both local and remote"):
            resolver.resolve(ConflictCandidate(None, None), LWW)

    def test_falsy_values_are_present(self, resolver) -> None:
        """Test 0 and empty string are values, not absence."""
        candidate = ConflictCandidate(0, "", local_timestamp=1, remote_timestamp=2)
        assert resolver.resolve(candidate, LWW) == Resolved("")


class TestFixedSideStrategies:
    """Tests for LOCAL_WINS and SERVER_WINS."""

    def test_local_wins(self, resolver) -> None:
        candidate = ConflictCandidate("local", "remote", local_timestamp=1, remote_timestamp=2)
        assert resolver.resolve(candidate, ResolutionStrategy.LOCAL_WINS) == Resolved("local")

    def test_local_wins_falls_back_to_remote(self, resolver) -> None:
        candidate = ConflictCandidate(None, "remote")
        assert resolver.resolve(candidate, ResolutionStrategy.LOCAL_WINS) == Resolved("remote")

    def test_server_wins(self, resolver) -> None:
        candidate = ConflictCandidate("local", "remote", local_timestamp=2, remote_timestamp=1)
        assert resolver.resolve(candidate, ResolutionStrategy.SERVER_WINS) == Resolved("remote")

    def test_server_wins_falls_back_to_local(self, resolver) -> None:
        candidate = ConflictCandidate("local", None)
        assert resolver.resolve(candidate, ResolutionStrategy.SERVER_WINS) == Resolved("local")

    @pytest.mark.parametrize(
        "strategy", [ResolutionStrategy.LOCAL_WINS, ResolutionStrategy.SERVER_WINS]
    )
    def test_both_absent_raises(self, resolver, strategy: ResolutionStrategy) -> None:
        with pytest.raises(InvalidArgumentError):
            resolver.resolve(ConflictCandidate(None, None), strategy)


class TestManual:
    """Tests for MANUAL."""

    def test_always_surfaced(self, resolver) -> None:
        candidate = ConflictCandidate("local", "remote", local_timestamp=2, remote_timestamp=1)
        assert resolver.resolve(candidate, ResolutionStrategy.MANUAL) == ManualRequired(candidate)

    def test_both_absent_is_surfaced(self, resolver) -> None:
        """Test MANUAL never raises, even with nothing to choose from."""
        candidate = ConflictCandidate(None, None)
        assert resolver.resolve(candidate, ResolutionStrategy.MANUAL) == ManualRequired(candidate)


class TestResolveAll:
    """Tests for batch resolution."""

    def test_manual_batch(self, resolver) -> None:
        candidates = [ConflictCandidate(f"l{i}", f"r{i}") for i in range(3)]
        resolved, unresolved = resolver.resolve_all(candidates, ResolutionStrategy.MANUAL)
        assert resolved == []
        assert unresolved == candidates

    def test_order_preserved(self, resolver) -> None:
        candidates = [
            ConflictCandidate("a-local", "a-remote", local_timestamp=1, remote_timestamp=2),
            ConflictCandidate("b-local", "b-remote", local_timestamp=3, remote_timestamp=2),
            ConflictCandidate(None, "c-remote"),
        ]
        resolved, unresolved = resolver.resolve_all(candidates, LWW)
        assert resolved == ["a-remote", "b-local", "c-remote"]
        assert unresolved == []

    def test_empty_batch(self, resolver) -> None:
        assert resolver.resolve_all([], LWW) == ([], [])

    def test_failures_reported_after_full_pass(self, resolver, caplog) -> None:
        """Test an invalid candidate does not stop the rest of the batch."""
        bad = ConflictCandidate(None, None)
        candidates = [
            ConflictCandidate("a", None),
            bad,
            ConflictCandidate(None, "c"),
        ]
        with caplog.at_level(logging.WARNING, logger="stock_intel.sync.resolver"):
            with pytest.raises(BatchResolutionError) as exc_info:
                resolver.resolve_all(candidates, LWW)

        error = exc_info.value
        assert error.resolved == ["a", "c"]
        assert error.unresolved == []
        assert [(index, candidate) for index, candidate, _ in error.failures] == [(1, bad)]
        assert isinstance(error.failures[0][2], InvalidArgumentError)
        assert "indices: 1" in str(error)
        assert "candidate 1 failed" in caplog.text

    def test_batch_error_is_invalid_argument(self, resolver) -> None:
        with pytest.raises(InvalidArgumentError):
            resolver.resolve_all([ConflictCandidate(None, None)], LWW)
