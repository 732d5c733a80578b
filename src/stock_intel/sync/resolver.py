"""Reconciliation of local and remote copies of the same record."""

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from enum import Enum
from typing import Generic, TypeVar, Union

from stock_intel.errors import BatchResolutionError, InvalidArgumentError

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class ConflictCandidate(Generic[T]):
    """
    A local/remote pair of one logical record.

    Timestamps are epoch milliseconds of each side's last write. None means
    the side is absent; falsy values such as 0 or "" are present.
    """

    local: T | None
    remote: T | None
    local_timestamp: int = 0
    remote_timestamp: int = 0

    @property
    def has_local(self) -> bool:
        return self.local is not None

    @property
    def has_remote(self) -> bool:
        return self.remote is not None


@dataclass(frozen=True)
class Resolved(Generic[T]):
    value: T


@dataclass(frozen=True)
class ManualRequired(Generic[T]):
    candidate: ConflictCandidate[T]


ResolutionOutcome = Union[Resolved[T], ManualRequired[T]]


class ResolutionStrategy(Enum):
    LAST_WRITE_WINS = "last_write_wins"  # most recent timestamp, ties favor local
    LOCAL_WINS = "local_wins"
    SERVER_WINS = "server_wins"
    MANUAL = "manual"  # always surfaced to the user


def _both_absent() -> InvalidArgumentError:
    return InvalidArgumentError("Both local and remote values are absent")


def _last_write_wins(candidate: ConflictCandidate[T]) -> Resolved[T]:
    if candidate.local is None and candidate.remote is None:
        raise _both_absent()
    if candidate.local is None:
        return Resolved(candidate.remote)
    if candidate.remote is None:
        return Resolved(candidate.local)
    if candidate.local_timestamp >= candidate.remote_timestamp:
        return Resolved(candidate.local)
    return Resolved(candidate.remote)


def _local_wins(candidate: ConflictCandidate[T]) -> Resolved[T]:
    if candidate.local is not None:
        return Resolved(candidate.local)
    if candidate.remote is not None:
        return Resolved(candidate.remote)
    raise _both_absent()


def _server_wins(candidate: ConflictCandidate[T]) -> Resolved[T]:
    if candidate.remote is not None:
        return Resolved(candidate.remote)
    if candidate.local is not None:
        return Resolved(candidate.local)
    raise _both_absent()


class ConflictResolver:
    """
    Resolves conflicts with a pluggable strategy.

    Holds no state; every decision is a function of the candidate and the
    strategy.
    """

    def resolve(
        self,
        candidate: ConflictCandidate[T],
        strategy: ResolutionStrategy,
    ) -> ResolutionOutcome[T]:
        """
        Resolve one conflict.

        Raises:
            InvalidArgumentError: If both sides are absent under a strategy
                other than MANUAL
        """
        if strategy is ResolutionStrategy.LAST_WRITE_WINS:
            return _last_write_wins(candidate)
        if strategy is ResolutionStrategy.LOCAL_WINS:
            return _local_wins(candidate)
        if strategy is ResolutionStrategy.SERVER_WINS:
            return _server_wins(candidate)
        if strategy is ResolutionStrategy.MANUAL:
            return ManualRequired(candidate)
        raise InvalidArgumentError(f"Unknown resolution strategy: {strategy!r}")

    def resolve_all(
        self,
        candidates: Sequence[ConflictCandidate[T]],
        strategy: ResolutionStrategy,
    ) -> tuple[list[T], list[ConflictCandidate[T]]]:
        """
        Resolve a batch of conflicts, preserving input order in both outputs.

        Every candidate is processed even if an earlier one fails. Failures are
        reported together afterwards, so the batch is never silently partial.

        Returns:
            Tuple of (resolved values, candidates needing manual resolution)

        Raises:
            BatchResolutionError: If any candidate failed; carries the partial
                resolved/unresolved lists and the (index, candidate, error) failures
        """
        resolved: list[T] = []
        unresolved: list[ConflictCandidate[T]] = []
        failures: list[tuple[int, ConflictCandidate[T], Exception]] = []

        for index, candidate in enumerate(candidates):
            try:
                outcome = self.resolve(candidate, strategy)
            except InvalidArgumentError as e:
                logger.warning(f"resolve_all: candidate {index} failed under {strategy.value}: {e}")
                failures.append((index, candidate, e))
                continue
            if isinstance(outcome, Resolved):
                resolved.append(outcome.value)
            else:
                unresolved.append(outcome.candidate)

        if failures:
            raise BatchResolutionError(resolved, unresolved, failures)
        return resolved, unresolved
