"""Engine exceptions."""

from typing import Any


class StockIntelError(Exception):
    """Base class for engine errors."""

    pass


class NotFoundError(StockIntelError, LookupError):
    """Raised when an entity has no metadata record."""

    def __init__(self, entity_id: str, message: str | None = None):
        super().__init__(message or f"Entity not found: {entity_id}")
        self.entity_id = entity_id


class InvalidArgumentError(StockIntelError, ValueError):
    """Raised when a caller passes a value the engine cannot act on."""

    pass


class BatchResolutionError(InvalidArgumentError):
    """
    Raised after a batch resolution in which one or more candidates failed.

    Every candidate is processed before this is raised, so the partial
    results of the batch are available on the exception.
    """

    def __init__(
        self,
        resolved: list[Any],
        unresolved: list[Any],
        failures: list[tuple[int, Any, Exception]],
    ):
        indices = ", ".join(str(index) for index, _, _ in failures)
        super().__init__(f"{len(failures)} candidate(s) could not be resolved (indices: {indices})")
        self.resolved = resolved
        self.unresolved = unresolved
        self.failures = failures


class SourceUnavailableError(StockIntelError):
    """Raised when a record source fails after all retries."""

    def __init__(self, message: str, last_error: Exception | None = None):
        super().__init__(message)
        self.last_error = last_error
