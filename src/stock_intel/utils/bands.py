"""Step-function band tables and text matching helpers."""

import operator
from collections.abc import Callable, Iterable, Sequence
from typing import TypeVar

T = TypeVar("T")

# (threshold, score) pairs, evaluated top to bottom
BandTable = Sequence[tuple[float, T]]


def step_score(
    value: float | None,
    bands: BandTable[T],
    comparator: Callable[[float, float], bool] = operator.ge,
    default: T | None = None,
) -> T | None:
    """
    Map a metric to a score through an ordered band table.

    The first band whose threshold satisfies ``comparator(value, threshold)``
    wins. A None value always yields the default (nullable semantics).

    Args:
        value: Derived metric (count, rate, gap length, ...)
        bands: Ordered (threshold, score) pairs
        comparator: Comparison applied as comparator(value, threshold)
        default: Score when no band matches

    Returns:
        Score of the first matching band, or default
    """
    if value is None:
        return default
    for threshold, score in bands:
        if comparator(value, threshold):
            return score
    return default


def clamp(value: float, low: float = 0, high: float = 100) -> float:
    """Clamp value into [low, high]."""
    return max(low, min(high, value))


def contains_any(text: str | None, terms: Iterable[str]) -> bool:
    """Case-insensitive substring match against any of the terms."""
    if not text:
        return False
    lowered = text.lower()
    return any(term.lower() in lowered for term in terms)
