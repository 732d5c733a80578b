"""Entity metadata from yfinance with bounded concurrency and retry logic."""

import logging
import math
import os
import random
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, TypeVar

import yfinance as yf
from requests.exceptions import HTTPError

from stock_intel.errors import NotFoundError, SourceUnavailableError
from stock_intel.models import EntityMetadata

logger = logging.getLogger(__name__)

# At most this many Ticker.info lookups in flight at once
_max_workers = int(os.environ.get("YF_MAX_WORKERS", "4"))
_fetch_semaphore = threading.BoundedSemaphore(_max_workers)

# Retry policy for transient Yahoo failures
_max_retries = int(os.environ.get("YF_MAX_RETRIES", "3"))
_base_delay = float(os.environ.get("YF_BASE_DELAY", "1.0"))  # seconds
_max_delay = float(os.environ.get("YF_MAX_DELAY", "30.0"))  # seconds

T = TypeVar("T")


def _has_value(v: Any) -> bool:
    """
    True unless the value is None, NaN or a blank string.

    Ticker.info reports absent numerics as float("nan"), so an `is not None`
    check alone would accept them.
    """
    if v is None:
        return False
    if isinstance(v, float) and math.isnan(v):
        return False
    if isinstance(v, str) and v.strip() == "":
        return False
    return True


def _is_retryable_error(error: Exception) -> bool:
    """Check if an error is transient (rate limit, server error, connection)."""
    if (
        isinstance(error, HTTPError)
        and hasattr(error, "response")
        and error.response is not None
    ):
        status_code = error.response.status_code
        if status_code in (401, 429) or 500 <= status_code < 600:
            return True

    error_str = str(error).lower()
    retryable_patterns = [
        "invalid crumb",
        "rate limit",
        "too many requests",
        "connection",
        "timeout",
        "temporary",
    ]
    return any(pattern in error_str for pattern in retryable_patterns)


def _calculate_backoff(attempt: int, base_delay: float = _base_delay) -> float:
    """Backoff delay for a zero-based attempt, with +/-25% jitter, capped at YF_MAX_DELAY."""
    # Doubles per attempt
    delay = base_delay * (2**attempt)
    # Add jitter (+/-25%)
    jitter = delay * 0.25 * (2 * random.random() - 1)
    return min(delay + jitter, _max_delay)


@dataclass
class RetryResult:
    """Result of a retry operation."""

    result: Any
    attempts: int
    total_backoff_seconds: float


def retry_with_backoff(
    operation_name: str,
    func: Callable[[], T],
    max_retries: int = _max_retries,
    base_delay: float = _base_delay,
    sleep: Callable[[float], None] = time.sleep,
) -> RetryResult:
    """
    Execute a function, retrying transient failures.

    Args:
        operation_name: Name for logging (e.g., "get_entity(AAPL)")
        func: Function to execute
        max_retries: Maximum number of retry attempts
        base_delay: Backoff base in seconds
        sleep: Sleep function (injectable for tests)

    Returns:
        RetryResult with the function result and attempt count

    Raises:
        SourceUnavailableError: If all retries are exhausted
        Exception: Non-retryable errors propagate unchanged
    """
    total_backoff = 0.0
    for attempt in range(max_retries + 1):
        try:
            result = func()
            return RetryResult(
                result=result,
                attempts=attempt + 1,
                total_backoff_seconds=round(total_backoff, 2),
            )
        except Exception as e:
            if not _is_retryable_error(e):
                raise
            if attempt >= max_retries:
                logger.warning(
                    f"{operation_name}: Failed after {attempt + 1} attempts. Last error: {e}"
                )
                raise SourceUnavailableError(
                    f"{operation_name} failed after {attempt + 1} attempts: {e}",
                    last_error=e,
                ) from e
            delay = _calculate_backoff(attempt, base_delay)
            total_backoff += delay
            logger.info(
                f"{operation_name}: Attempt {attempt + 1} failed ({e}). "
                f"Retrying in {delay:.1f}s..."
            )
            sleep(delay)

    # Unreachable: the last attempt either returns or raises
    raise SourceUnavailableError(f"{operation_name} failed after {max_retries + 1} attempts")


def info_to_entity(symbol: str, info: dict[str, Any]) -> EntityMetadata:
    """
    Map a yfinance info dict to EntityMetadata.

    Raises:
        NotFoundError: If the payload does not describe a quoted security
    """
    if not info or not _has_value(info.get("quoteType")):
        raise NotFoundError(symbol, f"No quote data for symbol: {symbol}")

    market_cap = info.get("marketCap")
    change_pct = info.get("regularMarketChangePercent")
    if not _has_value(change_pct):
        price = info.get("currentPrice", info.get("regularMarketPrice"))
        previous = info.get("previousClose", info.get("regularMarketPreviousClose"))
        if _has_value(price) and _has_value(previous) and previous:
            change_pct = (price - previous) / previous * 100
        else:
            change_pct = 0.0

    name = info.get("longName") or info.get("shortName") or symbol
    return EntityMetadata(
        entity_id=symbol,
        market_cap=float(market_cap) if _has_value(market_cap) else 0.0,
        price_change_percent=float(change_pct),
        sector=info.get("sector") or "Unknown",
        name=name,
    )


class YFinanceEntitySource:
    """EntitySource backed by yfinance Ticker.info."""

    def __init__(
        self,
        max_retries: int = _max_retries,
        base_delay: float = _base_delay,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.max_retries = max_retries
        self.base_delay = base_delay
        self._sleep = sleep

    def get_entity(self, entity_id: str) -> EntityMetadata:
        symbol = entity_id.upper().strip()

        def _fetch() -> dict[str, Any]:
            return yf.Ticker(symbol).info

        with _fetch_semaphore:
            retry_result = retry_with_backoff(
                f"get_entity({symbol})",
                _fetch,
                max_retries=self.max_retries,
                base_delay=self.base_delay,
                sleep=self._sleep,
            )
        if retry_result.attempts > 1:
            logger.debug(f"get_entity({symbol}): succeeded after {retry_result.attempts} attempts")
        return info_to_entity(symbol, retry_result.result)
