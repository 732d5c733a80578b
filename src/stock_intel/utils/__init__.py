"""Utility modules."""

from stock_intel.utils.bands import clamp, contains_any, step_score
from stock_intel.utils.clock import Clock, days_before, utc_now, weeks_between, whole_days
from stock_intel.utils.locks import GlobalLock, KeyedLock

__all__ = [
    "clamp",
    "contains_any",
    "step_score",
    "Clock",
    "days_before",
    "utc_now",
    "weeks_between",
    "whole_days",
    "GlobalLock",
    "KeyedLock",
]
