"""Utility functions for the spread bot."""

import math
import time
from typing import Any, Optional


def now_ms() -> int:
    """Current wall clock time in milliseconds."""
    return int(time.time() * 1000)


def parse_positive_float(value: Any) -> Optional[float]:
    """Parse a finite, strictly positive number from a number or numeric string."""
    if isinstance(value, bool) or not isinstance(value, (int, float, str)):
        return None
    try:
        number = float(value.strip() if isinstance(value, str) else value)
    except (ValueError, OverflowError):
        return None

    if not math.isfinite(number) or number <= 0:
        return None
    return number


def format_percent(value: float) -> str:
    """Format a percent value with sign."""
    return f"{value:+.4f}%"


def format_usdt(amount: float) -> str:
    """Format USDT amount with appropriate precision."""
    if abs(amount) >= 1000:
        return f"${amount:.0f}"
    elif abs(amount) >= 100:
        return f"${amount:.1f}"
    elif abs(amount) >= 10:
        return f"${amount:.2f}"
    else:
        return f"${amount:.4f}"


def is_stale_timestamp(timestamp_ms: int, max_age_ms: int, current_ms: Optional[int] = None) -> bool:
    """Check if a millisecond timestamp is older than max_age_ms."""
    if current_ms is None:
        current_ms = now_ms()
    return current_ms - timestamp_ms > max_age_ms
