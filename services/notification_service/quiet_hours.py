"""
Quiet hours evaluation.
A window with start > end wraps past midnight (e.g. 22:00 - 07:00).
"""
from datetime import datetime
from typing import Optional

from shared.config import settings
from .models import QuietHours


def in_quiet_window(start_hour: int, end_hour: int, hour: int) -> bool:
    """Check whether `hour` falls inside the [start, end) window."""
    if start_hour > end_hour:
        return hour >= start_hour or hour < end_hour
    return hour >= start_hour and hour < end_hour


def current_hour() -> int:
    """Current hour in the configured notification timezone."""
    return datetime.now(settings.timezone).hour


def is_quiet_hours(quiet_hours: Optional[QuietHours], hour: Optional[int] = None) -> bool:
    """
    Check if quiet hours are active.

    Args:
        quiet_hours: User's quiet hours settings, may be missing
        hour: Hour to evaluate; defaults to the current local hour

    Returns:
        bool: False when quiet hours are missing or disabled
    """
    if quiet_hours is None or not quiet_hours.enabled:
        return False
    if hour is None:
        hour = current_hour()
    return in_quiet_window(quiet_hours.start_hour, quiet_hours.end_hour, hour)
