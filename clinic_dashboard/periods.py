"""Current-month classification for birthdays.

Nothing here reads the clock; callers pass today's date or month in.
"""
from collections.abc import Sequence
from datetime import date

from .models import Birthday


def current_month(today: date) -> int:
    return today.month


def is_current_period(month: int, current_month: int) -> bool:
    return month == current_month


def partition_by_period(
    records: Sequence[Birthday], current_month: int
) -> tuple[list[Birthday], list[Birthday]]:
    """Split into (this month, other months), each keeping the input order."""
    current: list[Birthday] = []
    other: list[Birthday] = []
    for record in records:
        (current if is_current_period(record.month, current_month) else other).append(record)
    return current, other
