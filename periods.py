from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional
from zoneinfo import ZoneInfo


@dataclass(frozen=True)
class ReconciliationWindow:
    source_month: str
    target_month: str


def format_month(year: int, month: int) -> str:
    return f"{year:04d}-{month:02d}"


def next_month(year: int, month: int) -> tuple[int, int]:
    if month == 12:
        return year + 1, 1
    return year, month + 1


def previous_month(year: int, month: int) -> tuple[int, int]:
    if month == 1:
        return year - 1, 12
    return year, month - 1


def local_today(timezone: str) -> date:
    return datetime.now(ZoneInfo(timezone)).date()


def select_window(
    today: date, start_day: int, end_day: int
) -> Optional[ReconciliationWindow]:
    """Map a calendar date to the months being reconciled.

    From ``start_day`` onwards the current month is the source and next month
    is the target. Up to ``end_day`` the previous month is the source and the
    current month the target. The late-month rule is checked first, so it wins
    when the two ranges overlap. Days strictly between the two thresholds are
    outside the window and yield ``None``.
    """
    if today.day >= start_day:
        return ReconciliationWindow(
            source_month=format_month(today.year, today.month),
            target_month=format_month(*next_month(today.year, today.month)),
        )
    if today.day <= end_day:
        return ReconciliationWindow(
            source_month=format_month(*previous_month(today.year, today.month)),
            target_month=format_month(today.year, today.month),
        )
    return None
