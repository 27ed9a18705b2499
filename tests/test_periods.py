from datetime import date, timedelta

from periods import ReconciliationWindow, format_month, select_window


def _all_days(year: int):
    day = date(year, 1, 1)
    while day.year == year:
        yield day
        day += timedelta(days=1)


def _month_after(month: str) -> str:
    year, mon = (int(part) for part in month.split("-"))
    if mon == 12:
        return format_month(year + 1, 1)
    return format_month(year, mon + 1)


def test_late_month_targets_next_month():
    window = select_window(date(2025, 3, 28), 28, 5)
    assert window == ReconciliationWindow(source_month="2025-03", target_month="2025-04")


def test_early_month_sources_previous_month():
    window = select_window(date(2025, 3, 5), 28, 5)
    assert window == ReconciliationWindow(source_month="2025-02", target_month="2025-03")


def test_days_between_thresholds_are_outside_window():
    assert select_window(date(2025, 3, 6), 28, 5) is None
    assert select_window(date(2025, 3, 27), 28, 5) is None


def test_december_rolls_into_next_year():
    window = select_window(date(2024, 12, 31), 28, 5)
    assert window == ReconciliationWindow(source_month="2024-12", target_month="2025-01")


def test_january_rolls_back_to_previous_year():
    window = select_window(date(2025, 1, 2), 28, 5)
    assert window == ReconciliationWindow(source_month="2024-12", target_month="2025-01")


def test_late_month_rule_wins_when_ranges_overlap():
    window = select_window(date(2025, 6, 10), 10, 20)
    assert window == ReconciliationWindow(source_month="2025-06", target_month="2025-07")


def test_start_day_past_month_length_never_matches_late_branch():
    # February has no 31st, so the late-month branch cannot fire.
    assert select_window(date(2025, 2, 28), 31, 5) is None
    assert select_window(date(2025, 3, 31), 31, 5) == ReconciliationWindow(
        source_month="2025-03", target_month="2025-04"
    )


def test_every_day_qualifies_when_start_not_after_end():
    for start_day, end_day in [(1, 1), (5, 5), (10, 20), (3, 28)]:
        for day in _all_days(2024):
            assert select_window(day, start_day, end_day) is not None


def test_gap_only_strictly_between_end_and_start():
    start_day, end_day = 25, 3
    for day in _all_days(2025):
        window = select_window(day, start_day, end_day)
        if end_day < day.day < start_day:
            assert window is None
        else:
            assert window is not None


def test_window_months_are_always_adjacent():
    for day in _all_days(2024):
        window = select_window(day, 20, 10)
        if window is None:
            continue
        assert window.target_month == _month_after(window.source_month)
        assert window.source_month != window.target_month
