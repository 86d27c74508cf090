from datetime import date, timedelta

import pytest

from auradesk.metrics import compute_streak, completion_percent, day_of_year, quote_index

TODAY = date(2026, 3, 10)


def days_ago(n):
    return TODAY - timedelta(days=n)


def test_empty_log_has_no_streak():
    assert compute_streak([], TODAY) == 0


@pytest.mark.parametrize(
    "offsets, expected",
    [
        ([0], 1),
        ([1], 1),
        ([2], 0),
        ([0, 1, 2], 3),
        ([0, 2], 1),
        ([1, 2, 3, 5], 3),
        ([-1], 0),
    ],
)
def test_streak_boundaries(offsets, expected):
    assert compute_streak([days_ago(n) for n in offsets], TODAY) == expected


@pytest.mark.parametrize("start", [0, 1])
@pytest.mark.parametrize("length", [1, 2, 7, 30])
def test_consecutive_run_counts_every_day(start, length):
    dates = [days_ago(start + i) for i in range(length)]
    assert compute_streak(dates, TODAY) == length


def test_run_stops_at_first_gap_even_if_more_runs_follow():
    dates = [days_ago(0), days_ago(1), days_ago(3), days_ago(4), days_ago(5)]
    assert compute_streak(dates, TODAY) == 2


def test_streak_accepts_iso_strings():
    dates = [d.isoformat() for d in (days_ago(0), days_ago(1))]
    assert compute_streak(dates, TODAY) == 2


def test_streak_crosses_month_and_year_boundaries():
    today = date(2026, 1, 1)
    dates = ["2026-01-01", "2025-12-31", "2025-12-30"]
    assert compute_streak(dates, today) == 3


def test_completion_percent_zero_total():
    assert completion_percent(0, 0) == 0


@pytest.mark.parametrize(
    "done, total, expected",
    [(0, 5, 0), (5, 5, 100), (1, 3, 33), (2, 3, 67), (1, 8, 13), (3, 8, 38), (1, 2, 50)],
)
def test_completion_percent_rounds_half_up(done, total, expected):
    assert completion_percent(done, total) == expected


def test_completion_percent_matches_rounding_for_all_small_totals():
    for total in range(1, 40):
        for done in range(total + 1):
            assert completion_percent(done, total) == int(done * 100 / total + 0.5 + 1e-9)


@pytest.mark.parametrize("day_number, expected", [(16, 2), (15, 1), (30, 1), (14, 15), (1, 2)])
def test_quote_index_wraps(day_number, expected):
    assert quote_index(day_number, 15) == expected


def test_quote_index_without_quotes():
    assert quote_index(100, 0) is None


def test_day_of_year_starts_at_one():
    assert day_of_year(date(2026, 1, 1)) == 1
    assert day_of_year(date(2026, 12, 31)) == 365
