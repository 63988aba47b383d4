from __future__ import annotations

import sys
from datetime import date
from pathlib import Path

sys.path.append(str(Path(__file__).resolve().parents[4]))

import pytest

from app.backend.src.agents.time_ranges import (
    clip_to_today,
    default_range_for_intent,
    has_competing_timeframes,
    humanize_range_label,
    month_range,
    resolve_time_range,
    year_range,
    ytd_range,
)

TODAY = date(2026, 2, 21)


def test_last_month_from_mid_february():
    time_range = resolve_time_range("how many lessons did i teach last month", TODAY)
    assert time_range.type == "month"
    assert (time_range.start, time_range.end) == (date(2026, 1, 1), date(2026, 1, 31))


def test_last_month_in_january_wraps_to_december():
    time_range = resolve_time_range("last month", date(2026, 1, 10))
    assert (time_range.start, time_range.end) == (date(2025, 12, 1), date(2025, 12, 31))


def test_leap_year_february():
    assert month_range(2024, 2).end == date(2024, 2, 29)
    assert month_range(2026, 2).end == date(2026, 2, 28)


@pytest.mark.parametrize(
    "text, start, end",
    [
        ("earnings jan 2026", date(2026, 1, 1), date(2026, 1, 31)),
        ("ingresos enero de 2026", date(2026, 1, 1), date(2026, 1, 31)),
        ("2026年1月收入", date(2026, 1, 1), date(2026, 1, 31)),
        ("earnings 3/2025", date(2025, 3, 1), date(2025, 3, 31)),
        ("earnings in 2025", date(2025, 1, 1), date(2025, 12, 31)),
        ("este año", date(2026, 1, 1), TODAY),
        ("去年", date(2025, 1, 1), date(2025, 12, 31)),
    ],
)
def test_explicit_and_multilingual_ranges(text, start, end):
    time_range = resolve_time_range(text, TODAY)
    assert (time_range.start, time_range.end) == (start, end)


def test_rolling_windows_and_unresolved():
    last_30 = resolve_time_range("how much did i earn in the last 30 days", TODAY)
    assert last_30.label == "last_30_days"
    assert last_30.start == date(2026, 1, 23)
    assert resolve_time_range("how are things", TODAY) is None


def test_competing_timeframes():
    assert has_competing_timeframes("earnings this month and last month")
    assert has_competing_timeframes("earnings 2024 2025")
    assert not has_competing_timeframes("earnings 2024 2025", allow_year_pair=True)
    assert not has_competing_timeframes("earnings last month")


def test_default_ranges():
    assert default_range_for_intent("day_of_week_earnings_max", TODAY).type == "ytd"
    assert default_range_for_intent("forecast_monthly", TODAY).type == "all"
    assert default_range_for_intent("revenue_per_lesson_in_period", TODAY).type == "rolling_days"


def test_humanized_labels():
    assert humanize_range_label(month_range(2026, 1)) == "January 2026"
    assert humanize_range_label(default_range_for_intent("revenue_per_lesson_in_period", TODAY)) == "last 30 days"
    assert humanize_range_label(None) == ""


def test_clip_to_today():
    assert clip_to_today(year_range(2026), TODAY) == ytd_range(TODAY)
    assert clip_to_today(year_range(2025), TODAY) == year_range(2025)

    february = clip_to_today(month_range(2026, 2), TODAY)
    assert (february.type, february.start, february.end) == ("month", date(2026, 2, 1), TODAY)

    assert clip_to_today(month_range(2026, 3), TODAY) == month_range(2026, 3)


def test_two_digit_year_needs_an_apostrophe():
    short = resolve_time_range("how much did i earn in may '25", TODAY)
    assert (short.start, short.end) == (date(2025, 5, 1), date(2025, 5, 31))

    assert resolve_time_range("how much did i earn in may 12", TODAY) is None
    assert resolve_time_range("earnings jan 2026", TODAY).start == date(2026, 1, 1)
