from __future__ import annotations

import sys
from datetime import date, timedelta
from pathlib import Path

sys.path.append(str(Path(__file__).resolve().parents[4]))

from app.backend.src.agents.earnings_truth import describe_trend, stability_label
from app.backend.src.agents.truth_queries import TRUTH_QUERIES, compute_from_plan, run_truth_query
from app.backend.src.schemas.insights import (
    LessonRecord,
    QueryPlan,
    StudentFilter,
    StudentRecord,
    StudioSnapshot,
    TimeRange,
)
from app.backend.src.schemas.truth_outputs import ErrorOutput, WeeklyPoint

JANUARY = {"start_date": date(2026, 1, 1), "end_date": date(2026, 1, 31)}
YEAR_2026 = {"start_date": date(2026, 1, 1), "end_date": date(2026, 12, 31)}


def test_january_earnings_and_top_three(january_snapshot):
    earnings = run_truth_query("earnings_in_period", january_snapshot, JANUARY)
    assert earnings.total_cents == 258000
    assert earnings.total_dollars == 2580.0
    assert earnings.lesson_count == 10
    assert earnings.zero_cause is None

    ranking = run_truth_query("revenue_per_student_in_period", january_snapshot, {**JANUARY, "top_n": 3})
    assert [row.student_name for row in ranking.rows] == ["Emma Kim", "Mason Lopez", "Sofia Parker"]
    assert ranking.rows[0].total_dollars == 810.0
    assert ranking.available_count == 4


def test_revenue_rows_sum_to_period_earnings(january_snapshot, studio_snapshot):
    for snapshot, params in ((january_snapshot, JANUARY), (studio_snapshot, {})):
        earnings = run_truth_query("earnings_in_period", snapshot, params)
        ranking = run_truth_query("revenue_per_student_in_period", snapshot, params)
        assert sum(row.total_cents for row in ranking.rows) == earnings.total_cents


def test_best_weekday_in_first_week_of_february(january_snapshot):
    output = run_truth_query(
        "day_of_week_earnings_max",
        january_snapshot,
        {"start_date": date(2026, 2, 1), "end_date": date(2026, 2, 7)},
    )
    assert output.dow_label == "Tuesday"
    assert output.total_dollars == 230.0


def test_best_weekday_in_january(january_snapshot):
    output = run_truth_query("day_of_week_earnings_max", january_snapshot, JANUARY)
    assert output.dow == 3
    assert output.total_cents == 94000


def test_queries_are_idempotent(january_snapshot):
    first = run_truth_query("avg_weekly_revenue", january_snapshot, JANUARY)
    second = run_truth_query("avg_weekly_revenue", january_snapshot, JANUARY)
    assert first == second
    assert first.weeks_count == 5
    assert first.avg_weekly_dollars == 516.0


def test_zero_causes(studio_snapshot, january_snapshot):
    empty = run_truth_query(
        "earnings_in_period", studio_snapshot, {"start_date": date(2023, 1, 1), "end_date": date(2023, 12, 31)}
    )
    assert empty.total_cents == 0
    assert empty.zero_cause == "no_rows_in_range"

    cancelled = run_truth_query(
        "earnings_in_period", studio_snapshot, {"start_date": date(2025, 1, 20), "end_date": date(2025, 1, 25)}
    )
    assert cancelled.zero_cause == "no_completed_lessons_in_range"

    free = run_truth_query(
        "earnings_in_period", january_snapshot, {"start_date": date(2026, 2, 1), "end_date": date(2026, 2, 1)}
    )
    assert free.lesson_count == 1
    assert free.zero_cause == "sum_zero_with_rows"


def test_percent_change_between_years(studio_snapshot):
    output = run_truth_query("percent_change_yoy", studio_snapshot, {"year_a": 2024, "year_b": 2025})
    assert output.total_a_dollars == 150.0
    assert output.total_b_dollars == 195.0
    assert output.percent_change == 30.0

    undefined = run_truth_query("percent_change_yoy", studio_snapshot, {"year_a": 2023, "year_b": 2024})
    assert undefined.percent_change is None
    assert undefined.dollar_change_dollars == 150.0


def test_top_n_larger_than_roster_reports_available(studio_snapshot):
    output = run_truth_query("revenue_per_student_in_period", studio_snapshot, {**YEAR_2026, "top_n": 5})
    assert output.requested_top_n == 5
    assert output.available_count == 3
    # ties on total fall back to name order
    assert [row.student_id for row in output.rows] == ["s1", "s2", "s3"]


def test_structured_alias_forces_rank_order(january_snapshot):
    output = run_truth_query("EARNINGS_RANK_MIN", january_snapshot, {**JANUARY, "top_n": 3})
    assert output.rank_order == "asc"
    assert [row.student_name for row in output.rows] == ["Lucas Parker"]


def test_hourly_rate_ranks(studio_snapshot):
    highest = run_truth_query("student_highest_hourly_rate", studio_snapshot, YEAR_2026)
    assert (highest.student_name, highest.hourly_dollars, highest.rate_source) == ("Leo Chen", 120.0, "lessons")

    lowest = run_truth_query("student_lowest_hourly_rate", studio_snapshot, YEAR_2026)
    assert (lowest.student_name, lowest.hourly_dollars) == ("Bob Lee", 60.0)

    below = run_truth_query("students_below_average_rate", studio_snapshot, YEAR_2026)
    assert below.avg_hourly_dollars == 88.0
    assert [row.student_name for row in below.rows] == ["Bob Lee"]


def test_hourly_rank_falls_back_to_configured_rates(studio_snapshot):
    output = run_truth_query(
        "student_highest_hourly_rate",
        studio_snapshot,
        {"start_date": date(2023, 1, 1), "end_date": date(2023, 12, 31)},
    )
    assert output.rate_source == "configured"
    assert output.student_name == "Leo Chen"
    assert output.hourly_dollars == 90.0


def test_students_without_history_keep_their_configured_rate():
    students = (
        StudentRecord(id="a", first_name="Alice", last_name="Parker", rate_cents=8000),
        StudentRecord(id="b", first_name="Bob", last_name="Lee", rate_cents=7000),
        StudentRecord(id="z", first_name="Zoe", last_name="Hart", rate_cents=50000),
    )
    lessons = (
        LessonRecord(id="l1", student_id="a", date=date(2026, 1, 5), duration_minutes=60, amount_cents=8000, completed=True),
        LessonRecord(id="l2", student_id="b", date=date(2026, 1, 6), duration_minutes=60, amount_cents=7000, completed=True),
    )
    snapshot = StudioSnapshot(lessons=lessons, students=students)

    highest = run_truth_query("student_highest_hourly_rate", snapshot, JANUARY)
    assert (highest.student_name, highest.hourly_dollars, highest.rate_source) == ("Zoe Hart", 500.0, "configured")

    lowest = run_truth_query("student_lowest_hourly_rate", snapshot, JANUARY)
    assert (lowest.student_name, lowest.hourly_dollars, lowest.rate_source) == ("Bob Lee", 70.0, "lessons")

    below = run_truth_query("students_below_average_rate", snapshot, JANUARY)
    assert below.avg_hourly_dollars == 75.0
    assert [row.student_name for row in below.rows] == ["Bob Lee"]


def test_attendance_queries(studio_snapshot):
    year_2025 = {"start_date": date(2025, 1, 1), "end_date": date(2025, 12, 31)}
    missed = run_truth_query("ATTENDANCE_RANK_MISSED", studio_snapshot, {**year_2025, "rank_order": "desc"})
    assert (missed.student_name, missed.lesson_count) == ("Alice Parker", 1)

    summary = run_truth_query("student_attendance_summary", studio_snapshot, {"student_id": "s1"})
    assert (summary.total_lessons, summary.attended_lessons, summary.missed_lessons) == (4, 3, 1)
    assert summary.attendance_rate_percent == 75.0

    unknown = run_truth_query("student_attendance_summary", studio_snapshot, {"student_name": "zed"})
    assert isinstance(unknown, ErrorOutput)
    assert unknown.zero_cause == "student_not_resolved"


def test_scenarios(studio_snapshot):
    rate = run_truth_query("what_if_rate_change", studio_snapshot, {**YEAR_2026, "rate_delta_dollars_per_hour": 10})
    assert (rate.total_hours, rate.delta_dollars, rate.projected_total_dollars) == (2.5, 25.0, 245.0)

    tax = run_truth_query("tax_guidance", studio_snapshot, YEAR_2026)
    assert (tax.suggested_set_aside_low_dollars, tax.suggested_set_aside_high_dollars) == (55.0, 66.0)

    needed = run_truth_query(
        "students_needed_for_target_income",
        studio_snapshot,
        {
            **YEAR_2026,
            "target_income_dollars": 100000,
            "rate_dollars_per_hour": 70,
            "hours_per_student_per_week": 1,
        },
    )
    assert needed.projected_income_per_student_year_dollars == 3640.0
    assert needed.students_needed == 28

    missing = run_truth_query("what_if_add_students", studio_snapshot, YEAR_2026)
    assert missing == ErrorOutput(error="missing_new_students")


def test_on_track_projection(studio_snapshot):
    output = run_truth_query(
        "on_track_goal",
        studio_snapshot,
        {"start_date": date(2026, 1, 1), "end_date": date(2026, 2, 21), "annual_goal_dollars": 80000},
    )
    assert output.ytd_dollars == 220.0
    assert output.projected_total_dollars == 1544.23
    assert output.delta_to_goal_dollars == 78455.77
    assert output.required_per_week_dollars is not None


def test_unknown_key_is_an_error(studio_snapshot):
    output = run_truth_query("nope", studio_snapshot, {})
    assert output == ErrorOutput(error="unknown_truth_query_key:nope")
    assert "forecast_yearly" in TRUTH_QUERIES


def test_compute_from_plan_rates_confidence(studio_snapshot):
    forecast_plan = QueryPlan(intent="forecast_monthly", normalized_query="monthly forecast", sql_truth_query_key="forecast_monthly")
    forecast = compute_from_plan(forecast_plan, studio_snapshot)
    assert forecast.outputs.row_count == 8
    assert forecast.confidence == "medium"

    unsure_student = QueryPlan(
        intent="earnings_ytd_for_student",
        normalized_query="parker ytd earnings",
        sql_truth_query_key="earnings_ytd_for_student",
        time_range=TimeRange(type="ytd", start=date(2026, 1, 1), end=date(2026, 2, 21)),
        student_filter=StudentFilter(student_name="alice", student_id="s1", matched_name="Alice Parker", confidence=0.5),
    )
    result = compute_from_plan(unsure_student, studio_snapshot)
    assert result.outputs.total_dollars == 100.0
    assert result.confidence == "low"


TWO_WEEKS = {"start_date": date(2026, 1, 4), "end_date": date(2026, 1, 17)}


def _two_week_snapshot(first_cents: int, second_cents: int) -> StudioSnapshot:
    lessons = (
        LessonRecord(id="w1", student_id="a", date=date(2026, 1, 5), duration_minutes=60, amount_cents=first_cents, completed=True),
        LessonRecord(id="w2", student_id="a", date=date(2026, 1, 12), duration_minutes=60, amount_cents=second_cents, completed=True),
    )
    return StudioSnapshot(lessons=lessons, students=(StudentRecord(id="a", first_name="Alice", last_name="Parker"),))


def _series(*cents: int) -> list[WeeklyPoint]:
    start = date(2026, 1, 4)
    return [
        WeeklyPoint(
            start_date=start + timedelta(weeks=index),
            end_date=start + timedelta(weeks=index, days=6),
            total_cents=value,
            total_dollars=value / 100,
        )
        for index, value in enumerate(cents)
    ]


def test_stability_label_thresholds():
    assert stability_label(None) == "insufficient_data"
    assert stability_label(0.0) == "stable"
    assert stability_label(0.1999) == "stable"
    assert stability_label(0.2) == "moderate"
    assert stability_label(0.4499) == "moderate"
    assert stability_label(0.45) == "volatile"


def test_income_stability_at_the_boundaries():
    # two weeks: cv = |a - b| / (a + b)
    cases = [(1000, 1000, "stable"), (1000, 1500, "moderate"), (1100, 2900, "volatile"), (1200, 2800, "moderate")]
    for first, second, label in cases:
        output = run_truth_query("income_stability", _two_week_snapshot(first, second), TWO_WEEKS)
        assert output.weeks_count == 2
        assert output.stability_label == label

    boundary = run_truth_query("income_stability", _two_week_snapshot(1000, 1500), TWO_WEEKS)
    assert boundary.coefficient_of_variation == 0.2


def test_income_stability_needs_two_weeks():
    one_week = {"start_date": date(2026, 1, 4), "end_date": date(2026, 1, 10)}
    output = run_truth_query("income_stability", _two_week_snapshot(1000, 5000), one_week)
    assert output.weeks_count == 1
    assert output.coefficient_of_variation is None
    assert output.stability_label == "insufficient_data"

    empty = run_truth_query("income_stability", StudioSnapshot(), TWO_WEEKS)
    assert empty.stability_label == "insufficient_data"


def test_cash_flow_trend_direction():
    up = run_truth_query("cash_flow_trend", _two_week_snapshot(10000, 20000), TWO_WEEKS)
    down = run_truth_query("cash_flow_trend", _two_week_snapshot(20000, 10000), TWO_WEEKS)
    flat = run_truth_query("cash_flow_trend", _two_week_snapshot(15000, 15000), TWO_WEEKS)
    assert (up.direction, down.direction, flat.direction) == ("up", "down", "flat")
    assert up.weeks_count == 2


def test_trend_ignores_sub_cent_moves():
    assert describe_trend(_series(100, 100, 101)) == "flat"
    assert describe_trend(_series(100, 101, 101)) == "up"
    assert describe_trend(_series(100, 99, 99)) == "down"
    assert describe_trend(_series(100)) == "flat"
