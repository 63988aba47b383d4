"""Deterministic truth queries over a studio snapshot.

Every financial number the assistant reports is computed here from stored
lesson amounts. Each query key maps to one function returning a typed output
from :mod:`app.backend.src.schemas.truth_outputs`; failures become an
:class:`ErrorOutput` instead of propagating.
"""

from __future__ import annotations

import math
from collections import Counter, defaultdict
from dataclasses import dataclass
from datetime import date
from typing import Any, Callable, Mapping, Optional

import structlog

from app.backend.src.agents.earnings_truth import (
    DOW_LABELS,
    best_weekday_by_revenue,
    cents_to_dollars,
    coefficient_of_variation,
    completed,
    describe_trend,
    hourly_cents,
    in_range,
    revenue_by_student,
    round2,
    stability_label,
    student_display_name,
    sum_cents,
    weekly_buckets,
    weekly_revenue_series,
)
from app.backend.src.agents.entity_resolution import match_student
from app.backend.src.agents.forecast import compute_forecast
from app.backend.src.schemas.insights import (
    ComputedResult,
    LessonRecord,
    QueryPlan,
    StudentRecord,
    StudioSnapshot,
)
from app.backend.src.schemas.truth_outputs import (
    AddStudentsOutput,
    AttendanceRankOutput,
    AttendanceSummaryOutput,
    AverageHourlyRateOutput,
    AvgLessonsPerWeekOutput,
    AvgWeeklyRevenueOutput,
    BelowAverageRateOutput,
    CashFlowTrendOutput,
    ClarificationOutput,
    DayOfWeekOutput,
    EarningsOutput,
    ErrorOutput,
    ForecastOutput,
    HourlyRateRankOutput,
    HourlyRow,
    HoursTotalOutput,
    IncomeStabilityOutput,
    LessonCountOutput,
    LoseTopStudentsOutput,
    OnTrackGoalOutput,
    PercentChangeOutput,
    RateChangeOutput,
    RevenuePerLessonOutput,
    RevenueRankingOutput,
    StudentCountOutput,
    StudentEarningsOutput,
    StudentsNeededOutput,
    TaxGuidanceOutput,
    TimeOffOutput,
    WeeklyLessonCount,
)

LOGGER = structlog.get_logger(__name__)

TAX_NOTE = (
    "This is guidance only (not a tax calculation). Actual taxes depend on filing status, "
    "state, deductions, and other income."
)
TAX_LOW_SHARE = 0.25
TAX_HIGH_SHARE = 0.30
DAYS_IN_YEAR = 365
STUDENT_CONFIDENCE_FLOOR = 0.8
FORECAST_CONFIDENT_ROWS = 20

# Structured router keys resolve to a plan key plus forced parameters.
KEY_ALIASES: dict[str, tuple[str, dict[str, Any]]] = {
    "EARNINGS_RANK_MAX": ("revenue_per_student_in_period", {"top_n": 1, "rank_order": "desc"}),
    "EARNINGS_RANK_MIN": ("revenue_per_student_in_period", {"top_n": 1, "rank_order": "asc"}),
    "ATTENDANCE_RANK_MISSED": ("student_missed_most_lessons_in_year", {}),
    "ATTENDANCE_RANK_COMPLETED": ("student_completed_most_lessons_in_year", {}),
    "UNIQUE_STUDENT_COUNT": ("unique_student_count_in_period", {}),
    "TOTAL_EARNINGS_PERIOD": ("earnings_in_period", {}),
    "REVENUE_DELTA_SIMULATION": ("what_if_rate_change", {}),
    "REVENUE_TARGET_PROJECTION": ("students_needed_for_target_income", {}),
    "ON_TRACK_GOAL": ("on_track_goal", {}),
}


@dataclass
class TruthQuery:
    """Inputs shared by every query function for one run."""

    snapshot: StudioSnapshot
    params: Mapping[str, Any]
    start: Optional[date]
    end: Optional[date]
    lessons: list[LessonRecord]
    completed_lessons: list[LessonRecord]
    students_by_id: dict[str, StudentRecord]

    @classmethod
    def build(cls, snapshot: StudioSnapshot, params: Mapping[str, Any]) -> "TruthQuery":
        start = _as_date(params.get("start_date"))
        end = _as_date(params.get("end_date"))
        lessons = list(snapshot.lessons)
        if start is not None and end is not None:
            lessons = in_range(lessons, start, end)
        return cls(
            snapshot=snapshot,
            params=params,
            start=start,
            end=end,
            lessons=lessons,
            completed_lessons=completed(lessons),
            students_by_id=snapshot.students_by_id(),
        )

    @property
    def has_range(self) -> bool:
        return self.start is not None and self.end is not None

    def number(self, name: str) -> Optional[float]:
        return _positive_number(self.params.get(name))

    def zero_cause(self, total_cents: Optional[int] = None) -> Optional[str]:
        if not self.lessons:
            return "no_rows_in_range"
        if not self.completed_lessons:
            return "no_completed_lessons_in_range"
        if total_cents is not None and total_cents == 0:
            return "sum_zero_with_rows"
        return None

    def resolve_student_id(self) -> Optional[str]:
        student_id = self.params.get("student_id")
        if isinstance(student_id, str) and student_id in self.students_by_id:
            return student_id
        match = match_student(self.snapshot.students, self.params.get("student_name"))
        return match.student_id if match else None

    def name(self, student_id: str) -> str:
        return student_display_name(self.students_by_id, student_id)


def _as_date(value: Any) -> Optional[date]:
    if isinstance(value, date):
        return value
    if isinstance(value, str) and value:
        return date.fromisoformat(value)
    return None


def _positive_number(value: Any) -> Optional[float]:
    if isinstance(value, bool) or value is None:
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(number) or number <= 0:
        return None
    return number


def _finite_number(value: Any) -> Optional[float]:
    if isinstance(value, bool) or value is None:
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


TRUTH_QUERIES: dict[str, Callable[[TruthQuery], Any]] = {}


def truth_query(*keys: str) -> Callable[[Callable[[TruthQuery], Any]], Callable[[TruthQuery], Any]]:
    def register(func: Callable[[TruthQuery], Any]) -> Callable[[TruthQuery], Any]:
        for key in keys:
            TRUTH_QUERIES[key] = func
        return func

    return register


@truth_query("earnings_in_period")
def earnings_in_period(q: TruthQuery) -> EarningsOutput:
    total = sum_cents(q.completed_lessons)
    return EarningsOutput(
        lesson_count=len(q.completed_lessons),
        total_cents=total,
        total_dollars=cents_to_dollars(total),
        zero_cause=q.zero_cause(total),
    )


@truth_query("unique_student_count_in_period")
def unique_student_count(q: TruthQuery) -> StudentCountOutput:
    return StudentCountOutput(
        student_count=len({lesson.student_id for lesson in q.completed_lessons}),
        lesson_count=len(q.completed_lessons),
        zero_cause=q.zero_cause(),
    )


@truth_query("lessons_count_in_period")
def lessons_count(q: TruthQuery) -> LessonCountOutput:
    return LessonCountOutput(lesson_count=len(q.completed_lessons), zero_cause=q.zero_cause())


@truth_query("hours_total_in_period")
def hours_total(q: TruthQuery) -> HoursTotalOutput:
    minutes = sum(lesson.duration_minutes for lesson in q.completed_lessons)
    return HoursTotalOutput(
        lesson_count=len(q.completed_lessons),
        total_minutes=minutes,
        total_hours=round2(minutes / 60),
        zero_cause=q.zero_cause(),
    )


@truth_query("avg_lessons_per_week_in_period")
def avg_lessons_per_week(q: TruthQuery) -> AvgLessonsPerWeekOutput | ErrorOutput:
    if not q.has_range:
        return ErrorOutput(error="missing_range")
    series = [
        WeeklyLessonCount(
            start_date=week_start,
            end_date=week_end,
            lesson_count=sum(1 for lesson in q.completed_lessons if week_start <= lesson.date <= week_end),
        )
        for week_start, week_end in weekly_buckets(q.start, q.end)
    ]
    total = len(q.completed_lessons)
    return AvgLessonsPerWeekOutput(
        weekly_series=series,
        weeks_count=len(series),
        lesson_count=total,
        avg_lessons_per_week=round2(total / len(series)) if series else 0.0,
        zero_cause=q.zero_cause(),
    )


@truth_query("revenue_per_lesson_in_period")
def revenue_per_lesson(q: TruthQuery) -> RevenuePerLessonOutput:
    total = sum_cents(q.completed_lessons)
    count = len(q.completed_lessons)
    avg_cents = total / count if count else 0.0
    return RevenuePerLessonOutput(
        lesson_count=count,
        total_cents=total,
        avg_cents_per_lesson=avg_cents,
        avg_dollars_per_lesson=cents_to_dollars(avg_cents),
        zero_cause=q.zero_cause(total),
    )


@truth_query("revenue_per_student_in_period")
def revenue_per_student(q: TruthQuery) -> RevenueRankingOutput:
    rank_order = "asc" if q.params.get("rank_order") == "asc" else "desc"
    top_n = q.number("top_n")
    rows = revenue_by_student(q.completed_lessons, q.students_by_id, rank_order=rank_order)
    available = len(rows)
    if top_n is not None:
        rows = rows[: int(top_n)]
    return RevenueRankingOutput(
        rows=rows,
        available_count=available,
        requested_top_n=int(top_n) if top_n is not None else None,
        rank_order=rank_order,
    )


@truth_query("earnings_ytd_for_student")
def earnings_for_student(q: TruthQuery) -> StudentEarningsOutput | ErrorOutput:
    student_id = q.resolve_student_id()
    if student_id is None:
        return ErrorOutput(error="student_not_resolved", zero_cause="student_not_resolved")
    rows = [lesson for lesson in q.lessons if lesson.student_id == student_id]
    done = completed(rows)
    total = sum_cents(done)
    if not rows:
        zero_cause = "no_rows_for_student_in_range"
    elif not done:
        zero_cause = "no_completed_lessons_for_student_in_range"
    elif total == 0:
        zero_cause = "sum_zero_with_rows"
    else:
        zero_cause = None
    return StudentEarningsOutput(
        student_id=student_id,
        student_name=q.name(student_id),
        lesson_count=len(done),
        total_cents=total,
        total_dollars=cents_to_dollars(total),
        zero_cause=zero_cause,
    )


def _hourly_rates(q: TruthQuery) -> tuple[dict[str, float], dict[str, str]]:
    """Per-student hourly cents and where each came from.

    A student with completed minutes in range is rated from that history; an
    active student without any falls back to their configured rate.
    """

    cents: dict[str, int] = defaultdict(int)
    minutes: dict[str, int] = defaultdict(int)
    for lesson in q.completed_lessons:
        if lesson.duration_minutes > 0:
            cents[lesson.student_id] += lesson.amount_cents
            minutes[lesson.student_id] += lesson.duration_minutes
    rates = {sid: hourly_cents(cents[sid], minutes[sid]) for sid in minutes}
    sources = dict.fromkeys(rates, "lessons")

    on = q.end or date.today()
    for student in q.snapshot.students:
        if student.id in rates or not student.is_active_on(on):
            continue
        configured = student.effective_rate_cents(on)
        if configured > 0:
            rates[student.id] = float(configured)
            sources[student.id] = "configured"
    return rates, sources


def _hourly_rate_rank(q: TruthQuery, direction: str) -> HourlyRateRankOutput:
    rates, sources = _hourly_rates(q)
    if not rates:
        return HourlyRateRankOutput(direction=direction)
    sign = -1 if direction == "highest" else 1
    student_id = min(rates, key=lambda sid: (sign * rates[sid], q.name(sid), sid))
    return HourlyRateRankOutput(
        direction=direction,
        student_id=student_id,
        student_name=q.name(student_id),
        hourly_cents=rates[student_id],
        hourly_dollars=cents_to_dollars(rates[student_id]),
        rate_source=sources[student_id],
    )


TRUTH_QUERIES["student_highest_hourly_rate"] = lambda q: _hourly_rate_rank(q, "highest")
TRUTH_QUERIES["student_lowest_hourly_rate"] = lambda q: _hourly_rate_rank(q, "lowest")


@truth_query("students_below_average_rate")
def students_below_average(q: TruthQuery) -> BelowAverageRateOutput:
    priced = [lesson for lesson in q.completed_lessons if lesson.duration_minutes > 0]
    average = hourly_cents(sum_cents(priced), sum(lesson.duration_minutes for lesson in priced))
    rates = _hourly_rates(q)[0]
    below = sorted(
        (sid for sid, rate in rates.items() if rate < average),
        key=lambda sid: (rates[sid], q.name(sid), sid),
    )
    return BelowAverageRateOutput(
        avg_hourly_cents=average,
        avg_hourly_dollars=cents_to_dollars(average),
        rows=[
            HourlyRow(
                student_id=sid,
                student_name=q.name(sid),
                hourly_cents=rates[sid],
                hourly_dollars=cents_to_dollars(rates[sid]),
            )
            for sid in below
        ],
    )


def _attendance_rank(q: TruthQuery, measure: str) -> AttendanceRankOutput:
    wanted = measure == "completed"
    counts = Counter(lesson.student_id for lesson in q.lessons if lesson.completed is wanted)
    rank_order = "asc" if q.params.get("rank_order") == "asc" else "desc"
    if not counts:
        return AttendanceRankOutput(measure=measure, rank_order=rank_order)
    sign = -1 if rank_order == "desc" else 1
    student_id = min(counts, key=lambda sid: (sign * counts[sid], q.name(sid), sid))
    return AttendanceRankOutput(
        measure=measure,
        rank_order=rank_order,
        student_id=student_id,
        student_name=q.name(student_id),
        lesson_count=counts[student_id],
    )


@truth_query("student_missed_most_lessons_in_year")
def missed_most(q: TruthQuery) -> AttendanceRankOutput:
    return _attendance_rank(q, "missed")


@truth_query("student_completed_most_lessons_in_year")
def completed_most(q: TruthQuery) -> AttendanceRankOutput:
    return _attendance_rank(q, "completed")


@truth_query("student_attendance_summary")
def attendance_summary(q: TruthQuery) -> AttendanceSummaryOutput | ErrorOutput:
    student_id = q.resolve_student_id()
    if student_id is None:
        return ErrorOutput(error="student_not_resolved", zero_cause="student_not_resolved")
    rows = [lesson for lesson in q.lessons if lesson.student_id == student_id]
    attended = sum(1 for lesson in rows if lesson.completed)
    return AttendanceSummaryOutput(
        student_id=student_id,
        student_name=q.name(student_id),
        total_lessons=len(rows),
        attended_lessons=attended,
        missed_lessons=len(rows) - attended,
        attendance_rate_percent=round2(attended / len(rows) * 100) if rows else None,
    )


@truth_query("average_hourly_rate_in_period")
def average_hourly_rate(q: TruthQuery) -> AverageHourlyRateOutput:
    total = sum_cents(q.completed_lessons)
    minutes = sum(lesson.duration_minutes for lesson in q.completed_lessons)
    rate = hourly_cents(total, minutes)
    return AverageHourlyRateOutput(
        lesson_count=len(q.completed_lessons),
        total_minutes=minutes,
        hourly_cents=rate,
        hourly_dollars=cents_to_dollars(rate),
        zero_cause=q.zero_cause(total),
    )


@truth_query("day_of_week_earnings_max")
def day_of_week_max(q: TruthQuery) -> DayOfWeekOutput:
    best, cents = best_weekday_by_revenue(q.completed_lessons)
    if best is None:
        return DayOfWeekOutput(zero_cause=q.zero_cause() or "no_completed_lessons_in_range")
    if cents <= 0:
        return DayOfWeekOutput(zero_cause="sum_zero_with_rows")
    return DayOfWeekOutput(
        dow=best,
        dow_label=DOW_LABELS[best],
        total_cents=cents,
        total_dollars=cents_to_dollars(cents),
    )


@truth_query("avg_weekly_revenue")
def avg_weekly_revenue(q: TruthQuery) -> AvgWeeklyRevenueOutput | ErrorOutput:
    if not q.has_range:
        return ErrorOutput(error="missing_range")
    series = weekly_revenue_series(q.completed_lessons, q.start, q.end)
    total = sum(point.total_cents for point in series)
    avg_cents = total / len(series) if series else 0.0
    return AvgWeeklyRevenueOutput(
        weekly_series=series,
        weeks_count=len(series),
        avg_weekly_cents=avg_cents,
        avg_weekly_dollars=cents_to_dollars(avg_cents),
        total_cents=total,
        total_dollars=cents_to_dollars(total),
    )


@truth_query("cash_flow_trend")
def cash_flow_trend(q: TruthQuery) -> CashFlowTrendOutput | ErrorOutput:
    if not q.has_range:
        return ErrorOutput(error="missing_range")
    series = weekly_revenue_series(q.completed_lessons, q.start, q.end)
    return CashFlowTrendOutput(weekly_series=series, weeks_count=len(series), direction=describe_trend(series))


@truth_query("income_stability")
def income_stability(q: TruthQuery) -> IncomeStabilityOutput | ErrorOutput:
    if not q.has_range:
        return ErrorOutput(error="missing_range")
    series = weekly_revenue_series(q.completed_lessons, q.start, q.end)
    cv = coefficient_of_variation([float(point.total_cents) for point in series])
    return IncomeStabilityOutput(
        weekly_series=series,
        weeks_count=len(series),
        coefficient_of_variation=round(cv, 4) if cv is not None else None,
        stability_label=stability_label(cv),
    )


@truth_query("percent_change_yoy")
def percent_change(q: TruthQuery) -> PercentChangeOutput | ErrorOutput:
    year_a = _finite_number(q.params.get("year_a"))
    year_b = _finite_number(q.params.get("year_b"))
    if year_a is None or year_b is None:
        if not q.has_range:
            return ErrorOutput(error="missing_range")
        year_a, year_b = q.start.year, q.end.year
    year_a, year_b = int(year_a), int(year_b)

    def total_for(year: int) -> int:
        return sum_cents(lesson for lesson in completed(q.snapshot.lessons) if lesson.date.year == year)

    cents_a = total_for(year_a)
    cents_b = total_for(year_b)
    return PercentChangeOutput(
        year_a=year_a,
        year_b=year_b,
        total_a_dollars=cents_to_dollars(cents_a),
        total_b_dollars=cents_to_dollars(cents_b),
        dollar_change_dollars=cents_to_dollars(cents_b - cents_a),
        percent_change=round2((cents_b - cents_a) / cents_a * 100) if cents_a else None,
    )


@truth_query("what_if_rate_change")
def what_if_rate_change(q: TruthQuery) -> RateChangeOutput | ErrorOutput:
    delta = _finite_number(q.params.get("rate_delta_dollars_per_hour"))
    if delta is None:
        return ErrorOutput(error="missing_rate_delta")
    total = sum_cents(q.completed_lessons)
    hours = sum(lesson.duration_minutes for lesson in q.completed_lessons) / 60
    delta_dollars = round2(hours * delta)
    return RateChangeOutput(
        lesson_count=len(q.completed_lessons),
        total_hours=round2(hours),
        current_total_dollars=cents_to_dollars(total),
        rate_delta_dollars_per_hour=delta,
        delta_dollars=delta_dollars,
        projected_total_dollars=round2(cents_to_dollars(total) + delta_dollars),
    )


def _weekly_average_dollars(q: TruthQuery) -> tuple[float, int]:
    series = weekly_revenue_series(q.completed_lessons, q.start, q.end)
    if not series:
        return 0.0, 0
    return sum(point.total_dollars for point in series) / len(series), len(series)


@truth_query("what_if_add_students")
def what_if_add_students(q: TruthQuery) -> AddStudentsOutput | ErrorOutput:
    new_students = q.number("new_students")
    if new_students is None:
        return ErrorOutput(error="missing_new_students")
    if not q.has_range:
        return ErrorOutput(error="missing_range")
    avg_weekly, weeks = _weekly_average_dollars(q)
    active = len({lesson.student_id for lesson in q.completed_lessons})
    per_student = avg_weekly / active if active else 0.0
    delta = per_student * new_students
    return AddStudentsOutput(
        lesson_count=len(q.completed_lessons),
        weeks_count=weeks,
        active_students=active,
        new_students=int(new_students),
        avg_weekly_dollars=round2(avg_weekly),
        avg_weekly_per_student_dollars=round2(per_student),
        delta_weekly_dollars=round2(delta),
        projected_weekly_dollars=round2(avg_weekly + delta),
    )


@truth_query("what_if_take_time_off")
def what_if_take_time_off(q: TruthQuery) -> TimeOffOutput | ErrorOutput:
    weeks_off = q.number("weeks_off")
    if weeks_off is None:
        return ErrorOutput(error="missing_weeks_off")
    if not q.has_range:
        return ErrorOutput(error="missing_range")
    avg_weekly, weeks = _weekly_average_dollars(q)
    return TimeOffOutput(
        lesson_count=len(q.completed_lessons),
        weeks_count=weeks,
        weeks_off=int(weeks_off),
        avg_weekly_dollars=round2(avg_weekly),
        expected_lost_dollars=round2(avg_weekly * weeks_off),
    )


@truth_query("what_if_lose_top_students")
def what_if_lose_top_students(q: TruthQuery) -> LoseTopStudentsOutput | ErrorOutput:
    top_n = q.number("top_n")
    if top_n is None:
        return ErrorOutput(error="missing_top_n")
    total = sum_cents(q.completed_lessons)
    lost_rows = revenue_by_student(q.completed_lessons, q.students_by_id)[: int(top_n)]
    lost = sum(row.total_dollars for row in lost_rows)
    current = cents_to_dollars(total)
    return LoseTopStudentsOutput(
        lesson_count=len(q.completed_lessons),
        top_n=int(top_n),
        lost_students=lost_rows,
        lost_total_dollars=round2(lost),
        current_total_dollars=current,
        projected_total_dollars=round2(current - lost),
    )


@truth_query("on_track_goal")
def on_track_goal(q: TruthQuery) -> OnTrackGoalOutput | ErrorOutput:
    goal = q.number("annual_goal_dollars")
    if goal is None:
        return ErrorOutput(error="missing_annual_goal")
    if not q.has_range:
        return ErrorOutput(error="missing_range")
    ytd = cents_to_dollars(sum_cents(q.completed_lessons))
    days_elapsed = max(1, (q.end - q.start).days + 1)
    projected = round2(ytd * DAYS_IN_YEAR / days_elapsed)
    delta = round2(goal - projected)
    remaining_days = max(0, DAYS_IN_YEAR - days_elapsed)
    remaining_weeks = remaining_days / 7
    remaining_months = remaining_days / 30
    return OnTrackGoalOutput(
        lesson_count=len(q.completed_lessons),
        ytd_dollars=ytd,
        annual_goal_dollars=goal,
        projected_total_dollars=projected,
        delta_to_goal_dollars=delta,
        required_per_week_dollars=round2(delta / remaining_weeks) if remaining_weeks and delta > 0 else None,
        required_per_month_dollars=round2(delta / remaining_months) if remaining_months and delta > 0 else None,
    )


@truth_query("students_needed_for_target_income")
def students_needed(q: TruthQuery) -> StudentsNeededOutput | ErrorOutput:
    target = q.number("target_income_dollars")
    if target is None:
        return ErrorOutput(error="missing_target_income")
    rate = q.number("rate_dollars_per_hour")
    if rate is None:
        return ErrorOutput(error="missing_rate")
    if not q.has_range:
        return ErrorOutput(error="missing_range")

    weeks = len(weekly_buckets(q.start, q.end))
    active = len({lesson.student_id for lesson in q.completed_lessons})
    total_hours = sum(lesson.duration_minutes for lesson in q.completed_lessons) / 60
    hours_per_week = q.number("hours_per_student_per_week")
    if hours_per_week is None:
        hours_per_week = total_hours / weeks / active if weeks and active else 0.0
    if hours_per_week <= 0:
        return ErrorOutput(error="insufficient_history")

    per_student_year = hours_per_week * rate * 52
    return StudentsNeededOutput(
        lesson_count=len(q.completed_lessons),
        weeks_count=weeks,
        active_students=active,
        rate_dollars_per_hour=rate,
        target_income_dollars=target,
        typical_weekly_hours_per_student=round2(hours_per_week),
        projected_income_per_student_year_dollars=round2(per_student_year),
        students_needed=math.ceil(target / per_student_year),
    )


@truth_query("tax_guidance")
def tax_guidance(q: TruthQuery) -> TaxGuidanceOutput:
    total = cents_to_dollars(sum_cents(q.completed_lessons))
    return TaxGuidanceOutput(
        lesson_count=len(q.completed_lessons),
        total_dollars=total,
        suggested_set_aside_low_dollars=round2(total * TAX_LOW_SHARE),
        suggested_set_aside_high_dollars=round2(total * TAX_HIGH_SHARE),
        note=TAX_NOTE,
    )


def _forecast(q: TruthQuery, horizon: str) -> ForecastOutput:
    history = completed(q.snapshot.lessons)
    return ForecastOutput(horizon=horizon, row_count=len(history), **compute_forecast(history))


TRUTH_QUERIES["forecast_monthly"] = lambda q: _forecast(q, "monthly")
TRUTH_QUERIES["forecast_yearly"] = lambda q: _forecast(q, "yearly")


def run_truth_query(key: str, snapshot: StudioSnapshot, params: Mapping[str, Any]) -> Any:
    """Run the query registered under ``key``; never raises."""

    resolved_key, forced = KEY_ALIASES.get(key, (key, {}))
    query = TRUTH_QUERIES.get(resolved_key)
    if query is None:
        LOGGER.warning("insights_truth_query_unknown", key=key)
        return ErrorOutput(error=f"unknown_truth_query_key:{key}")

    merged = {**params, **forced}
    try:
        context = TruthQuery.build(snapshot, merged)
        output = query(context)
    except Exception as exc:  # pragma: no cover - defensive
        LOGGER.warning("insights_truth_query_failed", key=key, error=str(exc))
        return ErrorOutput(error="computation_failed")

    LOGGER.debug(
        "insights_truth_query_ran",
        key=key,
        resolved_key=resolved_key,
        source=snapshot.source,
        rows_in_range=len(context.lessons),
        start_date=str(context.start) if context.start else None,
        end_date=str(context.end) if context.end else None,
    )
    return output


def _confidence(plan: QueryPlan, output: Any) -> str:
    if isinstance(output, ErrorOutput) or not output.has_metric:
        return "low"
    student = plan.student_filter
    if student is not None and student.confidence is not None and student.confidence < STUDENT_CONFIDENCE_FLOOR:
        return "low"
    if isinstance(output, ForecastOutput) and output.row_count < FORECAST_CONFIDENT_ROWS:
        return "medium"
    return "high"


def compute_from_plan(plan: QueryPlan, snapshot: StudioSnapshot) -> ComputedResult:
    """Run the plan's truth query and attach a confidence rating."""

    if plan.needs_clarification or plan.intent == "clarification":
        return ComputedResult(
            intent="clarification",
            query_key="clarification",
            outputs=ClarificationOutput(
                clarifying_question=plan.clarifying_question or "",
                required_missing_params=plan.required_missing_params,
            ),
            confidence="low",
        )

    output = run_truth_query(plan.sql_truth_query_key, snapshot, plan.truth_params())
    return ComputedResult(
        intent=plan.intent,
        query_key=plan.sql_truth_query_key,
        outputs=output,
        confidence=_confidence(plan, output),
        warnings=[output.error] if isinstance(output, ErrorOutput) else [],
    )


__all__ = [
    "KEY_ALIASES",
    "TAX_NOTE",
    "TRUTH_QUERIES",
    "TruthQuery",
    "compute_from_plan",
    "run_truth_query",
]
