"""Render truth query outputs as short user-facing answers.

One formatter per output class, registered in :data:`FORMATTERS`. Key values
are bold, lists use bullets and zero results explain themselves.
"""

from __future__ import annotations

from typing import Callable, Optional

from app.backend.src.schemas.insights import ComputedResult
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
)

NOT_CONFIDENT = "I’m not confident in that result. Could you clarify what you mean?"
WHICH_STUDENT = "Which student did you mean?"
NO_COMPLETED = "No completed lessons found for that period."

ZERO_CAUSE_SENTENCES = {
    "no_rows_in_range": "No lessons are recorded for that period.",
    "no_completed_lessons_in_range": NO_COMPLETED,
    "sum_zero_with_rows": "Completed lessons in that period have $0 recorded amounts.",
    "no_rows_for_student_in_range": "No lessons are recorded for that student in that period.",
    "no_completed_lessons_for_student_in_range": "No completed lessons found for that student in that period.",
    "student_not_resolved": WHICH_STUDENT,
}

Formatter = Callable[..., str]
FORMATTERS: dict[type, Formatter] = {}


def formats(output_type: type) -> Callable[[Formatter], Formatter]:
    def register(func: Formatter) -> Formatter:
        FORMATTERS[output_type] = func
        return func

    return register


def _number(value: float) -> str:
    text = f"{value:,.2f}"
    return text.rstrip("0").rstrip(".") if "." in text else text


def fmt(value: Optional[float]) -> str:
    """Dollar amount with thousands separators and up to two decimals."""

    value = value or 0.0
    if value < 0:
        return "-$" + _number(-value)
    return "$" + _number(value)


def _plural(count: float, word: str) -> str:
    return f"{word}{'' if count == 1 else 's'}"


@formats(ErrorOutput)
def _error(out: ErrorOutput, range_label: Optional[str] = None) -> str:
    if out.error == "student_not_resolved" or out.zero_cause == "student_not_resolved":
        return WHICH_STUDENT
    return NOT_CONFIDENT


@formats(ClarificationOutput)
def _clarification(out: ClarificationOutput, range_label: Optional[str] = None) -> str:
    return out.clarifying_question


@formats(EarningsOutput)
def _earnings(out: EarningsOutput, range_label: Optional[str] = None) -> str:
    if out.zero_cause:
        return ZERO_CAUSE_SENTENCES[out.zero_cause]
    return fmt(out.total_dollars)


@formats(StudentEarningsOutput)
def _student_earnings(out: StudentEarningsOutput, range_label: Optional[str] = None) -> str:
    if out.zero_cause:
        return f"**{out.student_name}** — {ZERO_CAUSE_SENTENCES[out.zero_cause]}"
    return f"**{out.student_name}** — {fmt(out.total_dollars)}"


@formats(StudentCountOutput)
def _student_count(out: StudentCountOutput, range_label: Optional[str] = None) -> str:
    if out.zero_cause:
        return ZERO_CAUSE_SENTENCES[out.zero_cause]
    return f"{out.student_count} unique {_plural(out.student_count, 'student')} taught."


@formats(LessonCountOutput)
def _lesson_count(out: LessonCountOutput, range_label: Optional[str] = None) -> str:
    if out.lesson_count <= 0:
        return ZERO_CAUSE_SENTENCES.get(out.zero_cause or "", NO_COMPLETED)
    return f"{out.lesson_count} completed {_plural(out.lesson_count, 'lesson')}."


@formats(HoursTotalOutput)
def _hours_total(out: HoursTotalOutput, range_label: Optional[str] = None) -> str:
    if out.lesson_count <= 0:
        return ZERO_CAUSE_SENTENCES.get(out.zero_cause or "", NO_COMPLETED)
    return (
        f"{_number(out.total_hours)} hours across {out.lesson_count} completed "
        f"{_plural(out.lesson_count, 'lesson')}."
    )


@formats(AvgLessonsPerWeekOutput)
def _avg_lessons_per_week(out: AvgLessonsPerWeekOutput, range_label: Optional[str] = None) -> str:
    if out.weeks_count <= 0 or out.lesson_count <= 0:
        return NO_COMPLETED
    return (
        f"{_number(out.avg_lessons_per_week)} lessons/week on average ({out.lesson_count} lessons over "
        f"{out.weeks_count} {_plural(out.weeks_count, 'week')})."
    )


@formats(RevenuePerLessonOutput)
def _revenue_per_lesson(out: RevenuePerLessonOutput, range_label: Optional[str] = None) -> str:
    if out.zero_cause:
        return ZERO_CAUSE_SENTENCES[out.zero_cause]
    return (
        f"{fmt(out.avg_dollars_per_lesson)} per completed lesson ({out.lesson_count} "
        f"{_plural(out.lesson_count, 'lesson')})."
    )


@formats(RevenueRankingOutput)
def _revenue_ranking(out: RevenueRankingOutput, range_label: Optional[str] = None) -> str:
    if not out.rows:
        return "No completed lessons in that period."
    if out.requested_top_n == 1:
        row = out.rows[0]
        return f"**{row.student_name}** — {fmt(row.total_dollars)}"
    text = "\n".join(f"• **{row.student_name}** — {fmt(row.total_dollars)}" for row in out.rows)
    if out.requested_top_n and out.available_count < out.requested_top_n:
        text += (
            f"\n\nOnly {out.available_count} {_plural(out.available_count, 'student')} "
            "had revenue in this period."
        )
    return text


@formats(HourlyRateRankOutput)
def _hourly_rank(out: HourlyRateRankOutput, range_label: Optional[str] = None) -> str:
    if out.student_id is None:
        return NO_COMPLETED
    return f"**{out.student_name}** — {fmt(out.hourly_dollars)}/hr"


@formats(BelowAverageRateOutput)
def _below_average(out: BelowAverageRateOutput, range_label: Optional[str] = None) -> str:
    if not out.rows:
        return f"No students below average ({fmt(out.avg_hourly_dollars)}/hr)."
    bullets = "\n".join(f"• **{row.student_name}** — {fmt(row.hourly_dollars)}/hr" for row in out.rows)
    return f"**Below average ({fmt(out.avg_hourly_dollars)}/hr):**\n{bullets}"


@formats(AverageHourlyRateOutput)
def _average_hourly(out: AverageHourlyRateOutput, range_label: Optional[str] = None) -> str:
    if out.zero_cause in {"no_rows_in_range", "no_completed_lessons_in_range"}:
        return ZERO_CAUSE_SENTENCES[out.zero_cause]
    return f"{fmt(out.hourly_dollars)}/hr"


@formats(AttendanceRankOutput)
def _attendance_rank(out: AttendanceRankOutput, range_label: Optional[str] = None) -> str:
    if out.student_id is None:
        return f"No {out.measure} lessons found for that period."
    suffix = f" ({range_label})" if range_label else ""
    return f"**{out.student_name}** — {out.lesson_count} {out.measure} lessons{suffix}"


@formats(AttendanceSummaryOutput)
def _attendance_summary(out: AttendanceSummaryOutput, range_label: Optional[str] = None) -> str:
    pct = f"{_number(out.attendance_rate_percent)}%" if out.attendance_rate_percent is not None else "—"
    return (
        f"**{out.student_name}** — {out.attended_lessons} attended, {out.missed_lessons} missed "
        f"({pct} attendance)"
    )


@formats(DayOfWeekOutput)
def _day_of_week(out: DayOfWeekOutput, range_label: Optional[str] = None) -> str:
    if not out.dow_label or out.total_dollars <= 0:
        return "No earnings found in this period."
    return f"**{out.dow_label}** — {fmt(out.total_dollars)}"


@formats(AvgWeeklyRevenueOutput)
def _avg_weekly(out: AvgWeeklyRevenueOutput, range_label: Optional[str] = None) -> str:
    if out.weeks_count <= 0:
        return NO_COMPLETED
    return (
        f"{fmt(out.avg_weekly_dollars)} average per week ({out.weeks_count} "
        f"{_plural(out.weeks_count, 'week')})."
    )


_DIRECTION_WORDS = {"up": "upward", "down": "downward", "flat": "flat"}


@formats(CashFlowTrendOutput)
def _cash_flow(out: CashFlowTrendOutput, range_label: Optional[str] = None) -> str:
    if not out.weekly_series:
        return NO_COMPLETED
    lines = [f"**Cash flow trend:** {_DIRECTION_WORDS[out.direction]}"]
    lines.extend(
        f"• {point.start_date.isoformat()} — {fmt(point.total_dollars)}" for point in out.weekly_series[-5:]
    )
    return "\n".join(lines)


@formats(IncomeStabilityOutput)
def _stability(out: IncomeStabilityOutput, range_label: Optional[str] = None) -> str:
    if out.coefficient_of_variation is None or out.stability_label == "insufficient_data":
        return "Not enough weekly data to assess stability."
    variation = f"{out.coefficient_of_variation * 100:.1f}%"
    if out.stability_label == "stable":
        return f"Income looks **stable** (variation {variation})."
    if out.stability_label == "moderate":
        return f"Income is **moderately variable** (variation {variation})."
    return f"Income looks **volatile** (variation {variation})."


@formats(RateChangeOutput)
def _rate_change(out: RateChangeOutput, range_label: Optional[str] = None) -> str:
    verb = "lose" if out.delta_dollars < 0 else "add"
    return (
        f"If you change rates by **{fmt(out.rate_delta_dollars_per_hour)}/hr**, you’d {verb} about "
        f"**{fmt(abs(out.delta_dollars))}** over {out.total_hours:.1f} hours.\n"
        f"Current: {fmt(out.current_total_dollars)}\n"
        f"Projected: {fmt(out.projected_total_dollars)}"
    )


@formats(AddStudentsOutput)
def _add_students(out: AddStudentsOutput, range_label: Optional[str] = None) -> str:
    return (
        f"Based on {out.weeks_count} weeks of history, you average {fmt(out.avg_weekly_dollars)}/week "
        f"(~{fmt(out.avg_weekly_per_student_dollars)}/week per active student).\n"
        f"Adding **{out.new_students}** similar {_plural(out.new_students, 'student')} could add about "
        f"**{fmt(out.delta_weekly_dollars)}/week**.\n"
        f"Projected: {fmt(out.projected_weekly_dollars)}/week."
    )


@formats(TimeOffOutput)
def _time_off(out: TimeOffOutput, range_label: Optional[str] = None) -> str:
    return (
        f"You average about {fmt(out.avg_weekly_dollars)}/week.\n"
        f"Taking **{out.weeks_off}** {_plural(out.weeks_off, 'week')} off would reduce yearly earnings by "
        f"roughly **{fmt(out.expected_lost_dollars)}** (assuming similar schedule)."
    )


@formats(LoseTopStudentsOutput)
def _lose_top(out: LoseTopStudentsOutput, range_label: Optional[str] = None) -> str:
    bullets = "\n".join(f"• **{row.student_name}** — {fmt(row.total_dollars)}" for row in out.lost_students)
    return (
        f"If you lose your top **{out.top_n}** {_plural(out.top_n, 'student')} in this period:\n{bullets}\n\n"
        f"Lost: **{fmt(out.lost_total_dollars)}**\n"
        f"Current: {fmt(out.current_total_dollars)}\n"
        f"Projected: {fmt(out.projected_total_dollars)}"
    )


@formats(OnTrackGoalOutput)
def _on_track(out: OnTrackGoalOutput, range_label: Optional[str] = None) -> str:
    if out.lesson_count == 0:
        return "No completed lessons yet this year, so I can't project annual earnings."
    if out.delta_to_goal_dollars <= 0:
        return (
            f"YTD you've earned **{fmt(out.ytd_dollars)}**. At this run rate you're on track for "
            f"**{fmt(out.projected_total_dollars)}** this year — **{fmt(-out.delta_to_goal_dollars)}** above "
            f"your **{fmt(out.annual_goal_dollars)}** goal."
        )
    pace = ""
    if out.required_per_week_dollars:
        pace = f" About **{fmt(out.required_per_week_dollars)}/week** for the rest of the year would close the gap."
    elif out.required_per_month_dollars:
        pace = f" About **{fmt(out.required_per_month_dollars)}/month** for the rest of the year would close the gap."
    return (
        f"YTD you've earned **{fmt(out.ytd_dollars)}**. At this run rate you're projected at "
        f"**{fmt(out.projected_total_dollars)}** — **{fmt(out.delta_to_goal_dollars)}** short of your "
        f"**{fmt(out.annual_goal_dollars)}** goal.{pace}"
    )


@formats(StudentsNeededOutput)
def _students_needed(out: StudentsNeededOutput, range_label: Optional[str] = None) -> str:
    return (
        f"At **{fmt(out.rate_dollars_per_hour)}/hr**, your typical student averages about "
        f"**{out.typical_weekly_hours_per_student:.2f} hrs/week**.\n"
        f"That’s about **{fmt(out.projected_income_per_student_year_dollars)} per student/year**.\n"
        f"To reach **{fmt(out.target_income_dollars)}**, you’d need about **{out.students_needed}** "
        "students (at a similar schedule)."
    )


@formats(TaxGuidanceOutput)
def _tax(out: TaxGuidanceOutput, range_label: Optional[str] = None) -> str:
    return (
        "**Tax set-aside guidance**\n"
        "A common safe range is **25–30%** of income.\n"
        f"On {fmt(out.total_dollars)} earnings, that’s **{fmt(out.suggested_set_aside_low_dollars)}–"
        f"{fmt(out.suggested_set_aside_high_dollars)}** to set aside.\n"
        f"{out.note}"
    ).strip()


@formats(ForecastOutput)
def _forecast(out: ForecastOutput, range_label: Optional[str] = None) -> str:
    if out.projected_monthly_dollars is None or out.projected_yearly_dollars is None:
        return "Not enough data to project."
    return f"{fmt(out.projected_monthly_dollars)}/month · {fmt(out.projected_yearly_dollars)}/year"


@formats(PercentChangeOutput)
def _percent_change(out: PercentChangeOutput, range_label: Optional[str] = None) -> str:
    if out.percent_change is None:
        return (
            f"**{out.year_b} vs {out.year_a}:** a percent change can't be calculated because {out.year_a} "
            f"had $0 in earnings. {out.year_b} brought in {fmt(out.total_b_dollars)}."
        )
    return (
        f"**{out.year_b} vs {out.year_a}:** {out.percent_change:.1f}% "
        f"({fmt(out.dollar_change_dollars)} difference)"
    )


def format_answer(computed: ComputedResult, *, range_label: Optional[str] = None) -> str:
    """Phrase ``computed`` with the formatter registered for its output class."""

    formatter = FORMATTERS.get(type(computed.outputs))
    if formatter is None:
        return NOT_CONFIDENT
    return formatter(computed.outputs, range_label=range_label)


__all__ = ["FORMATTERS", "NOT_CONFIDENT", "WHICH_STUDENT", "ZERO_CAUSE_SENTENCES", "fmt", "format_answer"]
