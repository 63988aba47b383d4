"""Typed outputs returned by the truth query engine.

Every truth query family produces exactly one of the models below, tagged by
``kind`` so the union can be validated, serialized and dispatched on without
probing for optional keys.
"""

from __future__ import annotations

from datetime import date
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

ZeroCause = Literal[
    "no_rows_in_range",
    "no_completed_lessons_in_range",
    "sum_zero_with_rows",
    "student_not_resolved",
    "no_rows_for_student_in_range",
    "no_completed_lessons_for_student_in_range",
]
RankOrder = Literal["asc", "desc"]


class _Output(BaseModel):
    model_config = ConfigDict(frozen=True)

    @property
    def has_metric(self) -> bool:
        """``True`` when the output carries a value worth presenting."""

        return True


class RevenueRow(BaseModel):
    model_config = ConfigDict(frozen=True)

    student_id: str
    student_name: str
    total_cents: int
    total_dollars: float


class HourlyRow(BaseModel):
    model_config = ConfigDict(frozen=True)

    student_id: str
    student_name: str
    hourly_cents: float
    hourly_dollars: float


class WeeklyPoint(BaseModel):
    model_config = ConfigDict(frozen=True)

    start_date: date
    end_date: date
    total_cents: int
    total_dollars: float


class WeeklyLessonCount(BaseModel):
    model_config = ConfigDict(frozen=True)

    start_date: date
    end_date: date
    lesson_count: int


class ErrorOutput(_Output):
    kind: Literal["error"] = "error"
    error: str
    zero_cause: Optional[ZeroCause] = None

    @property
    def has_metric(self) -> bool:
        return False


class ClarificationOutput(_Output):
    kind: Literal["clarification"] = "clarification"
    clarifying_question: str
    required_missing_params: tuple[str, ...] = ()

    @property
    def has_metric(self) -> bool:
        return False


class EarningsOutput(_Output):
    kind: Literal["earnings"] = "earnings"
    lesson_count: int
    total_cents: int
    total_dollars: float
    zero_cause: Optional[ZeroCause] = None


class StudentEarningsOutput(_Output):
    kind: Literal["student_earnings"] = "student_earnings"
    student_id: str
    student_name: str
    lesson_count: int
    total_cents: int
    total_dollars: float
    zero_cause: Optional[ZeroCause] = None


class StudentCountOutput(_Output):
    kind: Literal["student_count"] = "student_count"
    student_count: int
    lesson_count: int
    zero_cause: Optional[ZeroCause] = None


class LessonCountOutput(_Output):
    kind: Literal["lesson_count"] = "lesson_count"
    lesson_count: int
    zero_cause: Optional[ZeroCause] = None


class HoursTotalOutput(_Output):
    kind: Literal["hours_total"] = "hours_total"
    lesson_count: int
    total_minutes: int
    total_hours: float
    zero_cause: Optional[ZeroCause] = None


class AvgLessonsPerWeekOutput(_Output):
    kind: Literal["avg_lessons_per_week"] = "avg_lessons_per_week"
    weekly_series: list[WeeklyLessonCount] = Field(default_factory=list)
    weeks_count: int
    lesson_count: int
    avg_lessons_per_week: float
    zero_cause: Optional[ZeroCause] = None


class RevenuePerLessonOutput(_Output):
    kind: Literal["revenue_per_lesson"] = "revenue_per_lesson"
    lesson_count: int
    total_cents: int
    avg_cents_per_lesson: float
    avg_dollars_per_lesson: float
    zero_cause: Optional[ZeroCause] = None


class RevenueRankingOutput(_Output):
    kind: Literal["revenue_ranking"] = "revenue_ranking"
    rows: list[RevenueRow] = Field(default_factory=list)
    available_count: int
    requested_top_n: Optional[int] = None
    rank_order: RankOrder = "desc"


class HourlyRateRankOutput(_Output):
    kind: Literal["hourly_rate_rank"] = "hourly_rate_rank"
    direction: Literal["highest", "lowest"]
    student_id: Optional[str] = None
    student_name: Optional[str] = None
    hourly_cents: Optional[float] = None
    hourly_dollars: Optional[float] = None
    rate_source: Optional[Literal["lessons", "configured"]] = None

    @property
    def has_metric(self) -> bool:
        return self.student_id is not None


class BelowAverageRateOutput(_Output):
    kind: Literal["below_average_rate"] = "below_average_rate"
    avg_hourly_cents: float
    avg_hourly_dollars: float
    rows: list[HourlyRow] = Field(default_factory=list)


class AverageHourlyRateOutput(_Output):
    kind: Literal["average_hourly_rate"] = "average_hourly_rate"
    lesson_count: int
    total_minutes: int
    hourly_cents: float
    hourly_dollars: float
    zero_cause: Optional[ZeroCause] = None


class AttendanceRankOutput(_Output):
    kind: Literal["attendance_rank"] = "attendance_rank"
    measure: Literal["missed", "completed"]
    rank_order: RankOrder = "desc"
    student_id: Optional[str] = None
    student_name: Optional[str] = None
    lesson_count: int = 0

    @property
    def has_metric(self) -> bool:
        return self.student_id is not None


class AttendanceSummaryOutput(_Output):
    kind: Literal["attendance_summary"] = "attendance_summary"
    student_id: str
    student_name: str
    total_lessons: int
    attended_lessons: int
    missed_lessons: int
    attendance_rate_percent: Optional[float] = None


class DayOfWeekOutput(_Output):
    kind: Literal["day_of_week"] = "day_of_week"
    dow: Optional[int] = None
    dow_label: Optional[str] = None
    total_cents: int = 0
    total_dollars: float = 0.0
    zero_cause: Optional[ZeroCause] = None


class AvgWeeklyRevenueOutput(_Output):
    kind: Literal["avg_weekly_revenue"] = "avg_weekly_revenue"
    weekly_series: list[WeeklyPoint] = Field(default_factory=list)
    weeks_count: int
    avg_weekly_cents: float
    avg_weekly_dollars: float
    total_cents: int
    total_dollars: float


class CashFlowTrendOutput(_Output):
    kind: Literal["cash_flow_trend"] = "cash_flow_trend"
    weekly_series: list[WeeklyPoint] = Field(default_factory=list)
    weeks_count: int
    direction: Literal["up", "down", "flat"]


class IncomeStabilityOutput(_Output):
    kind: Literal["income_stability"] = "income_stability"
    weekly_series: list[WeeklyPoint] = Field(default_factory=list)
    weeks_count: int
    coefficient_of_variation: Optional[float] = None
    stability_label: Literal["stable", "moderate", "volatile", "insufficient_data"]


class RateChangeOutput(_Output):
    kind: Literal["what_if_rate_change"] = "what_if_rate_change"
    lesson_count: int
    total_hours: float
    current_total_dollars: float
    rate_delta_dollars_per_hour: float
    delta_dollars: float
    projected_total_dollars: float


class AddStudentsOutput(_Output):
    kind: Literal["what_if_add_students"] = "what_if_add_students"
    lesson_count: int
    weeks_count: int
    active_students: int
    new_students: int
    avg_weekly_dollars: float
    avg_weekly_per_student_dollars: float
    delta_weekly_dollars: float
    projected_weekly_dollars: float


class TimeOffOutput(_Output):
    kind: Literal["what_if_take_time_off"] = "what_if_take_time_off"
    lesson_count: int
    weeks_count: int
    weeks_off: int
    avg_weekly_dollars: float
    expected_lost_dollars: float


class LoseTopStudentsOutput(_Output):
    kind: Literal["what_if_lose_top_students"] = "what_if_lose_top_students"
    lesson_count: int
    top_n: int
    lost_students: list[RevenueRow] = Field(default_factory=list)
    lost_total_dollars: float
    current_total_dollars: float
    projected_total_dollars: float


class OnTrackGoalOutput(_Output):
    kind: Literal["on_track_goal"] = "on_track_goal"
    lesson_count: int
    ytd_dollars: float
    annual_goal_dollars: float
    projected_total_dollars: float
    delta_to_goal_dollars: float
    required_per_week_dollars: Optional[float] = None
    required_per_month_dollars: Optional[float] = None


class StudentsNeededOutput(_Output):
    kind: Literal["students_needed"] = "students_needed"
    lesson_count: int
    weeks_count: int
    active_students: int
    rate_dollars_per_hour: float
    target_income_dollars: float
    typical_weekly_hours_per_student: float
    projected_income_per_student_year_dollars: float
    students_needed: int


class TaxGuidanceOutput(_Output):
    kind: Literal["tax_guidance"] = "tax_guidance"
    lesson_count: int
    total_dollars: float
    suggested_set_aside_low_dollars: float
    suggested_set_aside_high_dollars: float
    note: str


class ForecastOutput(_Output):
    kind: Literal["forecast"] = "forecast"
    horizon: Literal["monthly", "yearly"]
    row_count: int
    avg_weekly_dollars: Optional[float] = None
    projected_monthly_dollars: Optional[float] = None
    projected_yearly_dollars: Optional[float] = None
    trend: Literal["up", "down", "stable", "unknown"]

    @property
    def has_metric(self) -> bool:
        return self.projected_monthly_dollars is not None or self.projected_yearly_dollars is not None


class PercentChangeOutput(_Output):
    kind: Literal["percent_change"] = "percent_change"
    year_a: int
    year_b: int
    total_a_dollars: float
    total_b_dollars: float
    dollar_change_dollars: float
    percent_change: Optional[float] = None


TruthOutput = Annotated[
    Union[
        ErrorOutput,
        ClarificationOutput,
        EarningsOutput,
        StudentEarningsOutput,
        StudentCountOutput,
        LessonCountOutput,
        HoursTotalOutput,
        AvgLessonsPerWeekOutput,
        RevenuePerLessonOutput,
        RevenueRankingOutput,
        HourlyRateRankOutput,
        BelowAverageRateOutput,
        AverageHourlyRateOutput,
        AttendanceRankOutput,
        AttendanceSummaryOutput,
        DayOfWeekOutput,
        AvgWeeklyRevenueOutput,
        CashFlowTrendOutput,
        IncomeStabilityOutput,
        RateChangeOutput,
        AddStudentsOutput,
        TimeOffOutput,
        LoseTopStudentsOutput,
        OnTrackGoalOutput,
        StudentsNeededOutput,
        TaxGuidanceOutput,
        ForecastOutput,
        PercentChangeOutput,
    ],
    Field(discriminator="kind"),
]

OUTPUT_MODELS: tuple[type[BaseModel], ...] = (
    ErrorOutput,
    ClarificationOutput,
    EarningsOutput,
    StudentEarningsOutput,
    StudentCountOutput,
    LessonCountOutput,
    HoursTotalOutput,
    AvgLessonsPerWeekOutput,
    RevenuePerLessonOutput,
    RevenueRankingOutput,
    HourlyRateRankOutput,
    BelowAverageRateOutput,
    AverageHourlyRateOutput,
    AttendanceRankOutput,
    AttendanceSummaryOutput,
    DayOfWeekOutput,
    AvgWeeklyRevenueOutput,
    CashFlowTrendOutput,
    IncomeStabilityOutput,
    RateChangeOutput,
    AddStudentsOutput,
    TimeOffOutput,
    LoseTopStudentsOutput,
    OnTrackGoalOutput,
    StudentsNeededOutput,
    TaxGuidanceOutput,
    ForecastOutput,
    PercentChangeOutput,
)

__all__ = [
    "AddStudentsOutput",
    "AttendanceRankOutput",
    "AttendanceSummaryOutput",
    "AverageHourlyRateOutput",
    "AvgLessonsPerWeekOutput",
    "AvgWeeklyRevenueOutput",
    "BelowAverageRateOutput",
    "CashFlowTrendOutput",
    "ClarificationOutput",
    "DayOfWeekOutput",
    "EarningsOutput",
    "ErrorOutput",
    "ForecastOutput",
    "HourlyRateRankOutput",
    "HourlyRow",
    "HoursTotalOutput",
    "IncomeStabilityOutput",
    "LessonCountOutput",
    "LoseTopStudentsOutput",
    "OUTPUT_MODELS",
    "OnTrackGoalOutput",
    "PercentChangeOutput",
    "RankOrder",
    "RateChangeOutput",
    "RevenuePerLessonOutput",
    "RevenueRankingOutput",
    "RevenueRow",
    "StudentCountOutput",
    "StudentEarningsOutput",
    "StudentsNeededOutput",
    "TaxGuidanceOutput",
    "TimeOffOutput",
    "TruthOutput",
    "WeeklyLessonCount",
    "WeeklyPoint",
    "ZeroCause",
]
