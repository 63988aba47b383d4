"""Schemas shared by the insights question-answering pipeline."""

from __future__ import annotations

import datetime as dt
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from app.backend.src.schemas.truth_outputs import TruthOutput

InsightIntent = Literal[
    "student_highest_hourly_rate",
    "student_lowest_hourly_rate",
    "students_below_average_rate",
    "earnings_in_period",
    "lessons_count_in_period",
    "hours_total_in_period",
    "avg_lessons_per_week_in_period",
    "revenue_per_lesson_in_period",
    "earnings_ytd_for_student",
    "student_missed_most_lessons_in_year",
    "student_completed_most_lessons_in_year",
    "student_attendance_summary",
    "unique_student_count_in_period",
    "revenue_per_student_in_period",
    "avg_weekly_revenue",
    "cash_flow_trend",
    "income_stability",
    "what_if_rate_change",
    "what_if_add_students",
    "what_if_take_time_off",
    "what_if_lose_top_students",
    "students_needed_for_target_income",
    "tax_guidance",
    "forecast_monthly",
    "forecast_yearly",
    "percent_change_yoy",
    "average_hourly_rate_in_period",
    "day_of_week_earnings_max",
    "on_track_goal",
    "general_fallback",
    "clarification",
]

TimeRangeType = Literal["custom", "month", "year", "ytd", "rolling_days", "all"]
RequestedMetric = Literal["percent", "dollars", "who", "count", "rate"]
Confidence = Literal["high", "medium", "low"]
RouterUsed = Literal["regex", "llm"]


class LessonRecord(BaseModel):
    """Read-only lesson snapshot row."""

    model_config = ConfigDict(frozen=True)

    id: str
    student_id: str
    date: dt.date
    duration_minutes: int = Field(ge=0)
    amount_cents: int = Field(ge=0)
    completed: bool
    time_of_day: str | None = None
    note: str | None = None


class StudentRecord(BaseModel):
    """Read-only roster row with the schedule-change override."""

    model_config = ConfigDict(frozen=True)

    id: str
    first_name: str = ""
    last_name: str = ""
    duration_minutes: int = 60
    rate_cents: int = 0
    day_of_week: int = 0
    time_of_day: str = "12:00 PM"
    schedule_change_from_date: dt.date | None = None
    schedule_change_day_of_week: int | None = None
    schedule_change_time_of_day: str | None = None
    schedule_change_duration_minutes: int | None = None
    schedule_change_rate_cents: int | None = None
    terminated_from_date: dt.date | None = None

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    def _schedule_changed(self, on: dt.date) -> bool:
        return self.schedule_change_from_date is not None and on >= self.schedule_change_from_date

    def effective_rate_cents(self, on: dt.date) -> int:
        """Configured hourly rate in effect on ``on``."""

        if self._schedule_changed(on) and self.schedule_change_rate_cents is not None:
            return self.schedule_change_rate_cents
        return self.rate_cents

    def is_active_on(self, on: dt.date) -> bool:
        return self.terminated_from_date is None or on <= self.terminated_from_date


class StudioSnapshot(BaseModel):
    """Lessons and students borrowed for a single request."""

    model_config = ConfigDict(frozen=True)

    lessons: tuple[LessonRecord, ...] = ()
    students: tuple[StudentRecord, ...] = ()
    source: Literal["memory", "database"] = "memory"

    def students_by_id(self) -> dict[str, StudentRecord]:
        return {student.id: student for student in self.students}


class TimeRange(BaseModel):
    """A closed, inclusive date range with a semantic tag."""

    model_config = ConfigDict(frozen=True)

    type: TimeRangeType
    start: dt.date
    end: dt.date
    label: str | None = None

    def contains(self, value: dt.date) -> bool:
        return self.start <= value <= self.end


class StudentFilter(BaseModel):
    model_config = ConfigDict(frozen=True)

    student_name: str | None = None
    student_id: str | None = None
    matched_name: str | None = None
    confidence: float | None = Field(default=None, ge=0, le=1)


class QueryPlan(BaseModel):
    """Fully resolved, immutable description of what to compute for one question."""

    model_config = ConfigDict(frozen=True)

    intent: InsightIntent
    normalized_query: str
    time_range: TimeRange | None = None
    student_filter: StudentFilter | None = None
    requested_metric: RequestedMetric | None = None
    needs_clarification: bool = False
    clarifying_question: str | None = None
    required_missing_params: tuple[str, ...] = ()
    sql_truth_query_key: str
    slots: dict[str, Any] = Field(default_factory=dict)

    def truth_params(self) -> dict[str, Any]:
        """Parameters handed to the truth query engine."""

        params: dict[str, Any] = dict(self.slots)
        if self.time_range is not None:
            params["start_date"] = self.time_range.start
            params["end_date"] = self.time_range.end
        if self.student_filter is not None:
            if self.student_filter.student_name:
                params["student_name"] = self.student_filter.student_name
            if self.student_filter.student_id:
                params["student_id"] = self.student_filter.student_id
        return params


class ComputedResult(BaseModel):
    intent: InsightIntent
    query_key: str
    outputs: TruthOutput
    confidence: Confidence
    warnings: list[str] = Field(default_factory=list)


class VerificationResult(BaseModel):
    passed: bool
    errors: list[str] = Field(default_factory=list)
    confidence: Confidence


class PendingClarification(BaseModel):
    """Question awaiting a one-turn follow-up reply."""

    model_config = ConfigDict(frozen=True)

    original_question: str
    required_missing_params: tuple[str, ...] = ()


class PriorContext(BaseModel):
    """Minimal state the caller carries from one turn into the next."""

    model_config = ConfigDict(frozen=True)

    intent: InsightIntent | None = None
    time_range: TimeRange | None = None
    student_filter: StudentFilter | None = None
    slots: dict[str, Any] = Field(default_factory=dict)
    pending_clarification: PendingClarification | None = None


class DebugOptions(BaseModel):
    """Explicit per-call debug switches."""

    model_config = ConfigDict(frozen=True)

    enabled: bool = False
    log_trace: bool = False


class AskContext(BaseModel):
    """Per-request inputs for :func:`ask_question`."""

    user_id: str | None = None
    lessons: list[LessonRecord] | None = None
    students: list[StudentRecord] | None = None
    prior_context: PriorContext | None = None
    today: dt.date | None = None
    timezone: str | None = None
    locale: str | None = None


class ExplainabilityDateRange(BaseModel):
    start: dt.date | None = None
    end: dt.date | None = None
    label: str


class Explainability(BaseModel):
    metric_id: str
    date_range: ExplainabilityDateRange
    filters: dict[str, Any]
    counts: dict[str, int]
    aggregation: dict[str, str]


class InsightsMetadata(BaseModel):
    lesson_count: int
    date_range_label: str
    completed_only: bool = True
    router_used: RouterUsed = "regex"
    explainability: Explainability | None = None


class InsightsTrace(BaseModel):
    """Machine-readable record of one pipeline run; never read back by the pipeline."""

    query: str
    normalized_query: str
    query_plan: QueryPlan
    sql_query_key: str
    sql_params: dict[str, Any] = Field(default_factory=dict)
    sql_result_summary: dict[str, Any] | None = None
    computed_result: ComputedResult | None = None
    verifier_passed: bool = False
    verifier_errors: list[str] = Field(default_factory=list)
    zero_cause: str | None = None
    final_answer_text: str = ""


class AskInsightsResult(BaseModel):
    text: str
    computed_result: ComputedResult | None = None
    needs_clarification: bool
    clarifying_question: str | None = None
    metadata: InsightsMetadata
    trace: InsightsTrace
    next_context: PriorContext


class FallbackClassification(BaseModel):
    """Intent plus optional slots returned by the fallback classifier."""

    intent: InsightIntent
    raw_intent: str
    student_name: str | None = None
    slots: dict[str, Any] = Field(default_factory=dict)

    @field_validator("raw_intent")
    @classmethod
    def _strip(cls, value: str) -> str:
        return value.strip()


__all__ = [
    "AskContext",
    "AskInsightsResult",
    "ComputedResult",
    "Confidence",
    "DebugOptions",
    "Explainability",
    "ExplainabilityDateRange",
    "FallbackClassification",
    "InsightIntent",
    "InsightsMetadata",
    "InsightsTrace",
    "LessonRecord",
    "PendingClarification",
    "PriorContext",
    "QueryPlan",
    "RequestedMetric",
    "RouterUsed",
    "StudentFilter",
    "StudentRecord",
    "StudioSnapshot",
    "TimeRange",
    "TimeRangeType",
    "VerificationResult",
]
