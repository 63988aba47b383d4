"""Build immutable query plans from normalized questions.

A plan fixes everything the truth engine needs: intent, truth-query key,
closed date range, resolved student filter and slots. When any of those
cannot be pinned down the plan asks a single clarifying question instead.
"""

from __future__ import annotations

from datetime import date
from typing import Any, Iterable, Optional

import structlog

from app.backend.src.agents.entity_resolution import match_student
from app.backend.src.agents.intent_router import (
    RouteDecision,
    extract_student_name,
    has_money_signal,
    route_question,
)
from app.backend.src.agents.time_ranges import (
    HISTORY_AVERAGE_INTENTS,
    clip_to_today,
    default_range_for_intent,
    has_competing_timeframes,
    mentioned_years,
    resolve_time_range,
    year_pair_range,
    year_range,
    ytd_range,
)
from app.backend.src.schemas.insights import (
    PriorContext,
    QueryPlan,
    StudentFilter,
    StudentRecord,
    TimeRange,
)

LOGGER = structlog.get_logger(__name__)

CLARIFICATION_KEY = "clarification"

CLARIFYING_QUESTIONS: dict[str, str] = {
    "timeframe": "I found multiple possible timeframes. Which timeframe should I use?",
    "year": "Which year should I use for missed lessons?",
    "student": "Which student did you mean?",
    "rate_delta": "How much should I change the rate by (e.g. $10/hour)?",
    "student_count": (
        "How many new students should I model (e.g. “add 3 new students”) and should I "
        "assume they match your typical schedule?"
    ),
    "weeks_off": "How many weeks off should I model (e.g. “take 2 weeks off”)?",
    "top_n": (
        "How many top students should I remove (e.g. “lose my top 2 students”) and what "
        "time range should I use?"
    ),
    "target_income": "What target income and hourly rate should I use (e.g. “reach $100k at $70/hr”)?",
    "rate": "What target income and hourly rate should I use (e.g. “reach $100k at $70/hr”)?",
    "annual_goal": "What annual goal should I use (e.g. $80,000)?",
}
TIMEFRAME_QUESTION = "Could you specify the timeframe (e.g. July 2024 or this year)?"
INTENT_QUESTION = "Did you mean earnings or attendance?"

STUDENT_INTENTS = frozenset({"earnings_ytd_for_student", "student_attendance_summary"})

# slot name that must be present -> missing parameter reported when it is not
_REQUIRED_SLOTS: dict[str, tuple[tuple[str, str], ...]] = {
    "what_if_rate_change": (("rate_delta_dollars_per_hour", "rate_delta"),),
    "what_if_add_students": (("new_students", "student_count"),),
    "what_if_take_time_off": (("weeks_off", "weeks_off"),),
    "what_if_lose_top_students": (("top_n", "top_n"),),
    "students_needed_for_target_income": (
        ("target_income_dollars", "target_income"),
        ("rate_dollars_per_hour", "rate"),
    ),
    "on_track_goal": (("annual_goal_dollars", "annual_goal"),),
}

TRUTH_QUERY_KEYS = frozenset(
    {
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
    }
)


def truth_key_for_intent(intent: str) -> str:
    """Fixed intent to truth-query key mapping."""

    if intent in TRUTH_QUERY_KEYS:
        return intent
    if intent == CLARIFICATION_KEY:
        return CLARIFICATION_KEY
    return "general_fallback"


def clarifying_question_for(missing: Iterable[str], normalized: str = "") -> str:
    """Fixed question for the first missing parameter."""

    for param in missing:
        if param == "intent":
            return TIMEFRAME_QUESTION if has_money_signal(normalized) else INTENT_QUESTION
        if param in CLARIFYING_QUESTIONS:
            return CLARIFYING_QUESTIONS[param]
    return INTENT_QUESTION


def _percent_years(normalized: str, today: date) -> tuple[int, int]:
    years = mentioned_years(normalized)
    if len(years) >= 2:
        return min(years), max(years)
    if len(years) == 1:
        return years[0] - 1, years[0]
    return today.year - 1, today.year


def _history_range(intent: str, time_range: TimeRange, today: date) -> TimeRange:
    return clip_to_today(time_range, today) if intent in HISTORY_AVERAGE_INTENTS else time_range


def _time_range(
    route: RouteDecision,
    slots: dict[str, Any],
    normalized: str,
    prior_context: Optional[PriorContext],
    today: date,
) -> TimeRange:
    if route.intent == "percent_change_yoy":
        return year_pair_range(slots["year_a"], slots["year_b"])
    explicit = resolve_time_range(normalized, today)
    if explicit is not None:
        return explicit
    if prior_context is not None and prior_context.time_range is not None:
        return prior_context.time_range
    if route.tier == "structured":
        return ytd_range(today) if route.intent == "on_track_goal" else year_range(today.year)
    return default_range_for_intent(route.intent, today)


def _student_filter(
    intent: str,
    normalized: str,
    prior_context: Optional[PriorContext],
    roster: Optional[list[StudentRecord]],
) -> Optional[StudentFilter]:
    if intent not in STUDENT_INTENTS:
        return None
    name = extract_student_name(normalized)
    if name is None:
        if (
            prior_context is not None
            and prior_context.student_filter is not None
            and prior_context.intent in STUDENT_INTENTS
        ):
            return prior_context.student_filter
        return None
    if roster is None:
        return StudentFilter(student_name=name)
    match = match_student(roster, name)
    if match is None:
        return StudentFilter(student_name=name)
    return StudentFilter(
        student_name=name,
        student_id=match.student_id,
        matched_name=match.matched_name,
        confidence=match.confidence,
    )


def _missing_params(
    intent: str,
    slots: dict[str, Any],
    student: Optional[StudentFilter],
    *,
    tier: Optional[str] = None,
) -> list[str]:
    missing: list[str] = []
    if intent == "general_fallback":
        return ["intent"]
    for slot, param in _REQUIRED_SLOTS.get(intent, ()):
        if slots.get(slot) in (None, 0, ""):
            missing.append(param)
    if intent in STUDENT_INTENTS and (student is None or not student.student_name):
        missing.append("student")
    if (
        tier == "general"
        and intent == "student_missed_most_lessons_in_year"
        and "year" not in slots
    ):
        missing.append("year")
    return missing


def build_query_plan(
    normalized: str,
    prior_context: Optional[PriorContext] = None,
    *,
    today: date,
    roster: Optional[list[StudentRecord]] = None,
) -> QueryPlan:
    """Plan the computation for an already-normalized question."""

    route = route_question(normalized)
    slots: dict[str, Any] = dict(route.slots)
    if prior_context is not None and prior_context.intent == route.intent:
        slots = {**prior_context.slots, **slots}
    if route.intent == "percent_change_yoy":
        year_a, year_b = _percent_years(normalized, today)
        slots.setdefault("year_a", year_a)
        slots.setdefault("year_b", year_b)

    time_range = _time_range(route, slots, normalized, prior_context, today)
    time_range = _history_range(route.intent, time_range, today)
    student = _student_filter(route.intent, normalized, prior_context, roster)

    if has_competing_timeframes(normalized, allow_year_pair=route.intent == "percent_change_yoy"):
        missing = ["timeframe"]
    else:
        missing = _missing_params(route.intent, slots, student, tier=route.tier)

    needs_clarification = bool(missing)
    plan = QueryPlan(
        intent=CLARIFICATION_KEY if needs_clarification else route.intent,
        normalized_query=normalized,
        time_range=time_range,
        student_filter=student,
        requested_metric=route.requested_metric,
        needs_clarification=needs_clarification,
        clarifying_question=clarifying_question_for(missing, normalized) if needs_clarification else None,
        required_missing_params=tuple(missing),
        sql_truth_query_key=CLARIFICATION_KEY if needs_clarification else route.truth_key,
        slots=slots,
    )
    LOGGER.info(
        "insights_plan_built",
        intent=route.intent,
        rule=route.rule_name,
        tier=route.tier,
        needs_clarification=needs_clarification,
        missing=missing,
    )
    return plan


def apply_fallback_intent(
    plan: QueryPlan,
    intent: str,
    *,
    today: date,
    slots: Optional[dict[str, Any]] = None,
    student_name: Optional[str] = None,
    roster: Optional[list[StudentRecord]] = None,
) -> QueryPlan:
    """Rebuild a clarification plan around an intent chosen by the fallback classifier."""

    merged = {**plan.slots, **(slots or {})}
    time_range = resolve_time_range(plan.normalized_query, today) or default_range_for_intent(intent, today)
    if intent == "percent_change_yoy":
        year_a = merged.get("year_a") or today.year - 1
        year_b = merged.get("year_b") or today.year
        merged.update(year_a=year_a, year_b=year_b)
        time_range = year_pair_range(year_a, year_b)
    time_range = _history_range(intent, time_range, today)

    student = plan.student_filter
    if intent in STUDENT_INTENTS and student_name:
        match = match_student(roster, student_name) if roster is not None else None
        student = StudentFilter(
            student_name=student_name,
            student_id=match.student_id if match else None,
            matched_name=match.matched_name if match else None,
            confidence=match.confidence if match else None,
        )

    missing = _missing_params(intent, merged, student)
    if missing:
        LOGGER.info("insights_fallback_plan_incomplete", intent=intent, missing=missing)
        return plan.model_copy(
            update={
                "time_range": time_range,
                "student_filter": student,
                "needs_clarification": True,
                "clarifying_question": clarifying_question_for(missing, plan.normalized_query),
                "required_missing_params": tuple(missing),
                "slots": merged,
            }
        )

    return plan.model_copy(
        update={
            "intent": intent,
            "time_range": time_range,
            "student_filter": student,
            "needs_clarification": False,
            "clarifying_question": None,
            "required_missing_params": (),
            "sql_truth_query_key": truth_key_for_intent(intent),
            "slots": merged,
        }
    )


__all__ = [
    "CLARIFICATION_KEY",
    "CLARIFYING_QUESTIONS",
    "INTENT_QUESTION",
    "STUDENT_INTENTS",
    "TIMEFRAME_QUESTION",
    "TRUTH_QUERY_KEYS",
    "apply_fallback_intent",
    "build_query_plan",
    "clarifying_question_for",
    "truth_key_for_intent",
]
