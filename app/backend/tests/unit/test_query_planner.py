from __future__ import annotations

import sys
from datetime import date
from pathlib import Path

sys.path.append(str(Path(__file__).resolve().parents[4]))

from app.backend.src.agents.normalizer import normalize_question
from app.backend.src.agents.query_planner import (
    CLARIFYING_QUESTIONS,
    INTENT_QUESTION,
    TIMEFRAME_QUESTION,
    apply_fallback_intent,
    build_query_plan,
    truth_key_for_intent,
)
from app.backend.src.schemas.insights import PriorContext, StudentRecord

TODAY = date(2026, 2, 21)
ROSTER = [
    StudentRecord(id="s1", first_name="Alice", last_name="Parker"),
    StudentRecord(id="s2", first_name="Bob", last_name="Lee"),
]


def plan_for(question: str, prior: PriorContext | None = None):
    return build_query_plan(normalize_question(question), prior, today=TODAY, roster=ROSTER)


def test_dropdown_plans_resolve_without_clarification():
    lessons = plan_for("How many lessons did I teach last month?")
    assert lessons.intent == "lessons_count_in_period"
    assert lessons.time_range.type == "month"
    assert lessons.time_range.start == date(2026, 1, 1)

    per_lesson = plan_for("What's my revenue per lesson?")
    assert per_lesson.sql_truth_query_key == "revenue_per_lesson_in_period"
    assert per_lesson.time_range.type == "rolling_days"

    best_day = plan_for("What day of the week do I earn the most?")
    assert best_day.time_range.type == "ytd"


def test_structured_rank_defaults_to_calendar_year():
    plan = plan_for("Who pays the most?")
    assert plan.sql_truth_query_key == "EARNINGS_RANK_MAX"
    assert (plan.time_range.start, plan.time_range.end) == (date(2026, 1, 1), date(2026, 12, 31))
    assert not plan.needs_clarification


def test_children_synonym_and_april_range():
    plan = plan_for("How many children did I teach in April 2024?")
    assert "students" in plan.normalized_query
    assert plan.sql_truth_query_key == "UNIQUE_STUDENT_COUNT"
    assert (plan.time_range.start, plan.time_range.end) == (date(2024, 4, 1), date(2024, 4, 30))


def test_unrouted_question_asks_for_intent():
    plan = plan_for("tell me something random about my studio")
    assert plan.needs_clarification
    assert plan.intent == "clarification"
    assert plan.required_missing_params == ("intent",)
    assert plan.clarifying_question == INTENT_QUESTION


def test_unrouted_money_question_asks_for_timeframe():
    plan = plan_for("money stuff")
    assert plan.clarifying_question == TIMEFRAME_QUESTION


def test_missing_slots_produce_fixed_questions():
    assert plan_for("What if I raise my rates?").clarifying_question == CLARIFYING_QUESTIONS["rate_delta"]
    assert plan_for("Am I on track?").required_missing_params == ("annual_goal",)
    assert plan_for("Most absences").required_missing_params == ("year",)
    assert plan_for("Attendance summary").required_missing_params == ("student",)


def test_competing_timeframes_clarify():
    plan = plan_for("How much revenue did I make this month and last month?")
    assert plan.required_missing_params == ("timeframe",)
    assert plan.sql_truth_query_key == "clarification"


def test_percent_change_years():
    explicit = plan_for("What percent did my earnings change from 2024 to 2025?")
    assert (explicit.slots["year_a"], explicit.slots["year_b"]) == (2024, 2025)
    assert explicit.time_range.start == date(2024, 1, 1)
    assert explicit.time_range.end == date(2025, 12, 31)


def test_student_filter_resolves_against_roster():
    plan = plan_for("Attendance summary for Alice Parker")
    assert plan.student_filter.student_id == "s1"
    assert plan.student_filter.confidence == 1.0
    assert plan.time_range.type == "all"


def test_prior_time_range_carries_into_follow_up():
    first = plan_for("How many lessons did I teach last month?")
    prior = PriorContext(intent=first.intent, time_range=first.time_range, slots=first.slots)
    follow_up = plan_for("What's my revenue per lesson?", prior)
    assert follow_up.time_range == first.time_range


def test_fallback_intent_replaces_clarification():
    plan = plan_for("tell me something random about my studio")
    rerouted = apply_fallback_intent(plan, "tax_guidance", today=TODAY)
    assert rerouted.intent == "tax_guidance"
    assert not rerouted.needs_clarification
    assert rerouted.clarifying_question is None
    assert rerouted.sql_truth_query_key == "tax_guidance"
    assert rerouted.time_range.type == "rolling_days"


def test_truth_key_mapping():
    assert truth_key_for_intent("forecast_yearly") == "forecast_yearly"
    assert truth_key_for_intent("clarification") == "clarification"
    assert truth_key_for_intent("something_else") == "general_fallback"


def test_fallback_intent_missing_a_value_asks_for_that_value():
    plan = plan_for("tell me something random about my studio")
    rerouted = apply_fallback_intent(plan, "what_if_rate_change", today=TODAY)
    assert rerouted.needs_clarification
    assert rerouted.required_missing_params == ("rate_delta",)
    assert rerouted.clarifying_question == CLARIFYING_QUESTIONS["rate_delta"]
    assert rerouted.sql_truth_query_key == "clarification"

    complete = apply_fallback_intent(
        plan, "what_if_rate_change", today=TODAY, slots={"rate_delta_dollars_per_hour": 10}
    )
    assert not complete.needs_clarification
    assert complete.sql_truth_query_key == "what_if_rate_change"


def test_weekly_average_questions_stop_at_today():
    needed = plan_for("How many students do I need to reach $100k at $70/hr?")
    assert needed.intent == "students_needed_for_target_income"
    assert (needed.time_range.type, needed.time_range.end) == ("ytd", TODAY)

    trend = plan_for("What's my cash flow trend this month?")
    assert trend.time_range.end == TODAY

    past = plan_for("Average lessons per week in 2025")
    assert past.time_range.end == date(2025, 12, 31)

    totals = plan_for("How much did I earn in 2026?")
    assert totals.time_range.end == date(2026, 12, 31)
