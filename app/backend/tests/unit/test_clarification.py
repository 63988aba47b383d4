from __future__ import annotations

import sys
from datetime import date
from pathlib import Path

sys.path.append(str(Path(__file__).resolve().parents[4]))

from app.backend.src.agents.clarification import ConversationStage, ConversationState, resume_question
from app.backend.src.schemas.insights import PendingClarification, PriorContext, QueryPlan, TimeRange


def _pending(question: str, *missing: str) -> PendingClarification:
    return PendingClarification(original_question=question, required_missing_params=missing)


def test_resume_question_by_missing_param():
    assert resume_question(_pending("Attendance summary", "student"), "Alice Parker") == (
        "Attendance summary for student Alice Parker"
    )
    assert resume_question(_pending("Most absences", "year"), "2025") == "Most absences in 2025"
    assert resume_question(_pending("What if I raise my rates?", "rate_delta"), "$10/hour") == (
        "What if I raise my rates? by $10/hour"
    )
    assert resume_question(_pending("Am I on track?", "annual_goal"), "$80k") == "Am I on track? $80k"


def test_blank_reply_keeps_original_question():
    assert resume_question(_pending("Most absences", "year"), "   ") == "Most absences"


def test_state_round_trip_through_context():
    state = ConversationState.from_context(None)
    assert state.stage is ConversationStage.AWAITING_QUESTION

    plan = QueryPlan(
        intent="clarification",
        normalized_query="attendance summary",
        sql_truth_query_key="clarification",
        needs_clarification=True,
        required_missing_params=("student",),
    )
    state.ask("Attendance summary", ["student"])
    context = state.next_context(plan)
    assert context.intent is None
    assert context.pending_clarification.required_missing_params == ("student",)

    resumed = ConversationState.from_context(context)
    assert resumed.stage is ConversationStage.AWAITING_CLARIFICATION_REPLY
    assert resumed.effective_question("Bob Lee") == "Attendance summary for student Bob Lee"
    assert resumed.pending is None
    # a second reply is a fresh question
    assert resumed.effective_question("Bob Lee") == "Bob Lee"


def test_answered_state_carries_plan_context():
    time_range = TimeRange(type="month", start=date(2026, 1, 1), end=date(2026, 1, 31))
    plan = QueryPlan(
        intent="earnings_in_period",
        normalized_query="how much did i earn last month",
        time_range=time_range,
        sql_truth_query_key="earnings_in_period",
        slots={"year": 2026},
    )
    state = ConversationState.from_context(PriorContext(intent="lessons_count_in_period"))
    assert state.stage is ConversationStage.ANSWERED
    assert state.effective_question("How much did I earn last month?") == "How much did I earn last month?"

    state.answered()
    context = state.next_context(plan)
    assert context.pending_clarification is None
    assert context.intent == "earnings_in_period"
    assert context.time_range == time_range
    assert context.slots == {"year": 2026}
