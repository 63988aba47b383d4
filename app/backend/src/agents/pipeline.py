"""End-to-end insights question answering.

``ask_question`` wires the deterministic stages together: clarification
resumption, normalization, planning, the optional fallback classifier,
truth computation, verification and formatting. Every number in the answer
comes from the truth engine; the fallback classifier only names intents.
"""

from __future__ import annotations

from datetime import date
from typing import Any, Callable, Optional

import structlog

from app.backend.src.agents.answer_formatter import WHICH_STUDENT, format_answer
from app.backend.src.agents.clarification import ConversationState
from app.backend.src.agents.fallback_classifier import FallbackClassifier
from app.backend.src.agents.intent_router import has_money_signal
from app.backend.src.agents.normalizer import normalize_question
from app.backend.src.agents.query_planner import (
    TIMEFRAME_QUESTION,
    apply_fallback_intent,
    build_query_plan,
)
from app.backend.src.agents.time_ranges import humanize_range_label
from app.backend.src.agents.truth_queries import compute_from_plan
from app.backend.src.agents.verifier import verify_result
from app.backend.src.core.config import get_settings
from app.backend.src.schemas.insights import (
    AskContext,
    AskInsightsResult,
    ComputedResult,
    DebugOptions,
    Explainability,
    ExplainabilityDateRange,
    InsightsMetadata,
    InsightsTrace,
    QueryPlan,
    StudioSnapshot,
    VerificationResult,
)
from app.backend.src.schemas.truth_outputs import ErrorOutput
from app.backend.src.services.metrics import (
    insights_clarifications_total,
    insights_fallback_calls_total,
    insights_pipeline_seconds,
    insights_questions_total,
    insights_verifier_failures_total,
)

LOGGER = structlog.get_logger(__name__)

DEFAULT_QUESTION = "Show my earnings summary"
LOW_CONFIDENCE_QUESTION = (
    "I’m not sure I have enough confidence to answer that. "
    "Did you mean earnings, attendance, rate, or forecast?"
)

SnapshotLoader = Callable[[Optional[str]], StudioSnapshot]

# intent -> (aggregation type, formula) reported in explainability metadata
AGGREGATIONS: dict[str, tuple[str, str]] = {
    "student_highest_hourly_rate": ("argmax", "max(student_hourly_rate_dollars)"),
    "student_lowest_hourly_rate": ("argmin", "min(student_hourly_rate_dollars)"),
    "students_below_average_rate": ("filter", "student_hourly_rate_dollars < avg_hourly_rate_dollars"),
    "earnings_in_period": ("sum", "sum(amount_dollars)"),
    "lessons_count_in_period": ("count", "count(completed_lessons)"),
    "hours_total_in_period": ("sum", "sum(duration_minutes) / 60"),
    "avg_lessons_per_week_in_period": ("ratio", "count(completed_lessons) / weeks_in_range"),
    "revenue_per_lesson_in_period": ("ratio", "sum(amount_dollars) / count(completed_lessons)"),
    "earnings_ytd_for_student": ("sum", "sum(amount_dollars where student=target)"),
    "student_missed_most_lessons_in_year": ("argmax", "max(missed_lessons_count)"),
    "student_completed_most_lessons_in_year": ("argmax", "max(completed_lessons_count)"),
    "student_attendance_summary": ("ratio", "attended_lessons / scheduled_lessons"),
    "unique_student_count_in_period": ("count_distinct", "count(distinct student_id)"),
    "revenue_per_student_in_period": ("group_by", "sum(amount_dollars) by student"),
    "avg_weekly_revenue": ("ratio", "sum(amount_dollars) / week_count"),
    "cash_flow_trend": ("timeseries", "weekly sum(amount_dollars) + direction"),
    "income_stability": ("dispersion", "coefficient_of_variation(weekly revenue)"),
    "what_if_rate_change": ("simulation", "sum(hours) * rate_delta + current_total"),
    "what_if_add_students": (
        "simulation",
        "avg_weekly_per_student * new_students + current_avg_weekly",
    ),
    "what_if_take_time_off": ("simulation", "avg_weekly * weeks_off (lost)"),
    "what_if_lose_top_students": ("simulation", "current_total - sum(top_n students revenue)"),
    "students_needed_for_target_income": (
        "solve",
        "ceil(target_income / income_per_student_year)",
    ),
    "tax_guidance": ("guidance", "suggested set-aside range from earnings"),
    "forecast_monthly": ("forecast", "projected_monthly_dollars"),
    "forecast_yearly": ("forecast", "projected_yearly_dollars"),
    "percent_change_yoy": ("percent_change", "(current - previous) / previous"),
    "average_hourly_rate_in_period": ("ratio", "sum(amount_dollars) / sum(hours)"),
    "day_of_week_earnings_max": ("argmax", "max(sum(amount_dollars) by weekday)"),
    "on_track_goal": ("projection", "ytd_dollars / elapsed_days * days_in_year vs goal"),
    "general_fallback": ("fallback", "deterministic fallback response"),
    "clarification": ("clarification", "missing required parameters"),
}

_RANGE_LABEL_INTENTS = frozenset(
    {"student_missed_most_lessons_in_year", "student_completed_most_lessons_in_year"}
)


def _load_from_store(user_id: Optional[str]) -> StudioSnapshot:
    from app.backend.src.db import get_session
    from app.backend.src.services.lesson_store import load_studio_snapshot

    with get_session() as session:
        return load_studio_snapshot(session, user_id)


def _snapshot_for(context: AskContext, loader: Optional[SnapshotLoader]) -> Optional[StudioSnapshot]:
    if context.lessons is not None or context.students is not None:
        return StudioSnapshot(
            lessons=tuple(context.lessons or ()),
            students=tuple(context.students or ()),
            source="memory",
        )
    if loader is None and not context.user_id:
        return StudioSnapshot()
    try:
        return (loader or _load_from_store)(context.user_id)
    except Exception as exc:  # pragma: no cover - defensive
        LOGGER.warning("insights_snapshot_load_failed", user_id=context.user_id, error=str(exc))
        return None


def _apply_fallback(
    plan: QueryPlan,
    question: str,
    classifier: FallbackClassifier,
    *,
    today: date,
    prior_intent: Optional[str],
    snapshot: Optional[StudioSnapshot],
) -> Optional[QueryPlan]:
    try:
        classification = classifier.classify(question, today=today, prior_intent=prior_intent)
    except Exception as exc:  # pragma: no cover - defensive
        LOGGER.warning("insights_fallback_failed", error=str(exc))
        insights_fallback_calls_total.labels(outcome="error").inc()
        return None

    if classification is None:
        insights_fallback_calls_total.labels(outcome="no_answer").inc()
        return None
    if classification.intent in {"general_fallback", "clarification"}:
        insights_fallback_calls_total.labels(outcome="unmapped").inc()
        LOGGER.info("insights_fallback_unmapped", raw_intent=classification.raw_intent)
        return None

    insights_fallback_calls_total.labels(outcome="answered").inc()
    LOGGER.info(
        "insights_fallback_applied",
        raw_intent=classification.raw_intent,
        intent=classification.intent,
    )
    return apply_fallback_intent(
        plan,
        classification.intent,
        today=today,
        slots=classification.slots,
        student_name=classification.student_name,
        roster=list(snapshot.students) if snapshot is not None else None,
    )


def _trace_params(plan: QueryPlan) -> dict[str, Any]:
    params = plan.truth_params()
    return {
        key: value.isoformat() if isinstance(value, date) else value
        for key, value in params.items()
    }


def _result_summary(computed: ComputedResult) -> dict[str, Any]:
    output = computed.outputs
    summary: dict[str, Any] = {"kind": output.kind, "has_metric": output.has_metric}
    for field_name in ("lesson_count", "total_dollars", "zero_cause", "error"):
        value = getattr(output, field_name, None)
        if value is not None:
            summary[field_name] = value
    rows = getattr(output, "rows", None)
    if isinstance(rows, list):
        summary["row_count"] = len(rows)
    return summary


def _range_counts(plan: QueryPlan, snapshot: Optional[StudioSnapshot]) -> tuple[int, int]:
    if snapshot is None:
        return 0, 0
    lessons = [
        lesson
        for lesson in snapshot.lessons
        if plan.time_range is None or plan.time_range.contains(lesson.date)
    ]
    student_id = plan.student_filter.student_id if plan.student_filter else None
    if student_id:
        lessons = [lesson for lesson in lessons if lesson.student_id == student_id]
    return len(lessons), sum(1 for lesson in lessons if lesson.completed)


def build_metadata(
    plan: QueryPlan,
    computed: Optional[ComputedResult],
    snapshot: Optional[StudioSnapshot],
    router_used: str,
) -> InsightsMetadata:
    """Describe which data and aggregation produced the answer."""

    considered, completed = _range_counts(plan, snapshot)
    output_count = getattr(computed.outputs, "lesson_count", None) if computed else None
    label = humanize_range_label(plan.time_range)
    aggregation_type, formula = AGGREGATIONS.get(plan.intent, ("unknown", ""))
    student_id = plan.student_filter.student_id if plan.student_filter else None

    return InsightsMetadata(
        lesson_count=output_count if isinstance(output_count, int) else considered,
        date_range_label=label,
        completed_only=True,
        router_used=router_used,
        explainability=Explainability(
            metric_id=plan.sql_truth_query_key,
            date_range=ExplainabilityDateRange(
                start=plan.time_range.start if plan.time_range else None,
                end=plan.time_range.end if plan.time_range else None,
                label=label,
            ),
            filters={"completed_only": True, "student_ids": [student_id] if student_id else []},
            counts={"lessons_considered": considered, "completed_lessons": completed},
            aggregation={"type": aggregation_type, "formula": formula},
        ),
    )


def _student_unresolved(computed: ComputedResult) -> bool:
    output = computed.outputs
    return getattr(output, "zero_cause", None) == "student_not_resolved" or (
        isinstance(output, ErrorOutput) and output.error == "student_not_resolved"
    )


def ask_question(
    text: Optional[str],
    context: Optional[AskContext] = None,
    *,
    fallback_classifier: Optional[FallbackClassifier] = None,
    debug: Optional[DebugOptions] = None,
    snapshot_loader: Optional[SnapshotLoader] = None,
) -> AskInsightsResult:
    """Answer one natural-language question about the studio's finances."""

    with insights_pipeline_seconds.time():
        return _answer(
            text,
            context or AskContext(),
            fallback_classifier=fallback_classifier,
            debug=debug or DebugOptions(),
            snapshot_loader=snapshot_loader,
        )


def _answer(
    text: Optional[str],
    context: AskContext,
    *,
    fallback_classifier: Optional[FallbackClassifier],
    debug: DebugOptions,
    snapshot_loader: Optional[SnapshotLoader],
) -> AskInsightsResult:
    prior = context.prior_context
    state = ConversationState.from_context(prior)
    resuming = state.pending is not None
    question = state.effective_question((text or "").strip() or DEFAULT_QUESTION)
    normalized = normalize_question(question)
    today = context.today or date.today()

    snapshot = _snapshot_for(context, snapshot_loader)
    roster = list(snapshot.students) if snapshot is not None else None
    planning_context = None if resuming else prior
    plan = build_query_plan(normalized, planning_context, today=today, roster=roster)

    router_used = "regex"
    if "intent" in plan.required_missing_params and fallback_classifier is not None:
        rerouted = _apply_fallback(
            plan,
            question,
            fallback_classifier,
            today=today,
            prior_intent=planning_context.intent if planning_context else None,
            snapshot=snapshot,
        )
        if rerouted is not None:
            plan = rerouted
            router_used = "llm"

    trace = InsightsTrace(
        query=question,
        normalized_query=normalized,
        query_plan=plan,
        sql_query_key=plan.sql_truth_query_key,
        sql_params=_trace_params(plan),
    )

    if plan.needs_clarification:
        answer = plan.clarifying_question or LOW_CONFIDENCE_QUESTION
        state.ask(question, plan.required_missing_params)
        for reason in plan.required_missing_params or ("unknown",):
            insights_clarifications_total.labels(reason=reason).inc()
        insights_questions_total.labels(intent="clarification", router=router_used).inc()
        trace = trace.model_copy(update={"final_answer_text": answer})
        _log_trace(debug, trace)
        return AskInsightsResult(
            text=answer,
            computed_result=None,
            needs_clarification=True,
            clarifying_question=answer,
            metadata=build_metadata(plan, None, snapshot, router_used),
            trace=trace,
            next_context=state.next_context(plan),
        )

    if snapshot is None:
        computed = ComputedResult(
            intent=plan.intent,
            query_key=plan.sql_truth_query_key,
            outputs=ErrorOutput(error="snapshot_unavailable"),
            confidence="low",
            warnings=["snapshot_unavailable"],
        )
    else:
        computed = compute_from_plan(plan, snapshot)

    verification = verify_result(
        plan,
        computed,
        hourly_ceiling_dollars=get_settings().insights_hourly_ceiling_dollars,
    )
    if not verification.passed:
        insights_verifier_failures_total.inc()

    range_label = humanize_range_label(plan.time_range) if plan.intent in _RANGE_LABEL_INTENTS else None
    answer, needs_clarification, missing = _final_answer(plan, computed, verification, range_label)

    if needs_clarification:
        state.ask(question, missing)
        for reason in missing:
            insights_clarifications_total.labels(reason=reason).inc()
    else:
        state.answered()
    insights_questions_total.labels(intent=plan.intent, router=router_used).inc()

    trace = trace.model_copy(
        update={
            "sql_result_summary": _result_summary(computed),
            "computed_result": computed,
            "verifier_passed": verification.passed,
            "verifier_errors": verification.errors,
            "zero_cause": getattr(computed.outputs, "zero_cause", None),
            "final_answer_text": answer,
        }
    )
    _log_trace(debug, trace)

    return AskInsightsResult(
        text=answer,
        computed_result=computed,
        needs_clarification=needs_clarification,
        clarifying_question=answer if needs_clarification else None,
        metadata=build_metadata(plan, computed, snapshot, router_used),
        trace=trace,
        next_context=state.next_context(plan),
    )


def _final_answer(
    plan: QueryPlan,
    computed: ComputedResult,
    verification: VerificationResult,
    range_label: Optional[str],
) -> tuple[str, bool, list[str]]:
    """Return the answer text, whether it is a clarification, and what is missing."""

    answer = format_answer(computed, range_label=range_label)
    if computed.outputs.has_metric:
        return answer, False, []

    doubtful = not verification.passed or verification.confidence == "low"
    if _student_unresolved(computed):
        return WHICH_STUDENT, doubtful, ["student"]
    if has_money_signal(plan.normalized_query):
        return TIMEFRAME_QUESTION, doubtful, ["timeframe"]
    if doubtful:
        return plan.clarifying_question or LOW_CONFIDENCE_QUESTION, True, ["intent"]
    return answer, False, []


def _log_trace(debug: DebugOptions, trace: InsightsTrace) -> None:
    if debug.log_trace:
        LOGGER.info("insights_trace", trace=trace.model_dump(mode="json"))
    elif debug.enabled and trace.verifier_errors:
        LOGGER.warning("insights_verifier_errors", errors=trace.verifier_errors)


__all__ = [
    "AGGREGATIONS",
    "DEFAULT_QUESTION",
    "LOW_CONFIDENCE_QUESTION",
    "ask_question",
    "build_metadata",
]
