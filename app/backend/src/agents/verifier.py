"""Sanity checks applied to computed results before they are phrased."""

from __future__ import annotations

import structlog

from app.backend.src.schemas.insights import ComputedResult, QueryPlan, VerificationResult
from app.backend.src.schemas.truth_outputs import (
    AverageHourlyRateOutput,
    ClarificationOutput,
    ErrorOutput,
    HourlyRateRankOutput,
)

LOGGER = structlog.get_logger(__name__)

DEFAULT_HOURLY_CEILING_DOLLARS = 1000.0


def verify_result(
    plan: QueryPlan,
    computed: ComputedResult,
    *,
    hourly_ceiling_dollars: float = DEFAULT_HOURLY_CEILING_DOLLARS,
) -> VerificationResult:
    """Return pass/fail plus the reasons; any failure forces low confidence."""

    errors: list[str] = []
    output = computed.outputs
    is_clarification_plan = plan.needs_clarification or plan.intent == "clarification"

    if isinstance(output, ErrorOutput):
        errors.append(output.error)
    if is_clarification_plan and not isinstance(output, ClarificationOutput):
        errors.append("Clarification plan did not return clarification result.")
    if not is_clarification_plan and computed.confidence == "low" and not output.has_metric:
        errors.append("Low confidence computation.")

    total_dollars = getattr(output, "total_dollars", None)
    if isinstance(total_dollars, (int, float)) and total_dollars < 0:
        errors.append("Negative total dollars.")

    if isinstance(output, (HourlyRateRankOutput, AverageHourlyRateOutput)):
        hourly = output.hourly_dollars
        if hourly is not None and hourly > hourly_ceiling_dollars:
            errors.append("Hourly rate out of expected range.")

    if errors:
        LOGGER.info("insights_verification_failed", intent=plan.intent, errors=errors)
    return VerificationResult(
        passed=not errors,
        errors=errors,
        confidence="low" if errors else computed.confidence,
    )


__all__ = ["DEFAULT_HOURLY_CEILING_DOLLARS", "verify_result"]
