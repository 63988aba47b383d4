"""Prometheus metric definitions for the insights pipeline."""

from __future__ import annotations

from prometheus_client import Counter, Histogram

insights_questions_total = Counter(
    "insights_questions_total",
    "Total insights questions answered by resolved intent and router.",
    labelnames=["intent", "router"],
)

insights_clarifications_total = Counter(
    "insights_clarifications_total",
    "Questions answered with a clarifying question, by missing parameter.",
    labelnames=["reason"],
)

insights_fallback_calls_total = Counter(
    "insights_fallback_calls_total",
    "Calls to the fallback intent classifier by outcome.",
    labelnames=["outcome"],
)

insights_verifier_failures_total = Counter(
    "insights_verifier_failures_total",
    "Computed results rejected by the verifier.",
)

insights_pipeline_seconds = Histogram(
    "insights_pipeline_seconds",
    "Time spent answering a single insights question.",
)

__all__ = [
    "insights_clarifications_total",
    "insights_fallback_calls_total",
    "insights_pipeline_seconds",
    "insights_questions_total",
    "insights_verifier_failures_total",
]
