"""Fallback intent classification for questions the rule table cannot place.

The pipeline depends only on the :class:`FallbackClassifier` protocol. The
HTTP implementation posts to the insights router endpoint and treats every
failure as "no answer" so routing degrades to the existing clarification.
"""

from __future__ import annotations

from datetime import date
from typing import Any, Optional, Protocol

import httpx
import structlog

from app.backend.src.schemas.insights import FallbackClassification

LOGGER = structlog.get_logger(__name__)

EXTERNAL_INTENT_MAP: dict[str, str] = {
    "highest_hourly_student": "student_highest_hourly_rate",
    "most_per_hour": "student_highest_hourly_rate",
    "lowest_hourly_student": "student_lowest_hourly_rate",
    "lowest_student_by_hourly_rate": "student_lowest_hourly_rate",
    "lowest_student_by_revenue": "revenue_per_student_in_period",
    "students_below_avg_rate": "students_below_average_rate",
    "earnings_by_range": "earnings_in_period",
    "earnings_total": "earnings_in_period",
    "earnings_in_month": "earnings_in_period",
    "earnings_by_student": "earnings_in_period",
    "avg_monthly_earnings": "earnings_in_period",
    "best_month": "earnings_in_period",
    "worst_month": "earnings_in_period",
    "student_ytd": "earnings_ytd_for_student",
    "student_earnings_for_year": "earnings_ytd_for_student",
    "revenue_per_student_breakdown": "revenue_per_student_in_period",
    "top_student_by_earnings": "revenue_per_student_in_period",
    "revenue_per_lesson": "revenue_per_lesson_in_period",
    "revenue_per_hour": "average_hourly_rate_in_period",
    "avg_hourly_rate": "average_hourly_rate_in_period",
    "forecast": "forecast_monthly",
    "percent_change_yoy": "percent_change_yoy",
    "best_day_of_week": "day_of_week_earnings_max",
    "day_of_week_earnings": "day_of_week_earnings_max",
    "cash_flow": "cash_flow_trend",
    "cashflow_trend": "cash_flow_trend",
    "income_stability": "income_stability",
    "avg_weekly_revenue": "avg_weekly_revenue",
    "lessons_count": "lessons_count_in_period",
    "total_hours": "hours_total_in_period",
    "avg_lessons_per_week": "avg_lessons_per_week_in_period",
    "tax_estimate": "tax_guidance",
    "on_track": "on_track_goal",
    "on_track_goal": "on_track_goal",
    "what_if_add_students": "what_if_add_students",
    "what_if_take_time_off": "what_if_take_time_off",
    "what_if_lose_students": "what_if_lose_top_students",
    "what_if_lose_top_students": "what_if_lose_top_students",
    "students_needed_for_target_income": "students_needed_for_target_income",
    "what_if_rate_change": "what_if_rate_change",
    "what_if_rate_increase": "what_if_rate_change",
}

# Router payload fields -> plan slot names.
_PAYLOAD_SLOTS = {
    "delta_per_hour": "rate_delta_dollars_per_hour",
    "new_students_count": "new_students",
    "rate_per_hour": "rate_dollars_per_hour",
    "year_a": "year_a",
    "year_b": "year_b",
}


def map_external_intent(raw: Optional[str]) -> str:
    """Map the fallback vocabulary onto internal intents; unknown names become ``general_fallback``."""

    return EXTERNAL_INTENT_MAP.get((raw or "").strip().lower(), "general_fallback")


def _slots_from_payload(payload: dict[str, Any], intent: str, raw_intent: str) -> dict[str, Any]:
    slots: dict[str, Any] = {}
    for field_name, slot in _PAYLOAD_SLOTS.items():
        value = payload.get(field_name)
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            slots[slot] = value
    target = payload.get("target_dollars")
    if isinstance(target, (int, float)) and not isinstance(target, bool):
        slots["annual_goal_dollars" if intent == "on_track_goal" else "target_income_dollars"] = target
    if raw_intent.lower() == "lowest_student_by_revenue":
        slots.update(top_n=1, rank_order="asc")
    elif raw_intent.lower() == "top_student_by_earnings":
        slots.update(top_n=1, rank_order="desc")
    return slots


def classification_from_payload(payload: Any) -> Optional[FallbackClassification]:
    """Build a classification from an insights-router response body."""

    if not isinstance(payload, dict) or not isinstance(payload.get("intent"), str):
        return None
    raw_intent = payload["intent"]
    intent = map_external_intent(raw_intent)
    student_name = payload.get("student_name")
    return FallbackClassification(
        intent=intent,
        raw_intent=raw_intent,
        student_name=student_name if isinstance(student_name, str) and student_name.strip() else None,
        slots=_slots_from_payload(payload, intent, raw_intent),
    )


class FallbackClassifier(Protocol):
    """Single capability: classify a question the rules could not place."""

    def classify(
        self,
        question: str,
        *,
        today: date,
        prior_intent: Optional[str] = None,
    ) -> Optional[FallbackClassification]:
        ...


class HttpFallbackClassifier:
    """Calls ``POST {url}`` with ``{question, today_date, priorIntent}``."""

    def __init__(self, url: str, *, timeout: float = 5.0, client: httpx.Client | None = None) -> None:
        self.url = url
        self.timeout = timeout
        self._client = client

    def _post(self, body: dict[str, Any]) -> httpx.Response:
        if self._client is not None:
            return self._client.post(self.url, json=body, timeout=self.timeout)
        with httpx.Client(timeout=self.timeout) as client:
            return client.post(self.url, json=body)

    def classify(
        self,
        question: str,
        *,
        today: date,
        prior_intent: Optional[str] = None,
    ) -> Optional[FallbackClassification]:
        body = {"question": question, "today_date": today.isoformat(), "priorIntent": prior_intent}
        try:
            response = self._post(body)
        except httpx.HTTPError as exc:
            LOGGER.warning("insights_fallback_failed", error=str(exc))
            return None
        if response.status_code != 200:
            LOGGER.warning("insights_fallback_failed", status_code=response.status_code)
            return None
        try:
            payload = response.json()
        except ValueError as exc:
            LOGGER.warning("insights_fallback_failed", error=str(exc))
            return None
        classification = classification_from_payload(payload)
        if classification is None:
            LOGGER.warning("insights_fallback_failed", error="malformed_payload")
        return classification


__all__ = [
    "EXTERNAL_INTENT_MAP",
    "FallbackClassifier",
    "HttpFallbackClassifier",
    "classification_from_payload",
    "map_external_intent",
]
