"""Fallback intent classification endpoint backed by OpenAI."""

from __future__ import annotations

from datetime import date
from typing import Any, Optional

import structlog
from fastapi import APIRouter, HTTPException, status
from pydantic import BaseModel, ConfigDict, Field

from app.backend.src.agents.llm_intent_classifier import (
    IntentClassifierUnavailable,
    classify_question,
)

LOGGER = structlog.get_logger(__name__)

router = APIRouter(tags=["insights"])


class InsightsRouterRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    question: Optional[str] = None
    today_date: Optional[date] = None
    prior_intent: Optional[str] = Field(default=None, alias="priorIntent")


class RouterTimeRange(BaseModel):
    type: Optional[str] = None
    year: Optional[int] = None
    month: Optional[int] = None
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    label: Optional[str] = None


class InsightsRouterResponse(BaseModel):
    intent: str
    time_range: Optional[RouterTimeRange] = None
    student_name: Optional[str] = None
    target_dollars: Optional[float] = None
    delta_per_hour: Optional[float] = None
    new_students_count: Optional[float] = None
    rate_per_hour: Optional[float] = None
    year_a: Optional[int] = None
    year_b: Optional[int] = None
    needs_clarification: bool = False
    clarification_question: Optional[str] = None


def _coerce(result: dict[str, Any]) -> InsightsRouterResponse:
    """Drop fields the model filled with the wrong type instead of failing the request."""

    cleaned = dict(result)
    if not isinstance(cleaned.get("time_range"), dict):
        cleaned["time_range"] = None
    for field_name in ("target_dollars", "delta_per_hour", "new_students_count", "rate_per_hour"):
        value = cleaned.get(field_name)
        if not isinstance(value, (int, float)) or isinstance(value, bool):
            cleaned[field_name] = None
    for field_name in ("year_a", "year_b"):
        if not isinstance(cleaned.get(field_name), int) or isinstance(cleaned.get(field_name), bool):
            cleaned[field_name] = None
    for field_name in ("student_name", "clarification_question"):
        if not isinstance(cleaned.get(field_name), str):
            cleaned[field_name] = None
    try:
        return InsightsRouterResponse.model_validate(cleaned)
    except ValueError:
        cleaned["time_range"] = None
        return InsightsRouterResponse.model_validate(cleaned)


@router.post("/insights-router", response_model=InsightsRouterResponse)
def insights_router_endpoint(payload: InsightsRouterRequest) -> InsightsRouterResponse:
    """Classify a question the deterministic router could not place."""

    question = (payload.question or "").strip()
    if not question:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="A question is required.",
        )

    try:
        result = classify_question(
            question,
            today=payload.today_date or date.today(),
            prior_intent=payload.prior_intent,
        )
    except IntentClassifierUnavailable as exc:
        LOGGER.warning("insights_router_unavailable", error=str(exc))
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Intent classifier is temporarily unavailable.",
        ) from exc

    return _coerce(result)


__all__ = ["InsightsRouterRequest", "InsightsRouterResponse", "router"]
