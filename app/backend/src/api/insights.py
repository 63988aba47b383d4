"""Natural-language insights endpoint."""

from __future__ import annotations

from datetime import date
from typing import Any, Optional

import structlog
from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from app.backend.src.agents.fallback_classifier import HttpFallbackClassifier
from app.backend.src.agents.pipeline import ask_question
from app.backend.src.core.config import Settings, get_settings
from app.backend.src.schemas.insights import (
    AskContext,
    AskInsightsResult,
    DebugOptions,
    LessonRecord,
    PriorContext,
    StudentRecord,
)
from app.backend.src.services.lesson_store import load_studio_snapshot

from ..db import get_session_dependency

LOGGER = structlog.get_logger(__name__)

router = APIRouter(prefix="/insights", tags=["insights"])


class AskInsightsRequest(BaseModel):
    question: str = Field(..., min_length=1)
    today: Optional[date] = None
    user_id: Optional[str] = None
    lessons: Optional[list[LessonRecord]] = None
    students: Optional[list[StudentRecord]] = None
    prior_context: Optional[PriorContext] = None
    debug: Optional[DebugOptions] = None


def _fallback_classifier(settings: Settings) -> Optional[HttpFallbackClassifier]:
    if not settings.fallback_enabled:
        return None
    return HttpFallbackClassifier(
        settings.insights_router_url,
        timeout=settings.insights_router_timeout_seconds,
    )


@router.post("/ask", response_model=AskInsightsResult)
def ask_insights(
    payload: AskInsightsRequest,
    session: Session = Depends(get_session_dependency),
) -> Any:
    """Answer a question about the studio's lessons and earnings."""

    question = payload.question.strip()
    if not question:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="A question is required.",
        )

    settings = get_settings()
    context = AskContext(
        user_id=payload.user_id,
        lessons=payload.lessons,
        students=payload.students,
        prior_context=payload.prior_context,
        today=payload.today,
    )
    debug = payload.debug or DebugOptions(enabled=settings.insights_debug, log_trace=settings.insights_debug)

    LOGGER.info(
        "insights_ask_received",
        user_id=payload.user_id,
        inline_data=payload.lessons is not None or payload.students is not None,
        resuming=bool(payload.prior_context and payload.prior_context.pending_clarification),
    )
    return ask_question(
        question,
        context,
        fallback_classifier=_fallback_classifier(settings),
        debug=debug,
        snapshot_loader=lambda user_id: load_studio_snapshot(session, user_id),
    )


__all__ = ["AskInsightsRequest", "router"]
