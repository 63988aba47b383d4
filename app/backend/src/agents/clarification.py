"""One-turn clarification protocol.

A question that needs more detail leaves a :class:`PendingClarification` in
the context handed back to the caller. The caller's next message is treated
as the reply and merged into the original question before it is routed
again.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Sequence

import structlog

from app.backend.src.schemas.insights import (
    PendingClarification,
    PriorContext,
    QueryPlan,
)

LOGGER = structlog.get_logger(__name__)


class ConversationStage(str, Enum):
    AWAITING_QUESTION = "awaiting_question"
    AWAITING_CLARIFICATION_REPLY = "awaiting_clarification_reply"
    ANSWERED = "answered"


def resume_question(pending: PendingClarification, reply: str) -> str:
    """Fold the user's reply into the question that prompted the clarification."""

    question = pending.original_question.strip()
    answer = (reply or "").strip()
    if not answer:
        return question
    missing = pending.required_missing_params
    if "student" in missing:
        return f"{question} for student {answer}"
    if "year" in missing:
        return f"{question} in {answer}"
    if "rate_delta" in missing:
        return f"{question} by {answer}"
    return f"{question} {answer}"


@dataclass
class ConversationState:
    """Caller-carried conversation state for a single prior turn."""

    stage: ConversationStage = ConversationStage.AWAITING_QUESTION
    pending: Optional[PendingClarification] = None

    @classmethod
    def from_context(cls, context: Optional[PriorContext]) -> "ConversationState":
        if context is None:
            return cls()
        if context.pending_clarification is not None:
            return cls(
                stage=ConversationStage.AWAITING_CLARIFICATION_REPLY,
                pending=context.pending_clarification,
            )
        return cls(stage=ConversationStage.ANSWERED)

    def effective_question(self, text: str) -> str:
        """Return ``text`` rewritten against the pending question, if any."""

        if self.stage is not ConversationStage.AWAITING_CLARIFICATION_REPLY or self.pending is None:
            return text
        resumed = resume_question(self.pending, text)
        LOGGER.info(
            "insights_clarification_resumed",
            missing=list(self.pending.required_missing_params),
        )
        self.stage = ConversationStage.AWAITING_QUESTION
        self.pending = None
        return resumed

    def ask(self, question: str, missing: Sequence[str]) -> None:
        self.stage = ConversationStage.AWAITING_CLARIFICATION_REPLY
        self.pending = PendingClarification(original_question=question, required_missing_params=tuple(missing))

    def answered(self) -> None:
        self.stage = ConversationStage.ANSWERED
        self.pending = None

    def next_context(self, plan: QueryPlan) -> PriorContext:
        """Context the caller should send with the next turn."""

        if self.stage is ConversationStage.AWAITING_CLARIFICATION_REPLY:
            # The resumed question is re-planned from scratch; only the pending question carries over.
            return PriorContext(pending_clarification=self.pending)
        return PriorContext(
            intent=plan.intent,
            time_range=plan.time_range,
            student_filter=plan.student_filter,
            slots=dict(plan.slots),
        )


__all__ = ["ConversationStage", "ConversationState", "resume_question"]
