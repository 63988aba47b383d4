"""Lesson model."""

from __future__ import annotations

from datetime import date

from sqlalchemy import Boolean, CheckConstraint, Date, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base


class Lesson(Base):
    """A single scheduled lesson; ``completed`` marks attendance."""

    __tablename__ = "lessons"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    student_id: Mapped[str] = mapped_column(
        ForeignKey("students.id"), nullable=False, index=True
    )
    lesson_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    time_of_day: Mapped[str | None] = mapped_column(String(16), nullable=True)
    duration_minutes: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    amount_cents: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    completed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    note: Mapped[str | None] = mapped_column(Text, nullable=True)

    student: Mapped["Student"] = relationship("Student", back_populates="lessons")

    __table_args__ = (
        CheckConstraint("duration_minutes >= 0", name="duration_non_negative"),
        CheckConstraint("amount_cents >= 0", name="amount_non_negative"),
    )


__all__ = ["Lesson"]
