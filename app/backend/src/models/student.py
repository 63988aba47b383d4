"""Student roster model."""

from __future__ import annotations

from datetime import date

from sqlalchemy import Date, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base


class Student(Base):
    """A studio student with a default weekly schedule."""

    __tablename__ = "students"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    first_name: Mapped[str] = mapped_column(String(128), nullable=False, default="")
    last_name: Mapped[str] = mapped_column(String(128), nullable=False, default="")
    duration_minutes: Mapped[int] = mapped_column(Integer, nullable=False, default=60)
    rate_cents: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    day_of_week: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    time_of_day: Mapped[str] = mapped_column(String(16), nullable=False, default="12:00 PM")

    # Schedule override applied on/after schedule_change_from_date
    schedule_change_from_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    schedule_change_day_of_week: Mapped[int | None] = mapped_column(Integer, nullable=True)
    schedule_change_time_of_day: Mapped[str | None] = mapped_column(String(16), nullable=True)
    schedule_change_duration_minutes: Mapped[int | None] = mapped_column(Integer, nullable=True)
    schedule_change_rate_cents: Mapped[int | None] = mapped_column(Integer, nullable=True)
    terminated_from_date: Mapped[date | None] = mapped_column(Date, nullable=True)

    lessons: Mapped[list["Lesson"]] = relationship("Lesson", back_populates="student")


__all__ = ["Student"]
