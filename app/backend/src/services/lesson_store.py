"""Read-only access to a teacher's lessons and roster."""

from __future__ import annotations

from typing import Optional

import structlog
from sqlalchemy import select
from sqlalchemy.orm import Session

from app.backend.src.models import Lesson, Student
from app.backend.src.schemas.insights import LessonRecord, StudentRecord, StudioSnapshot

LOGGER = structlog.get_logger(__name__)


def _lesson_record(row: Lesson) -> LessonRecord:
    return LessonRecord(
        id=row.id,
        student_id=row.student_id,
        date=row.lesson_date,
        duration_minutes=row.duration_minutes or 0,
        amount_cents=row.amount_cents or 0,
        completed=bool(row.completed),
        time_of_day=row.time_of_day,
        note=row.note,
    )


def _student_record(row: Student) -> StudentRecord:
    return StudentRecord(
        id=row.id,
        first_name=row.first_name or "",
        last_name=row.last_name or "",
        duration_minutes=row.duration_minutes,
        rate_cents=row.rate_cents,
        day_of_week=row.day_of_week,
        time_of_day=row.time_of_day,
        schedule_change_from_date=row.schedule_change_from_date,
        schedule_change_day_of_week=row.schedule_change_day_of_week,
        schedule_change_time_of_day=row.schedule_change_time_of_day,
        schedule_change_duration_minutes=row.schedule_change_duration_minutes,
        schedule_change_rate_cents=row.schedule_change_rate_cents,
        terminated_from_date=row.terminated_from_date,
    )


def load_studio_snapshot(session: Session, user_id: Optional[str]) -> StudioSnapshot:
    """Load every lesson and student owned by ``user_id``.

    Rows are copied into frozen records so nothing downstream can write back
    through the session.
    """

    if not user_id:
        return StudioSnapshot(source="database")

    lessons = session.scalars(
        select(Lesson).where(Lesson.user_id == user_id).order_by(Lesson.lesson_date, Lesson.id)
    ).all()
    students = session.scalars(
        select(Student).where(Student.user_id == user_id).order_by(Student.last_name, Student.first_name)
    ).all()

    LOGGER.info(
        "insights_snapshot_loaded",
        user_id=user_id,
        lesson_count=len(lessons),
        student_count=len(students),
    )
    return StudioSnapshot(
        lessons=tuple(_lesson_record(row) for row in lessons),
        students=tuple(_student_record(row) for row in students),
        source="database",
    )


__all__ = ["load_studio_snapshot"]
