"""Shared lesson and roster fixtures for the insights tests."""

from __future__ import annotations

import sys
from datetime import date
from pathlib import Path

sys.path.append(str(Path(__file__).resolve().parents[4]))

import pytest

from app.backend.src.schemas.insights import LessonRecord, StudentRecord, StudioSnapshot

TODAY = date(2026, 2, 21)


def _lesson(lesson_id: str, student_id: str, day: str, minutes: int, cents: int, completed: bool = True) -> LessonRecord:
    return LessonRecord(
        id=lesson_id,
        student_id=student_id,
        date=date.fromisoformat(day),
        duration_minutes=minutes,
        amount_cents=cents,
        completed=completed,
    )


def _student(student_id: str, first: str, last: str, rate_cents: int, minutes: int = 60, dow: int = 1) -> StudentRecord:
    return StudentRecord(
        id=student_id,
        first_name=first,
        last_name=last,
        duration_minutes=minutes,
        rate_cents=rate_cents,
        day_of_week=dow,
    )


@pytest.fixture()
def today() -> date:
    return TODAY


@pytest.fixture()
def studio_roster() -> list[StudentRecord]:
    return [
        _student("s1", "Alice", "Parker", 8000, dow=1),
        _student("s2", "Bob", "Lee", 7000, dow=2),
        _student("s3", "Leo", "Chen", 9000, minutes=30, dow=3),
    ]


@pytest.fixture()
def studio_lessons() -> list[LessonRecord]:
    return [
        _lesson("l1", "s1", "2024-06-01", 60, 5000),
        _lesson("l2", "s2", "2024-07-01", 60, 10000),
        _lesson("l3", "s1", "2025-01-15", 60, 8000),
        _lesson("l4", "s1", "2025-01-22", 60, 8000, completed=False),
        _lesson("l5", "s2", "2025-02-01", 60, 7000),
        _lesson("l6", "s3", "2025-02-05", 30, 4500),
        _lesson("l7", "s1", "2026-01-05", 60, 10000),
        _lesson("l8", "s3", "2026-01-12", 30, 6000),
        _lesson("l9", "s2", "2026-01-20", 60, 6000),
    ]


@pytest.fixture()
def studio_snapshot(studio_lessons, studio_roster) -> StudioSnapshot:
    return StudioSnapshot(lessons=tuple(studio_lessons), students=tuple(studio_roster))


@pytest.fixture()
def january_snapshot() -> StudioSnapshot:
    """January 2026 totals $2,580; Emma Kim leads with $810."""

    students = (
        _student("s1", "Lucas", "Parker", 6000, dow=1),
        _student("s2", "Emma", "Kim", 7000, dow=2),
        _student("s3", "Sofia", "Parker", 8000, dow=3),
        _student("s4", "Mason", "Lopez", 9000, dow=4),
    )
    lessons = (
        _lesson("l1", "s1", "2026-01-04", 90, 18000),
        _lesson("l2", "s2", "2026-01-06", 90, 35000),
        _lesson("l3", "s3", "2026-01-07", 90, 40000),
        _lesson("l4", "s4", "2026-01-08", 90, 45000),
        _lesson("l5", "s1", "2026-01-13", 60, 16000),
        _lesson("l6", "s2", "2026-01-14", 60, 30000),
        _lesson("l7", "s3", "2026-01-20", 60, 25000),
        _lesson("l8", "s4", "2026-01-21", 60, 24000),
        _lesson("l9", "s1", "2026-01-27", 60, 9000),
        _lesson("l10", "s2", "2026-01-29", 60, 16000),
        # 2026-02-01 is a Sunday; Tuesday carries the week
        _lesson("l11", "s1", "2026-02-01", 60, 0),
        _lesson("l12", "s2", "2026-02-02", 60, 11000),
        _lesson("l13", "s3", "2026-02-03", 60, 23000),
        _lesson("l14", "s4", "2026-02-04", 60, 12000),
    )
    return StudioSnapshot(lessons=lessons, students=students)
