"""Tests for loading studio snapshots from the lesson store."""

from __future__ import annotations

import sys
from datetime import date
from pathlib import Path

sys.path.append(str(Path(__file__).resolve().parents[4]))

import pytest
from sqlalchemy.orm import Session

from app.backend.src.db.session import build_engine
from app.backend.src.models import Lesson, Student
from app.backend.src.models.base import Base
from app.backend.src.services.lesson_store import load_studio_snapshot


@pytest.fixture()
def session():
    engine = build_engine("sqlite:///:memory:")
    Base.metadata.create_all(engine)
    with Session(engine) as db:
        db.add_all(
            [
                Student(id="s1", user_id="teacher-1", first_name="Alice", last_name="Parker", rate_cents=8000),
                Student(id="s2", user_id="teacher-1", first_name="Bob", last_name="Lee", rate_cents=7000),
                Student(id="s9", user_id="teacher-2", first_name="Other", last_name="Studio"),
            ]
        )
        db.add_all(
            [
                Lesson(
                    id="l2",
                    user_id="teacher-1",
                    student_id="s2",
                    lesson_date=date(2026, 1, 20),
                    duration_minutes=60,
                    amount_cents=6000,
                    completed=True,
                ),
                Lesson(
                    id="l1",
                    user_id="teacher-1",
                    student_id="s1",
                    lesson_date=date(2026, 1, 5),
                    duration_minutes=60,
                    amount_cents=10000,
                    completed=False,
                    note="sick",
                ),
                Lesson(
                    id="l9",
                    user_id="teacher-2",
                    student_id="s9",
                    lesson_date=date(2026, 1, 6),
                    duration_minutes=45,
                    amount_cents=5000,
                    completed=True,
                ),
            ]
        )
        db.commit()
        yield db
    engine.dispose()


def test_snapshot_is_scoped_to_user(session):
    snapshot = load_studio_snapshot(session, "teacher-1")
    assert snapshot.source == "database"
    assert [lesson.id for lesson in snapshot.lessons] == ["l1", "l2"]
    assert [student.full_name for student in snapshot.students] == ["Bob Lee", "Alice Parker"]
    assert snapshot.lessons[0].completed is False
    assert snapshot.lessons[0].note == "sick"
    assert snapshot.students_by_id()["s1"].rate_cents == 8000


def test_missing_user_yields_empty_snapshot(session):
    assert load_studio_snapshot(session, None).lessons == ()
    assert load_studio_snapshot(session, "nobody").students == ()
