"""Integration-flavored smoke tests for the FastAPI app."""

from __future__ import annotations

import os
import sys
from datetime import date
from pathlib import Path

sys.path.append(str(Path(__file__).resolve().parents[4]))

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import delete
from sqlalchemy.orm import Session

# Configure environment before application imports
os.environ.setdefault("DATABASE_URL", "sqlite:///./test_insights.db")

from app.backend.src.db import get_engine
from app.backend.src.main import app
from app.backend.src.models import Lesson, Student
from app.backend.src.models.base import Base

USER_ID = "smoke-teacher"


def _clear(engine) -> None:
    with Session(engine) as session:
        session.execute(delete(Lesson).where(Lesson.user_id == USER_ID))
        session.execute(delete(Student).where(Student.user_id == USER_ID))
        session.commit()


@pytest.fixture(scope="module", autouse=True)
def setup_database() -> None:
    engine = get_engine()
    Base.metadata.create_all(engine)
    _clear(engine)
    with Session(engine) as session:
        session.add_all(
            [
                Student(id="smoke-s1", user_id=USER_ID, first_name="Emma", last_name="Kim", rate_cents=7000),
                Student(id="smoke-s2", user_id=USER_ID, first_name="Mason", last_name="Lopez", rate_cents=9000),
            ]
        )
        session.add_all(
            [
                Lesson(
                    id="smoke-l1",
                    user_id=USER_ID,
                    student_id="smoke-s1",
                    lesson_date=date(2026, 1, 6),
                    duration_minutes=60,
                    amount_cents=7000,
                    completed=True,
                ),
                Lesson(
                    id="smoke-l2",
                    user_id=USER_ID,
                    student_id="smoke-s2",
                    lesson_date=date(2026, 1, 8),
                    duration_minutes=60,
                    amount_cents=9000,
                    completed=True,
                ),
                Lesson(
                    id="smoke-l3",
                    user_id=USER_ID,
                    student_id="smoke-s1",
                    lesson_date=date(2026, 1, 13),
                    duration_minutes=60,
                    amount_cents=7000,
                    completed=False,
                ),
            ]
        )
        session.commit()
    yield
    _clear(engine)


@pytest.fixture()
def client() -> TestClient:
    return TestClient(app)


def test_liveness_endpoint(client: TestClient) -> None:
    response = client.get("/api/health/live")
    assert response.status_code == 200
    assert response.json()["status"] == "live"


def test_readiness_against_configured_database(client: TestClient) -> None:
    response = client.get("/api/health/ready")
    assert response.status_code == 200
    assert response.json()["lesson_store"] == "ok"


def test_ask_loads_lessons_for_user(client: TestClient) -> None:
    response = client.post(
        "/api/insights/ask",
        json={"question": "How much did I earn in January 2026?", "user_id": USER_ID, "today": "2026-02-21"},
    )
    assert response.status_code == 200, response.text
    body = response.json()
    assert body["text"] == "$160"
    assert body["metadata"]["explainability"]["counts"] == {"lessons_considered": 3, "completed_lessons": 2}


def test_ask_ranks_students_from_database(client: TestClient) -> None:
    response = client.post(
        "/api/insights/ask",
        json={"question": "Who pays the most?", "user_id": USER_ID, "today": "2026-02-21"},
    )
    assert response.status_code == 200, response.text
    assert response.json()["text"] == "**Mason Lopez** — $90"


def test_metrics_exposes_insights_counters(client: TestClient) -> None:
    response = client.get("/api/metrics")
    assert response.status_code == 200
    assert "insights_questions_total" in response.text
