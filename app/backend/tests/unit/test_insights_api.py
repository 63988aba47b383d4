"""Tests for the insights HTTP endpoints."""

from __future__ import annotations

import sys
from pathlib import Path

sys.path.append(str(Path(__file__).resolve().parents[4]))

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy.exc import OperationalError

from app.backend.src.agents.llm_intent_classifier import IntentClassifierUnavailable
from app.backend.src.api import health, insights, insights_router
from app.backend.src.db import get_session_dependency

app = FastAPI()
app.include_router(health.router, prefix="/api")
app.include_router(insights.router, prefix="/api")
app.include_router(insights_router.router, prefix="/api")


class FakeSession:
    def __init__(self, fail: bool = False) -> None:
        self.fail = fail

    def execute(self, statement):
        if self.fail:
            raise OperationalError("SELECT 1", {}, Exception("database is locked"))
        return None


@pytest.fixture()
def client():
    app.dependency_overrides[get_session_dependency] = lambda: FakeSession()
    yield TestClient(app)
    app.dependency_overrides.clear()


def _lesson_payload(studio_lessons):
    return [lesson.model_dump(mode="json") for lesson in studio_lessons]


def _student_payload(studio_roster):
    return [student.model_dump(mode="json") for student in studio_roster]


def test_ask_answers_from_inline_lessons(client, studio_lessons, studio_roster):
    response = client.post(
        "/api/insights/ask",
        json={
            "question": "How much did I earn in Jan 2026?",
            "today": "2026-02-21",
            "lessons": _lesson_payload(studio_lessons),
            "students": _student_payload(studio_roster),
        },
    )
    assert response.status_code == 200
    body = response.json()
    assert body["text"] == "$220"
    assert body["needs_clarification"] is False
    assert body["computed_result"]["outputs"]["kind"] == "earnings"
    assert body["metadata"]["date_range_label"] == "January 2026"
    assert body["next_context"]["intent"] == "earnings_in_period"


def test_ask_round_trips_clarification_context(client, studio_lessons, studio_roster):
    base = {
        "today": "2026-02-21",
        "lessons": _lesson_payload(studio_lessons),
        "students": _student_payload(studio_roster),
    }
    first = client.post("/api/insights/ask", json={**base, "question": "attendance summary"}).json()
    assert first["needs_clarification"] is True

    second = client.post(
        "/api/insights/ask",
        json={**base, "question": "Alice Parker", "prior_context": first["next_context"]},
    ).json()
    assert second["text"] == "**Alice Parker** — 3 attended, 1 missed (75% attendance)"


def test_ask_rejects_blank_question(client):
    assert client.post("/api/insights/ask", json={"question": "   "}).status_code == 400
    assert client.post("/api/insights/ask", json={"question": ""}).status_code == 422


def test_insights_router_classifies(client, monkeypatch):
    captured = {}

    def fake_classify(question, *, today, prior_intent=None):
        captured.update(question=question, today=today, prior_intent=prior_intent)
        return {
            "intent": "on_track",
            "time_range": "this year",
            "student_name": None,
            "target_dollars": 80000,
            "delta_per_hour": "ten",
            "new_students_count": None,
            "rate_per_hour": None,
            "year_a": None,
            "year_b": None,
            "needs_clarification": False,
            "clarification_question": None,
        }

    monkeypatch.setattr(insights_router, "classify_question", fake_classify)
    response = client.post(
        "/api/insights-router",
        json={"question": "am i gonna hit 80k", "today_date": "2026-02-21", "priorIntent": "earnings_in_period"},
    )
    assert response.status_code == 200
    body = response.json()
    assert body["intent"] == "on_track"
    assert body["target_dollars"] == 80000
    assert body["delta_per_hour"] is None
    assert body["time_range"] is None
    assert captured["prior_intent"] == "earnings_in_period"
    assert captured["today"].isoformat() == "2026-02-21"


def test_insights_router_requires_question(client):
    assert client.post("/api/insights-router", json={"question": "  "}).status_code == 400
    assert client.post("/api/insights-router", json={}).status_code == 400


def test_insights_router_unavailable(client, monkeypatch):
    def unavailable(question, *, today, prior_intent=None):
        raise IntentClassifierUnavailable("OPENAI_API_KEY not configured")

    monkeypatch.setattr(insights_router, "classify_question", unavailable)
    response = client.post("/api/insights-router", json={"question": "hello"})
    assert response.status_code == 503


def test_health_endpoints(client):
    assert client.get("/api/health/live").json() == {"status": "live"}
    assert client.get("/api/health/ready").json() == {"status": "ready", "lesson_store": "ok"}
    assert client.get("/api/metrics").status_code == 200


def test_readiness_reports_unreachable_store(client):
    app.dependency_overrides[get_session_dependency] = lambda: FakeSession(fail=True)
    assert client.get("/api/health/ready").status_code == 503
