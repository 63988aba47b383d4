from __future__ import annotations

import json
import sys
from datetime import date
from pathlib import Path

sys.path.append(str(Path(__file__).resolve().parents[4]))

import httpx

from app.backend.src.agents.fallback_classifier import (
    HttpFallbackClassifier,
    classification_from_payload,
    map_external_intent,
)

URL = "http://router.test/api/insights-router"


def _classifier(handler) -> HttpFallbackClassifier:
    return HttpFallbackClassifier(URL, client=httpx.Client(transport=httpx.MockTransport(handler)))


def test_external_intents_map_onto_internal_vocabulary():
    assert map_external_intent("tax_estimate") == "tax_guidance"
    assert map_external_intent(" Most_Per_Hour ") == "student_highest_hourly_rate"
    assert map_external_intent("what_if_lose_students") == "what_if_lose_top_students"
    assert map_external_intent("forecast") == "forecast_monthly"
    assert map_external_intent("weather") == "general_fallback"
    assert map_external_intent(None) == "general_fallback"


def test_payload_slots():
    on_track = classification_from_payload({"intent": "on_track", "target_dollars": 80000})
    assert on_track.intent == "on_track_goal"
    assert on_track.slots == {"annual_goal_dollars": 80000}

    needed = classification_from_payload(
        {"intent": "students_needed_for_target_income", "target_dollars": 100000, "rate_per_hour": 70}
    )
    assert needed.slots == {"target_income_dollars": 100000, "rate_dollars_per_hour": 70}

    lowest = classification_from_payload({"intent": "lowest_student_by_revenue", "student_name": "  "})
    assert lowest.slots == {"top_n": 1, "rank_order": "asc"}
    assert lowest.student_name is None

    ignored = classification_from_payload({"intent": "what_if_rate_change", "delta_per_hour": True})
    assert ignored.slots == {}


def test_malformed_payloads():
    assert classification_from_payload(None) is None
    assert classification_from_payload([]) is None
    assert classification_from_payload({"intent": 3}) is None


def test_http_classifier_posts_question_and_maps_reply():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"intent": "student_ytd", "student_name": "Emma Kim"})

    result = _classifier(handler).classify("how is emma doing", today=date(2026, 2, 21), prior_intent="earnings_in_period")
    assert seen["body"] == {
        "question": "how is emma doing",
        "today_date": "2026-02-21",
        "priorIntent": "earnings_in_period",
    }
    assert result.intent == "earnings_ytd_for_student"
    assert result.raw_intent == "student_ytd"
    assert result.student_name == "Emma Kim"


def test_http_failures_become_no_answer():
    def unavailable(request: httpx.Request) -> httpx.Response:
        return httpx.Response(503, json={"detail": "LLM unavailable"})

    def not_json(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, text="<html>")

    def refused(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    for handler in (unavailable, not_json, refused):
        assert _classifier(handler).classify("hello", today=date(2026, 2, 21)) is None
