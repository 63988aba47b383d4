"""LLM-backed intent classifier behind the insights router endpoint.

The model only names an intent and extracts parameters. It never sees lesson
data and its reply never carries computed amounts.
"""

from __future__ import annotations

import json
from datetime import date
from typing import Any, Optional

import structlog
from openai import OpenAI

from app.backend.src.core.config import Settings, get_settings

LOGGER = structlog.get_logger(__name__)

SYSTEM_PROMPT = """You classify questions asked in a music teacher's studio earnings app.

Return a single JSON object naming the user's intent and any parameters you can read
from the question. Never calculate earnings, rates, percentages or counts. No prose,
no markdown.

Questions may be in English, Spanish or Simplified Chinese. Always answer with the
English intent names below.

Intents:
- earnings_total: overall or current-year earnings summary
- earnings_by_range: earnings for a period such as this month, last month, a year or ytd
- earnings_in_month: earnings for a named month and year ("revenue in January 2026")
- earnings_by_student: earnings for one student, no specific period
- student_earnings_for_year: one student's earnings in a given year
- student_ytd: one student's year-to-date earnings
- avg_hourly_rate: average hourly rate across lessons
- revenue_per_lesson: average revenue per lesson
- revenue_per_hour: revenue per hour taught
- top_student_by_earnings: the student who brought in the most ("who pays the most?", "my best student")
- most_per_hour: the student with the highest hourly rate
- lowest_student_by_hourly_rate: the student with the lowest hourly rate
- lowest_student_by_revenue: the student who brought in the least revenue
- students_below_avg_rate: students whose rate is below the studio average
- revenue_per_student_breakdown: revenue listed by student
- best_month / worst_month: the highest or lowest earning month
- percent_change_yoy: year-over-year comparison in percent
- avg_monthly_earnings: average monthly income
- lessons_count: number of lessons taught in a period
- total_hours: hours taught in a period
- avg_lessons_per_week: average lessons per week
- cash_flow: cash flow trend or income stability
- tax_estimate: how much to set aside for taxes
- forecast: projected future earnings
- on_track: whether an annual earnings goal will be reached
- what_if_rate_change: effect of raising or lowering rates
- what_if_add_students: effect of adding students
- what_if_lose_students: effect of losing top students
- clarification: unrelated, or missing both a metric and any time context

Reply with exactly these keys, using null where unknown:
{"intent": str, "time_range": {"type": "month"|"ytd"|"year"|"custom"|"all"|null,
 "year": int|null, "month": int|null, "start_date": "YYYY-MM-DD"|null,
 "end_date": "YYYY-MM-DD"|null, "label": "last_month"|"this_month"|"last_year"|"this_year"|null},
 "student_name": str|null, "target_dollars": number|null, "delta_per_hour": number|null,
 "new_students_count": number|null, "rate_per_hour": number|null, "year_a": int|null,
 "year_b": int|null, "needs_clarification": bool, "clarification_question": str|null}

Time ranges are relative to the date given in the user message. "this month" and
"last month" use type "month" with the matching label; "this year", "ytd" and "year to
date" use type "ytd" with label "this_year"; "last year" is the previous calendar year;
a bare year or month and year fills year and month. Leave time_range empty when the
question names no period.

Only ask for clarification when both the metric and the timeframe are missing. Map
broken or spoken grammar ("who my best student", "how much i make feb 2026") to the
closest intent. For percent_change_yoy, year_a is the earlier year and year_b the later
one; with one year, compare it with the year before. "$80k" is 80000."""


class IntentClassifierUnavailable(RuntimeError):
    """The classifier could not produce an answer (no key, call failure, bad JSON)."""


def _user_message(question: str, today: date, prior_intent: Optional[str]) -> str:
    if prior_intent:
        return f"Today is {today.isoformat()}. Previous intent: {prior_intent}. Question: {question}"
    return f"Today is {today.isoformat()}. Question: {question}"


def _sanitize(parsed: dict[str, Any]) -> dict[str, Any]:
    intent = parsed.get("intent") if isinstance(parsed.get("intent"), str) else "clarification"
    return {
        "intent": intent,
        "time_range": parsed.get("time_range"),
        "student_name": parsed.get("student_name"),
        "target_dollars": parsed.get("target_dollars"),
        "delta_per_hour": parsed.get("delta_per_hour"),
        "new_students_count": parsed.get("new_students_count"),
        "rate_per_hour": parsed.get("rate_per_hour"),
        "year_a": parsed.get("year_a"),
        "year_b": parsed.get("year_b"),
        "needs_clarification": intent == "clarification" or bool(parsed.get("needs_clarification")),
        "clarification_question": parsed.get("clarification_question"),
    }


def classify_question(
    question: str,
    *,
    today: date,
    prior_intent: Optional[str] = None,
    client: OpenAI | None = None,
    settings: Settings | None = None,
) -> dict[str, Any]:
    """Ask the model for an intent; raises :class:`IntentClassifierUnavailable` on any failure."""

    settings = settings or get_settings()
    if client is None:
        if not settings.openai_api_key:
            raise IntentClassifierUnavailable("OPENAI_API_KEY not configured")
        client = OpenAI(api_key=settings.openai_api_key)

    try:
        response = client.chat.completions.create(
            model=settings.insights_router_model,
            response_format={"type": "json_object"},
            temperature=0,
            max_tokens=400,
            messages=[
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": _user_message(question, today, prior_intent)},
            ],
        )
        raw = response.choices[0].message.content or "{}"
    except Exception as exc:  # pragma: no cover - defensive
        LOGGER.warning("insights_router_llm_failed", error=str(exc))
        raise IntentClassifierUnavailable("OpenAI request failed") from exc

    try:
        parsed = json.loads(raw)
    except ValueError as exc:
        LOGGER.warning("insights_router_invalid_json", raw_preview=raw[:200])
        raise IntentClassifierUnavailable("Invalid JSON from LLM") from exc
    if not isinstance(parsed, dict):
        raise IntentClassifierUnavailable("Invalid JSON from LLM")

    result = _sanitize(parsed)
    LOGGER.info("insights_router_classified", intent=result["intent"])
    return result


__all__ = ["IntentClassifierUnavailable", "SYSTEM_PROMPT", "classify_question"]
