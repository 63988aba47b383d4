"""Run-rate forecasts over completed lesson history."""

from __future__ import annotations

from datetime import timedelta
from typing import Optional, Sequence

from app.backend.src.agents.earnings_truth import round2
from app.backend.src.schemas.insights import LessonRecord

WEEKS_PER_MONTH = 4.345
WEEKS_PER_YEAR = 52
MIN_TREND_ROWS = 6
TREND_THRESHOLD = 0.08
TREND_MULTIPLIERS = {"up": 1.05, "down": 0.95}


def compute_avg_weekly(lessons: Sequence[LessonRecord]) -> Optional[float]:
    """Average weekly dollars across the span from first to last lesson."""

    if not lessons:
        return None
    dates = sorted(lesson.date for lesson in lessons)
    days = max(1, (dates[-1] - dates[0]).days) + 1
    total_dollars = sum(lesson.amount_cents for lesson in lessons) / 100
    return round2(total_dollars / (days / 7))


def compute_trend(lessons: Sequence[LessonRecord]) -> str:
    """Last 14 days against the 14 before them, anchored on the latest lesson."""

    if len(lessons) < MIN_TREND_ROWS:
        return "unknown"
    end = max(lesson.date for lesson in lessons)
    last_start = end - timedelta(days=13)
    prev_start = end - timedelta(days=27)
    prev_end = end - timedelta(days=14)

    last = sum(lesson.amount_cents for lesson in lessons if last_start <= lesson.date <= end)
    prev = sum(lesson.amount_cents for lesson in lessons if prev_start <= lesson.date <= prev_end)

    if prev == 0:
        return "up" if last > 0 else "stable"
    change = (last - prev) / abs(prev)
    if change > TREND_THRESHOLD:
        return "up"
    if change < -TREND_THRESHOLD:
        return "down"
    return "stable"


def compute_forecast(lessons: Sequence[LessonRecord]) -> dict:
    """Monthly and yearly projections from the average week and recent trend."""

    avg_weekly = compute_avg_weekly(lessons)
    trend = compute_trend(lessons)
    if avg_weekly is None:
        return {
            "avg_weekly_dollars": None,
            "projected_monthly_dollars": None,
            "projected_yearly_dollars": None,
            "trend": trend,
        }
    multiplier = TREND_MULTIPLIERS.get(trend, 1.0)
    return {
        "avg_weekly_dollars": avg_weekly,
        "projected_monthly_dollars": round2(avg_weekly * WEEKS_PER_MONTH * multiplier),
        "projected_yearly_dollars": round2(avg_weekly * WEEKS_PER_YEAR * multiplier),
        "trend": trend,
    }


__all__ = ["compute_avg_weekly", "compute_forecast", "compute_trend"]
