"""Money arithmetic and weekly bucketing shared by the truth queries."""

from __future__ import annotations

import math
from collections import defaultdict
from datetime import date, timedelta
from typing import Iterable, Optional

from app.backend.src.schemas.insights import LessonRecord, StudentRecord
from app.backend.src.schemas.truth_outputs import RevenueRow, WeeklyPoint

DOW_LABELS = ("Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday")


def round2(value: float) -> float:
    """Round half-up to two decimals."""

    return math.floor(value * 100 + 0.5) / 100


def cents_to_dollars(cents: float) -> float:
    return round2(cents / 100)


def sunday_index(day: date) -> int:
    """Day of week with Sunday as 0."""

    return (day.weekday() + 1) % 7


def start_of_week(day: date) -> date:
    return day - timedelta(days=sunday_index(day))


def in_range(lessons: Iterable[LessonRecord], start: date, end: date) -> list[LessonRecord]:
    return [lesson for lesson in lessons if start <= lesson.date <= end]


def completed(lessons: Iterable[LessonRecord]) -> list[LessonRecord]:
    return [lesson for lesson in lessons if lesson.completed]


def sum_cents(lessons: Iterable[LessonRecord]) -> int:
    return sum(lesson.amount_cents for lesson in lessons)


def weekly_buckets(start: date, end: date) -> list[tuple[date, date]]:
    """Sunday-start weeks covering ``start``..``end``, empty weeks included."""

    buckets: list[tuple[date, date]] = []
    cursor = start_of_week(start)
    while cursor <= end:
        buckets.append((cursor, cursor + timedelta(days=6)))
        cursor += timedelta(days=7)
    return buckets


def weekly_revenue_series(lessons: Iterable[LessonRecord], start: date, end: date) -> list[WeeklyPoint]:
    """Completed-lesson revenue per Sunday-start week."""

    rows = completed(in_range(lessons, start, end))
    series: list[WeeklyPoint] = []
    for week_start, week_end in weekly_buckets(start, end):
        cents = sum_cents(lesson for lesson in rows if week_start <= lesson.date <= week_end)
        series.append(
            WeeklyPoint(
                start_date=week_start,
                end_date=week_end,
                total_cents=cents,
                total_dollars=cents_to_dollars(cents),
            )
        )
    return series


def describe_trend(series: list[WeeklyPoint]) -> str:
    """Compare the mean of the second half of ``series`` with the first half."""

    if len(series) < 2:
        return "flat"
    half = len(series) // 2
    first = series[:half]
    second = series[half:]
    first_avg = sum(point.total_cents for point in first) / max(1, len(first))
    second_avg = sum(point.total_cents for point in second) / max(1, len(second))
    delta = second_avg - first_avg
    if abs(delta) < 1:
        return "flat"
    return "up" if delta > 0 else "down"


def coefficient_of_variation(values: list[float]) -> Optional[float]:
    """Population standard deviation over mean; ``None`` when undefined."""

    if len(values) < 2:
        return None
    mean = sum(values) / len(values)
    if mean == 0:
        return None
    variance = sum((value - mean) ** 2 for value in values) / len(values)
    return math.sqrt(variance) / mean


def stability_label(cv: Optional[float]) -> str:
    if cv is None:
        return "insufficient_data"
    if cv < 0.2:
        return "stable"
    if cv < 0.45:
        return "moderate"
    return "volatile"


def revenue_by_student(
    lessons: Iterable[LessonRecord],
    students: dict[str, StudentRecord],
    *,
    rank_order: str = "desc",
) -> list[RevenueRow]:
    """Per-student totals, sorted by total then name then id."""

    totals: dict[str, int] = defaultdict(int)
    for lesson in lessons:
        totals[lesson.student_id] += lesson.amount_cents

    rows = [
        RevenueRow(
            student_id=student_id,
            student_name=student_display_name(students, student_id),
            total_cents=cents,
            total_dollars=cents_to_dollars(cents),
        )
        for student_id, cents in totals.items()
    ]
    sign = -1 if rank_order == "desc" else 1
    rows.sort(key=lambda row: (sign * row.total_cents, row.student_name, row.student_id))
    return rows


def student_display_name(students: dict[str, StudentRecord], student_id: str) -> str:
    student = students.get(student_id)
    if student is None or not student.full_name:
        return "Unknown"
    return student.full_name


def best_weekday_by_revenue(lessons: Iterable[LessonRecord]) -> tuple[Optional[int], int]:
    """Sunday-indexed weekday with the highest total; ties go to the earlier day."""

    totals = [0] * 7
    seen = False
    for lesson in lessons:
        totals[sunday_index(lesson.date)] += lesson.amount_cents
        seen = True
    if not seen:
        return None, 0
    best = max(range(7), key=lambda index: (totals[index], -index))
    return best, totals[best]


def hourly_cents(cents: float, minutes: float) -> float:
    return cents / minutes * 60 if minutes > 0 else 0.0


__all__ = [
    "DOW_LABELS",
    "best_weekday_by_revenue",
    "cents_to_dollars",
    "coefficient_of_variation",
    "completed",
    "describe_trend",
    "hourly_cents",
    "in_range",
    "revenue_by_student",
    "round2",
    "stability_label",
    "start_of_week",
    "student_display_name",
    "sum_cents",
    "sunday_index",
    "weekly_buckets",
    "weekly_revenue_series",
]
