"""Date range resolution for insights questions.

Relative phrases ("last month", "ytd"), explicit months in English, Spanish
and Chinese ("jan 2026", "enero de 2026", "2026年1月"), bare years and
rolling windows all resolve to a closed, inclusive :class:`TimeRange`.
"""

from __future__ import annotations

import calendar
import re
from datetime import date, timedelta

from app.backend.src.schemas.insights import TimeRange

MONTHS: dict[str, int] = {
    "jan": 1, "january": 1, "feb": 2, "february": 2, "mar": 3, "march": 3,
    "apr": 4, "april": 4, "may": 5, "jun": 6, "june": 6, "jul": 7, "july": 7,
    "aug": 8, "august": 8, "sep": 9, "sept": 9, "september": 9, "oct": 10,
    "october": 10, "nov": 11, "november": 11, "dec": 12, "december": 12,
}

SPANISH_MONTHS: dict[str, int] = {
    "enero": 1, "febrero": 2, "marzo": 3, "abril": 4, "mayo": 5, "junio": 6,
    "julio": 7, "agosto": 8, "septiembre": 9, "setiembre": 9, "octubre": 10,
    "noviembre": 11, "diciembre": 12,
}

MONTH_PATTERN = (
    r"jan(?:uary)?|feb(?:ruary)?|mar(?:ch)?|apr(?:il)?|may|jun(?:e)?|jul(?:y)?"
    r"|aug(?:ust)?|sep(?:t|tember)?|oct(?:ober)?|nov(?:ember)?|dec(?:ember)?"
)

_YTD = re.compile(r"\bytd\b|\byear to date\b|\bthis year\b|\beste año\b|\ben lo que va del año\b|今年")
_LAST_MONTH = re.compile(r"\blast month\b|\bmes pasado\b|上个月|上月")
_THIS_MONTH = re.compile(r"\bthis month\b|\beste mes\b|这个月|本月")
_LAST_YEAR = re.compile(r"\blast year\b|\baño pasado\b|去年")
_MONTH_YEAR = re.compile(rf"\b({MONTH_PATTERN})\s+(20\d{{2}})\b")
_SPANISH_MONTH_YEAR = re.compile(
    rf"\b({'|'.join(SPANISH_MONTHS)})(?:\s+de)?\s+(20\d{{2}})\b"
)
_CHINESE_MONTH_YEAR = re.compile(r"(20\d{2})\s*年\s*(\d{1,2})\s*月")
_MONTH_SHORT_YEAR = re.compile(rf"\b({MONTH_PATTERN})\s+['’](\d{{2}})\b")
_SLASH_MONTH_YEAR = re.compile(r"\b(\d{1,2})/(20\d{2})\b")
_BARE_YEAR = re.compile(r"\b(20\d{2})\b|(20\d{2})\s*年")
_LAST_7_DAYS = re.compile(r"\b(?:last|past) 7 days\b")
_LAST_30_DAYS = re.compile(r"\b(?:last|past) 30 days\b|\búltimos 30 días\b|最近\s*30\s*天")

YEAR_TOKEN = re.compile(r"\b(20\d{2})\b")

# Each entry is one relative timeframe category; a question naming two of
# them is ambiguous.
_RELATIVE_CATEGORIES: tuple[re.Pattern[str], ...] = (
    re.compile(r"\bthis year\b|\bytd\b|\byear to date\b"),
    re.compile(r"\blast year\b"),
    re.compile(r"\blast month\b"),
    re.compile(r"\bthis month\b"),
    re.compile(r"\b(?:last|past) 7 days\b"),
    re.compile(r"\b(?:last|past) 30 days\b"),
)

YTD_DEFAULT_INTENTS = frozenset(
    {
        "on_track_goal",
        "day_of_week_earnings_max",
        "average_hourly_rate_in_period",
        "student_highest_hourly_rate",
        "student_lowest_hourly_rate",
        "students_below_average_rate",
        "earnings_ytd_for_student",
    }
)
ALL_TIME_DEFAULT_INTENTS = frozenset(
    {"student_attendance_summary", "forecast_monthly", "forecast_yearly"}
)
# Weekly averages over these ranges stop at today so future weeks never count as empty.
HISTORY_AVERAGE_INTENTS = frozenset(
    {
        "avg_weekly_revenue",
        "avg_lessons_per_week_in_period",
        "cash_flow_trend",
        "income_stability",
        "what_if_add_students",
        "what_if_take_time_off",
        "students_needed_for_target_income",
    }
)
ALL_TIME_START = date(2000, 1, 1)


def month_range(year: int, month: int) -> TimeRange:
    last_day = calendar.monthrange(year, month)[1]
    return TimeRange(
        type="month",
        start=date(year, month, 1),
        end=date(year, month, last_day),
        label=f"{year}-{month:02d}",
    )


def year_range(year: int) -> TimeRange:
    return TimeRange(type="year", start=date(year, 1, 1), end=date(year, 12, 31), label=str(year))


def ytd_range(today: date) -> TimeRange:
    return TimeRange(type="ytd", start=date(today.year, 1, 1), end=today, label=f"{today.year} YTD")


def rolling_days_range(today: date, days: int) -> TimeRange:
    return TimeRange(
        type="rolling_days",
        start=today - timedelta(days=days - 1),
        end=today,
        label=f"last_{days}_days",
    )


def all_time_range(today: date) -> TimeRange:
    return TimeRange(type="all", start=ALL_TIME_START, end=today, label="all time")


def year_pair_range(year_a: int, year_b: int) -> TimeRange:
    return TimeRange(
        type="custom",
        start=date(year_a, 1, 1),
        end=date(year_b, 12, 31),
        label=f"{year_a} vs {year_b}",
    )


def resolve_time_range(text: str, today: date) -> TimeRange | None:
    """Resolve the first date phrase found in ``text``; ``None`` when nothing matches."""

    q = (text or "").lower().strip()

    if _YTD.search(q):
        return ytd_range(today)
    if _LAST_MONTH.search(q):
        if today.month == 1:
            return month_range(today.year - 1, 12)
        return month_range(today.year, today.month - 1)
    if _THIS_MONTH.search(q):
        return month_range(today.year, today.month)
    if _LAST_YEAR.search(q):
        return year_range(today.year - 1)

    match = _MONTH_YEAR.search(q)
    if match:
        return month_range(int(match.group(2)), MONTHS[match.group(1)])
    match = _SPANISH_MONTH_YEAR.search(q)
    if match:
        return month_range(int(match.group(2)), SPANISH_MONTHS[match.group(1)])
    match = _CHINESE_MONTH_YEAR.search(q)
    if match and 1 <= int(match.group(2)) <= 12:
        return month_range(int(match.group(1)), int(match.group(2)))
    match = _MONTH_SHORT_YEAR.search(q)
    if match:
        return month_range(2000 + int(match.group(2)), MONTHS[match.group(1)])
    match = _SLASH_MONTH_YEAR.search(q)
    if match and 1 <= int(match.group(1)) <= 12:
        return month_range(int(match.group(2)), int(match.group(1)))
    match = _BARE_YEAR.search(q)
    if match:
        return year_range(int(match.group(1) or match.group(2)))

    if _LAST_7_DAYS.search(q):
        return rolling_days_range(today, 7)
    if _LAST_30_DAYS.search(q):
        return rolling_days_range(today, 30)
    return None


def mentioned_years(text: str) -> list[int]:
    return [int(value) for value in YEAR_TOKEN.findall(text or "")]


def has_competing_timeframes(text: str, *, allow_year_pair: bool = False) -> bool:
    """Return ``True`` when ``text`` names more than one timeframe."""

    if not allow_year_pair and len(set(mentioned_years(text))) > 1:
        return True
    hits = sum(1 for pattern in _RELATIVE_CATEGORIES if pattern.search(text or ""))
    return hits > 1


def clip_to_today(time_range: TimeRange, today: date) -> TimeRange:
    """End ``time_range`` at ``today`` when it straddles it; the current year becomes YTD."""

    if not time_range.start <= today < time_range.end:
        return time_range
    if time_range.type == "year":
        return ytd_range(today)
    return time_range.model_copy(update={"end": today})


def default_range_for_intent(intent: str, today: date) -> TimeRange:
    if intent in YTD_DEFAULT_INTENTS:
        return ytd_range(today)
    if intent in ALL_TIME_DEFAULT_INTENTS:
        return all_time_range(today)
    return rolling_days_range(today, 30)


def humanize_range_label(time_range: TimeRange | None) -> str:
    """Display text for ``time_range``: "January 2026", "2026 YTD", "last 30 days"."""

    if time_range is None:
        return ""
    if time_range.type == "month":
        return f"{calendar.month_name[time_range.start.month]} {time_range.start.year}"
    if time_range.type == "ytd":
        return time_range.label or f"{time_range.end.year} YTD"
    if time_range.type == "year":
        return str(time_range.start.year)
    if time_range.type == "all":
        return "all time"
    if time_range.label:
        return time_range.label.replace("_", " ")
    return f"{time_range.start.isoformat()} to {time_range.end.isoformat()}"


__all__ = [
    "ALL_TIME_DEFAULT_INTENTS",
    "HISTORY_AVERAGE_INTENTS",
    "MONTHS",
    "MONTH_PATTERN",
    "YTD_DEFAULT_INTENTS",
    "all_time_range",
    "clip_to_today",
    "default_range_for_intent",
    "has_competing_timeframes",
    "humanize_range_label",
    "mentioned_years",
    "month_range",
    "resolve_time_range",
    "rolling_days_range",
    "year_pair_range",
    "year_range",
    "ytd_range",
]
