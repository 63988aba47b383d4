"""Deterministic two-tier intent router for insights questions.

Routing is a single ordered table (:data:`INTENT_RULES`). The structured tier
comes first and carries its own truth-query keys; the general tier follows.
The first rule whose patterns match wins, so each rule's comment states why
it sits above the rules after it. Slots (top N, rate deltas, goals, years) are
extracted alongside the route.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Iterable, Literal, Pattern

import structlog

from app.backend.src.agents.time_ranges import MONTH_PATTERN, mentioned_years

LOGGER = structlog.get_logger(__name__)

Tier = Literal["structured", "general"]

WORD_NUMBERS: dict[str, int] = {
    "one": 1, "two": 2, "three": 3, "four": 4, "five": 5,
    "six": 6, "seven": 7, "eight": 8, "nine": 9, "ten": 10,
}
_WORD_NUMBER = "|".join(WORD_NUMBERS)


def _c(*patterns: str) -> tuple[Pattern[str], ...]:
    return tuple(re.compile(pattern) for pattern in patterns)


HOURLY_QUALIFIER = re.compile(r"per\s*hour|/\s*hour|/\s*hr|\bhourly\b")
PERCENT_SIGNAL = re.compile(r"%|\bpercent|\bpercentage\b")
MONEY_SIGNAL = re.compile(r"\b(?:earn|earned|earnings|money|revenue|income|dollars?)\b|\$|\d\s*k\b")

# "did bob earn me", "has alice brought in": someone other than the studio owner earned it.
_NAMED_SUBJECT = r"(?!(?:i|we|you|my|the|all|students?)\b)(.+?)"
STUDENT_EARNINGS_SIGNAL = re.compile(
    rf"\b(?:did|has)\s+{_NAMED_SUBJECT}\s+(?:earn(?:ed)? me|bring in|brought in)\b"
)

_STUDENT_NAME_PATTERNS = _c(
    r"\bfor student\s+(.+)",
    rf"\bhow much (?:did|has)\s+{_NAMED_SUBJECT}\s+(?:earn(?:ed)? me|bring in|brought in)\b",
    rf"\bwhat (?:did|has)\s+{_NAMED_SUBJECT}\s+earned me\b",
    r"^(.+?)\s+ytd\s+(?:earnings|total)\b",
    r"\bytd from\s+(.+)",
    r"^(.+?)\s+year to date\s+earnings\b",
    r"\battendance summary for\s+(.+)",
)
_NAME_TRAILERS = re.compile(
    r"(?:\s+(?:please|thanks|thank you|ytd|year to date|this year|last year|this month|last month)"
    r"|\s+(?:in|during)\s+\S.*)+$"
)


def extract_student_name(normalized: str) -> str | None:
    """Pull the student name out of the phrasings the router understands."""

    for pattern in _STUDENT_NAME_PATTERNS:
        match = pattern.search(normalized)
        if not match:
            continue
        name = _NAME_TRAILERS.sub("", match.group(1).strip()).strip()
        if name:
            return name
    return None


@dataclass(frozen=True)
class IntentRule:
    """One routing rule; ``any_of`` alternatives, ``all_of`` conjuncts, ``none_of`` vetoes."""

    name: str
    intent: str
    truth_key: str
    tier: Tier
    any_of: tuple[Pattern[str], ...]
    all_of: tuple[Pattern[str], ...] = ()
    none_of: tuple[Pattern[str], ...] = ()
    requires_student_name: bool = False
    fixed_slots: dict[str, Any] = field(default_factory=dict)

    def matches(self, text: str) -> bool:
        if self.any_of and not any(pattern.search(text) for pattern in self.any_of):
            return False
        if not all(pattern.search(text) for pattern in self.all_of):
            return False
        if any(pattern.search(text) for pattern in self.none_of):
            return False
        if self.requires_student_name and extract_student_name(text) is None:
            return False
        return True


def _structured(name: str, intent: str, *any_of: str, **kwargs: Any) -> IntentRule:
    return IntentRule(name=name, intent=intent, truth_key=name, tier="structured", any_of=_c(*any_of), **kwargs)


def _general(name: str, intent: str, *any_of: str, **kwargs: Any) -> IntentRule:
    return IntentRule(name=name, intent=intent, truth_key=intent, tier="general", any_of=_c(*any_of), **kwargs)


INTENT_RULES: tuple[IntentRule, ...] = (
    # Structured tier. Attendance ranks lead because "absent ... most" would
    # otherwise be read as an earnings ranking by the "most" rules below.
    _structured(
        "ATTENDANCE_RANK_MISSED",
        "student_missed_most_lessons_in_year",
        r"\bwho\b.*\babsent\b.*\bmost\b",
        r"\babsent\b.*\bmost\b",
        fixed_slots={"rank_order": "desc"},
    ),
    _structured(
        "ATTENDANCE_RANK_COMPLETED",
        "student_completed_most_lessons_in_year",
        r"\bwho\b.*\b(?:attended|completed)\b.*\bmost\b",
        r"\b(?:attended|completed)\b.*\bmost\b",
        fixed_slots={"rank_order": "desc"},
    ),
    # Goal questions mention dollar amounts and "this year", which the
    # projection and total-earnings rules would also claim.
    _structured(
        "ON_TRACK_GOAL",
        "on_track_goal",
        r"\bon track\b.*\b\d",
        r"\b(?:am|are) i\s+on track\b",
        r"\d+(?:\s*k)?\s*(?:this year|for the year)\b.*\btrack\b",
    ),
    # "how many students do I need" must not fall into the unique student count.
    _structured(
        "REVENUE_TARGET_PROJECTION",
        "students_needed_for_target_income",
        r"\bhow many\s+(?:more\s+)?students\b.*\b(?:need|needed)\b",
        r"\b(?:need|needed)\b.*\bstudents?\b.*\b(?:make|reach|earn)\s+\$?\s*\d+",
        r"\breach\s+\$?\s*\d+(?:\s*k)?\b.*\b(?:at|per)\b.*\b(?:hour|hr)\b",
    ),
    _structured(
        "UNIQUE_STUDENT_COUNT",
        "unique_student_count_in_period",
        r"\bhow many\s+students\b.*\b(?:taught|teach)\b",
        r"\bstudents?\s+count\b",
        r"\bcount\s+students\b",
    ),
    # Earnings ranks precede the rate simulation and totals; an hourly
    # qualifier hands the question to the hourly-rate rules instead.
    _structured(
        "EARNINGS_RANK_MIN",
        "revenue_per_student_in_period",
        r"\bwho\b.*\bearn(?:ed)?\b.*\bleast\b",
        r"\bwhich student\b.*\bearn(?:ed)?\b.*\bleast\b",
        r"\blowest\b.*\b(?:earnings|revenue)\b",
        none_of=(HOURLY_QUALIFIER,),
        fixed_slots={"top_n": 1, "rank_order": "asc"},
    ),
    _structured(
        "EARNINGS_RANK_MAX",
        "revenue_per_student_in_period",
        r"\bwho\b.*\bearn(?:ed)?\b.*\bmost\b",
        r"\bwhich student\b.*\bearn(?:ed)?\b.*\bmost\b",
        r"\bhighest\b.*\b(?:earnings|revenue)\b",
        none_of=(HOURLY_QUALIFIER,),
        fixed_slots={"top_n": 1, "rank_order": "desc"},
    ),
    # Rate what-ifs mention income, so they sit above the total-earnings rule.
    _structured(
        "REVENUE_DELTA_SIMULATION",
        "what_if_rate_change",
        r"\b(?:what if|if i)\b.*\b(?:raise|increase|decrease)\b.*\brates?\b",
        r"\bby\s+\$?\d+(?:\.\d+)?\s*(?:/\s*hour|per\s*hour|hour|hr)\b",
    ),
    _structured(
        "TOTAL_EARNINGS_PERIOD",
        "earnings_in_period",
        r"\bhow much\b.*\b(?:earned|earnings|revenue|income)\b",
        r"\btotal earnings\b",
        none_of=(PERCENT_SIGNAL, STUDENT_EARNINGS_SIGNAL),
    ),
    # General tier. Exact dropdown prompts are pinned first.
    _general("LESSONS_LAST_MONTH_PROMPT", "lessons_count_in_period", r"^how many lessons did i teach last month$"),
    _general("REVENUE_PER_LESSON_PROMPT", "revenue_per_lesson_in_period", r"^what (?:s|is) my revenue per lesson$"),
    _general("BEST_DAY_PROMPT", "day_of_week_earnings_max", r"^what day of the week do i earn the most$"),
    # Tax questions mention income and would otherwise become a plain total.
    _general(
        "TAX_GUIDANCE",
        "tax_guidance",
        r"\b(?:estimated\s+tax|tax estimate|set aside for taxes|quarterly taxes|taxes?)\b",
    ),
    # Scenario questions carry numbers and student words that the count and
    # ranking rules below would misread.
    _general("RATE_CHANGE", "what_if_rate_change", r"\b(?:what if|if i)\b.*\b(?:raise|increase)\b.*\brates?\b"),
    _general("ADD_STUDENTS", "what_if_add_students", r"\b(?:what if|if i)\b.*\badd\s+\d+\s+new\s+students?\b"),
    _general("TAKE_TIME_OFF", "what_if_take_time_off", r"\b(?:what if|if i)\b.*\btake\s+\d+\s+weeks?\s+off\b"),
    _general(
        "LOSE_TOP_STUDENTS",
        "what_if_lose_top_students",
        r"\b(?:what if|if i)\b.*\blose\b.*\btop\s+\d+\s+students?\b",
    ),
    _general(
        "TARGET_INCOME",
        "students_needed_for_target_income",
        r"\bhow many students\b.*\breach\b.*(?:\$\s*\d+|\b\d+\s*k\b)",
    ),
    # Volume questions precede the money rules because "hours" and "lessons"
    # phrases often also say "earn".
    _general(
        "HOURS_TOTAL",
        "hours_total_in_period",
        r"\bhow many hours\b",
        r"\bhours worked\b",
        r"\bhours did i work\b",
        r"\btotal hours\b",
    ),
    _general(
        "AVG_LESSONS_PER_WEEK",
        "avg_lessons_per_week_in_period",
        r"\b(?:average|avg) lessons per week\b",
        r"\baverage\b.*\blessons\b.*\bper week\b",
    ),
    # Stability outranks the trend rule: "is my cash flow stable" names cash flow.
    _general(
        "INCOME_STABILITY",
        "income_stability",
        r"\b(?:stable|stability|volatile|volatility)\b",
        all_of=_c(r"\b(?:income|earnings|revenue|cash flow)\b"),
    ),
    _general(
        "CASH_FLOW_TREND",
        "cash_flow_trend",
        r"\b(?:cash flow trend|income trend|revenue trend|earnings trend|cash flow trending"
        r"|revenue trending|earnings trending|my cash flow|cashflow trend)\b",
        r"\b(?:what s|what is|whats)\s+my\s+cash flow\b",
    ),
    _general(
        "AVG_WEEKLY_REVENUE",
        "avg_weekly_revenue",
        r"\baverage\b.*\bper week\b",
        r"\baverage weekly\b",
        r"\bper week\b.*\baverage\b",
        r"\bweekly average\b",
        all_of=_c(r"\b(?:earn|revenue|income|cash flow|earnings)\b"),
    ),
    _general(
        "MISSED_MOST",
        "student_missed_most_lessons_in_year",
        r"\babsent most lessons\b",
        r"\bmost absent lessons\b",
        r"\bmost absences\b",
        r"\bmost no[- ]shows?\b",
    ),
    _general(
        "LESSONS_COUNT",
        "lessons_count_in_period",
        r"\bhow many lessons\b",
        r"\blesson count\b",
        r"\bcount lessons\b",
        r"\bnumber of lessons\b",
    ),
    _general("REVENUE_PER_LESSON", "revenue_per_lesson_in_period", r"\brevenue per lesson\b"),
    # Hourly extremes precede the per-student revenue ranking: "pays the most
    # per hour" is about rates, not totals.
    _general(
        "HIGHEST_HOURLY",
        "student_highest_hourly_rate",
        r"\bhighest hourly rate\b",
        r"\bhighest hourly student\b",
        r"\bearned the most per hour\b",
        r"\bhighest paying student\b",
        r"\bhighest paying per hour\b",
        r"\b(?:who|which student) earned the most per hour\b",
    ),
    _general(
        "LOWEST_HOURLY",
        "student_lowest_hourly_rate",
        r"\blowest hourly rate\b",
        r"\blowest hourly student\b",
        r"\bleast hourly rate student\b",
        r"\bwho earned the least per hour\b",
        r"\bwhich student earned the least per hour\b",
        r"\bwho is lowest per hour\b",
    ),
    _general(
        "TOP_PAYING_STUDENT",
        "revenue_per_student_in_period",
        r"\b(?:who|which student) earned the (?:most|least)\b",
        r"\btop paying student\b",
    ),
    # Below-average must win over the plain "average rate" rule.
    _general(
        "BELOW_AVERAGE_RATE",
        "students_below_average_rate",
        r"\bbelow my average (?:hourly )?rate\b",
        r"\bbelow average hourly\b",
        r"\bstudents below (?:my )?average\b",
        r"\bunder average rate\b",
    ),
    _general(
        "AVERAGE_HOURLY_RATE",
        "average_hourly_rate_in_period",
        r"\baverage hourly rate\b",
        r"\bavg hourly\b",
        r"\bhourly average\b",
        r"\baverage rate\b",
        none_of=_c(r"\bbelow\b", r"\bunder\b"),
    ),
    _general(
        "BEST_DAY",
        "day_of_week_earnings_max",
        r"\bwhat day (?:of the week )?do i earn the most\b",
        r"\b(?:which |what )?day (?:of the week )?is best for earnings\b",
        r"\bday of the week\b.*\bearn the most\b",
        r"\bearn the most on which day\b",
        r"\bbest day for earnings\b",
        r"\bwhich day do i earn the most\b",
    ),
    # Per-student earnings need a name; without one they fall through to totals.
    _general(
        "STUDENT_YTD",
        "earnings_ytd_for_student",
        r"\bearn(?:ed)? me\b",
        r"\b(?:bring|brought) in\b",
        r"\b[a-z]+\s+[a-z]+\s+ytd\b",
        r"\bytd from\b",
        r"\byear to date earnings\b",
        requires_student_name=True,
    ),
    _general("ATTENDANCE_SUMMARY", "student_attendance_summary", r"\battendance summary\b"),
    # Top-N phrasing ranks students and must precede forecasts and totals,
    # which also mention revenue.
    _general(
        "TOP_N_REVENUE",
        "revenue_per_student_in_period",
        rf"\b(?:top\s+\d+|top\s+(?:{_WORD_NUMBER})|highest)\b.*\bstudents?\b.*\b(?:revenue|earnings|income)\b",
        rf"\btop\s+(?:\d+|{_WORD_NUMBER})\b.*\bby\b.*\b(?:revenue|earnings|income)\b",
        r"\bwhich student\b.*\b(?:earn|earned|revenue|income)\b.*\bmost\b",
        r"\bwho\b.*\bearned?\b.*\bmost\b",
        r"\brevenue per student\b",
        r"\brevenue ranking\b",
        r"\bstudent revenue breakdown\b",
        r"\bbest students by revenue\b",
    ),
    _general(
        "FORECAST_MONTHLY",
        "forecast_monthly",
        r"\bforecast monthly\b",
        r"\bmonthly forecast\b",
        r"\bprojected monthly\b",
        r"\bforecast this month\b",
        r"\bmonthly projection\b",
        r"\bwill i earn this month\b",
    ),
    _general(
        "FORECAST_YEARLY",
        "forecast_yearly",
        r"\bforecast yearly\b",
        r"\byearly forecast\b",
        r"\bprojected yearly\b",
        r"\bforecast this year\b",
        r"\byearly projection\b",
        r"\bwill i earn this year\b",
    ),
    # Percent questions name two years and would otherwise read as a total.
    _general(
        "PERCENT_CHANGE",
        "percent_change_yoy",
        PERCENT_SIGNAL.pattern,
        all_of=_c(r"\b20\d{2}\b.*\b20\d{2}\b"),
    ),
    _general(
        "ON_TRACK",
        "on_track_goal",
        r"\bon track\b.*\b\d",
        r"\bam i\s+on track\b",
        r"\d+k?\s+this year\b.*\btrack\b",
    ),
    # Broadest money phrasing last.
    _general(
        "EARNINGS_IN_PERIOD",
        "earnings_in_period",
        r"\bhow much\b.*\b(?:earn|make)\b",
        rf"\b(?:earn|earned|earnings|revenue|income|money)\b.*\b(?:{MONTH_PATTERN})\s+20\d{{2}}\b",
        r"\bhow much did i earn\b",
        r"\bearnings\b",
        r"\brevenue\b",
        r"\bincome\b",
        rf"\bhow much in\s+(?:{MONTH_PATTERN})\s+20\d{{2}}\b",
    ),
)

FALLBACK_RULE = IntentRule(
    name="GENERAL_FALLBACK",
    intent="general_fallback",
    truth_key="general_fallback",
    tier="general",
    any_of=(),
)


@dataclass
class RouteDecision:
    intent: str
    truth_key: str
    tier: Tier
    rule_name: str
    slots: dict[str, Any]
    requested_metric: str | None = None


_THOUSANDS_GAP = re.compile(r"(?<=\d)[ ,](?=\d{3}\b)")
_NUMBER = r"(\d+(?:\.\d+)?)"


def _join_thousands(text: str) -> str:
    """Rejoin "100 000" (a normalized "100,000") into "100000"."""

    return _THOUSANDS_GAP.sub("", text)


def parse_top_n(normalized: str) -> int | None:
    match = re.search(r"\btop\s+(\d+)\b", normalized)
    if match:
        return int(match.group(1))
    match = re.search(r"\b(\d+)\s+(?:highest|top)\b.*\bstudents?\b", normalized)
    if match:
        return int(match.group(1))
    match = re.search(rf"\btop\s+({_WORD_NUMBER})\b", normalized)
    if match:
        return WORD_NUMBERS[match.group(1)]
    match = re.search(rf"\b({_WORD_NUMBER})\s+(?:highest|top)\b.*\bstudents?\b", normalized)
    if match:
        return WORD_NUMBERS[match.group(1)]
    return None


def parse_rate_delta(normalized: str) -> float | None:
    match = re.search(rf"\$?{_NUMBER}\s*(?:/\s*hour|per\s*hour|an?\s*hour|hour)\b", normalized)
    if not match:
        match = re.search(rf"\bby\s+\$?\s*{_NUMBER}\b", normalized)
    if not match:
        return None
    value = float(match.group(1))
    if re.search(r"\b(?:decrease|lower|reduce|cut)\b", normalized):
        value = -value
    return value


def parse_annual_goal(normalized: str) -> float | None:
    text = _join_thousands(normalized)
    match = re.search(rf"\$?\s*{_NUMBER}\s*k\b", text)
    if match:
        return float(match.group(1)) * 1000
    match = re.search(rf"\b(?:for|to|hit|reach|make|of)\s+\$?\s*{_NUMBER}\b", text) or re.search(
        rf"\$\s*{_NUMBER}\b", text
    )
    if match:
        value = float(match.group(1))
        return value if value >= 1000 else value * 1000
    match = re.search(r"\b(\d{5,})\b", text)
    if match:
        return float(match.group(1))
    return None


def parse_target_income(normalized: str) -> float | None:
    text = _join_thousands(normalized)
    match = re.search(rf"\b(?:make|reach|hit|earn|earned)\s+\$?\s*{_NUMBER}\s*k\b", text)
    if match:
        return float(match.group(1)) * 1000
    match = re.search(rf"\b(?:make|reach|hit|earn|earned)\s+\$?\s*{_NUMBER}\b", text)
    if match:
        return float(match.group(1))
    match = re.search(rf"\${_NUMBER}\s*k\b", text)
    if match:
        return float(match.group(1)) * 1000
    return None


def parse_hourly_rate(normalized: str) -> float | None:
    match = re.search(
        rf"\b(?:at|@)\s+\$?\s*{_NUMBER}\s*(?:/\s*hr|/\s*hour|per\s*hour|an?\s*hour|hr|hour)\b",
        normalized,
    ) or re.search(rf"(?:^|\s)@\s*\$?\s*{_NUMBER}\b", normalized)
    if match:
        return float(match.group(1))
    match = re.search(rf"\$?{_NUMBER}\s*(?:/\s*hour|/\s*hr|per\s*hour|an?\s*hour)\b", normalized)
    if match:
        return float(match.group(1))
    return None


def _first_int(pattern: str, text: str) -> int | None:
    match = re.search(pattern, text)
    return int(match.group(1)) if match else None


def extract_slots(intent: str, normalized: str) -> dict[str, Any]:
    """Extract the slots ``intent`` consumes from ``normalized``."""

    slots: dict[str, Any] = {}
    years = mentioned_years(normalized)
    if years:
        slots["year"] = years[0]

    if intent == "percent_change_yoy" and len(years) >= 2:
        slots["year_a"] = min(years)
        slots["year_b"] = max(years)
    elif intent == "revenue_per_student_in_period":
        top_n = parse_top_n(normalized)
        if top_n and top_n > 0:
            slots["top_n"] = top_n
        elif re.search(r"\bwhich student\b", normalized) or re.search(
            r"\bwho\b.*\bearned?\b.*\b(?:most|least)\b", normalized
        ):
            slots["top_n"] = 1
        if re.search(r"\b(?:least|lowest)\b", normalized):
            slots["rank_order"] = "asc"
    elif intent == "what_if_rate_change":
        delta = parse_rate_delta(normalized)
        if delta is not None:
            slots["rate_delta_dollars_per_hour"] = delta
    elif intent == "what_if_add_students":
        count = _first_int(r"\badd(?:ed|ing)?\s+(\d+)\s+(?:new\s+)?students?\b", normalized)
        if count:
            slots["new_students"] = count
    elif intent == "what_if_take_time_off":
        weeks = _first_int(r"\btake\s+(\d+)\s+weeks?\s+off\b", normalized)
        if weeks:
            slots["weeks_off"] = weeks
    elif intent == "what_if_lose_top_students":
        top_n = _first_int(r"\btop\s+(\d+)\s+students?\b", normalized)
        if top_n:
            slots["top_n"] = top_n
    elif intent == "on_track_goal":
        goal = parse_annual_goal(normalized)
        if goal:
            slots["annual_goal_dollars"] = goal
    elif intent == "students_needed_for_target_income":
        target = parse_target_income(normalized)
        if target:
            slots["target_income_dollars"] = target
        rate = parse_hourly_rate(normalized)
        if rate:
            slots["rate_dollars_per_hour"] = rate
        if re.search(
            r"\b(?:1|one)\s+hour\s+(?:per\s+)?(?:student|week)\b|\beach\s+student\s+(?:for\s+)?(?:1|one)\s+hour\b",
            normalized,
        ):
            slots["hours_per_student_per_week"] = 1
    return slots


def _requested_metric(rule: IntentRule, normalized: str) -> str:
    if rule.tier == "structured":
        if rule.name in {"UNIQUE_STUDENT_COUNT", "REVENUE_TARGET_PROJECTION"}:
            return "count"
        if rule.name.startswith(("EARNINGS_RANK", "ATTENDANCE_RANK")):
            return "who"
        return "dollars"
    if rule.intent == "lessons_count_in_period":
        return "count"
    if rule.intent in {"revenue_per_lesson_in_period", "average_hourly_rate_in_period"}:
        return "rate"
    if PERCENT_SIGNAL.search(normalized):
        return "percent"
    if re.search(r"\bwho\b", normalized):
        return "who"
    return "dollars"


def match_rule(normalized: str, rules: Iterable[IntentRule] = INTENT_RULES) -> IntentRule:
    for rule in rules:
        if rule.matches(normalized):
            return rule
    return FALLBACK_RULE


def route_question(normalized: str) -> RouteDecision:
    """Route an already-normalized question to an intent, truth key and slots."""

    rule = match_rule(normalized)
    slots = extract_slots(rule.intent, normalized)
    slots.update(rule.fixed_slots)
    decision = RouteDecision(
        intent=rule.intent,
        truth_key=rule.truth_key,
        tier=rule.tier,
        rule_name=rule.name,
        slots=slots,
        requested_metric=_requested_metric(rule, normalized),
    )
    LOGGER.debug("insights_route_decided", rule=rule.name, intent=rule.intent, tier=rule.tier)
    return decision


def has_money_signal(normalized: str) -> bool:
    return bool(MONEY_SIGNAL.search(normalized))


__all__ = [
    "FALLBACK_RULE",
    "HOURLY_QUALIFIER",
    "INTENT_RULES",
    "IntentRule",
    "RouteDecision",
    "STUDENT_EARNINGS_SIGNAL",
    "extract_slots",
    "extract_student_name",
    "has_money_signal",
    "match_rule",
    "parse_annual_goal",
    "parse_hourly_rate",
    "parse_rate_delta",
    "parse_target_income",
    "parse_top_n",
    "route_question",
]
