"""Question text normalization shared by the intent router and planner."""

from __future__ import annotations

import re

_PUNCTUATION = re.compile(r"[?!.,;:()¿¡？！。，]+")
_WHITESPACE = re.compile(r"\s+")

_UNIT_REPLACEMENTS: tuple[tuple[re.Pattern[str], str], ...] = (
    (re.compile(r"\bhrs?\b"), "hour"),
    (re.compile(r"\bh\b"), "hour"),
    (re.compile(r"\bmins?\b"), "minutes"),
)

# Spanish and Chinese phrases rewritten to the English vocabulary the router
# understands. Longer phrases come first so "el mes pasado" wins over "mes pasado".
_PHRASE_REPLACEMENTS: tuple[tuple[re.Pattern[str], str], ...] = (
    (re.compile(r"\bel mes pasado\b"), "last month"),
    (re.compile(r"\bmes pasado\b"), "last month"),
    (re.compile(r"上个月|上月"), " last month "),
    (re.compile(r"\beste mes\b"), "this month"),
    (re.compile(r"这个月|本月"), " this month "),
    (re.compile(r"\ben lo que va del año\b"), "year to date"),
    (re.compile(r"\beste año\b"), "this year"),
    (re.compile(r"今年"), " this year "),
    (re.compile(r"\bel año pasado\b"), "last year"),
    (re.compile(r"\baño pasado\b"), "last year"),
    (re.compile(r"去年"), " last year "),
    (re.compile(r"\bcuánto gané\b|\bcuanto gane\b"), "how much did i earn"),
    (re.compile(r"我?赚了多少"), " how much did i earn "),
    (re.compile(r"\bganancias\b|\bingresos\b"), "earnings"),
    (re.compile(r"收入"), " earnings "),
    (re.compile(r"\balumnos\b|\bestudiantes\b"), "students"),
    (re.compile(r"\bclases\b|\blecciones\b"), "lessons"),
    (re.compile(r"\bhoras\b"), "hours"),
)

# Applied in order after the phrase table; attendance verbs collapse onto "absent".
SYNONYM_REPLACEMENTS: tuple[tuple[re.Pattern[str], str], ...] = (
    (re.compile(r"\bchildren\b"), "students"),
    (re.compile(r"\bkids\b"), "students"),
    (re.compile(r"\bmade\b"), "earned"),
    (re.compile(r"\bpay\b"), "earned"),
    (re.compile(r"\bpays\b"), "earned"),
    (re.compile(r"\bpaid\b"), "earned"),
    (re.compile(r"\bmissed\b"), "absent"),
    (re.compile(r"\bskipped\b"), "absent"),
)


def _apply(value: str, replacements: tuple[tuple[re.Pattern[str], str], ...]) -> str:
    for pattern, replacement in replacements:
        value = pattern.sub(replacement, value)
    return value


def normalize_question(raw: str | None) -> str:
    """Return the canonical lowercase form of ``raw``.

    Total function: any input, including ``None`` or an empty string, yields a
    string. Date phrases written in Spanish or Chinese are kept resolvable
    because their year/month digits survive and the relative phrases are
    rewritten to English.
    """

    text = (raw or "").lower().strip()
    text = _PUNCTUATION.sub(" ", text)
    text = _apply(text, _UNIT_REPLACEMENTS)
    text = _WHITESPACE.sub(" ", text).strip()
    text = _apply(text, _PHRASE_REPLACEMENTS)
    text = _WHITESPACE.sub(" ", text).strip()
    return _apply(text, SYNONYM_REPLACEMENTS)


__all__ = ["SYNONYM_REPLACEMENTS", "normalize_question"]
