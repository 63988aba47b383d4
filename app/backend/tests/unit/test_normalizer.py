from __future__ import annotations

import sys
from pathlib import Path

sys.path.append(str(Path(__file__).resolve().parents[4]))

from app.backend.src.agents.normalizer import normalize_question


def test_normalize_is_total():
    assert normalize_question(None) == ""
    assert normalize_question("") == ""
    assert normalize_question("   ?!  ") == ""


def test_punctuation_and_whitespace_collapse():
    assert normalize_question("  How   much did I earn in Jan 2026?? ") == "how much did i earn in jan 2026"


def test_units_and_synonyms():
    assert normalize_question("How many kids did I teach?") == "how many students did i teach"
    assert normalize_question("Who paid the most?") == "who earned the most"
    assert normalize_question("Who skipped lessons") == "who absent lessons"
    assert normalize_question("rate per hr") == "rate per hour"


def test_spanish_and_chinese_relative_phrases():
    assert normalize_question("¿Cuánto gané el mes pasado?") == "how much did i earn last month"
    assert normalize_question("上个月我赚了多少？") == "last month how much did i earn"


def test_idempotent():
    once = normalize_question("What's my average hourly rate this year?")
    assert normalize_question(once) == once
