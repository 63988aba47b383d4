"""Student name resolution against the studio roster."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterable

from app.backend.src.schemas.insights import StudentRecord

_AND_SPLIT = re.compile(r"\s+and\s+", re.IGNORECASE)


@dataclass(frozen=True)
class StudentMatch:
    student_id: str
    matched_name: str
    confidence: float


def _matches(student: StudentRecord, fragment: str) -> bool:
    full = student.full_name.lower()
    first = student.first_name.lower()
    last = student.last_name.lower()
    if fragment in {full, first, last}:
        return True
    return bool(full) and (fragment in full or full in fragment)


def _candidates(roster: Iterable[StudentRecord], fragment: str) -> list[StudentRecord]:
    return [student for student in roster if _matches(student, fragment)]


def match_student(roster: Iterable[StudentRecord], fragment: str | None) -> StudentMatch | None:
    """Resolve ``fragment`` to one student with a match confidence.

    Exact full-name matches score 1.0, a unique first or last name 0.9 and a
    unique substring match 0.8. Ambiguous or unknown names return ``None``.
    """

    needle = (fragment or "").strip().lower()
    if not needle:
        return None

    matches = _candidates(roster, needle)
    exact = [student for student in matches if student.full_name.lower() == needle]
    if len(matches) > 1:
        if not exact:
            return None
        return StudentMatch(exact[0].id, exact[0].full_name, 1.0)
    if not matches:
        return None

    student = matches[0]
    if exact:
        confidence = 1.0
    elif needle in {student.first_name.lower(), student.last_name.lower()}:
        confidence = 0.9
    else:
        confidence = 0.8
    return StudentMatch(student.id, student.full_name, confidence)


def resolve_student(roster: Iterable[StudentRecord], fragment: str | None) -> str | None:
    """Return the id of the single student ``fragment`` names, else ``None``."""

    match = match_student(roster, fragment)
    return match.student_id if match else None


def split_names(phrase: str) -> list[str]:
    parts = [part.strip() for part in _AND_SPLIT.split(phrase) if part.strip()]
    if len(parts) > 1:
        return parts
    parts = [part.strip() for part in phrase.split(",") if part.strip()]
    if len(parts) > 1:
        return parts
    return [phrase.strip()] if phrase.strip() else []


def resolve_students(roster: Iterable[StudentRecord], phrase: str | None) -> list[str]:
    """Resolve "Tyler and Emily" style phrases; any unresolved name yields ``[]``."""

    if not phrase or not phrase.strip():
        return []
    students = list(roster)
    ids: list[str] = []
    for name in split_names(phrase):
        student_id = resolve_student(students, name)
        if student_id is None:
            return []
        ids.append(student_id)
    return ids


__all__ = ["StudentMatch", "match_student", "resolve_student", "resolve_students", "split_names"]
