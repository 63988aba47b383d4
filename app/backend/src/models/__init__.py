"""ORM models exposed for easy imports."""

from .lesson import Lesson
from .student import Student

__all__ = [
    "Lesson",
    "Student",
]
