from __future__ import annotations

import logging
from datetime import date
from typing import Optional

from academy.store import DocumentStore

logger = logging.getLogger(__name__)

ROLL_PREFIX = "LLA"
MAX_CODE_LETTERS = 4


def course_code(course_name: str) -> str:
    # First letter of each word, upper-cased, at most 4 letters.
    # "Criminal Law Advanced" -> "CLA"
    letters = []
    for word in str(course_name or "").split():
        ch = next((c for c in word if c.isalnum()), None)
        if ch:
            letters.append(ch.upper())
    return "".join(letters[:MAX_CODE_LETTERS]) or "GEN"


def format_roll_number(course_name: str, year: int, sequence: int, prefix: str = ROLL_PREFIX) -> str:
    """
    {PREFIX}{COURSECODE}{YY}{NNNN}

    Example:
      LLACLA240004
    """
    if int(sequence) < 1:
        raise ValueError("Sequence must be >= 1.")
    return f"{prefix}{course_code(course_name)}{int(year) % 100:02d}{int(sequence):04d}"


def _counter_name(course_id: str, year: int) -> str:
    return f"roll:{course_id}:{int(year)}"


def _enrolled_count(store: DocumentStore, course_id: str, course_name: str, year: int) -> int:
    n = 0
    for s in store.query("students", [("enrollmentYear", "==", int(year))]):
        if s.get("courseId") == course_id or (not s.get("courseId") and s.get("course") == course_name):
            n += 1
    return n


def next_roll_number(
    store: DocumentStore,
    *,
    course_id: str,
    course_name: str,
    year: Optional[int] = None,
    prefix: str = ROLL_PREFIX,
) -> str:
    """
    Allocates the next roll number for course + year from an atomic counter.

    The counter starts from the number of students already enrolled in the
    course that year, so the first allocation matches a count + 1 scheme while
    concurrent registrations can never receive the same sequence.
    """
    year = int(year or date.today().year)
    seq = store.next_sequence(
        _counter_name(course_id, year),
        seed=lambda: _enrolled_count(store, course_id, course_name, year),
    )
    roll = format_roll_number(course_name, year, seq, prefix=prefix)
    logger.info("Allocated roll number %s", roll, extra={"course_id": course_id, "year": year})
    return roll
