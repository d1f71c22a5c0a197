from __future__ import annotations

import logging
from collections import Counter, defaultdict
from collections.abc import Iterable

from pydantic import BaseModel

from app.schemas.yearly_lesson import YearlyLessonOut

logger = logging.getLogger(__name__)


class NumberingViolation(BaseModel):
    subject_id: str
    class_id: str
    week_number: int
    topic_id: str | None
    missing: list[int] = []
    duplicates: list[int] = []


def missing_numbers(numbers: Iterable[int]) -> list[int]:
    present = set(numbers)
    if len(present) <= 1:
        return []
    return [number for number in range(min(present), max(present) + 1) if number not in present]


def find_numbering_violations(entries: Iterable[YearlyLessonOut]) -> list[NumberingViolation]:
    """Gaps inside topic runs and duplicated lesson numbers per (subject, week, class)."""
    by_topic: dict[tuple[str, str, int, str], list[int]] = defaultdict(list)
    by_group: dict[tuple[str, str, int], list[int]] = defaultdict(list)
    for entry in entries:
        by_group[(entry.subject_id, entry.class_id, entry.week_number)].append(entry.lesson_number)
        if entry.topic_id:
            by_topic[(entry.subject_id, entry.class_id, entry.week_number, entry.topic_id)].append(entry.lesson_number)

    violations: list[NumberingViolation] = []
    for (subject_id, class_id, week, topic_id), numbers in sorted(by_topic.items()):
        gaps = missing_numbers(numbers)
        if gaps:
            violations.append(
                NumberingViolation(
                    subject_id=subject_id, class_id=class_id, week_number=week, topic_id=topic_id, missing=gaps
                )
            )
    for (subject_id, class_id, week), numbers in sorted(by_group.items()):
        duplicates = sorted(number for number, count in Counter(numbers).items() if count > 1)
        if duplicates:
            violations.append(
                NumberingViolation(
                    subject_id=subject_id, class_id=class_id, week_number=week, topic_id=None, duplicates=duplicates
                )
            )
    return violations


def check_numbering(entries: Iterable[YearlyLessonOut], *, context: str) -> list[NumberingViolation]:
    """Run after catalog mutations; violations are logged, not raised."""
    violations = find_numbering_violations(entries)
    for violation in violations:
        logger.warning(
            "Lesson numbering broken after %s: subject=%s class=%s week=%s topic=%s missing=%s duplicates=%s",
            context,
            violation.subject_id,
            violation.class_id,
            violation.week_number,
            violation.topic_id,
            violation.missing,
            violation.duplicates,
        )
    return violations
