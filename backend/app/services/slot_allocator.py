"""Free-slot search over a week's visible lessons.

All functions are pure: they read a sequence of lessons (anything exposing
``day_of_week``, ``period_slot``, ``week_number``, ``is_hidden`` and
optionally ``is_double_lesson``/``period_span``) and never touch the store.
Hidden lessons are donors absorbed into an Allerlei block and never occupy a
slot. A visible double lesson occupies its own period and the one after it.
"""
from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from typing import Any

from app.schemas.lesson import SlotPosition
from app.schemas.schedule import DAY_ORDER, WEEKDAYS

logger = logging.getLogger(__name__)


def _span(lesson: Any) -> int:
    span = getattr(lesson, "period_span", 1) or 1
    if getattr(lesson, "is_double_lesson", False):
        span = max(span, 2)
    return span


def occupied_slots(lessons: Iterable[Any], week: int) -> set[tuple[str, int]]:
    occupied: set[tuple[str, int]] = set()
    for lesson in lessons:
        if lesson.week_number != week or lesson.is_hidden:
            continue
        for offset in range(_span(lesson)):
            occupied.add((lesson.day_of_week, lesson.period_slot + offset))
    return occupied


def _first_free(occupied: set[tuple[str, int]], day: str, start: int, slot_count: int) -> SlotPosition | None:
    for period in range(max(1, start), slot_count + 1):
        if (day, period) not in occupied:
            return SlotPosition(day=day, period=period)
    return None


def find_free_slot(
    lessons: Sequence[Any],
    preferred_day: str,
    slot_count: int,
    week: int,
    preferred_period: int = 1,
) -> SlotPosition | None:
    """First free period on ``preferred_day`` from ``preferred_period``, then
    later weekdays from period 1, then the weekdays before ``preferred_day``.

    Returns ``None`` when the week is fully booked.
    """
    occupied = occupied_slots(lessons, week)
    found = _first_free(occupied, preferred_day, preferred_period, slot_count)
    if found is not None:
        return found

    day_index = DAY_ORDER.get(preferred_day, 0)
    for day in WEEKDAYS[day_index + 1:]:
        found = _first_free(occupied, day, 1, slot_count)
        if found is not None:
            return found

    for day in WEEKDAYS[:day_index]:
        found = _first_free(occupied, day, 1, slot_count)
        if found is not None:
            return found

    logger.warning("No free slot found for %s in week %s", preferred_day, week)
    return None


def find_alternative_slot(
    lessons: Sequence[Any],
    target_day: str,
    slot_count: int,
    week: int,
    target_period: int,
) -> SlotPosition | None:
    # target_period + 1 may be the vacated half of a double lesson
    occupied = occupied_slots(lessons, week)
    found = _first_free(occupied, target_day, target_period + 2, slot_count)
    if found is not None:
        return found

    day_index = DAY_ORDER.get(target_day, 0)
    for day in WEEKDAYS[day_index + 1:]:
        found = _first_free(occupied, day, 1, slot_count)
        if found is not None:
            return found

    logger.warning("No alternative slot found for %s period %s", target_day, target_period)
    return None


def is_slot_available(
    lessons: Iterable[Any],
    day: str,
    period: int,
    week: int,
    is_double: bool = False,
) -> bool:
    occupied = occupied_slots(lessons, week)
    if (day, period) in occupied:
        return False
    if is_double and (day, period + 1) in occupied:
        return False
    return True


def validate_lesson_placement(lesson: Any, lessons: Iterable[Any], week: int) -> bool:
    lesson_id = getattr(lesson, "id", None)
    others = [item for item in lessons if lesson_id is None or getattr(item, "id", None) != lesson_id]
    return is_slot_available(
        others,
        lesson.day_of_week,
        lesson.period_slot,
        week,
        bool(getattr(lesson, "is_double_lesson", False)),
    )
