from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass

from app.core.exceptions import ResolutionFailure
from app.schemas.lesson import SlotPosition
from app.schemas.schedule import DAY_ORDER, WEEKDAYS, ScheduleTemplate, TemplateSlot
from app.schemas.subject import SubjectOut
from app.schemas.yearly_lesson import YearlyLessonOut

logger = logging.getLogger(__name__)

# (day, first period, subject name, class id)
DoubleSlotKey = tuple[str, int, str, str]


@dataclass(frozen=True)
class Placement:
    position: SlotPosition
    slot_index: int
    overflow: bool = False


def slot_key(day: str, slot: TemplateSlot) -> DoubleSlotKey:
    return (day, slot.period, slot.subject, slot.class_id)


def resolve_subject_name(entry: YearlyLessonOut, subjects: Iterable[SubjectOut]) -> str | None:
    for subject in subjects:
        if subject.id == entry.subject_id:
            return subject.name
    return None


def find_subject_for_slot(slot: TemplateSlot, subjects: Iterable[SubjectOut]) -> SubjectOut | None:
    for subject in subjects:
        if subject.name == slot.subject and subject.class_id == slot.class_id:
            return subject
    return None


def subject_slot_sequence(template: ScheduleTemplate, subject_name: str, class_id: str) -> list[SlotPosition]:
    """Every template slot of (subject, class), ordered by weekday then period."""
    sequence = [
        SlotPosition(day=day, period=slot.period)
        for day in WEEKDAYS
        for slot in template.slots_for(day)
        if slot.subject == subject_name and slot.class_id == class_id
    ]
    sequence.sort(key=lambda item: (DAY_ORDER[item.day], item.period))
    return sequence


def detect_double_lesson_slots(template: ScheduleTemplate) -> set[DoubleSlotKey]:
    """Keys of slots whose next period holds the same subject and class."""
    doubles: set[DoubleSlotKey] = set()
    for day in WEEKDAYS:
        slots = template.slots_for(day)
        for current, following in zip(slots, slots[1:]):
            if (
                current.period + 1 == following.period
                and current.subject == following.subject
                and current.class_id == following.class_id
            ):
                doubles.add(slot_key(day, current))
    return doubles


def is_template_double(template: ScheduleTemplate, day: str, period: int) -> bool:
    by_period = {slot.period: slot for slot in template.slots_for(day)}
    current = by_period.get(period)
    following = by_period.get(period + 1)
    if current is None or following is None:
        return False
    return current.subject == following.subject and current.class_id == following.class_id


def resolve_placement(entry: YearlyLessonOut, template: ScheduleTemplate, subject_name: str) -> Placement:
    """The ``lesson_number``-th slot of the subject's slot sequence.

    Entries numbered beyond the template's capacity fall back to the last slot
    and are flagged as overflow.
    """
    sequence = subject_slot_sequence(template, subject_name, entry.class_id)
    if not sequence:
        raise ResolutionFailure(
            f"No template slots for subject {subject_name} in class {entry.class_id}",
            {"yearly_lesson_id": entry.id, "subject": subject_name, "class_id": entry.class_id},
        )

    slot_index = entry.lesson_number - 1
    if slot_index < len(sequence):
        return Placement(position=sequence[slot_index], slot_index=slot_index)

    logger.warning(
        "Lesson number %s of %s exceeds %d template slots; using last slot for %s",
        entry.lesson_number,
        subject_name,
        len(sequence),
        entry.id,
    )
    return Placement(position=sequence[-1], slot_index=len(sequence) - 1, overflow=True)
