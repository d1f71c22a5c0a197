"""Allerlei (mixed-subject) lessons.

A merge shows several subjects' yearly lessons as one visible block. The
primary entry keeps its name; donors get an " (Allerlei)" suffix and their own
weekly lessons are hidden. Every entry's name/notes/steps are snapshotted on
the group record so unlinking restores them exactly.
"""
from __future__ import annotations

import logging
import time
from collections.abc import Callable, Sequence

from app.core.exceptions import OperationCancelledError, PlanningValidationError, TransientStoreError
from app.repositories.planning import AllerleiGroupRepository, LessonRepository, YearlyLessonRepository
from app.schemas.allerlei import (
    AllerleiCreateResponse,
    AllerleiRequest,
    AllerleiSnapshot,
    AllerleiUnlinkResponse,
)
from app.schemas.lesson import LessonCreate, LessonOut
from app.schemas.schedule import ScheduleSettingsBase
from app.schemas.yearly_lesson import YearlyLessonOut
from app.services.catalog_invariants import check_numbering
from app.services.lesson_times import calculate_time_slot
from app.services.slot_allocator import find_free_slot, is_slot_available

logger = logging.getLogger(__name__)

ALLERLEI_NAME_SUFFIX = " (Allerlei)"
ALLERLEI_NOTES_SUFFIX = " (in Allerlei)"


def default_lesson_name(entry: YearlyLessonOut) -> str:
    return entry.name or f"Lektion {entry.lesson_number}"


def snapshot_entry(entry: YearlyLessonOut) -> AllerleiSnapshot:
    return AllerleiSnapshot(
        original_name=entry.name,
        original_notes=entry.notes,
        original_steps=[dict(step) for step in entry.steps],
    )


def validate_group(request: AllerleiRequest) -> None:
    if not request.assignments:
        raise PlanningValidationError("Select at least one subject for the Allerlei lesson")
    if not request.assignments[0].yearly_lesson_id:
        raise PlanningValidationError("Select a primary lesson for the Allerlei lesson")
    unassigned = [item.subject for item in request.assignments if not item.yearly_lesson_id]
    if unassigned:
        raise PlanningValidationError(
            "Every subject needs a yearly lesson", {"subjects_without_lesson": unassigned}
        )
    ids = request.yearly_lesson_ids
    if len(set(ids)) != len(ids):
        duplicates = sorted({item for item in ids if ids.count(item) > 1})
        raise PlanningValidationError(
            "No duplicate lessons allowed in an Allerlei lesson", {"duplicate_ids": duplicates}
        )


class AllerleiService:
    def __init__(
        self,
        yearly_lessons: YearlyLessonRepository,
        lessons: LessonRepository,
        groups: AllerleiGroupRepository,
        *,
        retry_attempts: int = 3,
        retry_backoff_seconds: float = 0.15,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.yearly_lessons = yearly_lessons
        self.lessons = lessons
        self.groups = groups
        self.retry_attempts = max(1, retry_attempts)
        self.retry_backoff_seconds = retry_backoff_seconds
        self._sleep = sleep

    def integrate(
        self,
        selected_ids: Sequence[str],
        lessons: Sequence[LessonOut],
        week: int,
        yearly_lessons: Sequence[YearlyLessonOut],
        current_lesson_id: str | None = None,
    ) -> dict[str, AllerleiSnapshot]:
        """Hide the selected entries' visible lessons and mark the entries as merged.

        Returns the snapshots taken before anything was changed.
        """
        by_id = {entry.id: entry for entry in yearly_lessons}
        snapshots: dict[str, AllerleiSnapshot] = {}
        for index, entry_id in enumerate(selected_ids):
            entry = by_id.get(entry_id)
            if entry is None:
                logger.warning("Yearly lesson %s not loaded; skipping integration", entry_id)
                continue
            snapshots[entry_id] = snapshot_entry(entry)

            scheduled = [
                lesson
                for lesson in lessons
                if lesson.yearly_lesson_id == entry_id
                and lesson.week_number == week
                and lesson.id != current_lesson_id
                and not lesson.is_hidden
            ]
            for lesson in scheduled:
                self.lessons.update(lesson.id, {"is_hidden": True})

            name = default_lesson_name(entry)
            self.yearly_lessons.update(
                entry_id,
                {
                    "name": name if index == 0 else f"{name}{ALLERLEI_NAME_SUFFIX}",
                    "notes": f"{entry.notes}{ALLERLEI_NOTES_SUFFIX}",
                    "is_allerlei": True,
                },
            )
            logger.debug("Integrated yearly lesson %s (hid %d lesson(s))", entry_id, len(scheduled))
        return snapshots

    def convert_to_allerlei(
        self,
        request: AllerleiRequest,
        lessons: Sequence[LessonOut],
        settings: ScheduleSettingsBase,
    ) -> AllerleiCreateResponse:
        validate_group(request)
        entry_ids = request.yearly_lesson_ids
        entries: list[YearlyLessonOut] = []
        for entry_id in entry_ids:
            entry = self.yearly_lessons.find_by_id(entry_id)
            if entry is None:
                raise PlanningValidationError("Selected yearly lesson does not exist", {"yearly_lesson_id": entry_id})
            entries.append(entry)

        week_lessons = [lesson for lesson in lessons if lesson.week_number == request.week_number]
        remaining = [
            lesson
            for lesson in week_lessons
            if lesson.id != request.current_lesson_id and lesson.yearly_lesson_id not in entry_ids
        ]
        if not is_slot_available(remaining, request.day_of_week, request.period_slot, request.week_number):
            raise PlanningValidationError(
                "The Allerlei slot is already occupied",
                {"day_of_week": request.day_of_week, "period_slot": request.period_slot},
            )

        snapshots = self.integrate(
            entry_ids,
            week_lessons,
            request.week_number,
            entries,
            current_lesson_id=request.current_lesson_id,
        )

        primary = entries[0]
        time_slot = calculate_time_slot(request.period_slot, settings)
        merged_steps = [dict(step) for entry in entries for step in entry.steps]
        block = {
            "subject_id": primary.subject_id,
            "class_id": primary.class_id,
            "day_of_week": request.day_of_week,
            "period_slot": request.period_slot,
            "week_number": request.week_number,
            "school_year": primary.school_year,
            "start_time": time_slot.start,
            "end_time": time_slot.end,
            "yearly_lesson_id": primary.id,
            "topic_id": primary.topic_id,
            "is_double_lesson": False,
            "period_span": 1,
            "is_hidden": False,
            "is_allerlei": True,
            "allerlei_subjects": request.subjects,
            "allerlei_yearly_lesson_ids": entry_ids,
            "steps": merged_steps,
        }
        if request.current_lesson_id:
            lesson = self.lessons.update(request.current_lesson_id, block)
        else:
            lesson = self.lessons.create(LessonCreate(**block))

        self.yearly_lessons.update(primary.id, {"allerlei_subjects": request.subjects})
        group = self.groups.create(
            {
                "primary_yearly_lesson_id": primary.id,
                "added_yearly_lesson_ids": entry_ids[1:],
                "snapshots": {entry_id: snap.model_dump() for entry_id, snap in snapshots.items()},
                "allerlei_subjects": request.subjects,
                "week_number": request.week_number,
                "day_of_week": request.day_of_week,
                "period_slot": request.period_slot,
                "lesson_id": lesson.id,
            }
        )
        check_numbering(entries, context="allerlei merge")
        logger.info("Created Allerlei group %s with %d lessons", group.id, len(entry_ids))
        return AllerleiCreateResponse(group=group, lesson=lesson)

    def unlink(
        self,
        group_id: str,
        lessons: Sequence[LessonOut],
        settings: ScheduleSettingsBase,
    ) -> AllerleiUnlinkResponse:
        """Dissolve a group.

        The primary goes back onto the grid: its hidden lesson is un-hidden, or
        a new one is placed starting at the block's position. Donors get their
        metadata back but stay hidden until a teacher places them again.
        """
        group = self.groups.find_by_id(group_id)
        if group is None:
            logger.warning("Allerlei group %s not found; skipping unlink", group_id)
            return AllerleiUnlinkResponse(group_id=group_id)

        week = group.week_number
        response = AllerleiUnlinkResponse(group_id=group_id)
        if group.lesson_id and self.lessons.find_by_id(group.lesson_id) is not None:
            self.lessons.delete(group.lesson_id)
        week_lessons = [
            lesson for lesson in lessons if lesson.week_number == week and lesson.id != group.lesson_id
        ]

        restored_entries: list[YearlyLessonOut] = []
        for index, entry_id in enumerate(group.all_yearly_lesson_ids):
            entry = self.yearly_lessons.find_by_id(entry_id)
            if entry is None:
                logger.error("Yearly lesson %s not found during unlink; skipping", entry_id)
                continue

            snapshot = group.snapshots.get(entry_id)
            if snapshot is not None:
                name, notes, steps = snapshot.original_name, snapshot.original_notes, snapshot.original_steps
            else:
                name = entry.name.replace(ALLERLEI_NAME_SUFFIX, "")
                notes = entry.notes.replace(ALLERLEI_NOTES_SUFFIX, "")
                steps = entry.steps
            restored_entries.append(
                self.yearly_lessons.update(
                    entry_id,
                    {"name": name, "notes": notes, "steps": steps, "is_allerlei": False, "allerlei_subjects": []},
                )
            )

            if index > 0:
                response.unscheduled_yearly_lesson_ids.append(entry_id)
                continue

            hidden = next(
                (
                    lesson
                    for lesson in week_lessons
                    if lesson.yearly_lesson_id == entry_id and lesson.is_hidden
                ),
                None,
            )
            if hidden is not None:
                try:
                    restored = self._unhide_with_retry(hidden.id)
                except TransientStoreError:
                    logger.error("Could not unhide lesson %s for yearly lesson %s", hidden.id, entry_id)
                    response.failed_yearly_lesson_ids.append(entry_id)
                    continue
                response.restored_lessons.append(restored)
                week_lessons = [restored if item.id == restored.id else item for item in week_lessons]
                continue

            slot = find_free_slot(week_lessons, group.day_of_week, settings.lessons_per_day, week, group.period_slot)
            if slot is None:
                logger.warning("No free slot to restore primary yearly lesson %s in week %s", entry_id, week)
                response.unscheduled_yearly_lesson_ids.append(entry_id)
                continue
            time_slot = calculate_time_slot(slot.period, settings)
            created = self.lessons.create(
                LessonCreate(
                    subject_id=entry.subject_id,
                    class_id=entry.class_id,
                    day_of_week=slot.day,
                    period_slot=slot.period,
                    week_number=week,
                    school_year=entry.school_year,
                    start_time=time_slot.start,
                    end_time=time_slot.end,
                    yearly_lesson_id=entry_id,
                    topic_id=entry.topic_id,
                    is_hidden=False,
                    steps=steps,
                )
            )
            response.restored_lessons.append(created)
            week_lessons.append(created)

        self.groups.delete(group_id)
        check_numbering(restored_entries, context="allerlei unlink")
        logger.info(
            "Unlinked Allerlei group %s: %d restored, %d unscheduled, %d failed",
            group_id,
            len(response.restored_lessons),
            len(response.unscheduled_yearly_lesson_ids),
            len(response.failed_yearly_lesson_ids),
        )
        return response

    def _unhide_with_retry(self, lesson_id: str) -> LessonOut:
        for attempt in range(1, self.retry_attempts + 1):
            try:
                return self.lessons.update(lesson_id, {"is_hidden": False})
            except OperationCancelledError:
                if attempt >= self.retry_attempts:
                    raise
                logger.warning("Unhide of lesson %s cancelled (attempt %d); retrying", lesson_id, attempt)
                self._sleep(self.retry_backoff_seconds)
        raise TransientStoreError(f"Unhide of lesson {lesson_id} did not complete")
