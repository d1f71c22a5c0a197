from __future__ import annotations

import logging
from collections.abc import Sequence

from app.core.exceptions import ResolutionFailure
from app.repositories.planning import LessonRepository
from app.schemas.lesson import LessonCreate, SyncResult
from app.schemas.schedule import ScheduleSettingsBase, ScheduleTemplate
from app.schemas.subject import SubjectOut
from app.schemas.yearly_lesson import YearlyLessonOut
from app.services.lesson_times import calculate_time_slot
from app.services.schedule_template import is_template_double, resolve_placement, resolve_subject_name

logger = logging.getLogger(__name__)


def is_second_half(entry: YearlyLessonOut, entries: Sequence[YearlyLessonOut]) -> bool:
    return any(item.second_yearly_lesson_id == entry.id for item in entries if item.id != entry.id)


class LessonSynchronizer:
    """Derives the weekly lesson of one yearly entry from the fixed template."""

    def __init__(self, lessons: LessonRepository) -> None:
        self.lessons = lessons

    def sync_entry_to_weekly(
        self,
        entry: YearlyLessonOut,
        template: ScheduleTemplate,
        subjects: Sequence[SubjectOut],
        all_entries: Sequence[YearlyLessonOut],
        *,
        settings: ScheduleSettingsBase,
    ) -> SyncResult:
        if not settings.is_fixed:
            return SyncResult(action="skipped", yearly_lesson_id=entry.id, reason="not_fixed_schedule")
        if template.is_empty():
            logger.warning("No fixed schedule template configured; skipping sync of %s", entry.id)
            return SyncResult(action="skipped", yearly_lesson_id=entry.id, reason="empty_template")

        subject_name = resolve_subject_name(entry, subjects)
        if subject_name is None:
            logger.warning("Cannot resolve subject %s for yearly lesson %s", entry.subject_id, entry.id)
            return SyncResult(action="skipped", yearly_lesson_id=entry.id, reason="unknown_subject")

        context = sorted(
            (
                item
                for item in all_entries
                if item.week_number == entry.week_number
                and item.subject_id == entry.subject_id
                and item.class_id == entry.class_id
            ),
            key=lambda item: item.lesson_number,
        )
        if is_second_half(entry, context):
            logger.debug("Yearly lesson %s is the second half of a double; nothing to place", entry.id)
            return SyncResult(action="skipped", yearly_lesson_id=entry.id, reason="second_half_of_double")

        try:
            placement = resolve_placement(entry, template, subject_name)
        except ResolutionFailure as exc:
            logger.warning("%s", exc.message)
            return SyncResult(action="skipped", yearly_lesson_id=entry.id, reason="no_template_slots")

        warnings: list[str] = []
        if placement.overflow:
            warnings.append(
                f"Week {entry.week_number} has more {subject_name} lessons than template slots; "
                f"lesson {entry.lesson_number} shares the last slot"
            )

        position = placement.position
        template_double = is_template_double(template, position.day, position.period)
        is_double = entry.is_double_lesson or (template_double and entry.second_yearly_lesson_id is not None)
        time_slot = calculate_time_slot(position.period, settings, span=2 if is_double else 1)

        existing = self.lessons.for_yearly_lesson(entry.id, entry.week_number)
        if existing:
            # the lesson keeps its period, only its length follows the entry
            current_slot = calculate_time_slot(existing[0].period_slot, settings, span=2 if is_double else 1)
            lesson = self.lessons.update(
                existing[0].id,
                {
                    "end_time": current_slot.end,
                    "topic_id": entry.topic_id,
                    "is_exam": entry.is_exam,
                    "is_double_lesson": is_double,
                    "period_span": 2 if is_double else 1,
                    "second_yearly_lesson_id": entry.second_yearly_lesson_id,
                    "is_half_class": entry.is_half_class,
                    "is_allerlei": entry.is_allerlei,
                    "allerlei_subjects": list(entry.allerlei_subjects),
                },
            )
            logger.debug("Updated lesson %s for yearly lesson %s", lesson.id, entry.id)
            return SyncResult(
                action="updated",
                yearly_lesson_id=entry.id,
                lesson=lesson,
                placement=position,
                warnings=warnings,
            )

        lesson = self.lessons.create(
            LessonCreate(
                subject_id=entry.subject_id,
                class_id=entry.class_id,
                day_of_week=position.day,
                period_slot=position.period,
                week_number=entry.week_number,
                school_year=entry.school_year,
                start_time=time_slot.start,
                end_time=time_slot.end,
                yearly_lesson_id=entry.id,
                second_yearly_lesson_id=entry.second_yearly_lesson_id,
                topic_id=entry.topic_id,
                is_double_lesson=is_double,
                period_span=2 if is_double else 1,
                is_hidden=False,
                is_allerlei=entry.is_allerlei,
                allerlei_subjects=list(entry.allerlei_subjects),
                is_exam=entry.is_exam,
                is_half_class=entry.is_half_class,
            )
        )
        logger.info(
            "Placed yearly lesson %s at %s period %s (double=%s)",
            entry.id,
            position.day,
            position.period,
            is_double,
        )
        return SyncResult(
            action="created",
            yearly_lesson_id=entry.id,
            lesson=lesson,
            placement=position,
            warnings=warnings,
        )
