from __future__ import annotations

import logging
import time
from collections import defaultdict
from collections.abc import Callable, Sequence

from sqlalchemy.exc import SQLAlchemyError

from app.core.exceptions import AppError, PlanningValidationError
from app.repositories.planning import LessonRepository
from app.schemas.generator import (
    FailedBatch,
    GenerateScheduleResponse,
    GenerationProgress,
    GenerationStats,
    SkippedWeek,
)
from app.schemas.lesson import LessonCreate, LessonOut
from app.schemas.schedule import WEEKDAYS, ScheduleSettingsBase, ScheduleTemplate
from app.schemas.subject import SubjectOut
from app.schemas.yearly_lesson import YearlyLessonOut
from app.services.lesson_times import calculate_time_slot
from app.services.schedule_template import (
    DoubleSlotKey,
    detect_double_lesson_slots,
    find_subject_for_slot,
    slot_key,
)

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[GenerationProgress], None]
GroupKey = tuple[str, str]


def group_by_subject_class(entries: Sequence[YearlyLessonOut]) -> dict[GroupKey, list[YearlyLessonOut]]:
    grouped: dict[GroupKey, list[YearlyLessonOut]] = defaultdict(list)
    for entry in entries:
        grouped[(entry.subject_id, entry.class_id)].append(entry)
    for items in grouped.values():
        items.sort(key=lambda item: item.lesson_number)
    return dict(grouped)


def plan_week(
    *,
    template: ScheduleTemplate,
    week: int,
    entries_by_group: dict[GroupKey, list[YearlyLessonOut]],
    double_slots: set[DoubleSlotKey],
    subjects: Sequence[SubjectOut],
    settings: ScheduleSettingsBase,
    school_year: int,
    warnings: list[str] | None = None,
) -> list[LessonCreate]:
    """Walk the template day by day and hand each slot the next unplaced entry
    of its (subject, class), in lesson-number order."""
    planned: list[LessonCreate] = []
    cursors: dict[GroupKey, int] = defaultdict(int)
    consumed_second_periods: set[DoubleSlotKey] = set()
    second_halves = {
        entry.second_yearly_lesson_id
        for items in entries_by_group.values()
        for entry in items
        if entry.second_yearly_lesson_id
    }

    for day in WEEKDAYS:
        for slot in template.slots_for(day):
            key = slot_key(day, slot)
            if key in consumed_second_periods:
                continue

            subject = find_subject_for_slot(slot, subjects)
            if subject is None:
                message = f"Subject not found: {slot.subject} for class {slot.class_id}"
                logger.warning(message)
                if warnings is not None and message not in warnings:
                    warnings.append(message)
                continue

            group_key = (subject.id, slot.class_id)
            available = entries_by_group.get(group_key, [])
            index = cursors[group_key]
            while index < len(available) and available[index].id in second_halves:
                index += 1
            if index >= len(available):
                continue

            entry = available[index]
            cursors[group_key] = index + 1
            is_double = key in double_slots and entry.second_yearly_lesson_id is not None
            time_slot = calculate_time_slot(slot.period, settings, span=2 if is_double else 1)

            planned.append(
                LessonCreate(
                    subject_id=subject.id,
                    class_id=slot.class_id,
                    day_of_week=day,
                    period_slot=slot.period,
                    week_number=week,
                    school_year=school_year,
                    start_time=time_slot.start,
                    end_time=time_slot.end,
                    yearly_lesson_id=entry.id,
                    second_yearly_lesson_id=entry.second_yearly_lesson_id if is_double else None,
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

            if is_double:
                consumed_second_periods.add((day, slot.period + 1, slot.subject, slot.class_id))
                next_index = cursors[group_key]
                if next_index < len(available) and available[next_index].id == entry.second_yearly_lesson_id:
                    cursors[group_key] = next_index + 1

    return planned


class FixedScheduleGenerator:
    """Expands the fixed template over the school year against the yearly catalog.

    Weeks that already show lessons are never touched. Creation is best effort:
    a failing batch is reported and the remaining batches still run.
    """

    def __init__(
        self,
        lessons: LessonRepository,
        *,
        weeks_per_year: int = 52,
        batch_size: int = 20,
        batch_delay_seconds: float = 0.1,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.lessons = lessons
        self.weeks_per_year = weeks_per_year
        self.batch_size = max(1, batch_size)
        self.batch_delay_seconds = batch_delay_seconds
        self._sleep = sleep

    def generate_from_template(
        self,
        *,
        template: ScheduleTemplate,
        yearly_lessons: Sequence[YearlyLessonOut],
        existing_lessons: Sequence[LessonOut],
        subjects: Sequence[SubjectOut],
        settings: ScheduleSettingsBase,
        school_year: int,
        progress: ProgressCallback | None = None,
    ) -> GenerateScheduleResponse:
        if template.is_empty():
            raise PlanningValidationError("The fixed schedule template is empty")
        if not yearly_lessons:
            raise PlanningValidationError("No yearly lessons planned yet; create the yearly plan first")

        logger.info(
            "Starting fixed schedule generation: %d template days, %d yearly lessons, %d existing lessons",
            len(template.days),
            len(yearly_lessons),
            len(existing_lessons),
        )
        double_slots = detect_double_lesson_slots(template)
        logger.debug("Detected %d double lesson slots", len(double_slots))

        visible_by_week: dict[int, int] = defaultdict(int)
        for lesson in existing_lessons:
            if not lesson.is_hidden:
                visible_by_week[lesson.week_number] += 1
        yearly_by_week: dict[int, list[YearlyLessonOut]] = defaultdict(list)
        for entry in yearly_lessons:
            yearly_by_week[entry.week_number].append(entry)

        stats = GenerationStats()
        to_create: list[LessonCreate] = []
        for week in range(1, self.weeks_per_year + 1):
            if visible_by_week.get(week):
                stats.skipped_details.append(
                    SkippedWeek(week=week, reason="already_exists", count=visible_by_week[week])
                )
                continue
            if not yearly_by_week.get(week):
                stats.skipped_details.append(SkippedWeek(week=week, reason="no_yearly_lessons"))
                continue

            to_create.extend(
                plan_week(
                    template=template,
                    week=week,
                    entries_by_group=group_by_subject_class(yearly_by_week[week]),
                    double_slots=double_slots,
                    subjects=subjects,
                    settings=settings,
                    school_year=school_year,
                    warnings=stats.warnings,
                )
            )
            if week % 5 == 0:
                self._report(
                    progress,
                    GenerationProgress(
                        phase="planning",
                        processed=week,
                        total=self.weeks_per_year,
                        message=f"Week {week}/{self.weeks_per_year} processed ({len(to_create)} lessons planned)",
                    ),
                )

        created = self._batch_create(to_create, stats, progress)

        stats.total_created = len(created)
        stats.double_lessons = sum(1 for lesson in created if lesson.is_double_lesson)
        stats.skipped_weeks = len(stats.skipped_details)
        stats.processed_weeks = self.weeks_per_year - stats.skipped_weeks
        logger.info(
            "Fixed schedule generation complete: %d created, %d doubles, %d weeks skipped, %d failed batches",
            stats.total_created,
            stats.double_lessons,
            stats.skipped_weeks,
            len(stats.failed_batches),
        )
        self._report(
            progress,
            GenerationProgress(
                phase="done",
                processed=len(created),
                total=len(to_create),
                message=f"{len(created)} lessons created",
            ),
        )
        return GenerateScheduleResponse(lessons=created, stats=stats)

    def _batch_create(
        self,
        planned: list[LessonCreate],
        stats: GenerationStats,
        progress: ProgressCallback | None,
    ) -> list[LessonOut]:
        created: list[LessonOut] = []
        total = len(planned)
        for start in range(0, total, self.batch_size):
            batch = planned[start:start + self.batch_size]
            end = start + len(batch)
            self._report(
                progress,
                GenerationProgress(
                    phase="creating",
                    processed=start,
                    total=total,
                    message=f"Creating lessons {start + 1}-{end} of {total}",
                ),
            )
            try:
                for lesson in batch:
                    created.append(self.lessons.create(lesson))
            except (AppError, SQLAlchemyError) as exc:
                logger.error("Batch %d-%d failed: %s", start + 1, end, exc)
                stats.failed_batches.append(FailedBatch(start=start + 1, end=end, error=str(exc)))
            if end < total and self.batch_delay_seconds > 0:
                self._sleep(self.batch_delay_seconds)
        return created

    @staticmethod
    def _report(progress: ProgressCallback | None, event: GenerationProgress) -> None:
        if progress is not None:
            progress(event)
