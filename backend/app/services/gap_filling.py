from __future__ import annotations

import logging
from collections.abc import Sequence

from sqlalchemy.exc import SQLAlchemyError

from app.core.exceptions import AppError
from app.repositories.planning import YearlyLessonRepository
from app.schemas.yearly_lesson import YearlyLessonCreate, YearlyLessonOut
from app.services.catalog_invariants import check_numbering, missing_numbers
from app.services.planning_state import PlanningStore

logger = logging.getLogger(__name__)

GAP_LESSON_NAME = "Neue Lektion"


def find_gaps(entries: Sequence[YearlyLessonOut], week: int, subject_id: str, topic_id: str) -> list[int]:
    """Lesson numbers missing between the first and last entry carrying ``topic_id``.

    A single matching entry has no gaps.
    """
    numbers = [
        entry.lesson_number
        for entry in entries
        if entry.week_number == week and entry.subject_id == subject_id and entry.topic_id == topic_id
    ]
    return missing_numbers(numbers)


def gap_lesson_data(
    *,
    week: int,
    subject_id: str,
    class_id: str,
    lesson_number: int,
    topic_id: str,
    school_year: int,
) -> YearlyLessonCreate:
    return YearlyLessonCreate(
        subject_id=subject_id,
        class_id=class_id,
        week_number=week,
        lesson_number=lesson_number,
        school_year=school_year,
        topic_id=topic_id,
        name=GAP_LESSON_NAME,
        notes="",
        steps=[],
        is_double_lesson=False,
        second_yearly_lesson_id=None,
    )


class GapFiller:
    def __init__(self, yearly_lessons: YearlyLessonRepository, store: PlanningStore | None = None) -> None:
        self.yearly_lessons = yearly_lessons
        self.store = store

    def fill_gaps(
        self,
        entries: Sequence[YearlyLessonOut],
        *,
        week: int,
        subject_id: str,
        topic_id: str,
        class_id: str,
        school_year: int,
    ) -> list[YearlyLessonOut]:
        gaps = find_gaps(entries, week, subject_id, topic_id)
        if not gaps:
            return []

        taken = {
            entry.lesson_number: entry
            for entry in entries
            if entry.week_number == week and entry.subject_id == subject_id and entry.class_id == class_id
        }
        created: list[YearlyLessonOut] = []
        for lesson_number in gaps:
            existing = taken.get(lesson_number)
            if existing is not None:
                if existing.topic_id is not None:
                    logger.warning(
                        "Lesson %s of week %s belongs to topic %s; gap left open",
                        lesson_number,
                        week,
                        existing.topic_id,
                    )
                    continue
                # an untopiced entry already holds the number, so it joins the topic
                created.append(self.yearly_lessons.update(existing.id, {"topic_id": topic_id}))
                continue

            data = gap_lesson_data(
                week=week,
                subject_id=subject_id,
                class_id=class_id,
                lesson_number=lesson_number,
                topic_id=topic_id,
                school_year=school_year,
            )
            correlation_id = None
            if self.store is not None:
                correlation_id = self.store.begin_insert(
                    "yearly_lessons",
                    lambda cid, data=data: YearlyLessonOut(id=cid, **data.model_dump()),
                )
            try:
                record = self.yearly_lessons.create(data)
            except (AppError, SQLAlchemyError):
                logger.exception("Error creating gap lesson %s for week %s", lesson_number, week)
                if correlation_id is not None:
                    self.store.discard(correlation_id)
                raise
            if correlation_id is not None:
                self.store.confirm(correlation_id, record)
            created.append(record)

        logger.info(
            "Filled %d gap(s) %s for subject %s week %s topic %s",
            len(created),
            gaps,
            subject_id,
            week,
            topic_id,
        )
        merged = {entry.id: entry for entry in [*entries, *created]}
        check_numbering(merged.values(), context="gap fill")
        return created
