from __future__ import annotations

import logging
from collections.abc import Sequence

from app.core.exceptions import PlanningValidationError, ResourceNotFoundError
from app.repositories.planning import LessonRepository, SubjectRepository, YearlyLessonRepository
from app.schemas.lesson import SyncResult
from app.schemas.schedule import ScheduleSettingsBase
from app.schemas.yearly_lesson import (
    DoubleLessonResponse,
    TopicToggleResponse,
    YearlyLessonCreate,
    YearlyLessonCreateResponse,
    YearlyLessonOut,
    YearlyLessonUpdate,
)
from app.services.catalog_invariants import check_numbering
from app.services.gap_filling import GapFiller
from app.services.lesson_sync import LessonSynchronizer
from app.services.lesson_times import calculate_time_slot
from app.services.planning_state import PlanningStore

logger = logging.getLogger(__name__)


class LessonPlanningService:
    """Teacher-facing planning events on the yearly catalog.

    Each event writes the catalog first and then derives the weekly grid through
    the synchronizer, so the catalog stays the source of truth.
    """

    def __init__(
        self,
        yearly_lessons: YearlyLessonRepository,
        lessons: LessonRepository,
        subjects: SubjectRepository,
        settings: ScheduleSettingsBase,
        store: PlanningStore | None = None,
    ) -> None:
        self.yearly_lessons = yearly_lessons
        self.lessons = lessons
        self.subjects = subjects
        self.settings = settings
        self.synchronizer = LessonSynchronizer(lessons)
        self.gap_filler = GapFiller(yearly_lessons, store)

    def _week_entries(self, entry: YearlyLessonOut) -> list[YearlyLessonOut]:
        return self.yearly_lessons.for_subject_week(
            subject_id=entry.subject_id, week_number=entry.week_number, class_id=entry.class_id
        )

    def _require(self, entry_id: str) -> YearlyLessonOut:
        entry = self.yearly_lessons.find_by_id(entry_id)
        if entry is None:
            raise ResourceNotFoundError("Yearly lesson", entry_id)
        return entry

    def sync_entry(self, entry: YearlyLessonOut, context: Sequence[YearlyLessonOut] | None = None) -> SyncResult:
        return self.synchronizer.sync_entry_to_weekly(
            entry,
            self.settings.fixed_schedule_template,
            self.subjects.list(),
            context if context is not None else self._week_entries(entry),
            settings=self.settings,
        )

    def create_entry(self, payload: YearlyLessonCreate) -> YearlyLessonCreateResponse:
        if self.subjects.find_by_id(payload.subject_id) is None:
            raise PlanningValidationError("Unknown subject", {"subject_id": payload.subject_id})
        data = payload.model_copy()
        if data.lesson_number is not None:
            taken = self.yearly_lessons.for_subject_week(
                subject_id=payload.subject_id, week_number=payload.week_number, class_id=payload.class_id
            )
            if any(item.lesson_number == data.lesson_number for item in taken):
                raise PlanningValidationError(
                    "Lesson number already used in this week", {"lesson_number": data.lesson_number}
                )
        else:
            data.lesson_number = self.yearly_lessons.next_lesson_number(
                subject_id=payload.subject_id, week_number=payload.week_number, class_id=payload.class_id
            )
        entry = self.yearly_lessons.create(data)
        context = self._week_entries(entry)
        sync = self.sync_entry(entry, context)

        gap_lessons: list[YearlyLessonOut] = []
        if entry.topic_id:
            gap_lessons = self.gap_filler.fill_gaps(
                context,
                week=entry.week_number,
                subject_id=entry.subject_id,
                topic_id=entry.topic_id,
                class_id=entry.class_id,
                school_year=entry.school_year,
            )
            for gap_entry in gap_lessons:
                self.sync_entry(gap_entry, [*context, *gap_lessons])
        return YearlyLessonCreateResponse(entry=entry, sync=sync, gap_lessons=gap_lessons)

    def toggle_topic(self, entry_ids: Sequence[str], topic_id: str) -> TopicToggleResponse:
        """Assign ``topic_id`` to a block of entries, or clear it when they already carry it."""
        entries = [self._require(entry_id) for entry_id in entry_ids]
        anchor = entries[0]
        if any(
            (entry.subject_id, entry.week_number, entry.class_id)
            != (anchor.subject_id, anchor.week_number, anchor.class_id)
            for entry in entries
        ):
            raise PlanningValidationError("A topic block must stay within one subject and week")

        new_topic = None if anchor.topic_id == topic_id else topic_id
        updated = [self.yearly_lessons.update(entry.id, {"topic_id": new_topic}) for entry in entries]
        for entry in updated:
            existing = self.lessons.for_yearly_lesson(entry.id, entry.week_number)
            for lesson in existing:
                self.lessons.update(lesson.id, {"topic_id": new_topic})

        gap_lessons: list[YearlyLessonOut] = []
        context = self._week_entries(anchor)
        if new_topic is not None:
            gap_lessons = self.gap_filler.fill_gaps(
                context,
                week=anchor.week_number,
                subject_id=anchor.subject_id,
                topic_id=new_topic,
                class_id=anchor.class_id,
                school_year=anchor.school_year,
            )
            for gap_entry in gap_lessons:
                self.sync_entry(gap_entry, [*context, *gap_lessons])
        else:
            check_numbering(context, context="topic removal")
        return TopicToggleResponse(topic_id=new_topic, updated=updated, gap_lessons=gap_lessons)

    def set_double_lesson(
        self,
        entry_id: str,
        enabled: bool,
        second_entry_id: str | None = None,
    ) -> DoubleLessonResponse:
        entry = self._require(entry_id)
        context = self._week_entries(entry)

        if not enabled:
            released_id = entry.second_yearly_lesson_id
            primary = self._release_pair(entry)
            second = None
            if released_id:
                second = self.yearly_lessons.find_by_id(released_id)
                if second is not None:
                    refreshed = [primary if item.id == primary.id else item for item in context]
                    self.sync_entry(second, refreshed)
            return DoubleLessonResponse(primary=primary, second=second)

        if entry.second_yearly_lesson_id and entry.second_yearly_lesson_id != second_entry_id:
            raise PlanningValidationError(
                "Lesson is already a double lesson", {"second_yearly_lesson_id": entry.second_yearly_lesson_id}
            )
        second = self._pick_second(entry, context, second_entry_id)
        primary = self.yearly_lessons.update(
            entry.id, {"is_double_lesson": True, "second_yearly_lesson_id": second.id}
        )
        second = self.yearly_lessons.update(second.id, {"is_double_lesson": False, "second_yearly_lesson_id": None})

        for lesson in self.lessons.for_yearly_lesson(second.id, second.week_number):
            if not lesson.is_hidden:
                self.lessons.delete(lesson.id)
        for lesson in self.lessons.for_yearly_lesson(entry.id, entry.week_number):
            self.lessons.update(
                lesson.id,
                {
                    "is_double_lesson": True,
                    "second_yearly_lesson_id": second.id,
                    "period_span": 2,
                    "end_time": calculate_time_slot(lesson.period_slot, self.settings, span=2).end,
                },
            )
        logger.info("Paired yearly lessons %s and %s as a double lesson", primary.id, second.id)
        return DoubleLessonResponse(primary=primary, second=second)

    def _pick_second(
        self,
        entry: YearlyLessonOut,
        context: Sequence[YearlyLessonOut],
        second_entry_id: str | None,
    ) -> YearlyLessonOut:
        if second_entry_id is not None:
            if second_entry_id == entry.id:
                raise PlanningValidationError("A lesson cannot be its own second half")
            second = next((item for item in context if item.id == second_entry_id), None)
            if second is None:
                raise PlanningValidationError(
                    "The second lesson must belong to the same subject and week",
                    {"second_yearly_lesson_id": second_entry_id},
                )
        else:
            second = next((item for item in context if item.lesson_number == entry.lesson_number + 1), None)
            if second is None:
                raise PlanningValidationError(
                    "No following lesson to pair as a double lesson",
                    {"lesson_number": entry.lesson_number + 1},
                )
        if second.is_double_lesson or any(
            item.second_yearly_lesson_id == second.id for item in context if item.id != entry.id
        ):
            raise PlanningValidationError("The second lesson is already part of a double lesson")
        return second

    def update_entry(self, entry_id: str, payload: YearlyLessonUpdate) -> YearlyLessonOut:
        entry = self._require(entry_id)
        changes = payload.model_dump(exclude_unset=True)
        if not changes:
            return entry

        context = self._week_entries(entry)
        number = changes.get("lesson_number")
        if number is not None and number != entry.lesson_number:
            if any(item.lesson_number == number for item in context if item.id != entry.id):
                raise PlanningValidationError(
                    "Lesson number already used in this week", {"lesson_number": number}
                )

        updated = self.yearly_lessons.update(entry_id, changes)
        mirrored = {key: changes[key] for key in ("topic_id", "steps", "is_exam", "is_half_class") if key in changes}
        if mirrored:
            for lesson in self.lessons.for_yearly_lesson(entry_id, entry.week_number):
                self.lessons.update(lesson.id, mirrored)
        if number is not None and number != entry.lesson_number:
            refreshed = [updated if item.id == updated.id else item for item in context]
            self.sync_entry(updated, refreshed)
            check_numbering(refreshed, context="yearly lesson update")
        return updated

    def _release_pair(self, primary: YearlyLessonOut) -> YearlyLessonOut:
        released = self.yearly_lessons.update(
            primary.id, {"is_double_lesson": False, "second_yearly_lesson_id": None}
        )
        for lesson in self.lessons.for_yearly_lesson(primary.id, primary.week_number):
            self.lessons.update(
                lesson.id,
                {
                    "is_double_lesson": False,
                    "second_yearly_lesson_id": None,
                    "period_span": 1,
                    "end_time": calculate_time_slot(lesson.period_slot, self.settings).end,
                },
            )
        return released

    def delete_entry(self, entry_id: str) -> None:
        entry = self._require(entry_id)
        for owner in self.yearly_lessons.list_by(second_yearly_lesson_id=entry_id):
            self._release_pair(owner)
        for lesson in self.lessons.list_by(yearly_lesson_id=entry_id):
            self.lessons.delete(lesson.id)
        self.yearly_lessons.delete(entry_id)

        remaining = [item for item in self._week_entries(entry) if item.id != entry_id]
        if entry.second_yearly_lesson_id:
            second = next((item for item in remaining if item.id == entry.second_yearly_lesson_id), None)
            if second is not None:
                self.sync_entry(second, remaining)
        check_numbering(remaining, context="yearly lesson delete")
        logger.info("Deleted yearly lesson %s", entry_id)
