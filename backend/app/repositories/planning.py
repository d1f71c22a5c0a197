from __future__ import annotations

from sqlalchemy import func, select

from app.models.allerlei_group import AllerleiGroup
from app.models.lesson import Lesson
from app.models.subject import Subject
from app.models.yearly_lesson import YearlyLesson
from app.repositories.base import SqlRepository
from app.schemas.allerlei import AllerleiGroupOut
from app.schemas.lesson import LessonOut
from app.schemas.subject import SubjectOut
from app.schemas.yearly_lesson import YearlyLessonOut


class YearlyLessonRepository(SqlRepository[YearlyLesson, YearlyLessonOut]):
    model = YearlyLesson
    record_type = YearlyLessonOut
    collection = "yearly_lessons"

    def for_subject_week(self, *, subject_id: str, week_number: int, class_id: str) -> list[YearlyLessonOut]:
        return self.list(
            YearlyLesson.subject_id == subject_id,
            YearlyLesson.week_number == week_number,
            YearlyLesson.class_id == class_id,
            order_by=YearlyLesson.lesson_number,
        )

    def next_lesson_number(self, *, subject_id: str, week_number: int, class_id: str) -> int:
        statement = select(func.max(YearlyLesson.lesson_number)).where(
            YearlyLesson.subject_id == subject_id,
            YearlyLesson.week_number == week_number,
            YearlyLesson.class_id == class_id,
        )
        with self._store_call("next_lesson_number"):
            current = self.db.execute(statement).scalar_one_or_none()
        return (current or 0) + 1


class LessonRepository(SqlRepository[Lesson, LessonOut]):
    model = Lesson
    record_type = LessonOut
    collection = "lessons"

    def for_week(self, week_number: int) -> list[LessonOut]:
        return self.list(Lesson.week_number == week_number)

    def for_yearly_lesson(self, yearly_lesson_id: str, week_number: int) -> list[LessonOut]:
        return self.list(Lesson.yearly_lesson_id == yearly_lesson_id, Lesson.week_number == week_number)


class AllerleiGroupRepository(SqlRepository[AllerleiGroup, AllerleiGroupOut]):
    model = AllerleiGroup
    record_type = AllerleiGroupOut
    collection = "allerlei_groups"


class SubjectRepository(SqlRepository[Subject, SubjectOut]):
    model = Subject
    record_type = SubjectOut
    collection = "subjects"
