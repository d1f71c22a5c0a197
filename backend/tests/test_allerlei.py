import pytest

from app.core.exceptions import OperationCancelledError, PlanningValidationError
from app.repositories.planning import AllerleiGroupRepository, LessonRepository, YearlyLessonRepository
from app.schemas.allerlei import AllerleiRequest
from app.schemas.lesson import LessonCreate
from app.schemas.schedule import ScheduleSettingsBase
from app.schemas.yearly_lesson import YearlyLessonCreate
from app.services.allerlei import AllerleiService, validate_group


class CancellingLessonRepository(LessonRepository):
    def __init__(self, db, cancellations: int) -> None:
        super().__init__(db)
        self.cancellations = cancellations

    def update(self, record_id, partial):
        if partial == {"is_hidden": False} and self.cancellations > 0:
            self.cancellations -= 1
            raise OperationCancelledError("lessons.update was cancelled")
        return super().update(record_id, partial)


@pytest.fixture()
def planning(db_session):
    yearly = YearlyLessonRepository(db_session)
    math = yearly.create(
        YearlyLessonCreate(
            subject_id="math",
            class_id="5a",
            week_number=1,
            lesson_number=1,
            school_year=2026,
            name="Bruchrechnen",
            notes="Kapitel 2",
            steps=[{"time": "10", "content": "Einstieg"}],
        )
    )
    german = yearly.create(
        YearlyLessonCreate(
            subject_id="german",
            class_id="5a",
            week_number=1,
            lesson_number=1,
            school_year=2026,
            name="Diktat",
        )
    )
    return {"db": db_session, "yearly": yearly, "math": math, "german": german}


def _place(lessons, entry, period):
    return lessons.create(
        LessonCreate(
            subject_id=entry.subject_id,
            class_id=entry.class_id,
            day_of_week="monday",
            period_slot=period,
            week_number=1,
            yearly_lesson_id=entry.id,
        )
    )


def _request(planning, period=5):
    return AllerleiRequest(
        week_number=1,
        day_of_week="monday",
        period_slot=period,
        assignments=[
            {"subject": "Mathematik", "yearly_lesson_id": planning["math"].id},
            {"subject": "Deutsch", "yearly_lesson_id": planning["german"].id},
        ],
    )


def _service(planning, lessons, **kwargs):
    return AllerleiService(planning["yearly"], lessons, AllerleiGroupRepository(planning["db"]), **kwargs)


def test_merge_hides_donors_and_creates_block(planning):
    lessons = LessonRepository(planning["db"])
    math_lesson = _place(lessons, planning["math"], 1)
    german_lesson = _place(lessons, planning["german"], 3)
    service = _service(planning, lessons)

    created = service.convert_to_allerlei(_request(planning), lessons.for_week(1), ScheduleSettingsBase())

    assert lessons.find_by_id(math_lesson.id).is_hidden
    assert lessons.find_by_id(german_lesson.id).is_hidden
    assert created.lesson.is_allerlei
    assert not created.lesson.is_hidden
    assert (created.lesson.day_of_week, created.lesson.period_slot) == ("monday", 5)
    assert created.lesson.allerlei_subjects == ["Mathematik", "Deutsch"]
    assert created.group.added_yearly_lesson_ids == [planning["german"].id]

    math = planning["yearly"].find_by_id(planning["math"].id)
    german = planning["yearly"].find_by_id(planning["german"].id)
    assert math.name == "Bruchrechnen"
    assert german.name == "Diktat (Allerlei)"
    assert german.notes == " (in Allerlei)"
    assert math.is_allerlei and german.is_allerlei


def test_unlink_restores_entries_exactly(planning):
    lessons = LessonRepository(planning["db"])
    math_lesson = _place(lessons, planning["math"], 1)
    german_lesson = _place(lessons, planning["german"], 3)
    service = _service(planning, lessons)
    settings = ScheduleSettingsBase()
    created = service.convert_to_allerlei(_request(planning), lessons.for_week(1), settings)

    result = service.unlink(created.group.id, lessons.for_week(1), settings)

    for original in (planning["math"], planning["german"]):
        restored = planning["yearly"].find_by_id(original.id)
        assert (restored.name, restored.notes, restored.steps) == (original.name, original.notes, original.steps)
        assert not restored.is_allerlei
    assert [lesson.id for lesson in result.restored_lessons] == [math_lesson.id]
    assert not lessons.find_by_id(math_lesson.id).is_hidden
    assert lessons.find_by_id(german_lesson.id).is_hidden
    assert result.unscheduled_yearly_lesson_ids == [planning["german"].id]
    assert lessons.find_by_id(created.lesson.id) is None
    assert service.groups.find_by_id(created.group.id) is None


def test_unlink_places_primary_without_weekly_lesson(planning):
    lessons = LessonRepository(planning["db"])
    service = _service(planning, lessons)
    settings = ScheduleSettingsBase()
    created = service.convert_to_allerlei(_request(planning, period=2), lessons.for_week(1), settings)

    result = service.unlink(created.group.id, lessons.for_week(1), settings)

    assert len(result.restored_lessons) == 1
    placed = result.restored_lessons[0]
    assert placed.yearly_lesson_id == planning["math"].id
    assert (placed.day_of_week, placed.period_slot) == ("monday", 2)
    assert placed.start_time == "08:50"


def test_unhide_is_retried_after_cancellation(planning):
    lessons = CancellingLessonRepository(planning["db"], cancellations=2)
    math_lesson = _place(lessons, planning["math"], 1)
    sleeps: list[float] = []
    service = _service(planning, lessons, retry_attempts=3, retry_backoff_seconds=0.15, sleep=sleeps.append)
    settings = ScheduleSettingsBase()
    created = service.convert_to_allerlei(_request(planning), lessons.for_week(1), settings)

    result = service.unlink(created.group.id, lessons.for_week(1), settings)

    assert sleeps == [0.15, 0.15]
    assert [lesson.id for lesson in result.restored_lessons] == [math_lesson.id]
    assert result.failed_yearly_lesson_ids == []


def test_unhide_gives_up_after_attempts(planning):
    lessons = CancellingLessonRepository(planning["db"], cancellations=5)
    math_lesson = _place(lessons, planning["math"], 1)
    service = _service(planning, lessons, retry_attempts=3, sleep=lambda _: None)
    settings = ScheduleSettingsBase()
    created = service.convert_to_allerlei(_request(planning), lessons.for_week(1), settings)

    result = service.unlink(created.group.id, lessons.for_week(1), settings)

    assert result.failed_yearly_lesson_ids == [planning["math"].id]
    assert lessons.find_by_id(math_lesson.id).is_hidden
    assert not planning["yearly"].find_by_id(planning["math"].id).is_allerlei


def test_unlink_missing_group_is_a_no_op(planning):
    lessons = LessonRepository(planning["db"])

    result = _service(planning, lessons).unlink("missing", [], ScheduleSettingsBase())

    assert result.restored_lessons == []
    assert result.unscheduled_yearly_lesson_ids == []


def test_occupied_block_slot_is_rejected_before_mutation(planning, make_entry):
    lessons = LessonRepository(planning["db"])
    _place(lessons, make_entry(id="other", subject_id="music"), 5)
    math_lesson = _place(lessons, planning["math"], 1)
    service = _service(planning, lessons)

    with pytest.raises(PlanningValidationError):
        service.convert_to_allerlei(_request(planning), lessons.for_week(1), ScheduleSettingsBase())

    assert not lessons.find_by_id(math_lesson.id).is_hidden
    assert service.groups.list() == []


@pytest.mark.parametrize(
    "assignments",
    [
        [],
        [{"subject": "Mathematik"}, {"subject": "Deutsch", "yearly_lesson_id": "b"}],
        [{"subject": "Mathematik", "yearly_lesson_id": "a"}, {"subject": "Deutsch"}],
        [
            {"subject": "Mathematik", "yearly_lesson_id": "a"},
            {"subject": "Deutsch", "yearly_lesson_id": "a"},
        ],
    ],
)
def test_validate_group_rejects_incomplete_selection(assignments):
    request = AllerleiRequest(week_number=1, day_of_week="monday", period_slot=1, assignments=assignments)

    with pytest.raises(PlanningValidationError):
        validate_group(request)
