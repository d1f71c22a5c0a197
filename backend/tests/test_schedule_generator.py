import pytest

from app.core.exceptions import PlanningValidationError, TransientStoreError
from app.repositories.planning import LessonRepository
from app.schemas.schedule import ScheduleTemplate
from app.services.schedule_generator import FixedScheduleGenerator


class FlakyLessonRepository(LessonRepository):
    def __init__(self, db, fail_on_call: int) -> None:
        super().__init__(db)
        self.calls = 0
        self.fail_on_call = fail_on_call

    def create(self, data):
        self.calls += 1
        if self.calls == self.fail_on_call:
            raise TransientStoreError("lessons.create failed")
        return super().create(data)


def _catalog(make_entry):
    return [
        make_entry(lesson_number=1),
        make_entry(lesson_number=2),
        make_entry(lesson_number=3),
        make_entry(subject_id="german", lesson_number=1),
        make_entry(subject_id="german", lesson_number=2),
        make_entry(week_number=2, lesson_number=1),
    ]


def _generate(generator, fixed_settings, subjects, catalog, existing=(), progress=None):
    return generator.generate_from_template(
        template=fixed_settings.fixed_schedule_template,
        yearly_lessons=catalog,
        existing_lessons=list(existing),
        subjects=subjects,
        settings=fixed_settings,
        school_year=2026,
        progress=progress,
    )


def test_generates_weeks_from_template(db_session, fixed_settings, subjects, make_entry):
    lessons = LessonRepository(db_session)
    generator = FixedScheduleGenerator(lessons, weeks_per_year=4, batch_delay_seconds=0)

    result = _generate(generator, fixed_settings, subjects, _catalog(make_entry))

    assert result.stats.total_created == 6
    assert result.stats.processed_weeks == 2
    assert result.stats.skipped_weeks == 2
    assert {item.reason for item in result.stats.skipped_details} == {"no_yearly_lessons"}
    week_one = sorted(
        (lesson.day_of_week, lesson.period_slot) for lesson in result.lessons if lesson.week_number == 1
    )
    assert week_one == [("monday", 1), ("monday", 2), ("monday", 3), ("wednesday", 2), ("wednesday", 4)]


def test_second_run_creates_nothing(db_session, fixed_settings, subjects, make_entry):
    lessons = LessonRepository(db_session)
    generator = FixedScheduleGenerator(lessons, weeks_per_year=4, batch_delay_seconds=0)
    catalog = _catalog(make_entry)

    _generate(generator, fixed_settings, subjects, catalog)
    rerun = _generate(generator, fixed_settings, subjects, catalog, existing=lessons.list())

    assert rerun.stats.total_created == 0
    assert [item.week for item in rerun.stats.skipped_details if item.reason == "already_exists"] == [1, 2]
    assert len(lessons.list()) == 6


def test_hidden_lessons_do_not_block_a_week(db_session, fixed_settings, subjects, make_entry, make_lesson):
    lessons = LessonRepository(db_session)
    generator = FixedScheduleGenerator(lessons, weeks_per_year=1, batch_delay_seconds=0)
    catalog = [make_entry(lesson_number=1)]

    result = _generate(
        generator, fixed_settings, subjects, catalog, existing=[make_lesson(is_hidden=True, period_slot=6)]
    )

    assert result.stats.total_created == 1


def test_paired_entries_become_one_double_lesson(db_session, fixed_settings, subjects, make_entry):
    lessons = LessonRepository(db_session)
    generator = FixedScheduleGenerator(lessons, weeks_per_year=1, batch_delay_seconds=0)
    second = make_entry(lesson_number=2)
    first = make_entry(lesson_number=1, is_double_lesson=True, second_yearly_lesson_id=second.id)
    third = make_entry(lesson_number=3)

    result = _generate(generator, fixed_settings, subjects, [first, second, third])

    by_entry = {lesson.yearly_lesson_id: lesson for lesson in result.lessons}
    assert set(by_entry) == {first.id, third.id}
    assert by_entry[first.id].is_double_lesson
    assert by_entry[first.id].period_span == 2
    assert by_entry[first.id].second_yearly_lesson_id == second.id
    assert (by_entry[third.id].day_of_week, by_entry[third.id].period_slot) == ("wednesday", 2)
    assert result.stats.double_lessons == 1


def test_failed_batch_is_reported_and_generation_continues(db_session, fixed_settings, subjects, make_entry):
    lessons = FlakyLessonRepository(db_session, fail_on_call=3)
    sleeps: list[float] = []
    events = []
    generator = FixedScheduleGenerator(
        lessons, weeks_per_year=1, batch_size=2, batch_delay_seconds=0.1, sleep=sleeps.append
    )

    result = _generate(generator, fixed_settings, subjects, _catalog(make_entry)[:5], progress=events.append)

    assert result.stats.total_created == 3
    assert [(batch.start, batch.end) for batch in result.stats.failed_batches] == [(3, 4)]
    assert sleeps == [0.1, 0.1]
    assert events[-1].phase == "done"
    assert any(event.phase == "creating" for event in events)


def test_unknown_template_subject_is_skipped_with_warning(db_session, subjects, fixed_settings, make_entry):
    lessons = LessonRepository(db_session)
    generator = FixedScheduleGenerator(lessons, weeks_per_year=1, batch_delay_seconds=0)
    settings = fixed_settings.model_copy(
        update={
            "fixed_schedule_template": ScheduleTemplate.from_mapping(
                {
                    "monday": [
                        {"period": 1, "subject": "Sport", "class_id": "5a"},
                        {"period": 2, "subject": "Mathematik", "class_id": "5a"},
                    ]
                }
            )
        }
    )

    result = _generate(generator, settings, subjects, [make_entry()])

    assert result.stats.total_created == 1
    assert result.stats.warnings == ["Subject not found: Sport for class 5a"]


def test_empty_template_or_catalog_is_rejected(db_session, fixed_settings, subjects, make_entry):
    generator = FixedScheduleGenerator(LessonRepository(db_session), weeks_per_year=1)
    empty = fixed_settings.model_copy(update={"fixed_schedule_template": ScheduleTemplate()})

    with pytest.raises(PlanningValidationError):
        _generate(generator, empty, subjects, [make_entry()])
    with pytest.raises(PlanningValidationError):
        _generate(generator, fixed_settings, subjects, [])
