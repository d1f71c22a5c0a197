import pytest
from sqlalchemy import or_
from sqlalchemy.exc import OperationalError

from app.core.exceptions import OperationCancelledError, ResourceNotFoundError, TransientStoreError
from app.models.yearly_lesson import YearlyLesson
from app.repositories.planning import LessonRepository, SubjectRepository, YearlyLessonRepository
from app.schemas.subject import SubjectCreate
from app.schemas.yearly_lesson import YearlyLessonCreate


def _entry(**overrides) -> YearlyLessonCreate:
    values = {"subject_id": "math", "class_id": "5a", "week_number": 1, "lesson_number": 1, "school_year": 2026}
    values.update(overrides)
    return YearlyLessonCreate(**values)


def test_crud_round_trip_with_change_events(db_session):
    events = []
    repository = YearlyLessonRepository(db_session, listeners=[events.append])

    created = repository.create(_entry(name="Einstieg"))
    updated = repository.update(created.id, {"topic_id": "t1"})
    repository.delete(created.id)

    assert updated.topic_id == "t1"
    assert updated.name == "Einstieg"
    assert repository.find_by_id(created.id) is None
    assert [(event.kind, event.collection) for event in events] == [
        ("created", "yearly_lessons"),
        ("updated", "yearly_lessons"),
        ("deleted", "yearly_lessons"),
    ]


def test_list_accepts_sqlalchemy_criteria(db_session):
    repository = YearlyLessonRepository(db_session)
    for number, week in ((1, 1), (2, 1), (1, 2), (1, 3)):
        repository.create(_entry(lesson_number=number, week_number=week))

    found = repository.list(
        or_(YearlyLesson.week_number == 2, YearlyLesson.lesson_number == 2),
        order_by=YearlyLesson.week_number,
    )

    assert [(entry.week_number, entry.lesson_number) for entry in found] == [(1, 2), (2, 1)]
    assert len(repository.list_by(week_number=1)) == 2


def test_next_lesson_number(db_session):
    repository = YearlyLessonRepository(db_session)

    assert repository.next_lesson_number(subject_id="math", week_number=1, class_id="5a") == 1
    repository.create(_entry(lesson_number=4))
    repository.create(_entry(lesson_number=9, class_id="5b"))

    assert repository.next_lesson_number(subject_id="math", week_number=1, class_id="5a") == 5


def test_missing_records_raise_not_found(db_session):
    repository = LessonRepository(db_session)

    with pytest.raises(ResourceNotFoundError):
        repository.update("missing", {"is_hidden": True})
    with pytest.raises(ResourceNotFoundError):
        repository.delete("missing")


def test_operational_errors_become_transient(db_session, monkeypatch):
    repository = SubjectRepository(db_session)

    def fail(*args, **kwargs):
        raise OperationalError("SELECT 1", {}, Exception("database is locked"))

    monkeypatch.setattr(db_session, "execute", fail)

    with pytest.raises(TransientStoreError) as exc_info:
        repository.list()
    assert not isinstance(exc_info.value, OperationCancelledError)


def test_interrupted_calls_become_cancellations(db_session, monkeypatch):
    repository = SubjectRepository(db_session)

    def interrupt(*args, **kwargs):
        raise OperationalError("INSERT", {}, Exception("interrupted"))

    monkeypatch.setattr(db_session, "commit", interrupt)

    with pytest.raises(OperationCancelledError):
        repository.create(SubjectCreate(name="Mathematik", class_id="5a"))
