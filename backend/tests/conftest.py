import itertools

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.api.deps import get_db
from app.db.base import Base
from app.main import app
from app.schemas.lesson import LessonOut
from app.schemas.schedule import ScheduleSettingsBase, ScheduleTemplate
from app.schemas.subject import SubjectOut
from app.schemas.yearly_lesson import YearlyLessonOut
from app.services.planning_state import PlanningStore, get_planning_store


def _memory_engine():
    engine = create_engine(
        "sqlite+pysqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    return engine


@pytest.fixture()
def planning_store() -> PlanningStore:
    return PlanningStore()


@pytest.fixture()
def client(planning_store):
    engine = _memory_engine()
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

    def override_get_db():
        db = TestingSessionLocal()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_planning_store] = lambda: planning_store

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


@pytest.fixture()
def db_session():
    engine = _memory_engine()
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture()
def make_entry():
    counter = itertools.count(1)

    def factory(**overrides) -> YearlyLessonOut:
        values = {
            "id": f"yl-{next(counter)}",
            "subject_id": "math",
            "class_id": "5a",
            "week_number": 1,
            "lesson_number": 1,
            "school_year": 2026,
        }
        values.update(overrides)
        return YearlyLessonOut(**values)

    return factory


@pytest.fixture()
def make_lesson():
    counter = itertools.count(1)

    def factory(**overrides) -> LessonOut:
        values = {
            "id": f"lesson-{next(counter)}",
            "subject_id": "math",
            "class_id": "5a",
            "day_of_week": "monday",
            "period_slot": 1,
            "week_number": 1,
        }
        values.update(overrides)
        return LessonOut(**values)

    return factory


@pytest.fixture()
def subjects() -> list[SubjectOut]:
    return [
        SubjectOut(id="math", name="Mathematik", class_id="5a"),
        SubjectOut(id="german", name="Deutsch", class_id="5a"),
    ]


@pytest.fixture()
def fixed_settings() -> ScheduleSettingsBase:
    template = ScheduleTemplate.from_mapping(
        {
            "monday": [
                {"period": 1, "subject": "Mathematik", "class_id": "5a"},
                {"period": 2, "subject": "Mathematik", "class_id": "5a"},
                {"period": 3, "subject": "Deutsch", "class_id": "5a"},
            ],
            "wednesday": [
                {"period": 2, "subject": "Mathematik", "class_id": "5a"},
                {"period": 4, "subject": "Deutsch", "class_id": "5a"},
            ],
        }
    )
    return ScheduleSettingsBase(schedule_type="fixed", fixed_schedule_template=template)
