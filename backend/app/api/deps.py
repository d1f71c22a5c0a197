from collections.abc import Generator

from fastapi import Depends
from sqlalchemy.orm import Session

from app.core.config import get_settings
from app.db.session import SessionLocal
from app.repositories.planning import (
    AllerleiGroupRepository,
    LessonRepository,
    SubjectRepository,
    YearlyLessonRepository,
)
from app.schemas.schedule import ScheduleSettingsOut
from app.services.allerlei import AllerleiService
from app.services.lesson_planning import LessonPlanningService
from app.services.planning_state import PlanningStore, get_planning_store
from app.services.schedule_generator import FixedScheduleGenerator
from app.services.schedule_settings import load_schedule_settings


def get_db() -> Generator[Session, None, None]:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_yearly_lesson_repository(
    db: Session = Depends(get_db),
    store: PlanningStore = Depends(get_planning_store),
) -> YearlyLessonRepository:
    return YearlyLessonRepository(db, listeners=[store.on_change])


def get_lesson_repository(
    db: Session = Depends(get_db),
    store: PlanningStore = Depends(get_planning_store),
) -> LessonRepository:
    return LessonRepository(db, listeners=[store.on_change])


def get_subject_repository(db: Session = Depends(get_db)) -> SubjectRepository:
    return SubjectRepository(db)


def get_allerlei_group_repository(db: Session = Depends(get_db)) -> AllerleiGroupRepository:
    return AllerleiGroupRepository(db)


def get_schedule_settings(db: Session = Depends(get_db)) -> ScheduleSettingsOut:
    return load_schedule_settings(db)


def get_planning_service(
    yearly_lessons: YearlyLessonRepository = Depends(get_yearly_lesson_repository),
    lessons: LessonRepository = Depends(get_lesson_repository),
    subjects: SubjectRepository = Depends(get_subject_repository),
    schedule_settings: ScheduleSettingsOut = Depends(get_schedule_settings),
    store: PlanningStore = Depends(get_planning_store),
) -> LessonPlanningService:
    return LessonPlanningService(yearly_lessons, lessons, subjects, schedule_settings, store=store)


def get_allerlei_service(
    yearly_lessons: YearlyLessonRepository = Depends(get_yearly_lesson_repository),
    lessons: LessonRepository = Depends(get_lesson_repository),
    groups: AllerleiGroupRepository = Depends(get_allerlei_group_repository),
) -> AllerleiService:
    settings = get_settings()
    return AllerleiService(
        yearly_lessons,
        lessons,
        groups,
        retry_attempts=settings.unhide_retry_attempts,
        retry_backoff_seconds=settings.unhide_retry_backoff_seconds,
    )


def get_schedule_generator(lessons: LessonRepository = Depends(get_lesson_repository)) -> FixedScheduleGenerator:
    settings = get_settings()
    return FixedScheduleGenerator(
        lessons,
        weeks_per_year=settings.weeks_per_year,
        batch_size=settings.generator_batch_size,
        batch_delay_seconds=settings.generator_batch_delay_seconds,
    )
