import logging

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from app.api.deps import (
    get_db,
    get_lesson_repository,
    get_schedule_generator,
    get_schedule_settings,
    get_subject_repository,
    get_yearly_lesson_repository,
)
from app.core.exceptions import PlanningValidationError
from app.models.lesson import Lesson
from app.models.yearly_lesson import YearlyLesson
from app.repositories.planning import LessonRepository, SubjectRepository, YearlyLessonRepository
from app.schemas.generator import GenerateScheduleRequest, GenerateScheduleResponse, GenerationProgress
from app.schemas.schedule import ScheduleSettingsOut, ScheduleSettingsUpdate, TimeSlotOut
from app.services.lesson_times import generate_time_slots
from app.services.schedule_generator import FixedScheduleGenerator
from app.services.schedule_settings import save_schedule_settings

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/settings", response_model=ScheduleSettingsOut)
def get_settings_route(schedule_settings: ScheduleSettingsOut = Depends(get_schedule_settings)) -> ScheduleSettingsOut:
    return schedule_settings


@router.put("/settings", response_model=ScheduleSettingsOut)
def update_settings_route(payload: ScheduleSettingsUpdate, db: Session = Depends(get_db)) -> ScheduleSettingsOut:
    saved = save_schedule_settings(db, payload)
    logger.info("Schedule settings saved (type=%s)", saved.schedule_type.value)
    return saved


@router.get("/time-slots", response_model=list[TimeSlotOut])
def list_time_slots(schedule_settings: ScheduleSettingsOut = Depends(get_schedule_settings)) -> list[TimeSlotOut]:
    return generate_time_slots(schedule_settings)


@router.post("/generate", response_model=GenerateScheduleResponse, status_code=status.HTTP_201_CREATED)
def generate_schedule(
    payload: GenerateScheduleRequest,
    schedule_settings: ScheduleSettingsOut = Depends(get_schedule_settings),
    yearly_lessons: YearlyLessonRepository = Depends(get_yearly_lesson_repository),
    lessons: LessonRepository = Depends(get_lesson_repository),
    subjects: SubjectRepository = Depends(get_subject_repository),
    generator: FixedScheduleGenerator = Depends(get_schedule_generator),
) -> GenerateScheduleResponse:
    if not schedule_settings.is_fixed:
        raise PlanningValidationError("Schedule generation requires a fixed schedule")

    criteria = [YearlyLesson.school_year == payload.school_year]
    lesson_criteria = [Lesson.school_year == payload.school_year]
    if payload.class_id:
        criteria.append(YearlyLesson.class_id == payload.class_id)
        lesson_criteria.append(Lesson.class_id == payload.class_id)

    def report(event: GenerationProgress) -> None:
        logger.debug("Generation %s: %d%% %s", event.phase, event.percent, event.message)

    return generator.generate_from_template(
        template=schedule_settings.fixed_schedule_template,
        yearly_lessons=yearly_lessons.list(*criteria),
        existing_lessons=lessons.list(*lesson_criteria),
        subjects=subjects.list(),
        settings=schedule_settings,
        school_year=payload.school_year,
        progress=report,
    )
