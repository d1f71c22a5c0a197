import logging

from fastapi import APIRouter, Depends, Query, status

from app.api.deps import get_lesson_repository, get_schedule_settings
from app.core.exceptions import PlanningValidationError, ResourceNotFoundError
from app.models.lesson import Lesson
from app.repositories.planning import LessonRepository
from app.schemas.lesson import LessonOut, LessonUpdate, SlotPosition
from app.schemas.schedule import ScheduleSettingsOut, normalize_day
from app.services.lesson_times import calculate_time_slot
from app.services.planning_state import PlanningStore, get_planning_store
from app.services.slot_allocator import (
    find_alternative_slot,
    find_free_slot,
    is_slot_available,
    validate_lesson_placement,
)

logger = logging.getLogger(__name__)

router = APIRouter()


def _ensure_fits_day(lesson: LessonOut, lessons_per_day: int) -> None:
    if lesson.period_slot + lesson.period_span - 1 > lessons_per_day:
        raise PlanningValidationError(
            "Lesson does not fit into the school day",
            {"period_slot": lesson.period_slot, "lessons_per_day": lessons_per_day},
        )


@router.get("/", response_model=list[LessonOut])
def list_lessons(
    week_number: int | None = Query(default=None, ge=1, le=53),
    class_id: str | None = None,
    include_hidden: bool = False,
    lessons: LessonRepository = Depends(get_lesson_repository),
    store: PlanningStore = Depends(get_planning_store),
) -> list[LessonOut]:
    criteria = []
    if week_number is not None:
        criteria.append(Lesson.week_number == week_number)
    if class_id:
        criteria.append(Lesson.class_id == class_id)
    if not include_hidden:
        criteria.append(Lesson.is_hidden.is_(False))

    request_key = f"lessons:{week_number}:{class_id}"
    correlation_id = store.begin_request(request_key)
    records = lessons.list(*criteria, order_by=Lesson.period_slot)
    if not store.load("lessons", records, request_key=request_key, correlation_id=correlation_id):
        logger.debug("Lesson load for %s was superseded", request_key)
    return records


@router.get("/free-slot", response_model=SlotPosition | None)
def get_free_slot(
    week_number: int = Query(ge=1, le=53),
    day: str = "monday",
    period: int = Query(default=1, ge=1, le=20),
    lessons: LessonRepository = Depends(get_lesson_repository),
    schedule_settings: ScheduleSettingsOut = Depends(get_schedule_settings),
) -> SlotPosition | None:
    try:
        preferred_day = normalize_day(day)
    except ValueError as exc:
        raise PlanningValidationError(str(exc), {"day": day}) from exc
    return find_free_slot(
        lessons.for_week(week_number),
        preferred_day,
        schedule_settings.lessons_per_day,
        week_number,
        period,
    )


@router.patch("/{lesson_id}", response_model=LessonOut)
def update_lesson(
    lesson_id: str,
    payload: LessonUpdate,
    lessons: LessonRepository = Depends(get_lesson_repository),
    schedule_settings: ScheduleSettingsOut = Depends(get_schedule_settings),
) -> LessonOut:
    """Move or edit a weekly lesson.

    A move onto an occupied period lands on the next free slot after it
    instead; the request fails only when no such slot exists.
    """
    lesson = lessons.find_by_id(lesson_id)
    if lesson is None:
        raise ResourceNotFoundError("Lesson", lesson_id)

    data = payload.model_dump(exclude_unset=True)
    if "day_of_week" in data or "period_slot" in data:
        week = lesson.week_number
        moved = lesson.model_copy(update={key: data[key] for key in ("day_of_week", "period_slot") if key in data})
        _ensure_fits_day(moved, schedule_settings.lessons_per_day)

        if not moved.is_hidden:
            others = [item for item in lessons.for_week(week) if item.id != lesson.id]
            if not is_slot_available(others, moved.day_of_week, moved.period_slot, week):
                alternative = find_alternative_slot(
                    others, moved.day_of_week, schedule_settings.lessons_per_day, week, moved.period_slot
                )
                if alternative is None:
                    raise PlanningValidationError(
                        "Target slot is occupied and no alternative slot is free",
                        {"day_of_week": moved.day_of_week, "period_slot": moved.period_slot},
                    )
                logger.info(
                    "Lesson %s redirected from %s/%s to %s/%s",
                    lesson_id,
                    moved.day_of_week,
                    moved.period_slot,
                    alternative.day,
                    alternative.period,
                )
                moved = moved.model_copy(update={"day_of_week": alternative.day, "period_slot": alternative.period})
                data["day_of_week"] = alternative.day
                data["period_slot"] = alternative.period
                _ensure_fits_day(moved, schedule_settings.lessons_per_day)

            # a double lesson also needs the period after its start
            if not validate_lesson_placement(moved, others, week):
                raise PlanningValidationError(
                    "Target slot is already occupied",
                    {"day_of_week": moved.day_of_week, "period_slot": moved.period_slot},
                )

        time_slot = calculate_time_slot(moved.period_slot, schedule_settings, span=moved.period_span)
        data["start_time"] = time_slot.start
        data["end_time"] = time_slot.end
    return lessons.update(lesson_id, data)


@router.delete("/{lesson_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_lesson(lesson_id: str, lessons: LessonRepository = Depends(get_lesson_repository)) -> None:
    lessons.delete(lesson_id)
