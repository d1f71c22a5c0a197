from fastapi import APIRouter, Depends, Query, status

from app.api.deps import get_planning_service, get_yearly_lesson_repository
from app.core.exceptions import ResourceNotFoundError
from app.models.yearly_lesson import YearlyLesson
from app.repositories.planning import YearlyLessonRepository
from app.schemas.lesson import SyncResult
from app.schemas.yearly_lesson import (
    DoubleLessonRequest,
    DoubleLessonResponse,
    GapFillRequest,
    GapFillResponse,
    GapReport,
    TopicToggleRequest,
    TopicToggleResponse,
    YearlyLessonCreate,
    YearlyLessonCreateResponse,
    YearlyLessonOut,
    YearlyLessonUpdate,
)
from app.services.gap_filling import find_gaps
from app.services.lesson_planning import LessonPlanningService
from app.services.planning_state import PlanningStore, get_planning_store

router = APIRouter()


@router.get("/", response_model=list[YearlyLessonOut])
def list_yearly_lessons(
    school_year: int | None = None,
    class_id: str | None = None,
    subject_id: str | None = None,
    week_number: int | None = Query(default=None, ge=1, le=53),
    yearly_lessons: YearlyLessonRepository = Depends(get_yearly_lesson_repository),
    store: PlanningStore = Depends(get_planning_store),
) -> list[YearlyLessonOut]:
    criteria = []
    if school_year is not None:
        criteria.append(YearlyLesson.school_year == school_year)
    if class_id:
        criteria.append(YearlyLesson.class_id == class_id)
    if subject_id:
        criteria.append(YearlyLesson.subject_id == subject_id)
    if week_number is not None:
        criteria.append(YearlyLesson.week_number == week_number)
    request_key = f"yearly_lessons:{school_year}:{class_id}:{subject_id}:{week_number}"
    correlation_id = store.begin_request(request_key)
    records = yearly_lessons.list(*criteria, order_by=YearlyLesson.lesson_number)
    store.load("yearly_lessons", records, request_key=request_key, correlation_id=correlation_id)
    return records


@router.post("/", response_model=YearlyLessonCreateResponse, status_code=status.HTTP_201_CREATED)
def create_yearly_lesson(
    payload: YearlyLessonCreate,
    service: LessonPlanningService = Depends(get_planning_service),
) -> YearlyLessonCreateResponse:
    return service.create_entry(payload)


@router.get("/gaps", response_model=GapReport)
def get_gaps(
    week_number: int = Query(ge=1, le=53),
    subject_id: str = Query(min_length=1),
    topic_id: str = Query(min_length=1),
    class_id: str | None = None,
    yearly_lessons: YearlyLessonRepository = Depends(get_yearly_lesson_repository),
) -> GapReport:
    criteria = [YearlyLesson.week_number == week_number, YearlyLesson.subject_id == subject_id]
    if class_id:
        criteria.append(YearlyLesson.class_id == class_id)
    entries = yearly_lessons.list(*criteria)
    return GapReport(
        week_number=week_number,
        subject_id=subject_id,
        topic_id=topic_id,
        missing_lesson_numbers=find_gaps(entries, week_number, subject_id, topic_id),
    )


@router.post("/gaps/fill", response_model=GapFillResponse)
def fill_gaps(
    payload: GapFillRequest,
    service: LessonPlanningService = Depends(get_planning_service),
) -> GapFillResponse:
    entries = service.yearly_lessons.for_subject_week(
        subject_id=payload.subject_id, week_number=payload.week_number, class_id=payload.class_id
    )
    created = service.gap_filler.fill_gaps(
        entries,
        week=payload.week_number,
        subject_id=payload.subject_id,
        topic_id=payload.topic_id,
        class_id=payload.class_id,
        school_year=payload.school_year,
    )
    context = [*entries, *created]
    for entry in created:
        service.sync_entry(entry, context)
    return GapFillResponse(
        created=created,
        remaining_gaps=find_gaps(context, payload.week_number, payload.subject_id, payload.topic_id),
    )


@router.post("/topic", response_model=TopicToggleResponse)
def toggle_topic(
    payload: TopicToggleRequest,
    service: LessonPlanningService = Depends(get_planning_service),
) -> TopicToggleResponse:
    return service.toggle_topic(payload.yearly_lesson_ids, payload.topic_id)


@router.get("/{entry_id}", response_model=YearlyLessonOut)
def get_yearly_lesson(
    entry_id: str,
    yearly_lessons: YearlyLessonRepository = Depends(get_yearly_lesson_repository),
) -> YearlyLessonOut:
    entry = yearly_lessons.find_by_id(entry_id)
    if entry is None:
        raise ResourceNotFoundError("Yearly lesson", entry_id)
    return entry


@router.patch("/{entry_id}", response_model=YearlyLessonOut)
def update_yearly_lesson(
    entry_id: str,
    payload: YearlyLessonUpdate,
    service: LessonPlanningService = Depends(get_planning_service),
) -> YearlyLessonOut:
    return service.update_entry(entry_id, payload)


@router.delete("/{entry_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_yearly_lesson(
    entry_id: str,
    service: LessonPlanningService = Depends(get_planning_service),
) -> None:
    service.delete_entry(entry_id)


@router.post("/{entry_id}/sync", response_model=SyncResult)
def sync_yearly_lesson(
    entry_id: str,
    service: LessonPlanningService = Depends(get_planning_service),
) -> SyncResult:
    entry = service.yearly_lessons.find_by_id(entry_id)
    if entry is None:
        raise ResourceNotFoundError("Yearly lesson", entry_id)
    return service.sync_entry(entry)


@router.post("/{entry_id}/double", response_model=DoubleLessonResponse)
def set_double_lesson(
    entry_id: str,
    payload: DoubleLessonRequest,
    service: LessonPlanningService = Depends(get_planning_service),
) -> DoubleLessonResponse:
    return service.set_double_lesson(entry_id, payload.enabled, payload.second_yearly_lesson_id)
