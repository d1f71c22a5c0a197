from fastapi import APIRouter, Depends, status

from app.api.deps import get_allerlei_service, get_lesson_repository, get_schedule_settings
from app.repositories.planning import LessonRepository
from app.schemas.allerlei import AllerleiCreateResponse, AllerleiRequest, AllerleiUnlinkResponse
from app.schemas.schedule import ScheduleSettingsOut
from app.services.allerlei import AllerleiService, validate_group

router = APIRouter()


@router.post("/validate")
def validate_allerlei(payload: AllerleiRequest) -> dict:
    validate_group(payload)
    return {"valid": True}


@router.post("/", response_model=AllerleiCreateResponse, status_code=status.HTTP_201_CREATED)
def create_allerlei(
    payload: AllerleiRequest,
    service: AllerleiService = Depends(get_allerlei_service),
    lessons: LessonRepository = Depends(get_lesson_repository),
    schedule_settings: ScheduleSettingsOut = Depends(get_schedule_settings),
) -> AllerleiCreateResponse:
    return service.convert_to_allerlei(payload, lessons.for_week(payload.week_number), schedule_settings)


@router.post("/{group_id}/unlink", response_model=AllerleiUnlinkResponse)
def unlink_allerlei(
    group_id: str,
    service: AllerleiService = Depends(get_allerlei_service),
    lessons: LessonRepository = Depends(get_lesson_repository),
    schedule_settings: ScheduleSettingsOut = Depends(get_schedule_settings),
) -> AllerleiUnlinkResponse:
    group = service.groups.find_by_id(group_id)
    week_lessons = lessons.for_week(group.week_number) if group is not None else []
    return service.unlink(group_id, week_lessons, schedule_settings)
