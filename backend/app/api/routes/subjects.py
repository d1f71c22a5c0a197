from fastapi import APIRouter, Depends, status

from app.api.deps import get_subject_repository
from app.core.exceptions import AppError
from app.models.subject import Subject
from app.repositories.planning import SubjectRepository
from app.schemas.subject import SubjectCreate, SubjectOut

router = APIRouter()


@router.get("/", response_model=list[SubjectOut])
def list_subjects(
    class_id: str | None = None,
    subjects: SubjectRepository = Depends(get_subject_repository),
) -> list[SubjectOut]:
    if class_id:
        return subjects.list(Subject.class_id == class_id, order_by=Subject.name)
    return subjects.list(order_by=Subject.name)


@router.post("/", response_model=SubjectOut, status_code=status.HTTP_201_CREATED)
def create_subject(
    payload: SubjectCreate,
    subjects: SubjectRepository = Depends(get_subject_repository),
) -> SubjectOut:
    if subjects.list_by(name=payload.name, class_id=payload.class_id):
        raise AppError(
            "Subject already exists for this class",
            status_code=status.HTTP_409_CONFLICT,
            details={"name": payload.name, "class_id": payload.class_id},
        )
    return subjects.create(payload)
