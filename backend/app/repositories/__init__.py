from app.repositories.base import ChangeEvent, ChangeListener, SqlRepository  # noqa: F401
from app.repositories.planning import (  # noqa: F401
    AllerleiGroupRepository,
    LessonRepository,
    SubjectRepository,
    YearlyLessonRepository,
)
