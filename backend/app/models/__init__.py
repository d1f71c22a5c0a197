from app.models.allerlei_group import AllerleiGroup  # noqa: F401
from app.models.lesson import Lesson  # noqa: F401
from app.models.schedule_settings import ScheduleSettings, ScheduleType  # noqa: F401
from app.models.subject import Subject  # noqa: F401
from app.models.yearly_lesson import YearlyLesson  # noqa: F401
