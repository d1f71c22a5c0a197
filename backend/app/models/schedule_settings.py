from datetime import datetime
from enum import Enum

from sqlalchemy import DateTime, Enum as SAEnum, Integer, JSON, String
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from app.db.base import Base


class ScheduleType(str, Enum):
    fixed = "fixed"
    flexible = "flexible"


class ScheduleSettings(Base):
    __tablename__ = "schedule_settings"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, default=1)
    schedule_type: Mapped[ScheduleType] = mapped_column(
        SAEnum(ScheduleType, name="schedule_type"),
        nullable=False,
        default=ScheduleType.flexible,
    )
    fixed_schedule_template: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)
    start_time: Mapped[str] = mapped_column(String(5), nullable=False, default="08:00")
    lessons_per_day: Mapped[int] = mapped_column(Integer, nullable=False, default=8)
    lesson_duration: Mapped[int] = mapped_column(Integer, nullable=False, default=45)
    short_break: Mapped[int] = mapped_column(Integer, nullable=False, default=5)
    morning_break_after: Mapped[int] = mapped_column(Integer, nullable=False, default=2)
    morning_break_duration: Mapped[int] = mapped_column(Integer, nullable=False, default=20)
    lunch_break_after: Mapped[int] = mapped_column(Integer, nullable=False, default=4)
    lunch_break_duration: Mapped[int] = mapped_column(Integer, nullable=False, default=40)
    afternoon_break_after: Mapped[int] = mapped_column(Integer, nullable=False, default=6)
    afternoon_break_duration: Mapped[int] = mapped_column(Integer, nullable=False, default=15)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )
