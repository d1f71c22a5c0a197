import uuid
from datetime import datetime

from sqlalchemy import Boolean, DateTime, Index, Integer, JSON, String
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from app.db.base import Base


class Lesson(Base):
    __tablename__ = "lessons"
    __table_args__ = (
        Index("ix_lessons_week_day_period", "week_number", "day_of_week", "period_slot"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    subject_id: Mapped[str | None] = mapped_column(String(36), nullable=True)
    class_id: Mapped[str | None] = mapped_column(String(36), nullable=True)
    day_of_week: Mapped[str] = mapped_column(String(10), nullable=False)
    period_slot: Mapped[int] = mapped_column(Integer, nullable=False)
    week_number: Mapped[int] = mapped_column(Integer, index=True, nullable=False)
    school_year: Mapped[int | None] = mapped_column(Integer, nullable=True)
    start_time: Mapped[str | None] = mapped_column(String(5), nullable=True)
    end_time: Mapped[str | None] = mapped_column(String(5), nullable=True)
    yearly_lesson_id: Mapped[str | None] = mapped_column(String(36), index=True, nullable=True)
    second_yearly_lesson_id: Mapped[str | None] = mapped_column(String(36), nullable=True)
    topic_id: Mapped[str | None] = mapped_column(String(36), nullable=True)
    is_double_lesson: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    period_span: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    is_hidden: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_allerlei: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    allerlei_subjects: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    allerlei_yearly_lesson_ids: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    is_exam: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_half_class: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    steps: Mapped[list[dict]] = mapped_column(JSON, nullable=False, default=list)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), onupdate=func.now())
