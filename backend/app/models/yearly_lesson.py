import uuid
from datetime import datetime

from sqlalchemy import Boolean, DateTime, Index, Integer, JSON, String, Text
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from app.db.base import Base


class YearlyLesson(Base):
    __tablename__ = "yearly_lessons"
    __table_args__ = (
        Index("ix_yearly_lessons_subject_week_class", "subject_id", "week_number", "class_id"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    subject_id: Mapped[str] = mapped_column(String(36), nullable=False)
    class_id: Mapped[str] = mapped_column(String(36), nullable=False)
    week_number: Mapped[int] = mapped_column(Integer, nullable=False)
    lesson_number: Mapped[int] = mapped_column(Integer, nullable=False)
    school_year: Mapped[int] = mapped_column(Integer, nullable=False)
    topic_id: Mapped[str | None] = mapped_column(String(36), nullable=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False, default="")
    notes: Mapped[str] = mapped_column(Text, nullable=False, default="")
    steps: Mapped[list[dict]] = mapped_column(JSON, nullable=False, default=list)
    is_double_lesson: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    second_yearly_lesson_id: Mapped[str | None] = mapped_column(String(36), nullable=True)
    is_allerlei: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    allerlei_subjects: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    is_exam: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_half_class: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), onupdate=func.now())
