import uuid
from datetime import datetime

from sqlalchemy import DateTime, Integer, JSON, String
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from app.db.base import Base


class AllerleiGroup(Base):
    __tablename__ = "allerlei_groups"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    primary_yearly_lesson_id: Mapped[str] = mapped_column(String(36), nullable=False)
    added_yearly_lesson_ids: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    # entry id -> {"original_name", "original_notes", "original_steps"}
    snapshots: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)
    allerlei_subjects: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    week_number: Mapped[int] = mapped_column(Integer, nullable=False)
    day_of_week: Mapped[str] = mapped_column(String(10), nullable=False)
    period_slot: Mapped[int] = mapped_column(Integer, nullable=False)
    lesson_id: Mapped[str | None] = mapped_column(String(36), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
