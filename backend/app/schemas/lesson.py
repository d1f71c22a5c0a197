from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field, field_validator

from app.schemas.schedule import normalize_day


class SlotPosition(BaseModel):
    day: str
    period: int = Field(ge=1)

    model_config = {"frozen": True}


class LessonBase(BaseModel):
    subject_id: str | None = Field(default=None, max_length=36)
    class_id: str | None = Field(default=None, max_length=36)
    day_of_week: str
    period_slot: int = Field(ge=1, le=20)
    week_number: int = Field(ge=1, le=53)
    school_year: int | None = None
    start_time: str | None = None
    end_time: str | None = None
    yearly_lesson_id: str | None = Field(default=None, max_length=36)
    second_yearly_lesson_id: str | None = Field(default=None, max_length=36)
    topic_id: str | None = Field(default=None, max_length=36)
    is_double_lesson: bool = False
    period_span: int = Field(default=1, ge=1, le=2)
    is_hidden: bool = False
    is_allerlei: bool = False
    allerlei_subjects: list[str] = Field(default_factory=list)
    allerlei_yearly_lesson_ids: list[str] = Field(default_factory=list)
    is_exam: bool = False
    is_half_class: bool = False
    steps: list[dict] = Field(default_factory=list)

    @field_validator("day_of_week")
    @classmethod
    def validate_day(cls, value: str) -> str:
        return normalize_day(value)


class LessonCreate(LessonBase):
    pass


class LessonUpdate(BaseModel):
    day_of_week: str | None = None
    period_slot: int | None = Field(default=None, ge=1, le=20)
    topic_id: str | None = Field(default=None, max_length=36)
    is_hidden: bool | None = None
    is_exam: bool | None = None
    is_half_class: bool | None = None
    steps: list[dict] | None = None

    @field_validator("day_of_week")
    @classmethod
    def validate_day(cls, value: str | None) -> str | None:
        if value is None:
            return value
        return normalize_day(value)


class LessonOut(LessonBase):
    id: str
    created_at: datetime | None = None
    updated_at: datetime | None = None

    model_config = {"from_attributes": True}


class SyncResult(BaseModel):
    action: Literal["created", "updated", "skipped"]
    yearly_lesson_id: str
    lesson: LessonOut | None = None
    placement: SlotPosition | None = None
    reason: str | None = None
    warnings: list[str] = Field(default_factory=list)
