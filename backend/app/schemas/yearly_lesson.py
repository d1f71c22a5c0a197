from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field

from app.schemas.lesson import SyncResult


class YearlyLessonBase(BaseModel):
    subject_id: str = Field(min_length=1, max_length=36)
    class_id: str = Field(min_length=1, max_length=36)
    week_number: int = Field(ge=1, le=53)
    school_year: int = Field(ge=2000, le=2100)
    topic_id: str | None = Field(default=None, max_length=36)
    name: str = Field(default="", max_length=200)
    notes: str = ""
    steps: list[dict] = Field(default_factory=list)
    is_double_lesson: bool = False
    second_yearly_lesson_id: str | None = Field(default=None, max_length=36)
    is_allerlei: bool = False
    allerlei_subjects: list[str] = Field(default_factory=list)
    is_exam: bool = False
    is_half_class: bool = False


class YearlyLessonCreate(YearlyLessonBase):
    # Omitted -> next free number for (subject, week, class).
    lesson_number: int | None = Field(default=None, ge=1, le=100)


class YearlyLessonUpdate(BaseModel):
    lesson_number: int | None = Field(default=None, ge=1, le=100)
    topic_id: str | None = Field(default=None, max_length=36)
    name: str | None = Field(default=None, max_length=200)
    notes: str | None = None
    steps: list[dict] | None = None
    is_exam: bool | None = None
    is_half_class: bool | None = None


class YearlyLessonOut(YearlyLessonBase):
    id: str
    lesson_number: int
    created_at: datetime | None = None
    updated_at: datetime | None = None

    model_config = {"from_attributes": True}


class TopicToggleRequest(BaseModel):
    yearly_lesson_ids: list[str] = Field(min_length=1, max_length=20)
    topic_id: str = Field(min_length=1, max_length=36)


class TopicToggleResponse(BaseModel):
    topic_id: str | None
    updated: list[YearlyLessonOut] = Field(default_factory=list)
    gap_lessons: list[YearlyLessonOut] = Field(default_factory=list)


class DoubleLessonRequest(BaseModel):
    enabled: bool
    second_yearly_lesson_id: str | None = Field(default=None, max_length=36)


class DoubleLessonResponse(BaseModel):
    primary: YearlyLessonOut
    second: YearlyLessonOut | None = None


class GapQuery(BaseModel):
    week_number: int = Field(ge=1, le=53)
    subject_id: str = Field(min_length=1, max_length=36)
    topic_id: str = Field(min_length=1, max_length=36)


class GapFillRequest(GapQuery):
    class_id: str = Field(min_length=1, max_length=36)
    school_year: int = Field(ge=2000, le=2100)


class GapReport(BaseModel):
    week_number: int
    subject_id: str
    topic_id: str
    missing_lesson_numbers: list[int] = Field(default_factory=list)


class GapFillResponse(BaseModel):
    created: list[YearlyLessonOut] = Field(default_factory=list)
    remaining_gaps: list[int] = Field(default_factory=list)


class YearlyLessonCreateResponse(BaseModel):
    entry: YearlyLessonOut
    sync: SyncResult | None = None
    gap_lessons: list[YearlyLessonOut] = Field(default_factory=list)
