from __future__ import annotations

from pydantic import BaseModel, Field, field_validator

from app.schemas.lesson import LessonOut
from app.schemas.schedule import normalize_day


class AllerleiSnapshot(BaseModel):
    original_name: str
    original_notes: str = ""
    original_steps: list[dict] = Field(default_factory=list)


class SubjectAssignment(BaseModel):
    subject: str = Field(min_length=1, max_length=100)
    yearly_lesson_id: str | None = Field(default=None, max_length=36)


class AllerleiRequest(BaseModel):
    week_number: int = Field(ge=1, le=53)
    day_of_week: str
    period_slot: int = Field(ge=1, le=20)
    assignments: list[SubjectAssignment] = Field(default_factory=list, max_length=10)
    # Lesson currently being edited into the merged block; its own visibility is left alone.
    current_lesson_id: str | None = Field(default=None, max_length=36)

    @field_validator("day_of_week")
    @classmethod
    def validate_day(cls, value: str) -> str:
        return normalize_day(value)

    @property
    def yearly_lesson_ids(self) -> list[str]:
        return [item.yearly_lesson_id for item in self.assignments if item.yearly_lesson_id]

    @property
    def subjects(self) -> list[str]:
        return [item.subject for item in self.assignments]


class AllerleiGroupOut(BaseModel):
    id: str
    primary_yearly_lesson_id: str
    added_yearly_lesson_ids: list[str] = Field(default_factory=list)
    snapshots: dict[str, AllerleiSnapshot] = Field(default_factory=dict)
    allerlei_subjects: list[str] = Field(default_factory=list)
    week_number: int
    day_of_week: str
    period_slot: int
    lesson_id: str | None = None

    model_config = {"from_attributes": True}

    @property
    def all_yearly_lesson_ids(self) -> list[str]:
        return [self.primary_yearly_lesson_id, *self.added_yearly_lesson_ids]


class AllerleiCreateResponse(BaseModel):
    group: AllerleiGroupOut
    lesson: LessonOut


class AllerleiUnlinkResponse(BaseModel):
    group_id: str
    restored_lessons: list[LessonOut] = Field(default_factory=list)
    unscheduled_yearly_lesson_ids: list[str] = Field(default_factory=list)
    failed_yearly_lesson_ids: list[str] = Field(default_factory=list)
