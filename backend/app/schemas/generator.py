from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field

from app.schemas.lesson import LessonOut

SkipReason = Literal["already_exists", "no_yearly_lessons"]
GenerationPhase = Literal["planning", "creating", "done"]


class GenerateScheduleRequest(BaseModel):
    school_year: int = Field(ge=2000, le=2100)
    class_id: str | None = Field(default=None, max_length=36)


class SkippedWeek(BaseModel):
    week: int
    reason: SkipReason
    count: int | None = None


class FailedBatch(BaseModel):
    start: int
    end: int
    error: str


class GenerationProgress(BaseModel):
    phase: GenerationPhase
    processed: int
    total: int
    message: str

    @property
    def percent(self) -> int:
        if self.total <= 0:
            return 100
        return min(100, int(self.processed * 100 / self.total))


class GenerationStats(BaseModel):
    total_created: int = 0
    double_lessons: int = 0
    skipped_weeks: int = 0
    processed_weeks: int = 0
    skipped_details: list[SkippedWeek] = Field(default_factory=list)
    failed_batches: list[FailedBatch] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)


class GenerateScheduleResponse(BaseModel):
    lessons: list[LessonOut] = Field(default_factory=list)
    stats: GenerationStats
