from __future__ import annotations

import re

from pydantic import BaseModel, Field, RootModel, field_validator, model_validator

from app.models.schedule_settings import ScheduleType

WEEKDAYS: tuple[str, ...] = ("monday", "tuesday", "wednesday", "thursday", "friday")
DAY_ORDER: dict[str, int] = {day: index for index, day in enumerate(WEEKDAYS)}

TIME_PATTERN = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")


def parse_time_to_minutes(value: str) -> int:
    if not TIME_PATTERN.match(value):
        raise ValueError("Time must be in HH:MM 24-hour format")
    hours, minutes = value.split(":")
    return int(hours) * 60 + int(minutes)


def format_minutes(total_minutes: int) -> str:
    total_minutes %= 24 * 60
    return f"{total_minutes // 60:02d}:{total_minutes % 60:02d}"


def normalize_day(value: str) -> str:
    day = value.strip().lower()
    if day not in DAY_ORDER:
        raise ValueError(f"Invalid day value: {value}")
    return day


class TemplateSlot(BaseModel):
    period: int = Field(ge=1, le=20)
    subject: str = Field(min_length=1, max_length=100)
    class_id: str = Field(min_length=1, max_length=36)


class ScheduleTemplate(RootModel[dict[str, list[TemplateSlot]]]):
    """Recurring weekly pattern: weekday -> slots. Read-only input to the engine."""

    root: dict[str, list[TemplateSlot]] = Field(default_factory=dict)

    @field_validator("root")
    @classmethod
    def validate_days(cls, value: dict[str, list[TemplateSlot]]) -> dict[str, list[TemplateSlot]]:
        normalized: dict[str, list[TemplateSlot]] = {}
        for day, slots in value.items():
            key = normalize_day(day)
            periods = [slot.period for slot in slots]
            if len(periods) != len(set(periods)):
                raise ValueError(f"Duplicate periods on {key}")
            normalized[key] = sorted(slots, key=lambda slot: slot.period)
        return normalized

    @property
    def days(self) -> dict[str, list[TemplateSlot]]:
        return self.root

    def slots_for(self, day: str) -> list[TemplateSlot]:
        return self.root.get(day, [])

    def is_empty(self) -> bool:
        return not any(self.root.values())

    @classmethod
    def from_mapping(cls, raw: dict | None) -> "ScheduleTemplate":
        return cls.model_validate(raw or {})

    def to_mapping(self) -> dict[str, list[dict]]:
        return self.model_dump()


class ScheduleSettingsBase(BaseModel):
    schedule_type: ScheduleType = ScheduleType.flexible
    start_time: str = "08:00"
    lessons_per_day: int = Field(default=8, ge=1, le=20)
    lesson_duration: int = Field(default=45, ge=5, le=180)
    short_break: int = Field(default=5, ge=0, le=120)
    morning_break_after: int = Field(default=2, ge=0, le=20)
    morning_break_duration: int = Field(default=20, ge=0, le=120)
    lunch_break_after: int = Field(default=4, ge=0, le=20)
    lunch_break_duration: int = Field(default=40, ge=0, le=180)
    afternoon_break_after: int = Field(default=6, ge=0, le=20)
    afternoon_break_duration: int = Field(default=15, ge=0, le=120)
    fixed_schedule_template: ScheduleTemplate = Field(default_factory=ScheduleTemplate)

    @field_validator("start_time")
    @classmethod
    def validate_start_time(cls, value: str) -> str:
        if not TIME_PATTERN.match(value):
            raise ValueError("Time must be in HH:MM 24-hour format")
        return value

    @model_validator(mode="after")
    def validate_template_fits_day(self) -> "ScheduleSettingsBase":
        for day, slots in self.fixed_schedule_template.days.items():
            for slot in slots:
                if slot.period > self.lessons_per_day:
                    raise ValueError(
                        f"Template slot {day} period {slot.period} exceeds lessons_per_day ({self.lessons_per_day})"
                    )
        return self

    @property
    def is_fixed(self) -> bool:
        return self.schedule_type == ScheduleType.fixed


class ScheduleSettingsUpdate(ScheduleSettingsBase):
    pass


class ScheduleSettingsOut(ScheduleSettingsBase):
    id: int


class TimeSlotOut(BaseModel):
    period: int
    start: str
    end: str
