from __future__ import annotations

from sqlalchemy.orm import Session

from app.models.schedule_settings import ScheduleSettings
from app.schemas.schedule import ScheduleSettingsBase, ScheduleSettingsOut, ScheduleSettingsUpdate, ScheduleTemplate


def default_schedule_settings() -> ScheduleSettingsBase:
    return ScheduleSettingsBase()


def load_schedule_settings(db: Session) -> ScheduleSettingsOut:
    record = db.get(ScheduleSettings, 1)
    if record is None:
        defaults = default_schedule_settings()
        return ScheduleSettingsOut(id=1, **defaults.model_dump())
    return ScheduleSettingsOut(
        id=record.id,
        schedule_type=record.schedule_type,
        fixed_schedule_template=ScheduleTemplate.from_mapping(record.fixed_schedule_template),
        start_time=record.start_time,
        lessons_per_day=record.lessons_per_day,
        lesson_duration=record.lesson_duration,
        short_break=record.short_break,
        morning_break_after=record.morning_break_after,
        morning_break_duration=record.morning_break_duration,
        lunch_break_after=record.lunch_break_after,
        lunch_break_duration=record.lunch_break_duration,
        afternoon_break_after=record.afternoon_break_after,
        afternoon_break_duration=record.afternoon_break_duration,
    )


def save_schedule_settings(db: Session, payload: ScheduleSettingsUpdate) -> ScheduleSettingsOut:
    record = db.get(ScheduleSettings, 1)
    if record is None:
        record = ScheduleSettings(id=1)
        db.add(record)

    data = payload.model_dump(exclude={"fixed_schedule_template"})
    for key, value in data.items():
        setattr(record, key, value)
    record.fixed_schedule_template = payload.fixed_schedule_template.to_mapping()
    db.commit()
    db.refresh(record)
    return load_schedule_settings(db)
