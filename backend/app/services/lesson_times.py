from __future__ import annotations

from app.schemas.schedule import ScheduleSettingsBase, TimeSlotOut, format_minutes, parse_time_to_minutes


def break_after(period: int, settings: ScheduleSettingsBase) -> int:
    """Minutes of break following ``period``."""
    if period == settings.morning_break_after:
        return settings.morning_break_duration
    if period == settings.lunch_break_after:
        return settings.lunch_break_duration
    if period == settings.afternoon_break_after:
        return settings.afternoon_break_duration
    return settings.short_break


def period_start_minutes(period: int, settings: ScheduleSettingsBase) -> int:
    current = parse_time_to_minutes(settings.start_time)
    for previous in range(1, period):
        current += settings.lesson_duration + break_after(previous, settings)
    return current


def calculate_time_slot(period: int, settings: ScheduleSettingsBase, span: int = 1) -> TimeSlotOut:
    start = period_start_minutes(period, settings)
    last_period = period + max(1, span) - 1
    end = period_start_minutes(last_period, settings) + settings.lesson_duration
    return TimeSlotOut(period=period, start=format_minutes(start), end=format_minutes(end))


def generate_time_slots(settings: ScheduleSettingsBase) -> list[TimeSlotOut]:
    return [calculate_time_slot(period, settings) for period in range(1, settings.lessons_per_day + 1)]
