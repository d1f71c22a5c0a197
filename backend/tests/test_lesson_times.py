from app.schemas.schedule import ScheduleSettingsBase
from app.services.lesson_times import break_after, calculate_time_slot, generate_time_slots


def test_default_day_timings():
    settings = ScheduleSettingsBase()
    slots = generate_time_slots(settings)

    assert [(slot.start, slot.end) for slot in slots] == [
        ("08:00", "08:45"),
        ("08:50", "09:35"),
        ("09:55", "10:40"),
        ("10:45", "11:30"),
        ("12:10", "12:55"),
        ("13:00", "13:45"),
        ("14:00", "14:45"),
        ("14:50", "15:35"),
    ]


def test_breaks_follow_configured_periods():
    settings = ScheduleSettingsBase()

    assert break_after(1, settings) == 5
    assert break_after(2, settings) == 20
    assert break_after(4, settings) == 40
    assert break_after(6, settings) == 15


def test_double_lesson_spans_break():
    settings = ScheduleSettingsBase()
    slot = calculate_time_slot(2, settings, span=2)

    assert (slot.start, slot.end) == ("08:50", "10:40")


def test_custom_start_time():
    settings = ScheduleSettingsBase(start_time="07:30", lesson_duration=50, short_break=10)

    assert calculate_time_slot(1, settings).end == "08:20"
    assert calculate_time_slot(2, settings).start == "08:30"
