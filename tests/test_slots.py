import pytest

from studio.services.schedule import (
    CLIENT_BLOCK_SCHEDULE,
    TRAINER_SCHEDULE,
    Interval,
    WeeklySchedule,
    generate_time_slots_for_day,
)
from studio.services.schedule.slots import ticks_spanned


def test_monday_slots_cover_both_periods():
    slots = generate_time_slots_for_day("monday", TRAINER_SCHEDULE)
    times = [s.time for s in slots]

    assert times[0] == "06:15"
    assert times[-1] == "19:45"
    # end bounds are exclusive
    assert "12:00" not in times
    assert "20:00" not in times
    assert len(times) == 23 + 20
    assert {s.period for s in slots} == {"morning", "afternoon"}


def test_slots_are_ordered_and_on_grid():
    slots = generate_time_slots_for_day("tuesday", TRAINER_SCHEDULE)
    times = [s.time for s in slots]
    assert times == sorted(times)
    assert all(int(t.split(":")[1]) % 15 == 0 for t in times)


def test_closed_days_have_no_slots():
    assert generate_time_slots_for_day("saturday", TRAINER_SCHEDULE) == []
    assert generate_time_slots_for_day("sunday", TRAINER_SCHEDULE) == []
    assert generate_time_slots_for_day(None, TRAINER_SCHEDULE) == []


def test_client_block_friday_is_short():
    times = [s.time for s in generate_time_slots_for_day("friday", CLIENT_BLOCK_SCHEDULE)]
    assert times == ["08:00", "08:15", "08:30", "08:45", "09:00", "09:15", "09:30", "09:45"]


def test_ticks_spanned():
    assert ticks_spanned(555, 45, 15) == ["09:15", "09:30", "09:45"]
    assert ticks_spanned(540, 50, 15) == ["09:00", "09:15", "09:30", "09:45"]
    assert ticks_spanned(547, 45, 15) == ["09:00", "09:15", "09:30", "09:45"]


def test_interval_must_be_ordered():
    with pytest.raises(ValueError):
        Interval("12:00", "06:00")


def test_schedule_from_dict_round_trip_shape():
    schedule = WeeklySchedule.from_dict({
        "Monday": {"morning": {"start": "07:00", "end": "08:00"}, "afternoon": None},
        "friday": {"morning": {"start": "06:15", "end": "12:00"}, "defaultBlocked": True},
        "saturday": None,
    })

    assert schedule.for_day("monday").morning == Interval("07:00", "08:00")
    assert schedule.for_day("monday").afternoon is None
    assert schedule.for_day("friday").default_blocked is True
    assert schedule.for_day("saturday") is None
    assert schedule.to_dict()["friday"]["defaultBlocked"] is True


def test_schedule_rejects_bad_step_and_day():
    with pytest.raises(ValueError):
        WeeklySchedule(days={}, slot_step_minutes=7)
    with pytest.raises(ValueError):
        WeeklySchedule(days={"funday": TRAINER_SCHEDULE.for_day("monday")})
