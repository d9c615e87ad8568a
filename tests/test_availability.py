from datetime import date

from conftest import at
from studio.services.schedule import (
    TRAINER_SCHEDULE,
    BookingSpan,
    Overrides,
    explain_slot,
    get_available_slots_for_date,
    get_reschedule_dates,
    get_week_availability,
    is_slot_available,
)

MONDAY = date(2025, 3, 3)
FRIDAY = date(2025, 3, 7)
SATURDAY = date(2025, 3, 8)
EARLIER = at("2025-03-01 08:00")


def check(target, time, duration=45, bookings=(), holidays=(), now=EARLIER, **kwargs):
    return explain_slot(
        target, time, duration, bookings, set(holidays),
        schedule=TRAINER_SCHEDULE, now=now, **kwargs,
    )


def test_session_must_end_inside_opening_hours():
    assert check(MONDAY, "11:30") == "outside_hours"
    assert check(MONDAY, "11:00") is None
    assert check(MONDAY, "11:15") is None  # ends exactly at 12:00


def test_session_cannot_bridge_the_midday_gap():
    assert check(MONDAY, "11:45", duration=60) == "outside_hours"
    assert check(MONDAY, "14:45") == "outside_hours"
    assert check(MONDAY, "15:00") is None


def test_overlap_with_neighbouring_bookings():
    bookings = [
        BookingSpan(1, "2025-03-03", "09:00", 45),
        BookingSpan(2, "2025-03-03", "09:45", 45),
    ]
    assert check(MONDAY, "09:30", bookings=bookings) == "overlap"
    assert check(MONDAY, "10:30", bookings=bookings) is None


def test_back_to_back_bookings_do_not_overlap():
    bookings = [BookingSpan(1, "2025-03-03", "10:00", 45)]
    assert check(MONDAY, "09:15", bookings=bookings) is None
    assert check(MONDAY, "10:45", bookings=bookings) is None
    assert check(MONDAY, "10:30", bookings=bookings) == "overlap"


def test_booking_without_duration_counts_as_default_length():
    bookings = [BookingSpan(1, "2025-03-03", "10:00", None)]
    assert check(MONDAY, "10:30", bookings=bookings) == "overlap"
    assert check(MONDAY, "10:45", bookings=bookings) is None


def test_bookings_on_other_dates_are_ignored():
    bookings = [BookingSpan(1, "2025-03-04", "10:00", 45)]
    assert check(MONDAY, "10:00", bookings=bookings) is None


def test_excluded_booking_does_not_block_its_own_move():
    bookings = [BookingSpan(7, "2025-03-03", "10:00", 45)]
    assert check(MONDAY, "10:15", bookings=bookings) == "overlap"
    assert check(MONDAY, "10:15", bookings=bookings, exclude_booking_id=7) is None


def test_weekend_and_holiday():
    assert check(SATURDAY, "09:00") == "weekend"
    assert check(MONDAY, "09:00", holidays={"2025-03-03"}) == "holiday"


def test_past_dates_and_times():
    now = at("2025-03-03 10:07")
    assert check(date(2025, 2, 27), "09:00", now=now) == "past"
    assert check(MONDAY, "10:00", now=now) == "past"
    assert check(MONDAY, "10:15", now=now) is None


def test_blocked_tick_rejects_any_session_covering_it():
    overrides = Overrides(blocked={("2025-03-03", "09:30")})
    assert check(MONDAY, "09:30", overrides=overrides) == "blocked"
    assert check(MONDAY, "09:00", overrides=overrides) == "blocked"
    assert check(MONDAY, "09:45", overrides=overrides) is None


def test_off_grid_start_still_covers_blocked_tick():
    overrides = Overrides(blocked={("2025-03-03", "09:15")})
    assert check(MONDAY, "09:07", overrides=overrides) == "blocked"
    assert check(MONDAY, "09:22", overrides=overrides) == "blocked"
    assert check(MONDAY, "09:37", overrides=overrides) is None


def test_friday_needs_every_tick_opened():
    assert check(FRIDAY, "09:00") == "not_opened"

    partly = Overrides(opened={("2025-03-07", "09:00"), ("2025-03-07", "09:15")})
    assert check(FRIDAY, "09:00", overrides=partly) == "not_opened"

    fully = Overrides(opened=partly.opened | {("2025-03-07", "09:30")})
    assert check(FRIDAY, "09:00", overrides=fully) is None


def test_off_grid_friday_start_needs_the_tick_it_falls_in():
    opened = Overrides(opened={
        ("2025-03-07", "09:15"), ("2025-03-07", "09:30"), ("2025-03-07", "09:45"),
    })
    assert check(FRIDAY, "09:15", overrides=opened) is None
    assert check(FRIDAY, "09:20", overrides=opened) == "not_opened"  # runs into 10:00
    assert check(FRIDAY, "09:07", overrides=opened) == "not_opened"

    with_nine = Overrides(opened=opened.opened | {("2025-03-07", "09:00")})
    assert check(FRIDAY, "09:07", overrides=with_nine) is None


def test_is_slot_available_matches_explain():
    assert is_slot_available(MONDAY, "11:00", 45, [], set(), schedule=TRAINER_SCHEDULE, now=EARLIER)
    assert not is_slot_available(MONDAY, "11:30", 45, [], set(), schedule=TRAINER_SCHEDULE, now=EARLIER)


def test_available_slots_for_date_drop_rejected_times():
    bookings = [BookingSpan(1, "2025-03-03", "09:00", 45)]
    slots = get_available_slots_for_date(
        MONDAY, 45, bookings, set(), schedule=TRAINER_SCHEDULE, now=EARLIER,
    )
    times = [s.time for s in slots]

    assert times[0] == "06:15"
    assert "08:15" in times
    assert "08:30" not in times  # runs into 09:00
    assert "09:00" not in times
    assert "09:45" in times
    assert "11:15" in times
    assert "11:30" not in times
    assert times[-1] == "19:15"


def test_available_slots_empty_on_holiday():
    assert get_available_slots_for_date(
        MONDAY, 45, [], {"2025-03-03"}, schedule=TRAINER_SCHEDULE, now=EARLIER,
    ) == []


def test_week_availability_has_friday_closed_by_default():
    week = get_week_availability(
        date(2025, 3, 5), 45, [], set(), schedule=TRAINER_SCHEDULE, now=EARLIER,
    )
    assert list(week) == [
        "2025-03-03", "2025-03-04", "2025-03-05", "2025-03-06", "2025-03-07",
    ]
    assert week["2025-03-07"] == []
    assert len(week["2025-03-03"]) > 0


def test_reschedule_dates_skip_weekends_and_holidays():
    dates = get_reschedule_dates(date(2025, 3, 3), date(2025, 3, 11), {"2025-03-05"})
    assert dates == [
        date(2025, 3, 4),
        date(2025, 3, 6),
        date(2025, 3, 7),
        date(2025, 3, 10),
        date(2025, 3, 11),
    ]


def test_reschedule_dates_without_block_end():
    assert get_reschedule_dates(date(2025, 3, 3), None, set()) == []
