from datetime import date, datetime

import pytest

from conftest import LONDON, at, emitted
from studio.errors import ConflictError, ForbiddenError, NotFoundError, ValidationError
from studio.models.tables import Clients
from studio.services import circuit

CLASS_DATE = "2025-03-08"
MONDAY = at("2025-03-03 12:00")


@pytest.fixture
def vip(make_client):
    return make_client(name="Vera Vip", client_type="circuit_vip")


@pytest.fixture
def dropin(make_client):
    return make_client(name="Dee Dropin", client_type="circuit_dropin")


@pytest.fixture
def session(db, vip):
    return circuit.load_session(db, CLASS_DATE, now=MONDAY)


def slot_members(session):
    slots, _, _ = circuit.read_state(session)
    return [s["memberId"] for s in slots]


def waitlist_members(session):
    _, waitlist, _ = circuit.read_state(session)
    return [w["memberId"] for w in waitlist]


def fill_class(db, session, make_client, count):
    members = []
    for i in range(count):
        member = make_client(name=f"Filler {i}", client_type="circuit_dropin")
        slots, _, _ = circuit.read_state(session)
        free = next(s for s in slots if s["status"] == "available")
        circuit.book_slot(db, session, member, free["slotNumber"], now=MONDAY)
        members.append(member)
    return members


def assert_single_placement(session):
    slots, waitlist, _ = circuit.read_state(session)
    slotted = [s["memberId"] for s in slots if s["status"] == "confirmed"]
    waiting = [w["memberId"] for w in waitlist]
    assert len(slotted) == len(set(slotted))
    assert not set(slotted) & set(waiting)


# ──────────────────────────────────────────────────────────────────────────────
# Dates
# ──────────────────────────────────────────────────────────────────────────────

def test_next_class_date():
    assert circuit.next_class_date(at("2025-03-05 10:00")) == date(2025, 3, 8)
    assert circuit.next_class_date(at("2025-03-08 09:30")) == date(2025, 3, 8)
    assert circuit.next_class_date(at("2025-03-08 09:46")) == date(2025, 3, 15)
    assert circuit.next_class_date(at("2025-03-09 08:00")) == date(2025, 3, 15)


def test_deadlines(session):
    assert circuit.booking_deadline(session, LONDON) == datetime(
        2025, 3, 5, 23, 59, 59, 999999, tzinfo=LONDON
    )
    assert circuit.release_deadline(session, LONDON) == datetime(2025, 3, 7, 9, 0, tzinfo=LONDON)


# ──────────────────────────────────────────────────────────────────────────────
# Load
# ──────────────────────────────────────────────────────────────────────────────

def test_new_session_preslots_active_vips(db, make_client):
    first = make_client(name="Vip One", client_type="circuit_vip")
    second = make_client(name="Vip Two", client_type="circuit_vip")
    make_client(name="Vip Paused", client_type="circuit_vip", status="paused")
    make_client(name="Drop In", client_type="circuit_dropin")

    session = circuit.load_session(db, CLASS_DATE, now=MONDAY)

    assert session.time == "09:00"
    assert session.end_time == "09:45"
    assert session.max_capacity == 8
    assert slot_members(session) == [first.id, second.id, None, None, None, None, None, None]


def test_load_defaults_to_upcoming_saturday(db):
    session = circuit.load_session(db, now=MONDAY)
    assert session.id == CLASS_DATE


def test_load_rejects_days_without_a_class(db):
    with pytest.raises(ValidationError):
        circuit.load_session(db, "2025-03-04", now=MONDAY)
    assert circuit.list_sessions(db) == []


def test_load_never_creates_past_sessions(db, vip):
    with pytest.raises(NotFoundError):
        circuit.load_session(db, "2025-03-01", now=MONDAY)
    assert circuit.list_sessions(db) == []


def test_past_session_is_read_without_refilling(db, session, vip, make_client):
    newcomer = make_client(name="Late Vip", client_type="circuit_vip")

    past = circuit.load_session(db, CLASS_DATE, now=at("2025-03-10 09:00"))

    assert newcomer.id not in slot_members(past)


def test_reload_fills_new_vips(db, session, vip, make_client):
    newcomer = make_client(name="New Vip", client_type="circuit_vip")

    session = circuit.load_session(db, CLASS_DATE, now=MONDAY)

    assert slot_members(session)[:2] == [vip.id, newcomer.id]


def test_vip_who_released_is_not_refilled(db, session, vip):
    circuit.release_slot(db, session, vip, now=MONDAY)

    session = circuit.load_session(db, CLASS_DATE, now=MONDAY)

    assert vip.id not in slot_members(session)
    _, _, opt_outs = circuit.read_state(session)
    assert opt_outs == [vip.id]


# ──────────────────────────────────────────────────────────────────────────────
# Member actions
# ──────────────────────────────────────────────────────────────────────────────

def test_book_slot(db, session, dropin):
    circuit.book_slot(db, session, dropin, 3, now=MONDAY)

    slots, _, _ = circuit.read_state(session)
    assert slots[2]["memberId"] == dropin.id
    assert slots[2]["status"] == "confirmed"
    assert slots[2]["memberType"] == "circuit_dropin"


def test_book_second_slot_is_a_conflict(db, session, dropin):
    circuit.book_slot(db, session, dropin, 3, now=MONDAY)
    with pytest.raises(ConflictError):
        circuit.book_slot(db, session, dropin, 4, now=MONDAY)


def test_book_taken_slot_is_a_conflict(db, session, dropin):
    with pytest.raises(ConflictError):
        circuit.book_slot(db, session, dropin, 1, now=MONDAY)


def test_book_unknown_slot(db, session, dropin):
    with pytest.raises(NotFoundError):
        circuit.book_slot(db, session, dropin, 9, now=MONDAY)


def test_booking_closes_after_wednesday(db, session, dropin):
    circuit.book_slot(db, session, dropin, 3, now=at("2025-03-05 23:59"))
    circuit.release_slot(db, session, dropin, now=at("2025-03-05 23:59"))

    with pytest.raises(ValidationError):
        circuit.book_slot(db, session, dropin, 3, now=at("2025-03-06 00:00"))


def test_non_member_cannot_book(db, session, make_client):
    block_client = make_client(name="Block Only")
    with pytest.raises(ForbiddenError):
        circuit.book_slot(db, session, block_client, 3, now=MONDAY)


def test_circuit_access_flag_makes_a_member(db, session, make_client):
    client = make_client(name="Block Plus", circuit_access=1)
    circuit.book_slot(db, session, client, 3, now=MONDAY)
    assert client.id in slot_members(session)


def test_banned_member_cannot_book(db, session, dropin):
    dropin.circuit_ban_until = at("2025-03-20 00:00").isoformat()
    db.commit()

    with pytest.raises(ForbiddenError):
        circuit.book_slot(db, session, dropin, 3, now=MONDAY)
    with pytest.raises(ForbiddenError):
        circuit.join_waitlist(db, session, dropin, now=MONDAY)


def test_expired_ban_does_not_block(db, session, dropin):
    dropin.circuit_ban_until = at("2025-03-01 00:00").isoformat()
    db.commit()
    circuit.book_slot(db, session, dropin, 3, now=MONDAY)


def test_release_promotes_waitlist_head_into_same_slot(db, session, dropin, make_client, redis_mock):
    fill_class(db, session, make_client, 7)
    circuit.join_waitlist(db, session, dropin, now=MONDAY)
    second = make_client(name="Second Waiter", client_type="circuit_dropin")
    circuit.join_waitlist(db, session, second, now=MONDAY)

    leaving = db.get(Clients, slot_members(session)[4])
    circuit.release_slot(db, session, leaving, now=MONDAY)

    slots, waitlist, _ = circuit.read_state(session)
    assert slots[4]["memberId"] == dropin.id
    assert slots[4]["slotNumber"] == 5
    assert slots[4]["status"] == "confirmed"
    assert [w["memberId"] for w in waitlist] == [second.id]

    event = emitted(redis_mock)[-1]
    assert event["type"] == "circuit_promoted"
    assert event["client_id"] == dropin.id
    assert event["date"] == CLASS_DATE
    assert_single_placement(session)


def test_release_without_waitlist_frees_slot(db, session, dropin):
    circuit.book_slot(db, session, dropin, 3, now=MONDAY)
    circuit.release_slot(db, session, dropin, now=MONDAY)

    slots, _, _ = circuit.read_state(session)
    assert slots[2] == circuit.empty_slot(3)


def test_release_inside_24_hours_is_rejected(db, session, dropin):
    circuit.book_slot(db, session, dropin, 3, now=MONDAY)
    with pytest.raises(ValidationError):
        circuit.release_slot(db, session, dropin, now=at("2025-03-07 09:01"))


def test_release_without_slot(db, session, dropin):
    with pytest.raises(NotFoundError):
        circuit.release_slot(db, session, dropin, now=MONDAY)


def test_waitlist_rules(db, session, dropin, vip):
    circuit.join_waitlist(db, session, dropin, now=MONDAY)
    with pytest.raises(ConflictError):
        circuit.join_waitlist(db, session, dropin, now=MONDAY)
    with pytest.raises(ConflictError):
        circuit.join_waitlist(db, session, vip, now=MONDAY)

    circuit.leave_waitlist(db, session, dropin.id)
    assert waitlist_members(session) == []
    with pytest.raises(NotFoundError):
        circuit.leave_waitlist(db, session, dropin.id)


def test_booking_takes_member_off_waitlist(db, session, dropin):
    circuit.join_waitlist(db, session, dropin, now=MONDAY)
    circuit.book_slot(db, session, dropin, 3, now=MONDAY)

    assert waitlist_members(session) == []
    assert_single_placement(session)


def test_vip_booking_again_clears_opt_out(db, session, vip):
    circuit.release_slot(db, session, vip, now=MONDAY)
    circuit.book_slot(db, session, vip, 6, now=MONDAY)

    _, _, opt_outs = circuit.read_state(session)
    assert opt_outs == []
    assert slot_members(session)[5] == vip.id


# ──────────────────────────────────────────────────────────────────────────────
# Admin actions
# ──────────────────────────────────────────────────────────────────────────────

def test_admin_assign_ignores_deadline(db, session, dropin):
    circuit.admin_assign_slot(db, session, dropin, 4, now=at("2025-03-08 08:30"))
    assert slot_members(session)[3] == dropin.id


def test_admin_assign_checks_slot_and_member(db, session, dropin, vip):
    with pytest.raises(ConflictError):
        circuit.admin_assign_slot(db, session, dropin, 1, now=MONDAY)
    with pytest.raises(ConflictError):
        circuit.admin_assign_slot(db, session, vip, 4, now=MONDAY)


def test_admin_remove_vip_records_opt_out(db, session, vip):
    circuit.admin_remove_from_slot(db, session, 1, now=MONDAY)

    session = circuit.load_session(db, CLASS_DATE, now=MONDAY)
    assert vip.id not in slot_members(session)


def test_admin_remove_promotes_waitlist(db, session, dropin, make_client):
    fill_class(db, session, make_client, 7)
    circuit.join_waitlist(db, session, dropin, now=MONDAY)

    circuit.admin_remove_from_slot(db, session, 2, now=at("2025-03-08 08:50"))

    assert slot_members(session)[1] == dropin.id
    assert waitlist_members(session) == []


def test_admin_remove_empty_slot(db, session):
    with pytest.raises(ValidationError):
        circuit.admin_remove_from_slot(db, session, 5, now=MONDAY)


def test_admin_remove_from_waitlist(db, session, dropin):
    circuit.join_waitlist(db, session, dropin, now=MONDAY)
    circuit.admin_remove_from_waitlist(db, session, dropin.id)
    assert waitlist_members(session) == []


# ──────────────────────────────────────────────────────────────────────────────
# Attendance, strikes, bans
# ──────────────────────────────────────────────────────────────────────────────

def test_attended_adds_no_strike(db, session, vip):
    circuit.mark_attendance(db, session, 1, attended=True, now=at("2025-03-08 10:00"))

    slots, _, _ = circuit.read_state(session)
    assert slots[0]["attended"] is True
    db.refresh(vip)
    assert vip.circuit_strikes == 0


def test_no_show_adds_strike(db, session, vip):
    circuit.mark_attendance(db, session, 1, attended=False, now=at("2025-03-08 10:00"))

    db.refresh(vip)
    assert vip.circuit_strikes == 1
    assert vip.circuit_ban_until is None


def test_attendance_marked_once(db, session):
    circuit.mark_attendance(db, session, 1, attended=True, now=at("2025-03-08 10:00"))
    with pytest.raises(ConflictError):
        circuit.mark_attendance(db, session, 1, attended=False, now=at("2025-03-08 10:00"))


def test_attendance_on_empty_slot(db, session):
    with pytest.raises(ValidationError):
        circuit.mark_attendance(db, session, 4, attended=False, now=at("2025-03-08 10:00"))


def test_third_no_show_bans_for_a_calendar_month(db, vip):
    vip.circuit_strikes = 2
    db.commit()
    session = circuit.load_session(db, "2025-01-25", now=at("2025-01-20 09:00"))

    circuit.mark_attendance(db, session, 1, attended=False, now=at("2025-01-31 10:00"))

    db.refresh(vip)
    assert vip.circuit_strikes == 0
    assert vip.circuit_ban_until == at("2025-02-28 10:00").isoformat()
    assert circuit.is_banned(vip, at("2025-02-28 09:59"))
    assert not circuit.is_banned(vip, at("2025-02-28 10:01"))


def test_reset_strikes_and_lift_ban(db, vip):
    vip.circuit_strikes = 2
    vip.circuit_ban_until = at("2025-04-01 00:00").isoformat()
    db.commit()

    circuit.reset_strikes(db, vip)
    assert vip.circuit_strikes == 0
    assert vip.circuit_ban_until is None

    vip.circuit_ban_until = at("2025-04-01 00:00").isoformat()
    db.commit()
    circuit.lift_ban(db, vip)
    assert not circuit.is_banned(vip, MONDAY)


def test_list_members(db, vip, dropin, make_client):
    make_client(name="Block Only")
    assert {m.id for m in circuit.list_members(db)} == {vip.id, dropin.id}
