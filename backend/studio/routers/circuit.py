# backend/studio/routers/circuit.py
"""
Circuit class API endpoints.

Members:
    GET    /circuit/current                   upcoming class (created on first load);
                                              admins may pass class_date
    POST   /circuit/{date}/book               claim a slot
    POST   /circuit/{date}/release            give a slot back
    POST   /circuit/{date}/waitlist           join the waitlist
    DELETE /circuit/{date}/waitlist           leave it

Admin:
    GET    /circuit/sessions
    POST   /circuit/{date}/slots              put a member in a slot
    DELETE /circuit/{date}/slots/{slot}       clear a slot
    DELETE /circuit/{date}/waitlist/{member}  drop from waitlist
    POST   /circuit/{date}/attendance         attended / no-show
    GET    /circuit/members
    POST   /circuit/members/{id}/reset-strikes
    POST   /circuit/members/{id}/lift-ban
"""

from datetime import date

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from ..auth import Identity, current_client, require_admin, require_identity
from ..config import settings
from ..database import get_db
from ..models.tables import CircuitSessions as DBCircuitSessions, Clients as DBClients
from ..schemas.circuit import (
    AdminAssignRequest,
    AttendanceRequest,
    CircuitSessionRead,
    MemberRead,
    SlotRequest,
)
from ..services import circuit

router = APIRouter(prefix="/circuit", tags=["circuit"])


def _read(session: DBCircuitSessions) -> CircuitSessionRead:
    slots, waitlist, opt_outs = circuit.read_state(session)
    return CircuitSessionRead(
        id=session.id,
        date=session.date,
        time=session.time,
        end_time=session.end_time,
        max_capacity=session.max_capacity,
        slots=slots,
        waitlist=waitlist,
        vip_opt_outs=opt_outs,
        booking_deadline=circuit.booking_deadline(session, settings.tz).isoformat(),
        release_deadline=circuit.release_deadline(session, settings.tz).isoformat(),
    )


def _member(db: Session, member_id: int) -> DBClients:
    member = db.get(DBClients, member_id)
    if not member:
        raise HTTPException(status_code=404, detail="Not found")
    return member


# ──────────────────────────────────────────────────────────────────────────────
# Members
# ──────────────────────────────────────────────────────────────────────────────

@router.get("/current", response_model=CircuitSessionRead)
def current_session(
    class_date: date | None = None,
    db: Session = Depends(get_db),
    identity: Identity = Depends(require_identity),
):
    upcoming = circuit.next_class_date()
    if class_date is not None and class_date != upcoming and not identity.is_admin:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Only the upcoming class can be viewed",
        )
    return _read(circuit.load_session(db, class_date or upcoming))


@router.post("/{date_key}/book", response_model=CircuitSessionRead)
def book(
    date_key: str,
    data: SlotRequest,
    client: DBClients = Depends(current_client),
    db: Session = Depends(get_db),
):
    session = circuit.get_session(db, date_key)
    return _read(circuit.book_slot(db, session, client, data.slot_number))


@router.post("/{date_key}/release", response_model=CircuitSessionRead)
def release(
    date_key: str,
    client: DBClients = Depends(current_client),
    db: Session = Depends(get_db),
):
    session = circuit.get_session(db, date_key)
    return _read(circuit.release_slot(db, session, client))


@router.post("/{date_key}/waitlist", response_model=CircuitSessionRead)
def join_waitlist(
    date_key: str,
    client: DBClients = Depends(current_client),
    db: Session = Depends(get_db),
):
    session = circuit.get_session(db, date_key)
    return _read(circuit.join_waitlist(db, session, client))


@router.delete("/{date_key}/waitlist", response_model=CircuitSessionRead)
def leave_waitlist(
    date_key: str,
    client: DBClients = Depends(current_client),
    db: Session = Depends(get_db),
):
    session = circuit.get_session(db, date_key)
    return _read(circuit.leave_waitlist(db, session, client.id))


# ──────────────────────────────────────────────────────────────────────────────
# Admin
# ──────────────────────────────────────────────────────────────────────────────

@router.get("/sessions", response_model=list[CircuitSessionRead])
def list_sessions(
    db: Session = Depends(get_db),
    _: Identity = Depends(require_admin),
):
    return [_read(s) for s in circuit.list_sessions(db)]


@router.get("/members", response_model=list[MemberRead])
def list_members(
    db: Session = Depends(get_db),
    _: Identity = Depends(require_admin),
):
    return circuit.list_members(db)


@router.post("/members/{id}/reset-strikes", response_model=MemberRead)
def reset_strikes(
    id: int,
    db: Session = Depends(get_db),
    _: Identity = Depends(require_admin),
):
    return circuit.reset_strikes(db, _member(db, id))


@router.post("/members/{id}/lift-ban", response_model=MemberRead)
def lift_ban(
    id: int,
    db: Session = Depends(get_db),
    _: Identity = Depends(require_admin),
):
    return circuit.lift_ban(db, _member(db, id))


@router.post("/{date_key}/slots", response_model=CircuitSessionRead)
def assign_slot(
    date_key: str,
    data: AdminAssignRequest,
    db: Session = Depends(get_db),
    _: Identity = Depends(require_admin),
):
    session = circuit.get_session(db, date_key)
    member = _member(db, data.client_id)
    return _read(circuit.admin_assign_slot(db, session, member, data.slot_number))


@router.delete("/{date_key}/slots/{slot_number}", response_model=CircuitSessionRead)
def clear_slot(
    date_key: str,
    slot_number: int,
    db: Session = Depends(get_db),
    _: Identity = Depends(require_admin),
):
    session = circuit.get_session(db, date_key)
    return _read(circuit.admin_remove_from_slot(db, session, slot_number))


@router.delete("/{date_key}/waitlist/{member_id}", response_model=CircuitSessionRead)
def remove_from_waitlist(
    date_key: str,
    member_id: int,
    db: Session = Depends(get_db),
    _: Identity = Depends(require_admin),
):
    session = circuit.get_session(db, date_key)
    return _read(circuit.admin_remove_from_waitlist(db, session, member_id))


@router.post(
    "/{date_key}/attendance",
    response_model=CircuitSessionRead,
    status_code=status.HTTP_200_OK,
)
def attendance(
    date_key: str,
    data: AttendanceRequest,
    db: Session = Depends(get_db),
    _: Identity = Depends(require_admin),
):
    session = circuit.get_session(db, date_key)
    return _read(circuit.mark_attendance(db, session, data.slot_number, data.attended))
