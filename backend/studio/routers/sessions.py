# backend/studio/routers/sessions.py
# Admin books / cancels; clients read their own block

from datetime import date

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from ..auth import Identity, current_client, require_admin
from ..database import get_db
from ..models.tables import Clients as DBClients, Sessions as DBSessions
from ..schemas.sessions import ClientSessionsRead, SessionCreate, SessionRead
from ..services.bookings import (
    book_session,
    cancel_session,
    remaining_sessions,
    split_sessions,
)

router = APIRouter(prefix="/sessions", tags=["sessions"])


@router.get("/", response_model=list[SessionRead])
def list_sessions(
    date_from: date | None = None,
    date_to: date | None = None,
    db: Session = Depends(get_db),
    _: Identity = Depends(require_admin),
):
    query = db.query(DBSessions)
    if date_from:
        query = query.filter(DBSessions.date >= date_from.isoformat())
    if date_to:
        query = query.filter(DBSessions.date <= date_to.isoformat())
    return query.order_by(DBSessions.date, DBSessions.time).all()


@router.get("/me", response_model=ClientSessionsRead)
def my_sessions(
    client: DBClients = Depends(current_client),
    db: Session = Depends(get_db),
):
    sessions = db.query(DBSessions).filter(DBSessions.client_id == client.id).all()
    upcoming, completed = split_sessions(sessions)
    return ClientSessionsRead(
        total_sessions=client.total_sessions,
        remaining=remaining_sessions(db, client),
        upcoming=[SessionRead.model_validate(s) for s in upcoming],
        completed=[SessionRead.model_validate(s) for s in completed],
    )


@router.post("/", response_model=SessionRead, status_code=status.HTTP_201_CREATED)
def create_session(
    data: SessionCreate,
    db: Session = Depends(get_db),
    _: Identity = Depends(require_admin),
):
    client = None
    if data.client_id is not None:
        client = db.get(DBClients, data.client_id)
        if not client:
            raise HTTPException(status_code=404, detail="Client not found")
    elif not data.client_name:
        raise HTTPException(status_code=400, detail="client_id or client_name required")

    return book_session(
        db,
        data.date,
        data.time,
        client=client,
        client_name=data.client_name,
        duration_minutes=data.duration_minutes,
    )


@router.delete("/{id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_session(
    id: int,
    db: Session = Depends(get_db),
    _: Identity = Depends(require_admin),
):
    cancel_session(db, id)
