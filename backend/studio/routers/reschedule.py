# backend/studio/routers/reschedule.py
# Client asks, admin answers; answered requests show up as client notifications

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from ..auth import Identity, current_client, require_admin
from ..database import get_db
from ..models.tables import Clients as DBClients
from ..schemas.reschedule import RescheduleCreate, RescheduleRead, RescheduleResponse
from ..services.bookings import (
    dismiss_notification,
    list_pending_requests,
    list_reschedule_notifications,
    request_reschedule,
    respond_to_reschedule,
)

router = APIRouter(prefix="/reschedule", tags=["reschedule"])


@router.post("/", response_model=RescheduleRead, status_code=status.HTTP_201_CREATED)
def create_request(
    data: RescheduleCreate,
    client: DBClients = Depends(current_client),
    db: Session = Depends(get_db),
):
    return request_reschedule(
        db,
        client,
        data.session_id,
        data.requested_date,
        data.requested_time,
    )


@router.get("/pending", response_model=list[RescheduleRead])
def pending_requests(
    db: Session = Depends(get_db),
    _: Identity = Depends(require_admin),
):
    return list_pending_requests(db)


@router.post("/{id}/respond", response_model=RescheduleRead)
def respond(
    id: int,
    data: RescheduleResponse,
    db: Session = Depends(get_db),
    _: Identity = Depends(require_admin),
):
    return respond_to_reschedule(db, id, data.approve)


@router.get("/notifications", response_model=list[RescheduleRead])
def notifications(
    client: DBClients = Depends(current_client),
    db: Session = Depends(get_db),
):
    return list_reschedule_notifications(db, client.id)


@router.post("/notifications/{id}/dismiss", response_model=RescheduleRead)
def dismiss(
    id: int,
    client: DBClients = Depends(current_client),
    db: Session = Depends(get_db),
):
    return dismiss_notification(db, client.id, id)
