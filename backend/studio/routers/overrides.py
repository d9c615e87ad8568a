# backend/studio/routers/overrides.py
"""
Per-date exceptions to the weekly table.

/overrides/blocked - ticks removed on normal days
/overrides/opened  - ticks opened on default-blocked days (Friday)
"""

from datetime import date

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from ..auth import Identity, require_admin
from ..database import get_db
from ..models.tables import BlockedTimes as DBBlockedTimes, OpenedSlots as DBOpenedSlots
from ..schemas.calendar import OverrideCreate, OverrideRead
from ..services.bookings import block_time, close_slot, open_slot, unblock_time
from ..services.schedule.timeutils import TIME_PATTERN

router = APIRouter(prefix="/overrides", tags=["overrides"])


def _list(db: Session, model, date_from: date | None):
    query = db.query(model)
    if date_from:
        query = query.filter(model.date >= date_from.isoformat())
    return query.order_by(model.date, model.time).all()


@router.get("/blocked", response_model=list[OverrideRead])
def list_blocked(date_from: date | None = None, db: Session = Depends(get_db)):
    return _list(db, DBBlockedTimes, date_from)


@router.post("/blocked", response_model=OverrideRead, status_code=status.HTTP_201_CREATED)
def create_blocked(
    data: OverrideCreate,
    db: Session = Depends(get_db),
    _: Identity = Depends(require_admin),
):
    return block_time(db, data.date, data.time)


@router.delete("/blocked", status_code=status.HTTP_204_NO_CONTENT)
def delete_blocked(
    target_date: date = Query(..., alias="date"),
    time: str = Query(..., pattern=TIME_PATTERN),
    db: Session = Depends(get_db),
    _: Identity = Depends(require_admin),
):
    unblock_time(db, target_date, time)


@router.get("/opened", response_model=list[OverrideRead])
def list_opened(date_from: date | None = None, db: Session = Depends(get_db)):
    return _list(db, DBOpenedSlots, date_from)


@router.post("/opened", response_model=OverrideRead, status_code=status.HTTP_201_CREATED)
def create_opened(
    data: OverrideCreate,
    db: Session = Depends(get_db),
    _: Identity = Depends(require_admin),
):
    return open_slot(db, data.date, data.time)


@router.delete("/opened", status_code=status.HTTP_204_NO_CONTENT)
def delete_opened(
    target_date: date = Query(..., alias="date"),
    time: str = Query(..., pattern=TIME_PATTERN),
    db: Session = Depends(get_db),
    _: Identity = Depends(require_admin),
):
    close_slot(db, target_date, time)
