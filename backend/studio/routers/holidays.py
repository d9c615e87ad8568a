# backend/studio/routers/holidays.py

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from ..auth import Identity, require_admin
from ..database import get_db
from ..models.tables import Holidays as DBHolidays
from ..schemas.calendar import HolidayCreate, HolidayRead
from ..services.bookings import add_holiday, remove_holiday

router = APIRouter(prefix="/holidays", tags=["holidays"])


@router.get("/", response_model=list[HolidayRead])
def list_holidays(db: Session = Depends(get_db)):
    return db.query(DBHolidays).order_by(DBHolidays.date).all()


@router.post("/", response_model=HolidayRead, status_code=status.HTTP_201_CREATED)
def create_holiday(
    data: HolidayCreate,
    db: Session = Depends(get_db),
    _: Identity = Depends(require_admin),
):
    return add_holiday(db, data.date)


@router.delete("/{id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_holiday(
    id: int,
    db: Session = Depends(get_db),
    _: Identity = Depends(require_admin),
):
    remove_holiday(db, id)
