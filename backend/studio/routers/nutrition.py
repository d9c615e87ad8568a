# backend/studio/routers/nutrition.py
# Food log and macro targets; premium feature for self-signup clients

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from ..auth import current_client
from ..database import get_db
from ..models.tables import Clients as DBClients
from ..schemas.nutrition import (
    DayLogRead,
    FoodEntryCreate,
    NutritionTargetsCalculate,
    NutritionTargetsRead,
    NutritionTargetsUpdate,
)
from ..services import nutrition_log
from ..services.nutrition import calculate_macros
from ..services.tiers import build_tier

router = APIRouter(prefix="/nutrition", tags=["nutrition"])


def nutrition_client(client: DBClients = Depends(current_client)) -> DBClients:
    if not build_tier(client).can_access("nutrition"):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Premium feature")
    return client


@router.get("/targets", response_model=NutritionTargetsRead)
def get_targets(
    client: DBClients = Depends(nutrition_client),
    db: Session = Depends(get_db),
):
    targets = nutrition_log.get_targets(db, client.id)
    if not targets:
        raise HTTPException(status_code=404, detail="No targets set")
    return targets


@router.put("/targets", response_model=NutritionTargetsRead)
def set_targets(
    data: NutritionTargetsUpdate,
    client: DBClients = Depends(nutrition_client),
    db: Session = Depends(get_db),
):
    return nutrition_log.save_targets(db, client, **data.model_dump())


@router.post("/targets/calculate", response_model=NutritionTargetsRead)
def calculate_targets(
    data: NutritionTargetsCalculate,
    client: DBClients = Depends(nutrition_client),
    db: Session = Depends(get_db),
):
    result = calculate_macros(**data.model_dump())
    return nutrition_log.save_calculated_targets(db, client, result, goal=data.goal)


@router.get("/logs/{date_key}", response_model=DayLogRead)
def get_day(
    date_key: str,
    client: DBClients = Depends(nutrition_client),
    db: Session = Depends(get_db),
):
    return DayLogRead.model_validate(nutrition_log.get_day(db, client.id, date_key))


@router.post("/logs/{date_key}/entries", response_model=DayLogRead, status_code=status.HTTP_201_CREATED)
def add_entry(
    date_key: str,
    data: FoodEntryCreate,
    client: DBClients = Depends(nutrition_client),
    db: Session = Depends(get_db),
):
    day = nutrition_log.add_entry(db, client, date_key, data.model_dump())
    return DayLogRead.model_validate(day)


@router.delete("/logs/{date_key}/entries/{entry_id}", response_model=DayLogRead)
def remove_entry(
    date_key: str,
    entry_id: str,
    client: DBClients = Depends(nutrition_client),
    db: Session = Depends(get_db),
):
    day = nutrition_log.remove_entry(db, client, date_key, entry_id)
    return DayLogRead.model_validate(day)


@router.post("/logs/{date_key}/copy", response_model=DayLogRead)
def copy_day(
    date_key: str,
    source_date: str = Query(..., alias="from"),
    client: DBClients = Depends(nutrition_client),
    db: Session = Depends(get_db),
):
    day = nutrition_log.copy_day(db, client, source_date, date_key)
    return DayLogRead.model_validate(day)
