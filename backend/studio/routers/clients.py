# backend/studio/routers/clients.py
# Admin roster + the signed-in client's own record

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..auth import Identity, current_client, require_admin
from ..database import get_db
from ..models.tables import Clients as DBClients
from ..schemas.clients import (
    BadgeRead,
    ClientCreate,
    ClientRead,
    ClientUpdate,
    TierRead,
)
from ..services.badges import BADGES_BY_ID, earned_badges, sync_workout_badges
from ..services.tiers import PREMIUM_FEATURES, build_tier, client_home_path

router = APIRouter(prefix="/clients", tags=["clients"])


@router.get("/me", response_model=ClientRead)
def get_me(client: DBClients = Depends(current_client)):
    return client


@router.get("/me/tier", response_model=TierRead)
def get_my_tier(client: DBClients = Depends(current_client)):
    tier = build_tier(client)
    return TierRead(
        tier=tier.tier,
        subscription_status=tier.subscription_status,
        is_premium=tier.is_premium,
        home_path=client_home_path(client),
        features={f: tier.can_access(f) for f in sorted(PREMIUM_FEATURES)},
    )


@router.get("/me/badges", response_model=list[BadgeRead])
def get_my_badges(
    client: DBClients = Depends(current_client),
    db: Session = Depends(get_db),
):
    sync_workout_badges(db, client)

    badges = []
    for row in earned_badges(db, client.id):
        badge = BADGES_BY_ID.get(row.badge_id)
        if badge is None:
            continue
        badges.append(BadgeRead(
            badge_id=badge.id,
            name=badge.name,
            desc=badge.desc,
            category=badge.category,
            earned_at=row.earned_at,
        ))
    return badges


@router.get("/", response_model=list[ClientRead])
def list_clients(
    db: Session = Depends(get_db),
    _: Identity = Depends(require_admin),
):
    return db.query(DBClients).order_by(DBClients.name).all()


@router.get("/{id}", response_model=ClientRead)
def get_client(
    id: int,
    db: Session = Depends(get_db),
    _: Identity = Depends(require_admin),
):
    obj = db.get(DBClients, id)
    if not obj:
        raise HTTPException(status_code=404, detail="Not found")
    return obj


@router.post("/", response_model=ClientRead, status_code=status.HTTP_201_CREATED)
def create_client(
    data: ClientCreate,
    db: Session = Depends(get_db),
    _: Identity = Depends(require_admin),
):
    obj = DBClients(**data.model_dump(mode="json"))
    db.add(obj)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Email already registered")
    db.refresh(obj)
    return obj


@router.patch("/{id}", response_model=ClientRead)
def update_client(
    id: int,
    data: ClientUpdate,
    db: Session = Depends(get_db),
    _: Identity = Depends(require_admin),
):
    obj = db.get(DBClients, id)
    if not obj:
        raise HTTPException(status_code=404, detail="Not found")

    for field, value in data.model_dump(mode="json", exclude_unset=True).items():
        setattr(obj, field, value)

    db.commit()
    db.refresh(obj)
    return obj
