# backend/studio/routers/push_subscriptions.py
# Devices of the signed-in client; re-registering an endpoint moves it

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from ..auth import Identity, require_client
from ..database import get_db
from ..models.tables import PushSubscriptions as DBPushSubscriptions
from ..schemas.push_subscriptions import (
    PushSubscriptionCreate,
    PushSubscriptionRead,
)

router = APIRouter(prefix="/push_subscriptions", tags=["push_subscriptions"])


@router.get("/", response_model=list[PushSubscriptionRead])
def list_push_subscriptions(
    identity: Identity = Depends(require_client),
    db: Session = Depends(get_db),
):
    return (
        db.query(DBPushSubscriptions)
        .filter(DBPushSubscriptions.client_id == identity.client_id)
        .all()
    )


@router.post(
    "/", response_model=PushSubscriptionRead, status_code=status.HTTP_201_CREATED
)
def create_push_subscription(
    data: PushSubscriptionCreate,
    identity: Identity = Depends(require_client),
    db: Session = Depends(get_db),
):
    obj = (
        db.query(DBPushSubscriptions)
        .filter(DBPushSubscriptions.endpoint == data.endpoint)
        .first()
    )
    if obj:
        obj.client_id = identity.client_id
        obj.auth = data.auth
        obj.p256dh = data.p256dh
    else:
        obj = DBPushSubscriptions(client_id=identity.client_id, **data.model_dump())
        db.add(obj)
    db.commit()
    db.refresh(obj)
    return obj


@router.delete("/{id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_push_subscription(
    id: int,
    identity: Identity = Depends(require_client),
    db: Session = Depends(get_db),
):
    obj = db.get(DBPushSubscriptions, id)
    if not obj or obj.client_id != identity.client_id:
        raise HTTPException(status_code=404, detail="Not found")
    db.delete(obj)
    db.commit()
