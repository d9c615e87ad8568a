import hashlib
import hmac
import json
import time
from datetime import datetime
from unittest.mock import Mock
from zoneinfo import ZoneInfo

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from studio.auth import issue_token
from studio.config import settings
from studio.database import get_db
from studio.main import app
from studio.models.tables import Base, Clients
from studio.services import events

LONDON = ZoneInfo("Europe/London")


def at(value: str) -> datetime:
    """Studio-local instant from "YYYY-MM-DD HH:MM"."""
    return datetime.strptime(value, "%Y-%m-%d %H:%M").replace(tzinfo=LONDON)


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db(engine):
    session = sessionmaker(bind=engine, autoflush=False)()
    yield session
    session.close()


@pytest.fixture(autouse=True)
def redis_mock(monkeypatch):
    """Replace the Redis list the services emit events to."""
    mock = Mock()
    monkeypatch.setattr(events, "redis_client", mock)
    return mock


def emitted(redis_mock) -> list[dict]:
    return [json.loads(call.args[1]) for call in redis_mock.rpush.call_args_list]


@pytest.fixture
def make_client(db):
    def _make(name="Alex Client", email=None, **fields):
        fields.setdefault("total_sessions", 10)
        client = Clients(name=name, email=email or f"{name.lower().replace(' ', '.')}@example.com", **fields)
        db.add(client)
        db.commit()
        db.refresh(client)
        return client
    return _make


@pytest.fixture
def api(db):
    app.dependency_overrides[get_db] = lambda: db
    yield TestClient(app)
    app.dependency_overrides.clear()


def bearer(email: str, client_id: int | None = None) -> dict:
    return {"Authorization": f"Bearer {issue_token(email, client_id)}"}


@pytest.fixture
def admin_headers():
    return bearer(settings.admin_email)


WEBHOOK_SECRET = "whsec_test_secret"


def stripe_signature(payload: bytes, timestamp: int | None = None, secret: str = WEBHOOK_SECRET) -> str:
    """Stripe-Signature header for a payload, as Stripe computes it."""
    timestamp = timestamp or int(time.time())
    signed = f"{timestamp}.{payload.decode()}".encode()
    digest = hmac.new(secret.encode(), signed, hashlib.sha256).hexdigest()
    return f"t={timestamp},v1={digest}"


def stripe_event(event_type: str, obj: dict) -> bytes:
    return json.dumps({"id": "evt_1", "type": event_type, "data": {"object": obj}}).encode()
