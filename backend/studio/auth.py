# backend/studio/auth.py
"""
Bearer identity.

Sign-in happens at the identity provider; this service only checks a signed
JWT carrying

    sub        the account email
    email      same as sub
    client_id  client row id, null for the trainer
    exp        expiry

The trainer is whoever signs in with settings.admin_email.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import Depends, Header, HTTPException, status
from jose import JWTError, jwt
from sqlalchemy.orm import Session

from .config import settings
from .database import get_db
from .models.tables import Clients as DBClients


@dataclass(frozen=True)
class Identity:
    client_id: Optional[int]
    email: str

    @property
    def is_admin(self) -> bool:
        return self.email.lower() == settings.admin_email.lower()


def issue_token(
    email: str,
    client_id: Optional[int] = None,
    expires_delta: Optional[timedelta] = None,
) -> str:
    expires_delta = expires_delta or timedelta(minutes=settings.auth_token_minutes)
    claims = {
        "sub": email,
        "email": email,
        "client_id": client_id,
        "exp": datetime.now(timezone.utc) + expires_delta,
    }
    return jwt.encode(claims, settings.auth_secret, algorithm=settings.auth_algorithm)


def verify_token(token: str) -> Identity:
    """
    Decode and check a token.

    Raises:
        JWTError: bad signature, expired, or missing claims
    """
    claims = jwt.decode(token, settings.auth_secret, algorithms=[settings.auth_algorithm])

    email = claims.get("sub")
    if not email or claims.get("email", email) != email:
        raise JWTError("Invalid subject")

    client_id = claims.get("client_id")
    if client_id is not None and not isinstance(client_id, int):
        raise JWTError("Invalid client_id")

    return Identity(client_id=client_id, email=email)


def require_identity(authorization: str | None = Header(None)) -> Identity:
    if not authorization or not authorization.lower().startswith("bearer "):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing bearer token")

    try:
        return verify_token(authorization[7:].strip())
    except JWTError as e:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=f"Invalid token: {e}") from None


def require_client(identity: Identity = Depends(require_identity)) -> Identity:
    if identity.client_id is None:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Client account required")
    return identity


def require_admin(identity: Identity = Depends(require_identity)) -> Identity:
    if not identity.is_admin:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin only")
    return identity


def current_client(
    identity: Identity = Depends(require_client),
    db: Session = Depends(get_db),
) -> DBClients:
    client = db.get(DBClients, identity.client_id)
    if not client:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Client not found")
    return client
