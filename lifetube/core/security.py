"""
Bearer-token verification.

Tokens are issued by the external auth service; this module only checks them
and resolves the caller's identity.
"""
from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from lifetube.core.config import get_settings
from lifetube.core.errors import AuthenticationRequired, NotAuthorized

settings = get_settings()

bearer_scheme = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class CurrentUser:
    id: uuid.UUID


def create_access_token(user_id: uuid.UUID | str, expires_minutes: Optional[int] = None) -> str:
    """Mint a token the way the auth service does (used by tooling and tests)."""
    expires = datetime.now(timezone.utc) + timedelta(
        minutes=expires_minutes if expires_minutes is not None else settings.access_token_expire_minutes
    )
    payload = {"id": str(user_id), "exp": expires}
    return jwt.encode(payload, settings.secret_key, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str) -> CurrentUser:
    try:
        payload = jwt.decode(token, settings.secret_key, algorithms=[settings.jwt_algorithm])
        return CurrentUser(id=uuid.UUID(str(payload.get("id") or payload.get("sub"))))
    except (jwt.PyJWTError, ValueError) as e:
        raise NotAuthorized("Invalid or expired token") from e


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> CurrentUser:
    if credentials is None or not credentials.credentials:
        raise AuthenticationRequired("Access token required")
    return decode_access_token(credentials.credentials)
