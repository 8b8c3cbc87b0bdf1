"""Bearer-token identity.

Tokens are issued elsewhere; this module only verifies them and exposes the
claims the inventory core needs. ``create_access_token`` exists for tests and
operator tooling.
"""

from datetime import datetime, timedelta, timezone
from typing import Any, Optional

from fastapi.security import HTTPBearer
from jose import jwt
from pydantic import BaseModel

from app.invtrack.core.config import settings

bearer_scheme = HTTPBearer(auto_error=False)


class TokenData(BaseModel):
    sub: str
    tenant_id: str | None = None
    role: str
    username: str | None = None


def create_access_token(data: dict[str, Any], expires_delta: Optional[timedelta] = None) -> str:
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES))
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_token(token: str) -> dict[str, Any]:
    return jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])


def create_user_access_token(user, expires_delta: Optional[timedelta] = None) -> str:
    return create_access_token(
        {
            "sub": str(user.id),
            "tenant_id": str(user.tenant_id) if user.tenant_id else None,
            "role": user.role,
            "username": user.username,
        },
        expires_delta=expires_delta,
    )
