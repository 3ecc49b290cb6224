from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum

from jose import jwt

from app.core.config import get_settings


class UserRole(str, Enum):
    admin = "admin"
    scheduler = "scheduler"
    staff = "staff"


@dataclass(frozen=True)
class Actor:
    id: str
    role: UserRole
    school_id: str | None = None


def create_access_token(
    subject: str,
    *,
    role: UserRole,
    school_id: str | None = None,
    expires_delta: timedelta | None = None,
) -> str:
    settings = get_settings()
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=settings.access_token_expire_minutes)
    )
    claims = {"sub": subject, "role": role.value, "exp": expire}
    if school_id is not None:
        claims["school_id"] = school_id
    return jwt.encode(claims, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def decode_token(token: str) -> dict:
    settings = get_settings()
    return jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
