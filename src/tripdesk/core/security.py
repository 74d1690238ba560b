from __future__ import annotations

from datetime import UTC, datetime, timedelta
from typing import Any

from jose import JWTError, jwt

from tripdesk.core.config import settings

STAFF_SCOPE = "staff"


def create_access_token(
    *, subject: str, scope: str = STAFF_SCOPE, expires_minutes: int | None = None
) -> str:
    expire_minutes = expires_minutes or settings.access_token_exp_minutes
    expire = datetime.now(UTC) + timedelta(minutes=expire_minutes)
    payload: dict[str, Any] = {"sub": subject, "scope": scope, "exp": expire}
    return jwt.encode(payload, settings.secret_key, algorithm="HS256")


def decode_access_token(token: str, *, scope: str = STAFF_SCOPE) -> str | None:
    try:
        payload = jwt.decode(token, settings.secret_key, algorithms=["HS256"])
    except JWTError:
        return None
    if payload.get("scope") != scope:
        return None
    subject = payload.get("sub")
    return subject if isinstance(subject, str) else None
