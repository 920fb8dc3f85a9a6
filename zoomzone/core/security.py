"""Operator passwords and the two signed tokens the API issues.

Both tokens are HS256 JWTs with a ``type`` claim, so an OAuth ``state``
value can never be replayed as an operator access token or the reverse.
"""

from datetime import UTC, datetime, timedelta
from typing import Any
from uuid import uuid4

from jose import JWTError, jwt
from passlib.context import CryptContext

from zoomzone.core.config import settings

ACCESS_TOKEN = "access"
OAUTH_STATE = "oauth_state"

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=12)


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    if not hashed_password:
        return False
    return pwd_context.verify(plain_password, hashed_password)


def _encode(token_type: str, subject: str, ttl: timedelta, **claims: Any) -> str:
    payload = {"sub": subject, "type": token_type, "exp": datetime.now(UTC) + ttl, **claims}
    return jwt.encode(payload, settings.secret_key, algorithm=settings.algorithm)


def _decode(token: str | None, token_type: str) -> dict[str, Any] | None:
    """Verified claims, or None if the token is missing, invalid, expired or of another type."""
    if not token:
        return None
    try:
        payload = jwt.decode(token, settings.secret_key, algorithms=[settings.algorithm])
    except JWTError:
        return None
    if payload.get("type") != token_type or not payload.get("sub"):
        return None
    return payload


def create_access_token(subject: str) -> str:
    return _encode(ACCESS_TOKEN, subject, timedelta(minutes=settings.access_token_expire_minutes))


def decode_access_token(token: str) -> str | None:
    payload = _decode(token, ACCESS_TOKEN)
    return str(payload["sub"]) if payload else None


def create_oauth_state(provider_id: str) -> str:
    """Short-lived signed ``state`` for an integration connect flow."""
    return _encode(
        OAUTH_STATE,
        provider_id,
        timedelta(minutes=settings.oauth_state_expire_minutes),
        jti=str(uuid4()),
    )


def verify_oauth_state(token: str | None, provider_id: str) -> bool:
    payload = _decode(token, OAUTH_STATE)
    return payload is not None and payload["sub"] == provider_id
