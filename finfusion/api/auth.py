"""Password hashing, JWT handling and FastAPI authentication dependencies."""
from __future__ import annotations

import logging
from datetime import UTC, datetime, timedelta
from typing import Any, Optional

import bcrypt
import jwt
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from finfusion.config import get_settings

from . import database, models
from .errors import AccessDeniedError, AuthenticationError

LOG = logging.getLogger(__name__)

ALGORITHM = "HS256"
ACCESS = "access"
REFRESH = "refresh"

bearer_scheme = HTTPBearer(auto_error=False)


def hash_password(password: str) -> str:
    rounds = get_settings().bcrypt_rounds
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds=rounds)).decode("utf-8")


def verify_password(password: str, hashed_password: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode("utf-8"), hashed_password.encode("utf-8"))
    except ValueError:
        # malformed hash or over-long password
        return False


def _encode(user_id: str, token_type: str, lifetime: timedelta) -> str:
    now = datetime.now(UTC)
    payload = {"sub": user_id, "type": token_type, "iat": now, "exp": now + lifetime}
    return jwt.encode(payload, get_settings().jwt_secret, algorithm=ALGORITHM)


def create_access_token(user_id: str) -> str:
    return _encode(user_id, ACCESS, timedelta(minutes=get_settings().access_token_minutes))


def create_refresh_token(user_id: str) -> str:
    return _encode(user_id, REFRESH, timedelta(days=get_settings().refresh_token_days))


def decode_token(token: str, expected_type: str = ACCESS) -> dict[str, Any]:
    """Decode ``token`` and check its type.

    Raises:
      AuthenticationError: If the token is expired, tampered with or of the
        wrong type.
    """
    try:
        payload = jwt.decode(token, get_settings().jwt_secret, algorithms=[ALGORITHM])
    except jwt.ExpiredSignatureError as exc:
        raise AuthenticationError("Token has expired") from exc
    except jwt.InvalidTokenError as exc:
        raise AuthenticationError("Invalid token") from exc
    if payload.get("type") != expected_type or not payload.get("sub"):
        raise AuthenticationError("Invalid token")
    return payload


def user_from_token(session: Session, token: str, expected_type: str = ACCESS) -> models.User:
    payload = decode_token(token, expected_type)
    user = session.get(models.User, payload["sub"])
    if user is None or not user.is_active:
        raise AuthenticationError("User not found or inactive")
    return user


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: Session = Depends(database.get_db),
) -> models.User:
    if credentials is None or credentials.scheme.lower() != "bearer":
        raise AuthenticationError("Access token required")
    return user_from_token(db, credentials.credentials)


def require_admin(user: models.User = Depends(get_current_user)) -> models.User:
    if user.role != "ADMIN":
        LOG.warning("Admin access denied", extra={"user_id": user.id})
        raise AccessDeniedError("Admin access required")
    return user


def require_manager_or_admin(user: models.User = Depends(get_current_user)) -> models.User:
    if user.role not in ("ADMIN", "MANAGER"):
        LOG.warning("Manager access denied", extra={"user_id": user.id})
        raise AccessDeniedError("Manager or admin access required")
    return user
