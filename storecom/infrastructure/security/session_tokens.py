"""
Session tokens - signed JWTs stored in the dashboard session cookie.
"""

import logging
from dataclasses import dataclass, asdict
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt

from ..config import get_settings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SessionData:
    """Identity carried by a session cookie."""
    user_id: int
    email: str
    name: str
    role: str
    brand_id: Optional[int] = None

    def to_dict(self) -> dict:
        return asdict(self)


def create_session_token(session: SessionData) -> str:
    auth = get_settings().auth
    payload = session.to_dict()
    payload["exp"] = datetime.now(timezone.utc) + timedelta(days=auth.session_days)
    return jwt.encode(payload, auth.jwt_secret, algorithm=auth.jwt_algorithm)


def verify_session_token(token: Optional[str]) -> Optional[SessionData]:
    """Decode a session token. Returns None if missing, tampered or expired."""
    if not token:
        return None
    auth = get_settings().auth
    try:
        payload = jwt.decode(token, auth.jwt_secret, algorithms=[auth.jwt_algorithm])
    except jwt.ExpiredSignatureError:
        return None
    except jwt.PyJWTError as e:
        logger.debug(f"Rejected session token: {e}")
        return None

    try:
        return SessionData(
            user_id=int(payload["user_id"]),
            email=payload["email"],
            name=payload.get("name", ""),
            role=payload["role"],
            brand_id=payload.get("brand_id"),
        )
    except (KeyError, TypeError, ValueError):
        return None
