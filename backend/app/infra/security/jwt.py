"""Access token helpers (PyJWT)."""
import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

import jwt

from app.settings import settings

logger = logging.getLogger(__name__)


def create_access_token(user_id: str, expires_minutes: Optional[int] = None) -> str:
    """Create a signed access token for user_id."""
    now = datetime.now(timezone.utc)
    minutes = expires_minutes if expires_minutes is not None else settings.access_token_expire_minutes
    payload = {
        "sub": user_id,
        "type": "access",
        "iat": now,
        "exp": now + timedelta(minutes=minutes),
    }
    return jwt.encode(payload, settings.secret_key, algorithm=settings.algorithm)


def decode_token(token: str) -> Optional[dict[str, Any]]:
    """Decode and verify a token. Returns the payload, or None if it is not valid."""
    try:
        return jwt.decode(token, settings.secret_key, algorithms=[settings.algorithm])
    except jwt.ExpiredSignatureError:
        logger.debug("Token expired")
        return None
    except jwt.PyJWTError as e:
        logger.debug("JWT verification failed: %s", e)
        return None
