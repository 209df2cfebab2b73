"""
Access token handling.

Tokens are minted by the identity service and carry two claims this API
cares about: ``sub`` (the coach or client profile id) and ``role``.
We only verify them here; ``create_access_token`` exists for tooling and
tests.
"""
from datetime import datetime, timedelta, timezone
from typing import Optional, Dict
from jose import JWTError, jwt
from core.config import settings

SECRET_KEY = settings.SECRET_KEY

if len(SECRET_KEY) < 32:
    raise ValueError("SECRET_KEY must be at least 32 characters")

ALGORITHM = "HS256"

ROLE_COACH = "coach"
ROLE_CLIENT = "client"
ROLES = (ROLE_COACH, ROLE_CLIENT)


def create_access_token(data: Dict, expires_delta: Optional[timedelta] = None) -> str:
    claims = dict(data)
    lifetime = expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    claims["exp"] = datetime.now(timezone.utc) + lifetime
    return jwt.encode(claims, SECRET_KEY, algorithm=ALGORITHM)


def decode_access_token(token: str) -> Optional[Dict]:
    """Return the claims of a valid token, or None if it is forged, malformed or expired."""
    try:
        return jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
    except JWTError:
        return None
