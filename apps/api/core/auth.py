"""
Caller identity dependencies.

- get_current_client -> ClientProfile
- get_current_coach -> CoachProfile
- get_current_profile -> whichever of the two the token names

No token, or one that fails verification, is a 401. A valid token for the
other role, or for a profile that does not exist, is a NotFoundError like
every other ownership failure.
"""
from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session
from typing import Dict, Optional, Union
from uuid import UUID

from core.database import get_db
from core.exceptions import NotFoundError, UnauthorizedError
from core.security import ROLE_CLIENT, ROLE_COACH, ROLES, decode_access_token
from models import ClientProfile, CoachProfile
from services.relationships import get_client_profile, get_coach_profile

# auto_error=False so a missing header is a 401 rather than FastAPI's 403
bearer_scheme = HTTPBearer(auto_error=False)


def get_token_payload(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> Dict:
    if not credentials:
        raise UnauthorizedError()

    payload = decode_access_token(credentials.credentials)
    if not payload or not payload.get("sub") or payload.get("role") not in ROLES:
        raise UnauthorizedError("Invalid authentication credentials")
    return payload


def _profile_id(payload: Dict, role: str, resource: str) -> UUID:
    if payload.get("role") != role:
        raise NotFoundError(resource)
    try:
        return UUID(payload["sub"])
    except ValueError:
        raise NotFoundError(resource)


def get_current_client(
    payload: Dict = Depends(get_token_payload),
    db: Session = Depends(get_db),
) -> ClientProfile:
    return get_client_profile(db, _profile_id(payload, ROLE_CLIENT, "Client"))


def get_current_coach(
    payload: Dict = Depends(get_token_payload),
    db: Session = Depends(get_db),
) -> CoachProfile:
    return get_coach_profile(db, _profile_id(payload, ROLE_COACH, "Coach"))


def get_current_profile(
    payload: Dict = Depends(get_token_payload),
    db: Session = Depends(get_db),
) -> Union[CoachProfile, ClientProfile]:
    """Either role; routes shared by both parties branch on the returned type."""
    if payload["role"] == ROLE_COACH:
        return get_coach_profile(db, _profile_id(payload, ROLE_COACH, "Coach"))
    return get_client_profile(db, _profile_id(payload, ROLE_CLIENT, "Client"))
