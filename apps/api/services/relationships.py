"""
Identity / relationship provider.

Resolves profiles and confirms ACTIVE coach-client relationships. Every
failure surfaces as NotFoundError - callers never learn whether a profile
or relationship is missing or merely not theirs.
"""

import logging
from typing import List
from uuid import UUID

from sqlalchemy.orm import Session

from core.exceptions import NotFoundError
from models import (
    ClientProfile,
    CoachClientRelationship,
    CoachProfile,
    RelationshipStatus,
)

logger = logging.getLogger(__name__)


def get_client_profile(db: Session, client_id: UUID) -> ClientProfile:
    client = db.query(ClientProfile).filter(ClientProfile.id == client_id).first()
    if not client:
        raise NotFoundError("Client", client_id)
    return client


def get_coach_profile(db: Session, coach_id: UUID) -> CoachProfile:
    coach = db.query(CoachProfile).filter(CoachProfile.id == coach_id).first()
    if not coach:
        raise NotFoundError("Coach", coach_id)
    return coach


def has_active_relationship(db: Session, coach_id: UUID, client_id: UUID) -> bool:
    return db.query(CoachClientRelationship.id).filter(
        CoachClientRelationship.coach_id == coach_id,
        CoachClientRelationship.client_id == client_id,
        CoachClientRelationship.status == RelationshipStatus.ACTIVE.value,
    ).first() is not None


def require_active_relationship(db: Session, coach_id: UUID, client_id: UUID) -> None:
    """Raise NotFoundError unless coach and client are actively paired."""
    if not has_active_relationship(db, coach_id, client_id):
        logger.info(
            "Relationship check failed",
            extra={"extra_fields": {"coach_id": str(coach_id), "client_id": str(client_id)}},
        )
        raise NotFoundError("Client", client_id)


def active_client_ids(db: Session, coach_id: UUID) -> List[UUID]:
    rows = db.query(CoachClientRelationship.client_id).filter(
        CoachClientRelationship.coach_id == coach_id,
        CoachClientRelationship.status == RelationshipStatus.ACTIVE.value,
    ).all()
    return [row[0] for row in rows]
