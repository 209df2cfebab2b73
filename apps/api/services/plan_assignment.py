"""
Assigning a coach's plan to a client.

active_plan_id and plan_start_date always move together.
"""

import logging
from datetime import date
from typing import Optional
from uuid import UUID

from sqlalchemy.orm import Session

from core.clock import utc_now
from core.events import EVENT_PLAN_ASSIGNED, emit
from core.exceptions import NotFoundError
from models import ClientProfile, Plan
from services.relationships import get_client_profile, require_active_relationship

logger = logging.getLogger(__name__)


def assign_plan(
    db: Session,
    coach_id: UUID,
    client_id: UUID,
    plan_id: UUID,
    start_date: Optional[date] = None,
) -> ClientProfile:
    plan = db.query(Plan).filter(Plan.id == plan_id, Plan.coach_id == coach_id).first()
    if not plan:
        raise NotFoundError("Plan", plan_id)
    require_active_relationship(db, coach_id, client_id)

    client = get_client_profile(db, client_id)
    client.active_plan_id = plan.id
    client.plan_start_date = start_date or utc_now().date()

    db.commit()
    db.refresh(client)

    logger.info(
        "Plan assigned",
        extra={"extra_fields": {
            "coach_id": str(coach_id),
            "client_id": str(client_id),
            "plan_id": str(plan.id),
            "plan_start_date": client.plan_start_date.isoformat(),
        }},
    )
    emit(EVENT_PLAN_ASSIGNED, client_id=str(client_id), plan_id=str(plan.id))

    return client


def unassign_plan(db: Session, coach_id: UUID, client_id: UUID) -> ClientProfile:
    """Clear the client's active plan. Workout history is kept."""
    require_active_relationship(db, coach_id, client_id)

    client = get_client_profile(db, client_id)
    client.active_plan_id = None
    client.plan_start_date = None

    db.commit()
    db.refresh(client)

    logger.info(
        "Plan unassigned",
        extra={"extra_fields": {"coach_id": str(coach_id), "client_id": str(client_id)}},
    )
    return client
