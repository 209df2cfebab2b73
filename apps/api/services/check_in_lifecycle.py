"""
Check-In Lifecycle

PENDING --client_respond--> CLIENT_RESPONDED --coach_respond--> COMPLETED

Transitions are forward-only. A check-in that is missing, belongs to someone
else, or is in the wrong status is reported as NotFoundError in every case.
"""

import logging
from datetime import datetime
from typing import List, Optional
from uuid import UUID

from sqlalchemy.orm import Session

from core.clock import utc_now
from core.events import (
    EVENT_CHECKIN_CLIENT_RESPONDED,
    EVENT_CHECKIN_COMPLETED,
    EVENT_CHECKIN_INITIATED,
    emit,
)
from core.exceptions import InvalidInputError, NotFoundError
from models import CheckIn, CheckInSource, CheckInStatus, EffortRating
from services.relationships import require_active_relationship

logger = logging.getLogger(__name__)


def _normalize_effort(effort_rating: Optional[str]) -> Optional[str]:
    if effort_rating is None:
        return None
    try:
        return EffortRating(effort_rating).value
    except ValueError:
        raise InvalidInputError(
            f"effort_rating must be one of {[e.value for e in EffortRating]}", field="effort_rating"
        )


def initiate(
    db: Session,
    coach_id: UUID,
    client_id: UUID,
    now: Optional[datetime] = None,
    source: CheckInSource = CheckInSource.COACH,
) -> CheckIn:
    """
    Open a PENDING check-in for an actively related pair.

    Coach-initiated check-ins are always allowed, even with another one
    still in flight; the scheduler is the only path that avoids duplicates.
    """
    require_active_relationship(db, coach_id, client_id)
    now = now or utc_now()

    check_in = CheckIn(
        coach_id=coach_id,
        client_id=client_id,
        status=CheckInStatus.PENDING.value,
        source=CheckInSource(source).value,
        created_at=now,
        plan_adjustment=False,
    )
    db.add(check_in)
    db.commit()
    db.refresh(check_in)

    logger.info(
        "Check-in initiated",
        extra={"extra_fields": {
            "check_in_id": str(check_in.id),
            "coach_id": str(coach_id),
            "client_id": str(client_id),
            "source": check_in.source,
        }},
    )
    emit(EVENT_CHECKIN_INITIATED, check_in_id=str(check_in.id), source=check_in.source, at=now)

    return check_in


def client_respond(
    db: Session,
    client_id: UUID,
    check_in_id: UUID,
    effort_rating: Optional[str] = None,
    pain_blockers: Optional[str] = None,
    client_feeling: Optional[str] = None,
    now: Optional[datetime] = None,
) -> CheckIn:
    """Record the client's answers and move PENDING -> CLIENT_RESPONDED."""
    effort_rating = _normalize_effort(effort_rating)

    check_in = db.query(CheckIn).filter(
        CheckIn.id == check_in_id,
        CheckIn.client_id == client_id,
        CheckIn.status == CheckInStatus.PENDING.value,
    ).first()
    if not check_in:
        raise NotFoundError("Check-in", check_in_id)

    now = now or utc_now()
    check_in.effort_rating = effort_rating
    check_in.pain_blockers = pain_blockers
    check_in.client_feeling = client_feeling
    check_in.client_responded_at = now
    check_in.status = CheckInStatus.CLIENT_RESPONDED.value

    db.commit()
    db.refresh(check_in)

    logger.info(
        "Check-in client response recorded",
        extra={"extra_fields": {"check_in_id": str(check_in.id), "client_id": str(client_id)}},
    )
    emit(EVENT_CHECKIN_CLIENT_RESPONDED, check_in_id=str(check_in.id), at=now)

    return check_in


def coach_respond(
    db: Session,
    coach_id: UUID,
    check_in_id: UUID,
    coach_feedback: Optional[str] = None,
    plan_adjustment: bool = False,
    now: Optional[datetime] = None,
) -> CheckIn:
    """Record the coach's reply and move CLIENT_RESPONDED -> COMPLETED."""
    check_in = db.query(CheckIn).filter(
        CheckIn.id == check_in_id,
        CheckIn.coach_id == coach_id,
        CheckIn.status == CheckInStatus.CLIENT_RESPONDED.value,
    ).first()
    if not check_in:
        raise NotFoundError("Check-in", check_in_id)

    now = now or utc_now()
    check_in.coach_feedback = coach_feedback
    check_in.plan_adjustment = bool(plan_adjustment)
    check_in.coach_responded_at = now
    check_in.completed_at = now
    check_in.status = CheckInStatus.COMPLETED.value

    db.commit()
    db.refresh(check_in)

    logger.info(
        "Check-in completed",
        extra={"extra_fields": {
            "check_in_id": str(check_in.id),
            "coach_id": str(coach_id),
            "plan_adjustment": check_in.plan_adjustment,
        }},
    )
    emit(EVENT_CHECKIN_COMPLETED, check_in_id=str(check_in.id), at=now)

    return check_in


def list_check_ins(
    db: Session,
    client_id: UUID,
    coach_id: Optional[UUID] = None,
    status: Optional[CheckInStatus] = None,
    limit: int = 50,
) -> List[CheckIn]:
    """Check-in history for a client (optionally one coach's), newest first."""
    query = db.query(CheckIn).filter(CheckIn.client_id == client_id)
    if coach_id is not None:
        query = query.filter(CheckIn.coach_id == coach_id)
    if status is not None:
        query = query.filter(CheckIn.status == CheckInStatus(status).value)

    return query.order_by(CheckIn.created_at.desc()).limit(limit).all()


def get_check_in(
    db: Session,
    check_in_id: UUID,
    coach_id: Optional[UUID] = None,
    client_id: Optional[UUID] = None,
) -> CheckIn:
    """
    Read one check-in as its coach or as its client.

    Exactly one of coach_id / client_id identifies the caller; anyone who is
    neither party gets NotFoundError.
    """
    if (coach_id is None) == (client_id is None):
        raise NotFoundError("Check-in", check_in_id)

    query = db.query(CheckIn).filter(CheckIn.id == check_in_id)
    if coach_id is not None:
        query = query.filter(CheckIn.coach_id == coach_id)
    else:
        query = query.filter(CheckIn.client_id == client_id)

    check_in = query.first()
    if not check_in:
        raise NotFoundError("Check-in", check_in_id)
    return check_in
