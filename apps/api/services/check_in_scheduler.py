"""
Check-in scheduling.

A pair is due once a full cadence (7 days) has passed since the later of the
schedule anchor and the last completed check-in. A pair with a check-in still
in flight is never due. detect_due_check_ins is idempotent and is run by an
external caller; nothing here schedules itself.
"""

import logging
from datetime import date, datetime, time, timezone
from typing import List, Optional
from uuid import UUID

from sqlalchemy.orm import Session

from core.clock import ensure_utc, utc_now
from core.config import settings
from core.events import EVENT_CHECKIN_SCHEDULE_UPDATED, emit
from core.exceptions import InvalidInputError
from models import (
    IN_FLIGHT_CHECKIN_STATUSES,
    CheckIn,
    CheckInSchedule,
    CheckInSource,
    CheckInStatus,
    ScheduleStatus,
)
from services.check_in_lifecycle import initiate
from services.relationships import has_active_relationship, require_active_relationship

logger = logging.getLogger(__name__)

SECONDS_PER_DAY = 86400


def _anchor_datetime(anchor) -> datetime:
    if isinstance(anchor, datetime):
        return ensure_utc(anchor)
    return datetime.combine(anchor, time.min, tzinfo=timezone.utc)


def is_due(schedule, last_check_in_at: Optional[datetime], now: datetime, has_in_flight: bool = False) -> bool:
    """
    Whether a new check-in should be opened for this schedule.

    Args:
        schedule: CheckInSchedule-like (status, anchor_date, cadence_days)
        last_check_in_at: completed_at of the pair's latest COMPLETED check-in
        now: Reference instant
        has_in_flight: A PENDING or CLIENT_RESPONDED check-in exists
    """
    if schedule.status != ScheduleStatus.ACTIVE.value:
        return False
    if has_in_flight:
        return False

    anchor = _anchor_datetime(schedule.anchor_date)
    last = ensure_utc(last_check_in_at)
    reference = max(anchor, last) if last is not None else anchor

    cadence = schedule.cadence_days or settings.CHECKIN_CADENCE_DAYS
    elapsed_days = (ensure_utc(now) - reference).total_seconds() // SECONDS_PER_DAY

    return elapsed_days >= cadence


def last_completed_check_in_at(db: Session, coach_id: UUID, client_id: UUID) -> Optional[datetime]:
    row = db.query(CheckIn.completed_at).filter(
        CheckIn.coach_id == coach_id,
        CheckIn.client_id == client_id,
        CheckIn.status == CheckInStatus.COMPLETED.value,
    ).order_by(CheckIn.completed_at.desc()).first()
    return ensure_utc(row[0]) if row else None


def has_in_flight_check_in(db: Session, coach_id: UUID, client_id: UUID) -> bool:
    return db.query(CheckIn.id).filter(
        CheckIn.coach_id == coach_id,
        CheckIn.client_id == client_id,
        CheckIn.status.in_(IN_FLIGHT_CHECKIN_STATUSES),
    ).first() is not None


def upsert_schedule(
    db: Session,
    coach_id: UUID,
    client_id: UUID,
    status: ScheduleStatus = ScheduleStatus.ACTIVE,
    anchor_date: Optional[date] = None,
) -> CheckInSchedule:
    """Create or update the single schedule for a coach-client pair."""
    require_active_relationship(db, coach_id, client_id)

    try:
        status_value = ScheduleStatus(status).value
    except ValueError:
        raise InvalidInputError(
            f"status must be one of {[s.value for s in ScheduleStatus]}", field="status"
        )

    schedule = db.query(CheckInSchedule).filter(
        CheckInSchedule.coach_id == coach_id,
        CheckInSchedule.client_id == client_id,
    ).first()

    if schedule is None:
        schedule = CheckInSchedule(
            coach_id=coach_id,
            client_id=client_id,
            status=status_value,
            cadence_days=settings.CHECKIN_CADENCE_DAYS,
            anchor_date=anchor_date or utc_now().date(),
        )
        db.add(schedule)
    else:
        schedule.status = status_value
        if anchor_date is not None:
            schedule.anchor_date = anchor_date

    db.commit()
    db.refresh(schedule)

    logger.info(
        "Check-in schedule updated",
        extra={"extra_fields": {
            "coach_id": str(coach_id),
            "client_id": str(client_id),
            "status": schedule.status,
            "anchor_date": schedule.anchor_date.isoformat(),
        }},
    )
    emit(EVENT_CHECKIN_SCHEDULE_UPDATED, coach_id=str(coach_id), client_id=str(client_id), status=schedule.status)

    return schedule


def detect_due_check_ins(db: Session, now: Optional[datetime] = None, coach_id: Optional[UUID] = None) -> List[CheckIn]:
    """
    Open a SCHEDULE-sourced check-in for every due pair.

    Running it twice in a row creates nothing the second time: the first run
    leaves each due pair with a PENDING check-in in flight.
    """
    now = now or utc_now()

    query = db.query(CheckInSchedule).filter(CheckInSchedule.status == ScheduleStatus.ACTIVE.value)
    if coach_id is not None:
        query = query.filter(CheckInSchedule.coach_id == coach_id)

    created: List[CheckIn] = []
    for schedule in query.all():
        if not has_active_relationship(db, schedule.coach_id, schedule.client_id):
            continue

        due = is_due(
            schedule,
            last_completed_check_in_at(db, schedule.coach_id, schedule.client_id),
            now,
            has_in_flight=has_in_flight_check_in(db, schedule.coach_id, schedule.client_id),
        )
        if due:
            created.append(initiate(db, schedule.coach_id, schedule.client_id, now=now, source=CheckInSource.SCHEDULE))

    logger.info(
        "Due check-in scan complete",
        extra={"extra_fields": {"created": len(created), "coach_id": str(coach_id) if coach_id else None}},
    )
    return created
