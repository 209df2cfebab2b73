"""
Adherence Classifier

Turns workout completions and in-flight check-ins into:
- an urgency tier per client, used to order the coach's worklist
- a missed-week streak (consecutive under-target weeks before this one)

Tier priority (first match wins):
    AWAITING_RESPONSE  client answered a check-in; the coach is the blocker
    AT_RISK            no completed workout in the trailing 7 days (or ever)
    CHECKIN_DUE        a check-in is PENDING on the client
    ON_TRACK
"""

import logging
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from enum import Enum
from typing import Iterable, List, Optional
from uuid import UUID

from sqlalchemy.orm import Session

from core.clock import ensure_utc, utc_now
from core.config import settings
from models import (
    IN_FLIGHT_CHECKIN_STATUSES,
    CheckIn,
    CheckInStatus,
    WorkoutCompletion,
    WorkoutStatus,
)
from services.calendar_mapper import DAYS_PER_WEEK, plan_start_monday
from services.relationships import active_client_ids, get_client_profile

logger = logging.getLogger(__name__)

AT_RISK_MISSED_WEEKS = 2


class UrgencyTier(str, Enum):
    AWAITING_RESPONSE = "AWAITING_RESPONSE"
    AT_RISK = "AT_RISK"
    CHECKIN_DUE = "CHECKIN_DUE"
    ON_TRACK = "ON_TRACK"

    @property
    def ordinal(self) -> int:
        return _TIER_ORDER.index(self)


_TIER_ORDER = [
    UrgencyTier.AWAITING_RESPONSE,
    UrgencyTier.AT_RISK,
    UrgencyTier.CHECKIN_DUE,
    UrgencyTier.ON_TRACK,
]


@dataclass
class ClientUrgency:
    client_id: UUID
    tier: UrgencyTier
    last_workout_at: Optional[datetime]
    check_in: Optional[CheckIn]
    relevant_at: Optional[datetime]
    display_name: Optional[str] = None
    missed_weeks: int = 0


# =============================================================================
# URGENCY TIER
# =============================================================================

def classify(
    has_client_responded: bool,
    has_pending: bool,
    last_completed_at: Optional[datetime],
    now: datetime,
) -> UrgencyTier:
    if has_client_responded:
        return UrgencyTier.AWAITING_RESPONSE

    window_start = ensure_utc(now) - timedelta(days=settings.AT_RISK_WINDOW_DAYS)
    if last_completed_at is None or ensure_utc(last_completed_at) < window_start:
        return UrgencyTier.AT_RISK

    if has_pending:
        return UrgencyTier.CHECKIN_DUE

    return UrgencyTier.ON_TRACK


def _last_completed_at(db: Session, client_id: UUID) -> Optional[datetime]:
    row = db.query(WorkoutCompletion.completed_at).filter(
        WorkoutCompletion.client_id == client_id,
        WorkoutCompletion.status == WorkoutStatus.COMPLETED.value,
        WorkoutCompletion.completed_at.isnot(None),
    ).order_by(WorkoutCompletion.completed_at.desc()).first()
    return ensure_utc(row[0]) if row else None


def classify_client(
    db: Session,
    client_id: UUID,
    now: Optional[datetime] = None,
    coach_id: Optional[UUID] = None,
) -> ClientUrgency:
    """Load one client's adherence inputs and classify them."""
    now = now or utc_now()

    query = db.query(CheckIn).filter(
        CheckIn.client_id == client_id,
        CheckIn.status.in_(IN_FLIGHT_CHECKIN_STATUSES),
    )
    if coach_id is not None:
        query = query.filter(CheckIn.coach_id == coach_id)
    in_flight = query.order_by(CheckIn.created_at.desc()).all()

    responded = [c for c in in_flight if c.status == CheckInStatus.CLIENT_RESPONDED.value]
    pending = [c for c in in_flight if c.status == CheckInStatus.PENDING.value]
    last_workout_at = _last_completed_at(db, client_id)

    tier = classify(bool(responded), bool(pending), last_workout_at, now)

    if tier == UrgencyTier.AWAITING_RESPONSE:
        check_in = max(responded, key=lambda c: ensure_utc(c.client_responded_at or c.created_at))
        relevant_at = ensure_utc(check_in.client_responded_at)
    elif tier == UrgencyTier.CHECKIN_DUE:
        check_in = pending[0]
        relevant_at = ensure_utc(check_in.created_at)
    else:
        check_in = in_flight[0] if in_flight else None
        relevant_at = last_workout_at

    return ClientUrgency(
        client_id=client_id,
        tier=tier,
        last_workout_at=last_workout_at,
        check_in=check_in,
        relevant_at=relevant_at,
    )


def _worklist_sort_key(item: ClientUrgency):
    ts = item.relevant_at.timestamp() if item.relevant_at else 0.0
    return (item.tier.ordinal, item.relevant_at is None, -ts)


def build_worklist(db: Session, coach_id: UUID, now: Optional[datetime] = None) -> List[ClientUrgency]:
    """
    Coach dashboard: every ACTIVE client, most urgent first.

    Sorted by tier, then by relevant timestamp newest first; clients without
    a timestamp sink to the bottom of their tier.
    """
    now = now or utc_now()

    items: List[ClientUrgency] = []
    for client_id in active_client_ids(db, coach_id):
        item = classify_client(db, client_id, now=now, coach_id=coach_id)
        item.display_name = get_client_profile(db, client_id).display_name
        item.missed_weeks = missed_streak(db, client_id, today=now.date())
        items.append(item)

    items.sort(key=_worklist_sort_key)

    logger.info(
        "Coach worklist built",
        extra={"extra_fields": {
            "coach_id": str(coach_id),
            "clients": len(items),
            "awaiting_response": sum(1 for i in items if i.tier == UrgencyTier.AWAITING_RESPONSE),
            "at_risk": sum(1 for i in items if i.tier == UrgencyTier.AT_RISK),
        }},
    )
    return items


# =============================================================================
# MISSED-WEEK STREAK
# =============================================================================

def _expected_for_week(plan, monday: date, plan_start_date: Optional[date]) -> int:
    if plan_start_date is not None:
        start_monday = plan_start_monday(plan_start_date)
        if monday < start_monday:
            return 0
        plan_week_number = (monday - start_monday).days // DAYS_PER_WEEK + 1
    else:
        plan_week_number = None

    if plan.workouts_per_week:
        return plan.workouts_per_week

    if plan_week_number is None:
        return 0

    week = next((w for w in plan.weeks if w.week_number == plan_week_number), None)
    if week is None:
        return 0
    return sum(1 for d in week.days if not d.is_rest_day)


def consecutive_missed_weeks(
    client_id: UUID,
    plan,
    completions: Iterable,
    today: date,
    plan_start_date: Optional[date] = None,
) -> int:
    """
    Number of consecutive under-target weeks immediately before the current one.

    The current (partial) week is never judged. Walks back from last week,
    Monday-aligned, for at most MISSED_WEEKS_LOOKBACK weeks, and stops at the
    first week that met its target. Each (plan, day) counts once per week.
    """
    if plan is None:
        return 0

    if isinstance(today, datetime):
        today = today.date()

    completed = [
        c for c in completions
        if c.client_id == client_id
        and c.status == WorkoutStatus.COMPLETED.value
        and c.completed_at is not None
    ]

    current_monday = today - timedelta(days=today.weekday())
    missed = 0

    for weeks_back in range(1, settings.MISSED_WEEKS_LOOKBACK + 1):
        monday = current_monday - timedelta(days=DAYS_PER_WEEK * weeks_back)
        next_monday = monday + timedelta(days=DAYS_PER_WEEK)

        distinct_days = {
            (c.plan_id, c.day_id)
            for c in completed
            if monday <= ensure_utc(c.completed_at).date() < next_monday
        }
        expected = _expected_for_week(plan, monday, plan_start_date)

        if len(distinct_days) < expected:
            missed += 1
        else:
            break

    return missed


def missed_streak(db: Session, client_id: UUID, today: Optional[date] = None) -> int:
    """Load the client's active plan and recent completions, then count missed weeks."""
    today = today or utc_now().date()
    client = get_client_profile(db, client_id)
    if not client.active_plan_id:
        return 0

    lookback_start = today - timedelta(days=today.weekday() + DAYS_PER_WEEK * settings.MISSED_WEEKS_LOOKBACK)
    completions = db.query(WorkoutCompletion).filter(
        WorkoutCompletion.client_id == client_id,
        WorkoutCompletion.status == WorkoutStatus.COMPLETED.value,
        WorkoutCompletion.completed_at >= datetime.combine(lookback_start, time.min, tzinfo=timezone.utc),
    ).all()

    return consecutive_missed_weeks(
        client_id,
        client.active_plan,
        completions,
        today,
        plan_start_date=client.plan_start_date,
    )


def is_at_risk_by_streak(missed_weeks: int) -> bool:
    return missed_weeks >= AT_RISK_MISSED_WEEKS
