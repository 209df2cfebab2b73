"""
Client progress summary: recent completed workouts plus headline stats.
"""

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Iterable, List, Optional
from uuid import UUID

from sqlalchemy.orm import Session

from core.clock import ensure_utc, utc_now
from models import WorkoutCompletion, WorkoutStatus

logger = logging.getLogger(__name__)

RECENT_WINDOW_DAYS = 7
STREAK_MAX_DAYS = 365


@dataclass
class ProgressSummary:
    recent_completions: List[WorkoutCompletion] = field(default_factory=list)
    total_workouts: int = 0
    avg_completion_pct: float = 0.0
    current_streak: int = 0
    workouts_last_7_days: int = 0


def day_streak(completed_dates: Iterable[date], today: date) -> int:
    """
    Consecutive calendar days with a completed workout, counting back from today.

    Today not having a workout yet does not break the streak; it starts
    from yesterday instead.
    """
    dates = set(completed_dates)
    streak = 0

    for offset in range(STREAK_MAX_DAYS):
        day = today - timedelta(days=offset)
        if day in dates:
            streak += 1
        elif offset > 0:
            break

    return streak


def progress_summary(db: Session, client_id: UUID, now: Optional[datetime] = None) -> ProgressSummary:
    now = now or utc_now()
    window_start = now - timedelta(days=RECENT_WINDOW_DAYS)

    completed = db.query(WorkoutCompletion).filter(
        WorkoutCompletion.client_id == client_id,
        WorkoutCompletion.status == WorkoutStatus.COMPLETED.value,
        WorkoutCompletion.completed_at.isnot(None),
    ).order_by(WorkoutCompletion.completed_at.desc()).all()

    recent = [c for c in completed if ensure_utc(c.completed_at) >= window_start]

    avg = 0.0
    if completed:
        avg = sum(c.completion_pct or 0.0 for c in completed) / len(completed)

    return ProgressSummary(
        recent_completions=recent,
        total_workouts=len(completed),
        avg_completion_pct=round(avg, 2),
        current_streak=day_streak((ensure_utc(c.completed_at).date() for c in completed), now.date()),
        workouts_last_7_days=len(recent),
    )
