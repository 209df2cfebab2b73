"""
Calendar Mapper

Maps a plan's abstract week/day template onto real calendar dates.

Week boundaries are Monday-aligned: week 1 starts on the Monday on or before
plan_start_date, so a plan started on a Wednesday still flips to week 2 the
following Monday. Workout day templates fill the calendar Monday-first in
template order; whatever slots remain are rest days.

Pure functions only - no database access, no clock reads unless `today` is
omitted.
"""

import math
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from enum import Enum
from typing import Any, Iterable, List, Optional

from core.exceptions import InvalidInputError
from models import WorkoutStatus

DAYS_PER_WEEK = 7
WEEKDAY_LABELS = ("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun")


class DayStatus(str, Enum):
    TODAY = "TODAY"
    COMPLETED = "COMPLETED"
    UPCOMING = "UPCOMING"
    MISSED = "MISSED"
    REST = "REST"


INTERACTIVE_STATUSES = frozenset({DayStatus.TODAY, DayStatus.COMPLETED, DayStatus.MISSED})


@dataclass
class DayInfo:
    """One calendar slot of the weekly overview."""
    date: date
    day_of_week: str  # "Mon", "Tue", ...
    day_number: int  # 1-7 (Monday=1)
    status: DayStatus
    workout_day: Optional[Any] = None  # Day template; None for rest slots
    completion: Optional[Any] = None

    @property
    def is_interactive(self) -> bool:
        return self.status in INTERACTIVE_STATUSES


@dataclass
class WeekProgress:
    completed: int
    total: int
    percentage: int


def _as_date(value) -> date:
    if isinstance(value, datetime):
        return value.date()
    return value


def plan_start_monday(plan_start_date) -> date:
    """Monday on or before plan_start_date."""
    start = _as_date(plan_start_date)
    return start - timedelta(days=start.weekday())


def week_monday(plan_start_date, week_number: int) -> date:
    """Monday that opens the given 1-indexed plan week."""
    if week_number < 1:
        raise InvalidInputError("week_number must be >= 1", field="week_number")
    return plan_start_monday(plan_start_date) + timedelta(days=DAYS_PER_WEEK * (week_number - 1))


def current_week_number(plan_start_date, duration_weeks: int, today=None) -> int:
    """
    1-indexed plan week containing `today`, clamped to [1, duration_weeks].
    """
    if duration_weeks is None or duration_weeks < 1:
        raise InvalidInputError("duration_weeks must be a positive integer", field="duration_weeks")

    today = _as_date(today) if today is not None else date.today()
    days_diff = (today - plan_start_monday(plan_start_date)).days
    # Floor division keeps days before the start Monday in week <= 0 (clamped to 1)
    week_number = days_diff // DAYS_PER_WEEK + 1

    return max(1, min(week_number, duration_weeks))


def get_day_status(day_date: date, workout_day, completion, today: date) -> DayStatus:
    """Status of a single calendar slot."""
    if workout_day is None or workout_day.is_rest_day:
        return DayStatus.REST

    is_completed = completion is not None and completion.status == WorkoutStatus.COMPLETED.value

    if day_date == today:
        return DayStatus.COMPLETED if is_completed else DayStatus.TODAY

    if day_date < today:
        return DayStatus.COMPLETED if is_completed else DayStatus.MISSED

    return DayStatus.UPCOMING


def week_days(
    plan_start_date,
    week,
    completions: Iterable[Any],
    client_id,
    today=None,
) -> List[DayInfo]:
    """
    Build the 7 Monday-first DayInfo slots for a plan week.

    Args:
        plan_start_date: Client's plan start date
        week: Week template (week_number + ordered days)
        completions: WorkoutCompletion-like rows (client_id, day_id, status)
        client_id: Only this client's completions are considered
        today: Reference date (defaults to date.today())
    """
    today = _as_date(today) if today is not None else date.today()
    monday = week_monday(plan_start_date, week.week_number)

    ordered = sorted(week.days, key=lambda d: d.day_number)
    workout_days = [d for d in ordered if not d.is_rest_day]

    client_completions = [c for c in completions if c.client_id == client_id]

    days: List[DayInfo] = []
    for i in range(DAYS_PER_WEEK):
        day_date = monday + timedelta(days=i)
        workout_day = workout_days[i] if i < len(workout_days) else None

        completion = None
        if workout_day is not None:
            completion = next(
                (c for c in client_completions if c.day_id == workout_day.id),
                None,
            )

        days.append(DayInfo(
            date=day_date,
            day_of_week=WEEKDAY_LABELS[i],
            day_number=i + 1,
            status=get_day_status(day_date, workout_day, completion, today),
            workout_day=workout_day,
            completion=completion,
        ))

    return days


def week_progress(days: Iterable[DayInfo]) -> WeekProgress:
    """Completed vs. scheduled workout days; percentage rounds half up."""
    workout_days = [d for d in days if d.status != DayStatus.REST]
    completed = sum(1 for d in workout_days if d.status == DayStatus.COMPLETED)
    total = len(workout_days)
    percentage = math.floor(100 * completed / total + 0.5) if total > 0 else 0

    return WeekProgress(completed=completed, total=total, percentage=percentage)
