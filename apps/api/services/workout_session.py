"""
Workout Session Tracker

Owns the lifecycle of one WorkoutCompletion - a client's attempt at one
scheduled Day:

    (no record) --start--> IN_PROGRESS --finish--> COMPLETED

- start is idempotent per (client, plan, day) and pre-creates one
  SetCompletion row per prescribed set, so every later set write is an update.
- toggle_set / apply_set_batch are the hot path (every set tap). Finished
  sessions are read-only.
- finish is one-way; a second call is rejected rather than recomputed.

All state checks happen before any write, and each operation commits as a
single unit.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Tuple, Union
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from core.clock import ensure_utc, utc_now
from core.config import settings
from core.events import (
    EVENT_EXERCISE_FLAGGED,
    EVENT_WORKOUT_FINISHED,
    EVENT_WORKOUT_SETS_UPDATED,
    EVENT_WORKOUT_STARTED,
    emit,
)
from core.exceptions import ForbiddenError, InvalidInputError, NotFoundError
from models import (
    Day,
    EffortRating,
    ExerciseFlag,
    ScheduledExercise,
    SetCompletion,
    Week,
    WorkoutCompletion,
    WorkoutStatus,
)
from services.relationships import get_client_profile

logger = logging.getLogger(__name__)


# =============================================================================
# SESSION STATE (tagged variant at the interface boundary)
# =============================================================================

@dataclass(frozen=True)
class NotStarted:
    day_id: UUID
    status: str = "NOT_STARTED"


@dataclass(frozen=True)
class InProgress:
    completion: WorkoutCompletion
    status: str = WorkoutStatus.IN_PROGRESS.value


@dataclass(frozen=True)
class Completed:
    completion: WorkoutCompletion
    status: str = WorkoutStatus.COMPLETED.value


SessionState = Union[NotStarted, InProgress, Completed]


@dataclass
class StartResult:
    completion: WorkoutCompletion
    created: bool


@dataclass
class SetUpdate:
    """One explicit set state inside a batched write."""
    exercise_id: UUID
    set_number: int
    completed: bool
    actual_weight: Optional[float] = None
    actual_reps: Optional[int] = None


@dataclass
class ExerciseDetail:
    scheduled_exercise: ScheduledExercise
    set_completions: List[SetCompletion] = field(default_factory=list)
    flag: Optional[ExerciseFlag] = None


@dataclass
class DayDetail:
    day: Day
    week_number: int
    exercises: List[ExerciseDetail]
    state: SessionState


# =============================================================================
# LOOKUPS
# =============================================================================

def _state_for(completion: Optional[WorkoutCompletion], day_id: UUID) -> SessionState:
    if completion is None:
        return NotStarted(day_id=day_id)
    if completion.status == WorkoutStatus.COMPLETED.value:
        return Completed(completion=completion)
    return InProgress(completion=completion)


def _resolve_active_day(db: Session, client_id: UUID, day_id: UUID) -> Tuple[UUID, Day]:
    """Return (active_plan_id, day) or raise NotFoundError."""
    client = get_client_profile(db, client_id)
    if not client.active_plan_id:
        raise NotFoundError("Active plan")

    day = (
        db.query(Day)
        .join(Week, Week.id == Day.week_id)
        .filter(Day.id == day_id, Week.plan_id == client.active_plan_id)
        .first()
    )
    if not day:
        raise NotFoundError("Day", day_id)

    return client.active_plan_id, day


def _find_completion(db: Session, client_id: UUID, plan_id: UUID, day_id: UUID) -> Optional[WorkoutCompletion]:
    return db.query(WorkoutCompletion).filter(
        WorkoutCompletion.client_id == client_id,
        WorkoutCompletion.plan_id == plan_id,
        WorkoutCompletion.day_id == day_id,
    ).first()


def get_owned_completion(db: Session, client_id: UUID, completion_id: UUID) -> WorkoutCompletion:
    completion = db.query(WorkoutCompletion).filter(
        WorkoutCompletion.id == completion_id,
        WorkoutCompletion.client_id == client_id,
    ).first()
    if not completion:
        raise NotFoundError("Workout", completion_id)
    return completion


def _require_in_progress(completion: WorkoutCompletion) -> None:
    if completion.status == WorkoutStatus.COMPLETED.value:
        raise ForbiddenError("Workout already completed")


def _day_exercises(db: Session, day_id: UUID) -> List[ScheduledExercise]:
    return (
        db.query(ScheduledExercise)
        .filter(ScheduledExercise.day_id == day_id)
        .order_by(ScheduledExercise.order_index)
        .all()
    )


def _validate_actuals(actual_weight: Optional[float], actual_reps: Optional[int]) -> None:
    if actual_weight is not None and actual_weight < 0:
        raise InvalidInputError("actual_weight must be >= 0", field="actual_weight")
    if actual_reps is not None and actual_reps < 0:
        raise InvalidInputError("actual_reps must be >= 0", field="actual_reps")


def _apply_set_state(
    row: SetCompletion,
    completed: bool,
    actual_weight: Optional[float],
    actual_reps: Optional[int],
    now: datetime,
) -> None:
    if completed:
        if not row.completed:
            row.completed_at = now
        row.completed = True
        row.actual_weight = actual_weight
        row.actual_reps = actual_reps
    else:
        row.completed = False
        row.completed_at = None
        row.actual_weight = None
        row.actual_reps = None


# =============================================================================
# OPERATIONS
# =============================================================================

def start(db: Session, client_id: UUID, day_id: UUID, now: Optional[datetime] = None) -> StartResult:
    """
    Start a workout for a day in the client's active plan.

    Idempotent: if a completion already exists for (client, plan, day) it is
    returned unchanged. Otherwise the completion and every SetCompletion row
    are created in one transaction.
    """
    now = now or utc_now()
    plan_id, day = _resolve_active_day(db, client_id, day_id)

    existing = _find_completion(db, client_id, plan_id, day.id)
    if existing:
        return StartResult(completion=existing, created=False)

    exercises = _day_exercises(db, day.id)

    completion = WorkoutCompletion(
        client_id=client_id,
        plan_id=plan_id,
        day_id=day.id,
        status=WorkoutStatus.IN_PROGRESS.value,
        started_at=now,
        exercises_total=len(exercises),
        exercises_done=0,
        completion_pct=0.0,
    )

    try:
        db.add(completion)
        db.flush()
        db.add_all([
            SetCompletion(
                workout_completion_id=completion.id,
                scheduled_exercise_id=exercise.id,
                set_number=set_number,
                completed=False,
            )
            for exercise in exercises
            for set_number in range(1, exercise.sets + 1)
        ])
        db.commit()
    except IntegrityError:
        # A concurrent start for the same tuple won the insert
        db.rollback()
        existing = _find_completion(db, client_id, plan_id, day.id)
        if existing is None:
            raise
        logger.info(
            "Duplicate workout start resolved to existing completion",
            extra={"extra_fields": {"completion_id": str(existing.id), "client_id": str(client_id)}},
        )
        return StartResult(completion=existing, created=False)

    db.refresh(completion)
    logger.info(
        "Workout started",
        extra={"extra_fields": {
            "completion_id": str(completion.id),
            "client_id": str(client_id),
            "day_id": str(day.id),
            "sets_created": sum(e.sets for e in exercises),
        }},
    )
    emit(EVENT_WORKOUT_STARTED, completion_id=str(completion.id), client_id=str(client_id), at=now)

    return StartResult(completion=completion, created=True)


def toggle_set(
    db: Session,
    client_id: UUID,
    completion_id: UUID,
    exercise_id: UUID,
    set_number: int,
    actual_weight: Optional[float] = None,
    actual_reps: Optional[int] = None,
    now: Optional[datetime] = None,
) -> SetCompletion:
    """
    Flip one set's completed flag.

    Turning a set on stamps completed_at and stores the actuals; turning it
    off clears all three. Toggling twice restores the original state.
    """
    if set_number < 1:
        raise InvalidInputError("set_number must be >= 1", field="set_number")
    _validate_actuals(actual_weight, actual_reps)

    now = now or utc_now()
    completion = get_owned_completion(db, client_id, completion_id)
    _require_in_progress(completion)

    row = db.query(SetCompletion).filter(
        SetCompletion.workout_completion_id == completion.id,
        SetCompletion.scheduled_exercise_id == exercise_id,
        SetCompletion.set_number == set_number,
    ).first()
    if not row:
        raise NotFoundError("Set", f"{exercise_id}:{set_number}")

    _apply_set_state(row, not row.completed, actual_weight, actual_reps, now)
    db.commit()
    db.refresh(row)

    emit(EVENT_WORKOUT_SETS_UPDATED, completion_id=str(completion.id), client_id=str(client_id), count=1, at=now)
    return row


def apply_set_batch(
    db: Session,
    client_id: UUID,
    completion_id: UUID,
    sets: Iterable[SetUpdate],
    now: Optional[datetime] = None,
) -> List[SetCompletion]:
    """
    Write a coalesced batch of explicit set states in one transaction.

    Each (exercise_id, set_number) is an upsert to the given state, so a
    retried batch lands on the same result. When a key repeats, the last
    tuple wins. Any invalid tuple rejects the whole batch before writing.
    """
    updates = list(sets)
    if not updates:
        raise InvalidInputError("sets must not be empty", field="sets")

    now = now or utc_now()
    completion = get_owned_completion(db, client_id, completion_id)
    _require_in_progress(completion)

    prescribed = {e.id: e.sets for e in _day_exercises(db, completion.day_id)}

    coalesced: Dict[Tuple[UUID, int], SetUpdate] = {}
    for update in updates:
        if update.exercise_id not in prescribed:
            raise InvalidInputError("exercise does not belong to this workout day", field="exercise_id")
        if update.set_number < 1 or update.set_number > prescribed[update.exercise_id]:
            raise InvalidInputError(
                f"set_number must be between 1 and {prescribed[update.exercise_id]}",
                field="set_number",
            )
        _validate_actuals(update.actual_weight, update.actual_reps)
        coalesced[(update.exercise_id, update.set_number)] = update

    existing = {
        (row.scheduled_exercise_id, row.set_number): row
        for row in db.query(SetCompletion).filter(SetCompletion.workout_completion_id == completion.id).all()
    }

    written: List[SetCompletion] = []
    for key, update in coalesced.items():
        row = existing.get(key)
        if row is None:
            row = SetCompletion(
                workout_completion_id=completion.id,
                scheduled_exercise_id=update.exercise_id,
                set_number=update.set_number,
                completed=False,
            )
            db.add(row)
        _apply_set_state(row, update.completed, update.actual_weight, update.actual_reps, now)
        written.append(row)

    db.commit()

    logger.info(
        "Set batch applied",
        extra={"extra_fields": {
            "completion_id": str(completion.id),
            "received": len(updates),
            "written": len(written),
        }},
    )
    emit(EVENT_WORKOUT_SETS_UPDATED, completion_id=str(completion.id), client_id=str(client_id), count=len(written), at=now)

    return written


def toggle_flag(
    db: Session,
    client_id: UUID,
    completion_id: UUID,
    exercise_id: UUID,
    note: Optional[str] = None,
    now: Optional[datetime] = None,
) -> Tuple[ExerciseFlag, bool]:
    """
    Create the flag for (session, exercise), or update its note.

    A None note on an existing flag keeps the current note. There is no
    delete: unflagging is a caller-local state change only.

    Returns:
        (flag, created)
    """
    if note is not None and len(note) > settings.FLAG_NOTE_MAX_LENGTH:
        raise InvalidInputError(
            f"note must be at most {settings.FLAG_NOTE_MAX_LENGTH} characters", field="note"
        )

    now = now or utc_now()
    completion = get_owned_completion(db, client_id, completion_id)
    _require_in_progress(completion)

    on_day = db.query(ScheduledExercise.id).filter(
        ScheduledExercise.id == exercise_id,
        ScheduledExercise.day_id == completion.day_id,
    ).first()
    if not on_day:
        raise InvalidInputError("exercise does not belong to this workout day", field="exercise_id")

    flag = db.query(ExerciseFlag).filter(
        ExerciseFlag.workout_completion_id == completion.id,
        ExerciseFlag.scheduled_exercise_id == exercise_id,
    ).first()

    created = flag is None
    if created:
        flag = ExerciseFlag(
            workout_completion_id=completion.id,
            scheduled_exercise_id=exercise_id,
            note=note,
            flagged_at=now,
        )
        db.add(flag)
    elif note is not None:
        flag.note = note

    db.commit()
    db.refresh(flag)

    emit(
        EVENT_EXERCISE_FLAGGED,
        completion_id=str(completion.id),
        exercise_id=str(exercise_id),
        created=created,
        at=now,
    )
    return flag, created


def finish(
    db: Session,
    client_id: UUID,
    completion_id: UUID,
    effort_rating: Optional[str] = None,
    now: Optional[datetime] = None,
) -> WorkoutCompletion:
    """
    Complete a workout and compute its aggregate statistics.

    - completion_pct = completed sets / prescribed sets (0.0 when nothing is prescribed)
    - exercises_done counts exercises whose every prescribed set is completed
    - duration_sec is whole seconds since started_at
    """
    if effort_rating is not None:
        try:
            effort_rating = EffortRating(effort_rating).value
        except ValueError:
            raise InvalidInputError(
                f"effort_rating must be one of {[e.value for e in EffortRating]}", field="effort_rating"
            )

    now = now or utc_now()
    completion = get_owned_completion(db, client_id, completion_id)
    _require_in_progress(completion)

    exercises = _day_exercises(db, completion.day_id)
    rows = db.query(SetCompletion).filter(SetCompletion.workout_completion_id == completion.id).all()

    total_sets = sum(e.sets for e in exercises)
    completed_sets = sum(1 for r in rows if r.completed)

    done_by_exercise: Dict[UUID, set] = {}
    for r in rows:
        if r.completed:
            done_by_exercise.setdefault(r.scheduled_exercise_id, set()).add(r.set_number)

    exercises_done = sum(
        1 for e in exercises
        if e.sets > 0 and all(n in done_by_exercise.get(e.id, ()) for n in range(1, e.sets + 1))
    )

    started_at = ensure_utc(completion.started_at)
    duration_sec = max(0, int((now - started_at).total_seconds())) if started_at else None

    completion.status = WorkoutStatus.COMPLETED.value
    completion.completed_at = now
    completion.completion_pct = min(1.0, completed_sets / total_sets) if total_sets > 0 else 0.0
    completion.exercises_done = exercises_done
    completion.exercises_total = len(exercises)
    completion.duration_sec = duration_sec
    if effort_rating:
        completion.effort_rating = effort_rating

    db.commit()
    db.refresh(completion)

    logger.info(
        "Workout finished",
        extra={"extra_fields": {
            "completion_id": str(completion.id),
            "client_id": str(client_id),
            "completion_pct": completion.completion_pct,
            "exercises_done": exercises_done,
            "duration_sec": duration_sec,
        }},
    )
    emit(EVENT_WORKOUT_FINISHED, completion_id=str(completion.id), client_id=str(client_id), at=now)

    return completion


# =============================================================================
# READ MODELS
# =============================================================================

def get_session_state(db: Session, client_id: UUID, day_id: UUID) -> SessionState:
    """NotStarted | InProgress | Completed for a day in the active plan."""
    plan_id, day = _resolve_active_day(db, client_id, day_id)
    return _state_for(_find_completion(db, client_id, plan_id, day.id), day.id)


def get_day_detail(db: Session, client_id: UUID, day_id: UUID) -> DayDetail:
    """Full workout detail for a day: exercises, their set rows and flags."""
    plan_id, day = _resolve_active_day(db, client_id, day_id)
    completion = _find_completion(db, client_id, plan_id, day.id)

    sets_by_exercise: Dict[UUID, List[SetCompletion]] = {}
    flags_by_exercise: Dict[UUID, ExerciseFlag] = {}
    if completion:
        for row in sorted(completion.sets, key=lambda r: r.set_number):
            sets_by_exercise.setdefault(row.scheduled_exercise_id, []).append(row)
        for flag in completion.flags:
            flags_by_exercise[flag.scheduled_exercise_id] = flag

    exercises = [
        ExerciseDetail(
            scheduled_exercise=exercise,
            set_completions=sets_by_exercise.get(exercise.id, []),
            flag=flags_by_exercise.get(exercise.id),
        )
        for exercise in _day_exercises(db, day.id)
    ]

    return DayDetail(
        day=day,
        week_number=day.week.week_number,
        exercises=exercises,
        state=_state_for(completion, day.id),
    )
