"""
Client Workout API Router

Endpoints the client app calls while following a plan:
- Week overview (calendar-mapped days + progress)
- Day detail, start, set toggles, flags, finish
- Progress summary and check-in history
"""

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.orm import Session
from pydantic import BaseModel
from typing import List, Optional
from datetime import date
from types import SimpleNamespace
from uuid import UUID

from core.auth import get_current_client
from core.clock import utc_now
from core.database import get_db
from models import ClientProfile, WorkoutCompletion
from schemas import (
    CheckInResponse,
    ExerciseFlagResponse,
    SetCompletionResponse,
    WeekDayResponse,
    WeekOverviewResponse,
    WeekProgressResponse,
    WorkoutCompletionResponse,
)
from services import calendar_mapper, workout_session
from services.check_in_lifecycle import list_check_ins
from services.client_progress import progress_summary

router = APIRouter(prefix="/v1/client", tags=["Client Workouts"])


# =============================================================================
# SCHEMAS
# =============================================================================

class StartWorkoutRequest(BaseModel):
    day_id: UUID


class ToggleSetRequest(BaseModel):
    exercise_id: UUID
    set_number: int
    actual_weight: Optional[float] = None
    actual_reps: Optional[int] = None


class SetStateIn(BaseModel):
    exercise_id: UUID
    set_number: int
    completed: bool
    actual_weight: Optional[float] = None
    actual_reps: Optional[int] = None


class SetBatchRequest(BaseModel):
    sets: List[SetStateIn]


class SetBatchResponse(BaseModel):
    updated: int
    sets: List[SetCompletionResponse]


class FlagRequest(BaseModel):
    exercise_id: UUID
    note: Optional[str] = None


class FinishRequest(BaseModel):
    effort_rating: Optional[str] = None  # EASY, MEDIUM, HARD


class ExerciseDetailResponse(BaseModel):
    scheduled_exercise_id: UUID
    exercise_id: UUID
    name: Optional[str] = None
    category: Optional[str] = None
    order_index: int
    sets: int
    reps: Optional[str] = None
    weight: Optional[str] = None
    rest_seconds: Optional[int] = None
    coach_notes: Optional[str] = None
    set_completions: List[SetCompletionResponse] = []
    flag: Optional[ExerciseFlagResponse] = None


class DayDetailResponse(BaseModel):
    day_id: UUID
    day_name: Optional[str] = None
    day_number: int
    week_number: int
    status: str  # NOT_STARTED, IN_PROGRESS, COMPLETED
    completion: Optional[WorkoutCompletionResponse] = None
    exercises: List[ExerciseDetailResponse] = []


class ProgressStats(BaseModel):
    total_workouts: int
    avg_completion_pct: float
    current_streak: int
    workouts_last_7_days: int


class ProgressResponse(BaseModel):
    recent_completions: List[WorkoutCompletionResponse]
    stats: ProgressStats


# =============================================================================
# WEEK OVERVIEW
# =============================================================================

@router.get("/week-overview", response_model=WeekOverviewResponse)
async def get_week_overview(
    week: Optional[int] = Query(None, ge=1, description="Plan week (defaults to the current week)"),
    today: Optional[date] = Query(None, description="Reference date (defaults to today, UTC)"),
    db: Session = Depends(get_db),
    current_client: ClientProfile = Depends(get_current_client),
):
    """
    Seven Monday-first day slots for one plan week, with status and progress.

    Clients without an active plan get an empty overview.
    """
    today = today or utc_now().date()
    plan = current_client.active_plan
    if plan is None:
        return WeekOverviewResponse(progress=WeekProgressResponse(completed=0, total=0, percentage=0))

    week_number = week or calendar_mapper.current_week_number(
        current_client.plan_start_date, plan.duration_weeks, today
    )
    template = next((w for w in plan.weeks if w.week_number == week_number), None)
    if template is None:
        template = SimpleNamespace(week_number=week_number, days=[])

    completions = db.query(WorkoutCompletion).filter(
        WorkoutCompletion.client_id == current_client.id,
        WorkoutCompletion.plan_id == plan.id,
    ).all()

    days = calendar_mapper.week_days(
        current_client.plan_start_date, template, completions, current_client.id, today
    )
    progress = calendar_mapper.week_progress(days)

    return WeekOverviewResponse(
        plan_id=plan.id,
        plan_name=plan.name,
        week_number=week_number,
        duration_weeks=plan.duration_weeks,
        days=[
            WeekDayResponse(
                date=d.date,
                day_of_week=d.day_of_week,
                day_number=d.day_number,
                status=d.status.value,
                is_interactive=d.is_interactive,
                day_id=d.workout_day.id if d.workout_day is not None else None,
                day_name=d.workout_day.name if d.workout_day is not None else None,
                completion_id=d.completion.id if d.completion is not None else None,
            )
            for d in days
        ],
        progress=WeekProgressResponse(
            completed=progress.completed, total=progress.total, percentage=progress.percentage
        ),
    )


# =============================================================================
# WORKOUT SESSION
# =============================================================================

@router.get("/workout/day/{day_id}", response_model=DayDetailResponse)
async def get_workout_day(
    day_id: UUID,
    db: Session = Depends(get_db),
    current_client: ClientProfile = Depends(get_current_client),
):
    detail = workout_session.get_day_detail(db, current_client.id, day_id)
    completion = getattr(detail.state, "completion", None)

    return DayDetailResponse(
        day_id=detail.day.id,
        day_name=detail.day.name,
        day_number=detail.day.day_number,
        week_number=detail.week_number,
        status=detail.state.status,
        completion=WorkoutCompletionResponse.model_validate(completion) if completion else None,
        exercises=[
            ExerciseDetailResponse(
                scheduled_exercise_id=e.scheduled_exercise.id,
                exercise_id=e.scheduled_exercise.exercise_id,
                name=e.scheduled_exercise.exercise.name if e.scheduled_exercise.exercise else None,
                category=e.scheduled_exercise.exercise.category if e.scheduled_exercise.exercise else None,
                order_index=e.scheduled_exercise.order_index,
                sets=e.scheduled_exercise.sets,
                reps=e.scheduled_exercise.reps,
                weight=e.scheduled_exercise.weight,
                rest_seconds=e.scheduled_exercise.rest_seconds,
                coach_notes=e.scheduled_exercise.coach_notes,
                set_completions=[SetCompletionResponse.model_validate(s) for s in e.set_completions],
                flag=ExerciseFlagResponse.model_validate(e.flag) if e.flag else None,
            )
            for e in detail.exercises
        ],
    )


@router.post("/workout/start", response_model=WorkoutCompletionResponse, status_code=status.HTTP_201_CREATED)
async def start_workout(
    request: StartWorkoutRequest,
    response: Response,
    db: Session = Depends(get_db),
    current_client: ClientProfile = Depends(get_current_client),
):
    """
    Start (or resume) the workout for a day.

    201 when a new session was created, 200 when an existing one is returned.
    """
    result = workout_session.start(db, current_client.id, request.day_id)
    if not result.created:
        response.status_code = status.HTTP_200_OK
    return result.completion


@router.post("/workout/{completion_id}/sets/toggle", response_model=SetCompletionResponse)
async def toggle_set(
    completion_id: UUID,
    request: ToggleSetRequest,
    db: Session = Depends(get_db),
    current_client: ClientProfile = Depends(get_current_client),
):
    return workout_session.toggle_set(
        db,
        current_client.id,
        completion_id,
        request.exercise_id,
        request.set_number,
        actual_weight=request.actual_weight,
        actual_reps=request.actual_reps,
    )


@router.put("/workout/{completion_id}/sets", response_model=SetBatchResponse)
async def apply_set_batch(
    completion_id: UUID,
    request: SetBatchRequest,
    db: Session = Depends(get_db),
    current_client: ClientProfile = Depends(get_current_client),
):
    """Debounced batch of explicit set states; safe to retry."""
    rows = workout_session.apply_set_batch(
        db,
        current_client.id,
        completion_id,
        [workout_session.SetUpdate(**s.model_dump()) for s in request.sets],
    )
    return SetBatchResponse(
        updated=len(rows),
        sets=[SetCompletionResponse.model_validate(r) for r in rows],
    )


@router.post("/workout/{completion_id}/flag", response_model=ExerciseFlagResponse, status_code=status.HTTP_201_CREATED)
async def flag_exercise(
    completion_id: UUID,
    request: FlagRequest,
    response: Response,
    db: Session = Depends(get_db),
    current_client: ClientProfile = Depends(get_current_client),
):
    flag, created = workout_session.toggle_flag(
        db, current_client.id, completion_id, request.exercise_id, note=request.note
    )
    if not created:
        response.status_code = status.HTTP_200_OK
    return flag


@router.post("/workout/{completion_id}/finish", response_model=WorkoutCompletionResponse)
async def finish_workout(
    completion_id: UUID,
    request: Optional[FinishRequest] = None,
    db: Session = Depends(get_db),
    current_client: ClientProfile = Depends(get_current_client),
):
    return workout_session.finish(
        db,
        current_client.id,
        completion_id,
        effort_rating=request.effort_rating if request else None,
    )


# =============================================================================
# PROGRESS & CHECK-INS
# =============================================================================

@router.get("/progress", response_model=ProgressResponse)
async def get_progress(
    db: Session = Depends(get_db),
    current_client: ClientProfile = Depends(get_current_client),
):
    summary = progress_summary(db, current_client.id)
    return ProgressResponse(
        recent_completions=[WorkoutCompletionResponse.model_validate(c) for c in summary.recent_completions],
        stats=ProgressStats(
            total_workouts=summary.total_workouts,
            avg_completion_pct=summary.avg_completion_pct,
            current_streak=summary.current_streak,
            workouts_last_7_days=summary.workouts_last_7_days,
        ),
    )


@router.get("/check-ins", response_model=List[CheckInResponse])
async def get_my_check_ins(
    limit: int = Query(50, ge=1, le=200),
    db: Session = Depends(get_db),
    current_client: ClientProfile = Depends(get_current_client),
):
    return list_check_ins(db, current_client.id, limit=limit)
