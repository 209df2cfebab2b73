from pydantic import BaseModel, ConfigDict
from datetime import datetime, date
from uuid import UUID
from typing import Optional, List


class SetCompletionResponse(BaseModel):
    id: UUID
    scheduled_exercise_id: UUID
    set_number: int
    completed: bool
    actual_weight: Optional[float] = None
    actual_reps: Optional[int] = None
    completed_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class ExerciseFlagResponse(BaseModel):
    id: UUID
    workout_completion_id: UUID
    scheduled_exercise_id: UUID
    note: Optional[str] = None
    flagged_at: datetime

    model_config = ConfigDict(from_attributes=True)


class WorkoutCompletionResponse(BaseModel):
    id: UUID
    client_id: UUID
    plan_id: UUID
    day_id: UUID
    status: str  # IN_PROGRESS, COMPLETED
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    completion_pct: float = 0.0  # 0.0 - 1.0
    exercises_done: int = 0
    exercises_total: int = 0
    duration_sec: Optional[int] = None
    effort_rating: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class CheckInResponse(BaseModel):
    id: UUID
    coach_id: UUID
    client_id: UUID
    status: str  # PENDING, CLIENT_RESPONDED, COMPLETED
    source: str  # COACH, SCHEDULE
    created_at: datetime
    effort_rating: Optional[str] = None
    pain_blockers: Optional[str] = None
    client_feeling: Optional[str] = None
    client_responded_at: Optional[datetime] = None
    coach_feedback: Optional[str] = None
    plan_adjustment: bool = False
    coach_responded_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class CheckInScheduleResponse(BaseModel):
    id: UUID
    coach_id: UUID
    client_id: UUID
    status: str  # ACTIVE, PAUSED
    cadence_days: int
    anchor_date: date

    model_config = ConfigDict(from_attributes=True)


class ClientPlanResponse(BaseModel):
    id: UUID
    display_name: Optional[str] = None
    active_plan_id: Optional[UUID] = None
    plan_start_date: Optional[date] = None

    model_config = ConfigDict(from_attributes=True)


class WeekDayResponse(BaseModel):
    date: date
    day_of_week: str
    day_number: int
    status: str  # TODAY, COMPLETED, UPCOMING, MISSED, REST
    is_interactive: bool
    day_id: Optional[UUID] = None
    day_name: Optional[str] = None
    completion_id: Optional[UUID] = None


class WeekProgressResponse(BaseModel):
    completed: int
    total: int
    percentage: int


class WeekOverviewResponse(BaseModel):
    plan_id: Optional[UUID] = None
    plan_name: Optional[str] = None
    week_number: Optional[int] = None
    duration_weeks: Optional[int] = None
    days: List[WeekDayResponse] = []
    progress: WeekProgressResponse
