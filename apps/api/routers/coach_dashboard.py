"""
Coach Dashboard API Router

The coach's urgency-ordered client worklist, per-client missed-week streaks,
and plan assignment and removal.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from pydantic import BaseModel
from typing import List, Optional
from datetime import date, datetime
from uuid import UUID

from core.auth import get_current_coach
from core.clock import utc_now
from core.database import get_db
from models import CoachProfile
from schemas import CheckInResponse, ClientPlanResponse
from services.adherence_classifier import build_worklist, is_at_risk_by_streak, missed_streak
from services.plan_assignment import assign_plan, unassign_plan
from services.relationships import require_active_relationship

router = APIRouter(prefix="/v1/coach", tags=["Coach Dashboard"])


class WorklistItem(BaseModel):
    client_id: UUID
    display_name: Optional[str] = None
    tier: str  # AWAITING_RESPONSE, AT_RISK, CHECKIN_DUE, ON_TRACK
    last_workout_at: Optional[datetime] = None
    relevant_at: Optional[datetime] = None
    check_in: Optional[CheckInResponse] = None
    missed_weeks: int = 0
    at_risk_by_streak: bool = False


class DashboardResponse(BaseModel):
    generated_at: datetime
    clients: List[WorklistItem]


class MissedStreakResponse(BaseModel):
    client_id: UUID
    missed_weeks: int
    at_risk: bool


class AssignPlanRequest(BaseModel):
    client_id: UUID
    start_date: Optional[date] = None


@router.get("/dashboard", response_model=DashboardResponse)
async def get_dashboard(
    db: Session = Depends(get_db),
    current_coach: CoachProfile = Depends(get_current_coach),
):
    """All active clients, most urgent first."""
    now = utc_now()
    items = build_worklist(db, current_coach.id, now=now)

    return DashboardResponse(
        generated_at=now,
        clients=[
            WorklistItem(
                client_id=item.client_id,
                display_name=item.display_name,
                tier=item.tier.value,
                last_workout_at=item.last_workout_at,
                relevant_at=item.relevant_at,
                check_in=CheckInResponse.model_validate(item.check_in) if item.check_in else None,
                missed_weeks=item.missed_weeks,
                at_risk_by_streak=is_at_risk_by_streak(item.missed_weeks),
            )
            for item in items
        ],
    )


@router.get("/clients/{client_id}/missed-streak", response_model=MissedStreakResponse)
async def get_missed_streak(
    client_id: UUID,
    db: Session = Depends(get_db),
    current_coach: CoachProfile = Depends(get_current_coach),
):
    require_active_relationship(db, current_coach.id, client_id)
    weeks = missed_streak(db, client_id)
    return MissedStreakResponse(client_id=client_id, missed_weeks=weeks, at_risk=is_at_risk_by_streak(weeks))


@router.post("/plans/{plan_id}/assign", response_model=ClientPlanResponse)
async def assign_plan_to_client(
    plan_id: UUID,
    request: AssignPlanRequest,
    db: Session = Depends(get_db),
    current_coach: CoachProfile = Depends(get_current_coach),
):
    return assign_plan(db, current_coach.id, request.client_id, plan_id, start_date=request.start_date)


@router.delete("/clients/{client_id}/plan", response_model=ClientPlanResponse)
async def unassign_client_plan(
    client_id: UUID,
    db: Session = Depends(get_db),
    current_coach: CoachProfile = Depends(get_current_coach),
):
    return unassign_plan(db, current_coach.id, client_id)
