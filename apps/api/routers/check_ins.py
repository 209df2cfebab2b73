"""
Check-in API Router

Coach-initiated and scheduled check-ins, and both sides' responses.
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
from pydantic import BaseModel
from typing import List, Optional, Union
from datetime import date
from uuid import UUID

from core.auth import get_current_client, get_current_coach, get_current_profile
from core.database import get_db
from models import ClientProfile, CoachProfile, ScheduleStatus
from schemas import CheckInResponse, CheckInScheduleResponse
from services import check_in_lifecycle, check_in_scheduler

router = APIRouter(prefix="/v1/check-ins", tags=["Check-ins"])


class InitiateCheckInRequest(BaseModel):
    client_id: UUID


class ClientRespondRequest(BaseModel):
    effort_rating: Optional[str] = None  # EASY, MEDIUM, HARD
    pain_blockers: Optional[str] = None
    client_feeling: Optional[str] = None


class CoachRespondRequest(BaseModel):
    coach_feedback: Optional[str] = None
    plan_adjustment: bool = False


class ScheduleRequest(BaseModel):
    status: ScheduleStatus = ScheduleStatus.ACTIVE
    anchor_date: Optional[date] = None


class ScanResponse(BaseModel):
    created: int
    check_ins: List[CheckInResponse]


@router.post("", response_model=CheckInResponse, status_code=status.HTTP_201_CREATED)
async def initiate_check_in(
    request: InitiateCheckInRequest,
    db: Session = Depends(get_db),
    current_coach: CoachProfile = Depends(get_current_coach),
):
    return check_in_lifecycle.initiate(db, current_coach.id, request.client_id)


@router.put("/{check_in_id}/client-respond", response_model=CheckInResponse)
async def client_respond(
    check_in_id: UUID,
    request: ClientRespondRequest,
    db: Session = Depends(get_db),
    current_client: ClientProfile = Depends(get_current_client),
):
    return check_in_lifecycle.client_respond(
        db,
        current_client.id,
        check_in_id,
        effort_rating=request.effort_rating,
        pain_blockers=request.pain_blockers,
        client_feeling=request.client_feeling,
    )


@router.put("/{check_in_id}/coach-respond", response_model=CheckInResponse)
async def coach_respond(
    check_in_id: UUID,
    request: CoachRespondRequest,
    db: Session = Depends(get_db),
    current_coach: CoachProfile = Depends(get_current_coach),
):
    return check_in_lifecycle.coach_respond(
        db,
        current_coach.id,
        check_in_id,
        coach_feedback=request.coach_feedback,
        plan_adjustment=request.plan_adjustment,
    )


@router.put("/schedule/{client_id}", response_model=CheckInScheduleResponse)
async def upsert_schedule(
    client_id: UUID,
    request: ScheduleRequest,
    db: Session = Depends(get_db),
    current_coach: CoachProfile = Depends(get_current_coach),
):
    return check_in_scheduler.upsert_schedule(
        db, current_coach.id, client_id, status=request.status, anchor_date=request.anchor_date
    )


@router.post("/scan", response_model=ScanResponse)
async def scan_due_check_ins(
    db: Session = Depends(get_db),
    current_coach: CoachProfile = Depends(get_current_coach),
):
    """Open scheduled check-ins for this coach's due clients. Safe to call repeatedly."""
    created = check_in_scheduler.detect_due_check_ins(db, coach_id=current_coach.id)
    return ScanResponse(
        created=len(created),
        check_ins=[CheckInResponse.model_validate(c) for c in created],
    )


@router.get("/{check_in_id}", response_model=CheckInResponse)
async def get_check_in(
    check_in_id: UUID,
    db: Session = Depends(get_db),
    current_profile: Union[CoachProfile, ClientProfile] = Depends(get_current_profile),
):
    """Readable by the check-in's coach and by its client."""
    if isinstance(current_profile, CoachProfile):
        return check_in_lifecycle.get_check_in(db, check_in_id, coach_id=current_profile.id)
    return check_in_lifecycle.get_check_in(db, check_in_id, client_id=current_profile.id)
