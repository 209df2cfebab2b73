from sqlalchemy import (
    Column, Integer, Boolean, CheckConstraint, Float, Date, DateTime, ForeignKey,
    Text, Index, UniqueConstraint, Uuid,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from core.database import Base
import enum
import uuid


# =============================================================================
# ENUMS (stored as TEXT; values are the wire format)
# =============================================================================

class RelationshipStatus(str, enum.Enum):
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"


class WorkoutStatus(str, enum.Enum):
    # "Not started" is the absence of a WorkoutCompletion row, never a stored value.
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"


class EffortRating(str, enum.Enum):
    EASY = "EASY"
    MEDIUM = "MEDIUM"
    HARD = "HARD"


class CheckInStatus(str, enum.Enum):
    PENDING = "PENDING"
    CLIENT_RESPONDED = "CLIENT_RESPONDED"
    COMPLETED = "COMPLETED"


class CheckInSource(str, enum.Enum):
    COACH = "COACH"
    SCHEDULE = "SCHEDULE"


class ScheduleStatus(str, enum.Enum):
    ACTIVE = "ACTIVE"
    PAUSED = "PAUSED"


IN_FLIGHT_CHECKIN_STATUSES = (CheckInStatus.PENDING.value, CheckInStatus.CLIENT_RESPONDED.value)


# =============================================================================
# PROFILES & RELATIONSHIPS
# =============================================================================

class CoachProfile(Base):
    __tablename__ = "coach_profile"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    display_name = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)


class ClientProfile(Base):
    """
    A coached client.

    active_plan_id and plan_start_date are assigned and cleared together
    (services/plan_assignment.py); the CHECK constraint rejects any write
    that would leave exactly one of them set.
    """
    __tablename__ = "client_profile"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    display_name = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    active_plan_id = Column(Uuid(as_uuid=True), ForeignKey("plan.id"), nullable=True)
    plan_start_date = Column(Date, nullable=True)

    active_plan = relationship("Plan", foreign_keys=[active_plan_id])

    __table_args__ = (
        CheckConstraint(
            "(active_plan_id IS NULL AND plan_start_date IS NULL) OR "
            "(active_plan_id IS NOT NULL AND plan_start_date IS NOT NULL)",
            name="ck_client_profile_plan_assignment",
        ),
    )


class CoachClientRelationship(Base):
    __tablename__ = "coach_client_relationship"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    coach_id = Column(Uuid(as_uuid=True), ForeignKey("coach_profile.id"), nullable=False)
    client_id = Column(Uuid(as_uuid=True), ForeignKey("client_profile.id"), nullable=False)
    status = Column(Text, default=RelationshipStatus.ACTIVE.value, nullable=False)  # ACTIVE, INACTIVE
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    client = relationship("ClientProfile")

    __table_args__ = (
        UniqueConstraint("coach_id", "client_id", name="uq_coach_client_pair"),
        Index("ix_coach_client_relationship_coach_id", "coach_id"),
    )


# =============================================================================
# PLAN TEMPLATES (authored elsewhere; read-only to the engine)
# =============================================================================

class Plan(Base):
    """
    Coach-owned plan template.

    duration_weeks may grow as weeks are appended. workouts_per_week, when
    set, is the expected weekly count used by the missed-week streak;
    otherwise each week's non-rest day count is used.
    """
    __tablename__ = "plan"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    coach_id = Column(Uuid(as_uuid=True), ForeignKey("coach_profile.id"), nullable=False)
    name = Column(Text, nullable=False)
    duration_weeks = Column(Integer, nullable=False)
    workouts_per_week = Column(Integer, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    weeks = relationship("Week", back_populates="plan", order_by="Week.week_number")

    __table_args__ = (
        CheckConstraint("duration_weeks >= 1", name="ck_plan_duration_positive"),
        Index("ix_plan_coach_id", "coach_id"),
    )


class Week(Base):
    __tablename__ = "week"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    plan_id = Column(Uuid(as_uuid=True), ForeignKey("plan.id"), nullable=False)
    week_number = Column(Integer, nullable=False)  # 1-indexed

    plan = relationship("Plan", back_populates="weeks")
    days = relationship("Day", back_populates="week", order_by="Day.day_number")

    __table_args__ = (
        UniqueConstraint("plan_id", "week_number", name="uq_week_plan_number"),
    )


class Day(Base):
    __tablename__ = "day"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    week_id = Column(Uuid(as_uuid=True), ForeignKey("week.id"), nullable=False)
    day_number = Column(Integer, nullable=False)  # 1=Monday ... 7=Sunday
    is_rest_day = Column(Boolean, default=False, nullable=False)
    name = Column(Text, nullable=True)  # e.g., "Upper Body A"

    week = relationship("Week", back_populates="days")
    exercises = relationship("ScheduledExercise", back_populates="day", order_by="ScheduledExercise.order_index")

    __table_args__ = (
        UniqueConstraint("week_id", "day_number", name="uq_day_week_number"),
        CheckConstraint("day_number BETWEEN 1 AND 7", name="ck_day_number_range"),
    )


class ExerciseDefinition(Base):
    """Exercise library entry (name/category/instructions)."""
    __tablename__ = "exercise_definition"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(Text, nullable=False)
    category = Column(Text, nullable=True)  # e.g., 'push', 'pull', 'legs', 'core'
    instructions = Column(Text, nullable=True)


class ScheduledExercise(Base):
    """One prescribed exercise slot on a Day."""
    __tablename__ = "scheduled_exercise"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    day_id = Column(Uuid(as_uuid=True), ForeignKey("day.id"), nullable=False)
    exercise_id = Column(Uuid(as_uuid=True), ForeignKey("exercise_definition.id"), nullable=False)
    order_index = Column(Integer, nullable=False)

    # Prescription
    sets = Column(Integer, nullable=False)
    reps = Column(Text, nullable=True)  # "8-10", "AMRAP", "30s"
    weight = Column(Text, nullable=True)  # "135 lbs", "RPE 8"
    rest_seconds = Column(Integer, nullable=True)
    coach_notes = Column(Text, nullable=True)

    day = relationship("Day", back_populates="exercises")
    exercise = relationship("ExerciseDefinition")

    __table_args__ = (
        UniqueConstraint("day_id", "order_index", name="uq_scheduled_exercise_day_order"),
        CheckConstraint("sets >= 0", name="ck_scheduled_exercise_sets_non_negative"),
    )


# =============================================================================
# WORKOUT SESSIONS
# =============================================================================

class WorkoutCompletion(Base):
    """
    A client's attempt at one scheduled Day.

    Created IN_PROGRESS together with all of its SetCompletion rows; moved to
    COMPLETED exactly once by finish. Never deleted.
    """
    __tablename__ = "workout_completion"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    client_id = Column(Uuid(as_uuid=True), ForeignKey("client_profile.id"), nullable=False)
    plan_id = Column(Uuid(as_uuid=True), ForeignKey("plan.id"), nullable=False)
    day_id = Column(Uuid(as_uuid=True), ForeignKey("day.id"), nullable=False)

    status = Column(Text, default=WorkoutStatus.IN_PROGRESS.value, nullable=False)
    started_at = Column(DateTime(timezone=True), nullable=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)

    # Aggregates (filled in at finish)
    completion_pct = Column(Float, default=0.0, nullable=False)  # 0.0 - 1.0
    exercises_done = Column(Integer, default=0, nullable=False)
    exercises_total = Column(Integer, default=0, nullable=False)
    duration_sec = Column(Integer, nullable=True)
    effort_rating = Column(Text, nullable=True)  # EASY, MEDIUM, HARD

    day = relationship("Day")
    sets = relationship(
        "SetCompletion",
        back_populates="workout_completion",
        order_by="SetCompletion.set_number",
    )
    flags = relationship("ExerciseFlag", back_populates="workout_completion")

    __table_args__ = (
        UniqueConstraint("client_id", "plan_id", "day_id", name="uq_workout_completion_client_plan_day"),
        Index("ix_workout_completion_client_completed_at", "client_id", "completed_at"),
        CheckConstraint("completion_pct >= 0 AND completion_pct <= 1", name="ck_workout_completion_pct_range"),
    )


class SetCompletion(Base):
    __tablename__ = "set_completion"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    workout_completion_id = Column(Uuid(as_uuid=True), ForeignKey("workout_completion.id"), nullable=False)
    scheduled_exercise_id = Column(Uuid(as_uuid=True), ForeignKey("scheduled_exercise.id"), nullable=False)
    set_number = Column(Integer, nullable=False)  # 1-indexed

    completed = Column(Boolean, default=False, nullable=False)
    actual_weight = Column(Float, nullable=True)  # Only while completed
    actual_reps = Column(Integer, nullable=True)  # Only while completed
    completed_at = Column(DateTime(timezone=True), nullable=True)

    workout_completion = relationship("WorkoutCompletion", back_populates="sets")

    __table_args__ = (
        UniqueConstraint(
            "workout_completion_id", "scheduled_exercise_id", "set_number",
            name="uq_set_completion_session_exercise_set",
        ),
    )


class ExerciseFlag(Base):
    """Client-raised note on one exercise within one session. No delete path."""
    __tablename__ = "exercise_flag"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    workout_completion_id = Column(Uuid(as_uuid=True), ForeignKey("workout_completion.id"), nullable=False)
    scheduled_exercise_id = Column(Uuid(as_uuid=True), ForeignKey("scheduled_exercise.id"), nullable=False)
    note = Column(Text, nullable=True)
    flagged_at = Column(DateTime(timezone=True), nullable=False)

    workout_completion = relationship("WorkoutCompletion", back_populates="flags")

    __table_args__ = (
        UniqueConstraint("workout_completion_id", "scheduled_exercise_id", name="uq_exercise_flag_session_exercise"),
    )


# =============================================================================
# CHECK-INS
# =============================================================================

class CheckIn(Base):
    """
    Periodic coach-client status conversation.

    PENDING -> CLIENT_RESPONDED -> COMPLETED, forward only. Client fields are
    written on the first transition, coach fields on the second; the row is
    immutable once COMPLETED.
    """
    __tablename__ = "check_in"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    coach_id = Column(Uuid(as_uuid=True), ForeignKey("coach_profile.id"), nullable=False)
    client_id = Column(Uuid(as_uuid=True), ForeignKey("client_profile.id"), nullable=False)
    status = Column(Text, default=CheckInStatus.PENDING.value, nullable=False)
    source = Column(Text, default=CheckInSource.COACH.value, nullable=False)  # COACH, SCHEDULE
    created_at = Column(DateTime(timezone=True), nullable=False)

    # Client side (PENDING -> CLIENT_RESPONDED)
    effort_rating = Column(Text, nullable=True)
    pain_blockers = Column(Text, nullable=True)
    client_feeling = Column(Text, nullable=True)
    client_responded_at = Column(DateTime(timezone=True), nullable=True)

    # Coach side (CLIENT_RESPONDED -> COMPLETED)
    coach_feedback = Column(Text, nullable=True)
    plan_adjustment = Column(Boolean, default=False, nullable=False)
    coach_responded_at = Column(DateTime(timezone=True), nullable=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        Index("ix_check_in_pair_status", "coach_id", "client_id", "status"),
        Index("ix_check_in_client_status", "client_id", "status"),
    )


class CheckInSchedule(Base):
    __tablename__ = "check_in_schedule"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    coach_id = Column(Uuid(as_uuid=True), ForeignKey("coach_profile.id"), nullable=False)
    client_id = Column(Uuid(as_uuid=True), ForeignKey("client_profile.id"), nullable=False)
    status = Column(Text, default=ScheduleStatus.ACTIVE.value, nullable=False)  # ACTIVE, PAUSED
    cadence_days = Column(Integer, default=7, nullable=False)
    anchor_date = Column(Date, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    __table_args__ = (
        UniqueConstraint("coach_id", "client_id", name="uq_check_in_schedule_pair"),
    )
