"""
Pytest configuration and fixtures

Tests run against an in-memory SQLite database. The schema is dropped and
rebuilt around every test, so nothing created in one test is visible to the
next.
"""
import pytest
import sys
import os
from datetime import date

# Point the app at SQLite before anything imports core.config
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("SECRET_KEY", "test-secret-key-that-is-at-least-32-characters-long")
os.environ.setdefault("LOG_FORMAT", "text")

# Add the parent directory to the path so we can import from services
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from core.database import Base, SessionLocal, engine, get_db
from core.security import ROLE_CLIENT, ROLE_COACH, create_access_token
from models import (
    ClientProfile,
    CoachClientRelationship,
    CoachProfile,
    Day,
    ExerciseDefinition,
    Plan,
    RelationshipStatus,
    ScheduledExercise,
    Week,
)

# Mon 2025-01-06 .. Sun 2025-01-12
PLAN_START = date(2025, 1, 6)

# One workout day per list of prescribed set counts; None is a rest day.
DEFAULT_WEEK_LAYOUT = [[3, 2], None, [4], None, [3], None, None]


@pytest.fixture(scope="function")
def db_session():
    """Fresh schema and session per test."""
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()

    yield session

    session.close()
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def coach(db_session):
    coach = CoachProfile(display_name="Test Coach")
    db_session.add(coach)
    db_session.commit()
    return coach


@pytest.fixture
def client_profile(db_session):
    client = ClientProfile(display_name="Test Client")
    db_session.add(client)
    db_session.commit()
    return client


@pytest.fixture
def relationship(db_session, coach, client_profile):
    rel = CoachClientRelationship(
        coach_id=coach.id,
        client_id=client_profile.id,
        status=RelationshipStatus.ACTIVE.value,
    )
    db_session.add(rel)
    db_session.commit()
    return rel


@pytest.fixture
def make_client(db_session):
    """Create another client, optionally paired with a coach."""

    def _make(display_name="Another Client", coach=None, status=RelationshipStatus.ACTIVE):
        client = ClientProfile(display_name=display_name)
        db_session.add(client)
        db_session.flush()
        if coach is not None:
            db_session.add(CoachClientRelationship(coach_id=coach.id, client_id=client.id, status=status.value))
        db_session.commit()
        return client

    return _make


@pytest.fixture
def make_plan(db_session, coach):
    """
    Build a plan template.

    Args:
        duration_weeks: Number of weeks to author
        layout: Per-week list of day entries (list of set counts, or None for rest)
        workouts_per_week: Optional explicit weekly target
    """

    def _make(duration_weeks=4, layout=None, workouts_per_week=None, owner=None):
        layout = layout or DEFAULT_WEEK_LAYOUT
        bench = ExerciseDefinition(name="Bench Press", category="push")
        db_session.add(bench)
        db_session.flush()

        plan = Plan(
            coach_id=(owner or coach).id,
            name="Strength Block",
            duration_weeks=duration_weeks,
            workouts_per_week=workouts_per_week,
        )
        db_session.add(plan)
        db_session.flush()

        for week_number in range(1, duration_weeks + 1):
            week = Week(plan_id=plan.id, week_number=week_number)
            db_session.add(week)
            db_session.flush()
            for i, entry in enumerate(layout):
                day = Day(
                    week_id=week.id,
                    day_number=i + 1,
                    is_rest_day=entry is None,
                    name=None if entry is None else f"Workout W{week_number}D{i + 1}",
                )
                db_session.add(day)
                db_session.flush()
                for order_index, sets in enumerate(entry or []):
                    db_session.add(ScheduledExercise(
                        day_id=day.id,
                        exercise_id=bench.id,
                        order_index=order_index,
                        sets=sets,
                        reps="8-10",
                    ))

        db_session.commit()
        db_session.refresh(plan)
        return plan

    return _make


@pytest.fixture
def assign(db_session):
    def _assign(client, plan, start_date=PLAN_START):
        client.active_plan_id = plan.id
        client.plan_start_date = start_date
        db_session.commit()
        return client

    return _assign


@pytest.fixture
def active_plan(make_plan, assign, client_profile):
    """Default plan assigned to the default client starting PLAN_START."""
    plan = make_plan()
    assign(client_profile, plan)
    return plan


def first_workout_day(plan, week_number=1):
    week = next(w for w in plan.weeks if w.week_number == week_number)
    return next(d for d in week.days if not d.is_rest_day)


@pytest.fixture
def api_client(db_session):
    """TestClient bound to the per-test session."""
    from fastapi.testclient import TestClient
    from main import app

    def _override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = _override_get_db
    yield TestClient(app)
    app.dependency_overrides.pop(get_db, None)


def auth_headers(profile_id, role):
    token = create_access_token({"sub": str(profile_id), "role": role})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def client_headers(client_profile):
    return auth_headers(client_profile.id, ROLE_CLIENT)


@pytest.fixture
def coach_headers(coach):
    return auth_headers(coach.id, ROLE_COACH)
