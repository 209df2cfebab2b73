"""
Tests for plan assignment and the relationship provider
"""
import pytest
from datetime import date
from unittest.mock import patch

from sqlalchemy.exc import IntegrityError

from core.events import EVENT_PLAN_ASSIGNED
from core.exceptions import NotFoundError
from models import CoachProfile
from services import relationships
from services.plan_assignment import assign_plan, unassign_plan


class TestAssignPlan:
    def test_sets_plan_and_start_together(self, db_session, coach, client_profile, relationship, make_plan):
        plan = make_plan()
        with patch("services.plan_assignment.emit") as mock_emit:
            client = assign_plan(db_session, coach.id, client_profile.id, plan.id, start_date=date(2025, 1, 1))

        assert client.active_plan_id == plan.id
        assert client.plan_start_date == date(2025, 1, 1)
        mock_emit.assert_called_once_with(EVENT_PLAN_ASSIGNED, client_id=str(client_profile.id), plan_id=str(plan.id))

    def test_defaults_start_to_today(self, db_session, coach, client_profile, relationship, make_plan):
        client = assign_plan(db_session, coach.id, client_profile.id, make_plan().id)
        assert client.plan_start_date is not None

    def test_plan_owned_by_another_coach(self, db_session, coach, client_profile, relationship, make_plan):
        other = CoachProfile(display_name="Other Coach")
        db_session.add(other)
        db_session.commit()
        plan = make_plan(owner=other)

        with pytest.raises(NotFoundError):
            assign_plan(db_session, coach.id, client_profile.id, plan.id)

    def test_requires_relationship(self, db_session, coach, client_profile, make_plan):
        with pytest.raises(NotFoundError):
            assign_plan(db_session, coach.id, client_profile.id, make_plan().id)

    def test_unassign_clears_both(self, db_session, coach, client_profile, relationship, make_plan):
        assign_plan(db_session, coach.id, client_profile.id, make_plan().id)
        client = unassign_plan(db_session, coach.id, client_profile.id)
        assert client.active_plan_id is None
        assert client.plan_start_date is None

    def test_half_assignment_rejected_by_schema(self, db_session, client_profile, make_plan):
        client_profile.active_plan_id = make_plan().id
        with pytest.raises(IntegrityError):
            db_session.commit()
        db_session.rollback()


class TestRelationships:
    def test_active_client_ids(self, db_session, coach, client_profile, relationship, make_client):
        make_client("Unpaired")
        assert relationships.active_client_ids(db_session, coach.id) == [client_profile.id]

    def test_unknown_profiles(self, db_session, coach):
        with pytest.raises(NotFoundError):
            relationships.get_client_profile(db_session, coach.id)
        with pytest.raises(NotFoundError):
            relationships.require_active_relationship(db_session, coach.id, coach.id)
