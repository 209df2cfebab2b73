"""
Tests for the check-in lifecycle (PENDING -> CLIENT_RESPONDED -> COMPLETED)
"""
import pytest
from datetime import datetime, timedelta, timezone
from uuid import uuid4

from core.exceptions import InvalidInputError, NotFoundError
from models import CheckInSource, CheckInStatus, RelationshipStatus
from services import check_in_lifecycle

NOW = datetime(2025, 2, 3, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def pending(db_session, coach, client_profile, relationship):
    return check_in_lifecycle.initiate(db_session, coach.id, client_profile.id, now=NOW)


class TestInitiate:
    def test_creates_pending(self, pending, coach, client_profile):
        assert pending.status == CheckInStatus.PENDING.value
        assert pending.source == CheckInSource.COACH.value
        assert pending.coach_id == coach.id
        assert pending.client_id == client_profile.id
        assert pending.plan_adjustment is False

    def test_requires_active_relationship(self, db_session, coach, client_profile):
        with pytest.raises(NotFoundError):
            check_in_lifecycle.initiate(db_session, coach.id, client_profile.id)

    def test_inactive_relationship(self, db_session, coach, make_client):
        former = make_client(coach=coach, status=RelationshipStatus.INACTIVE)
        with pytest.raises(NotFoundError):
            check_in_lifecycle.initiate(db_session, coach.id, former.id)

    def test_coach_may_initiate_while_one_is_in_flight(self, db_session, coach, client_profile, pending):
        second = check_in_lifecycle.initiate(db_session, coach.id, client_profile.id, now=NOW)
        assert second.id != pending.id


class TestClientRespond:
    def test_writes_client_fields(self, db_session, client_profile, pending):
        responded = check_in_lifecycle.client_respond(
            db_session, client_profile.id, pending.id,
            effort_rating="MEDIUM", pain_blockers="Lower back tight", client_feeling="Good week",
            now=NOW + timedelta(hours=2),
        )
        assert responded.status == CheckInStatus.CLIENT_RESPONDED.value
        assert responded.effort_rating == "MEDIUM"
        assert responded.pain_blockers == "Lower back tight"
        assert responded.client_feeling == "Good week"
        assert responded.client_responded_at is not None

    def test_only_from_pending(self, db_session, client_profile, pending):
        check_in_lifecycle.client_respond(db_session, client_profile.id, pending.id)
        with pytest.raises(NotFoundError):
            check_in_lifecycle.client_respond(db_session, client_profile.id, pending.id)

    def test_other_client(self, db_session, pending, make_client):
        with pytest.raises(NotFoundError):
            check_in_lifecycle.client_respond(db_session, make_client().id, pending.id)

    def test_invalid_effort(self, db_session, client_profile, pending):
        with pytest.raises(InvalidInputError):
            check_in_lifecycle.client_respond(db_session, client_profile.id, pending.id, effort_rating="MEH")
        assert pending.status == CheckInStatus.PENDING.value


class TestCoachRespond:
    def test_completes(self, db_session, coach, client_profile, pending):
        check_in_lifecycle.client_respond(db_session, client_profile.id, pending.id)
        done = check_in_lifecycle.coach_respond(
            db_session, coach.id, pending.id, coach_feedback="Deload next week", plan_adjustment=True,
            now=NOW + timedelta(days=1),
        )
        assert done.status == CheckInStatus.COMPLETED.value
        assert done.coach_feedback == "Deload next week"
        assert done.plan_adjustment is True
        assert done.completed_at is not None
        assert done.coach_responded_at is not None

    def test_cannot_skip_client_response(self, db_session, coach, pending):
        with pytest.raises(NotFoundError):
            check_in_lifecycle.coach_respond(db_session, coach.id, pending.id)

    def test_completed_is_immutable(self, db_session, coach, client_profile, pending):
        check_in_lifecycle.client_respond(db_session, client_profile.id, pending.id)
        check_in_lifecycle.coach_respond(db_session, coach.id, pending.id, coach_feedback="Nice")
        with pytest.raises(NotFoundError):
            check_in_lifecycle.coach_respond(db_session, coach.id, pending.id, coach_feedback="Changed")
        with pytest.raises(NotFoundError):
            check_in_lifecycle.client_respond(db_session, client_profile.id, pending.id)

    def test_other_coach(self, db_session, client_profile, pending):
        check_in_lifecycle.client_respond(db_session, client_profile.id, pending.id)
        with pytest.raises(NotFoundError):
            check_in_lifecycle.coach_respond(db_session, uuid4(), pending.id)


class TestListCheckIns:
    def test_newest_first(self, db_session, coach, client_profile, relationship):
        older = check_in_lifecycle.initiate(db_session, coach.id, client_profile.id, now=NOW - timedelta(days=7))
        newer = check_in_lifecycle.initiate(db_session, coach.id, client_profile.id, now=NOW)

        history = check_in_lifecycle.list_check_ins(db_session, client_profile.id, coach_id=coach.id)
        assert [c.id for c in history] == [newer.id, older.id]

    def test_status_filter(self, db_session, coach, client_profile, pending):
        assert check_in_lifecycle.list_check_ins(db_session, client_profile.id, status=CheckInStatus.COMPLETED) == []
        assert len(check_in_lifecycle.list_check_ins(db_session, client_profile.id, status=CheckInStatus.PENDING)) == 1


class TestGetCheckIn:
    def test_readable_by_both_parties(self, db_session, coach, client_profile, pending):
        as_coach = check_in_lifecycle.get_check_in(db_session, pending.id, coach_id=coach.id)
        as_client = check_in_lifecycle.get_check_in(db_session, pending.id, client_id=client_profile.id)
        assert as_coach.id == as_client.id == pending.id

    def test_other_client(self, db_session, pending, make_client):
        with pytest.raises(NotFoundError):
            check_in_lifecycle.get_check_in(db_session, pending.id, client_id=make_client().id)

    def test_roles_are_not_interchangeable(self, db_session, coach, client_profile, pending):
        with pytest.raises(NotFoundError):
            check_in_lifecycle.get_check_in(db_session, pending.id, coach_id=client_profile.id)
        with pytest.raises(NotFoundError):
            check_in_lifecycle.get_check_in(db_session, pending.id, client_id=coach.id)

    def test_requires_exactly_one_caller(self, db_session, coach, client_profile, pending):
        with pytest.raises(NotFoundError):
            check_in_lifecycle.get_check_in(db_session, pending.id)
        with pytest.raises(NotFoundError):
            check_in_lifecycle.get_check_in(db_session, pending.id, coach_id=coach.id, client_id=client_profile.id)

    def test_unknown_id(self, db_session, coach, pending):
        with pytest.raises(NotFoundError):
            check_in_lifecycle.get_check_in(db_session, uuid4(), coach_id=coach.id)
