"""
Tests for check-in scheduling (is_due, schedules and the due scan)
"""
import pytest
from datetime import date, datetime, timedelta, timezone
from types import SimpleNamespace

from core.exceptions import NotFoundError
from models import CheckIn, CheckInSource, CheckInStatus, ScheduleStatus
from services import check_in_lifecycle, check_in_scheduler
from services.check_in_scheduler import is_due

ANCHOR = date(2025, 3, 3)
ANCHOR_AT = datetime(2025, 3, 3, tzinfo=timezone.utc)


def _schedule(status="ACTIVE", anchor=ANCHOR, cadence=7):
    return SimpleNamespace(status=status, anchor_date=anchor, cadence_days=cadence)


class TestIsDue:
    def test_not_due_inside_first_cadence(self):
        assert is_due(_schedule(), None, ANCHOR_AT + timedelta(days=6, hours=23)) is False

    def test_due_after_full_cadence_from_anchor(self):
        assert is_due(_schedule(), None, ANCHOR_AT + timedelta(days=7)) is True

    def test_paused_schedule_never_due(self):
        assert is_due(_schedule(status="PAUSED"), None, ANCHOR_AT + timedelta(days=30)) is False

    def test_in_flight_check_in_blocks(self):
        assert is_due(_schedule(), None, ANCHOR_AT + timedelta(days=30), has_in_flight=True) is False

    def test_last_completion_resets_reference(self):
        last = ANCHOR_AT + timedelta(days=10)
        assert is_due(_schedule(), last, last) is False
        assert is_due(_schedule(), last, last + timedelta(days=6)) is False
        assert is_due(_schedule(), last, last + timedelta(days=7)) is True

    def test_anchor_moved_past_last_completion(self):
        last = ANCHOR_AT - timedelta(days=30)
        assert is_due(_schedule(), last, ANCHOR_AT + timedelta(days=3)) is False

    def test_naive_last_check_in_treated_as_utc(self):
        last = datetime(2025, 3, 10, 8, 0)
        assert is_due(_schedule(), last, datetime(2025, 3, 17, 8, 0, tzinfo=timezone.utc)) is True


class TestUpsertSchedule:
    def test_create_then_pause(self, db_session, coach, client_profile, relationship):
        created = check_in_scheduler.upsert_schedule(db_session, coach.id, client_profile.id, anchor_date=ANCHOR)
        assert created.status == ScheduleStatus.ACTIVE.value
        assert created.cadence_days == 7
        assert created.anchor_date == ANCHOR

        paused = check_in_scheduler.upsert_schedule(
            db_session, coach.id, client_profile.id, status=ScheduleStatus.PAUSED
        )
        assert paused.id == created.id
        assert paused.status == ScheduleStatus.PAUSED.value
        assert paused.anchor_date == ANCHOR

    def test_requires_relationship(self, db_session, coach, client_profile):
        with pytest.raises(NotFoundError):
            check_in_scheduler.upsert_schedule(db_session, coach.id, client_profile.id)


class TestDetectDueCheckIns:
    @pytest.fixture
    def schedule(self, db_session, coach, client_profile, relationship):
        return check_in_scheduler.upsert_schedule(db_session, coach.id, client_profile.id, anchor_date=ANCHOR)

    def test_creates_scheduled_check_in_once(self, db_session, schedule):
        now = ANCHOR_AT + timedelta(days=8)

        created = check_in_scheduler.detect_due_check_ins(db_session, now=now)
        assert len(created) == 1
        assert created[0].source == CheckInSource.SCHEDULE.value
        assert created[0].status == CheckInStatus.PENDING.value

        assert check_in_scheduler.detect_due_check_ins(db_session, now=now) == []
        assert db_session.query(CheckIn).count() == 1

    def test_not_due_right_after_initiation(self, db_session, coach, client_profile, schedule):
        check_in_lifecycle.initiate(db_session, coach.id, client_profile.id, now=ANCHOR_AT + timedelta(days=8))
        assert check_in_scheduler.detect_due_check_ins(db_session, now=ANCHOR_AT + timedelta(days=9)) == []

    def test_not_due_right_after_completion(self, db_session, coach, client_profile, schedule):
        initiated_at = ANCHOR_AT + timedelta(days=8)
        check_in = check_in_lifecycle.initiate(db_session, coach.id, client_profile.id, now=initiated_at)
        check_in_lifecycle.client_respond(db_session, client_profile.id, check_in.id, now=initiated_at)
        completed_at = initiated_at + timedelta(days=1)
        check_in_lifecycle.coach_respond(db_session, coach.id, check_in.id, now=completed_at)

        assert check_in_scheduler.last_completed_check_in_at(db_session, coach.id, client_profile.id) == completed_at
        assert check_in_scheduler.detect_due_check_ins(db_session, now=completed_at) == []
        assert check_in_scheduler.detect_due_check_ins(db_session, now=completed_at + timedelta(days=6)) == []
        assert len(check_in_scheduler.detect_due_check_ins(db_session, now=completed_at + timedelta(days=7))) == 1

    def test_paused_schedule_skipped(self, db_session, coach, client_profile, schedule):
        check_in_scheduler.upsert_schedule(db_session, coach.id, client_profile.id, status=ScheduleStatus.PAUSED)
        assert check_in_scheduler.detect_due_check_ins(db_session, now=ANCHOR_AT + timedelta(days=30)) == []

    def test_ended_relationship_skipped(self, db_session, relationship, schedule):
        relationship.status = "INACTIVE"
        db_session.commit()
        assert check_in_scheduler.detect_due_check_ins(db_session, now=ANCHOR_AT + timedelta(days=30)) == []
