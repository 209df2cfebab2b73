"""
Tests for the client progress summary
"""
import pytest
from datetime import date, datetime, timedelta, timezone

from models import Day, Week, WorkoutCompletion, WorkoutStatus
from services.client_progress import day_streak, progress_summary

NOW = datetime(2025, 3, 12, 20, 0, tzinfo=timezone.utc)
TODAY = NOW.date()


class TestDayStreak:
    def test_counts_back_from_today(self):
        dates = [TODAY, TODAY - timedelta(days=1), TODAY - timedelta(days=2)]
        assert day_streak(dates, TODAY) == 3

    def test_missing_today_does_not_break(self):
        dates = [TODAY - timedelta(days=1), TODAY - timedelta(days=2)]
        assert day_streak(dates, TODAY) == 2

    def test_gap_ends_streak(self):
        dates = [TODAY, TODAY - timedelta(days=2)]
        assert day_streak(dates, TODAY) == 1

    def test_duplicates_count_once(self):
        assert day_streak([TODAY, TODAY], TODAY) == 1

    def test_empty(self):
        assert day_streak([], TODAY) == 0


class TestProgressSummary:
    def _complete_days(self, db_session, client, plan, offsets_and_pct):
        days = [d for w in plan.weeks for d in w.days if not d.is_rest_day]
        for day, (offset, pct) in zip(days, offsets_and_pct):
            db_session.add(WorkoutCompletion(
                client_id=client.id,
                plan_id=plan.id,
                day_id=day.id,
                status=WorkoutStatus.COMPLETED.value,
                started_at=NOW - timedelta(days=offset, hours=1),
                completed_at=NOW - timedelta(days=offset),
                completion_pct=pct,
            ))
        db_session.commit()

    def test_summary(self, db_session, client_profile, active_plan):
        self._complete_days(db_session, client_profile, active_plan, [
            (1, 1.0),
            (2, 0.5),
            (10, 0.75),
        ])

        summary = progress_summary(db_session, client_profile.id, now=NOW)

        assert summary.total_workouts == 3
        assert summary.workouts_last_7_days == 2
        assert len(summary.recent_completions) == 2
        assert summary.recent_completions[0].completion_pct == 1.0  # newest first
        assert summary.avg_completion_pct == 0.75
        assert summary.current_streak == 2

    def test_in_progress_ignored(self, db_session, client_profile, active_plan):
        day = next(d for d in active_plan.weeks[0].days if not d.is_rest_day)
        db_session.add(WorkoutCompletion(
            client_id=client_profile.id,
            plan_id=active_plan.id,
            day_id=day.id,
            status=WorkoutStatus.IN_PROGRESS.value,
            started_at=NOW,
        ))
        db_session.commit()

        summary = progress_summary(db_session, client_profile.id, now=NOW)
        assert summary.total_workouts == 0
        assert summary.avg_completion_pct == 0.0
        assert summary.current_streak == 0
