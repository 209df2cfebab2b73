"""
Tests for SetToggleBatcher (debounced set-toggle batching)
"""
import threading
from types import SimpleNamespace
from unittest.mock import MagicMock
from uuid import uuid4

import pytest

from conftest import first_workout_day
from core.database import SessionLocal
from models import SetCompletion
from services import workout_session
from services.set_toggle_batcher import SetToggleBatcher, session_flusher

EX_A = uuid4()
EX_B = uuid4()


def _batcher(flush_fn=None, on_flush_error=None, debounce_ms=60_000):
    # Long debounce by default so tests drive flushes explicitly
    return SetToggleBatcher(flush_fn or MagicMock(), on_flush_error=on_flush_error, debounce_ms=debounce_ms)


class TestLocalView:
    def test_toggle_updates_local_state_immediately(self):
        batcher = _batcher()
        assert batcher.toggle(EX_A, 1) is True
        assert batcher.is_completed(EX_A, 1) is True
        assert batcher.toggle(EX_A, 1) is False
        assert batcher.is_completed(EX_A, 1) is False
        batcher.close()

    def test_seed_from_server_rows(self):
        batcher = _batcher()
        batcher.seed([
            SimpleNamespace(scheduled_exercise_id=EX_A, set_number=1, completed=True),
            SimpleNamespace(scheduled_exercise_id=EX_A, set_number=2, completed=False),
        ])
        assert batcher.is_completed(EX_A, 1) is True
        assert batcher.toggle(EX_A, 1) is False
        batcher.close()


class TestFlush:
    def test_coalesces_to_latest_state_per_set(self):
        flush_fn = MagicMock()
        batcher = _batcher(flush_fn)

        batcher.toggle(EX_A, 1, actual_reps=8)
        batcher.toggle(EX_A, 1)
        batcher.toggle(EX_A, 1, actual_reps=10)
        batcher.toggle(EX_B, 2)
        assert batcher.pending_count == 2

        assert batcher.flush() is True
        flush_fn.assert_called_once()
        batch = {(u.exercise_id, u.set_number): u for u in flush_fn.call_args[0][0]}
        assert batch[(EX_A, 1)].completed is True
        assert batch[(EX_A, 1)].actual_reps == 10
        assert batch[(EX_B, 2)].completed is True
        assert batcher.pending_count == 0
        batcher.close()

    def test_flush_with_nothing_pending_is_a_no_op(self):
        flush_fn = MagicMock()
        batcher = _batcher(flush_fn)
        assert batcher.flush() is True
        flush_fn.assert_not_called()

    def test_timer_flushes_after_quiet_period(self):
        flushed = threading.Event()
        batches = []

        def flush_fn(batch):
            batches.append(batch)
            flushed.set()

        batcher = _batcher(flush_fn, debounce_ms=20)
        batcher.toggle(EX_A, 1)
        batcher.toggle(EX_A, 2)

        assert flushed.wait(timeout=2.0)
        assert len(batches) == 1
        assert len(batches[0]) == 2
        batcher.close()

    def test_failure_discards_optimistic_state_and_refetches(self):
        refetch = MagicMock()
        flush_fn = MagicMock(side_effect=RuntimeError("network down"))
        batcher = _batcher(flush_fn, on_flush_error=refetch)

        batcher.toggle(EX_A, 1)
        assert batcher.flush() is False

        refetch.assert_called_once()
        assert isinstance(refetch.call_args[0][0], RuntimeError)
        assert batcher.is_completed(EX_A, 1) is False
        assert batcher.pending_count == 0
        # No retry
        assert flush_fn.call_count == 1

    def test_close_flushes_and_rejects_further_toggles(self):
        flush_fn = MagicMock()
        batcher = _batcher(flush_fn)
        batcher.toggle(EX_A, 1)

        assert batcher.close() is True
        flush_fn.assert_called_once()
        with pytest.raises(RuntimeError):
            batcher.toggle(EX_A, 2)


class TestSessionFlusher:
    def test_writes_batch_through_set_batch(self, db_session, client_profile, active_plan):
        day = first_workout_day(active_plan)
        completion = workout_session.start(db_session, client_profile.id, day.id).completion
        exercise = sorted(day.exercises, key=lambda e: e.order_index)[0]

        batcher = SetToggleBatcher(session_flusher(SessionLocal, client_profile.id, completion.id), debounce_ms=60_000)
        batcher.toggle(exercise.id, 1, actual_weight=50.0, actual_reps=5)
        batcher.toggle(exercise.id, 3)
        assert batcher.flush_before_finish() is True

        db_session.expire_all()
        completed = {
            r.set_number for r in db_session.query(SetCompletion).filter(
                SetCompletion.workout_completion_id == completion.id,
                SetCompletion.completed.is_(True),
            )
        }
        assert completed == {1, 3}

        done = workout_session.finish(db_session, client_profile.id, completion.id)
        assert done.completion_pct == pytest.approx(2 / 5)


class TestInFlightFlush:
    @staticmethod
    def _blocking_failure(entered, release):
        def flush_fn(batch):
            entered.set()
            assert release.wait(timeout=2.0)
            raise RuntimeError("server rejected batch")

        return flush_fn

    def test_failed_flush_drops_toggles_queued_during_flight(self):
        entered, release = threading.Event(), threading.Event()
        refetch = MagicMock()
        batcher = _batcher(self._blocking_failure(entered, release), on_flush_error=refetch)

        batcher.toggle(EX_A, 1)
        results = []
        worker = threading.Thread(target=lambda: results.append(batcher.flush()))
        worker.start()
        assert entered.wait(timeout=2.0)

        batcher.toggle(EX_A, 2)
        assert batcher.pending_count == 1

        release.set()
        worker.join(timeout=2.0)

        assert results == [False]
        refetch.assert_called_once()
        assert batcher.pending_count == 0
        assert batcher.is_completed(EX_A, 2) is False
        assert batcher._timer is None

    def test_close_waits_for_timer_flush_and_reports_failure(self):
        entered, release = threading.Event(), threading.Event()
        batcher = _batcher(self._blocking_failure(entered, release), debounce_ms=10)

        batcher.toggle(EX_A, 1)
        assert entered.wait(timeout=2.0)

        results = []
        closer = threading.Thread(target=lambda: results.append(batcher.close()))
        closer.start()
        closer.join(timeout=0.1)
        assert closer.is_alive()

        release.set()
        closer.join(timeout=2.0)
        assert results == [False]

    def test_close_after_successful_timer_flush(self):
        flushed = threading.Event()
        batcher = _batcher(lambda batch: flushed.set(), debounce_ms=10)

        batcher.toggle(EX_A, 1)
        assert flushed.wait(timeout=2.0)
        assert batcher.close() is True
