"""
Debounced set-toggle batching for an in-progress workout.

Every tap updates the local view immediately and lands in a pending map keyed
by (exercise_id, set_number), so repeated taps on the same set coalesce to the
latest state. One resettable timer per session fires the flush once the user
stops tapping for the debounce window. The pending map is also flushed before
finish and on close().

A failed flush drops the optimistic view and calls the refetch hook so the
caller can reload from the server. Nothing is retried here.
"""

import logging
import threading
from typing import Callable, Dict, Iterable, List, Optional, Tuple
from uuid import UUID

from core.config import settings
from services.workout_session import SetUpdate, apply_set_batch

logger = logging.getLogger(__name__)

SetKey = Tuple[UUID, int]


class SetToggleBatcher:
    """
    Caller-side batcher for one workout session.

    Args:
        flush_fn: Called with the coalesced List[SetUpdate]; raises on failure
        on_flush_error: Refetch hook, called with the exception after a failed flush
        debounce_ms: Quiet period before an automatic flush
    """

    def __init__(
        self,
        flush_fn: Callable[[List[SetUpdate]], object],
        on_flush_error: Optional[Callable[[Exception], None]] = None,
        debounce_ms: Optional[int] = None,
    ):
        self._flush_fn = flush_fn
        self._on_flush_error = on_flush_error
        ms = settings.SET_BATCH_DEBOUNCE_MS if debounce_ms is None else debounce_ms
        self._debounce_seconds = ms / 1000.0

        self._lock = threading.Lock()
        self._flush_lock = threading.Lock()
        self._pending: Dict[SetKey, SetUpdate] = {}
        self._local: Dict[SetKey, bool] = {}
        self._timer: Optional[threading.Timer] = None
        self._closed = False
        self._unreported_failure = False

    # -------------------------------------------------------------------------
    # Local view
    # -------------------------------------------------------------------------

    def seed(self, rows: Iterable) -> None:
        """Load server state (rows with scheduled_exercise_id, set_number, completed)."""
        with self._lock:
            self._local = {
                (row.scheduled_exercise_id, row.set_number): bool(row.completed)
                for row in rows
            }

    def is_completed(self, exercise_id: UUID, set_number: int) -> bool:
        with self._lock:
            return self._local.get((exercise_id, set_number), False)

    @property
    def pending_count(self) -> int:
        with self._lock:
            return len(self._pending)

    # -------------------------------------------------------------------------
    # Toggling / flushing
    # -------------------------------------------------------------------------

    def toggle(
        self,
        exercise_id: UUID,
        set_number: int,
        actual_weight: Optional[float] = None,
        actual_reps: Optional[int] = None,
    ) -> bool:
        """Flip one set locally, queue it, and restart the debounce timer. Returns the new state."""
        key = (exercise_id, set_number)
        with self._lock:
            if self._closed:
                raise RuntimeError("SetToggleBatcher is closed")

            new_state = not self._local.get(key, False)
            self._local[key] = new_state
            self._pending[key] = SetUpdate(
                exercise_id=exercise_id,
                set_number=set_number,
                completed=new_state,
                actual_weight=actual_weight if new_state else None,
                actual_reps=actual_reps if new_state else None,
            )
            self._restart_timer_locked()

        return new_state

    def _restart_timer_locked(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
        self._timer = threading.Timer(self._debounce_seconds, self._on_timer)
        self._timer.daemon = True
        self._timer.start()

    def _on_timer(self) -> None:
        self._flush(reported=False)

    def flush(self) -> bool:
        """
        Send all pending toggles as one batch.

        Waits for any flush already in flight, so at most one batch is sent at
        a time.

        Returns:
            True if nothing was pending or the batch was accepted, False on failure
        """
        return self._flush(reported=True)

    def _flush(self, reported: bool) -> bool:
        error: Optional[Exception] = None
        with self._flush_lock:
            with self._lock:
                if self._timer is not None:
                    self._timer.cancel()
                    self._timer = None
                batch = list(self._pending.values())
                self._pending.clear()

            if not batch:
                return True

            try:
                self._flush_fn(batch)
            except Exception as e:
                error = e
                logger.warning(
                    "Set batch flush failed; discarding optimistic state",
                    extra={"extra_fields": {"batch_size": len(batch), "error": str(e)}},
                )
                # Toggles queued during the failed flight were computed from the
                # discarded view; drop them with it.
                with self._lock:
                    self._local.clear()
                    self._pending.clear()
                    if self._timer is not None:
                        self._timer.cancel()
                        self._timer = None
                    if not reported:
                        self._unreported_failure = True

        if error is not None:
            if self._on_flush_error is not None:
                self._on_flush_error(error)
            return False

        logger.debug("Set batch flushed", extra={"extra_fields": {"batch_size": len(batch)}})
        return True

    def flush_before_finish(self) -> bool:
        return self.flush()

    def close(self) -> bool:
        """
        Flush whatever is pending and stop accepting toggles.

        Returns False if this flush failed, or if a timer-driven flush failed
        since the last close.
        """
        result = self.flush()
        with self._lock:
            self._closed = True
            timer_failed = self._unreported_failure
            self._unreported_failure = False
        return result and not timer_failed


def session_flusher(session_factory, client_id: UUID, completion_id: UUID) -> Callable[[List[SetUpdate]], object]:
    """flush_fn that writes each batch through apply_set_batch in its own session."""

    def _flush(batch: List[SetUpdate]):
        db = session_factory()
        try:
            return apply_set_batch(db, client_id, completion_id, batch)
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    return _flush
