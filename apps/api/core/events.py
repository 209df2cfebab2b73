"""
In-process domain events.

Services emit a fact after the write it describes has been committed.
Handlers are side hooks; a failing handler is logged and never reaches the
caller or the other handlers.
"""
import logging
from collections import defaultdict
from typing import Callable, DefaultDict, List

logger = logging.getLogger(__name__)

EVENT_WORKOUT_STARTED = "workout.started"
EVENT_WORKOUT_SETS_UPDATED = "workout.sets_updated"
EVENT_WORKOUT_FINISHED = "workout.finished"
EVENT_EXERCISE_FLAGGED = "exercise.flagged"
EVENT_CHECKIN_INITIATED = "checkin.initiated"
EVENT_CHECKIN_CLIENT_RESPONDED = "checkin.client_responded"
EVENT_CHECKIN_COMPLETED = "checkin.completed"
EVENT_CHECKIN_SCHEDULE_UPDATED = "checkin.schedule_updated"
EVENT_PLAN_ASSIGNED = "plan.assigned"

_handlers: DefaultDict[str, List[Callable]] = defaultdict(list)


def subscribe(event_name: str, handler: Callable):
    _handlers[event_name].append(handler)


def unsubscribe(event_name: str, handler: Callable):
    if handler in _handlers.get(event_name, ()):
        _handlers[event_name].remove(handler)


def emit(event_name: str, **payload):
    """
    Call every handler subscribed to ``event_name`` with ``payload``.

    Example:
        emit(EVENT_WORKOUT_FINISHED, completion_id=str(wc.id), client_id=str(wc.client_id), at=now)
    """
    for handler in list(_handlers.get(event_name, ())):
        try:
            handler(**payload)
        except Exception:
            logger.exception(
                "Event handler failed",
                extra={"extra_fields": {"event": event_name, "handler": getattr(handler, "__name__", repr(handler))}},
            )
