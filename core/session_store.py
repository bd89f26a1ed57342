"""
Single owner of the SessionState.

Every change is an event run through ``reduce(state, event) -> state``. The
reducer is pure, so a session can be rebuilt from its event history with
``replay``.
"""

import functools
import logging
import time
from dataclasses import replace
from typing import Callable, Dict, Iterable, Optional

from . import load_tracker, navigation, overlay_timer, scan_coordinator, tag_workflow
from .event_system import (
    EventData, EventSystem, EventType, StateChangedEventData, event_system,
)
from .session_state import SessionState

Reducer = Callable[[SessionState, EventData], SessionState]


def _selection_change(transition: Reducer) -> Reducer:
    """Wrap a navigation transition so the overlay follows the selection."""
    @functools.wraps(transition)
    def wrapped(state: SessionState, event: EventData) -> SessionState:
        return overlay_timer.follow_selection(state, transition(state, event))
    return wrapped


_REDUCERS: Dict[EventType, Reducer] = {
    EventType.SCAN_REQUESTED: lambda s, e: scan_coordinator.begin_scan(s),
    EventType.SCAN_COMPLETED: lambda s, e: scan_coordinator.complete_scan(s, e.ticket, e.images),
    EventType.SCAN_FAILED: lambda s, e: scan_coordinator.fail_scan(s, e.ticket),
    EventType.IMAGE_LOADED: lambda s, e: load_tracker.mark_loaded(s, e.image_id, e.scan_generation),
    EventType.SEARCH_CHANGED: lambda s, e: s if s.search_query == e.query else replace(s, search_query=e.query),
    EventType.IMAGE_SELECTED: _selection_change(lambda s, e: navigation.select(s, e.image_id)),
    EventType.SELECTION_CLEARED: _selection_change(lambda s, e: navigation.clear_selection(s)),
    EventType.NAVIGATE_NEXT: _selection_change(lambda s, e: navigation.go_to_next(s)),
    EventType.NAVIGATE_PREVIOUS: _selection_change(lambda s, e: navigation.go_to_previous(s)),
    EventType.KEY_PRESS: _selection_change(lambda s, e: navigation.handle_key(s, e.key)),
    EventType.TAGS_REQUESTED: lambda s, e: tag_workflow.begin_tag_generation(s, e.image_id),
    EventType.TAGS_GENERATED: lambda s, e: tag_workflow.complete_tag_generation(s, e.request, e.tags),
    EventType.TAGS_FAILED: lambda s, e: tag_workflow.fail_tag_generation(s),
    EventType.INFERENCE_CHECKED: lambda s, e: s if s.inference_available == e.available else replace(s, inference_available=e.available),
    EventType.OVERLAY_TOGGLED: lambda s, e: overlay_timer.toggle_overlay(s),
    EventType.OVERLAY_EXPIRED: lambda s, e: overlay_timer.expire_overlay(s, e.epoch),
}


def reduce(state: SessionState, event: EventData) -> SessionState:
    reducer = _REDUCERS.get(event.event_type)
    if reducer is None:
        logging.warning(f"No reducer for event type {event.event_type.value}")
        return state
    return reducer(state, event)


def replay(events: Iterable[EventData], initial: Optional[SessionState] = None) -> SessionState:
    return functools.reduce(reduce, events, initial or SessionState())


class SessionStore:
    """Holds the current state and announces every transition on the event bus."""

    def __init__(self, bus: Optional[EventSystem] = None, initial: Optional[SessionState] = None):
        self.bus = bus or event_system
        self._state = initial or SessionState()

    @property
    def state(self) -> SessionState:
        return self._state

    def dispatch(self, event: EventData) -> SessionState:
        previous = self._state
        self._state = reduce(previous, event)
        self.bus.publish(event)
        if self._state is not previous:
            self.bus.publish(StateChangedEventData(
                event_type=EventType.STATE_CHANGED,
                source="session_store",
                timestamp=time.time(),
                previous=previous,
                state=self._state,
                cause=event,
            ))
        return self._state
