from typing import Dict, List, Callable, Optional, Tuple
from dataclasses import dataclass
from collections import deque
from enum import Enum
import logging
import threading

from .navigation import NavigationKey
from .session_state import ImageRecord, SessionState, TagRequest


class EventType(Enum):
    # Scan events
    SCAN_REQUESTED = "scan_requested"
    SCAN_COMPLETED = "scan_completed"
    SCAN_FAILED = "scan_failed"

    # Grid events
    IMAGE_LOADED = "image_loaded"
    SEARCH_CHANGED = "search_changed"

    # Selection & navigation events
    IMAGE_SELECTED = "image_selected"
    SELECTION_CLEARED = "selection_cleared"
    NAVIGATE_NEXT = "navigate_next"
    NAVIGATE_PREVIOUS = "navigate_previous"
    KEY_PRESS = "key_press"

    # Tag generation events
    TAGS_REQUESTED = "tags_requested"
    TAGS_GENERATED = "tags_generated"
    TAGS_FAILED = "tags_failed"
    INFERENCE_CHECKED = "inference_checked"

    # Overlay events
    OVERLAY_TOGGLED = "overlay_toggled"
    OVERLAY_EXPIRED = "overlay_expired"

    # Published by the SessionStore after every applied event
    STATE_CHANGED = "state_changed"


@dataclass
class EventData:
    event_type: EventType
    source: str  # Component that produced the event
    timestamp: float


@dataclass
class ScanRequestedEventData(EventData):
    folder_path: str


@dataclass
class ScanCompletedEventData(EventData):
    ticket: int
    images: Tuple[ImageRecord, ...]


@dataclass
class ScanFailedEventData(EventData):
    ticket: int
    reason: str


@dataclass
class ImageLoadedEventData(EventData):
    image_id: str
    scan_generation: Optional[int] = None  # generation the load was started for


@dataclass
class SearchChangedEventData(EventData):
    query: str


@dataclass
class ImageSelectedEventData(EventData):
    image_id: str


@dataclass
class KeyEventData(EventData):
    key: NavigationKey


@dataclass
class TagsRequestedEventData(EventData):
    image_id: str


@dataclass
class TagsGeneratedEventData(EventData):
    request: TagRequest
    tags: Tuple[str, ...]


@dataclass
class TagsFailedEventData(EventData):
    request: TagRequest
    reason: str


@dataclass
class InferenceCheckedEventData(EventData):
    available: bool


@dataclass
class OverlayExpiredEventData(EventData):
    epoch: int


@dataclass
class StateChangedEventData(EventData):
    previous: SessionState
    state: SessionState
    cause: EventData


# Not kept in history: they carry whole state snapshots and would evict the
# events needed to replay a session.
_EPHEMERAL_EVENT_TYPES: frozenset = frozenset({EventType.STATE_CHANGED})


class EventSystem:
    def __init__(self):
        self._subscribers: Dict[EventType, List[Callable]] = {}
        self._event_history: deque[EventData] = deque(maxlen=500)
        self._lock = threading.Lock()

    def subscribe(self, event_type: EventType, callback: Callable[[EventData], None]):
        with self._lock:
            if event_type not in self._subscribers:
                self._subscribers[event_type] = []
            self._subscribers[event_type].append(callback)
        logging.debug(f"Subscribed to {event_type.value}: {getattr(callback, '__name__', callback)}")

    def unsubscribe(self, event_type: EventType, callback: Callable[[EventData], None]):
        with self._lock:
            if event_type in self._subscribers:
                try:
                    self._subscribers[event_type].remove(callback)
                except ValueError:
                    logging.warning(f"Callback not found for {event_type.value}")

    def publish(self, event_data: EventData):
        with self._lock:
            event_type = event_data.event_type
            if event_type not in _EPHEMERAL_EVENT_TYPES:
                self._event_history.append(event_data)
            # Snapshot so callbacks can subscribe/unsubscribe while we iterate.
            callbacks = list(self._subscribers.get(event_type, []))

        for callback in callbacks:
            try:
                callback(event_data)
            except Exception as e:
                # why: one broken view must not stop the others from rendering the new state
                logging.error(f"Error in event callback for {event_type.value}: {e}", exc_info=True)

        logging.debug("Published event: %s from %s", event_type.value, event_data.source)

    def get_event_history(self, event_type: Optional[EventType] = None) -> List[EventData]:
        if event_type:
            return [e for e in self._event_history if e.event_type == event_type]
        return list(self._event_history)

    def clear_history(self):
        self._event_history.clear()


event_system = EventSystem()
