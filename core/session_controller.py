"""
Orchestrates the gallery session: user intents become events on the
SessionStore, backend calls run on a worker executor, and their results are
posted back to the GUI thread before they become events.

All state changes therefore happen on one thread. The only suspension points
are the scan and tag requests; neither can be cancelled, so a late result is
either applied by identity (tags) or discarded by ticket (scans).
"""

import logging
import time
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Callable, Optional, Protocol, Tuple

from . import overlay_timer
from .errors import GalleryError, ScanFailure, TagGenerationFailure
from .event_system import (
    EventData, EventType, ImageLoadedEventData, ImageSelectedEventData, InferenceCheckedEventData, KeyEventData,
    OverlayExpiredEventData, ScanCompletedEventData, ScanFailedEventData, ScanRequestedEventData,
    SearchChangedEventData, TagsFailedEventData, TagsGeneratedEventData, TagsRequestedEventData,
)
from .navigation import NavigationKey
from .scan_coordinator import build_records
from .session_state import ImageRecord, SessionState, TagRequest
from .session_store import SessionStore


class DebounceTimer(Protocol):
    """Single-shot timer; arming again replaces the pending callback."""

    def arm(self, delay_ms: int, callback: Callable[[], None]) -> None: ...

    def cancel(self) -> None: ...


class SessionController:
    def __init__(
        self,
        store: SessionStore,
        backend,
        executor: Optional[ThreadPoolExecutor] = None,
        post: Optional[Callable[[Callable[[], None]], None]] = None,
        overlay_timer: Optional[DebounceTimer] = None,
    ):
        """
        Args:
            store: Owner of the session state.
            backend: Client exposing ``scan_folder``, ``generate_tags`` and
                ``check_inference``.
            executor: Runs backend calls; defaults to a small thread pool.
            post: Delivers a callable to the GUI thread. Defaults to calling it
                inline, which is only correct when the executor is synchronous.
            overlay_timer: Debounced timer driving the overlay auto-hide.
        """
        self.store = store
        self.backend = backend
        self._owns_executor = executor is None
        self._executor = executor or ThreadPoolExecutor(max_workers=2, thread_name_prefix="backend")
        self._post = post or (lambda fn: fn())
        self._overlay_timer = overlay_timer

    @property
    def state(self) -> SessionState:
        return self.store.state

    # ------------------------------------------------------------------
    # Scanning
    # ------------------------------------------------------------------

    def request_scan(self, folder_path: Optional[str]) -> Optional[int]:
        """Start scanning *folder_path*; returns the scan ticket.

        ``None`` means the folder prompt was cancelled, which is a no-op.
        """
        if not folder_path:
            logging.info("Folder selection cancelled; no scan started.")
            return None
        state = self._dispatch(ScanRequestedEventData(
            event_type=EventType.SCAN_REQUESTED,
            source="session_controller",
            timestamp=time.time(),
            folder_path=folder_path,
        ))
        ticket = state.latest_scan_ticket
        logging.info(f"Scan {ticket} requested for {folder_path}")
        future = self._executor.submit(self._scan_worker, folder_path)
        future.add_done_callback(lambda f, t=ticket: self._post(lambda: self._on_scan_done(t, f)))
        return ticket

    def _scan_worker(self, folder_path: str) -> Tuple[ImageRecord, ...]:
        """Runs on the executor."""
        response = self.backend.scan_folder(folder_path)
        if response is None:
            raise ScanFailure("Backend unreachable")
        if response.status != "success":
            raise ScanFailure(response.message or "Scan failed")
        return build_records(response.images)

    def _on_scan_done(self, ticket: int, future: Future) -> None:
        try:
            records = future.result()
        except GalleryError as e:
            logging.error(f"Failed to scan folder: {e}")
            self._scan_failed(ticket, str(e))
            return
        except Exception as e:
            # why: an unexpected worker error must still release the scanning flag
            logging.error(f"Failed to scan folder: {e}", exc_info=True)
            self._scan_failed(ticket, str(e))
            return
        logging.info(f"Scan {ticket} returned {len(records)} images")
        self._dispatch(ScanCompletedEventData(
            event_type=EventType.SCAN_COMPLETED,
            source="session_controller",
            timestamp=time.time(),
            ticket=ticket,
            images=records,
        ))

    def _scan_failed(self, ticket: int, reason: str) -> None:
        self._dispatch(ScanFailedEventData(
            event_type=EventType.SCAN_FAILED,
            source="session_controller",
            timestamp=time.time(),
            ticket=ticket,
            reason=reason,
        ))

    def mark_loaded(self, image_id: str, scan_generation: Optional[int] = None) -> None:
        self._dispatch(ImageLoadedEventData(
            event_type=EventType.IMAGE_LOADED,
            source="session_controller",
            timestamp=time.time(),
            image_id=image_id,
            scan_generation=scan_generation,
        ))

    # ------------------------------------------------------------------
    # Search & navigation
    # ------------------------------------------------------------------

    def set_search_query(self, query: str) -> None:
        self._dispatch(SearchChangedEventData(
            event_type=EventType.SEARCH_CHANGED,
            source="session_controller",
            timestamp=time.time(),
            query=query,
        ))

    def select(self, image_id: str) -> None:
        self._dispatch(ImageSelectedEventData(
            event_type=EventType.IMAGE_SELECTED,
            source="session_controller",
            timestamp=time.time(),
            image_id=image_id,
        ))

    def clear_selection(self) -> None:
        self._dispatch(self._plain_event(EventType.SELECTION_CLEARED))

    def go_to_previous(self) -> None:
        self._dispatch(self._plain_event(EventType.NAVIGATE_PREVIOUS))

    def go_to_next(self) -> None:
        self._dispatch(self._plain_event(EventType.NAVIGATE_NEXT))

    def handle_key(self, key: NavigationKey) -> None:
        """Hotkey entry point; reads the live state at the time of the key press."""
        self._dispatch(KeyEventData(
            event_type=EventType.KEY_PRESS,
            source="session_controller",
            timestamp=time.time(),
            key=key,
        ))

    def toggle_overlay(self) -> None:
        self._dispatch(self._plain_event(EventType.OVERLAY_TOGGLED))

    # ------------------------------------------------------------------
    # Tag generation
    # ------------------------------------------------------------------

    def generate_tags(self, image_id: Optional[str] = None) -> bool:
        """Request AI tags for *image_id* (the selection by default).

        Returns False when no request was issued because one is already in
        flight or there is nothing to tag.
        """
        image_id = image_id or self.state.selected_id
        if image_id is None:
            return False
        previous = self.state
        state = self._dispatch(TagsRequestedEventData(
            event_type=EventType.TAGS_REQUESTED,
            source="session_controller",
            timestamp=time.time(),
            image_id=image_id,
        ))
        request = state.tag_request
        if request is None or request == previous.tag_request:
            return False
        logging.info(f"Generating tags for {request.source_path}")
        future = self._executor.submit(self._tag_worker, request)
        future.add_done_callback(lambda f, r=request: self._post(lambda: self._on_tags_done(r, f)))
        return True

    def _tag_worker(self, request: TagRequest) -> Tuple[str, ...]:
        """Runs on the executor."""
        response = self.backend.generate_tags(request.source_path)
        if response is None:
            raise TagGenerationFailure("Backend unreachable")
        if response.status != "success":
            raise TagGenerationFailure(response.message or "Tag generation failed")
        tags = getattr(response, "tags", None)
        if not isinstance(tags, list) or not all(isinstance(tag, str) for tag in tags):
            raise TagGenerationFailure(f"Malformed tag response: expected a list of strings, got {tags!r}")
        return tuple(tags)

    def _on_tags_done(self, request: TagRequest, future: Future) -> None:
        try:
            tags = future.result()
        except Exception as e:
            # why: any failure, typed or not, must leave tags intact and reopen the single-flight slot
            logging.error(f"Failed to generate tags: {e}", exc_info=not isinstance(e, GalleryError))
            self._dispatch(TagsFailedEventData(
                event_type=EventType.TAGS_FAILED,
                source="session_controller",
                timestamp=time.time(),
                request=request,
                reason=str(e),
            ))
            return
        logging.info(f"Received {len(tags)} tags for {request.image_id}")
        self._dispatch(TagsGeneratedEventData(
            event_type=EventType.TAGS_GENERATED,
            source="session_controller",
            timestamp=time.time(),
            request=request,
            tags=tags,
        ))

    def check_inference(self) -> None:
        """Ask the backend whether the vision model is reachable; the answer lands in the state."""
        future = self._executor.submit(self.backend.check_inference)
        future.add_done_callback(lambda f: self._post(lambda: self._on_inference_checked(f)))

    def _on_inference_checked(self, future: Future) -> None:
        try:
            available = bool(future.result())
        except Exception as e:
            logging.error(f"Inference check failed: {e}", exc_info=True)
            available = False
        if not available:
            logging.warning("Tagging backend is not reachable; AI tags are unavailable.")
        self._dispatch(InferenceCheckedEventData(
            event_type=EventType.INFERENCE_CHECKED,
            source="session_controller",
            timestamp=time.time(),
            available=available,
        ))

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    @staticmethod
    def _plain_event(event_type: EventType) -> EventData:
        return EventData(event_type=event_type, source="session_controller", timestamp=time.time())

    def _dispatch(self, event: EventData) -> SessionState:
        previous = self.store.state
        state = self.store.dispatch(event)
        self._sync_overlay_timer(previous, state)
        return state

    def _sync_overlay_timer(self, previous: SessionState, state: SessionState) -> None:
        if self._overlay_timer is None or not overlay_timer.timer_changed(previous, state):
            return
        if overlay_timer.timer_should_run(state):
            epoch = state.overlay_epoch
            self._overlay_timer.arm(overlay_timer.OVERLAY_HIDE_DELAY_MS, lambda: self._on_overlay_timeout(epoch))
        else:
            self._overlay_timer.cancel()

    def _on_overlay_timeout(self, epoch: int) -> None:
        self._dispatch(OverlayExpiredEventData(
            event_type=EventType.OVERLAY_EXPIRED,
            source="session_controller",
            timestamp=time.time(),
            epoch=epoch,
        ))

    def shutdown(self) -> None:
        if self._overlay_timer is not None:
            self._overlay_timer.cancel()
        if self._owns_executor:
            self._executor.shutdown(wait=False)
