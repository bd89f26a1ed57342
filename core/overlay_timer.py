"""
Auto-hide state for the fullscreen overlay.

Every time the overlay is shown a new epoch is armed; a timer expiry only hides
the overlay when it carries the current epoch, so re-arming debounces instead
of accumulating timers.
"""

from dataclasses import replace

from .session_state import SessionState

OVERLAY_HIDE_DELAY_MS = 2000


def arm_overlay(state: SessionState) -> SessionState:
    if state.selected_id is None:
        return state
    return replace(state, overlay_visible=True, overlay_epoch=state.overlay_epoch + 1)


def hide_overlay(state: SessionState) -> SessionState:
    # Bumping the epoch invalidates the pending timer.
    return replace(state, overlay_visible=False, overlay_epoch=state.overlay_epoch + 1)


def toggle_overlay(state: SessionState) -> SessionState:
    if state.selected_id is None:
        return state
    if state.overlay_visible:
        return hide_overlay(state)
    return arm_overlay(state)


def expire_overlay(state: SessionState, epoch: int) -> SessionState:
    if epoch != state.overlay_epoch or not state.overlay_visible:
        return state
    return replace(state, overlay_visible=False)


def follow_selection(previous: SessionState, state: SessionState) -> SessionState:
    """Show the overlay when the selection moves to another image, hide it when cleared."""
    if state.selected_id == previous.selected_id:
        return state
    if state.selected_id is None:
        if not state.overlay_visible:
            return state
        return hide_overlay(state)
    return arm_overlay(state)


def timer_changed(previous: SessionState, state: SessionState) -> bool:
    return previous.overlay_epoch != state.overlay_epoch


def timer_should_run(state: SessionState) -> bool:
    return state.overlay_visible and state.selected_id is not None
