import logging
from dataclasses import replace
from enum import Enum
from typing import Optional

from .filter_view import filtered_images
from .session_state import ImageRecord, SessionState


class NavigationKey(Enum):
    LEFT = "left"
    RIGHT = "right"
    ESCAPE = "escape"


def current_index(state: SessionState) -> int:
    """Position of the selection within the filter view, or -1."""
    if state.selected_id is None:
        return -1
    for index, record in enumerate(filtered_images(state)):
        if record.id == state.selected_id:
            return index
    return -1


def selected_image(state: SessionState) -> Optional[ImageRecord]:
    return state.find_image(state.selected_id)


def can_go_previous(state: SessionState) -> bool:
    return current_index(state) > 0


def can_go_next(state: SessionState) -> bool:
    index = current_index(state)
    return 0 <= index < len(filtered_images(state)) - 1


def select(state: SessionState, image_id: str) -> SessionState:
    if state.selected_id == image_id:
        return state
    return replace(state, selected_id=image_id)


def clear_selection(state: SessionState) -> SessionState:
    if state.selected_id is None:
        return state
    return replace(state, selected_id=None)


def go_to_previous(state: SessionState) -> SessionState:
    index = current_index(state)
    if index <= 0:
        return state
    return replace(state, selected_id=filtered_images(state)[index - 1].id)


def go_to_next(state: SessionState) -> SessionState:
    view = filtered_images(state)
    index = current_index(state)
    if index < 0 or index >= len(view) - 1:
        return state
    return replace(state, selected_id=view[index + 1].id)


def handle_key(state: SessionState, key: NavigationKey) -> SessionState:
    """Route a navigation key against the live state.

    Keys only act while something is selected.
    """
    if state.selected_id is None:
        return state
    if key is NavigationKey.LEFT:
        return go_to_previous(state)
    if key is NavigationKey.RIGHT:
        return go_to_next(state)
    if key is NavigationKey.ESCAPE:
        return clear_selection(state)
    logging.warning(f"Unhandled navigation key: {key}")
    return state


def position_label(state: SessionState) -> str:
    """Counter text for the fullscreen view, e.g. ``"2 / 5"``."""
    return f"{current_index(state) + 1} / {len(filtered_images(state))}"
