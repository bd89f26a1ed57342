import logging
from dataclasses import replace
from typing import Optional

from .session_state import SessionState


def mark_loaded(state: SessionState, image_id: str, scan_generation: Optional[int] = None) -> SessionState:
    """Record that *image_id* finished loading in the current generation.

    *scan_generation* is the generation the loader was started for. A load that
    completes after a re-scan carries the old generation and is dropped.
    """
    if scan_generation is not None and scan_generation != state.scan_generation:
        logging.debug(f"Ignoring stale load of {image_id} from generation {scan_generation} "
                      f"(current {state.scan_generation})")
        return state
    key = (image_id, state.scan_generation)
    if key in state.loaded:
        return state
    return replace(state, loaded=state.loaded | {key})


def is_loaded(state: SessionState, image_id: str) -> bool:
    return (image_id, state.scan_generation) in state.loaded
