"""
Scan lifecycle: issuing a ticket, building records from the daemon's answer and
applying the result.

Only the newest ticket may change the collection. Results for an older ticket
arrive after a newer scan has been requested and are dropped.
"""

import logging
from dataclasses import replace
from pathlib import Path
from typing import Iterable, List, Tuple

from .errors import ScanFailure
from .session_state import ImageRecord, SessionState


def to_display_ref(source_path: str) -> str:
    """Renderable reference for a local file (a ``file://`` URI)."""
    return Path(source_path).absolute().as_uri()


def build_records(entries: Iterable) -> Tuple[ImageRecord, ...]:
    """Convert protocol ``ImageInfo`` entries into records.

    Raises ScanFailure if an entry has missing or wrong-typed fields, or if the
    same id appears twice in one response.
    """
    if not isinstance(entries, (list, tuple)):
        raise ScanFailure(f"Malformed scan response: expected a list of images, got {type(entries).__name__}")
    records: List[ImageRecord] = []
    seen = set()
    for entry in entries:
        _check_entry(entry)
        if entry.id in seen:
            raise ScanFailure(f"Malformed scan response: duplicate image id {entry.id!r}")
        seen.add(entry.id)
        records.append(ImageRecord(
            id=entry.id,
            source_path=entry.path,
            display_ref=to_display_ref(entry.path),
            name=entry.name,
            tags=tuple(entry.tags or ()),
            description=entry.description or "",
        ))
    return tuple(records)


def _check_entry(entry) -> None:
    for field_name in ("id", "path", "name"):
        value = getattr(entry, field_name, None)
        if not isinstance(value, str) or not value:
            raise ScanFailure(f"Malformed scan response: {field_name} must be a non-empty string, got {value!r}")
    tags = getattr(entry, "tags", None)
    if tags is not None and (not isinstance(tags, list) or not all(isinstance(tag, str) for tag in tags)):
        raise ScanFailure(f"Malformed scan response: tags of {entry.id!r} must be a list of strings")
    description = getattr(entry, "description", None)
    if description is not None and not isinstance(description, str):
        raise ScanFailure(f"Malformed scan response: description of {entry.id!r} must be a string")


def begin_scan(state: SessionState) -> SessionState:
    return replace(state, scanning=True, latest_scan_ticket=state.latest_scan_ticket + 1)


def is_current_ticket(state: SessionState, ticket: int) -> bool:
    return ticket == state.latest_scan_ticket


def complete_scan(state: SessionState, ticket: int, records: Tuple[ImageRecord, ...]) -> SessionState:
    """Replace the collection, bump the generation and forget load state in one step."""
    if not is_current_ticket(state, ticket):
        logging.info(f"Discarding scan result for ticket {ticket}; newest is {state.latest_scan_ticket}")
        return state
    return replace(
        state,
        images=tuple(records),
        scan_generation=state.scan_generation + 1,
        loaded=frozenset(),
        scanning=False,
    )


def fail_scan(state: SessionState, ticket: int) -> SessionState:
    if not is_current_ticket(state, ticket):
        logging.info(f"Discarding scan failure for ticket {ticket}; newest is {state.latest_scan_ticket}")
        return state
    return replace(state, scanning=False)
