import logging
from dataclasses import replace
from typing import Sequence

from .session_state import SessionState, TagRequest


def begin_tag_generation(state: SessionState, image_id: str) -> SessionState:
    """Open the single in-flight tagging slot for *image_id*.

    Returns *state* unchanged when a request is already in flight or the image
    is unknown; the caller issues a backend request only if ``tag_request``
    changed.
    """
    if state.generating_tags:
        logging.debug(f"Tag generation already in flight; ignoring request for {image_id}")
        return state
    record = state.find_image(image_id)
    if record is None:
        logging.warning(f"Cannot generate tags for unknown image {image_id}")
        return state
    request = TagRequest(
        image_id=record.id,
        source_path=record.source_path,
        scan_generation=state.scan_generation,
    )
    return replace(state, generating_tags=True, tag_request=request)


def complete_tag_generation(state: SessionState, request: TagRequest, tags: Sequence[str]) -> SessionState:
    """Store *tags* on the image the request was made for.

    The record is matched by id and source path, never by the current
    selection, so a selection change during the request cannot misroute tags.
    """
    def _is_target(record) -> bool:
        return record.id == request.image_id and record.source_path == request.source_path

    if not any(_is_target(record) for record in state.images):
        logging.info(f"Image {request.image_id} left the collection before its tags arrived")
    images = tuple(record.with_tags(tags) if _is_target(record) else record for record in state.images)
    return replace(state, images=images, generating_tags=False, tag_request=None)


def fail_tag_generation(state: SessionState) -> SessionState:
    return replace(state, generating_tags=False, tag_request=None)
