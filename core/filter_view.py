from typing import List, Sequence

from .session_state import ImageRecord, SessionState


def matches_query(record: ImageRecord, query: str) -> bool:
    """Case-insensitive substring match against the name or any tag."""
    needle = query.lower()
    if needle in record.name.lower():
        return True
    return any(needle in tag.lower() for tag in record.tags)


def filter_images(images: Sequence[ImageRecord], query: str) -> List[ImageRecord]:
    """Return the images matching *query*, in scan order.

    Always recomputed from its inputs; callers must not cache the result across
    state changes.
    """
    if not query:
        return list(images)
    return [record for record in images if matches_query(record, query)]


def filtered_images(state: SessionState) -> List[ImageRecord]:
    return filter_images(state.images, state.search_query)
