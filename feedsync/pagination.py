from dataclasses import dataclass, replace
from typing import Optional

from feedsync.settings import DEFAULT_PAGE_SIZE

# -----------------------------
# Pagination cursor: immutable, every operation returns a new cursor.
# page_index is 0-based; transports translate it for the wire.
# -----------------------------

@dataclass(frozen=True)
class PaginationCursor:
    page_index: int = 0
    page_size: int = DEFAULT_PAGE_SIZE
    has_more: bool = True
    fetch_in_flight: bool = False

    def __post_init__(self):
        if self.page_size < 1:
            raise ValueError("page_size must be >= 1")
        if self.page_index < 0:
            raise ValueError("page_index must be >= 0")


@dataclass(frozen=True)
class PageRequest:
    page_index: int
    page_size: int


def request_next(cursor: PaginationCursor) -> Optional[PageRequest]:
    """
    The page to fetch next, or None when the feed is exhausted or a fetch
    for this cursor is already running.
    """
    if not cursor.has_more or cursor.fetch_in_flight:
        return None
    return PageRequest(page_index=cursor.page_index, page_size=cursor.page_size)


def mark_in_flight(cursor: PaginationCursor) -> PaginationCursor:
    return replace(cursor, fetch_in_flight=True)


def settle(cursor: PaginationCursor) -> PaginationCursor:
    """Clear the in-flight flag without moving the cursor (failed fetch)."""
    return replace(cursor, fetch_in_flight=False)


def advance(cursor: PaginationCursor, returned_count: int) -> PaginationCursor:
    """
    Record a successful fetch that returned `returned_count` records.

    A short page means the feed is exhausted. The page index moves only if
    more pages were expected before this call.
    """
    if returned_count < 0:
        raise ValueError("returned_count must be >= 0")
    page_index = cursor.page_index + 1 if cursor.has_more else cursor.page_index
    return replace(
        cursor,
        page_index=page_index,
        has_more=returned_count == cursor.page_size,
        fetch_in_flight=False,
    )


def reset(cursor: PaginationCursor) -> PaginationCursor:
    """Back to the first page, keeping the page size."""
    return PaginationCursor(page_size=cursor.page_size)
