import asyncio
import logging
from typing import Any, Dict, List, Optional

from feedsync.errors import FetchFailed
from feedsync.merge import MergePolicy
from feedsync.models import Entity
from feedsync.normalizers import EntityKind, Normalizer, get_default_normalizer, normalize_batch
from feedsync.pagination import (
    PaginationCursor, advance, mark_in_flight, request_next, reset, settle,
)
from feedsync.settings import DEFAULT_PAGE_SIZE, FETCH_TIMEOUT_SECONDS
from feedsync.store import EntityStore
from feedsync.transport import Transport

log = logging.getLogger(__name__)


class FeedSession:
    """
    Fetch flow for one paginated collection (e.g. the community feed):
    remote page -> normalize -> merge into the store -> advance the cursor.

    A failed fetch never touches the store. Results of a fetch that was
    started before the collection was replaced (refresh with replace=True,
    filter change) are dropped when they arrive.
    """

    def __init__(
        self,
        transport: Transport,
        resource: str = "community/posts",
        kind: EntityKind = "post",
        page_size: int = DEFAULT_PAGE_SIZE,
        filters: Optional[Dict[str, Any]] = None,
        normalizer: Optional[Normalizer] = None,
        store: Optional[EntityStore] = None,
        timeout: float = FETCH_TIMEOUT_SECONDS,
    ):
        self.transport = transport
        self.resource = resource
        self.kind = kind
        self.filters = dict(filters or {})
        self.normalizer = normalizer or get_default_normalizer()
        self.store: EntityStore[Entity] = store if store is not None else EntityStore()
        self.cursor = PaginationCursor(page_size=page_size)
        self.timeout = timeout
        self._epoch = 0

    @property
    def has_more(self) -> bool:
        return self.cursor.has_more

    async def _fetch(self, page_index: int) -> List[Any]:
        try:
            return await asyncio.wait_for(
                self.transport.fetch_page(self.resource, page_index, self.cursor.page_size, self.filters),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError as e:
            raise FetchFailed(f"fetching {self.resource} page {page_index} timed out") from e
        except Exception as e:
            log.warning("fetching %s page %d failed: %s", self.resource, page_index, e)
            raise FetchFailed(f"fetching {self.resource} page {page_index} failed: {e}") from e

    async def load_more(self) -> List[Entity]:
        """Fetch the next page and append it. Returns the entities actually added."""
        req = request_next(self.cursor)
        if req is None:
            return []
        epoch = self._epoch
        self.cursor = mark_in_flight(self.cursor)
        try:
            raws = await self._fetch(req.page_index)
        except FetchFailed:
            if epoch == self._epoch:
                self.cursor = settle(self.cursor)
            raise

        if epoch != self._epoch:
            log.debug("dropping page %d fetched for a replaced collection", req.page_index)
            return []
        items = normalize_batch(raws, self.normalizer, self.kind)
        added = self.store.apply_page(items, MergePolicy.APPEND_NEW)
        # exhaustion is judged on what the server sent, not on what survived normalization
        self.cursor = advance(self.cursor, len(raws))
        log.info("%s page %d: %d records, %d new, has_more=%s",
                 self.resource, req.page_index, len(raws), len(added), self.cursor.has_more)
        return added

    async def refresh(self, replace: bool = False) -> List[Entity]:
        """
        Fetch the first page again.

        By default new entities are prepended and the tail cursor is kept.
        With replace=True the collection is swapped for the first page and
        pagination starts over.
        """
        epoch = self._epoch
        raws = await self._fetch(0)
        if epoch != self._epoch:
            log.debug("dropping refresh of %s fetched for a replaced collection", self.resource)
            return []
        if len(self.store) == 0:
            replace = True  # first load: nothing to prepend to
        items = normalize_batch(raws, self.normalizer, self.kind)
        if not replace:
            added = self.store.apply_page(items, MergePolicy.PREPEND_NEW)
            log.info("%s refreshed: %d new", self.resource, len(added))
            return added

        self._epoch += 1
        self.store.replace_all(items)
        self.cursor = advance(reset(self.cursor), len(raws))
        log.info("%s replaced with %d entities, has_more=%s",
                 self.resource, len(self.store), self.cursor.has_more)
        return self.store.items()

    def set_filters(self, **filters: Any) -> None:
        """Change category/search/user filters; the collection starts over empty."""
        self.filters = {k: v for k, v in filters.items() if v is not None}
        self._epoch += 1
        self.store.clear()
        self.cursor = reset(self.cursor)
