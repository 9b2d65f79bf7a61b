import logging
from enum import Enum
from typing import List, Sequence, TypeVar, Union

from feedsync.models import Entity

log = logging.getLogger(__name__)

E = TypeVar("E", bound=Entity)


class MergePolicy(str, Enum):
    PREPEND_NEW = "prepend-new"   # refresh: newest first
    APPEND_NEW = "append-new"     # pagination: older at the tail


def dedupe(entities: Sequence[E]) -> List[E]:
    """Drop repeated ids, keeping the first occurrence."""
    seen = set()
    out = []
    for e in entities:
        if e.id in seen:
            continue
        seen.add(e.id)
        out.append(e)
    return out


def merge_page(
    existing: Sequence[E],
    incoming: Sequence[E],
    policy: Union[MergePolicy, str] = MergePolicy.APPEND_NEW,
) -> List[E]:
    """
    Merge a freshly fetched page into a collection without duplicating ids.

    Entries already held are never overwritten: one of them may carry an
    optimistic change the fetched copy doesn't know about yet. An empty page
    returns `existing` as is; it is not a signal to clear anything.
    """
    policy = MergePolicy(policy)
    if not incoming:
        return list(existing)

    held = {e.id for e in existing}
    fresh = [e for e in dedupe(incoming) if e.id not in held]
    if len(fresh) < len(incoming):
        log.debug("merge dropped %d already-held entities", len(incoming) - len(fresh))

    if policy is MergePolicy.PREPEND_NEW:
        return fresh + list(existing)
    return list(existing) + fresh
