import logging
from typing import Any, Dict, Generic, Iterable, List, Optional, Sequence, TypeVar, Union

from feedsync.merge import MergePolicy, dedupe, merge_page
from feedsync.models import Entity

log = logging.getLogger(__name__)

E = TypeVar("E", bound=Entity)


class EntityStore(Generic[E]):
    """
    The client-side collection a screen renders from, ordered as displayed.

    Collection-level writes go through apply_page / replace_all / remove /
    clear. Field-level writes are reserved for the mutation controller.
    """

    def __init__(self, entities: Iterable[E] = ()):
        self._items: List[E] = dedupe(list(entities))

    def __len__(self) -> int:
        return len(self._items)

    def __contains__(self, entity_id: object) -> bool:
        return self.get(entity_id) is not None

    def __iter__(self):
        return iter(list(self._items))

    def get(self, entity_id) -> Optional[E]:
        for e in self._items:
            if e.id == entity_id:
                return e
        return None

    def ids(self) -> List[str]:
        return [e.id for e in self._items]

    def items(self) -> List[E]:
        """Snapshot of the collection (a new list)."""
        return list(self._items)

    # --- collection-level writes ---

    def apply_page(self, incoming: Sequence[E], policy: Union[MergePolicy, str]) -> List[E]:
        """Merge a fetched page; returns the entities that were actually added."""
        before = {e.id for e in self._items}
        self._items = merge_page(self._items, incoming, policy)
        return [e for e in self._items if e.id not in before]

    def replace_all(self, entities: Iterable[E]) -> None:
        self._items = dedupe(list(entities))

    def remove(self, entity_id: str) -> bool:
        n = len(self._items)
        self._items = [e for e in self._items if e.id != entity_id]
        return len(self._items) != n

    def clear(self) -> None:
        self._items = []

    # --- field-level access (mutation controller) ---

    def _read_fields(self, entity_id: str, fields: Iterable[str]) -> Dict[str, Any]:
        e = self.get(entity_id)
        if e is None:
            raise KeyError(entity_id)
        return {f: getattr(e, f) for f in fields}

    def _write_fields(self, entity_id: str, values: Dict[str, Any]) -> bool:
        """Write fields in place; False if the entity is gone."""
        e = self.get(entity_id)
        if e is None:
            return False
        # validate the whole change first so a bad value leaves nothing half-written
        type(e).model_validate({**e.model_dump(), **values})
        for field, value in values.items():
            setattr(e, field, value)
        return True
