# feedsync/normalizers/base.py
from typing import Any, Optional, Protocol
from .types import EntityKind, Record

class Normalizer(Protocol):
    def normalize_record(self, kind: EntityKind, rec: Any) -> Optional[Record]:
        """
        Return a NEW canonical record, or None if `rec` is not a usable record.
        Must not raise and must not mutate `rec`.
        """
        ...
