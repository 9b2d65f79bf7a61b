import logging
from copy import deepcopy
from typing import Any, Iterable, List, Optional, Type, TypeVar

from pydantic import ValidationError

from feedsync.models import Comment, Entity, FeedItem, UserProfile
from .base import Normalizer
from .types import EntityKind, Record
from .rules import RuleNormalizer

log = logging.getLogger(__name__)

E = TypeVar("E", bound=Entity)

class NormalizerPipeline(Normalizer):
    """
    A chain of normalizers.
    Each stage takes the output of the previous stage; a stage returning
    None drops the record.
    """
    def __init__(self, stages: List[Normalizer]):
        self.stages = stages

    def normalize_record(self, kind: EntityKind, rec: Any) -> Optional[Record]:
        out = deepcopy(rec)  # stages may edit in place; the caller's payload must not change
        for stage in self.stages:
            out = stage.normalize_record(kind, out)
            if out is None:
                return None
        return out

def get_default_normalizer(current_user_id: Optional[str] = None) -> Normalizer:
    """
    Factory for the default pipeline.
    Currently just rule-based; extra cleaning stages go after it.
    """
    return NormalizerPipeline([RuleNormalizer(current_user_id=current_user_id)])


# --------------------------------------------------------------------
# Entry points: raw record -> model (or None). These never raise.
# --------------------------------------------------------------------
def _to_model(kind: EntityKind, model: Type[E], raw: Any, normalizer: Optional[Normalizer]) -> Optional[E]:
    if not isinstance(raw, dict):
        return None
    normalizer = normalizer or get_default_normalizer()
    try:
        rec = normalizer.normalize_record(kind, raw)
        if rec is None:
            return None
        return model.model_validate(rec)
    except ValidationError as e:
        log.warning("%s record failed validation after normalization: %s", kind, e)
        return None
    except Exception:
        # normalization is total: a broken stage costs one record, not the batch
        log.exception("%s normalizer stage raised", kind)
        return None

def normalize(raw: Any, normalizer: Optional[Normalizer] = None) -> Optional[FeedItem]:
    """Raw post payload -> FeedItem, or None if `raw` is not a record."""
    return _to_model("post", FeedItem, raw, normalizer)

def normalize_comment(raw: Any, normalizer: Optional[Normalizer] = None) -> Optional[Comment]:
    return _to_model("comment", Comment, raw, normalizer)

def normalize_profile(raw: Any, normalizer: Optional[Normalizer] = None) -> Optional[UserProfile]:
    return _to_model("profile", UserProfile, raw, normalizer)

MODELS = {"post": FeedItem, "comment": Comment, "profile": UserProfile}

def normalize_batch(
    raws: Iterable[Any], normalizer: Optional[Normalizer] = None, kind: EntityKind = "post"
) -> List[Entity]:
    """Normalize a fetched page, silently dropping invalid records."""
    normalizer = normalizer or get_default_normalizer()
    model = MODELS[kind]
    items = []
    dropped = 0
    for raw in raws:
        item = _to_model(kind, model, raw, normalizer)
        if item is None:
            dropped += 1
        else:
            items.append(item)
    if dropped:
        log.debug("dropped %d invalid records from batch", dropped)
    return items
