from dataclasses import dataclass, field
from typing import Any, Dict

from feedsync.models import PREFERENCE_KEYS, PROFILE_KEYS
from feedsync.store import EntityStore


@dataclass(frozen=True)
class MutationIntent:
    """
    A local change the user asked for: which entity, the new field values,
    and the remote operation (plus body) that makes it durable.
    """
    entity_id: str
    changes: Dict[str, Any]
    operation: str
    payload: Dict[str, Any] = field(default_factory=dict)

    @property
    def fields(self):
        return tuple(self.changes)


def toggle_like(store: EntityStore, post_id: str) -> MutationIntent:
    """Flip the liked flag of a post and move its like count with it."""
    post = store.get(post_id)
    if post is None:
        raise KeyError(post_id)
    liked = not post.is_liked_by_current_user
    count = post.like_count + 1 if liked else max(0, post.like_count - 1)
    return MutationIntent(
        entity_id=post_id,
        changes={"is_liked_by_current_user": liked, "like_count": count},
        operation="like" if liked else "unlike",
    )


def set_preference(store: EntityStore, profile_id: str, key: str, value: Any) -> MutationIntent:
    if key not in PREFERENCE_KEYS:
        raise ValueError(f"unknown preference: {key}")
    if store.get(profile_id) is None:
        raise KeyError(profile_id)
    return MutationIntent(
        entity_id=profile_id,
        changes={key: value},
        operation="update_preferences",
        payload={"preferences": {PREFERENCE_KEYS[key]: value}},
    )


def toggle_preference(store: EntityStore, profile_id: str, key: str) -> MutationIntent:
    profile = store.get(profile_id)
    if profile is None:
        raise KeyError(profile_id)
    current = getattr(profile, key, None)
    if not isinstance(current, bool):
        raise ValueError(f"preference {key} is not a toggle")
    return set_preference(store, profile_id, key, not current)


def edit_profile(store: EntityStore, profile_id: str, **changes: Any) -> MutationIntent:
    unknown = set(changes) - set(PROFILE_KEYS)
    if unknown:
        raise ValueError(f"not editable: {', '.join(sorted(unknown))}")
    if not changes:
        raise ValueError("no profile changes given")
    if store.get(profile_id) is None:
        raise KeyError(profile_id)
    return MutationIntent(
        entity_id=profile_id,
        changes=dict(changes),
        operation="update_profile",
        payload={PROFILE_KEYS[k]: v for k, v in changes.items()},
    )
