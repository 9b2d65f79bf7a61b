import hashlib
import json
import logging
import math
import re
from datetime import datetime, timezone
from typing import Any, Iterable, Optional

from feedsync.settings import ANONYMOUS_AUTHOR, UNKNOWN_AUTHOR
from .base import Normalizer
from .types import EntityKind, Record

log = logging.getLogger(__name__)

# Ordered candidate keys per field. First usable value wins.
POST_ID_KEYS = ("_id", "id", "postId", "post_id", "uuid")
COMMENT_ID_KEYS = ("_id", "id", "commentId", "comment_id")
USER_ID_KEYS = ("_id", "id", "userId", "user_id")
AUTHOR_NAME_KEYS = ("authorName", "author_name", "userName")
AUTHOR_OBJ_NAME_KEYS = ("name", "username", "displayName")
AUTHOR_ID_KEYS = ("authorId", "author_id", "userId")
CONTENT_KEYS = ("content", "text", "body", "message")
TIMESTAMP_KEYS = ("createdAt", "created_at", "updatedAt", "updated_at", "date", "timestamp")
LIKE_COUNT_KEYS = ("likeCount", "like_count", "likesCount", "likes")
COMMENT_COUNT_KEYS = ("commentCount", "comment_count", "commentsCount", "comments")
VIEW_COUNT_KEYS = ("viewCount", "view_count", "views")
LIKED_KEYS = ("isLiked", "isLikedByCurrentUser", "is_liked", "liked")

# Epoch values above this are taken as milliseconds
_EPOCH_MS_THRESHOLD = 1e11


class RuleNormalizer(Normalizer):
    """
    Rule-based normalizer: takes a raw remote record (post, comment or
    profile) and produces a canonical record whose keys match the fields
    of the corresponding model in feedsync.models.

    Every field is read through an ordered fallback chain that always ends
    in a safe default, so a malformed record never raises.
    """
    def __init__(self, current_user_id: Optional[str] = None):
        # Used to derive the liked flag from a raw `likes` list
        self.current_user_id = current_user_id

    def normalize_record(self, kind: EntityKind, rec: Any) -> Optional[Record]:
        if not isinstance(rec, dict):
            return None
        if kind == "post":
            return self._post(rec)
        if kind == "comment":
            return self._comment(rec)
        if kind == "profile":
            return self._profile(rec)
        log.warning("no rules for record kind=%s", kind)
        return None

    def _post(self, rec: Record) -> Record:
        name = author_name(rec)
        content = first_str(rec, CONTENT_KEYS) or ""
        pid = first_id(rec, POST_ID_KEYS)
        if pid is None:
            pid = derive_id(name, content, first_present(rec, TIMESTAMP_KEYS))
            log.debug("post without id, derived %s", pid)
        return {
            "id": pid,
            "author_id": author_id(rec),
            "author_name": name,
            "author_avatar": author_avatar(rec),
            "content": content,
            "category": first_str(rec, ("category",)) or "General",
            "tags": norm_tags(rec.get("tags")),
            "image_urls": norm_images(rec.get("images")),
            "created_at": first_dt(rec, TIMESTAMP_KEYS),
            "like_count": first_count(rec, LIKE_COUNT_KEYS),
            "comment_count": first_count(rec, COMMENT_COUNT_KEYS),
            "view_count": first_count(rec, VIEW_COUNT_KEYS),
            "is_liked_by_current_user": self._liked(rec),
        }

    def _comment(self, rec: Record) -> Record:
        name = author_name(rec, default=ANONYMOUS_AUTHOR)
        content = first_str(rec, CONTENT_KEYS) or ""
        cid = first_id(rec, COMMENT_ID_KEYS)
        if cid is None:
            cid = derive_id(name, content, first_present(rec, TIMESTAMP_KEYS))
        post = rec.get("post")
        post_id = first_id(rec, ("postId", "post_id"))
        if post_id is None and isinstance(post, dict):
            post_id = first_id(post, POST_ID_KEYS)
        elif post_id is None:
            post_id = norm_id(post)
        return {
            "id": cid,
            "post_id": post_id or "",
            "author_id": author_id(rec),
            "author_name": name,
            "content": content,
            "created_at": first_dt(rec, TIMESTAMP_KEYS),
            "like_count": first_count(rec, LIKE_COUNT_KEYS),
        }

    def _profile(self, rec: Record) -> Optional[Record]:
        uid = first_id(rec, USER_ID_KEYS)
        if uid is None:
            # a profile nobody can address is useless as a mutation target
            log.debug("profile record without id dropped")
            return None
        email = first_str(rec, ("email",))
        name = clean_name(first_str(rec, ("name", "fullName", "username")))
        if not name and email:
            name = email.split("@")[0]
        prefs = rec.get("preferences")
        if not isinstance(prefs, dict):
            prefs = {}

        def pref(key, default):
            v = prefs.get(key, rec.get(key))
            b = norm_bool_from_phrase(v)
            return default if b is None else b

        language = first_str(prefs, ("language",)) or first_str(rec, ("language",))
        unit = first_str(prefs, ("measurementUnit",)) or first_str(rec, ("measurementUnit",))
        return {
            "id": uid,
            "name": name or UNKNOWN_AUTHOR,
            "email": email.lower() if email else "",
            "phone": first_str(rec, ("phone", "phoneNumber")),
            "bio": first_str(rec, ("bio",)),
            "location": norm_location(rec.get("location")),
            "avatar": first_str(rec, ("profilePicture", "avatar")),
            "notifications_enabled": pref("notificationsEnabled", True),
            "weather_alerts": pref("weatherAlerts", True),
            "crop_reminders": pref("cropReminders", True),
            "community_updates": pref("communityUpdates", True),
            "language": language if language in ("en", "ne", "hi") else "en",
            "measurement_unit": unit if unit in ("metric", "imperial") else "metric",
        }

    def _liked(self, rec: Record) -> bool:
        for k in LIKED_KEYS:
            b = norm_bool_from_phrase(rec.get(k))
            if b is not None:
                return b
        likes = rec.get("likes")
        if self.current_user_id and isinstance(likes, (list, tuple)):
            return any(_like_user(l) == self.current_user_id for l in likes)
        return False


# --- Individual field helpers ---

def first_present(rec: Record, keys: Iterable[str]):
    """First value under `keys` that is not None."""
    for k in keys:
        if rec.get(k) is not None:
            return rec[k]
    return None

def first_str(rec: Record, keys: Iterable[str]) -> Optional[str]:
    """First non-blank string under `keys`, stripped."""
    for k in keys:
        v = rec.get(k)
        if isinstance(v, str) and v.strip():
            return v.strip()
    return None

def norm_id(v) -> Optional[str]:
    """Identifiers arrive as strings, ints or Mongo-style {"$oid": ...}."""
    if isinstance(v, bool):
        return None
    if isinstance(v, str):
        return v.strip() or None
    if isinstance(v, int):
        return str(v)
    if isinstance(v, dict) and "$oid" in v:
        return norm_id(v["$oid"])
    return None

def first_id(rec: Record, keys: Iterable[str]) -> Optional[str]:
    for k in keys:
        v = norm_id(rec.get(k))
        if v is not None:
            return v
    return None

def derive_id(*parts) -> str:
    """Stable local id for records that carry none."""
    raw = json.dumps([str(p) if p is not None else None for p in parts])
    return "local-" + hashlib.sha1(raw.encode("utf-8")).hexdigest()[:16]

def clean_name(n: Optional[str]):
    """Trim and collapse whitespace."""
    if not n: return n
    return re.sub(r"\s+", " ", n.strip())

def author_name(rec: Record, default: str = UNKNOWN_AUTHOR) -> str:
    """
    denormalized name field -> `author` as a plain string ->
    author.name / author.username / author.displayName -> email local part -> default
    """
    name = first_str(rec, AUTHOR_NAME_KEYS)
    if name:
        return clean_name(name)
    author = rec.get("author")
    if isinstance(author, str) and author.strip():
        return clean_name(author)
    if isinstance(author, dict):
        name = first_str(author, AUTHOR_OBJ_NAME_KEYS)
        if name:
            return clean_name(name)
        email = first_str(author, ("email",))
        if email and email.split("@")[0]:
            return email.split("@")[0]
    return default

def author_id(rec: Record) -> str:
    aid = first_id(rec, AUTHOR_ID_KEYS)
    if aid is not None:
        return aid
    author = rec.get("author")
    if isinstance(author, dict):
        return first_id(author, ("_id", "id")) or ""
    return ""

def author_avatar(rec: Record) -> Optional[str]:
    pic = first_str(rec, ("authorPicture", "authorAvatar"))
    if pic:
        return pic
    author = rec.get("author")
    if isinstance(author, dict):
        return first_str(author, ("profilePicture", "avatar"))
    return None

def count_of(v) -> Optional[int]:
    """A number is used as is (clamped at 0), a sequence counts its items."""
    if isinstance(v, bool):
        return None
    if isinstance(v, int):
        return max(0, v)
    if isinstance(v, float):
        return max(0, int(v)) if math.isfinite(v) else None
    if isinstance(v, (list, tuple)):
        return len(v)
    return None

def first_count(rec: Record, keys: Iterable[str]) -> int:
    for k in keys:
        c = count_of(rec.get(k))
        if c is not None:
            return c
    return 0

def norm_bool_from_phrase(s) -> Optional[bool]:
    """Convert booleans, 0/1 and yes/no strings into True/False/None."""
    if s is None: return None
    if isinstance(s, bool): return s
    if isinstance(s, int): return s != 0 if s in (0, 1) else None
    if not isinstance(s, str): return None
    t = s.strip().lower()
    if t in {"true","yes","y","1","enabled","on"}: return True
    if t in {"false","no","n","0","disabled","off"}: return False
    return None

def parse_dt(z) -> Optional[datetime]:
    """Parse ISO strings, epoch seconds/milliseconds or datetimes into aware UTC."""
    if z is None or isinstance(z, bool):
        return None
    try:
        if isinstance(z, datetime):
            dt = z
        elif isinstance(z, (int, float)):
            secs = z / 1000.0 if abs(z) > _EPOCH_MS_THRESHOLD else z
            return datetime.fromtimestamp(secs, tz=timezone.utc)
        elif isinstance(z, str) and z.strip():
            dt = datetime.fromisoformat(z.strip().replace("Z", "+00:00"))
        else:
            return None
    except (ValueError, TypeError, OverflowError, OSError):
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)

def first_dt(rec: Record, keys: Iterable[str]) -> datetime:
    """First parseable timestamp under `keys`, else now."""
    for k in keys:
        dt = parse_dt(rec.get(k))
        if dt is not None:
            return dt
    return datetime.now(timezone.utc)

def norm_tags(v) -> list:
    """Tags come as a list or as one comma-separated string."""
    if isinstance(v, str):
        v = v.split(",")
    if not isinstance(v, (list, tuple)):
        return []
    return [t.strip() for t in v if isinstance(t, str) and t.strip()]

def norm_images(v) -> list:
    """Images come as URL strings or {"url": ...} objects."""
    if not isinstance(v, (list, tuple)):
        return []
    urls = []
    for img in v:
        if isinstance(img, dict):
            img = img.get("url")
        if isinstance(img, str) and img.strip():
            urls.append(img.strip())
    return urls

def norm_location(v) -> Optional[str]:
    if isinstance(v, str):
        return v.strip() or None
    if isinstance(v, dict):
        parts = [v.get(k) for k in ("district", "province", "country")]
        joined = ", ".join(p.strip() for p in parts if isinstance(p, str) and p.strip())
        return joined or None
    return None

def _like_user(like) -> Optional[str]:
    if isinstance(like, dict):
        user = like.get("user")
        if isinstance(user, dict):
            return first_id(user, ("_id", "id"))
        return norm_id(user)
    return norm_id(like)
