from datetime import datetime, timezone
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

# -----------------------------
# Canonical local entities.
# Assignments are validated so an optimistic write can never leave
# a field with the wrong type (e.g. a negative like count).
# -----------------------------


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Entity(BaseModel):
    model_config = ConfigDict(validate_assignment=True)

    id: str


class FeedItem(Entity):
    # A community post as the feed renders it
    author_id: str = ""
    author_name: str
    author_avatar: Optional[str] = None
    content: str = ""
    category: str = "General"
    tags: List[str] = Field(default_factory=list)
    image_urls: List[str] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=_utcnow)
    like_count: int = Field(default=0, ge=0)
    comment_count: int = Field(default=0, ge=0)
    view_count: int = Field(default=0, ge=0)
    is_liked_by_current_user: bool = False


class Comment(Entity):
    post_id: str = ""
    author_id: str = ""
    author_name: str
    content: str = ""
    created_at: datetime = Field(default_factory=_utcnow)
    like_count: int = Field(default=0, ge=0)


class UserProfile(Entity):
    # Profile fields plus notification preferences, flattened so each
    # toggle is its own field for mutation tracking
    name: str
    email: str = ""
    phone: Optional[str] = None
    bio: Optional[str] = None
    location: Optional[str] = None
    avatar: Optional[str] = None
    notifications_enabled: bool = True
    weather_alerts: bool = True
    crop_reminders: bool = True
    community_updates: bool = True
    language: Literal["en", "ne", "hi"] = "en"
    measurement_unit: Literal["metric", "imperial"] = "metric"


# Preference fields and the key the remote service uses for each
PREFERENCE_KEYS = {
    "notifications_enabled": "notificationsEnabled",
    "weather_alerts": "weatherAlerts",
    "crop_reminders": "cropReminders",
    "community_updates": "communityUpdates",
    "language": "language",
    "measurement_unit": "measurementUnit",
}

# Editable profile fields and their remote keys
PROFILE_KEYS = {
    "name": "name",
    "email": "email",
    "phone": "phone",
    "bio": "bio",
    "location": "location",
    "avatar": "profilePicture",
}
