from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from sqlalchemy.orm import Session

from mock_backend.db import get_db
from mock_backend.deps import maybe_fail
from mock_backend.models import User
from mock_backend.repositories import update_user

router = APIRouter(prefix="/api/users", tags=["users"])

DEFAULT_PREFERENCES = {
    "language": "en",
    "measurementUnit": "metric",
    "notificationsEnabled": True,
    "weatherAlerts": True,
    "cropReminders": True,
    "communityUpdates": True,
}


REQUIRED_FIELDS = ("name", "email")


# Request schema: every field optional, preferences merged key by key.
# A key sent as null clears that field; an omitted key is left alone.
class ProfileUpdate(BaseModel):
    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    bio: Optional[str] = None
    location: Optional[str] = None
    profilePicture: Optional[str] = None
    preferences: Optional[Dict[str, Any]] = None


def _user_to_dict(u: User) -> Dict[str, Any]:
    return {
        "_id": u.user_id,
        "name": u.name,
        "email": u.email,
        "phone": u.phone,
        "bio": u.bio,
        "location": u.location,
        "profilePicture": u.profile_picture,
        "preferences": {**DEFAULT_PREFERENCES, **(u.preferences or {})},
    }


@router.get("/{user_id}")
def get_user(user_id: str, db: Session = Depends(get_db)):
    u = db.get(User, user_id)
    if not u:
        raise HTTPException(404, "User not found")
    return {"success": True, "data": _user_to_dict(u)}


@router.put("/{user_id}", dependencies=[Depends(maybe_fail)])
def put_user(user_id: str, body: ProfileUpdate, db: Session = Depends(get_db)):
    """Partial profile update. Unknown preference keys are rejected."""
    if body.preferences:
        unknown = set(body.preferences) - set(DEFAULT_PREFERENCES)
        if unknown:
            raise HTTPException(400, f"Unknown preference(s): {', '.join(sorted(unknown))}")
    changes = body.model_dump(exclude_unset=True)
    cleared = sorted(k for k in REQUIRED_FIELDS if k in changes and changes[k] is None)
    if cleared:
        raise HTTPException(400, f"Cannot clear required field(s): {', '.join(cleared)}")
    u = update_user(db, user_id, changes)
    if not u:
        raise HTTPException(404, "User not found")
    return {"success": True, "message": "Profile updated", "data": _user_to_dict(u)}
