import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from mock_backend.models import Comment, Post, PostLike, User

log = logging.getLogger(__name__)

SEED_USERS = [
    {"user_id": "u_ram", "name": "Ram Bahadur", "email": "ram@example.com", "location": "Chitwan, Bagmati, Nepal"},
    {"user_id": "u_shiva", "name": "Dr. Shiva Prasad", "email": "shiva@example.com", "location": "Kathmandu, Nepal"},
    {"user_id": "u_sita", "name": "Sita Devi", "email": "sita@example.com"},
    {"user_id": "u_krishna", "name": "Krishna Karki", "email": "krishna@example.com"},
]

# (author, category, tags, content), newest last
SEED_POSTS = [
    ("u_ram", "Questions", "rice,grasshopper,pest",
     "My rice crop is affected by grasshoppers. What treatment should I do?"),
    ("u_shiva", "Tips", "maize,organic,fertilizer",
     "Organic fertilizer for maize: mix cow dung and dry leaves, turn the pile weekly."),
    ("u_sita", "Questions", "potato,market,price",
     "What is the price of potato in Kathmandu? How much would be good to sell?"),
    ("u_krishna", "Success Stories", "tomato,greenhouse",
     "First tomato harvest from the plastic greenhouse came in two weeks early."),
    ("u_shiva", "Tips", "wheat,irrigation",
     "Irrigate wheat at crown root initiation, about 21 days after sowing."),
    ("u_ram", "Problems", "buffalo,fodder",
     "Fodder is short this winter. Anyone storing silage from maize stalks?"),
    ("u_sita", "General", "cooperative",
     "Our women's cooperative is buying a shared mini tiller."),
    ("u_krishna", "Tips", "cardamom,shade",
     "Cardamom needs about 50 percent shade; alder trees work well."),
    ("u_shiva", "Problems", "rice,blast",
     "Rice blast reported in the lower fields. Check leaves for diamond-shaped lesions."),
    ("u_ram", "Questions", "goat,vaccination",
     "When should kids be vaccinated against PPR?"),
    ("u_sita", "Success Stories", "mushroom",
     "Oyster mushrooms on rice straw gave a crop in 25 days."),
    ("u_krishna", "General", "weather,monsoon",
     "Monsoon arrived early in the east. Plan transplanting accordingly."),
]

SEED_COMMENTS = [
    ("c1", 0, "u_shiva", "For grasshoppers, use neem oil. It is natural and effective."),
    ("c2", 0, "u_krishna", "I also faced the same problem. Bio pesticide works well."),
]


def seed_sample(db: Session) -> None:
    """Insert the demo users/posts if the tables are empty. Idempotent."""
    if db.execute(select(func.count()).select_from(Post)).scalar_one():
        return
    for u in SEED_USERS:
        db.merge(User(preferences={}, **u))
    now = datetime.now(timezone.utc)
    n = len(SEED_POSTS)
    for i, (author, category, tags, content) in enumerate(SEED_POSTS):
        db.add(Post(
            post_id=f"p{i + 1:03d}",
            author_id=author,
            content=content,
            category=category,
            tags=tags,
            view_count=(i * 7) % 40,
            created_at=now - timedelta(hours=2 * (n - i)),
        ))
    db.flush()
    for i in range(n):
        # a few likes from other users so counts are non-zero
        for uid in [u["user_id"] for u in SEED_USERS][: i % 4]:
            if uid != "u_ram":
                db.add(PostLike(post_id=f"p{i + 1:03d}", user_id=uid))
    for cid, post_idx, author, content in SEED_COMMENTS:
        db.add(Comment(comment_id=cid, post_id=f"p{post_idx + 1:03d}", author_id=author,
                       content=content, created_at=now - timedelta(minutes=30)))
    db.commit()
    log.info("seeded %d users, %d posts", len(SEED_USERS), len(SEED_POSTS))


def like_post(db: Session, post_id: str, user_id: str) -> bool:
    """Idempotent like. Returns False if the post does not exist."""
    if db.get(Post, post_id) is None:
        return False
    if db.get(PostLike, (post_id, user_id)) is None:
        db.add(PostLike(post_id=post_id, user_id=user_id))
        db.commit()
    return True


def unlike_post(db: Session, post_id: str, user_id: str) -> bool:
    """Idempotent unlike. Returns False if the post does not exist."""
    if db.get(Post, post_id) is None:
        return False
    row = db.get(PostLike, (post_id, user_id))
    if row is not None:
        db.delete(row)
        db.commit()
    return True


def like_state(db: Session, post_id: str, user_id: str) -> Dict[str, Any]:
    count = db.execute(
        select(func.count()).select_from(PostLike).where(PostLike.post_id == post_id)
    ).scalar_one()
    return {"likeCount": count, "isLiked": db.get(PostLike, (post_id, user_id)) is not None}


PROFILE_COLUMNS = {
    "name": "name",
    "email": "email",
    "phone": "phone",
    "bio": "bio",
    "location": "location",
    "profilePicture": "profile_picture",
}


def update_user(db: Session, user_id: str, changes: Dict[str, Any]) -> Optional[User]:
    """Apply a partial profile update. Keys present with None clear the column;
    `preferences` is merged key by key."""
    row = db.get(User, user_id)
    if row is None:
        return None
    for key, col in PROFILE_COLUMNS.items():
        if key in changes:
            setattr(row, col, changes[key])
    prefs = changes.get("preferences")
    if prefs:
        # reassign so SQLAlchemy sees the JSON column change
        row.preferences = {**(row.preferences or {}), **prefs}
    db.commit()
    return row
