import math
from datetime import timezone
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from mock_backend.db import get_db
from mock_backend.deps import current_user, maybe_fail
from mock_backend.models import Comment, Post, PostLike, User
from mock_backend.repositories import like_post, like_state, unlike_post

router = APIRouter(prefix="/api/community", tags=["community"])


def _iso(dt) -> str:
    # SQLite hands back naive datetimes; they were stored as UTC
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.isoformat().replace("+00:00", "Z")

# -------------------------------------------------------------------
# Serializers. Posts come out in one of several shapes on purpose:
# the real service has been inconsistent over time and clients must cope.
# -------------------------------------------------------------------
def _post_to_dict(p: Post, db: Session, uid: str, shape: int) -> Dict[str, Any]:
    author = db.get(User, p.author_id)
    likers = [l.user_id for l in db.query(PostLike).filter(PostLike.post_id == p.post_id).all()]
    n_comments = db.query(Comment).filter(Comment.post_id == p.post_id).count()
    tags = [t for t in (p.tags or "").split(",") if t]
    name = author.name if author else None

    if shape == 0:
        # populated author object, like lists
        return {
            "_id": p.post_id,
            "author": {"_id": p.author_id, "name": name, "email": author.email if author else None,
                       "profilePicture": author.profile_picture if author else None},
            "content": p.content,
            "category": p.category,
            "tags": tags,
            "likes": [{"user": u} for u in likers],
            "likeCount": len(likers),
            "commentCount": n_comments,
            "isLiked": uid in likers,
            "viewCount": p.view_count,
            "createdAt": _iso(p.created_at),
        }
    if shape == 1:
        # denormalized author, epoch milliseconds, comma tags
        return {
            "id": p.post_id,
            "authorId": p.author_id,
            "authorName": name,
            "author": name,
            "text": p.content,
            "category": p.category,
            "tags": ",".join(tags),
            "likes": len(likers),
            "comments": [],
            "commentsCount": n_comments,
            "isLiked": "true" if uid in likers else "false",
            "created_at": int(p.created_at.replace(tzinfo=timezone.utc).timestamp() * 1000),
        }
    # legacy: Mongo-style id, username-only author, counts under other keys
    return {
        "_id": {"$oid": p.post_id},
        "author": {"id": p.author_id, "username": name},
        "body": p.content,
        "category": p.category,
        "tags": tags,
        "likesCount": len(likers),
        "comments": [None] * n_comments,
        "liked": "yes" if uid in likers else "no",
        "views": p.view_count,
        "date": _iso(p.created_at),
    }


def _comment_to_dict(c: Comment, db: Session) -> Dict[str, Any]:
    author = db.get(User, c.author_id)
    return {
        "_id": c.comment_id,
        "postId": c.post_id,
        "author": {"_id": c.author_id, "name": author.name if author else None},
        "content": c.content,
        "createdAt": _iso(c.created_at),
        "likes": [],
    }

# -------------------------------------------------------------------
# Feed
# -------------------------------------------------------------------
@router.get("/posts")
def list_posts(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    category: Optional[str] = Query(None, description="Exact category; 'All' means no filter"),
    search: Optional[str] = Query(None, description="Content or tag contains, case-insensitive"),
    userId: Optional[str] = Query(None, description="Only posts by this author"),
    uid: str = Depends(current_user),
    db: Session = Depends(get_db),
) -> Dict[str, Any]:
    """Newest-first page of posts wrapped in the service envelope."""
    q = db.query(Post)
    if category and category != "All":
        q = q.filter(Post.category == category)
    if userId:
        q = q.filter(Post.author_id == userId)
    if search:
        s = f"%{search.lower()}%"
        q = q.filter(or_(func.lower(Post.content).like(s), func.lower(Post.tags).like(s)))
    total = q.count()
    skip = (page - 1) * limit
    rows = q.order_by(Post.created_at.desc(), Post.post_id.desc()).offset(skip).limit(limit).all()
    data: List[Dict[str, Any]] = [
        _post_to_dict(p, db, uid, shape=(skip + i) % 3) for i, p in enumerate(rows)
    ]
    return {
        "success": True,
        "data": data,
        "pagination": {
            "currentPage": page,
            "totalPages": math.ceil(total / limit),
            "totalPosts": total,
            "hasMore": skip + len(rows) < total,
        },
    }


@router.get("/posts/{post_id}")
def get_post(post_id: str, uid: str = Depends(current_user), db: Session = Depends(get_db)):
    p = db.get(Post, post_id)
    if not p:
        raise HTTPException(404, "Post not found")
    p.view_count = (p.view_count or 0) + 1
    db.commit()
    return {"success": True, "data": _post_to_dict(p, db, uid, shape=0)}


@router.get("/posts/{post_id}/comments")
def list_comments(
    post_id: str,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    db: Session = Depends(get_db),
):
    if not db.get(Post, post_id):
        raise HTTPException(404, "Post not found")
    rows = (
        db.query(Comment)
        .filter(Comment.post_id == post_id)
        .order_by(Comment.created_at.asc(), Comment.comment_id.asc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return {"success": True, "data": [_comment_to_dict(c, db) for c in rows]}

# -------------------------------------------------------------------
# Likes (idempotent)
# -------------------------------------------------------------------
@router.post("/posts/{post_id}/like", dependencies=[Depends(maybe_fail)])
def like(post_id: str, uid: str = Depends(current_user), db: Session = Depends(get_db)):
    if not like_post(db, post_id, uid):
        raise HTTPException(404, "Post not found")
    return {"success": True, "message": "Post liked", "data": like_state(db, post_id, uid)}


@router.delete("/posts/{post_id}/like", dependencies=[Depends(maybe_fail)])
def unlike(post_id: str, uid: str = Depends(current_user), db: Session = Depends(get_db)):
    if not unlike_post(db, post_id, uid):
        raise HTTPException(404, "Post not found")
    return {"success": True, "message": "Post unliked", "data": like_state(db, post_id, uid)}
