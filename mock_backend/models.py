from sqlalchemy import Column, String, Integer, DateTime, ForeignKey, JSON, Text
from .db import Base

# -----------------------------
# ORM models (tables) for the mock community service
# -----------------------------
class User(Base):
    __tablename__ = "users"
    user_id         = Column(String, primary_key=True)
    name            = Column(String, nullable=False)
    email           = Column(String, unique=True, index=True, nullable=False)
    phone           = Column(String)
    bio             = Column(Text)
    location        = Column(String)
    profile_picture = Column(String)
    preferences     = Column(JSON, default=dict)          # notificationsEnabled, weatherAlerts, ...


class Post(Base):
    __tablename__ = "posts"
    post_id    = Column(String, primary_key=True)
    author_id  = Column(String, ForeignKey("users.user_id"), nullable=False, index=True)
    content    = Column(Text, nullable=False)
    category   = Column(String, default="General")
    tags       = Column(String)                           # comma-separated tags
    view_count = Column(Integer, default=0)
    created_at = Column(DateTime(timezone=True), nullable=False, index=True)

    def __repr__(self):
        return f"<Post(post_id={self.post_id}, author_id={self.author_id})>"


class PostLike(Base):
    __tablename__ = "post_likes"
    # Link table: which user liked which post
    post_id = Column(String, ForeignKey("posts.post_id"), primary_key=True)
    user_id = Column(String, ForeignKey("users.user_id"), primary_key=True)


class Comment(Base):
    __tablename__ = "comments"
    comment_id = Column(String, primary_key=True)
    post_id    = Column(String, ForeignKey("posts.post_id"), nullable=False, index=True)
    author_id  = Column(String, ForeignKey("users.user_id"), nullable=False)
    content    = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False)
