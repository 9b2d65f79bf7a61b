from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI

from .db import engine, Base, SessionLocal
from .repositories import seed_sample
from .routers.posts import router as posts_router
from .routers.users import router as users_router
from feedsync.setup_logging import setup_logging

# --------------------------------------------------------------------
# App bootstrap
# --------------------------------------------------------------------
setup_logging()

# Create database tables if they don’t exist.
Base.metadata.create_all(bind=engine)

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Seed demo data once at startup so the feed has something to page through."""
    db = SessionLocal()
    try:
        seed_sample(db)
    finally:
        db.close()
    yield

app = FastAPI(title="Community mock backend", lifespan=lifespan)

@app.get("/api/health")
def health():
    return {
        "status": "ok",
        "message": "Mock backend server is running",
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }

# Register API routers:
app.include_router(posts_router)
app.include_router(users_router)
