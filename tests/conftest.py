# tests/conftest.py
import asyncio
import os
import tempfile
from types import SimpleNamespace

# --- Temporary SQLite DB file for the mock backend; must be set before it is imported ---
_fd, _DB_PATH = tempfile.mkstemp(suffix=".db")
os.close(_fd)
os.environ["MOCK_DB_URL"] = f"sqlite:///{_DB_PATH}"

import pytest
import requests
from fastapi.testclient import TestClient
from requests.adapters import BaseAdapter
from requests.structures import CaseInsensitiveDict
from sqlalchemy import text

from feedsync.errors import TransportError
from mock_backend.db import SessionLocal, engine, get_db
from mock_backend.main import app
from mock_backend.repositories import seed_sample as _seed


@pytest.fixture(scope="session", autouse=True)
def _tmp_db_cleanup():
    yield
    engine.dispose()
    try:
        os.remove(_DB_PATH)
    except OSError:
        pass


@pytest.fixture(scope="function")
def db_session():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.rollback()
        db.close()


# --- Override FastAPI's DB dependency to use our test session ---
@pytest.fixture
def override_get_db(db_session):
    def _get_db():
        try:
            yield db_session
        finally:
            pass
    app.dependency_overrides[get_db] = _get_db
    yield
    app.dependency_overrides.clear()


@pytest.fixture
def client(override_get_db):
    with TestClient(app) as c:
        yield c


# --- Utility: clear tables in FK-safe order ---
def _clear_all(db):
    db.execute(text("DELETE FROM comments"))
    db.execute(text("DELETE FROM post_likes"))
    db.execute(text("DELETE FROM posts"))
    db.execute(text("DELETE FROM users"))
    db.commit()


@pytest.fixture
def seed_sample(db_session):
    """
    Fresh demo dataset: 4 users, 12 posts (p001 oldest .. p012 newest),
    2 comments on p001. The default mock user u_ram has liked nothing.
    """
    _clear_all(db_session)
    _seed(db_session)


@pytest.fixture
def no_failures(monkeypatch):
    from mock_backend import settings
    monkeypatch.setattr(settings, "MOCK_FAILURE_RATE", 0.0)
    monkeypatch.setattr(settings, "MOCK_LATENCY_MS", 0)


# --- requests -> ASGI bridge so HttpTransport can talk to the mock backend ---
class ASGIAdapter(BaseAdapter):
    def __init__(self, test_client):
        super().__init__()
        self.test_client = test_client

    def send(self, request, **kwargs):
        r = self.test_client.request(
            request.method, request.url, content=request.body, headers=dict(request.headers)
        )
        resp = requests.Response()
        resp.status_code = r.status_code
        resp._content = r.content
        resp.headers = CaseInsensitiveDict(r.headers)
        resp.url = request.url
        resp.request = request
        resp.encoding = "utf-8"
        return resp

    def close(self):
        pass


@pytest.fixture
def http_session(client):
    s = requests.Session()
    s.mount("http://mock", ASGIAdapter(client))
    return s


# --- In-memory transport whose mutations settle when the test says so ---
class FakeTransport:
    def __init__(self, pages=None):
        self.pages = pages or {}       # page_index -> list of raw records, or an exception
        self.fetch_calls = []
        self.mutations = []

    async def fetch_page(self, resource, page_index, page_size, filters=None):
        self.fetch_calls.append(SimpleNamespace(resource=resource, page_index=page_index,
                                                page_size=page_size, filters=filters))
        result = self.pages.get(page_index, [])
        if isinstance(result, BaseException):
            raise result
        return list(result)

    async def mutate(self, operation, entity_id, payload):
        fut = asyncio.get_running_loop().create_future()
        self.mutations.append(SimpleNamespace(operation=operation, entity_id=entity_id,
                                              payload=payload, future=fut))
        return await fut

    def succeed(self, i):
        self.mutations[i].future.set_result(True)

    def fail(self, i, exc=None):
        self.mutations[i].future.set_exception(exc or TransportError("HTTP 503", status_code=503))


async def until_called(transport, n):
    """Let background tasks run until the transport saw `n` mutations."""
    for _ in range(100):
        if len(transport.mutations) >= n:
            return
        await asyncio.sleep(0)
    raise AssertionError(f"expected {n} mutation calls, saw {len(transport.mutations)}")


@pytest.fixture
def fake_transport():
    return FakeTransport()


def raw_post(i, **overrides):
    rec = {
        "_id": f"p{i}",
        "author": {"_id": f"u{i % 3}", "name": f"Farmer {i % 3}"},
        "content": f"post {i}",
        "likeCount": i,
        "commentCount": 0,
        "isLiked": False,
        "createdAt": f"2024-06-{(i % 28) + 1:02d}T08:00:00Z",
    }
    rec.update(overrides)
    return rec


@pytest.fixture
def raw_posts():
    return [raw_post(i) for i in range(1, 11)]
