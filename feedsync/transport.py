import asyncio
import logging
from typing import Any, Dict, List, Optional, Protocol

import requests

from feedsync import settings
from feedsync.errors import TransportError

log = logging.getLogger(__name__)

RawRecord = Any


class Transport(Protocol):
    """What the sync layer needs from the remote service."""

    async def fetch_page(
        self, resource: str, page_index: int, page_size: int, filters: Optional[Dict[str, Any]] = None
    ) -> List[RawRecord]:
        ...

    async def mutate(self, operation: str, entity_id: str, payload: Dict[str, Any]) -> bool:
        ...


# operation -> (HTTP method, path template)
OPERATIONS = {
    "like":               ("POST",   "/community/posts/{id}/like"),
    "unlike":             ("DELETE", "/community/posts/{id}/like"),
    "update_profile":     ("PUT",    "/users/{id}"),
    "update_preferences": ("PUT",    "/users/{id}"),
}


def unwrap(body: Any) -> Any:
    """The service wraps payloads as {"success": ..., "data": ...}; accept both."""
    if isinstance(body, dict) and "success" in body:
        return body.get("data")
    return body


class HttpTransport:
    """
    Transport over the community REST API using a requests.Session.
    Blocking calls run in a worker thread so the event loop stays free.
    """

    def __init__(
        self,
        base_url: str | None = None,
        token: str | None = None,
        timeout: float = settings.FETCH_TIMEOUT_SECONDS,
        session: requests.Session | None = None,
    ):
        self.base_url = (base_url or settings.API_BASE_URL).rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update({"Content-Type": "application/json"})
        token = token or settings.API_TOKEN
        if token:
            self.session.headers.update({"Authorization": f"Bearer {token}"})

    def _request(self, method: str, path: str, **kw) -> Any:
        url = f"{self.base_url}{path}"
        try:
            r = self.session.request(method, url, timeout=self.timeout, **kw)
            r.raise_for_status()
        except requests.HTTPError as e:
            status = e.response.status_code if e.response is not None else None
            raise TransportError(f"{method} {path} -> HTTP {status}", status_code=status) from e
        except requests.RequestException as e:
            raise TransportError(f"{method} {path} failed: {e}") from e
        if not r.content:
            return None
        try:
            return r.json()
        except ValueError as e:
            raise TransportError(f"{method} {path} returned invalid JSON") from e

    # ----------------------------------------------------------------
    # Blocking implementations
    # ----------------------------------------------------------------
    def fetch_page_sync(
        self, resource: str, page_index: int, page_size: int, filters: Optional[Dict[str, Any]] = None
    ) -> List[RawRecord]:
        params = {"page": page_index + 1, "limit": page_size}  # the API counts pages from 1
        for k, v in (filters or {}).items():
            if v is None or (k == "category" and v == "All"):
                continue
            params[k] = v
        body = self._request("GET", f"/{resource.strip('/')}", params=params)
        if isinstance(body, dict) and body.get("success") is False:
            raise TransportError(f"fetch {resource} refused: {body.get('message')}")
        data = unwrap(body)
        if data is None:
            return []
        if isinstance(data, dict):
            return [data]
        if not isinstance(data, list):
            log.warning("fetch %s returned %s, expected a list", resource, type(data).__name__)
            return []
        return data

    def mutate_sync(self, operation: str, entity_id: str, payload: Dict[str, Any]) -> bool:
        if operation not in OPERATIONS:
            raise ValueError(f"unknown operation: {operation}")
        method, template = OPERATIONS[operation]
        body = self._request(method, template.format(id=entity_id), json=payload or None)
        if isinstance(body, dict) and body.get("success") is False:
            log.warning("%s on %s refused: %s", operation, entity_id, body.get("message"))
            return False
        return True

    # ----------------------------------------------------------------
    # Transport protocol
    # ----------------------------------------------------------------
    async def fetch_page(self, resource, page_index, page_size, filters=None):
        return await asyncio.to_thread(self.fetch_page_sync, resource, page_index, page_size, filters)

    async def mutate(self, operation, entity_id, payload):
        return await asyncio.to_thread(self.mutate_sync, operation, entity_id, payload)

    def healthz(self) -> Dict[str, Any]:
        return self._request("GET", "/health") or {}
