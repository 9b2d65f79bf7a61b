import logging
import random
import time
from typing import Optional

from fastapi import Header, HTTPException

from mock_backend import settings

log = logging.getLogger(__name__)


def current_user(x_user_id: Optional[str] = Header(None)) -> str:
    """Who is asking. No auth here: the header wins, else the configured user."""
    return x_user_id or settings.MOCK_CURRENT_USER


def maybe_fail() -> None:
    """Simulate a slow, unreliable service on mutating endpoints."""
    if settings.MOCK_LATENCY_MS > 0:
        time.sleep(settings.MOCK_LATENCY_MS / 1000.0)
    if settings.MOCK_FAILURE_RATE > 0 and random.random() < settings.MOCK_FAILURE_RATE:
        log.info("injected failure")
        raise HTTPException(503, "Service temporarily unavailable (injected)")
