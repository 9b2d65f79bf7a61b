# mock_backend/settings.py
import os

from dotenv import load_dotenv

load_dotenv()

MOCK_DB_URL = os.getenv("MOCK_DB_URL", "sqlite:///./mock_backend.sqlite3")

# Fraction (0..1) of mutating calls that answer 503, to exercise rollbacks
MOCK_FAILURE_RATE = float(os.getenv("MOCK_FAILURE_RATE", "0"))
# Extra latency per request, in milliseconds
MOCK_LATENCY_MS = int(os.getenv("MOCK_LATENCY_MS", "0"))
# Requests without an X-User-Id header act as this user
MOCK_CURRENT_USER = os.getenv("MOCK_CURRENT_USER", "u_ram")
