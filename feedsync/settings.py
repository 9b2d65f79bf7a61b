# feedsync/settings.py
import os

from dotenv import load_dotenv

load_dotenv()

# Remote service
API_BASE_URL = os.getenv("API_BASE_URL", "http://localhost:8000/api").rstrip("/")
API_TOKEN = os.getenv("API_TOKEN") or None

# Matches the page size the community feed has always requested
DEFAULT_PAGE_SIZE = int(os.getenv("FEEDSYNC_PAGE_SIZE", "10"))

# Timeouts (seconds). A mutation that times out is treated as failed.
MUTATION_TIMEOUT_SECONDS = float(os.getenv("FEEDSYNC_MUTATION_TIMEOUT", "15"))
FETCH_TIMEOUT_SECONDS = float(os.getenv("FEEDSYNC_FETCH_TIMEOUT", "15"))

# Sentinels used when a payload has no usable author
UNKNOWN_AUTHOR = "Unknown User"
ANONYMOUS_AUTHOR = "Anonymous"

LOG_LEVEL = os.getenv("FEEDSYNC_LOG_LEVEL", "INFO")
