import logging, sys

from feedsync.settings import LOG_LEVEL

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s :: %(message)s"

def setup_logging(level: str | None = None):
    """Console logging for the mock backend and ad-hoc scripts."""
    root = logging.getLogger()
    if root.handlers:  # an embedding app configured logging first; leave it
        return
    root.setLevel(getattr(logging, (level or LOG_LEVEL).upper(), logging.INFO))
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    root.addHandler(handler)
