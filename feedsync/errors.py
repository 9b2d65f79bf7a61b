# feedsync/errors.py


class FeedSyncError(Exception):
    """Base class for errors that cross the library boundary."""


class TransportError(FeedSyncError):
    """The remote call could not be completed (HTTP error, connection error, bad JSON)."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class FetchFailed(FeedSyncError):
    """A page fetch failed. The local collection was left untouched."""


class MutationFailed(FeedSyncError):
    """
    A remote mutation failed while it was still the latest for its fields,
    so the local change was rolled back. Reported once per mutation.
    """

    def __init__(self, intent, cause: BaseException | None = None):
        what = f"{intent.operation} on {intent.entity_id}"
        super().__init__(f"{what} failed: {cause}" if cause else f"{what} failed")
        self.intent = intent
        self.cause = cause
