from .errors import FeedSyncError, FetchFailed, MutationFailed, TransportError
from .feed import FeedSession
from .intents import MutationIntent, edit_profile, set_preference, toggle_like, toggle_preference
from .merge import MergePolicy, dedupe, merge_page
from .models import Comment, FeedItem, UserProfile
from .mutations import MutationController, MutationState, PendingMutation
from .normalizers import normalize, normalize_batch, normalize_comment, normalize_profile
from .pagination import PageRequest, PaginationCursor, advance, request_next
from .store import EntityStore
from .transport import HttpTransport, Transport

__all__ = [
    "FeedSyncError",
    "FetchFailed",
    "MutationFailed",
    "TransportError",
    "FeedSession",
    "MutationIntent",
    "edit_profile",
    "set_preference",
    "toggle_like",
    "toggle_preference",
    "MergePolicy",
    "dedupe",
    "merge_page",
    "Comment",
    "FeedItem",
    "UserProfile",
    "MutationController",
    "MutationState",
    "PendingMutation",
    "normalize",
    "normalize_batch",
    "normalize_comment",
    "normalize_profile",
    "PageRequest",
    "PaginationCursor",
    "advance",
    "request_next",
    "EntityStore",
    "HttpTransport",
    "Transport",
]
