import pytest

from feedsync.merge import MergePolicy, dedupe, merge_page
from feedsync.models import FeedItem


def item(i, **kw):
    return FeedItem(id=f"p{i}", author_name="X", **kw)


def ids(items):
    return [i.id for i in items]


@pytest.fixture
def existing():
    return [item(3), item(2), item(1)]


def test_append_new_adds_unseen_at_tail(existing):
    out = merge_page(existing, [item(1), item(0), item(-1)], "append-new")
    assert ids(out) == ["p3", "p2", "p1", "p0", "p-1"]


def test_prepend_new_adds_unseen_at_head(existing):
    out = merge_page(existing, [item(5), item(4), item(3)], MergePolicy.PREPEND_NEW)
    assert ids(out) == ["p5", "p4", "p3", "p2", "p1"]


def test_existing_entries_are_never_overwritten(existing):
    existing[0].like_count = 99  # e.g. an optimistic like not yet confirmed
    out = merge_page(existing, [item(3, like_count=1)], "append-new")
    assert out[0] is existing[0]
    assert out[0].like_count == 99


@pytest.mark.parametrize("policy", ["append-new", "prepend-new"])
def test_merge_is_idempotent(existing, policy):
    page = [item(9), item(2), item(8)]
    once = merge_page(existing, page, policy)
    twice = merge_page(once, page, policy)
    assert ids(twice) == ids(once)


@pytest.mark.parametrize("policy", ["append-new", "prepend-new"])
def test_empty_page_leaves_collection_unchanged(existing, policy):
    out = merge_page(existing, [], policy)
    assert ids(out) == ids(existing)
    assert out is not existing


def test_duplicates_inside_incoming_are_collapsed():
    out = merge_page([], [item(1), item(2), item(1, content="later copy")], "append-new")
    assert ids(out) == ["p1", "p2"]
    assert out[0].content == ""


def test_unknown_policy_rejected(existing):
    with pytest.raises(ValueError):
        merge_page(existing, [item(7)], "replace")


def test_dedupe_keeps_first():
    a, b = item(1, content="first"), item(1, content="second")
    out = dedupe([a, item(2), b])
    assert ids(out) == ["p1", "p2"]
    assert out[0] is a
