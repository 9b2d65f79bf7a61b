from datetime import datetime, timezone

import pytest

from feedsync.normalizers import (
    NormalizerPipeline,
    RuleNormalizer,
    get_default_normalizer,
    normalize,
    normalize_batch,
    normalize_comment,
    normalize_profile,
)
from feedsync.normalizers.rules import count_of, parse_dt


def test_same_post_different_author_shapes_same_id():
    a = {"_id": "p1", "author": "X", "content": "hello", "createdAt": "2024-06-21T08:41:00Z"}
    b = {"_id": "p1", "author": {"name": "X", "id": "1"}, "content": "hello", "createdAt": "2024-06-21T08:41:00Z"}
    assert normalize(a).id == normalize(b).id == "p1"
    assert normalize(a).author_name == normalize(b).author_name == "X"


def test_id_fallbacks_and_mongo_oid():
    assert normalize({"id": 42}).id == "42"
    assert normalize({"_id": {"$oid": "abc"}}).id == "abc"
    assert normalize({"postId": " p9 "}).id == "p9"


def test_missing_id_is_derived_and_stable():
    a = {"author": "X", "content": "same text", "createdAt": "2024-06-21T08:41:00Z"}
    b = {"author": {"username": "X"}, "text": "same text", "createdAt": "2024-06-21T08:41:00Z"}
    ida, idb = normalize(a).id, normalize(b).id
    assert ida == idb
    assert ida.startswith("local-")
    assert normalize(dict(a, content="other")).id != ida


@pytest.mark.parametrize("raw", [None, 3, 2.5, "post", [], [{"_id": "p1"}], True, object()])
def test_non_records_normalize_to_none(raw):
    assert normalize(raw) is None


def test_author_name_chain():
    assert normalize({"authorName": "Sita", "author": "ignored"}).author_name == "Sita"
    assert normalize({"author": "  Ram   Bahadur "}).author_name == "Ram Bahadur"
    assert normalize({"author": {"username": "ram", "displayName": "R"}}).author_name == "ram"
    assert normalize({"author": {"displayName": "Dr. Shiva"}}).author_name == "Dr. Shiva"
    assert normalize({"author": {"email": "krishna@example.com"}}).author_name == "krishna"
    assert normalize({"author": 17}).author_name == "Unknown User"
    assert normalize({}).author_name == "Unknown User"


def test_author_id_and_avatar():
    item = normalize({"author": {"_id": "u1", "profilePicture": "http://x/p.jpg"}})
    assert item.author_id == "u1"
    assert item.author_avatar == "http://x/p.jpg"
    assert normalize({"authorId": 7, "author": "X"}).author_id == "7"
    assert normalize({"author": "X"}).author_id == ""


def test_counts_from_numbers_and_sequences():
    item = normalize({"likes": [{"user": "a"}, {"user": "b"}], "comments": [{}, {}, {}], "views": 5.9})
    assert item.like_count == 2
    assert item.comment_count == 3
    assert item.view_count == 5
    assert normalize({"likeCount": 4, "likes": [1]}).like_count == 4
    assert normalize({"likeCount": "lots"}).like_count == 0
    assert normalize({"likeCount": -3}).like_count == 0
    assert normalize({"likeCount": True, "likes": [1, 2]}).like_count == 2


def test_count_of():
    assert count_of(3) == 3
    assert count_of((1, 2)) == 2
    assert count_of(float("nan")) is None
    assert count_of({"n": 1}) is None


def test_liked_flag():
    assert normalize({"isLiked": True}).is_liked_by_current_user is True
    assert normalize({"liked": "yes"}).is_liked_by_current_user is True
    assert normalize({"isLiked": "false"}).is_liked_by_current_user is False
    assert normalize({"likes": [{"user": "me"}]}).is_liked_by_current_user is False

    n = get_default_normalizer(current_user_id="me")
    assert normalize({"likes": [{"user": "other"}, {"user": {"_id": "me"}}]}, n).is_liked_by_current_user
    assert normalize({"likes": ["me"]}, n).is_liked_by_current_user
    assert not normalize({"likes": ["other"]}, n).is_liked_by_current_user


def test_timestamp_chain():
    item = normalize({"createdAt": "not a date", "updatedAt": "2024-06-21T08:41:00Z"})
    assert item.created_at == datetime(2024, 6, 21, 8, 41, tzinfo=timezone.utc)
    ms = normalize({"created_at": 1718959260000}).created_at
    assert ms == datetime(2024, 6, 21, 8, 41, tzinfo=timezone.utc)
    secs = normalize({"timestamp": 1718959260}).created_at
    assert secs == ms


def test_unparseable_timestamps_fall_back_to_now():
    before = datetime.now(timezone.utc)
    item = normalize({"createdAt": {"$date": "?"}, "date": "yesterday-ish", "timestamp": 1e30})
    after = datetime.now(timezone.utc)
    assert before <= item.created_at <= after


def test_parse_dt_naive_is_utc():
    assert parse_dt("2024-06-21T08:41:00") == datetime(2024, 6, 21, 8, 41, tzinfo=timezone.utc)
    assert parse_dt(True) is None
    assert parse_dt("") is None


def test_tags_images_category():
    item = normalize({"tags": "rice, pest,,", "images": [{"url": "a.jpg"}, "b.jpg", {"x": 1}, 3]})
    assert item.tags == ["rice", "pest"]
    assert item.image_urls == ["a.jpg", "b.jpg"]
    assert item.category == "General"
    assert normalize({"tags": ["maize", 5], "category": "Tips"}).tags == ["maize"]


def test_every_field_typed_for_garbage_record():
    item = normalize({"_id": None, "author": None, "content": 12, "likeCount": None,
                      "comments": "many", "createdAt": None, "isLiked": "maybe"})
    assert isinstance(item.id, str) and item.id
    assert item.author_name == "Unknown User"
    assert item.content == ""
    assert item.like_count == 0 and item.comment_count == 0
    assert item.is_liked_by_current_user is False
    assert item.created_at.tzinfo is not None


def test_input_not_mutated():
    raw = {"_id": "p1", "author": {"name": "X"}, "tags": "a,b"}
    before = {"_id": "p1", "author": {"name": "X"}, "tags": "a,b"}
    normalize(raw)
    assert raw == before


def test_broken_stage_drops_record_instead_of_raising():
    class Exploding:
        def normalize_record(self, kind, rec):
            raise RuntimeError("boom")
    assert normalize({"_id": "p1"}, Exploding()) is None


def test_batch_drops_invalid_records(raw_posts):
    batch = [None, "x", 5] + raw_posts
    items = normalize_batch(batch)
    assert [i.id for i in items] == [r["_id"] for r in raw_posts]


def test_comment_normalization():
    c = normalize_comment({"_id": "c1", "post": {"_id": "p1"}, "author": {"_id": "u2"},
                           "content": "Use neem oil", "likes": ["a"]})
    assert c.id == "c1"
    assert c.post_id == "p1"
    assert c.author_name == "Anonymous"
    assert c.like_count == 1
    assert normalize_comment({"postId": "p3", "author": "Sita"}).post_id == "p3"


def test_profile_normalization():
    p = normalize_profile({
        "_id": "u_ram",
        "name": "Ram Bahadur",
        "email": " Ram@Example.com ",
        "location": {"district": "Chitwan", "country": "Nepal"},
        "preferences": {"notificationsEnabled": "off", "weatherAlerts": False, "language": "ne",
                        "measurementUnit": "furlongs"},
    })
    assert p.id == "u_ram"
    assert p.email == "ram@example.com"
    assert p.location == "Chitwan, Nepal"
    assert p.notifications_enabled is False
    assert p.weather_alerts is False
    assert p.crop_reminders is True
    assert p.language == "ne"
    assert p.measurement_unit == "metric"


def test_profile_without_id_is_invalid():
    assert normalize_profile({"name": "Nobody"}) is None
    assert normalize_profile({"id": "u1", "email": "sita@example.com"}).name == "sita"


def test_unknown_kind_yields_none():
    assert RuleNormalizer().normalize_record("farm", {"_id": "f1"}) is None


def test_pipeline_stages_work_on_a_copy():
    class Scrubbing:
        def normalize_record(self, kind, rec):
            rec.pop("author", None)
            rec["content"] = "scrubbed"
            return rec

    raw = {"_id": "p1", "author": {"name": "X"}, "content": "hello"}
    pipeline = NormalizerPipeline([Scrubbing(), RuleNormalizer()])
    item = normalize(raw, pipeline)
    assert item.content == "scrubbed"
    assert item.author_name == "Unknown User"
    assert raw == {"_id": "p1", "author": {"name": "X"}, "content": "hello"}
