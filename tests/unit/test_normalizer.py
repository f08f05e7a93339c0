"""
Unit tests for raw event normalization.
"""

from datetime import datetime, timezone

import pytest

from engagehub.core.exceptions import ValidationError
from engagehub.features.ingestion.normalizer import normalize_event, normalize_platform


@pytest.mark.unit
class TestNormalizePlatform:
    @pytest.mark.parametrize("value, expected", [
        ("instagram", "instagram"),
        ("Facebook", "facebook"),
        ("tiktok", "other"),
        (None, "other"),
        ("", "other"),
    ])
    def test_platforms(self, value, expected):
        assert normalize_platform(value) == expected


@pytest.mark.unit
class TestNormalizeEvent:
    def test_instagram_comment(self):
        event = normalize_event(
            {
                "id": "c1",
                "text": "Love it",
                "from": {"id": "u1", "username": "jane"},
                "post_id": "p1",
                "like_count": 3,
                "timestamp": "2024-05-01T10:00:00Z",
            },
            "instagram",
        )

        assert event.type == "comment"
        assert event.is_comment is True
        assert event.external_id == "c1"
        assert event.post_id == "p1"
        assert event.text == "Love it"
        assert event.author_id == "u1"
        assert event.author_username == "jane"
        assert event.like_count == 3
        assert event.occurred_at == datetime(2024, 5, 1, 10, 0, tzinfo=timezone.utc)

    def test_type_defaults_to_comment(self):
        event = normalize_event({"id": "c1", "message": "hi", "postId": "p1"}, "facebook")

        assert event.type == "comment"
        assert event.text == "hi"
        assert event.is_comment is True

    def test_dm_is_not_a_comment(self):
        event = normalize_event({"type": "dm", "id": "m1", "body": "hello", "threadId": "t1"}, "instagram")

        assert event.type == "dm"
        assert event.thread_id == "t1"
        assert event.is_comment is False

    def test_comment_without_post_goes_to_inbox(self):
        event = normalize_event({"id": "c1", "text": "hi"}, "instagram")
        assert event.is_comment is False

    def test_comment_on_unknown_platform_goes_to_inbox(self):
        event = normalize_event({"id": "c1", "text": "hi", "post_id": "p1"}, "tiktok")

        assert event.platform == "other"
        assert event.is_comment is False

    def test_outbound_comment_goes_to_inbox(self):
        event = normalize_event(
            {"id": "c1", "text": "hi", "post_id": "p1", "direction": "outbound"},
            "instagram",
        )
        assert event.is_comment is False

    def test_item_type_alias_and_case(self):
        event = normalize_event({"itemType": "MENTION", "externalId": "x1"}, "instagram")

        assert event.type == "mention"
        assert event.external_id == "x1"

    def test_string_author_becomes_name(self):
        event = normalize_event({"type": "dm", "author": "Jane Doe"}, "instagram")

        assert event.author_name == "Jane Doe"
        assert event.author_id is None

    def test_invalid_direction_and_urgency_fall_back(self):
        event = normalize_event({"type": "dm", "direction": "sideways", "urgency": "panic"})

        assert event.direction == "inbound"
        assert event.urgency == "medium"

    def test_numeric_ids_are_strings(self):
        event = normalize_event({"id": 123, "post_id": 456, "text": "hi"}, "instagram")

        assert event.external_id == "123"
        assert event.post_id == "456"

    def test_bad_timestamp_ignored(self):
        event = normalize_event({"id": "c1", "timestamp": "yesterday"}, "instagram")
        assert event.occurred_at is None

    def test_path_platform_wins_over_payload(self):
        event = normalize_event({"id": "c1", "platform": "facebook"}, "instagram")
        assert event.platform == "instagram"

    @pytest.mark.parametrize("item_type", ["story_reply", "poll", "STORY_MENTION"])
    def test_unknown_type_becomes_comment(self, item_type):
        event = normalize_event({"type": item_type, "id": "c1", "postId": "p1", "text": "love it"}, "instagram")

        assert event.type == "comment"
        assert event.is_comment is True
        assert event.external_id == "c1"

    @pytest.mark.parametrize("payload", [[], "text", None, 42])
    def test_non_object_rejected(self, payload):
        with pytest.raises(ValidationError):
            normalize_event(payload, "instagram")

    def test_raw_payload_kept(self):
        raw = {"id": "c1", "text": "hi", "extra": {"nested": True}}
        assert normalize_event(raw, "instagram").raw == raw
