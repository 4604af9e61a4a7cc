"""Unit tests for notification task classification and payload helpers."""
from __future__ import annotations

import pytest

from notification_relay.core.exceptions import ValidationException
from notification_relay.features.notifications.schemas import (
    BulkDeliveryResult,
    BulkNotificationTask,
    SingleDeliveryResult,
    SingleNotificationTask,
    classify_task,
    convert_to_string_values,
    unwrap_envelope,
)


@pytest.mark.unit
class TestClassifyTask:
    """Test suite for classify_task."""

    @pytest.mark.parametrize(
        "raw",
        [
            {"notification": {"title": "T"}},
            {"to": "tok"},
            {"to": None, "notification": {"title": "T"}},
            {"to": "", "notification": {"title": "T"}},
            {"to": "tok", "notification": None},
            {},
        ],
    )
    def test_incomplete_data(self, raw):
        with pytest.raises(ValidationException, match="Incomplete notification data"):
            classify_task(raw)

    @pytest.mark.parametrize("notification", [{"body": "B"}, {"title": ""}, {"title": "   "}])
    def test_title_required(self, notification):
        with pytest.raises(ValidationException, match="Notification title is required"):
            classify_task({"to": "tok", "notification": notification})

    def test_unknown_type(self):
        with pytest.raises(ValidationException, match="Unknown notification type: topic"):
            classify_task({"to": "tok", "notification": {"title": "T"}, "type": "topic"})

    def test_unknown_type_from_data(self):
        with pytest.raises(ValidationException, match="Unknown notification type"):
            classify_task({"to": "tok", "notification": {"title": "T"}, "data": {"type": "sms"}})

    def test_bulk_requires_array(self):
        with pytest.raises(ValidationException) as exc_info:
            classify_task({"to": "tok", "notification": {"title": "T"}, "type": "bulk"})

        assert "must be an array" in exc_info.value.detail
        assert "bulk notifications require an array of tokens" in exc_info.value.detail.lower()

    def test_single_requires_string(self):
        with pytest.raises(ValidationException, match="Single notifications require a token string"):
            classify_task({"to": ["a"], "notification": {"title": "T"}, "type": "single"})

    def test_defaults_to_single(self):
        task = classify_task({"to": "tok1", "notification": {"title": "T", "body": "B"}})

        assert isinstance(task, SingleNotificationTask)
        assert task.type == "single"
        assert task.to == "tok1"
        assert task.notification.body == "B"

    def test_array_without_type_is_bulk(self):
        task = classify_task({"to": ["a", "b"], "notification": {"title": "T"}})

        assert isinstance(task, BulkNotificationTask)
        assert task.to == ["a", "b"]

    def test_explicit_type_wins_over_data_type(self):
        task = classify_task(
            {"to": ["a"], "notification": {"title": "T"}, "type": "bulk", "data": {"type": "single"}}
        )

        assert isinstance(task, BulkNotificationTask)

    def test_data_type_used_when_no_explicit_type(self):
        with pytest.raises(ValidationException, match="must be an array"):
            classify_task({"to": "tok", "notification": {"title": "T"}, "data": {"type": "bulk"}})

    def test_empty_bulk_list_allowed(self):
        task = classify_task({"to": [], "notification": {"title": "T"}, "type": "bulk"})

        assert isinstance(task, BulkNotificationTask)
        assert task.to == []

    def test_auxiliary_fields_carried(self):
        task = classify_task(
            {
                "to": "tok",
                "notification": {"title": "T"},
                "userId": 42,
                "timestamp": "2025-01-01T00:00:00Z",
                "metadata": {"correlationId": "c-1"},
            }
        )

        assert task.user_id == 42
        assert task.metadata == {"correlationId": "c-1"}
        assert task.correlation_id == "c-1"

    def test_non_string_bulk_tokens_rejected(self):
        with pytest.raises(ValidationException, match="Invalid bulk notification task"):
            classify_task({"to": [{"token": "a"}], "notification": {"title": "T"}})

    def test_classified_task_returned_unchanged(self):
        task = classify_task({"to": "tok", "notification": {"title": "T"}})

        assert classify_task(task) is task

    def test_callback_property(self):
        task = classify_task(
            {
                "to": "tok",
                "notification": {"title": "T"},
                "data": {"callback": {"href": "https://example.com/cb"}, "payload": {"correlationId": "n-1"}},
            }
        )

        assert task.callback == {"href": "https://example.com/cb"}
        assert task.correlation_id == "n-1"

    def test_callback_without_href_ignored(self):
        task = classify_task({"to": "tok", "notification": {"title": "T"}, "data": {"callback": {}}})

        assert task.callback is None


@pytest.mark.unit
class TestConvertToStringValues:
    """Test suite for convert_to_string_values."""

    def test_mixed_values(self):
        assert convert_to_string_values({"a": 1, "b": {"c": 2}, "d": "x"}) == {
            "a": "1",
            "b": '{"c":2}',
            "d": "x",
        }

    def test_strings_are_unchanged(self):
        converted = convert_to_string_values({"a": "1", "b": '{"c":2}'})

        assert convert_to_string_values(converted) == converted

    def test_primitives_use_json_spelling(self):
        assert convert_to_string_values({"t": True, "f": False, "n": None, "x": 1.5}) == {
            "t": "true",
            "f": "false",
            "n": "null",
            "x": "1.5",
        }

    def test_sequences_serialized(self):
        assert convert_to_string_values({"ids": [1, 2], "pair": ("a", "b")}) == {
            "ids": "[1,2]",
            "pair": '["a","b"]',
        }

    def test_empty(self):
        assert convert_to_string_values(None) == {}
        assert convert_to_string_values({}) == {}


@pytest.mark.unit
class TestUnwrapEnvelope:
    """Test suite for NotificationRequested envelope unwrapping."""

    def test_envelope_flattened(self):
        envelope = {
            "eventType": "NotificationRequested",
            "version": "1.0",
            "producer": "orders",
            "correlationId": "c-9",
            "timestamp": "2025-01-01T00:00:00Z",
            "data": {
                "to": "tok",
                "notification": {"title": "T"},
                "data": {"k": "v"},
                "userId": "u-1",
                "timestamp": "2025-01-01T00:00:01Z",
            },
        }

        task = unwrap_envelope(envelope)

        assert task["to"] == "tok"
        assert task["notification"] == {"title": "T"}
        assert task["data"] == {"k": "v"}
        assert task["userId"] == "u-1"
        assert task["timestamp"] == "2025-01-01T00:00:01Z"
        assert task["metadata"] == {
            "eventType": "NotificationRequested",
            "version": "1.0",
            "producer": "orders",
            "correlationId": "c-9",
            "timestamp": "2025-01-01T00:00:00Z",
        }

    def test_plain_task_untouched(self):
        task = {"to": "tok", "notification": {"title": "T"}, "data": {"type": "single"}}

        assert unwrap_envelope(task) is task

    def test_other_event_type_untouched(self):
        body = {"eventType": "UserCreated", "data": {"to": "tok"}}

        assert unwrap_envelope(body) is body


@pytest.mark.unit
class TestDeliveryResults:
    def test_single_wire_format(self):
        result = SingleDeliveryResult(success=True, message_id="m1")

        assert result.to_wire() == {"success": True, "messageId": "m1"}

    def test_bulk_wire_format(self):
        result = BulkDeliveryResult(success_count=2, failure_count=1)

        assert result.to_wire() == {"success": True, "successCount": 2, "failureCount": 1}
        assert result.total == 3
