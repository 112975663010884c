"""
Tests for cache keys, the InvalidationCoordinator and the pub/sub listener.
"""
import json
import threading
from unittest.mock import MagicMock

import pytest

from core.cache.invalidation import (
    EntityEvent,
    InvalidationCoordinator,
    InvalidationListener,
)
from core.cache.keys import (
    escape_glob,
    project_list_key,
    project_scores_pattern,
    score_key,
    student_list_key,
    student_scores_pattern,
)
from core.config_loader import InvalidationMode


def _populate(cache):
    """Two students x two projects, plus every list."""
    for s in ("s1", "s2"):
        for p in ("p1", "p2"):
            cache.set(score_key(s, p), {"overall": 1})
        cache.set(student_list_key(s), {"limit": 10, "items": []})
    for p in ("p1", "p2"):
        cache.set(project_list_key(p), {"limit": 10, "items": []})


class TestCacheKeys:

    def test_key_contract(self):
        assert score_key("s1", "p1") == "score:s1:p1"
        assert student_list_key("s1") == "list:student:s1"
        assert project_list_key("p1") == "list:project:p1"

    def test_patterns(self):
        assert student_scores_pattern("s1") == "score:s1:*"
        assert project_scores_pattern("p1") == "score:*:p1"

    def test_glob_characters_are_escaped(self):
        assert escape_glob("a*b?c[d]e\\f") == "a\\*b\\?c\\[d\\]e\\\\f"
        assert student_scores_pattern("s*") == "score:s\\*:*"


class TestBlanketInvalidation:

    @pytest.fixture
    def coordinator(self, cache):
        _populate(cache)
        return InvalidationCoordinator(cache)

    def test_default_mode_is_blanket(self, cache):
        assert InvalidationCoordinator(cache).mode == InvalidationMode.BLANKET

    def test_student_change(self, coordinator, cache):
        report = coordinator.on_student_changed("s1")

        assert cache.get("score:s1:p1") is None
        assert cache.get("score:s1:p2") is None
        assert cache.get("list:student:s1") is None
        assert cache.get("list:project:p1") is None
        assert cache.get("list:project:p2") is None
        # other student's entries survive
        assert cache.get("score:s2:p1") is not None
        assert cache.get("list:student:s2") is not None

        assert report.own_list_deleted is True
        assert report.scores_deleted == 2
        assert report.lists_deleted == 2
        assert report.total_deleted == 5

    def test_project_change(self, coordinator, cache):
        report = coordinator.on_project_changed("p1")

        assert cache.get("score:s1:p1") is None
        assert cache.get("score:s2:p1") is None
        assert cache.get("list:project:p1") is None
        assert cache.get("list:student:s1") is None
        assert cache.get("list:student:s2") is None
        assert cache.get("score:s1:p2") is not None
        assert cache.get("list:project:p2") is not None
        assert report.to_dict()["scores_deleted"] == 2

    def test_ids_sharing_a_prefix_are_not_touched(self, coordinator, cache):
        cache.set(score_key("s10", "p1"), {"overall": 1})

        coordinator.on_student_changed("s1")

        assert cache.get("score:s10:p1") is not None

    def test_unknown_entity_is_a_noop_on_scores(self, coordinator, cache):
        report = coordinator.on_student_changed("nobody")

        assert report.scores_deleted == 0
        assert report.own_list_deleted is False
        assert cache.get("score:s1:p1") is not None


class TestTargetedInvalidation:

    @pytest.fixture
    def coordinator(self, cache):
        _populate(cache)
        # list:project:p1 ranked s1; list:project:p2 did not
        cache.add_to_index("idx:student:s1", ["list:project:p1"])
        cache.add_to_index("idx:project:p2", ["list:student:s2"])
        return InvalidationCoordinator(cache, InvalidationMode.TARGETED)

    def test_student_change_deletes_only_indexed_lists(self, coordinator, cache):
        report = coordinator.on_student_changed("s1")

        assert cache.get("list:project:p1") is None
        assert cache.get("list:project:p2") is not None
        assert cache.get("score:s1:p1") is None
        assert cache.get("list:student:s1") is None
        assert report.lists_deleted == 1
        assert report.used_blanket_fallback is False

    def test_project_change_deletes_only_indexed_lists(self, coordinator, cache):
        coordinator.on_project_changed("p2")

        assert cache.get("list:student:s2") is None
        assert cache.get("list:student:s1") is not None
        assert cache.get("score:s1:p2") is None

    def test_index_is_consumed(self, coordinator, cache):
        coordinator.on_student_changed("s1")

        assert cache.pop_index("idx:student:s1") == []

    def test_unreadable_index_falls_back_to_blanket(self, cache):
        _populate(cache)
        cache.pop_index = MagicMock(return_value=None)
        coordinator = InvalidationCoordinator(cache, InvalidationMode.TARGETED)

        report = coordinator.on_student_changed("s1")

        assert report.used_blanket_fallback is True
        assert cache.get("list:project:p1") is None
        assert cache.get("list:project:p2") is None


class TestEvents:

    def test_event_decoding(self):
        assert EntityEvent.from_message('{"event": "projectUpdated", "entityId": "p1"}') == \
            EntityEvent("projectUpdated", "p1")
        assert EntityEvent.from_message({"event": "studentProfileUpdated", "studentId": 7}) == \
            EntityEvent("studentProfileUpdated", "7")

    @pytest.mark.parametrize("payload", ["not json", "[]", '{"event": "projectUpdated"}', '{"entityId": "p1"}'])
    def test_malformed_event_raises_value_error(self, payload):
        with pytest.raises(ValueError):
            EntityEvent.from_message(payload)

    def test_event_json_round_trip(self):
        event = EntityEvent("projectUpdated", "p1")

        assert EntityEvent.from_message(event.to_json()) == event

    def test_handle_event_dispatch(self, cache):
        _populate(cache)
        coordinator = InvalidationCoordinator(cache)

        report = coordinator.handle_event(EntityEvent("studentProfileUpdated", "s2"))

        assert report.entity_type == "student"
        assert cache.get("score:s2:p1") is None

    def test_unknown_event_is_ignored(self, cache):
        _populate(cache)
        coordinator = InvalidationCoordinator(cache)

        assert coordinator.handle_event(EntityEvent("projectDeleted", "p1")) is None
        assert cache.get("score:s1:p1") is not None

    def test_clear_all(self, cache):
        _populate(cache)

        assert InvalidationCoordinator(cache).clear_all() == 8


class TestInvalidationListener:

    @pytest.fixture
    def coordinator(self):
        return MagicMock(spec=InvalidationCoordinator)

    def test_handle_message_dispatches_event(self, coordinator):
        listener = InvalidationListener(coordinator, MagicMock(), "match:events")

        listener.handle_message({
            "type": "message",
            "data": json.dumps({"event": "projectUpdated", "entityId": "p1"}),
        })

        coordinator.handle_event.assert_called_once_with(EntityEvent("projectUpdated", "p1"))

    def test_malformed_message_is_skipped(self, coordinator):
        listener = InvalidationListener(coordinator, MagicMock(), "match:events")

        assert listener.handle_message({"type": "message", "data": "garbage"}) is None
        assert listener.handle_message({"type": "subscribe", "data": 1}) is None
        assert listener.handle_message(None) is None
        coordinator.handle_event.assert_not_called()

    def test_run_loop_subscribes_and_stops(self, coordinator):
        stop_event = threading.Event()
        message = {"type": "message", "data": EntityEvent("studentProfileUpdated", "s1").to_json()}
        pubsub = MagicMock()

        def get_message(timeout):
            stop_event.set()
            return message

        pubsub.get_message.side_effect = get_message
        redis_client = MagicMock()
        redis_client.pubsub.return_value = pubsub

        InvalidationListener(coordinator, redis_client, "match:events").run(stop_event)

        pubsub.subscribe.assert_called_once_with("match:events")
        coordinator.handle_event.assert_called_once_with(EntityEvent("studentProfileUpdated", "s1"))
        pubsub.close.assert_called_once()

    def test_publish(self, coordinator, fake_redis):
        listener = InvalidationListener(coordinator, fake_redis, "match:events")

        listener.publish(EntityEvent("projectUpdated", "p1"))

        channel, payload = fake_redis.published[0]
        assert channel == "match:events"
        assert json.loads(payload) == {"event": "projectUpdated", "entityId": "p1"}
