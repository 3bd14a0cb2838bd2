import json
from unittest.mock import MagicMock, patch

import redis

from teamtravel.conversation.group_flow.store import GroupFlowStore
from teamtravel.session.redis_store import RedisSessionStore, open_store
from teamtravel.session.store import SessionStore


class TestSessionStore:
    def test_set_get_clear(self):
        store = SessionStore(ttl_seconds=60)
        store.set("k", {"a": 1})
        assert store.get("k") == {"a": 1}
        store.clear("k")
        assert store.get("k") is None

    def test_expired_record_is_dropped(self):
        store = SessionStore(ttl_seconds=10)
        with patch("teamtravel.session.store.time.time", return_value=1000.0):
            store.set("k", {"a": 1})
        with patch("teamtravel.session.store.time.time", return_value=1011.0):
            assert store.get("k") is None


class TestRedisSessionStore:
    def test_unreachable_redis_falls_back_to_memory(self):
        with patch("teamtravel.session.redis_store.redis.from_url") as from_url:
            from_url.return_value.ping.side_effect = redis.ConnectionError("down")
            store = RedisSessionStore("redis://nowhere:6379/0", 60, prefix="t:")
        assert store.client is None
        store.set("k", {"a": 1})
        assert store.get("k") == {"a": 1}
        store.clear("k")
        assert store.get("k") is None

    def test_writes_are_prefixed_with_ttl(self):
        client = MagicMock()
        with patch("teamtravel.session.redis_store.redis.from_url", return_value=client):
            store = RedisSessionStore("redis://localhost:6379/0", 120, prefix="group_flow:")
        store.set("u1", {"step": "awaiting_team"})
        key, ttl, payload = client.setex.call_args.args
        assert key == "group_flow:u1"
        assert ttl == 120
        assert json.loads(payload) == {"step": "awaiting_team"}

        client.get.return_value = payload
        assert store.get("u1") == {"step": "awaiting_team"}
        client.get.assert_called_with("group_flow:u1")

    def test_failed_write_is_kept_in_memory(self):
        client = MagicMock()
        client.setex.side_effect = redis.ConnectionError("gone")
        with patch("teamtravel.session.redis_store.redis.from_url", return_value=client):
            store = RedisSessionStore("redis://localhost:6379/0", 60, prefix="p:")
        store.set("k", {"a": 1})
        client.get.side_effect = redis.ConnectionError("gone")
        assert store.get("k") == {"a": 1}

    def test_failed_write_shadows_stale_redis_value(self):
        client = MagicMock()
        client.get.return_value = json.dumps({"step": "awaiting_team"})
        with patch("teamtravel.session.redis_store.redis.from_url", return_value=client):
            store = RedisSessionStore("redis://localhost:6379/0", 60, prefix="p:")
        client.setex.side_effect = redis.ConnectionError("gone")
        store.set("k", {"step": "awaiting_approval"})
        assert store.get("k") == {"step": "awaiting_approval"}
        client.get.assert_not_called()

        client.setex.side_effect = None
        store.set("k", {"step": "awaiting_team"})
        assert store.get("k") == {"step": "awaiting_team"}
        client.get.assert_called_once_with("p:k")

    def test_read_error_without_fallback_copy_is_a_miss(self):
        client = MagicMock()
        client.get.side_effect = redis.ConnectionError("gone")
        with patch("teamtravel.session.redis_store.redis.from_url", return_value=client):
            store = RedisSessionStore("redis://localhost:6379/0", 60, prefix="p:")
        assert store.get("k") is None


class TestOpenStore:
    def test_in_memory_without_redis_url(self):
        with patch("teamtravel.session.redis_store.settings") as s:
            s.REDIS_URL = None
            store = open_store("x:", 30)
        assert isinstance(store, SessionStore)
        assert store.prefix == "x:"
        assert store.ttl_seconds == 30


class TestGroupFlowStore:
    def test_round_trip(self):
        store = GroupFlowStore(store=SessionStore(ttl_seconds=60))
        store.save("lead", {"step": "awaiting_team", "conferences": []})
        flow = store.load("lead")
        assert flow.step == "awaiting_team"
        assert store.get("lead")["step"] == "awaiting_team"
        store.clear("lead")
        assert store.load("lead") is None

    def test_invalid_record_loads_as_none(self):
        store = GroupFlowStore(store=SessionStore(ttl_seconds=60))
        store.save("lead", {"conferences": "nope"})
        assert store.load("lead") is None
        assert store.get("lead") == {"conferences": "nope"}
