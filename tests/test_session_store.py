"""
Unit tests for session storage backends.
"""

import json
import re

import pytest
import redis
from unittest.mock import Mock

import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from config import AppConfig
from models import Session
from tools.session_store import (
    InMemorySessionStore, RedisSessionStore, SessionStoreError,
    build_session_store, new_session_id
)
from tests.test_logger import test_logger


TTL = 2592000


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


class TestSessionIds:
    """Test suite for identifier generation."""

    def test_new_session_id_format(self):
        session_id = new_session_id()
        assert re.fullmatch(r"sess_[0-9a-f]{8}-[0-9a-f]{4}-4[0-9a-f]{3}-[0-9a-f]{4}-[0-9a-f]{12}", session_id)

    def test_new_session_ids_are_unique(self):
        assert len({new_session_id() for _ in range(200)}) == 200


class TestInMemorySessionStore:
    """Test suite for InMemorySessionStore."""

    def setup_method(self):
        """Setup test environment."""
        test_logger.log_section("TESTING: tools/session_store.py - InMemorySessionStore")

    def test_get_missing_returns_none(self):
        store = InMemorySessionStore()
        assert store.get("sess_missing") is None

    def test_put_then_get(self):
        """A stored session reads back equal but as an independent copy."""
        test_logger.log_test_start("session_store.py", "InMemorySessionStore.put", "round_trip")

        try:
            store = InMemorySessionStore()
            session = Session(id="sess_1")
            session.add_turn("user", "Hi")

            store.put("sess_1", session, TTL)
            loaded = store.get("sess_1")

            assert loaded == session
            assert loaded is not session

            loaded.add_turn("assistant", "not saved")
            assert len(store.get("sess_1").messages) == 1

            test_logger.log_test_pass("session_store.py", "InMemorySessionStore.put", "round_trip")
        except Exception as e:
            test_logger.log_test_fail("session_store.py", "InMemorySessionStore.put", "round_trip", str(e))
            raise

    def test_put_replaces_previous_record(self):
        """put overwrites rather than merges."""
        store = InMemorySessionStore()
        first = Session(id="sess_1")
        first.add_turn("user", "one")
        first.add_turn("assistant", "two")
        store.put("sess_1", first, TTL)

        replacement = Session(id="sess_1")
        replacement.add_turn("user", "fresh")
        store.put("sess_1", replacement, TTL)

        assert [t.content for t in store.get("sess_1").messages] == ["fresh"]

    def test_records_expire_after_ttl(self):
        """Expired sessions read as absent and are dropped."""
        test_logger.log_test_start("session_store.py", "InMemorySessionStore.get", "expiry")

        try:
            clock = FakeClock()
            store = InMemorySessionStore(clock=clock)
            store.put("sess_1", Session(id="sess_1"), ttl_seconds=60)

            clock.now += 59
            assert store.get("sess_1") is not None

            clock.now += 1
            assert store.get("sess_1") is None
            assert len(store) == 0

            test_logger.log_test_pass("session_store.py", "InMemorySessionStore.get", "expiry")
        except Exception as e:
            test_logger.log_test_fail("session_store.py", "InMemorySessionStore.get", "expiry", str(e))
            raise

    def test_put_drops_expired_records_never_read_again(self):
        """Abandoned sessions do not accumulate in process memory."""
        test_logger.log_test_start("session_store.py", "InMemorySessionStore.put", "sweep_expired")

        try:
            clock = FakeClock(now=0.0)
            store = InMemorySessionStore(clock=clock)
            for i in range(1000):
                store.put(f"sess_{i}", Session(id=f"sess_{i}"), ttl_seconds=10)

            clock.now = 100.0
            store.put("sess_fresh", Session(id="sess_fresh"), ttl_seconds=10)

            assert len(store) == 1
            assert store.get("sess_fresh") is not None

            test_logger.log_test_pass("session_store.py", "InMemorySessionStore.put", "sweep_expired")
        except Exception as e:
            test_logger.log_test_fail("session_store.py", "InMemorySessionStore.put", "sweep_expired", str(e))
            raise

    def test_put_keeps_live_records(self):
        clock = FakeClock(now=0.0)
        store = InMemorySessionStore(clock=clock)
        store.put("sess_old", Session(id="sess_old"), ttl_seconds=10)
        store.put("sess_long", Session(id="sess_long"), ttl_seconds=1000)

        clock.now = 50.0
        store.put("sess_new", Session(id="sess_new"), ttl_seconds=10)

        assert len(store) == 2
        assert store.get("sess_long") is not None

    def test_put_refreshes_expiry(self):
        clock = FakeClock()
        store = InMemorySessionStore(clock=clock)
        store.put("sess_1", Session(id="sess_1"), ttl_seconds=60)
        clock.now += 50
        store.put("sess_1", Session(id="sess_1"), ttl_seconds=60)
        clock.now += 50
        assert store.get("sess_1") is not None


class TestRedisSessionStore:
    """Test suite for RedisSessionStore with a mocked client."""

    def setup_method(self):
        """Setup test environment."""
        test_logger.log_section("TESTING: tools/session_store.py - RedisSessionStore")

    def test_put_sets_prefixed_key_with_expiry(self):
        test_logger.log_test_start("session_store.py", "RedisSessionStore.put", "set_with_ex")

        try:
            client = Mock()
            store = RedisSessionStore(client, key_prefix="chatbot_session:")
            session = Session(id="sess_1")
            session.add_turn("user", "Hi")

            store.put("sess_1", session, TTL)

            args, kwargs = client.set.call_args
            assert args[0] == "chatbot_session:sess_1"
            assert json.loads(args[1])["messages"][0]["content"] == "Hi"
            assert kwargs == {"ex": TTL}

            test_logger.log_test_pass("session_store.py", "RedisSessionStore.put", "set_with_ex")
        except Exception as e:
            test_logger.log_test_fail("session_store.py", "RedisSessionStore.put", "set_with_ex", str(e))
            raise

    def test_get_parses_record(self):
        session = Session(id="sess_1")
        session.add_turn("user", "Hi")
        client = Mock()
        client.get.return_value = session.to_record()

        loaded = RedisSessionStore(client).get("sess_1")

        client.get.assert_called_once_with("chatbot_session:sess_1")
        assert loaded == session

    def test_get_missing_returns_none(self):
        client = Mock()
        client.get.return_value = None
        assert RedisSessionStore(client).get("sess_1") is None

    def test_malformed_record_reads_as_missing(self):
        client = Mock()
        client.get.return_value = '{"id": "sess_1", "messages": "oops"}'
        assert RedisSessionStore(client).get("sess_1") is None

    def test_redis_errors_are_wrapped(self):
        client = Mock()
        client.get.side_effect = redis.ConnectionError("down")
        client.set.side_effect = redis.ConnectionError("down")
        store = RedisSessionStore(client)

        with pytest.raises(SessionStoreError):
            store.get("sess_1")
        with pytest.raises(SessionStoreError):
            store.put("sess_1", Session(id="sess_1"), TTL)


class TestBuildSessionStore:
    """Test suite for backend selection."""

    def test_memory_store_without_redis_url(self):
        connections = Mock()
        store = build_session_store(AppConfig(redis_url=""), connections)

        assert isinstance(store, InMemorySessionStore)
        connections.get_redis_client.assert_not_called()

    def test_redis_store_with_redis_url(self):
        connections = Mock()
        store = build_session_store(
            AppConfig(redis_url="redis://localhost:6379/0", session_key_prefix="widget:"),
            connections
        )

        assert isinstance(store, RedisSessionStore)
        assert store.key_prefix == "widget:"
        assert store.client is connections.get_redis_client.return_value
