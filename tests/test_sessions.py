"""
Tests for chat sessions: TTL, overwrite semantics, merge order and backends.
"""

import json
from unittest.mock import MagicMock

import pytest
from freezegun import freeze_time

from app.core.config import Settings
from app.services.conversation.sessions import (
    InMemorySessionBackend,
    RedisSessionBackend,
    SessionManager,
    create_session_manager,
    merge_data,
)


def test_save_and_get_session(sessions):
    sessions.save_session(1001, "CITIES", {"country_id": 3})
    assert sessions.get_session(1001) == {"state": "CITIES", "data": {"country_id": 3}}


def test_missing_session_is_none(sessions):
    assert sessions.get_session(4242) is None


def test_save_is_flat_overwrite(sessions):
    sessions.save_session(1001, "CITIES", {"country_id": 3})
    sessions.save_session(1001, "DATES", {"city_id": 9})
    assert sessions.get_session(1001) == {"state": "DATES", "data": {"city_id": 9}}


def test_delete_session(sessions):
    sessions.save_session(1001, "MAIN_MENU", {})
    sessions.delete_session(1001)
    assert sessions.get_session(1001) is None


def test_sessions_are_per_chat(sessions):
    sessions.save_session(1, "CITIES", {"country_id": 1})
    sessions.save_session(2, "DATES", {"city_id": 2})
    assert sessions.get_session(1)["state"] == "CITIES"
    assert sessions.get_session(2)["state"] == "DATES"


def test_session_expires_after_ttl():
    manager = SessionManager(InMemorySessionBackend(), ttl_seconds=600)
    with freeze_time("2026-05-01 12:00:00") as frozen:
        manager.save_session(1001, "DATES", {"city_id": 9})
        frozen.tick(599)
        assert manager.get_session(1001) is not None
        frozen.tick(2)
        assert manager.get_session(1001) is None


def test_ttl_restarts_on_every_save():
    manager = SessionManager(InMemorySessionBackend(), ttl_seconds=600)
    with freeze_time("2026-05-01 12:00:00") as frozen:
        manager.save_session(1001, "DATES", {})
        frozen.tick(500)
        manager.save_session(1001, "HOUSES_LIST", {})
        frozen.tick(500)
        assert manager.get_session(1001)["state"] == "HOUSES_LIST"


def test_unreadable_session_is_discarded():
    backend = InMemorySessionBackend()
    manager = SessionManager(backend, ttl_seconds=600)
    backend.set("bot:session:1001", "{not json", 600)
    assert manager.get_session(1001) is None
    assert backend.get("bot:session:1001") is None


def test_merge_data_patch_wins():
    assert merge_data({"city_id": 1, "country_id": 2}, {"city_id": 5}) == {"city_id": 5, "country_id": 2}


def test_merge_data_none_removes_key():
    assert merge_data({"comment": "old", "house_id": 3}, {"comment": None}) == {"house_id": 3}


def test_merge_data_does_not_mutate_inputs():
    old = {"city_id": 1}
    patch = {"house_id": 2}
    merge_data(old, patch)
    assert old == {"city_id": 1}
    assert patch == {"house_id": 2}


def test_merge_data_handles_missing_sides():
    assert merge_data(None, {"a": 1}) == {"a": 1}
    assert merge_data({"a": 1}, None) == {"a": 1}


def test_redis_backend_uses_setex():
    client = MagicMock()
    client.get.return_value = json.dumps({"state": "DATES", "data": {"city_id": 4}})
    manager = SessionManager(RedisSessionBackend(client), ttl_seconds=600)

    manager.save_session(77, "DATES", {"city_id": 4})
    client.setex.assert_called_once_with(
        "bot:session:77", 600, json.dumps({"state": "DATES", "data": {"city_id": 4}})
    )
    assert manager.get_session(77) == {"state": "DATES", "data": {"city_id": 4}}

    manager.delete_session(77)
    client.delete.assert_called_once_with("bot:session:77")


def test_create_session_manager_memory():
    config = Settings(database_url="sqlite://", telegram_bot_token="t", session_backend="memory")
    manager = create_session_manager(config)
    assert isinstance(manager.backend, InMemorySessionBackend)
    assert manager.ttl_seconds == 600


def test_create_session_manager_rejects_unknown_backend():
    config = Settings(database_url="sqlite://", telegram_bot_token="t", session_backend="memcached")
    with pytest.raises(ValueError):
        create_session_manager(config)
