"""
Per-chat conversation sessions.

A session is {"state": <WorkflowState>, "data": {...}} stored under one key
per chat id with an idle TTL that restarts on every save. The store does a
flat overwrite; callers merge with merge_data() before saving.
"""

import json
import logging
import threading
from datetime import UTC, datetime, timedelta
from typing import Protocol

import redis

from app.core.config import Settings

logger = logging.getLogger(__name__)

SessionData = dict[str, int | str]


class SessionBackend(Protocol):
    """Key-value store with per-key expiry."""

    def get(self, key: str) -> str | None: ...

    def set(self, key: str, value: str, ttl_seconds: int) -> None: ...

    def delete(self, key: str) -> None: ...


class RedisSessionBackend:
    def __init__(self, client: redis.Redis):
        self.client = client

    @classmethod
    def from_url(cls, url: str) -> "RedisSessionBackend":
        return cls(redis.Redis.from_url(url, decode_responses=True, socket_timeout=5))

    def get(self, key: str) -> str | None:
        return self.client.get(key)

    def set(self, key: str, value: str, ttl_seconds: int) -> None:
        self.client.setex(key, ttl_seconds, value)

    def delete(self, key: str) -> None:
        self.client.delete(key)


class InMemorySessionBackend:
    """Process-local TTL store for development and tests."""

    def __init__(self):
        self._items: dict[str, tuple[datetime, str]] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> str | None:
        with self._lock:
            item = self._items.get(key)
            if item is None:
                return None
            expires_at, value = item
            if datetime.now(UTC) >= expires_at:
                del self._items[key]
                return None
            return value

    def set(self, key: str, value: str, ttl_seconds: int) -> None:
        with self._lock:
            self._items[key] = (datetime.now(UTC) + timedelta(seconds=ttl_seconds), value)

    def delete(self, key: str) -> None:
        with self._lock:
            self._items.pop(key, None)


def merge_data(old: SessionData | None, patch: SessionData | None) -> SessionData:
    """
    Return a new mapping with `patch` laid over `old`.

    Patch keys win. A None value in the patch removes the key, so "no
    comment" leaves no stale comment behind.
    """
    merged = dict(old or {})
    for key, value in (patch or {}).items():
        if value is None:
            merged.pop(key, None)
        else:
            merged[key] = value
    return merged


class SessionManager:
    def __init__(self, backend: SessionBackend, ttl_seconds: int, key_prefix: str = "bot:session:"):
        self.backend = backend
        self.ttl_seconds = ttl_seconds
        self.key_prefix = key_prefix

    def _key(self, chat_id: int) -> str:
        return f"{self.key_prefix}{chat_id}"

    def get_session(self, chat_id: int) -> dict | None:
        """Return {"state", "data"} or None when absent, expired or unreadable."""
        raw = self.backend.get(self._key(chat_id))
        if raw is None:
            return None
        try:
            session = json.loads(raw)
        except ValueError:
            logger.warning(f"Discarding unreadable session for chat {chat_id}")
            self.delete_session(chat_id)
            return None
        if not isinstance(session, dict) or "state" not in session:
            self.delete_session(chat_id)
            return None
        session.setdefault("data", {})
        return session

    def save_session(self, chat_id: int, state: str, data: SessionData | None = None) -> None:
        record = {"state": str(state), "data": dict(data or {})}
        self.backend.set(self._key(chat_id), json.dumps(record), self.ttl_seconds)

    def delete_session(self, chat_id: int) -> None:
        self.backend.delete(self._key(chat_id))


def create_session_manager(config: Settings) -> SessionManager:
    """Build the session manager selected by settings.session_backend."""
    if config.session_backend == "memory":
        logger.warning("Using in-process session store - sessions are not shared between workers")
        backend: SessionBackend = InMemorySessionBackend()
    elif config.session_backend == "redis":
        backend = RedisSessionBackend.from_url(config.redis_url)
    else:
        raise ValueError(f"Unknown session backend: {config.session_backend}")
    return SessionManager(backend, ttl_seconds=config.session_ttl_seconds, key_prefix=config.session_key_prefix)
