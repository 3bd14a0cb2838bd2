import json
import threading
import redis
from typing import Dict, Optional, Any, Union

from teamtravel.config import settings
from teamtravel.obs.logger import log_event
from teamtravel.session.store import SessionStore


class RedisSessionStore:
    """Keyed JSON store in Redis, one key per record, SETEX for TTL.

    Falls back to an in-process dict when Redis cannot be reached at startup
    or a write fails. A key written to the fallback is served from there
    until a later write reaches Redis.
    """

    def __init__(self, redis_url: str = None, ttl_seconds: int = None, prefix: str = "session:"):
        self.redis_url = redis_url or settings.REDIS_URL
        self.ttl_seconds = ttl_seconds or settings.REDIS_TTL_SECONDS
        self.prefix = prefix
        self._fallback_store: Dict[str, Dict[str, Any]] = {}
        self._fallback_lock = threading.Lock()
        self.client = None

        if not self.redis_url:
            print("[WARNING] REDIS_URL not set, using in-memory storage")
            return

        try:
            self.client = redis.from_url(self.redis_url, decode_responses=True)
            self.client.ping()
        except redis.RedisError:
            self.client = None
            print("[WARNING] Redis not available, falling back to in-memory storage")

    def _get_key(self, key: str) -> str:
        return f"{self.prefix}{key}"

    def get(self, key: str) -> Optional[Dict[str, Any]]:
        # fallback copy shadows Redis until the next successful write
        with self._fallback_lock:
            if key in self._fallback_store or self.client is None:
                return self._fallback_store.get(key)

        try:
            data = self.client.get(self._get_key(key))
        except redis.RedisError as e:
            log_event("store_read_failed", level="WARNING", prefix=self.prefix, error=str(e))
            return None
        if data:
            return json.loads(data)
        return None

    def set(self, key: str, state: Dict[str, Any]) -> None:
        if self.client is None:
            with self._fallback_lock:
                self._fallback_store[key] = state
            return

        try:
            self.client.setex(self._get_key(key), self.ttl_seconds, json.dumps(state, default=str))
        except redis.RedisError as e:
            log_event("store_write_failed", level="WARNING", prefix=self.prefix, error=str(e))
            with self._fallback_lock:
                self._fallback_store[key] = state
            return
        with self._fallback_lock:
            self._fallback_store.pop(key, None)

    def clear(self, key: str) -> None:
        with self._fallback_lock:
            self._fallback_store.pop(key, None)
        if self.client is not None:
            self.client.delete(self._get_key(key))

    def ping(self) -> bool:
        if self.client is None:
            return True
        return bool(self.client.ping())


KeyedStore = Union[SessionStore, RedisSessionStore]


def open_store(prefix: str, ttl_seconds: int) -> KeyedStore:
    """Redis-backed store when REDIS_URL is configured, in-memory otherwise."""
    if settings.REDIS_URL:
        return RedisSessionStore(settings.REDIS_URL, ttl_seconds, prefix=prefix)
    return SessionStore(ttl_seconds=ttl_seconds, prefix=prefix)
