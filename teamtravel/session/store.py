from __future__ import annotations

"""In-memory keyed store with TTL semantics.

Backs group flow state, preferences and the search cache when Redis is not
configured. Every get/set for a key happens under one lock, so a single
key update is atomic.
"""

from typing import Optional, Dict, Any
import time
import threading


class SessionStore:
    """In-memory dictionary of JSON-like records with per-record TTL."""

    def __init__(self, ttl_seconds: int = 900, prefix: str = ""):
        self.ttl_seconds = ttl_seconds
        self.prefix = prefix
        self._lock = threading.Lock()
        self._data: Dict[str, Dict[str, Any]] = {}

    def _expired(self, rec: Dict[str, Any]) -> bool:
        return (time.time() - rec.get("updated_at", 0)) > self.ttl_seconds

    def get(self, key: str) -> Optional[Dict[str, Any]]:
        """Return the stored state if present and not expired, else None."""
        with self._lock:
            rec = self._data.get(key)
            if not rec:
                return None
            if self._expired(rec):
                self._data.pop(key, None)
                return None
            return rec.get("state")

    def set(self, key: str, state: Dict[str, Any]) -> None:
        now = time.time()
        with self._lock:
            self._data[key] = {
                "state": state,
                "updated_at": now,
                "started_at": self._data.get(key, {}).get("started_at", now),
            }

    def clear(self, key: str) -> None:
        with self._lock:
            self._data.pop(key, None)

    def ping(self) -> bool:
        return True
