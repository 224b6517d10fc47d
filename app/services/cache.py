"""
app/services/cache.py – simple in-memory TTL cache for keyword research results.

Keyed by a SHA-256 hash of the serialised request. Entries expire after
`ttl_seconds`. Keyword lookups cost Semrush API units, so repeated research
for the same campaign context is served from here.
"""
from __future__ import annotations

import hashlib
import json
import threading
import time
from typing import Any, Optional

from app.config import settings


class TTLCache:
    """Minimal in-memory key/value store with per-entry TTL."""

    def __init__(self, ttl_seconds: int = 900) -> None:
        self._store: dict[str, tuple[Any, float]] = {}
        self._ttl = ttl_seconds
        self._lock = threading.Lock()

    # ── Helpers ───────────────────────────────────────────────────────────────

    @staticmethod
    def _hash(data: Any) -> str:
        raw = json.dumps(data, sort_keys=True, default=str)
        return hashlib.sha256(raw.encode()).hexdigest()

    # ── Public API ────────────────────────────────────────────────────────────

    def get(self, key_data: Any) -> Optional[Any]:
        """Return cached value or None (also removes expired entries)."""
        key = self._hash(key_data)
        with self._lock:
            entry = self._store.get(key)
            if entry is None:
                return None
            value, expires_at = entry
            if time.monotonic() > expires_at:
                del self._store[key]
                return None
            return value

    def set(self, key_data: Any, value: Any) -> None:
        """Store a value with the configured TTL."""
        key = self._hash(key_data)
        with self._lock:
            self._store[key] = (value, time.monotonic() + self._ttl)

    def clear(self) -> None:
        with self._lock:
            self._store.clear()

    def __len__(self) -> int:
        return len(self._store)


# Module-level singleton – shared across all requests in a process.
keyword_cache = TTLCache(ttl_seconds=settings.keyword_cache_ttl_seconds)
