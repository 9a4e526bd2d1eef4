"""In-memory TTL cache for data fetched from the Estoque API."""

from __future__ import annotations

import hashlib
import json
import logging
import time
from typing import Any

logger = logging.getLogger(__name__)


class QueryCache:
    """In-memory TTL cache for read queries.

    Cache keys are derived from (scope, path, params). Server-pushed events
    invalidate a whole scope (e.g. every cached notifications page).
    """

    def __init__(self, ttl: int = 300, enabled: bool = True) -> None:
        self._ttl = ttl
        self._enabled = enabled
        self._store: dict[str, tuple[float, Any]] = {}
        self._scope_keys: dict[str, set[str]] = {}

    @property
    def enabled(self) -> bool:
        return self._enabled

    def make_key(self, scope: str, path: str, params: Any = None) -> str:
        """Generate a deterministic cache key."""
        params_str = json.dumps(params, sort_keys=True, default=str) if params else ""
        raw = f"{scope}|{path}|{params_str}"
        return hashlib.sha256(raw.encode()).hexdigest()

    def get(self, key: str) -> Any | None:
        """Retrieve a cached value if it exists and has not expired."""
        if not self._enabled:
            return None

        entry = self._store.get(key)
        if entry is None:
            return None

        timestamp, data = entry
        if time.time() - timestamp > self._ttl:
            self._remove_key(key)
            return None

        return data

    def put(self, key: str, data: Any, scope: str) -> None:
        """Store a value in the cache."""
        if not self._enabled:
            return

        self._store[key] = (time.time(), data)
        self._scope_keys.setdefault(scope, set()).add(key)

    def invalidate_scope(self, scope: str) -> int:
        """Invalidate all cached entries for one scope."""
        keys = self._scope_keys.pop(scope, set())
        count = 0
        for key in keys:
            if key in self._store:
                del self._store[key]
                count += 1
        if count:
            logger.debug(f"Invalidated {count} cached '{scope}' entries")
        return count

    def invalidate_all(self) -> int:
        """Clear the entire cache."""
        count = len(self._store)
        self._store.clear()
        self._scope_keys.clear()
        return count

    def _remove_key(self, key: str) -> None:
        """Remove a single key from store and scope index."""
        self._store.pop(key, None)
        for scope_set in self._scope_keys.values():
            scope_set.discard(key)

    @property
    def size(self) -> int:
        """Number of entries currently in the cache."""
        return len(self._store)
