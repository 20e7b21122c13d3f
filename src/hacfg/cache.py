"""Process-local read-through cache for binds and configuration versions.

Entries are keyed by (frontend, scope) where scope is a transaction id, or
"" for the committed configuration. Per-bind entries and whole-frontend
list entries are stored separately; any change to one bind drops the list
entry of its frontend so a stale list is never served.

The cache is never the source of truth. Cache(enabled=False) turns every
method into a no-op and every lookup into a miss.
"""

from __future__ import annotations

import dataclasses
import logging
import threading

from hacfg.models import Bind

logger = logging.getLogger("hacfg.cache")

COMMITTED = ""


def _scope(transaction_id: str | None) -> str:
    return transaction_id or COMMITTED


class BindCache:
    def __init__(self, cache: Cache) -> None:
        self._cache = cache
        self._lists: dict[tuple[str, str], list[Bind]] = {}
        self._items: dict[tuple[str, str, str], Bind] = {}

    def get(self, frontend: str, transaction_id: str | None) -> tuple[list[Bind], bool]:
        if not self._cache.enabled:
            return [], False
        with self._cache.lock:
            binds = self._lists.get((frontend, _scope(transaction_id)))
            if binds is None:
                return [], False
            logger.debug("bind list cache hit: %s [%s]", frontend, _scope(transaction_id))
            return [dataclasses.replace(b) for b in binds], True

    def get_one(self, name: str, frontend: str, transaction_id: str | None) -> tuple[Bind | None, bool]:
        if not self._cache.enabled:
            return None, False
        with self._cache.lock:
            bind = self._items.get((frontend, _scope(transaction_id), name))
            if bind is None:
                return None, False
            logger.debug("bind cache hit: %s/%s [%s]", frontend, name, _scope(transaction_id))
            return dataclasses.replace(bind), True

    def set(self, name: str, frontend: str, transaction_id: str | None, bind: Bind) -> None:
        if not self._cache.enabled:
            return
        scope = _scope(transaction_id)
        with self._cache.lock:
            self._items[(frontend, scope, name)] = dataclasses.replace(bind)
            self._lists.pop((frontend, scope), None)

    def put_one(self, name: str, frontend: str, transaction_id: str | None, bind: Bind) -> None:
        """Cache one bind read from disk; the frontend's list entry stays."""
        if not self._cache.enabled:
            return
        with self._cache.lock:
            self._items[(frontend, _scope(transaction_id), name)] = dataclasses.replace(bind)

    def set_all(self, frontend: str, transaction_id: str | None, binds: list[Bind]) -> None:
        """Cache a frontend's list. Of binds sharing a name, the first is the one cached."""
        if not self._cache.enabled:
            return
        scope = _scope(transaction_id)
        with self._cache.lock:
            self._lists[(frontend, scope)] = [dataclasses.replace(b) for b in binds]
            seen: set[str] = set()
            for b in binds:
                if b.name in seen:
                    continue
                seen.add(b.name)
                self._items[(frontend, scope, b.name)] = dataclasses.replace(b)

    def delete(self, name: str, frontend: str, transaction_id: str | None) -> None:
        if not self._cache.enabled:
            return
        scope = _scope(transaction_id)
        with self._cache.lock:
            self._items.pop((frontend, scope, name), None)
            self._lists.pop((frontend, scope), None)

    def invalidate_transaction(self, transaction_id: str | None) -> None:
        """Drop every entry of one scope."""
        scope = _scope(transaction_id)
        with self._cache.lock:
            self._lists = {k: v for k, v in self._lists.items() if k[1] != scope}
            self._items = {k: v for k, v in self._items.items() if k[1] != scope}

    def invalidate_committed(self) -> None:
        self.invalidate_transaction(COMMITTED)

    def clear(self) -> None:
        with self._cache.lock:
            self._lists.clear()
            self._items.clear()


class VersionCache:
    def __init__(self, cache: Cache) -> None:
        self._cache = cache
        self._versions: dict[str, int] = {}

    def get(self, transaction_id: str | None) -> tuple[int, bool]:
        if not self._cache.enabled:
            return 0, False
        with self._cache.lock:
            version = self._versions.get(_scope(transaction_id))
            return (version, True) if version is not None else (0, False)

    def set(self, transaction_id: str | None, version: int) -> None:
        if not self._cache.enabled:
            return
        with self._cache.lock:
            self._versions[_scope(transaction_id)] = version

    def invalidate(self, transaction_id: str | None) -> None:
        with self._cache.lock:
            self._versions.pop(_scope(transaction_id), None)

    def clear(self) -> None:
        with self._cache.lock:
            self._versions.clear()


class Cache:
    """Bind and version caches sharing one on/off switch and one lock."""

    def __init__(self, enabled: bool = True) -> None:
        self.lock = threading.RLock()
        self._enabled = enabled
        self.binds = BindCache(self)
        self.version = VersionCache(self)

    @property
    def enabled(self) -> bool:
        return self._enabled

    def enable(self) -> None:
        self._enabled = True

    def disable(self) -> None:
        """Turn the cache off and drop everything it holds."""
        self._enabled = False
        self.clear()

    def clear(self) -> None:
        self.binds.clear()
        self.version.clear()

    def invalidate_transaction(self, transaction_id: str | None) -> None:
        self.binds.invalidate_transaction(transaction_id)
        self.version.invalidate(transaction_id)
