"""
Time-boxed cache of resolved :class:`AuthorizedAreaSet` values.

The cache is an explicit object owned by whoever builds it (the FastAPI app
keeps one on ``app.state``); nothing here is process-global. Entries expire
after ``ttl_seconds``; rule or hierarchy edits should call :meth:`invalidate`
(one user) or :meth:`clear` (tree re-parented). Until then a cached set may be
stale for at most one TTL, the same window a scope token already carries.
"""

from __future__ import annotations

from collections.abc import Callable
import logging
import time

from .types import AuthorizedAreaSet

logger = logging.getLogger(__name__)


class AreaSetCache:
    def __init__(self, ttl_seconds: float, clock: Callable[[], float] = time.monotonic) -> None:
        self._ttl = ttl_seconds
        self._clock = clock
        self._entries: dict[str, tuple[float, AuthorizedAreaSet]] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, user_id: str) -> AuthorizedAreaSet | None:
        entry = self._entries.get(user_id)
        if entry is None:
            return None
        stored_at, area_set = entry
        if (self._clock() - stored_at) >= self._ttl:
            self._entries.pop(user_id, None)
            return None
        return area_set

    def put(self, user_id: str, area_set: AuthorizedAreaSet) -> None:
        self._entries[user_id] = (self._clock(), area_set)

    def get_or_resolve(self, user_id: str, resolver: Callable[[], AuthorizedAreaSet]) -> AuthorizedAreaSet:
        cached = self.get(user_id)
        if cached is not None:
            return cached
        area_set = resolver()
        self.put(user_id, area_set)
        logger.debug("Area set cache miss user=%s restricted=%s", user_id, area_set.has_restrictions)
        return area_set

    def invalidate(self, user_id: str) -> None:
        self._entries.pop(user_id, None)

    def clear(self) -> None:
        self._entries.clear()
