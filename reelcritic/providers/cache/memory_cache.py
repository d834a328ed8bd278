"""Process-local store for the spam gate's last-action timestamps.

The gate records when each user last posted a review or a reply, under
keys such as ``"user-1_last_review"``.
Those timestamps only matter for about an hour, so entries carry a
time-to-use and fall out on their own; the store is also size-bounded so
a burst of one-off posters cannot grow it without limit.

Backed by ``cachetools.TLRUCache`` so each entry can carry its own TTL
(the interface allows a per-call ``ttl``).  Several processes sharing one
database each keep their own copy; use a networked ICacheProvider there.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any, NamedTuple

import structlog
from cachetools import TLRUCache

from reelcritic.interfaces.cache_provider import ICacheProvider

logger = structlog.get_logger(logger_name=__name__)


class _Stamped(NamedTuple):
    value: Any
    ttl: float


def _expires_at(_key: str, entry: _Stamped, now: float) -> float:
    return now + entry.ttl


class MemoryCacheProvider(ICacheProvider):
    """Bounded in-memory cache with per-entry expiry.

    Parameters
    ----------
    max_size:
        Number of user/action keys kept; the least recently used key is
        evicted beyond it.
    ttl:
        Default lifetime in seconds for an entry written without one.
    timer:
        Monotonic clock used for expiry.  Tests pass a fake one.
    """

    def __init__(
        self,
        max_size: int = 1000,
        ttl: int = 3600,
        timer: Callable[[], float] | None = None,
    ) -> None:
        self._default_ttl = ttl
        if timer is None:
            self._entries: TLRUCache[str, _Stamped] = TLRUCache(maxsize=max_size, ttu=_expires_at)
        else:
            self._entries = TLRUCache(maxsize=max_size, ttu=_expires_at, timer=timer)

    async def get(self, key: str) -> Any | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        return entry.value

    async def set(self, key: str, value: Any, ttl: int | None = None) -> None:
        lifetime = self._default_ttl if ttl is None else ttl
        self._entries[key] = _Stamped(value, lifetime)
        logger.debug("last_action_recorded", key=key, ttl=lifetime)

    async def delete(self, key: str) -> None:
        self._entries.pop(key, None)

    async def exists(self, key: str) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)
