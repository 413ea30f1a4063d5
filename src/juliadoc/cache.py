"""In-memory result cache with a fixed time-to-live.

Entries expire lazily: ``get`` checks the age of the entry it finds and
deletes it when it is older than the TTL. There is no background sweep and
no capacity bound; one server process serves one agent session, so the key
space stays small.

The cache holds no lock. All access happens on the asyncio event loop thread
and no method awaits, so interleaved tool calls never see a half-applied
update. Wrap it in a lock before sharing one instance across threads.
"""

from __future__ import annotations

import time
from typing import TYPE_CHECKING

import structlog

from juliadoc.models.cache import CacheEntry

if TYPE_CHECKING:
    from collections.abc import Callable

log = structlog.get_logger()

DEFAULT_TTL_SECONDS = 300


class TTLCache:
    """String-valued cache implementing CacheProtocol."""

    def __init__(
        self,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._ttl = ttl_seconds
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}

    @property
    def ttl_seconds(self) -> float:
        return self._ttl

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        # Raw membership, ignores expiry; does not evict.
        return key in self._entries

    def get(self, key: str) -> str | None:
        """Return the live value for ``key``, or ``None`` if missing or expired."""
        entry = self._entries.get(key)
        if entry is None:
            return None
        if self._clock() - entry.created_at > self._ttl:
            del self._entries[key]
            log.debug("cache_evicted", key=key)
            return None
        return entry.value

    def set(self, key: str, value: str) -> None:
        """Store ``value``, replacing any entry for ``key`` and resetting its age."""
        self._entries[key] = CacheEntry(value=value, created_at=self._clock())

    def clear(self) -> None:
        """Drop every entry. Called on server shutdown."""
        count = len(self._entries)
        self._entries.clear()
        log.info("cache_cleared", entries=count)
