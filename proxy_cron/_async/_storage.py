from __future__ import annotations

import logging
import typing as tp

from proxy_cron._models import CacheEntry
from proxy_cron._synchronization import AsyncReadWriteLock

logger = logging.getLogger(__name__)

__all__ = ("AsyncResponseCache",)


class AsyncResponseCache:
    """
    In-memory store of the last successful upstream response per endpoint.

    Entries are keyed by the raw ``endpoint`` string, replaced as a whole on
    every successful fetch and never evicted. Readers share the lock, writers
    hold it exclusively, so a reader observes either the previous entry or the
    complete new one.
    """

    def __init__(self) -> None:
        self._entries: tp.Dict[str, CacheEntry] = {}
        self._lock = AsyncReadWriteLock()

    async def get(self, endpoint: str) -> tp.Optional[CacheEntry]:
        async with self._lock.read():
            return self._entries.get(endpoint)

    async def put(self, endpoint: str, entry: CacheEntry) -> None:
        async with self._lock.write():
            self._entries[endpoint] = entry
        logger.debug("Stored response for %s: size=%d bytes", endpoint, len(entry.body))

    async def endpoints(self) -> tp.List[str]:
        async with self._lock.read():
            return list(self._entries)
