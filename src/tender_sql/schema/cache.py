"""
Snapshot Cache
==============

Time-bounded cache for schema snapshots. Schema changes are rare compared
to request volume, so entries are refreshed on a fixed TTL and never
invalidated per write.
"""

import asyncio
import time
from typing import Awaitable, Callable, Optional

import structlog

from tender_sql.models import SchemaSnapshot

logger = structlog.get_logger(__name__)


class SnapshotCache:
    """Holds at most one snapshot, reloaded once its TTL has elapsed."""

    def __init__(
        self,
        ttl_seconds: float = 300.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._snapshot: Optional[SchemaSnapshot] = None
        self._loaded_at: float = 0.0
        self._lock = asyncio.Lock()

    def _fresh(self) -> bool:
        return (
            self._snapshot is not None
            and self._clock() - self._loaded_at < self.ttl_seconds
        )

    async def get_or_load(
        self, loader: Callable[[], Awaitable[SchemaSnapshot]]
    ) -> SchemaSnapshot:
        """
        Return the cached snapshot, loading it if missing or expired.

        Concurrent callers that miss at the same time wait for a single
        load. A failed load leaves the previous state untouched and
        propagates the error.
        """
        if self._fresh():
            return self._snapshot

        async with self._lock:
            if self._fresh():
                return self._snapshot
            snapshot = await loader()
            self._snapshot = snapshot
            self._loaded_at = self._clock()
            logger.debug("Schema snapshot cached", ttl_seconds=self.ttl_seconds)
            return snapshot

    def invalidate(self) -> None:
        self._snapshot = None
