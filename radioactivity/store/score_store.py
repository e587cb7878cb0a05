"""Score Store — keyed persistence with per-entity serialized writes.

Design notes:
    - The store is the sole serialization point.  Every write for one
      entity_id goes through that entity's shard lock; different entities
      on different shards proceed in parallel.  There is no global lock.
    - Shards are picked with crc32(entity_id) so placement is stable
      across processes and runs.
    - Lock waits are bounded.  A wait that exceeds the timeout raises
      StoreUnavailable instead of blocking forever.
    - update() is the atomic read-modify-write used by the aggregator and
      the sweeper.  The mutator returns the new Score, or None to delete.
    - Backends implement the _read/_write/_remove/_ids hooks only; they
      never take locks themselves.
"""

from __future__ import annotations

import asyncio
import logging
import zlib
from abc import ABC, abstractmethod
from contextlib import asynccontextmanager
from typing import AsyncIterator, Callable, Optional

from radioactivity.domain.errors import ConfigurationError, StoreUnavailable
from radioactivity.domain.score import Score

logger = logging.getLogger(__name__)

ScoreMutator = Callable[[Optional[Score]], Optional[Score]]


class ScoreStore(ABC):
    """Async key-value store of Scores with atomic per-entity updates.

    Args:
        shards: Number of independent locks entities are spread across.
        timeout: Maximum seconds to wait for an entity's lock.
    """

    def __init__(self, shards: int = 64, timeout: float = 5.0) -> None:
        if shards < 1:
            raise ConfigurationError(f"lock shards must be >= 1, got {shards}")
        if timeout <= 0:
            raise ConfigurationError(f"store timeout must be positive, got {timeout}")

        self._timeout = timeout
        self._locks = [asyncio.Lock() for _ in range(shards)]

    # ── Public API ───────────────────────────────────────────────────────

    async def get(self, entity_id: str) -> Score | None:
        """Return the stored score for *entity_id*, or None if absent."""
        return await self._read(entity_id)

    async def upsert(self, score: Score) -> Score:
        """Insert or replace the score for ``score.entity_id``."""
        async with self.locked(score.entity_id):
            await self._write(score)
        return score

    async def delete(self, entity_id: str) -> bool:
        """Remove a score.  Returns True if one existed."""
        async with self.locked(entity_id):
            existing = await self._read(entity_id)
            if existing is None:
                return False
            await self._remove(entity_id)
            return True

    async def update(self, entity_id: str, mutate: ScoreMutator) -> Score | None:
        """Atomically read, transform and write back one entity's score.

        *mutate* receives the current Score (or None) and returns the
        replacement, or None to delete the record.  It runs while the
        entity's lock is held and must not await.
        """
        async with self.locked(entity_id):
            current = await self._read(entity_id)
            updated = mutate(current)
            if updated is None:
                if current is not None:
                    await self._remove(entity_id)
                return None
            if updated != current:
                await self._write(updated)
            return updated

    async def entity_ids(self) -> list[str]:
        """Snapshot of every stored entity_id."""
        return await self._ids()

    async def count(self) -> int:
        return len(await self._ids())

    async def close(self) -> None:
        """Release backend resources."""

    # ── Locking ──────────────────────────────────────────────────────────

    def _lock_for(self, entity_id: str) -> asyncio.Lock:
        shard = zlib.crc32(entity_id.encode("utf-8")) % len(self._locks)
        return self._locks[shard]

    @asynccontextmanager
    async def locked(self, entity_id: str) -> AsyncIterator[None]:
        """Hold the shard lock for *entity_id*, waiting at most the timeout."""
        lock = self._lock_for(entity_id)
        try:
            await asyncio.wait_for(lock.acquire(), timeout=self._timeout)
        except asyncio.TimeoutError:
            logger.warning(
                "Lock wait for '%s' exceeded %.2fs", entity_id, self._timeout
            )
            raise StoreUnavailable(
                f"timed out after {self._timeout}s waiting for '{entity_id}'"
            ) from None
        try:
            yield
        finally:
            lock.release()

    # ── Backend hooks ────────────────────────────────────────────────────

    @abstractmethod
    async def _read(self, entity_id: str) -> Score | None:
        ...

    @abstractmethod
    async def _write(self, score: Score) -> None:
        ...

    @abstractmethod
    async def _remove(self, entity_id: str) -> None:
        ...

    @abstractmethod
    async def _ids(self) -> list[str]:
        ...


class InMemoryScoreStore(ScoreStore):
    """Process-local store.  Scores live as long as the process does."""

    def __init__(self, shards: int = 64, timeout: float = 5.0) -> None:
        super().__init__(shards=shards, timeout=timeout)
        self._scores: dict[str, Score] = {}

    async def _read(self, entity_id: str) -> Score | None:
        return self._scores.get(entity_id)

    async def _write(self, score: Score) -> None:
        self._scores[score.entity_id] = score

    async def _remove(self, entity_id: str) -> None:
        self._scores.pop(entity_id, None)

    async def _ids(self) -> list[str]:
        return list(self._scores)
