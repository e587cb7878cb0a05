"""Durable Score Store backed by SQLAlchemy.

One row per entity in the ``scores`` table.  SQLAlchemy's session API is
blocking, so every call runs in a worker thread via asyncio.to_thread
while the shard lock from ScoreStore is held.  Any SQLAlchemyError is
surfaced as StoreUnavailable: the caller decides whether to retry.

The shard lock only covers one process.  update() therefore reads and
writes inside a single transaction that locks the row (SELECT ... FOR
UPDATE), so several workers sharing one database never lose updates.
SQLite has no row locks; its transactions are opened with BEGIN
IMMEDIATE instead, which takes the database write lock up front and
waits at most ``timeout`` seconds for it.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime

from sqlalchemy import DateTime, Float, String, create_engine, event, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, sessionmaker

from radioactivity.domain.errors import StoreUnavailable
from radioactivity.domain.score import Score
from radioactivity.store.score_store import ScoreMutator, ScoreStore

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    pass


class ScoreRow(Base):
    __tablename__ = "scores"

    entity_id: Mapped[str] = mapped_column(String(256), primary_key=True)
    value: Mapped[float] = mapped_column(Float, nullable=False)
    last_update: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    def to_score(self) -> Score:
        return Score(
            entity_id=self.entity_id,
            value=self.value,
            last_update=self.last_update,
        )


class SqlScoreStore(ScoreStore):
    """Score store persisted through a SQLAlchemy engine.

    Args:
        database_url: Any SQLAlchemy URL, e.g. ``sqlite:///scores.db``.
        shards: Number of per-entity lock shards.
        timeout: Seconds to wait for a lock and for a pooled connection.
        echo: Log emitted SQL.
    """

    def __init__(
        self,
        database_url: str,
        shards: int = 64,
        timeout: float = 5.0,
        echo: bool = False,
    ) -> None:
        super().__init__(shards=shards, timeout=timeout)

        connect_args = {}
        if database_url.startswith("sqlite"):
            connect_args = {"timeout": timeout, "check_same_thread": False}

        self._engine = create_engine(
            database_url,
            echo=echo,
            pool_pre_ping=True,
            connect_args=connect_args,
        )
        if self._engine.dialect.name == "sqlite":
            _begin_immediate(self._engine)
        self._sessions = sessionmaker(self._engine, expire_on_commit=False)
        try:
            Base.metadata.create_all(self._engine)
        except SQLAlchemyError as exc:
            raise StoreUnavailable(f"cannot initialise schema: {exc}") from exc

        logger.info("SQL score store ready at %s", self._engine.url.render_as_string(hide_password=True))

    # ── Blocking operations (worker thread) ──────────────────────────────

    def _update_sync(self, entity_id: str, mutate: ScoreMutator) -> Score | None:
        with self._sessions.begin() as session:
            row = session.scalars(
                select(ScoreRow)
                .where(ScoreRow.entity_id == entity_id)
                .with_for_update()
            ).first()
            current = row.to_score() if row is not None else None
            updated = mutate(current)

            if updated is None:
                if row is not None:
                    session.delete(row)
                return None
            if updated == current:
                return updated

            if row is None:
                session.add(ScoreRow(
                    entity_id=updated.entity_id,
                    value=updated.value,
                    last_update=updated.last_update,
                ))
            else:
                row.value = updated.value
                row.last_update = updated.last_update
            return updated

    def _read_sync(self, entity_id: str) -> Score | None:
        with self._sessions() as session:
            row = session.get(ScoreRow, entity_id)
            return row.to_score() if row is not None else None

    def _write_sync(self, score: Score) -> None:
        with self._sessions.begin() as session:
            session.merge(ScoreRow(
                entity_id=score.entity_id,
                value=score.value,
                last_update=score.last_update,
            ))

    def _remove_sync(self, entity_id: str) -> None:
        with self._sessions.begin() as session:
            row = session.get(ScoreRow, entity_id)
            if row is not None:
                session.delete(row)

    def _ids_sync(self) -> list[str]:
        with self._sessions() as session:
            return list(session.scalars(select(ScoreRow.entity_id)))

    async def _call(self, fn, *args):
        try:
            return await asyncio.to_thread(fn, *args)
        except SQLAlchemyError as exc:
            logger.error("Score store operation %s failed: %s", fn.__name__, exc)
            raise StoreUnavailable(str(exc)) from exc

    # ── Public API ───────────────────────────────────────────────────────

    async def update(self, entity_id: str, mutate: ScoreMutator) -> Score | None:
        """Read-modify-write in one row-locking transaction."""
        async with self.locked(entity_id):
            return await self._call(self._update_sync, entity_id, mutate)

    # ── Backend hooks ────────────────────────────────────────────────────

    async def _read(self, entity_id: str) -> Score | None:
        return await self._call(self._read_sync, entity_id)

    async def _write(self, score: Score) -> None:
        await self._call(self._write_sync, score)

    async def _remove(self, entity_id: str) -> None:
        await self._call(self._remove_sync, entity_id)

    async def _ids(self) -> list[str]:
        return await self._call(self._ids_sync)

    async def close(self) -> None:
        await asyncio.to_thread(self._engine.dispose)


def _begin_immediate(engine) -> None:
    """Make pysqlite open every transaction with BEGIN IMMEDIATE."""

    @event.listens_for(engine, "connect")
    def on_connect(dbapi_conn, connection_record):
        # let SQLAlchemy, not the driver, emit BEGIN
        dbapi_conn.isolation_level = None

    @event.listens_for(engine, "begin")
    def on_begin(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")
