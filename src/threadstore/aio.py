"""Async SQLite checkpoint saver using aiosqlite."""

from __future__ import annotations

import logging
import sqlite3
from collections.abc import AsyncIterator, Mapping, Sequence
from typing import Any

import aiosqlite

from threadstore import _rows
from threadstore._schema import aensure_schema
from threadstore.exceptions import MissingCheckpointIdError, MissingThreadIdError
from threadstore.serializers import JsonSerializer, Serializer
from threadstore.types import Checkpoint, CheckpointConfig, CheckpointMetadata, CheckpointStats, CheckpointTuple

logger = logging.getLogger("threadstore.aio")

ConfigLike = CheckpointConfig | Mapping[str, Any]


class AsyncSqliteSaver:
    """Async counterpart of ``SqliteSaver``.

    Same tables, same semantics; every method is a coroutine and ``list`` is
    an async generator. The connection is opened lazily on first use, or
    explicitly with ``initialize()``.

    Args:
        path: Database file path, or ":memory:" (default).
        serializer: Value serializer (default: JSON).

    Example::

        async with AsyncSqliteSaver("./checkpoints.db") as saver:
            config = await saver.put({"thread_id": "t-1"}, checkpoint, {"source": "loop"})
            async for item in saver.list({"thread_id": "t-1"}, limit=10):
                ...
    """

    def __init__(self, path: str = ":memory:", *, serializer: Serializer | None = None):
        self._path = path
        self.serializer = serializer or JsonSerializer()
        self._db: aiosqlite.Connection | None = None
        self._owns_connection = True
        self._schema_ready = False
        self._closed = False

    @classmethod
    def from_conn_string(cls, conn_string: str, *, serializer: Serializer | None = None) -> AsyncSqliteSaver:
        """Saver that opens and owns the database at ``conn_string``."""
        return cls(conn_string, serializer=serializer)

    @classmethod
    def from_conn(cls, conn: aiosqlite.Connection, *, serializer: Serializer | None = None) -> AsyncSqliteSaver:
        """Wrap an open aiosqlite connection without taking ownership of it."""
        saver = cls(serializer=serializer)
        saver._path = None
        saver._db = conn
        saver._owns_connection = False
        return saver

    @property
    def conn(self) -> aiosqlite.Connection | None:
        return self._db

    @property
    def owns_connection(self) -> bool:
        return self._owns_connection

    # === Lifecycle ===

    async def initialize(self) -> None:
        """Open the database if needed and create tables."""
        if self._db is None:
            self._db = await aiosqlite.connect(self._path)
            if self._path != ":memory:":
                await self._db.execute("PRAGMA journal_mode=WAL")
            logger.info("Opened checkpoint database %s", self._path)
        await aensure_schema(self._db)
        self._schema_ready = True

    async def _ensure_db(self) -> aiosqlite.Connection:
        """Lazy-initialize on first use."""
        if self._closed and self._owns_connection:
            raise sqlite3.ProgrammingError("Cannot operate on a closed database.")
        if not self._schema_ready:
            await self.initialize()
        return self._db

    async def close(self) -> None:
        """Close the connection if this saver owns it. Safe to call repeatedly."""
        if self._closed:
            return
        self._closed = True
        if self._owns_connection and self._db is not None:
            await self._db.close()
            logger.info("Closed checkpoint database %s", self._path)

    async def __aenter__(self) -> AsyncSqliteSaver:
        await self._ensure_db()
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    # === Write ===

    async def put(self, config: ConfigLike, checkpoint: Checkpoint, metadata: CheckpointMetadata) -> CheckpointConfig:
        """Save a checkpoint with upsert semantics. See ``SqliteSaver.put``."""
        config = CheckpointConfig.coerce(config)
        if config.thread_id is None:
            raise MissingThreadIdError("put")

        db = await self._ensure_db()
        await db.execute(_rows.UPSERT_CHECKPOINT, _rows.dump_checkpoint(self.serializer, config, checkpoint, metadata))
        await db.commit()

        saved = CheckpointConfig(
            thread_id=config.thread_id,
            checkpoint_ns=config.checkpoint_ns,
            checkpoint_id=checkpoint["id"],
        )
        logger.debug("Saved checkpoint %s/%s/%s (parent=%s)", saved.thread_id, saved.checkpoint_ns, saved.checkpoint_id, config.checkpoint_id)
        return saved

    async def put_writes(self, config: ConfigLike, writes: Sequence[tuple[str, Any]], task_id: str) -> None:
        """Save pending writes of one task, committing each write on its own."""
        config = CheckpointConfig.coerce(config)
        if config.thread_id is None:
            raise MissingThreadIdError("put_writes")
        if config.checkpoint_id is None:
            raise MissingCheckpointIdError(config.thread_id)

        db = await self._ensure_db()
        for idx, (channel, value) in enumerate(writes):
            await db.execute(_rows.UPSERT_WRITE, _rows.dump_write(self.serializer, config, task_id, idx, channel, value))
            await db.commit()
        logger.debug("Saved %d writes for task %s on checkpoint %s", len(writes), task_id, config.checkpoint_id)

    # === Read ===

    async def get(self, config: ConfigLike) -> Checkpoint | None:
        checkpoint_tuple = await self.get_tuple(config)
        return checkpoint_tuple.checkpoint if checkpoint_tuple is not None else None

    async def get_tuple(self, config: ConfigLike) -> CheckpointTuple | None:
        """Get a checkpoint with metadata, parent and pending writes, or None."""
        config = CheckpointConfig.coerce(config)
        if config.thread_id is None:
            return None

        db = await self._ensure_db()
        sql, params = _rows.lookup_query(config)
        cursor = await db.execute(sql, params)
        row = await cursor.fetchone()
        if row is None:
            return None

        checkpoint, metadata = _rows.load_checkpoint(self.serializer, row)
        return _rows.build_tuple(row, checkpoint, metadata, await self._load_writes(row))

    async def list(
        self,
        config: ConfigLike,
        *,
        before: ConfigLike | None = None,
        limit: int | None = None,
        filter: Mapping[str, Any] | None = None,
    ) -> AsyncIterator[CheckpointTuple]:
        """Yield checkpoints newest first. See ``SqliteSaver.list``."""
        config = CheckpointConfig.coerce(config)
        if config.thread_id is None:
            return

        db = await self._ensure_db()
        sql, params = _rows.list_query(
            config,
            before=CheckpointConfig.coerce(before) if before is not None else None,
            limit=limit,
        )
        cursor = await db.execute(sql, params)
        rows = await cursor.fetchall()

        for row in rows:
            checkpoint, metadata = _rows.load_checkpoint(self.serializer, row)
            if not _rows.metadata_matches(metadata, filter):
                continue
            yield _rows.build_tuple(row, checkpoint, metadata, await self._load_writes(row))

    async def _load_writes(self, row: Any) -> Any:
        cursor = await self._db.execute(_rows.SELECT_WRITES, _rows.row_identity(row))
        return _rows.load_writes(self.serializer, await cursor.fetchall())

    # === Delete ===

    async def delete_thread(self, thread_id: str) -> None:
        db = await self._ensure_db()
        await db.execute(_rows.DELETE_THREAD_WRITES, (thread_id,))
        await db.execute(_rows.DELETE_THREAD_CHECKPOINTS, (thread_id,))
        await db.commit()
        logger.debug("Deleted thread %s", thread_id)

    async def delete_checkpoint(self, thread_id: str, checkpoint_id: str, checkpoint_ns: str = "") -> bool:
        """Delete one checkpoint and its pending writes. True if it existed."""
        db = await self._ensure_db()
        params = (thread_id, checkpoint_ns, checkpoint_id)
        await db.execute(_rows.DELETE_CHECKPOINT_WRITES, params)
        cursor = await db.execute(_rows.DELETE_CHECKPOINT, params)
        await db.commit()
        deleted = cursor.rowcount > 0
        logger.debug("Deleted checkpoint %s/%s/%s: %s", thread_id, checkpoint_ns, checkpoint_id, deleted)
        return deleted

    # === Stats ===

    async def get_stats(self) -> CheckpointStats:
        db = await self._ensure_db()
        counts = []
        for sql in (_rows.COUNT_CHECKPOINTS, _rows.COUNT_WRITES, _rows.COUNT_THREADS):
            cursor = await db.execute(sql)
            (count,) = await cursor.fetchone()
            counts.append(count)
        return CheckpointStats(total_checkpoints=counts[0], total_writes=counts[1], total_threads=counts[2])
