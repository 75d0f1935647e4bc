"""SQLite checkpoint saver using the stdlib ``sqlite3`` driver."""

from __future__ import annotations

import logging
import sqlite3
from collections.abc import Iterator, Mapping, Sequence
from typing import Any

from threadstore import _rows
from threadstore._schema import ensure_schema
from threadstore.exceptions import MissingCheckpointIdError, MissingThreadIdError
from threadstore.serializers import JsonSerializer, Serializer
from threadstore.types import Checkpoint, CheckpointConfig, CheckpointMetadata, CheckpointStats, CheckpointTuple

logger = logging.getLogger("threadstore.sqlite")

ConfigLike = CheckpointConfig | Mapping[str, Any]


class SqliteSaver:
    """Checkpoint persistence on a local SQLite database.

    Checkpoints are keyed by (thread_id, checkpoint_ns, checkpoint_id) and the
    latest checkpoint of a thread is the one with the greatest id, so callers
    must mint ids that sort lexicographically (see ``new_checkpoint_id``).

    A saver built from a path owns its connection and closes it in
    ``close()``. A saver built with ``from_conn`` never closes the
    connection it was given.

    Args:
        path: Database file path, or ":memory:" (default).
        serializer: Value serializer (default: JSON).

    Example::

        saver = SqliteSaver("./checkpoints.db")
        config = saver.put({"thread_id": "t-1"}, {"id": new_checkpoint_id(), "step": 0}, {"source": "input"})
        saver.put_writes(config, [("messages", "hi")], task_id="task-1")
        latest = saver.get_tuple({"thread_id": "t-1"})
    """

    def __init__(self, path: str = ":memory:", *, serializer: Serializer | None = None):
        conn = sqlite3.connect(path)
        if path != ":memory:":
            # WAL lets CLI readers open the file while a writer is active
            conn.execute("PRAGMA journal_mode=WAL")
        self._attach(conn, serializer, owns_connection=True)
        self._path = path
        logger.info("Opened checkpoint database %s", path)

    @classmethod
    def from_conn_string(cls, conn_string: str, *, serializer: Serializer | None = None) -> SqliteSaver:
        """Open (or create) the database at ``conn_string`` and own it."""
        return cls(conn_string, serializer=serializer)

    @classmethod
    def from_conn(cls, conn: sqlite3.Connection, *, serializer: Serializer | None = None) -> SqliteSaver:
        """Wrap an already-open connection without taking ownership of it.

        The schema is created on ``conn`` if missing. ``close()`` on the
        returned saver leaves ``conn`` open.
        """
        saver = cls.__new__(cls)
        saver._attach(conn, serializer, owns_connection=False)
        saver._path = None
        return saver

    def _attach(self, conn: sqlite3.Connection, serializer: Serializer | None, *, owns_connection: bool) -> None:
        self.serializer = serializer or JsonSerializer()
        self._conn = conn
        self._owns_connection = owns_connection
        self._closed = False
        ensure_schema(conn)

    @property
    def conn(self) -> sqlite3.Connection:
        return self._conn

    @property
    def owns_connection(self) -> bool:
        return self._owns_connection

    # === Lifecycle ===

    def close(self) -> None:
        """Close the connection if this saver owns it. Safe to call repeatedly."""
        if self._closed:
            return
        self._closed = True
        if self._owns_connection:
            self._conn.close()
            logger.info("Closed checkpoint database %s", self._path)

    def __enter__(self) -> SqliteSaver:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    # === Write ===

    def put(self, config: ConfigLike, checkpoint: Checkpoint, metadata: CheckpointMetadata) -> CheckpointConfig:
        """Save a checkpoint with upsert semantics.

        ``config.checkpoint_id``, when present, is recorded as the parent of
        the new checkpoint. Returns the identity of the saved checkpoint,
        which can be passed back as ``config`` to chain the next one.
        """
        config = CheckpointConfig.coerce(config)
        if config.thread_id is None:
            raise MissingThreadIdError("put")

        self._conn.execute(_rows.UPSERT_CHECKPOINT, _rows.dump_checkpoint(self.serializer, config, checkpoint, metadata))
        self._conn.commit()

        saved = CheckpointConfig(
            thread_id=config.thread_id,
            checkpoint_ns=config.checkpoint_ns,
            checkpoint_id=checkpoint["id"],
        )
        logger.debug("Saved checkpoint %s/%s/%s (parent=%s)", saved.thread_id, saved.checkpoint_ns, saved.checkpoint_id, config.checkpoint_id)
        return saved

    def put_writes(self, config: ConfigLike, writes: Sequence[tuple[str, Any]], task_id: str) -> None:
        """Save pending writes of one task against a checkpoint.

        Each ``(channel, value)`` gets ``idx`` = its position in ``writes``.
        Writes are committed one by one: if a value fails to serialize, the
        writes before it stay saved. Re-sending the full list is safe since
        (task_id, idx) pairs are overwritten, not duplicated.
        """
        config = CheckpointConfig.coerce(config)
        if config.thread_id is None:
            raise MissingThreadIdError("put_writes")
        if config.checkpoint_id is None:
            raise MissingCheckpointIdError(config.thread_id)

        for idx, (channel, value) in enumerate(writes):
            self._conn.execute(_rows.UPSERT_WRITE, _rows.dump_write(self.serializer, config, task_id, idx, channel, value))
            self._conn.commit()
        logger.debug("Saved %d writes for task %s on checkpoint %s", len(writes), task_id, config.checkpoint_id)

    # === Read ===

    def get(self, config: ConfigLike) -> Checkpoint | None:
        """Get the checkpoint payload only (latest if no checkpoint_id)."""
        checkpoint_tuple = self.get_tuple(config)
        return checkpoint_tuple.checkpoint if checkpoint_tuple is not None else None

    def get_tuple(self, config: ConfigLike) -> CheckpointTuple | None:
        """Get a checkpoint with its metadata, parent and pending writes.

        Returns None if not found, including when ``thread_id`` is missing.
        """
        config = CheckpointConfig.coerce(config)
        if config.thread_id is None:
            return None

        sql, params = _rows.lookup_query(config)
        row = self._conn.execute(sql, params).fetchone()
        if row is None:
            return None

        checkpoint, metadata = _rows.load_checkpoint(self.serializer, row)
        return _rows.build_tuple(row, checkpoint, metadata, self._load_writes(row))

    def list(
        self,
        config: ConfigLike,
        *,
        before: ConfigLike | None = None,
        limit: int | None = None,
        filter: Mapping[str, Any] | None = None,
    ) -> Iterator[CheckpointTuple]:
        """Yield checkpoints of a thread/namespace, newest first.

        Args:
            config: Thread and namespace to list.
            before: Only checkpoints with an id lower than ``before.checkpoint_id``.
            limit: Max rows read, counted before ``filter`` is applied.
            filter: Metadata keys that must all equal the given values.

        Pending writes are queried per checkpoint as it is yielded.
        """
        config = CheckpointConfig.coerce(config)
        if config.thread_id is None:
            return

        sql, params = _rows.list_query(
            config,
            before=CheckpointConfig.coerce(before) if before is not None else None,
            limit=limit,
        )
        rows = self._conn.execute(sql, params).fetchall()

        for row in rows:
            checkpoint, metadata = _rows.load_checkpoint(self.serializer, row)
            if not _rows.metadata_matches(metadata, filter):
                continue
            yield _rows.build_tuple(row, checkpoint, metadata, self._load_writes(row))

    def _load_writes(self, row: Any) -> Any:
        write_rows = self._conn.execute(_rows.SELECT_WRITES, _rows.row_identity(row)).fetchall()
        return _rows.load_writes(self.serializer, write_rows)

    # === Delete ===

    def delete_thread(self, thread_id: str) -> None:
        """Delete every checkpoint and pending write of a thread, in all namespaces."""
        self._conn.execute(_rows.DELETE_THREAD_WRITES, (thread_id,))
        self._conn.execute(_rows.DELETE_THREAD_CHECKPOINTS, (thread_id,))
        self._conn.commit()
        logger.debug("Deleted thread %s", thread_id)

    def delete_checkpoint(self, thread_id: str, checkpoint_id: str, checkpoint_ns: str = "") -> bool:
        """Delete one checkpoint and its pending writes.

        Returns True if the checkpoint existed.
        """
        params = (thread_id, checkpoint_ns, checkpoint_id)
        self._conn.execute(_rows.DELETE_CHECKPOINT_WRITES, params)
        cursor = self._conn.execute(_rows.DELETE_CHECKPOINT, params)
        self._conn.commit()
        deleted = cursor.rowcount > 0
        logger.debug("Deleted checkpoint %s/%s/%s: %s", thread_id, checkpoint_ns, checkpoint_id, deleted)
        return deleted

    # === Stats ===

    def get_stats(self) -> CheckpointStats:
        """Count checkpoints, pending writes and distinct threads."""
        return CheckpointStats(
            total_checkpoints=self._conn.execute(_rows.COUNT_CHECKPOINTS).fetchone()[0],
            total_writes=self._conn.execute(_rows.COUNT_WRITES).fetchone()[0],
            total_threads=self._conn.execute(_rows.COUNT_THREADS).fetchone()[0],
        )
