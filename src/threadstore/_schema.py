"""Schema creation for checkpoint databases.

Both tables and their indexes are created with ``IF NOT EXISTS``, so
``ensure_schema`` can run on every connection without touching existing data.
There is no versioning: the table layout is fixed and shared with other
savers that read the same files.
"""

from __future__ import annotations

import logging
from typing import Any

logger = logging.getLogger("threadstore.schema")

# === SQL Definitions ===

_CREATE_CHECKPOINTS = """
CREATE TABLE IF NOT EXISTS checkpoints (
    thread_id TEXT NOT NULL,
    checkpoint_ns TEXT NOT NULL DEFAULT '',
    checkpoint_id TEXT NOT NULL,
    parent_checkpoint_id TEXT,
    type TEXT,
    checkpoint BLOB,
    metadata BLOB,
    PRIMARY KEY (thread_id, checkpoint_ns, checkpoint_id)
)
"""

_CREATE_WRITES = """
CREATE TABLE IF NOT EXISTS checkpoint_writes (
    thread_id TEXT NOT NULL,
    checkpoint_ns TEXT NOT NULL DEFAULT '',
    checkpoint_id TEXT NOT NULL,
    task_id TEXT NOT NULL,
    idx INTEGER NOT NULL,
    channel TEXT NOT NULL,
    type TEXT,
    value BLOB,
    PRIMARY KEY (thread_id, checkpoint_ns, checkpoint_id, task_id, idx)
)
"""

SCHEMA_STATEMENTS = (
    _CREATE_CHECKPOINTS,
    "CREATE INDEX IF NOT EXISTS idx_checkpoints_thread_id ON checkpoints(thread_id)",
    "CREATE INDEX IF NOT EXISTS idx_checkpoints_parent ON checkpoints(thread_id, checkpoint_ns, parent_checkpoint_id)",
    _CREATE_WRITES,
    "CREATE INDEX IF NOT EXISTS idx_checkpoint_writes ON checkpoint_writes(thread_id, checkpoint_ns, checkpoint_id)",
)


def ensure_schema(conn: Any) -> None:
    """Create tables and indexes on a sync ``sqlite3`` connection."""
    for statement in SCHEMA_STATEMENTS:
        conn.execute(statement)
    conn.commit()
    logger.debug("Checkpoint schema ready")


async def aensure_schema(db: Any) -> None:
    """Create tables and indexes on an ``aiosqlite`` connection."""
    for statement in SCHEMA_STATEMENTS:
        await db.execute(statement)
    await db.commit()
    logger.debug("Checkpoint schema ready")
