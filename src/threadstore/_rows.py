"""SQL and row conversion shared by the sync and async savers.

Both savers run the same statements and turn rows into the same
``CheckpointTuple`` shape; only the connection driver differs.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from threadstore.serializers import JsonSerializer, Serializer
from threadstore.types import Checkpoint, CheckpointConfig, CheckpointMetadata, CheckpointTuple, PendingWrite

# Explicit column lists: row conversion below indexes by position
_CHECKPOINT_COLS = "thread_id, checkpoint_ns, checkpoint_id, parent_checkpoint_id, type, checkpoint, metadata"
_WRITE_COLS = "task_id, channel, type, value"

# Metadata is always JSON, whichever serializer handles the typed columns
_METADATA = JsonSerializer()

SELECT_WRITES = f"""
    SELECT {_WRITE_COLS} FROM checkpoint_writes
    WHERE thread_id = ? AND checkpoint_ns = ? AND checkpoint_id = ?
    ORDER BY task_id, idx
"""

UPSERT_CHECKPOINT = """
    INSERT OR REPLACE INTO checkpoints
    (thread_id, checkpoint_ns, checkpoint_id, parent_checkpoint_id, type, checkpoint, metadata)
    VALUES (?, ?, ?, ?, ?, ?, ?)
"""

UPSERT_WRITE = """
    INSERT OR REPLACE INTO checkpoint_writes
    (thread_id, checkpoint_ns, checkpoint_id, task_id, idx, channel, type, value)
    VALUES (?, ?, ?, ?, ?, ?, ?, ?)
"""

DELETE_CHECKPOINT_WRITES = "DELETE FROM checkpoint_writes WHERE thread_id = ? AND checkpoint_ns = ? AND checkpoint_id = ?"
DELETE_CHECKPOINT = "DELETE FROM checkpoints WHERE thread_id = ? AND checkpoint_ns = ? AND checkpoint_id = ?"
DELETE_THREAD_WRITES = "DELETE FROM checkpoint_writes WHERE thread_id = ?"
DELETE_THREAD_CHECKPOINTS = "DELETE FROM checkpoints WHERE thread_id = ?"

COUNT_CHECKPOINTS = "SELECT COUNT(*) FROM checkpoints"
COUNT_WRITES = "SELECT COUNT(*) FROM checkpoint_writes"
COUNT_THREADS = "SELECT COUNT(DISTINCT thread_id) FROM checkpoints"


def lookup_query(config: CheckpointConfig) -> tuple[str, tuple[Any, ...]]:
    """Exact lookup when ``checkpoint_id`` is set, otherwise the latest id."""
    if config.checkpoint_id is not None:
        return (
            f"SELECT {_CHECKPOINT_COLS} FROM checkpoints WHERE thread_id = ? AND checkpoint_ns = ? AND checkpoint_id = ?",
            (config.thread_id, config.checkpoint_ns, config.checkpoint_id),
        )
    return (
        f"SELECT {_CHECKPOINT_COLS} FROM checkpoints WHERE thread_id = ? AND checkpoint_ns = ? ORDER BY checkpoint_id DESC LIMIT 1",
        (config.thread_id, config.checkpoint_ns),
    )


def list_query(
    config: CheckpointConfig,
    *,
    before: CheckpointConfig | None = None,
    limit: int | None = None,
) -> tuple[str, list[Any]]:
    """Build the listing query, newest first.

    ``limit`` is applied here, before any metadata filter runs, so a
    filtered listing can return fewer than ``limit`` rows.
    """
    sql = f"SELECT {_CHECKPOINT_COLS} FROM checkpoints WHERE thread_id = ? AND checkpoint_ns = ?"
    params: list[Any] = [config.thread_id, config.checkpoint_ns]

    if before is not None and before.checkpoint_id is not None:
        sql += " AND checkpoint_id < ?"
        params.append(before.checkpoint_id)

    sql += " ORDER BY checkpoint_id DESC"

    if limit is not None:
        sql += " LIMIT ?"
        params.append(limit)

    return sql, params


def dump_checkpoint(
    serializer: Serializer,
    config: CheckpointConfig,
    checkpoint: Checkpoint,
    metadata: CheckpointMetadata,
) -> tuple[Any, ...]:
    """Parameters for ``UPSERT_CHECKPOINT``.

    The incoming ``checkpoint_id`` of ``config`` is the parent of the new
    checkpoint. Metadata is always JSON; its tag is implied, not stored.
    """
    type_tag, checkpoint_blob = serializer.dumps_typed(checkpoint)
    metadata_blob = _METADATA.serialize(metadata)
    return (
        config.thread_id,
        config.checkpoint_ns,
        checkpoint["id"],
        config.checkpoint_id,
        type_tag,
        checkpoint_blob,
        metadata_blob,
    )


def dump_write(
    serializer: Serializer,
    config: CheckpointConfig,
    task_id: str,
    idx: int,
    channel: str,
    value: Any,
) -> tuple[Any, ...]:
    """Parameters for ``UPSERT_WRITE``."""
    type_tag, blob = serializer.dumps_typed(value)
    return (config.thread_id, config.checkpoint_ns, config.checkpoint_id, task_id, idx, channel, type_tag, blob)


def load_checkpoint(serializer: Serializer, row: Any) -> tuple[Checkpoint, CheckpointMetadata]:
    """Decode the checkpoint and metadata columns of a checkpoint row.

    Rows written without a type tag are decoded with the serializer's own tag.
    """
    checkpoint = serializer.loads_typed(row[4] or serializer.type_tag, row[5])
    metadata = _METADATA.deserialize(row[6])
    return checkpoint, metadata


def load_writes(serializer: Serializer, write_rows: Any) -> list[PendingWrite] | None:
    """Decode ``SELECT_WRITES`` rows. None when there are none."""
    writes = [PendingWrite(task_id, channel, serializer.loads_typed(type_tag or serializer.type_tag, value)) for task_id, channel, type_tag, value in write_rows]
    return writes or None


def row_identity(row: Any) -> tuple[str, str, str]:
    """(thread_id, checkpoint_ns, checkpoint_id) of a checkpoint row."""
    return row[0], row[1], row[2]


def build_tuple(
    row: Any,
    checkpoint: Checkpoint,
    metadata: CheckpointMetadata,
    pending_writes: list[PendingWrite] | None,
) -> CheckpointTuple:
    """Assemble a ``CheckpointTuple`` from a row and its decoded parts."""
    thread_id, checkpoint_ns, checkpoint_id = row_identity(row)
    parent_id = row[3]
    return CheckpointTuple(
        config=CheckpointConfig(thread_id=thread_id, checkpoint_ns=checkpoint_ns, checkpoint_id=checkpoint_id),
        checkpoint=checkpoint,
        metadata=metadata,
        parent_config=(
            CheckpointConfig(thread_id=thread_id, checkpoint_ns=checkpoint_ns, checkpoint_id=parent_id) if parent_id is not None else None
        ),
        pending_writes=pending_writes,
    )


def metadata_matches(metadata: Any, filter: Mapping[str, Any] | None) -> bool:
    """True if every ``filter`` key is present in ``metadata`` with an equal value."""
    if not filter:
        return True
    if not isinstance(metadata, Mapping):
        return False
    return all(key in metadata and metadata[key] == value for key, value in filter.items())
