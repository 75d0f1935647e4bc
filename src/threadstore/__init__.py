"""threadstore: SQLite persistence for graph execution checkpoints.

Provides ``SqliteSaver`` (stdlib ``sqlite3``) and ``AsyncSqliteSaver``
(``aiosqlite``), sharing one on-disk schema, plus the serializers and
types they exchange with a graph runtime.
"""

from threadstore.aio import AsyncSqliteSaver
from threadstore.exceptions import CheckpointStoreError, MissingCheckpointIdError, MissingThreadIdError
from threadstore.serializers import JsonSerializer, PickleSerializer, Serializer
from threadstore.sqlite import SqliteSaver
from threadstore.types import (
    Checkpoint,
    CheckpointConfig,
    CheckpointMetadata,
    CheckpointStats,
    CheckpointTuple,
    PendingWrite,
    new_checkpoint_id,
)

__all__ = [
    "AsyncSqliteSaver",
    "Checkpoint",
    "CheckpointConfig",
    "CheckpointMetadata",
    "CheckpointStats",
    "CheckpointStoreError",
    "CheckpointTuple",
    "JsonSerializer",
    "MissingCheckpointIdError",
    "MissingThreadIdError",
    "PendingWrite",
    "PickleSerializer",
    "Serializer",
    "SqliteSaver",
    "new_checkpoint_id",
]
