"""Checkpoint types: addressing config, tuples, pending writes and stats."""

from __future__ import annotations

import threading
import time
import uuid
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, NamedTuple

Checkpoint = dict[str, Any]
CheckpointMetadata = dict[str, Any]


_id_lock = threading.Lock()
_last_ns = 0


def new_checkpoint_id() -> str:
    """Mint a checkpoint id whose string order follows creation order.

    Savers pick "latest" by comparing ids as strings, so ids must sort
    lexicographically. The nanosecond timestamp is zero-padded hex so that
    string and numeric order agree, and never repeats within a process.
    """
    global _last_ns
    with _id_lock:
        _last_ns = max(time.time_ns(), _last_ns + 1)
        stamp = _last_ns
    return f"{stamp:016x}-{uuid.uuid4().hex[:12]}"


@dataclass(frozen=True)
class CheckpointConfig:
    """Identity of a checkpoint: (thread_id, checkpoint_ns, checkpoint_id).

    Used as the addressing input of every saver method and returned by
    ``put()``. ``checkpoint_id=None`` addresses the latest checkpoint of the
    thread/namespace; ``thread_id=None`` addresses nothing.
    """

    thread_id: str | None
    checkpoint_ns: str = ""
    checkpoint_id: str | None = None

    @classmethod
    def coerce(cls, value: CheckpointConfig | Mapping[str, Any]) -> CheckpointConfig:
        """Build a config from a ``CheckpointConfig`` or a mapping.

        Mappings may be flat (``{"thread_id": ...}``) or wrap the keys in a
        ``"configurable"`` entry.
        """
        if isinstance(value, CheckpointConfig):
            return value
        fields = value.get("configurable", value)
        return cls(
            thread_id=fields.get("thread_id"),
            checkpoint_ns=fields.get("checkpoint_ns") or "",
            checkpoint_id=fields.get("checkpoint_id"),
        )

    def to_dict(self) -> dict[str, Any]:
        """Nested ``{"configurable": {...}}`` form."""
        return {
            "configurable": {
                "thread_id": self.thread_id,
                "checkpoint_ns": self.checkpoint_ns,
                "checkpoint_id": self.checkpoint_id,
            }
        }


class PendingWrite(NamedTuple):
    """A value written to ``channel`` by task ``task_id``, not yet applied."""

    task_id: str
    channel: str
    value: Any


@dataclass
class CheckpointTuple:
    """A checkpoint as read back from storage.

    Attributes:
        config: Identity of this checkpoint.
        checkpoint: Deserialized checkpoint payload.
        metadata: Deserialized metadata.
        parent_config: Identity of the parent checkpoint, None for a root.
        pending_writes: Writes ordered by (task_id, idx), None when there are none.
    """

    config: CheckpointConfig
    checkpoint: Checkpoint
    metadata: CheckpointMetadata
    parent_config: CheckpointConfig | None = None
    pending_writes: list[PendingWrite] | None = None

    def to_dict(self) -> dict[str, Any]:
        """JSON-friendly dict (values are left as deserialized)."""
        return {
            "thread_id": self.config.thread_id,
            "checkpoint_ns": self.config.checkpoint_ns,
            "checkpoint_id": self.config.checkpoint_id,
            "parent_checkpoint_id": self.parent_config.checkpoint_id if self.parent_config else None,
            "checkpoint": self.checkpoint,
            "metadata": self.metadata,
            "pending_writes": [w._asdict() for w in self.pending_writes] if self.pending_writes else [],
        }


@dataclass(frozen=True)
class CheckpointStats:
    """Aggregate counts over a checkpoint database."""

    total_checkpoints: int
    total_writes: int
    total_threads: int

    def to_dict(self) -> dict[str, int]:
        return {
            "total_checkpoints": self.total_checkpoints,
            "total_writes": self.total_writes,
            "total_threads": self.total_threads,
        }
