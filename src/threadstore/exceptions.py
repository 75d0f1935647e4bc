"""Exceptions raised by checkpoint savers.

Serializer and database errors are not wrapped: they propagate to the caller
as raised by the serializer or by ``sqlite3`` / ``aiosqlite``.
"""

from __future__ import annotations


class CheckpointStoreError(Exception):
    """Base class for errors raised by the checkpoint savers."""


class MissingThreadIdError(CheckpointStoreError, ValueError):
    """A write was attempted without a thread id.

    Only write paths raise this. Read paths treat a missing thread id as
    "nothing found" and return ``None`` or an empty iterator.

    Attributes:
        operation: Name of the saver method that rejected the config
        message: Human-readable error message
    """

    def __init__(self, operation: str, message: str | None = None) -> None:
        self.operation = operation
        self.message = message or f"{operation}() requires 'thread_id' in config"
        super().__init__(self.message)


class MissingCheckpointIdError(CheckpointStoreError, ValueError):
    """Pending writes were submitted without a checkpoint to attach them to.

    Attributes:
        thread_id: Thread the writes were addressed to
        message: Human-readable error message
    """

    def __init__(self, thread_id: str, message: str | None = None) -> None:
        self.thread_id = thread_id
        self.message = message or self._default_message()
        super().__init__(self.message)

    def _default_message(self) -> str:
        return f"put_writes() requires 'checkpoint_id' in config (thread_id={self.thread_id!r})"
