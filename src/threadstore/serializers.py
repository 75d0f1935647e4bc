"""Serializers for checkpoint, metadata and pending-write values."""

from __future__ import annotations

import json
from abc import ABC, abstractmethod
from typing import Any

BYTES_TYPE = "bytes"


class Serializer(ABC):
    """Base class for value serialization.

    Savers store every value as a ``(type_tag, blob)`` pair. ``type_tag``
    names the encoding used for the blob, so rows written by one serializer
    stay readable as long as the reading serializer understands the tag.

    Raw ``bytes`` are stored as-is under the ``"bytes"`` tag regardless of
    the serializer.
    """

    type_tag: str = "json"

    @abstractmethod
    def serialize(self, value: Any) -> bytes:
        """Convert value to bytes for storage."""
        ...

    @abstractmethod
    def deserialize(self, data: bytes) -> Any:
        """Convert bytes back to value."""
        ...

    def dumps_typed(self, value: Any) -> tuple[str, bytes]:
        """Serialize ``value`` and return it with the tag needed to decode it."""
        if isinstance(value, (bytes, bytearray)):
            return BYTES_TYPE, bytes(value)
        return self.type_tag, self.serialize(value)

    def loads_typed(self, type_tag: str, data: bytes) -> Any:
        """Decode a blob previously produced by ``dumps_typed``."""
        if type_tag == BYTES_TYPE:
            return bytes(data)
        if type_tag != self.type_tag:
            raise ValueError(f"{type(self).__name__} cannot decode values of type {type_tag!r} (expected {self.type_tag!r})")
        return self.deserialize(data)


class JsonSerializer(Serializer):
    """JSON serializer (default). Safe and human-readable.

    By default, raises TypeError on non-JSON-serializable types.
    Pass ``lossy=True`` to fall back to ``str()`` for unsupported types.
    """

    type_tag = "json"

    def __init__(self, *, lossy: bool = False):
        self._default = str if lossy else None

    def serialize(self, value: Any) -> bytes:
        return json.dumps(value, default=self._default).encode("utf-8")

    def deserialize(self, data: bytes) -> Any:
        return json.loads(bytes(data).decode("utf-8"))


class PickleSerializer(Serializer):
    """Pickle serializer for complex Python objects.

    Reads ``"json"`` rows as well, so a database started with the default
    serializer can be reopened with this one.

    WARNING: Pickle can execute arbitrary code on deserialization.
    Requires explicit ``allow_pickle=True`` to construct.
    """

    type_tag = "pickle"

    def __init__(self, *, allow_pickle: bool = False):
        if not allow_pickle:
            raise ValueError(
                "PickleSerializer requires explicit allow_pickle=True. "
                "Pickle can execute arbitrary code on deserialization. "
                "Only use with trusted data sources."
            )
        self._json = JsonSerializer()

    def serialize(self, value: Any) -> bytes:
        import pickle

        return pickle.dumps(value)

    def deserialize(self, data: bytes) -> Any:
        import pickle

        return pickle.loads(data)  # noqa: S301

    def loads_typed(self, type_tag: str, data: bytes) -> Any:
        if type_tag == self._json.type_tag:
            return self._json.deserialize(data)
        return super().loads_typed(type_tag, data)
