"""Tests for checkpoint types and exceptions."""

import dataclasses

import pytest

from threadstore import (
    CheckpointConfig,
    CheckpointStats,
    CheckpointStoreError,
    CheckpointTuple,
    MissingCheckpointIdError,
    MissingThreadIdError,
    PendingWrite,
    new_checkpoint_id,
)


class TestCheckpointConfig:
    def test_defaults(self):
        config = CheckpointConfig(thread_id="t-1")
        assert config.checkpoint_ns == ""
        assert config.checkpoint_id is None

    def test_frozen(self):
        config = CheckpointConfig(thread_id="t-1")
        with pytest.raises(dataclasses.FrozenInstanceError):
            config.thread_id = "t-2"

    def test_coerce_passthrough(self):
        config = CheckpointConfig(thread_id="t-1")
        assert CheckpointConfig.coerce(config) is config

    def test_coerce_flat_mapping(self):
        config = CheckpointConfig.coerce({"thread_id": "t-1", "checkpoint_id": "c1"})
        assert config == CheckpointConfig(thread_id="t-1", checkpoint_ns="", checkpoint_id="c1")

    def test_coerce_nested_mapping(self):
        config = CheckpointConfig.coerce({"configurable": {"thread_id": "t-1", "checkpoint_ns": "sub"}})
        assert config == CheckpointConfig(thread_id="t-1", checkpoint_ns="sub")

    def test_coerce_none_namespace_is_empty(self):
        assert CheckpointConfig.coerce({"thread_id": "t-1", "checkpoint_ns": None}).checkpoint_ns == ""

    def test_coerce_missing_thread(self):
        assert CheckpointConfig.coerce({}).thread_id is None

    def test_to_dict_roundtrip(self):
        config = CheckpointConfig(thread_id="t-1", checkpoint_ns="sub", checkpoint_id="c1")
        assert CheckpointConfig.coerce(config.to_dict()) == config


class TestCheckpointTuple:
    def test_to_dict(self):
        item = CheckpointTuple(
            config=CheckpointConfig(thread_id="t-1", checkpoint_id="c2"),
            checkpoint={"id": "c2"},
            metadata={"step": 1},
            parent_config=CheckpointConfig(thread_id="t-1", checkpoint_id="c1"),
            pending_writes=[PendingWrite("task-1", "a", 1)],
        )
        d = item.to_dict()
        assert d["checkpoint_id"] == "c2"
        assert d["parent_checkpoint_id"] == "c1"
        assert d["pending_writes"] == [{"task_id": "task-1", "channel": "a", "value": 1}]

    def test_to_dict_root_without_writes(self):
        item = CheckpointTuple(config=CheckpointConfig(thread_id="t-1", checkpoint_id="c1"), checkpoint={"id": "c1"}, metadata={})
        d = item.to_dict()
        assert d["parent_checkpoint_id"] is None
        assert d["pending_writes"] == []


class TestCheckpointStats:
    def test_to_dict(self):
        stats = CheckpointStats(total_checkpoints=3, total_writes=2, total_threads=1)
        assert stats.to_dict() == {"total_checkpoints": 3, "total_writes": 2, "total_threads": 1}


class TestNewCheckpointId:
    def test_unique(self):
        assert len({new_checkpoint_id() for _ in range(100)}) == 100

    def test_sorts_in_creation_order(self):
        ids = [new_checkpoint_id() for _ in range(50)]
        assert ids == sorted(ids)


class TestExceptions:
    def test_missing_thread_id(self):
        err = MissingThreadIdError("put")
        assert err.operation == "put"
        assert "put()" in str(err)
        assert isinstance(err, CheckpointStoreError)
        assert isinstance(err, ValueError)

    def test_missing_checkpoint_id(self):
        err = MissingCheckpointIdError("t-1")
        assert err.thread_id == "t-1"
        assert "checkpoint_id" in str(err)
        assert "'t-1'" in str(err)
