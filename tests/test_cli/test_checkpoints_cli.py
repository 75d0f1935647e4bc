"""Integration tests for CLI checkpoint commands.

Uses CliRunner to test command output without subprocess overhead.
"""

import json

import pytest

# Skip all if optional dependencies are not installed
typer = pytest.importorskip("typer")

from typer.testing import CliRunner  # noqa: E402

from threadstore import SqliteSaver  # noqa: E402
from threadstore.cli import create_app  # noqa: E402
from threadstore.cli.checkpoints import parse_filter  # noqa: E402

runner_cli = CliRunner()


@pytest.fixture
def db_path(tmp_path):
    return str(tmp_path / "test.db")


@pytest.fixture
def populated_db(db_path):
    """DB with one thread of three chained checkpoints and writes on the last."""
    with SqliteSaver(db_path) as saver:
        config = {"thread_id": "thread-1"}
        for i in range(1, 4):
            config = saver.put(config, {"id": f"checkpoint-{i}", "channel_values": {"count": i}}, {"source": "loop", "step": i})
        saver.put_writes(config, [("messages", "hello"), ("count", 4)], "task-1")
        saver.put({"thread_id": "thread-2"}, {"id": "checkpoint-1"}, {"source": "input", "step": 0})
    return db_path


def _invoke(*args, **kwargs):
    return runner_cli.invoke(create_app(), list(args), **kwargs)


class TestStats:
    def test_table(self, populated_db):
        result = _invoke("stats", "--db", populated_db)
        assert result.exit_code == 0
        assert "checkpoints" in result.output
        assert "4" in result.output

    def test_json(self, populated_db):
        result = _invoke("stats", "--db", populated_db, "--json")
        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data["command"] == "stats"
        assert data["data"] == {"total_checkpoints": 4, "total_writes": 2, "total_threads": 2}

    def test_missing_database(self, tmp_path):
        result = _invoke("stats", "--db", str(tmp_path / "missing.db"))
        assert result.exit_code == 1
        assert "not found" in result.output
        assert not (tmp_path / "missing.db").exists()


class TestLs:
    def test_newest_first(self, populated_db):
        result = _invoke("ls", "thread-1", "--db", populated_db)
        assert result.exit_code == 0
        lines = result.output.splitlines()
        first = next(i for i, line in enumerate(lines) if "checkpoint-3" in line)
        last = next(i for i, line in enumerate(lines) if "checkpoint-1" in line and "checkpoint-2" not in line)
        assert first < last

    def test_limit_and_json(self, populated_db):
        result = _invoke("ls", "thread-1", "--db", populated_db, "--limit", "2", "--json")
        assert result.exit_code == 0
        ids = [item["checkpoint_id"] for item in json.loads(result.output)["data"]]
        assert ids == ["checkpoint-3", "checkpoint-2"]

    def test_before(self, populated_db):
        result = _invoke("ls", "thread-1", "--db", populated_db, "--before", "checkpoint-3", "--json")
        ids = [item["checkpoint_id"] for item in json.loads(result.output)["data"]]
        assert ids == ["checkpoint-2", "checkpoint-1"]

    def test_filter(self, populated_db):
        result = _invoke("ls", "thread-1", "--db", populated_db, "--filter", "step=2", "--json")
        ids = [item["checkpoint_id"] for item in json.loads(result.output)["data"]]
        assert ids == ["checkpoint-2"]

    def test_bad_filter(self, populated_db):
        result = _invoke("ls", "thread-1", "--db", populated_db, "--filter", "nokey")
        assert result.exit_code == 1
        assert "key=value" in result.output

    def test_unknown_thread(self, populated_db):
        result = _invoke("ls", "nope", "--db", populated_db)
        assert result.exit_code == 0
        assert "No checkpoints found" in result.output


class TestShow:
    def test_latest(self, populated_db):
        result = _invoke("show", "thread-1", "--db", populated_db)
        assert result.exit_code == 0
        assert "checkpoint-3" in result.output
        assert "parent checkpoint-2" in result.output
        assert "messages" in result.output

    def test_many_writes_point_to_json(self, db_path):
        with SqliteSaver(db_path) as saver:
            config = saver.put({"thread_id": "busy"}, {"id": "c1"}, {})
            saver.put_writes(config, [(f"channel-{i}", i) for i in range(60)], "task-1")

        result = _invoke("show", "busy", "--db", db_path)
        assert result.exit_code == 0
        assert "Pending writes (60)" in result.output
        assert "10 more lines (use --json for every write)" in result.output

        result = _invoke("show", "busy", "--db", db_path, "--json")
        assert len(json.loads(result.output)["data"]["pending_writes"]) == 60

    def test_specific_checkpoint_without_writes(self, populated_db):
        result = _invoke("show", "thread-1", "checkpoint-1", "--db", populated_db)
        assert result.exit_code == 0
        assert "No pending writes." in result.output

    def test_json(self, populated_db):
        result = _invoke("show", "thread-1", "--db", populated_db, "--json")
        data = json.loads(result.output)["data"]
        assert data["checkpoint"]["channel_values"] == {"count": 3}
        assert data["pending_writes"][0] == {"task_id": "task-1", "channel": "messages", "value": "hello"}

    def test_values(self, populated_db):
        result = _invoke("show", "thread-1", "--db", populated_db, "--values")
        assert result.exit_code == 0
        assert '"count": 3' in result.output
        assert "hello" in result.output

    def test_not_found(self, populated_db):
        result = _invoke("show", "thread-1", "nope", "--db", populated_db)
        assert result.exit_code == 1
        assert "not found" in result.output


class TestRm:
    def test_delete_checkpoint(self, populated_db):
        result = _invoke("rm", "thread-1", "--checkpoint", "checkpoint-3", "--db", populated_db, "--yes")
        assert result.exit_code == 0

        with SqliteSaver(populated_db) as saver:
            stats = saver.get_stats()
        assert stats.total_checkpoints == 3
        assert stats.total_writes == 0

    def test_delete_missing_checkpoint(self, populated_db):
        result = _invoke("rm", "thread-1", "--checkpoint", "nope", "--db", populated_db, "--yes")
        assert result.exit_code == 1

    def test_delete_thread_with_confirmation(self, populated_db):
        result = _invoke("rm", "thread-1", "--db", populated_db, input="y\n")
        assert result.exit_code == 0

        with SqliteSaver(populated_db) as saver:
            assert saver.get_stats().total_threads == 1

    def test_declined_confirmation_keeps_data(self, populated_db):
        result = _invoke("rm", "thread-1", "--db", populated_db, input="n\n")
        assert result.exit_code != 0

        with SqliteSaver(populated_db) as saver:
            assert saver.get_stats().total_threads == 2

    def test_namespace_without_checkpoint_rejected(self, populated_db):
        result = _invoke("rm", "thread-1", "--ns", "sub", "--db", populated_db, "--yes")
        assert result.exit_code == 1
        assert "--ns requires --checkpoint" in result.output

        with SqliteSaver(populated_db) as saver:
            assert saver.get_stats().total_threads == 2

    def test_thread_prompt_mentions_every_namespace(self, populated_db):
        result = _invoke("rm", "thread-1", "--db", populated_db, input="n\n")
        assert "in every namespace" in result.output


class TestParseFilter:
    def test_none(self):
        assert parse_filter(None) is None

    def test_json_values(self):
        assert parse_filter(["step=2", "done=true", "source=loop"]) == {"step": 2, "done": True, "source": "loop"}

    def test_value_with_equals(self):
        assert parse_filter(["expr=a=b"]) == {"expr": "a=b"}

    def test_invalid(self):
        with pytest.raises(ValueError, match="key=value"):
            parse_filter(["novalue"])
