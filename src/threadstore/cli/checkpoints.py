"""Checkpoint inspection CLI commands: stats, ls, show, rm."""

from __future__ import annotations

import json
from typing import Annotated, Any

import typer

from threadstore.cli._db import open_saver, resolve_db
from threadstore.cli._format import (
    DEFAULT_LIMIT,
    describe_value,
    print_ctas,
    print_json,
    print_lines,
    print_table,
    truncate_value,
)

# Common options
DbOption = Annotated[str | None, typer.Option("--db", help="Database path (default: [tool.threadstore] db or ./checkpoints.db)")]
NsOption = Annotated[str, typer.Option("--ns", help="Checkpoint namespace")]
JsonFlag = Annotated[bool, typer.Option("--json", help="Output as JSON")]
OutputOption = Annotated[str | None, typer.Option("--output", help="Write JSON to file")]

# Pending-write rows printed by `show` before pointing at --json
MAX_WRITE_ROWS = 50


def parse_filter(items: list[str] | None) -> dict[str, Any] | None:
    """Parse repeated ``key=value`` options into a metadata filter.

    Values are read as JSON when possible (``step=2`` filters on the integer
    2), otherwise kept as strings.
    """
    if not items:
        return None
    result: dict[str, Any] = {}
    for item in items:
        key, sep, raw = item.partition("=")
        if not sep or not key:
            raise ValueError(f"Invalid --filter value: '{item}'. Use key=value.")
        try:
            result[key] = json.loads(raw)
        except json.JSONDecodeError:
            result[key] = raw
    return result


def _open(db: str | None):
    path = resolve_db(db)
    try:
        return path, open_saver(path)
    except FileNotFoundError:
        print(f"Error: Database '{path}' not found.")
        raise typer.Exit(1) from None


def register_commands(app: typer.Typer) -> None:
    """Register checkpoint commands as top-level commands on the app."""

    @app.command("stats")
    def stats_cmd(
        db: DbOption = None,
        as_json: JsonFlag = False,
        output: OutputOption = None,
    ):
        """Show checkpoint, pending-write and thread counts."""
        path, saver = _open(db)
        with saver:
            stats = saver.get_stats()

        if as_json:
            print_json("stats", stats.to_dict(), output)
            return

        print(f"\nDatabase: {path}\n")
        lines = print_table(
            ["Table", "Count"],
            [
                ["checkpoints", str(stats.total_checkpoints)],
                ["checkpoint_writes", str(stats.total_writes)],
                ["threads", str(stats.total_threads)],
            ],
        )
        print_lines(lines)

    @app.command("ls")
    def ls_cmd(
        thread_id: Annotated[str, typer.Argument(help="Thread ID")],
        db: DbOption = None,
        ns: NsOption = "",
        before: Annotated[str | None, typer.Option("--before", help="Only checkpoints with a lower id")] = None,
        limit: Annotated[int, typer.Option("--limit", help="Max checkpoints read (before --filter)")] = DEFAULT_LIMIT,
        filters: Annotated[list[str] | None, typer.Option("--filter", help="Metadata key=value (repeatable)")] = None,
        as_json: JsonFlag = False,
        output: OutputOption = None,
    ):
        """List checkpoints of a thread, newest first."""
        try:
            metadata_filter = parse_filter(filters)
        except ValueError as e:
            print(f"Error: {e}")
            raise typer.Exit(1) from e

        _, saver = _open(db)
        config = {"thread_id": thread_id, "checkpoint_ns": ns}
        before_config = {"thread_id": thread_id, "checkpoint_ns": ns, "checkpoint_id": before} if before else None
        with saver:
            items = list(saver.list(config, before=before_config, limit=limit, filter=metadata_filter))

        if as_json:
            print_json("ls", [item.to_dict() for item in items], output)
            return

        if not items:
            print(f"No checkpoints found for thread '{thread_id}'.")
            return

        ns_label = f" [{ns}]" if ns else ""
        print(f"\nThread: {thread_id}{ns_label} ({len(items)} checkpoints)\n")

        headers = ["Checkpoint", "Parent", "Writes", "Metadata"]
        rows = [
            [
                item.config.checkpoint_id,
                item.parent_config.checkpoint_id if item.parent_config else "—",
                str(len(item.pending_writes or [])),
                truncate_value(item.metadata, max_chars=60),
            ]
            for item in items
        ]
        print_lines(print_table(headers, rows))

        print_ctas(
            [
                f"threadstore show {thread_id} <checkpoint-id>   to inspect a checkpoint",
                f"threadstore ls {thread_id} --filter key=value  to filter on metadata",
            ]
        )

    @app.command("show")
    def show_cmd(
        thread_id: Annotated[str, typer.Argument(help="Thread ID")],
        checkpoint_id: Annotated[str | None, typer.Argument(help="Checkpoint ID (default: latest)")] = None,
        db: DbOption = None,
        ns: NsOption = "",
        show_values: Annotated[bool, typer.Option("--values", help="Show checkpoint and write values")] = False,
        as_json: JsonFlag = False,
        output: OutputOption = None,
    ):
        """Show one checkpoint with metadata, parent and pending writes."""
        _, saver = _open(db)
        with saver:
            item = saver.get_tuple({"thread_id": thread_id, "checkpoint_ns": ns, "checkpoint_id": checkpoint_id})

        if item is None:
            target = f"'{checkpoint_id}'" if checkpoint_id else "(latest)"
            print(f"Error: Checkpoint {target} not found in thread '{thread_id}'.")
            raise typer.Exit(1)

        if as_json:
            print_json("show", item.to_dict(), output)
            return

        parent = item.parent_config.checkpoint_id if item.parent_config else "—"
        print(f"\nCheckpoint: {item.config.checkpoint_id} | thread {thread_id} | parent {parent}\n")
        print(f"  metadata: {json.dumps(item.metadata, default=str)}")
        if show_values:
            print(f"  checkpoint: {json.dumps(item.checkpoint, indent=4, default=str)}")
        else:
            type_str, size_str = describe_value(item.checkpoint)
            print(f"  checkpoint: <{type_str}, {size_str}>")

        if not item.pending_writes:
            print("\n  No pending writes.")
            return

        print(f"\n  Pending writes ({len(item.pending_writes)})\n")
        headers = ["Task", "Channel", "Type", "Value"]
        rows = []
        for write in item.pending_writes:
            type_str, size_str = describe_value(write.value)
            value = truncate_value(write.value, max_chars=80) if show_values else size_str
            rows.append([write.task_id, write.channel, type_str, value])
        # header and rule lines come first
        print_lines(print_table(headers, rows, indent=4), max_lines=MAX_WRITE_ROWS + 2, hint="use --json for every write")

    @app.command("rm")
    def rm_cmd(
        thread_id: Annotated[str, typer.Argument(help="Thread ID")],
        checkpoint_id: Annotated[str | None, typer.Option("--checkpoint", help="Delete only this checkpoint")] = None,
        db: DbOption = None,
        ns: NsOption = "",
        yes: Annotated[bool, typer.Option("--yes", "-y", help="Do not ask for confirmation")] = False,
    ):
        """Delete a checkpoint, or every checkpoint of a thread."""
        if ns and checkpoint_id is None:
            print("Error: --ns requires --checkpoint; deleting a thread removes every namespace.")
            raise typer.Exit(1)
        target = f"checkpoint '{checkpoint_id}' of thread '{thread_id}'" if checkpoint_id else f"all checkpoints of thread '{thread_id}' in every namespace"
        if not yes:
            typer.confirm(f"Delete {target}?", abort=True)

        _, saver = _open(db)
        with saver:
            if checkpoint_id is None:
                saver.delete_thread(thread_id)
                print(f"Deleted {target}.")
                return
            deleted = saver.delete_checkpoint(thread_id, checkpoint_id, ns)

        if not deleted:
            print(f"Error: Checkpoint '{checkpoint_id}' not found in thread '{thread_id}'.")
            raise typer.Exit(1)
        print(f"Deleted {target}.")
