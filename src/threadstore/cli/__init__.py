"""threadstore CLI: inspect and prune checkpoint databases.

Entry point for the `threadstore` command. Requires ``pip install threadstore[cli]``.

Commands:
    stats    Checkpoint, pending-write and thread counts
    ls       List checkpoints of a thread, newest first
    show     Show one checkpoint with metadata and pending writes
    rm       Delete a checkpoint or a whole thread
"""

from __future__ import annotations


def _require_typer():
    """Check that typer is available."""
    try:
        import typer  # noqa: F401
    except ImportError:
        import sys

        print("Error: typer is required for the CLI. Install with: pip install threadstore[cli]", file=sys.stderr)
        raise SystemExit(1) from None


def create_app():
    """Create the Typer app with all commands."""
    _require_typer()

    import typer

    from threadstore.cli.checkpoints import register_commands

    app = typer.Typer(
        name="threadstore",
        help="Inspect and manage checkpoint databases.",
        no_args_is_help=True,
    )
    register_commands(app)

    return app


def main():
    """CLI entry point."""
    app = create_app()
    app()
