"""Database access helpers for CLI commands.

Resolves the --db path (flag, then [tool.threadstore], then the default)
and opens a SqliteSaver on it.
"""

from __future__ import annotations

from pathlib import Path

from threadstore.cli._config import load_config

DEFAULT_DB = "./checkpoints.db"


def resolve_db(db: str | None) -> str:
    """Pick the database path: explicit flag wins over pyproject config."""
    if db is not None:
        return db
    return load_config().db or DEFAULT_DB


def open_saver(db: str):
    """Open a SqliteSaver on an existing database file.

    Raises FileNotFoundError instead of silently creating an empty database.
    """
    from threadstore.sqlite import SqliteSaver

    if db != ":memory:" and not Path(db).is_file():
        raise FileNotFoundError(db)
    return SqliteSaver(db)
