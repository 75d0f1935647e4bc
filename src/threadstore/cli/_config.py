"""Project-level configuration from pyproject.toml.

Reads the [tool.threadstore] section to provide the default database path
for CLI commands. A relative ``db`` is taken relative to the pyproject.toml
that declares it, so commands work from any subdirectory of the project.
"""

from __future__ import annotations

import sys
from collections.abc import Iterator
from dataclasses import dataclass
from pathlib import Path
from typing import Any


@dataclass(frozen=True)
class ThreadstoreConfig:
    """Configuration from [tool.threadstore] in pyproject.toml."""

    db: str | None = None
    source: Path | None = None


def iter_pyprojects(start: Path | None = None) -> Iterator[Path]:
    """pyproject.toml files from ``start`` upward, nearest first."""
    here = (start or Path.cwd()).resolve()
    for directory in (here, *here.parents):
        candidate = directory / "pyproject.toml"
        if candidate.is_file():
            yield candidate


def _read_section(path: Path) -> dict[str, Any]:
    if sys.version_info >= (3, 11):
        import tomllib
    else:
        import tomli as tomllib

    with open(path, "rb") as f:
        data = tomllib.load(f)
    return data.get("tool", {}).get("threadstore", {})


def load_config(start: Path | None = None) -> ThreadstoreConfig:
    """Load the nearest [tool.threadstore] section.

    pyproject.toml files without the section are skipped, so a nested
    package does not hide the workspace configuration above it.
    """
    for path in iter_pyprojects(start):
        section = _read_section(path)
        if not section:
            continue
        db = section.get("db")
        if db is not None and db != ":memory:" and not Path(db).is_absolute():
            db = str(path.parent / db)
        return ThreadstoreConfig(db=db, source=path)
    return ThreadstoreConfig()
