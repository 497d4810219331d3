"""Filesystem locations used by the API, the scheduler and the CLI."""

from __future__ import annotations

from pathlib import Path
from typing import Final

DEFAULT_DATA_ROOT: Final[Path] = Path("data")
DEFAULT_LOG_ROOT: Final[Path] = Path("artifacts") / "logs"
DEFAULT_SQLITE_PATH: Final[Path] = DEFAULT_DATA_ROOT / "finfusion.db"


def sqlite_url(path: str | Path = DEFAULT_SQLITE_PATH) -> str:
    """Return a SQLAlchemy URL for ``path``, creating its parent directory."""

    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    return f"sqlite:///{target}"


__all__ = ["DEFAULT_DATA_ROOT", "DEFAULT_LOG_ROOT", "DEFAULT_SQLITE_PATH", "sqlite_url"]
