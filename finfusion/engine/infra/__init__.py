"""Infrastructure helpers shared by FinFusion components."""

from .paths import DEFAULT_DATA_ROOT, DEFAULT_LOG_ROOT, DEFAULT_SQLITE_PATH, sqlite_url

__all__ = ["DEFAULT_DATA_ROOT", "DEFAULT_LOG_ROOT", "DEFAULT_SQLITE_PATH", "sqlite_url"]
