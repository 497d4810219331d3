"""Shared pytest configuration for the FinFusion engine and CLI tests."""

from __future__ import annotations

import os
import sys
from collections.abc import Iterable
from pathlib import Path

import pytest


def _insert_repo_root() -> None:
    """Make sure the repository root is on ``sys.path`` for imports."""

    repo_root = Path(__file__).resolve().parents[1]
    if str(repo_root) not in sys.path:
        sys.path.insert(0, str(repo_root))


_insert_repo_root()

os.environ.setdefault("FINFUSION_DATABASE_URL", "sqlite://")
os.environ.setdefault("FINFUSION_BCRYPT_ROUNDS", "4")


def pytest_report_header(config: pytest.Config) -> Iterable[str]:  # pragma: no cover - pytest hook
    """Show diagnostic context for the test run."""

    root = Path.cwd()
    database_url = os.environ.get("FINFUSION_DATABASE_URL", "")
    return [f"FinFusion repo: {root}", f"FINFUSION_DATABASE_URL={database_url}"]


@pytest.fixture(autouse=True)
def _quiet_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep log configuration from the developer shell out of the tests."""

    monkeypatch.delenv("FINFUSION_LOG_LEVEL", raising=False)
    monkeypatch.delenv("FINFUSION_JSON_LOGS", raising=False)
    monkeypatch.delenv("FINFUSION_CONFIG", raising=False)
