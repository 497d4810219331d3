from __future__ import annotations

from pathlib import Path

import pytest

from finfusion.config import DEV_JWT_SECRET, load_settings
from finfusion.engine.infra.paths import sqlite_url


def test_environment_overrides_are_coerced() -> None:
    settings = load_settings(
        environ={
            "FINFUSION_DATABASE_URL": "sqlite://",
            "FINFUSION_JSON_LOGS": "yes",
            "FINFUSION_BCRYPT_ROUNDS": "5",
            "FINFUSION_CORS_ORIGINS": "https://app.example.com, https://admin.example.com",
            "FINFUSION_SCHEDULER_ENABLED": "0",
        }
    )
    assert settings.database_url == "sqlite://"
    assert settings.json_logs is True
    assert settings.bcrypt_rounds == 5
    assert settings.cors_origins == ["https://app.example.com", "https://admin.example.com"]
    assert settings.scheduler_enabled is False
    assert settings.jwt_secret == DEV_JWT_SECRET
    assert settings.loan_job_hour == 9


def test_yaml_file_then_environment(tmp_path: Path) -> None:
    config = tmp_path / "finfusion.yml"
    config.write_text(
        "database_url: sqlite:///from-file.db\nlog_level: DEBUG\ncors_origins:\n  - http://one\n  - http://two\n",
        encoding="utf-8",
    )
    settings = load_settings(
        environ={"FINFUSION_CONFIG": str(config), "FINFUSION_LOG_LEVEL": "WARNING"},
    )
    assert settings.database_url == "sqlite:///from-file.db"
    assert settings.log_level == "WARNING"
    assert settings.cors_origins == ["http://one", "http://two"]


def test_unknown_configuration_key(tmp_path: Path) -> None:
    config = tmp_path / "bad.yml"
    config.write_text("database_url: sqlite://\nmystery: 1\n", encoding="utf-8")
    with pytest.raises(ValueError, match="Unknown configuration key: mystery"):
        load_settings(environ={}, config_path=config)


def test_configuration_file_must_be_mapping(tmp_path: Path) -> None:
    config = tmp_path / "list.yml"
    config.write_text("- a\n- b\n", encoding="utf-8")
    with pytest.raises(ValueError, match="must contain a mapping"):
        load_settings(environ={}, config_path=config)


def test_sqlite_url_creates_parent(tmp_path: Path) -> None:
    target = tmp_path / "nested" / "app.db"
    assert sqlite_url(target) == f"sqlite:///{target}"
    assert target.parent.is_dir()
