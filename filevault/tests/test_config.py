"""
@file: test_config.py
@description:
Tests for settings loading and derived defaults.
"""

import pytest
from pydantic import ValidationError

from filevault.core.config import DEFAULT_MAX_UPLOAD_BYTES, ClientSettings, Settings


def test_defaults_derive_from_data_dir(tmp_path):
    settings = Settings(_env_file=None, MASTER_KEY="k", DATA_DIR=str(tmp_path))

    assert settings.DATABASE_URL == f"sqlite:///{tmp_path / 'main.db'}"
    assert settings.BLOB_DIR == str(tmp_path)
    assert settings.MAX_UPLOAD_BYTES == DEFAULT_MAX_UPLOAD_BYTES == 500 * 1024 * 1024
    assert settings.PORT == 8080
    assert settings.MASTER_USERNAME == "Master"


def test_explicit_locations_win(tmp_path):
    settings = Settings(
        _env_file=None,
        MASTER_KEY="k",
        DATABASE_URL="sqlite://",
        BLOB_DIR=str(tmp_path / "blobs"),
    )
    assert settings.DATABASE_URL == "sqlite://"
    assert settings.BLOB_DIR == str(tmp_path / "blobs")


def test_master_key_is_required(monkeypatch):
    monkeypatch.delenv("MASTER_KEY", raising=False)
    with pytest.raises(ValidationError):
        Settings(_env_file=None)


def test_settings_read_from_environment(monkeypatch):
    monkeypatch.setenv("MASTER_KEY", "from-env")
    monkeypatch.setenv("PORT", "9090")
    monkeypatch.setenv("LOG_LEVEL", "debug")

    settings = Settings(_env_file=None)

    assert settings.MASTER_KEY == "from-env"
    assert settings.PORT == 9090
    assert settings.LOG_LEVEL == "DEBUG"


def test_invalid_log_level_rejected():
    with pytest.raises(ValidationError):
        Settings(_env_file=None, MASTER_KEY="k", LOG_LEVEL="chatty")


def test_client_settings_defaults(monkeypatch):
    monkeypatch.delenv("FILEVAULT_API_URL", raising=False)
    monkeypatch.delenv("FILEVAULT_TIMEOUT", raising=False)
    settings = ClientSettings(_env_file=None)
    assert settings.FILEVAULT_API_URL == "http://localhost:8080"
    assert settings.FILEVAULT_TIMEOUT == 30.0
