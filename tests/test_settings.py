"""Tests for application settings."""

from pathlib import Path

import pytest
from pydantic import ValidationError

from config import AppSettings, QuerySettings


def test_defaults():
    settings = AppSettings()
    assert settings.query.max_nodes == 1000
    assert settings.query.max_depth == 200
    assert settings.query.case_sensitive_default is False
    assert settings.hashing.workers == 4
    assert settings.database_path == Path("storage/db/catalog.sqlite3")


def test_from_env(monkeypatch):
    monkeypatch.setenv("IMGTAGDB_DATABASE_PATH", "/tmp/cat.sqlite3")
    monkeypatch.setenv("IMGTAGDB_QUERY_MAX_NODES", "50")
    monkeypatch.setenv("IMGTAGDB_QUERY_MAX_DEPTH", "30")
    monkeypatch.setenv("IMGTAGDB_QUERY_CASE_SENSITIVE_DEFAULT", "true")
    settings = AppSettings.from_env()
    assert settings.database_path == Path("/tmp/cat.sqlite3")
    assert settings.query.max_nodes == 50
    assert settings.query.max_depth == 30
    assert settings.query.case_sensitive_default is True


def test_invalid_values_are_rejected():
    with pytest.raises(ValidationError):
        QuerySettings(max_nodes=0)
