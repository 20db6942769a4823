"""Tests for NoteVaultConfig: environment defaults, validation and clamping."""

from pathlib import Path

import pytest
from pydantic import ValidationError

from notevault.config import _USER_ENV, NoteVaultConfig


class TestEnvironment:
    """Fields default from NOTEVAULT_* environment variables."""

    def test_user_env_path(self):
        assert _USER_ENV == Path.home() / ".notevault" / ".env"

    def test_defaults(self, monkeypatch):
        for name in (
            "NOTEVAULT_DATABASE_URL",
            "NOTEVAULT_IN_MEMORY_DB",
            "NOTEVAULT_LOCK_TIMEOUT",
            "NOTEVAULT_PAGE_SIZE",
            "NOTEVAULT_MAX_PAGE_SIZE",
            "NOTEVAULT_HISTORY_LIMIT",
            "NOTEVAULT_OWNER_ID",
            "NOTEVAULT_LOG_DIR",
        ):
            monkeypatch.delenv(name, raising=False)
        cfg = NoteVaultConfig()
        assert cfg.database_url is None
        assert cfg.in_memory_db is False
        assert cfg.lock_timeout == 5.0
        assert cfg.default_page_size == 20
        assert cfg.max_page_size == 100
        assert cfg.history_limit == 100
        assert cfg.max_title_length == 500
        assert cfg.owner_id is None
        assert cfg.log_dir is None

    def test_env_overrides(self, monkeypatch, tmp_path):
        monkeypatch.setenv("NOTEVAULT_PAGE_SIZE", "10")
        monkeypatch.setenv("NOTEVAULT_MAX_PAGE_SIZE", "50")
        monkeypatch.setenv("NOTEVAULT_LOCK_TIMEOUT", "0.5")
        monkeypatch.setenv("NOTEVAULT_OWNER_ID", "alice")
        monkeypatch.setenv("NOTEVAULT_IN_MEMORY_DB", "yes")
        monkeypatch.setenv("NOTEVAULT_LOG_DIR", str(tmp_path))
        monkeypatch.setenv("NOTEVAULT_SERVER_NAME", "vault-test")
        cfg = NoteVaultConfig()
        assert cfg.default_page_size == 10
        assert cfg.max_page_size == 50
        assert cfg.lock_timeout == 0.5
        assert cfg.owner_id == "alice"
        assert cfg.in_memory_db is True
        assert cfg.log_dir == tmp_path
        assert cfg.server_name == "vault-test"


class TestValidation:
    """Limits that would break listing or locking are rejected."""

    @pytest.mark.parametrize(
        "overrides",
        [
            {"lock_timeout": 0},
            {"default_page_size": 0},
            {"default_page_size": 50, "max_page_size": 10},
            {"history_limit": 0},
            {"max_title_length": 0},
        ],
    )
    def test_invalid_limits(self, overrides):
        with pytest.raises(ValidationError):
            NoteVaultConfig(**overrides)

    def test_assignment_is_validated(self):
        cfg = NoteVaultConfig()
        with pytest.raises(ValidationError):
            cfg.lock_timeout = -1


class TestDatabaseUrl:
    """Tests for get_db_url."""

    def test_explicit_url_wins(self):
        cfg = NoteVaultConfig(
            database_url="postgresql+psycopg://u@db/notes", in_memory_db=True
        )
        assert cfg.get_db_url() == "postgresql+psycopg://u@db/notes"

    def test_in_memory(self):
        cfg = NoteVaultConfig(database_url=None, in_memory_db=True)
        assert cfg.get_db_url() == "sqlite://"

    def test_file_path_relative_to_base_dir(self, tmp_path):
        cfg = NoteVaultConfig(
            database_url=None,
            in_memory_db=False,
            base_dir=tmp_path,
            database_path=Path("db/notes.db"),
        )
        assert cfg.get_db_url() == f"sqlite:///{tmp_path / 'db' / 'notes.db'}"
        assert (tmp_path / "db").is_dir()


class TestClamping:
    """Page size and history limit rules."""

    @pytest.fixture
    def cfg(self):
        return NoteVaultConfig(default_page_size=20, max_page_size=100, history_limit=100)

    @pytest.mark.parametrize(
        "requested,expected",
        [(None, 20), (0, 20), (-5, 20), (1, 1), (37, 37), (100, 100), (101, 100), (10**6, 100)],
    )
    def test_page_size(self, cfg, requested, expected):
        assert cfg.clamp_page_size(requested) == expected

    @pytest.mark.parametrize(
        "requested,expected", [(None, 100), (0, 100), (5, 5), (500, 100)]
    )
    def test_history_limit(self, cfg, requested, expected):
        assert cfg.clamp_history_limit(requested) == expected

    def test_history_limit_above_page_max(self):
        cfg = NoteVaultConfig(max_page_size=50, default_page_size=20, history_limit=200)
        assert cfg.clamp_history_limit(None) == 200
        assert cfg.clamp_history_limit(1000) == 200
