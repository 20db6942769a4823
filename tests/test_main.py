"""Tests for the command line entry point."""
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from notevault import main as main_module
from notevault.config import config


class TestParseArgs:
    """Tests for argument parsing."""

    def test_defaults(self, monkeypatch):
        monkeypatch.delenv("NOTEVAULT_DATABASE_PATH", raising=False)
        monkeypatch.delenv("NOTEVAULT_OWNER_ID", raising=False)
        monkeypatch.delenv("NOTEVAULT_LOG_LEVEL", raising=False)
        args = main_module.parse_args([])
        assert args.database_path is None
        assert args.owner_id is None
        assert args.log_level == "INFO"

    def test_options(self):
        args = main_module.parse_args(
            ["--database-path", "/tmp/x.db", "--owner-id", "alice", "--log-level", "DEBUG"]
        )
        assert args.database_path == "/tmp/x.db"
        assert args.owner_id == "alice"
        assert args.log_level == "DEBUG"

    def test_invalid_log_level(self):
        with pytest.raises(SystemExit):
            main_module.parse_args(["--log-level", "CHATTY"])


def test_update_config(test_config, tmp_path):
    args = main_module.parse_args(
        ["--database-path", str(tmp_path / "cli.db"), "--owner-id", "carol"]
    )
    main_module.update_config(args)
    assert config.database_path == Path(tmp_path / "cli.db")
    assert config.owner_id == "carol"


def test_main_starts_server(test_config, tmp_path, monkeypatch):
    monkeypatch.setattr(config, "log_dir", None)
    server = MagicMock()
    with patch.object(main_module, "configure_logging") as configure, patch.object(
        main_module, "NoteVaultMcpServer", return_value=server
    ) as server_cls:
        main_module.main(["--database-path", str(tmp_path / "main.db"), "--owner-id", "dave"])

    configure.assert_called_once()
    server_cls.assert_called_once()
    server.run.assert_called_once()
    assert (tmp_path / "main.db").exists()


def test_main_exits_when_database_fails(test_config):
    with patch.object(main_module, "configure_logging"), patch.object(
        main_module, "init_db", side_effect=RuntimeError("no database")
    ), patch.object(main_module, "NoteVaultMcpServer") as server_cls:
        with pytest.raises(SystemExit) as exc_info:
            main_module.main([])
    assert exc_info.value.code == 1
    server_cls.assert_not_called()
