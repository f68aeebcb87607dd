"""Tests for centralized logging configuration."""

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, cast

import pytest

from moneyvault.config import LoggingConfig, clear_settings_cache
from moneyvault.logging import get_log_config_summary, setup_logging


def _console_config(**overrides: Any) -> LoggingConfig:
    return LoggingConfig(log_to_file=False, **overrides)


def _own_handlers() -> list[logging.Handler]:
    return [
        h
        for h in logging.getLogger().handlers
        if (h.get_name() or "").startswith("moneyvault.")
    ]


class TestSetupLogging:
    """Tests for setup_logging handler configuration."""

    @pytest.mark.unit
    def test_console_handler_uses_stderr(self) -> None:
        """Console output must stay off stdout, which carries CSV exports."""
        setup_logging(config=_console_config(), cli_mode=False)

        handlers = _own_handlers()
        assert len(handlers) == 1
        stream: object = getattr(cast(Any, handlers[0]), "stream", None)
        assert stream is sys.stderr

    @pytest.mark.unit
    def test_cli_mode_uses_message_only_format(self) -> None:
        setup_logging(config=_console_config(), cli_mode=True)

        formatter = _own_handlers()[0].formatter
        assert formatter is not None
        assert formatter._fmt == "%(message)s"  # noqa: SLF001

    @pytest.mark.unit
    def test_repeated_setup_replaces_own_handlers(self) -> None:
        foreign = logging.NullHandler()
        logging.getLogger().addHandler(foreign)

        setup_logging(config=_console_config())
        setup_logging(config=_console_config(), cli_mode=True)

        assert len(_own_handlers()) == 1
        assert foreign in logging.getLogger().handlers

    @pytest.mark.unit
    def test_verbose_overrides_level(self) -> None:
        setup_logging(config=_console_config(level="WARNING"), verbose=True)

        assert logging.getLogger().level == logging.DEBUG

    @pytest.mark.unit
    def test_configured_level(self) -> None:
        setup_logging(config=_console_config(level="WARNING"))

        assert logging.getLogger().level == logging.WARNING

    @pytest.mark.unit
    def test_file_handler_created(self, tmp_path: Path) -> None:
        log_file = tmp_path / "logs" / "moneyvault.log"

        setup_logging(
            config=LoggingConfig(
                log_file_path=log_file, max_file_size_mb=2, backup_count=3
            )
        )

        file_handlers = [h for h in _own_handlers() if isinstance(h, RotatingFileHandler)]
        assert len(file_handlers) == 1
        assert file_handlers[0].maxBytes == 2 * 1024 * 1024
        assert file_handlers[0].backupCount == 3
        logging.getLogger("moneyvault.test").warning("written to file")
        assert "written to file" in log_file.read_text(encoding="utf-8")

    @pytest.mark.unit
    def test_noisy_libraries_quieted(self) -> None:
        setup_logging(config=_console_config(), verbose=True)

        assert logging.getLogger("keyring").level == logging.WARNING
        assert logging.getLogger("duckdb").level == logging.WARNING


class TestSettingsIntegration:
    """Without an explicit config, the current profile's settings apply."""

    @pytest.fixture(autouse=True)
    def isolated_cwd(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
        monkeypatch.chdir(tmp_path)
        return tmp_path

    @pytest.mark.unit
    def test_level_from_environment(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("MONEYVAULT_LOGGING__LEVEL", "ERROR")
        monkeypatch.setenv("MONEYVAULT_LOGGING__LOG_TO_FILE", "false")
        clear_settings_cache()

        setup_logging()

        assert logging.getLogger().level == logging.ERROR
        assert not any(isinstance(h, RotatingFileHandler) for h in _own_handlers())

    @pytest.mark.unit
    def test_file_path_from_environment(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        log_file = tmp_path / "custom" / "vault.log"
        monkeypatch.setenv("MONEYVAULT_LOGGING__LOG_FILE_PATH", str(log_file))
        clear_settings_cache()

        setup_logging()

        file_handlers = [h for h in _own_handlers() if isinstance(h, RotatingFileHandler)]
        assert Path(file_handlers[0].baseFilename) == log_file

    @pytest.mark.unit
    def test_summary(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("MONEYVAULT_LOGGING__LOG_TO_FILE", "false")
        clear_settings_cache()
        setup_logging(verbose=True)

        summary = get_log_config_summary()

        assert summary["level"] == "DEBUG"
        assert summary["handlers"] == ["StreamHandler"]
        assert summary["log_to_file"] is False
        assert summary["backup_count"] == 5
