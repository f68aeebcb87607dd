"""Logging setup for MoneyVault.

Log settings come from the ``logging`` section of the active profile's
``MoneyVaultSettings`` (``MONEYVAULT_LOGGING__LEVEL``,
``MONEYVAULT_LOGGING__LOG_TO_FILE`` and friends), so each profile can log to
its own file.

Handlers installed here are named ``moneyvault.*``. Calling ``setup_logging``
again replaces them; handlers added by anything else are left in place.
"""

import logging
import sys
from logging.handlers import RotatingFileHandler
from typing import Any

from ..config import LoggingConfig, get_settings

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
CLI_LOG_FORMAT = "%(message)s"

_HANDLER_PREFIX = "moneyvault."
_QUIET_LOGGERS = ("keyring", "duckdb")


def _own_handlers(root: logging.Logger) -> list[logging.Handler]:
    return [
        h for h in root.handlers if (h.get_name() or "").startswith(_HANDLER_PREFIX)
    ]


def setup_logging(
    config: LoggingConfig | None = None,
    cli_mode: bool = False,
    verbose: bool = False,
) -> None:
    """Configure the root logger for library or CLI use.

    Args:
        config: Logging section to apply. Defaults to the current profile's
            ``get_settings().logging``.
        cli_mode: If True, console lines carry the message only
        verbose: If True, log at DEBUG regardless of the configured level

    Raises:
        ValueError: If ``config`` is omitted and the profile's settings are
            invalid
    """
    if config is None:
        config = get_settings().logging

    root = logging.getLogger()
    for handler in _own_handlers(root):
        root.removeHandler(handler)
        handler.close()

    # stderr only; stdout carries CSV and JSON exports
    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.set_name(f"{_HANDLER_PREFIX}console")
    console_handler.setFormatter(
        logging.Formatter(CLI_LOG_FORMAT if cli_mode else LOG_FORMAT)
    )
    root.addHandler(console_handler)

    if config.log_to_file:
        config.log_file_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = RotatingFileHandler(
            config.log_file_path,
            maxBytes=config.max_file_size_mb * 1024 * 1024,
            backupCount=config.backup_count,
            encoding="utf-8",
        )
        file_handler.set_name(f"{_HANDLER_PREFIX}file")
        file_handler.setFormatter(logging.Formatter(LOG_FORMAT))
        root.addHandler(file_handler)

    root.setLevel(logging.DEBUG if verbose else config.level)

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_log_config_summary(config: LoggingConfig | None = None) -> dict[str, Any]:
    """Describe the logging setup currently in effect.

    Returns:
        dict: Root level, MoneyVault handlers and the file settings
    """
    if config is None:
        config = get_settings().logging
    root = logging.getLogger()

    return {
        "level": logging.getLevelName(root.level),
        "handlers": [type(h).__name__ for h in _own_handlers(root)],
        "log_to_file": config.log_to_file,
        "log_file_path": str(config.log_file_path),
        "max_file_size_mb": config.max_file_size_mb,
        "backup_count": config.backup_count,
    }
