"""Shared helpers for CLI commands: opening the profile's ledger and parsing
user-supplied values."""

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime
from decimal import Decimal

import typer

from ..config import get_settings
from ..dates import parse_date
from ..errors import LedgerError
from ..ledger import LedgerStore
from ..money import to_decimal
from ..vault import KeyVault

logger = logging.getLogger(__name__)


def profile_key_vault() -> KeyVault:
    """Key vault scoped to the active profile's keyring service."""
    settings = get_settings()
    return KeyVault(
        service_name=settings.keyring_service,
        key_name=settings.vault.key_name,
    )


@contextmanager
def open_ledger() -> Iterator[LedgerStore]:
    """Open and initialize the active profile's ledger.

    Ledger and validation errors raised inside the block are logged and turned
    into exit code 1.
    """
    settings = get_settings()
    store = LedgerStore(settings.database.path, profile_key_vault())
    try:
        store.initialize()
        yield store
    except (LedgerError, ValueError) as e:
        logger.error(f"❌ {e}")
        raise typer.Exit(1) from e
    finally:
        store.close()


def parse_amount_option(value: str) -> Decimal:
    try:
        return to_decimal(value.strip())
    except LedgerError as e:
        raise typer.BadParameter(f"Invalid amount: {value}") from e


def parse_date_option(value: str | None) -> datetime | None:
    if value is None:
        return None
    parsed = parse_date(value)
    if parsed is None:
        raise typer.BadParameter(
            f"Invalid date: {value}. Use YYYY-MM-DD or DD/MM/YYYY"
        )
    return parsed
