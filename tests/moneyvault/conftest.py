"""Shared pytest fixtures for moneyvault tests.

Provides an in-memory keyring backend so no test touches the real OS
keychain, a temporary ledger store, and record factories.
"""

import logging
from collections.abc import Generator
from datetime import datetime
from decimal import Decimal
from pathlib import Path
from typing import Any

import pytest
from keyring.backend import KeyringBackend
from keyring.errors import PasswordDeleteError

from moneyvault.config import clear_settings_cache, set_current_profile
from moneyvault.ledger import LedgerStore
from moneyvault.models import (
    Account,
    AccountType,
    Budget,
    BudgetPeriod,
    Category,
    CategoryType,
    Transaction,
)
from moneyvault.vault import KeyVault


class MemoryKeyring(KeyringBackend):
    """Keyring backend that keeps secrets in a dict."""

    priority = 1  # type: ignore[assignment]

    def __init__(self) -> None:
        super().__init__()
        self.passwords: dict[tuple[str, str], str] = {}

    def get_password(self, service: str, username: str) -> str | None:
        return self.passwords.get((service, username))

    def set_password(self, service: str, username: str, password: str) -> None:
        self.passwords[(service, username)] = password

    def delete_password(self, service: str, username: str) -> None:
        try:
            del self.passwords[(service, username)]
        except KeyError as e:
            raise PasswordDeleteError("Password not found") from e


@pytest.fixture(autouse=True)
def clean_profile_state() -> Generator[None, None, None]:
    """Reset cached settings and the active profile around every test."""
    clear_settings_cache()
    set_current_profile("default")

    yield

    clear_settings_cache()
    set_current_profile("default")


@pytest.fixture(autouse=True)
def restore_root_logging() -> Generator[None, None, None]:
    """Drop handlers and levels that setup_logging installs during a test."""
    root = logging.getLogger()
    original_handlers = list(root.handlers)
    original_level = root.level

    yield

    for handler in root.handlers:
        if handler not in original_handlers:
            handler.close()
    root.handlers = original_handlers
    root.setLevel(original_level)


@pytest.fixture
def memory_keyring() -> MemoryKeyring:
    return MemoryKeyring()


@pytest.fixture
def key_vault(memory_keyring: MemoryKeyring) -> KeyVault:
    """Key vault backed by the in-memory keyring."""
    return KeyVault(service_name="moneyvault-test", backend=memory_keyring)


@pytest.fixture
def ledger_path(tmp_path: Path) -> Path:
    return tmp_path / "ledger" / "test.duckdb"


@pytest.fixture
def store(ledger_path: Path, key_vault: KeyVault) -> Generator[LedgerStore, None, None]:
    """Initialized ledger store on a temporary DuckDB file."""
    ledger = LedgerStore(ledger_path, key_vault)
    ledger.initialize()
    yield ledger
    ledger.close()


def make_transaction(**overrides: Any) -> Transaction:
    """Build a valid expense transaction, overriding any field."""
    fields: dict[str, Any] = {
        "amount": Decimal("-45.50"),
        "description": "Grocery Shopping",
        "category": "Food",
        "occurred_at": datetime(2024, 1, 15, 10, 30),
        "account_id": "acc-1",
    }
    fields.update(overrides)
    return Transaction(**fields)


def make_budget(**overrides: Any) -> Budget:
    fields: dict[str, Any] = {
        "category": "Food",
        "limit": Decimal("100"),
        "period": BudgetPeriod.MONTHLY,
        "start_date": datetime(2024, 1, 1),
    }
    fields.update(overrides)
    return Budget(**fields)


def make_account(**overrides: Any) -> Account:
    fields: dict[str, Any] = {
        "name": "Main Checking",
        "type": AccountType.CHECKING,
        "balance": Decimal("1200.00"),
    }
    fields.update(overrides)
    return Account(**fields)


def make_category(**overrides: Any) -> Category:
    fields: dict[str, Any] = {
        "name": "Coffee",
        "icon": "☕",
        "color": "#6F4E37",
        "type": CategoryType.EXPENSE,
    }
    fields.update(overrides)
    return Category(**fields)
