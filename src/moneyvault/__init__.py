"""MoneyVault: Private, encrypted personal finance ledger.

This package provides local-first storage of transactions, accounts, budgets
and categories with:
- Record-level AES-256-GCM encryption keyed by a master key in the OS keychain
- Passphrase-encrypted, integrity-checked backups safe for untrusted storage
- Exact decimal budget, breakdown and trend calculations
- Injection-safe CSV import and export
- A CLI for all operations

Nothing leaves the device unencrypted, and nothing is sent over the network.
"""

from .backup import BackupCodec, RestoreResult
from .ledger import LedgerStore
from .models import (
    Account,
    AccountType,
    Budget,
    BudgetPeriod,
    Category,
    CategoryType,
    EncryptedBackup,
    LedgerSnapshot,
    Transaction,
)
from .vault import KeyVault

__version__ = "0.1.0"

__all__ = [
    "Account",
    "AccountType",
    "BackupCodec",
    "Budget",
    "BudgetPeriod",
    "Category",
    "CategoryType",
    "EncryptedBackup",
    "KeyVault",
    "LedgerSnapshot",
    "LedgerStore",
    "RestoreResult",
    "Transaction",
    "__version__",
]
