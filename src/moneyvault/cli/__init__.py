"""MoneyVault CLI package.

This package provides the command-line interface for the encrypted ledger:
transactions, budgets, reports, backups and CSV interchange.
"""

from .main import app, main

__all__ = ["app", "main"]
