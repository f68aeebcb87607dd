"""Encrypted ledger persistence."""

from .store import DEFAULT_CATEGORIES, LedgerStore, TableRef

__all__ = ["DEFAULT_CATEGORIES", "LedgerStore", "TableRef"]
