"""Encrypted, portable ledger backups."""

from .codec import BACKUP_VERSION, BackupCodec, RestoreResult
from .files import load_backup, load_latest_backup, save_backup

__all__ = [
    "BACKUP_VERSION",
    "BackupCodec",
    "RestoreResult",
    "load_backup",
    "load_latest_backup",
    "save_backup",
]
