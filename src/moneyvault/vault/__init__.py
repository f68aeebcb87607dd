"""Key management and record encryption for MoneyVault.

This package owns the master key lifecycle (OS secret store via keyring),
passphrase key derivation for backups, and record-level AES-GCM encryption.
"""

from .cipher import RecordCipher
from .keyvault import PBKDF2_ITERATIONS, SALT_BYTES, KeyVault

__all__ = ["KeyVault", "RecordCipher", "PBKDF2_ITERATIONS", "SALT_BYTES"]
