"""Master key management backed by the operating system's secret store.

The ledger master key is a 256-bit random secret generated once and kept in
the platform keychain (macOS Keychain, Windows Credential Locker, Secret
Service on Linux) through ``keyring``. It is never written anywhere else: if
no secure backend is available every dependent operation fails with
``KeyUnavailable``.

Backup keys are derived from a user passphrase with PBKDF2-HMAC-SHA256.
"""

import logging
import secrets

import keyring
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC
from keyring.backend import KeyringBackend
from keyring.errors import KeyringError, PasswordDeleteError

from ..errors import KeyUnavailable

logger = logging.getLogger(__name__)

MASTER_KEY_BYTES = 32

# Part of the backup format; changing them breaks existing backups
PBKDF2_ITERATIONS = 310_000
PBKDF2_MIN_ITERATIONS = 100_000
SALT_BYTES = 16

# Backends that keep secrets in plain or weakly protected files
_INSECURE_BACKEND_MODULES = ("keyrings.alt",)


class KeyVault:
    """Owns the ledger master key and passphrase key derivation.

    Args:
        service_name: Keyring service the master key is stored under
        key_name: Keyring entry (username) for the master key
        backend: Keyring backend to use. Defaults to the platform backend
            selected by ``keyring.get_keyring()``.
    """

    def __init__(
        self,
        service_name: str = "moneyvault",
        key_name: str = "db_master_key",
        backend: KeyringBackend | None = None,
    ):
        self.service_name = service_name
        self.key_name = key_name
        self._backend = backend

    @property
    def backend(self) -> KeyringBackend:
        """The secret store backend, validated as non-plaintext.

        Raises:
            KeyUnavailable: If no secure backend is available
        """
        backend = self._backend if self._backend is not None else keyring.get_keyring()
        module = type(backend).__module__
        if module.startswith(_INSECURE_BACKEND_MODULES):
            raise KeyUnavailable(
                f"Keyring backend {type(backend).__name__} stores secrets insecurely; "
                "refusing to keep the master key there"
            )
        return backend

    def _read_stored_key(self) -> str | None:
        try:
            return self.backend.get_password(self.service_name, self.key_name)
        except KeyringError as e:
            raise KeyUnavailable(f"Secret store unavailable: {e}") from e

    def has_master_key(self) -> bool:
        """Check whether a master key has been created.

        Raises:
            KeyUnavailable: If the secret store cannot be read
        """
        return self._read_stored_key() is not None

    def get_master_key(self) -> bytes:
        """Return the existing master key without creating one.

        Raises:
            KeyUnavailable: If there is no stored key or the store is unavailable
        """
        stored = self._read_stored_key()
        if stored is None:
            raise KeyUnavailable(
                "No master key found in the secret store; the ledger must be "
                "initialized again"
            )
        return self._decode(stored)

    def get_or_create_master_key(self) -> bytes:
        """Return the master key, generating and storing it on first use.

        Returns:
            bytes: 32-byte master key

        Raises:
            KeyUnavailable: If the secret store is unavailable or does not
                retain the generated key
        """
        stored = self._read_stored_key()
        if stored is not None:
            return self._decode(stored)

        key = secrets.token_bytes(MASTER_KEY_BYTES)
        try:
            self.backend.set_password(self.service_name, self.key_name, key.hex())
        except KeyringError as e:
            raise KeyUnavailable(f"Unable to store master key: {e}") from e

        # Some backends drop writes silently
        if self._read_stored_key() != key.hex():
            raise KeyUnavailable("Secret store did not retain the master key")

        logger.info("Generated new master key in secret store %s", self.service_name)
        return key

    def erase_master_key(self) -> None:
        """Irreversibly destroy the stored master key.

        Idempotent: erasing an already absent key is not an error.

        Raises:
            KeyUnavailable: If the secret store cannot be reached
        """
        try:
            self.backend.delete_password(self.service_name, self.key_name)
        except PasswordDeleteError:
            logger.debug("No master key to erase in %s", self.service_name)
            return
        except KeyringError as e:
            raise KeyUnavailable(f"Unable to erase master key: {e}") from e

        logger.info("Master key erased from secret store %s", self.service_name)

    @staticmethod
    def derive_passphrase_key(
        passphrase: str,
        salt: bytes,
        iterations: int = PBKDF2_ITERATIONS,
    ) -> bytes:
        """Derive a 256-bit backup key from a passphrase.

        PBKDF2-HMAC-SHA256. The same passphrase and salt always give the same
        key.

        Args:
            passphrase: User passphrase
            salt: Random salt stored alongside the backup
            iterations: PBKDF2 work factor, at least 100,000

        Returns:
            bytes: 32-byte derived key

        Raises:
            ValueError: If the passphrase is empty or the work factor too low
        """
        if not passphrase:
            raise ValueError("Passphrase cannot be empty")
        if iterations < PBKDF2_MIN_ITERATIONS:
            raise ValueError(
                f"PBKDF2 iterations must be at least {PBKDF2_MIN_ITERATIONS:,}"
            )

        kdf = PBKDF2HMAC(
            algorithm=hashes.SHA256(),
            length=MASTER_KEY_BYTES,
            salt=salt,
            iterations=iterations,
        )
        return kdf.derive(passphrase.encode("utf-8"))

    @staticmethod
    def new_salt() -> bytes:
        return secrets.token_bytes(SALT_BYTES)

    def _decode(self, stored: str) -> bytes:
        try:
            key = bytes.fromhex(stored)
        except ValueError as e:
            raise KeyUnavailable("Stored master key is malformed") from e
        if len(key) != MASTER_KEY_BYTES:
            raise KeyUnavailable("Stored master key has the wrong length")
        return key
