"""Passphrase-encrypted backup bundles.

A backup is the whole ledger serialized to canonical JSON, encrypted with
AES-256-GCM under a key derived from the user's passphrase (PBKDF2, random
salt), and wrapped in an ``EncryptedBackup`` together with a SHA-256 checksum
of the raw ciphertext. The checksum is verified before any decryption so a
corrupt bundle is reported as corruption, not as a wrong passphrase.
"""

import asyncio
import base64
import binascii
import hashlib
import hmac
import json
import logging
import os
import platform as platform_module
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from pydantic import ValidationError

from ..dates import now_local, to_epoch_ms
from ..errors import IntegrityViolation, VersionMismatch, WrongPassphrase
from ..ledger import LedgerStore
from ..models import (
    Account,
    Budget,
    Category,
    EncryptedBackup,
    LedgerRecord,
    LedgerSnapshot,
    Transaction,
)
from ..vault import KeyVault
from .files import load_latest_backup, save_backup

logger = logging.getLogger(__name__)

BACKUP_VERSION = "2.0"
NONCE_BYTES = 12

_BACKUP_AAD = b"moneyvault-backup-v2"
_COLLECTIONS: dict[str, type[LedgerRecord]] = {
    "transactions": Transaction,
    "accounts": Account,
    "budgets": Budget,
    "categories": Category,
}


@dataclass
class RestoreResult:
    """Outcome of a successful restore.

    ``skipped`` lists records from a different-version backup that could not
    be read and were left out.
    """

    counts: dict[str, int] = field(default_factory=dict)
    version_warning: VersionMismatch | None = None
    skipped: list[str] = field(default_factory=list)

    @property
    def total(self) -> int:
        return sum(self.counts.values())


def default_platform() -> str:
    """Platform tag recorded on new bundles (``linux``, ``darwin``, ``windows``)."""
    return platform_module.system().lower() or "unknown"


class BackupCodec:
    """Creates and restores encrypted backups of a ledger store.

    Args:
        store: Initialized ledger store to read from and restore into
        key_vault: Used for passphrase key derivation
        platform: Platform tag written on new bundles. Defaults to the OS name.
    """

    def __init__(
        self,
        store: LedgerStore,
        key_vault: KeyVault,
        platform: str | None = None,
    ):
        self.store = store
        self.key_vault = key_vault
        self.platform = platform or default_platform()

    def _payload(self) -> dict[str, Any]:
        snapshot = self.store.snapshot()
        data = snapshot.model_dump(mode="json")
        data["version"] = BACKUP_VERSION
        data["exported_at"] = now_local().isoformat()
        return data

    def export_json(self) -> str:
        """Unencrypted, human-readable JSON export of the whole ledger."""
        return json.dumps(self._payload(), sort_keys=True, indent=2, ensure_ascii=False)

    def create_backup(self, passphrase: str) -> EncryptedBackup:
        """Encrypt the whole ledger under a passphrase.

        Args:
            passphrase: Backup passphrase; the only way to decrypt the bundle

        Returns:
            EncryptedBackup: Self-contained bundle safe for untrusted storage

        Raises:
            ValueError: If the passphrase is empty
        """
        if not passphrase:
            raise ValueError("Backup passphrase cannot be empty")

        plaintext = json.dumps(
            self._payload(), sort_keys=True, separators=(",", ":")
        ).encode("utf-8")

        salt = self.key_vault.new_salt()
        key = self.key_vault.derive_passphrase_key(passphrase, salt)
        nonce = os.urandom(NONCE_BYTES)
        raw = nonce + AESGCM(key).encrypt(nonce, plaintext, _BACKUP_AAD)

        bundle = EncryptedBackup(
            ciphertext=base64.b64encode(raw).decode("ascii"),
            salt=base64.b64encode(salt).decode("ascii"),
            checksum=hashlib.sha256(raw).hexdigest(),
            timestamp=to_epoch_ms(now_local()),
            platform=self.platform,
        )
        logger.info(f"Created encrypted backup ({len(raw)} bytes)")
        return bundle

    def restore_backup(self, bundle: EncryptedBackup, passphrase: str) -> RestoreResult:
        """Decrypt a bundle and load every record into the store.

        Records keep their identifiers and timestamps; a record whose id is
        already present is replaced. Nothing is written unless the whole
        bundle verifies and decrypts.

        A bundle written by another format version is restored best-effort:
        unknown fields are dropped and unreadable records are listed on
        ``RestoreResult.skipped``.

        Raises:
            IntegrityViolation: If the checksum does not match the ciphertext
            WrongPassphrase: If the passphrase does not decrypt the bundle
            ValueError: If the passphrase is empty
        """
        if not passphrase:
            raise ValueError("Backup passphrase cannot be empty")

        raw = self._decode_b64(bundle.ciphertext, "ciphertext")
        expected = hashlib.sha256(raw).hexdigest().encode("ascii")
        if not hmac.compare_digest(expected, bundle.checksum.lower().encode("utf-8")):
            raise IntegrityViolation("Backup checksum mismatch: the bundle is corrupt")

        salt = self._decode_b64(bundle.salt, "salt")
        if len(raw) <= NONCE_BYTES:
            raise IntegrityViolation("Backup ciphertext is truncated")

        key = self.key_vault.derive_passphrase_key(passphrase, salt)
        try:
            plaintext = AESGCM(key).decrypt(
                raw[:NONCE_BYTES], raw[NONCE_BYTES:], _BACKUP_AAD
            )
        except InvalidTag as e:
            raise WrongPassphrase() from e

        data = self._parse_payload(plaintext)

        version_warning = None
        found = str(data.get("version"))
        if found != BACKUP_VERSION:
            version_warning = VersionMismatch(found, BACKUP_VERSION)
            logger.warning(str(version_warning))

        skipped: list[str] = []
        if version_warning is None:
            try:
                snapshot = LedgerSnapshot.model_validate(
                    {name: data.get(name) or [] for name in _COLLECTIONS}
                )
            except ValidationError as e:
                raise IntegrityViolation(f"Backup contains invalid records: {e}") from e
        else:
            snapshot = self._lenient_snapshot(data, skipped)

        counts = self.store.restore_records(snapshot)
        logger.info(f"Restored backup from {bundle.platform}: {counts}")
        return RestoreResult(
            counts=counts, version_warning=version_warning, skipped=skipped
        )

    def save_backup(self, bundle: EncryptedBackup, directory: Path | str) -> Path:
        """Write a bundle to ``directory`` for syncing elsewhere."""
        return save_backup(bundle, directory)

    def load_latest_backup(self, directory: Path | str) -> EncryptedBackup | None:
        """Newest bundle previously saved to ``directory``."""
        return load_latest_backup(directory)

    async def create_backup_async(self, passphrase: str) -> EncryptedBackup:
        """``create_backup`` on a worker thread."""
        return await asyncio.to_thread(self.create_backup, passphrase)

    async def restore_backup_async(
        self, bundle: EncryptedBackup, passphrase: str
    ) -> RestoreResult:
        """``restore_backup`` on a worker thread."""
        return await asyncio.to_thread(self.restore_backup, bundle, passphrase)

    @staticmethod
    def _lenient_snapshot(data: dict[str, Any], skipped: list[str]) -> LedgerSnapshot:
        """Read what a different-version payload allows.

        Fields this version does not know are dropped; records that still
        fail validation are left out and described in ``skipped``.
        """
        collections: dict[str, list[LedgerRecord]] = {}
        for name, model in _COLLECTIONS.items():
            items = data.get(name) or []
            if not isinstance(items, list):
                skipped.append(f"{name}: expected a list")
                items = []

            records: list[LedgerRecord] = []
            for index, item in enumerate(items):
                if not isinstance(item, dict):
                    skipped.append(f"{name}[{index}]: expected an object")
                    continue
                known = {k: v for k, v in item.items() if k in model.model_fields}
                try:
                    records.append(model.model_validate(known))
                except ValidationError as e:
                    skipped.append(f"{name}[{index}]: {e.error_count()} invalid fields")
            collections[name] = records

        if skipped:
            logger.warning(f"Skipped {len(skipped)} unreadable backup records")
        return LedgerSnapshot(**collections)

    @staticmethod
    def _decode_b64(value: str, name: str) -> bytes:
        try:
            return base64.b64decode(value, validate=True)
        except (binascii.Error, ValueError) as e:
            raise IntegrityViolation(f"Backup {name} is not valid base64") from e

    @staticmethod
    def _parse_payload(plaintext: bytes) -> dict[str, Any]:
        try:
            data = json.loads(plaintext.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            raise IntegrityViolation("Backup payload is not valid JSON") from e
        if not isinstance(data, dict):
            raise IntegrityViolation("Backup payload has an unexpected shape")
        return data
