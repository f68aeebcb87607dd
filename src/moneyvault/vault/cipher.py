"""Record-level encryption for the ledger store.

Each stored record is an AES-256-GCM payload keyed by the master key. The
record id and table are bound in as associated data, so a payload copied onto
another row fails authentication. Equality lookups (category, account,
category name) use HMAC-SHA256 blind-index digests instead of clear text.
"""

import hashlib
import hmac
import os

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from ..errors import KeyUnavailable

NONCE_BYTES = 12

# Fixed plaintext whose digest proves which master key encrypted a database
_KEY_CHECK_LABEL = b"moneyvault:key-check:v1"


class RecordCipher:
    """Encrypts record payloads and computes blind indexes with the master key."""

    def __init__(self, master_key: bytes):
        if len(master_key) != 32:
            raise KeyUnavailable("Master key must be 256 bits")
        # One subkey per purpose
        self._aead = AESGCM(self._subkey(master_key, b"encrypt"))
        self._index_key = self._subkey(master_key, b"index")
        self._check_key = self._subkey(master_key, b"check")

    @staticmethod
    def _subkey(master_key: bytes, purpose: bytes) -> bytes:
        return hmac.new(master_key, b"moneyvault:" + purpose, hashlib.sha256).digest()

    def encrypt(self, table: str, record_id: str, plaintext: bytes) -> bytes:
        """Encrypt a payload; returns ``nonce || ciphertext+tag``."""
        nonce = os.urandom(NONCE_BYTES)
        aad = f"{table}:{record_id}".encode()
        return nonce + self._aead.encrypt(nonce, plaintext, aad)

    def decrypt(self, table: str, record_id: str, payload: bytes) -> bytes:
        """Decrypt a payload produced by :meth:`encrypt`.

        Raises:
            KeyUnavailable: If the payload was not encrypted with this key
        """
        nonce, ciphertext = payload[:NONCE_BYTES], payload[NONCE_BYTES:]
        aad = f"{table}:{record_id}".encode()
        try:
            return self._aead.decrypt(nonce, ciphertext, aad)
        except InvalidTag as e:
            raise KeyUnavailable(
                f"Cannot decrypt {table} record {record_id} with the current master key"
            ) from e

    def blind_index(self, field: str, value: str) -> str:
        """Keyed digest of ``value`` for equality lookups."""
        message = f"{field}\x00{value}".encode()
        return hmac.new(self._index_key, message, hashlib.sha256).hexdigest()

    def key_check(self) -> str:
        """Digest identifying the master key without revealing it."""
        return hmac.new(self._check_key, _KEY_CHECK_LABEL, hashlib.sha256).hexdigest()
