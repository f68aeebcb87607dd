"""Error taxonomy for the MoneyVault ledger.

Storage and crypto failures are raised to the caller as typed exceptions,
with the underlying library error chained. Row-level import problems are
collected as ``ValidationFailed`` values inside an import report instead of
being raised.
"""

from dataclasses import dataclass


class LedgerError(Exception):
    """Base class for all MoneyVault errors."""


class KeyUnavailable(LedgerError):
    """The master key cannot be read from, or written to, the secret store."""


class StoreUninitialized(LedgerError):
    """An operation was attempted before ``LedgerStore.initialize()``."""


class NotFound(LedgerError):
    """No record exists with the requested identifier."""

    def __init__(self, kind: str, record_id: str):
        super().__init__(f"No {kind} found with id {record_id}")
        self.kind = kind
        self.record_id = record_id


class DuplicateEntity(LedgerError):
    """A record violates a uniqueness constraint (e.g. category name)."""


class IOFailure(LedgerError):
    """The underlying storage medium failed. Callers may retry."""


class IntegrityViolation(LedgerError):
    """Backup checksum mismatch. The bundle is corrupt and is not decrypted."""


class WrongPassphrase(LedgerError):
    """Backup decryption or authentication failed."""

    def __init__(self, message: str = "Unable to decrypt backup with this passphrase"):
        super().__init__(message)


class VersionMismatch(LedgerError):
    """Backup payload format version differs from the supported one.

    Non-fatal: restore proceeds best-effort and the mismatch is reported on
    the restore result.
    """

    def __init__(self, found: str, expected: str):
        super().__init__(
            f"Backup format version {found!r} differs from supported {expected!r}"
        )
        self.found = found
        self.expected = expected


class InvalidAmount(LedgerError, ValueError):
    """A monetary value is missing, non-numeric or non-finite."""


@dataclass(frozen=True)
class ValidationFailed:
    """A single rejected import row."""

    row: int
    message: str

    def __str__(self) -> str:
        return f"Row {self.row}: {self.message}"
