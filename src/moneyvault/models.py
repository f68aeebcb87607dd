"""Ledger record models.

Every entity is a pydantic model with exact ``Decimal`` money fields. Models
validate their own invariants on construction and on ``model_validate`` of a
patched record, so the store never persists an invalid row.
"""

from datetime import datetime
from decimal import Decimal
from enum import StrEnum
from typing import Any, ClassVar

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .dates import to_local_naive


class AccountType(StrEnum):
    CHECKING = "checking"
    SAVINGS = "savings"
    CREDIT = "credit"
    INVESTMENT = "investment"
    CASH = "cash"


class BudgetPeriod(StrEnum):
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    YEARLY = "yearly"
    # Uses the budget's own start/end dates instead of a calendar window
    CUSTOM = "custom"


class CategoryType(StrEnum):
    INCOME = "income"
    EXPENSE = "expense"


class LedgerRecord(BaseModel):
    """Base class for persisted ledger entities."""

    model_config = ConfigDict(
        validate_assignment=True,
        extra="forbid",
        use_enum_values=False,
    )

    # Table name and the human-readable kind used in errors and logs
    kind: ClassVar[str] = "record"

    id: str | None = Field(default=None, description="Store-assigned identifier")

    def identity_seed(self) -> str:
        """Content used, together with time and randomness, to derive the id."""
        return self.kind


class Transaction(LedgerRecord):
    """A single income (positive) or expense (negative) movement."""

    kind: ClassVar[str] = "transaction"

    amount: Decimal = Field(..., allow_inf_nan=False)
    description: str
    category: str
    occurred_at: datetime
    account_id: str
    merchant: str | None = None
    notes: str | None = None
    receipt_path: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @field_validator("amount")
    @classmethod
    def validate_amount(cls, v: Decimal) -> Decimal:
        """Reject zero amounts; a transaction must move money."""
        if v == 0:
            raise ValueError("Amount cannot be zero")
        return v

    @field_validator("description")
    @classmethod
    def validate_description(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Description is required")
        return v

    @field_validator("occurred_at", "created_at", "updated_at")
    @classmethod
    def normalize_timestamp(cls, v: datetime | None) -> datetime | None:
        return to_local_naive(v) if v is not None else None

    @property
    def is_expense(self) -> bool:
        return self.amount < 0

    @property
    def is_income(self) -> bool:
        return self.amount > 0

    def identity_seed(self) -> str:
        return f"{self.occurred_at.isoformat()}-{self.amount}-{self.description}"


class Account(LedgerRecord):
    """A manual or bank-linked account."""

    kind: ClassVar[str] = "account"

    name: str
    type: AccountType
    balance: Decimal = Field(default=Decimal("0"), allow_inf_nan=False)
    currency: str = Field(default="EUR", description="ISO 4217 currency code")
    bank_connection_id: str | None = None
    last_sync: datetime | None = None
    is_manual: bool = True
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @field_validator("currency")
    @classmethod
    def validate_currency(cls, v: str) -> str:
        """Require a three-letter ISO currency code."""
        code = v.strip().upper()
        if len(code) != 3 or not code.isalpha():
            raise ValueError(f"Invalid ISO currency code: {v!r}")
        return code

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Account name is required")
        return v

    @field_validator("last_sync", "created_at", "updated_at")
    @classmethod
    def normalize_timestamp(cls, v: datetime | None) -> datetime | None:
        return to_local_naive(v) if v is not None else None

    def identity_seed(self) -> str:
        return f"{self.name}"


class Budget(LedgerRecord):
    """A spending limit for one category over a recurring period.

    ``spent`` is a cached, derived value. It is recomputed from transactions on
    every status query and never trusted as authoritative.
    """

    kind: ClassVar[str] = "budget"

    category: str
    limit: Decimal = Field(..., allow_inf_nan=False)
    period: BudgetPeriod
    start_date: datetime
    end_date: datetime | None = None
    spent: Decimal = Field(default=Decimal("0"), allow_inf_nan=False)
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @field_validator("limit")
    @classmethod
    def validate_limit(cls, v: Decimal) -> Decimal:
        if v <= 0:
            raise ValueError("Budget limit must be greater than zero")
        return v

    @field_validator("category")
    @classmethod
    def validate_category(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Category is required")
        return v

    @field_validator("start_date", "end_date", "created_at", "updated_at")
    @classmethod
    def normalize_timestamp(cls, v: datetime | None) -> datetime | None:
        return to_local_naive(v) if v is not None else None

    def identity_seed(self) -> str:
        return f"{self.category}"


class Category(LedgerRecord):
    kind: ClassVar[str] = "category"

    name: str
    icon: str | None = None
    color: str | None = None
    type: CategoryType

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Category name is required")
        return v

    def identity_seed(self) -> str:
        return f"{self.name}"


class LedgerSnapshot(BaseModel):
    """All four record collections, as exported by backups."""

    transactions: list[Transaction] = Field(default_factory=list)
    accounts: list[Account] = Field(default_factory=list)
    budgets: list[Budget] = Field(default_factory=list)
    categories: list[Category] = Field(default_factory=list)

    def counts(self) -> dict[str, int]:
        return {
            "transactions": len(self.transactions),
            "accounts": len(self.accounts),
            "budgets": len(self.budgets),
            "categories": len(self.categories),
        }

    def is_empty(self) -> bool:
        return not any(self.counts().values())


class EncryptedBackup(BaseModel):
    """Self-contained encrypted backup bundle.

    Only the holder of the passphrase can decrypt ``ciphertext``; the bundle is
    safe to hand to any storage medium or server.
    """

    model_config = ConfigDict(frozen=True)

    ciphertext: str = Field(..., description="Base64 nonce + AES-GCM ciphertext")
    salt: str = Field(..., description="Base64 PBKDF2 salt")
    checksum: str = Field(..., description="Hex SHA-256 over the raw ciphertext")
    timestamp: int = Field(..., description="Creation time in epoch milliseconds")
    platform: str = Field(..., description="Origin platform tag")

    def to_json(self) -> str:
        return self.model_dump_json()

    @classmethod
    def from_json(cls, data: str | bytes) -> "EncryptedBackup":
        return cls.model_validate_json(data)


RECORD_TYPES: dict[str, type[LedgerRecord]] = {
    "transaction": Transaction,
    "account": Account,
    "budget": Budget,
    "category": Category,
}


def record_type(kind: str | type[LedgerRecord]) -> type[LedgerRecord]:
    """Resolve a kind name (or model class) to its model class.

    Raises:
        ValueError: If the kind is unknown
    """
    if isinstance(kind, type) and issubclass(kind, LedgerRecord):
        return kind
    try:
        return RECORD_TYPES[str(kind)]
    except KeyError as e:
        raise ValueError(
            f"Unknown record kind: {kind}. "
            f"Must be one of: {', '.join(sorted(RECORD_TYPES))}"
        ) from e


def merge_patch(record: LedgerRecord, patch: dict[str, Any]) -> LedgerRecord:
    """Apply a partial update and re-validate the whole record.

    Raises:
        ValueError: If the patch touches immutable fields or unknown fields
        pydantic.ValidationError: If the merged record is invalid
    """
    immutable = {"id", "created_at"} & patch.keys()
    if immutable:
        raise ValueError(f"Fields cannot be updated: {', '.join(sorted(immutable))}")

    merged = record.model_dump()
    merged.update(patch)
    return type(record).model_validate(merged)
