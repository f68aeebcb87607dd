"""Encrypted ledger storage on DuckDB.

``LedgerStore`` is an explicitly constructed handle: callers create it with a
database path and a ``KeyVault``, call ``initialize()`` once, and ``close()``
when done. There is no module-level connection.

Record payloads are AES-GCM encrypted with the master key; only the columns
the indexes need are kept outside the payload (the transaction timestamp in
clear, category/account/name values as keyed blind-index digests).
"""

import hashlib
import logging
import secrets
import threading
import time
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime
from decimal import Decimal
from pathlib import Path
from typing import Any, NamedTuple

import duckdb

from ..dates import now_local, to_local_naive
from ..errors import (
    DuplicateEntity,
    IOFailure,
    KeyUnavailable,
    NotFound,
    StoreUninitialized,
)
from ..models import (
    Account,
    Budget,
    Category,
    CategoryType,
    LedgerRecord,
    LedgerSnapshot,
    Transaction,
    merge_patch,
    record_type,
)
from ..money import ZERO
from ..vault import KeyVault, RecordCipher

logger = logging.getLogger(__name__)

SCHEMA_VERSION = "1"

_SQL_DIR = Path(__file__).resolve().parent.parent / "sql" / "schema"
_SCHEMA_FILES = [
    "ledger_schema.sql",
    "ledger_metadata.sql",
    "ledger_transactions.sql",
    "ledger_accounts.sql",
    "ledger_budgets.sql",
    "ledger_categories.sql",
]


class TableRef(NamedTuple):
    """Reference to a ledger table with schema and name."""

    schema: str
    name: str

    @property
    def full_name(self) -> str:
        """Schema-qualified table name for use in SQL queries."""
        return f"{self.schema}.{self.name}"


TRANSACTIONS = TableRef("ledger", "transactions")
ACCOUNTS = TableRef("ledger", "accounts")
BUDGETS = TableRef("ledger", "budgets")
CATEGORIES = TableRef("ledger", "categories")
METADATA = TableRef("ledger", "metadata")

_TABLES: dict[str, TableRef] = {
    Transaction.kind: TRANSACTIONS,
    Account.kind: ACCOUNTS,
    Budget.kind: BUDGETS,
    Category.kind: CATEGORIES,
}

_TRANSACTION_ORDER = "ORDER BY occurred_at DESC, created_at DESC, id DESC"

DEFAULT_CATEGORIES: list[dict[str, str]] = [
    {"name": "Food", "icon": "🍔", "color": "#FF6B6B", "type": "expense"},
    {"name": "Transport", "icon": "🚗", "color": "#4ECDC4", "type": "expense"},
    {"name": "Shopping", "icon": "🛍️", "color": "#FFD93D", "type": "expense"},
    {"name": "Bills", "icon": "💳", "color": "#6C5CE7", "type": "expense"},
    {"name": "Entertainment", "icon": "🎬", "color": "#FF8787", "type": "expense"},
    {"name": "Health", "icon": "🏥", "color": "#A8E6CF", "type": "expense"},
    {"name": "Education", "icon": "📚", "color": "#95E1D3", "type": "expense"},
    {"name": "Salary", "icon": "💰", "color": "#4CAF50", "type": "income"},
    {"name": "Investment", "icon": "📈", "color": "#00BCD4", "type": "income"},
    {"name": "Other", "icon": "📌", "color": "#95A5A6", "type": "expense"},
]


class LedgerStore:
    """Durable, encrypted, queryable persistence for ledger records.

    All mutations are serialized through a per-instance writer lock. Reads run
    on their own DuckDB cursor and may proceed concurrently.

    Args:
        database_path: Path to the DuckDB ledger file
        key_vault: Source of the master key
    """

    def __init__(self, database_path: Path | str, key_vault: KeyVault):
        self.database_path = Path(database_path)
        self.key_vault = key_vault
        self._conn: duckdb.DuckDBPyConnection | None = None
        self._cipher: RecordCipher | None = None
        self._initialized = False
        self._key_erased = False
        self._write_lock = threading.RLock()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def initialize(self) -> None:
        """Open the ledger and ensure its schema. Idempotent.

        Raises:
            KeyUnavailable: If the master key cannot be obtained, or the
                ledger was encrypted with a different key
            IOFailure: If the database file cannot be opened
        """
        with self._write_lock:
            if self._initialized and not self._key_erased:
                return

            cipher = RecordCipher(self.key_vault.get_or_create_master_key())

            opened_here = self._conn is None
            if opened_here:
                self._open()

            try:
                self._verify_key(cipher)
            except Exception:
                if opened_here:
                    self._close_connection()
                raise

            self._cipher = cipher
            self._initialized = True
            self._key_erased = False
            logger.info(f"Ledger initialized at {self.database_path}")

    def close(self) -> None:
        """Close the database and drop the in-memory key."""
        with self._write_lock:
            self._close_connection()
            self._cipher = None
            self._initialized = False
            self._key_erased = False

    def __enter__(self) -> "LedgerStore":
        self.initialize()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    @property
    def is_initialized(self) -> bool:
        return self._initialized and not self._key_erased

    def _open(self) -> None:
        try:
            self.database_path.parent.mkdir(parents=True, exist_ok=True)
            conn = duckdb.connect(str(self.database_path))
        except (OSError, duckdb.Error) as e:
            raise IOFailure(f"Unable to open ledger {self.database_path}: {e}") from e

        try:
            for sql_file in _SCHEMA_FILES:
                conn.execute((_SQL_DIR / sql_file).read_text())
                logger.debug(f"Executed schema file: {sql_file}")
        except (OSError, duckdb.Error) as e:
            conn.close()
            raise IOFailure(f"Unable to create ledger schema: {e}") from e

        self._conn = conn

    def _close_connection(self) -> None:
        if self._conn is not None:
            self._conn.close()
            self._conn = None
            logger.debug("Ledger connection closed")

    def _verify_key(self, cipher: RecordCipher) -> None:
        """Check the stored key digest, recording it for a fresh ledger."""
        conn = self._connection()
        with self._storage_errors("Reading ledger metadata"):
            row = conn.execute(
                f"SELECT value FROM {METADATA.full_name} WHERE key = 'key_check'"  # noqa: S608
            ).fetchone()

            if row is None:
                conn.execute(
                    f"INSERT INTO {METADATA.full_name} VALUES "  # noqa: S608
                    "('key_check', ?), ('schema_version', ?)",
                    [cipher.key_check(), SCHEMA_VERSION],
                )
                return

        if row[0] != cipher.key_check():
            raise KeyUnavailable(
                "Ledger was encrypted with a different master key and cannot be read"
            )

    def _connection(self) -> duckdb.DuckDBPyConnection:
        if self._conn is None:
            raise StoreUninitialized(
                "Ledger store not initialized. Call initialize() first."
            )
        return self._conn

    def _require_cipher(self) -> RecordCipher:
        if self._key_erased:
            raise KeyUnavailable(
                "Master key was erased; re-initialize the ledger to continue"
            )
        if not self._initialized or self._cipher is None:
            raise StoreUninitialized(
                "Ledger store not initialized. Call initialize() first."
            )
        return self._cipher

    # ------------------------------------------------------------------
    # Plumbing
    # ------------------------------------------------------------------

    @contextmanager
    def _storage_errors(self, action: str) -> Iterator[None]:
        """Translate DuckDB failures into ledger errors."""
        try:
            yield
        except duckdb.ConstraintException as e:
            raise DuplicateEntity(f"{action} failed: {e}") from e
        except duckdb.Error as e:
            raise IOFailure(f"{action} failed: {e}") from e

    @contextmanager
    def _transaction(self, action: str) -> Iterator[duckdb.DuckDBPyConnection]:
        """Run writes atomically; everything is rolled back on any failure."""
        conn = self._connection()
        with self._storage_errors(action):
            conn.begin()
            try:
                yield conn
            except BaseException:
                conn.rollback()
                raise
            conn.commit()

    @contextmanager
    def _reader(self) -> Iterator[duckdb.DuckDBPyConnection]:
        cursor = self._connection().cursor()
        try:
            with self._storage_errors("Reading ledger"):
                yield cursor
        finally:
            cursor.close()

    @staticmethod
    def _new_id(record: LedgerRecord) -> str:
        """Content- and time-derived identifier with a random component."""
        seed = f"{time.time_ns()}-{record.identity_seed()}-{secrets.token_hex(16)}"
        return hashlib.sha256(seed.encode("utf-8")).hexdigest()

    @staticmethod
    def _table(kind: str | type[LedgerRecord]) -> tuple[type[LedgerRecord], TableRef]:
        model = record_type(kind)
        return model, _TABLES[model.kind]

    def _index_columns(
        self, cipher: RecordCipher, record: LedgerRecord
    ) -> dict[str, Any]:
        if isinstance(record, Transaction):
            return {
                "occurred_at": record.occurred_at,
                "category_digest": cipher.blind_index("category", record.category),
                "account_digest": cipher.blind_index("account", record.account_id),
            }
        if isinstance(record, Budget):
            return {"category_digest": cipher.blind_index("category", record.category)}
        if isinstance(record, Category):
            return {"name_digest": cipher.blind_index("category_name", record.name)}
        return {}

    def _write_row(
        self,
        conn: duckdb.DuckDBPyConnection,
        cipher: RecordCipher,
        table: TableRef,
        record: LedgerRecord,
        created_at: datetime,
        updated_at: datetime,
    ) -> None:
        if record.id is None:
            raise ValueError(f"Cannot write {record.kind} without an id")
        payload = cipher.encrypt(
            table.name, record.id, record.model_dump_json().encode("utf-8")
        )
        columns = {
            "id": record.id,
            **self._index_columns(cipher, record),
            "payload": payload,
            "created_at": created_at,
            "updated_at": updated_at,
        }
        placeholders = ", ".join("?" for _ in columns)
        conn.execute(
            f"INSERT INTO {table.full_name} ({', '.join(columns)}) "  # noqa: S608
            f"VALUES ({placeholders})",
            list(columns.values()),
        )

    def _decode_rows(
        self,
        cipher: RecordCipher,
        model: type[LedgerRecord],
        table: TableRef,
        rows: list[tuple[Any, ...]],
    ) -> list[Any]:
        return [
            model.model_validate_json(cipher.decrypt(table.name, row_id, bytes(payload)))
            for row_id, payload in rows
        ]

    def _select(
        self,
        kind: str | type[LedgerRecord],
        where: str = "",
        params: list[Any] | None = None,
        order_by: str = "",
    ) -> list[Any]:
        cipher = self._require_cipher()
        model, table = self._table(kind)
        sql = f"SELECT id, payload FROM {table.full_name} {where} {order_by}"  # noqa: S608
        with self._reader() as cursor:
            rows = cursor.execute(sql, params or []).fetchall()
        return self._decode_rows(cipher, model, table, rows)

    def _stamp(
        self, record: LedgerRecord, record_id: str, created: datetime, updated: datetime
    ) -> LedgerRecord:
        update: dict[str, Any] = {"id": record_id}
        if "created_at" in type(record).model_fields:
            update["created_at"] = created
        if "updated_at" in type(record).model_fields:
            update["updated_at"] = updated
        return record.model_copy(update=update)

    def _category_name_taken(
        self,
        conn: duckdb.DuckDBPyConnection,
        cipher: RecordCipher,
        name: str,
        exclude_id: str | None = None,
    ) -> bool:
        row = conn.execute(
            f"SELECT id FROM {CATEGORIES.full_name} WHERE name_digest = ?",  # noqa: S608
            [cipher.blind_index("category_name", name)],
        ).fetchone()
        return row is not None and row[0] != exclude_id

    # ------------------------------------------------------------------
    # CRUD
    # ------------------------------------------------------------------

    def insert(self, entity: LedgerRecord) -> str:
        """Insert a new record and return its store-assigned identifier.

        Any ``id`` or timestamps already on ``entity`` are replaced.

        Raises:
            DuplicateEntity: If a category with the same name exists
        """
        with self._write_lock:
            _, table = self._table(type(entity))
            cipher = self._require_cipher()
            record_id = self._new_id(entity)
            now = now_local()
            record = self._stamp(entity, record_id, now, now)
            with self._transaction(f"Inserting {entity.kind}") as conn:
                if isinstance(record, Category) and self._category_name_taken(
                    conn, cipher, record.name
                ):
                    raise DuplicateEntity(f"Category already exists: {record.name}")
                self._write_row(conn, cipher, table, record, now, now)

        logger.debug(f"Inserted {entity.kind} {record_id}")
        return record_id

    def get(self, kind: str | type[LedgerRecord], record_id: str) -> Any:
        """Fetch one record by identifier.

        Raises:
            NotFound: If the identifier does not exist
        """
        model, _ = self._table(kind)
        records = self._select(kind, "WHERE id = ?", [record_id])
        if not records:
            raise NotFound(model.kind, record_id)
        return records[0]

    def get_all(self, kind: str | type[LedgerRecord]) -> list[Any]:
        """Return every record of a kind.

        Transactions come back newest first; budgets by descending start date;
        accounts and categories by name.
        """
        model, _ = self._table(kind)
        if model is Transaction:
            return self._select(model, order_by=_TRANSACTION_ORDER)

        records = self._select(model, order_by="ORDER BY id")
        if model is Budget:
            records.sort(key=lambda b: b.start_date, reverse=True)
        elif model in (Account, Category):
            records.sort(key=lambda r: r.name.casefold())
        return records

    def get_by_date_range(self, start: datetime, end: datetime) -> list[Transaction]:
        """Transactions with ``start <= occurred_at <= end``, newest first."""
        return self._select(
            Transaction,
            "WHERE occurred_at >= ? AND occurred_at <= ?",
            [to_local_naive(start), to_local_naive(end)],
            _TRANSACTION_ORDER,
        )

    def get_by_category(self, category: str) -> list[Transaction]:
        """Transactions in a category, newest first."""
        cipher = self._require_cipher()
        return self._select(
            Transaction,
            "WHERE category_digest = ?",
            [cipher.blind_index("category", category)],
            _TRANSACTION_ORDER,
        )

    def get_by_account(self, account_id: str) -> list[Transaction]:
        """Transactions belonging to an account, newest first."""
        cipher = self._require_cipher()
        return self._select(
            Transaction,
            "WHERE account_digest = ?",
            [cipher.blind_index("account", account_id)],
            _TRANSACTION_ORDER,
        )

    def count(self, kind: str | type[LedgerRecord]) -> int:
        self._require_cipher()
        _, table = self._table(kind)
        with self._reader() as cursor:
            row = cursor.execute(f"SELECT COUNT(*) FROM {table.full_name}").fetchone()  # noqa: S608
        return int(row[0]) if row else 0

    def update(
        self, kind: str | type[LedgerRecord], record_id: str, patch: dict[str, Any]
    ) -> Any:
        """Apply a partial update to an existing record.

        Returns:
            The updated record

        Raises:
            NotFound: If the identifier does not exist
            ValueError: If the patch is invalid or touches immutable fields
            DuplicateEntity: If a category is renamed onto an existing name
        """
        with self._write_lock:
            model, table = self._table(kind)
            cipher = self._require_cipher()
            current = self.get(model, record_id)
            now = now_local()
            updated = merge_patch(current, patch)
            if "updated_at" in model.model_fields:
                updated = updated.model_copy(update={"updated_at": now})

            with self._transaction(f"Updating {model.kind}") as conn:
                row = conn.execute(
                    f"SELECT created_at FROM {table.full_name} WHERE id = ?",  # noqa: S608
                    [record_id],
                ).fetchone()
                if row is None:
                    raise NotFound(model.kind, record_id)
                if isinstance(updated, Category) and self._category_name_taken(
                    conn, cipher, updated.name, exclude_id=record_id
                ):
                    raise DuplicateEntity(f"Category already exists: {updated.name}")

                conn.execute(
                    f"DELETE FROM {table.full_name} WHERE id = ?",  # noqa: S608
                    [record_id],
                )
                self._write_row(conn, cipher, table, updated, row[0], now)

        logger.debug(f"Updated {model.kind} {record_id}")
        return updated

    def delete(self, kind: str | type[LedgerRecord], record_id: str) -> None:
        """Delete one record.

        Raises:
            NotFound: If the identifier does not exist
        """
        with self._write_lock:
            model, table = self._table(kind)
            self._require_cipher()
            with self._transaction(f"Deleting {model.kind}") as conn:
                row = conn.execute(
                    f"SELECT id FROM {table.full_name} WHERE id = ?",  # noqa: S608
                    [record_id],
                ).fetchone()
                if row is None:
                    raise NotFound(model.kind, record_id)
                conn.execute(
                    f"DELETE FROM {table.full_name} WHERE id = ?",  # noqa: S608
                    [record_id],
                )

        logger.debug(f"Deleted {model.kind} {record_id}")

    def erase_all(self) -> None:
        """Delete every record and destroy the master key.

        After this call the ledger cannot be read until ``initialize()`` is
        called again, which creates a new key. Safe to call repeatedly.

        Raises:
            StoreUninitialized: If the store was never opened
            KeyUnavailable: If the secret store cannot be reached
        """
        with self._write_lock:
            with self._transaction("Erasing ledger") as conn:
                for table in (*_TABLES.values(), METADATA):
                    conn.execute(f"DELETE FROM {table.full_name}")  # noqa: S608

            self.key_vault.erase_master_key()
            self._cipher = None
            self._key_erased = True

        logger.warning("All ledger data and the master key were erased")

    # ------------------------------------------------------------------
    # Bulk operations
    # ------------------------------------------------------------------

    def snapshot(self) -> LedgerSnapshot:
        """All records of every kind."""
        return LedgerSnapshot(
            transactions=self.get_all(Transaction),
            accounts=self.get_all(Account),
            budgets=self.get_all(Budget),
            categories=self.get_all(Category),
        )

    def restore_records(self, snapshot: LedgerSnapshot) -> dict[str, int]:
        """Write every record of a snapshot in one transaction.

        Identifiers and timestamps are preserved so account references stay
        valid. A record whose id already exists (or a category with the same
        name) is replaced. Either every record lands or none does.

        Returns:
            dict: Number of records written per kind
        """
        return self._write_snapshot(snapshot, clear_first=False)

    def replace_all(self, snapshot: LedgerSnapshot) -> dict[str, int]:
        """Make the ledger contain exactly the records of ``snapshot``.

        Existing records are deleted in the same transaction that writes the
        snapshot, so a failure leaves the previous contents in place.

        Returns:
            dict: Number of records written per kind
        """
        return self._write_snapshot(snapshot, clear_first=True)

    def _write_snapshot(
        self, snapshot: LedgerSnapshot, clear_first: bool
    ) -> dict[str, int]:
        groups: list[tuple[TableRef, list[LedgerRecord]]] = [
            (ACCOUNTS, list(snapshot.accounts)),
            (CATEGORIES, list(snapshot.categories)),
            (BUDGETS, list(snapshot.budgets)),
            (TRANSACTIONS, list(snapshot.transactions)),
        ]

        with self._write_lock:
            cipher = self._require_cipher()
            self._write_groups(cipher, groups, clear_first)

        counts = snapshot.counts()
        logger.info(f"Restored records: {counts}")
        return counts

    def _write_groups(
        self,
        cipher: RecordCipher,
        groups: list[tuple[TableRef, list[LedgerRecord]]],
        clear_first: bool,
    ) -> None:
        with self._transaction("Restoring records") as conn:
            if clear_first:
                for table in _TABLES.values():
                    conn.execute(f"DELETE FROM {table.full_name}")  # noqa: S608

            now = now_local()
            for table, records in groups:
                for record in records:
                    created = getattr(record, "created_at", None) or now
                    updated = getattr(record, "updated_at", None) or now
                    record = self._stamp(
                        record, record.id or self._new_id(record), created, updated
                    )
                    conn.execute(
                        f"DELETE FROM {table.full_name} WHERE id = ?",  # noqa: S608
                        [record.id],
                    )
                    if isinstance(record, Category):
                        conn.execute(
                            f"DELETE FROM {CATEGORIES.full_name} "  # noqa: S608
                            "WHERE name_digest = ?",
                            [cipher.blind_index("category_name", record.name)],
                        )
                    self._write_row(conn, cipher, table, record, created, updated)

    # ------------------------------------------------------------------
    # Budget and category helpers
    # ------------------------------------------------------------------

    def get_active_budgets(self, now: datetime | None = None) -> list[Budget]:
        """Budgets whose [start_date, end_date] range contains ``now``."""
        now = to_local_naive(now) if now is not None else now_local()
        return [
            budget
            for budget in self.get_all(Budget)
            if budget.start_date <= now
            and (budget.end_date is None or budget.end_date >= now)
        ]

    def get_budget_by_category(self, category: str) -> Budget | None:
        """The most recently started budget for a category, if any."""
        cipher = self._require_cipher()
        budgets: list[Budget] = self._select(
            Budget,
            "WHERE category_digest = ?",
            [cipher.blind_index("category", category)],
        )
        if not budgets:
            return None
        return max(budgets, key=lambda b: b.start_date)

    def get_spending_by_category(
        self, category: str, start: datetime, end: datetime
    ) -> Decimal:
        """Absolute sum of expenses in a category between two instants."""
        cipher = self._require_cipher()
        transactions: list[Transaction] = self._select(
            Transaction,
            "WHERE category_digest = ? AND occurred_at >= ? AND occurred_at <= ?",
            [
                cipher.blind_index("category", category),
                to_local_naive(start),
                to_local_naive(end),
            ],
        )
        return sum((-t.amount for t in transactions if t.amount < 0), ZERO)

    def update_budget_spent(self, budget_id: str, spent: Decimal) -> Budget:
        """Refresh a budget's cached spent value."""
        return self.update(Budget, budget_id, {"spent": spent})

    def initialize_default_categories(self) -> int:
        """Insert the default category set, skipping names that exist.

        Returns:
            int: Number of categories inserted
        """
        existing = {c.name for c in self.get_all(Category)}
        inserted = 0
        for entry in DEFAULT_CATEGORIES:
            if entry["name"] in existing:
                continue
            self.insert(
                Category(
                    name=entry["name"],
                    icon=entry["icon"],
                    color=entry["color"],
                    type=CategoryType(entry["type"]),
                )
            )
            inserted += 1

        logger.info(f"Initialized {inserted} default categories")
        return inserted
