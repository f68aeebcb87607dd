"""CSV import and export of transactions.

Every text field crossing the CSV boundary is sanitized against spreadsheet
formula injection: leading ``=``, ``+``, ``-``, ``@`` and whitespace are
stripped until none remain, control characters are dropped and the value is
truncated.

Import is lenient per row: a bad row is recorded as a ``ValidationFailed``
entry on the report and the rest of the file is still processed.
"""

import io
import logging
import re
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

import polars as pl
from polars.exceptions import ComputeError, DuplicateError, NoDataError
from pydantic import ValidationError

from ..dates import parse_date
from ..errors import ValidationFailed
from ..models import Transaction
from ..money import format_amount, parse_amount

if TYPE_CHECKING:
    from ..ledger import LedgerStore

logger = logging.getLogger(__name__)

MAX_FIELD_LENGTH = 500
CSV_HEADERS = ["Date", "Description", "Amount", "Category", "Merchant", "Notes"]

_FORMULA_TRIGGER = re.compile(r"^[=+\-@\s]+")
_CONTROL_CHARS = re.compile(r"[\x00-\x1f\x7f]")


@dataclass
class ImportReport:
    """Result of parsing a CSV file into transactions.

    ``success`` is true only when at least one row imported and none failed.
    """

    success: bool = False
    imported: int = 0
    failed: int = 0
    errors: list[ValidationFailed] = field(default_factory=list)
    transactions: list[Transaction] = field(default_factory=list)


def sanitize_field(value: str | None, max_length: int = MAX_FIELD_LENGTH) -> str:
    """Neutralize a text value for safe use in a spreadsheet.

    Examples:
        >>> sanitize_field("=SUM(A1:A2)")
        'SUM(A1:A2)'
        >>> sanitize_field("=-2+3")
        '2+3'
        >>> sanitize_field("  Coffee  ")
        'Coffee'
    """
    if not value:
        return ""

    sanitized = _CONTROL_CHARS.sub("", str(value).strip())
    sanitized = _FORMULA_TRIGGER.sub("", sanitized)
    return sanitized[:max_length]


def parse_delimited_text(content: str | bytes) -> list[dict[str, str]]:
    """Parse comma-separated text with a header row.

    Header names are trimmed and lower-cased. Blank rows are skipped. Every
    value is returned as a string (missing values as ``""``).

    Raises:
        ValueError: If the text is not parseable as CSV
    """
    if isinstance(content, bytes):
        content = content.decode("utf-8-sig")
    content = content.lstrip("\ufeff")
    if not content.strip():
        return []

    try:
        df = pl.read_csv(
            io.BytesIO(content.encode("utf-8")),
            infer_schema=False,
            truncate_ragged_lines=True,
        )
    except NoDataError:
        return []
    except ComputeError as e:
        raise ValueError(f"Failed to parse CSV file: {e}") from e

    try:
        df = df.rename({column: column.strip().lower() for column in df.columns})
    except DuplicateError as e:
        raise ValueError(f"Duplicate column in CSV header: {e}") from e

    rows = []
    for row in df.iter_rows(named=True):
        values = {key: (value or "") for key, value in row.items()}
        if any(value.strip() for value in values.values()):
            rows.append(values)
    return rows


def _parse_row(
    row: dict[str, str], account_id: str, max_length: int
) -> Transaction:
    """Validate one CSV row and build a transaction from it.

    Raises:
        ValueError: With a user-facing message if the row is invalid
    """
    date_text = sanitize_field(row.get("date"), max_length)
    description = sanitize_field(row.get("description"), max_length)
    category = sanitize_field(row.get("category"), max_length)
    # A leading "-" is the sign here, not a formula trigger
    amount_text = (row.get("amount") or "").strip()

    if not (date_text and description and amount_text and category):
        raise ValueError(
            "Missing required fields (date, description, amount, category)"
        )

    occurred_at = parse_date(date_text)
    if occurred_at is None:
        raise ValueError(f"Invalid date format: {date_text}")

    amount = parse_amount(amount_text)
    if amount is None:
        raise ValueError(f"Invalid amount: {sanitize_field(amount_text, max_length)}")

    if not 2 <= len(description) <= 200:
        raise ValueError("Description must be between 2 and 200 characters")
    if not 2 <= len(category) <= 50:
        raise ValueError("Category must be between 2 and 50 characters")

    try:
        return Transaction(
            amount=amount,
            description=description,
            category=category,
            occurred_at=occurred_at,
            account_id=account_id,
            merchant=sanitize_field(row.get("merchant"), max_length) or None,
            notes=sanitize_field(row.get("notes"), max_length) or None,
        )
    except ValidationError as e:
        messages = "; ".join(
            str(error["msg"]).removeprefix("Value error, ") for error in e.errors()
        )
        raise ValueError(messages) from e


def import_transactions(
    content: str | bytes, account_id: str, max_length: int = MAX_FIELD_LENGTH
) -> ImportReport:
    """Parse CSV content into unsaved transactions for ``account_id``.

    Expected columns (case-insensitive): date, description, amount, category,
    and optionally merchant and notes. Dates may be ``YYYY-MM-DD`` (optionally
    with a time), ``DD/MM/YYYY`` or ``DD-MM-YYYY``.

    Args:
        content: CSV text or UTF-8 bytes
        account_id: Account the transactions belong to
        max_length: Maximum length of any text field

    Returns:
        ImportReport: Parsed transactions plus per-row failures
    """
    report = ImportReport()
    try:
        rows = parse_delimited_text(content)
    except ValueError as e:
        report.errors.append(ValidationFailed(row=0, message=str(e)))
        logger.error(f"CSV import failed: {e}")
        return report

    for index, row in enumerate(rows, start=1):
        try:
            report.transactions.append(_parse_row(row, account_id, max_length))
            report.imported += 1
        except ValueError as e:
            report.failed += 1
            report.errors.append(ValidationFailed(row=index, message=str(e)))

    report.success = report.imported > 0 and report.failed == 0
    logger.info(f"Parsed CSV: {report.imported} valid rows, {report.failed} failed")
    return report


def import_into_store(
    store: "LedgerStore",
    content: str | bytes,
    account_id: str,
    max_length: int = MAX_FIELD_LENGTH,
) -> ImportReport:
    """Parse CSV content and insert every valid row into ``store``.

    Returns:
        ImportReport: The transactions on the report carry their new ids
    """
    report = import_transactions(content, account_id, max_length)
    saved = []
    for transaction in report.transactions:
        record_id = store.insert(transaction)
        saved.append(transaction.model_copy(update={"id": record_id}))
    report.transactions = saved
    return report


def _quote(value: str | None, max_length: int) -> str:
    if not value:
        return '""'
    escaped = sanitize_field(value, max_length).replace('"', '""')
    return f'"{escaped}"'


def export_transactions(
    transactions: list[Transaction], max_length: int = MAX_FIELD_LENGTH
) -> str:
    """Render transactions as CSV with a ``Date,Description,...`` header.

    Dates are ``YYYY-MM-DD``; amounts are signed with two decimals; text
    fields are quoted and sanitized.
    """
    lines = [",".join(CSV_HEADERS)]
    for t in transactions:
        lines.append(
            ",".join(
                [
                    _quote(t.occurred_at.strftime("%Y-%m-%d"), max_length),
                    _quote(t.description, max_length),
                    format_amount(t.amount),
                    _quote(t.category, max_length),
                    _quote(t.merchant, max_length),
                    _quote(t.notes, max_length),
                ]
            )
        )
    return "\n".join(lines)


def csv_template() -> str:
    """Header plus one example row, for users preparing an import file."""
    example = [
        "2024-01-15",
        "Grocery Shopping",
        "-45.50",
        "Food",
        "SuperMarket",
        "Weekly groceries",
    ]
    return "\n".join([",".join(CSV_HEADERS), ",".join(example)])
