"""CSV import/export commands for MoneyVault CLI."""

import logging
from pathlib import Path

import typer

from ...config import get_settings
from ...dates import end_of_day, start_of_day
from ...interchange import csv_template, export_transactions, import_into_store
from ...models import Transaction
from ..session import open_ledger, parse_date_option

app = typer.Typer(help="Import and export transactions as CSV")
logger = logging.getLogger(__name__)


@app.command("export")
def export(
    output: Path | None = typer.Option(
        None, "--output", "-o", help="Output file (default: stdout)"
    ),
    start: str | None = typer.Option(None, "--start", help="First date (inclusive)"),
    end: str | None = typer.Option(None, "--end", help="Last date (inclusive)"),
) -> None:
    """Export transactions as CSV, newest first."""
    start_at = parse_date_option(start)
    end_at = parse_date_option(end)
    max_length = get_settings().interchange.max_field_length

    with open_ledger() as store:
        if start_at and end_at:
            transactions = store.get_by_date_range(
                start_of_day(start_at), end_of_day(end_at)
            )
        else:
            transactions = store.get_all(Transaction)
            if start_at:
                transactions = [
                    t for t in transactions if t.occurred_at >= start_of_day(start_at)
                ]
            if end_at:
                transactions = [
                    t for t in transactions if t.occurred_at <= end_of_day(end_at)
                ]

        content = export_transactions(transactions, max_length)

    if output is None:
        typer.echo(content)
        return

    try:
        output.write_text(content + "\n", encoding="utf-8")
    except OSError as e:
        logger.error(f"❌ Unable to write {output}: {e}")
        raise typer.Exit(1) from e
    logger.info(f"✅ Exported {len(transactions)} transactions to {output}")


@app.command("import")
def import_csv(
    file: Path = typer.Argument(..., help="CSV file to import"),
    account: str = typer.Option(
        "manual", "--account", help="Account id for imported transactions"
    ),
) -> None:
    """Import transactions from a CSV file.

    Valid rows are saved even if some rows fail; each failure is reported
    with its row number.
    """
    try:
        content = file.read_bytes()
    except OSError as e:
        logger.error(f"❌ Unable to read {file}: {e}")
        raise typer.Exit(1) from e

    max_length = get_settings().interchange.max_field_length
    with open_ledger() as store:
        report = import_into_store(store, content, account, max_length)

    for error in report.errors:
        logger.warning(f"⚠️  {error}")

    if report.imported == 0 and report.failed > 0:
        logger.error("❌ No transactions imported")
        raise typer.Exit(1)

    logger.info(f"✅ Imported {report.imported} transactions ({report.failed} failed)")


@app.command("template")
def template() -> None:
    """Print a CSV template with one example row."""
    typer.echo(csv_template())
