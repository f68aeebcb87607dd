"""Ledger commands for MoneyVault CLI.

Creating the ledger, recording accounts and transactions, listing them and
securely erasing everything.
"""

import logging
from datetime import datetime

import typer

from ...dates import end_of_day, now_local, start_of_day
from ...models import Account, AccountType, Transaction
from ...money import format_amount
from ..session import open_ledger, parse_amount_option, parse_date_option

app = typer.Typer(help="Create, inspect and erase the encrypted ledger")
logger = logging.getLogger(__name__)


@app.command("init")
def init(
    no_defaults: bool = typer.Option(
        False, "--no-defaults", help="Skip creating the default categories"
    ),
) -> None:
    """Create the ledger and its master key if they do not exist yet.

    Running init again is harmless: existing data and categories are kept.
    """
    with open_ledger() as store:
        if not no_defaults:
            store.initialize_default_categories()
        logger.info(f"✅ Ledger ready at {store.database_path}")


@app.command("add-account")
def add_account(
    name: str = typer.Option(..., "--name", "-n", help="Account name"),
    account_type: AccountType = typer.Option(
        AccountType.CHECKING, "--type", "-t", help="Account type"
    ),
    balance: str = typer.Option("0", "--balance", help="Opening balance"),
    currency: str = typer.Option("EUR", "--currency", help="ISO currency code"),
) -> None:
    """Add a manual account and print its id."""
    opening = parse_amount_option(balance)
    with open_ledger() as store:
        account_id = store.insert(
            Account(name=name, type=account_type, balance=opening, currency=currency)
        )
        typer.echo(account_id)
        logger.info(f"✅ Added account {name}")


@app.command("add-transaction")
def add_transaction(
    amount: str = typer.Option(
        ..., "--amount", "-a", help="Signed amount: negative for expenses"
    ),
    description: str = typer.Option(..., "--description", "-d", help="Description"),
    category: str = typer.Option(..., "--category", "-c", help="Category name"),
    account: str = typer.Option("manual", "--account", help="Account id"),
    date: str | None = typer.Option(
        None, "--date", help="Date (YYYY-MM-DD or DD/MM/YYYY). Default: now"
    ),
    merchant: str | None = typer.Option(None, "--merchant", help="Merchant"),
    notes: str | None = typer.Option(None, "--notes", help="Free-text notes"),
) -> None:
    """Record a transaction and print its id.

    Examples:
        moneyvault ledger add-transaction -a -45.50 -d "Groceries" -c Food
        moneyvault ledger add-transaction -a 1500 -d "Salary" -c Salary --date 2024-01-31
    """
    value = parse_amount_option(amount)
    occurred_at = parse_date_option(date) or now_local()

    with open_ledger() as store:
        transaction_id = store.insert(
            Transaction(
                amount=value,
                description=description,
                category=category,
                occurred_at=occurred_at,
                account_id=account,
                merchant=merchant,
                notes=notes,
            )
        )
        typer.echo(transaction_id)
        logger.info(f"✅ Recorded {format_amount(value)} in {category}")


@app.command("list")
def list_transactions(
    category: str | None = typer.Option(None, "--category", "-c", help="Category"),
    account: str | None = typer.Option(None, "--account", help="Account id"),
    start: str | None = typer.Option(None, "--start", help="First date (inclusive)"),
    end: str | None = typer.Option(None, "--end", help="Last date (inclusive)"),
    limit: int = typer.Option(50, "--limit", "-n", min=1, help="Maximum rows"),
) -> None:
    """List transactions, newest first."""
    start_at = parse_date_option(start)
    end_at = parse_date_option(end)

    with open_ledger() as store:
        if start_at or end_at:
            transactions = store.get_by_date_range(
                start_of_day(start_at) if start_at else datetime.min,
                end_of_day(end_at) if end_at else datetime.max,
            )
        elif account:
            transactions = store.get_by_account(account)
        elif category:
            transactions = store.get_by_category(category)
        else:
            transactions = store.get_all(Transaction)

        if category:
            transactions = [t for t in transactions if t.category == category]
        if account:
            transactions = [t for t in transactions if t.account_id == account]

        if not transactions:
            logger.info("No transactions found")
            return

        for t in transactions[:limit]:
            typer.echo(
                f"{t.occurred_at:%Y-%m-%d}  {format_amount(t.amount):>12}  "
                f"{t.category:<15} {t.description}"
            )


@app.command("erase")
def erase(
    yes: bool = typer.Option(False, "--yes", "-y", help="Do not ask for confirmation"),
) -> None:
    """Delete every record and destroy the master key. Cannot be undone."""
    if not yes:
        typer.confirm(
            "This permanently deletes all ledger data and the master key. Continue?",
            abort=True,
        )

    with open_ledger() as store:
        store.erase_all()
        logger.info("✅ Ledger erased")
