"""Spending report commands for MoneyVault CLI."""

import logging

import typer

from ...analytics import AnalyticsView, LedgerAnalytics
from ...money import format_amount
from ..session import open_ledger

app = typer.Typer(help="Category breakdown and income/expense trends")
logger = logging.getLogger(__name__)


@app.command("breakdown")
def breakdown(
    view: AnalyticsView = typer.Option(
        AnalyticsView.MONTH, "--view", help="Time window: week, month or year"
    ),
) -> None:
    """Expenses per category for the current week, month or year."""
    with open_ledger() as store:
        report = LedgerAnalytics(store).overview(view)
        summary = report.summary

        logger.info(
            f"📊 {view.value.capitalize()} {report.window[0]:%Y-%m-%d} to "
            f"{report.window[1]:%Y-%m-%d}"
        )
        typer.echo(f"Income:   {format_amount(summary.total_income):>12}")
        typer.echo(f"Expenses: {format_amount(summary.total_expenses):>12}")
        typer.echo(f"Balance:  {format_amount(summary.balance):>12}")

        if not report.breakdown:
            logger.info("No expenses in this period")
            return

        for entry in report.breakdown:
            typer.echo(
                f"{entry.category:<15} {format_amount(entry.amount):>12} "
                f"{entry.percentage:6.1f}%"
            )


@app.command("trend")
def trend(
    view: AnalyticsView = typer.Option(
        AnalyticsView.MONTH, "--view", help="Time window: week, month or year"
    ),
) -> None:
    """Income, expenses and balance per day (or per month for the year view)."""
    with open_ledger() as store:
        report = LedgerAnalytics(store).overview(view)
        for point in report.trend:
            typer.echo(
                f"{point.label:<6} income {format_amount(point.income):>10}  "
                f"expenses {format_amount(point.expenses):>10}  "
                f"balance {format_amount(point.balance):>10}"
            )
