"""Budget commands for MoneyVault CLI."""

import logging

import typer

from ...analytics import LedgerAnalytics
from ...dates import now_local, start_of_day
from ...models import Budget, BudgetPeriod
from ...money import format_amount
from ..session import open_ledger, parse_amount_option, parse_date_option

app = typer.Typer(help="Create budgets and check their status")
logger = logging.getLogger(__name__)


@app.command("add")
def add(
    category: str = typer.Option(..., "--category", "-c", help="Category to limit"),
    limit: str = typer.Option(..., "--limit", "-l", help="Spending limit"),
    period: BudgetPeriod = typer.Option(
        BudgetPeriod.MONTHLY, "--period", help="Budget period"
    ),
    start: str | None = typer.Option(None, "--start", help="Start date. Default: today"),
    end: str | None = typer.Option(None, "--end", help="Optional end date"),
) -> None:
    """Add a budget for a category and print its id."""
    value = parse_amount_option(limit)
    start_date = parse_date_option(start) or start_of_day(now_local())
    end_date = parse_date_option(end)

    with open_ledger() as store:
        budget_id = store.insert(
            Budget(
                category=category,
                limit=value,
                period=period,
                start_date=start_date,
                end_date=end_date,
            )
        )
        typer.echo(budget_id)
        logger.info(
            f"✅ Added {period.value} budget of {format_amount(value)} for {category}"
        )


@app.command("status")
def status(
    active_only: bool = typer.Option(
        False, "--active", help="Only budgets whose date range includes today"
    ),
) -> None:
    """Show spending against every budget, recomputed from transactions."""
    with open_ledger() as store:
        now = now_local()
        active_ids = {b.id for b in store.get_active_budgets(now)}
        reports = LedgerAnalytics(store).budget_reports(now, refresh=True)
        if active_only:
            reports = [r for r in reports if r.budget.id in active_ids]

        if not reports:
            logger.info("No budgets defined")
            return

        for report in reports:
            s = report.status
            if s.is_over_budget:
                flag = "❌ over"
            elif s.is_warning:
                flag = "⚠️  warning"
            else:
                flag = "✅ ok"
            typer.echo(
                f"{report.budget.category:<15} {report.budget.period.value:<8} "
                f"{format_amount(s.spent):>10} / {format_amount(s.limit):<10} "
                f"{s.percentage:6.1f}%  remaining {format_amount(s.remaining):>10}  {flag}"
            )
