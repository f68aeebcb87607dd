"""Spending breakdown and period summaries."""

from collections.abc import Iterable
from dataclasses import dataclass, field
from decimal import Decimal

from ..models import Transaction
from ..money import ZERO, percentage_of, require_finite

CATEGORY_COLORS: dict[str, str] = {
    "Food": "#FF6B6B",
    "Transport": "#4ECDC4",
    "Shopping": "#FFD93D",
    "Bills": "#6C5CE7",
    "Entertainment": "#FF8787",
    "Health": "#A8E6CF",
    "Education": "#95E1D3",
    "Salary": "#4CAF50",
    "Investment": "#00BCD4",
    "Other": "#95A5A6",
}
DEFAULT_COLOR = "#95A5A6"

TOP_EXPENSES_LIMIT = 5


@dataclass(frozen=True)
class CategorySpending:
    category: str
    amount: Decimal
    percentage: Decimal
    color: str


@dataclass(frozen=True)
class LedgerSummary:
    """Totals for a set of transactions."""

    total_income: Decimal
    total_expenses: Decimal
    balance: Decimal
    top_expenses: list[Transaction] = field(default_factory=list)


def category_color(category: str) -> str:
    return CATEGORY_COLORS.get(category, DEFAULT_COLOR)


def category_breakdown(transactions: Iterable[Transaction]) -> list[CategorySpending]:
    """Group expenses by category.

    Amounts are absolute. Percentages are shares of total expenses, so they
    sum to 100 whenever there is any expense.

    Returns:
        list[CategorySpending]: Sorted by amount descending, then category
        name ascending. Empty when there are no expenses.
    """
    totals: dict[str, Decimal] = {}
    for transaction in transactions:
        amount = require_finite(transaction.amount)
        if amount < 0:
            totals[transaction.category] = totals.get(transaction.category, ZERO) - amount

    total_expenses = sum(totals.values(), ZERO)
    if total_expenses == ZERO:
        return []

    breakdown = [
        CategorySpending(
            category=category,
            amount=amount,
            percentage=percentage_of(amount, total_expenses),
            color=category_color(category),
        )
        for category, amount in totals.items()
    ]
    breakdown.sort(key=lambda entry: (-entry.amount, entry.category))
    return breakdown


def summarize(transactions: Iterable[Transaction]) -> LedgerSummary:
    """Total income, total expenses, balance and the five largest expenses."""
    transactions = list(transactions)
    income = ZERO
    expenses = ZERO
    for transaction in transactions:
        amount = require_finite(transaction.amount)
        if amount > 0:
            income += amount
        else:
            expenses -= amount

    top = sorted((t for t in transactions if t.amount < 0), key=lambda t: t.amount)
    return LedgerSummary(
        total_income=income,
        total_expenses=expenses,
        balance=income - expenses,
        top_expenses=top[:TOP_EXPENSES_LIMIT],
    )
