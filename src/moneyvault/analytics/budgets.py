"""Budget status computation."""

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from ..models import Budget, Transaction
from ..money import HUNDRED, ZERO, require_finite
from .periods import budget_period_window

WARNING_THRESHOLD = Decimal("80")


@dataclass(frozen=True)
class BudgetStatus:
    """Progress of a budget against its limit.

    ``percentage`` is clamped to ``[0, 100]``; ``remaining`` is negative once
    the budget is exceeded.
    """

    spent: Decimal
    limit: Decimal
    remaining: Decimal
    percentage: Decimal
    is_over_budget: bool
    is_warning: bool


def budget_status(budget: Budget, spent: Decimal) -> BudgetStatus:
    """Compute the status of ``budget`` for a given spent amount.

    Raises:
        InvalidAmount: If ``spent`` is not a finite decimal
    """
    spent = require_finite(spent)
    limit = require_finite(budget.limit)

    percentage = spent / limit * HUNDRED if limit > 0 else ZERO
    percentage = min(max(percentage, ZERO), HUNDRED)
    is_over_budget = spent > limit

    return BudgetStatus(
        spent=spent,
        limit=limit,
        remaining=limit - spent,
        percentage=percentage,
        is_over_budget=is_over_budget,
        is_warning=percentage >= WARNING_THRESHOLD and not is_over_budget,
    )


def budget_spent(
    budget: Budget, transactions: Iterable[Transaction], now: datetime
) -> Decimal:
    """Absolute sum of expenses in the budget's category within its window."""
    start, end = budget_period_window(budget, now)
    total = ZERO
    for transaction in transactions:
        amount = require_finite(transaction.amount)
        if (
            amount < 0
            and transaction.category == budget.category
            and start <= transaction.occurred_at <= end
        ):
            total -= amount
    return total
