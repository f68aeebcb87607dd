"""Analytics over a ledger store."""

import logging
from dataclasses import dataclass, field
from datetime import datetime

from ..dates import now_local
from ..ledger import LedgerStore
from ..models import Budget
from .breakdown import CategorySpending, LedgerSummary, category_breakdown, summarize
from .budgets import BudgetStatus, budget_status
from .periods import (
    AnalyticsView,
    Window,
    budget_period_window,
    granularity_for_view,
    view_window,
)
from .trend import TrendPoint, trend_series

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BudgetReport:
    budget: Budget
    window: Window
    status: BudgetStatus


@dataclass(frozen=True)
class AnalyticsReport:
    """Everything an overview screen needs for one view window."""

    view: AnalyticsView
    window: Window
    summary: LedgerSummary
    breakdown: list[CategorySpending] = field(default_factory=list)
    trend: list[TrendPoint] = field(default_factory=list)


class LedgerAnalytics:
    """Read-side calculations backed by a ``LedgerStore``.

    Budget spending is recomputed from transactions on every call; the
    ``spent`` column on stored budgets is only a cache.
    """

    def __init__(self, store: LedgerStore):
        self.store = store

    def budget_report(
        self, budget: Budget, now: datetime | None = None, refresh: bool = False
    ) -> BudgetReport:
        """Status of one budget in its current window.

        Args:
            budget: Budget to evaluate
            now: Reference instant (default: current local time)
            refresh: Also write the recomputed spent value back to the store
        """
        now = now or now_local()
        start, end = budget_period_window(budget, now)
        spent = self.store.get_spending_by_category(budget.category, start, end)

        if refresh and budget.id is not None and spent != budget.spent:
            budget = self.store.update_budget_spent(budget.id, spent)

        return BudgetReport(
            budget=budget, window=(start, end), status=budget_status(budget, spent)
        )

    def budget_reports(
        self, now: datetime | None = None, refresh: bool = False
    ) -> list[BudgetReport]:
        """Reports for every stored budget."""
        now = now or now_local()
        reports = [
            self.budget_report(budget, now, refresh)
            for budget in self.store.get_all(Budget)
        ]
        over = sum(1 for report in reports if report.status.is_over_budget)
        if over:
            logger.info(f"{over} budget(s) over limit")
        return reports

    def overview(
        self, view: AnalyticsView | str = AnalyticsView.MONTH, now: datetime | None = None
    ) -> AnalyticsReport:
        """Summary, category breakdown and trend for the current view window."""
        view = AnalyticsView(view)
        start, end = view_window(view, now or now_local())
        transactions = self.store.get_by_date_range(start, end)

        return AnalyticsReport(
            view=view,
            window=(start, end),
            summary=summarize(transactions),
            breakdown=category_breakdown(transactions),
            trend=trend_series(transactions, start, end, granularity_for_view(view)),
        )
