"""Budget, breakdown and trend calculations.

The functions here are pure: they take records and return new values without
touching the store. ``LedgerAnalytics`` wires them to a ``LedgerStore``.
"""

from .breakdown import (
    CATEGORY_COLORS,
    CategorySpending,
    LedgerSummary,
    category_breakdown,
    category_color,
    summarize,
)
from .budgets import BudgetStatus, budget_spent, budget_status
from .periods import (
    AnalyticsView,
    Granularity,
    Window,
    budget_period_window,
    granularity_for_view,
    view_window,
)
from .service import AnalyticsReport, BudgetReport, LedgerAnalytics
from .trend import TrendPoint, trend_series

__all__ = [
    "CATEGORY_COLORS",
    "AnalyticsReport",
    "AnalyticsView",
    "BudgetReport",
    "BudgetStatus",
    "CategorySpending",
    "Granularity",
    "LedgerAnalytics",
    "LedgerSummary",
    "TrendPoint",
    "Window",
    "budget_period_window",
    "budget_spent",
    "budget_status",
    "category_breakdown",
    "category_color",
    "granularity_for_view",
    "summarize",
    "trend_series",
    "view_window",
]
