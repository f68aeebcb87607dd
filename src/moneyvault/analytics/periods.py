"""Calendar windows for budgets and analytics views.

All windows are inclusive ``(start, end)`` pairs of naive local datetimes,
running from the first instant of a calendar unit to its last microsecond.
"""

from datetime import datetime, timedelta
from enum import StrEnum

from ..dates import (
    add_months,
    end_of_day,
    last_instant_before,
    start_of_day,
    start_of_month,
    start_of_week,
    start_of_year,
    to_local_naive,
)
from ..models import Budget, BudgetPeriod

Window = tuple[datetime, datetime]


class AnalyticsView(StrEnum):
    WEEK = "week"
    MONTH = "month"
    YEAR = "year"


class Granularity(StrEnum):
    DAY = "day"
    MONTH = "month"


def day_window(now: datetime) -> Window:
    return start_of_day(now), end_of_day(now)


def week_window(now: datetime) -> Window:
    """Sunday-to-Saturday week containing ``now``."""
    start = start_of_week(now)
    return start, last_instant_before(start + timedelta(days=7))


def month_window(now: datetime) -> Window:
    start = start_of_month(now)
    return start, last_instant_before(add_months(start, 1))


def year_window(now: datetime) -> Window:
    start = start_of_year(now)
    return start, last_instant_before(start.replace(year=start.year + 1))


_CALENDAR_WINDOWS = {
    BudgetPeriod.DAILY: day_window,
    BudgetPeriod.WEEKLY: week_window,
    BudgetPeriod.MONTHLY: month_window,
    BudgetPeriod.YEARLY: year_window,
}


def budget_period_window(budget: Budget, now: datetime) -> Window:
    """Window a budget's spending is measured over at ``now``.

    Recurring budgets use the calendar unit containing ``now``, so a monthly
    budget always tracks the current month regardless of its start date. A
    custom budget uses its own start date through its end date (or ``now``
    when open-ended).

    Args:
        budget: Budget to evaluate
        now: Reference instant

    Returns:
        Window: Inclusive ``(start, end)``
    """
    now = to_local_naive(now)
    window_for = _CALENDAR_WINDOWS.get(budget.period)
    if window_for is not None:
        return window_for(now)
    return budget.start_date, budget.end_date or now


def view_window(view: AnalyticsView | str, now: datetime) -> Window:
    """Calendar window for an analytics view (current week, month or year)."""
    now = to_local_naive(now)
    view = AnalyticsView(view)
    if view is AnalyticsView.WEEK:
        return week_window(now)
    if view is AnalyticsView.MONTH:
        return month_window(now)
    return year_window(now)


def granularity_for_view(view: AnalyticsView | str) -> Granularity:
    """Trend bucket size for a view: days for week/month, months for year."""
    if AnalyticsView(view) is AnalyticsView.YEAR:
        return Granularity.MONTH
    return Granularity.DAY
