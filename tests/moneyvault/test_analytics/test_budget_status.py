"""Tests for budget windows and status calculations."""

from datetime import datetime
from decimal import Decimal

import pytest
from conftest import make_budget, make_transaction

from moneyvault.analytics import budget_period_window, budget_spent, budget_status
from moneyvault.errors import InvalidAmount
from moneyvault.models import BudgetPeriod

D1 = datetime(2024, 1, 15, 12, 0)


class TestBudgetPeriodWindow:
    @pytest.mark.unit
    def test_daily(self) -> None:
        start, end = budget_period_window(make_budget(period=BudgetPeriod.DAILY), D1)

        assert start == datetime(2024, 1, 15)
        assert end == datetime(2024, 1, 15, 23, 59, 59, 999999)

    @pytest.mark.unit
    def test_weekly_starts_on_sunday(self) -> None:
        # 2024-01-17 is a Wednesday
        start, end = budget_period_window(
            make_budget(period=BudgetPeriod.WEEKLY), datetime(2024, 1, 17, 9)
        )

        assert start == datetime(2024, 1, 14)
        assert start.weekday() == 6
        assert end == datetime(2024, 1, 20, 23, 59, 59, 999999)

    @pytest.mark.unit
    def test_monthly_handles_leap_february(self) -> None:
        start, end = budget_period_window(
            make_budget(period=BudgetPeriod.MONTHLY), datetime(2024, 2, 10)
        )

        assert start == datetime(2024, 2, 1)
        assert end == datetime(2024, 2, 29, 23, 59, 59, 999999)

    @pytest.mark.unit
    def test_monthly_december(self) -> None:
        start, end = budget_period_window(
            make_budget(period=BudgetPeriod.MONTHLY), datetime(2023, 12, 31, 23)
        )

        assert start == datetime(2023, 12, 1)
        assert end == datetime(2023, 12, 31, 23, 59, 59, 999999)

    @pytest.mark.unit
    def test_yearly(self) -> None:
        start, end = budget_period_window(make_budget(period=BudgetPeriod.YEARLY), D1)

        assert start == datetime(2024, 1, 1)
        assert end == datetime(2024, 12, 31, 23, 59, 59, 999999)

    @pytest.mark.unit
    def test_window_ignores_budget_start_date(self) -> None:
        """Recurring budgets always track the calendar unit containing now."""
        budget = make_budget(period=BudgetPeriod.MONTHLY, start_date=datetime(2020, 5, 3))

        assert budget_period_window(budget, D1)[0] == datetime(2024, 1, 1)

    @pytest.mark.unit
    def test_custom_uses_budget_dates(self) -> None:
        budget = make_budget(
            period=BudgetPeriod.CUSTOM,
            start_date=datetime(2024, 1, 5),
            end_date=datetime(2024, 2, 5),
        )

        assert budget_period_window(budget, D1) == (
            datetime(2024, 1, 5),
            datetime(2024, 2, 5),
        )

    @pytest.mark.unit
    def test_open_ended_custom_runs_until_now(self) -> None:
        budget = make_budget(period=BudgetPeriod.CUSTOM, start_date=datetime(2024, 1, 5))

        assert budget_period_window(budget, D1) == (datetime(2024, 1, 5), D1)


class TestBudgetStatus:
    @pytest.mark.unit
    def test_example_food_budget(self) -> None:
        """An expense of 45.50 against a 100 monthly Food budget."""
        transactions = [
            make_transaction(amount=Decimal("-45.50"), category="Food", occurred_at=D1),
            make_transaction(
                amount=Decimal("1500.00"),
                category="Salary",
                description="Salary",
                occurred_at=D1,
            ),
        ]
        budget = make_budget(category="Food", limit=Decimal("100"))

        spent = budget_spent(budget, transactions, D1)
        status = budget_status(budget, spent)

        assert spent == Decimal("45.50")
        assert status.remaining == Decimal("54.50")
        assert status.percentage == Decimal("45.5")
        assert not status.is_over_budget
        assert not status.is_warning

    @pytest.mark.unit
    def test_warning_at_eighty_percent(self) -> None:
        status = budget_status(make_budget(limit=Decimal("100")), Decimal("80"))

        assert status.is_warning
        assert not status.is_over_budget

    @pytest.mark.unit
    def test_exactly_at_limit_is_warning_not_over(self) -> None:
        status = budget_status(make_budget(limit=Decimal("100")), Decimal("100"))

        assert status.percentage == Decimal("100")
        assert status.remaining == Decimal("0")
        assert status.is_warning
        assert not status.is_over_budget

    @pytest.mark.unit
    def test_over_budget(self) -> None:
        status = budget_status(make_budget(limit=Decimal("100")), Decimal("130.25"))

        assert status.is_over_budget
        assert not status.is_warning
        assert status.percentage == Decimal("100")
        assert status.remaining == Decimal("-30.25")

    @pytest.mark.unit
    def test_nothing_spent(self) -> None:
        status = budget_status(make_budget(limit=Decimal("50")), Decimal("0"))

        assert status.percentage == Decimal("0")
        assert status.remaining == Decimal("50")

    @pytest.mark.unit
    def test_percentage_monotonic_in_spent(self) -> None:
        budget = make_budget(limit=Decimal("250"))
        amounts = [Decimal(n) / 4 for n in range(0, 1400, 7)]

        percentages = [budget_status(budget, a).percentage for a in amounts]
        remaining = [budget_status(budget, a).remaining for a in amounts]

        assert percentages == sorted(percentages)
        assert remaining == sorted(remaining, reverse=True)
        assert all(Decimal("0") <= p <= Decimal("100") for p in percentages)

    @pytest.mark.unit
    def test_non_finite_spent_rejected(self) -> None:
        with pytest.raises(InvalidAmount):
            budget_status(make_budget(), Decimal("NaN"))


class TestBudgetSpent:
    @pytest.mark.unit
    def test_only_expenses_in_category_and_window(self) -> None:
        budget = make_budget(category="Food", period=BudgetPeriod.MONTHLY)
        transactions = [
            make_transaction(amount=Decimal("-10"), occurred_at=datetime(2024, 1, 1)),
            make_transaction(
                amount=Decimal("-20"), occurred_at=datetime(2024, 1, 31, 23, 59, 59)
            ),
            make_transaction(amount=Decimal("-40"), occurred_at=datetime(2024, 2, 1)),
            make_transaction(amount=Decimal("-80"), category="Bills", occurred_at=D1),
            make_transaction(amount=Decimal("5"), occurred_at=D1),
        ]

        assert budget_spent(budget, transactions, D1) == Decimal("30")

    @pytest.mark.unit
    def test_does_not_mutate_inputs(self) -> None:
        budget = make_budget()
        transactions = [make_transaction(occurred_at=D1)]
        before = [t.model_copy() for t in transactions]

        budget_spent(budget, transactions, D1)

        assert transactions == before
        assert budget.spent == Decimal("0")
