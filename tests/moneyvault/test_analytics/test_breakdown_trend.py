"""Tests for category breakdown, summaries, trend series and the analytics
service."""

from datetime import datetime
from decimal import Decimal

import pytest
from conftest import make_budget, make_transaction

from moneyvault.analytics import (
    AnalyticsView,
    Granularity,
    LedgerAnalytics,
    category_breakdown,
    granularity_for_view,
    summarize,
    trend_series,
    view_window,
)
from moneyvault.ledger import LedgerStore
from moneyvault.models import Budget


class TestCategoryBreakdown:
    @pytest.mark.unit
    def test_groups_and_sorts(self) -> None:
        transactions = [
            make_transaction(amount=Decimal("-30"), category="Food"),
            make_transaction(amount=Decimal("-20"), category="Food"),
            make_transaction(amount=Decimal("-50"), category="Bills"),
            make_transaction(amount=Decimal("-10"), category="Zoo"),
            make_transaction(amount=Decimal("2000"), category="Salary"),
        ]

        breakdown = category_breakdown(transactions)

        # Ties broken by name
        assert [(b.category, b.amount) for b in breakdown] == [
            ("Bills", Decimal("50")),
            ("Food", Decimal("50")),
            ("Zoo", Decimal("10")),
        ]
        assert breakdown[0].color == "#6C5CE7"
        assert breakdown[2].color == "#95A5A6"

    @pytest.mark.unit
    def test_percentages_sum_to_hundred(self) -> None:
        transactions = [
            make_transaction(amount=Decimal("-33.33"), category="Food"),
            make_transaction(amount=Decimal("-33.33"), category="Bills"),
            make_transaction(amount=Decimal("-33.34"), category="Health"),
            make_transaction(amount=Decimal("-0.07"), category="Other"),
        ]

        total = sum(b.percentage for b in category_breakdown(transactions))

        assert abs(total - Decimal("100")) < Decimal("1e-20")

    @pytest.mark.unit
    def test_empty_without_expenses(self) -> None:
        assert category_breakdown([]) == []
        assert category_breakdown([make_transaction(amount=Decimal("10"))]) == []


class TestSummarize:
    @pytest.mark.unit
    def test_totals_and_top_expenses(self) -> None:
        transactions = [
            make_transaction(amount=Decimal(f"-{n}"), description=f"Expense {n}")
            for n in range(1, 8)
        ] + [make_transaction(amount=Decimal("1500.00"), description="Salary")]

        summary = summarize(transactions)

        assert summary.total_income == Decimal("1500.00")
        assert summary.total_expenses == Decimal("28")
        assert summary.balance == Decimal("1472.00")
        assert [t.amount for t in summary.top_expenses] == [
            Decimal("-7"),
            Decimal("-6"),
            Decimal("-5"),
            Decimal("-4"),
            Decimal("-3"),
        ]

    @pytest.mark.unit
    def test_decimal_sums_are_exact(self) -> None:
        transactions = [make_transaction(amount=Decimal("-0.10")) for _ in range(3)]

        assert summarize(transactions).total_expenses == Decimal("0.30")


class TestTrendSeries:
    @pytest.mark.unit
    def test_daily_buckets_are_dense(self) -> None:
        transactions = [
            make_transaction(amount=Decimal("-10"), occurred_at=datetime(2024, 1, 2, 9)),
            make_transaction(amount=Decimal("100"), occurred_at=datetime(2024, 1, 2, 18)),
            make_transaction(amount=Decimal("-5"), occurred_at=datetime(2024, 1, 4)),
        ]

        points = trend_series(
            transactions,
            datetime(2024, 1, 1),
            datetime(2024, 1, 7, 23, 59, 59),
            Granularity.DAY,
        )

        assert len(points) == 7
        assert [p.label for p in points][:3] == ["01/01", "02/01", "03/01"]
        assert points[1].income == Decimal("100")
        assert points[1].expenses == Decimal("10")
        assert points[1].balance == Decimal("90")
        assert points[2].balance == Decimal("0")
        assert points[3].expenses == Decimal("5")

    @pytest.mark.unit
    def test_month_buckets_for_a_year(self) -> None:
        start, end = view_window(AnalyticsView.YEAR, datetime(2024, 6, 15))

        points = trend_series([], start, end, granularity_for_view(AnalyticsView.YEAR))

        assert len(points) == 12
        assert points[0].start == datetime(2024, 1, 1)
        assert points[-1].start == datetime(2024, 12, 1)
        assert points[0].label == datetime(2024, 1, 1).strftime("%b")

    @pytest.mark.unit
    @pytest.mark.parametrize(
        ("start", "end", "granularity", "expected"),
        [
            (datetime(2024, 2, 1), datetime(2024, 2, 29, 23), "day", 29),
            (datetime(2024, 1, 31, 22), datetime(2024, 2, 1, 1), "day", 2),
            (datetime(2023, 11, 15), datetime(2024, 2, 1), "month", 4),
            (datetime(2024, 3, 3), datetime(2024, 3, 3), "day", 1),
        ],
    )
    def test_bucket_count_matches_calendar_units(
        self, start: datetime, end: datetime, granularity: str, expected: int
    ) -> None:
        assert len(trend_series([], start, end, granularity)) == expected

    @pytest.mark.unit
    def test_transactions_outside_range_ignored(self) -> None:
        points = trend_series(
            [make_transaction(amount=Decimal("-10"), occurred_at=datetime(2023, 12, 31))],
            datetime(2024, 1, 1),
            datetime(2024, 1, 1, 23, 59),
            Granularity.DAY,
        )

        assert points[0].expenses == Decimal("0")

    @pytest.mark.unit
    def test_view_granularity(self) -> None:
        assert granularity_for_view("week") is Granularity.DAY
        assert granularity_for_view("month") is Granularity.DAY
        assert granularity_for_view("year") is Granularity.MONTH


class TestLedgerAnalytics:
    @pytest.mark.unit
    def test_budget_report_recomputes_spent(self, store: LedgerStore) -> None:
        now = datetime(2024, 1, 20)
        store.insert(make_transaction(amount=Decimal("-45.50"), occurred_at=now))
        store.insert(
            make_transaction(amount=Decimal("-99"), occurred_at=datetime(2023, 12, 20))
        )
        budget_id = store.insert(make_budget(spent=Decimal("999")))

        reports = LedgerAnalytics(store).budget_reports(now, refresh=True)

        assert len(reports) == 1
        assert reports[0].status.spent == Decimal("45.50")
        assert reports[0].status.remaining == Decimal("54.50")
        assert store.get(Budget, budget_id).spent == Decimal("45.50")

    @pytest.mark.unit
    def test_budget_report_without_refresh_leaves_cache(self, store: LedgerStore) -> None:
        now = datetime(2024, 1, 20)
        store.insert(make_transaction(amount=Decimal("-10"), occurred_at=now))
        budget_id = store.insert(make_budget())

        LedgerAnalytics(store).budget_reports(now)

        assert store.get(Budget, budget_id).spent == Decimal("0")

    @pytest.mark.unit
    def test_overview(self, store: LedgerStore) -> None:
        now = datetime(2024, 1, 20)
        store.insert(make_transaction(amount=Decimal("-45.50"), occurred_at=now))
        store.insert(
            make_transaction(
                amount=Decimal("1500"),
                category="Salary",
                description="Salary",
                occurred_at=datetime(2024, 1, 1),
            )
        )
        store.insert(
            make_transaction(amount=Decimal("-99"), occurred_at=datetime(2024, 2, 1))
        )

        report = LedgerAnalytics(store).overview("month", now)

        assert report.window == (
            datetime(2024, 1, 1),
            datetime(2024, 1, 31, 23, 59, 59, 999999),
        )
        assert report.summary.balance == Decimal("1454.50")
        assert [b.category for b in report.breakdown] == ["Food"]
        assert len(report.trend) == 31
