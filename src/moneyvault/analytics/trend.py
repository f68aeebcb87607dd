"""Income/expense trend series over calendar buckets."""

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import Decimal

from ..dates import add_months, start_of_day, start_of_month, to_local_naive
from ..models import Transaction
from ..money import ZERO, require_finite
from .periods import Granularity


@dataclass(frozen=True)
class TrendPoint:
    """Totals for one calendar bucket."""

    start: datetime
    label: str
    income: Decimal
    expenses: Decimal
    balance: Decimal


def _bucket_start(value: datetime, granularity: Granularity) -> datetime:
    if granularity is Granularity.DAY:
        return start_of_day(value)
    return start_of_month(value)


def _next_bucket(value: datetime, granularity: Granularity) -> datetime:
    if granularity is Granularity.DAY:
        return value + timedelta(days=1)
    return add_months(value, 1)


def trend_series(
    transactions: Iterable[Transaction],
    start: datetime,
    end: datetime,
    granularity: Granularity | str,
) -> list[TrendPoint]:
    """Dense per-bucket totals from ``start`` through ``end`` inclusive.

    Every calendar day (or month) touched by the range gets a point, even if
    it has no transactions. Day buckets are labelled ``DD/MM`` and month
    buckets with the abbreviated month name.

    Args:
        transactions: Transactions to aggregate
        start: First instant of the range
        end: Last instant of the range
        granularity: ``day`` or ``month``

    Returns:
        list[TrendPoint]: One point per bucket, in chronological order
    """
    granularity = Granularity(granularity)
    start = to_local_naive(start)
    end = to_local_naive(end)
    if end < start:
        return []

    buckets: dict[datetime, list[Decimal]] = {}
    current = _bucket_start(start, granularity)
    while current <= end:
        buckets[current] = [ZERO, ZERO]
        current = _next_bucket(current, granularity)

    for transaction in transactions:
        amount = require_finite(transaction.amount)
        if not start <= transaction.occurred_at <= end:
            continue
        totals = buckets[_bucket_start(transaction.occurred_at, granularity)]
        if amount > 0:
            totals[0] += amount
        else:
            totals[1] -= amount

    label_format = "%d/%m" if granularity is Granularity.DAY else "%b"
    return [
        TrendPoint(
            start=bucket,
            label=bucket.strftime(label_format),
            income=income,
            expenses=expenses,
            balance=income - expenses,
        )
        for bucket, (income, expenses) in buckets.items()
    ]
