"""Read-side queries over the sales ledger, catalog, and customer roster.

Nothing in this module writes to the store or remembers earlier results:
each function reads the buckets it needs from the runtime context and
recomputes its answer, so two calls without an intervening write always
agree. Results are frozen dataclasses, tuples, or freshly built dicts that
callers (report and receipt generators, export tools, screens) may keep.

Sale dates are compared as UTC calendar days.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, date, datetime, timedelta
from decimal import Decimal
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from . import log
from .constants import Bucket, CustomerStatus, PaymentMethod, PeriodKind
from .core_logic import RuntimeContext
from .data_manager import CustomerRow, SaleRow


ZERO = Decimal("0")

_ROLLING_WINDOW_DAYS = {
    PeriodKind.LAST_7_DAYS: 7,
    PeriodKind.LAST_30_DAYS: 30,
}

_PERIOD_LABELS = {
    PeriodKind.TODAY: "Today",
    PeriodKind.LAST_7_DAYS: "Last 7 days",
    PeriodKind.LAST_30_DAYS: "Last 30 days",
    PeriodKind.ALL: "All periods",
}


@dataclass(frozen=True)
class PeriodFilter:
    """Date window applied to the ledger by :func:`sales_in_period`.

    ``start`` and ``end`` are only read for :attr:`PeriodKind.CUSTOM`; either
    may be ``None`` to leave that side of the range open.
    """

    kind: PeriodKind
    start: Optional[date] = None
    end: Optional[date] = None

    @classmethod
    def today(cls) -> "PeriodFilter":
        return cls(PeriodKind.TODAY)

    @classmethod
    def last_7_days(cls) -> "PeriodFilter":
        return cls(PeriodKind.LAST_7_DAYS)

    @classmethod
    def last_30_days(cls) -> "PeriodFilter":
        return cls(PeriodKind.LAST_30_DAYS)

    @classmethod
    def custom(cls, start: Optional[date], end: Optional[date]) -> "PeriodFilter":
        return cls(PeriodKind.CUSTOM, start=start, end=end)

    @classmethod
    def all(cls) -> "PeriodFilter":
        return cls(PeriodKind.ALL)

    def bounds(self, now: datetime) -> Tuple[Optional[date], Optional[date]]:
        """Return the inclusive ``(first_day, last_day)`` window for ``now``."""
        today = _utc_day(now)
        if self.kind is PeriodKind.TODAY:
            return today, today
        if self.kind in _ROLLING_WINDOW_DAYS:
            days = _ROLLING_WINDOW_DAYS[self.kind]
            return _utc_day(now - timedelta(days=days)), today
        if self.kind is PeriodKind.CUSTOM:
            return self.start, self.end
        return None, None

    def describe(self) -> str:
        """Human readable label used as a report heading."""
        if self.kind is PeriodKind.CUSTOM:
            start = self.start.isoformat() if self.start else "Beginning"
            end = self.end.isoformat() if self.end else "Today"
            return f"{start} to {end}"
        return _PERIOD_LABELS[self.kind]


@dataclass(frozen=True)
class ProductRanking:
    """One line of the top-products table."""

    product_id: str
    product_name: str
    quantity: int
    revenue: Decimal


@dataclass(frozen=True)
class DashboardStats:
    total_products: int
    total_sales: int
    total_customers: int
    total_debtors: int
    daily_revenue: Decimal
    monthly_revenue: Decimal


@dataclass(frozen=True)
class SalesReport:
    """Snapshot handed to the sales report generator."""

    period: PeriodFilter
    period_label: str
    generated_at: datetime
    sales: Tuple[SaleRow, ...]
    total_revenue: Decimal
    transaction_count: int
    average_ticket: Decimal
    payment_breakdown: Tuple[Tuple[str, Decimal], ...]
    top_products: Tuple[ProductRanking, ...]


@dataclass(frozen=True)
class DebtorEntry:
    customer: CustomerRow
    debt: Decimal
    credit_sales: Tuple[SaleRow, ...]


@dataclass(frozen=True)
class DebtorReport:
    """Snapshot handed to the debtor report generator and CSV export."""

    generated_at: datetime
    debtors: Tuple[DebtorEntry, ...]
    total_debt: Decimal
    average_debt: Decimal


def _now(candidate: Optional[datetime]) -> datetime:
    if candidate is None:
        return datetime.now(UTC)
    if candidate.tzinfo is None:
        return candidate.replace(tzinfo=UTC)
    return candidate


def _utc_day(moment: datetime) -> date:
    if moment.tzinfo is None:
        return moment.date()
    return moment.astimezone(UTC).date()


def sale_day(sale: SaleRow) -> date:
    """Calendar day (UTC) on which ``sale`` was recorded."""
    return _utc_day(datetime.fromisoformat(sale.date))


def _sales(context: RuntimeContext) -> Tuple[SaleRow, ...]:
    return context.store.get(Bucket.SALES)  # type: ignore[return-value]


def _customers(context: RuntimeContext) -> Tuple[CustomerRow, ...]:
    return context.store.get(Bucket.CUSTOMERS)  # type: ignore[return-value]


# ---------------------------------------------------------------------------
# Debts
# ---------------------------------------------------------------------------


def customer_credit_sales(context: RuntimeContext, customer_id: str) -> Tuple[SaleRow, ...]:
    """Every ``fiado`` sale ever recorded for ``customer_id``, oldest first."""
    return tuple(
        sale
        for sale in _sales(context)
        if sale.customer_id == customer_id and sale.payment_method == PaymentMethod.ON_CREDIT.value
    )


def customer_debt(context: RuntimeContext, customer_id: str) -> Decimal:
    """Sum of all ``fiado`` sale totals for ``customer_id``.

    The customer's current status is not consulted, so a settled customer
    still reports the full historical amount. Unknown ids yield zero.
    """
    return sum((sale.total for sale in customer_credit_sales(context, customer_id)), ZERO)


def list_debtors(context: RuntimeContext) -> List[CustomerRow]:
    """Customers whose status is ``pending``, in roster order."""
    return [c for c in _customers(context) if c.status == CustomerStatus.PENDING.value]


def total_debt(context: RuntimeContext) -> Decimal:
    """Sum of :func:`customer_debt` over customers currently ``pending``."""
    total = sum((customer_debt(context, c.customer_id) for c in list_debtors(context)), ZERO)
    log.debug("Computed total debt: %s", total)
    return total


def build_debtor_report(context: RuntimeContext, *, now: Optional[datetime] = None) -> DebtorReport:
    """Collect debtors with their debt and credit sales, plus totals.

    ``average_debt`` is the total divided by the number of debtors, or zero
    when nobody is pending.
    """
    entries = tuple(
        DebtorEntry(
            customer=customer,
            debt=customer_debt(context, customer.customer_id),
            credit_sales=customer_credit_sales(context, customer.customer_id),
        )
        for customer in list_debtors(context)
    )
    total = sum((entry.debt for entry in entries), ZERO)
    average = total / len(entries) if entries else ZERO
    return DebtorReport(
        generated_at=_now(now),
        debtors=entries,
        total_debt=total,
        average_debt=average,
    )


# ---------------------------------------------------------------------------
# Sales
# ---------------------------------------------------------------------------


def filter_sales(sales: Iterable[SaleRow], period: PeriodFilter, *, now: Optional[datetime] = None) -> List[SaleRow]:
    """Keep the sales whose day falls inside ``period``, both ends inclusive."""
    first_day, last_day = period.bounds(_now(now))
    selected = []
    for sale in sales:
        day = sale_day(sale)
        if first_day is not None and day < first_day:
            continue
        if last_day is not None and day > last_day:
            continue
        selected.append(sale)
    return selected


def sales_in_period(context: RuntimeContext, period: PeriodFilter, *, now: Optional[datetime] = None) -> List[SaleRow]:
    """Ledger entries recorded within ``period``, in ledger order.

    ``today`` matches the current UTC day. ``last7days`` and ``last30days``
    run from the day of ``now - N*24h`` through today. A custom range uses its
    own dates.
    """
    return filter_sales(_sales(context), period, now=now)


def revenue_total(sales: Iterable[SaleRow]) -> Decimal:
    return sum((sale.total for sale in sales), ZERO)


def average_ticket(sales: Sequence[SaleRow]) -> Decimal:
    """Mean sale total, defined as zero for an empty sequence."""
    if not sales:
        return ZERO
    return revenue_total(sales) / len(sales)


def payment_method_breakdown(sales: Iterable[SaleRow]) -> Dict[str, Decimal]:
    """Summed totals per payment method, listing only methods that occur."""
    breakdown: Dict[str, Decimal] = {}
    for sale in sales:
        breakdown[sale.payment_method] = breakdown.get(sale.payment_method, ZERO) + sale.total
    return breakdown


def top_products(sales: Iterable[SaleRow], limit: int = 5) -> List[ProductRanking]:
    """Rank products by revenue across ``sales``.

    Sales are grouped by product id, summing quantity and total. Ties keep the
    order in which each product first appears, because the sort is stable.
    """
    groups: Dict[str, list] = {}
    for sale in sales:
        group = groups.setdefault(sale.product_id, [sale.product_name, 0, ZERO])
        group[1] += sale.quantity
        group[2] += sale.total

    rankings = [
        ProductRanking(product_id=product_id, product_name=name, quantity=quantity, revenue=revenue)
        for product_id, (name, quantity, revenue) in groups.items()
    ]
    rankings = sorted(rankings, key=lambda ranking: ranking.revenue, reverse=True)
    return rankings[:limit]


def build_sales_report(
    context: RuntimeContext,
    period: PeriodFilter,
    *,
    now: Optional[datetime] = None,
    limit: Optional[int] = None,
) -> SalesReport:
    """Assemble every figure of the sales report for ``period``.

    ``limit`` defaults to the configured ``TopProductsLimit``.
    """
    moment = _now(now)
    sales = sales_in_period(context, period, now=moment)
    top_limit = context.settings.top_products_limit if limit is None else limit
    report = SalesReport(
        period=period,
        period_label=period.describe(),
        generated_at=moment,
        sales=tuple(sales),
        total_revenue=revenue_total(sales),
        transaction_count=len(sales),
        average_ticket=average_ticket(sales),
        payment_breakdown=tuple(payment_method_breakdown(sales).items()),
        top_products=tuple(top_products(sales, top_limit)),
    )
    log.debug(
        "Built sales report for %s: %d sale(s), revenue=%s",
        report.period_label,
        report.transaction_count,
        report.total_revenue,
    )
    return report


def dashboard_stats(context: RuntimeContext, *, now: Optional[datetime] = None) -> DashboardStats:
    """Headline counts and revenue figures for the whole store.

    Daily revenue covers the current UTC day; monthly revenue covers the
    current UTC calendar month.
    """
    today = _utc_day(_now(now))
    sales = _sales(context)
    customers = _customers(context)
    daily = [sale for sale in sales if sale_day(sale) == today]
    monthly = [
        sale
        for sale in sales
        if (sale_day(sale).year, sale_day(sale).month) == (today.year, today.month)
    ]
    return DashboardStats(
        total_products=len(context.store.get(Bucket.PRODUCTS)),
        total_sales=len(sales),
        total_customers=len(customers),
        total_debtors=sum(1 for c in customers if c.status == CustomerStatus.PENDING.value),
        daily_revenue=revenue_total(daily),
        monthly_revenue=revenue_total(monthly),
    )
