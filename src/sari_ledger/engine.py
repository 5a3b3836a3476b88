# SARI Ledger - Spreadsheet bookkeeping & analytics for small shops
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Aggregation engine for SARI Ledger.

Every statistic shown by the dashboard and the report is recomputed from the
full transaction set whenever an input changes. All functions in this module
are pure: they take immutable snapshots plus scalar parameters and return
fresh results, never mutating their inputs and never caching.

1. Working set
   -----------
   ``working_set()`` filters the transaction list for a view context
   (dashboard / transactions / debts) and a free-text search term, then sorts
   it (newest, oldest, highest, lowest). The dashboard statistics are
   computed on this working set.

2. Dashboard statistics
   --------------------
   ``compute_dashboard_stats()`` sums amounts normalized to USD:
   - completed sale / cash → sales (and a day-of-week histogram),
   - expense (any status)  → expenses,
   - debt not completed    → outstanding debt (reported in IQD units).

3. Report statistics
   -----------------
   ``compute_report_stats()`` works on the transactions whose date falls in
   an inclusive ``[start, end]`` range and that match an optional search
   term. It produces per-day revenue / expense series (downsampled to at
   most 100 chart points), an expense-category breakdown, top products, top
   debtors, a day-of-week histogram with the busiest day, and the debt
   collection rate.

   Settled debts count as revenue on their (settlement) date, pending debts
   count as outstanding debt on their origination date.

4. Chart downsampling
   ------------------
   ``downsample_chart_data()`` averages consecutive windows of
   ``ceil(len / cap)`` points so that long date ranges stay cheap to render.
"""

import math
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from datetime import date, datetime, time
from typing import Literal, Optional

from .models import (
    EXCHANGE_RATE,
    Transaction,
    day_of_week_index,
    parse_iso_date,
)

ViewContext = Literal["dashboard", "transactions", "debts"]
SortOption = Literal["newest", "oldest", "highest", "lowest"]
HistoryType = Literal["all", "sale", "expense"]

VIEW_CONTEXTS: tuple[str, ...] = ("dashboard", "transactions", "debts")
SORT_OPTIONS: tuple[str, ...] = ("newest", "oldest", "highest", "lowest")
HISTORY_TYPES: tuple[str, ...] = ("all", "sale", "expense")

CHART_POINT_LIMIT = 100
TOP_N = 5

WEEK_DAYS_SHORT = ("S", "M", "T", "W", "T", "F", "S")
WEEK_DAYS_FULL = (
    "Sunday",
    "Monday",
    "Tuesday",
    "Wednesday",
    "Thursday",
    "Friday",
    "Saturday",
)

_TIME_FORMATS = ("%H:%M", "%I:%M %p", "%H:%M:%S", "%I:%M:%S %p")


# ---------------------------------------------------------------------------
# Result types
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class DashboardStats:
    """
    Headline figures for the dashboard.

    Attributes
    ----------
    total_sales_usd:
        Completed sale / cash amounts, normalized to USD.
    total_sales_iqd:
        ``total_sales_usd * EXCHANGE_RATE``.
    total_expenses:
        Expense amounts (any status), normalized to USD.
    net_profit:
        ``total_sales_usd - total_expenses``.
    total_debt:
        Outstanding debt (status other than completed), in IQD units.
    count:
        Number of transactions in the working set.
    weekly_data:
        Seven USD sale totals indexed by weekday (0 = Sunday).
    profit_margin:
        Net profit as a percentage of sales, clamped to [0, 100].
    """

    total_sales_usd: float
    total_sales_iqd: float
    total_expenses: float
    net_profit: float
    total_debt: float
    count: int
    weekly_data: list[float]
    profit_margin: float


@dataclass(frozen=True)
class ChartPoint:
    """One point of the revenue / expenses chart."""

    date: str  # "MM/DD" label
    full_date: str  # "YYYY-MM-DD"
    revenue: float
    expenses: float


@dataclass(frozen=True)
class ProductStat:
    name: str
    amount: float
    count: int


@dataclass(frozen=True)
class NamedAmount:
    name: str
    amount: float


@dataclass(frozen=True)
class WeekdayActivity:
    day: str
    amount: float


@dataclass(frozen=True)
class ReportStats:
    """
    Statistics for the report screen over a date range.

    All amounts are normalized to USD.
    """

    total_revenue: float
    total_expenses: float
    net_profit: float
    pending_debt: float
    collected_debt: float
    collection_rate: float
    busiest_day: str
    top_products: list[ProductStat] = field(default_factory=list)
    top_debtors: list[NamedAmount] = field(default_factory=list)
    pie_data: list[NamedAmount] = field(default_factory=list)
    weekly_activity: list[WeekdayActivity] = field(default_factory=list)
    chart_data: list[ChartPoint] = field(default_factory=list)
    composition: dict[str, float] = field(default_factory=dict)


# ---------------------------------------------------------------------------
# Working set: filter & sort
# ---------------------------------------------------------------------------


def amount_search_text(amount: float) -> str:
    """Plain string form of an amount used for search (1200.0 → "1200")."""
    if float(amount).is_integer() and abs(amount) < 1e21:
        return str(int(amount))
    return repr(float(amount))


def _matches_search(t: Transaction, lower_search: str, *, raw_text: bool) -> bool:
    if not lower_search:
        return True
    if lower_search in t.client.lower():
        return True
    if lower_search in amount_search_text(t.amount):
        return True
    return bool(raw_text and t.raw_text and lower_search in t.raw_text.lower())


def _matches_view(t: Transaction, view: str, history_type: str) -> bool:
    if view == "debts":
        return t.type == "debt"
    if view == "transactions":
        if history_type == "sale":
            return t.type in ("sale", "cash")
        if history_type == "expense":
            return t.type in ("expense", "refund")
    return True


def filter_transactions(
    transactions: Iterable[Transaction],
    *,
    view: str = "dashboard",
    search: str = "",
    history_type: str = "all",
) -> list[Transaction]:
    """
    Keep the transactions visible in a view context.

    The search term (case-insensitive) matches the client name, the amount
    or the raw source text. The ``debts`` view only keeps debts; the
    ``transactions`` view honours ``history_type`` (sale = sale + cash,
    expense = expense + refund).
    """
    if view not in VIEW_CONTEXTS:
        raise ValueError(f"Unknown view context: {view!r}")
    if history_type not in HISTORY_TYPES:
        raise ValueError(f"Unknown history type: {history_type!r}")

    lower = (search or "").lower()
    return [
        t
        for t in transactions
        if _matches_search(t, lower, raw_text=True)
        and _matches_view(t, view, history_type)
    ]


def _parse_time(value: Optional[str]) -> time:
    if value:
        text = value.strip()
        for fmt in _TIME_FORMATS:
            try:
                return datetime.strptime(text, fmt).time()
            except ValueError:
                continue
    return time(0, 0)


def transaction_timestamp(t: Transaction) -> datetime:
    """Combined date + time used for chronological ordering."""
    d = parse_iso_date(t.date)
    if d is None:
        return datetime.min
    return datetime.combine(d, _parse_time(t.time))


def sort_transactions(
    transactions: Iterable[Transaction], sort: str = "newest"
) -> list[Transaction]:
    """Return a new list ordered by ``sort``. Ties keep their input order."""
    if sort == "newest":
        return sorted(transactions, key=transaction_timestamp, reverse=True)
    if sort == "oldest":
        return sorted(transactions, key=transaction_timestamp)
    if sort == "highest":
        return sorted(transactions, key=lambda t: t.amount, reverse=True)
    if sort == "lowest":
        return sorted(transactions, key=lambda t: t.amount)
    raise ValueError(
        f"Unknown sort option: {sort!r}. Expected one of {SORT_OPTIONS}."
    )


def working_set(
    transactions: Iterable[Transaction],
    *,
    view: str = "dashboard",
    search: str = "",
    sort: str = "newest",
    history_type: str = "all",
) -> list[Transaction]:
    """Filter then sort ``transactions`` for a view context."""
    filtered = filter_transactions(
        transactions, view=view, search=search, history_type=history_type
    )
    return sort_transactions(filtered, sort)


# ---------------------------------------------------------------------------
# Dashboard
# ---------------------------------------------------------------------------


def compute_dashboard_stats(transactions: Sequence[Transaction]) -> DashboardStats:
    """
    Compute dashboard figures from a pre-filtered, pre-sorted working set.

    Rows with an unparseable date are left out of ``weekly_data`` only.
    """
    total_sales_usd = 0.0
    total_expenses = 0.0
    total_debt_usd = 0.0
    weekly = [0.0] * 7

    for t in transactions:
        val = t.normalized_amount
        if t.type in ("sale", "cash") and t.status == "completed":
            total_sales_usd += val
            d = parse_iso_date(t.date)
            if d is not None:
                weekly[day_of_week_index(d)] += val
        elif t.type == "expense":
            total_expenses += val
        elif t.type == "debt" and t.status != "completed":
            total_debt_usd += val

    net_profit = total_sales_usd - total_expenses
    if total_sales_usd == 0:
        margin = 0.0
    else:
        margin = min(max(net_profit / total_sales_usd * 100, 0.0), 100.0)

    return DashboardStats(
        total_sales_usd=total_sales_usd,
        total_sales_iqd=total_sales_usd * EXCHANGE_RATE,
        total_expenses=total_expenses,
        net_profit=net_profit,
        total_debt=total_debt_usd * EXCHANGE_RATE,
        count=len(transactions),
        weekly_data=weekly,
        profit_margin=margin,
    )


# ---------------------------------------------------------------------------
# Chart downsampling
# ---------------------------------------------------------------------------


def _round_half_up(value: float) -> float:
    return float(math.floor(value + 0.5))


def downsample_chart_data(
    points: Sequence[ChartPoint], limit: int = CHART_POINT_LIMIT
) -> list[ChartPoint]:
    """
    Bound a chart series to at most ``limit`` points.

    Series of ``limit`` points or fewer are returned unchanged. Longer series
    are cut into consecutive windows of ``ceil(len / limit)`` points (the last
    one may be shorter); each window becomes one point labelled with its first
    date, whose revenue and expenses are the window means rounded to the
    nearest integer.
    """
    if len(points) <= limit:
        return list(points)

    window_size = math.ceil(len(points) / limit)
    result: list[ChartPoint] = []
    for i in range(0, len(points), window_size):
        window = points[i : i + window_size]
        n = len(window)
        result.append(
            ChartPoint(
                date=window[0].date,
                full_date=window[0].full_date,
                revenue=_round_half_up(sum(p.revenue for p in window) / n),
                expenses=_round_half_up(sum(p.expenses for p in window) / n),
            )
        )
    return result


def _chart_label(full_date: str) -> str:
    # "2024-03-07" → "03/07"
    return "/".join(full_date.split("-")[1:])


# ---------------------------------------------------------------------------
# Report
# ---------------------------------------------------------------------------


def filter_report_transactions(
    transactions: Iterable[Transaction],
    start: date,
    end: date,
    search: str = "",
) -> list[Transaction]:
    """Transactions dated within ``[start, end]`` matching ``search``."""
    lower = (search or "").lower()
    out: list[Transaction] = []
    for t in transactions:
        d = parse_iso_date(t.date)
        if d is None or d < start or d > end:
            continue
        if _matches_search(t, lower, raw_text=False):
            out.append(t)
    return out


def _busiest_day(day_totals: Sequence[float]) -> str:
    # First maximum in Sunday → Saturday order wins.
    best_value = -1.0
    best_name = "N/A"
    for i, value in enumerate(day_totals):
        if value > best_value:
            best_value = value
            best_name = WEEK_DAYS_FULL[i]
    return best_name


def compute_report_stats(
    transactions: Iterable[Transaction],
    start: date,
    end: date,
    search: str = "",
    *,
    chart_limit: int = CHART_POINT_LIMIT,
) -> ReportStats:
    """
    Compute report statistics for the inclusive date range ``[start, end]``.

    Parameters
    ----------
    transactions:
        Full transaction set.
    start, end:
        Inclusive calendar bounds.
    search:
        Optional case-insensitive filter on client name or amount.
    chart_limit:
        Maximum number of chart points.
    """
    selected = filter_report_transactions(transactions, start, end, search)

    revenue = expenses = pending_debt = collected_debt = 0.0
    daily: dict[str, dict[str, float]] = {}
    expense_categories: dict[str, float] = {}
    products: dict[str, list[float]] = {}
    debtors: dict[str, float] = {}
    day_totals = [0.0] * 7

    for t in selected:
        val = t.normalized_amount
        day_entry = daily.setdefault(t.date, {"revenue": 0.0, "expenses": 0.0})

        if t.type == "sale" and t.status == "completed":
            revenue += val
            day_entry["revenue"] += val
            stat = products.setdefault(t.client, [0.0, 0])
            stat[0] += val
            stat[1] += 1
            d = parse_iso_date(t.date)
            if d is not None:
                day_totals[day_of_week_index(d)] += val
        elif t.type == "expense":
            expenses += val
            day_entry["expenses"] += val
            expense_categories[t.client] = expense_categories.get(t.client, 0.0) + val
        elif t.type == "debt":
            if t.status == "pending":
                pending_debt += val
                debtors[t.client] = debtors.get(t.client, 0.0) + val
            elif t.status == "completed":
                # A settled debt is payment received.
                collected_debt += val
                revenue += val
                day_entry["revenue"] += val

    top_products = sorted(
        (
            ProductStat(name=name, amount=amount, count=int(count))
            for name, (amount, count) in products.items()
        ),
        key=lambda p: p.amount,
        reverse=True,
    )[:TOP_N]

    raw_chart = sorted(
        (
            ChartPoint(
                date=_chart_label(key),
                full_date=key,
                revenue=v["revenue"],
                expenses=v["expenses"],
            )
            for key, v in daily.items()
        ),
        key=lambda p: p.full_date,
    )

    pie_data = sorted(
        (NamedAmount(name=n, amount=v) for n, v in expense_categories.items()),
        key=lambda p: p.amount,
        reverse=True,
    )

    top_debtors = sorted(
        (NamedAmount(name=n, amount=v) for n, v in debtors.items()),
        key=lambda p: p.amount,
        reverse=True,
    )[:TOP_N]

    total_debt = collected_debt + pending_debt
    collection_rate = collected_debt / total_debt * 100 if total_debt > 0 else 0.0

    return ReportStats(
        total_revenue=revenue,
        total_expenses=expenses,
        net_profit=revenue - expenses,
        pending_debt=pending_debt,
        collected_debt=collected_debt,
        collection_rate=collection_rate,
        busiest_day=_busiest_day(day_totals),
        top_products=top_products,
        top_debtors=top_debtors,
        pie_data=pie_data,
        weekly_activity=[
            WeekdayActivity(day=WEEK_DAYS_SHORT[i], amount=day_totals[i])
            for i in range(7)
        ],
        chart_data=downsample_chart_data(raw_chart, chart_limit),
        composition={"cash": 0.0, "debt": pending_debt, "expense": expenses},
    )
