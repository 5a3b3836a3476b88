# SARI Ledger - Spreadsheet bookkeeping & analytics for small shops
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
View utilities for SARI Ledger.

This module turns the results of the aggregation engine, the debt grouper
and the inventory helpers into pandas DataFrames ready to be printed
(``DataFrame.to_string``) or written as CSV by the CLI. It holds no
business rules of its own apart from display formatting:

- ``display_name``: label shown for a transaction,
- ``format_currency``: amount with its currency marker,
- one ``*_to_dataframe`` helper per result type.
"""

from collections.abc import Iterable, Sequence

import pandas as pd

from .debts import DebtSummary
from .engine import (
    WEEK_DAYS_FULL,
    ChartPoint,
    DashboardStats,
    NamedAmount,
    ProductStat,
    ReportStats,
)
from .inventory import is_low_stock
from .models import InventoryItem, Transaction

IMPORTED_PLACEHOLDER = "Imported"


def display_name(t: Transaction) -> str:
    """
    Label shown for a transaction.

    Transactions without a meaningful client (empty, or the legacy
    "Imported" placeholder) are shown as ``Process #<id>`` with the ``TX-``
    prefix removed.
    """
    if not t.client or t.client == IMPORTED_PLACEHOLDER:
        short_id = t.id[3:] if t.id.startswith("TX-") else t.id
        return f"Process #{short_id}"
    return t.client


def format_currency(amount: float, currency: str = "USD", decimals: int = 2) -> str:
    """Format an amount for display: ``$1,234.50`` or ``1,234,500 IQD``."""
    if currency == "IQD":
        return f"{amount:,.0f} IQD"
    return f"${amount:,.{decimals}f}"


def transactions_to_dataframe(
    transactions: Iterable[Transaction], decimals: int = 2
) -> pd.DataFrame:
    """One display row per transaction, in the given order."""
    columns = ["id", "name", "type", "date", "time", "amount", "status", "method"]
    rows = [
        {
            "id": t.id,
            "name": display_name(t),
            "type": t.type,
            "date": t.date,
            "time": t.time,
            "amount": format_currency(t.amount, t.currency, decimals),
            "status": t.status,
            "method": t.method,
        }
        for t in transactions
    ]
    return pd.DataFrame(rows, columns=columns)


def paginate(df: pd.DataFrame, page: int, per_page: int) -> pd.DataFrame:
    """Return page ``page`` (1-based) of ``df``; out-of-range pages are empty."""
    if page < 1 or per_page < 1:
        return df.iloc[0:0]
    start = (page - 1) * per_page
    return df.iloc[start : start + per_page]


def dashboard_to_dataframe(stats: DashboardStats, decimals: int = 2) -> pd.DataFrame:
    rows = [
        ("Total sales (USD)", format_currency(stats.total_sales_usd, "USD", decimals)),
        ("Total sales (IQD)", format_currency(stats.total_sales_iqd, "IQD")),
        ("Total expenses", format_currency(stats.total_expenses, "USD", decimals)),
        ("Net profit", format_currency(stats.net_profit, "USD", decimals)),
        ("Outstanding debt", format_currency(stats.total_debt, "IQD")),
        ("Profit margin", f"{stats.profit_margin:.1f}%"),
        ("Transactions", str(stats.count)),
    ]
    return pd.DataFrame(rows, columns=["metric", "value"])


def weekly_to_dataframe(weekly: Sequence[float], decimals: int = 2) -> pd.DataFrame:
    """Seven weekday totals (Sunday first)."""
    return pd.DataFrame(
        {
            "day": list(WEEK_DAYS_FULL),
            "amount": [round(v, decimals) for v in weekly],
        }
    )


def report_summary_to_dataframe(stats: ReportStats, decimals: int = 2) -> pd.DataFrame:
    """Headline figures of a report, one metric per row."""
    rows = [
        ("Total revenue", round(stats.total_revenue, decimals)),
        ("Total expenses", round(stats.total_expenses, decimals)),
        ("Net profit", round(stats.net_profit, decimals)),
        ("Pending debt", round(stats.pending_debt, decimals)),
        ("Collected debt", round(stats.collected_debt, decimals)),
        ("Collection rate (%)", round(stats.collection_rate, 1)),
        ("Busiest day", stats.busiest_day),
    ]
    return pd.DataFrame(rows, columns=["metric", "value"])


def chart_to_dataframe(points: Sequence[ChartPoint], decimals: int = 2) -> pd.DataFrame:
    columns = ["date", "full_date", "revenue", "expenses"]
    rows = [
        {
            "date": p.date,
            "full_date": p.full_date,
            "revenue": round(p.revenue, decimals),
            "expenses": round(p.expenses, decimals),
        }
        for p in points
    ]
    return pd.DataFrame(rows, columns=columns)


def top_products_to_dataframe(
    products: Sequence[ProductStat], decimals: int = 2
) -> pd.DataFrame:
    rows = [
        {"name": p.name, "amount": round(p.amount, decimals), "count": p.count}
        for p in products
    ]
    return pd.DataFrame(rows, columns=["name", "amount", "count"])


def named_amounts_to_dataframe(
    items: Sequence[NamedAmount], decimals: int = 2
) -> pd.DataFrame:
    """Used for expense categories (pie data) and top debtors."""
    rows = [{"name": i.name, "amount": round(i.amount, decimals)} for i in items]
    return pd.DataFrame(rows, columns=["name", "amount"])


def composition_to_dataframe(
    composition: dict[str, float], decimals: int = 2
) -> pd.DataFrame:
    rows = [
        {"category": k, "amount": round(v, decimals)} for k, v in composition.items()
    ]
    return pd.DataFrame(rows, columns=["category", "amount"])


def debts_to_dataframe(debts: Iterable[DebtSummary], decimals: int = 2) -> pd.DataFrame:
    columns = ["name", "total", "count", "last_date", "phone"]
    rows = [
        {
            "name": d.name,
            "total": round(d.total, decimals),
            "count": d.count,
            "last_date": d.last_date,
            "phone": d.phone,
        }
        for d in debts
    ]
    return pd.DataFrame(rows, columns=columns)


def inventory_to_dataframe(
    items: Iterable[InventoryItem], decimals: int = 2
) -> pd.DataFrame:
    """Inventory listing with a ``low_stock`` flag per item."""
    columns = [
        "id",
        "name",
        "category",
        "quantity",
        "min_level",
        "price",
        "cost",
        "low_stock",
    ]
    rows = [
        {
            "id": i.id,
            "name": i.name,
            "category": i.category,
            "quantity": i.quantity,
            "min_level": i.min_level,
            "price": round(i.price, decimals),
            "cost": round(i.cost, decimals),
            "low_stock": is_low_stock(i),
        }
        for i in items
    ]
    return pd.DataFrame(rows, columns=columns)
