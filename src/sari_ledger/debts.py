# SARI Ledger - Spreadsheet bookkeeping & analytics for small shops
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Debtor summaries and debt settlement.

``group_debts`` derives one summary per client from the *pending* debt
transactions: outstanding total, number of open debts, most recent debt date
and the last known phone number.

``settle_client_debts`` is the batch transition used when a client pays off
everything: every pending debt of that client becomes ``completed`` and is
re-dated to the settlement day. Records are never deleted, so the history of
individual debts is preserved. The function is pure and returns the updated
records; persisting them is up to the caller.
"""

from collections.abc import Iterable
from dataclasses import dataclass, replace
from datetime import date
from typing import Optional

from .models import Transaction, parse_iso_date, today_iso


@dataclass(frozen=True)
class DebtSummary:
    """Outstanding debt of one client."""

    name: str
    total: float
    count: int
    last_date: str
    phone: str


def is_pending_debt(t: Transaction) -> bool:
    return t.type == "debt" and t.status == "pending"


def group_debts(transactions: Iterable[Transaction]) -> list[DebtSummary]:
    """
    Group pending debts by client, in order of first appearance.

    ``last_date`` is the latest debt date by calendar comparison; dates that
    cannot be parsed never replace it. ``phone`` is the most recently seen
    non-empty ``client_phone``. Totals are summed in each record's own
    currency units, without normalization.
    """
    totals: dict[str, float] = {}
    counts: dict[str, int] = {}
    last_dates: dict[str, str] = {}
    parsed_last: dict[str, Optional[date]] = {}
    phones: dict[str, str] = {}

    for t in transactions:
        if not is_pending_debt(t):
            continue
        name = t.client
        if name not in totals:
            totals[name] = 0.0
            counts[name] = 0
            last_dates[name] = t.date
            parsed_last[name] = parse_iso_date(t.date)
            phones[name] = t.client_phone or ""

        totals[name] += t.amount
        counts[name] += 1

        current = parse_iso_date(t.date)
        latest = parsed_last[name]
        if current is not None and (latest is None or current > latest):
            last_dates[name] = t.date
            parsed_last[name] = current

        if t.client_phone:
            phones[name] = t.client_phone

    return [
        DebtSummary(
            name=name,
            total=totals[name],
            count=counts[name],
            last_date=last_dates[name],
            phone=phones[name],
        )
        for name in totals
    ]


def settle_client_debts(
    transactions: Iterable[Transaction],
    client: str,
    *,
    today: Optional[str] = None,
) -> list[Transaction]:
    """
    Return the pending debts of ``client`` marked completed and dated today.

    An unknown client (or one without pending debts) yields an empty list.
    """
    settled_on = today or today_iso()
    return [
        replace(t, status="completed", date=settled_on)
        for t in transactions
        if is_pending_debt(t) and t.client == client
    ]
