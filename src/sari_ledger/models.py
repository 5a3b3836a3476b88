# SARI Ledger - Spreadsheet bookkeeping & analytics for small shops
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Domain records for SARI Ledger.

This module defines the two entity kinds handled by the application and the
few constants shared by the ingestion pipeline and the aggregation engine:

- Transaction:   one financial event (sale, expense, refund, debt, cash).
- InventoryItem: one stocked product.

Both records are immutable dataclasses. Edits (debt settlement, manual
corrections, stock decrements) produce new instances through
``dataclasses.replace`` and are persisted as whole-record replacements keyed
by ``id``.

Currency handling
-----------------
Amounts are stored as non-negative magnitudes in the unit of the record's
``currency`` (USD or IQD). Cross-currency sums are computed on amounts
normalized to USD with the fixed ``EXCHANGE_RATE`` (1 USD = 1520 IQD).
"""

import re
import uuid
from dataclasses import dataclass
from datetime import date, datetime
from typing import Literal, Optional

TransactionType = Literal["sale", "expense", "refund", "debt", "cash"]
TransactionStatus = Literal["completed", "pending", "failed"]
Currency = Literal["USD", "IQD"]

TRANSACTION_TYPES: tuple[str, ...] = ("sale", "expense", "refund", "debt", "cash")
TRANSACTION_STATUSES: tuple[str, ...] = ("completed", "pending", "failed")
CURRENCIES: tuple[str, ...] = ("USD", "IQD")

# 1 USD = 1520 IQD
EXCHANGE_RATE = 1520.0

ISO_DATE_RE = re.compile(r"\d{4}-\d{2}-\d{2}")


@dataclass(frozen=True)
class Transaction:
    """
    One financial event.

    Attributes
    ----------
    id:
        Opaque unique identifier, generated at creation (``TX-...``).
    type:
        One of sale, expense, refund, debt, cash.
    client:
        Counterparty display name. For expenses it doubles as a free-text
        description / category label.
    client_phone:
        Optional contact string.
    item_id:
        Optional weak reference to an InventoryItem. May dangle when the
        item is removed later.
    date:
        Calendar day as ``YYYY-MM-DD``. Authoritative for bucketing.
    time:
        Free-form display time, used together with ``date`` for ordering.
    amount:
        Non-negative magnitude in ``currency`` units.
    currency:
        USD or IQD.
    status:
        completed, pending or failed. For debts: pending = outstanding,
        completed = settled.
    method:
        Free-text origin tag ("Manual", "Import").
    raw_text:
        Optional original source text, kept for search and audit.
    """

    id: str
    type: TransactionType
    client: str
    date: str
    time: str
    amount: float
    currency: Currency
    status: TransactionStatus
    method: str
    client_phone: Optional[str] = None
    item_id: Optional[str] = None
    raw_text: Optional[str] = None

    @property
    def normalized_amount(self) -> float:
        """Amount expressed in USD."""
        return normalize_to_usd(self.amount, self.currency)


@dataclass(frozen=True)
class InventoryItem:
    """A stocked product.

    ``quantity`` may go negative under over-sale: no floor is enforced.
    """

    id: str
    name: str
    category: str
    quantity: int
    min_level: int
    price: float
    cost: float


def normalize_to_usd(amount: float, currency: str) -> float:
    """Convert an amount to USD using the fixed exchange rate."""
    if currency == "IQD":
        return amount / EXCHANGE_RATE
    return amount


def generate_transaction_id() -> str:
    """Return a new opaque transaction identifier."""
    return f"TX-{uuid.uuid4().hex[:10].upper()}"


def generate_item_id() -> str:
    """Return a new opaque inventory item identifier."""
    return f"ITM-{uuid.uuid4().hex[:10].upper()}"


def today_iso() -> str:
    """Return today's date as ``YYYY-MM-DD`` (isolated for easier testing)."""
    return datetime.today().date().isoformat()


def parse_iso_date(value: Optional[str]) -> Optional[date]:
    """
    Parse a ``YYYY-MM-DD`` string into a date.

    Returns None for empty or invalid values instead of raising, so callers
    can skip records with an unusable date for one bucket only.
    """
    if not value:
        return None
    text = str(value).strip()
    if not ISO_DATE_RE.fullmatch(text):
        return None
    try:
        return date.fromisoformat(text)
    except ValueError:
        return None


def day_of_week_index(d: date) -> int:
    """Return the weekday index with Sunday = 0 ... Saturday = 6."""
    return (d.weekday() + 1) % 7
