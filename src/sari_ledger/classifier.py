# SARI Ledger - Spreadsheet bookkeeping & analytics for small shops
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Row classification for imported spreadsheets.

Once the header row is located (see ``header.py``), every row below it is
turned into a candidate Transaction:

1) name:   mapped name cell, else the first "label-looking" string of the
           row, else a fallback label ("Imported Item" by default),
2) amount: mapped price cell; numbers are used as-is, strings are stripped
           of everything but digits and dots (``"1,234.56 IQD"`` → 1234.56),
3) date:   mapped date cell when it looks like ``YYYY-MM-DD``, else today,
4) type:   keyword match on the lowercase name, expense keywords first,
           then debt keywords, sale otherwise.

Rows without a usable (non-zero) amount are dropped, never stored as zero.
Imported rows are IQD-denominated, carry the placeholder time ``"12:00"``
and the method tag ``"Import"``. Each extractor below returns either a value
or its documented fallback and never raises on bad cell data.
"""

import re
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Optional

from .header import (
    Cell,
    Grid,
    HeaderLocation,
    Row,
    cell_to_text,
    is_empty_cell,
    locate_header,
)
from .inventory import link_inventory_item
from .logging_setup import get_logger
from .models import (
    ISO_DATE_RE,
    InventoryItem,
    Transaction,
    TransactionStatus,
    TransactionType,
    generate_transaction_id,
    today_iso,
)

logger = get_logger("sari_ledger.classifier")

DEFAULT_FALLBACK_NAME = "Imported Item"
IMPORT_TIME = "12:00"
IMPORT_METHOD = "Import"
IMPORT_CURRENCY = "IQD"

# Arabic (Iraqi usage) and English terms.
EXPENSE_KEYWORDS: tuple[str, ...] = (
    "فاتورة",  # invoice / bill
    "ايجار",  # rent
    "راتب",  # salary
    "كهرباء",  # electricity
    "انترنت",  # internet
    "صيانة",  # maintenance
    "شراء",  # purchase
    "صرف",  # disbursement
    "expense",
    "bill",
    "invoice",
    "rent",
    "salary",
    "electricity",
)

DEBT_KEYWORDS: tuple[str, ...] = (
    "دين",  # debt
    "اجل",  # deferred payment
    "آجل",
    "قرض",  # loan
    "قسط",  # installment
    "debt",
    "credit",
    "installment",
)

_NON_NUMERIC_RE = re.compile(r"[^0-9.]")
_LEADING_NUMBER_RE = re.compile(r"\d+(?:\.\d*)?|\.\d+")


@dataclass(frozen=True)
class ClassificationResult:
    """Outcome of classifying a whole grid."""

    header: HeaderLocation
    transactions: list[Transaction] = field(default_factory=list)
    dropped_rows: list[int] = field(default_factory=list)


def _cell_at(row: Row, index: Optional[int]) -> Cell:
    if index is None or index < 0 or index >= len(row):
        return None
    return row[index]


# ---------------------------------------------------------------------------
# Typed extractors
# ---------------------------------------------------------------------------


def extract_name(row: Row, name_index: Optional[int], fallback: str) -> str:
    """
    Extract the display name of a row.

    Order of preference:
      1) the mapped name cell when present and non-empty,
      2) the first string cell longer than 2 characters that contains no comma
         and no ``YYYY-MM-DD`` date,
      3) ``fallback``.
    """
    mapped = _cell_at(row, name_index)
    if not is_empty_cell(mapped):
        text = cell_to_text(mapped)
        if text:
            return text

    for cell in row:
        if (
            isinstance(cell, str)
            and len(cell) > 2
            and "," not in cell
            and not ISO_DATE_RE.search(cell)
        ):
            return cell

    return fallback


def parse_amount_text(text: str) -> float:
    """
    Parse the numeric part of a free-text amount.

    Every character that is not a digit or a dot is removed, then the leading
    number is read (``"1.2.3"`` reads as 1.2). Returns 0.0 when nothing
    numeric is left.
    """
    cleaned = _NON_NUMERIC_RE.sub("", text)
    m = _LEADING_NUMBER_RE.match(cleaned)
    if m is None:
        return 0.0
    return float(m.group(0))


def extract_amount(row: Row, price_index: Optional[int]) -> float:
    """
    Extract the absolute amount of a row; 0.0 means "no usable amount".
    """
    raw = _cell_at(row, price_index)
    if is_empty_cell(raw) or isinstance(raw, bool):
        return 0.0
    if isinstance(raw, (int, float)):
        return abs(float(raw))
    if isinstance(raw, str):
        return abs(parse_amount_text(raw))
    return 0.0


def extract_date(row: Row, date_index: Optional[int], today: str) -> str:
    """
    Extract the ``YYYY-MM-DD`` date of a row.

    A cell that is exactly a ``YYYY-MM-DD`` string is returned unchanged;
    anything else (including date-times written as text) yields ``today``.
    Spreadsheet date cells are already rendered as ``YYYY-MM-DD`` by the
    decoder.
    """
    raw = _cell_at(row, date_index)
    if is_empty_cell(raw):
        return today
    text = cell_to_text(raw).strip()
    if ISO_DATE_RE.fullmatch(text):
        return text
    return today


def classify_name(name: str) -> tuple[TransactionType, TransactionStatus]:
    """Return (type, status) for a row name. Expense keywords win over debt."""
    lower = name.lower()
    if any(k in lower for k in EXPENSE_KEYWORDS):
        return "expense", "completed"
    if any(k in lower for k in DEBT_KEYWORDS):
        return "debt", "pending"
    return "sale", "completed"


# ---------------------------------------------------------------------------
# Grid classification
# ---------------------------------------------------------------------------


def classify_row(
    row: Row,
    header: HeaderLocation,
    inventory: Sequence[InventoryItem],
    *,
    today: str,
    fallback_name: str = DEFAULT_FALLBACK_NAME,
) -> Optional[Transaction]:
    """
    Classify a single data row. Returns None when the row must be dropped.
    """
    if not row:
        return None

    cols = header.columns
    amount = extract_amount(row, cols.price)
    if amount == 0:
        return None

    name = extract_name(row, cols.name, fallback_name)
    tx_date = extract_date(row, cols.date, today)
    tx_type, status = classify_name(name)
    item = link_inventory_item(name, inventory)

    raw_text = " | ".join(t for t in (cell_to_text(c) for c in row) if t)

    return Transaction(
        id=generate_transaction_id(),
        type=tx_type,
        client=name,
        date=tx_date,
        time=IMPORT_TIME,
        amount=amount,
        currency=IMPORT_CURRENCY,
        status=status,
        method=IMPORT_METHOD,
        item_id=item.id if item is not None else None,
        raw_text=raw_text or None,
    )


def classify_rows(
    grid: Grid,
    inventory: Sequence[InventoryItem] = (),
    *,
    today: Optional[str] = None,
    fallback_name: str = DEFAULT_FALLBACK_NAME,
) -> ClassificationResult:
    """
    Locate the header of ``grid`` and classify every data row below it.

    Parameters
    ----------
    grid:
        Decoded row grid.
    inventory:
        Snapshot of inventory items used to link rows by exact
        (case-insensitive) name. Stock is never modified here.
    today:
        Date used for rows without a usable date. Defaults to the current
        date at processing time.
    fallback_name:
        Label for rows without any usable name.

    Returns
    -------
    ClassificationResult
        The header location, the classified transactions (possibly empty)
        and the indices of rows dropped for lack of an amount.
    """
    if today is None:
        today = today_iso()

    header = locate_header(grid)
    transactions: list[Transaction] = []
    dropped: list[int] = []

    for i in range(header.first_data_row, len(grid)):
        row = grid[i]
        if not row:
            continue
        tx = classify_row(
            row,
            header,
            inventory,
            today=today,
            fallback_name=fallback_name,
        )
        if tx is None:
            dropped.append(i)
            continue
        transactions.append(tx)

    logger.debug(
        "Classified %d row(s), dropped %d row(s) without amount (header row: %s)",
        len(transactions),
        len(dropped),
        header.header_row_index,
    )
    return ClassificationResult(
        header=header, transactions=transactions, dropped_rows=dropped
    )
