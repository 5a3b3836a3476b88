# SARI Ledger - Spreadsheet bookkeeping & analytics for small shops
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.


"""
High-level ledger services.

This module sits between:
- the low-level store helpers in `db.py`, and
- user-facing layers such as the CLI.

It combines the stores with the pure core (classification, aggregation,
debt grouping, inventory helpers) and exposes one function per user action.

Responsibilities
----------------
1) Import
   - Read a spreadsheet file, decode and classify it in a background worker,
     then append the proposed transactions to the store as one batch.

2) Transaction CRUD
   - Manual entry (with stock decrement for linked sales and debts).
   - Whole-record edit, delete one, clear everything.

3) Debts
   - Settle every pending debt of one client.

4) Inventory CRUD

5) Snapshots and reporting
   - Load the current collections and hand them to the engine.
   - Export the full transaction collection.

Design notes
------------
- Store failures (``sqlite3.Error``) are logged and re-raised as
  ``ProcessingError``. Values already computed for the caller are not
  reverted.
- Operations on missing records are no-ops: they return None (or an empty
  list) and log a warning.
"""

import math
import sqlite3
from collections.abc import Callable, Sequence
from dataclasses import dataclass, fields, replace
from datetime import date, datetime
from pathlib import Path
from typing import Optional, TypeVar

import pandas as pd

from .config import AppConfig
from .db import DatabaseConfig, ImportStats
from .db import (
    clear_store as _db_clear_store,
)
from .db import (
    delete_inventory_item as _db_delete_inventory_item,
)
from .db import (
    delete_transaction as _db_delete_transaction,
)
from .db import (
    get_inventory_item as _db_get_inventory_item,
)
from .db import (
    get_transaction as _db_get_transaction,
)
from .db import (
    has_transactions as _db_has_transactions,
)
from .db import (
    import_transactions as _db_import_transactions,
)
from .db import (
    list_import_batches as _db_list_import_batches,
)
from .db import (
    load_inventory as _db_load_inventory,
)
from .db import (
    load_transactions as _db_load_transactions,
)
from .db import (
    put_inventory_item as _db_put_inventory_item,
)
from .db import (
    put_transaction as _db_put_transaction,
)
from .db import (
    put_transactions as _db_put_transactions,
)
from .debts import DebtSummary, group_debts, settle_client_debts
from .engine import (
    DashboardStats,
    ReportStats,
    compute_dashboard_stats,
    compute_report_stats,
    working_set,
)
from .ingest import ImportOutcome, IngestionError, start_import
from .inventory import (
    InventoryStats,
    compute_inventory_stats,
    decrement_stock,
)
from .io import export_transactions
from .logging_setup import get_logger
from .models import (
    InventoryItem,
    Transaction,
    generate_item_id,
    generate_transaction_id,
    today_iso,
)
from .periods import Period

logger = get_logger("sari_ledger.ledger_service")

MANUAL_TYPES = ("sale", "expense", "debt")
MANUAL_METHOD = "Manual"

T = TypeVar("T")


class ProcessingError(Exception):
    """Raised when the store rejects a write."""


@dataclass(frozen=True)
class ImportReport:
    """
    Result of importing one file into the store.

    Attributes
    ----------
    outcome:
        Decoded and classified rows.
    stats:
        Batch identifier and number of rows written.
    """

    outcome: ImportOutcome
    stats: ImportStats

    @property
    def imported_count(self) -> int:
        return self.stats.rows_inserted


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _get_db_config(app_config: AppConfig) -> DatabaseConfig:
    """Convenience helper to access the database configuration."""
    return app_config.database


def _store_call(action: str, func: Callable[..., T], *args, **kwargs) -> T:
    """Run a store function, turning sqlite errors into ProcessingError."""
    try:
        return func(*args, **kwargs)
    except sqlite3.Error as exc:
        logger.error("Store failure while trying to %s: %s", action, exc)
        raise ProcessingError(f"Failed to {action}: {exc}") from exc


def _require_positive(value: float, label: str) -> None:
    if not isinstance(value, (int, float)) or not math.isfinite(value) or value <= 0:
        raise ValueError(f"{label} must be a number greater than zero.")


def _current_time_label(now: Optional[datetime] = None) -> str:
    return (now or datetime.now()).strftime("%I:%M %p")


# ---------------------------------------------------------------------------
# Snapshots
# ---------------------------------------------------------------------------


def load_transactions(app_config: AppConfig) -> list[Transaction]:
    """Return the current transaction collection, in insertion order."""
    return _store_call(
        "load transactions", _db_load_transactions, _get_db_config(app_config)
    )


def load_inventory(app_config: AppConfig) -> list[InventoryItem]:
    """Return the current inventory collection, in insertion order."""
    return _store_call(
        "load inventory", _db_load_inventory, _get_db_config(app_config)
    )


def get_transaction(
    app_config: AppConfig, transaction_id: str
) -> Optional[Transaction]:
    return _store_call(
        "load transaction",
        _db_get_transaction,
        _get_db_config(app_config),
        transaction_id,
    )


def has_transactions(app_config: AppConfig) -> bool:
    """Return True if at least one transaction is stored."""
    return _store_call(
        "check the ledger", _db_has_transactions, _get_db_config(app_config)
    )


# ---------------------------------------------------------------------------
# Import
# ---------------------------------------------------------------------------


def import_bytes(
    app_config: AppConfig,
    data: bytes,
    filename: Optional[str] = None,
    *,
    today: Optional[str] = None,
) -> ImportReport:
    """
    Decode, classify and append one spreadsheet given as raw bytes.

    The inventory snapshot used for name linking is taken before the worker
    starts. An empty batch is a success and writes nothing but the batch
    row.

    Raises
    ------
    IngestionError
        When the file cannot be decoded (nothing is written).
    ProcessingError
        When the store rejects the batch.
    """
    opts = app_config.import_options
    inventory = load_inventory(app_config)

    task = start_import(
        data,
        filename,
        inventory,
        worker=opts.worker,
        today=today,
        fallback_name=opts.fallback_item_name,
    )
    try:
        outcome = task.result(timeout=opts.timeout_seconds)
    except IngestionError as exc:
        logger.error("Import of %s failed: %s", task.source_label, exc)
        raise

    stats = _store_call(
        "append imported transactions",
        _db_import_transactions,
        _get_db_config(app_config),
        outcome.transactions,
        source_label=outcome.source_label,
    )
    logger.info(
        "Imported %d transaction(s) from %s (%d row(s) read, %d dropped)",
        stats.rows_inserted,
        outcome.source_label,
        outcome.row_count,
        len(outcome.dropped_rows),
    )
    return ImportReport(outcome=outcome, stats=stats)


def import_file(
    app_config: AppConfig,
    path: str | Path,
    *,
    today: Optional[str] = None,
) -> ImportReport:
    """Read ``path`` and import it; see ``import_bytes``."""
    p = Path(path)
    if not p.is_file():
        raise FileNotFoundError(f"Spreadsheet file not found: {p}")
    return import_bytes(app_config, p.read_bytes(), p.name, today=today)


def list_imports(app_config: AppConfig) -> pd.DataFrame:
    """
    Return the import history, most recent first.

    Columns: id, created_at, source_label, rows_inserted.
    """
    return _store_call(
        "list imports", _db_list_import_batches, _get_db_config(app_config)
    )


# ---------------------------------------------------------------------------
# Transactions
# ---------------------------------------------------------------------------


def add_manual_transaction(
    app_config: AppConfig,
    *,
    type: str,
    amount: float,
    client: str = "",
    description: str = "",
    client_phone: Optional[str] = None,
    item_id: Optional[str] = None,
    now: Optional[datetime] = None,
) -> Transaction:
    """
    Record a manually entered sale, expense or debt.

    Parameters
    ----------
    type:
        "sale", "expense" or "debt".
    amount:
        Strictly positive magnitude, in the store currency.
    client:
        Counterparty for sales and debts. Defaults to the first known
        company when empty.
    description:
        Label stored as ``client`` for expenses, as given (may be empty).
    client_phone:
        Optional contact for sales and debts.
    item_id:
        Optional inventory item. For sales and debts an existing item loses
        exactly one unit of stock.
    now:
        Clock used for date and time (isolated for testing).

    Raises
    ------
    ValueError
        If the type is not a manual type or the amount is not positive.
    ProcessingError
        If the store rejects a write.
    """
    if type not in MANUAL_TYPES:
        raise ValueError(
            f"Invalid manual transaction type {type!r}, expected one of {MANUAL_TYPES}."
        )
    _require_positive(amount, "Amount")

    store = app_config.store
    moment = now or datetime.now()

    if type == "expense":
        counterparty = description
        phone = None
        linked_item = None
    else:
        default_client = store.known_companies[0] if store.known_companies else ""
        counterparty = client.strip() or default_client
        phone = client_phone or None
        linked_item = item_id or None

    transaction = Transaction(
        id=generate_transaction_id(),
        type=type,  # type: ignore[arg-type]
        client=counterparty,
        client_phone=phone,
        item_id=linked_item,
        date=moment.date().isoformat(),
        time=_current_time_label(moment),
        amount=float(amount),
        currency=store.currency,  # type: ignore[arg-type]
        status="pending" if type == "debt" else "completed",
        method=MANUAL_METHOD,
    )

    db_cfg = _get_db_config(app_config)
    _store_call("save transaction", _db_put_transaction, db_cfg, transaction)

    if linked_item:
        item = _store_call(
            "load inventory item", _db_get_inventory_item, db_cfg, linked_item
        )
        if item is None:
            logger.warning("Inventory item %s not found, stock unchanged", linked_item)
        else:
            _store_call(
                "update stock", _db_put_inventory_item, db_cfg, decrement_stock(item)
            )

    logger.info("Recorded manual %s %s", transaction.type, transaction.id)
    return transaction


def edit_transaction(
    app_config: AppConfig,
    transaction_id: str,
    **changes,
) -> Optional[Transaction]:
    """
    Replace an existing transaction with a copy carrying ``changes``.

    Returns the stored record, or None when ``transaction_id`` is unknown.

    Raises
    ------
    ValueError
        If the resulting amount is not positive, or a field is unknown.
    """
    current = get_transaction(app_config, transaction_id)
    if current is None:
        logger.warning("Edit ignored: transaction %s not found", transaction_id)
        return None

    changes.pop("id", None)
    unknown = set(changes) - {f.name for f in fields(Transaction)}
    if unknown:
        raise ValueError(f"Unknown transaction field(s): {sorted(unknown)}")
    updated = replace(current, **changes)
    _require_positive(updated.amount, "Amount")

    _store_call(
        "save transaction",
        _db_put_transaction,
        _get_db_config(app_config),
        updated,
    )
    return updated


def delete_transaction(app_config: AppConfig, transaction_id: str) -> bool:
    """Delete one transaction; False when it did not exist."""
    deleted = _store_call(
        "delete transaction",
        _db_delete_transaction,
        _get_db_config(app_config),
        transaction_id,
    )
    if not deleted:
        logger.warning("Delete ignored: transaction %s not found", transaction_id)
    return deleted


def clear_all(app_config: AppConfig) -> None:
    """Empty both the transaction and the inventory stores."""
    _store_call("clear the store", _db_clear_store, _get_db_config(app_config))
    logger.info("All transactions and inventory items removed")


# ---------------------------------------------------------------------------
# Debts
# ---------------------------------------------------------------------------


def list_debtors(app_config: AppConfig) -> list[DebtSummary]:
    return group_debts(load_transactions(app_config))


def settle_client(
    app_config: AppConfig,
    client: str,
    *,
    today: Optional[str] = None,
) -> list[Transaction]:
    """
    Mark every pending debt of ``client`` as completed, dated today.

    Returns the updated records (empty when the client has no pending debt).
    """
    settled = settle_client_debts(
        load_transactions(app_config), client, today=today or today_iso()
    )
    if not settled:
        logger.warning("No pending debts for %r", client)
        return []

    _store_call(
        "settle debts",
        _db_put_transactions,
        _get_db_config(app_config),
        settled,
    )
    logger.info("Settled %d debt(s) for %r", len(settled), client)
    return settled


# ---------------------------------------------------------------------------
# Inventory
# ---------------------------------------------------------------------------


def save_inventory_item(
    app_config: AppConfig,
    *,
    name: str,
    price: float,
    category: str = "",
    quantity: int = 0,
    min_level: int = 0,
    cost: float = 0.0,
    item_id: Optional[str] = None,
) -> InventoryItem:
    """
    Insert or replace an inventory item.

    A new identifier is generated when ``item_id`` is not given.

    Raises
    ------
    ValueError
        If the name is empty or the price is not positive.
    """
    if not name or not name.strip():
        raise ValueError("Item name is required.")
    _require_positive(price, "Item price")
    if cost and not math.isfinite(cost):
        raise ValueError("Item cost must be a finite number.")

    item = InventoryItem(
        id=item_id or generate_item_id(),
        name=name.strip(),
        category=category,
        quantity=int(quantity),
        min_level=int(min_level),
        price=float(price),
        cost=float(cost or 0.0),
    )
    _store_call(
        "save inventory item",
        _db_put_inventory_item,
        _get_db_config(app_config),
        item,
    )
    return item


def delete_inventory_item(app_config: AppConfig, item_id: str) -> bool:
    """Delete one item. Transactions referencing it keep the dangling id."""
    deleted = _store_call(
        "delete inventory item",
        _db_delete_inventory_item,
        _get_db_config(app_config),
        item_id,
    )
    if not deleted:
        logger.warning("Delete ignored: inventory item %s not found", item_id)
    return deleted


def inventory_stats(app_config: AppConfig) -> InventoryStats:
    return compute_inventory_stats(load_inventory(app_config))


# ---------------------------------------------------------------------------
# Reporting
# ---------------------------------------------------------------------------


def dashboard(
    app_config: AppConfig,
    *,
    search: str = "",
    sort: str = "newest",
) -> tuple[list[Transaction], DashboardStats]:
    """Return the dashboard working set and its statistics."""
    rows = working_set(
        load_transactions(app_config), view="dashboard", search=search, sort=sort
    )
    return rows, compute_dashboard_stats(rows)


def list_transactions(
    app_config: AppConfig,
    *,
    view: str = "transactions",
    search: str = "",
    history_type: str = "all",
    sort: str = "newest",
) -> list[Transaction]:
    return working_set(
        load_transactions(app_config),
        view=view,
        search=search,
        history_type=history_type,
        sort=sort,
    )


def report(
    app_config: AppConfig,
    period: Period,
    *,
    search: str = "",
) -> ReportStats:
    """Compute the report statistics over ``period`` (inclusive)."""
    start: date = period.start
    end: date = period.end
    return compute_report_stats(load_transactions(app_config), start, end, search)


def export(app_config: AppConfig, path: str | Path) -> Path:
    """Write every transaction to ``path`` (.xlsx or .csv)."""
    transactions: Sequence[Transaction] = load_transactions(app_config)
    out = export_transactions(transactions, path)
    logger.info("Exported %d transaction(s) to %s", len(transactions), out)
    return out
