# SARI Ledger - Spreadsheet bookkeeping & analytics for small shops
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.


"""
Database layer for SARI Ledger.

This module is the persistent record store behind the application. It keeps
two keyed collections, transactions and inventory items, in a single SQLite
file. Every mutation is a whole-record insert-or-replace keyed by ``id``
(last writer wins); there is no locking because the application assumes a
single writer.

------------------------------------------------------------------------------
Schema Overview
------------------------------------------------------------------------------

1) import_batches
   One row per spreadsheet import.

   Columns:
   - id             INTEGER PRIMARY KEY AUTOINCREMENT
   - created_at     TEXT    NOT NULL (ISO datetime, UTC)
   - source_label   TEXT    NOT NULL  -- file name
   - rows_inserted  INTEGER NOT NULL

2) transactions
   Columns:
   - id              TEXT    PRIMARY KEY  -- "TX-..."
   - type            TEXT    NOT NULL     -- sale | expense | refund | debt | cash
   - client          TEXT    NOT NULL
   - client_phone    TEXT
   - item_id         TEXT                 -- weak reference, may dangle
   - date            TEXT    NOT NULL     -- "YYYY-MM-DD"
   - time            TEXT    NOT NULL
   - amount          REAL    NOT NULL     -- positive, in `currency` units
   - currency        TEXT    NOT NULL     -- USD | IQD
   - status          TEXT    NOT NULL     -- completed | pending | failed
   - method          TEXT    NOT NULL     -- Manual | Import
   - raw_text        TEXT
   - import_batch_id INTEGER              -- NULL for manual entries
   - updated_at      TEXT

3) inventory_items
   Columns:
   - id          TEXT    PRIMARY KEY  -- "ITM-..."
   - name        TEXT    NOT NULL
   - category    TEXT    NOT NULL
   - quantity    INTEGER NOT NULL     -- may be negative
   - min_level   INTEGER NOT NULL
   - price       REAL    NOT NULL
   - cost        REAL    NOT NULL

------------------------------------------------------------------------------
Notes
------------------------------------------------------------------------------

- Upserts use ``INSERT ... ON CONFLICT(id) DO UPDATE`` so that a replaced
  record keeps its original insertion position (rowid).
- Collections are loaded in insertion order.
- Bulk writes are issued in one statement batch; a failure part way is
  reported to the caller as ``sqlite3.Error``.
"""

from __future__ import annotations

import sqlite3
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path

import pandas as pd

from .models import InventoryItem, Transaction

# ---------------------------------------------------------------------------
# Dataclasses
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class DatabaseConfig:
    """
    Database configuration for SARI Ledger.

    Attributes
    ----------
    engine:
        Database engine identifier. Only "sqlite" is supported.
    path:
        Path to the SQLite database file.
    """

    engine: str
    path: Path


@dataclass(frozen=True)
class ImportStats:
    """
    Summary of a bulk write of imported transactions.

    Attributes
    ----------
    batch_id:
        Identifier of the row in `import_batches`.
    rows_inserted:
        Number of transactions written.
    """

    batch_id: int
    rows_inserted: int


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _ensure_sqlite(cfg: DatabaseConfig) -> None:
    """Raise if the configuration does not refer to a supported engine."""
    if cfg.engine.lower() != "sqlite":
        msg = (
            f"Unsupported database engine: {cfg.engine!r}. "
            "Only 'sqlite' is supported for now."
        )
        raise ValueError(msg)


def _connect(cfg: DatabaseConfig) -> sqlite3.Connection:
    """
    Open a SQLite connection with foreign keys enabled.

    The caller is responsible for closing the connection.
    """
    _ensure_sqlite(cfg)
    conn = sqlite3.connect(cfg.path)
    conn.execute("PRAGMA foreign_keys = ON;")
    return conn


def _create_schema_if_needed(conn: sqlite3.Connection) -> None:
    """Create tables and indexes if they do not exist yet (idempotent)."""
    conn.execute(
        """
        CREATE TABLE IF NOT EXISTS import_batches (
            id            INTEGER PRIMARY KEY AUTOINCREMENT,
            created_at    TEXT    NOT NULL,
            source_label  TEXT    NOT NULL,
            rows_inserted INTEGER NOT NULL DEFAULT 0
        );
        """
    )

    conn.execute(
        """
        CREATE TABLE IF NOT EXISTS transactions (
            id              TEXT    PRIMARY KEY,
            type            TEXT    NOT NULL,
            client          TEXT    NOT NULL,
            client_phone    TEXT,
            item_id         TEXT,
            date            TEXT    NOT NULL,  -- ISO date 'YYYY-MM-DD'
            time            TEXT    NOT NULL,
            amount          REAL    NOT NULL,
            currency        TEXT    NOT NULL,
            status          TEXT    NOT NULL,
            method          TEXT    NOT NULL,
            raw_text        TEXT,
            import_batch_id INTEGER,
            updated_at      TEXT,

            FOREIGN KEY (import_batch_id) REFERENCES import_batches(id)
        );
        """
    )

    conn.execute(
        """
        CREATE TABLE IF NOT EXISTS inventory_items (
            id          TEXT    PRIMARY KEY,
            name        TEXT    NOT NULL,
            category    TEXT    NOT NULL DEFAULT '',
            quantity    INTEGER NOT NULL DEFAULT 0,
            min_level   INTEGER NOT NULL DEFAULT 0,
            price       REAL    NOT NULL DEFAULT 0,
            cost        REAL    NOT NULL DEFAULT 0
        );
        """
    )

    conn.execute(
        """
        CREATE INDEX IF NOT EXISTS idx_transactions_date
            ON transactions(date);
        """
    )
    conn.execute(
        """
        CREATE INDEX IF NOT EXISTS idx_transactions_type
            ON transactions(type);
        """
    )

    conn.commit()


def _now_utc_iso() -> str:
    """Return the current UTC datetime as ISO string."""
    return datetime.now(timezone.utc).isoformat(timespec="seconds")


_TX_COLUMNS = (
    "id, type, client, client_phone, item_id, date, time, amount, "
    "currency, status, method, raw_text"
)

_UPSERT_TRANSACTION = f"""
    INSERT INTO transactions ({_TX_COLUMNS}, import_batch_id, updated_at)
    VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
    ON CONFLICT(id) DO UPDATE SET
        type         = excluded.type,
        client       = excluded.client,
        client_phone = excluded.client_phone,
        item_id      = excluded.item_id,
        date         = excluded.date,
        time         = excluded.time,
        amount       = excluded.amount,
        currency     = excluded.currency,
        status       = excluded.status,
        method       = excluded.method,
        raw_text     = excluded.raw_text,
        updated_at   = excluded.updated_at;
"""

_UPSERT_ITEM = """
    INSERT INTO inventory_items (
        id, name, category, quantity, min_level, price, cost
    )
    VALUES (?, ?, ?, ?, ?, ?, ?)
    ON CONFLICT(id) DO UPDATE SET
        name        = excluded.name,
        category    = excluded.category,
        quantity    = excluded.quantity,
        min_level   = excluded.min_level,
        price       = excluded.price,
        cost        = excluded.cost;
"""


def _transaction_params(
    t: Transaction, batch_id: int | None, updated_at: str
) -> tuple:
    return (
        t.id,
        t.type,
        t.client,
        t.client_phone,
        t.item_id,
        t.date,
        t.time,
        float(t.amount),
        t.currency,
        t.status,
        t.method,
        t.raw_text,
        batch_id,
        updated_at,
    )


def _row_to_transaction(row: tuple) -> Transaction:
    """
    Convert a database row into a Transaction.

    Expected row layout: the columns of ``_TX_COLUMNS`` in order.
    """
    (
        tx_id,
        tx_type,
        client,
        client_phone,
        item_id,
        date_str,
        time_str,
        amount,
        currency,
        status,
        method,
        raw_text,
    ) = row
    return Transaction(
        id=tx_id,
        type=tx_type,
        client=client,
        client_phone=client_phone,
        item_id=item_id,
        date=date_str,
        time=time_str,
        amount=float(amount),
        currency=currency,
        status=status,
        method=method,
        raw_text=raw_text,
    )


def _row_to_item(row: tuple) -> InventoryItem:
    item_id, name, category, quantity, min_level, price, cost = row
    return InventoryItem(
        id=item_id,
        name=name,
        category=category,
        quantity=int(quantity),
        min_level=int(min_level),
        price=float(price),
        cost=float(cost),
    )


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def init_database(cfg: DatabaseConfig) -> None:
    """
    Initialize the database schema if needed.

    - Creates the SQLite file (and its parent directory) if missing.
    - Creates tables and indexes if they are missing.
    - This function is idempotent: calling it multiple times is safe.

    Raises
    ------
    ValueError
        If cfg.engine is not supported.
    sqlite3.Error
        If schema creation fails.
    """
    _ensure_sqlite(cfg)
    cfg.path.parent.mkdir(parents=True, exist_ok=True)

    conn = _connect(cfg)
    try:
        _create_schema_if_needed(conn)
    finally:
        conn.close()


def put_transaction(cfg: DatabaseConfig, transaction: Transaction) -> None:
    """Insert or replace one transaction (keyed by id)."""
    init_database(cfg)

    conn = _connect(cfg)
    try:
        conn.execute(
            _UPSERT_TRANSACTION,
            _transaction_params(transaction, None, _now_utc_iso()),
        )
        conn.commit()
    finally:
        conn.close()


def put_transactions(cfg: DatabaseConfig, transactions: Iterable[Transaction]) -> int:
    """Insert or replace several transactions; returns how many were written."""
    init_database(cfg)
    now = _now_utc_iso()
    params = [_transaction_params(t, None, now) for t in transactions]

    conn = _connect(cfg)
    try:
        conn.executemany(_UPSERT_TRANSACTION, params)
        conn.commit()
    finally:
        conn.close()
    return len(params)


def import_transactions(
    cfg: DatabaseConfig,
    transactions: Iterable[Transaction],
    *,
    source_label: str,
    imported_at: datetime | None = None,
) -> ImportStats:
    """
    Append a batch of imported transactions.

    Parameters
    ----------
    cfg:
        Database configuration.
    transactions:
        Classified records to append.
    source_label:
        Human-readable origin of the batch (file name).
    imported_at:
        Timestamp of the import. If None, uses the current UTC time.

    Behavior
    --------
    - Creates a row in import_batches.
    - Writes every transaction with ``import_batch_id`` set to that row.
    - Updates import_batches.rows_inserted.

    Returns
    -------
    ImportStats
        - batch_id
        - rows_inserted
    """
    init_database(cfg)

    if imported_at is None:
        imported_at_iso = _now_utc_iso()
    else:
        imported_at_iso = imported_at.isoformat(timespec="seconds")

    batch = list(transactions)

    conn = _connect(cfg)
    try:
        cur = conn.cursor()
        cur.execute(
            """
            INSERT INTO import_batches (created_at, source_label, rows_inserted)
            VALUES (?, ?, 0);
            """,
            (imported_at_iso, source_label),
        )
        batch_id = cur.lastrowid

        cur.executemany(
            _UPSERT_TRANSACTION,
            [_transaction_params(t, batch_id, imported_at_iso) for t in batch],
        )

        cur.execute(
            """
            UPDATE import_batches
               SET rows_inserted = ?
             WHERE id = ?;
            """,
            (len(batch), batch_id),
        )
        conn.commit()
    finally:
        conn.close()

    return ImportStats(batch_id=batch_id, rows_inserted=len(batch))


def get_transaction(cfg: DatabaseConfig, transaction_id: str) -> Transaction | None:
    """Load one transaction by id, or None if it does not exist."""
    init_database(cfg)

    conn = _connect(cfg)
    try:
        cur = conn.execute(
            f"SELECT {_TX_COLUMNS} FROM transactions WHERE id = ?;",
            (transaction_id,),
        )
        row = cur.fetchone()
    finally:
        conn.close()

    return None if row is None else _row_to_transaction(row)


def load_transactions(cfg: DatabaseConfig) -> list[Transaction]:
    """Load every transaction, in insertion order."""
    init_database(cfg)

    conn = _connect(cfg)
    try:
        cur = conn.execute(f"SELECT {_TX_COLUMNS} FROM transactions ORDER BY rowid;")
        rows = cur.fetchall()
    finally:
        conn.close()

    return [_row_to_transaction(r) for r in rows]


def delete_transaction(cfg: DatabaseConfig, transaction_id: str) -> bool:
    """Delete one transaction. Returns False when it did not exist."""
    init_database(cfg)

    conn = _connect(cfg)
    try:
        cur = conn.execute("DELETE FROM transactions WHERE id = ?;", (transaction_id,))
        conn.commit()
        return cur.rowcount > 0
    finally:
        conn.close()


def has_transactions(cfg: DatabaseConfig) -> bool:
    """Return True if the database contains at least one transaction."""
    init_database(cfg)

    conn = _connect(cfg)
    try:
        cur = conn.execute("SELECT 1 FROM transactions LIMIT 1;")
        return cur.fetchone() is not None
    finally:
        conn.close()


def clear_store(cfg: DatabaseConfig) -> None:
    """Remove every transaction and every inventory item."""
    init_database(cfg)

    conn = _connect(cfg)
    try:
        conn.execute("DELETE FROM transactions;")
        conn.execute("DELETE FROM inventory_items;")
        conn.commit()
    finally:
        conn.close()


def list_import_batches(cfg: DatabaseConfig) -> pd.DataFrame:
    """
    Return the list of import batches stored in the database.

    Columns:
    - id
    - created_at
    - source_label
    - rows_inserted
    """
    init_database(cfg)

    conn = _connect(cfg)
    try:
        cur = conn.execute(
            """
            SELECT id, created_at, source_label, rows_inserted
              FROM import_batches
             ORDER BY id DESC;
            """
        )
        rows = cur.fetchall()
    finally:
        conn.close()

    columns = ["id", "created_at", "source_label", "rows_inserted"]
    if not rows:
        return pd.DataFrame(columns=columns)

    df = pd.DataFrame(rows, columns=columns)
    df["created_at"] = pd.to_datetime(df["created_at"])
    return df


# ---------------------------------------------------------------------------
# Inventory
# ---------------------------------------------------------------------------


def put_inventory_item(cfg: DatabaseConfig, item: InventoryItem) -> None:
    """Insert or replace one inventory item (keyed by id)."""
    init_database(cfg)

    conn = _connect(cfg)
    try:
        conn.execute(
            _UPSERT_ITEM,
            (
                item.id,
                item.name,
                item.category,
                int(item.quantity),
                int(item.min_level),
                float(item.price),
                float(item.cost),
            ),
        )
        conn.commit()
    finally:
        conn.close()


def get_inventory_item(cfg: DatabaseConfig, item_id: str) -> InventoryItem | None:
    """Load one inventory item by id, or None."""
    init_database(cfg)

    conn = _connect(cfg)
    try:
        cur = conn.execute(
            """
            SELECT id, name, category, quantity, min_level, price, cost
              FROM inventory_items
             WHERE id = ?;
            """,
            (item_id,),
        )
        row = cur.fetchone()
    finally:
        conn.close()

    return None if row is None else _row_to_item(row)


def load_inventory(cfg: DatabaseConfig) -> list[InventoryItem]:
    """Load every inventory item, in insertion order."""
    init_database(cfg)

    conn = _connect(cfg)
    try:
        cur = conn.execute(
            """
            SELECT id, name, category, quantity, min_level, price, cost
              FROM inventory_items
             ORDER BY rowid;
            """
        )
        rows = cur.fetchall()
    finally:
        conn.close()

    return [_row_to_item(r) for r in rows]


def delete_inventory_item(cfg: DatabaseConfig, item_id: str) -> bool:
    """Delete one inventory item. Returns False when it did not exist."""
    init_database(cfg)

    conn = _connect(cfg)
    try:
        cur = conn.execute("DELETE FROM inventory_items WHERE id = ?;", (item_id,))
        conn.commit()
        return cur.rowcount > 0
    finally:
        conn.close()
