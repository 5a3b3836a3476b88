# SARI Ledger - Spreadsheet bookkeeping & analytics for small shops
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
I/O module for SARI Ledger.

This module is the boundary with spreadsheet files. It performs no
classification: it only turns file bytes into a *row grid* and transaction
records back into a spreadsheet.

Decoding
--------
``decode_spreadsheet(data, filename)`` reads the **first sheet only** and
returns a list of rows, each row a list of cells:

    - ``str``   for text cells,
    - ``int`` / ``float`` for numeric cells,
    - ``None``  for empty cells.

Date cells of Excel workbooks are rendered as ``YYYY-MM-DD`` strings.
Trailing empty cells are removed, so a blank line decodes to ``[]``.

Supported inputs:

    - ``.xlsx`` / ``.xlsm`` / ``.xls`` through ``pandas.read_excel``,
    - ``.csv`` / ``.txt`` (UTF-8, optional BOM) through the ``csv`` module.

When the filename is unknown the format is sniffed from the leading bytes
(ZIP container → xlsx, OLE2 container → xls, otherwise CSV).

Any decoding failure is reported as a single ``IngestionError``.

Encoding
--------
``export_transactions(transactions, path)`` writes one row per transaction,
one column per record field, to ``.xlsx`` (sheet "Transactions") or
``.csv``.
"""

import csv
import io
import math
import os
from collections.abc import Iterable, Sequence
from dataclasses import asdict, fields
from datetime import date, datetime
from pathlib import Path
from typing import Any, Optional, Union

import pandas as pd

from .header import Cell
from .models import Transaction

EXCEL_SUFFIXES = {".xlsx", ".xlsm", ".xls"}
CSV_SUFFIXES = {".csv", ".txt"}
EXPORT_SHEET_NAME = "Transactions"

_ZIP_MAGIC = b"PK\x03\x04"
_OLE2_MAGIC = b"\xd0\xcf\x11\xe0"


class IngestionError(Exception):
    """Raised when an uploaded file cannot be decoded or imported."""


def _normalize_cell(value: Any) -> Cell:
    """Convert a pandas / numpy cell value into a plain grid cell."""
    if value is None or value is pd.NaT:
        return None
    if isinstance(value, (pd.Timestamp, datetime)):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, str):
        return value if value != "" else None
    # numpy scalars expose .item()
    if hasattr(value, "item"):
        value = value.item()
    if isinstance(value, bool):
        return str(value).upper()
    if isinstance(value, float):
        return None if math.isnan(value) else value
    if isinstance(value, int):
        return value
    return str(value)


def _trim_row(row: Sequence[Cell]) -> list[Cell]:
    cells = list(row)
    while cells and cells[-1] is None:
        cells.pop()
    return cells


def _detect_format(data: bytes, filename: Optional[str]) -> str:
    if filename:
        suffix = Path(filename).suffix.lower()
        if suffix in EXCEL_SUFFIXES:
            return "excel"
        if suffix in CSV_SUFFIXES:
            return "csv"
    if data.startswith(_ZIP_MAGIC) or data.startswith(_OLE2_MAGIC):
        return "excel"
    return "csv"


def _decode_excel(data: bytes) -> list[list[Cell]]:
    df = pd.read_excel(io.BytesIO(data), sheet_name=0, header=None, dtype=object)
    return [
        _trim_row([_normalize_cell(v) for v in row])
        for row in df.itertuples(index=False)
    ]


def _decode_csv(data: bytes) -> list[list[Cell]]:
    text = data.decode("utf-8-sig")
    reader = csv.reader(io.StringIO(text, newline=""))
    return [_trim_row([_normalize_cell(v) for v in row]) for row in reader]


def decode_spreadsheet(
    data: bytes, filename: Optional[str] = None
) -> list[list[Cell]]:
    """
    Decode spreadsheet bytes into a row grid (first sheet only).

    Parameters
    ----------
    data:
        Raw file content.
    filename:
        Optional original filename, used to pick the decoder.

    Returns
    -------
    list[list[Cell]]
        Ordered rows of ordered cells.

    Raises
    ------
    IngestionError
        If the content cannot be decoded.
    """
    if not data:
        raise IngestionError("The file is empty.")

    fmt = _detect_format(data, filename)
    try:
        if fmt == "excel":
            return _decode_excel(data)
        return _decode_csv(data)
    except Exception as exc:  # noqa: BLE001
        label = filename or "uploaded file"
        raise IngestionError(f"Could not read {label}: {exc}") from exc


TRANSACTION_COLUMNS = [f.name for f in fields(Transaction)]


def transactions_to_frame(transactions: Iterable[Transaction]) -> pd.DataFrame:
    """Return a DataFrame with one row per transaction and one column per field."""
    rows = [asdict(t) for t in transactions]
    if not rows:
        return pd.DataFrame(columns=TRANSACTION_COLUMNS)
    return pd.DataFrame(rows, columns=TRANSACTION_COLUMNS)


def export_transactions(
    transactions: Iterable[Transaction],
    path: Union[str, "os.PathLike[str]"],
) -> Path:
    """
    Write transactions to an ``.xlsx`` or ``.csv`` file.

    Returns
    -------
    Path
        The written file path.

    Raises
    ------
    ValueError
        If the file extension is not supported.
    """
    out = Path(path)
    suffix = out.suffix.lower()
    if suffix not in {".xlsx", ".csv"}:
        raise ValueError(
            f"Unsupported export format: {suffix!r}. Use '.xlsx' or '.csv'."
        )

    df = transactions_to_frame(transactions)
    out.parent.mkdir(parents=True, exist_ok=True)
    if suffix == ".xlsx":
        df.to_excel(out, sheet_name=EXPORT_SHEET_NAME, index=False)
    else:
        df.to_csv(out, index=False)
    return out
