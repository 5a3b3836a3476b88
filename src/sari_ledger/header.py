# SARI Ledger - Spreadsheet bookkeeping & analytics for small shops
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Header detection for imported spreadsheets.

A decoded spreadsheet is a *row grid*: an ordered list of rows, each row an
ordered list of cells (str, int, float or None). The columns of interest are
not at fixed positions, so before classifying rows we look for the header row
and map three semantic columns to column indices:

- name:  product / counterparty label,
- price: amount of the row,
- date:  calendar day of the row.

Detection rules
---------------
- Only rows ``0 .. min(10, len(grid)) - 1`` are examined.
- A row is the header when its cells, joined into one lowercase string,
  contain ``"menu_item_name"`` or ``"name"``. The first such row wins.
- Inside the header row every cell is compared (trimmed, case-insensitive)
  against the aliases below. Later cells overwrite earlier ones for the same
  column (last match wins, by column order).
- Columns that were never matched fall back to ``DEFAULT_COLUMN_MAPPING``
  (name=3, price=8, date=0), the layout of the point-of-sale export this
  heuristic was tuned on.
- Data starts right after the header row, or at row 1 when no header was
  found (row 0 is always treated as a header).
"""

import math
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Optional, Union

Cell = Union[str, int, float, None]
Row = Sequence[Cell]
Grid = Sequence[Row]

HEADER_SCAN_LIMIT = 10
HEADER_MARKERS = ("menu_item_name", "name")

NAME_ALIASES = frozenset({"menu_item_name", "name", "product"})
PRICE_ALIASES = frozenset({"actual_selling_price", "price", "amount"})
DATE_ALIASES = frozenset({"date", "time"})


@dataclass(frozen=True)
class ColumnMapping:
    """Column index per semantic field; None means "not located"."""

    name: Optional[int] = None
    price: Optional[int] = None
    date: Optional[int] = None

    def with_fallback(self, fallback: "ColumnMapping") -> "ColumnMapping":
        """Fill every missing index from ``fallback``."""
        return ColumnMapping(
            name=self.name if self.name is not None else fallback.name,
            price=self.price if self.price is not None else fallback.price,
            date=self.date if self.date is not None else fallback.date,
        )


DEFAULT_COLUMN_MAPPING = ColumnMapping(name=3, price=8, date=0)


@dataclass(frozen=True)
class HeaderLocation:
    """
    Result of the header scan.

    Attributes
    ----------
    header_row_index:
        Index of the detected header row, or None.
    detected:
        Indices found in the header row (possibly partial).
    columns:
        Indices to use, with fallbacks applied. Always fully populated.
    first_data_row:
        Index of the first row to classify.
    """

    header_row_index: Optional[int]
    detected: ColumnMapping
    columns: ColumnMapping
    first_data_row: int


def is_empty_cell(value: Cell) -> bool:
    """Return True for None, NaN and empty strings."""
    if value is None:
        return True
    if isinstance(value, float) and math.isnan(value):
        return True
    return isinstance(value, str) and value == ""


def cell_to_text(value: Cell) -> str:
    """
    Render a cell as text.

    Empty cells become ``""`` and integral floats lose their ``.0`` suffix, so
    ``5000.0`` reads as ``"5000"`` like it does in the spreadsheet.
    """
    if is_empty_cell(value):
        return ""
    if isinstance(value, bool):
        return str(value).lower()
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _map_header_cells(row: Row) -> ColumnMapping:
    name_idx: Optional[int] = None
    price_idx: Optional[int] = None
    date_idx: Optional[int] = None

    for idx, cell in enumerate(row):
        text = cell_to_text(cell).lower().strip()
        if text in NAME_ALIASES:
            name_idx = idx
        if text in PRICE_ALIASES:
            price_idx = idx
        if text in DATE_ALIASES:
            date_idx = idx

    return ColumnMapping(name=name_idx, price=price_idx, date=date_idx)


def locate_header(
    grid: Grid,
    *,
    fallback: ColumnMapping = DEFAULT_COLUMN_MAPPING,
) -> HeaderLocation:
    """
    Find the header row of ``grid`` and map the semantic columns.

    Parameters
    ----------
    grid:
        Decoded row grid. Rows may be empty or ragged.
    fallback:
        Mapping used for every column that could not be located.

    Returns
    -------
    HeaderLocation
        Detected header row (if any), raw and resolved column mappings, and
        the index of the first data row.
    """
    header_row_index: Optional[int] = None
    detected = ColumnMapping()

    for i in range(min(HEADER_SCAN_LIMIT, len(grid))):
        row = grid[i] or []
        joined = " ".join(cell_to_text(c) for c in row).lower()
        if any(marker in joined for marker in HEADER_MARKERS):
            header_row_index = i
            detected = _map_header_cells(row)
            break

    first_data_row = header_row_index + 1 if header_row_index is not None else 1

    return HeaderLocation(
        header_row_index=header_row_index,
        detected=detected,
        columns=detected.with_fallback(fallback),
        first_data_row=first_data_row,
    )
