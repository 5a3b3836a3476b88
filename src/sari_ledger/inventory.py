# SARI Ledger - Spreadsheet bookkeeping & analytics for small shops
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Inventory helpers.

- link_inventory_item: exact, case-insensitive name lookup used by the import
  pipeline to attach an ``item_id`` to classified rows.
- compute_inventory_stats / low_stock_items: stock overview.
- decrement_stock: stock movement applied when a manual sale or debt
  references an item (imports never move stock).
"""

from collections.abc import Iterable, Sequence
from dataclasses import dataclass, replace
from typing import Optional

from .models import InventoryItem


@dataclass(frozen=True)
class InventoryStats:
    """Stock overview: total units, stock value at sale price, low-stock count."""

    total_items: int
    total_value: float
    low_stock_count: int


def link_inventory_item(
    name: str, inventory: Iterable[InventoryItem]
) -> Optional[InventoryItem]:
    """Return the first item whose name equals ``name`` ignoring case."""
    wanted = name.lower()
    for item in inventory:
        if item.name.lower() == wanted:
            return item
    return None


def is_low_stock(item: InventoryItem) -> bool:
    return item.quantity <= item.min_level


def low_stock_items(inventory: Iterable[InventoryItem]) -> list[InventoryItem]:
    return [i for i in inventory if is_low_stock(i)]


def compute_inventory_stats(inventory: Sequence[InventoryItem]) -> InventoryStats:
    return InventoryStats(
        total_items=sum(i.quantity for i in inventory),
        total_value=sum(i.quantity * i.price for i in inventory),
        low_stock_count=len(low_stock_items(inventory)),
    )


def decrement_stock(item: InventoryItem, units: int = 1) -> InventoryItem:
    """Return a copy of ``item`` with ``units`` fewer in stock (no floor)."""
    return replace(item, quantity=item.quantity - units)
