# SARI Ledger - Spreadsheet bookkeeping & analytics for small shops
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
SARI Ledger
-----------

A Python bookkeeping and analytics tool for small retail shops. It turns
loosely structured sales spreadsheets into typed financial records and
derives the figures a shop owner looks at every day.

Main capabilities:
- spreadsheet import (.xlsx, .xls, .csv) with header detection and
  keyword-based classification of sales, expenses and debts (Arabic and
  English vocabulary),
- background import in a separate worker, cancellable,
- SQLite-backed transaction and inventory stores,
- dashboard figures (USD-normalized sales, expenses, profit, debt, weekly
  activity) and date-ranged reports (top products, top debtors, expense
  categories, busiest day, bounded revenue / expenses chart),
- debtor summaries and one-shot debt settlement,
- manual entries with inventory stock tracking,
- export of the whole ledger to Excel or CSV.

Version: 0.1.0

Usage:
    python -m sari_ledger.cli --help
"""

__all__ = ["classifier", "engine", "ingest", "ledger_service", "views", "io"]

__version__ = "0.1.0"
