# SARI Ledger - Spreadsheet bookkeeping & analytics for small shops
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Period helpers for SARI Ledger.

This module defines a Period value object and helpers to derive the report
date range (month to date by default, last month, year to date, or a custom
range) from CLI arguments.
"""

from calendar import monthrange
from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional


@dataclass
class Period:
    """Represents an inclusive reporting period with a human-readable label."""

    start: date
    end: date
    label: str


def _today() -> date:
    """Return today's date as a date object (isolated for easier testing)."""
    return datetime.today().date()


def period_mtd() -> Period:
    """From the first day of the current month to today."""
    today = _today()
    return Period(start=today.replace(day=1), end=today, label="Month to date")


def period_last_month() -> Period:
    """Full previous calendar month."""
    today = _today()
    if today.month == 1:
        year, month = today.year - 1, 12
    else:
        year, month = today.year, today.month - 1

    last_day = monthrange(year, month)[1]
    return Period(
        start=date(year, month, 1),
        end=date(year, month, last_day),
        label="Last month",
    )


def period_ytd() -> Period:
    """From 1 January of the current year to today."""
    today = _today()
    return Period(start=date(today.year, 1, 1), end=today, label="Year to date")


def determine_period_from_args(args) -> Period:
    """
    Determine the report period from CLI args.

    Priority (highest to lowest):

        1. args.period (mtd, last-month, ytd)
        2. args.from_date / args.to_date (custom period; a missing bound
           defaults to the month-to-date bound)
        3. month to date
    """
    if getattr(args, "period", None):
        p = args.period
        if p == "mtd":
            return period_mtd()
        if p == "last-month":
            return period_last_month()
        if p == "ytd":
            return period_ytd()
        raise ValueError(f"Unknown period: {p!r}")

    from_raw: Optional[str] = getattr(args, "from_date", None)
    to_raw: Optional[str] = getattr(args, "to_date", None)

    if from_raw or to_raw:
        default = period_mtd()
        start = date.fromisoformat(from_raw) if from_raw else default.start
        end = date.fromisoformat(to_raw) if to_raw else default.end

        if end < start:
            raise ValueError("Custom period end date cannot be before start date.")

        return Period(start=start, end=end, label=f"Custom period ({start} → {end})")

    return period_mtd()
