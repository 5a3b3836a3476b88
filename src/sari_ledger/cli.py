# SARI Ledger - Spreadsheet bookkeeping & analytics for small shops
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Command-Line Interface (CLI) for SARI Ledger.

This module wires together the main building blocks of SARI Ledger:

- application configuration (store profile, database, import options),
- spreadsheet import (decode + classify in a background worker),
- the transaction and inventory stores,
- the aggregation engine (dashboard, report),
- the debt grouper,
- view helpers (tabular rendering).

The CLI is intentionally thin: it does not implement bookkeeping logic
itself. It parses arguments, calls ``ledger_service`` and prints the
resulting DataFrames.


Commands
--------

    import FILE
        Decode and classify FILE (.xlsx, .xls, .csv) and append the rows.

    imports
        List previous imports (most recent first).

    dashboard [--search S] [--sort newest|oldest|highest|lowest]
        Headline figures, weekly sales and the five most recent rows.

    transactions list [--search S] [--type all|sale|expense] [--sort ...]
                      [--page N]
    transactions add --type sale|expense|debt --amount X [--client C]
                     [--phone P] [--item-id ID] [--description D]
    transactions edit ID [--amount X] [--status S] [--date D] [--client C]
    transactions delete ID
    transactions clear --yes

    report [--period mtd|last-month|ytd] [--from-date D] [--to-date D]
           [--search S] [--display-mode table|csv|both] [--output DIR]

    debts list
    debts settle CLIENT

    inventory list [--low-stock]
    inventory add --name N --price P [--category C] [--quantity Q]
                  [--min-level M] [--cost X] [--id ID]
    inventory delete ID

    export PATH
        Write every transaction to PATH (.xlsx or .csv).


Errors
------

Decode failures, cancelled imports and store failures are printed as one
line on stderr and the process exits with status 1.
"""

import argparse
import sys
from datetime import datetime
from pathlib import Path
from typing import Optional

from . import __version__
from .config import AppConfig, load_app_config
from .engine import HISTORY_TYPES, SORT_OPTIONS
from .io import IngestionError
from .ledger_service import ProcessingError
from .ledger_service import (
    add_manual_transaction as service_add_transaction,
)
from .ledger_service import (
    clear_all as service_clear_all,
)
from .ledger_service import (
    dashboard as service_dashboard,
)
from .ledger_service import (
    delete_inventory_item as service_delete_item,
)
from .ledger_service import (
    delete_transaction as service_delete_transaction,
)
from .ledger_service import (
    edit_transaction as service_edit_transaction,
)
from .ledger_service import (
    export as service_export,
)
from .ledger_service import (
    has_transactions as service_has_transactions,
)
from .ledger_service import (
    import_file as service_import_file,
)
from .ledger_service import (
    inventory_stats as service_inventory_stats,
)
from .ledger_service import (
    list_debtors as service_list_debtors,
)
from .ledger_service import (
    list_imports as service_list_imports,
)
from .ledger_service import (
    list_transactions as service_list_transactions,
)
from .ledger_service import (
    load_inventory as service_load_inventory,
)
from .ledger_service import (
    report as service_report,
)
from .ledger_service import (
    save_inventory_item as service_save_item,
)
from .ledger_service import (
    settle_client as service_settle_client,
)
from .logging_setup import configure_logging
from .models import TRANSACTION_STATUSES, parse_iso_date
from .periods import determine_period_from_args
from .views import (
    chart_to_dataframe,
    composition_to_dataframe,
    dashboard_to_dataframe,
    debts_to_dataframe,
    format_currency,
    inventory_to_dataframe,
    named_amounts_to_dataframe,
    paginate,
    report_summary_to_dataframe,
    top_products_to_dataframe,
    transactions_to_dataframe,
    weekly_to_dataframe,
)

RECENT_LIMIT = 5


def _build_parser() -> argparse.ArgumentParser:
    """Create and configure the argument parser for the CLI."""
    ap = argparse.ArgumentParser(
        prog="sari-ledger",
        description=(
            "SARI Ledger - Spreadsheet bookkeeping & analytics for small shops. "
            "Imports sales spreadsheets, records manual entries and debts, "
            "and renders dashboard and report figures."
        ),
    )

    ap.add_argument(
        "--version",
        action="store_true",
        help="Show the installed version of sari_ledger and exit.",
    )
    ap.add_argument(
        "--config",
        dest="config_path",
        help=(
            "Path to the TOML configuration file. If omitted, "
            "'sari_ledger_config.toml' in the current directory is used "
            "when present."
        ),
    )
    ap.add_argument(
        "--log-level",
        dest="log_level",
        help="Logging level (DEBUG, INFO, WARNING, ...). Overrides the config.",
    )

    subparsers = ap.add_subparsers(dest="command", metavar="command")

    # import
    p_import = subparsers.add_parser(
        "import", help="Import a spreadsheet (.xlsx, .xls, .csv)."
    )
    p_import.add_argument("file", help="Path of the spreadsheet to import.")

    # imports
    subparsers.add_parser("imports", help="List previous imports.")

    # dashboard
    p_dash = subparsers.add_parser("dashboard", help="Show dashboard figures.")
    p_dash.add_argument("--search", default="", help="Filter by client or amount.")
    p_dash.add_argument("--sort", choices=SORT_OPTIONS, default="newest")

    # transactions
    p_tx = subparsers.add_parser("transactions", help="Manage transactions.")
    tx_sub = p_tx.add_subparsers(dest="tx_command", metavar="subcommand")

    tx_list = tx_sub.add_parser("list", help="List transactions.")
    tx_list.add_argument("--search", default="", help="Filter by client or amount.")
    tx_list.add_argument(
        "--type",
        dest="history_type",
        choices=HISTORY_TYPES,
        default="all",
        help="sale = sales and cash; expense = expenses and refunds.",
    )
    tx_list.add_argument("--sort", choices=SORT_OPTIONS, default="newest")
    tx_list.add_argument("--page", type=int, default=1, help="1-based page number.")

    tx_add = tx_sub.add_parser("add", help="Record a manual transaction.")
    tx_add.add_argument(
        "--type", dest="tx_type", choices=("sale", "expense", "debt"), required=True
    )
    tx_add.add_argument("--amount", type=float, required=True)
    tx_add.add_argument("--client", default="")
    tx_add.add_argument("--phone", default=None)
    tx_add.add_argument("--item-id", dest="item_id", default=None)
    tx_add.add_argument(
        "--description", default="", help="Expense label (expenses only)."
    )

    tx_edit = tx_sub.add_parser("edit", help="Edit an existing transaction.")
    tx_edit.add_argument("id")
    tx_edit.add_argument("--amount", type=float)
    tx_edit.add_argument("--status", choices=TRANSACTION_STATUSES)
    tx_edit.add_argument("--date", help="New date (YYYY-MM-DD).")
    tx_edit.add_argument("--client")

    tx_delete = tx_sub.add_parser("delete", help="Delete one transaction.")
    tx_delete.add_argument("id")

    tx_clear = tx_sub.add_parser(
        "clear", help="Delete every transaction and inventory item."
    )
    tx_clear.add_argument(
        "--yes", action="store_true", help="Confirm the irreversible deletion."
    )

    # report
    p_report = subparsers.add_parser("report", help="Show report statistics.")
    p_report.add_argument("--period", choices=["mtd", "last-month", "ytd"])
    p_report.add_argument(
        "--from-date", dest="from_date", help="Custom period start (YYYY-MM-DD)."
    )
    p_report.add_argument(
        "--to-date", dest="to_date", help="Custom period end (YYYY-MM-DD)."
    )
    p_report.add_argument("--search", default="")
    p_report.add_argument(
        "--display-mode",
        dest="display_mode",
        choices=["table", "csv", "both"],
        default="table",
        help=(
            "'table' prints results to stdout, "
            "'csv' writes CSV files only, "
            "'both' does both."
        ),
    )
    p_report.add_argument(
        "--output",
        dest="output_dir",
        help="Output directory for CSV files (default: data/output).",
    )

    # debts
    p_debts = subparsers.add_parser("debts", help="Outstanding debts.")
    debts_sub = p_debts.add_subparsers(dest="debts_command", metavar="subcommand")
    debts_sub.add_parser("list", help="List debtors with pending debts.")
    debts_settle = debts_sub.add_parser(
        "settle", help="Mark every pending debt of a client as paid."
    )
    debts_settle.add_argument("client")

    # inventory
    p_inv = subparsers.add_parser("inventory", help="Manage inventory items.")
    inv_sub = p_inv.add_subparsers(dest="inv_command", metavar="subcommand")
    inv_list = inv_sub.add_parser("list", help="List inventory items.")
    inv_list.add_argument(
        "--low-stock",
        dest="low_stock",
        action="store_true",
        help="Only items at or below their minimum level.",
    )
    inv_add = inv_sub.add_parser("add", help="Add or replace an inventory item.")
    inv_add.add_argument("--name", required=True)
    inv_add.add_argument("--price", type=float, required=True)
    inv_add.add_argument("--category", default="")
    inv_add.add_argument("--quantity", type=int, default=0)
    inv_add.add_argument("--min-level", dest="min_level", type=int, default=0)
    inv_add.add_argument("--cost", type=float, default=0.0)
    inv_add.add_argument("--id", dest="item_id", help="Replace the item with this id.")
    inv_delete = inv_sub.add_parser("delete", help="Delete an inventory item.")
    inv_delete.add_argument("id")

    # export
    p_export = subparsers.add_parser(
        "export", help="Export every transaction to .xlsx or .csv."
    )
    p_export.add_argument("path")

    return ap


# ---------------------------------------------------------------------------
# Handlers
# ---------------------------------------------------------------------------


def _handle_import(args: argparse.Namespace, config: AppConfig) -> None:
    path = Path(args.file)
    if not path.is_file():
        raise SystemExit(f"Spreadsheet file not found: {path}")

    print(f"Importing {path}...")
    result = service_import_file(config, path)
    print(
        f"Imported batch #{result.stats.batch_id}: "
        f"{result.imported_count} transaction(s) "
        f"({len(result.outcome.dropped_rows)} row(s) without amount skipped)."
    )


def _handle_imports(args: argparse.Namespace, config: AppConfig) -> None:
    batches = service_list_imports(config)
    if batches.empty:
        print("No imports yet. Use 'import FILE' to load a spreadsheet.")
        return

    print("=== Imports ===")
    print(batches.to_string(index=False))


def _handle_dashboard(args: argparse.Namespace, config: AppConfig) -> None:
    decimals = config.display.decimals
    rows, stats = service_dashboard(config, search=args.search, sort=args.sort)

    print(f"=== {config.store.name} - Dashboard ===")
    print(dashboard_to_dataframe(stats, decimals).to_string(index=False))

    print()
    print("=== Weekly sales (USD) ===")
    print(weekly_to_dataframe(stats.weekly_data, decimals).to_string(index=False))

    print()
    print("=== Recent transactions ===")
    if not rows:
        print("No transactions yet. Use 'import' or 'transactions add'.")
    else:
        recent = transactions_to_dataframe(rows[:RECENT_LIMIT], decimals)
        print(recent.to_string(index=False))

    if config.display.inventory_alerts:
        inv = service_inventory_stats(config)
        if inv.low_stock_count:
            print()
            print(f"Warning: {inv.low_stock_count} item(s) at or below minimum stock.")


def _handle_transactions(args: argparse.Namespace, config: AppConfig) -> None:
    subcmd = getattr(args, "tx_command", None)
    decimals = config.display.decimals

    if subcmd == "list":
        rows = service_list_transactions(
            config,
            search=args.search,
            history_type=args.history_type,
            sort=args.sort,
        )
        if not rows:
            print("No transactions found for the given criteria.")
            return
        df = transactions_to_dataframe(rows, decimals)
        per_page = config.display.items_per_page
        page_df = paginate(df, args.page, per_page)
        pages = (len(df) + per_page - 1) // per_page
        if page_df.empty:
            print(f"Page {args.page} is out of range (1-{pages}).")
            return
        print(page_df.to_string(index=False))
        print()
        print(f"Page {args.page}/{pages} | Total transactions: {len(df)}")

    elif subcmd == "add":
        t = service_add_transaction(
            config,
            type=args.tx_type,
            amount=args.amount,
            client=args.client,
            description=args.description,
            client_phone=args.phone,
            item_id=args.item_id,
        )
        print(
            f"Recorded {t.type} {t.id}: {t.client} "
            f"{format_currency(t.amount, t.currency, decimals)} ({t.status})"
        )

    elif subcmd == "edit":
        changes = {}
        if args.amount is not None:
            changes["amount"] = args.amount
        if args.status is not None:
            changes["status"] = args.status
        if args.date is not None:
            if parse_iso_date(args.date) is None:
                raise SystemExit(
                    f"Invalid date format: {args.date!r}. Expected YYYY-MM-DD."
                )
            changes["date"] = args.date
        if args.client is not None:
            changes["client"] = args.client
        if not changes:
            print("Nothing to change.")
            return

        updated = service_edit_transaction(config, args.id, **changes)
        if updated is None:
            print(f"Transaction {args.id} not found.")
        else:
            print(f"Transaction {updated.id} updated.")

    elif subcmd == "delete":
        if service_delete_transaction(config, args.id):
            print(f"Transaction {args.id} deleted.")
        else:
            print(f"Transaction {args.id} not found.")

    elif subcmd == "clear":
        if not args.yes:
            print("Refusing to delete all data without --yes.")
            return
        service_clear_all(config)
        print("All transactions and inventory items deleted.")

    else:
        print(
            "No transactions subcommand specified. "
            "Available subcommands are: 'list', 'add', 'edit', 'delete', 'clear'."
        )


def _handle_report(args: argparse.Namespace, config: AppConfig) -> None:
    decimals = config.display.decimals
    if not service_has_transactions(config):
        print("Warning: the ledger is empty. Use 'import' or 'transactions add'.")

    period = determine_period_from_args(args)
    stats = service_report(config, period, search=args.search)

    print(
        f"Applied period: {period.label} "
        f"({period.start.isoformat()} → {period.end.isoformat()})"
    )

    tables = {
        "summary": report_summary_to_dataframe(stats, decimals),
        "chart": chart_to_dataframe(stats.chart_data, decimals),
        "top_products": top_products_to_dataframe(stats.top_products, decimals),
        "top_debtors": named_amounts_to_dataframe(stats.top_debtors, decimals),
        "expenses_by_category": named_amounts_to_dataframe(stats.pie_data, decimals),
        "composition": composition_to_dataframe(stats.composition, decimals),
        "weekly_activity": weekly_to_dataframe(
            [w.amount for w in stats.weekly_activity], decimals
        ),
    }

    if args.display_mode in {"table", "both"}:
        for name, df in tables.items():
            print()
            print(f"=== {name.replace('_', ' ').capitalize()} ===")
            if df.empty:
                print("(no data)")
            else:
                print(df.to_string(index=False))

    if args.display_mode in {"csv", "both"}:
        output_dir = Path(args.output_dir) if args.output_dir else Path("data/output")
        output_dir.mkdir(parents=True, exist_ok=True)
        timestamp = datetime.now().strftime("%Y-%m-%d-%H-%M-%S")
        for name, df in tables.items():
            path = output_dir / f"report_{name}_{timestamp}.csv"
            df.to_csv(path, index=False)
            print(f"Wrote {path} ({len(df)} rows)")


def _handle_debts(args: argparse.Namespace, config: AppConfig) -> None:
    subcmd = getattr(args, "debts_command", None)

    if subcmd == "list":
        debts = service_list_debtors(config)
        if not debts:
            print("No outstanding debts.")
            return
        print(debts_to_dataframe(debts, config.display.decimals).to_string(index=False))

    elif subcmd == "settle":
        settled = service_settle_client(config, args.client)
        if not settled:
            print(f"No pending debts for {args.client!r}.")
        else:
            print(f"Settled {len(settled)} debt(s) for {args.client!r}.")

    else:
        print(
            "No debts subcommand specified. "
            "Available subcommands are: 'list', 'settle'."
        )


def _handle_inventory(args: argparse.Namespace, config: AppConfig) -> None:
    subcmd = getattr(args, "inv_command", None)
    decimals = config.display.decimals

    if subcmd == "list":
        df = inventory_to_dataframe(service_load_inventory(config), decimals)
        if args.low_stock:
            df = df[df["low_stock"]]
        if df.empty:
            print("No inventory items found.")
            return
        print(df.to_string(index=False))
        stats = service_inventory_stats(config)
        print()
        print(
            f"Total units: {stats.total_items} | "
            f"Stock value: {stats.total_value:,.{decimals}f} | "
            f"Low stock: {stats.low_stock_count}"
        )

    elif subcmd == "add":
        item = service_save_item(
            config,
            name=args.name,
            price=args.price,
            category=args.category,
            quantity=args.quantity,
            min_level=args.min_level,
            cost=args.cost,
            item_id=args.item_id,
        )
        print(f"Saved inventory item {item.id}: {item.name}")

    elif subcmd == "delete":
        if service_delete_item(config, args.id):
            print(f"Inventory item {args.id} deleted.")
        else:
            print(f"Inventory item {args.id} not found.")

    else:
        print(
            "No inventory subcommand specified. "
            "Available subcommands are: 'list', 'add', 'delete'."
        )


def _handle_export(args: argparse.Namespace, config: AppConfig) -> None:
    out = service_export(config, args.path)
    print(f"Wrote {out}")


_HANDLERS = {
    "import": _handle_import,
    "imports": _handle_imports,
    "dashboard": _handle_dashboard,
    "transactions": _handle_transactions,
    "report": _handle_report,
    "debts": _handle_debts,
    "inventory": _handle_inventory,
    "export": _handle_export,
}


def main(argv: Optional[list[str]] = None) -> int:
    """Entry point for the SARI Ledger CLI.

    Parses arguments, loads the configuration, configures logging and
    dispatches to the handler of the requested command. Returns the process
    exit status.
    """
    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.version:
        print(f"sari_ledger version {__version__}")
        return 0

    if not args.command:
        parser.print_help()
        return 0

    try:
        config = load_app_config(args.config_path)
    except (FileNotFoundError, ValueError) as exc:
        parser.error(str(exc))

    try:
        configure_logging(args.log_level or config.log_level)
    except ValueError as exc:
        parser.error(str(exc))

    try:
        _HANDLERS[args.command](args, config)
    except (IngestionError, ProcessingError, ValueError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
