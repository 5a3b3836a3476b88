import sqlite3
from datetime import date, datetime

import pandas as pd
import pytest

import sari_ledger.ledger_service as service
from sari_ledger.config import AppConfig, ImportConfig, StoreProfile
from sari_ledger.db import DatabaseConfig
from sari_ledger.ingest import IngestionError
from sari_ledger.periods import Period
from sari_ledger.views import display_name

NOW = datetime(2024, 3, 10, 14, 5)


def make_config(tmp_path, currency_symbol: str = "IQD") -> AppConfig:
    return AppConfig(
        store=StoreProfile(currency_symbol=currency_symbol),
        database=DatabaseConfig(engine="sqlite", path=tmp_path / "ledger.sqlite"),
        import_options=ImportConfig(worker="thread", timeout_seconds=30),
    )


def write_csv(tmp_path, text: str, name: str = "sales.csv"):
    path = tmp_path / name
    path.write_text(text, encoding="utf-8")
    return path


def test_import_file_appends_batch(tmp_path):
    cfg = make_config(tmp_path)
    path = write_csv(
        tmp_path,
        "date,name,price\n2024-01-01,فاتورة كهرباء,5000\n2024-01-02,Acme,1200\n",
    )

    report = service.import_file(cfg, path)

    assert report.imported_count == 2
    stored = service.load_transactions(cfg)
    assert [t.type for t in stored] == ["expense", "sale"]
    assert list(service.list_imports(cfg)["source_label"]) == ["sales.csv"]
    assert service.has_transactions(cfg)


def test_import_file_with_default_process_worker(tmp_path):
    cfg = AppConfig(
        store=StoreProfile(),
        database=DatabaseConfig(engine="sqlite", path=tmp_path / "ledger.sqlite"),
    )
    assert cfg.import_options.worker == "process"
    path = write_csv(tmp_path, "date,name,price\n2024-01-02,Acme,1200\n")

    report = service.import_file(cfg, path)

    assert report.imported_count == 1
    assert [t.client for t in service.load_transactions(cfg)] == ["Acme"]


def test_import_links_inventory_snapshot_without_moving_stock(tmp_path):
    cfg = make_config(tmp_path)
    item = service.save_inventory_item(cfg, name="Acme", price=2.0, quantity=4)
    path = write_csv(tmp_path, "date,name,price\n2024-01-02,acme,1200\n")

    service.import_file(cfg, path)

    (t,) = service.load_transactions(cfg)
    assert t.item_id == item.id
    assert service.load_inventory(cfg)[0].quantity == 4


def test_import_with_no_usable_rows_is_success(tmp_path):
    cfg = make_config(tmp_path)
    path = write_csv(tmp_path, "date,name,price\n2024-01-02,Acme,0\n")

    report = service.import_file(cfg, path)

    assert report.imported_count == 0
    assert report.outcome.dropped_rows == [1]
    assert service.load_transactions(cfg) == []


def test_import_decode_failure_writes_nothing(tmp_path):
    cfg = make_config(tmp_path)

    with pytest.raises(IngestionError):
        service.import_bytes(cfg, b"", "empty.xlsx")

    assert service.load_transactions(cfg) == []
    assert service.list_imports(cfg).empty
    assert not service.has_transactions(cfg)


def test_imported_amounts_survive_the_store(tmp_path):
    cfg = make_config(tmp_path)
    path = write_csv(
        tmp_path, "date,name,price\n2024-01-01,Tea,0.004\n2024-01-02,Acme,12.345\n"
    )

    report = service.import_file(cfg, path)

    classified = [t.amount for t in report.outcome.transactions]
    stored = [t.amount for t in service.load_transactions(cfg)]
    assert classified == [0.004, 12.345]
    assert stored == classified
    assert all(a > 0 for a in stored)


def test_import_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        service.import_file(make_config(tmp_path), tmp_path / "nope.csv")


def test_manual_sale_decrements_linked_stock_by_one(tmp_path):
    cfg = make_config(tmp_path)
    item = service.save_inventory_item(cfg, name="Tea", price=3.0, quantity=1)

    t = service.add_manual_transaction(
        cfg, type="sale", amount=3.0, client="Ali", item_id=item.id, now=NOW
    )
    service.add_manual_transaction(
        cfg, type="debt", amount=3.0, client="Ali", item_id=item.id, now=NOW
    )

    assert t.status == "completed"
    assert t.method == "Manual"
    assert t.currency == "IQD"
    assert t.date == "2024-03-10"
    assert t.time == "02:05 PM"
    assert service.load_inventory(cfg)[0].quantity == -1


def test_manual_debt_is_pending_and_uses_usd_store(tmp_path):
    cfg = make_config(tmp_path, currency_symbol="$")

    t = service.add_manual_transaction(
        cfg, type="debt", amount=25, client="Sara", client_phone="0770", now=NOW
    )

    assert t.status == "pending"
    assert t.currency == "USD"
    assert t.client_phone == "0770"
    assert service.get_transaction(cfg, t.id) == t


def test_manual_expense_uses_description_and_ignores_item(tmp_path):
    cfg = make_config(tmp_path)
    item = service.save_inventory_item(cfg, name="Tea", price=3.0, quantity=5)

    t = service.add_manual_transaction(
        cfg,
        type="expense",
        amount=40,
        client="ignored",
        description="Rent March",
        item_id=item.id,
        now=NOW,
    )

    assert t.client == "Rent March"
    assert t.item_id is None
    assert service.load_inventory(cfg)[0].quantity == 5


def test_manual_expense_keeps_empty_description(tmp_path):
    cfg = make_config(tmp_path)

    t = service.add_manual_transaction(cfg, type="expense", amount=15, now=NOW)

    assert t.client == ""
    assert service.get_transaction(cfg, t.id).client == ""
    assert display_name(t) == f"Process #{t.id[3:]}"


def test_manual_sale_defaults_to_first_known_company(tmp_path):
    cfg = make_config(tmp_path)

    t = service.add_manual_transaction(cfg, type="sale", amount=1, now=NOW)

    assert t.client == "General Customer"


@pytest.mark.parametrize(
    "amount", [0, -5, float("nan"), float("inf"), float("-inf")]
)
def test_manual_entry_rejects_non_positive_or_non_finite_amount(tmp_path, amount):
    cfg = make_config(tmp_path)

    with pytest.raises(ValueError):
        service.add_manual_transaction(cfg, type="sale", amount=amount)

    assert service.load_transactions(cfg) == []


def test_manual_entry_rejects_other_types(tmp_path):
    with pytest.raises(ValueError):
        service.add_manual_transaction(make_config(tmp_path), type="refund", amount=1)


def test_edit_transaction(tmp_path):
    cfg = make_config(tmp_path)
    t = service.add_manual_transaction(cfg, type="sale", amount=10, now=NOW)

    updated = service.edit_transaction(cfg, t.id, amount=12.5, status="failed")

    assert updated.amount == 12.5
    assert service.get_transaction(cfg, t.id).status == "failed"


def test_edit_rejects_non_positive_amount_and_unknown_fields(tmp_path):
    cfg = make_config(tmp_path)
    t = service.add_manual_transaction(cfg, type="sale", amount=10, now=NOW)

    with pytest.raises(ValueError):
        service.edit_transaction(cfg, t.id, amount=0)
    with pytest.raises(ValueError):
        service.edit_transaction(cfg, t.id, amount=float("inf"))
    with pytest.raises(ValueError):
        service.edit_transaction(cfg, t.id, colour="red")

    assert service.get_transaction(cfg, t.id).amount == 10


def test_edit_and_delete_missing_are_no_ops(tmp_path):
    cfg = make_config(tmp_path)

    assert service.edit_transaction(cfg, "TX-404", amount=5) is None
    assert service.delete_transaction(cfg, "TX-404") is False


def test_delete_and_clear_all(tmp_path):
    cfg = make_config(tmp_path)
    t1 = service.add_manual_transaction(cfg, type="sale", amount=1, now=NOW)
    service.add_manual_transaction(cfg, type="sale", amount=2, now=NOW)
    service.save_inventory_item(cfg, name="Tea", price=1.0)

    assert service.delete_transaction(cfg, t1.id) is True
    assert len(service.load_transactions(cfg)) == 1

    service.clear_all(cfg)

    assert service.load_transactions(cfg) == []
    assert service.load_inventory(cfg) == []


def test_settle_client(tmp_path):
    cfg = make_config(tmp_path)
    for amount in (10, 20, 30):
        service.add_manual_transaction(
            cfg, type="debt", amount=amount, client="Ali", now=NOW
        )
    service.add_manual_transaction(cfg, type="debt", amount=5, client="Sara", now=NOW)

    assert [d.total for d in service.list_debtors(cfg)] == [60, 5]

    settled = service.settle_client(cfg, "Ali", today="2024-03-20")

    assert len(settled) == 3
    stored = service.load_transactions(cfg)
    ali = [t for t in stored if t.client == "Ali"]
    assert len(ali) == 3
    assert all(t.status == "completed" and t.date == "2024-03-20" for t in ali)
    assert [d.name for d in service.list_debtors(cfg)] == ["Sara"]
    assert service.settle_client(cfg, "Ali") == []


def test_save_inventory_item_validation_and_replace(tmp_path):
    cfg = make_config(tmp_path)

    with pytest.raises(ValueError):
        service.save_inventory_item(cfg, name=" ", price=1.0)
    with pytest.raises(ValueError):
        service.save_inventory_item(cfg, name="Tea", price=0)
    with pytest.raises(ValueError):
        service.save_inventory_item(cfg, name="Tea", price=float("nan"))
    with pytest.raises(ValueError):
        service.save_inventory_item(cfg, name="Tea", price=1.0, cost=float("inf"))

    item = service.save_inventory_item(cfg, name="Tea", price=1.0, quantity=3)
    assert item.id.startswith("ITM-")
    service.save_inventory_item(
        cfg, name="Green Tea", price=1.5, quantity=3, item_id=item.id
    )

    (stored,) = service.load_inventory(cfg)
    assert stored.name == "Green Tea"
    assert service.inventory_stats(cfg).total_value == pytest.approx(4.5)


def test_deleting_item_leaves_dangling_reference(tmp_path):
    cfg = make_config(tmp_path)
    item = service.save_inventory_item(cfg, name="Tea", price=1.0, quantity=3)
    t = service.add_manual_transaction(
        cfg, type="sale", amount=1, item_id=item.id, now=NOW
    )

    assert service.delete_inventory_item(cfg, item.id) is True
    assert service.delete_inventory_item(cfg, item.id) is False
    assert service.get_transaction(cfg, t.id).item_id == item.id


def test_dashboard_and_report(tmp_path):
    cfg = make_config(tmp_path, currency_symbol="$")
    service.add_manual_transaction(cfg, type="sale", amount=100, now=NOW)
    service.add_manual_transaction(cfg, type="expense", amount=40, now=NOW)

    rows, stats = service.dashboard(cfg)
    assert len(rows) == 2
    assert stats.net_profit == pytest.approx(60)

    period = Period(start=date(2024, 3, 1), end=date(2024, 3, 31), label="March")
    report = service.report(cfg, period)
    assert report.total_revenue == pytest.approx(100)
    assert report.total_expenses == pytest.approx(40)

    sales = service.list_transactions(cfg, history_type="sale")
    assert [t.type for t in sales] == ["sale"]


def test_export(tmp_path):
    cfg = make_config(tmp_path)
    service.add_manual_transaction(cfg, type="sale", amount=1, now=NOW)

    out = service.export(cfg, tmp_path / "export.csv")

    assert len(pd.read_csv(out)) == 1


def test_store_failure_becomes_processing_error(tmp_path, monkeypatch):
    cfg = make_config(tmp_path)

    def broken(*args, **kwargs):
        raise sqlite3.OperationalError("database is locked")

    monkeypatch.setattr(service, "_db_put_transaction", broken)

    with pytest.raises(service.ProcessingError):
        service.add_manual_transaction(cfg, type="sale", amount=1, now=NOW)
