from dataclasses import replace

import pytest

from sari_ledger.db import (
    DatabaseConfig,
    clear_store,
    delete_inventory_item,
    delete_transaction,
    get_inventory_item,
    get_transaction,
    has_transactions,
    import_transactions,
    init_database,
    list_import_batches,
    load_inventory,
    load_transactions,
    put_inventory_item,
    put_transaction,
    put_transactions,
)
from sari_ledger.models import InventoryItem, Transaction


def make_tmp_db_cfg(tmp_path) -> DatabaseConfig:
    """Helper to build a DatabaseConfig pointing to a temporary SQLite file."""
    db_path = tmp_path / "db" / "test_db.sqlite"
    return DatabaseConfig(engine="sqlite", path=db_path)


def make_tx(tx_id: str, amount: float = 10.0, **overrides) -> Transaction:
    data = dict(
        id=tx_id,
        type="sale",
        client="Acme",
        date="2024-01-02",
        time="12:00",
        amount=amount,
        currency="IQD",
        status="completed",
        method="Import",
    )
    data.update(overrides)
    return Transaction(**data)


def make_item(item_id: str, name: str = "Tea") -> InventoryItem:
    return InventoryItem(
        id=item_id,
        name=name,
        category="drinks",
        quantity=5,
        min_level=2,
        price=2.5,
        cost=1.25,
    )


def test_init_database_creates_file_and_schema(tmp_path):
    """init_database should create the SQLite file and its parent directory."""
    cfg = make_tmp_db_cfg(tmp_path)

    assert not cfg.path.exists()
    init_database(cfg)
    assert cfg.path.exists()

    assert has_transactions(cfg) is False
    assert load_transactions(cfg) == []
    assert load_inventory(cfg) == []


def test_unsupported_engine(tmp_path):
    cfg = DatabaseConfig(engine="postgres", path=tmp_path / "x.db")

    with pytest.raises(ValueError):
        init_database(cfg)


def test_transaction_round_trip_keeps_every_field(tmp_path):
    cfg = make_tmp_db_cfg(tmp_path)
    tx = make_tx(
        "TX-1",
        1234.56,
        client_phone="0770",
        item_id="ITM-9",
        raw_text="2024-01-02 | Acme | 1234.56",
    )

    put_transaction(cfg, tx)

    assert get_transaction(cfg, "TX-1") == tx
    assert get_transaction(cfg, "TX-404") is None
    assert has_transactions(cfg) is True


def test_amounts_reload_unrounded(tmp_path):
    cfg = make_tmp_db_cfg(tmp_path)
    put_transactions(cfg, [make_tx("TX-1", 0.004), make_tx("TX-2", 12.345)])
    item = InventoryItem(
        id="ITM-1",
        name="Tea",
        category="",
        quantity=1,
        min_level=0,
        price=0.125,
        cost=0.0049,
    )
    put_inventory_item(cfg, item)

    assert [t.amount for t in load_transactions(cfg)] == [0.004, 12.345]
    assert load_inventory(cfg) == [item]


def test_put_replaces_by_id_and_keeps_position(tmp_path):
    cfg = make_tmp_db_cfg(tmp_path)
    put_transactions(cfg, [make_tx("TX-1"), make_tx("TX-2"), make_tx("TX-3")])

    put_transaction(cfg, replace(make_tx("TX-1"), amount=99.0, status="failed"))

    loaded = load_transactions(cfg)
    assert [t.id for t in loaded] == ["TX-1", "TX-2", "TX-3"]
    assert loaded[0].amount == 99.0
    assert loaded[0].status == "failed"


def test_delete_transaction(tmp_path):
    cfg = make_tmp_db_cfg(tmp_path)
    put_transaction(cfg, make_tx("TX-1"))

    assert delete_transaction(cfg, "TX-1") is True
    assert delete_transaction(cfg, "TX-1") is False
    assert load_transactions(cfg) == []


def test_import_transactions_records_batch(tmp_path):
    cfg = make_tmp_db_cfg(tmp_path)

    stats = import_transactions(
        cfg, [make_tx("TX-1"), make_tx("TX-2")], source_label="sales.xlsx"
    )

    assert stats.rows_inserted == 2
    assert len(load_transactions(cfg)) == 2

    batches = list_import_batches(cfg)
    assert list(batches["source_label"]) == ["sales.xlsx"]
    assert int(batches.loc[0, "rows_inserted"]) == 2
    assert int(batches.loc[0, "id"]) == stats.batch_id


def test_import_empty_batch(tmp_path):
    cfg = make_tmp_db_cfg(tmp_path)

    stats = import_transactions(cfg, [], source_label="empty.csv")

    assert stats.rows_inserted == 0
    assert has_transactions(cfg) is False


def test_list_import_batches_empty(tmp_path):
    cfg = make_tmp_db_cfg(tmp_path)

    batches = list_import_batches(cfg)

    assert batches.empty
    assert list(batches.columns) == [
        "id",
        "created_at",
        "source_label",
        "rows_inserted",
    ]


def test_inventory_crud(tmp_path):
    cfg = make_tmp_db_cfg(tmp_path)
    put_inventory_item(cfg, make_item("ITM-1"))
    put_inventory_item(cfg, make_item("ITM-2", "Coffee"))

    assert get_inventory_item(cfg, "ITM-1") == make_item("ITM-1")
    assert [i.id for i in load_inventory(cfg)] == ["ITM-1", "ITM-2"]

    put_inventory_item(cfg, replace(make_item("ITM-1"), quantity=-2))
    assert get_inventory_item(cfg, "ITM-1").quantity == -2

    assert delete_inventory_item(cfg, "ITM-2") is True
    assert delete_inventory_item(cfg, "ITM-2") is False
    assert get_inventory_item(cfg, "ITM-2") is None


def test_clear_store_empties_both_collections(tmp_path):
    cfg = make_tmp_db_cfg(tmp_path)
    put_transaction(cfg, make_tx("TX-1"))
    put_inventory_item(cfg, make_item("ITM-1"))

    clear_store(cfg)

    assert load_transactions(cfg) == []
    assert load_inventory(cfg) == []
