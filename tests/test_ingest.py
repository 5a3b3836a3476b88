import threading

import pytest

import sari_ledger.ingest as ingest
from sari_ledger.ingest import (
    ImportCancelledError,
    ImportOutcome,
    IngestionError,
    decode_and_classify,
    ingest_grid,
    start_import,
)
from sari_ledger.models import InventoryItem

CSV_BYTES = (
    "date,name,price\n"
    "2024-01-01,فاتورة كهرباء,5000\n"
    "2024-01-02,Acme,1200\n"
    "2024-01-03,Nothing,\n"
).encode("utf-8")


def test_decode_and_classify_csv_bytes() -> None:
    outcome = decode_and_classify(CSV_BYTES, "sales.csv", today="2024-06-01")

    assert outcome.source_label == "sales.csv"
    assert outcome.row_count == 4
    assert outcome.header_row_index == 0
    assert [t.type for t in outcome.transactions] == ["expense", "sale"]
    assert outcome.dropped_rows == [3]


def test_decode_failure_raises_ingestion_error() -> None:
    with pytest.raises(IngestionError):
        decode_and_classify(b"", "empty.csv")


def test_corrupt_excel_raises_ingestion_error() -> None:
    with pytest.raises(IngestionError):
        decode_and_classify(b"PK\x03\x04 not really a workbook", "broken.xlsx")


def test_ingest_grid_without_rows_is_empty_success() -> None:
    result = ingest_grid([["date", "name", "price"]], today="2024-06-01")

    assert result.transactions == []


def test_background_import_thread_worker_delivers_single_result() -> None:
    inventory = [
        InventoryItem(
            id="ITM-1",
            name="Acme",
            category="",
            quantity=3,
            min_level=1,
            price=1.0,
            cost=0.5,
        )
    ]

    task = start_import(
        CSV_BYTES, "sales.csv", inventory, worker="thread", today="2024-06-01"
    )
    outcome = task.result(timeout=30)

    assert isinstance(outcome, ImportOutcome)
    assert len(outcome.transactions) == 2
    assert outcome.transactions[1].item_id == "ITM-1"
    assert task.done()
    assert not task.cancelled


def test_background_import_process_worker() -> None:
    inventory = [
        InventoryItem(
            id="ITM-1",
            name="Acme",
            category="",
            quantity=3,
            min_level=1,
            price=1.0,
            cost=0.5,
        )
    ]

    task = start_import(CSV_BYTES, "sales.csv", inventory, today="2024-06-01")
    outcome = task.result(timeout=60)

    assert outcome.source_label == "sales.csv"
    assert [t.type for t in outcome.transactions] == ["expense", "sale"]
    assert outcome.transactions[1].item_id == "ITM-1"
    assert outcome.dropped_rows == [3]
    assert task.done()


def test_background_import_process_worker_failure() -> None:
    task = start_import(b"", "empty.csv", worker="process")

    with pytest.raises(IngestionError):
        task.result(timeout=60)


def test_background_import_failure_is_reported_once() -> None:
    task = start_import(b"", "empty.csv", worker="thread")

    with pytest.raises(IngestionError):
        task.result(timeout=30)


def test_background_import_empty_batch_is_success() -> None:
    task = start_import(b"title only\n", "t.csv", worker="thread")

    outcome = task.result(timeout=30)

    assert outcome.transactions == []


def test_cancelled_import_discards_late_result(monkeypatch) -> None:
    started = threading.Event()
    release = threading.Event()

    def slow_decode(*args, **kwargs):
        started.set()
        release.wait(timeout=30)
        return ImportOutcome(source_label="late.csv")

    monkeypatch.setattr(ingest, "decode_and_classify", slow_decode)

    task = start_import(b"x", "late.csv", worker="thread")
    assert started.wait(timeout=30)

    task.cancel()
    release.set()

    assert task.cancelled
    assert task.done()
    with pytest.raises(ImportCancelledError):
        task.result(timeout=30)


def test_result_timeout_is_an_ingestion_error(monkeypatch) -> None:
    release = threading.Event()

    def blocked(*args, **kwargs):
        release.wait(timeout=30)
        return ImportOutcome(source_label="slow.csv")

    monkeypatch.setattr(ingest, "decode_and_classify", blocked)

    task = start_import(b"x", "slow.csv", worker="thread")
    try:
        with pytest.raises(IngestionError) as excinfo:
            task.result(timeout=0.05)
        assert not isinstance(excinfo.value, ImportCancelledError)
        assert task.cancelled
        with pytest.raises(ImportCancelledError):
            task.result(timeout=30)
    finally:
        release.set()


def test_unknown_worker_mode() -> None:
    with pytest.raises(ValueError):
        start_import(CSV_BYTES, "sales.csv", worker="fiber")
