# SARI Ledger - Spreadsheet bookkeeping & analytics for small shops
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Ingestion pipeline: file bytes → decoded grid → classified transactions.

The pipeline has two entry points:

- ``decode_and_classify(...)`` runs decode + header detection + row
  classification + inventory linking synchronously and returns an
  ``ImportOutcome``. It is a plain module-level function so it can be shipped
  to a worker process.

- ``start_import(...)`` runs the same function off the calling thread, in a
  dedicated single-worker executor (process or thread), and returns an
  ``ImportTask``. The task exposes a single result: either an
  ``ImportOutcome`` or an ``IngestionError``. There is no progress stream.
  The caller may cancel the task, after which any late result is discarded.

Failure semantics
-----------------
- Decode failure → ``IngestionError``, nothing is classified.
- Zero usable rows → successful ``ImportOutcome`` with an empty batch.
- Per-row defects are handled by the classifier fallbacks and never abort.

Each import owns its executor; concurrent imports share no mutable state.
Persisting the batch is the caller's job (see ``ledger_service``).
"""

from __future__ import annotations

import threading
from collections.abc import Sequence
from concurrent.futures import (
    CancelledError,
    Executor,
    Future,
    ProcessPoolExecutor,
    ThreadPoolExecutor,
)
from concurrent.futures import TimeoutError as FutureTimeoutError
from dataclasses import dataclass, field
from typing import Literal

from .classifier import DEFAULT_FALLBACK_NAME, ClassificationResult, classify_rows
from .header import Grid
from .io import IngestionError, decode_spreadsheet
from .logging_setup import get_logger
from .models import InventoryItem, Transaction

logger = get_logger("sari_ledger.ingest")

WorkerMode = Literal["process", "thread"]
WORKER_MODES: tuple[str, ...] = ("process", "thread")

__all__ = [
    "ImportCancelledError",
    "ImportOutcome",
    "ImportTask",
    "IngestionError",
    "decode_and_classify",
    "ingest_grid",
    "start_import",
]


class ImportCancelledError(IngestionError):
    """Raised when the result of a cancelled import is requested."""


@dataclass(frozen=True)
class ImportOutcome:
    """
    Successful result of one import run.

    Attributes
    ----------
    source_label:
        Filename (or other label) of the imported file.
    transactions:
        Classified records proposed for appending to the store.
    row_count:
        Number of rows in the decoded grid.
    header_row_index:
        Index of the detected header row, or None.
    dropped_rows:
        Grid indices of rows dropped for lack of an amount.
    """

    source_label: str
    transactions: list[Transaction] = field(default_factory=list)
    row_count: int = 0
    header_row_index: int | None = None
    dropped_rows: list[int] = field(default_factory=list)


def ingest_grid(
    grid: Grid,
    inventory: Sequence[InventoryItem] = (),
    *,
    today: str | None = None,
    fallback_name: str = DEFAULT_FALLBACK_NAME,
) -> ClassificationResult:
    """Classify an already decoded grid (header detection included)."""
    return classify_rows(
        grid,
        inventory,
        today=today,
        fallback_name=fallback_name,
    )


def decode_and_classify(
    data: bytes,
    filename: str | None = None,
    inventory: Sequence[InventoryItem] = (),
    *,
    today: str | None = None,
    fallback_name: str = DEFAULT_FALLBACK_NAME,
) -> ImportOutcome:
    """
    Decode ``data`` and classify its rows.

    Raises
    ------
    IngestionError
        If the file cannot be decoded or processing fails unexpectedly.
    """
    grid = decode_spreadsheet(data, filename)
    try:
        result = ingest_grid(
            grid,
            inventory,
            today=today,
            fallback_name=fallback_name,
        )
    except Exception as exc:  # noqa: BLE001
        raise IngestionError(f"Failed to process the file: {exc}") from exc

    return ImportOutcome(
        source_label=filename or "upload",
        transactions=result.transactions,
        row_count=len(grid),
        header_row_index=result.header.header_row_index,
        dropped_rows=result.dropped_rows,
    )


class ImportTask:
    """
    Handle on an import running in its own single-worker executor.

    Only one result is ever delivered. ``cancel()`` discards it: a task that
    has not started yet never runs, and a task that is already running keeps
    its worker until it finishes but its outcome is ignored.
    """

    def __init__(self, future: Future, executor: Executor, source_label: str):
        self._future = future
        self._executor = executor
        self._lock = threading.Lock()
        self._cancelled = False
        self.source_label = source_label
        future.add_done_callback(lambda _f: self._release())

    def _release(self) -> None:
        self._executor.shutdown(wait=False)

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def done(self) -> bool:
        return self._cancelled or self._future.done()

    def cancel(self) -> None:
        """Stop waiting for this import; any late result is discarded."""
        with self._lock:
            if self._cancelled:
                return
            self._cancelled = True
        self._future.cancel()
        self._executor.shutdown(wait=False, cancel_futures=True)
        logger.info("Import of %s cancelled", self.source_label)

    def result(self, timeout: float | None = None) -> ImportOutcome:
        """
        Wait for and return the import outcome.

        Raises
        ------
        ImportCancelledError
            If the task was cancelled.
        IngestionError
            If decoding or classification failed, or the timeout expired (the
            task is then cancelled).
        """
        if self._cancelled:
            raise ImportCancelledError(f"Import of {self.source_label} was cancelled.")
        try:
            outcome = self._future.result(timeout=timeout)
        except CancelledError as exc:
            raise ImportCancelledError(
                f"Import of {self.source_label} was cancelled."
            ) from exc
        except FutureTimeoutError as exc:
            self.cancel()
            raise IngestionError(
                f"Import of {self.source_label} did not finish in time."
            ) from exc
        except IngestionError:
            raise
        except Exception as exc:  # noqa: BLE001
            # Worker crashes (e.g. BrokenProcessPool) surface as one error.
            raise IngestionError(f"Failed to process the file: {exc}") from exc

        if self._cancelled:
            raise ImportCancelledError(f"Import of {self.source_label} was cancelled.")
        return outcome


def _make_executor(worker: str) -> Executor:
    if worker == "process":
        return ProcessPoolExecutor(max_workers=1)
    if worker == "thread":
        return ThreadPoolExecutor(max_workers=1, thread_name_prefix="sari-import")
    raise ValueError(
        f"Unknown import worker mode: {worker!r}. Expected one of {WORKER_MODES}."
    )


def start_import(
    data: bytes,
    filename: str | None = None,
    inventory: Sequence[InventoryItem] = (),
    *,
    worker: WorkerMode = "process",
    today: str | None = None,
    fallback_name: str = DEFAULT_FALLBACK_NAME,
) -> ImportTask:
    """
    Start decoding and classifying ``data`` in the background.

    Parameters
    ----------
    data:
        Raw spreadsheet bytes.
    filename:
        Original filename (used to pick the decoder and as a label).
    inventory:
        Snapshot of inventory items used for name linking.
    worker:
        "process" (default) for a separate worker process, "thread" for a
        worker thread.
    today:
        Date used for rows without a usable date.
    fallback_name:
        Label for rows without any usable name.

    Returns
    -------
    ImportTask
        Handle delivering a single result.
    """
    executor = _make_executor(worker)
    label = filename or "upload"
    logger.info("Starting import of %s (%d bytes, %s worker)", label, len(data), worker)
    future = executor.submit(
        decode_and_classify,
        data,
        filename,
        list(inventory),
        today=today,
        fallback_name=fallback_name,
    )
    return ImportTask(future, executor, label)
