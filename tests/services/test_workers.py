#!/usr/bin/env python3
"""
Tests for the background workers. run() is called directly so signals are
delivered synchronously.
"""

import logging
from unittest.mock import MagicMock

from PySide6.QtCore import QCoreApplication

from pdf_shelf.io import ImportResult
from pdf_shelf.services import ImportWorker, PreloadWorker, StoreWriteWorker


def ensure_qt_app():
    if QCoreApplication.instance() is None:
        QCoreApplication([])


def collect(signal):
    received = []
    signal.connect(lambda *args: received.append(args))
    return received


def test_store_write_worker_runs_batch():
    write = MagicMock()

    StoreWriteWorker(write, "tabs").run()

    write.assert_called_once_with()


def test_store_write_worker_logs_failures(caplog):
    write = MagicMock(side_effect=OSError("read-only"))

    with caplog.at_level(logging.WARNING):
        StoreWriteWorker(write, "tabs").run()

    assert "Failed to persist tabs" in caplog.text


def test_import_worker_emits_result():
    ensure_qt_app()
    importer = MagicMock()
    importer.import_book.return_value = ImportResult.success("a.pdf")
    worker = ImportWorker(importer, "/inbox/a.pdf")
    results = collect(worker.signals.import_result)
    finished = collect(worker.signals.finished)

    worker.run()

    importer.import_book.assert_called_once_with("/inbox/a.pdf")
    assert results[0][0].book_name == "a.pdf"
    assert len(finished) == 1


def test_import_worker_reports_unexpected_error():
    ensure_qt_app()
    importer = MagicMock()
    importer.import_book.side_effect = RuntimeError("boom")
    worker = ImportWorker(importer, "/inbox/a.pdf")
    errors = collect(worker.signals.error)
    finished = collect(worker.signals.finished)

    worker.run()

    assert errors == [("Unexpected import error: boom",)]
    assert len(finished) == 1


def test_preload_worker_emits_result():
    ensure_qt_app()
    cache = MagicMock()
    cache.preload_pages.return_value = True
    worker = PreloadWorker(cache, "/books/a.pdf", start=4)
    results = collect(worker.signals.preload_result)

    worker.run()

    cache.preload_pages.assert_called_once_with("/books/a.pdf", 4, 3)
    assert results == [(True,)]
