"""Main entry point: composition root and the pdf-shelf command line."""

import argparse
import logging
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, List, Optional, Union

from PySide6.QtCore import QCoreApplication, QThreadPool

from pdf_shelf.coordinators import SessionManager
from pdf_shelf.core import InvalidIndex, OutlineEntry
from pdf_shelf.io import BookImporter, ImportResult, KeyValueStore, SettingsKeyValueStore
from pdf_shelf.logging_setup import setup_logging
from pdf_shelf.services import (
    CoverCache,
    DocumentCache,
    DocumentRenderer,
    ImportWorker,
    PreloadWorker,
    ProgressTracker,
    PyMuPdfRenderer,
    SettingsManager,
)

LOGGER = logging.getLogger(__name__)


@dataclass
class Services:
    """Everything the presentation layer talks to.

    Imports and page preloads can run off the caller's thread through
    import_in_background() and preload_in_background(). Results arrive as
    queued signals, so the caller's thread needs a running event loop.
    """

    settings: SettingsManager
    store: KeyValueStore
    document_cache: DocumentCache
    cover_cache: CoverCache
    progress_tracker: ProgressTracker
    session_manager: SessionManager
    importer: BookImporter
    worker_pool: QThreadPool = field(default_factory=QThreadPool.globalInstance)

    def import_in_background(
        self, source_path: Union[str, Path], on_result: Optional[Callable[[ImportResult], None]] = None
    ) -> None:
        worker = ImportWorker(self.importer, source_path)
        if on_result is not None:
            worker.signals.import_result.connect(on_result)
        self.worker_pool.start(worker)

    def preload_in_background(
        self, path: Path, start: int, count: int = 3, on_result: Optional[Callable[[bool], None]] = None
    ) -> None:
        worker = PreloadWorker(self.document_cache, path, start, count)
        if on_result is not None:
            worker.signals.preload_result.connect(on_result)
        self.worker_pool.start(worker)

    def shutdown(self) -> None:
        if not self.worker_pool.waitForDone(5000):
            LOGGER.warning("Background work still running at shutdown")
        self.progress_tracker.flush()
        self.session_manager.shutdown()
        self.document_cache.close()


def build_services(
    settings: Optional[SettingsManager] = None,
    store: Optional[KeyValueStore] = None,
    renderer: Optional[DocumentRenderer] = None,
) -> Services:
    """
    Wire all components following the Composition Root pattern.
    This is the only place that knows how to instantiate and wire them;
    each component receives the ones built before it.
    """
    # 1. Configuration and durable store
    settings = settings or SettingsManager()
    store = store or SettingsKeyValueStore(settings.settings_path)
    settings.attach_store(store)

    # 2. Document engine and caches
    document_cache = DocumentCache(renderer or PyMuPdfRenderer(), cover_size=settings.cover_size)
    cover_cache = CoverCache(settings.covers_dir)
    progress_tracker = ProgressTracker(store, delay_ms=settings.progress_save_delay_ms)

    # 3. Session (catalog + tabs)
    session_manager = SessionManager(
        store=store,
        settings=settings,
        cover_cache=cover_cache,
        document_cache=document_cache,
        progress_tracker=progress_tracker,
    )

    # 4. Import pipeline
    importer = BookImporter(
        session_manager=session_manager,
        document_cache=document_cache,
        cover_cache=cover_cache,
        books_dir=settings.books_dir,
    )

    session_manager.initialize()

    return Services(
        settings=settings,
        store=store,
        document_cache=document_cache,
        cover_cache=cover_cache,
        progress_tracker=progress_tracker,
        session_manager=session_manager,
        importer=importer,
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="pdf-shelf", description="Manage the PDF Shelf library and session.")
    parser.add_argument("-v", "--verbose", action="store_true", help="log debug output")
    sub = parser.add_subparsers(dest="command", required=True)

    p_import = sub.add_parser("import", help="import PDF files into the library")
    p_import.add_argument("paths", nargs="+")
    p_import.add_argument("--open", action="store_true", help="open each imported book in a tab")

    sub.add_parser("list", help="list every book in the library")
    sub.add_parser("status", help="show open tabs")

    p_open = sub.add_parser("open", help="open a book in a tab")
    p_open.add_argument("name")

    p_close = sub.add_parser("close", help="close the tab at INDEX")
    p_close.add_argument("index", type=int)

    p_switch = sub.add_parser("switch", help="activate the tab at INDEX")
    p_switch.add_argument("index", type=int)

    p_outline = sub.add_parser("outline", help="print a book's table of contents")
    p_outline.add_argument("name")

    p_restore = sub.add_parser("auto-restore", help="turn tab restore on startup on or off")
    p_restore.add_argument("value", choices=["on", "off"])

    sub.add_parser("clear", help="forget every book and close every tab")
    return parser


def _print_outline(entries: List[OutlineEntry], depth: int = 0) -> None:
    for entry in entries:
        page = entry.destination_page + 1 if entry.destination_page >= 0 else "-"
        print(f"{'  ' * depth}{entry.title} ... {page}")
        _print_outline(entry.children, depth + 1)


def _print_status(session: SessionManager) -> None:
    tabs = session.get_open_books()
    if not tabs:
        print("No open tabs.")
        return
    current = session.get_current_index()
    for index, name in enumerate(tabs):
        marker = "*" if index == current else " "
        print(f"{marker} [{index}] {name}")


def run_command(services: Services, args: argparse.Namespace) -> int:
    session = services.session_manager

    if args.command == "import":
        status = 0
        for path in args.paths:
            result = services.importer.import_book(path)
            if not result.ok:
                print(f"error: {result.error}", file=sys.stderr)
                status = 1
                continue
            print(f"Imported: {result.book_name}")
            if args.open and not session.open_book(result.book_name):
                print(f"warning: {session.limit_message()}", file=sys.stderr)
        return status

    if args.command == "list":
        for name in session.get_all_books():
            book = session.get_book(name)
            page = "" if book.last_read_page is None else f" (page {book.last_read_page + 1})"
            print(f"{name}{page}")
        return 0

    if args.command == "status":
        _print_status(session)
        return 0

    if args.command == "open":
        if not session.open_book(args.name):
            print(f"error: {session.limit_message()}", file=sys.stderr)
            return 1
        path = session.get_book_file_path(args.name)
        if path is not None:
            book = session.get_book(args.name)
            services.preload_in_background(path, book.last_read_page or 0)
        _print_status(session)
        return 0

    if args.command in ("close", "switch"):
        count = len(session.get_open_books())
        if not 0 <= args.index < count:
            print(f"error: {InvalidIndex(args.index, count)}", file=sys.stderr)
            return 1

    if args.command == "close":
        session.close_book(args.index)
        _print_status(session)
        return 0

    if args.command == "switch":
        session.switch_to_book(args.index)
        _print_status(session)
        return 0

    if args.command == "outline":
        path = session.get_book_file_path(args.name)
        if path is None:
            print(f"error: unknown book {args.name!r}", file=sys.stderr)
            return 1
        _print_outline(services.document_cache.load_outline(path))
        return 0

    if args.command == "auto-restore":
        services.settings.set_auto_restore(args.value == "on")
        return 0

    if args.command == "clear":
        session.clear_all_data()
        services.cover_cache.clear_cover_cache(None)
        return 0

    return 2


def main(argv: Optional[List[str]] = None) -> int:
    """Bootstrap the application and run one command."""
    args = _build_parser().parse_args(argv)

    # 1. Initialize Application (timers and thread pools need it)
    app = QCoreApplication.instance() or QCoreApplication(sys.argv[:1])
    app.setApplicationName("PDF Shelf")
    app.setOrganizationName("PdfShelf")

    settings = SettingsManager()
    setup_logging(logging.DEBUG if args.verbose else logging.WARNING, log_dir=settings.data_dir / "logs")

    services = build_services(settings=settings)
    try:
        return run_command(services, args)
    except Exception as e:
        LOGGER.exception("Command %s failed", args.command)
        print(f"error: {e}", file=sys.stderr)
        return 1
    finally:
        services.shutdown()


if __name__ == "__main__":
    sys.exit(main())
