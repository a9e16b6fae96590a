"""Services layer - document engine, caches, configuration and workers."""

from pdf_shelf.services.settings_manager import SettingsManager
from pdf_shelf.services.cover_cache import CoverCache, sanitize_name
from pdf_shelf.services.document_cache import DocumentCache
from pdf_shelf.services.progress_tracker import ProgressTracker

# Rendering engines
from pdf_shelf.services.rendering import DocumentRenderer, PyMuPdfRenderer

# Background workers
from pdf_shelf.services.workers import ImportWorker, PreloadWorker, StoreWriteWorker, WorkerSignals

__all__ = [
    "SettingsManager",
    "CoverCache",
    "sanitize_name",
    "DocumentCache",
    "ProgressTracker",
    "DocumentRenderer",
    "PyMuPdfRenderer",
    "ImportWorker",
    "PreloadWorker",
    "StoreWriteWorker",
    "WorkerSignals",
]
