"""Rendering services - document engine abstraction and PyMuPDF backend."""

from pdf_shelf.services.rendering.document_renderer import DocumentRenderer
from pdf_shelf.services.rendering.pymupdf_renderer import PyMuPdfRenderer

__all__ = [
    "DocumentRenderer",
    "PyMuPdfRenderer",
]
