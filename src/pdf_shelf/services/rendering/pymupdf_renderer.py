"""PyMuPDF implementation of the document renderer."""

from typing import List

import pymupdf

from pdf_shelf.core import OutlineEntry, RasterBuffer
from pdf_shelf.services.rendering.document_renderer import DocumentRenderer


class PyMuPdfRenderer(DocumentRenderer):
    """Renders PDF documents through PyMuPDF."""

    def open(self, path: str) -> pymupdf.Document:
        doc = pymupdf.open(path, filetype="pdf")
        if doc.page_count == 0:
            doc.close()
            raise ValueError("document has no pages")
        return doc

    def page_count(self, handle: pymupdf.Document) -> int:
        return handle.page_count

    def get_page(self, handle: pymupdf.Document, index: int) -> pymupdf.Page:
        return handle.load_page(index)

    def render(self, page: pymupdf.Page, width: int, height: int) -> RasterBuffer:
        rect = page.rect
        if rect.width <= 0 or rect.height <= 0:
            raise ValueError("page has an empty media box")
        matrix = pymupdf.Matrix(width / rect.width, height / rect.height)
        pix = page.get_pixmap(matrix=matrix, alpha=False)
        return RasterBuffer(
            width=pix.width,
            height=pix.height,
            stride=pix.stride,
            samples=bytes(pix.samples),
        )

    def close(self, handle: pymupdf.Document) -> None:
        handle.close()

    def load_outline(self, handle: pymupdf.Document) -> List[OutlineEntry]:
        toc = handle.get_toc(simple=True)
        return build_outline_tree(toc)


def build_outline_tree(toc: List[list]) -> List[OutlineEntry]:
    """Turn a flat ``[level, title, page]`` list into nested entries.

    Pages in ``toc`` are 1-based; entries without a target use page <= 0.
    Levels that skip ahead are attached to the nearest shallower entry.
    """
    roots: List[dict] = []
    stack: List[tuple] = []  # (level, node)
    for level, title, page, *_ in toc:
        node = {"title": title, "page": page - 1 if page > 0 else -1, "children": []}
        while stack and stack[-1][0] >= level:
            stack.pop()
        if stack:
            stack[-1][1]["children"].append(node)
        else:
            roots.append(node)
        stack.append((level, node))
    return [_freeze(node) for node in roots]


def _freeze(node: dict) -> OutlineEntry:
    return OutlineEntry(
        title=node["title"],
        destination_page=node["page"],
        children=[_freeze(child) for child in node["children"]],
    )
