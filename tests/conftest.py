# SPDX-License-Identifier: Apache-2.0
"""Shared fixtures: PDFs generated on the fly and collaborator doubles."""

from __future__ import annotations

import ctypes
from io import BytesIO
from typing import Any

import pypdfium2 as pdfium  # type: ignore[import-untyped]
import pytest

from pdf_text_editor.core.helpers import to_widestring
from pdf_text_editor.core.models import BBox, Color, PageSize, Point

PAGE_WIDTH = 612.0
PAGE_HEIGHT = 792.0

# (text, x, y, size) per page
SAMPLE_PAGES: list[list[tuple[str, float, float, float]]] = [
    [
        ("Invoice #001", 50.0, 700.0, 12.0),
        (" ", 50.0, 650.0, 12.0),
        ("Total: $100", 50.0, 600.0, 12.0),
    ],
    [
        ("Page two", 72.0, 720.0, 14.0),
    ],
]


def build_pdf(pages: list[list[tuple[str, float, float, float]]]) -> bytes:
    """Create a PDF with Helvetica text objects at the given baselines."""
    pdf = pdfium.PdfDocument.new()
    try:
        font = pdfium.raw.FPDFText_LoadStandardFont(pdf.raw, b"Helvetica")
        for index, runs in enumerate(pages):
            page = pdf.new_page(PAGE_WIDTH, PAGE_HEIGHT)
            for text, x, y, size in runs:
                obj = pdfium.raw.FPDFPageObj_CreateTextObj(pdf.raw, font, ctypes.c_float(size))
                pdfium.raw.FPDFText_SetText(obj, to_widestring(text))
                pdfium.raw.FPDFPageObj_Transform(
                    obj,
                    ctypes.c_double(1.0),
                    ctypes.c_double(0.0),
                    ctypes.c_double(0.0),
                    ctypes.c_double(1.0),
                    ctypes.c_double(x),
                    ctypes.c_double(y),
                )
                pdfium.raw.FPDFPage_InsertObject(page.raw, obj)
            page.gen_content()
            page.close()
        buffer = BytesIO()
        pdf.save(buffer)
        return buffer.getvalue()
    finally:
        pdf.close()


@pytest.fixture(scope="session")
def sample_pdf_bytes() -> bytes:
    """Two-page PDF: page 1 has two runs around a whitespace-only object."""
    return build_pdf(SAMPLE_PAGES)


@pytest.fixture(scope="session")
def single_page_pdf_bytes() -> bytes:
    """One page with "Invoice #001" at (50, 700), size 12."""
    return build_pdf([[("Invoice #001", 50.0, 700.0, 12.0)]])


class FakeFont:
    """Substitute font with Helvetica's AFM proportions."""

    def __init__(self, name: str = "Helvetica") -> None:
        self._name = name

    @property
    def name(self) -> str:
        return self._name

    def ascent_height(self, size: float) -> float:
        return 0.718 * size

    def total_height(self, size: float) -> float:
        return (0.718 + 0.207) * size


class FakeDocumentModel:
    """Document model double that records drawing calls in order."""

    def __init__(self, page_count: int = 1, page_size: PageSize | None = None) -> None:
        self.pages = page_count
        self.size = page_size or PageSize(PAGE_WIDTH, PAGE_HEIGHT)
        self.calls: list[tuple[Any, ...]] = []
        self.loaded: list[bytes] = []
        self.closed = 0
        self.fail_load = False
        self.fail_draw = False

    def load(self, pdf_bytes: bytes) -> str:
        if self.fail_load:
            raise ValueError("not a PDF")
        self.loaded.append(pdf_bytes)
        return "handle"

    def page_count(self, handle: Any) -> int:
        return self.pages

    def page_size(self, handle: Any, page_number: int) -> PageSize:
        return self.size

    def embed_standard_font(self, handle: Any, name: str) -> FakeFont:
        return FakeFont(name)

    def draw_rectangle(self, handle: Any, page_number: int, bbox: BBox, fill_color: Color) -> None:
        if self.fail_draw:
            raise RuntimeError("draw failed")
        self.calls.append(("rect", page_number, bbox, fill_color))

    def draw_text(
        self,
        handle: Any,
        page_number: int,
        text: str,
        position: Point,
        size: float,
        font: Any,
        color: Color,
    ) -> None:
        self.calls.append(("text", page_number, text, position, size, color))

    def serialize(self, handle: Any) -> bytes:
        return b"%PDF-patched"

    def close(self, handle: Any) -> None:
        self.closed += 1


@pytest.fixture
def fake_model() -> FakeDocumentModel:
    return FakeDocumentModel()
