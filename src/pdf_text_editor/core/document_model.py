# SPDX-License-Identifier: Apache-2.0
"""Document model backed by pypdfium2.

Provides the small drawing surface the patcher needs: load a document from
bytes, query pages, paint filled rectangles, draw text in a standard font,
and serialize. Page numbers at this boundary are 1-based.
"""

from __future__ import annotations

import ctypes
import logging
from io import BytesIO
from typing import Any, Optional, Protocol, runtime_checkable

import pypdfium2 as pdfium  # type: ignore[import-untyped]

from .helpers import to_widestring
from .models import BBox, Color, PageSize, Point

logger = logging.getLogger(__name__)

# FPDF_FILLMODE_WINDING
FILL_MODE_WINDING = 2

# AFM ascender/descender (per 1000 em) of the base-14 fonts, used when PDFium
# reports zero metrics for a font loaded without a FontDescriptor
AFM_VERTICAL_METRICS: dict[str, tuple[float, float]] = {
    "Helvetica": (718.0, -207.0),
    "Helvetica-Bold": (718.0, -207.0),
    "Helvetica-Oblique": (718.0, -207.0),
    "Helvetica-BoldOblique": (718.0, -207.0),
    "Times-Roman": (683.0, -217.0),
    "Times-Bold": (683.0, -217.0),
    "Times-Italic": (683.0, -217.0),
    "Times-BoldItalic": (683.0, -217.0),
    "Courier": (629.0, -157.0),
    "Courier-Bold": (629.0, -157.0),
    "Courier-Oblique": (629.0, -157.0),
    "Courier-BoldOblique": (629.0, -157.0),
}


@runtime_checkable
class StandardFont(Protocol):
    """Vertical metrics of an embedded standard font."""

    @property
    def name(self) -> str: ...

    def total_height(self, size: float) -> float:
        """Ascent plus descent at ``size``."""
        ...

    def ascent_height(self, size: float) -> float:
        """Ascent at ``size``."""
        ...


@runtime_checkable
class DocumentModel(Protocol):
    """Protocol for the PDF object model used at save time."""

    def load(self, pdf_bytes: bytes) -> Any: ...

    def page_count(self, handle: Any) -> int: ...

    def page_size(self, handle: Any, page_number: int) -> PageSize: ...

    def draw_rectangle(
        self, handle: Any, page_number: int, bbox: BBox, fill_color: Color
    ) -> None: ...

    def draw_text(
        self,
        handle: Any,
        page_number: int,
        text: str,
        position: Point,
        size: float,
        font: StandardFont,
        color: Color,
    ) -> None: ...

    def embed_standard_font(self, handle: Any, name: str) -> StandardFont: ...

    def serialize(self, handle: Any) -> bytes: ...

    def close(self, handle: Any) -> None: ...


class PdfiumStandardFont:
    """A base-14 font loaded into one PDFium document."""

    def __init__(self, name: str, raw_handle: Any) -> None:
        self._name = name
        self.raw = raw_handle

    @property
    def name(self) -> str:
        return self._name

    def _metric(self, getter: Any, size: float) -> float:
        value = ctypes.c_float()
        ok = getter(self.raw, ctypes.c_float(size), ctypes.byref(value))
        if not ok:
            logger.debug("PDFium returned no metrics for %s", self._name)
            return 0.0
        return float(value.value)

    def _vertical_metrics(self, size: float) -> tuple[float, float]:
        """Return (ascent, descent) at ``size``; descent is negative."""
        ascent = self._metric(pdfium.raw.FPDFFont_GetAscent, size)
        descent = self._metric(pdfium.raw.FPDFFont_GetDescent, size)
        if ascent == 0.0 and descent == 0.0 and self._name in AFM_VERTICAL_METRICS:
            afm_ascent, afm_descent = AFM_VERTICAL_METRICS[self._name]
            return afm_ascent * size / 1000.0, afm_descent * size / 1000.0
        return ascent, descent

    def ascent_height(self, size: float) -> float:
        return self._vertical_metrics(size)[0]

    def total_height(self, size: float) -> float:
        ascent, descent = self._vertical_metrics(size)
        return ascent - descent


class PdfiumDocumentHandle:
    """An open PDFium document plus the per-document state of the model."""

    def __init__(self, pdf: pdfium.PdfDocument) -> None:
        self.pdf = pdf
        self.fonts: dict[str, PdfiumStandardFont] = {}
        # Page objects must stay alive until gen_content() runs
        self.open_pages: dict[int, pdfium.PdfPage] = {}


class PdfiumDocumentModel:
    """Document model implementation using pypdfium2.

    Inserted objects are only written to the page content stream when
    ``serialize()`` runs, once per modified page, so insertion order is
    preserved as z-order: objects inserted later paint on top.

    Example:
        >>> model = PdfiumDocumentModel()
        >>> handle = model.load(pdf_bytes)
        >>> font = model.embed_standard_font(handle, "Helvetica")
        >>> model.draw_text(handle, 1, "Hello", Point(72, 700), 12.0, font, BLACK)
        >>> data = model.serialize(handle)
        >>> model.close(handle)
    """

    def load(self, pdf_bytes: bytes) -> PdfiumDocumentHandle:
        """Parse ``pdf_bytes`` into a new document.

        Raises:
            pypdfium2.PdfiumError: If the data is not a readable PDF.
        """
        pdf = pdfium.PdfDocument(pdf_bytes)
        return PdfiumDocumentHandle(pdf)

    def page_count(self, handle: PdfiumDocumentHandle) -> int:
        return len(handle.pdf)

    def _check_page(self, handle: PdfiumDocumentHandle, page_number: int) -> None:
        count = len(handle.pdf)
        if page_number < 1 or page_number > count:
            raise IndexError(f"Page number {page_number} out of range [1, {count}]")

    def _get_page(self, handle: PdfiumDocumentHandle, page_number: int) -> pdfium.PdfPage:
        self._check_page(handle, page_number)
        if page_number not in handle.open_pages:
            handle.open_pages[page_number] = handle.pdf[page_number - 1]
        return handle.open_pages[page_number]

    def page_size(self, handle: PdfiumDocumentHandle, page_number: int) -> PageSize:
        page = self._get_page(handle, page_number)
        width, height = page.get_size()
        return PageSize(width=float(width), height=float(height))

    def embed_standard_font(
        self, handle: PdfiumDocumentHandle, name: str
    ) -> PdfiumStandardFont:
        """Load a standard PDF font (cached per document).

        Raises:
            ValueError: If PDFium does not know the font name.
        """
        if name in handle.fonts:
            return handle.fonts[name]

        raw_font = pdfium.raw.FPDFText_LoadStandardFont(
            handle.pdf.raw, name.encode("utf-8")
        )
        if not raw_font:
            raise ValueError(f"Unable to load standard font: {name}")

        font = PdfiumStandardFont(name, raw_font)
        handle.fonts[name] = font
        return font

    def draw_rectangle(
        self,
        handle: PdfiumDocumentHandle,
        page_number: int,
        bbox: BBox,
        fill_color: Color,
    ) -> None:
        """Paint an opaque filled rectangle with no stroke."""
        page = self._get_page(handle, page_number)

        rect = pdfium.raw.FPDFPageObj_CreateNewRect(
            ctypes.c_float(bbox.x0),
            ctypes.c_float(bbox.y0),
            ctypes.c_float(bbox.width),
            ctypes.c_float(bbox.height),
        )
        if not rect:
            raise RuntimeError("FPDFPageObj_CreateNewRect failed")

        pdfium.raw.FPDFPageObj_SetFillColor(
            rect, fill_color.r, fill_color.g, fill_color.b, 255
        )
        # Fill only, no stroke
        pdfium.raw.FPDFPath_SetDrawMode(rect, FILL_MODE_WINDING, ctypes.c_int(0))
        pdfium.raw.FPDFPage_InsertObject(page.raw, rect)
        logger.debug(
            "page %d: rect (%.2f, %.2f, %.2f, %.2f)",
            page_number, bbox.x0, bbox.y0, bbox.width, bbox.height,
        )

    def draw_text(
        self,
        handle: PdfiumDocumentHandle,
        page_number: int,
        text: str,
        position: Point,
        size: float,
        font: StandardFont,
        color: Color,
    ) -> None:
        """Draw a single line of text with its baseline origin at ``position``."""
        page = self._get_page(handle, page_number)
        raw_font = self._raw_font(handle, font)

        text_obj = pdfium.raw.FPDFPageObj_CreateTextObj(
            handle.pdf.raw, raw_font, ctypes.c_float(size)
        )
        if not text_obj:
            raise RuntimeError("FPDFPageObj_CreateTextObj failed")

        if not pdfium.raw.FPDFText_SetText(text_obj, to_widestring(text)):
            raise RuntimeError("FPDFText_SetText failed")

        pdfium.raw.FPDFPageObj_SetFillColor(text_obj, color.r, color.g, color.b, 255)

        # Position text at baseline
        pdfium.raw.FPDFPageObj_Transform(
            text_obj,
            ctypes.c_double(1.0),
            ctypes.c_double(0.0),
            ctypes.c_double(0.0),
            ctypes.c_double(1.0),
            ctypes.c_double(position.x),
            ctypes.c_double(position.y),
        )
        pdfium.raw.FPDFPage_InsertObject(page.raw, text_obj)
        logger.debug(
            "page %d: text %r at (%.2f, %.2f) size %.2f",
            page_number, text, position.x, position.y, size,
        )

    def _raw_font(self, handle: PdfiumDocumentHandle, font: StandardFont) -> Any:
        if isinstance(font, PdfiumStandardFont):
            return font.raw
        return self.embed_standard_font(handle, font.name).raw

    def serialize(self, handle: PdfiumDocumentHandle) -> bytes:
        """Write pending objects into content streams and export the PDF."""
        # Call gen_content() once per touched page at the end
        for page in handle.open_pages.values():
            page.gen_content()

        buffer = BytesIO()
        handle.pdf.save(buffer)
        return buffer.getvalue()

    def close(self, handle: Optional[PdfiumDocumentHandle]) -> None:
        """Release the document and its pages."""
        if handle is None:
            return
        for page in handle.open_pages.values():
            page.close()
        handle.open_pages.clear()
        handle.fonts.clear()
        handle.pdf.close()
