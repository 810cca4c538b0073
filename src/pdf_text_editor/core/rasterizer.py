# SPDX-License-Identifier: Apache-2.0
"""Page rasterization and text-content extraction using pypdfium2.

The rasterizer exposes each page's text objects in content-stream order as
``TextContentItem`` records, shaped after a glyph-run text-content stream:
the transform's linear part carries the font size and its translation is the
baseline origin. Order is stable across repeated calls on one loaded document.
"""

from __future__ import annotations

import ctypes
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Optional, Protocol, runtime_checkable

import pypdfium2 as pdfium  # type: ignore[import-untyped]

from .helpers import from_widestring
from .models import PageSize, TextContentItem, Transform, ViewportTransform

if TYPE_CHECKING:
    from PIL import Image

logger = logging.getLogger(__name__)

# PDFium object type constant for text
FPDF_PAGEOBJ_TEXT = 1

# Control characters to normalize (common in PDF hyphenation)
CONTROL_CHAR_MAP: dict[int, str] = {
    0x00: "",  # NUL -> remove
    0x02: "-",  # STX -> hyphen (soft hyphen in many PDFs)
    0x09: " ",  # TAB -> space
    0x0A: " ",  # LF -> space
    0x0D: "",  # CR -> remove
    0xAD: "-",  # Soft hyphen -> hyphen
    0xFFFE: "",  # non-character, usually a decoding failure
    0xFFFF: "",
}


def normalize_text(text: str) -> str:
    """Replace control characters produced by PDF text extraction.

    Unlisted C0 control characters are dropped.
    """
    result = []
    for char in text:
        code = ord(char)
        if code in CONTROL_CHAR_MAP:
            result.append(CONTROL_CHAR_MAP[code])
        elif code < 0x20 or code == 0x7F:
            continue
        else:
            result.append(char)
    return "".join(result)


@dataclass
class RenderedPage:
    """A rasterized page.

    Attributes:
        page_number: Page number (1-based)
        image: Rendered raster
        viewport: Mapping used for rasterization
    """

    page_number: int
    image: Image.Image
    viewport: ViewportTransform


@runtime_checkable
class Rasterizer(Protocol):
    """Protocol for the page rasterizer and text-content source."""

    @property
    def page_count(self) -> int: ...

    def page_size(self, page_number: int) -> PageSize: ...

    def render_page(self, page_number: int, zoom: float) -> RenderedPage: ...

    def get_text_content(self, page_number: int) -> list[TextContentItem]: ...

    def close(self) -> None: ...


class PdfiumRasterizer:
    """Rasterizer implementation using pypdfium2.

    Example:
        >>> with PdfiumRasterizer(pdf_bytes) as rasterizer:
        ...     rendered = rasterizer.render_page(1, zoom=1.5)
        ...     items = rasterizer.get_text_content(1)
    """

    def __init__(self, pdf_bytes: bytes) -> None:
        """Open a document for rendering.

        Raises:
            TypeError: If pdf_bytes is not bytes
            pypdfium2.PdfiumError: If the PDF cannot be loaded
        """
        if not isinstance(pdf_bytes, (bytes, bytearray)):
            raise TypeError(
                f"pdf_bytes must be bytes, got {type(pdf_bytes).__name__}"
            )
        self._pdf: Optional[pdfium.PdfDocument] = pdfium.PdfDocument(bytes(pdf_bytes))

    def __enter__(self) -> PdfiumRasterizer:
        """Context manager entry."""
        return self

    def __exit__(
        self,
        exc_type: Optional[type[BaseException]],
        exc_val: Optional[BaseException],
        exc_tb: Any,
    ) -> None:
        """Context manager exit."""
        self.close()

    def close(self) -> None:
        """Close the PDF document and release resources."""
        if self._pdf is not None:
            self._pdf.close()
            self._pdf = None

    def _ensure_open(self) -> pdfium.PdfDocument:
        if self._pdf is None:
            raise RuntimeError("PDF document is not open")
        return self._pdf

    @property
    def page_count(self) -> int:
        """Get the number of pages in the document."""
        return len(self._ensure_open())

    def _load_page(self, page_number: int) -> pdfium.PdfPage:
        pdf = self._ensure_open()
        if page_number < 1 or page_number > len(pdf):
            raise IndexError(f"Page number {page_number} out of range [1, {len(pdf)}]")
        return pdf[page_number - 1]

    def page_size(self, page_number: int) -> PageSize:
        page = self._load_page(page_number)
        try:
            width, height = page.get_size()
            return PageSize(width=float(width), height=float(height))
        finally:
            page.close()

    def render_page(self, page_number: int, zoom: float) -> RenderedPage:
        """Render a page at ``zoom`` pixels per PDF unit."""
        if zoom <= 0:
            raise ValueError(f"zoom must be > 0, got {zoom}")

        page = self._load_page(page_number)
        try:
            height = float(page.get_height())
            bitmap = page.render(scale=zoom)
            try:
                image = bitmap.to_pil()
            finally:
                bitmap.close()
        finally:
            page.close()

        viewport = ViewportTransform(
            zoom=zoom,
            page_height=height,
            pixel_width=image.width,
            pixel_height=image.height,
        )
        return RenderedPage(page_number=page_number, image=image, viewport=viewport)

    def get_text_content(self, page_number: int) -> list[TextContentItem]:
        """List every text object of a page in content-stream order.

        Objects whose text cannot be read are reported with empty text so
        that source indices stay aligned with the content stream.
        """
        page = self._load_page(page_number)
        textpage = page.get_textpage()
        items: list[TextContentItem] = []
        try:
            for obj in page.get_objects(filter=[FPDF_PAGEOBJ_TEXT], max_depth=1):
                items.append(self._to_item(obj, textpage))
        finally:
            textpage.close()
            page.close()

        logger.debug("page %d: %d text objects", page_number, len(items))
        return items

    def _to_item(self, obj: pdfium.PdfObject, textpage: pdfium.PdfTextPage) -> TextContentItem:
        text = normalize_text(self._get_text(obj, textpage))
        font_size = self._get_font_size(obj)

        matrix = obj.get_matrix()
        transform = Transform(
            a=matrix.a, b=matrix.b, c=matrix.c, d=matrix.d, e=matrix.e, f=matrix.f
        ).scaled(font_size)

        bounds = obj.get_bounds()
        if bounds is None:
            width = height = 0.0
        else:
            left, bottom, right, top = bounds
            width, height = right - left, top - bottom

        return TextContentItem(
            text=text,
            transform=transform,
            width=float(width),
            height=float(height),
            font_name=self._get_font_name(obj),
        )

    def _get_text(self, obj: pdfium.PdfObject, textpage: pdfium.PdfTextPage) -> str:
        """Read the text owned by this object via FPDFTextObj_GetText."""
        # First call: get required buffer size in bytes
        length = pdfium.raw.FPDFTextObj_GetText(obj.raw, textpage.raw, None, 0)
        if length <= 2:
            return ""

        buffer = (ctypes.c_ushort * (length // 2 + 1))()
        pdfium.raw.FPDFTextObj_GetText(obj.raw, textpage.raw, buffer, length)
        return from_widestring(buffer, length)

    def _get_font_size(self, obj: pdfium.PdfObject) -> float:
        size = ctypes.c_float()
        if not pdfium.raw.FPDFTextObj_GetFontSize(obj.raw, ctypes.byref(size)):
            return 1.0
        return float(size.value)

    def _get_font_name(self, obj: pdfium.PdfObject) -> str:
        font_handle = pdfium.raw.FPDFTextObj_GetFont(obj.raw)
        if not font_handle:
            return "Unknown"

        buffer_len = 256
        buffer = ctypes.create_string_buffer(buffer_len)
        actual_len = pdfium.raw.FPDFFont_GetBaseFontName(font_handle, buffer, buffer_len)
        if actual_len <= 0:
            return "Unknown"
        return buffer.value.decode("utf-8", errors="replace")
