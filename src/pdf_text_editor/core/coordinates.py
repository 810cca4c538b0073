# SPDX-License-Identifier: Apache-2.0
"""Coordinate mapping between PDF space and viewport space.

PDF space has its origin at the bottom-left of the page with y increasing
upward, in unscaled PDF units. Viewport space has its origin at the top-left
with y increasing downward, and every length is multiplied by ``zoom``.

For a fixed zoom and page height, ``to_viewport`` and ``to_pdf`` are exact
inverses (up to floating-point rounding).

Rotation is not modelled: font size is taken from the magnitude of the
glyph transform's first column, so rotated runs get an axis-aligned box.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from .models import GlyphMetrics, Point, Transform

if TYPE_CHECKING:
    from .document_model import StandardFont


def _check_zoom(zoom: float) -> None:
    if zoom <= 0:
        raise ValueError(f"zoom must be > 0, got {zoom}")


def to_viewport(point: Point, zoom: float, page_height: float) -> Point:
    """Project a PDF-space point into viewport space."""
    _check_zoom(zoom)
    return Point(point.x * zoom, (page_height - point.y) * zoom)


def to_pdf(point: Point, zoom: float, page_height: float) -> Point:
    """Project a viewport-space point back into PDF space."""
    _check_zoom(zoom)
    return Point(point.x / zoom, page_height - point.y / zoom)


def length_to_viewport(value: float, zoom: float) -> float:
    """Scale a PDF length (or font size) to viewport pixels."""
    _check_zoom(zoom)
    return value * zoom


def length_to_pdf(value: float, zoom: float) -> float:
    """Scale a viewport length (or font size) to PDF units."""
    _check_zoom(zoom)
    return value / zoom


def font_size_from_transform(transform: Transform) -> float:
    """Font size encoded in a glyph transform: ``sqrt(a**2 + b**2)``."""
    return transform.font_size


def estimate_descent(font: StandardFont, size: float) -> float:
    """Descent of the substitute font at ``size``, as a positive length."""
    return max(0.0, font.total_height(size) - font.ascent_height(size))


def derive_metrics(pdf_height: float, pdf_font_size: float, font: StandardFont) -> GlyphMetrics:
    """Approximate the vertical metrics of an original run.

    The original embedded font is not available, so ascent is taken from the
    extractor-reported glyph-box height and descent from the substitute font
    at the same nominal size.
    """
    return GlyphMetrics(
        ascent=pdf_height,
        descent=estimate_descent(font, pdf_font_size),
    )
