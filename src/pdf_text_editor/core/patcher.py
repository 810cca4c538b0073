# SPDX-License-Identifier: Apache-2.0
"""Save-time document patching.

Replays the edit ledger and the overlay store against a fresh parse of the
original bytes:

1. For each ledger entry, paint an opaque white rectangle over the original
   glyphs (sized from approximate metrics, plus padding) and draw the new
   text at the original baseline in the substitute font.
2. For each overlay, map its viewport geometry to PDF space with the zoom
   active at save time, optionally paint its background box, then draw its
   text.

On every page all ledger pairs are inserted before any overlay, so overlay
text is never covered by an erasure rectangle.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Any, Iterable, Optional

from pdf_text_editor.errors import PatchError

from .config import EditorConfig
from .coordinates import derive_metrics, length_to_pdf, to_pdf
from .document_model import DocumentModel, PdfiumDocumentModel, StandardFont
from .models import BLACK, WHITE, BBox, EditEntry, Overlay, Point

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OverlayPlacement:
    """PDF-space geometry of one overlay."""

    baseline: Point
    font_size: float
    background: Optional[BBox]


@dataclass
class PatchResult:
    """Patcher result."""

    pdf_bytes: bytes
    stats: dict[str, Any] = field(default_factory=dict)


def cover_rect(entry: EditEntry, font: StandardFont, padding: float) -> BBox:
    """Erasure rectangle for an edited run, in PDF space."""
    metrics = derive_metrics(entry.pdf_height, entry.pdf_font_size, font)
    x = entry.pdf_position.x - padding
    y = entry.pdf_position.y - metrics.descent - padding
    width = entry.pdf_width + 2 * padding
    height = metrics.ascent + metrics.descent + 2 * padding
    return BBox.from_origin(x, y, width, height)


def place_overlay(overlay: Overlay, page_height: float, zoom: float) -> OverlayPlacement:
    """Map an overlay from viewport space to PDF space.

    ``screen_position`` is the overlay's top-left corner; the baseline sits
    one font size below it, and the background box hangs from that top edge.
    """
    top_left = to_pdf(overlay.screen_position, zoom, page_height)
    font_size = length_to_pdf(overlay.font_size, zoom)
    baseline = Point(top_left.x, top_left.y - font_size)

    background = None
    if overlay.background_enabled:
        width = length_to_pdf(overlay.background_size.width, zoom)
        height = length_to_pdf(overlay.background_size.height, zoom)
        top = baseline.y + font_size
        background = BBox(x0=baseline.x, y0=top - height, x1=baseline.x + width, y1=top)

    return OverlayPlacement(baseline=baseline, font_size=font_size, background=background)


class DocumentPatcher:
    """Apply pending edits and overlays to a copy of a document.

    The patcher never mutates its inputs: every call parses ``original_bytes``
    afresh and returns new bytes.

    Example:
        >>> patcher = DocumentPatcher()
        >>> result = patcher.patch(original, ledger.snapshot(), store.snapshot(), 1.5)
        >>> Path("out.pdf").write_bytes(result.pdf_bytes)
    """

    def __init__(
        self,
        config: EditorConfig | None = None,
        document_model: DocumentModel | None = None,
    ) -> None:
        self._config = config or EditorConfig()
        self._model: DocumentModel = document_model or PdfiumDocumentModel()

    def patch(
        self,
        original_bytes: bytes,
        entries: Iterable[EditEntry],
        overlays: Iterable[Overlay],
        zoom: float,
    ) -> PatchResult:
        """Produce a patched copy of ``original_bytes``.

        Raises:
            PatchError: If the document cannot be parsed, an entry or overlay
                references a page outside the document, or drawing fails.
                No partial output is produced.
        """
        if zoom <= 0:
            raise PatchError(f"zoom must be > 0, got {zoom}")

        entries = list(entries)
        overlays = list(overlays)

        try:
            handle = self._model.load(bytes(original_bytes))
        except Exception as exc:
            raise PatchError("Failed to parse original document", cause=exc) from exc

        try:
            page_count = self._model.page_count(handle)
            self._check_pages(entries, overlays, page_count)
            stats = self._apply(handle, entries, overlays, zoom)
            pdf_bytes = self._model.serialize(handle)
        except PatchError:
            raise
        except Exception as exc:
            raise PatchError("Failed to patch document", cause=exc) from exc
        finally:
            self._model.close(handle)

        logger.info(
            "Patched %d covers, %d redraws and %d overlays on %d pages",
            stats["covers"], stats["redraws"], stats["overlays"], stats["pages"],
        )
        return PatchResult(pdf_bytes=pdf_bytes, stats=stats)

    def _check_pages(
        self,
        entries: list[EditEntry],
        overlays: list[Overlay],
        page_count: int,
    ) -> None:
        for entry in entries:
            if not 1 <= entry.page_number <= page_count:
                raise PatchError(
                    f"Edit {entry.run_id} references page {entry.page_number}, "
                    f"document has {page_count} pages"
                )
        for overlay in overlays:
            if not 1 <= overlay.page_number <= page_count:
                raise PatchError(
                    f"Overlay {overlay.id} references page {overlay.page_number}, "
                    f"document has {page_count} pages"
                )

    def _apply(
        self,
        handle: Any,
        entries: list[EditEntry],
        overlays: list[Overlay],
        zoom: float,
    ) -> dict[str, Any]:
        font = self._model.embed_standard_font(handle, self._config.substitute_font)

        entries_by_page: dict[int, list[EditEntry]] = defaultdict(list)
        for entry in entries:
            entries_by_page[entry.page_number].append(entry)
        overlays_by_page: dict[int, list[Overlay]] = defaultdict(list)
        for overlay in overlays:
            overlays_by_page[overlay.page_number].append(overlay)

        pages = sorted(set(entries_by_page) | set(overlays_by_page))
        redraws = 0
        backgrounds = 0
        for page_number in pages:
            for entry in entries_by_page.get(page_number, []):
                if self._apply_entry(handle, entry, font):
                    redraws += 1

            page_overlays = overlays_by_page.get(page_number, [])
            if not page_overlays:
                continue
            page_height = self._model.page_size(handle, page_number).height
            for overlay in page_overlays:
                if self._apply_overlay(handle, overlay, font, page_height, zoom):
                    backgrounds += 1

        return {
            "pages": len(pages),
            "covers": len(entries),
            "redraws": redraws,
            "overlays": len(overlays),
            "backgrounds": backgrounds,
        }

    def _apply_entry(self, handle: Any, entry: EditEntry, font: StandardFont) -> bool:
        """Cover one run and redraw its text. Returns True if text was drawn."""
        rect = cover_rect(entry, font, self._config.cover_padding)
        self._model.draw_rectangle(handle, entry.page_number, rect, WHITE)
        # An emptied run is erased only
        if not entry.new_text:
            return False
        self._model.draw_text(
            handle,
            entry.page_number,
            entry.new_text,
            entry.pdf_position,
            entry.pdf_font_size,
            font,
            BLACK,
        )
        return True

    def _apply_overlay(
        self,
        handle: Any,
        overlay: Overlay,
        font: StandardFont,
        page_height: float,
        zoom: float,
    ) -> bool:
        """Draw one overlay. Returns True if a background was painted."""
        placement = place_overlay(overlay, page_height, zoom)
        if placement.background is not None:
            self._model.draw_rectangle(
                handle, overlay.page_number, placement.background, overlay.background_color
            )
        if overlay.text:
            self._model.draw_text(
                handle,
                overlay.page_number,
                overlay.text,
                placement.baseline,
                placement.font_size,
                font,
                overlay.text_color,
            )
        return placement.background is not None
