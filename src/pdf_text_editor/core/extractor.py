# SPDX-License-Identifier: Apache-2.0
"""Text run extraction.

Turns one page's text-content stream into positioned, editable ``TextRun``
objects. Run identity is ``(page_number, source_index)`` where the source
index advances for every item of the stream, including skipped ones, so
identities do not drift when whitespace-only items come and go.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Iterable, Optional

from .coordinates import font_size_from_transform, length_to_viewport, to_viewport
from .models import RunId, Size, TextContentItem, TextRun

if TYPE_CHECKING:
    from .ledger import EditLedger

logger = logging.getLogger(__name__)


class TextRunExtractor:
    """Build TextRun lists from text-content items.

    Extraction is per page and is expected to run again on every navigation
    and zoom change; nothing here is cached.
    """

    def extract(
        self,
        page_number: int,
        items: Iterable[TextContentItem],
        page_height: float,
        zoom: float,
        ledger: Optional[EditLedger] = None,
    ) -> list[TextRun]:
        """Extract runs for one page.

        Args:
            page_number: Page number (1-based).
            items: Text-content items in source order.
            page_height: Page height in PDF units.
            zoom: Current viewport zoom.
            ledger: Edit ledger whose entries seed ``current_text``.

        Returns:
            Runs in source order, whitespace-only items omitted.
        """
        runs: list[TextRun] = []
        skipped = 0

        # Explicit counter: the source index advances for skipped items too
        source_index = -1
        for item in items:
            source_index += 1
            if not item.text or not item.text.strip():
                skipped += 1
                continue

            run = self._build_run(
                RunId(page_number, source_index), item, page_height, zoom
            )
            if ledger is not None:
                entry = ledger.get(run.run_id)
                if entry is not None:
                    run.current_text = entry.new_text
                    run.is_edited = True
            runs.append(run)

        logger.debug(
            "page %d: extracted %d runs (%d skipped) at zoom %.2f",
            page_number, len(runs), skipped, zoom,
        )
        return runs

    def _build_run(
        self,
        run_id: RunId,
        item: TextContentItem,
        page_height: float,
        zoom: float,
    ) -> TextRun:
        font_size = font_size_from_transform(item.transform)
        baseline = item.transform.origin

        # Hit box never shorter than the font size
        box_height = max(item.height, font_size)
        viewport_position = to_viewport(baseline, zoom, page_height)
        viewport_size = Size(
            width=length_to_viewport(item.width, zoom),
            height=length_to_viewport(box_height, zoom),
        )

        return TextRun(
            run_id=run_id,
            original_text=item.text,
            pdf_position=baseline,
            pdf_font_size=font_size,
            pdf_width=item.width,
            pdf_height=item.height,
            viewport_position=viewport_position,
            viewport_size=viewport_size,
            font_name=item.font_name,
        )
