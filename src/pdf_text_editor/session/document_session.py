# SPDX-License-Identifier: Apache-2.0
"""Document session: the async façade over the editing engine.

A session owns the immutable original bytes, the rasterizer for the loaded
document, the edit ledger, the overlay store and the active selection. All
state is discarded when a new document is loaded.

Rendering and saving run PDFium work in a worker thread behind a single lock.
Page requests follow last-request-wins: every navigation or zoom request
takes a new token, and a result whose token is no longer current is dropped.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable, Optional

from pdf_text_editor.core.config import EditorConfig
from pdf_text_editor.core.extractor import TextRunExtractor
from pdf_text_editor.core.ledger import EditLedger
from pdf_text_editor.core.models import (
    EditEntry,
    Overlay,
    PageSize,
    Point,
    RunId,
    SelectionState,
    TextContentItem,
    TextRun,
    ViewportTransform,
)
from pdf_text_editor.core.overlays import OverlayStore
from pdf_text_editor.core.patcher import DocumentPatcher, PatchResult
from pdf_text_editor.core.rasterizer import PdfiumRasterizer, Rasterizer, RenderedPage
from pdf_text_editor.core.selection import ActiveSelection, Selectable, SelectionEvent
from pdf_text_editor.errors import (
    DocumentLoadError,
    ExtractionError,
    PatchError,
    SessionStateError,
)
from pdf_text_editor.session.progress import ProgressCallback

if TYPE_CHECKING:
    from PIL import Image

logger = logging.getLogger(__name__)

RasterizerFactory = Callable[[bytes], Rasterizer]


@dataclass
class PageView:
    """The displayed state of one page at one zoom."""

    page_number: int
    zoom: float
    image: Image.Image
    viewport: ViewportTransform
    runs: list[TextRun]


@dataclass
class _PageData:
    rendered: RenderedPage
    items: list[TextContentItem]
    size: PageSize


class DocumentSession:
    """Editing session for one loaded PDF at a time.

    Example:
        >>> session = DocumentSession()
        >>> await session.load(pdf_bytes)
        >>> view = await session.show_page(1, zoom=1.5)
        >>> session.edit_run(view.runs[0].run_id, "Invoice #002")
        >>> result = await session.save()
    """

    def __init__(
        self,
        config: EditorConfig | None = None,
        rasterizer_factory: RasterizerFactory | None = None,
        patcher: DocumentPatcher | None = None,
        progress_callback: ProgressCallback | None = None,
    ) -> None:
        self._config = config or EditorConfig()
        self._config.validate()
        self._rasterizer_factory: RasterizerFactory = rasterizer_factory or PdfiumRasterizer
        self._patcher = patcher or DocumentPatcher(self._config)
        self._progress_callback = progress_callback
        self._extractor = TextRunExtractor()

        self.ledger = EditLedger()
        self.overlays = OverlayStore(self._config)
        self.selection = ActiveSelection(on_focus_lost=self._commit_focus_lost)

        self._original: Optional[bytes] = None
        self._rasterizer: Optional[Rasterizer] = None
        self._page_count = 0
        self._current_page = 1
        self._zoom = self._config.default_zoom
        self._view: Optional[PageView] = None

        self._request_token = 0
        self._lock = asyncio.Lock()

    # ------------------------------------------------------------------
    # Session state

    @property
    def is_loaded(self) -> bool:
        return self._original is not None

    @property
    def original_bytes(self) -> bytes:
        return self._require_loaded()

    @property
    def page_count(self) -> int:
        return self._page_count

    @property
    def current_page(self) -> int:
        return self._current_page

    @property
    def zoom(self) -> float:
        return self._zoom

    @property
    def view(self) -> Optional[PageView]:
        """Most recent non-superseded page view."""
        return self._view

    @property
    def runs(self) -> list[TextRun]:
        """Runs of the displayed page."""
        return self._view.runs if self._view is not None else []

    @property
    def edit_count(self) -> int:
        return self.ledger.count()

    def _require_loaded(self) -> bytes:
        if self._original is None:
            raise SessionStateError()
        return self._original

    def _next_token(self) -> int:
        self._request_token += 1
        return self._request_token

    def reset(self) -> None:
        """Drop every per-document state: edits, overlays, selection, view."""
        self.selection.clear()
        self.ledger.reset()
        self.overlays.reset()
        self._view = None
        self._current_page = 1
        self._zoom = self._config.default_zoom

    def _unload(self) -> None:
        if self._rasterizer is not None:
            self._rasterizer.close()
        self._rasterizer = None
        self._original = None
        self._page_count = 0
        self.reset()

    # ------------------------------------------------------------------
    # Loading and navigation

    async def load(self, pdf_bytes: bytes) -> int:
        """Load a new document, discarding the previous one.

        Returns:
            Page count.

        Raises:
            DocumentLoadError: If the bytes cannot be opened. The session is
                left with no document.
        """
        # Supersede any in-flight page request
        self._next_token()
        data = bytes(pdf_bytes)

        async with self._lock:
            self._unload()
            try:
                rasterizer = await asyncio.to_thread(self._rasterizer_factory, data)
            except Exception as exc:
                raise DocumentLoadError("Failed to open PDF document", cause=exc) from exc

            try:
                page_count = rasterizer.page_count
            except Exception as exc:
                rasterizer.close()
                raise DocumentLoadError("Failed to read page count", cause=exc) from exc
            if page_count < 1:
                rasterizer.close()
                raise DocumentLoadError("PDF has no pages")

            self._rasterizer = rasterizer
            self._original = data
            self._page_count = page_count

        logger.info("Loaded document: %d pages, %d bytes", page_count, len(data))
        self._notify("load", 1, 1)
        return page_count

    async def show_page(
        self,
        page_number: Optional[int] = None,
        zoom: Optional[float] = None,
    ) -> Optional[PageView]:
        """Render and extract a page at a zoom.

        Returns:
            The new view, or None if a newer request superseded this one.

        Raises:
            SessionStateError: If no document is loaded.
            ExtractionError: If rendering or extraction fails for the page.
        """
        self._require_loaded()
        page_number = self._current_page if page_number is None else page_number
        zoom = self._zoom if zoom is None else zoom
        if zoom <= 0:
            raise ValueError(f"zoom must be > 0, got {zoom}")
        if not 1 <= page_number <= self._page_count:
            raise ExtractionError(
                f"Page {page_number} out of range [1, {self._page_count}]",
                page_number=page_number,
            )

        token = self._next_token()
        async with self._lock:
            if token != self._request_token:
                logger.debug("Skipping superseded request for page %d", page_number)
                return None
            rasterizer = self._rasterizer
            if rasterizer is None:
                return None
            try:
                data = await asyncio.to_thread(self._fetch_page, rasterizer, page_number, zoom)
            except Exception as exc:
                raise ExtractionError(
                    f"Failed to render page {page_number}",
                    page_number=page_number,
                    cause=exc,
                ) from exc

        if token != self._request_token:
            logger.debug("Discarding stale result for page %d at zoom %.2f", page_number, zoom)
            return None

        self._notify("render", page_number, self._page_count)
        runs = self._extractor.extract(
            page_number,
            data.items,
            page_height=data.size.height,
            zoom=zoom,
            ledger=self.ledger,
        )
        self._notify("extract", page_number, self._page_count)

        # Run objects are rebuilt, so a selected run does not survive
        if isinstance(self.selection.item, TextRun):
            self.selection.clear()

        view = PageView(
            page_number=page_number,
            zoom=zoom,
            image=data.rendered.image,
            viewport=data.rendered.viewport,
            runs=runs,
        )
        self._current_page = page_number
        self._zoom = zoom
        self._view = view
        return view

    @staticmethod
    def _fetch_page(rasterizer: Rasterizer, page_number: int, zoom: float) -> _PageData:
        rendered = rasterizer.render_page(page_number, zoom)
        items = rasterizer.get_text_content(page_number)
        size = rasterizer.page_size(page_number)
        return _PageData(rendered=rendered, items=items, size=size)

    async def set_zoom(self, zoom: float) -> Optional[PageView]:
        """Re-render the current page at a new zoom."""
        return await self.show_page(self._current_page, zoom)

    async def next_page(self) -> Optional[PageView]:
        return await self.show_page(min(self._current_page + 1, self._page_count))

    async def previous_page(self) -> Optional[PageView]:
        return await self.show_page(max(self._current_page - 1, 1))

    # ------------------------------------------------------------------
    # Text runs

    def find_run(self, run_id: RunId) -> TextRun:
        """Run of the displayed page with ``run_id``.

        Raises:
            KeyError: If the run is not on the displayed page.
        """
        for run in self.runs:
            if run.run_id == run_id:
                return run
        raise KeyError(str(run_id))

    def run_at(self, point: Point) -> Optional[TextRun]:
        """Topmost run whose hit box contains a viewport point."""
        for run in reversed(self.runs):
            if run.contains(point):
                return run
        return None

    def begin_edit(self, run_id: RunId) -> TextRun:
        run = self.find_run(run_id)
        self.double_click(run)
        return run

    def commit_edit(self, run_id: RunId) -> Optional[EditEntry]:
        run = self.find_run(run_id)
        if run.state is SelectionState.EDITING:
            self.selection.dispatch(run, SelectionEvent.COMMIT)
        return self.ledger.commit_edit(run)

    def edit_run(self, run_id: RunId, text: str) -> Optional[EditEntry]:
        """Replace a run's text in one complete edit interaction."""
        run = self.begin_edit(run_id)
        run.current_text = text
        return self.commit_edit(run_id)

    def revert_run(self, run_id: RunId) -> None:
        self.ledger.revert(self.find_run(run_id))

    # ------------------------------------------------------------------
    # Overlays and selection

    def add_overlay(self, screen_position: Point) -> Overlay:
        """Create an overlay on the displayed page and select it."""
        self._require_loaded()
        overlay = self.overlays.create(screen_position, self._current_page)
        self.click(overlay)
        return overlay

    def delete_overlay(self, overlay_id: str) -> bool:
        overlay = self.overlays.get(overlay_id)
        if overlay is not None and self.selection.is_active(overlay):
            self.selection.clear()
        return self.overlays.delete(overlay_id)

    def _commit_focus_lost(self, item: Selectable) -> None:
        if isinstance(item, TextRun):
            self.ledger.commit_edit(item)

    def click(self, item: Selectable) -> SelectionState:
        return self.selection.dispatch(item, SelectionEvent.CLICK)

    def double_click(self, item: Selectable) -> SelectionState:
        state = self.selection.dispatch(item, SelectionEvent.DOUBLE_CLICK)
        if isinstance(item, TextRun):
            self.ledger.begin_edit(item)
        return state

    def cancel(self, item: Selectable) -> SelectionState:
        """Abandon an edit in progress: a run returns to its committed text."""
        if isinstance(item, TextRun) and item.state is SelectionState.EDITING:
            entry = self.ledger.get(item.run_id)
            item.current_text = entry.new_text if entry is not None else item.original_text
        return self.selection.dispatch(item, SelectionEvent.CANCEL)

    def blur(self, item: Selectable) -> SelectionState:
        """Focus left an item: an edit in progress is committed."""
        if isinstance(item, TextRun) and item.state is SelectionState.EDITING:
            self.selection.dispatch(item, SelectionEvent.COMMIT)
            self.ledger.commit_edit(item)
            return item.state
        return self.selection.dispatch(item, SelectionEvent.COMMIT)

    def deselect(self) -> None:
        """Focus left every item (click on empty canvas).

        A run being edited is committed before it goes idle.
        """
        self.selection.clear()

    # ------------------------------------------------------------------
    # Saving

    async def save(self) -> PatchResult:
        """Patch the original document with every edit and overlay.

        The ledger and overlay store are snapshotted before the first
        suspension point and are never modified, whether the save succeeds
        or not.

        Raises:
            SessionStateError: If no document is loaded.
            PatchError: If patching fails.
        """
        original = self._require_loaded()
        entries = self.ledger.snapshot()
        overlays = self.overlays.snapshot()
        zoom = self._zoom

        total = len(entries) + len(overlays)
        self._notify("patch", 0, total)
        async with self._lock:
            try:
                result = await asyncio.to_thread(
                    self._patcher.patch, original, entries, overlays, zoom
                )
            except PatchError:
                raise
            except Exception as exc:
                raise PatchError("Save failed", cause=exc) from exc
        self._notify("patch", total, total)
        return result

    async def close(self) -> None:
        """Release the loaded document."""
        self._next_token()
        async with self._lock:
            self._unload()

    def _notify(self, stage: str, current: int, total: int, message: str = "") -> None:
        if self._progress_callback is None:
            return
        self._progress_callback(stage, current, total, message)
