# SPDX-License-Identifier: Apache-2.0
"""Core PDF editing modules."""

from .config import EditorConfig
from .document_model import DocumentModel, PdfiumDocumentModel, StandardFont
from .extractor import TextRunExtractor
from .ledger import EditLedger
from .models import (
    BBox,
    Color,
    EditEntry,
    Overlay,
    PageSize,
    Point,
    RunId,
    SelectionKind,
    SelectionState,
    Size,
    TextContentItem,
    TextRun,
    Transform,
)
from .overlays import OverlayStore
from .patcher import DocumentPatcher, PatchResult
from .rasterizer import PdfiumRasterizer, Rasterizer, RenderedPage
from .selection import ActiveSelection, SelectionEvent

__all__ = [
    "ActiveSelection",
    "BBox",
    "Color",
    "DocumentModel",
    "DocumentPatcher",
    "EditEntry",
    "EditLedger",
    "EditorConfig",
    "Overlay",
    "OverlayStore",
    "PageSize",
    "PatchResult",
    "PdfiumDocumentModel",
    "PdfiumRasterizer",
    "Point",
    "Rasterizer",
    "RenderedPage",
    "RunId",
    "SelectionEvent",
    "SelectionKind",
    "SelectionState",
    "Size",
    "StandardFont",
    "TextContentItem",
    "TextRun",
    "TextRunExtractor",
    "Transform",
]
