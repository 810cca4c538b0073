# SPDX-License-Identifier: Apache-2.0
"""Data models for the PDF text editing engine.

This module defines the value types shared by the extractor, the edit
ledger, the overlay store and the patcher. Geometry in PDF space uses the
PDF coordinate system (origin at bottom-left, y up, unscaled); geometry in
viewport space uses raster pixels (origin at top-left, y down, scaled by zoom).
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional


@dataclass(frozen=True)
class Point:
    """A 2D point. The coordinate space is implied by the owning field."""

    x: float
    y: float

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {"x": self.x, "y": self.y}


@dataclass(frozen=True)
class Size:
    """Width and height. The unit is implied by the owning field."""

    width: float
    height: float

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {"width": self.width, "height": self.height}


@dataclass(frozen=True)
class PageSize:
    """Page dimensions in PDF units."""

    width: float
    height: float


@dataclass(frozen=True)
class BBox:
    """Bounding box in PDF coordinate system (origin at bottom-left).

    Attributes:
        x0: Left X coordinate
        y0: Bottom Y coordinate
        x1: Right X coordinate
        y1: Top Y coordinate
    """

    x0: float
    y0: float
    x1: float
    y1: float

    @property
    def width(self) -> float:
        """Width of the bounding box."""
        return self.x1 - self.x0

    @property
    def height(self) -> float:
        """Height of the bounding box."""
        return self.y1 - self.y0

    def intersects(self, other: BBox) -> bool:
        """Check whether two boxes share any interior area."""
        return (
            self.x0 < other.x1
            and other.x0 < self.x1
            and self.y0 < other.y1
            and other.y0 < self.y1
        )

    @classmethod
    def from_origin(cls, x: float, y: float, width: float, height: float) -> BBox:
        """Create from a bottom-left origin and a size."""
        return cls(x0=x, y0=y, x1=x + width, y1=y + height)


@dataclass(frozen=True)
class Color:
    """RGB color value.

    Attributes:
        r: Red component (0-255)
        g: Green component (0-255)
        b: Blue component (0-255)
    """

    r: int = 0
    g: int = 0
    b: int = 0

    @classmethod
    def from_hex(cls, value: str) -> Color:
        """Create from a ``#rrggbb`` string."""
        text = value.lstrip("#")
        if len(text) != 6:
            raise ValueError(f"Invalid hex color: {value!r}")
        return cls(r=int(text[0:2], 16), g=int(text[2:4], 16), b=int(text[4:6], 16))


BLACK = Color(0, 0, 0)
WHITE = Color(255, 255, 255)


@dataclass(frozen=True)
class Transform:
    """Affine transformation matrix [a, b, c, d, e, f].

    The matrix transforms coordinates as:
        x' = a*x + c*y + e
        y' = b*x + d*y + f

    For a glyph run the linear part carries the font size (and any
    rotation or shear) and (e, f) is the baseline origin in PDF space.
    """

    a: float = 1.0
    b: float = 0.0
    c: float = 0.0
    d: float = 1.0
    e: float = 0.0
    f: float = 0.0

    @property
    def font_size(self) -> float:
        """Magnitude of the first column of the linear part."""
        return math.hypot(self.a, self.b)

    @property
    def origin(self) -> Point:
        """Translation component."""
        return Point(self.e, self.f)

    def scaled(self, factor: float) -> Transform:
        """Scale the linear part, keeping the translation."""
        return Transform(
            a=self.a * factor,
            b=self.b * factor,
            c=self.c * factor,
            d=self.d * factor,
            e=self.e,
            f=self.f,
        )


@dataclass(frozen=True)
class ViewportTransform:
    """Mapping used when a page was rasterized.

    Attributes:
        zoom: Scale factor from PDF units to pixels
        page_height: Page height in PDF units
        pixel_width: Raster width in pixels
        pixel_height: Raster height in pixels
    """

    zoom: float
    page_height: float
    pixel_width: int
    pixel_height: int


@dataclass(frozen=True)
class TextContentItem:
    """One positioned unit reported by the rasterizer's text-content stream."""

    text: str
    transform: Transform
    width: float
    height: float
    font_name: str = "Unknown"


@dataclass(frozen=True, order=True)
class RunId:
    """Stable identity of a text run within one loaded document.

    ``index`` is the pre-filter source index of the run in the page's
    text-content stream.
    """

    page_number: int
    index: int

    def __str__(self) -> str:
        return f"{self.page_number}-{self.index}"


class SelectionState(str, Enum):
    """Interaction state of a single selectable item."""

    IDLE = "idle"
    SELECTED = "selected"
    EDITING = "editing"


class SelectionKind(str, Enum):
    """Kind of item held by the shared active-selection slot."""

    NONE = "none"
    OVERLAY = "overlay"
    RUN = "run"


@dataclass
class TextRun:
    """A text run extracted from one rendered page.

    Attributes:
        run_id: Stable identity (page, pre-filter source index)
        original_text: Text as extracted
        current_text: Text currently shown to the user
        pdf_position: Baseline origin in PDF space
        pdf_font_size: Font size in PDF units
        pdf_width: Advance width in PDF units
        pdf_height: Nominal glyph-box height in PDF units
        viewport_position: Baseline origin projected into viewport space
        viewport_size: Hit box size in viewport pixels
        font_name: Name of the original font (informational only)
        is_edited: True iff the edit ledger holds an entry for run_id
        state: Interaction state (idle, selected, editing)
    """

    run_id: RunId
    original_text: str
    pdf_position: Point
    pdf_font_size: float
    pdf_width: float
    pdf_height: float
    viewport_position: Point
    viewport_size: Size
    current_text: Optional[str] = None
    font_name: str = "Unknown"
    is_edited: bool = False
    state: SelectionState = SelectionState.IDLE

    def __post_init__(self) -> None:
        if self.current_text is None:
            self.current_text = self.original_text

    @property
    def page_number(self) -> int:
        """Page that owns this run (1-based)."""
        return self.run_id.page_number

    def contains(self, point: Point) -> bool:
        """Hit-test a viewport point.

        ``viewport_position`` is the projected baseline origin, so the hit
        box extends upward from it by ``viewport_size.height``.
        """
        left = self.viewport_position.x
        bottom = self.viewport_position.y
        return (
            left <= point.x <= left + self.viewport_size.width
            and bottom - self.viewport_size.height <= point.y <= bottom
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "run_id": str(self.run_id),
            "original_text": self.original_text,
            "current_text": self.current_text,
            "pdf_position": self.pdf_position.to_dict(),
            "pdf_font_size": self.pdf_font_size,
            "pdf_width": self.pdf_width,
            "pdf_height": self.pdf_height,
            "viewport_position": self.viewport_position.to_dict(),
            "viewport_size": self.viewport_size.to_dict(),
            "font_name": self.font_name,
            "is_edited": self.is_edited,
        }


@dataclass(frozen=True)
class EditEntry:
    """A pending replacement for one original text run.

    Geometry is a frozen PDF-space snapshot taken when the edit was
    committed; no viewport data is ever stored here.
    """

    run_id: RunId
    new_text: str
    original_text: str
    pdf_position: Point
    pdf_font_size: float
    pdf_width: float
    pdf_height: float

    @property
    def page_number(self) -> int:
        """Page that owns the edited run (1-based)."""
        return self.run_id.page_number

    @classmethod
    def from_run(cls, run: TextRun) -> EditEntry:
        """Capture the run's current text and original geometry."""
        return cls(
            run_id=run.run_id,
            new_text=run.current_text,
            original_text=run.original_text,
            pdf_position=run.pdf_position,
            pdf_font_size=run.pdf_font_size,
            pdf_width=run.pdf_width,
            pdf_height=run.pdf_height,
        )


@dataclass
class Overlay:
    """A user-created text annotation living in viewport space.

    Attributes:
        id: Creation-order unique identifier (never a run id)
        screen_position: Top-left corner of the overlay in viewport space
        page_number: Owning page (1-based)
        text: Text content
        font_size: Font size in viewport pixels
        text_color: Text color
        background_enabled: Whether a background box is painted
        background_color: Background box color
        background_size: Background box size in viewport pixels
        state: Interaction state (idle, selected, editing)
    """

    id: str
    screen_position: Point
    page_number: int
    text: str = "New text"
    font_size: float = 16.0
    text_color: Color = BLACK
    background_enabled: bool = True
    background_color: Color = WHITE
    background_size: Size = field(default_factory=lambda: Size(120.0, 22.0))
    state: SelectionState = SelectionState.IDLE


@dataclass(frozen=True)
class GlyphMetrics:
    """Approximate vertical metrics of a text run in PDF units."""

    ascent: float
    descent: float
