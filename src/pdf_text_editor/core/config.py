# SPDX-License-Identifier: Apache-2.0
"""Editor configuration."""

from __future__ import annotations

from dataclasses import dataclass, field

from .models import BLACK, WHITE, Color, Size

# Base-14 font names accepted by FPDFText_LoadStandardFont
STANDARD_FONTS: frozenset[str] = frozenset(
    {
        "Courier",
        "Courier-Bold",
        "Courier-BoldOblique",
        "Courier-Oblique",
        "Helvetica",
        "Helvetica-Bold",
        "Helvetica-BoldOblique",
        "Helvetica-Oblique",
        "Times-Roman",
        "Times-Bold",
        "Times-BoldItalic",
        "Times-Italic",
        "Symbol",
        "ZapfDingbats",
    }
)


@dataclass
class EditorConfig:
    """Editor configuration.

    The substitute font is used both for descent estimation and for drawing
    every edited or added text, regardless of the original font.
    """

    substitute_font: str = "Helvetica"

    # Extra margin (PDF units) around erased glyphs to hide anti-aliasing fringes
    cover_padding: float = 1.0

    default_zoom: float = 1.0

    # Defaults for newly created overlays (viewport pixels)
    overlay_text: str = "New text"
    overlay_font_size: float = 16.0
    overlay_text_color: Color = BLACK
    overlay_background_enabled: bool = True
    overlay_background_color: Color = WHITE
    overlay_background_size: Size = field(default_factory=lambda: Size(120.0, 22.0))

    def validate(self) -> None:
        """Raise ValueError if any setting is out of range."""
        if self.substitute_font not in STANDARD_FONTS:
            raise ValueError(f"Not a standard PDF font: {self.substitute_font}")
        if self.cover_padding < 0:
            raise ValueError("cover_padding must be >= 0")
        if self.default_zoom <= 0:
            raise ValueError("default_zoom must be > 0")
        if self.overlay_font_size <= 0:
            raise ValueError("overlay_font_size must be > 0")
        size = self.overlay_background_size
        if size.width < 0 or size.height < 0:
            raise ValueError("overlay_background_size must be non-negative")
