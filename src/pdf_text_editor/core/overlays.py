# SPDX-License-Identifier: Apache-2.0
"""Overlay store for newly added text.

Overlays live in viewport space while being edited; they are only mapped to
PDF space by the patcher, using the zoom active at save time.
"""

from __future__ import annotations

import dataclasses
import itertools
import logging
from typing import Any, Optional

from .config import EditorConfig
from .models import Overlay, Point

logger = logging.getLogger(__name__)

# Prefix keeps overlay ids disjoint from run ids ("<page>-<index>")
OVERLAY_ID_PREFIX = "overlay-"

# Fields that update() may change
UPDATABLE_FIELDS: frozenset[str] = frozenset(
    {
        "screen_position",
        "text",
        "font_size",
        "text_color",
        "background_enabled",
        "background_color",
        "background_size",
    }
)


class OverlayStore:
    """Mutable set of overlays, in creation order."""

    def __init__(self, config: EditorConfig | None = None) -> None:
        self._config = config or EditorConfig()
        self._overlays: dict[str, Overlay] = {}
        # Monotonic across resets so ids are never reused in one process
        self._counter = itertools.count(1)

    def create(self, screen_position: Point, page_number: int) -> Overlay:
        """Create an overlay with the configured defaults."""
        config = self._config
        overlay = Overlay(
            id=f"{OVERLAY_ID_PREFIX}{next(self._counter)}",
            screen_position=screen_position,
            page_number=page_number,
            text=config.overlay_text,
            font_size=config.overlay_font_size,
            text_color=config.overlay_text_color,
            background_enabled=config.overlay_background_enabled,
            background_color=config.overlay_background_color,
            background_size=config.overlay_background_size,
        )
        self._overlays[overlay.id] = overlay
        logger.debug(
            "overlay %s created on page %d at (%.1f, %.1f)",
            overlay.id, page_number, screen_position.x, screen_position.y,
        )
        return overlay

    def update(self, overlay_id: str, **fields: Any) -> Overlay:
        """Change fields of an overlay in place.

        Raises:
            KeyError: If no overlay has ``overlay_id``.
            ValueError: If a field is unknown or immutable.
        """
        overlay = self._overlays[overlay_id]
        unknown = set(fields) - UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"Cannot update overlay fields: {sorted(unknown)}")
        if "font_size" in fields and fields["font_size"] <= 0:
            raise ValueError("font_size must be > 0")

        for name, value in fields.items():
            setattr(overlay, name, value)
        return overlay

    def delete(self, overlay_id: str) -> bool:
        """Remove an overlay. Returns False if it did not exist."""
        removed = self._overlays.pop(overlay_id, None)
        if removed is not None:
            logger.debug("overlay %s deleted", overlay_id)
        return removed is not None

    def get(self, overlay_id: str) -> Optional[Overlay]:
        """Overlay with ``overlay_id``, if any."""
        return self._overlays.get(overlay_id)

    def list_for_page(self, page_number: int) -> list[Overlay]:
        """Overlays of one page in creation order."""
        return [o for o in self._overlays.values() if o.page_number == page_number]

    def snapshot(self) -> tuple[Overlay, ...]:
        """Detached copies for an in-flight save."""
        return tuple(dataclasses.replace(o) for o in self._overlays.values())

    def reset(self) -> None:
        """Discard every overlay (new document loaded)."""
        self._overlays.clear()

    def __len__(self) -> int:
        return len(self._overlays)

    def __contains__(self, overlay_id: object) -> bool:
        return overlay_id in self._overlays
