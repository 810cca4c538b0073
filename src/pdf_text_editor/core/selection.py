# SPDX-License-Identifier: Apache-2.0
"""Selection state machine and the shared active-selection slot.

Every selectable item (text run or overlay) moves through
``idle -> selected -> editing`` driven by discrete input events. At most one
item is active at a time: the slot is tagged by kind, so selecting an overlay
clears any selected run and vice versa.

An item that loses focus while editing (another item is selected, it is
deselected, or the slot is cleared) is handed to ``on_focus_lost`` before it
goes idle, so the owner can commit the edit in progress.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Optional, Union

from .models import Overlay, SelectionKind, SelectionState, TextRun

logger = logging.getLogger(__name__)

Selectable = Union[TextRun, Overlay]
FocusLostCallback = Callable[[Selectable], None]


class SelectionEvent(str, Enum):
    """Discrete input events."""

    CLICK = "click"
    DOUBLE_CLICK = "double_click"
    COMMIT = "commit"  # loss of focus or explicit confirm
    CANCEL = "cancel"
    DESELECT = "deselect"


# (state, event) -> next state; missing pairs leave the state unchanged
TRANSITIONS: dict[tuple[SelectionState, SelectionEvent], SelectionState] = {
    (SelectionState.IDLE, SelectionEvent.CLICK): SelectionState.SELECTED,
    (SelectionState.IDLE, SelectionEvent.DOUBLE_CLICK): SelectionState.EDITING,
    (SelectionState.SELECTED, SelectionEvent.DOUBLE_CLICK): SelectionState.EDITING,
    (SelectionState.SELECTED, SelectionEvent.DESELECT): SelectionState.IDLE,
    (SelectionState.EDITING, SelectionEvent.COMMIT): SelectionState.SELECTED,
    (SelectionState.EDITING, SelectionEvent.CANCEL): SelectionState.SELECTED,
    (SelectionState.EDITING, SelectionEvent.DESELECT): SelectionState.IDLE,
}


def next_state(state: SelectionState, event: SelectionEvent) -> SelectionState:
    """Apply one event to a selection state."""
    return TRANSITIONS.get((state, event), state)


def _kind_of(item: Selectable) -> SelectionKind:
    if isinstance(item, Overlay):
        return SelectionKind.OVERLAY
    return SelectionKind.RUN


def _key_of(item: Selectable) -> str:
    if isinstance(item, Overlay):
        return item.id
    return str(item.run_id)


@dataclass
class ActiveSelection:
    """The single active-selection slot shared by runs and overlays."""

    kind: SelectionKind = SelectionKind.NONE
    key: Optional[str] = None
    on_focus_lost: Optional[FocusLostCallback] = field(default=None, repr=False)
    _item: Optional[Selectable] = field(default=None, init=False, repr=False)

    @property
    def item(self) -> Optional[Selectable]:
        """Currently active item, if any."""
        return self._item

    def _leave(self, item: Selectable) -> None:
        """Return ``item`` to idle, reporting an edit in progress first."""
        if item.state is SelectionState.EDITING and self.on_focus_lost is not None:
            self.on_focus_lost(item)
        item.state = SelectionState.IDLE

    def dispatch(self, item: Selectable, event: SelectionEvent) -> SelectionState:
        """Route an input event to ``item`` and keep the slot exclusive.

        Returns:
            The item's new state.
        """
        if event is SelectionEvent.DESELECT:
            if self._item is item:
                self.clear()
            else:
                self._leave(item)
            logger.debug("%s deselected", _key_of(item))
            return item.state

        if self._item is not None and self._item is not item:
            # Another item takes focus
            self._leave(self._item)

        item.state = next_state(item.state, event)
        self.kind = _kind_of(item)
        self.key = _key_of(item)
        self._item = item

        logger.debug("%s %s -> %s", self.kind.value, self.key, item.state.value)
        return item.state

    def is_active(self, item: Selectable) -> bool:
        """Check whether ``item`` holds the slot."""
        return self.kind is _kind_of(item) and self.key == _key_of(item)

    def clear(self) -> None:
        """Empty the slot and return its item to idle."""
        if self._item is not None:
            self._leave(self._item)
        self.kind = SelectionKind.NONE
        self.key = None
        self._item = None
