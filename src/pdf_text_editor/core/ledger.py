# SPDX-License-Identifier: Apache-2.0
"""Edit ledger: pending replacements for original text runs.

Entries are keyed by run identity and hold only PDF-space geometry, so they
stay valid across zoom changes, page navigation and re-extraction. The
ledger is scoped to one document session and must be reset when a new
document is loaded.
"""

from __future__ import annotations

import logging
from typing import Optional

from .models import EditEntry, RunId, SelectionState, TextRun

logger = logging.getLogger(__name__)


class EditLedger:
    """Map from RunId to pending EditEntry.

    ``commit_edit`` is the only operation that decides membership: an entry
    exists exactly when a run's committed text differs from its original.

    Example:
        >>> ledger = EditLedger()
        >>> ledger.begin_edit(run)
        >>> run.current_text = "Invoice #002"
        >>> ledger.commit_edit(run)
        >>> ledger.count()
        1
    """

    def __init__(self) -> None:
        self._entries: dict[RunId, EditEntry] = {}

    def begin_edit(self, run: TextRun) -> None:
        """Put a run into its editing state. The ledger is not touched."""
        run.state = SelectionState.EDITING

    def commit_edit(self, run: TextRun) -> Optional[EditEntry]:
        """Finish an edit interaction and reconcile ledger membership.

        Returns:
            The stored entry, or None if the run is back to its original text.
        """
        if run.state is SelectionState.EDITING:
            run.state = SelectionState.SELECTED

        if run.current_text != run.original_text:
            entry = EditEntry.from_run(run)
            self._entries[run.run_id] = entry
            run.is_edited = True
            logger.debug("ledger: %s -> %r", run.run_id, entry.new_text)
            return entry

        if self._entries.pop(run.run_id, None) is not None:
            logger.debug("ledger: %s restored to original", run.run_id)
        run.is_edited = False
        return None

    def revert(self, run: TextRun) -> None:
        """Restore the original text and drop any entry. Idempotent."""
        run.current_text = run.original_text
        run.is_edited = False
        if run.state is SelectionState.EDITING:
            run.state = SelectionState.SELECTED
        if self._entries.pop(run.run_id, None) is not None:
            logger.debug("ledger: %s reverted", run.run_id)

    def count(self) -> int:
        """Number of pending edits."""
        return len(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, run_id: object) -> bool:
        return run_id in self._entries

    def get(self, run_id: RunId) -> Optional[EditEntry]:
        """Entry for ``run_id``, if any."""
        return self._entries.get(run_id)

    def entries(self) -> list[EditEntry]:
        """All entries ordered by page, then source index."""
        return [self._entries[key] for key in sorted(self._entries)]

    def snapshot(self) -> tuple[EditEntry, ...]:
        """Immutable copy for an in-flight save (entries are frozen)."""
        return tuple(self.entries())

    def reset(self) -> None:
        """Discard every entry (new document loaded)."""
        self._entries.clear()
