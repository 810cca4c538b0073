# SPDX-License-Identifier: Apache-2.0
"""Editor error definitions."""

from __future__ import annotations


class EditorError(Exception):
    """Base exception for editor errors."""

    def __init__(
        self,
        message: str,
        stage: str,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(message)
        self.stage = stage
        self.cause = cause


class DocumentLoadError(EditorError):
    """Input bytes are malformed or unsupported.

    The session is left without a document.
    """

    def __init__(self, message: str, cause: Exception | None = None) -> None:
        super().__init__(message, stage="load", cause=cause)


class ExtractionError(EditorError):
    """Rendering or text-content extraction failed for one page.

    Other pages and the edit ledger are unaffected.
    """

    def __init__(
        self,
        message: str,
        page_number: int,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(message, stage="extract", cause=cause)
        self.page_number = page_number


class PatchError(EditorError):
    """Save-time failure. Ledger and overlays are left intact."""

    def __init__(self, message: str, cause: Exception | None = None) -> None:
        super().__init__(message, stage="patch", cause=cause)


class SessionStateError(EditorError):
    """Operation requires a loaded document."""

    def __init__(self, message: str = "No document is loaded") -> None:
        super().__init__(message, stage="session")
