# SPDX-License-Identifier: Apache-2.0
"""Document session package."""

from pdf_text_editor.errors import (
    DocumentLoadError,
    EditorError,
    ExtractionError,
    PatchError,
    SessionStateError,
)

from .document_session import DocumentSession, PageView
from .progress import ProgressCallback

__all__ = [
    "DocumentLoadError",
    "DocumentSession",
    "EditorError",
    "ExtractionError",
    "PageView",
    "PatchError",
    "ProgressCallback",
    "SessionStateError",
]
