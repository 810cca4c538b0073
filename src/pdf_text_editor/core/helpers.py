# SPDX-License-Identifier: Apache-2.0
"""ctypes conversions for pypdfium2's raw PDFium API."""

import ctypes


def to_widestring(text: str) -> ctypes.Array:
    """Convert Python string to FPDF_WIDESTRING (UTF-16LE + null terminator).

    Example:
        >>> ws = to_widestring("Invoice #002")
        >>> # ws can now be passed to FPDFText_SetText
    """
    encoded = text.encode("utf-16-le") + b"\x00\x00"
    return (ctypes.c_ushort * (len(encoded) // 2)).from_buffer_copy(encoded)


def from_widestring(buffer: ctypes.Array, byte_length: int) -> str:
    """Decode a UTF-16LE buffer filled by PDFium.

    ``byte_length`` is the size PDFium reported, terminating null included.
    Surrogate pairs are decoded properly.
    """
    raw = bytes(buffer)[:byte_length]
    text = raw.decode("utf-16-le", errors="replace")
    return text.split("\x00", 1)[0]
