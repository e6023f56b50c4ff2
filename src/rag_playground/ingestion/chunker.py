"""Fixed-window text chunking with overlap."""

from __future__ import annotations

import math
from typing import Any

from rag_playground.config import settings


def parse_chunk_size(
    value: Any,
    fallback: int = settings.chunk_size_default,
    *,
    minimum: int = settings.chunk_size_min,
    maximum: int = settings.chunk_size_max,
) -> int:
    """Coerce a user-supplied window size into ``[minimum, maximum]``.

    ``None``, empty strings and anything that does not parse as a finite
    number fall back to *fallback* (which is clamped as well).
    """
    try:
        raw = float(value) if value not in (None, "") else float(fallback)
    except (TypeError, ValueError):
        raw = float(fallback)
    if not math.isfinite(raw):
        raw = float(fallback)
    return min(max(int(raw), minimum), maximum)


def overlap_for(
    window_size: int,
    *,
    ratio: float = settings.chunk_overlap_ratio,
    maximum: int = settings.chunk_overlap_max,
) -> int:
    """Return the overlap for *window_size*: a fraction of it, capped, and
    always strictly smaller than the window."""
    overlap = min(math.floor(window_size * ratio), maximum)
    return max(0, min(overlap, window_size - 1))


def chunk_text(text: str, window_size: int = 1000, overlap: int = 200) -> list[str]:
    """Split *text* into overlapping windows.

    Parameters
    ----------
    text:
        Raw document text.
    window_size:
        Number of characters per window.
    overlap:
        Number of characters shared by consecutive windows.

    Returns
    -------
    list[str]
        Trimmed, non-empty windows in document order.
    """
    step = max(1, window_size - overlap)
    chunks: list[str] = []
    for start in range(0, len(text), step):
        window = text[start : start + window_size].strip()
        if window:
            chunks.append(window)
    return chunks
