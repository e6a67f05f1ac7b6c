"""Overlapping extraction windows for oversized sources."""

from typing import NamedTuple


class TextWindow(NamedTuple):
    """One slice of a source, `content == text[start:end]`."""

    index: int
    start: int
    end: int
    content: str


def split_windows(text: str, max_chars: int = 35_000, overlap: int = 2_000) -> list[TextWindow]:
    """
    Split text into overlapping extraction windows.

    Empty text yields no windows; text that fits in one window is returned
    whole. Otherwise each window after the first starts `overlap` characters
    before the end of the previous one, so anything stated across a boundary
    appears intact in at least one window. The last window ends exactly at
    the end of the text. The output is a pure function of
    (text, max_chars, overlap).

    Args:
        text: Source content
        max_chars: Maximum characters per window
        overlap: Characters shared between consecutive windows

    Returns:
        Windows in text order

    Raises:
        ValueError: If max_chars <= overlap or overlap < 0
    """
    if max_chars <= overlap:
        raise ValueError(f"max_chars ({max_chars}) must be greater than overlap ({overlap})")
    if overlap < 0:
        raise ValueError(f"overlap ({overlap}) must not be negative")

    windows: list[TextWindow] = []
    start = 0
    while start < len(text):
        end = min(start + max_chars, len(text))
        windows.append(TextWindow(len(windows), start, end, text[start:end]))
        if end == len(text):
            break
        start = end - overlap

    return windows


def chunk_windows(text: str, max_chars: int, overlap: int) -> list[str]:
    """Window contents of `split_windows`, in order."""
    return [window.content for window in split_windows(text, max_chars, overlap)]
