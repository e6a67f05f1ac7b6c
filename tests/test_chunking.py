"""Tests for extraction window splitting."""

import pytest

from app.core.chunking import TextWindow, chunk_windows, split_windows


def test_split_windows_basic():
    text = "A" * 100
    windows = split_windows(text, max_chars=30, overlap=10)

    # 0-30, 20-50, 40-70, 60-90, 80-100
    assert [(w.start, w.end) for w in windows] == [(0, 30), (20, 50), (40, 70), (60, 90), (80, 100)]


def test_consecutive_windows_share_overlap():
    text = "0123456789" * 10
    windows = split_windows(text, max_chars=30, overlap=10)

    assert windows[0].content[-10:] == windows[1].content[:10]
    assert windows[1].content[-10:] == windows[2].content[:10]


def test_empty_text_has_no_windows():
    assert split_windows("") == []
    assert chunk_windows("", 100, 10) == []


def test_short_text_is_one_window():
    text = "Short text"

    assert split_windows(text, max_chars=100, overlap=10) == [TextWindow(0, 0, len(text), text)]


def test_text_of_exactly_max_chars_is_one_window():
    assert chunk_windows("A" * 50, max_chars=50, overlap=10) == ["A" * 50]


@pytest.mark.parametrize(("max_chars", "overlap"), [(10, 20), (10, 10), (10, -1)])
def test_invalid_params(max_chars, overlap):
    with pytest.raises(ValueError):
        split_windows("test", max_chars=max_chars, overlap=overlap)


def test_window_indices_are_sequential():
    windows = split_windows("A" * 200, max_chars=50, overlap=10)

    assert [w.index for w in windows] == list(range(len(windows)))


def test_forty_thousand_char_source_makes_two_windows():
    """A 40k source with default windows is split in two, sharing 2k chars."""
    text = "".join(chr(ord("a") + i % 26) for i in range(40_000))
    windows = chunk_windows(text, max_chars=35_000, overlap=2_000)

    assert len(windows) == 2
    assert len(windows[0]) == 35_000
    assert windows[1] == text[33_000:]
    assert windows[0][-2_000:] == windows[1][:2_000]


def test_last_window_ends_at_text_end():
    windows = split_windows("A" * 105, max_chars=50, overlap=10)

    assert [(w.start, w.end) for w in windows] == [(0, 50), (40, 90), (80, 105)]


def test_windows_are_deterministic():
    text = "The quick brown fox jumps over the lazy dog. " * 200

    assert chunk_windows(text, 1_000, 100) == chunk_windows(text, 1_000, 100)


def test_windows_cover_every_char():
    text = "".join(str(i % 10) for i in range(1_234))
    windows = split_windows(text, max_chars=200, overlap=25)

    assert windows[0].start == 0
    assert windows[-1].end == len(text)
    for window in windows:
        assert window.content == text[window.start : window.end]
    for previous, current in zip(windows, windows[1:]):
        assert current.start < previous.end
