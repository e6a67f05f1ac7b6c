"""
Title similarity for requirement deduplication.

Two titles are near-duplicates when the tokens they share cover at least
70% of the shorter title's token set (overlap coefficient):

    similar("User login via SSO", "Login via SSO for users")  -> True

Titles are lowercased, stripped to [a-z0-9 whitespace] and split into a
token set. A title with no tokens left is never similar to anything.
"""

import re

DEFAULT_THRESHOLD = 0.70

_NON_TOKEN_CHARS = re.compile(r"[^a-z0-9\s]")


def normalize_title(title: str | None) -> str:
    """Lowercase, trim and drop characters outside [a-z0-9 whitespace]."""
    return _NON_TOKEN_CHARS.sub("", (title or "").lower().strip())


def title_tokens(title: str | None) -> frozenset[str]:
    """Whitespace-delimited token set of the normalized title."""
    return frozenset(normalize_title(title).split())


def overlap_ratio(tokens_a: frozenset[str], tokens_b: frozenset[str]) -> float:
    """Shared tokens divided by the size of the smaller set (0.0 for empty sets)."""
    if not tokens_a or not tokens_b:
        return 0.0
    return len(tokens_a & tokens_b) / min(len(tokens_a), len(tokens_b))


def titles_similar(
    title_a: str | None,
    title_b: str | None,
    threshold: float = DEFAULT_THRESHOLD,
) -> bool:
    """True when the two titles overlap by at least `threshold`."""
    tokens_a = title_tokens(title_a)
    tokens_b = title_tokens(title_b)
    if not tokens_a or not tokens_b:
        return False
    return overlap_ratio(tokens_a, tokens_b) >= threshold


def find_similar_title(
    title: str,
    known_titles: list[str],
    threshold: float = DEFAULT_THRESHOLD,
) -> str | None:
    """Return the first known title similar to `title`, if any."""
    for known in known_titles:
        if titles_similar(title, known, threshold):
            return known
    return None
