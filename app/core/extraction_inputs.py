"""Corpus building and source resolution for the extraction stages."""

from typing import Any

CORPUS_SEPARATOR = "\n\n---\n\n"

# Excerpt prefix used to locate the source a decision/event was quoted from
EXCERPT_MATCH_CHARS = 100
MIN_EXCERPT_MATCH_CHARS = 11


def source_header(source: dict[str, Any]) -> str:
    """`[Source: name (kind)]` header used to label corpus sections."""
    return f"[Source: {source.get('name', 'unnamed')} ({source.get('kind', 'document')})]"


def build_source_corpus(sources: list[dict[str, Any]], max_chars: int) -> str:
    """
    Concatenate every source's text under a header, capped at `max_chars`.

    Args:
        sources: Source dicts with name, kind and content
        max_chars: Hard cap on the returned corpus length

    Returns:
        Corpus text for the corpus-wide stages
    """
    sections = [f"{source_header(s)}\n{s.get('content') or ''}" for s in sources]
    return CORPUS_SEPARATOR.join(sections)[:max_chars]


def find_source_for_excerpt(
    excerpt: str | None,
    sources: list[dict[str, Any]],
) -> dict[str, Any] | None:
    """
    Source whose text contains the first 100 chars of `excerpt` (case-insensitive).

    Excerpts of 10 characters or fewer are too weak to match and yield None.
    """
    needle = (excerpt or "").lower()
    if len(needle) < MIN_EXCERPT_MATCH_CHARS:
        return None
    needle = needle[:EXCERPT_MATCH_CHARS]
    for source in sources:
        if needle in (source.get("content") or "").lower():
            return source
    return None


def sources_mentioning(name: str | None, sources: list[dict[str, Any]]) -> list[dict[str, Any]]:
    """Sources whose text contains `name` (case-insensitive substring)."""
    needle = (name or "").strip().lower()
    if not needle:
        return []
    return [s for s in sources if needle in (s.get("content") or "").lower()]


def build_requirements_listing(requirements: list[dict[str, Any]]) -> str:
    """One `REQ-001: title - description` line per requirement for conflict detection."""
    return "\n".join(
        f"{r.get('requirement_id')}: {r.get('title', '')} - {r.get('description', '')}"
        for r in requirements
    )
