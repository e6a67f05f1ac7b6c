"""
Requirement deduplication gate for the extraction pipeline.

Two tiers:
  1. Within one source: windows overlap, so the same requirement comes back
     from neighbouring chunks. Candidates with the same normalized title are
     collapsed, keeping the first.
  2. Across the project: every surviving candidate is checked against all
     requirement titles already known (persisted in earlier runs, or admitted
     earlier in this run) with the title similarity matcher. Similar titles
     are skipped, never merged or updated.
"""

from dataclasses import dataclass, field
from typing import Any, Iterable

from app.core.logging import get_logger
from app.core.schemas_extraction import RequirementCandidate
from app.core.similarity import DEFAULT_THRESHOLD, find_similar_title, normalize_title

logger = get_logger(__name__)


def dedupe_chunk_requirements(
    candidates: Iterable[RequirementCandidate],
) -> list[RequirementCandidate]:
    """Collapse candidates whose normalized titles are identical (first wins)."""
    seen: set[str] = set()
    unique: list[RequirementCandidate] = []
    for candidate in candidates:
        key = normalize_title(candidate.title)
        if key in seen:
            continue
        seen.add(key)
        unique.append(candidate)
    return unique


@dataclass
class DedupDecision:
    """Outcome of checking one candidate against the known titles."""

    candidate: RequirementCandidate
    admitted: bool
    matched_title: str | None = None


@dataclass
class RequirementDedupGate:
    """Known requirement titles for one project during one run."""

    known_titles: list[str] = field(default_factory=list)
    threshold: float = DEFAULT_THRESHOLD

    @classmethod
    def from_requirements(
        cls,
        requirements: Iterable[dict[str, Any]],
        threshold: float = DEFAULT_THRESHOLD,
    ) -> "RequirementDedupGate":
        """Seed the gate with persisted requirement titles."""
        titles = [r.get("title") or "" for r in requirements]
        return cls(known_titles=[t for t in titles if normalize_title(t)], threshold=threshold)

    def check(self, candidate: RequirementCandidate) -> DedupDecision:
        """Admit the candidate unless a known title is similar; admitted titles become known."""
        matched = find_similar_title(candidate.title, self.known_titles, self.threshold)
        if matched is not None:
            logger.debug(f"Dedup: skipping '{candidate.title}' (similar to '{matched}')")
            return DedupDecision(candidate=candidate, admitted=False, matched_title=matched)

        if normalize_title(candidate.title):
            self.known_titles.append(candidate.title)
        return DedupDecision(candidate=candidate, admitted=True)
