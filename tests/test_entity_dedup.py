"""Tests for the requirement deduplication gate."""

from app.core.entity_dedup import RequirementDedupGate, dedupe_chunk_requirements
from app.core.schemas_extraction import RequirementCandidate


def _candidate(title: str, **fields) -> RequirementCandidate:
    return RequirementCandidate(title=title, **fields)


def test_chunk_dedup_collapses_identical_normalized_titles():
    """Test that boundary text seen by two windows is kept once."""
    candidates = [
        _candidate("Guest checkout", description="first window"),
        _candidate("Saved cards"),
        _candidate("guest checkout!", description="second window"),
    ]

    unique = dedupe_chunk_requirements(candidates)

    assert [c.title for c in unique] == ["Guest checkout", "Saved cards"]
    assert unique[0].description == "first window"


def test_chunk_dedup_keeps_similar_but_not_identical_titles():
    """The window tier only collapses exact matches; the gate handles similarity."""
    unique = dedupe_chunk_requirements([_candidate("Guest checkout"), _candidate("Guest checkout flow")])

    assert len(unique) == 2


def test_gate_skips_titles_similar_to_persisted_requirements():
    gate = RequirementDedupGate.from_requirements([{"title": "Checkout as a guest"}])

    decision = gate.check(_candidate("Guest checkout"))

    assert not decision.admitted
    assert decision.matched_title == "Checkout as a guest"


def test_gate_remembers_admitted_titles_within_a_run():
    gate = RequirementDedupGate.from_requirements([])

    first = gate.check(_candidate("Export orders to CSV"))
    second = gate.check(_candidate("Export orders as CSV"))

    assert first.admitted
    assert not second.admitted
    assert second.matched_title == "Export orders to CSV"


def test_gate_admits_distinct_titles():
    gate = RequirementDedupGate.from_requirements([{"title": "Guest checkout"}])

    assert gate.check(_candidate("Order history page")).admitted
    assert gate.known_titles == ["Guest checkout", "Order history page"]


def test_gate_ignores_persisted_rows_without_titles():
    gate = RequirementDedupGate.from_requirements([{"title": None}, {"title": "..."}])

    assert gate.known_titles == []


def test_gate_threshold_is_configurable():
    gate = RequirementDedupGate.from_requirements([{"title": "pay with saved card"}], threshold=0.9)

    assert gate.check(_candidate("pay with new card")).admitted
