"""
Heuristic traceability linking across the accumulated entity set.

Runs after every extractor has persisted its entities. Purely additive:
it only proposes new links, skipping any link already recorded, so it can
be re-run on the same entity set without creating duplicates.
"""

from typing import Any, Iterable

from app.core.schemas_pipeline import TraceLink

PROPOSED_BY_STRENGTH = 0.85
AFFECTS_STRENGTH = 0.75
AFFECTS_FALLBACK_STRENGTH = 0.5
TIMELINE_MENTION_STRENGTH = 0.7

SEVERITY_STRENGTH = {"critical": 0.95, "major": 0.8, "minor": 0.6}

# Requirement titles shorter than this never match by prefix
MIN_TITLE_MATCH_CHARS = 6
TITLE_PREFIX_CHARS = 30
# Title words must be longer than this to count toward keyword overlap
MIN_KEYWORD_CHARS = 3


def link_key(link: TraceLink | dict[str, Any]) -> tuple[str, str, str, str, str]:
    """Identity of a link for duplicate detection."""
    data = link.model_dump() if isinstance(link, TraceLink) else link
    return (
        data["from_type"],
        str(data["from_id"]),
        data["to_type"],
        str(data["to_id"]),
        data["relationship"],
    )


def link_requirements_to_stakeholders(
    requirements: list[dict[str, Any]],
    stakeholders: list[dict[str, Any]],
) -> list[TraceLink]:
    """`proposed_by` when the requirement's evidence mentions the stakeholder by name."""
    links = []
    for requirement in requirements:
        excerpt = (requirement.get("source_excerpt") or "").lower()
        if not excerpt:
            continue
        for stakeholder in stakeholders:
            name = (stakeholder.get("name") or "").strip().lower()
            if name and name in excerpt:
                links.append(
                    TraceLink(
                        from_type="requirement",
                        from_id=str(requirement["id"]),
                        to_type="stakeholder",
                        to_id=str(stakeholder["id"]),
                        relationship="proposed_by",
                        strength=PROPOSED_BY_STRENGTH,
                    )
                )
    return links


def _decision_text(decision: dict[str, Any]) -> str:
    return f"{decision.get('description') or ''} {decision.get('title') or ''}".lower()


def decision_mentions_requirement(decision_text: str, requirement: dict[str, Any]) -> bool:
    """True when the decision text names the requirement's title prefix or its label."""
    title = (requirement.get("title") or "").lower()
    label = (requirement.get("requirement_id") or "").lower()
    if len(title) >= MIN_TITLE_MATCH_CHARS and title[:TITLE_PREFIX_CHARS] in decision_text:
        return True
    return bool(label) and label in decision_text


def keyword_overlap(decision_text: str, requirement: dict[str, Any]) -> int:
    """Count of requirement title words (longer than 3 chars) present in the decision text."""
    words = (requirement.get("title") or "").lower().split()
    return sum(1 for word in words if len(word) > MIN_KEYWORD_CHARS and word in decision_text)


def link_decisions_to_requirements(
    decisions: list[dict[str, Any]],
    requirements: list[dict[str, Any]],
) -> list[TraceLink]:
    """
    `affects` links from each decision to the requirements it names.

    A decision naming no requirement is linked to the best keyword match
    (the first requirement on a tie at zero) with reduced strength, so every
    decision gets at least one link whenever requirements exist.
    """
    links = []
    if not requirements:
        return links

    for decision in decisions:
        text = _decision_text(decision)
        matched = [r for r in requirements if decision_mentions_requirement(text, r)]

        if matched:
            for requirement in matched:
                links.append(
                    TraceLink(
                        from_type="decision",
                        from_id=str(decision["id"]),
                        to_type="requirement",
                        to_id=str(requirement["id"]),
                        relationship="affects",
                        strength=AFFECTS_STRENGTH,
                    )
                )
            continue

        best = requirements[0]
        best_score = 0
        for requirement in requirements:
            score = keyword_overlap(text, requirement)
            if score > best_score:
                best_score = score
                best = requirement

        links.append(
            TraceLink(
                from_type="decision",
                from_id=str(decision["id"]),
                to_type="requirement",
                to_id=str(best["id"]),
                relationship="affects",
                strength=AFFECTS_FALLBACK_STRENGTH,
            )
        )
    return links


def link_conflicts_to_requirements(conflicts: list[dict[str, Any]]) -> list[TraceLink]:
    """One `blocks` link per requirement recorded on each conflict."""
    links = []
    for conflict in conflicts:
        strength = SEVERITY_STRENGTH.get(conflict.get("severity") or "minor", 0.6)
        for requirement_id in conflict.get("requirement_ids") or []:
            links.append(
                TraceLink(
                    from_type="conflict",
                    from_id=str(conflict["id"]),
                    to_type="requirement",
                    to_id=str(requirement_id),
                    relationship="blocks",
                    strength=strength,
                )
            )
    return links


def link_timeline_to_sources(
    events: list[dict[str, Any]],
    sources: list[dict[str, Any]],
) -> list[TraceLink]:
    """One `mentioned_in` link per event, to its source or the project's first source."""
    fallback_source_id = str(sources[0]["id"]) if sources else None
    links = []
    for event in events:
        source_id = event.get("source_id") or fallback_source_id
        if not source_id:
            continue
        links.append(
            TraceLink(
                from_type="timeline",
                from_id=str(event["id"]),
                to_type="source",
                to_id=str(source_id),
                relationship="mentioned_in",
                strength=TIMELINE_MENTION_STRENGTH,
            )
        )
    return links


def build_trace_links(
    *,
    sources: list[dict[str, Any]],
    requirements: list[dict[str, Any]],
    stakeholders: list[dict[str, Any]],
    decisions: list[dict[str, Any]],
    conflicts: list[dict[str, Any]],
    timeline_events: list[dict[str, Any]],
    existing_links: Iterable[dict[str, Any]] = (),
) -> list[TraceLink]:
    """
    Derive every heuristic link for a project's entity set.

    Args:
        sources: Project sources (first one is the timeline fallback)
        requirements: Persisted requirements
        stakeholders: Persisted stakeholders
        decisions: Persisted decisions
        conflicts: Persisted conflicts with their requirement ids
        timeline_events: Persisted timeline events
        existing_links: Links already stored; these are never proposed again

    Returns:
        New links, in stage order, without duplicates
    """
    candidates = [
        *link_requirements_to_stakeholders(requirements, stakeholders),
        *link_decisions_to_requirements(decisions, requirements),
        *link_conflicts_to_requirements(conflicts),
        *link_timeline_to_sources(timeline_events, sources),
    ]

    seen = {link_key(link) for link in existing_links}
    new_links = []
    for link in candidates:
        key = link_key(link)
        if key in seen:
            continue
        seen.add(key)
        new_links.append(link)
    return new_links
