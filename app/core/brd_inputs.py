"""Aggregation of structured intelligence into BRD synthesis inputs."""

from collections import Counter
from dataclasses import dataclass, field
from typing import Any

HIGH_CONFIDENCE = 0.8
LOW_CONFIDENCE = 0.5


@dataclass
class BRDInputs:
    """Everything the BRD synthesis prompt is built from."""

    project_name: str
    project_description: str
    source_count: int
    channels: list[str]
    requirement_count: int
    stakeholder_count: int
    decision_count: int
    conflict_count: int
    timeline_count: int
    category_breakdown: str
    priority_breakdown: str
    average_confidence: float
    high_confidence: int
    medium_confidence: int
    low_confidence: int
    sources_block: str = ""
    requirements_block: str = ""
    stakeholders_block: str = ""
    decisions_block: str = ""
    conflicts_block: str = ""
    timeline_block: str = ""
    source_context_block: str = ""
    generated_from: dict[str, int] = field(default_factory=dict)


def breakdown(values: list[str]) -> str:
    """`a: 2, b: 1` in first-seen order."""
    counts = Counter(values)
    return ", ".join(f"{key}: {count}" for key, count in counts.items())


def confidence_buckets(requirements: list[dict[str, Any]]) -> tuple[int, int, int]:
    """Counts of (high >= 0.8, medium, low < 0.5) confidence requirements."""
    scores = [float(r.get("confidence_score") or 0.0) for r in requirements]
    high = sum(1 for s in scores if s >= HIGH_CONFIDENCE)
    low = sum(1 for s in scores if s < LOW_CONFIDENCE)
    return high, len(scores) - high - low, low


def average_confidence(requirements: list[dict[str, Any]]) -> float:
    """Mean requirement confidence, 0.0 when there are none."""
    if not requirements:
        return 0.0
    return sum(float(r.get("confidence_score") or 0.0) for r in requirements) / len(requirements)


def _excerpt(text: str | None, max_chars: int) -> str:
    return (text or "")[:max_chars] or "N/A"


def build_brd_inputs(
    *,
    project: dict[str, Any] | None,
    sources: list[dict[str, Any]],
    requirements: list[dict[str, Any]],
    stakeholders: list[dict[str, Any]],
    decisions: list[dict[str, Any]],
    conflicts: list[dict[str, Any]],
    timeline_events: list[dict[str, Any]],
    excerpt_max_chars: int = 1_000,
    snippet_max_chars: int = 15_000,
    context_max_chars: int = 50_000,
) -> BRDInputs:
    """
    Summarize the project's entities for the synthesis prompt.

    Args:
        project: Project dict (name, description), may be None
        sources: Project sources
        requirements: Persisted requirements
        stakeholders: Persisted stakeholders
        decisions: Persisted decisions
        conflicts: Persisted conflicts
        timeline_events: Persisted timeline events
        excerpt_max_chars: Cap per quoted evidence excerpt
        snippet_max_chars: Cap per quoted source
        context_max_chars: Cap on all quoted sources together

    Returns:
        BRDInputs with counts, breakdowns and text blocks
    """
    project = project or {}
    channels = list(dict.fromkeys((s.get("kind") or "document") for s in sources))
    high, medium, low = confidence_buckets(requirements)

    sources_block = "\n".join(
        f'- "{s.get("name")}" ({(s.get("kind") or "document").replace("_", " ")}, '
        f"{len((s.get('content') or '').split())} words)"
        for s in sources
    )

    requirements_block = "\n\n".join(
        f"{r.get('requirement_id')} [{r.get('category')}/{r.get('priority')}] "
        f"(confidence: {float(r.get('confidence_score') or 0) * 100:.0f}%): {r.get('title')}\n"
        f"  Description: {r.get('description') or ''}\n"
        f'  Source evidence: "{_excerpt(r.get("source_excerpt"), excerpt_max_chars)}"\n'
        f"  Reasoning: {r.get('extraction_reasoning') or 'N/A'}"
        for r in requirements
    )

    stakeholders_block = "\n".join(
        f"- {s.get('name')} ({s.get('role')}"
        f"{', ' + s['department'] if s.get('department') else ''}) "
        f"- Influence: {s.get('influence')} | Sentiment: {s.get('sentiment') or 'unknown'}"
        for s in stakeholders
    )

    decisions_block = "\n\n".join(
        f"{d.get('decision_id')} [{d.get('type')}/{d.get('status')}]: {d.get('title')}\n"
        f"  {d.get('description') or ''}\n"
        f'  Evidence: "{_excerpt(d.get("source_excerpt"), excerpt_max_chars)}"'
        for d in decisions
    )

    conflicts_block = "\n\n".join(
        f"{c.get('conflict_id')} [{c.get('severity')}]: {c.get('title')}\n"
        f"  {c.get('description') or ''}"
        for c in conflicts
    )

    timeline_block = "\n".join(
        f"- [{e.get('type')}] {e.get('title')}{' (' + e['date'] + ')' if e.get('date') else ''}"
        for e in timeline_events
    )

    source_context_block = "\n\n".join(
        f"--- {s.get('name')} ({s.get('kind')}) ---\n{(s.get('content') or '')[:snippet_max_chars]}"
        for s in sources
    )[:context_max_chars]

    return BRDInputs(
        project_name=project.get("name") or "TraceLayer Project",
        project_description=project.get("description") or "",
        source_count=len(sources),
        channels=channels,
        requirement_count=len(requirements),
        stakeholder_count=len(stakeholders),
        decision_count=len(decisions),
        conflict_count=len(conflicts),
        timeline_count=len(timeline_events),
        category_breakdown=breakdown([r.get("category") or "functional" for r in requirements]),
        priority_breakdown=breakdown([r.get("priority") or "medium" for r in requirements]),
        average_confidence=average_confidence(requirements),
        high_confidence=high,
        medium_confidence=medium,
        low_confidence=low,
        sources_block=sources_block,
        requirements_block=requirements_block,
        stakeholders_block=stakeholders_block,
        decisions_block=decisions_block,
        conflicts_block=conflicts_block,
        timeline_block=timeline_block,
        source_context_block=source_context_block,
        generated_from={
            "requirement_count": len(requirements),
            "source_count": len(sources),
            "stakeholder_count": len(stakeholders),
            "decision_count": len(decisions),
        },
    )
