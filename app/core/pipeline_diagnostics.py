"""Pipeline health snapshot computed from a project's stored records."""

from datetime import datetime
from typing import Any

from app.core.brd_inputs import HIGH_CONFIDENCE, LOW_CONFIDENCE, average_confidence
from app.core.schemas_pipeline import PipelineDiagnostics

RECENT_ERRORS_LIMIT = 5


def _parse_timestamp(value: Any) -> datetime | None:
    if not value:
        return None
    try:
        return datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError:
        return None


def run_duration_seconds(run: dict[str, Any]) -> float | None:
    """Seconds between a run's start and completion, if both are recorded."""
    started = _parse_timestamp(run.get("started_at"))
    completed = _parse_timestamp(run.get("completed_at"))
    if started is None or completed is None:
        return None
    return (completed - started).total_seconds()


def summarize_pipeline_health(
    *,
    project: dict[str, Any] | None,
    sources: list[dict[str, Any]],
    requirements: list[dict[str, Any]],
    stakeholders: list[dict[str, Any]],
    decisions: list[dict[str, Any]],
    conflicts: list[dict[str, Any]],
    timeline_events: list[dict[str, Any]],
    documents: list[dict[str, Any]],
    runs: list[dict[str, Any]],
    latest_run_logs: list[dict[str, Any]],
) -> PipelineDiagnostics:
    """
    Build the diagnostics snapshot.

    Args:
        project: Project row or None
        sources: Project sources
        requirements: Project requirements
        stakeholders: Project stakeholders
        decisions: Project decisions
        conflicts: Project conflicts
        timeline_events: Project timeline events
        documents: Every stored document version
        runs: Recent runs, newest first
        latest_run_logs: Log entries of the newest run in write order

    Returns:
        PipelineDiagnostics
    """
    statuses = [s.get("status") for s in sources]
    durations = [
        d
        for d in (run_duration_seconds(r) for r in runs if r.get("status") == "completed")
        if d is not None
    ]
    errors = [entry for entry in latest_run_logs if entry.get("level") == "error"]
    warnings = [entry for entry in latest_run_logs if entry.get("level") == "warning"]
    scores = [float(r.get("confidence_score") or 0.0) for r in requirements]

    return PipelineDiagnostics(
        project=(
            {
                "name": project.get("name"),
                "status": project.get("status"),
                "progress": project.get("progress"),
            }
            if project
            else None
        ),
        sources={
            "total": len(sources),
            "pending": statuses.count("pending"),
            "classified": statuses.count("classified"),
            "extracted": statuses.count("extracted"),
            "total_words": sum(len((s.get("content") or "").split()) for s in sources),
        },
        extraction={
            "requirements": len(requirements),
            "stakeholders": len(stakeholders),
            "decisions": len(decisions),
            "timeline_events": len(timeline_events),
            "conflicts": len(conflicts),
            "documents": len(documents),
        },
        quality={
            "avg_confidence": average_confidence(requirements),
            "high_confidence": sum(1 for s in scores if s >= HIGH_CONFIDENCE),
            "low_confidence": sum(1 for s in scores if s < LOW_CONFIDENCE),
            "total": len(requirements),
        },
        runs={
            "total": len(runs),
            "completed": sum(1 for r in runs if r.get("status") == "completed"),
            "failed": sum(1 for r in runs if r.get("status") == "failed"),
            "cancelled": sum(1 for r in runs if r.get("status") == "cancelled"),
            "avg_duration_sec": round(sum(durations) / len(durations)) if durations else 0,
            "latest_run": runs[0] if runs else None,
        },
        errors={
            "count": len(errors),
            "warnings": len(warnings),
            "recent_errors": [
                {
                    "agent": entry.get("agent"),
                    "message": entry.get("message"),
                    "timestamp": entry.get("created_at"),
                }
                for entry in errors[:RECENT_ERRORS_LIMIT]
            ],
        },
    )
