"""Database operations for timeline_events table."""

from typing import Any
from uuid import UUID

from app.core.logging import get_logger
from app.db.supabase_client import get_supabase

logger = get_logger(__name__)


def list_timeline_events(project_id: UUID) -> list[dict[str, Any]]:
    """List all timeline events for a project in creation order."""
    supabase = get_supabase()

    response = (
        supabase.table("timeline_events")
        .select("*")
        .eq("project_id", str(project_id))
        .order("created_at", desc=False)
        .execute()
    )
    return response.data or []


def create_timeline_event(
    project_id: UUID,
    *,
    title: str,
    description: str,
    event_type: str,
    confidence_score: float,
    date: str | None = None,
    source_id: str | None = None,
) -> dict[str, Any]:
    """
    Create a timeline event.

    Args:
        project_id: Project UUID
        title: Event title
        description: What happens
        event_type: milestone, deadline, decision, approval or dependency
        confidence_score: Extraction confidence in [0, 1]
        date: Date as written in the source, if any
        source_id: Source the event was resolved to, if any

    Returns:
        Created timeline event dict

    Raises:
        Exception: If database operation fails
    """
    supabase = get_supabase()

    try:
        response = (
            supabase.table("timeline_events")
            .insert(
                {
                    "project_id": str(project_id),
                    "title": title,
                    "description": description,
                    "type": event_type,
                    "confidence_score": confidence_score,
                    "date": date,
                    "source_id": str(source_id) if source_id else None,
                }
            )
            .execute()
        )

        if not response.data:
            raise ValueError("No data returned from create_timeline_event")

        return response.data[0]

    except Exception as e:
        logger.error(f"Failed to create timeline event: {e}", extra={"project_id": str(project_id)})
        raise
