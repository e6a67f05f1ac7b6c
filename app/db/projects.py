"""Projects database operations."""

from typing import Any
from uuid import UUID

from app.core.logging import get_logger
from app.db.supabase_client import get_supabase

logger = get_logger(__name__)


def get_project(project_id: UUID) -> dict[str, Any] | None:
    """
    Get a single project by ID.

    Args:
        project_id: Project UUID

    Returns:
        Project row as dict, or None if not found
    """
    supabase = get_supabase()

    response = supabase.table("projects").select("*").eq("id", str(project_id)).limit(1).execute()
    return response.data[0] if response.data else None


def update_project(
    project_id: UUID,
    *,
    status: str | None = None,
    progress: int | None = None,
) -> None:
    """
    Update a project's visible status and progress.

    Args:
        project_id: Project UUID
        status: New status (draft, processing, active), if changing
        progress: Progress percentage 0-100, if changing

    Raises:
        Exception: If database operation fails
    """
    patch: dict[str, Any] = {}
    if status is not None:
        patch["status"] = status
    if progress is not None:
        patch["progress"] = progress
    if not patch:
        return

    supabase = get_supabase()

    try:
        supabase.table("projects").update(patch).eq("id", str(project_id)).execute()

    except Exception as e:
        logger.error(f"Failed to update project {project_id}: {e}")
        raise


def clear_extraction_data(project_id: UUID) -> dict[str, int]:
    """
    Delete every extracted entity and trace link of a project.

    Requirements, stakeholders, decisions, conflicts, timeline events and
    trace links are removed in one transaction by the `clear_extraction_data`
    Postgres function. Sources are kept and reset to pending; documents
    are kept.

    Args:
        project_id: Project UUID

    Returns:
        Deleted row counts keyed by table name

    Raises:
        Exception: If database operation fails
    """
    supabase = get_supabase()

    try:
        response = supabase.rpc(
            "clear_extraction_data",
            {"p_project_id": str(project_id)},
        ).execute()

        counts = response.data if isinstance(response.data, dict) else {}
        logger.info(
            f"Cleared extraction data for project {project_id}",
            extra={"project_id": str(project_id), "extra_data": counts},
        )
        return counts

    except Exception as e:
        logger.error(f"Failed to clear extraction data: {e}", extra={"project_id": str(project_id)})
        raise
