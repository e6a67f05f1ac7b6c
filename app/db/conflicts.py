"""Database operations for conflicts table."""

from typing import Any
from uuid import UUID

from app.core.logging import get_logger
from app.db.supabase_client import get_supabase

logger = get_logger(__name__)


def list_conflicts(project_id: UUID) -> list[dict[str, Any]]:
    """List all conflicts for a project in creation order."""
    supabase = get_supabase()

    response = (
        supabase.table("conflicts")
        .select("*")
        .eq("project_id", str(project_id))
        .order("created_at", desc=False)
        .execute()
    )
    return response.data or []


def create_conflict(
    project_id: UUID,
    *,
    conflict_id: str,
    title: str,
    description: str,
    severity: str,
    requirement_ids: list[str],
) -> dict[str, Any]:
    """
    Create a conflict between two or more requirements.

    Args:
        project_id: Project UUID
        conflict_id: Label (CON-###)
        title: Conflict title
        description: Description and explanation
        severity: critical, major or minor
        requirement_ids: Ids of the contradicting requirements (at least two)

    Returns:
        Created conflict dict

    Raises:
        ValueError: If fewer than two requirements are given
        Exception: If database operation fails
    """
    if len(requirement_ids) < 2:
        raise ValueError("A conflict needs at least two requirements")

    supabase = get_supabase()

    try:
        response = (
            supabase.table("conflicts")
            .insert(
                {
                    "project_id": str(project_id),
                    "conflict_id": conflict_id,
                    "title": title,
                    "description": description,
                    "severity": severity,
                    "requirement_ids": [str(r) for r in requirement_ids],
                }
            )
            .execute()
        )

        if not response.data:
            raise ValueError("No data returned from create_conflict")

        return response.data[0]

    except Exception as e:
        logger.error(
            f"Failed to create conflict {conflict_id}: {e}",
            extra={"project_id": str(project_id)},
        )
        raise
