"""Database operations for stakeholders table."""

from typing import Any
from uuid import UUID

from app.core.logging import get_logger
from app.db.supabase_client import get_supabase

logger = get_logger(__name__)


def list_stakeholders(project_id: UUID) -> list[dict[str, Any]]:
    """
    List all stakeholders for a project.

    Args:
        project_id: Project UUID

    Returns:
        List of stakeholder dicts
    """
    supabase = get_supabase()

    response = (
        supabase.table("stakeholders")
        .select("*")
        .eq("project_id", str(project_id))
        .order("created_at", desc=False)
        .execute()
    )
    return response.data or []


def create_stakeholder(
    project_id: UUID,
    *,
    name: str,
    role: str,
    influence: str,
    sentiment: str,
    source_ids: list[str],
    department: str | None = None,
    mention_context: str = "",
    concerns: list[str] | None = None,
) -> dict[str, Any]:
    """
    Create a stakeholder.

    Args:
        project_id: Project UUID
        name: Person, team or party name
        role: Job title or role description
        influence: decision_maker, influencer, contributor or observer
        sentiment: supportive, neutral, resistant or unknown
        source_ids: Sources that mention the stakeholder
        department: Optional department
        mention_context: How they are involved
        concerns: Their concerns or priorities

    Returns:
        Created stakeholder dict

    Raises:
        Exception: If database operation fails
    """
    supabase = get_supabase()

    try:
        response = (
            supabase.table("stakeholders")
            .insert(
                {
                    "project_id": str(project_id),
                    "name": name,
                    "role": role,
                    "department": department,
                    "influence": influence,
                    "sentiment": sentiment,
                    "source_ids": [str(s) for s in source_ids],
                    "mention_context": mention_context,
                    "concerns": concerns or [],
                }
            )
            .execute()
        )

        if not response.data:
            raise ValueError("No data returned from create_stakeholder")

        return response.data[0]

    except Exception as e:
        logger.error(
            f"Failed to create stakeholder {name}: {e}",
            extra={"project_id": str(project_id)},
        )
        raise
