"""Database operations for requirements table."""

from typing import Any
from uuid import UUID

from app.core.logging import get_logger
from app.db.supabase_client import get_supabase

logger = get_logger(__name__)


def list_requirements(project_id: UUID) -> list[dict[str, Any]]:
    """
    List all requirements for a project in creation order.

    Args:
        project_id: Project UUID

    Returns:
        List of requirement dicts
    """
    supabase = get_supabase()

    response = (
        supabase.table("requirements")
        .select("*")
        .eq("project_id", str(project_id))
        .order("created_at", desc=False)
        .execute()
    )
    return response.data or []


def create_requirement(
    project_id: UUID,
    *,
    requirement_id: str,
    title: str,
    description: str,
    category: str,
    priority: str,
    confidence_score: float,
    source_id: str,
    source_excerpt: str = "",
    extraction_reasoning: str = "",
    tags: list[str] | None = None,
) -> dict[str, Any]:
    """
    Create a requirement.

    Args:
        project_id: Project UUID
        requirement_id: Stable label (REQ-###)
        title: Requirement title
        description: Requirement description
        category: Requirement category
        priority: critical, high, medium or low
        confidence_score: Extraction confidence in [0, 1]
        source_id: Source the requirement was extracted from
        source_excerpt: Verbatim evidence
        extraction_reasoning: Why it was extracted
        tags: Free-form tags

    Returns:
        Created requirement dict

    Raises:
        Exception: If database operation fails
    """
    supabase = get_supabase()

    try:
        response = (
            supabase.table("requirements")
            .insert(
                {
                    "project_id": str(project_id),
                    "requirement_id": requirement_id,
                    "title": title,
                    "description": description,
                    "category": category,
                    "priority": priority,
                    "confidence_score": confidence_score,
                    "source_id": str(source_id),
                    "source_excerpt": source_excerpt,
                    "extraction_reasoning": extraction_reasoning,
                    "tags": tags or [],
                }
            )
            .execute()
        )

        if not response.data:
            raise ValueError("No data returned from create_requirement")

        return response.data[0]

    except Exception as e:
        logger.error(
            f"Failed to create requirement {requirement_id}: {e}",
            extra={"project_id": str(project_id)},
        )
        raise
