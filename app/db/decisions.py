"""Database operations for decisions table."""

from typing import Any
from uuid import UUID

from app.core.logging import get_logger
from app.db.supabase_client import get_supabase

logger = get_logger(__name__)


def list_decisions(project_id: UUID) -> list[dict[str, Any]]:
    """
    List all decisions for a project in creation order.

    Args:
        project_id: Project UUID

    Returns:
        List of decision dicts
    """
    supabase = get_supabase()

    response = (
        supabase.table("decisions")
        .select("*")
        .eq("project_id", str(project_id))
        .order("created_at", desc=False)
        .execute()
    )
    return response.data or []


def create_decision(
    project_id: UUID,
    *,
    decision_id: str,
    title: str,
    description: str,
    decision_type: str,
    status: str,
    confidence_score: float,
    source_id: str | None,
    source_excerpt: str = "",
    made_by: str = "",
) -> dict[str, Any]:
    """
    Create a decision.

    Args:
        project_id: Project UUID
        decision_id: Stable label (DEC-###)
        title: Decision title
        description: What was decided and why
        decision_type: architectural, functional, business, technical or process
        status: proposed, approved, rejected or deferred
        confidence_score: Extraction confidence in [0, 1]
        source_id: Source the decision was resolved to
        source_excerpt: Verbatim evidence
        made_by: Who made or approved it

    Returns:
        Created decision dict

    Raises:
        Exception: If database operation fails
    """
    supabase = get_supabase()

    try:
        response = (
            supabase.table("decisions")
            .insert(
                {
                    "project_id": str(project_id),
                    "decision_id": decision_id,
                    "title": title,
                    "description": description,
                    "type": decision_type,
                    "status": status,
                    "confidence_score": confidence_score,
                    "source_id": str(source_id) if source_id else None,
                    "source_excerpt": source_excerpt,
                    "made_by": made_by,
                }
            )
            .execute()
        )

        if not response.data:
            raise ValueError("No data returned from create_decision")

        return response.data[0]

    except Exception as e:
        logger.error(
            f"Failed to create decision {decision_id}: {e}",
            extra={"project_id": str(project_id)},
        )
        raise
