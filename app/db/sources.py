"""Database operations for project sources."""

from typing import Any
from uuid import UUID

from app.core.logging import get_logger
from app.db.supabase_client import get_supabase

logger = get_logger(__name__)


def list_sources(project_id: UUID) -> list[dict[str, Any]]:
    """
    List a project's sources in upload order.

    Args:
        project_id: Project UUID

    Returns:
        List of source dicts (id, name, kind, content, status, relevance_score)
    """
    supabase = get_supabase()

    response = (
        supabase.table("sources")
        .select("*")
        .eq("project_id", str(project_id))
        .order("created_at", desc=False)
        .execute()
    )
    return response.data or []


def update_source_status(
    source_id: UUID | str,
    status: str,
    *,
    relevance_score: float | None = None,
    classification: dict[str, Any] | None = None,
) -> None:
    """
    Advance a source's processing status.

    Args:
        source_id: Source UUID
        status: pending, classifying, classified, extracting or extracted
        relevance_score: Relevance in [0, 1] from classification
        classification: Full classification payload

    Raises:
        Exception: If database operation fails
    """
    patch: dict[str, Any] = {"status": status}
    if relevance_score is not None:
        patch["relevance_score"] = relevance_score
    if classification is not None:
        patch["classification"] = classification

    supabase = get_supabase()

    try:
        supabase.table("sources").update(patch).eq("id", str(source_id)).execute()

    except Exception as e:
        logger.error(f"Failed to update source {source_id}: {e}")
        raise
