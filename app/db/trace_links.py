"""Database operations for trace_links table."""

from typing import Any
from uuid import UUID

from app.core.logging import get_logger
from app.core.schemas_pipeline import TraceLink
from app.db.supabase_client import get_supabase

logger = get_logger(__name__)


def list_trace_links(project_id: UUID) -> list[dict[str, Any]]:
    """List every trace link of a project."""
    supabase = get_supabase()

    response = (
        supabase.table("trace_links")
        .select("*")
        .eq("project_id", str(project_id))
        .order("created_at", desc=False)
        .execute()
    )
    return response.data or []


def create_trace_links(project_id: UUID, links: list[TraceLink]) -> list[dict[str, Any]]:
    """
    Insert trace links in one batch.

    Args:
        project_id: Project UUID
        links: Links to store

    Returns:
        Created link dicts

    Raises:
        Exception: If database operation fails
    """
    if not links:
        return []

    supabase = get_supabase()

    try:
        response = (
            supabase.table("trace_links")
            .insert([{"project_id": str(project_id), **link.model_dump()} for link in links])
            .execute()
        )
        return response.data or []

    except Exception as e:
        logger.error(
            f"Failed to create {len(links)} trace link(s): {e}",
            extra={"project_id": str(project_id)},
        )
        raise
