"""Append-only pipeline run trail (agent_logs table)."""

from typing import Any
from uuid import UUID

from app.core.logging import get_logger
from app.db.supabase_client import get_supabase

logger = get_logger(__name__)

RECENT_LOGS_LIMIT = 200


def append_log(
    project_id: UUID,
    run_id: UUID,
    agent: str,
    level: str,
    message: str,
    detail: str | None = None,
) -> None:
    """
    Append one log entry to a run's trail.

    Args:
        project_id: Project UUID
        run_id: Run UUID
        agent: Agent name (orchestrator, requirement_agent, ...)
        level: info, processing, success, warning or error
        message: Human-readable message
        detail: Optional detail payload (usually JSON text)

    Raises:
        Exception: If database operation fails
    """
    supabase = get_supabase()

    try:
        supabase.table("agent_logs").insert(
            {
                "project_id": str(project_id),
                "run_id": str(run_id),
                "agent": agent,
                "level": level,
                "message": message,
                "detail": detail,
            }
        ).execute()

    except Exception as e:
        logger.error(f"Failed to append run log: {e}", extra={"run_id": str(run_id)})
        raise


def list_logs_for_run(run_id: UUID) -> list[dict[str, Any]]:
    """
    List a run's log entries in the order they were written.

    Args:
        run_id: Run UUID

    Returns:
        List of log entry dicts
    """
    supabase = get_supabase()

    response = (
        supabase.table("agent_logs")
        .select("*")
        .eq("run_id", str(run_id))
        .order("created_at", desc=False)
        .execute()
    )
    return response.data or []


def list_recent_log_entries(project_id: UUID, limit: int = RECENT_LOGS_LIMIT) -> list[dict[str, Any]]:
    """
    List a project's most recent log entries, newest first.

    Args:
        project_id: Project UUID
        limit: Max entries to return

    Returns:
        List of log entry dicts
    """
    supabase = get_supabase()

    response = (
        supabase.table("agent_logs")
        .select("*")
        .eq("project_id", str(project_id))
        .order("created_at", desc=True)
        .limit(limit)
        .execute()
    )
    return response.data or []


def delete_logs_for_runs(run_ids: list[str]) -> int:
    """Delete every log entry of the given runs."""
    if not run_ids:
        return 0

    supabase = get_supabase()

    response = supabase.table("agent_logs").delete().in_("run_id", run_ids).execute()
    return len(response.data or [])
