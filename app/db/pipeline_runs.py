"""Pipeline run lifecycle database operations."""

from datetime import datetime, timezone  # noqa: UP035
from typing import Any
from uuid import UUID

from app.core.logging import get_logger
from app.core.schemas_pipeline import ACTIVE_RUN_STATUSES, RunCounters, is_terminal_status
from app.db.supabase_client import get_supabase

logger = get_logger(__name__)

RECENT_RUNS_LIMIT = 20


def _utc_now_iso() -> str:
    """Get current UTC time as ISO string."""
    return datetime.now(timezone.utc).isoformat()  # noqa: UP017


def _first_row(data: Any) -> dict[str, Any] | None:
    """Normalize an RPC payload (row, list of rows or null) to one row."""
    if isinstance(data, list):
        data = data[0] if data else None
    if not isinstance(data, dict) or not data.get("id"):
        return None
    return data


def claim_pipeline_run(project_id: UUID) -> dict[str, Any] | None:
    """
    Atomically create a run in `ingesting` if the project has no active run.

    The check and the insert happen inside one Postgres function, so two
    concurrent claims for the same project can never both succeed.

    Args:
        project_id: Project UUID

    Returns:
        The new run row, or None when another run is still active

    Raises:
        Exception: If database operation fails
    """
    supabase = get_supabase()

    try:
        response = supabase.rpc(
            "claim_pipeline_run",
            {"p_project_id": str(project_id)},
        ).execute()

        run = _first_row(response.data)
        if run:
            logger.info(
                f"Claimed pipeline run {run['id']}",
                extra={"project_id": str(project_id), "run_id": str(run["id"])},
            )
        return run

    except Exception as e:
        logger.error(f"Failed to claim pipeline run: {e}", extra={"project_id": str(project_id)})
        raise


def get_run(run_id: UUID) -> dict[str, Any] | None:
    """
    Get a pipeline run by ID.

    Args:
        run_id: Run UUID

    Returns:
        Run dict or None if not found
    """
    supabase = get_supabase()

    response = (
        supabase.table("pipeline_runs").select("*").eq("id", str(run_id)).limit(1).execute()
    )
    return response.data[0] if response.data else None


def get_latest_run(project_id: UUID) -> dict[str, Any] | None:
    """
    Get the most recently started run for a project.

    Args:
        project_id: Project UUID

    Returns:
        Run dict or None if the project has never run
    """
    supabase = get_supabase()

    response = (
        supabase.table("pipeline_runs")
        .select("*")
        .eq("project_id", str(project_id))
        .order("started_at", desc=True)
        .limit(1)
        .execute()
    )
    return response.data[0] if response.data else None


def list_runs_for_project(project_id: UUID, limit: int = RECENT_RUNS_LIMIT) -> list[dict[str, Any]]:
    """
    List a project's runs, newest first.

    Args:
        project_id: Project UUID
        limit: Max runs to return

    Returns:
        List of run dicts
    """
    supabase = get_supabase()

    response = (
        supabase.table("pipeline_runs")
        .select("*")
        .eq("project_id", str(project_id))
        .order("started_at", desc=True)
        .limit(limit)
        .execute()
    )
    return response.data or []


def list_all_runs_for_project(project_id: UUID) -> list[dict[str, Any]]:
    """Every run of a project, newest first."""
    supabase = get_supabase()

    response = (
        supabase.table("pipeline_runs")
        .select("*")
        .eq("project_id", str(project_id))
        .order("started_at", desc=True)
        .execute()
    )
    return response.data or []


def update_run(
    run_id: UUID,
    *,
    status: str | None = None,
    counters: RunCounters | None = None,
    error: str | None = None,
) -> None:
    """
    Persist a run's status, counters and error.

    `completed_at` is stamped whenever the new status is terminal. A status
    change never overwrites `cancelled`.

    Args:
        run_id: Run UUID
        status: New status, if changing
        counters: Current counters, if changing
        error: Error text for failed runs

    Raises:
        Exception: If database operation fails
    """
    supabase = get_supabase()

    patch: dict[str, Any] = {}
    if status is not None:
        patch["status"] = status
        if is_terminal_status(status):
            patch["completed_at"] = _utc_now_iso()
    if counters is not None:
        patch.update(counters.model_dump())
    if error is not None:
        patch["error"] = error
    if not patch:
        return

    try:
        query = supabase.table("pipeline_runs").update(patch).eq("id", str(run_id))
        if status is not None:
            query = query.neq("status", "cancelled")
        query.execute()
        if status is not None:
            logger.debug(f"Run {run_id} -> {status}", extra={"run_id": str(run_id)})

    except Exception as e:
        logger.error(f"Failed to update pipeline run: {e}", extra={"run_id": str(run_id)})
        raise


def cancel_active_runs(project_id: UUID) -> int:
    """
    Mark every non-terminal run of a project as cancelled.

    Args:
        project_id: Project UUID

    Returns:
        Number of runs cancelled

    Raises:
        Exception: If database operation fails
    """
    supabase = get_supabase()

    try:
        response = (
            supabase.table("pipeline_runs")
            .update({"status": "cancelled", "completed_at": _utc_now_iso()})
            .eq("project_id", str(project_id))
            .in_("status", list(ACTIVE_RUN_STATUSES))
            .execute()
        )
        cancelled = len(response.data or [])
        logger.info(
            f"Cancelled {cancelled} active run(s)",
            extra={"project_id": str(project_id)},
        )
        return cancelled

    except Exception as e:
        logger.error(f"Failed to cancel runs: {e}", extra={"project_id": str(project_id)})
        raise


def delete_runs(run_ids: list[str]) -> int:
    """
    Delete runs by ID.

    Args:
        run_ids: Run UUID strings

    Returns:
        Number of runs deleted
    """
    if not run_ids:
        return 0

    supabase = get_supabase()

    try:
        response = supabase.table("pipeline_runs").delete().in_("id", run_ids).execute()
        return len(response.data or [])

    except Exception as e:
        logger.error(f"Failed to delete runs: {e}")
        raise
