"""Run status surface: cancellation, history pruning and diagnostics."""

from uuid import UUID

from app.core.logging import get_logger
from app.core.pipeline_diagnostics import summarize_pipeline_health
from app.core.schemas_pipeline import (
    CancelPipelineResponse,
    ClearRunHistoryResponse,
    PipelineDiagnostics,
    is_terminal_status,
)
from app.db.agent_logs import append_log, delete_logs_for_runs, list_logs_for_run
from app.db.conflicts import list_conflicts
from app.db.decisions import list_decisions
from app.db.documents import list_documents
from app.db.pipeline_runs import (
    cancel_active_runs,
    delete_runs,
    list_all_runs_for_project,
    list_runs_for_project,
)
from app.db.projects import get_project, update_project
from app.db.requirements import list_requirements
from app.db.sources import list_sources
from app.db.stakeholders import list_stakeholders
from app.db.timeline_events import list_timeline_events

logger = get_logger(__name__)


def cancel_pipeline(project_id: UUID) -> CancelPipelineResponse:
    """
    Cancel every active run of a project.

    The running graph notices the cancelled status at its next stage
    boundary and stops; entities already written are kept. The project's
    visible status is reset to draft.

    Args:
        project_id: Project UUID

    Returns:
        CancelPipelineResponse with the number of runs cancelled
    """
    active = [
        r for r in list_runs_for_project(project_id) if not is_terminal_status(r.get("status"))
    ]
    cancelled = cancel_active_runs(project_id)
    update_project(project_id, status="draft", progress=0)

    if cancelled:
        for run in active:
            append_log(project_id, run["id"], "orchestrator", "warning", "Cancellation requested")

    logger.info(
        f"Cancelled {cancelled} run(s)",
        extra={"project_id": str(project_id)},
    )
    return CancelPipelineResponse(success=True, cancelled_count=cancelled)


def clear_run_history(project_id: UUID, keep_latest: int = 1) -> ClearRunHistoryResponse:
    """
    Delete all but the newest finished runs of a project, with their log entries.

    Active runs are never deleted.
    Args:
        project_id: Project UUID
        keep_latest: Number of newest finished runs to keep

    Returns:
        ClearRunHistoryResponse with the number of runs deleted
    """
    runs = [r for r in list_all_runs_for_project(project_id) if is_terminal_status(r.get("status"))]
    stale_ids = [str(r["id"]) for r in runs[max(keep_latest, 0) :]]
    if not stale_ids:
        return ClearRunHistoryResponse(deleted=0)

    delete_logs_for_runs(stale_ids)
    deleted = delete_runs(stale_ids)

    logger.info(
        f"Deleted {deleted} old run(s)",
        extra={"project_id": str(project_id)},
    )
    return ClearRunHistoryResponse(deleted=deleted)


def get_pipeline_diagnostics(project_id: UUID) -> PipelineDiagnostics:
    """
    Snapshot of source health, entity counts, quality and recent runs.

    Args:
        project_id: Project UUID

    Returns:
        PipelineDiagnostics
    """
    runs = list_runs_for_project(project_id)
    latest_run_logs = list_logs_for_run(runs[0]["id"]) if runs else []

    return summarize_pipeline_health(
        project=get_project(project_id),
        sources=list_sources(project_id),
        requirements=list_requirements(project_id),
        stakeholders=list_stakeholders(project_id),
        decisions=list_decisions(project_id),
        conflicts=list_conflicts(project_id),
        timeline_events=list_timeline_events(project_id),
        documents=list_documents(project_id),
        runs=runs,
        latest_run_logs=latest_run_logs,
    )
