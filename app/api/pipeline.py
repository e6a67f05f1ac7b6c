"""API endpoints for triggering and observing extraction pipeline runs."""

from uuid import UUID

from fastapi import APIRouter, HTTPException, Query

from app.core.exceptions import (
    GenerationServiceError,
    NoSourcesFound,
    ResponseParseError,
    RunAlreadyInProgress,
)
from app.core.logging import get_logger
from app.core.schemas_pipeline import (
    CancelPipelineResponse,
    ClearRunHistoryResponse,
    PipelineDiagnostics,
    PipelineRunResult,
    RunPipelineRequest,
)
from app.db.agent_logs import list_logs_for_run, list_recent_log_entries
from app.db.pipeline_runs import get_latest_run, list_runs_for_project
from app.graphs.extraction_pipeline_graph import run_extraction_pipeline
from app.services.pipeline_status import (
    cancel_pipeline,
    clear_run_history,
    get_pipeline_diagnostics,
)

logger = get_logger(__name__)

router = APIRouter()


@router.post("/projects/{project_id}/pipeline/run", response_model=PipelineRunResult)
def run_pipeline(project_id: UUID, request: RunPipelineRequest | None = None) -> PipelineRunResult:
    """
    Run the extraction pipeline and wait for it to reach a terminal state.

    Declared sync so the long-running run executes in the threadpool and
    cancel/status requests are still served meanwhile.

    Args:
        project_id: Project UUID
        request: Optional regenerate flag and preferred provider

    Returns:
        PipelineRunResult with the terminal status and counters

    Raises:
        HTTPException 409: If a run is already in progress
        HTTPException 422: If the project has no sources
        HTTPException 502: If text generation failed or returned unreadable output
        HTTPException 500: On any other failure
    """
    request = request or RunPipelineRequest()

    try:
        return run_extraction_pipeline(
            project_id,
            regenerate=request.regenerate,
            preferred_provider=request.preferred_provider,
        )

    except RunAlreadyInProgress as e:
        raise HTTPException(status_code=409, detail=str(e)) from e
    except NoSourcesFound as e:
        raise HTTPException(status_code=422, detail=str(e)) from e
    except (GenerationServiceError, ResponseParseError) as e:
        raise HTTPException(status_code=502, detail=str(e)) from e
    except Exception as e:
        logger.exception(f"Pipeline run failed for project {project_id}")
        raise HTTPException(status_code=500, detail="Pipeline run failed") from e


@router.post("/projects/{project_id}/pipeline/cancel", response_model=CancelPipelineResponse)
async def cancel_project_pipeline(project_id: UUID) -> CancelPipelineResponse:
    """
    Cancel the project's active runs.

    Raises:
        HTTPException 500: If database error
    """
    try:
        return cancel_pipeline(project_id)

    except Exception as e:
        logger.exception(f"Failed to cancel pipeline for project {project_id}")
        raise HTTPException(status_code=500, detail="Failed to cancel pipeline") from e


@router.get("/projects/{project_id}/pipeline/runs/latest")
async def get_latest_pipeline_run(project_id: UUID) -> dict:
    """
    Get the project's most recent run.

    Raises:
        HTTPException 404: If the project has never run
        HTTPException 500: If database error
    """
    try:
        run = get_latest_run(project_id)

        if not run:
            raise HTTPException(status_code=404, detail="No pipeline runs found")

        return run

    except HTTPException:
        raise
    except Exception as e:
        logger.exception(f"Failed to get latest run for project {project_id}")
        raise HTTPException(status_code=500, detail="Failed to retrieve pipeline run") from e


@router.get("/projects/{project_id}/pipeline/runs")
async def list_pipeline_runs(
    project_id: UUID,
    limit: int = Query(20, description="Maximum number of runs to return", ge=1, le=100),
) -> dict:
    """List the project's runs, newest first."""
    try:
        runs = list_runs_for_project(project_id, limit=limit)
        return {"runs": runs, "count": len(runs)}

    except Exception as e:
        logger.exception(f"Failed to list runs for project {project_id}")
        raise HTTPException(status_code=500, detail="Failed to retrieve pipeline runs") from e


@router.delete("/projects/{project_id}/pipeline/runs", response_model=ClearRunHistoryResponse)
async def delete_pipeline_run_history(
    project_id: UUID,
    keep_latest: int = Query(1, description="Number of newest runs to keep", ge=0),
) -> ClearRunHistoryResponse:
    """Delete older runs and their log entries."""
    try:
        return clear_run_history(project_id, keep_latest=keep_latest)

    except Exception as e:
        logger.exception(f"Failed to clear run history for project {project_id}")
        raise HTTPException(status_code=500, detail="Failed to clear run history") from e


@router.get("/projects/{project_id}/pipeline/logs")
async def list_pipeline_logs(
    project_id: UUID,
    limit: int = Query(200, description="Maximum number of entries to return", ge=1, le=1000),
) -> dict:
    """List the project's most recent run log entries, newest first."""
    try:
        logs = list_recent_log_entries(project_id, limit=limit)
        return {"logs": logs, "count": len(logs)}

    except Exception as e:
        logger.exception(f"Failed to list logs for project {project_id}")
        raise HTTPException(status_code=500, detail="Failed to retrieve pipeline logs") from e


@router.get("/projects/{project_id}/pipeline/diagnostics", response_model=PipelineDiagnostics)
async def get_project_pipeline_diagnostics(project_id: UUID) -> PipelineDiagnostics:
    """Pipeline health snapshot for the project."""
    try:
        return get_pipeline_diagnostics(project_id)

    except Exception as e:
        logger.exception(f"Failed to compute diagnostics for project {project_id}")
        raise HTTPException(status_code=500, detail="Failed to compute diagnostics") from e


@router.get("/pipeline/runs/{run_id}/logs")
async def list_run_logs(run_id: UUID) -> dict:
    """List one run's log entries in write order."""
    try:
        logs = list_logs_for_run(run_id)
        return {"logs": logs, "count": len(logs)}

    except Exception as e:
        logger.exception(f"Failed to list logs for run {run_id}")
        raise HTTPException(status_code=500, detail="Failed to retrieve run logs") from e
