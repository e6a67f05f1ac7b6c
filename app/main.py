"""HTTP entry point for the extraction pipeline service."""

from fastapi import FastAPI
from fastapi.responses import JSONResponse

from app.api import router as api_router
from app.core.config import get_settings

SERVICE_NAME = "tracelayer-extraction-engine"

app = FastAPI(
    title="TraceLayer Extraction Engine",
    description=(
        "Runs the per-project extraction pipeline over ingested sources: "
        "classification, requirements, stakeholders, decisions, timeline, "
        "conflicts and BRD generation, with run status, logs and cancellation."
    ),
    version="0.1.0",
)


@app.get("/health")
async def health_check() -> JSONResponse:
    """Health check with the service name and environment."""
    return JSONResponse(
        content={"status": "ok", "service": SERVICE_NAME, "env": get_settings().ENGINE_ENV},
        status_code=200,
    )


# Pipeline, run-status and document routes
app.include_router(api_router, prefix="/v1", tags=["v1"])
