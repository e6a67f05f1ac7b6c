"""API router for v1 endpoints."""

from fastapi import APIRouter

from app.api import documents, pipeline

router = APIRouter()

# Pipeline run, cancellation, logs and diagnostics routes
router.include_router(pipeline.router, tags=["pipeline"])

# Generated document routes
router.include_router(documents.router, tags=["documents"])
