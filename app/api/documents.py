"""API endpoints for generated documents."""

from uuid import UUID

from fastapi import APIRouter, HTTPException

from app.core.logging import get_logger
from app.core.schemas_pipeline import DOCUMENT_TYPES
from app.db.documents import get_latest_document

logger = get_logger(__name__)

router = APIRouter()


@router.get("/projects/{project_id}/documents/{doc_type}/latest")
async def get_latest_project_document(project_id: UUID, doc_type: str) -> dict:
    """
    Get the newest ready version of a document.

    Args:
        project_id: Project UUID
        doc_type: brd, prd or traceability_matrix

    Returns:
        Document dict with version, status, content and generated_from

    Raises:
        HTTPException 400: If doc_type is unknown
        HTTPException 404: If no ready version exists
        HTTPException 500: If database error
    """
    if doc_type not in DOCUMENT_TYPES:
        raise HTTPException(status_code=400, detail=f"Unknown document type: {doc_type}")

    try:
        document = get_latest_document(project_id, doc_type)

        if not document:
            raise HTTPException(status_code=404, detail="Document not found")

        return document

    except HTTPException:
        raise
    except Exception as e:
        logger.exception(f"Failed to get {doc_type} for project {project_id}")
        raise HTTPException(status_code=500, detail="Failed to retrieve document") from e
