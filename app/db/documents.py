"""Database operations for generated documents (append-only versions)."""

from typing import Any
from uuid import UUID

from app.core.logging import get_logger
from app.db.supabase_client import get_supabase

logger = get_logger(__name__)


def list_documents(project_id: UUID, doc_type: str | None = None) -> list[dict[str, Any]]:
    """
    List stored document versions, newest first.

    Args:
        project_id: Project UUID
        doc_type: Only this type (brd, prd, traceability_matrix) when given

    Returns:
        List of document dicts
    """
    supabase = get_supabase()

    query = supabase.table("documents").select("*").eq("project_id", str(project_id))
    if doc_type is not None:
        query = query.eq("type", doc_type)

    response = query.order("version", desc=True).execute()
    return response.data or []


def get_latest_document(project_id: UUID, doc_type: str) -> dict[str, Any] | None:
    """Newest `ready` version of a document type, or None."""
    supabase = get_supabase()

    response = (
        supabase.table("documents")
        .select("*")
        .eq("project_id", str(project_id))
        .eq("type", doc_type)
        .eq("status", "ready")
        .order("version", desc=True)
        .limit(1)
        .execute()
    )
    return response.data[0] if response.data else None


def supersede_documents(
    project_id: UUID,
    doc_type: str | None = None,
    except_id: str | None = None,
) -> int:
    """
    Mark `ready` documents as superseded.

    Args:
        project_id: Project UUID
        doc_type: Only this type when given, otherwise every type
        except_id: Document left untouched, usually the version just stored

    Returns:
        Number of documents superseded
    """
    supabase = get_supabase()

    query = (
        supabase.table("documents")
        .update({"status": "superseded"})
        .eq("project_id", str(project_id))
        .eq("status", "ready")
    )
    if doc_type is not None:
        query = query.eq("type", doc_type)
    if except_id is not None:
        query = query.neq("id", except_id)

    try:
        response = query.execute()
        return len(response.data or [])

    except Exception as e:
        logger.error(f"Failed to supersede documents: {e}", extra={"project_id": str(project_id)})
        raise


def store_document(
    project_id: UUID,
    doc_type: str,
    content: dict[str, Any],
    generated_from: dict[str, int] | None = None,
) -> dict[str, Any]:
    """
    Store a new document version.

    The version is one more than the number of stored versions of the
    type. Earlier ready versions are superseded only once the new one is
    stored, so a failed insert leaves the previous version ready. Nothing is
    overwritten.

    Args:
        project_id: Project UUID
        doc_type: brd, prd or traceability_matrix
        content: Document body keyed by section
        generated_from: Entity counts the document was built from

    Returns:
        Created document dict

    Raises:
        Exception: If database operation fails
    """
    version = len(list_documents(project_id, doc_type)) + 1

    supabase = get_supabase()

    try:
        response = (
            supabase.table("documents")
            .insert(
                {
                    "project_id": str(project_id),
                    "type": doc_type,
                    "version": version,
                    "status": "ready",
                    "content": content,
                    "generated_from": generated_from or {},
                }
            )
            .execute()
        )

        if not response.data:
            raise ValueError("No data returned from store_document")

        document = response.data[0]
        supersede_documents(project_id, doc_type, except_id=str(document["id"]))

        logger.info(
            f"Stored {doc_type} v{version}",
            extra={"project_id": str(project_id)},
        )
        return document

    except Exception as e:
        logger.error(f"Failed to store {doc_type}: {e}", extra={"project_id": str(project_id)})
        raise
