"""Pydantic schemas for pipeline entities, runs and API payloads."""

from typing import Any, Literal
from uuid import UUID

from pydantic import BaseModel, Field

# =======================
# Closed value sets
# =======================

SOURCE_KINDS = ("email", "meeting_transcript", "chat_log", "document", "uploaded_file")
SOURCE_STATUSES = ("pending", "classifying", "classified", "extracting", "extracted")

REQUIREMENT_CATEGORIES = (
    "functional",
    "non_functional",
    "business",
    "technical",
    "security",
    "performance",
    "compliance",
    "integration",
)
REQUIREMENT_PRIORITIES = ("critical", "high", "medium", "low")

INFLUENCE_LEVELS = ("decision_maker", "influencer", "contributor", "observer")
SENTIMENTS = ("supportive", "neutral", "resistant", "unknown")

DECISION_TYPES = ("architectural", "functional", "business", "technical", "process")
DECISION_STATUSES = ("proposed", "approved", "rejected", "deferred")

TIMELINE_TYPES = ("milestone", "deadline", "decision", "approval", "dependency")

CONFLICT_SEVERITIES = ("critical", "major", "minor")

TRACE_NODE_TYPES = ("source", "requirement", "stakeholder", "decision", "conflict", "timeline")

DOCUMENT_TYPES = ("brd", "prd", "traceability_matrix")

# Run state machine, in order. failed/cancelled are reachable from any active state.
ACTIVE_RUN_STATUSES = (
    "queued",
    "ingesting",
    "classifying",
    "extracting_requirements",
    "extracting_stakeholders",
    "extracting_decisions",
    "extracting_timeline",
    "detecting_conflicts",
    "building_traceability",
    "generating_documents",
)
TERMINAL_RUN_STATUSES = ("completed", "failed", "cancelled")

RunStatus = Literal[
    "queued",
    "ingesting",
    "classifying",
    "extracting_requirements",
    "extracting_stakeholders",
    "extracting_decisions",
    "extracting_timeline",
    "detecting_conflicts",
    "building_traceability",
    "generating_documents",
    "completed",
    "failed",
    "cancelled",
]

AgentName = Literal[
    "orchestrator",
    "ingestion_agent",
    "classification_agent",
    "requirement_agent",
    "stakeholder_agent",
    "decision_agent",
    "timeline_agent",
    "conflict_agent",
    "traceability_agent",
    "document_agent",
]

LogLevel = Literal["info", "processing", "success", "warning", "error"]


def is_terminal_status(status: str | None) -> bool:
    """True for completed/failed/cancelled."""
    return status in TERMINAL_RUN_STATUSES


class RunCounters(BaseModel):
    """Per-run counters persisted on the run record."""

    sources_processed: int = 0
    requirements_found: int = 0
    stakeholders_found: int = 0
    decisions_found: int = 0
    conflicts_found: int = 0


class TraceLink(BaseModel):
    """Directed, typed edge between two entities."""

    from_type: Literal["source", "requirement", "stakeholder", "decision", "conflict", "timeline"]
    from_id: str
    to_type: Literal["source", "requirement", "stakeholder", "decision", "conflict", "timeline"]
    to_id: str
    relationship: str
    strength: float = Field(..., ge=0.0, le=1.0)


# =======================
# API request/response models
# =======================


class RunPipelineRequest(BaseModel):
    """Request body for triggering an extraction run."""

    regenerate: bool = Field(
        default=False, description="Clear previously extracted entities before the run"
    )
    preferred_provider: Literal["openai", "anthropic", "gemini"] | None = Field(
        default=None, description="Provider to use when its key is configured"
    )


class PipelineRunResult(BaseModel):
    """Outcome of a run once it reaches a terminal state."""

    run_id: UUID = Field(..., description="Pipeline run UUID")
    project_id: UUID = Field(..., description="Project UUID")
    status: RunStatus = Field(..., description="Terminal status of the run")
    counters: RunCounters = Field(default_factory=RunCounters)
    trace_links_created: int = Field(default=0, description="Links added during the run")
    document_id: str | None = Field(default=None, description="Generated BRD document id")


class CancelPipelineResponse(BaseModel):
    """Response body for cancelling active runs."""

    success: bool = True
    cancelled_count: int = 0


class ClearRunHistoryResponse(BaseModel):
    """Response body for pruning run history."""

    deleted: int = 0


class PipelineDiagnostics(BaseModel):
    """Health snapshot of a project's pipeline."""

    project: dict[str, Any] | None = None
    sources: dict[str, Any] = Field(default_factory=dict)
    extraction: dict[str, int] = Field(default_factory=dict)
    quality: dict[str, Any] = Field(default_factory=dict)
    runs: dict[str, Any] = Field(default_factory=dict)
    errors: dict[str, Any] = Field(default_factory=dict)
