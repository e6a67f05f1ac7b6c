"""LangGraph state machine for one extraction pipeline run.

Stages run strictly in order; each persists its entities before the next
stage reads them:

    ingest -> classify -> requirements -> stakeholders -> decisions
           -> timeline -> conflicts -> traceability -> documents

A stage extractor that returns StageErr stops the graph with the failure
recorded on the state. Before every stage the persisted run status is
re-read so a run cancelled from outside stops at the next stage boundary.
"""

import json
import logging
from dataclasses import dataclass, field
from typing import Any
from uuid import UUID

from langgraph.graph import END, StateGraph

from app.chains.classify_source import classify_source
from app.chains.detect_conflicts import detect_conflicts, resolve_conflict_requirements
from app.chains.extract_decisions import extract_decisions
from app.chains.extract_requirements import extract_requirements_from_source
from app.chains.extract_stakeholders import extract_stakeholders
from app.chains.extract_timeline import extract_timeline
from app.chains.generate_brd import generate_brd
from app.core.brd_inputs import build_brd_inputs
from app.core.config import get_settings
from app.core.entity_dedup import RequirementDedupGate
from app.core.exceptions import NoSourcesFound, RunAlreadyInProgress
from app.core.extraction_inputs import (
    build_source_corpus,
    find_source_for_excerpt,
    sources_mentioning,
)
from app.core.identifiers import (
    CONFLICT_PREFIX,
    DECISION_PREFIX,
    REQUIREMENT_PREFIX,
    LabelAllocator,
    batch_position_label,
)
from app.core.llm import get_text_generator
from app.core.llm_providers import TextGenerator
from app.core.logging import get_logger
from app.core.schemas_pipeline import PipelineRunResult, RunCounters, TraceLink
from app.core.stage_result import StageErr
from app.core.traceability import build_trace_links
from app.db.agent_logs import append_log
from app.db.conflicts import create_conflict, list_conflicts
from app.db.decisions import create_decision, list_decisions
from app.db.documents import store_document, supersede_documents
from app.db.pipeline_runs import claim_pipeline_run, get_latest_run, get_run, update_run
from app.db.projects import clear_extraction_data, get_project, update_project
from app.db.requirements import create_requirement, list_requirements
from app.db.sources import list_sources, update_source_status
from app.db.stakeholders import create_stakeholder, list_stakeholders
from app.db.timeline_events import create_timeline_event, list_timeline_events
from app.db.trace_links import create_trace_links, list_trace_links

logger = get_logger(__name__)

MAX_STEPS = 12

MENTIONED_IN_STRENGTH = 0.9
MENTIONED_IN_FALLBACK_STRENGTH = 0.5

# Project progress after each milestone
PROGRESS = {
    "ingesting": 5,
    "classifying": 15,
    "classified": 25,
    "requirements": 45,
    "stakeholders": 55,
    "decisions": 65,
    "timeline": 75,
    "conflicts": 85,
    "traceability": 90,
    "completed": 100,
}

_LOG_LEVELS = {
    "info": logging.INFO,
    "processing": logging.INFO,
    "success": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}


@dataclass
class ExtractionPipelineState:
    """State for the extraction pipeline graph."""

    # Input fields
    project_id: UUID
    run_id: UUID
    generator: TextGenerator
    provider: str = ""

    # Processing state
    step_count: int = 0
    sources: list[dict[str, Any]] = field(default_factory=list)
    corpus: str = ""
    counters: RunCounters = field(default_factory=RunCounters)
    trace_links_created: int = 0

    # Output
    document_id: str | None = None
    failure: StageErr | None = None
    cancelled: bool = False


def _check_max_steps(state: ExtractionPipelineState) -> ExtractionPipelineState:
    """Check and increment step count, raise if exceeded."""
    state.step_count += 1
    if state.step_count > MAX_STEPS:
        raise RuntimeError(f"Graph exceeded max steps ({MAX_STEPS})")
    return state


def run_log(
    project_id: UUID,
    run_id: UUID,
    agent: str,
    level: str,
    message: str,
    detail: str | None = None,
) -> None:
    """Write one event to the process log and to the run's persisted trail."""
    logger.log(
        _LOG_LEVELS.get(level, logging.INFO),
        message,
        extra={"run_id": str(run_id), "project_id": str(project_id), "agent": agent},
    )
    append_log(project_id, run_id, agent, level, message, detail)


def _log(
    state: ExtractionPipelineState,
    agent: str,
    level: str,
    message: str,
    detail: str | None = None,
) -> None:
    run_log(state.project_id, state.run_id, agent, level, message, detail)


def _is_cancelled(state: ExtractionPipelineState) -> bool:
    """True when the persisted run was cancelled from outside."""
    run = get_run(state.run_id)
    return bool(run) and run.get("status") == "cancelled"


def _enter_stage(
    state: ExtractionPipelineState,
    status: str,
    agent: str,
    message: str,
    progress: int | None = None,
) -> None:
    update_run(state.run_id, status=status, counters=state.counters)
    if progress is not None:
        update_project(state.project_id, progress=progress)
    _log(state, agent, "processing", message)


def _stopped(state: ExtractionPipelineState) -> dict[str, Any]:
    logger.info("Run cancelled, stopping", extra={"run_id": str(state.run_id)})
    return {"cancelled": True, "step_count": state.step_count}


def _failed(state: ExtractionPipelineState, failure: StageErr, agent: str) -> dict[str, Any]:
    _log(state, agent, "error", f"Stage failed ({failure.kind.value}): {failure.message}")
    return {"failure": failure, "step_count": state.step_count}


def _link(
    from_type: str,
    from_id: Any,
    to_type: str,
    to_id: Any,
    relationship: str,
    strength: float,
) -> TraceLink:
    return TraceLink(
        from_type=from_type,
        from_id=str(from_id),
        to_type=to_type,
        to_id=str(to_id),
        relationship=relationship,
        strength=strength,
    )


# =======================
# Stage nodes
# =======================


def ingest(state: ExtractionPipelineState) -> dict[str, Any]:
    """Load the project's sources and build the shared corpus."""
    state = _check_max_steps(state)
    if _is_cancelled(state):
        return _stopped(state)

    settings = get_settings()

    _log(state, "orchestrator", "info", "Pipeline started")
    _log(state, "orchestrator", "info", f"Provider: {state.provider} | Project: {state.project_id}")
    update_project(state.project_id, status="processing", progress=PROGRESS["ingesting"])

    sources = list_sources(state.project_id)
    _log(
        state,
        "ingestion_agent",
        "processing",
        f"Found {len(sources)} source(s) to process",
        json.dumps(
            [
                {
                    "name": s.get("name"),
                    "kind": s.get("kind"),
                    "words": len((s.get("content") or "").split()),
                }
                for s in sources
            ]
        ),
    )

    if not sources:
        _log(state, "orchestrator", "error", "No sources found. Upload communication data first.")
        raise NoSourcesFound(str(state.project_id))

    return {
        "sources": sources,
        "corpus": build_source_corpus(sources, settings.CORPUS_MAX_CHARS),
        "step_count": state.step_count,
    }


def classify(state: ExtractionPipelineState) -> dict[str, Any]:
    """Classify every source and record its relevance."""
    state = _check_max_steps(state)
    if _is_cancelled(state):
        return _stopped(state)

    _enter_stage(
        state,
        "classifying",
        "classification_agent",
        "Classifying source relevance...",
        progress=PROGRESS["classifying"],
    )

    for source in state.sources:
        update_source_status(source["id"], "classifying")

        result = classify_source(state.generator, source)
        if isinstance(result, StageErr):
            return _failed(state, result, "classification_agent")

        classification = result.value
        update_source_status(
            source["id"],
            "classified",
            relevance_score=classification.relevance,
            classification=classification.model_dump(),
        )
        _log(
            state,
            "classification_agent",
            "success",
            f'Classified "{source.get("name")}": relevance {classification.relevance * 100:.0f}% '
            f"| Topics: {', '.join(classification.key_topics)}",
            classification.model_dump_json(),
        )

    update_project(state.project_id, progress=PROGRESS["classified"])
    return {"step_count": state.step_count}


def extract_requirements(state: ExtractionPipelineState) -> dict[str, Any]:
    """Extract, deduplicate, label and persist requirements per source."""
    state = _check_max_steps(state)
    if _is_cancelled(state):
        return _stopped(state)

    settings = get_settings()
    _enter_stage(
        state,
        "extracting_requirements",
        "requirement_agent",
        "Extracting requirements from classified sources...",
    )

    existing = list_requirements(state.project_id)
    allocator = LabelAllocator(REQUIREMENT_PREFIX, existing)
    gate = RequirementDedupGate.from_requirements(existing, settings.TITLE_SIMILARITY_THRESHOLD)

    counters = state.counters.model_copy()
    links_created = state.trace_links_created

    for source in state.sources:
        update_source_status(source["id"], "extracting")

        result = extract_requirements_from_source(state.generator, source, settings)
        if isinstance(result, StageErr):
            return _failed(state, result, "requirement_agent")

        extraction = result.value
        if extraction.chunk_count > 1:
            _log(
                state,
                "requirement_agent",
                "info",
                f'Source "{source.get("name")}" is {len(source.get("content") or "") // 1000}K chars, '
                f"split into {extraction.chunk_count} chunks",
            )
        _log(
            state,
            "requirement_agent",
            "processing",
            f'Found {len(extraction.candidates)} unique requirement(s) in "{source.get("name")}"'
            + (
                f" ({extraction.raw_count} before dedup)"
                if extraction.raw_count != len(extraction.candidates)
                else ""
            ),
        )

        for candidate in extraction.candidates:
            decision = gate.check(candidate)
            if not decision.admitted:
                _log(
                    state,
                    "requirement_agent",
                    "info",
                    f'Skipped duplicate: "{candidate.title}" '
                    f'(similar to "{decision.matched_title}")',
                )
                continue

            label = allocator.next_label()
            requirement = create_requirement(
                state.project_id,
                requirement_id=label,
                title=candidate.title,
                description=candidate.description,
                category=candidate.category,
                priority=candidate.priority,
                confidence_score=candidate.confidence,
                source_id=source["id"],
                source_excerpt=candidate.source_excerpt,
                extraction_reasoning=candidate.reasoning,
                tags=candidate.tags,
            )
            create_trace_links(
                state.project_id,
                [
                    _link(
                        "source",
                        source["id"],
                        "requirement",
                        requirement["id"],
                        "extracted_from",
                        candidate.confidence,
                    )
                ],
            )
            links_created += 1
            counters.requirements_found += 1

            _log(
                state,
                "requirement_agent",
                "success",
                f'{label}: "{candidate.title}" [{candidate.category}] '
                f"confidence: {candidate.confidence * 100:.0f}%",
            )

        update_source_status(source["id"], "extracted")

    counters.sources_processed = len(state.sources)
    update_run(state.run_id, counters=counters)
    update_project(state.project_id, progress=PROGRESS["requirements"])

    return {
        "counters": counters,
        "trace_links_created": links_created,
        "step_count": state.step_count,
    }


def extract_stakeholders_stage(state: ExtractionPipelineState) -> dict[str, Any]:
    """Extract stakeholders over the corpus and link them to mentioning sources."""
    state = _check_max_steps(state)
    if _is_cancelled(state):
        return _stopped(state)

    _enter_stage(
        state,
        "extracting_stakeholders",
        "stakeholder_agent",
        "Identifying stakeholders across all sources...",
    )

    result = extract_stakeholders(state.generator, state.corpus)
    if isinstance(result, StageErr):
        return _failed(state, result, "stakeholder_agent")

    counters = state.counters.model_copy()
    links: list[TraceLink] = []

    for candidate in result.value:
        matches = sources_mentioning(candidate.name, state.sources)
        linked_sources = matches or state.sources
        strength = MENTIONED_IN_STRENGTH if matches else MENTIONED_IN_FALLBACK_STRENGTH

        stakeholder = create_stakeholder(
            state.project_id,
            name=candidate.name,
            role=candidate.role,
            department=candidate.department,
            influence=candidate.influence,
            sentiment=candidate.sentiment,
            source_ids=[s["id"] for s in linked_sources],
            mention_context=candidate.mention_context,
            concerns=candidate.concerns,
        )
        links.extend(
            _link("stakeholder", stakeholder["id"], "source", s["id"], "mentioned_in", strength)
            for s in linked_sources
        )
        counters.stakeholders_found += 1

        _log(
            state,
            "stakeholder_agent",
            "success",
            f"Identified: {candidate.name} ({candidate.role}) | {candidate.influence} "
            f"| sentiment: {candidate.sentiment}",
        )

    create_trace_links(state.project_id, links)
    update_run(state.run_id, counters=counters)
    update_project(state.project_id, progress=PROGRESS["stakeholders"])

    return {
        "counters": counters,
        "trace_links_created": state.trace_links_created + len(links),
        "step_count": state.step_count,
    }


def extract_decisions_stage(state: ExtractionPipelineState) -> dict[str, Any]:
    """Extract decisions, label them and link each to its source."""
    state = _check_max_steps(state)
    if _is_cancelled(state):
        return _stopped(state)

    _enter_stage(
        state,
        "extracting_decisions",
        "decision_agent",
        "Extracting decisions and approvals...",
    )

    result = extract_decisions(state.generator, state.corpus)
    if isinstance(result, StageErr):
        return _failed(state, result, "decision_agent")

    allocator = LabelAllocator(DECISION_PREFIX, list_decisions(state.project_id))
    counters = state.counters.model_copy()
    links: list[TraceLink] = []

    for candidate in result.value:
        source = find_source_for_excerpt(candidate.source_excerpt, state.sources) or state.sources[0]
        label = allocator.next_label()

        decision = create_decision(
            state.project_id,
            decision_id=label,
            title=candidate.title,
            description=candidate.description,
            decision_type=candidate.type,
            status=candidate.status,
            confidence_score=candidate.confidence,
            source_id=source["id"],
            source_excerpt=candidate.source_excerpt,
            made_by=candidate.made_by,
        )
        links.append(
            _link(
                "decision",
                decision["id"],
                "source",
                source["id"],
                "decided_in",
                candidate.confidence,
            )
        )
        counters.decisions_found += 1

        _log(
            state,
            "decision_agent",
            "success",
            f'{label}: "{candidate.title}" [{candidate.type}] | {candidate.status}',
        )

    create_trace_links(state.project_id, links)
    update_run(state.run_id, counters=counters)
    update_project(state.project_id, progress=PROGRESS["decisions"])

    return {
        "counters": counters,
        "trace_links_created": state.trace_links_created + len(links),
        "step_count": state.step_count,
    }


def extract_timeline_stage(state: ExtractionPipelineState) -> dict[str, Any]:
    """Extract timeline events and resolve their sources where possible."""
    state = _check_max_steps(state)
    if _is_cancelled(state):
        return _stopped(state)

    _enter_stage(
        state,
        "extracting_timeline",
        "timeline_agent",
        "Extracting timeline events and milestones...",
    )

    result = extract_timeline(state.generator, state.corpus)
    if isinstance(result, StageErr):
        return _failed(state, result, "timeline_agent")

    for candidate in result.value:
        source = find_source_for_excerpt(candidate.source_excerpt, state.sources)
        create_timeline_event(
            state.project_id,
            title=candidate.title,
            description=candidate.description,
            event_type=candidate.type,
            confidence_score=candidate.confidence,
            date=candidate.date,
            source_id=source["id"] if source else None,
        )
        _log(
            state,
            "timeline_agent",
            "success",
            f'{candidate.type}: "{candidate.title}" ({candidate.date or "no date"})',
        )

    _log(state, "timeline_agent", "success", f"Stored {len(result.value)} timeline event(s)")
    update_project(state.project_id, progress=PROGRESS["timeline"])
    return {"step_count": state.step_count}


def detect_conflicts_stage(state: ExtractionPipelineState) -> dict[str, Any]:
    """Detect contradictions among all of the project's requirements."""
    state = _check_max_steps(state)
    if _is_cancelled(state):
        return _stopped(state)

    settings = get_settings()
    _enter_stage(
        state,
        "detecting_conflicts",
        "conflict_agent",
        "Scanning for requirement conflicts...",
    )

    requirements = list_requirements(state.project_id)
    if len(requirements) < 2:
        _log(state, "conflict_agent", "info", "Not enough requirements for conflict analysis.")
        update_project(state.project_id, progress=PROGRESS["conflicts"])
        return {"step_count": state.step_count}

    result = detect_conflicts(state.generator, requirements, settings)
    if isinstance(result, StageErr):
        return _failed(state, result, "conflict_agent")

    allocator = None
    if settings.CONFLICT_ID_STRATEGY == "monotonic":
        allocator = LabelAllocator(CONFLICT_PREFIX, list_conflicts(state.project_id))

    counters = state.counters.model_copy()

    for position, candidate in enumerate(result.value):
        requirement_ids = resolve_conflict_requirements(candidate, requirements)
        if len(requirement_ids) < 2:
            _log(
                state,
                "conflict_agent",
                "warning",
                f'Discarded conflict "{candidate.title}": fewer than two known requirements '
                f"({', '.join(candidate.requirement_ids) or 'none'})",
            )
            continue

        label = (
            allocator.next_label() if allocator else batch_position_label(CONFLICT_PREFIX, position)
        )
        create_conflict(
            state.project_id,
            conflict_id=label,
            title=candidate.title,
            description=candidate.full_description,
            severity=candidate.severity,
            requirement_ids=requirement_ids,
        )
        counters.conflicts_found += 1

        _log(
            state,
            "conflict_agent",
            "warning",
            f'{candidate.severity.upper()}: "{candidate.title}" | '
            f"{' vs '.join(candidate.requirement_ids)}",
        )

    if not result.value:
        _log(state, "conflict_agent", "success", "No conflicts detected between requirements.")

    update_run(state.run_id, counters=counters)
    update_project(state.project_id, progress=PROGRESS["conflicts"])
    return {"counters": counters, "step_count": state.step_count}


def build_traceability(state: ExtractionPipelineState) -> dict[str, Any]:
    """Add heuristic links across the full accumulated entity set."""
    state = _check_max_steps(state)
    if _is_cancelled(state):
        return _stopped(state)

    _enter_stage(
        state,
        "building_traceability",
        "traceability_agent",
        "Building traceability graph...",
    )

    requirements = list_requirements(state.project_id)
    stakeholders = list_stakeholders(state.project_id)
    decisions = list_decisions(state.project_id)
    conflicts = list_conflicts(state.project_id)
    timeline_events = list_timeline_events(state.project_id)

    new_links = build_trace_links(
        sources=state.sources,
        requirements=requirements,
        stakeholders=stakeholders,
        decisions=decisions,
        conflicts=conflicts,
        timeline_events=timeline_events,
        existing_links=list_trace_links(state.project_id),
    )
    create_trace_links(state.project_id, new_links)

    _log(
        state,
        "traceability_agent",
        "success",
        f"Traceability graph built: {len(new_links)} links across {len(requirements)} requirements, "
        f"{len(stakeholders)} stakeholders, {len(decisions)} decisions, {len(conflicts)} conflicts, "
        f"{len(timeline_events)} timeline events",
    )
    update_project(state.project_id, progress=PROGRESS["traceability"])

    return {
        "trace_links_created": state.trace_links_created + len(new_links),
        "step_count": state.step_count,
    }


def generate_documents(state: ExtractionPipelineState) -> dict[str, Any]:
    """Synthesize and store a new BRD version."""
    state = _check_max_steps(state)
    if _is_cancelled(state):
        return _stopped(state)

    settings = get_settings()
    _enter_stage(
        state,
        "generating_documents",
        "document_agent",
        "Generating BRD from structured intelligence...",
    )

    inputs = build_brd_inputs(
        project=get_project(state.project_id),
        sources=state.sources,
        requirements=list_requirements(state.project_id),
        stakeholders=list_stakeholders(state.project_id),
        decisions=list_decisions(state.project_id),
        conflicts=list_conflicts(state.project_id),
        timeline_events=list_timeline_events(state.project_id),
        excerpt_max_chars=settings.BRD_EXCERPT_MAX_CHARS,
        snippet_max_chars=settings.BRD_SOURCE_SNIPPET_CHARS,
        context_max_chars=settings.BRD_SOURCE_CONTEXT_MAX_CHARS,
    )

    result = generate_brd(state.generator, inputs, settings)
    if isinstance(result, StageErr):
        return _failed(state, result, "document_agent")

    document = store_document(state.project_id, "brd", result.value, inputs.generated_from)
    _log(
        state,
        "document_agent",
        "success",
        f"BRD v{document.get('version', 1)} generated from structured intelligence",
    )

    return {"document_id": str(document["id"]), "step_count": state.step_count}


# =======================
# Graph
# =======================

STAGES = (
    ("ingest", ingest),
    ("classify", classify),
    ("extract_requirements", extract_requirements),
    ("extract_stakeholders", extract_stakeholders_stage),
    ("extract_decisions", extract_decisions_stage),
    ("extract_timeline", extract_timeline_stage),
    ("detect_conflicts", detect_conflicts_stage),
    ("build_traceability", build_traceability),
    ("generate_documents", generate_documents),
)


def _route_after_stage(state: ExtractionPipelineState) -> str:
    """Stop on a stage failure or cancellation, otherwise continue."""
    if state.failure is not None or state.cancelled:
        return "stop"
    return "continue"


def _build_graph() -> StateGraph:
    """Build the extraction pipeline graph."""
    graph = StateGraph(ExtractionPipelineState)

    for name, node in STAGES:
        graph.add_node(name, node)

    graph.set_entry_point(STAGES[0][0])
    for (name, _), (next_name, _) in zip(STAGES, STAGES[1:]):
        graph.add_conditional_edges(
            name,
            _route_after_stage,
            {"continue": next_name, "stop": END},
        )
    graph.add_edge(STAGES[-1][0], END)

    return graph


# Compile the graph once at module load
_compiled_graph = _build_graph().compile()


# =======================
# Run controller
# =======================


def _fail_run(
    project_id: UUID,
    run_id: UUID,
    message: str,
    counters: RunCounters | None = None,
) -> None:
    """Record a failed run and reset the project's visible status."""
    try:
        run_log(project_id, run_id, "orchestrator", "error", f"Pipeline failed: {message}")
        update_run(run_id, status="failed", counters=counters, error=message)
        update_project(project_id, status="draft", progress=0)
    except Exception:
        logger.exception(
            "Failed to record pipeline failure",
            extra={"run_id": str(run_id), "project_id": str(project_id)},
        )


def run_extraction_pipeline(
    project_id: UUID,
    regenerate: bool = False,
    preferred_provider: str | None = None,
) -> PipelineRunResult:
    """
    Run the extraction pipeline for a project until it reaches a terminal state.

    Args:
        project_id: Project UUID
        regenerate: Clear previously extracted entities before running
        preferred_provider: Provider to use when its key is configured

    Returns:
        PipelineRunResult with the terminal status and final counters.
        A run cancelled mid-way returns status "cancelled".

    Raises:
        RunAlreadyInProgress: If the project already has an active run
        NoSourcesFound: If the project has no sources
        GenerationServiceError: If no provider is configured or a generation call fails
        ResponseParseError: If a stage response could not be read as JSON
    """
    generator = get_text_generator(preferred_provider)

    run = claim_pipeline_run(project_id)
    if run is None:
        latest = get_latest_run(project_id)
        status = latest.get("status") if latest else None
        logger.warning(
            f"Pipeline already running (status: {status})",
            extra={"project_id": str(project_id)},
        )
        raise RunAlreadyInProgress(str(project_id), status)

    run_id = UUID(str(run["id"]))

    initial_state = ExtractionPipelineState(
        project_id=project_id,
        run_id=run_id,
        generator=generator,
        provider=getattr(generator, "provider", ""),
    )

    logger.info(
        f"Starting extraction pipeline for project {project_id}",
        extra={"run_id": str(run_id), "project_id": str(project_id)},
    )

    try:
        if regenerate:
            clear_extraction_data(project_id)
            supersede_documents(project_id)
            run_log(
                project_id,
                run_id,
                "orchestrator",
                "info",
                "Regenerating: previous extraction data cleared",
            )

        final_state = _compiled_graph.invoke(initial_state)

    except Exception as e:
        _fail_run(project_id, run_id, str(e))
        raise

    counters: RunCounters = final_state["counters"]
    result_fields = {
        "run_id": run_id,
        "project_id": project_id,
        "counters": counters,
        "trace_links_created": final_state["trace_links_created"],
        "document_id": final_state.get("document_id"),
    }

    failure: StageErr | None = final_state.get("failure")
    if failure is not None:
        _fail_run(project_id, run_id, failure.message, counters)
        raise failure.error

    if final_state.get("cancelled") or _is_cancelled(initial_state):
        update_project(project_id, status="draft", progress=0)
        run_log(project_id, run_id, "orchestrator", "warning", "Pipeline cancelled")
        return PipelineRunResult(status="cancelled", **result_fields)

    update_run(run_id, status="completed", counters=counters)
    update_project(project_id, status="active", progress=PROGRESS["completed"])
    run_log(
        project_id,
        run_id,
        "orchestrator",
        "success",
        f"Pipeline complete: {counters.requirements_found} requirements, "
        f"{counters.stakeholders_found} stakeholders, {counters.decisions_found} decisions, "
        f"{counters.conflicts_found} conflicts",
    )

    return PipelineRunResult(status="completed", **result_fields)
