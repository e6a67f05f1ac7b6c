"""LLM chain for extracting requirements from one source.

Oversized sources are split into overlapping windows, each window is
extracted independently, and candidates repeated across windows are
collapsed before the caller runs the project-wide dedup gate.
"""

from dataclasses import dataclass, field
from typing import Any

from app.chains._generation import generate_json
from app.core.chunking import chunk_windows
from app.core.config import Settings, get_settings
from app.core.entity_dedup import dedupe_chunk_requirements
from app.core.llm_providers import TextGenerator
from app.core.logging import get_logger
from app.core.schemas_extraction import RequirementCandidate, items_from_payload, validate_items
from app.core.stage_result import StageOk, StageResult

logger = get_logger(__name__)

# ruff: noqa: E501
SYSTEM_PROMPT = """You are a precision requirements extraction agent.
You extract requirements only from what the communication actually says, quote your evidence verbatim and never invent requirements.
Output ONLY valid JSON, no markdown, no explanation."""

EXTRACTION_CONTRACT = """Extract ALL requirements from this communication{chunk_label}. Be thorough: capture every system capability, constraint, behavior, quality attribute, business rule, integration need, performance expectation, security requirement and compliance need mentioned.

Look for:
- Explicit requirements ("must", "shall", "need")
- Implicit requirements (features mentioned casually, assumptions about system behavior)
- Non-functional requirements (performance, security, scalability mentions)
- Business rules and constraints
- Integration and dependency requirements
- Data requirements and formats

For each requirement, write a description of 2-3 sentences explaining what it means, why it matters and how it should work.

Return JSON:
{{
  "requirements": [
    {{
      "title": "<concise but descriptive requirement title>",
      "description": "<2-3 sentence description>",
      "category": "functional" | "non_functional" | "business" | "technical" | "security" | "performance" | "compliance" | "integration",
      "priority": "critical" | "high" | "medium" | "low",
      "confidence": <0.0-1.0>,
      "source_excerpt": "<exact quote from the source that supports this requirement>",
      "reasoning": "<why this was extracted and how the priority was chosen>",
      "tags": ["<tag1>", "<tag2>"]
    }}
  ]
}}"""


@dataclass
class SourceRequirements:
    """Requirement candidates extracted from every window of one source."""

    candidates: list[RequirementCandidate] = field(default_factory=list)
    chunk_count: int = 1
    raw_count: int = 0


def chunk_label(chunk_index: int, chunk_count: int) -> str:
    """` (chunk 2/3)` for multi-window sources, empty otherwise."""
    if chunk_count <= 1:
        return ""
    return f" (chunk {chunk_index + 1}/{chunk_count})"


def build_requirements_prompt(
    source: dict[str, Any],
    window: str,
    chunk_index: int = 0,
    chunk_count: int = 1,
) -> str:
    """Requirement extraction task for one window of a source."""
    label = chunk_label(chunk_index, chunk_count)
    return (
        EXTRACTION_CONTRACT.format(chunk_label=label)
        + f"\n\nSource \"{source.get('name', 'unnamed')}\" (type: {source.get('kind', 'document')}){label}:\n"
        + window
    )


def extract_requirements_from_chunk(
    generator: TextGenerator,
    source: dict[str, Any],
    window: str,
    *,
    chunk_index: int = 0,
    chunk_count: int = 1,
    settings: Settings | None = None,
) -> StageResult:
    """
    Extract requirement candidates from one window.

    Returns:
        StageOk(list[RequirementCandidate]) or StageErr
    """
    settings = settings or get_settings()

    result = generate_json(
        generator,
        system_instruction=SYSTEM_PROMPT,
        user_prompt=build_requirements_prompt(source, window, chunk_index, chunk_count),
        max_tokens=settings.REQUIREMENTS_MAX_TOKENS,
        stage="requirements",
    )
    if not isinstance(result, StageOk):
        return result

    raw_items = items_from_payload(result.value, "requirements")
    return StageOk(validate_items(raw_items, RequirementCandidate, "requirement"))


def extract_requirements_from_source(
    generator: TextGenerator,
    source: dict[str, Any],
    settings: Settings | None = None,
) -> StageResult:
    """
    Extract requirement candidates from every window of a source.

    Windows are processed in order; the first failing window fails the
    whole source. Candidates with identical normalized titles across
    windows are collapsed, keeping the first.

    Args:
        generator: Text-generation backend for the run
        source: Source dict with name, kind and content
        settings: Optional settings override

    Returns:
        StageOk(SourceRequirements) or StageErr
    """
    settings = settings or get_settings()
    windows = chunk_windows(
        source.get("content") or "",
        settings.CHUNK_MAX_CHARS,
        settings.CHUNK_OVERLAP_CHARS,
    )

    collected: list[RequirementCandidate] = []
    for index, window in enumerate(windows):
        result = extract_requirements_from_chunk(
            generator,
            source,
            window,
            chunk_index=index,
            chunk_count=len(windows),
            settings=settings,
        )
        if not isinstance(result, StageOk):
            return result
        logger.debug(
            f"Window {index + 1}/{len(windows)} of '{source.get('name')}': "
            f"{len(result.value)} requirement(s)"
        )
        collected.extend(result.value)

    return StageOk(
        SourceRequirements(
            candidates=dedupe_chunk_requirements(collected),
            chunk_count=len(windows),
            raw_count=len(collected),
        )
    )
