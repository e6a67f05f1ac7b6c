"""LLM chain for detecting contradictions between a project's requirements."""

from typing import Any

from app.chains._generation import generate_json
from app.core.config import Settings, get_settings
from app.core.extraction_inputs import build_requirements_listing
from app.core.llm_providers import TextGenerator
from app.core.schemas_extraction import ConflictCandidate, items_from_payload, validate_items
from app.core.stage_result import StageOk, StageResult

# A conflict needs at least two contradicting requirements
MIN_CONFLICT_REQUIREMENTS = 2

SYSTEM_PROMPT = """You are a conflict detection agent. Identify contradictions between requirements.
Only report conflicts between the requirement IDs you are given.
Output ONLY valid JSON, no markdown, no explanation."""


def build_conflicts_prompt(requirements: list[dict[str, Any]]) -> str:
    """Conflict task over the listed requirements."""
    return f"""Analyze these requirements for conflicts, contradictions, or incompatibilities.

Requirements:
{build_requirements_listing(requirements)}

Return JSON:
{{
  "conflicts": [
    {{
      "title": "<conflict title>",
      "description": "<what conflicts>",
      "severity": "critical" | "major" | "minor",
      "requirement_ids": ["<REQ-xxx>", "<REQ-yyy>"],
      "explanation": "<why these conflict>"
    }}
  ]
}}

If no conflicts found, return {{ "conflicts": [] }}"""


def resolve_conflict_requirements(
    candidate: ConflictCandidate,
    requirements: list[dict[str, Any]],
) -> list[str]:
    """
    Ids of the persisted requirements a conflict names by label.

    Labels that match no persisted requirement are dropped.
    """
    named = set(candidate.requirement_ids)
    return [str(r["id"]) for r in requirements if r.get("requirement_id") in named]


def detect_conflicts(
    generator: TextGenerator,
    requirements: list[dict[str, Any]],
    settings: Settings | None = None,
) -> StageResult:
    """
    Ask for contradicting requirement sets.

    Args:
        generator: Text-generation backend for the run
        requirements: Every persisted requirement of the project
        settings: Optional settings override

    Returns:
        StageOk(list[ConflictCandidate]) in response order, or StageErr.
        Fewer than two requirements yields StageOk([]) without a call.
    """
    if len(requirements) < MIN_CONFLICT_REQUIREMENTS:
        return StageOk([])

    settings = settings or get_settings()

    result = generate_json(
        generator,
        system_instruction=SYSTEM_PROMPT,
        user_prompt=build_conflicts_prompt(requirements),
        max_tokens=settings.CONFLICTS_MAX_TOKENS,
        stage="conflicts",
    )
    if not isinstance(result, StageOk):
        return result

    return StageOk(
        validate_items(items_from_payload(result.value, "conflicts"), ConflictCandidate, "conflict")
    )
