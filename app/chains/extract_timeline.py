"""LLM chain for extracting timeline events from the project corpus."""

from app.chains._generation import generate_json
from app.core.config import Settings, get_settings
from app.core.llm_providers import TextGenerator
from app.core.schemas_extraction import TimelineCandidate, items_from_payload, validate_items
from app.core.stage_result import StageOk, StageResult

SYSTEM_PROMPT = """You are a timeline intelligence agent. Extract dates, milestones, and deadlines.
Output ONLY valid JSON, no markdown, no explanation."""


# ruff: noqa: E501
def build_timeline_prompt(corpus: str) -> str:
    """Timeline task over the concatenated corpus."""
    return f"""Extract ALL timeline events, milestones, deadlines, and date-related items.

Return JSON:
{{
  "events": [
    {{
      "title": "<event title>",
      "description": "<what happens>",
      "date": "<date if mentioned, or null>",
      "type": "milestone" | "deadline" | "decision" | "approval" | "dependency",
      "confidence": <0.0-1.0>,
      "source_excerpt": "<exact quote that mentions this event>"
    }}
  ]
}}

Communications:
{corpus}"""


def extract_timeline(
    generator: TextGenerator,
    corpus: str,
    settings: Settings | None = None,
) -> StageResult:
    """
    Extract timeline events from the corpus.

    Returns:
        StageOk(list[TimelineCandidate]) or StageErr
    """
    settings = settings or get_settings()

    result = generate_json(
        generator,
        system_instruction=SYSTEM_PROMPT,
        user_prompt=build_timeline_prompt(corpus),
        max_tokens=settings.TIMELINE_MAX_TOKENS,
        stage="timeline",
    )
    if not isinstance(result, StageOk):
        return result

    return StageOk(
        validate_items(items_from_payload(result.value, "events"), TimelineCandidate, "timeline")
    )
