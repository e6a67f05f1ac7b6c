"""LLM chain for extracting decisions from the project corpus."""

from app.chains._generation import generate_json
from app.core.config import Settings, get_settings
from app.core.llm_providers import TextGenerator
from app.core.schemas_extraction import DecisionCandidate, items_from_payload, validate_items
from app.core.stage_result import StageOk, StageResult

SYSTEM_PROMPT = """You are a decision intelligence agent for a requirements intelligence system.
You find the architectural, functional, business, technical and process choices recorded in project communications.
Output ONLY valid JSON, no markdown, no explanation."""


# ruff: noqa: E501
def build_decisions_prompt(corpus: str) -> str:
    """Decision task over the concatenated corpus."""
    return f"""Extract ALL decisions from these communications.
A decision is an architectural, functional, business, technical or process choice.

Look for:
- Explicit decisions ("we decided", "agreed to", "approved")
- Implicit decisions (technology choices mentioned as settled, architectural patterns assumed)
- Process decisions (methodology, workflow, approval chains)
- Scope decisions (what's in/out, phase priorities)

Return JSON:
{{
  "decisions": [
    {{
      "title": "<clear decision title>",
      "description": "<2-3 sentence description of what was decided, the context, and the rationale>",
      "type": "architectural" | "functional" | "business" | "technical" | "process",
      "status": "proposed" | "approved" | "rejected" | "deferred",
      "made_by": "<who made or approved this decision>",
      "source_excerpt": "<exact quote that evidences this decision>",
      "confidence": <0.0-1.0>,
      "impacted_requirements": ["<brief description of affected requirement>"]
    }}
  ]
}}

IMPORTANT: The "type" field MUST be exactly one of: "architectural", "functional", "business", "technical", or "process". If it is a scope decision, classify it as "business".

Communications:
{corpus}"""


def extract_decisions(
    generator: TextGenerator,
    corpus: str,
    settings: Settings | None = None,
) -> StageResult:
    """
    Extract decisions from the corpus.

    Types outside the closed set are remapped to business or technical
    during validation.

    Returns:
        StageOk(list[DecisionCandidate]) or StageErr
    """
    settings = settings or get_settings()

    result = generate_json(
        generator,
        system_instruction=SYSTEM_PROMPT,
        user_prompt=build_decisions_prompt(corpus),
        max_tokens=settings.DECISIONS_MAX_TOKENS,
        stage="decisions",
    )
    if not isinstance(result, StageOk):
        return result

    return StageOk(
        validate_items(items_from_payload(result.value, "decisions"), DecisionCandidate, "decision")
    )
