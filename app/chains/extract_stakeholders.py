"""LLM chain for extracting stakeholders from the project corpus.

Identifies people, teams and external parties who propose, approve,
influence or are affected by requirements, across every source at once.
"""

from app.chains._generation import generate_json
from app.core.config import Settings, get_settings
from app.core.llm_providers import TextGenerator
from app.core.logging import get_logger
from app.core.schemas_extraction import StakeholderCandidate, items_from_payload, validate_items
from app.core.stage_result import StageOk, StageResult

logger = get_logger(__name__)


SYSTEM_PROMPT = """You are a stakeholder intelligence agent for a requirements intelligence system.
You identify who is involved in a project from their business communications and describe their involvement using only what the communications say.
Output ONLY valid JSON, no markdown, no explanation."""


# ruff: noqa: E501
def build_stakeholders_prompt(corpus: str) -> str:
    """Stakeholder task over the concatenated corpus."""
    return f"""Identify ALL stakeholders mentioned across these communications.
A stakeholder is anyone who proposes, approves, influences, or is affected by requirements.

Look for:
- Named individuals (who said what)
- Referenced teams, departments, or roles
- External parties (clients, vendors, regulators)
- Implied decision-makers ("management approved", "the board decided")

Return JSON:
{{
  "stakeholders": [
    {{
      "name": "<full name or role if name unknown>",
      "role": "<job title or role description>",
      "department": "<department if known>",
      "influence": "decision_maker" | "influencer" | "contributor" | "observer",
      "sentiment": "supportive" | "neutral" | "resistant" | "unknown",
      "mention_context": "<context of their involvement, what they said, and their stance>",
      "concerns": ["<specific concern or priority this stakeholder has>"]
    }}
  ]
}}

Communications:
{corpus}"""


def extract_stakeholders(
    generator: TextGenerator,
    corpus: str,
    settings: Settings | None = None,
) -> StageResult:
    """
    Extract stakeholders from the corpus.

    Args:
        generator: Text-generation backend for the run
        corpus: Concatenated, size-capped source text
        settings: Optional settings override

    Returns:
        StageOk(list[StakeholderCandidate]) or StageErr
    """
    settings = settings or get_settings()

    result = generate_json(
        generator,
        system_instruction=SYSTEM_PROMPT,
        user_prompt=build_stakeholders_prompt(corpus),
        max_tokens=settings.STAKEHOLDERS_MAX_TOKENS,
        stage="stakeholders",
    )
    if not isinstance(result, StageOk):
        return result

    stakeholders = validate_items(
        items_from_payload(result.value, "stakeholders"),
        StakeholderCandidate,
        "stakeholder",
    )
    logger.info(f"Extracted {len(stakeholders)} stakeholder(s)")
    return StageOk(stakeholders)
