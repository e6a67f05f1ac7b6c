"""LLM chain for classifying a source's relevance to the project."""

from typing import Any

from app.chains._generation import generate_json
from app.core.config import Settings, get_settings
from app.core.llm_providers import TextGenerator
from app.core.schemas_extraction import SourceClassification
from app.core.stage_result import StageOk, StageResult

# ruff: noqa: E501
SYSTEM_PROMPT = """You are a communication classifier for a requirements intelligence system.
You read business communications (emails, meeting transcripts, chat logs, documents) and judge how much they say about the requirements of a software project.
Output ONLY valid JSON, no markdown, no explanation."""


def build_classification_prompt(source: dict[str, Any], max_chars: int) -> str:
    """Classification task for one source, its text capped at `max_chars`."""
    return f"""Analyze this communication and classify its relevance to a business project.
Rate relevance from 0.0 to 1.0 where 1.0 is highly relevant to business requirements.

Return JSON:
{{
  "relevance": <number>,
  "type_detected": "email" | "meeting_transcript" | "chat_log" | "document",
  "summary": "<one sentence summary>",
  "has_requirements": <boolean>,
  "has_decisions": <boolean>,
  "has_stakeholders": <boolean>,
  "key_topics": ["<topic1>", "<topic2>"]
}}

Communication source "{source.get('name', 'unnamed')}":
{(source.get('content') or '')[:max_chars]}"""


def classify_source(
    generator: TextGenerator,
    source: dict[str, Any],
    settings: Settings | None = None,
) -> StageResult:
    """
    Classify one source.

    Args:
        generator: Text-generation backend for the run
        source: Source dict with name, kind and content
        settings: Optional settings override

    Returns:
        StageOk(SourceClassification) or StageErr
    """
    settings = settings or get_settings()

    result = generate_json(
        generator,
        system_instruction=SYSTEM_PROMPT,
        user_prompt=build_classification_prompt(source, settings.CLASSIFY_MAX_CHARS),
        max_tokens=settings.CLASSIFY_MAX_TOKENS,
        stage="classification",
    )
    if not isinstance(result, StageOk):
        return result

    payload = result.value if isinstance(result.value, dict) else {}
    return StageOk(SourceClassification.model_validate(payload))
