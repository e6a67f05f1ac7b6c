"""Shared generate-then-parse step for the stage extractors."""

from typing import Any

from app.core.exceptions import GenerationServiceError, ResponseParseError
from app.core.llm import parse_llm_json_dict
from app.core.llm_providers import TextGenerator
from app.core.logging import get_logger
from app.core.stage_result import StageErr, StageOk, StageResult

logger = get_logger(__name__)


def generate_json(
    generator: TextGenerator,
    *,
    system_instruction: str,
    user_prompt: str,
    max_tokens: int,
    stage: str,
) -> StageResult:
    """
    Call the text generator in JSON mode and parse the response.

    Args:
        generator: Text-generation backend for the run
        system_instruction: Stage system prompt
        user_prompt: Task prompt including the corpus slice
        max_tokens: Output budget for the stage
        stage: Stage name used in log lines

    Returns:
        StageOk with the parsed JSON value, or StageErr when generation
        failed or no JSON could be recovered from the response
    """
    try:
        raw_output = generator.generate(
            system_instruction,
            user_prompt,
            json_mode=True,
            max_tokens=max_tokens,
        )
    except GenerationServiceError as e:
        logger.warning(
            f"{stage}: text generation failed",
            extra={"stage": stage, "extra_data": {"provider": e.provider}},
        )
        return StageErr.from_error(e)

    logger.debug(f"{stage} raw output: {(raw_output or '')[:500]}")

    try:
        payload: Any = parse_llm_json_dict(raw_output)
    except ResponseParseError as e:
        logger.warning(f"{stage}: unparseable response", extra={"stage": stage})
        return StageErr.from_error(e)

    return StageOk(payload)
