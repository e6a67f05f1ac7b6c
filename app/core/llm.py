"""LLM response parsing and text-generator resolution."""

import json
import re
from typing import Any

from app.core.config import Settings, get_settings
from app.core.exceptions import GenerationServiceError, ResponseParseError
from app.core.llm_providers import (
    PROVIDERS,
    AnthropicGenerator,
    GeminiGenerator,
    OpenAIGenerator,
    TextGenerator,
)
from app.core.logging import get_logger

logger = get_logger(__name__)

_FENCE_RE = re.compile(r"```(?:json)?\s*(.*?)```", re.DOTALL)

# Opening brackets tried before giving up on the balanced-span step
MAX_SPAN_ATTEMPTS = 25


def _extract_fenced_block(raw_output: str) -> str | None:
    """Contents of the first markdown code fence, if any."""
    match = _FENCE_RE.search(raw_output)
    return match.group(1).strip() if match else None


def _balanced_span(text: str, start: int) -> str | None:
    """
    Return the bracket-balanced span opening at `start`.

    String literals and escapes are honoured so braces inside JSON strings
    do not affect depth. Returns None when the span never closes.
    """
    closers = {"{": "}", "[": "]"}
    stack = [closers[text[start]]]
    in_string = False
    escaped = False

    for index in range(start + 1, len(text)):
        char = text[index]
        if in_string:
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                in_string = False
            continue

        if char == '"':
            in_string = True
        elif char in closers:
            stack.append(closers[char])
        elif char in ("}", "]"):
            if char != stack[-1]:
                return None
            stack.pop()
            if not stack:
                return text[start : index + 1]

    return None


def _parse_first_balanced_span(text: str) -> Any:
    """Parse the first balanced {...} or [...] span that is valid JSON."""
    attempts = 0
    for index, char in enumerate(text):
        if char not in "{[":
            continue
        attempts += 1
        if attempts > MAX_SPAN_ATTEMPTS:
            break
        span = _balanced_span(text, index)
        if span is None:
            continue
        try:
            return json.loads(span)
        except json.JSONDecodeError:
            continue
    raise ValueError("no balanced JSON span")


def parse_llm_json_dict(raw_output: str) -> Any:
    """
    Parse an LLM response as JSON using a fallback ladder.

    1. The whole text.
    2. The contents of the first fenced code block.
    3. The first balanced {...} or [...] span that parses.

    Args:
        raw_output: Raw string from the text-generation provider

    Returns:
        Parsed JSON value (usually a dict)

    Raises:
        ResponseParseError: If every step fails (carries the first 200 chars)
    """
    text = (raw_output or "").strip()

    try:
        return json.loads(text)
    except json.JSONDecodeError:
        pass

    fenced = _extract_fenced_block(text)
    if fenced is not None:
        try:
            return json.loads(fenced)
        except json.JSONDecodeError:
            pass

    try:
        return _parse_first_balanced_span(text)
    except ValueError:
        pass

    logger.warning(
        "Could not parse LLM output as JSON",
        extra={"extra_data": {"output_length": len(text)}},
    )
    raise ResponseParseError(raw_output or "")


def _configured_key(provider: str, settings: Settings) -> str:
    return {
        "openai": settings.OPENAI_API_KEY,
        "anthropic": settings.ANTHROPIC_API_KEY,
        "gemini": settings.GEMINI_API_KEY,
    }.get(provider, "")


def resolve_provider(preferred: str | None = None, settings: Settings | None = None) -> str:
    """
    Pick the provider for a run.

    Order: the preferred provider when its key is configured, then the
    configured default LLM_PROVIDER, then the first configured of
    openai, anthropic, gemini.

    Raises:
        GenerationServiceError: If no provider has a key
    """
    settings = settings or get_settings()

    candidates = [p for p in (preferred, settings.LLM_PROVIDER, *PROVIDERS) if p]
    for provider in candidates:
        if provider in PROVIDERS and _configured_key(provider, settings):
            return provider

    raise GenerationServiceError(
        preferred or settings.LLM_PROVIDER,
        "No API key configured. Configure an AI provider key before running the pipeline.",
    )


def get_text_generator(
    preferred_provider: str | None = None,
    settings: Settings | None = None,
) -> TextGenerator:
    """
    Build the text generator for the resolved provider.

    Args:
        preferred_provider: Optional provider requested by the caller
        settings: Optional settings override

    Returns:
        A TextGenerator bound to the provider's key and model
    """
    settings = settings or get_settings()
    provider = resolve_provider(preferred_provider, settings)

    if provider == "openai":
        generator: TextGenerator = OpenAIGenerator(
            api_key=settings.OPENAI_API_KEY,
            model=settings.OPENAI_MODEL,
            temperature=settings.LLM_TEMPERATURE,
        )
    elif provider == "anthropic":
        generator = AnthropicGenerator(
            api_key=settings.ANTHROPIC_API_KEY,
            model=settings.ANTHROPIC_MODEL,
            temperature=settings.LLM_TEMPERATURE,
        )
    else:
        generator = GeminiGenerator(
            api_key=settings.GEMINI_API_KEY,
            model=settings.GEMINI_MODEL,
            temperature=settings.LLM_TEMPERATURE,
        )

    logger.info(f"Using {provider} ({generator.model}) for text generation")
    return generator
