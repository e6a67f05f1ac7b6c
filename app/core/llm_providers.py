"""
Text-generation backends.

Every backend implements one contract:

    generate(system_instruction, user_prompt, json_mode=True, max_tokens=8192) -> str

Provider SDK failures are normalized into GenerationServiceError so the
pipeline never sees provider-specific exception types or response shapes.
"""

from abc import ABC, abstractmethod

import anthropic
import openai
from anthropic import Anthropic
from google import genai
from google.genai import errors as genai_errors
from google.genai import types as genai_types
from openai import OpenAI

from app.core.exceptions import GenerationServiceError
from app.core.logging import get_logger

logger = get_logger(__name__)

PROVIDERS = ("openai", "anthropic", "gemini")


class TextGenerator(ABC):
    """Generate text from a system instruction and a user prompt."""

    provider: str = ""

    def __init__(self, api_key: str, model: str, temperature: float = 0.3):
        self.api_key = api_key
        self.model = model
        self.temperature = temperature
        self._client = None

    @abstractmethod
    def generate(
        self,
        system_instruction: str,
        user_prompt: str,
        json_mode: bool = True,
        max_tokens: int = 8192,
    ) -> str:
        """
        Run one generation call.

        Args:
            system_instruction: Role/context instruction
            user_prompt: Task prompt including the corpus slice
            json_mode: Ask the provider for a JSON response
            max_tokens: Output token budget

        Returns:
            Raw response text

        Raises:
            GenerationServiceError: If the provider call fails
        """


class OpenAIGenerator(TextGenerator):
    """OpenAI chat completions backend."""

    provider = "openai"

    def _get_client(self) -> OpenAI:
        if self._client is None:
            self._client = OpenAI(api_key=self.api_key)
        return self._client

    def generate(
        self,
        system_instruction: str,
        user_prompt: str,
        json_mode: bool = True,
        max_tokens: int = 8192,
    ) -> str:
        params = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": system_instruction},
                {"role": "user", "content": user_prompt},
            ],
            "temperature": self.temperature,
            "max_tokens": max_tokens,
        }
        if json_mode:
            params["response_format"] = {"type": "json_object"}

        try:
            response = self._get_client().chat.completions.create(**params)
        except openai.OpenAIError as e:
            raise GenerationServiceError("OpenAI", str(e)) from e

        return response.choices[0].message.content or ""


class AnthropicGenerator(TextGenerator):
    """Anthropic messages backend."""

    provider = "anthropic"

    def _get_client(self) -> Anthropic:
        if self._client is None:
            self._client = Anthropic(api_key=self.api_key)
        return self._client

    def generate(
        self,
        system_instruction: str,
        user_prompt: str,
        json_mode: bool = True,
        max_tokens: int = 8192,
    ) -> str:
        # No native JSON mode; the prompts already demand JSON and the
        # parse ladder tolerates prose around it
        try:
            response = self._get_client().messages.create(
                model=self.model,
                max_tokens=max_tokens,
                temperature=self.temperature,
                system=system_instruction,
                messages=[{"role": "user", "content": user_prompt}],
            )
        except anthropic.AnthropicError as e:
            raise GenerationServiceError("Anthropic", str(e)) from e

        return "".join(block.text for block in response.content if block.type == "text")


class GeminiGenerator(TextGenerator):
    """Google Gemini backend (google-genai)."""

    provider = "gemini"

    def _get_client(self) -> genai.Client:
        if self._client is None:
            self._client = genai.Client(api_key=self.api_key)
        return self._client

    def generate(
        self,
        system_instruction: str,
        user_prompt: str,
        json_mode: bool = True,
        max_tokens: int = 8192,
    ) -> str:
        config = genai_types.GenerateContentConfig(
            system_instruction=system_instruction,
            temperature=self.temperature,
            max_output_tokens=max_tokens,
        )
        if json_mode:
            config.response_mime_type = "application/json"

        try:
            response = self._get_client().models.generate_content(
                model=self.model,
                contents=user_prompt,
                config=config,
            )
        except genai_errors.APIError as e:
            raise GenerationServiceError("Gemini", str(e)) from e

        return response.text or ""
