"""Gemini text generation boundary for Pohi agents.

Agents never talk to the SDK directly. They receive a ``TextGenerator``
through their constructor; production code builds a
``GeminiTextGenerator`` with ``build_text_generator`` and tests pass a
fake with the same ``generate`` coroutine.
"""

import logging
from dataclasses import dataclass
from typing import Optional, Protocol

import google.generativeai as genai

from pohi_platform.app.config import Settings, get_settings

logger = logging.getLogger(__name__)


@dataclass
class GenerationResponse:
    """Text returned by the model plus token accounting."""

    text: str
    tokens_used: int = 0


class TextGenerator(Protocol):
    """Anything that can turn a prompt into text."""

    async def generate(
        self,
        prompt: str,
        *,
        structured_output: bool = False,
        system_instruction: Optional[str] = None,
    ) -> GenerationResponse:
        ...


def get_model(
    api_key: str,
    model_name: str = "gemini-2.5-flash",
    temperature: float = 0.4,
    json_mode: bool = False,
    system_instruction: str | None = None,
):
    """Return a configured Gemini GenerativeModel instance.

    Args:
        api_key: Gemini API key.
        model_name: Gemini model identifier.
        temperature: Generation temperature (0.0-2.0).
        json_mode: If True, constrain output to valid JSON.
        system_instruction: Optional system-level instruction.

    Returns:
        A ``google.generativeai.GenerativeModel`` ready for generation.
    """
    genai.configure(api_key=api_key)

    generation_config = {"temperature": temperature}
    if json_mode:
        generation_config["response_mime_type"] = "application/json"

    return genai.GenerativeModel(
        model_name=model_name,
        generation_config=generation_config,
        system_instruction=system_instruction,
    )


class GeminiTextGenerator:
    """``TextGenerator`` backed by the google-generativeai SDK."""

    def __init__(self, api_key: str, model_name: str, temperature: float = 0.4):
        self.api_key = api_key
        self.model_name = model_name
        self.temperature = temperature

    async def generate(
        self,
        prompt: str,
        *,
        structured_output: bool = False,
        system_instruction: Optional[str] = None,
    ) -> GenerationResponse:
        model = get_model(
            api_key=self.api_key,
            model_name=self.model_name,
            temperature=self.temperature,
            json_mode=structured_output,
            system_instruction=system_instruction,
        )
        response = await model.generate_content_async(prompt)

        tokens_used = 0
        if hasattr(response, "usage_metadata") and response.usage_metadata:
            prompt_tokens = getattr(
                response.usage_metadata, "prompt_token_count", 0
            ) or 0
            completion_tokens = getattr(
                response.usage_metadata, "candidates_token_count", 0
            ) or 0
            tokens_used = prompt_tokens + completion_tokens

        return GenerationResponse(text=response.text or "", tokens_used=tokens_used)


def build_text_generator(settings: Settings | None = None) -> GeminiTextGenerator | None:
    """Build the production generator, or None when no API key is configured."""
    settings = settings or get_settings()
    if not settings.ai_enabled:
        logger.warning(
            "GEMINI_API_KEY is not set; AI features are disabled until it is configured."
        )
        return None
    return GeminiTextGenerator(
        api_key=settings.gemini_api_key,
        model_name=settings.gemini_model,
        temperature=settings.ai_temperature,
    )
