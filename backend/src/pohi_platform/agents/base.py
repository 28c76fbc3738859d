"""Base agent class for all Pohi AI agents.

Every agent (Matchmaking, Logistics) inherits from BaseAgent, which provides:

- Text generation through an injected ``TextGenerator`` (no global client)
- The precondition check for a missing client, before any network attempt
- A hard deadline on every call
- The standard ``Result`` return type (Result pattern)
- Latency measurement and token tracking in the logs
"""

import asyncio
import logging
import time
from typing import Optional

from pohi_platform.app.config import get_settings
from pohi_platform.domain.enums import ResultKind
from pohi_platform.domain.results import Result
from pohi_platform.infra.gemini_client import TextGenerator

logger = logging.getLogger(__name__)

AI_UNAVAILABLE_MESSAGE = (
    "AI features are unavailable: no Gemini API key is configured."
)
AI_TRANSPORT_MESSAGE = (
    "The AI service could not complete the request for {feature}. Please try again."
)


class BaseAgent:
    """Base class for all Pohi agents.

    Example::

        class TipsAgent(BaseAgent):
            def __init__(self, text_generator):
                super().__init__(agent_name="tips", text_generator=text_generator)

            async def tips(self) -> Result:
                result = await self.generate_text("List three tips", feature="tips")
                ...
    """

    def __init__(
        self,
        agent_name: str,
        text_generator: Optional[TextGenerator],
        timeout_seconds: Optional[float] = None,
    ):
        """Initialise the agent.

        Args:
            agent_name: A short, unique name for this agent (used in logs).
            text_generator: The model boundary; None means AI is not configured.
            timeout_seconds: Deadline per call; defaults to ``ai_timeout_seconds``.
        """
        self.agent_name = agent_name
        self.text_generator = text_generator
        self.timeout_seconds = (
            timeout_seconds
            if timeout_seconds is not None
            else get_settings().ai_timeout_seconds
        )

    @property
    def available(self) -> bool:
        return self.text_generator is not None

    def unavailable(self) -> Result:
        """Precondition failure returned when no client is configured."""
        return Result.failure(AI_UNAVAILABLE_MESSAGE, kind=ResultKind.PRECONDITION)

    async def generate_text(
        self,
        prompt: str,
        feature: str,
        structured_output: bool = False,
        system_instruction: Optional[str] = None,
    ) -> Result:
        """Generate a single-turn response.

        Args:
            prompt: The user prompt to send.
            feature: Human-readable feature name for messages and logs.
            structured_output: Ask the model for JSON output.
            system_instruction: Optional system instruction.

        Returns:
            A ``Result`` with the response text in ``data``, a PRECONDITION
            failure when no client is configured, or a TRANSPORT failure when
            the call raises or exceeds the deadline.
        """
        if self.text_generator is None:
            logger.warning("[%s] %s requested but AI is not configured", self.agent_name, feature)
            return self.unavailable()

        start_time = time.time()
        try:
            response = await asyncio.wait_for(
                self.text_generator.generate(
                    prompt,
                    structured_output=structured_output,
                    system_instruction=system_instruction,
                ),
                timeout=self.timeout_seconds,
            )
        except Exception as exc:
            latency_ms = int((time.time() - start_time) * 1000)
            reason = "timed out" if isinstance(exc, asyncio.TimeoutError) else str(exc)
            logger.error(
                "[%s] Generation for %s failed after %dms: %s",
                self.agent_name,
                feature,
                latency_ms,
                reason,
            )
            return Result.failure(
                AI_TRANSPORT_MESSAGE.format(feature=feature),
                kind=ResultKind.TRANSPORT,
                latency_ms=latency_ms,
            )

        latency_ms = int((time.time() - start_time) * 1000)
        logger.info(
            "[%s] Generation for %s succeeded: tokens=%d, latency=%dms",
            self.agent_name,
            feature,
            response.tokens_used,
            latency_ms,
        )
        return Result.success(
            data=response.text or "",
            tokens_used=response.tokens_used,
            latency_ms=latency_ms,
        )
