"""OpenAI service for SEO content generation with length refinement."""

import asyncio
import logging
from typing import List, Optional

import openai
from openai import AsyncOpenAI

from app.core.config import Settings, get_settings
from app.core.exceptions import GenerationError
from app.content.prompts import (
    SYSTEM_PROMPT,
    build_generation_prompt,
    build_polish_prompt,
    build_refine_prompt,
)
from app.content.text import extract_content_block, length_note, within_tolerance, word_count

logger = logging.getLogger(__name__)


def classify_openai_error(e: Exception) -> GenerationError:
    """Map provider exceptions to string-matchable failure categories."""
    # APITimeoutError subclasses APIConnectionError, so it must be checked first.
    if isinstance(e, (asyncio.TimeoutError, openai.APITimeoutError)):
        return GenerationError(f"LLM timeout: {e or 'request timed out'}", category="timeout")
    if isinstance(e, openai.RateLimitError):
        return GenerationError(f"LLM rate limit: {e}", category="rate_limit")
    if isinstance(e, openai.APIConnectionError):
        return GenerationError(f"LLM network error: {e}", category="network")
    if isinstance(e, (openai.AuthenticationError, openai.PermissionDeniedError)):
        return GenerationError(
            "LLM authentication error: OpenAI API key is missing or invalid. "
            "Please set OPENAI_API_KEY in your environment.",
            category="auth",
        )
    return GenerationError(f"LLM provider error: {e}", category="provider")


class ContentGenerator:
    """Drafts an article and refines it toward the requested length."""

    def __init__(
        self,
        client: AsyncOpenAI,
        model: str = "gpt-4o",
        *,
        temperature: float = 0.2,
        max_tokens: int = 8000,
        timeout_ms: int = 60000,
        max_refinement_rounds: int = 2,
        tolerance_percent: float = 5.0,
    ):
        self.client = client
        self.model = model
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.timeout_ms = timeout_ms
        self.max_refinement_rounds = max_refinement_rounds
        self.tolerance_percent = tolerance_percent

    async def _complete(self, prompt: str) -> str:
        try:
            response = await asyncio.wait_for(
                self.client.chat.completions.create(
                    model=self.model,
                    messages=[
                        {"role": "system", "content": SYSTEM_PROMPT},
                        {"role": "user", "content": prompt},
                    ],
                    max_tokens=self.max_tokens,
                    temperature=self.temperature,
                ),
                timeout=self.timeout_ms / 1000,
            )
        except asyncio.TimeoutError:
            raise GenerationError(
                f"LLM timeout: no response within {self.timeout_ms}ms", category="timeout"
            )
        except openai.OpenAIError as e:
            raise classify_openai_error(e) from e

        if not response.choices or not response.choices[0].message.content:
            raise GenerationError("LLM returned an empty response", category="malformed")
        return response.choices[0].message.content.strip()

    async def generate(
        self,
        context: str,
        topic: str,
        keywords: List[str],
        target_length: int,
        additional_notes: Optional[str] = None,
    ) -> str:
        """
        Return raw generated text in the labeled-section template.

        One draft call, then at most `max_refinement_rounds` follow-ups, issued
        only while the body word count is outside the tolerance band.
        """
        prompt = build_generation_prompt(
            context, topic, ", ".join(keywords), target_length, additional_notes
        )
        draft = await self._complete(prompt)
        count = word_count(extract_content_block(draft))
        logger.info(f"Draft word count: {count} (target: {target_length})")

        for round_no in range(1, self.max_refinement_rounds + 1):
            if within_tolerance(count, target_length, self.tolerance_percent):
                break
            note = length_note(count, target_length, self.tolerance_percent)
            build = build_refine_prompt if round_no == 1 else build_polish_prompt
            draft = await self._complete(build(context, draft, target_length, note))
            count = word_count(extract_content_block(draft))
            logger.info(f"Refinement round {round_no} word count: {count} (target: {target_length})")

        return draft


def build_generator(settings: Settings = None) -> ContentGenerator:
    settings = settings or get_settings()
    client = AsyncOpenAI(
        api_key=settings.OPENAI_API_KEY,
        timeout=settings.LLM_TIMEOUT_MS / 1000,
        max_retries=0,
    )
    return ContentGenerator(
        client,
        settings.OPENAI_MODEL,
        temperature=settings.OPENAI_TEMPERATURE,
        max_tokens=settings.OPENAI_MAX_TOKENS,
        timeout_ms=settings.LLM_TIMEOUT_MS,
        max_refinement_rounds=settings.LLM_MAX_REFINEMENT_ROUNDS,
        tolerance_percent=settings.LENGTH_TOLERANCE_PERCENT,
    )
