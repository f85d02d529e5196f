"""
Content Generator
=================
Expands an outline into final prose through the content provider.

- One provider call per attempt (system + user messages)
- Token ceiling scaled to the requested word count
- Absent or too-short output is a retryable failure, treated exactly
  like a transport error
- Retries governed by the shared backoff policy with its own budget

Architecture: Stateless service over an injected provider
"""

import asyncio
import math
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional

from loguru import logger

from config.settings import Settings
from core.exceptions import ContentAutomationException, ContentTooShortError
from core.models import GenerationRequest, Outline
from execution.prompt_builder import build_content_messages
from infrastructure.llm_client import AbstractContentProvider, ContentCallParams
from infrastructure.monitoring import MetricsCollector
from infrastructure.retry import RetryAttempt, with_retry


@dataclass(frozen=True)
class GeneratedText:
    """Prose returned by a successful content call."""

    content: str
    model: str
    provider: str
    attempts: int
    total_tokens: int = 0


@dataclass(frozen=True)
class ContentGenerationConfig:
    max_retries: int = 2
    base_delay: float = 0.5
    max_delay: float = 10.0
    jitter: float = 1.0
    temperature: float = 0.8
    token_ceiling: int = 4000
    tokens_per_word: float = 1.5
    presence_penalty: float = 0.1
    frequency_penalty: float = 0.1
    min_chars: int = 500

    @classmethod
    def from_settings(cls, settings: Settings) -> "ContentGenerationConfig":
        generation = settings.generation
        return cls(
            max_retries=settings.content_max_retries,
            base_delay=generation.base_delay,
            max_delay=generation.max_delay,
            jitter=generation.jitter,
            temperature=generation.content_temperature,
            token_ceiling=generation.content_token_ceiling,
            tokens_per_word=generation.tokens_per_word,
            presence_penalty=generation.presence_penalty,
            frequency_penalty=generation.frequency_penalty,
            min_chars=generation.min_content_chars,
        )

    def max_tokens_for(self, word_count: int) -> int:
        return min(self.token_ceiling, math.floor(word_count * self.tokens_per_word))


class ContentGenerator:
    """Turns an outline plus the brief into final text."""

    def __init__(
        self,
        provider: AbstractContentProvider,
        config: Optional[ContentGenerationConfig] = None,
        metrics: Optional[MetricsCollector] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.provider = provider
        self.config = config or ContentGenerationConfig()
        self.metrics = metrics
        self._sleep = sleep

    async def generate(
        self,
        outline: Outline,
        request: GenerationRequest,
        *,
        max_retries: Optional[int] = None,
    ) -> GeneratedText:
        """
        Generate prose for an outline.

        Args:
            outline: Outline to expand
            request: Validated brief
            max_retries: Override of the configured budget; 0 means one attempt

        Returns:
            GeneratedText

        Raises:
            The last provider or ContentTooShortError once the budget is spent;
            fatal and fast-fail errors immediately.
        """
        messages = build_content_messages(outline, request)
        params = ContentCallParams(
            temperature=self.config.temperature,
            max_tokens=self.config.max_tokens_for(request.word_count),
            presence_penalty=self.config.presence_penalty,
            frequency_penalty=self.config.frequency_penalty,
        )
        budget = self.config.max_retries if max_retries is None else max_retries
        attempts = 0

        async def _attempt() -> GeneratedText:
            nonlocal attempts
            attempts += 1
            try:
                response = await self.provider.complete(messages, params)
            except ContentAutomationException as e:
                self._record_call(e.error_class.value)
                raise
            self._record_call("success", response.usage.total_tokens, response.latency_ms / 1000)

            content = response.text.strip()
            if len(content) < self.config.min_chars:
                raise ContentTooShortError(
                    actual_length=len(content), minimum_length=self.config.min_chars
                )
            return GeneratedText(
                content=content,
                model=response.model,
                provider=response.provider.value,
                attempts=attempts,
                total_tokens=response.usage.total_tokens,
            )

        result = await with_retry(
            _attempt,
            max_retries=budget,
            base_delay=self.config.base_delay,
            max_delay=self.config.max_delay,
            jitter=self.config.jitter,
            sleep=self._sleep,
            operation_name="content",
            on_retry=self._on_retry,
        )
        logger.success(
            f"Content generated | provider={result.provider} | attempts={result.attempts} | "
            f"chars={len(result.content)}"
        )
        return result

    def _on_retry(self, attempt: RetryAttempt) -> None:
        if self.metrics:
            self.metrics.record_retry(attempt.operation, attempt.error_class.value)

    def _record_call(self, status: str, tokens: int = 0, latency_seconds: float = 0.0) -> None:
        if self.metrics:
            self.metrics.record_provider_call(
                model=self.provider.model,
                provider=self.provider.provider.value,
                status=status,
                tokens_used=tokens,
                latency_seconds=latency_seconds,
            )


__all__ = ["ContentGenerator", "ContentGenerationConfig", "GeneratedText"]
