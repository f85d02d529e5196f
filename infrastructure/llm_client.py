"""
LLM Client: Provider Adapters for the Two-Stage Pipeline

Thin, injectable adapters over the generative providers:
- Outline provider: Gemini via google-generativeai, JSON response hint
- Content provider: OpenAI chat completions or Anthropic messages
- Vendor exceptions mapped onto the domain taxonomy so the retry policy
  can tell fatal, fast-fail and retryable failures apart
- Immutable response records with token usage and latency

Retries are not done here: each adapter performs exactly one call per
invocation and the generators wrap it in the shared retry policy.
"""

import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional

import google.generativeai as genai
from anthropic import AnthropicError, AsyncAnthropic
from anthropic import APIStatusError as AnthropicStatusError
from anthropic import APITimeoutError as AnthropicTimeoutError
from anthropic import AuthenticationError as AnthropicAuthenticationError
from anthropic import PermissionDeniedError as AnthropicPermissionDeniedError
from anthropic import RateLimitError as AnthropicRateLimitError
from google.api_core import exceptions as google_exceptions
from loguru import logger
from openai import (
    APIStatusError,
    APITimeoutError,
    AsyncOpenAI,
    AuthenticationError,
    OpenAIError,
    PermissionDeniedError,
    RateLimitError,
)

from config.settings import Settings
from core.exceptions import (
    ContentAutomationException,
    ProviderAuthenticationError,
    ProviderOverloadedError,
    ProviderTimeoutError,
    ProviderTransientError,
)

# HTTP statuses providers use to signal overload
OVERLOAD_STATUSES = frozenset({429, 503, 529})

# ============================================================================
# TYPE SYSTEM
# ============================================================================


class ModelProvider(str, Enum):
    """Enumeration of supported providers."""

    GEMINI = "gemini"
    OPENAI = "openai"
    ANTHROPIC = "anthropic"


@dataclass(frozen=True)
class TokenUsage:
    """Immutable token usage record."""

    prompt_tokens: int
    completion_tokens: int

    def __post_init__(self):
        assert self.prompt_tokens >= 0, "Prompt tokens must be non-negative"
        assert self.completion_tokens >= 0, "Completion tokens must be non-negative"

    @property
    def total_tokens(self) -> int:
        return self.prompt_tokens + self.completion_tokens


@dataclass(frozen=True)
class ProviderResponse:
    """Immutable provider response with call metadata."""

    text: str
    model: str
    provider: ModelProvider
    usage: TokenUsage
    latency_ms: float
    finish_reason: Optional[str] = None
    timestamp: datetime = field(default_factory=datetime.utcnow)


@dataclass(frozen=True)
class OutlineCallParams:
    """Sampling parameters for one outline call."""

    temperature: float
    top_k: int
    top_p: float
    max_output_tokens: int
    response_mime_type: str = "application/json"


@dataclass(frozen=True)
class ContentCallParams:
    """Sampling parameters for one content call."""

    temperature: float
    max_tokens: int
    presence_penalty: float = 0.0
    frequency_penalty: float = 0.0


@dataclass(frozen=True)
class ChatMessage:
    role: str
    content: str


# ============================================================================
# ERROR MAPPING
# ============================================================================


def map_google_error(exc: Exception) -> ContentAutomationException:
    """Translate google.api_core errors into domain errors."""
    provider = ModelProvider.GEMINI.value
    message = f"Gemini request failed: {exc}"

    if isinstance(exc, (google_exceptions.Unauthenticated, google_exceptions.PermissionDenied)):
        return ProviderAuthenticationError(message, provider=provider, cause=exc)
    if isinstance(exc, google_exceptions.InvalidArgument) and "api key" in str(exc).lower():
        return ProviderAuthenticationError(message, provider=provider, cause=exc)
    if isinstance(
        exc,
        (
            google_exceptions.ResourceExhausted,
            google_exceptions.TooManyRequests,
            google_exceptions.ServiceUnavailable,
        ),
    ):
        return ProviderOverloadedError(message, provider=provider, cause=exc)
    if isinstance(exc, google_exceptions.DeadlineExceeded):
        return ProviderTimeoutError(message, provider=provider, cause=exc)
    return ProviderTransientError(message, provider=provider, cause=exc)


def map_openai_error(exc: OpenAIError) -> ContentAutomationException:
    """Translate openai SDK errors into domain errors."""
    provider = ModelProvider.OPENAI.value
    message = f"OpenAI request failed: {exc}"

    if isinstance(exc, (AuthenticationError, PermissionDeniedError)):
        return ProviderAuthenticationError(message, provider=provider, cause=exc)
    if isinstance(exc, RateLimitError):
        return ProviderOverloadedError(message, provider=provider, cause=exc)
    if isinstance(exc, APIStatusError) and exc.status_code in OVERLOAD_STATUSES:
        return ProviderOverloadedError(message, provider=provider, cause=exc)
    if isinstance(exc, APITimeoutError):
        return ProviderTimeoutError(message, provider=provider, cause=exc)
    return ProviderTransientError(message, provider=provider, cause=exc)


def map_anthropic_error(exc: AnthropicError) -> ContentAutomationException:
    """Translate anthropic SDK errors into domain errors."""
    provider = ModelProvider.ANTHROPIC.value
    message = f"Anthropic request failed: {exc}"

    if isinstance(exc, (AnthropicAuthenticationError, AnthropicPermissionDeniedError)):
        return ProviderAuthenticationError(message, provider=provider, cause=exc)
    if isinstance(exc, AnthropicRateLimitError):
        return ProviderOverloadedError(message, provider=provider, cause=exc)
    if isinstance(exc, AnthropicStatusError) and exc.status_code in OVERLOAD_STATUSES:
        return ProviderOverloadedError(message, provider=provider, cause=exc)
    if isinstance(exc, AnthropicTimeoutError):
        return ProviderTimeoutError(message, provider=provider, cause=exc)
    return ProviderTransientError(message, provider=provider, cause=exc)


# ============================================================================
# OUTLINE PROVIDERS
# ============================================================================


class AbstractOutlineProvider(ABC):
    """Generates structured outline text from a prompt string."""

    provider: ModelProvider
    model: str

    @abstractmethod
    async def generate(self, prompt: str, params: OutlineCallParams) -> ProviderResponse:
        """Perform one outline call. Raises domain provider errors."""


class GeminiOutlineProvider(AbstractOutlineProvider):
    """Outline generation on Gemini with a JSON response hint."""

    provider = ModelProvider.GEMINI

    def __init__(self, api_key: str, model: str, timeout: float = 120.0):
        genai.configure(api_key=api_key)
        self.model = model
        self.timeout = timeout

    async def generate(self, prompt: str, params: OutlineCallParams) -> ProviderResponse:
        generation_config = genai.GenerationConfig(
            temperature=params.temperature,
            top_k=params.top_k,
            top_p=params.top_p,
            max_output_tokens=params.max_output_tokens,
            response_mime_type=params.response_mime_type,
        )
        model = genai.GenerativeModel(model_name=self.model, generation_config=generation_config)

        start_time = time.perf_counter()
        try:
            response = await model.generate_content_async(
                prompt, request_options={"timeout": self.timeout}
            )
            text = response.text
        except google_exceptions.GoogleAPIError as e:
            raise map_google_error(e) from e
        except ValueError as e:
            # Raised by response.text when the candidate was blocked or empty
            raise ProviderTransientError(
                f"Gemini returned no usable text: {e}", provider=self.provider.value, cause=e
            ) from e
        latency_ms = (time.perf_counter() - start_time) * 1000

        usage_metadata = getattr(response, "usage_metadata", None)
        usage = TokenUsage(
            prompt_tokens=getattr(usage_metadata, "prompt_token_count", 0) or 0,
            completion_tokens=getattr(usage_metadata, "candidates_token_count", 0) or 0,
        )
        logger.debug(
            f"Gemini outline call | model={self.model} | latency_ms={latency_ms:.0f} | "
            f"tokens={usage.total_tokens}"
        )
        return ProviderResponse(
            text=text or "",
            model=self.model,
            provider=self.provider,
            usage=usage,
            latency_ms=latency_ms,
        )


# ============================================================================
# CONTENT PROVIDERS
# ============================================================================


class AbstractContentProvider(ABC):
    """Expands a message list into prose."""

    provider: ModelProvider
    model: str

    @abstractmethod
    async def complete(
        self, messages: list[ChatMessage], params: ContentCallParams
    ) -> ProviderResponse:
        """Perform one content call. Raises domain provider errors."""


class OpenAIContentProvider(AbstractContentProvider):
    """Content generation on OpenAI chat completions."""

    provider = ModelProvider.OPENAI

    def __init__(self, client: AsyncOpenAI, model: str):
        self.client = client
        self.model = model

    async def complete(
        self, messages: list[ChatMessage], params: ContentCallParams
    ) -> ProviderResponse:
        start_time = time.perf_counter()
        try:
            response = await self.client.chat.completions.create(
                model=self.model,
                messages=[{"role": m.role, "content": m.content} for m in messages],
                temperature=params.temperature,
                max_tokens=params.max_tokens,
                presence_penalty=params.presence_penalty,
                frequency_penalty=params.frequency_penalty,
                stream=False,
            )
        except OpenAIError as e:
            raise map_openai_error(e) from e
        latency_ms = (time.perf_counter() - start_time) * 1000

        choice = response.choices[0] if response.choices else None
        usage = TokenUsage(
            prompt_tokens=response.usage.prompt_tokens if response.usage else 0,
            completion_tokens=response.usage.completion_tokens if response.usage else 0,
        )
        return ProviderResponse(
            text=(choice.message.content if choice else None) or "",
            model=self.model,
            provider=self.provider,
            usage=usage,
            latency_ms=latency_ms,
            finish_reason=choice.finish_reason if choice else None,
        )


class AnthropicContentProvider(AbstractContentProvider):
    """Content generation on Anthropic messages; system prompt passed separately."""

    provider = ModelProvider.ANTHROPIC

    def __init__(self, client: AsyncAnthropic, model: str):
        self.client = client
        self.model = model

    async def complete(
        self, messages: list[ChatMessage], params: ContentCallParams
    ) -> ProviderResponse:
        system = "\n\n".join(m.content for m in messages if m.role == "system")
        conversation = [
            {"role": m.role, "content": m.content} for m in messages if m.role != "system"
        ]

        start_time = time.perf_counter()
        try:
            response = await self.client.messages.create(
                model=self.model,
                system=system,
                messages=conversation,
                temperature=params.temperature,
                max_tokens=params.max_tokens,
            )
        except AnthropicError as e:
            raise map_anthropic_error(e) from e
        latency_ms = (time.perf_counter() - start_time) * 1000

        text = "".join(
            block.text for block in response.content if getattr(block, "type", "") == "text"
        )
        usage = TokenUsage(
            prompt_tokens=response.usage.input_tokens,
            completion_tokens=response.usage.output_tokens,
        )
        return ProviderResponse(
            text=text,
            model=self.model,
            provider=self.provider,
            usage=usage,
            latency_ms=latency_ms,
            finish_reason=response.stop_reason,
        )


# ============================================================================
# FACTORIES
# ============================================================================


def get_outline_provider(settings: Settings) -> AbstractOutlineProvider:
    """Build the outline provider from configuration."""
    providers = settings.providers
    return GeminiOutlineProvider(
        api_key=providers.gemini_api_key.get_secret_value(),
        model=providers.outline_model,
        timeout=providers.request_timeout,
    )


def get_content_provider(
    settings: Settings, provider: Optional[str] = None
) -> AbstractContentProvider:
    """
    Build the configured content provider.

    Args:
        settings: Application settings
        provider: Override for CONTENT_PROVIDER

    Raises:
        ValueError: For unknown provider names
    """
    providers = settings.providers
    choice = provider or providers.content_provider

    if choice == ModelProvider.OPENAI.value:
        client = AsyncOpenAI(
            api_key=providers.openai_api_key.get_secret_value(),
            timeout=providers.request_timeout,
            max_retries=0,
        )
        return OpenAIContentProvider(client, providers.openai_model)

    if choice == ModelProvider.ANTHROPIC.value:
        client = AsyncAnthropic(
            api_key=providers.anthropic_api_key.get_secret_value(),
            timeout=providers.request_timeout,
            max_retries=0,
        )
        return AnthropicContentProvider(client, providers.anthropic_model)

    raise ValueError(f"Unsupported content provider: {choice}")


__all__ = [
    "ModelProvider",
    "TokenUsage",
    "ProviderResponse",
    "OutlineCallParams",
    "ContentCallParams",
    "ChatMessage",
    "AbstractOutlineProvider",
    "GeminiOutlineProvider",
    "AbstractContentProvider",
    "OpenAIContentProvider",
    "AnthropicContentProvider",
    "map_google_error",
    "map_openai_error",
    "map_anthropic_error",
    "get_outline_provider",
    "get_content_provider",
]
