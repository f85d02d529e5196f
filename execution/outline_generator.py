"""
Outline Generator
=================
Layered degradation chain for the structured article outline.

Tiers, in order:
- FULL: complete prompt, full token budget, own retry budget
- SIMPLIFIED: minimal prompt, smaller token budget, independent retry budget
- FALLBACK: deterministic template, no external call, cannot fail

Each AI tier returns a tagged result (OutlineSuccess | NeedsEscalation) so
every tier's entry and exit conditions are independently testable. Only
fatal errors (e.g. provider authentication) propagate to the caller.

Architecture: Explicit state sequence over the shared retry policy
"""

import asyncio
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Optional, Union

from loguru import logger
from pydantic import ValidationError

from config.settings import Settings
from core.enums import ErrorClass, OutlineTier
from core.exceptions import ContentAutomationException, MalformedOutputError
from core.models import GenerationRequest, Outline
from execution.fallback_outline import build_fallback_outline
from execution.json_repair import parse_structured
from execution.prompt_builder import build_outline_prompt, build_simplified_outline_prompt
from infrastructure.llm_client import AbstractOutlineProvider, OutlineCallParams
from infrastructure.monitoring import MetricsCollector
from infrastructure.retry import RetryAttempt, classify_error, with_retry

# =============================================================================
# RESULT TYPES
# =============================================================================


@dataclass(frozen=True)
class OutlineSuccess:
    outline: Outline
    tier: OutlineTier


@dataclass(frozen=True)
class NeedsEscalation:
    """A tier gave up; the chain moves on to the next one."""

    tier: OutlineTier
    reason: str
    error: Optional[BaseException] = None


TierResult = Union[OutlineSuccess, NeedsEscalation]


@dataclass(frozen=True)
class OutlineGeneration:
    """Final outline plus the tier that produced it and the escalations on the way."""

    outline: Outline
    tier: OutlineTier
    escalations: tuple[NeedsEscalation, ...] = ()

    @property
    def is_fallback(self) -> bool:
        return self.tier.is_degraded


# =============================================================================
# CONFIGURATION
# =============================================================================


@dataclass(frozen=True)
class OutlineGenerationConfig:
    """Retry budgets and sampling parameters for the AI tiers."""

    max_retries: int = 2
    simplified_max_retries: int = 1
    base_delay: float = 0.5
    max_delay: float = 10.0
    jitter: float = 1.0
    min_chars: int = 50
    full_params: OutlineCallParams = field(
        default_factory=lambda: OutlineCallParams(
            temperature=0.6, top_k=40, top_p=0.9, max_output_tokens=3000
        )
    )
    simplified_params: OutlineCallParams = field(
        default_factory=lambda: OutlineCallParams(
            temperature=0.6, top_k=40, top_p=0.9, max_output_tokens=2000
        )
    )

    @classmethod
    def from_settings(cls, settings: Settings) -> "OutlineGenerationConfig":
        generation = settings.generation
        return cls(
            max_retries=settings.outline_max_retries,
            simplified_max_retries=generation.simplified_max_retries,
            base_delay=generation.base_delay,
            max_delay=generation.max_delay,
            jitter=generation.jitter,
            min_chars=generation.min_outline_chars,
            full_params=OutlineCallParams(
                temperature=generation.outline_temperature,
                top_k=generation.outline_top_k,
                top_p=generation.outline_top_p,
                max_output_tokens=generation.outline_max_tokens,
            ),
            simplified_params=OutlineCallParams(
                temperature=generation.outline_temperature,
                top_k=generation.outline_top_k,
                top_p=generation.outline_top_p,
                max_output_tokens=generation.simplified_max_tokens,
            ),
        )


# =============================================================================
# GENERATOR
# =============================================================================


class OutlineGenerator:
    """
    Drives the outline degradation chain.

    Never raises except for fatal errors; the deterministic tier
    guarantees an outline under total provider outage.
    """

    def __init__(
        self,
        provider: AbstractOutlineProvider,
        config: Optional[OutlineGenerationConfig] = None,
        metrics: Optional[MetricsCollector] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.provider = provider
        self.config = config or OutlineGenerationConfig()
        self.metrics = metrics
        self._sleep = sleep

    async def generate(self, request: GenerationRequest) -> OutlineGeneration:
        """
        Produce an outline, escalating through the tiers as needed.

        Raises:
            ContentAutomationException: Only for fatal errors
        """
        plan = (
            (OutlineTier.FULL, build_outline_prompt(request), self.config.full_params,
             self.config.max_retries),
            (OutlineTier.SIMPLIFIED, build_simplified_outline_prompt(request),
             self.config.simplified_params, self.config.simplified_max_retries),
        )

        escalations: list[NeedsEscalation] = []
        for tier, prompt, params, max_retries in plan:
            result = await self._run_tier(tier, prompt, params, max_retries)
            if isinstance(result, OutlineSuccess):
                self._record_tier(tier)
                logger.success(
                    f"Outline generated | tier={tier.value} | sections={result.outline.section_count}"
                )
                return OutlineGeneration(result.outline, tier, tuple(escalations))
            escalations.append(result)

        outline = build_fallback_outline(request)
        self._record_tier(OutlineTier.FALLBACK)
        logger.warning(
            f"Using deterministic fallback outline | structure={request.structure_format} | "
            f"escalations={len(escalations)}"
        )
        return OutlineGeneration(outline, OutlineTier.FALLBACK, tuple(escalations))

    async def _run_tier(
        self,
        tier: OutlineTier,
        prompt: str,
        params: OutlineCallParams,
        max_retries: int,
    ) -> TierResult:
        try:
            outline = await with_retry(
                lambda: self._attempt(prompt, params),
                max_retries=max_retries,
                base_delay=self.config.base_delay,
                max_delay=self.config.max_delay,
                jitter=self.config.jitter,
                sleep=self._sleep,
                operation_name=f"outline.{tier.value}",
                on_retry=self._on_retry,
            )
        except Exception as e:
            error_class = classify_error(e)
            if error_class is ErrorClass.FATAL:
                logger.error(f"Fatal outline error | tier={tier.value} | error={e}")
                raise
            logger.warning(
                f"Outline tier exhausted | tier={tier.value} | class={error_class.value} | error={e}"
            )
            return NeedsEscalation(tier=tier, reason=error_class.value, error=e)
        return OutlineSuccess(outline=outline, tier=tier)

    async def _attempt(self, prompt: str, params: OutlineCallParams) -> Outline:
        """One provider call, parsed and shape-checked."""
        try:
            response = await self.provider.generate(prompt, params)
        except ContentAutomationException as e:
            self._record_call(e.error_class.value)
            raise
        self._record_call("success", response.usage.total_tokens, response.latency_ms / 1000)

        text = response.text.strip()
        if len(text) < self.config.min_chars:
            raise MalformedOutputError(
                "Outline response too short or empty",
                response_text=text,
                expected_format="outline",
            )

        document = parse_structured(text)
        try:
            return Outline.model_validate(document)
        except ValidationError as e:
            raise MalformedOutputError(
                f"Outline failed shape validation: {e.error_count()} errors",
                response_text=text,
                expected_format="outline",
                cause=e,
            ) from e

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

    def _record_tier(self, tier: OutlineTier) -> None:
        if self.metrics:
            self.metrics.record_outline_tier(tier.value)


__all__ = [
    "OutlineGenerator",
    "OutlineGenerationConfig",
    "OutlineGeneration",
    "OutlineSuccess",
    "NeedsEscalation",
    "TierResult",
]
