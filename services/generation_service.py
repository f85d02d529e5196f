"""
Generation Service: Long-form Content Pipeline
==============================================

Top-level orchestration of one long-form generation request:
- Validation and optimistic quota admission (denials are payloads)
- Outline through the degradation chain (full, simplified, deterministic)
- Content generation with a late deterministic-outline fallback
- Atomic settlement of record and quota debit
- Failed-status record on terminal errors

Design Pattern: Service Layer with Repository Pattern
"""

import math
import time
from typing import Any, Optional
from uuid import UUID, uuid4

from loguru import logger

from config.constants import CONTENT_VERSION, MESSAGES, MODULE_TYPE, WORDS_PER_MINUTE
from core.enums import ContentStatus, ErrorClass, OutlineTier
from core.exceptions import (
    AuthenticationRequiredError,
    GenerationFailedError,
    InvalidInputError,
    QuotaExhaustedError,
)
from core.models import (
    ContentMetadata,
    ContentQuality,
    GeneratedContentRecord,
    GenerationRequest,
    Outline,
)
from execution.content_generator import ContentGenerator, GeneratedText
from execution.fallback_outline import build_fallback_outline
from execution.media_validator import MediaValidator
from execution.outline_generator import OutlineGenerator
from execution.request_validator import validate_request
from infrastructure.monitoring import MetricsCollector
from infrastructure.retry import classify_error
from knowledge.content_repository import ContentRepository
from knowledge.quota_ledger import QuotaLedger


def _elapsed_ms(started: float) -> int:
    return int((time.perf_counter() - started) * 1000)


class GenerationService:
    """
    Service layer for long-form generation.

    Stateless across requests; every collaborator is injected.
    """

    def __init__(
        self,
        ledger: QuotaLedger,
        repository: ContentRepository,
        outline_generator: OutlineGenerator,
        content_generator: ContentGenerator,
        media_validator: Optional[MediaValidator] = None,
        metrics: Optional[MetricsCollector] = None,
        cost: int = 4,
    ):
        """
        Initialize service with required dependencies.

        Args:
            ledger: Quota ledger for admission
            repository: Content repository for settlement
            outline_generator: Outline degradation chain
            content_generator: Prose generator
            media_validator: Optional media URL filter
            metrics: Optional Prometheus collector
            cost: Quota units charged per successful generation
        """
        self.ledger = ledger
        self.repository = repository
        self.outline_generator = outline_generator
        self.content_generator = content_generator
        self.media_validator = media_validator
        self.metrics = metrics
        self.cost = cost
        logger.debug(f"GenerationService initialized | cost={cost}")

    async def generate_longform(self, user_id: Optional[UUID], payload: Any) -> dict[str, Any]:
        """
        Run the full long-form pipeline for one caller.

        Args:
            user_id: Authenticated caller id
            payload: Loosely typed request body

        Returns:
            Success payload, or the denial payload when quota is insufficient

        Raises:
            AuthenticationRequiredError: No caller identity
            InvalidInputError: Aggregated validation errors
            EntityNotFoundError: Caller has no profile row
            GenerationFailedError: Every tier failed, or settlement failed
        """
        started = time.perf_counter()

        if user_id is None:
            raise AuthenticationRequiredError(MESSAGES.AUTH_REQUIRED)

        request = validate_request(payload)

        decision = await self.ledger.check_admission(user_id)
        if not decision.admitted:
            logger.info(
                f"Generation denied | user_id={user_id} | remaining={decision.remaining} | "
                f"plan={decision.plan_type.value}"
            )
            self._record_outcome("denied", started)
            return decision.to_denial_payload()

        content_id = uuid4()
        logger.info(
            f"Generation started | user_id={user_id} | content_id={content_id} | "
            f"words={request.word_count} | structure={request.structure_format}"
        )

        try:
            response = await self._run(user_id, content_id, request, started)
        except Exception as e:
            return await self._handle_failure(user_id, content_id, request, e, started)

        self._record_outcome("fallback" if response["metadata"]["fallback"] else "completed", started)
        return response

    # =========================================================================
    # PIPELINE
    # =========================================================================

    async def _run(
        self,
        user_id: UUID,
        content_id: UUID,
        request: GenerationRequest,
        started: float,
    ) -> dict[str, Any]:
        if self.media_validator is not None:
            request = await self.media_validator.filter_request(request)

        outline_started = time.perf_counter()
        generation = await self.outline_generator.generate(request)
        outline, tier = generation.outline, generation.tier
        outline_ms = _elapsed_ms(outline_started)

        content_started = time.perf_counter()
        late_fallback = False
        try:
            text = await self.content_generator.generate(outline, request)
        except Exception as e:
            if classify_error(e) is ErrorClass.FATAL:
                raise
            logger.warning(
                f"Content generation exhausted, retrying on deterministic outline | "
                f"content_id={content_id} | error={e}"
            )
            outline = build_fallback_outline(request)
            tier = OutlineTier.FALLBACK
            late_fallback = True
            text = await self.content_generator.generate(outline, request, max_retries=0)
        content_ms = _elapsed_ms(content_started)

        metadata = self._build_metadata(
            request,
            outline,
            text,
            tier=tier,
            fallback=tier.is_degraded or late_fallback,
            outline_ms=outline_ms,
            content_ms=content_ms,
            total_ms=_elapsed_ms(started),
        )
        record = GeneratedContentRecord(
            id=content_id,
            user_id=user_id,
            module_type=MODULE_TYPE,
            inputs=request.to_payload(),
            outline=outline,
            content=text.content,
            metadata=metadata,
            status=ContentStatus.COMPLETED,
        )

        settlement = await self.repository.commit(user_id, record, self.cost)

        logger.success(
            f"Long-form generated | content_id={content_id} | tier={tier.value} | "
            f"fallback={metadata.fallback} | words={metadata.actual_word_count} | "
            f"ms={metadata.generation_time}"
        )
        return {
            "success": True,
            "contentId": str(content_id),
            "content": text.content,
            "outline": outline.to_payload(),
            "metadata": metadata.to_payload(),
            "requestsRemaining": settlement.remaining,
            "message": MESSAGES.SUCCESS,
        }

    def _build_metadata(
        self,
        request: GenerationRequest,
        outline: Outline,
        text: GeneratedText,
        *,
        tier: OutlineTier,
        fallback: bool,
        outline_ms: int,
        content_ms: int,
        total_ms: int,
    ) -> ContentMetadata:
        word_count = len(text.content.split())
        seo = outline.seo_strategy
        meta_description = (seo.meta_description if seo else None) or (
            f"Comprehensive guide to {request.topic} for {request.audience}"
        )
        meta_title = meta_description[:60] if seo and seo.meta_description else (
            f"{request.topic} - Expert Guide"
        )
        topics = outline.meta.topics or request.keywords[:5] or [request.topic]

        return ContentMetadata(
            actual_word_count=word_count,
            estimated_reading_time=math.ceil(word_count / WORDS_PER_MINUTE),
            generation_time=total_ms,
            outline_generation_time=outline_ms,
            content_generation_time=content_ms,
            version=CONTENT_VERSION,
            reading_level=request.reading_level or "General",
            has_references=request.include_references,
            content_personality=request.writing_personality or "Professional",
            content_emotion=outline.meta.primary_emotion or "Informative",
            topics=topics,
            meta_title=meta_title,
            meta_description=meta_description,
            content_quality=ContentQuality(
                has_emotional_elements=outline.has_emotional_elements,
                has_actionable_content=outline.has_actionable_content,
                seo_optimized=bool(seo and seo.primary_keyword),
                structure_complexity=outline.section_count,
            ),
            fallback=fallback,
            outline_tier=tier,
            language=request.lang,
            output_format=request.output_format,
        )

    # =========================================================================
    # FAILURE PATH
    # =========================================================================

    async def _handle_failure(
        self,
        user_id: UUID,
        content_id: UUID,
        request: GenerationRequest,
        error: Exception,
        started: float,
    ) -> dict[str, Any]:
        """
        Record the failure, then re-raise, deny, or surface a terminal error.

        Returns:
            Denial payload when settlement found the balance consumed
        """
        logger.error(
            f"Generation failed | content_id={content_id} | user_id={user_id} | "
            f"type={type(error).__name__} | error={error}"
        )
        await self._record_failure(user_id, content_id, request, str(error))
        self._record_outcome("failed", started)

        if isinstance(error, (InvalidInputError, AuthenticationRequiredError)):
            raise error
        if isinstance(error, QuotaExhaustedError) and error.decision is not None:
            return error.decision.to_denial_payload()

        raise GenerationFailedError(
            MESSAGES.TERMINAL_FAILURE.format(reason=error),
            content_id=str(content_id),
            cause=error,
        ) from error

    async def _record_failure(
        self, user_id: UUID, content_id: UUID, request: GenerationRequest, error: str
    ) -> None:
        """Best effort: a failure here is logged and never masks the original error."""
        try:
            await self.repository.record_failure(user_id, content_id, request.to_payload(), error)
        except Exception as e:
            logger.error(f"Could not record failed generation | content_id={content_id} | error={e}")

    def _record_outcome(self, outcome: str, started: float) -> None:
        if self.metrics:
            self.metrics.record_generation(outcome, time.perf_counter() - started)


__all__ = ["GenerationService"]
