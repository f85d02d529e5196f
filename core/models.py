"""
Domain Data Models
==================
Complete Pydantic v2 schema definitions with:
- Type-safe validation of the inbound generation brief
- Quota counters with computed balances
- Outline documents that preserve provider-supplied extras
- Persisted content records and their metadata block

Wire names are camelCase (alias generator); Python attributes stay snake_case.

Architecture: Domain-Driven Design + Value Objects
"""

import math
from datetime import datetime
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    StrictBool,
    computed_field,
    field_validator,
)
from pydantic.alias_generators import to_camel

from core.enums import (
    ContentStatus,
    GeographicScope,
    MediaPlacementStrategy,
    OutlineTier,
    OutputFormat,
    PlanType,
    get_enum_by_value,
)

# =============================================================================
# CONFIGURATION
# =============================================================================


class BaseModelConfig(BaseModel):
    """Base configuration for all models."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        validate_assignment=True,
        use_enum_values=False,  # Keep enum types (don't convert to strings)
    )

    def to_payload(self) -> dict[str, Any]:
        """Serialize with camelCase keys for API responses and JSONB columns."""
        return self.model_dump(mode="json", by_alias=True)


# =============================================================================
# REQUEST MODELS
# =============================================================================


class GenerationRequest(BaseModelConfig):
    """
    Validated long-form generation brief.

    Immutable once validated: later stages derive new values with
    model_copy(update=...) instead of mutating.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
        extra="ignore",
        str_strip_whitespace=True,
    )

    # Required brief
    topic: str = Field(..., min_length=10, max_length=200)
    audience: str = Field(..., min_length=3, max_length=100)
    industry: str = Field(..., min_length=3, max_length=50)
    content_tone: str = Field(..., min_length=3, max_length=30)
    word_count: int = Field(..., ge=300, le=5000)

    # Style & structure
    keywords: list[str] = Field(default_factory=list, max_length=20)
    content_type: str = Field(default="blog-article", max_length=50)
    structure_format: str = Field(default="intro-points-cta", max_length=50)
    writing_personality: Optional[str] = Field(default=None, max_length=100)
    reading_level: Optional[str] = Field(default=None, max_length=20)
    cta_type: str = Field(default="none", max_length=50)
    structure_notes: str = Field(default="", max_length=2000)

    # Feature flags
    include_stats: StrictBool = False
    include_references: StrictBool = False
    toc_required: StrictBool = False
    summary_required: StrictBool = False
    structured_data: StrictBool = False
    enable_metadata_block: StrictBool = False

    # Media
    media_urls: list[str] = Field(default_factory=list, max_length=10)
    media_captions: list[str] = Field(default_factory=list, max_length=10)
    media_analysis: list[str] = Field(default_factory=list, max_length=10)
    media_placement_strategy: MediaPlacementStrategy = MediaPlacementStrategy.AUTO

    # Geo / localization
    target_location: str = Field(default="", max_length=100)
    geographic_scope: GeographicScope = GeographicScope.GLOBAL
    market_focus: list[str] = Field(default_factory=list, max_length=10)
    local_seo_keywords: list[str] = Field(default_factory=list, max_length=20)
    cultural_context: str = Field(default="", max_length=500)

    # Output
    output_format: OutputFormat = OutputFormat.MARKDOWN
    lang: str = Field(default="en", pattern=r"^[a-z]{2}(-[A-Z]{2})?$")

    @property
    def has_media(self) -> bool:
        return bool(self.media_urls)

    @property
    def is_localized(self) -> bool:
        """Location guidance applies only with a target and a non-global scope."""
        return bool(self.target_location) and self.geographic_scope.is_localized


# =============================================================================
# QUOTA MODELS
# =============================================================================


class QuotaState(BaseModelConfig):
    """
    Per-user usage counters.

    Missing counters read as zero and a missing plan as free.
    """

    requests_used: int = Field(default=0, ge=0)
    requests_limit: int = Field(default=0, ge=0)
    flexy_requests: int = Field(default=0, ge=0)
    plan_type: PlanType = PlanType.FREE

    @field_validator("requests_used", "requests_limit", "flexy_requests", mode="before")
    @classmethod
    def none_as_zero(cls, v: Any) -> Any:
        return 0 if v is None else v

    @field_validator("plan_type", mode="before")
    @classmethod
    def coerce_plan(cls, v: Any) -> Any:
        if v is None or v == "":
            return PlanType.FREE
        if isinstance(v, str) and get_enum_by_value(PlanType, v) is None:
            # Unknown paid plans are metered like basic
            return PlanType.BASIC
        return v

    @computed_field
    @property
    def total_available(self) -> int:
        return self.requests_limit + self.flexy_requests

    @computed_field
    @property
    def remaining(self) -> int:
        return self.total_available - self.requests_used


class AdmissionDecision(BaseModelConfig):
    """
    Outcome of the optimistic quota pre-check.

    A denial is a normal result rendered to the caller, not an exception.
    """

    admitted: bool
    remaining: int
    plan_type: PlanType
    state: QuotaState
    error: Optional[str] = None
    message: Optional[str] = None

    def to_denial_payload(self) -> dict[str, Any]:
        return {
            "hasUsage": False,
            "error": self.error,
            "message": self.message,
            "requestsRemaining": max(0, self.remaining),
            "planType": self.plan_type.value,
        }


# =============================================================================
# OUTLINE MODELS
# =============================================================================


class OutlineModelConfig(BaseModelConfig):
    """Outline documents keep any extra keys the provider returned."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="allow",
    )


class HumanElements(OutlineModelConfig):
    story_opportunity: Optional[str] = None
    emotional_connection: Optional[str] = None
    practical_value: Optional[str] = None


class Subsection(OutlineModelConfig):
    subtitle: str
    focus_area: Optional[str] = None
    word_count: int = Field(default=0, ge=0)


class OutlineSection(OutlineModelConfig):
    """One ordered section of the article plan."""

    title: str = Field(..., min_length=1)
    word_count: int = Field(default=0, ge=0)
    tone: Optional[str] = None
    key_points: list[str] = Field(default_factory=list)
    human_elements: Optional[HumanElements] = None
    subsections: list[Subsection] = Field(default_factory=list)
    reference_opportunities: Optional[Any] = None
    media_placement: Optional[Any] = None


class OutlineMeta(OutlineModelConfig):
    estimated_reading_time: Optional[str] = None
    primary_emotion: Optional[str] = None
    key_value_proposition: Optional[str] = None
    topics: list[str] = Field(default_factory=list)

    @field_validator("estimated_reading_time", mode="before")
    @classmethod
    def minutes_from_number(cls, v: Any) -> Any:
        """Providers sometimes answer with a bare number of minutes."""
        if isinstance(v, (int, float)) and not isinstance(v, bool):
            return f"{math.ceil(v)} minutes"
        return v


class SeoStrategy(OutlineModelConfig):
    meta_description: Optional[str] = None
    primary_keyword: Optional[str] = None
    keyword_density: Optional[str] = None
    featured_snippet_target: Optional[str] = None


class ConclusionPlan(OutlineModelConfig):
    approach: Optional[str] = None
    emotional_goal: Optional[str] = None
    cta_integration: Optional[str] = None


class Outline(OutlineModelConfig):
    """
    Structured article plan produced before prose generation.

    Each generation attempt yields a fresh value; outlines are never edited
    in place.
    """

    meta: OutlineMeta = Field(default_factory=OutlineMeta)
    hook_options: list[str] = Field(default_factory=list)
    sections: list[OutlineSection] = Field(..., min_length=1)
    seo_strategy: Optional[SeoStrategy] = None
    conclusion: Optional[ConclusionPlan] = None
    references_section: Optional[dict[str, Any]] = None
    media_strategy: Optional[dict[str, Any]] = None

    @property
    def section_count(self) -> int:
        return len(self.sections)

    @property
    def has_emotional_elements(self) -> bool:
        return any(
            s.human_elements is not None and bool(s.human_elements.emotional_connection)
            for s in self.sections
        )

    @property
    def has_actionable_content(self) -> bool:
        return any(
            s.human_elements is not None and bool(s.human_elements.practical_value)
            for s in self.sections
        )

    def to_payload(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


# =============================================================================
# CONTENT RECORD MODELS
# =============================================================================


class ContentQuality(BaseModelConfig):
    has_emotional_elements: bool = False
    has_actionable_content: bool = False
    seo_optimized: bool = False
    structure_complexity: int = Field(default=0, ge=0)


class ContentMetadata(BaseModelConfig):
    """
    Metadata block persisted with each completed record.

    Durations are milliseconds. `fallback` is true whenever the final
    outline did not come from the full-prompt tier.
    """

    actual_word_count: int = Field(..., ge=0)
    estimated_reading_time: int = Field(..., ge=0)
    generation_time: int = Field(default=0, ge=0)
    outline_generation_time: int = Field(default=0, ge=0)
    content_generation_time: int = Field(default=0, ge=0)
    version: str
    reading_level: str = "General"
    has_references: bool = False
    content_personality: str = "Professional"
    content_emotion: str = "Informative"
    topics: list[str] = Field(default_factory=list)
    meta_title: str
    meta_description: str
    content_quality: ContentQuality = Field(default_factory=ContentQuality)
    fallback: bool = False
    outline_tier: OutlineTier = OutlineTier.FULL
    language: str = "en"
    output_format: OutputFormat = OutputFormat.MARKDOWN
    generated_at: datetime = Field(default_factory=datetime.utcnow)


class GeneratedContentRecord(BaseModelConfig):
    """
    Final persisted entity, written exactly once per pipeline run.

    A terminal failure writes the same id with status=failed instead.
    """

    id: UUID = Field(default_factory=uuid4)
    user_id: UUID
    module_type: str = "longform"
    inputs: dict[str, Any] = Field(default_factory=dict)
    outline: Optional[Outline] = None
    content: Optional[str] = None
    metadata: Optional[ContentMetadata] = None
    status: ContentStatus = ContentStatus.COMPLETED
    error: Optional[str] = None
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    @computed_field
    @property
    def is_completed(self) -> bool:
        return self.status.is_success


class SettlementResult(BaseModelConfig):
    """Committed record plus the post-debit balance, floored at zero."""

    record: GeneratedContentRecord
    remaining: int = Field(..., ge=0)
    quota: QuotaState


# =============================================================================
# MODULE EXPORTS
# =============================================================================

__all__ = [
    # Base
    "BaseModelConfig",
    # Request
    "GenerationRequest",
    # Quota
    "QuotaState",
    "AdmissionDecision",
    # Outline
    "HumanElements",
    "Subsection",
    "OutlineSection",
    "OutlineMeta",
    "SeoStrategy",
    "ConclusionPlan",
    "Outline",
    # Content
    "ContentQuality",
    "ContentMetadata",
    "GeneratedContentRecord",
    "SettlementResult",
]
