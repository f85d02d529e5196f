"""
Domain Enumerations & Type Taxonomy
====================================
Type-safe enumerations for the long-form generation pipeline with
string values for JSON payloads and database storage.

Architecture: Type-Driven Design + ADT (Algebraic Data Types)
"""

from enum import Enum, IntEnum
from typing import Optional


class ContentStatus(str, Enum):
    """
    Persisted lifecycle state of a generated content record.

    A record is written once as COMPLETED, or once as FAILED when a
    late-stage error escapes after the content id was reserved.
    """

    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_success(self) -> bool:
        return self is ContentStatus.COMPLETED


class StructureFormat(str, Enum):
    """
    Article archetypes with dedicated fallback section templates.

    Any other structure string is accepted on input and falls back to
    the generic five-section template.
    """

    INTRO_POINTS_CTA = "intro-points-cta"
    HOW_TO_STEPS = "how-to-steps"
    FAQ_QA = "faq-qa"
    COMPARISON_VS = "comparison-vs"
    REVIEW_ANALYSIS = "review-analysis"
    CASE_STUDY_DETAILED = "case-study-detailed"


class MediaPlacementStrategy(str, Enum):
    """How uploaded media is distributed across sections."""

    AUTO = "auto"
    MANUAL = "manual"
    SEMANTIC = "semantic"


class GeographicScope(str, Enum):
    """Geographic reach of the content for local SEO targeting."""

    LOCAL = "local"
    REGIONAL = "regional"
    NATIONAL = "national"
    GLOBAL = "global"

    @property
    def is_localized(self) -> bool:
        """Check if location-specific guidance should be added to prompts."""
        return self is not GeographicScope.GLOBAL


class OutputFormat(str, Enum):
    """Final content markup."""

    MARKDOWN = "markdown"
    HTML = "html"


class PlanType(str, Enum):
    """Subscription plan shapes known to the quota ledger."""

    FREE = "free"
    BASIC = "basic"
    PREMIUM = "premium"
    FLEXY = "flexy"

    @property
    def upgrade_hint(self) -> str:
        """Remediation text appended to quota denials."""
        if self is PlanType.FREE:
            return "Upgrade to a paid plan to continue generating content."
        return "Purchase additional Flex requests to continue."


class OutlineTier(str, Enum):
    """
    Degradation tiers of the outline generator, in escalation order.

    FULL and SIMPLIFIED call the outline provider; FALLBACK is the
    deterministic template and never calls out.
    """

    FULL = "full"
    SIMPLIFIED = "simplified"
    FALLBACK = "fallback"

    @property
    def is_degraded(self) -> bool:
        """Anything but the full-prompt outline is reported as a fallback."""
        return self is not OutlineTier.FULL


class ErrorClass(str, Enum):
    """
    Retry classification of a failure.

    Drives the retry policy: only RETRYABLE errors are attempted again
    in place. FAST_FAIL escalates to the next degradation tier, FATAL
    propagates to the caller.
    """

    RETRYABLE = "retryable"
    FAST_FAIL = "fast_fail"
    FATAL = "fatal"

    @property
    def should_retry(self) -> bool:
        return self is ErrorClass.RETRYABLE


class ErrorSeverity(IntEnum):
    """
    Error classification by impact severity.

    Carried in error payloads and logs.
    """

    CRITICAL = 5  # System failure, immediate intervention required
    ERROR = 4  # Operation failed
    WARNING = 3  # Degraded behaviour
    INFO = 2
    DEBUG = 1


# =============================================================================
# UTILITY FUNCTIONS
# =============================================================================


def get_enum_by_value(enum_class: type[Enum], value: str) -> Optional[Enum]:
    """
    Safe enum lookup by value with None fallback.

    Args:
        enum_class: The enum class to search
        value: The string value to find

    Returns:
        Matching enum member or None if not found
    """
    try:
        return enum_class(value)
    except (ValueError, KeyError):
        return None


def enum_values(enum_class: type[Enum]) -> list[str]:
    """List the raw values of an enum, in declaration order."""
    return [member.value for member in enum_class]


# =============================================================================
# MODULE EXPORTS
# =============================================================================

__all__ = [
    # Content
    "ContentStatus",
    "StructureFormat",
    "MediaPlacementStrategy",
    "GeographicScope",
    "OutputFormat",
    # Quota
    "PlanType",
    # Pipeline
    "OutlineTier",
    "ErrorClass",
    "ErrorSeverity",
    # Utilities
    "get_enum_by_value",
    "enum_values",
]
