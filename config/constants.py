"""
System Constants & Invariants
==============================
Immutable domain constants defining pipeline behavior boundaries,
user-facing messages, and prompt guidance fragments.

Architecture: Value Objects + Namespace Organization
"""

from dataclasses import dataclass, field
from typing import Final

# =============================================================================
# PIPELINE CONSTANTS
# =============================================================================

CONTENT_VERSION: Final = "2.2.0"
MODULE_TYPE: Final = "longform"
WORDS_PER_MINUTE: Final = 200


# =============================================================================
# USER-FACING MESSAGES
# =============================================================================


@dataclass(frozen=True)
class Messages:
    """Caller-visible message templates."""

    VALIDATION_PREFIX: str = "Validation errors: "
    AUTH_REQUIRED: str = "Authentication required to generate content."
    PROFILE_NOT_FOUND: str = "User profile not found. Please complete your profile setup."
    QUOTA_DENIED: str = (
        "Blog generation requires {cost} requests. You need {shortfall} more requests. {hint}"
    )
    LIMIT_REACHED: str = "limit_reached"
    SUCCESS: str = "Long-form content generated successfully!"
    TERMINAL_FAILURE: str = (
        "Content generation failed: {reason}. "
        "Please try again or contact support if the issue persists."
    )


MESSAGES: Final = Messages()


# =============================================================================
# TONE GUIDANCE
# =============================================================================


def _tone_table() -> dict[str, str]:
    friendly = "Warm, approachable and conversational; speak directly to the reader."
    professional = "Formal and precise; business vocabulary, no slang."
    thought_provoking = "Challenge assumptions, pose open questions, explore implications."
    expert = "Deep, nuanced and technical where it helps; show first-hand mastery."
    persuasive = "Build a clear argument with evidence and a confident call to action."
    informative = "Neutral and factual; explain clearly and avoid opinion."
    casual = "Relaxed and chatty; contractions and everyday examples are welcome."
    authoritative = "Confident and decisive; take clear positions backed by evidence."
    inspirational = "Uplifting and motivating; focus on possibility and progress."
    humorous = "Light and witty without undermining the practical value."
    empathetic = "Acknowledge the reader's struggles and offer supportive guidance."
    return {
        "friendly": friendly,
        "professional": professional,
        "thoughtprovoking": thought_provoking,
        "thought-provoking": thought_provoking,
        "expert": expert,
        "persuasive": persuasive,
        "informative": informative,
        "informative/neutral": informative,
        "neutral": informative,
        "casual": casual,
        "casual/conversational": casual,
        "conversational": casual,
        "authoritative": authoritative,
        "authoritative/confident": authoritative,
        "confident": authoritative,
        "inspirational": inspirational,
        "inspirational/motivational": inspirational,
        "motivational": inspirational,
        "humorous": humorous,
        "humorous/witty": humorous,
        "witty": humorous,
        "empathetic": empathetic,
    }


@dataclass(frozen=True)
class ToneGuidance:
    """Tone keyword to writing-style guidance, case-insensitive lookup."""

    table: dict[str, str] = field(default_factory=_tone_table)
    default: str = "Clear, engaging and genuinely helpful to the target audience."

    def for_tone(self, tone: str) -> str:
        return self.table.get(tone.strip().lower(), self.default)


TONE_GUIDANCE: Final = ToneGuidance()


# =============================================================================
# MODULE EXPORTS
# =============================================================================

__all__ = [
    "CONTENT_VERSION",
    "MODULE_TYPE",
    "WORDS_PER_MINUTE",
    "MESSAGES",
    "TONE_GUIDANCE",
]
