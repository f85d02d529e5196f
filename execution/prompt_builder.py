"""
Prompt Builder
==============
Assembles provider prompts from a validated request and, for the content
stage, the outline.

- Full outline prompt: every brief field, JSON shape description
- Simplified outline prompt: minimal meta + sections shape, smaller budget
- Content messages: system persona + user instructions with the outline

Architecture: Pure functions over immutable inputs
"""

import json

from config.constants import TONE_GUIDANCE
from core.enums import OutputFormat
from core.models import GenerationRequest, Outline
from infrastructure.llm_client import ChatMessage

_OUTLINE_SHAPE = """{
  "meta": {"estimatedReadingTime": "N minutes", "primaryEmotion": "...", "keyValueProposition": "...", "topics": ["..."]},
  "hookOptions": ["..."],
  "sections": [
    {"title": "...", "wordCount": 0, "tone": "...", "keyPoints": ["..."],
     "humanElements": {"storyOpportunity": "...", "emotionalConnection": "...", "practicalValue": "..."},
     "subsections": [{"subtitle": "...", "focusArea": "...", "wordCount": 0}]}
  ],
  "seoStrategy": {"metaDescription": "...", "primaryKeyword": "...", "keywordDensity": "...", "featuredSnippetTarget": "..."},
  "conclusion": {"approach": "...", "emotionalGoal": "...", "ctaIntegration": "..."}
}"""

_SIMPLIFIED_SHAPE = """{
  "meta": {"estimatedReadingTime": "N minutes", "primaryEmotion": "..."},
  "sections": [{"title": "...", "wordCount": 0, "keyPoints": ["..."]}]
}"""


def _geo_lines(request: GenerationRequest) -> list[str]:
    if not request.is_localized:
        return []
    lines = [f"Location focus: {request.target_location} ({request.geographic_scope.value} scope)."]
    if request.market_focus:
        lines.append(f"Market focus: {', '.join(request.market_focus)}.")
    if request.local_seo_keywords:
        lines.append(f"Local SEO keywords: {', '.join(request.local_seo_keywords)}.")
    if request.cultural_context:
        lines.append(f"Cultural context: {request.cultural_context}.")
    return lines


def _media_lines(request: GenerationRequest) -> list[str]:
    if not request.has_media:
        return []
    lines = [
        f"{len(request.media_urls)} images are available "
        f"(placement strategy: {request.media_placement_strategy.value})."
    ]
    for index, url in enumerate(request.media_urls):
        caption = request.media_captions[index] if index < len(request.media_captions) else ""
        analysis = request.media_analysis[index] if index < len(request.media_analysis) else ""
        detail = " | ".join(part for part in (caption, analysis) if part)
        lines.append(f"Image {index + 1}: {url}" + (f" ({detail})" if detail else ""))
    return lines


def _brief_lines(request: GenerationRequest) -> list[str]:
    lines = [
        f"Topic: {request.topic}",
        f"Audience: {request.audience}",
        f"Industry: {request.industry}",
        f"Tone: {request.content_tone}. {TONE_GUIDANCE.for_tone(request.content_tone)}",
        f"Target length: {request.word_count} words",
        f"Content type: {request.content_type}",
        f"Structure: {request.structure_format}",
        f"Language: {request.lang}",
    ]
    if request.keywords:
        lines.append(f"Keywords: {', '.join(request.keywords)}")
    if request.writing_personality:
        lines.append(f"Writing personality: {request.writing_personality}")
    if request.reading_level:
        lines.append(f"Reading level: {request.reading_level}")
    if request.cta_type != "none":
        lines.append(f"Call to action: {request.cta_type}")
    if request.structure_notes:
        lines.append(f"Structure notes: {request.structure_notes}")
    return lines


# =============================================================================
# OUTLINE PROMPTS
# =============================================================================


def build_outline_prompt(request: GenerationRequest) -> str:
    """Full outline prompt covering every field of the brief."""
    parts = ["Create a detailed, human-centered outline for a long-form article.", ""]
    parts.extend(_brief_lines(request))
    parts.extend(_geo_lines(request))
    parts.extend(_media_lines(request))
    if request.include_stats:
        parts.append("Plan where current statistics support each section.")
    if request.include_references:
        parts.append("Add referenceOpportunities to sections and a referencesSection block.")
    if request.has_media:
        parts.append("Add mediaPlacement to sections and a mediaStrategy block.")
    parts.extend(
        [
            "",
            "Section word counts must add up to the target length.",
            "Respond with JSON only, matching this shape:",
            _OUTLINE_SHAPE,
        ]
    )
    return "\n".join(parts)


def build_simplified_outline_prompt(request: GenerationRequest) -> str:
    """Minimal outline prompt used after the full prompt has failed."""
    return "\n".join(
        [
            f"Outline a {request.word_count}-word article about {request.topic} "
            f"for {request.audience} in {request.industry}.",
            "Use 4 to 6 sections. Respond with JSON only, matching this shape:",
            _SIMPLIFIED_SHAPE,
        ]
    )


# =============================================================================
# CONTENT PROMPTS
# =============================================================================


def build_system_prompt(request: GenerationRequest) -> str:
    personality = request.writing_personality or "professional"
    return (
        f"You are an expert {request.industry} writer with a {personality} voice who creates authentic, "
        f"expert content for {request.audience}. "
        f"{TONE_GUIDANCE.for_tone(request.content_tone)}"
    )


def build_content_prompt(outline: Outline, request: GenerationRequest) -> str:
    """User message: brief, outline, and formatting instructions."""
    parts = [f"Write a complete {request.word_count}-word {request.content_type}.", ""]
    parts.extend(_brief_lines(request))
    parts.extend(_geo_lines(request))
    parts.extend(_media_lines(request))
    parts.extend(["", "Follow this outline:", json.dumps(outline.to_payload(), indent=2), ""])

    if request.toc_required:
        parts.append("Start with a table of contents.")
    if request.summary_required:
        parts.append("Include a short summary section.")
    if request.include_stats:
        parts.append("Support key claims with statistics.")
    if request.include_references:
        parts.append("End with a Sources section listing every external link used.")
    if request.enable_metadata_block:
        parts.append("Begin with a metadata block (title, description, keywords).")

    if request.output_format is OutputFormat.HTML:
        if request.structured_data:
            parts.append("Begin with a JSON-LD Article block in a script tag.")
        parts.append("FORMAT: Return clean semantic HTML.")
    else:
        parts.append("FORMAT: Return content in clean Markdown format.")
    return "\n".join(parts)


def build_content_messages(outline: Outline, request: GenerationRequest) -> list[ChatMessage]:
    return [
        ChatMessage(role="system", content=build_system_prompt(request)),
        ChatMessage(role="user", content=build_content_prompt(outline, request)),
    ]


__all__ = [
    "build_outline_prompt",
    "build_simplified_outline_prompt",
    "build_system_prompt",
    "build_content_prompt",
    "build_content_messages",
]
