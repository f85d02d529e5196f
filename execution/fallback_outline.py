"""
Deterministic Fallback Outline
==============================
Synthesizes a structurally valid Outline from the request alone.

No external call and no failure path: this is the floor of the outline
degradation chain and the safe outline for the late content fallback.

Architecture: Template tables + pure builder
"""

import math
from dataclasses import dataclass
from typing import Any

from config.constants import WORDS_PER_MINUTE
from core.models import GenerationRequest, Outline

# =============================================================================
# TEMPLATES
# =============================================================================


@dataclass(frozen=True)
class SectionTemplate:
    """One section blueprint; `share` is the fraction of the target word count."""

    title: str
    share: float
    key_points: tuple[str, ...]
    story: str
    emotion: str
    practical: str


STRUCTURE_TEMPLATES: dict[str, tuple[SectionTemplate, ...]] = {
    "how-to-steps": (
        SectionTemplate(
            "How to {topic}: Complete Step-by-Step Guide", 0.15,
            ("Overview of the process", "What readers will learn", "Prerequisites and requirements"),
            "User success story or common frustration",
            "Building confidence about the process",
            "Clear expectations and outcomes",
        ),
        SectionTemplate(
            "Step 1: Getting Started", 0.2,
            ("Initial setup", "First actions to take", "Common beginner mistakes to avoid"),
            "First-time experience scenario",
            "Reducing anxiety about starting",
            "Concrete first steps",
        ),
        SectionTemplate(
            "Step 2: Building Momentum", 0.2,
            ("Next level actions", "Building on previous step", "Tips for efficiency"),
            "Progress milestone story",
            "Celebrating early wins",
            "Advanced techniques",
        ),
        SectionTemplate(
            "Step 3: Mastering the Process", 0.25,
            ("Advanced techniques", "Optimization strategies", "Troubleshooting common issues"),
            "Expert-level application",
            "Building expertise and confidence",
            "Pro tips and best practices",
        ),
        SectionTemplate(
            "Conclusion & Next Steps", 0.2,
            ("Summary of accomplishments", "What to do next", "Resources for continued learning"),
            "Long-term success vision",
            "Empowerment and motivation",
            "Clear path forward",
        ),
    ),
    "faq-qa": (
        SectionTemplate(
            "{topic}: Frequently Asked Questions", 0.12,
            ("Introduction to the topic", "Scope of questions covered", "How to use this guide"),
            "Common user scenarios",
            "Understanding user concerns",
            "Navigation guide",
        ),
        SectionTemplate(
            "Basic Questions", 0.25,
            ("What is questions", "Why questions", "When questions"),
            "Beginner experiences",
            "Reducing confusion and anxiety",
            "Foundational understanding",
        ),
        SectionTemplate(
            "Getting Started Questions", 0.25,
            ("How to start", "What you need", "First steps"),
            "First-time user journey",
            "Building confidence to begin",
            "Actionable starting points",
        ),
        SectionTemplate(
            "Advanced Questions", 0.25,
            ("Complex scenarios", "Troubleshooting", "Optimization"),
            "Power user experiences",
            "Advanced mastery",
            "Expert-level insights",
        ),
        SectionTemplate(
            "Additional Resources", 0.13,
            ("Where to get help", "Further reading", "Community resources"),
            "Continuing education journey",
            "Ongoing support and growth",
            "Resource directory",
        ),
    ),
    "comparison-vs": (
        SectionTemplate(
            "{topic}: Complete Comparison Guide", 0.15,
            ("What's being compared", "Why comparison matters", "How to use this guide"),
            "Decision-making scenario",
            "Understanding the dilemma",
            "Framework for comparison",
        ),
        SectionTemplate(
            "Option A: In-Depth Analysis", 0.25,
            ("Key features", "Strengths and benefits", "Ideal use cases"),
            "Success story with Option A",
            "Excitement about possibilities",
            "When to choose this option",
        ),
        SectionTemplate(
            "Option B: Comprehensive Review", 0.25,
            ("Key features", "Strengths and benefits", "Ideal use cases"),
            "Success story with Option B",
            "Alternative path excitement",
            "When to choose this option",
        ),
        SectionTemplate(
            "Side-by-Side Comparison", 0.2,
            ("Feature comparison", "Pros and cons", "Cost analysis"),
            "Real user choosing between options",
            "Confidence in decision-making",
            "Clear comparison framework",
        ),
        SectionTemplate(
            "Final Recommendation", 0.15,
            ("Best choice for different scenarios", "Final thoughts", "How to proceed"),
            "Successful implementation story",
            "Clarity and confidence",
            "Decision-making guidance",
        ),
    ),
    "review-analysis": (
        SectionTemplate(
            "{topic}: Complete Review and Analysis", 0.12,
            ("What's being reviewed", "Review methodology", "Key evaluation criteria"),
            "Why this review matters",
            "Understanding user needs",
            "Review framework",
        ),
        SectionTemplate(
            "Key Features and Capabilities", 0.25,
            ("Core features", "Unique capabilities", "User interface"),
            "First impressions experience",
            "Excitement about features",
            "Feature breakdown",
        ),
        SectionTemplate(
            "What We Loved (Pros)", 0.2,
            ("Standout strengths", "User experience highlights", "Value propositions"),
            "Positive user experiences",
            "Satisfaction and delight",
            "Key benefits",
        ),
        SectionTemplate(
            "Areas for Improvement (Cons)", 0.18,
            ("Limitations", "User frustrations", "Missing features"),
            "Challenging user scenarios",
            "Honest assessment",
            "Realistic expectations",
        ),
        SectionTemplate(
            "Final Verdict and Recommendation", 0.25,
            ("Overall rating", "Who should use this", "Final thoughts"),
            "Ideal user success story",
            "Confident recommendation",
            "Clear guidance",
        ),
    ),
    "case-study-detailed": (
        SectionTemplate(
            "{topic}: Case Study Overview", 0.1,
            ("Executive summary", "Key outcomes", "Why this matters"),
            "Setting the scene",
            "Inspiring possibility",
            "Key takeaways preview",
        ),
        SectionTemplate(
            "Background and Context", 0.15,
            ("Initial situation", "Market conditions", "Stakeholders involved"),
            "Behind-the-scenes setup",
            "Understanding the stakes",
            "Context for decisions",
        ),
        SectionTemplate(
            "The Challenge", 0.2,
            ("Problem definition", "Constraints faced", "Why traditional solutions failed"),
            "Moment of crisis or realization",
            "Tension and urgency",
            "Problem identification",
        ),
        SectionTemplate(
            "The Solution and Implementation", 0.3,
            ("Strategic approach", "Implementation steps", "Key decisions made"),
            "Breakthrough moments",
            "Innovation and determination",
            "Actionable strategies",
        ),
        SectionTemplate(
            "Results and Key Takeaways", 0.25,
            ("Quantifiable results", "Lessons learned", "Actionable insights"),
            "Success celebration",
            "Achievement and satisfaction",
            "Replicable insights",
        ),
    ),
}


def _default_templates() -> tuple[SectionTemplate, ...]:
    """Generic five-section guide for any other structure format."""
    key_points = (
        "Essential information for {audience}",
        "Practical implementation strategies",
        "Real-world examples and case studies",
    )
    titles = [
        "Understanding {topic}: A Complete Guide for {audience}",
        "Strategy 1: Key Approaches to {topic}",
        "Strategy 2: Key Approaches to {topic}",
        "Strategy 3: Key Approaches to {topic}",
        "Your Next Steps: Implementing {topic} Successfully",
    ]
    return tuple(
        SectionTemplate(
            title,
            0.2,
            key_points,
            "Real-world scenario relevant to {industry}",
            "Building confidence and understanding",
            "Actionable insights and next steps",
        )
        for title in titles
    )


DEFAULT_TEMPLATES = _default_templates()


# =============================================================================
# BUILDER
# =============================================================================


def _section_word_count(template: SectionTemplate, word_count: int, is_default: bool) -> int:
    if is_default:
        return word_count // 5
    return math.floor(word_count * template.share)


def _build_section(
    index: int,
    template: SectionTemplate,
    request: GenerationRequest,
    is_default: bool,
) -> dict[str, Any]:
    fields = {
        "topic": request.topic,
        "audience": request.audience,
        "industry": request.industry,
    }
    word_count = _section_word_count(template, request.word_count, is_default)
    key_points = [point.format(**fields) for point in template.key_points]

    section: dict[str, Any] = {
        "title": template.title.format(**fields),
        "wordCount": word_count,
        "tone": request.content_tone,
        "keyPoints": key_points,
        "humanElements": {
            "storyOpportunity": template.story.format(**fields),
            "emotionalConnection": template.emotion,
            "practicalValue": template.practical,
        },
        "subsections": [
            {
                "subtitle": point,
                "focusArea": f"Implementation of {point.lower()}",
                "wordCount": word_count // len(key_points),
            }
            for point in key_points
        ],
    }

    if request.include_references:
        section["referenceOpportunities"] = {
            "authoritySourceTypes": "Industry authorities, government sources, and research studies",
            "integrationStrategy": "Natural integration throughout content flow",
        }

    if index < len(request.media_urls):
        section["mediaPlacement"] = {
            "recommendedImages": [f"Image {index + 1} for section illustration"],
            "placementRationale": "Visual support for key concepts",
            "altTextSuggestions": [f"{request.topic} illustration {index + 1} for {request.audience}"],
            "captionIdeas": [f"Visual guide to {request.topic} concept {index + 1}"],
        }

    return section


def build_fallback_outline(request: GenerationRequest) -> Outline:
    """
    Build a complete outline from the request fields.

    Args:
        request: Validated generation request

    Returns:
        Outline with five sections shaped by the structure format
    """
    templates = STRUCTURE_TEMPLATES.get(request.structure_format)
    is_default = templates is None
    templates = templates or DEFAULT_TEMPLATES

    sections = [
        _build_section(i, template, request, is_default) for i, template in enumerate(templates)
    ]
    topic, audience = request.topic, request.audience

    document: dict[str, Any] = {
        "meta": {
            "estimatedReadingTime": f"{math.ceil(request.word_count / WORDS_PER_MINUTE)} minutes",
            "primaryEmotion": "informed and empowered",
            "keyValueProposition": (
                f"Comprehensive {request.structure_format} guide to {topic} for {audience}"
            ),
        },
        "hookOptions": [
            f"Did you know that {audience} face this exact challenge with {topic} every single day?",
            f"Picture this: You're a {audience.lower()} trying to navigate {topic}, "
            "and everything feels overwhelming.",
            f"Here's the truth about {topic} that most {audience} never discover...",
        ],
        "sections": sections,
        "seoStrategy": {
            "metaDescription": (
                f"Discover essential {topic} strategies for {audience} in {request.industry}. "
                "Expert insights, practical tips, and actionable advice."
            ),
            "primaryKeyword": request.keywords[0] if request.keywords else topic,
            "keywordDensity": "natural integration throughout content with semantic variations",
            "featuredSnippetTarget": "how-to guide with step-by-step instructions",
        },
        "conclusion": {
            "approach": "synthesize key insights and provide clear next steps",
            "emotionalGoal": "confident and motivated to implement learnings",
            "ctaIntegration": (
                request.cta_type
                if request.cta_type != "none"
                else "encouraging action without sales pressure"
            ),
        },
    }

    if request.include_references:
        document["referencesSection"] = {
            "sourceCount": "3-7 sources recommended",
            "sourceTypes": "mix of .gov, .edu, and authoritative industry sources",
            "formattingStyle": "clean list with clickable links and brief descriptions",
        }

    if request.media_urls:
        document["mediaStrategy"] = {
            "overallPlacementApproach": (
                f"{request.media_placement_strategy.value} placement strategy "
                "for optimal content flow"
            ),
            "imageCount": len(request.media_urls),
            "strategicPlacements": [
                {
                    "imageIndex": index,
                    "recommendedSection": f"Section {min(index + 1, len(sections))}",
                    "placementReason": "Visual support for key concepts",
                    "altTextSuggestion": f"Illustration showing {topic} concept {index + 1}",
                    "captionSuggestion": f"Visual guide to understanding this aspect of {topic}",
                }
                for index in range(len(request.media_urls))
            ],
            "visualNarrativeFlow": "Images strategically placed to support learning progression",
        }

    return Outline.model_validate(document)


__all__ = ["build_fallback_outline", "STRUCTURE_TEMPLATES", "SectionTemplate"]
