"""
Unit Tests for the Outline Degradation Chain
============================================

Tests cover:
- Full tier success on the first call
- In-tier retries, escalation to the simplified tier and its own budget
- Deterministic fallback under total provider outage
- Fatal errors propagating from any tier
- Short or unparseable responses treated as malformed output
"""

import json

import pytest

from conftest import OUTLINE_DOCUMENT, OUTLINE_JSON, ScriptedOutlineProvider
from core.enums import OutlineTier
from core.exceptions import (
    MalformedOutputError,
    ProviderAuthenticationError,
    ProviderOverloadedError,
    ProviderTransientError,
)
from execution.outline_generator import (
    NeedsEscalation,
    OutlineGenerationConfig,
    OutlineGenerator,
)

CONFIG = OutlineGenerationConfig(
    max_retries=2, simplified_max_retries=1, base_delay=0.1, max_delay=1.0, jitter=0.0
)


def _generator(provider, sleep_recorder, metrics=None) -> OutlineGenerator:
    return OutlineGenerator(provider, config=CONFIG, metrics=metrics, sleep=sleep_recorder)


class TestFullTier:
    @pytest.mark.asyncio
    async def test_first_call_succeeds(self, generation_request, sleep_recorder, metrics):
        provider = ScriptedOutlineProvider(OUTLINE_JSON)

        result = await _generator(provider, sleep_recorder, metrics).generate(generation_request)

        assert result.tier is OutlineTier.FULL
        assert result.is_fallback is False
        assert result.escalations == ()
        assert result.outline.section_count == 2
        assert result.outline.meta.primary_emotion == "confident"
        assert len(provider.calls) == 1
        assert sleep_recorder.delays == []

        _, params = provider.calls[0]
        assert params.max_output_tokens == 3000
        assert metrics.registry.get_sample_value(
            "longform_outline_tier_total", {"tier": "full"}
        ) == 1.0

    @pytest.mark.asyncio
    async def test_retries_within_tier(self, generation_request, sleep_recorder):
        provider = ScriptedOutlineProvider(ProviderTransientError("timeout"), OUTLINE_JSON)

        result = await _generator(provider, sleep_recorder).generate(generation_request)

        assert result.tier is OutlineTier.FULL
        assert len(provider.calls) == 2
        assert sleep_recorder.delays == [pytest.approx(0.1)]

    @pytest.mark.asyncio
    async def test_fenced_output_is_parsed(self, generation_request, sleep_recorder):
        fenced = "```json\n" + OUTLINE_JSON + "\n```"
        provider = ScriptedOutlineProvider(fenced)

        result = await _generator(provider, sleep_recorder).generate(generation_request)

        assert result.tier is OutlineTier.FULL
        assert result.outline.to_payload()["sections"][0]["title"] == "Why packaging matters"


class TestEscalation:
    @pytest.mark.asyncio
    async def test_overload_escalates_without_retrying(self, generation_request, sleep_recorder):
        provider = ScriptedOutlineProvider(ProviderOverloadedError("503 overloaded"), OUTLINE_JSON)

        result = await _generator(provider, sleep_recorder).generate(generation_request)

        assert result.tier is OutlineTier.SIMPLIFIED
        assert result.is_fallback is True
        assert len(provider.calls) == 2
        assert sleep_recorder.delays == []

        escalation = result.escalations[0]
        assert isinstance(escalation, NeedsEscalation)
        assert escalation.tier is OutlineTier.FULL
        assert escalation.reason == "fast_fail"

        # The simplified tier uses its own, smaller token budget
        _, params = provider.calls[1]
        assert params.max_output_tokens == 2000

    @pytest.mark.asyncio
    async def test_exhausted_full_budget_escalates(self, generation_request, sleep_recorder):
        timeouts = [ProviderTransientError("timeout")] * 3
        provider = ScriptedOutlineProvider(*timeouts, OUTLINE_JSON)

        result = await _generator(provider, sleep_recorder).generate(generation_request)

        assert result.tier is OutlineTier.SIMPLIFIED
        # Initial call + 2 retries on the full tier, then one simplified call
        assert len(provider.calls) == 4
        assert provider.calls[0][0] != provider.calls[3][0]

    @pytest.mark.asyncio
    async def test_total_outage_yields_fallback(self, generation_request, sleep_recorder, metrics):
        provider = ScriptedOutlineProvider(ProviderTransientError("connection reset"))

        result = await _generator(provider, sleep_recorder, metrics).generate(generation_request)

        assert result.tier is OutlineTier.FALLBACK
        assert result.outline.section_count == 5
        # Full: 1 + 2 retries, simplified: 1 + 1 retry
        assert len(provider.calls) == 5
        assert [e.tier for e in result.escalations] == [OutlineTier.FULL, OutlineTier.SIMPLIFIED]
        assert metrics.registry.get_sample_value(
            "longform_outline_tier_total", {"tier": "fallback"}
        ) == 1.0
        assert metrics.registry.get_sample_value(
            "retry_attempts_total", {"operation": "outline.full", "error_class": "retryable"}
        ) == 2.0

    @pytest.mark.asyncio
    async def test_unexpected_exception_degrades(self, generation_request, sleep_recorder):
        provider = ScriptedOutlineProvider(RuntimeError("socket closed unexpectedly"))

        result = await _generator(provider, sleep_recorder).generate(generation_request)

        assert result.tier is OutlineTier.FALLBACK


class TestMalformedOutput:
    @pytest.mark.asyncio
    async def test_short_text_is_malformed(self, generation_request, sleep_recorder):
        provider = ScriptedOutlineProvider('{"sections": []}', OUTLINE_JSON)

        result = await _generator(provider, sleep_recorder).generate(generation_request)

        assert result.tier is OutlineTier.FULL
        assert len(provider.calls) == 2

    @pytest.mark.asyncio
    async def test_wrong_shape_is_malformed(self, generation_request, sleep_recorder):
        no_sections = json.dumps({"meta": OUTLINE_DOCUMENT["meta"], "hookOptions": ["a", "b"]})
        provider = ScriptedOutlineProvider(no_sections)

        result = await _generator(provider, sleep_recorder).generate(generation_request)

        assert result.tier is OutlineTier.FALLBACK
        assert isinstance(result.escalations[0].error, MalformedOutputError)


class TestFatalErrors:
    @pytest.mark.asyncio
    async def test_auth_failure_on_full_tier_propagates(self, generation_request, sleep_recorder):
        provider = ScriptedOutlineProvider(ProviderAuthenticationError("invalid key"))

        with pytest.raises(ProviderAuthenticationError):
            await _generator(provider, sleep_recorder).generate(generation_request)

        assert len(provider.calls) == 1

    @pytest.mark.asyncio
    async def test_auth_failure_on_simplified_tier_propagates(
        self, generation_request, sleep_recorder
    ):
        provider = ScriptedOutlineProvider(
            ProviderOverloadedError(), ProviderAuthenticationError("revoked")
        )

        with pytest.raises(ProviderAuthenticationError):
            await _generator(provider, sleep_recorder).generate(generation_request)

        assert len(provider.calls) == 2
