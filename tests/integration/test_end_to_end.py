"""
End-to-End Integration Tests

Validates the complete long-form pipeline across all layers:
- Validation and quota admission (denials are payloads, not errors)
- Outline degradation chain and late content fallback
- Atomic settlement of record and quota debit
- Failed-status records on terminal errors
- Observability: outcome counters

Providers are scripted fakes. Persistence is the in-memory store with
all-or-nothing settlement, plus the real ledger and repository over a
mocked database session.
"""

import json
from unittest.mock import MagicMock
from uuid import UUID, uuid4

import pytest
from sqlalchemy.sql.dml import Insert, Update

from conftest import (
    ARTICLE_TEXT,
    OUTLINE_JSON,
    InMemoryContentRepository,
    InMemoryLedger,
    InMemoryStore,
    ScriptedContentProvider,
    ScriptedOutlineProvider,
    SleepRecorder,
    make_payload,
    mock_database,
    query_result,
    quota_row,
)
from core.enums import ContentStatus
from core.exceptions import (
    AuthenticationRequiredError,
    EntityNotFoundError,
    GenerationFailedError,
    InvalidInputError,
    ProviderAuthenticationError,
    ProviderOverloadedError,
    ProviderTransientError,
)
from core.models import QuotaState
from execution.content_generator import ContentGenerationConfig, ContentGenerator
from execution.outline_generator import OutlineGenerationConfig, OutlineGenerator
from knowledge.content_repository import ContentRepository
from knowledge.quota_ledger import QuotaLedger
from services.generation_service import GenerationService

pytestmark = pytest.mark.integration


# ============================================================================
# INTEGRATION TEST FIXTURES
# ============================================================================


class Pipeline:
    """Service wired to scripted providers and the in-memory store."""

    def __init__(
        self, store, outline_provider, content_provider, metrics=None, ledger=None, repository=None
    ):
        sleep = SleepRecorder()
        self.store = store
        self.outline_provider = outline_provider
        self.content_provider = content_provider
        self.repository = repository or InMemoryContentRepository(store)
        self.service = GenerationService(
            ledger=ledger or InMemoryLedger(store),
            repository=self.repository,
            outline_generator=OutlineGenerator(
                outline_provider,
                config=OutlineGenerationConfig(
                    max_retries=2, simplified_max_retries=1, base_delay=0.1, max_delay=1.0
                ),
                metrics=metrics,
                sleep=sleep,
            ),
            content_generator=ContentGenerator(
                content_provider,
                config=ContentGenerationConfig(max_retries=2, base_delay=0.1, max_delay=1.0),
                metrics=metrics,
                sleep=sleep,
            ),
            metrics=metrics,
        )

    async def run(self, user_id, payload=None):
        return await self.service.generate_longform(user_id, payload or make_payload())


def _pipeline(store, outline_items=(OUTLINE_JSON,), content_items=(ARTICLE_TEXT,), **kwargs):
    return Pipeline(
        store,
        ScriptedOutlineProvider(*outline_items),
        ScriptedContentProvider(*content_items),
        **kwargs,
    )


# ============================================================================
# HAPPY PATH
# ============================================================================


class TestCompletedGeneration:
    @pytest.mark.asyncio
    async def test_full_pipeline(self, store, metrics):
        user_id = store.add_user(requests_limit=10, plan_type="basic")
        pipeline = _pipeline(store, metrics=metrics)

        response = await pipeline.run(user_id)

        assert response["success"] is True
        assert response["requestsRemaining"] == 6
        assert response["message"] == "Long-form content generated successfully!"
        assert response["content"] == ARTICLE_TEXT
        assert response["outline"]["sections"][0]["title"] == "Why packaging matters"

        metadata = response["metadata"]
        assert metadata["fallback"] is False
        assert metadata["outlineTier"] == "full"
        assert metadata["actualWordCount"] == 350
        assert metadata["estimatedReadingTime"] == 2
        assert metadata["topics"] == ["packaging", "sustainability"]
        assert metadata["contentEmotion"] == "confident"
        assert metadata["metaDescription"] == (
            "A practical guide to sustainable packaging for small online stores."
        )
        assert metadata["metaTitle"] == metadata["metaDescription"][:60]
        assert metadata["contentQuality"] == {
            "hasEmotionalElements": True,
            "hasActionableContent": True,
            "seoOptimized": True,
            "structureComplexity": 2,
        }

        # Quota and record settled together
        assert store.users[user_id].requests_used == 4
        record = store.records[UUID(response["contentId"])]
        assert record.status is ContentStatus.COMPLETED
        assert record.user_id == user_id
        assert record.inputs["topic"] == "Sustainable packaging for small e-commerce brands"

        assert metrics.registry.get_sample_value(
            "longform_generation_total", {"outcome": "completed"}
        ) == 1.0

    @pytest.mark.asyncio
    async def test_flexy_units_are_consumed_first(self, store):
        user_id = store.add_user(requests_limit=10, requests_used=10, flexy_requests=5)

        response = await _pipeline(store).run(user_id)

        assert response["requestsRemaining"] == 1
        assert store.users[user_id].flexy_requests == 1
        assert store.users[user_id].requests_used == 10

    @pytest.mark.asyncio
    async def test_metadata_defaults_without_seo_block(self, store):
        user_id = store.add_user(requests_limit=10)
        bare_outline = '{"sections": [{"title": "Only section", "wordCount": 1200}], "meta": {}}'

        response = await _pipeline(store, outline_items=(bare_outline,)).run(
            user_id, make_payload(keywords=[])
        )

        metadata = response["metadata"]
        assert metadata["metaTitle"] == "Sustainable packaging for small e-commerce brands - Expert Guide"
        assert metadata["metaDescription"] == (
            "Comprehensive guide to Sustainable packaging for small e-commerce brands "
            "for Small business owners"
        )
        assert metadata["topics"] == ["Sustainable packaging for small e-commerce brands"]
        assert metadata["contentQuality"]["seoOptimized"] is False

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "seo_strategy, keywords, expected",
        [
            ({"primaryKeyword": "eco mailers"}, [], True),
            ({"metaDescription": "No keyword chosen"}, ["packaging"], False),
        ],
    )
    async def test_seo_flag_follows_outline_primary_keyword(
        self, store, seo_strategy, keywords, expected
    ):
        user_id = store.add_user(requests_limit=10)
        outline = json.dumps(
            {"sections": [{"title": "Only section", "wordCount": 1200}], "seoStrategy": seo_strategy}
        )

        response = await _pipeline(store, outline_items=(outline,)).run(
            user_id, make_payload(keywords=keywords)
        )

        assert response["metadata"]["contentQuality"]["seoOptimized"] is expected


# ============================================================================
# QUOTA DENIAL
# ============================================================================


class TestQuotaDenial:
    @pytest.mark.asyncio
    async def test_insufficient_balance_returns_denial(self, store, metrics):
        user_id = store.add_user(requests_limit=10, requests_used=8, plan_type="free")
        pipeline = _pipeline(store, metrics=metrics)

        response = await pipeline.run(user_id)

        assert response == {
            "hasUsage": False,
            "error": "limit_reached",
            "message": (
                "Blog generation requires 4 requests. You need 2 more requests. "
                "Upgrade to a paid plan to continue generating content."
            ),
            "requestsRemaining": 2,
            "planType": "free",
        }
        # No provider call, no record, no debit
        assert pipeline.outline_provider.calls == []
        assert pipeline.content_provider.calls == []
        assert store.records == {}
        assert store.users[user_id].requests_used == 8
        assert metrics.registry.get_sample_value(
            "longform_generation_total", {"outcome": "denied"}
        ) == 1.0

    @pytest.mark.asyncio
    async def test_balance_consumed_before_settlement(self, store):
        user_id = store.add_user(requests_limit=10)

        class RacingLedger(InMemoryLedger):
            """Admits, then lets a concurrent request consume most of the balance."""

            async def check_admission(self, uid):
                decision = await super().check_admission(uid)
                self.store.users[uid] = QuotaState(requests_used=8, requests_limit=10)
                return decision

        pipeline = _pipeline(store, ledger=RacingLedger(store))

        response = await pipeline.run(user_id)

        assert response["hasUsage"] is False
        assert response["requestsRemaining"] == 2
        assert store.users[user_id].requests_used == 8
        assert all(r.status is ContentStatus.FAILED for r in store.records.values())


# ============================================================================
# DEGRADATION
# ============================================================================


class TestDegradation:
    @pytest.mark.asyncio
    async def test_outline_outage_uses_deterministic_outline(self, store, metrics):
        user_id = store.add_user(requests_limit=10)
        pipeline = _pipeline(
            store, outline_items=(ProviderTransientError("timeout"),), metrics=metrics
        )

        response = await pipeline.run(user_id, make_payload(structureFormat="faq-qa"))

        assert response["success"] is True
        assert response["metadata"]["fallback"] is True
        assert response["metadata"]["outlineTier"] == "fallback"
        assert response["outline"]["sections"][0]["title"] == (
            "Sustainable packaging for small e-commerce brands: Frequently Asked Questions"
        )
        assert response["requestsRemaining"] == 6
        assert metrics.registry.get_sample_value(
            "longform_generation_total", {"outcome": "fallback"}
        ) == 1.0

    @pytest.mark.asyncio
    async def test_simplified_outline_is_reported_as_fallback(self, store):
        user_id = store.add_user(requests_limit=10)
        pipeline = _pipeline(store, outline_items=(ProviderOverloadedError(), OUTLINE_JSON))

        response = await pipeline.run(user_id)

        assert response["metadata"]["outlineTier"] == "simplified"
        assert response["metadata"]["fallback"] is True

    @pytest.mark.asyncio
    async def test_late_fallback_after_content_retries(self, store):
        user_id = store.add_user(requests_limit=10)
        failures = [ProviderTransientError("timeout")] * 3
        pipeline = _pipeline(store, content_items=(*failures, ARTICLE_TEXT))

        response = await pipeline.run(user_id)

        assert response["success"] is True
        assert response["metadata"]["fallback"] is True
        assert response["metadata"]["outlineTier"] == "fallback"
        assert len(response["outline"]["sections"]) == 5
        # Initial call + 2 retries, then exactly one call on the safe outline
        assert len(pipeline.content_provider.calls) == 4
        assert store.users[user_id].requests_used == 4


# ============================================================================
# TERMINAL FAILURES
# ============================================================================


class TestTerminalFailure:
    @pytest.mark.asyncio
    async def test_late_fallback_failure_records_failed_row(self, store, metrics):
        user_id = store.add_user(requests_limit=10)
        pipeline = _pipeline(
            store, content_items=(ProviderTransientError("upstream timeout"),), metrics=metrics
        )

        with pytest.raises(GenerationFailedError) as exc_info:
            await pipeline.run(user_id)

        error = exc_info.value
        assert str(error).startswith("Content generation failed: ")
        assert "upstream timeout" in str(error)
        assert len(pipeline.content_provider.calls) == 4

        # Quota untouched, failed record under the reserved id
        assert store.users[user_id].requests_used == 0
        record = store.records[pipeline.repository.failures_recorded[0]]
        assert str(record.id) == error.content_id
        assert record.status is ContentStatus.FAILED
        assert "upstream timeout" in record.error
        assert metrics.registry.get_sample_value(
            "longform_generation_total", {"outcome": "failed"}
        ) == 1.0

    @pytest.mark.asyncio
    async def test_fatal_content_error_skips_late_fallback(self, store):
        user_id = store.add_user(requests_limit=10)
        pipeline = _pipeline(store, content_items=(ProviderAuthenticationError("revoked key"),))

        with pytest.raises(GenerationFailedError) as exc_info:
            await pipeline.run(user_id)

        assert isinstance(exc_info.value.__cause__, ProviderAuthenticationError)
        assert len(pipeline.content_provider.calls) == 1
        assert len(pipeline.repository.failures_recorded) == 1

    @pytest.mark.asyncio
    async def test_fatal_outline_error(self, store):
        user_id = store.add_user(requests_limit=10)
        pipeline = _pipeline(store, outline_items=(ProviderAuthenticationError(),))

        with pytest.raises(GenerationFailedError):
            await pipeline.run(user_id)

        assert pipeline.content_provider.calls == []
        assert store.users[user_id].requests_used == 0

    @pytest.mark.asyncio
    async def test_settlement_failure_leaves_quota_untouched(self, store):
        user_id = store.add_user(requests_limit=10)
        pipeline = _pipeline(store)
        pipeline.repository.fail_commit = True

        with pytest.raises(GenerationFailedError):
            await pipeline.run(user_id)

        assert store.users[user_id].requests_used == 0
        assert [r.status for r in store.records.values()] == [ContentStatus.FAILED]

    @pytest.mark.asyncio
    async def test_failure_recording_error_does_not_mask_original(self, store):
        user_id = store.add_user(requests_limit=10)
        pipeline = _pipeline(store, content_items=(ProviderAuthenticationError("revoked key"),))
        pipeline.repository.fail_record_failure = True

        with pytest.raises(GenerationFailedError) as exc_info:
            await pipeline.run(user_id)

        assert "revoked key" in str(exc_info.value)
        assert store.records == {}


# ============================================================================
# REJECTED REQUESTS
# ============================================================================


class TestRejectedRequests:
    @pytest.mark.asyncio
    async def test_validation_happens_before_admission(self):
        # No user in the store: admission would raise EntityNotFoundError
        pipeline = _pipeline(InMemoryStore())

        with pytest.raises(InvalidInputError) as exc_info:
            await pipeline.run(uuid4(), make_payload(wordCount=100))

        assert exc_info.value.errors == ["wordCount must be at least 300"]
        assert pipeline.outline_provider.calls == []

    @pytest.mark.asyncio
    async def test_missing_caller(self, store):
        with pytest.raises(AuthenticationRequiredError):
            await _pipeline(store).run(None)

    @pytest.mark.asyncio
    async def test_missing_profile(self, store):
        pipeline = _pipeline(store)

        with pytest.raises(EntityNotFoundError):
            await pipeline.run(uuid4())

        assert store.records == {}


# ============================================================================
# SETTLEMENT THROUGH THE DATABASE LAYER
# ============================================================================


def _database_pipeline(*execute_effects):
    manager, session = mock_database(*execute_effects)
    ledger = QuotaLedger(manager)
    pipeline = _pipeline(
        InMemoryStore(), ledger=ledger, repository=ContentRepository(manager, ledger)
    )
    return pipeline, session


class TestDatabaseSettlement:
    @pytest.mark.asyncio
    async def test_debit_and_insert_share_one_transaction(self):
        pipeline, session = _database_pipeline(
            query_result(quota_row(requests_used=2)),  # admission
            query_result(quota_row(requests_used=2)),  # row lock
            MagicMock(),  # debit
            MagicMock(),  # record insert
        )

        response = await pipeline.run(uuid4())

        assert response["success"] is True
        assert response["requestsRemaining"] == 4
        statements = [c.args[0] for c in session.execute.await_args_list]
        assert isinstance(statements[2], Update)
        assert isinstance(statements[3], Insert)
        assert statements[3].table.name == "longform_contents"
        session.rollback.assert_not_awaited()
        assert session.commit.await_count == 2

    @pytest.mark.asyncio
    async def test_shortfall_under_lock_rolls_back_and_records_failure(self):
        pipeline, session = _database_pipeline(
            query_result(quota_row(requests_used=6)),  # admission: 6 + 4 fits
            query_result(quota_row(requests_used=8)),  # row lock: consumed meanwhile
            MagicMock(),  # failed-status upsert
        )

        response = await pipeline.run(uuid4())

        assert response["hasUsage"] is False
        assert response["requestsRemaining"] == 2
        assert session.execute.await_count == 3
        session.rollback.assert_awaited_once()
        failure = session.execute.await_args_list[2].args[0]
        assert isinstance(failure, Insert)
        assert failure.table.name == "longform_contents"
