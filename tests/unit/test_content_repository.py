"""
Unit Tests for Content Settlement
=================================

Tests cover:
- Debit and insert committed together in one session
- Rollback with nothing committed when the insert fails
- Settlement-time quota shortfall surfaces unchanged, nothing written
- Failed-status upsert and its error wrapping
"""

from uuid import uuid4

import pytest
from sqlalchemy.dialects import postgresql
from sqlalchemy.exc import OperationalError
from sqlalchemy.sql.dml import Insert

from conftest import mock_database, query_result, quota_row
from core.enums import ContentStatus
from core.exceptions import PersistenceError, QuotaExhaustedError
from core.models import GeneratedContentRecord
from knowledge.content_repository import ContentRepository
from knowledge.quota_ledger import QuotaLedger


def _repository(manager) -> ContentRepository:
    return ContentRepository(manager, QuotaLedger(manager))


def _record(user_id) -> GeneratedContentRecord:
    return GeneratedContentRecord(
        user_id=user_id,
        inputs={"topic": "Sustainable packaging for small e-commerce brands"},
        content="Body text",
    )


class TestCommit:
    @pytest.mark.asyncio
    async def test_debit_and_insert_commit_together(self):
        manager, session = mock_database(
            query_result(quota_row(requests_used=0, requests_limit=10)),
            query_result(),
            query_result(),
        )
        user_id = uuid4()
        record = _record(user_id)

        result = await _repository(manager).commit(user_id, record, 4)

        assert result.remaining == 6
        assert result.record.id == record.id
        assert result.quota.requests_used == 4
        assert session.execute.await_count == 3
        assert isinstance(session.execute.await_args_list[2].args[0], Insert)
        session.commit.assert_awaited_once()
        session.rollback.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_remaining_is_floored_at_zero(self):
        manager, _ = mock_database(
            query_result(quota_row(requests_used=0, requests_limit=4)),
            query_result(),
            query_result(),
        )
        user_id = uuid4()

        result = await _repository(manager).commit(user_id, _record(user_id), 4)

        assert result.remaining == 0

    @pytest.mark.asyncio
    async def test_insert_failure_rolls_back_the_debit(self):
        manager, session = mock_database(
            query_result(quota_row(requests_used=0, requests_limit=10)),
            query_result(),
            OperationalError("INSERT INTO longform_contents", {}, Exception("connection lost")),
        )
        user_id = uuid4()

        with pytest.raises(PersistenceError) as exc_info:
            await _repository(manager).commit(user_id, _record(user_id), 4)

        assert isinstance(exc_info.value.__cause__, OperationalError)
        session.rollback.assert_awaited_once()
        session.commit.assert_not_awaited()
        session.close.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_quota_shortfall_writes_nothing(self):
        manager, session = mock_database(
            query_result(quota_row(requests_used=9, requests_limit=10)),
        )
        user_id = uuid4()

        with pytest.raises(QuotaExhaustedError) as exc_info:
            await _repository(manager).commit(user_id, _record(user_id), 4)

        assert exc_info.value.decision.to_denial_payload()["requestsRemaining"] == 1
        assert session.execute.await_count == 1
        session.rollback.assert_awaited_once()
        session.commit.assert_not_awaited()


class TestRecordFailure:
    @pytest.mark.asyncio
    async def test_upserts_failed_row(self):
        manager, session = mock_database(query_result())
        content_id = uuid4()

        await _repository(manager).record_failure(
            uuid4(), content_id, {"topic": "x"}, "Gemini request failed"
        )

        statement = session.execute.await_args.args[0]
        compiled = statement.compile(dialect=postgresql.dialect())
        assert compiled.params["status"] == ContentStatus.FAILED.value
        assert compiled.params["error"] == "Gemini request failed"
        assert compiled.params["id"] == content_id
        session.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_write_failure_is_wrapped(self):
        manager, session = mock_database(RuntimeError("pool exhausted"))

        with pytest.raises(PersistenceError) as exc_info:
            await _repository(manager).record_failure(uuid4(), uuid4(), {}, "boom")

        assert str(exc_info.value) == "Failed to record generation failure"
        session.rollback.assert_awaited_once()
