"""
Content Repository: Settlement of Generated Content
===================================================

Writes long-form records and settles quota in one unit of work:
- commit(): debit + insert of the completed record, all or nothing
- record_failure(): best-effort failed-status row, never touches quota

Architecture: Repository Pattern + Unit of Work
"""

from typing import Any
from uuid import UUID

from loguru import logger
from sqlalchemy import insert
from sqlalchemy.dialects.postgresql import insert as pg_insert

from core.enums import ContentStatus
from core.exceptions import (
    ContentAutomationException,
    PersistenceError,
)
from core.models import GeneratedContentRecord, SettlementResult
from infrastructure.database import DatabaseManager
from infrastructure.schema import longform_contents_table
from knowledge.quota_ledger import QuotaLedger


def _record_values(record: GeneratedContentRecord) -> dict[str, Any]:
    """Column values for a record; JSON columns hold the camelCase payloads."""
    return {
        "id": record.id,
        "user_id": record.user_id,
        "module_type": record.module_type,
        "status": record.status.value,
        "inputs": record.inputs,
        "outline": record.outline.to_payload() if record.outline else None,
        "content": record.content,
        "generation_metadata": record.metadata.to_payload() if record.metadata else None,
        "error": record.error,
        "created_at": record.created_at,
        "updated_at": record.updated_at,
    }


class ContentRepository:
    """Persistence for long-form content records."""

    def __init__(self, database_manager: DatabaseManager, ledger: QuotaLedger):
        self.database_manager = database_manager
        self.ledger = ledger
        logger.debug("ContentRepository initialized")

    async def commit(
        self, user_id: UUID, record: GeneratedContentRecord, cost: int
    ) -> SettlementResult:
        """
        Debit quota and insert the completed record atomically.

        Args:
            user_id: Owner of the record and of the quota
            record: Completed record to insert
            cost: Units to debit

        Returns:
            SettlementResult with the post-debit balance floored at zero

        Raises:
            QuotaExhaustedError: Balance consumed concurrently; nothing written
            EntityNotFoundError: User row vanished; nothing written
            PersistenceError: Any other failure; nothing written
        """
        try:
            async with self.database_manager.transaction() as session:
                quota = await self.ledger.debit(session, user_id, cost)
                await session.execute(
                    insert(longform_contents_table).values(**_record_values(record))
                )
        except ContentAutomationException:
            raise
        except Exception as e:
            logger.error(f"Settlement failed, rolled back | content_id={record.id} | error={e}")
            raise PersistenceError(
                "Failed to save generated content",
                context={"content_id": str(record.id), "user_id": str(user_id)},
                cause=e,
            ) from e

        remaining = max(0, quota.remaining)
        logger.success(
            f"Content settled | content_id={record.id} | user_id={user_id} | remaining={remaining}"
        )
        return SettlementResult(record=record, remaining=remaining, quota=quota)

    async def record_failure(
        self,
        user_id: UUID,
        content_id: UUID,
        inputs: dict[str, Any],
        error: str,
    ) -> None:
        """
        Upsert a failed-status row for a reserved content id.

        Raises:
            PersistenceError: If the write fails
        """
        record = GeneratedContentRecord(
            id=content_id,
            user_id=user_id,
            inputs=inputs,
            status=ContentStatus.FAILED,
            error=error,
        )
        values = _record_values(record)
        statement = pg_insert(longform_contents_table).values(**values)
        statement = statement.on_conflict_do_update(
            index_elements=[longform_contents_table.c.id],
            set_={
                "status": values["status"],
                "error": values["error"],
                "updated_at": values["updated_at"],
            },
        )

        try:
            async with self.database_manager.session() as session:
                await session.execute(statement)
        except Exception as e:
            raise PersistenceError(
                "Failed to record generation failure",
                context={"content_id": str(content_id)},
                cause=e,
            ) from e

        logger.info(f"Failure recorded | content_id={content_id} | user_id={user_id}")


__all__ = ["ContentRepository"]
