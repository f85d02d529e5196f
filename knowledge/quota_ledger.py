"""
Quota Ledger: Admission & Debit of Metered Usage
=================================================

Pure admission arithmetic plus the two database touch points:
- check_admission: optimistic pre-check before any provider call
- debit: authoritative re-check and counter update under a row lock,
  executed inside the settlement transaction

Flexy (pay-as-you-go) units are consumed before plan units.

Architecture: Repository Pattern + SQLAlchemy Core
"""

from typing import Any, Mapping
from uuid import UUID

from loguru import logger
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from config.constants import MESSAGES
from core.exceptions import EntityNotFoundError, QuotaExhaustedError
from core.models import AdmissionDecision, QuotaState
from infrastructure.database import DatabaseManager
from infrastructure.schema import users_table

_QUOTA_COLUMNS = (
    users_table.c.requests_used,
    users_table.c.requests_limit,
    users_table.c.flexy_requests,
    users_table.c.plan_type,
)


# =============================================================================
# PURE QUOTA ARITHMETIC
# =============================================================================


def compute_admission(state: QuotaState, cost: int) -> AdmissionDecision:
    """
    Decide whether a request of `cost` units fits the balance.

    Admitted iff requests_used + cost <= requests_limit + flexy_requests.
    """
    remaining = state.remaining
    if state.requests_used + cost <= state.total_available:
        return AdmissionDecision(
            admitted=True, remaining=remaining, plan_type=state.plan_type, state=state
        )

    shortfall = state.requests_used + cost - state.total_available
    message = MESSAGES.QUOTA_DENIED.format(
        cost=cost, shortfall=shortfall, hint=state.plan_type.upgrade_hint
    )
    return AdmissionDecision(
        admitted=False,
        remaining=remaining,
        plan_type=state.plan_type,
        state=state,
        error=MESSAGES.LIMIT_REACHED,
        message=message,
    )


def apply_debit(state: QuotaState, cost: int) -> QuotaState:
    """Consume flexy units first; whatever they cannot cover counts against the plan."""
    from_flexy = min(state.flexy_requests, cost)
    return state.model_copy(
        update={
            "flexy_requests": state.flexy_requests - from_flexy,
            "requests_used": state.requests_used + (cost - from_flexy),
        }
    )


def _state_from_row(row: Mapping[str, Any]) -> QuotaState:
    return QuotaState(
        requests_used=row.get("requests_used"),
        requests_limit=row.get("requests_limit"),
        flexy_requests=row.get("flexy_requests"),
        plan_type=row.get("plan_type"),
    )


# =============================================================================
# LEDGER
# =============================================================================


class QuotaLedger:
    """
    Database-backed quota ledger keyed by user id.

    The admission check is advisory; only debit() under the row lock is
    authoritative.
    """

    def __init__(self, database_manager: DatabaseManager, cost: int = 4):
        self.database_manager = database_manager
        self.cost = cost
        logger.debug(f"QuotaLedger initialized | cost={cost}")

    async def get_state(self, user_id: UUID) -> QuotaState:
        """
        Read the current counters for a user.

        Raises:
            EntityNotFoundError: If the user has no profile row
        """
        async with self.database_manager.session() as session:
            query = select(*_QUOTA_COLUMNS).where(users_table.c.id == user_id)
            result = await session.execute(query)
            row = result.fetchone()

        if row is None:
            logger.warning(f"Quota lookup for unknown user | user_id={user_id}")
            raise EntityNotFoundError(
                MESSAGES.PROFILE_NOT_FOUND, entity_type="user", entity_id=user_id
            )
        return _state_from_row(row._mapping)

    async def check_admission(self, user_id: UUID) -> AdmissionDecision:
        """Optimistic pre-check run before any provider call."""
        state = await self.get_state(user_id)
        decision = compute_admission(state, self.cost)
        logger.info(
            f"Admission checked | user_id={user_id} | admitted={decision.admitted} | "
            f"remaining={decision.remaining} | plan={decision.plan_type.value}"
        )
        return decision

    async def debit(self, session: AsyncSession, user_id: UUID, cost: int) -> QuotaState:
        """
        Debit `cost` units inside the caller's transaction.

        Locks the user row, re-runs admission against the locked counters
        and writes the debited values.

        Returns:
            Post-debit quota state

        Raises:
            EntityNotFoundError: If the user row vanished
            QuotaExhaustedError: If a concurrent request consumed the balance
        """
        query = select(*_QUOTA_COLUMNS).where(users_table.c.id == user_id).with_for_update()
        result = await session.execute(query)
        row = result.fetchone()
        if row is None:
            raise EntityNotFoundError(
                MESSAGES.PROFILE_NOT_FOUND, entity_type="user", entity_id=user_id
            )

        state = _state_from_row(row._mapping)
        decision = compute_admission(state, cost)
        if not decision.admitted:
            logger.warning(
                f"Settlement-time quota shortfall | user_id={user_id} | "
                f"remaining={decision.remaining} | cost={cost}"
            )
            raise QuotaExhaustedError(decision.message, decision=decision)

        debited = apply_debit(state, cost)
        await session.execute(
            update(users_table)
            .where(users_table.c.id == user_id)
            .values(
                requests_used=debited.requests_used,
                flexy_requests=debited.flexy_requests,
            )
        )
        logger.info(
            f"Quota debited | user_id={user_id} | cost={cost} | "
            f"used={debited.requests_used} | flexy={debited.flexy_requests}"
        )
        return debited


__all__ = ["QuotaLedger", "compute_admission", "apply_debit"]
