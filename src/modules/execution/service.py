"""Execution billing workflow.

An execution is recorded as ``pending`` and committed before the agent webhook
is called, so no transaction is held open across the network round trip. Only
a successful call is charged, and the charge, the balance snapshot and the
creator earnings are written together in one transaction.
"""

import time
import uuid
from datetime import datetime, timezone
from typing import Any, NamedTuple
from uuid import UUID

from pydantic import BaseModel
from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from src.api.core.constants import EXECUTION_CORRELATION_PREFIX
from src.api.core.exceptions.base import (
    InsufficientCreditsError,
    InternalInconsistencyError,
    NotFoundError,
)
from src.api.core.messages import MessageCode
from src.core.base import BaseService
from src.database.models import (
    Account,
    Agent,
    Execution,
    ExecutionStatus,
    LedgerEntryKind,
    LedgerReferenceType,
)
from src.modules.billing.constants import DEFAULT_AGENT_PRICE_CENTS
from src.modules.earnings.service import EarningsService
from src.modules.execution.webhook_client import (
    WebhookInvoker,
    WebhookResponse,
    WebhookTimeoutError,
    WebhookTransportError,
)
from src.modules.ledger.service import LedgerService

INSUFFICIENT_CREDITS_ERROR = "insufficient_credits"


class ExecutionResult(BaseModel):
    execution_id: UUID
    correlation_id: str
    status: ExecutionStatus
    success: bool
    charged: bool
    credits_consumed: int
    remaining_balance: int
    duration_ms: int | None = None
    output: dict[str, Any] | None = None
    error: str | None = None


class ExecutionRef(NamedTuple):
    """Identifiers of a pending execution, safe to use after a rollback."""

    execution_id: UUID
    correlation_id: str
    account_id: UUID
    agent_id: UUID


def agent_price(agent: Agent) -> int:
    """Price charged per successful execution of ``agent``."""
    return agent.price_per_execution_cents or DEFAULT_AGENT_PRICE_CENTS


def new_correlation_id() -> str:
    return f"{EXECUTION_CORRELATION_PREFIX}{uuid.uuid4().hex}"


class ExecutionBillingService(BaseService):
    def __init__(self, db: AsyncSession, webhook_client: WebhookInvoker):
        super().__init__(db)
        self.webhook_client = webhook_client
        self.ledger = LedgerService(db)
        self.earnings = EarningsService(db)

    async def execute(
        self, account_id: UUID, agent_id: UUID, input_data: dict[str, Any]
    ) -> ExecutionResult:
        """Run an agent for an account, charging only if the webhook succeeds.

        Raises:
            NotFoundError: unknown or inactive agent, unknown account
            InsufficientCreditsError: balance below the agent price, either up
                front or because a concurrent execution spent it first
            InternalInconsistencyError: settlement failed after a successful call
        """
        agent = await self.db.get(Agent, agent_id, populate_existing=True)
        if agent is None or not agent.is_active:
            raise NotFoundError(MessageCode.AGENT_NOT_FOUND, {"agent_id": str(agent_id)})

        account = await self.db.get(Account, account_id, populate_existing=True)
        if account is None:
            raise NotFoundError(
                MessageCode.ACCOUNT_NOT_FOUND, {"account_id": str(account_id)}
            )

        cost = agent_price(agent)
        available = account.balance_cents
        if available < cost:
            # Nothing was written, so the read transaction is simply closed
            await self.db.rollback()
            self.logger.info(
                "Execution rejected for insufficient credits",
                account_id=str(account_id),
                agent_id=str(agent_id),
                required_cents=cost,
                available_cents=available,
            )
            raise InsufficientCreditsError(required=cost, available=available)

        execution = Execution(
            agent_id=agent.id,
            account_id=account_id,
            correlation_id=new_correlation_id(),
            status=ExecutionStatus.PENDING,
            input_data=input_data,
        )
        self.db.add(execution)
        await self.db.commit()

        # Rollbacks below expire every ORM instance in the session
        ref = ExecutionRef(
            execution_id=execution.id,
            correlation_id=execution.correlation_id,
            account_id=account_id,
            agent_id=agent_id,
        )
        webhook_url = agent.webhook_url

        log = self.logger.bind(
            execution_id=str(ref.execution_id),
            correlation_id=ref.correlation_id,
            account_id=str(account_id),
            agent_id=str(agent_id),
        )
        log.info("Execution started", price_cents=cost)

        started = time.monotonic()
        try:
            response = await self.webhook_client.invoke(
                webhook_url, input_data, ref.correlation_id
            )
        except WebhookTimeoutError as e:
            return await self._finalize_unbilled(
                ref, ExecutionStatus.TIMEOUT, str(e), _elapsed_ms(started)
            )
        except WebhookTransportError as e:
            return await self._finalize_unbilled(
                ref, ExecutionStatus.FAILED, str(e), _elapsed_ms(started)
            )
        except Exception as e:
            log.exception("Webhook invoker raised unexpectedly")
            return await self._finalize_unbilled(
                ref,
                ExecutionStatus.ERROR,
                f"{type(e).__name__}: {e}",
                _elapsed_ms(started),
            )

        duration_ms = response.duration_ms or _elapsed_ms(started)
        try:
            return await self._settle(ref, agent, cost, response, duration_ms)
        except InsufficientCreditsError as e:
            await self.db.rollback()
            log.warning(
                "Balance spent concurrently, execution not charged",
                required_cents=cost,
                available_cents=e.available,
            )
            await self._finalize_unbilled(
                ref,
                ExecutionStatus.FAILED,
                INSUFFICIENT_CREDITS_ERROR,
                duration_ms,
            )
            raise InsufficientCreditsError(
                required=cost,
                available=e.available,
                details={"execution_id": str(ref.execution_id)},
            )
        except Exception as e:
            await self.db.rollback()
            log.exception("Execution settlement failed")
            await self._finalize_unbilled(
                ref,
                ExecutionStatus.ERROR,
                f"settlement_failed: {type(e).__name__}",
                duration_ms,
            )
            raise InternalInconsistencyError(
                {"execution_id": str(ref.execution_id), "stage": "settlement"}
            ) from e

    async def _settle(
        self,
        ref: ExecutionRef,
        agent: Agent,
        cost: int,
        response: WebhookResponse,
        duration_ms: int,
    ) -> ExecutionResult:
        # The account UPDATE must be the first statement of this transaction
        entry = await self.ledger.append_entry(
            ref.account_id,
            -cost,
            LedgerEntryKind.USAGE,
            f"Execution of agent {agent.name}",
            reference_type=LedgerReferenceType.EXECUTION,
            reference_id=str(ref.execution_id),
            metadata={
                "agent_id": str(ref.agent_id),
                "correlation_id": ref.correlation_id,
            },
        )

        now = datetime.now(timezone.utc)
        split = await self.earnings.record_earning(agent, cost, now)
        if split is None:
            platform_fee, creator_share = cost, 0
        else:
            platform_fee, creator_share = (
                split.platform_fee_cents,
                split.creator_share_cents,
            )

        finalized = await self.db.execute(
            update(Execution)
            .where(
                Execution.id == ref.execution_id,
                Execution.status == ExecutionStatus.PENDING,
            )
            .values(
                status=ExecutionStatus.SUCCESS,
                credits_consumed=cost,
                platform_fee_cents=platform_fee,
                creator_share_cents=creator_share,
                balance_before_cents=entry.balance_before_cents,
                balance_after_cents=entry.balance_after_cents,
                output_data=response.body,
                duration_ms=duration_ms,
                completed_at=now,
            )
            .returning(Execution.id)
            .execution_options(synchronize_session=False)
        )
        if finalized.one_or_none() is None:
            raise RuntimeError("Execution was finalized before settlement")

        await self._record_agent_stats(ref.agent_id, True, duration_ms, now)
        await self.db.commit()

        self.logger.info(
            "Execution charged",
            execution_id=str(ref.execution_id),
            account_id=str(ref.account_id),
            amount_cents=cost,
            platform_fee_cents=platform_fee,
            creator_share_cents=creator_share,
            balance_after_cents=entry.balance_after_cents,
        )
        return ExecutionResult(
            execution_id=ref.execution_id,
            correlation_id=ref.correlation_id,
            status=ExecutionStatus.SUCCESS,
            success=True,
            charged=True,
            credits_consumed=cost,
            remaining_balance=entry.balance_after_cents,
            duration_ms=duration_ms,
            output=response.body,
        )

    async def _finalize_unbilled(
        self,
        ref: ExecutionRef,
        status: ExecutionStatus,
        error_message: str,
        duration_ms: int,
    ) -> ExecutionResult:
        now = datetime.now(timezone.utc)
        await self.db.execute(
            update(Execution)
            .where(
                Execution.id == ref.execution_id,
                Execution.status == ExecutionStatus.PENDING,
            )
            .values(
                status=status,
                credits_consumed=0,
                error_message=error_message,
                duration_ms=duration_ms,
                completed_at=now,
            )
            .execution_options(synchronize_session=False)
        )
        await self._record_agent_stats(ref.agent_id, False, duration_ms, now)
        await self.db.commit()

        self.logger.info(
            "Execution finished without charge",
            execution_id=str(ref.execution_id),
            account_id=str(ref.account_id),
            status=status,
            error=error_message,
        )
        return ExecutionResult(
            execution_id=ref.execution_id,
            correlation_id=ref.correlation_id,
            status=status,
            success=False,
            charged=False,
            credits_consumed=0,
            remaining_balance=await self.ledger.get_balance(ref.account_id),
            duration_ms=duration_ms,
            error=error_message,
        )

    async def _record_agent_stats(
        self, agent_id: UUID, succeeded: bool, duration_ms: int, at: datetime
    ) -> None:
        values: dict[str, Any] = {
            "total_executions": Agent.total_executions + 1,
            "total_duration_ms": Agent.total_duration_ms + duration_ms,
            "last_executed_at": at,
        }
        if succeeded:
            values["successful_executions"] = Agent.successful_executions + 1
        else:
            values["failed_executions"] = Agent.failed_executions + 1

        await self.db.execute(
            update(Agent)
            .where(Agent.id == agent_id)
            .values(**values)
            .execution_options(synchronize_session=False)
        )

    async def list_executions(
        self, account_id: UUID, limit: int, offset: int
    ) -> tuple[list[Execution], int]:
        total = (
            await self.db.execute(
                select(func.count(Execution.id)).where(
                    Execution.account_id == account_id
                )
            )
        ).scalar_one()

        result = await self.db.execute(
            select(Execution)
            .where(Execution.account_id == account_id)
            .order_by(Execution.created_at.desc())
            .limit(limit)
            .offset(offset)
        )
        return list(result.scalars().all()), total


def _elapsed_ms(started: float) -> int:
    return int((time.monotonic() - started) * 1000)
