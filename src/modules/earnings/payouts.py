"""Creator payout requests and their settlement."""

from datetime import datetime, timezone
from uuid import UUID

from fastapi import status
from sqlalchemy import select, update

from src.api.core.exceptions.base import (
    InvalidAmountError,
    MarketplaceException,
    NotFoundError,
)
from src.api.core.messages import MessageCode
from src.core.base import BaseService
from src.database.models import (
    AgentEarnings,
    LedgerEntryKind,
    LedgerReferenceType,
    Payout,
    PayoutStatus,
)
from src.modules.billing.constants import MINIMUM_PAYOUT_CENTS
from src.modules.ledger.service import LedgerService


class PayoutService(BaseService):
    """Moves pending creator earnings into payouts.

    A payout draws its amount from the owner's earnings rows when it is
    requested, so ``total == pending + paid_out`` holds on every row at all
    times. A failed payout gives the drawn amounts back.
    """

    async def create_payout_request(
        self, account_id: UUID, amount_cents: int, description: str | None = None
    ) -> Payout:
        if amount_cents < MINIMUM_PAYOUT_CENTS:
            raise InvalidAmountError(
                {
                    "description": "Payout amount below minimum",
                    "minimum_cents": MINIMUM_PAYOUT_CENTS,
                }
            )

        result = await self.db.execute(
            select(AgentEarnings)
            .where(
                AgentEarnings.owner_id == account_id,
                AgentEarnings.pending_earnings_cents > 0,
            )
            .order_by(
                AgentEarnings.pending_earnings_cents.desc(), AgentEarnings.id
            )
            .execution_options(populate_existing=True)
        )
        rows = list(result.scalars().all())
        available = sum(row.pending_earnings_cents for row in rows)
        if amount_cents > available:
            raise InvalidAmountError(
                {
                    "description": "Payout amount exceeds pending earnings",
                    "available_cents": available,
                }
            )

        allocations: dict[str, int] = {}
        remaining = amount_cents
        for row in rows:
            if remaining == 0:
                break
            draw = min(remaining, row.pending_earnings_cents)
            moved = await self.db.execute(
                update(AgentEarnings)
                .where(
                    AgentEarnings.id == row.id,
                    AgentEarnings.pending_earnings_cents >= draw,
                )
                .values(
                    pending_earnings_cents=AgentEarnings.pending_earnings_cents
                    - draw,
                    paid_out_cents=AgentEarnings.paid_out_cents + draw,
                )
                .returning(AgentEarnings.id)
                .execution_options(synchronize_session=False)
            )
            if moved.one_or_none() is None:
                # A concurrent payout drained this row
                await self.db.rollback()
                raise InvalidAmountError(
                    {"description": "Pending earnings changed, retry the payout"}
                )
            allocations[str(row.id)] = draw
            remaining -= draw

        payout = Payout(
            account_id=account_id,
            amount_cents=amount_cents,
            status=PayoutStatus.PENDING,
            description=description or "Creator earnings payout",
            allocations=allocations,
        )
        self.db.add(payout)
        await self.db.commit()

        self.logger.info(
            "Payout requested",
            payout_id=str(payout.id),
            account_id=str(account_id),
            amount_cents=amount_cents,
            allocations=allocations,
        )
        return payout

    async def list_payouts(self, account_id: UUID, limit: int = 50) -> list[Payout]:
        result = await self.db.execute(
            select(Payout)
            .where(Payout.account_id == account_id)
            .order_by(Payout.created_at.desc())
            .limit(limit)
        )
        return list(result.scalars().all())

    async def process_payout(
        self,
        payout_id: UUID,
        succeeded: bool,
        failure_reason: str | None = None,
        credit_to_balance: bool = False,
    ) -> Payout:
        """Settle a pending payout as completed or failed.

        ``credit_to_balance`` pays a completed payout into the creator's own
        credit balance instead of an external transfer.
        """
        new_status = PayoutStatus.COMPLETED if succeeded else PayoutStatus.FAILED
        now = datetime.now(timezone.utc)

        transitioned = await self.db.execute(
            update(Payout)
            .where(Payout.id == payout_id, Payout.status == PayoutStatus.PENDING)
            .values(
                status=new_status,
                processed_at=now,
                failure_reason=None if succeeded else failure_reason,
            )
            .returning(Payout.id)
            .execution_options(synchronize_session=False)
        )
        if transitioned.one_or_none() is None:
            await self.db.rollback()
            if await self.db.get(Payout, payout_id) is None:
                raise NotFoundError(
                    MessageCode.PAYOUT_NOT_FOUND, {"payout_id": str(payout_id)}
                )
            raise MarketplaceException(
                MessageCode.PAYOUT_ALREADY_PROCESSED,
                status.HTTP_409_CONFLICT,
                {"payout_id": str(payout_id)},
            )

        payout = await self.db.get(Payout, payout_id, populate_existing=True)

        if not succeeded:
            for earnings_id, cents in payout.allocations.items():
                await self.db.execute(
                    update(AgentEarnings)
                    .where(AgentEarnings.id == UUID(earnings_id))
                    .values(
                        pending_earnings_cents=AgentEarnings.pending_earnings_cents
                        + cents,
                        paid_out_cents=AgentEarnings.paid_out_cents - cents,
                    )
                    .execution_options(synchronize_session=False)
                )
        elif credit_to_balance:
            await LedgerService(self.db).append_entry(
                payout.account_id,
                payout.amount_cents,
                LedgerEntryKind.PAYOUT,
                f"Earnings payout {payout.id}",
                reference_type=LedgerReferenceType.PAYOUT,
                reference_id=str(payout.id),
            )

        await self.db.commit()

        self.logger.info(
            "Payout processed",
            payout_id=str(payout_id),
            status=new_status,
            amount_cents=payout.amount_cents,
            credit_to_balance=credit_to_balance,
            failure_reason=failure_reason,
        )
        return payout
