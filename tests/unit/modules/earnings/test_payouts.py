"""Payout request and processing tests."""

import pytest
import pytest_asyncio
from uuid import uuid4

from src.api.core.exceptions.base import (
    InvalidAmountError,
    MarketplaceException,
    NotFoundError,
)
from src.api.core.messages import MessageCode
from src.database.models import (
    AgentEarnings,
    LedgerEntryKind,
    LedgerReferenceType,
    PayoutStatus,
)
from src.modules.earnings.payouts import PayoutService
from src.modules.ledger.service import LedgerService
from tests.factories import AgentEarningsFactory, AgentFactory
from tests.utils.assertions import assert_marketplace_exception


class TestPayoutService:
    @pytest.fixture
    def service(self, db_session):
        return PayoutService(db_session)

    @pytest_asyncio.fixture
    async def earnings_rows(self, db_session, creator_account):
        """Two agents with 800 and 300 cents pending."""
        rows = []
        for pending in (800, 300):
            agent = await AgentFactory.create_async(
                db_session, owner_id=creator_account.id
            )
            rows.append(
                await AgentEarningsFactory.create_async(
                    db_session,
                    agent_id=agent.id,
                    owner_id=creator_account.id,
                    total_earnings_cents=pending,
                    pending_earnings_cents=pending,
                    total_executions=pending // 100,
                )
            )
        await db_session.commit()
        return rows

    async def _row(self, db_session, row_id) -> AgentEarnings:
        return await db_session.get(AgentEarnings, row_id, populate_existing=True)

    async def test_below_minimum_rejected(self, service, creator_account, earnings_rows):
        with pytest.raises(InvalidAmountError) as exc_info:
            await service.create_payout_request(creator_account.id, 499)

        assert exc_info.value.details["minimum_cents"] == 500

    async def test_above_pending_rejected(self, service, creator_account, earnings_rows):
        with pytest.raises(InvalidAmountError) as exc_info:
            await service.create_payout_request(creator_account.id, 1200)

        assert exc_info.value.details["available_cents"] == 1100

    async def test_request_draws_largest_rows_first(
        self, service, db_session, creator_account, earnings_rows
    ):
        payout = await service.create_payout_request(creator_account.id, 1000)

        assert payout.status == PayoutStatus.PENDING
        assert payout.allocations == {
            str(earnings_rows[0].id): 800,
            str(earnings_rows[1].id): 200,
        }
        large = await self._row(db_session, earnings_rows[0].id)
        small = await self._row(db_session, earnings_rows[1].id)
        assert (large.pending_earnings_cents, large.paid_out_cents) == (0, 800)
        assert (small.pending_earnings_cents, small.paid_out_cents) == (100, 200)
        for row in (large, small):
            assert (
                row.total_earnings_cents
                == row.pending_earnings_cents + row.paid_out_cents
            )

    async def test_failed_payout_restores_pending(
        self, service, db_session, creator_account, earnings_rows
    ):
        payout = await service.create_payout_request(creator_account.id, 1000)

        processed = await service.process_payout(
            payout.id, succeeded=False, failure_reason="bank rejected"
        )

        assert processed.status == PayoutStatus.FAILED
        assert processed.failure_reason == "bank rejected"
        assert processed.processed_at is not None
        large = await self._row(db_session, earnings_rows[0].id)
        small = await self._row(db_session, earnings_rows[1].id)
        assert (large.pending_earnings_cents, large.paid_out_cents) == (800, 0)
        assert (small.pending_earnings_cents, small.paid_out_cents) == (300, 0)

    async def test_completed_payout_keeps_draw(
        self, service, db_session, creator_account, earnings_rows
    ):
        payout = await service.create_payout_request(creator_account.id, 600)

        processed = await service.process_payout(payout.id, succeeded=True)

        assert processed.status == PayoutStatus.COMPLETED
        large = await self._row(db_session, earnings_rows[0].id)
        assert large.paid_out_cents == 600
        assert await LedgerService(db_session).get_balance(creator_account.id) == 0

    async def test_credit_to_balance_appends_payout_entry(
        self, service, db_session, creator_account, earnings_rows
    ):
        payout = await service.create_payout_request(creator_account.id, 500)

        await service.process_payout(payout.id, succeeded=True, credit_to_balance=True)

        ledger = LedgerService(db_session)
        assert await ledger.get_balance(creator_account.id) == 500
        entries, _ = await ledger.list_entries(creator_account.id, 10, 0)
        assert len(entries) == 1
        assert entries[0].kind == LedgerEntryKind.PAYOUT
        assert entries[0].amount_cents == 500
        assert entries[0].reference_type == LedgerReferenceType.PAYOUT
        assert entries[0].reference_id == str(payout.id)

    async def test_external_payout_leaves_ledger_untouched(
        self, service, db_session, creator_account, earnings_rows
    ):
        payout = await service.create_payout_request(creator_account.id, 500)

        await service.process_payout(payout.id, succeeded=True)

        _, total = await LedgerService(db_session).list_entries(
            creator_account.id, 10, 0
        )
        assert total == 0

    async def test_process_twice_conflicts(
        self, service, creator_account, earnings_rows
    ):
        payout = await service.create_payout_request(creator_account.id, 500)
        await service.process_payout(payout.id, succeeded=True)

        with pytest.raises(MarketplaceException) as exc_info:
            await service.process_payout(payout.id, succeeded=False)

        assert_marketplace_exception(
            exc_info.value, MessageCode.PAYOUT_ALREADY_PROCESSED, 409
        )

    async def test_process_unknown_payout(self, service):
        with pytest.raises(NotFoundError) as exc_info:
            await service.process_payout(uuid4(), succeeded=True)

        assert_marketplace_exception(exc_info.value, MessageCode.PAYOUT_NOT_FOUND, 404)

    async def test_list_payouts(self, service, creator_account, earnings_rows):
        await service.create_payout_request(creator_account.id, 500)
        await service.create_payout_request(creator_account.id, 500)

        payouts = await service.list_payouts(creator_account.id)

        assert len(payouts) == 2
        assert all(p.account_id == creator_account.id for p in payouts)
