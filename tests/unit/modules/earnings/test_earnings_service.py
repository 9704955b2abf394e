"""Earnings splitter tests."""

import pytest
from datetime import datetime, timezone

from src.modules.billing.constants import calculate_revenue_split
from src.modules.earnings.service import EarningsService
from src.modules.execution.service import ExecutionBillingService
from tests.factories import AccountFactory, AgentFactory


@pytest.mark.parametrize(
    "gross, fee, share",
    [
        (100, 10, 90),
        (50, 5, 45),
        (1, 0, 1),
        (9, 0, 9),
        (15, 1, 14),
        (99, 9, 90),
        (0, 0, 0),
    ],
)
def test_revenue_split_floors_the_fee(gross, fee, share):
    split = calculate_revenue_split(gross)

    assert split.platform_fee_cents == fee
    assert split.creator_share_cents == share
    assert split.platform_fee_cents + split.creator_share_cents == gross


def test_revenue_split_rejects_negative_gross():
    with pytest.raises(ValueError):
        calculate_revenue_split(-1)


class TestEarningsService:
    """Creator earnings accumulation."""

    @pytest.fixture
    def service(self, db_session):
        return EarningsService(db_session)

    async def test_first_earning_creates_row(
        self, service, db_session, test_agent, creator_account
    ):
        earned_at = datetime(2026, 10, 1, tzinfo=timezone.utc)

        split = await service.record_earning(test_agent, 100, earned_at)
        await db_session.commit()

        assert split.creator_share_cents == 90
        earnings = await service.get_earnings(test_agent.id, creator_account.id)
        assert earnings.total_earnings_cents == 90
        assert earnings.pending_earnings_cents == 90
        assert earnings.paid_out_cents == 0
        assert earnings.total_executions == 1
        assert earnings.last_earning_at is not None

    async def test_repeat_earnings_accumulate_on_one_row(
        self, service, db_session, test_agent, creator_account
    ):
        for _ in range(3):
            await service.record_earning(test_agent, 100)
        await db_session.commit()

        earnings = await service.get_earnings(test_agent.id, creator_account.id)
        assert earnings.total_earnings_cents == 270
        assert earnings.total_executions == 3

    async def test_unowned_agent_records_nothing(self, service, db_session):
        agent = await AgentFactory.create_async(db_session, owner_id=None)

        assert await service.record_earning(agent, 100) is None

    @pytest.mark.parametrize("price, executions", [(100, 4), (37, 5), (9, 3)])
    async def test_earnings_equal_sum_of_creator_shares(
        self, db_session, fake_webhook, fund_account, price, executions
    ):
        """N executions at price P earn exactly N * (P - floor(P / 10))."""
        payer = await AccountFactory.create_async(db_session)
        owner = await AccountFactory.create_async(db_session)
        agent = await AgentFactory.create_async(
            db_session, owner_id=owner.id, price_per_execution_cents=price
        )
        await db_session.commit()
        await fund_account(payer.id, price * executions)

        billing = ExecutionBillingService(db_session, fake_webhook)
        for _ in range(executions):
            await billing.execute(payer.id, agent.id, {})

        earnings = await EarningsService(db_session).get_earnings(agent.id, owner.id)
        assert earnings.total_earnings_cents == executions * (price - price * 10 // 100)
        assert earnings.total_executions == executions

    async def test_earnings_summary_across_agents(
        self, service, db_session, creator_account
    ):
        first = await AgentFactory.create_async(
            db_session, owner_id=creator_account.id, name="First"
        )
        second = await AgentFactory.create_async(
            db_session, owner_id=creator_account.id, name="Second"
        )
        await db_session.commit()
        await service.record_earning(first, 100)
        await service.record_earning(first, 100)
        await service.record_earning(second, 50)
        await db_session.commit()

        summary = await service.get_earnings_summary(creator_account.id)

        assert summary.total_earnings_cents == 225
        assert summary.pending_earnings_cents == 225
        assert summary.total_executions == 3
        assert [a.agent_name for a in summary.agents] == ["First", "Second"]

    async def test_platform_revenue_summary(
        self, service, db_session, fake_webhook, test_account, test_agent, fund_account
    ):
        await fund_account(test_account.id, 1000)
        billing = ExecutionBillingService(db_session, fake_webhook)
        await billing.execute(test_account.id, test_agent.id, {})
        await billing.execute(test_account.id, test_agent.id, {})

        summary = await service.get_platform_revenue_summary()

        assert summary.charged_executions == 2
        assert summary.gross_revenue_cents == 200
        assert summary.platform_fee_cents == 20
        assert summary.creator_share_cents == 180
