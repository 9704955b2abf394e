"""Creator earnings bookkeeping for charged executions."""

import uuid
from datetime import datetime, timezone
from uuid import UUID

from pydantic import BaseModel
from sqlalchemy import func, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert

from src.core.base import BaseService
from src.database.models import Agent, AgentEarnings, Execution, ExecutionStatus
from src.modules.billing.constants import RevenueSplit, calculate_revenue_split


class AgentEarningsSummary(BaseModel):
    agent_id: UUID
    agent_name: str
    total_earnings_cents: int
    pending_earnings_cents: int
    paid_out_cents: int
    total_executions: int
    last_earning_at: datetime | None


class EarningsSummary(BaseModel):
    owner_id: UUID
    total_earnings_cents: int
    pending_earnings_cents: int
    paid_out_cents: int
    total_executions: int
    agents: list[AgentEarningsSummary]


class PlatformRevenueSummary(BaseModel):
    charged_executions: int
    gross_revenue_cents: int
    platform_fee_cents: int
    creator_share_cents: int


class EarningsService(BaseService):
    """Records the creator share of each charge against the agent owner."""

    @staticmethod
    def calculate_revenue_split(gross_cents: int) -> RevenueSplit:
        return calculate_revenue_split(gross_cents)

    def _insert(self):
        if self.db.get_bind().dialect.name == "postgresql":
            return pg_insert
        return sqlite_insert

    async def record_earning(
        self, agent: Agent, gross_cents: int, earned_at: datetime | None = None
    ) -> RevenueSplit | None:
        """Credit the creator share to the agent owner's earnings row.

        Runs in the caller's transaction. Returns None for unowned agents, whose
        gross is kept entirely by the platform.
        """
        if agent.owner_id is None:
            return None

        split = calculate_revenue_split(gross_cents)
        earned_at = earned_at or datetime.now(timezone.utc)
        share = split.creator_share_cents

        stmt = self._insert()(AgentEarnings).values(
            id=uuid.uuid4(),
            agent_id=agent.id,
            owner_id=agent.owner_id,
            total_earnings_cents=share,
            pending_earnings_cents=share,
            paid_out_cents=0,
            total_executions=1,
            last_earning_at=earned_at,
            created_at=earned_at,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=["agent_id", "owner_id"],
            set_={
                "total_earnings_cents": AgentEarnings.total_earnings_cents + share,
                "pending_earnings_cents": AgentEarnings.pending_earnings_cents
                + share,
                "total_executions": AgentEarnings.total_executions + 1,
                "last_earning_at": earned_at,
            },
        )
        await self.db.execute(stmt)

        self.logger.debug(
            "Earning recorded",
            agent_id=str(agent.id),
            owner_id=str(agent.owner_id),
            gross_cents=gross_cents,
            creator_share_cents=share,
        )
        return split

    async def get_earnings(self, agent_id: UUID, owner_id: UUID) -> AgentEarnings | None:
        result = await self.db.execute(
            select(AgentEarnings)
            .where(
                AgentEarnings.agent_id == agent_id,
                AgentEarnings.owner_id == owner_id,
            )
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def get_earnings_summary(self, owner_id: UUID) -> EarningsSummary:
        result = await self.db.execute(
            select(AgentEarnings, Agent.name)
            .join(Agent, Agent.id == AgentEarnings.agent_id)
            .where(AgentEarnings.owner_id == owner_id)
            .order_by(AgentEarnings.total_earnings_cents.desc())
            .execution_options(populate_existing=True)
        )
        agents = [
            AgentEarningsSummary(
                agent_id=row.agent_id,
                agent_name=name,
                total_earnings_cents=row.total_earnings_cents,
                pending_earnings_cents=row.pending_earnings_cents,
                paid_out_cents=row.paid_out_cents,
                total_executions=row.total_executions,
                last_earning_at=row.last_earning_at,
            )
            for row, name in result.all()
        ]

        return EarningsSummary(
            owner_id=owner_id,
            total_earnings_cents=sum(a.total_earnings_cents for a in agents),
            pending_earnings_cents=sum(a.pending_earnings_cents for a in agents),
            paid_out_cents=sum(a.paid_out_cents for a in agents),
            total_executions=sum(a.total_executions for a in agents),
            agents=agents,
        )

    async def get_platform_revenue_summary(self) -> PlatformRevenueSummary:
        result = await self.db.execute(
            select(
                func.count(Execution.id),
                func.coalesce(func.sum(Execution.credits_consumed), 0),
                func.coalesce(func.sum(Execution.platform_fee_cents), 0),
                func.coalesce(func.sum(Execution.creator_share_cents), 0),
            ).where(
                Execution.status == ExecutionStatus.SUCCESS,
                Execution.credits_consumed > 0,
            )
        )
        count, gross, fee, share = result.one()
        return PlatformRevenueSummary(
            charged_executions=int(count),
            gross_revenue_cents=int(gross),
            platform_fee_cents=int(fee),
            creator_share_cents=int(share),
        )
