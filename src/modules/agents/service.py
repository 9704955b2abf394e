from uuid import UUID

from sqlalchemy import func, select

from src.api.core.exceptions.base import (
    ForbiddenError,
    InvalidAmountError,
    NotFoundError,
)
from src.api.core.messages import MessageCode
from src.core.base import BaseService
from src.database.models import Agent


class AgentService(BaseService):
    """Registration and owner-side management of agents."""

    async def register_agent(
        self,
        owner_id: UUID,
        name: str,
        webhook_url: str,
        description: str | None = None,
        price_per_execution_cents: int | None = None,
    ) -> Agent:
        self._validate_price(price_per_execution_cents)

        agent = Agent(
            owner_id=owner_id,
            name=name.strip(),
            description=description,
            webhook_url=webhook_url,
            price_per_execution_cents=price_per_execution_cents,
            is_active=True,
        )
        self.db.add(agent)
        await self.db.commit()

        self.logger.info(
            "Agent registered",
            agent_id=str(agent.id),
            owner_id=str(owner_id),
            price_per_execution_cents=price_per_execution_cents,
        )
        return agent

    async def get_agent(self, agent_id: UUID) -> Agent:
        agent = await self.db.get(Agent, agent_id, populate_existing=True)
        if agent is None:
            raise NotFoundError(MessageCode.AGENT_NOT_FOUND, {"agent_id": str(agent_id)})
        return agent

    async def list_agents(
        self, active_only: bool = True, limit: int = 20, offset: int = 0
    ) -> tuple[list[Agent], int]:
        filters = [Agent.is_active.is_(True)] if active_only else []
        total = (
            await self.db.execute(select(func.count(Agent.id)).where(*filters))
        ).scalar_one()
        result = await self.db.execute(
            select(Agent)
            .where(*filters)
            .order_by(Agent.created_at.desc())
            .limit(limit)
            .offset(offset)
        )
        return list(result.scalars().all()), total

    async def list_owned_agents(self, owner_id: UUID) -> list[Agent]:
        result = await self.db.execute(
            select(Agent)
            .where(Agent.owner_id == owner_id)
            .order_by(Agent.created_at.desc())
        )
        return list(result.scalars().all())

    async def update_price(
        self, agent_id: UUID, owner_id: UUID, price_per_execution_cents: int | None
    ) -> Agent:
        """Set a new price. ``None`` falls back to the platform default."""
        self._validate_price(price_per_execution_cents)
        agent = await self._get_owned_agent(agent_id, owner_id)

        old_price = agent.price_per_execution_cents
        agent.price_per_execution_cents = price_per_execution_cents
        await self.db.commit()

        self.logger.info(
            "Agent price updated",
            agent_id=str(agent_id),
            old_price_cents=old_price,
            new_price_cents=price_per_execution_cents,
        )
        return agent

    async def set_active(self, agent_id: UUID, owner_id: UUID, is_active: bool) -> Agent:
        agent = await self._get_owned_agent(agent_id, owner_id)
        agent.is_active = is_active
        await self.db.commit()

        self.logger.info(
            "Agent visibility changed", agent_id=str(agent_id), is_active=is_active
        )
        return agent

    async def _get_owned_agent(self, agent_id: UUID, owner_id: UUID) -> Agent:
        agent = await self.get_agent(agent_id)
        if agent.owner_id != owner_id:
            raise ForbiddenError(
                MessageCode.FORBIDDEN,
                {"description": "Only the agent owner can change it"},
            )
        return agent

    @staticmethod
    def _validate_price(price_per_execution_cents: int | None) -> None:
        if price_per_execution_cents is not None and price_per_execution_cents < 1:
            raise InvalidAmountError(
                {"description": "Price per execution must be at least 1 cent"}
            )
