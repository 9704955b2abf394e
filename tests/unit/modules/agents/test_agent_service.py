"""Agent registration and owner management tests."""

from uuid import uuid4

import pytest

from src.api.core.exceptions.base import (
    ForbiddenError,
    InvalidAmountError,
    NotFoundError,
)
from src.api.core.messages import MessageCode
from src.modules.agents.service import AgentService
from src.modules.execution.service import agent_price
from src.modules.billing.constants import DEFAULT_AGENT_PRICE_CENTS
from tests.factories import AgentFactory
from tests.utils.assertions import assert_marketplace_exception


class TestAgentService:
    @pytest.fixture
    def service(self, db_session):
        return AgentService(db_session)

    async def test_register_agent(self, service, creator_account):
        agent = await service.register_agent(
            creator_account.id,
            "  Translator ",
            "https://agents.example.com/translate",
            description="French to English",
            price_per_execution_cents=250,
        )

        assert agent.id is not None
        assert agent.name == "Translator"
        assert agent.owner_id == creator_account.id
        assert agent.is_active
        assert agent_price(agent) == 250

    async def test_register_without_price_uses_default(self, service, creator_account):
        agent = await service.register_agent(
            creator_account.id, "Echo", "https://agents.example.com/echo"
        )

        assert agent.price_per_execution_cents is None
        assert agent_price(agent) == DEFAULT_AGENT_PRICE_CENTS

    @pytest.mark.parametrize("price", [0, -5])
    async def test_register_rejects_non_positive_price(
        self, service, creator_account, price
    ):
        with pytest.raises(InvalidAmountError):
            await service.register_agent(
                creator_account.id,
                "Free",
                "https://agents.example.com/free",
                price_per_execution_cents=price,
            )

    async def test_get_unknown_agent(self, service):
        with pytest.raises(NotFoundError) as exc_info:
            await service.get_agent(uuid4())

        assert_marketplace_exception(exc_info.value, MessageCode.AGENT_NOT_FOUND, 404)

    async def test_list_agents_hides_inactive(
        self, service, db_session, creator_account
    ):
        await AgentFactory.create_async(db_session, owner_id=creator_account.id)
        await AgentFactory.create_async(
            db_session, owner_id=creator_account.id, is_active=False
        )
        await db_session.commit()

        active, active_total = await service.list_agents()
        everything, total = await service.list_agents(active_only=False)

        assert active_total == 1
        assert len(active) == 1
        assert total == 2
        assert len(everything) == 2

    async def test_list_agents_paginates(self, service, db_session, creator_account):
        for _ in range(3):
            await AgentFactory.create_async(db_session, owner_id=creator_account.id)
        await db_session.commit()

        page, total = await service.list_agents(limit=2, offset=2)

        assert total == 3
        assert len(page) == 1

    async def test_list_owned_agents(
        self, service, db_session, creator_account, test_account
    ):
        await AgentFactory.create_async(db_session, owner_id=creator_account.id)
        await AgentFactory.create_async(db_session, owner_id=test_account.id)
        await db_session.commit()

        owned = await service.list_owned_agents(creator_account.id)

        assert [agent.owner_id for agent in owned] == [creator_account.id]

    async def test_owner_updates_price(self, service, test_agent, creator_account):
        agent = await service.update_price(test_agent.id, creator_account.id, 300)

        assert agent.price_per_execution_cents == 300

    async def test_clearing_price_falls_back_to_default(
        self, service, test_agent, creator_account
    ):
        agent = await service.update_price(test_agent.id, creator_account.id, None)

        assert agent_price(agent) == DEFAULT_AGENT_PRICE_CENTS

    async def test_non_owner_cannot_update_price(
        self, service, test_agent, test_account
    ):
        with pytest.raises(ForbiddenError):
            await service.update_price(test_agent.id, test_account.id, 1)

    async def test_set_active(self, service, test_agent, creator_account):
        agent = await service.set_active(test_agent.id, creator_account.id, False)
        assert not agent.is_active

        agent = await service.set_active(test_agent.id, creator_account.id, True)
        assert agent.is_active

    async def test_non_owner_cannot_deactivate(
        self, service, test_agent, test_account
    ):
        with pytest.raises(ForbiddenError):
            await service.set_active(test_agent.id, test_account.id, False)
