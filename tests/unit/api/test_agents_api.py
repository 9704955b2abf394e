"""Agent catalogue and owner endpoints."""

from uuid import uuid4

from src.api.core.messages import MessageCode
from tests.factories import AgentFactory
from tests.utils.assertions import (
    assert_error_response,
    assert_paginated_response,
    assert_success_response,
    assert_validation_error,
)

WEBHOOK = "https://agents.example.com/hooks/summarize"


async def test_register_agent(creator_client, creator_account):
    response = await creator_client.post(
        "/v1/agents",
        json={
            "name": "Summarizer",
            "webhook_url": WEBHOOK,
            "price_per_execution_cents": 120,
        },
    )

    data = assert_success_response(response, MessageCode.AGENT_CREATED)
    assert data["owner_id"] == str(creator_account.id)
    assert data["webhook_url"] == WEBHOOK
    assert data["price_per_execution_cents"] == 120
    assert data["custom_price_cents"] == 120
    assert data["is_active"] is True


async def test_register_agent_default_price(creator_client):
    response = await creator_client.post(
        "/v1/agents", json={"name": "Echo", "webhook_url": WEBHOOK}
    )

    data = assert_success_response(response, MessageCode.AGENT_CREATED)
    assert data["price_per_execution_cents"] == 50
    assert data["custom_price_cents"] is None


async def test_register_agent_rejects_zero_price(creator_client):
    response = await creator_client.post(
        "/v1/agents",
        json={"name": "Free", "webhook_url": WEBHOOK, "price_per_execution_cents": 0},
    )

    assert_error_response(response, MessageCode.INVALID_AMOUNT, 400)


async def test_register_agent_rejects_bad_url(creator_client):
    response = await creator_client.post(
        "/v1/agents", json={"name": "Broken", "webhook_url": "not a url"}
    )

    assert_validation_error(response)


async def test_catalogue_lists_active_agents_without_webhooks(
    authorized_client, db_session, test_agent, creator_account
):
    await AgentFactory.create_async(
        db_session, owner_id=creator_account.id, is_active=False
    )
    await db_session.commit()

    response = await authorized_client.get("/v1/agents")

    items = assert_paginated_response(response, expected_total=1)
    assert items[0]["id"] == str(test_agent.id)
    assert "webhook_url" not in items[0]


async def test_get_agent(authorized_client, test_agent):
    response = await authorized_client.get(f"/v1/agents/{test_agent.id}")

    assert_success_response(
        response, data_assertions={"name": "Summarizer", "price_per_execution_cents": 100}
    )


async def test_get_unknown_agent(authorized_client):
    response = await authorized_client.get(f"/v1/agents/{uuid4()}")

    assert_error_response(response, MessageCode.AGENT_NOT_FOUND, 404)


async def test_list_my_agents(creator_client, authorized_client, test_agent):
    mine = await creator_client.get("/v1/agents/mine")
    theirs = await authorized_client.get("/v1/agents/mine")

    assert [a["id"] for a in assert_success_response(mine)] == [str(test_agent.id)]
    assert assert_success_response(theirs) == []


async def test_owner_updates_price(creator_client, test_agent):
    response = await creator_client.patch(
        f"/v1/agents/{test_agent.id}/price", json={"price_per_execution_cents": 75}
    )

    assert_success_response(
        response,
        MessageCode.AGENT_UPDATED,
        data_assertions={"price_per_execution_cents": 75},
    )


async def test_non_owner_cannot_update_price(authorized_client, test_agent):
    response = await authorized_client.patch(
        f"/v1/agents/{test_agent.id}/price", json={"price_per_execution_cents": 1}
    )

    assert_error_response(response, MessageCode.FORBIDDEN, 403)


async def test_owner_deactivates_agent(creator_client, authorized_client, test_agent):
    response = await creator_client.patch(
        f"/v1/agents/{test_agent.id}/active", json={"is_active": False}
    )
    assert_success_response(
        response, MessageCode.AGENT_UPDATED, data_assertions={"is_active": False}
    )

    catalogue = await authorized_client.get("/v1/agents")
    assert assert_paginated_response(catalogue, expected_total=0) == []
