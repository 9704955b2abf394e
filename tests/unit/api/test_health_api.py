"""Public endpoints and authentication middleware."""

from unittest.mock import AsyncMock
from uuid import uuid4

from src.api.core.messages import MessageCode
from tests.utils.assertions import assert_error_response


async def test_root(public_client):
    response = await public_client.get("/")

    assert response.status_code == 200
    body = response.json()
    assert body["service"] == "agent-marketplace-api"
    assert body["docs"] == "/docs"


async def test_liveness(public_client):
    response = await public_client.get("/health/liveness")

    assert response.status_code == 200
    assert response.json()["status"] == "alive"


async def test_health_reports_services(public_client):
    response = await public_client.get("/health")

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "healthy"
    assert body["services"]["database"]["connected"] is True
    assert body["services"]["redis"]["connected"] is True


async def test_health_degraded_without_redis(public_client, mock_redis):
    mock_redis.ping = AsyncMock(side_effect=ConnectionError("redis down"))

    response = await public_client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "degraded"


async def test_security_headers_present(public_client):
    response = await public_client.get("/health/liveness")

    assert response.headers["X-Content-Type-Options"] == "nosniff"


class TestAuthentication:
    async def test_missing_token(self, public_client):
        response = await public_client.get("/v1/credits/balance")

        assert_error_response(response, MessageCode.AUTH_REQUIRED, 401)

    async def test_malformed_header(self, public_client):
        response = await public_client.get(
            "/v1/credits/balance", headers={"Authorization": "Token abc"}
        )

        assert_error_response(response, MessageCode.INVALID_TOKEN, 401)

    async def test_invalid_token(self, public_client):
        response = await public_client.get(
            "/v1/credits/balance", headers={"Authorization": "Bearer not-a-jwt"}
        )

        assert_error_response(response, MessageCode.INVALID_TOKEN, 401)

    async def test_first_request_provisions_account(
        self, public_client, jwt_token_factory
    ):
        account_id = str(uuid4())
        token = jwt_token_factory(account_id, "fresh@example.com")

        response = await public_client.get(
            "/v1/credits/balance", headers={"Authorization": f"Bearer {token}"}
        )

        assert response.status_code == 200
        assert response.json()["data"] == {
            "account_id": account_id,
            "balance_cents": 0,
        }
