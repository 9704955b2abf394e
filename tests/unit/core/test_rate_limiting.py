"""Tests for rate limiting functionality."""

from unittest.mock import AsyncMock, MagicMock, patch
from uuid import uuid4

import pytest

from src.api.core.decorators.rate_limit import check_rate_limit, create_rate_limit_key
from src.api.core.exceptions.base import MarketplaceException
from src.api.core.messages import MessageCode
from src.api.core.models.rate_limit import (
    ClientIdentifier,
    RateLimitClientType,
)
from src.redis.rate_limiter import SlidingWindowLimiter

from tests.fakes import build_mock_redis


def _request(account=None):
    mock_request = MagicMock()
    mock_request.state.account = account
    return mock_request


def test_client_identifier_creation_account():
    account = MagicMock()
    account.id = uuid4()

    result = create_rate_limit_key(_request(account), scope="execute")

    assert isinstance(result, ClientIdentifier)
    assert result.client_type == RateLimitClientType.ACCOUNT
    assert result.client_id == str(account.id)
    assert result.to_cache_key() == f"rate_limit:execute:account:{account.id}"
    assert str(result) == f"account:{account.id}"


def test_client_identifier_creation_ip_fallback():
    with patch(
        "src.api.core.decorators.rate_limit.get_client_ip", return_value="10.0.0.7"
    ):
        result = create_rate_limit_key(_request(), scope="execute")

    assert result.client_type == RateLimitClientType.IP
    assert result.client_id == "10.0.0.7"
    assert result.to_cache_key() == "rate_limit:execute:ip:10.0.0.7"


def test_scopes_do_not_share_keys():
    first = ClientIdentifier(
        client_type=RateLimitClientType.IP, client_id="1.2.3.4", scope="execute"
    )
    second = first.model_copy(update={"scope": "default"})

    assert first.to_cache_key() != second.to_cache_key()


class TestSlidingWindowLimiter:
    identifier = ClientIdentifier(
        client_type=RateLimitClientType.ACCOUNT, client_id="acct", scope="execute"
    )

    def _limiter(self, redis_client, limit=5, window_seconds=60):
        return SlidingWindowLimiter(redis_client, limit, window_seconds)

    async def test_admits_request_under_limit(self):
        redis_client = build_mock_redis(current_count=2)

        result = await self._limiter(redis_client).hit(self.identifier)

        assert result.is_allowed
        assert result.current_count == 3
        assert result.remaining == 2
        assert result.retry_after is None
        redis_client.zrem.assert_not_awaited()

    async def test_last_slot_is_admitted(self):
        result = await self._limiter(build_mock_redis(current_count=4)).hit(
            self.identifier
        )

        assert result.is_allowed
        assert result.remaining == 0

    async def test_rejected_request_leaves_the_window(self):
        redis_client = build_mock_redis(current_count=5)

        result = await self._limiter(redis_client).hit(self.identifier)

        assert not result.is_allowed
        assert result.current_count == 5
        assert result.retry_after == 60
        redis_client.zrem.assert_awaited_once()
        key, member = redis_client.zrem.await_args.args
        assert key == "rate_limit:execute:account:acct"
        added = redis_client.pipeline.return_value.zadd.call_args.args[1]
        assert member in added

    async def test_retry_after_follows_oldest_request(self):
        redis_client = build_mock_redis(current_count=5)
        redis_client.zrange = AsyncMock(return_value=[(b"first", 970.0)])

        with patch("src.redis.rate_limiter.time.time", return_value=1_000.0):
            result = await self._limiter(redis_client).hit(self.identifier)

        assert result.retry_after == 30

    async def test_retry_after_rounds_up_and_never_reaches_zero(self):
        redis_client = build_mock_redis(current_count=5)
        redis_client.zrange = AsyncMock(return_value=[(b"first", 940.2)])

        with patch("src.redis.rate_limiter.time.time", return_value=1_000.0):
            result = await self._limiter(redis_client).hit(self.identifier)

        assert result.retry_after == 1

    async def test_expired_entries_are_trimmed_first(self):
        redis_client = build_mock_redis()

        with patch("src.redis.rate_limiter.time.time", return_value=1_000.0):
            await self._limiter(redis_client, window_seconds=60).hit(self.identifier)

        pipe = redis_client.pipeline.return_value
        pipe.zremrangebyscore.assert_called_once_with(
            "rate_limit:execute:account:acct", 0, 940.0
        )
        pipe.expire.assert_called_once_with("rate_limit:execute:account:acct", 61)

    async def test_admits_when_redis_errors(self):
        redis_client = build_mock_redis()
        redis_client.pipeline.return_value.execute = AsyncMock(
            side_effect=ConnectionError("redis down")
        )

        result = await self._limiter(redis_client, limit=1).hit(self.identifier)

        assert result.is_allowed
        assert result.current_count == 0


async def test_check_rate_limit_raises_429_with_retry_after():
    with patch(
        "src.api.core.decorators.rate_limit.get_client_ip", return_value="10.0.0.7"
    ):
        with pytest.raises(MarketplaceException) as exc_info:
            await check_rate_limit(
                _request(), build_mock_redis(current_count=3), 3, 60, "execute"
            )

    exc = exc_info.value
    assert exc.status_code == 429
    assert exc.message_code == MessageCode.RATE_LIMIT_EXCEEDED
    assert exc.headers["Retry-After"] == "60"
    assert exc.headers["X-RateLimit-Limit"] == "3"
    assert exc.headers["X-RateLimit-Remaining"] == "0"
    assert exc.details["retry_after"] == 60
    assert exc.details["current_count"] == 3


async def test_check_rate_limit_passes_under_limit():
    account = MagicMock()
    account.id = uuid4()

    await check_rate_limit(_request(account), build_mock_redis(), 3, 60, "execute")
