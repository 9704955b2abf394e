from functools import wraps
from typing import Any, Callable

from fastapi import Request, status
import redis.asyncio as redis

from src.api.core.exceptions.base import MarketplaceException
from src.api.core.messages import MessageCode
from src.api.core.models.rate_limit import ClientIdentifier, RateLimitClientType
from src.redis.rate_limiter import SlidingWindowLimiter
from src.utils.logger import get_client_ip, get_logger


logger = get_logger(__name__)


def create_rate_limit_key(request: Request, scope: str) -> ClientIdentifier:
    """Identify the caller by account when authenticated, else by IP."""
    account = getattr(request.state, "account", None)
    if account is not None and getattr(account, "id", None):
        return ClientIdentifier(
            client_type=RateLimitClientType.ACCOUNT,
            client_id=str(account.id),
            scope=scope,
        )

    return ClientIdentifier(
        client_type=RateLimitClientType.IP,
        client_id=get_client_ip(request),
        scope=scope,
    )


def rate_limit(limit: int, window_seconds: int, scope: str = "default"):
    """
    Rate limiting decorator for FastAPI endpoints.

    The endpoint must accept ``request`` and ``redis_client`` parameters.

    Args:
        limit: Maximum requests allowed
        window_seconds: Time window in seconds
        scope: Name separating this endpoint's window from others
    """

    def decorator(func: Callable[..., Any]) -> Callable[..., Any]:
        @wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> Any:
            request: Request | None = kwargs.get("request")
            redis_client: redis.Redis | None = kwargs.get("redis_client")

            if not request:
                logger.error("Rate limit decorator: Request not found")
                return await func(*args, **kwargs)

            if not redis_client:
                logger.warning(
                    "Rate limit decorator: Redis client not found, skipping rate limit"
                )
                return await func(*args, **kwargs)

            await check_rate_limit(request, redis_client, limit, window_seconds, scope)
            return await func(*args, **kwargs)

        return wrapper

    return decorator


async def check_rate_limit(
    request: Request,
    redis_client: redis.Redis,
    limit: int,
    window_seconds: int,
    scope: str = "default",
) -> None:
    """
    Check rate limit for endpoint.

    Raises:
        MarketplaceException: When rate limit is exceeded
    """
    client_identifier = create_rate_limit_key(request, scope)
    limiter = SlidingWindowLimiter(redis_client, limit, window_seconds)
    result = await limiter.hit(client_identifier)

    if not result.is_allowed:
        logger.warning(
            "Rate limit exceeded",
            scope=scope,
            client=str(client_identifier),
            current_count=result.current_count,
            limit=result.limit,
            retry_after=result.retry_after,
        )

        raise MarketplaceException(
            MessageCode.RATE_LIMIT_EXCEEDED,
            status.HTTP_429_TOO_MANY_REQUESTS,
            details={
                "limit": result.limit,
                "window_seconds": result.window_seconds,
                "current_count": result.current_count,
                "retry_after": result.retry_after,
            },
            headers={
                "Retry-After": str(result.retry_after),
                "X-RateLimit-Limit": str(result.limit),
                "X-RateLimit-Remaining": str(result.remaining),
                "X-RateLimit-Window": str(result.window_seconds),
            },
        )
