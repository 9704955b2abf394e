from typing import Annotated, AsyncGenerator

from fastapi import Depends, Request, status
from sqlalchemy.ext.asyncio import AsyncSession
import redis.asyncio as redis

from src.api.core.exceptions.base import MarketplaceException
from src.api.core.messages import MessageCode
from src.core.context import AuthenticatedAccountContext
from src.modules.execution.webhook_client import WebhookInvoker
from src.redis.client import get_redis_client


async def get_db_session(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """Get database session from app state."""
    session_factory = request.app.state.session_factory
    async with session_factory() as session:
        yield session


def get_webhook_client(request: Request) -> WebhookInvoker:
    """Get the shared webhook client from app state."""
    return request.app.state.webhook_client


async def get_current_account(request: Request) -> AuthenticatedAccountContext:
    """Dependency to get the authenticated account context.

    Assumes auth middleware has set request.state.auth.
    """
    auth = getattr(request.state, "auth", None)
    if auth is None:
        raise MarketplaceException(
            MessageCode.AUTH_REQUIRED, status.HTTP_401_UNAUTHORIZED
        )
    return auth


AsyncSessionDep = Annotated[AsyncSession, Depends(get_db_session)]
RedisDep = Annotated[redis.Redis, Depends(get_redis_client)]
WebhookClientDep = Annotated[WebhookInvoker, Depends(get_webhook_client)]

CurrentAccountDep = Annotated[
    AuthenticatedAccountContext, Depends(get_current_account)
]
