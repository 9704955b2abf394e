from functools import wraps

from fastapi import Request, status

from src.api.core.exceptions.base import ForbiddenError, MarketplaceException
from src.api.core.messages import MessageCode
from src.utils.logger import get_logger

logger = get_logger(__name__)


def admin():
    """Restrict an endpoint to accounts listed in ADMIN_ACCOUNT_IDS."""

    def decorator(func):
        @wraps(func)
        async def wrapper(*args, **kwargs):
            request = kwargs.get("request")
            if not isinstance(request, Request):
                raise MarketplaceException(
                    MessageCode.AUTH_REQUIRED,
                    status.HTTP_401_UNAUTHORIZED,
                    {"description": "Request object not found"},
                )

            auth = getattr(request.state, "auth", None)
            if auth is None:
                raise MarketplaceException(
                    MessageCode.AUTH_REQUIRED,
                    status.HTTP_401_UNAUTHORIZED,
                    {"description": "Authentication required"},
                )

            if not auth.is_admin:
                logger.warning(
                    "Unauthorized admin access attempt",
                    account_id=str(auth.account.id),
                    endpoint=request.url.path,
                )
                raise ForbiddenError(
                    MessageCode.ADMIN_REQUIRED,
                    {"description": "Admin access required"},
                )

            logger.info(
                "Admin access granted",
                account_id=str(auth.account.id),
                endpoint=request.url.path,
            )
            return await func(*args, **kwargs)

        return wrapper

    return decorator
