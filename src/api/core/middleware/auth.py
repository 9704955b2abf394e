import structlog
from fastapi import Request, status
from fastapi.responses import JSONResponse

from src.api.core.constants import SKIP_AUTH_PATHS
from src.api.core.exceptions.base import MarketplaceException
from src.api.core.messages import MessageCode
from src.modules.accounts.auth_handlers import handle_jwt_auth
from src.utils.path_helpers import path_matches
from src.utils.logger import get_logger

logger = get_logger(__name__)


def _reject(exc: MarketplaceException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_response_dict(),
        headers=exc.headers,
    )


async def auth_middleware(request: Request, call_next):
    """Authenticate bearer tokens and attach the account to request state."""
    request.state.account = None
    request.state.auth = None

    if request.method == "OPTIONS" or path_matches(request.url.path, SKIP_AUTH_PATHS):
        return await call_next(request)

    authorization = request.headers.get("Authorization", "")
    if not authorization:
        return _reject(
            MarketplaceException(
                MessageCode.AUTH_REQUIRED,
                status.HTTP_401_UNAUTHORIZED,
                {"description": "Provide an 'Authorization: Bearer <token>' header"},
            )
        )

    auth_parts = authorization.split(" ")
    if len(auth_parts) != 2 or auth_parts[0].lower() != "bearer":
        return _reject(
            MarketplaceException(
                MessageCode.INVALID_TOKEN,
                status.HTTP_401_UNAUTHORIZED,
                {"description": "Authorization header must be 'Bearer <token>'"},
            )
        )

    session_factory = request.app.state.session_factory
    async with session_factory() as db:
        try:
            auth = await handle_jwt_auth(db, auth_parts[1])
        except MarketplaceException as e:
            logger.debug(
                "Authentication rejected",
                message_code=e.message_code,
                details=e.details,
            )
            return _reject(e)
        except Exception as e:
            logger.error(
                "Unexpected authentication error",
                error=str(e),
                error_type=type(e).__name__,
            )
            return _reject(
                MarketplaceException(
                    MessageCode.AUTH_REQUIRED,
                    status.HTTP_401_UNAUTHORIZED,
                    {"description": "Authentication failed"},
                )
            )

    request.state.auth = auth
    request.state.account = auth.account
    structlog.contextvars.bind_contextvars(account_id=str(auth.account.id))
    return await call_next(request)
