"""Bearer token authentication."""

from uuid import UUID

from fastapi import status
from jose import JWTError, jwt
from sqlalchemy.ext.asyncio import AsyncSession

from src.api.core.constants import JWT_ALGORITHM
from src.api.core.exceptions.base import MarketplaceException
from src.api.core.messages import MessageCode
from src.core.context import AuthenticatedAccountContext
from src.modules.accounts.service import AccountService
from src.utils.settings.app import AppSettings
from src.utils.settings.auth import AuthSettings
from src.utils.logger import get_logger

logger = get_logger(__name__)


def decode_token(token: str) -> dict:
    auth_settings = AuthSettings()
    try:
        payload = jwt.decode(
            token,
            auth_settings.JWT_SECRET,
            algorithms=[JWT_ALGORITHM],
            audience=auth_settings.JWT_AUDIENCE,
        )
    except JWTError as e:
        logger.warning("JWT decoding failed", error=str(e))
        raise MarketplaceException(
            MessageCode.INVALID_TOKEN,
            status.HTTP_401_UNAUTHORIZED,
            {"description": "Invalid or expired authentication token"},
        )

    try:
        UUID(str(payload.get("sub", "")))
    except ValueError:
        raise MarketplaceException(
            MessageCode.INVALID_TOKEN,
            status.HTTP_401_UNAUTHORIZED,
            {"description": "Token subject must be an account id"},
        )
    return payload


async def handle_jwt_auth(db: AsyncSession, token: str) -> AuthenticatedAccountContext:
    payload = decode_token(token)
    account = await AccountService(db).get_or_create_from_claims(payload)
    is_admin = str(account.id) in set(AppSettings().ADMIN_ACCOUNT_IDS)
    return AuthenticatedAccountContext(
        account=account, is_admin=is_admin, claims=payload
    )
