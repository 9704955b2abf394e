from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from src.api.core.exceptions.base import NotFoundError
from src.api.core.messages import MessageCode
from src.core.base import BaseService
from src.database.models import Account


def extract_account_data_from_jwt(payload: dict) -> dict:
    """Extract account data from JWT claims for database sync."""
    user_metadata = payload.get("user_metadata") or {}
    name = user_metadata.get("full_name") or user_metadata.get("name")

    return {
        "account_id": payload.get("sub", ""),
        "email": payload.get("email") or None,
        "name": name or None,
    }


class AccountService(BaseService):
    """Account lookup and first-login provisioning."""

    async def get_account(self, account_id: UUID) -> Account:
        account = await self.db.get(Account, account_id)
        if account is None:
            raise NotFoundError(
                MessageCode.ACCOUNT_NOT_FOUND, {"account_id": str(account_id)}
            )
        return account

    async def get_or_create_from_claims(self, payload: dict) -> Account:
        """Return the account named by the token subject, creating it if new."""
        data = extract_account_data_from_jwt(payload)
        account_id = UUID(data["account_id"])

        account = await self.db.get(Account, account_id)
        if account is not None:
            return account

        account = Account(
            id=account_id,
            email=data["email"],
            name=data["name"],
            balance_cents=0,
            entry_count=0,
        )
        self.db.add(account)
        try:
            await self.db.commit()
        except IntegrityError:
            # Another request provisioned the same account first
            await self.db.rollback()
            result = await self.db.execute(
                select(Account).where(Account.id == account_id)
            )
            account = result.scalar_one()
            return account

        self.logger.info(
            "Account provisioned", account_id=str(account_id), email=data["email"]
        )
        return account
