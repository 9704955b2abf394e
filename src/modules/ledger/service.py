"""Append-only credit ledger.

Every balance change goes through ``LedgerService.append_entry``, which moves
the cached ``Account.balance_cents`` and writes the matching ``LedgerEntry`` in
the caller's transaction.
"""

from datetime import datetime, timezone
from typing import Any
from uuid import UUID

from pydantic import BaseModel
from sqlalchemy import func, select, update

from src.api.core.exceptions.base import (
    InsufficientCreditsError,
    InvalidAmountError,
    NotFoundError,
)
from src.api.core.messages import MessageCode
from src.core.base import BaseService
from src.database.models import (
    Account,
    LedgerEntry,
    LedgerEntryKind,
    LedgerReferenceType,
)


class AccountReconciliation(BaseModel):
    account_id: UUID
    stored_balance_cents: int
    computed_balance_cents: int
    entry_count: int
    consistent: bool


class LedgerService(BaseService):
    """Ledger reads and the single write path for account balances."""

    async def get_balance(self, account_id: UUID) -> int:
        result = await self.db.execute(
            select(Account.balance_cents).where(Account.id == account_id)
        )
        balance = result.scalar_one_or_none()
        if balance is None:
            raise NotFoundError(
                MessageCode.ACCOUNT_NOT_FOUND, {"account_id": str(account_id)}
            )
        return balance

    async def append_entry(
        self,
        account_id: UUID,
        amount_cents: int,
        kind: LedgerEntryKind,
        description: str,
        reference_type: LedgerReferenceType | None = None,
        reference_id: str | None = None,
        metadata: dict[str, Any] | None = None,
        allow_negative: bool = False,
    ) -> LedgerEntry:
        """Apply ``amount_cents`` to the account and record the entry.

        The balance moves through one conditional UPDATE so concurrent debits
        against the same account serialize on its row and can never overdraw
        it. Does not commit.

        Raises:
            InvalidAmountError: amount is zero
            NotFoundError: account does not exist
            InsufficientCreditsError: debit larger than the current balance
        """
        if amount_cents == 0:
            raise InvalidAmountError({"description": "Ledger entries cannot be zero"})

        stmt = (
            update(Account)
            .where(Account.id == account_id)
            .values(
                balance_cents=Account.balance_cents + amount_cents,
                entry_count=Account.entry_count + 1,
                updated_at=datetime.now(timezone.utc),
            )
            .returning(Account.balance_cents, Account.entry_count)
            .execution_options(synchronize_session=False)
        )
        if amount_cents < 0 and not allow_negative:
            stmt = stmt.where(Account.balance_cents >= -amount_cents)

        row = (await self.db.execute(stmt)).one_or_none()
        if row is None:
            available = await self.get_balance(account_id)
            self.logger.info(
                "Ledger debit rejected",
                account_id=str(account_id),
                amount_cents=amount_cents,
                available_cents=available,
            )
            raise InsufficientCreditsError(
                required=-amount_cents, available=available
            )

        balance_after, sequence = row
        entry = LedgerEntry(
            account_id=account_id,
            sequence=sequence,
            amount_cents=amount_cents,
            kind=kind,
            description=description,
            balance_before_cents=balance_after - amount_cents,
            balance_after_cents=balance_after,
            reference_type=reference_type,
            reference_id=reference_id,
            metadata_json=metadata,
        )
        self.db.add(entry)
        await self.db.flush()

        self.logger.debug(
            "Ledger entry appended",
            account_id=str(account_id),
            kind=kind,
            amount_cents=amount_cents,
            sequence=sequence,
            balance_after_cents=balance_after,
        )
        return entry

    async def reconcile(self, account_id: UUID) -> AccountReconciliation:
        account = await self.db.get(Account, account_id, populate_existing=True)
        if account is None:
            raise NotFoundError(
                MessageCode.ACCOUNT_NOT_FOUND, {"account_id": str(account_id)}
            )

        result = await self.db.execute(
            select(
                func.coalesce(func.sum(LedgerEntry.amount_cents), 0),
                func.count(LedgerEntry.id),
            ).where(LedgerEntry.account_id == account_id)
        )
        computed, entry_count = result.one()

        return AccountReconciliation(
            account_id=account_id,
            stored_balance_cents=account.balance_cents,
            computed_balance_cents=int(computed),
            entry_count=int(entry_count),
            consistent=account.balance_cents == int(computed),
        )

    async def list_entries(
        self, account_id: UUID, limit: int, offset: int
    ) -> tuple[list[LedgerEntry], int]:
        """Most recent entries first."""
        total = (
            await self.db.execute(
                select(func.count(LedgerEntry.id)).where(
                    LedgerEntry.account_id == account_id
                )
            )
        ).scalar_one()

        result = await self.db.execute(
            select(LedgerEntry)
            .where(LedgerEntry.account_id == account_id)
            .order_by(LedgerEntry.sequence.desc())
            .limit(limit)
            .offset(offset)
        )
        return list(result.scalars().all()), total

    async def grant_bonus(
        self, account_id: UUID, amount_cents: int, description: str
    ) -> LedgerEntry:
        if amount_cents <= 0:
            raise InvalidAmountError(
                {"description": "Bonus amount must be positive"}
            )

        entry = await self.append_entry(
            account_id,
            amount_cents,
            LedgerEntryKind.BONUS,
            description,
            reference_type=LedgerReferenceType.ADMIN,
        )
        await self.db.commit()

        self.logger.info(
            "Bonus credits granted",
            account_id=str(account_id),
            amount_cents=amount_cents,
            balance_after_cents=entry.balance_after_cents,
        )
        return entry
