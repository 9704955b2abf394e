"""Factory for LedgerEntry models.

Writing entries directly bypasses the ledger service, which is what the
reconciliation tests need to simulate drift.
"""

import factory
from src.database.models import LedgerEntry, LedgerEntryKind
from .base import AsyncSQLAlchemyModelFactory, UUIDFactory


class LedgerEntryFactory(AsyncSQLAlchemyModelFactory[LedgerEntry]):
    class Meta:
        model = LedgerEntry

    id = UUIDFactory()
    sequence = 1
    amount_cents = 1000
    kind = LedgerEntryKind.BONUS
    description = factory.Faker("sentence")
    balance_before_cents = 0
    balance_after_cents = factory.LazyAttribute(
        lambda o: o.balance_before_cents + o.amount_cents
    )
    reference_type = None
    reference_id = None
