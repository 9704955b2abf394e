"""Factories for AgentEarnings and Payout models."""

import factory
from src.database.models import AgentEarnings, Payout, PayoutStatus
from .base import AsyncSQLAlchemyModelFactory, UUIDFactory


class AgentEarningsFactory(AsyncSQLAlchemyModelFactory[AgentEarnings]):
    class Meta:
        model = AgentEarnings

    id = UUIDFactory()
    total_earnings_cents = 0
    pending_earnings_cents = 0
    paid_out_cents = 0
    total_executions = 0


class PayoutFactory(AsyncSQLAlchemyModelFactory[Payout]):
    class Meta:
        model = Payout

    id = UUIDFactory()
    amount_cents = 500
    status = PayoutStatus.PENDING
    allocations = factory.LazyFunction(dict)
