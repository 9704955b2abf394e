"""Test factories for marketplace models."""

from .base import AsyncSQLAlchemyModelFactory
from .accounts import AccountFactory
from .agents import AgentFactory
from .earnings import AgentEarningsFactory, PayoutFactory
from .executions import ExecutionFactory
from .ledger import LedgerEntryFactory
from .purchases import CreditPurchaseFactory

__all__ = [
    "AsyncSQLAlchemyModelFactory",
    "AccountFactory",
    "AgentFactory",
    "AgentEarningsFactory",
    "PayoutFactory",
    "ExecutionFactory",
    "LedgerEntryFactory",
    "CreditPurchaseFactory",
]
