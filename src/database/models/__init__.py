"""Database models for the agent marketplace."""

from .accounts import Account
from .agents import Agent
from .base import Base
from .earnings import AgentEarnings, Payout, PayoutStatus
from .executions import Execution, ExecutionStatus
from .ledger import LedgerEntry, LedgerEntryKind, LedgerReferenceType
from .purchases import CreditPurchase, PurchaseStatus

# Export all models and enums
__all__ = [
    # Base
    "Base",
    # Enums
    "ExecutionStatus",
    "LedgerEntryKind",
    "LedgerReferenceType",
    "PayoutStatus",
    "PurchaseStatus",
    # Models
    "Account",
    "Agent",
    "AgentEarnings",
    "CreditPurchase",
    "Execution",
    "LedgerEntry",
    "Payout",
]
