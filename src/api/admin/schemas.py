"""Admin API schemas."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

from src.api.core.messages import APIResponse
from src.modules.earnings.service import PlatformRevenueSummary
from src.modules.ledger.service import AccountReconciliation
from src.modules.reconciliation.service import ReconciliationReport


class AgentEarningsModel(BaseModel):
    agent_id: UUID
    owner_id: UUID
    total_earnings_cents: int
    pending_earnings_cents: int
    paid_out_cents: int
    total_executions: int
    last_earning_at: datetime | None

    model_config = {"from_attributes": True}


class ProcessPayoutRequest(BaseModel):
    succeeded: bool
    failure_reason: str | None = Field(default=None, max_length=500)
    credit_to_balance: bool = False


ReconciliationReportResponse = APIResponse[ReconciliationReport]
AccountRepairResponse = APIResponse[AccountReconciliation]
AgentEarningsRepairResponse = APIResponse[AgentEarningsModel | None]
PlatformRevenueResponse = APIResponse[PlatformRevenueSummary]
