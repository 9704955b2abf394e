"""Earnings API schemas (combined models/requests)."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

from src.api.core.messages import APIResponse
from src.modules.earnings.service import EarningsSummary


class PayoutModel(BaseModel):
    id: UUID
    amount_cents: int
    status: str
    description: str | None
    failure_reason: str | None
    created_at: datetime
    processed_at: datetime | None

    model_config = {"from_attributes": True}


class CreatePayoutRequest(BaseModel):
    amount_cents: int
    description: str | None = Field(default=None, max_length=500)


EarningsSummaryResponse = APIResponse[EarningsSummary]
PayoutResponse = APIResponse[PayoutModel]
PayoutListResponse = APIResponse[list[PayoutModel]]
