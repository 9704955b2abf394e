"""Credits API schemas (combined models/requests)."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

from src.api.core.messages import APIResponse, Paginated
from src.database.models import LedgerEntry


class BalanceModel(BaseModel):
    account_id: UUID
    balance_cents: int


class LedgerEntryModel(BaseModel):
    id: UUID
    sequence: int
    amount_cents: int
    kind: str
    description: str
    balance_before_cents: int
    balance_after_cents: int
    reference_type: str | None
    reference_id: str | None
    metadata: dict | None
    created_at: datetime

    @classmethod
    def from_entry(cls, entry: LedgerEntry) -> "LedgerEntryModel":
        return cls(
            id=entry.id,
            sequence=entry.sequence,
            amount_cents=entry.amount_cents,
            kind=entry.kind,
            description=entry.description,
            balance_before_cents=entry.balance_before_cents,
            balance_after_cents=entry.balance_after_cents,
            reference_type=entry.reference_type,
            reference_id=entry.reference_id,
            metadata=entry.metadata_json,
            created_at=entry.created_at,
        )


class PurchaseCreditsRequest(BaseModel):
    amount_cents: int
    currency: str | None = Field(default=None, min_length=3, max_length=3)
    success_url: str | None = None
    cancel_url: str | None = None


class PurchaseModel(BaseModel):
    id: UUID
    amount_cents: int
    credits_purchased: int
    currency: str
    status: str
    stripe_checkout_session_id: str | None
    created_at: datetime
    completed_at: datetime | None

    model_config = {"from_attributes": True}


class CheckoutSessionModel(BaseModel):
    checkout_url: str
    purchase: PurchaseModel


class GrantCreditsRequest(BaseModel):
    account_id: UUID
    amount_cents: int
    description: str = Field(default="Bonus credits", max_length=500)


BalanceResponse = APIResponse[BalanceModel]
LedgerHistoryResponse = APIResponse[Paginated[LedgerEntryModel]]
CheckoutSessionResponse = APIResponse[CheckoutSessionModel]
PurchaseResponse = APIResponse[PurchaseModel]
LedgerEntryResponse = APIResponse[LedgerEntryModel]

