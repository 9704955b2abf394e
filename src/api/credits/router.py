"""Credits domain router."""

from fastapi import APIRouter, Query

from src.api.core.constants import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE
from src.api.core.dependencies import AsyncSessionDep, CurrentAccountDep
from src.api.core.messages import APIResponse, MessageCode, Paginated, PaginationInfo
from src.api.credits.schemas import (
    BalanceModel,
    BalanceResponse,
    CheckoutSessionModel,
    CheckoutSessionResponse,
    LedgerEntryModel,
    LedgerHistoryResponse,
    PurchaseCreditsRequest,
    PurchaseModel,
    PurchaseResponse,
)
from src.modules.billing.stripe import StripePaymentService
from src.modules.ledger.service import LedgerService
from src.utils.settings.app import AppSettings

router = APIRouter(
    prefix="/credits",
    tags=["credits"],
)


@router.get("/balance", response_model=BalanceResponse)
async def get_balance(
    db: AsyncSessionDep,
    current_account: CurrentAccountDep,
) -> BalanceResponse:
    """Current credit balance of the caller."""
    account_id = current_account.account.id
    balance = await LedgerService(db).get_balance(account_id)
    return APIResponse.success(
        message_code=MessageCode.SUCCESS,
        data=BalanceModel(account_id=account_id, balance_cents=balance),
    )


@router.get("/transactions", response_model=LedgerHistoryResponse)
async def list_transactions(
    db: AsyncSessionDep,
    current_account: CurrentAccountDep,
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    offset: int = Query(0, ge=0),
) -> LedgerHistoryResponse:
    """Ledger history, newest first."""
    entries, total = await LedgerService(db).list_entries(
        current_account.account.id, limit, offset
    )
    items = [LedgerEntryModel.from_entry(entry) for entry in entries]
    paginated_data = Paginated[LedgerEntryModel](
        items=items,
        pagination=PaginationInfo(
            total=total,
            limit=limit,
            offset=offset,
            has_more=offset + len(items) < total,
        ),
    )
    return APIResponse.success(message_code=MessageCode.SUCCESS, data=paginated_data)


@router.post("/purchase", response_model=CheckoutSessionResponse)
async def purchase_credits(
    body: PurchaseCreditsRequest,
    db: AsyncSessionDep,
    current_account: CurrentAccountDep,
) -> CheckoutSessionResponse:
    """Start a Stripe Checkout session for a credit top-up."""
    frontend_url = AppSettings().FRONTEND_URL.rstrip("/")
    success_url = (
        body.success_url
        or f"{frontend_url}/credits/success?session_id={{CHECKOUT_SESSION_ID}}"
    )
    cancel_url = body.cancel_url or f"{frontend_url}/credits/cancel"

    purchase, checkout_url = await StripePaymentService(db).create_checkout_session(
        account=current_account.account,
        amount_cents=body.amount_cents,
        success_url=success_url,
        cancel_url=cancel_url,
        currency=body.currency,
    )
    return APIResponse.success(
        message_code=MessageCode.CHECKOUT_CREATED,
        data=CheckoutSessionModel(
            checkout_url=checkout_url,
            purchase=PurchaseModel.model_validate(purchase),
        ),
    )


@router.get("/confirm", response_model=PurchaseResponse)
async def confirm_purchase(
    db: AsyncSessionDep,
    current_account: CurrentAccountDep,
    session_id: str = Query(..., min_length=1),
) -> PurchaseResponse:
    """Settle a purchase after the Checkout redirect without waiting for the webhook."""
    purchase = await StripePaymentService(db).confirm_checkout_session(
        current_account.account.id, session_id
    )
    return APIResponse.success(
        message_code=MessageCode.CREDITS_GRANTED,
        data=PurchaseModel.model_validate(purchase),
    )
