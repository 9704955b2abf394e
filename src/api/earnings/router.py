"""Creator earnings and payouts router."""

from fastapi import APIRouter, Query

from src.api.core.constants import MAX_PAGE_SIZE
from src.api.core.dependencies import AsyncSessionDep, CurrentAccountDep
from src.api.core.messages import APIResponse, MessageCode
from src.api.earnings.schemas import (
    CreatePayoutRequest,
    EarningsSummaryResponse,
    PayoutListResponse,
    PayoutModel,
    PayoutResponse,
)
from src.modules.earnings.payouts import PayoutService
from src.modules.earnings.service import EarningsService

router = APIRouter(
    prefix="/earnings",
    tags=["earnings"],
)


@router.get("", response_model=EarningsSummaryResponse)
async def get_earnings_summary(
    db: AsyncSessionDep,
    current_account: CurrentAccountDep,
) -> EarningsSummaryResponse:
    """Earnings across every agent the caller owns."""
    summary = await EarningsService(db).get_earnings_summary(current_account.account.id)
    return APIResponse.success(message_code=MessageCode.SUCCESS, data=summary)


@router.get("/payouts", response_model=PayoutListResponse)
async def list_payouts(
    db: AsyncSessionDep,
    current_account: CurrentAccountDep,
    limit: int = Query(50, ge=1, le=MAX_PAGE_SIZE),
) -> PayoutListResponse:
    payouts = await PayoutService(db).list_payouts(current_account.account.id, limit)
    return APIResponse.success(
        message_code=MessageCode.SUCCESS,
        data=[PayoutModel.model_validate(payout) for payout in payouts],
    )


@router.post("/payouts", response_model=PayoutResponse)
async def request_payout(
    body: CreatePayoutRequest,
    db: AsyncSessionDep,
    current_account: CurrentAccountDep,
) -> PayoutResponse:
    """Withdraw pending earnings. The amount is reserved until the payout is processed."""
    payout = await PayoutService(db).create_payout_request(
        current_account.account.id, body.amount_cents, body.description
    )
    return APIResponse.success(
        message_code=MessageCode.PAYOUT_REQUESTED,
        data=PayoutModel.model_validate(payout),
    )
