"""Operator endpoints: reconciliation, repair, payouts and bonus credits."""

from uuid import UUID

from fastapi import APIRouter, Request

from src.api.admin.schemas import (
    AccountRepairResponse,
    AgentEarningsModel,
    AgentEarningsRepairResponse,
    PlatformRevenueResponse,
    ProcessPayoutRequest,
    ReconciliationReportResponse,
)
from src.api.core.decorators.admin import admin
from src.api.core.dependencies import AsyncSessionDep
from src.api.core.messages import APIResponse, MessageCode
from src.api.credits.schemas import (
    GrantCreditsRequest,
    LedgerEntryModel,
    LedgerEntryResponse,
)
from src.api.earnings.schemas import PayoutModel, PayoutResponse
from src.modules.earnings.payouts import PayoutService
from src.modules.earnings.service import EarningsService
from src.modules.ledger.service import LedgerService
from src.modules.reconciliation.service import ReconciliationService

router = APIRouter(
    prefix="/admin",
    tags=["admin"],
)


@router.get("/reconciliation", response_model=ReconciliationReportResponse)
@admin()
async def get_reconciliation_report(
    request: Request,
    db: AsyncSessionDep,
) -> ReconciliationReportResponse:
    """Run every consistency check. Read only."""
    report = await ReconciliationService(db).build_report()
    message_code = (
        MessageCode.RECONCILIATION_CLEAN
        if report.consistent
        else MessageCode.RECONCILIATION_ISSUES_FOUND
    )
    return APIResponse.success(message_code=message_code, data=report)


@router.post(
    "/reconciliation/accounts/{account_id}/repair",
    response_model=AccountRepairResponse,
)
@admin()
async def repair_account_balance(
    request: Request,
    account_id: UUID,
    db: AsyncSessionDep,
) -> AccountRepairResponse:
    """Reset the stored balance to the ledger sum."""
    result = await ReconciliationService(db).repair_account_balance(account_id)
    return APIResponse.success(message_code=MessageCode.REPAIRED, data=result)


@router.post(
    "/reconciliation/agents/{agent_id}/repair",
    response_model=AgentEarningsRepairResponse,
)
@admin()
async def repair_agent_earnings(
    request: Request,
    agent_id: UUID,
    db: AsyncSessionDep,
) -> AgentEarningsRepairResponse:
    """Rebuild the earnings row from the agent's charged executions."""
    earnings = await ReconciliationService(db).repair_agent_earnings(agent_id)
    return APIResponse.success(
        message_code=MessageCode.REPAIRED,
        data=AgentEarningsModel.model_validate(earnings) if earnings else None,
    )


@router.post("/payouts/{payout_id}/process", response_model=PayoutResponse)
@admin()
async def process_payout(
    request: Request,
    payout_id: UUID,
    body: ProcessPayoutRequest,
    db: AsyncSessionDep,
) -> PayoutResponse:
    payout = await PayoutService(db).process_payout(
        payout_id,
        succeeded=body.succeeded,
        failure_reason=body.failure_reason,
        credit_to_balance=body.credit_to_balance,
    )
    return APIResponse.success(
        message_code=MessageCode.PAYOUT_PROCESSED,
        data=PayoutModel.model_validate(payout),
    )


@router.post("/credits/grant", response_model=LedgerEntryResponse)
@admin()
async def grant_credits(
    request: Request,
    body: GrantCreditsRequest,
    db: AsyncSessionDep,
) -> LedgerEntryResponse:
    entry = await LedgerService(db).grant_bonus(
        body.account_id, body.amount_cents, body.description
    )
    return APIResponse.success(
        message_code=MessageCode.CREDITS_GRANTED,
        data=LedgerEntryModel.from_entry(entry),
    )


@router.get("/revenue", response_model=PlatformRevenueResponse)
@admin()
async def get_platform_revenue(
    request: Request,
    db: AsyncSessionDep,
) -> PlatformRevenueResponse:
    summary = await EarningsService(db).get_platform_revenue_summary()
    return APIResponse.success(message_code=MessageCode.SUCCESS, data=summary)
