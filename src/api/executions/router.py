"""Executions domain router."""

from fastapi import APIRouter, Query, Request

from src.api.core.constants import (
    DEFAULT_PAGE_SIZE,
    EXECUTE_RATE_LIMIT_SCOPE,
    MAX_PAGE_SIZE,
)
from src.api.core.decorators.rate_limit import rate_limit
from src.api.core.dependencies import (
    AsyncSessionDep,
    CurrentAccountDep,
    RedisDep,
    WebhookClientDep,
)
from src.api.core.exceptions.base import UpstreamUnavailableError
from src.api.core.messages import APIResponse, MessageCode, Paginated, PaginationInfo
from src.api.executions.schemas import (
    ExecuteAgentRequest,
    ExecutionHistoryResponse,
    ExecutionModel,
    ExecutionResultResponse,
)
from src.modules.execution.service import ExecutionBillingService
from src.utils.settings.billing import BillingSettings

billing_settings = BillingSettings()

router = APIRouter(
    prefix="/executions",
    tags=["executions"],
)


@router.post("", response_model=ExecutionResultResponse)
@rate_limit(
    limit=billing_settings.EXECUTE_RATE_LIMIT,
    window_seconds=billing_settings.EXECUTE_RATE_LIMIT_WINDOW_SECONDS,
    scope=EXECUTE_RATE_LIMIT_SCOPE,
)
async def execute_agent(
    request: Request,
    body: ExecuteAgentRequest,
    db: AsyncSessionDep,
    redis_client: RedisDep,
    webhook_client: WebhookClientDep,
    current_account: CurrentAccountDep,
) -> ExecutionResultResponse:
    """Run an agent. The caller is charged only when the agent succeeds."""
    result = await ExecutionBillingService(db, webhook_client).execute(
        account_id=current_account.account.id,
        agent_id=body.agent_id,
        input_data=body.input,
    )

    if not result.success:
        raise UpstreamUnavailableError(
            {
                "execution_id": str(result.execution_id),
                "status": result.status.value,
                "error": result.error,
                "remaining_balance": result.remaining_balance,
            }
        )

    return APIResponse.success(message_code=MessageCode.EXECUTION_SUCCEEDED, data=result)


@router.get("", response_model=ExecutionHistoryResponse)
async def list_executions(
    db: AsyncSessionDep,
    webhook_client: WebhookClientDep,
    current_account: CurrentAccountDep,
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    offset: int = Query(0, ge=0),
) -> ExecutionHistoryResponse:
    executions, total = await ExecutionBillingService(
        db, webhook_client
    ).list_executions(current_account.account.id, limit, offset)
    items = [ExecutionModel.model_validate(execution) for execution in executions]
    paginated_data = Paginated[ExecutionModel](
        items=items,
        pagination=PaginationInfo(
            total=total,
            limit=limit,
            offset=offset,
            has_more=offset + len(items) < total,
        ),
    )
    return APIResponse.success(message_code=MessageCode.SUCCESS, data=paginated_data)
