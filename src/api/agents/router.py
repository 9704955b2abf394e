"""Agents domain router."""

from uuid import UUID

from fastapi import APIRouter, Query

from src.api.agents.schemas import (
    AgentListResponse,
    AgentModel,
    AgentResponse,
    OwnedAgentListResponse,
    OwnedAgentModel,
    OwnedAgentResponse,
    RegisterAgentRequest,
    SetActiveRequest,
    UpdatePriceRequest,
)
from src.api.core.constants import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE
from src.api.core.dependencies import AsyncSessionDep, CurrentAccountDep
from src.api.core.messages import APIResponse, MessageCode, Paginated, PaginationInfo
from src.modules.agents.service import AgentService

router = APIRouter(
    prefix="/agents",
    tags=["agents"],
)


@router.post("", response_model=OwnedAgentResponse)
async def register_agent(
    body: RegisterAgentRequest,
    db: AsyncSessionDep,
    current_account: CurrentAccountDep,
) -> OwnedAgentResponse:
    agent = await AgentService(db).register_agent(
        owner_id=current_account.account.id,
        name=body.name,
        webhook_url=str(body.webhook_url),
        description=body.description,
        price_per_execution_cents=body.price_per_execution_cents,
    )
    return APIResponse.success(
        message_code=MessageCode.AGENT_CREATED,
        data=OwnedAgentModel.from_agent(agent),
    )


@router.get("", response_model=AgentListResponse)
async def list_agents(
    db: AsyncSessionDep,
    current_account: CurrentAccountDep,
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    offset: int = Query(0, ge=0),
) -> AgentListResponse:
    """Active agents available for execution."""
    agents, total = await AgentService(db).list_agents(
        active_only=True, limit=limit, offset=offset
    )
    items = [AgentModel.from_agent(agent) for agent in agents]
    paginated_data = Paginated[AgentModel](
        items=items,
        pagination=PaginationInfo(
            total=total,
            limit=limit,
            offset=offset,
            has_more=offset + len(items) < total,
        ),
    )
    return APIResponse.success(message_code=MessageCode.SUCCESS, data=paginated_data)


@router.get("/mine", response_model=OwnedAgentListResponse)
async def list_my_agents(
    db: AsyncSessionDep,
    current_account: CurrentAccountDep,
) -> OwnedAgentListResponse:
    agents = await AgentService(db).list_owned_agents(current_account.account.id)
    return APIResponse.success(
        message_code=MessageCode.SUCCESS,
        data=[OwnedAgentModel.from_agent(agent) for agent in agents],
    )


@router.get("/{agent_id}", response_model=AgentResponse)
async def get_agent(
    agent_id: UUID,
    db: AsyncSessionDep,
    current_account: CurrentAccountDep,
) -> AgentResponse:
    agent = await AgentService(db).get_agent(agent_id)
    return APIResponse.success(
        message_code=MessageCode.SUCCESS, data=AgentModel.from_agent(agent)
    )


@router.patch("/{agent_id}/price", response_model=OwnedAgentResponse)
async def update_agent_price(
    agent_id: UUID,
    body: UpdatePriceRequest,
    db: AsyncSessionDep,
    current_account: CurrentAccountDep,
) -> OwnedAgentResponse:
    """Change the per-execution price. Null resets to the platform default."""
    agent = await AgentService(db).update_price(
        agent_id, current_account.account.id, body.price_per_execution_cents
    )
    return APIResponse.success(
        message_code=MessageCode.AGENT_UPDATED,
        data=OwnedAgentModel.from_agent(agent),
    )


@router.patch("/{agent_id}/active", response_model=OwnedAgentResponse)
async def set_agent_active(
    agent_id: UUID,
    body: SetActiveRequest,
    db: AsyncSessionDep,
    current_account: CurrentAccountDep,
) -> OwnedAgentResponse:
    agent = await AgentService(db).set_active(
        agent_id, current_account.account.id, body.is_active
    )
    return APIResponse.success(
        message_code=MessageCode.AGENT_UPDATED,
        data=OwnedAgentModel.from_agent(agent),
    )
