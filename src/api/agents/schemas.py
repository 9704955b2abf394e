"""Agents API schemas (combined models/requests)."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field, HttpUrl

from src.api.core.messages import APIResponse, Paginated
from src.database.models import Agent
from src.modules.execution.service import agent_price


class AgentModel(BaseModel):
    id: UUID
    owner_id: UUID | None
    name: str
    description: str | None
    price_per_execution_cents: int
    is_active: bool
    total_executions: int
    successful_executions: int
    failed_executions: int
    created_at: datetime

    @classmethod
    def from_agent(cls, agent: Agent) -> "AgentModel":
        return cls(
            id=agent.id,
            owner_id=agent.owner_id,
            name=agent.name,
            description=agent.description,
            price_per_execution_cents=agent_price(agent),
            is_active=agent.is_active,
            total_executions=agent.total_executions or 0,
            successful_executions=agent.successful_executions or 0,
            failed_executions=agent.failed_executions or 0,
            created_at=agent.created_at,
        )


class OwnedAgentModel(AgentModel):
    """Agent as seen by its owner, including the webhook target."""

    webhook_url: str
    custom_price_cents: int | None
    total_duration_ms: int
    last_executed_at: datetime | None

    @classmethod
    def from_agent(cls, agent: Agent) -> "OwnedAgentModel":
        public = AgentModel.from_agent(agent)
        return cls(
            **public.model_dump(),
            webhook_url=agent.webhook_url,
            custom_price_cents=agent.price_per_execution_cents,
            total_duration_ms=agent.total_duration_ms or 0,
            last_executed_at=agent.last_executed_at,
        )


class RegisterAgentRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    webhook_url: HttpUrl
    description: str | None = Field(default=None, max_length=2000)
    price_per_execution_cents: int | None = None


class UpdatePriceRequest(BaseModel):
    price_per_execution_cents: int | None


class SetActiveRequest(BaseModel):
    is_active: bool


AgentResponse = APIResponse[AgentModel]
OwnedAgentResponse = APIResponse[OwnedAgentModel]
AgentListResponse = APIResponse[Paginated[AgentModel]]
OwnedAgentListResponse = APIResponse[list[OwnedAgentModel]]
