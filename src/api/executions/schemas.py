"""Executions API schemas (combined models/requests)."""

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, Field

from src.api.core.messages import APIResponse, Paginated
from src.modules.execution.service import ExecutionResult


class ExecuteAgentRequest(BaseModel):
    agent_id: UUID
    input: dict[str, Any] = Field(default_factory=dict)


class ExecutionModel(BaseModel):
    id: UUID
    agent_id: UUID
    correlation_id: str
    status: str
    duration_ms: int | None
    credits_consumed: int
    balance_before_cents: int | None
    balance_after_cents: int | None
    error_message: str | None
    created_at: datetime
    completed_at: datetime | None

    model_config = {"from_attributes": True}


ExecutionResultResponse = APIResponse[ExecutionResult]
ExecutionHistoryResponse = APIResponse[Paginated[ExecutionModel]]
