"""Creator earnings and payout models."""

import uuid
from datetime import datetime, timezone
from enum import Enum
from uuid import UUID

from sqlalchemy import (
    JSON,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Integer,
    String,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base


class PayoutStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"


class AgentEarnings(Base):
    __tablename__ = "agent_earnings"
    __table_args__ = (
        UniqueConstraint("agent_id", "owner_id", name="uq_agent_earnings_owner"),
        CheckConstraint(
            "pending_earnings_cents >= 0", name="ck_agent_earnings_pending"
        ),
    )

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    agent_id: Mapped[UUID] = mapped_column(
        ForeignKey("agents.id", ondelete="CASCADE"), nullable=False
    )
    owner_id: Mapped[UUID] = mapped_column(
        ForeignKey("accounts.id", ondelete="CASCADE"), nullable=False, index=True
    )
    total_earnings_cents: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    pending_earnings_cents: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0
    )
    paid_out_cents: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_executions: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    last_earning_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )


class Payout(Base):
    __tablename__ = "payouts"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    account_id: Mapped[UUID] = mapped_column(
        ForeignKey("accounts.id", ondelete="CASCADE"), nullable=False, index=True
    )
    amount_cents: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[PayoutStatus] = mapped_column(
        String, nullable=False, default=PayoutStatus.PENDING
    )
    description: Mapped[str | None] = mapped_column(String, nullable=True)
    # earnings row id -> cents drawn from it
    allocations: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)
    failure_reason: Mapped[str | None] = mapped_column(String, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )
    processed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
