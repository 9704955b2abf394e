"""Ledger entry model."""

import uuid
from datetime import datetime, timezone
from enum import Enum
from uuid import UUID

from sqlalchemy import (
    JSON,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base


class LedgerEntryKind(str, Enum):
    PURCHASE = "purchase"
    USAGE = "usage"
    # Only present on imported legacy rows
    EARNINGS = "earnings"
    PAYOUT = "payout"
    BONUS = "bonus"


class LedgerReferenceType(str, Enum):
    PURCHASE = "purchase"
    EXECUTION = "execution"
    PAYOUT = "payout"
    ADMIN = "admin"


class LedgerEntry(Base):
    """Immutable record of one balance change."""

    __tablename__ = "ledger_entries"
    __table_args__ = (
        UniqueConstraint("account_id", "sequence", name="uq_ledger_account_sequence"),
        # One usage entry per execution, one purchase entry per purchase
        UniqueConstraint(
            "kind", "reference_type", "reference_id", name="uq_ledger_reference"
        ),
        Index("ix_ledger_entries_reference", "reference_type", "reference_id"),
    )

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    account_id: Mapped[UUID] = mapped_column(
        ForeignKey("accounts.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    sequence: Mapped[int] = mapped_column(Integer, nullable=False)
    amount_cents: Mapped[int] = mapped_column(Integer, nullable=False)
    kind: Mapped[LedgerEntryKind] = mapped_column(String, nullable=False)
    description: Mapped[str] = mapped_column(String, nullable=False)
    balance_before_cents: Mapped[int] = mapped_column(Integer, nullable=False)
    balance_after_cents: Mapped[int] = mapped_column(Integer, nullable=False)
    reference_type: Mapped[LedgerReferenceType | None] = mapped_column(
        String, nullable=True
    )
    reference_id: Mapped[str | None] = mapped_column(String, nullable=True)
    metadata_json: Mapped[dict | None] = mapped_column("metadata", JSON, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )

    # Relationships
    account = relationship("Account", back_populates="ledger_entries")
