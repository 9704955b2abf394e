"""Credit account model."""

import uuid
from datetime import datetime, timezone
from uuid import UUID

from sqlalchemy import CheckConstraint, DateTime, Integer, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base


class Account(Base):
    """A party holding credits.

    ``balance_cents`` is a cache of the sum of the account's ledger entries and
    is only ever written by the ledger service. ``entry_count`` doubles as the
    sequence number of the most recent ledger entry.
    """

    __tablename__ = "accounts"
    __table_args__ = (
        CheckConstraint("entry_count >= 0", name="ck_accounts_entry_count"),
    )

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    email: Mapped[str | None] = mapped_column(String, unique=True, nullable=True)
    name: Mapped[str | None] = mapped_column(String, nullable=True)
    balance_cents: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    entry_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    # Relationships
    ledger_entries = relationship(
        "LedgerEntry", back_populates="account", lazy="noload"
    )
    agents = relationship("Agent", back_populates="owner", lazy="noload")
