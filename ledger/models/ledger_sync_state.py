"""
Ledger Sync State model.

Remembers, per token, the block recovery last resumed from.
"""

from datetime import UTC, datetime

from sqlalchemy import BigInteger, DateTime, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from ledger.models.base import Base


class LedgerSyncState(Base):
    """
    Recovery bookkeeping for one token.

    Used to:
    - Resume at the wiped block when it held the token's only records
    - Keep recovery idempotent across repeated restarts
    """

    __tablename__ = "ledger_sync_state"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)

    token_name: Mapped[str] = mapped_column(
        String(100), nullable=False, unique=True, index=True
    )

    resume_block: Mapped[int] = mapped_column(BigInteger, nullable=False)
    recovery_count: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0
    )

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        onupdate=lambda: datetime.now(UTC),
        nullable=False,
    )
