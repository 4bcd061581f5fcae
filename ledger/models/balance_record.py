"""
Balance Record model.

Append-only balance history: one row per (token, address) at the
ledger position (block, log index) of the Transfer that changed it.
"""

from datetime import UTC, datetime

from sqlalchemy import BigInteger, DateTime, Index, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from ledger.config.constants import BALANCE_STRING_MAX_LEN
from ledger.models.base import Base


class BalanceRecord(Base):
    """
    Balance snapshot of an address after a Transfer event.

    The row with the greatest (block_number, log_index) for a
    (token_name, address) pair is the current balance. Rows are never
    updated; recovery deletes the rows of the last block only.
    """

    __tablename__ = "token_balances"
    __table_args__ = (
        UniqueConstraint(
            "token_name",
            "address",
            "block_number",
            "log_index",
            name="uq_token_balances_position",
        ),
        Index(
            "ix_token_balances_latest",
            "token_name",
            "address",
            "block_number",
            "log_index",
        ),
        Index("ix_token_balances_token_block", "token_name", "block_number"),
    )

    # Primary key (insertion order)
    id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=True)

    # Ledger identity
    token_name: Mapped[str] = mapped_column(String(100), nullable=False)
    address: Mapped[str] = mapped_column(String(42), nullable=False)
    block_number: Mapped[int] = mapped_column(BigInteger, nullable=False)
    log_index: Mapped[int] = mapped_column(Integer, nullable=False)

    # Event origin
    contract_address: Mapped[str] = mapped_column(String(42), nullable=False)
    block_hash: Mapped[str] = mapped_column(String(66), nullable=False)
    transaction_hash: Mapped[str] = mapped_column(String(66), nullable=False)
    transaction_index: Mapped[int] = mapped_column(Integer, nullable=False)

    # Base-10 integer string, raw token units
    balance: Mapped[str] = mapped_column(
        String(BALANCE_STRING_MAX_LEN), nullable=False
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

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"<BalanceRecord(token={self.token_name}, address={self.address}, "
            f"block={self.block_number}, log={self.log_index}, "
            f"balance={self.balance})>"
        )

    @property
    def position(self) -> tuple[int, int]:
        """Ledger position used for ordering."""
        return (self.block_number, self.log_index)
