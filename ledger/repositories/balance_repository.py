"""
Balance repository.

Data access layer for the append-only token balance ledger.
"""

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ledger.models.balance_record import BalanceRecord
from ledger.repositories.base import BaseRepository


class BalanceRepository(BaseRepository[BalanceRecord]):
    """Repository for token balance records."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize repository."""
        super().__init__(BalanceRecord, session)

    async def get_latest(
        self, token_name: str, address: str
    ) -> BalanceRecord | None:
        """
        Get the current balance record of an address.

        Args:
            token_name: Token ledger key
            address: Lowercase 20-byte address

        Returns:
            Record with the greatest (block_number, log_index) or None
        """
        query = (
            select(BalanceRecord)
            .where(
                BalanceRecord.token_name == token_name,
                BalanceRecord.address == address,
            )
            .order_by(
                BalanceRecord.block_number.desc(),
                BalanceRecord.log_index.desc(),
                BalanceRecord.id.desc(),
            )
            .limit(1)
        )

        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    async def get_max_block_number(self, token_name: str) -> int | None:
        """
        Get the highest block number recorded for a token.

        Args:
            token_name: Token ledger key

        Returns:
            Block number or None if the token has no records
        """
        query = select(func.max(BalanceRecord.block_number)).where(
            BalanceRecord.token_name == token_name
        )

        result = await self.session.execute(query)
        return result.scalar()

    async def delete_block(self, token_name: str, block_number: int) -> int:
        """
        Delete every record of a token at one block.

        Args:
            token_name: Token ledger key
            block_number: Block whose records are discarded

        Returns:
            Number of deleted rows
        """
        stmt = delete(BalanceRecord).where(
            BalanceRecord.token_name == token_name,
            BalanceRecord.block_number == block_number,
        )
        result = await self.session.execute(stmt)
        return result.rowcount or 0
