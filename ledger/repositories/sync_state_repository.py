"""
Ledger sync state repository.

Data access for per-token recovery bookkeeping.
"""

from sqlalchemy.ext.asyncio import AsyncSession

from ledger.models.ledger_sync_state import LedgerSyncState
from ledger.repositories.base import BaseRepository


class LedgerSyncStateRepository(BaseRepository[LedgerSyncState]):
    """Repository for ledger sync state."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize repository."""
        super().__init__(LedgerSyncState, session)

    async def get_resume_block(self, token_name: str) -> int | None:
        """Get the block the last recovery resumed from."""
        state = await self.get_by(token_name=token_name)
        return state.resume_block if state else None

    async def save_resume_block(
        self, token_name: str, resume_block: int
    ) -> LedgerSyncState:
        """
        Store the block recovery resumes from.

        Args:
            token_name: Token ledger key
            resume_block: Block the worker restarts at

        Returns:
            Updated or created state row
        """
        state = await self.get_by(token_name=token_name)
        if state is None:
            state = LedgerSyncState(
                token_name=token_name,
                resume_block=resume_block,
                recovery_count=1,
            )
            return await self.add(state)

        state.resume_block = resume_block
        state.recovery_count += 1
        await self.session.flush()
        return state
