"""
Ledger Store.

Read/write contract of the balance ledger used by token workers.
Every call opens its own session, commits on its own and is bounded by
a short timeout; nothing spans two calls.
"""

import asyncio
from collections.abc import Awaitable, Callable
from typing import TypeVar

import asyncpg
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ledger.config.constants import DB_OPERATION_TIMEOUT
from ledger.models.balance_record import BalanceRecord
from ledger.repositories.balance_repository import BalanceRepository
from ledger.repositories.sync_state_repository import LedgerSyncStateRepository
from ledger.utils.exceptions import StoreError, StoreWriteError

T = TypeVar("T")


class LedgerStore:
    """
    Balance store backed by SQLAlchemy.

    Shared by all token workers; each worker only touches its own
    token's rows, so no locking is needed.
    """

    def __init__(
        self,
        session_maker: async_sessionmaker[AsyncSession],
        operation_timeout: float = DB_OPERATION_TIMEOUT,
    ) -> None:
        """
        Initialize store.

        Args:
            session_maker: Factory for async sessions on the shared engine
            operation_timeout: Seconds allowed for one call
        """
        self.session_maker = session_maker
        self.operation_timeout = operation_timeout

    async def _run(
        self,
        operation: Callable[[AsyncSession], Awaitable[T]],
        name: str,
        commit: bool = False,
        error_cls: type[StoreError] = StoreError,
    ) -> T:
        async def _execute() -> T:
            async with self.session_maker() as session:
                result = await operation(session)
                if commit:
                    await session.commit()
                return result

        try:
            return await asyncio.wait_for(_execute(), timeout=self.operation_timeout)
        except TimeoutError as e:
            raise error_cls(
                f"{name} timed out after {self.operation_timeout}s"
            ) from e
        except SQLAlchemyError as e:
            raise error_cls(f"{name} failed: {e}") from e
        except (OSError, asyncpg.PostgresError, asyncpg.InterfaceError) as e:
            # Connect failures reach us unwrapped from the driver
            raise error_cls(f"{name} failed: {e!r}") from e

    async def get_latest_record(
        self, token_name: str, address: str
    ) -> BalanceRecord | None:
        """
        Get the current balance record of an address.

        Raises:
            StoreError: On query failure or timeout
        """
        return await self._run(
            lambda s: BalanceRepository(s).get_latest(token_name, address),
            "get_latest_record",
        )

    async def get_max_block_number(self, token_name: str) -> int | None:
        """
        Get the highest recorded block of a token.

        Raises:
            StoreError: On query failure or timeout
        """
        return await self._run(
            lambda s: BalanceRepository(s).get_max_block_number(token_name),
            "get_max_block_number",
        )

    async def delete_block(self, token_name: str, block_number: int) -> int:
        """
        Delete a token's records at one block.

        Raises:
            StoreError: On failure or timeout
        """
        return await self._run(
            lambda s: BalanceRepository(s).delete_block(token_name, block_number),
            "delete_block",
            commit=True,
        )

    async def insert_record(self, record: BalanceRecord) -> None:
        """
        Append one balance record.

        Raises:
            StoreWriteError: On failure or timeout
        """
        async def _insert(session: AsyncSession) -> None:
            await BalanceRepository(session).add(record)

        await self._run(
            _insert, "insert_record", commit=True, error_cls=StoreWriteError
        )

    async def get_resume_block(self, token_name: str) -> int | None:
        """
        Get the block the last recovery resumed from.

        Raises:
            StoreError: On query failure or timeout
        """
        return await self._run(
            lambda s: LedgerSyncStateRepository(s).get_resume_block(token_name),
            "get_resume_block",
        )

    async def save_resume_block(self, token_name: str, resume_block: int) -> None:
        """
        Persist the block recovery resumes from.

        Raises:
            StoreError: On failure or timeout
        """
        async def _save(session: AsyncSession) -> None:
            await LedgerSyncStateRepository(session).save_resume_block(
                token_name, resume_block
            )

        await self._run(_save, "save_resume_block", commit=True)
