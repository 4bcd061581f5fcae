"""
Balance Resolver.

Applies decoded Transfer events to the ledger: reads the current balance
of sender and receiver, computes the new values and appends one record
for each.
"""

from loguru import logger

from ledger.config.constants import ZERO_ADDRESS
from ledger.models.balance_record import BalanceRecord
from ledger.utils.exceptions import (
    BalanceLookupError,
    NegativeBalanceError,
    StoreCorruptionError,
    StoreError,
    StoreWriteError,
)
from ledger.utils.hex_utils import parse_balance
from ledger.utils.security import mask_address

from .store import LedgerStore
from .types import TransferEvent


class BalanceResolver:
    """
    Computes and persists balance updates for one token.

    Only one resolver writes a given token's rows, so the
    read-modify-write below needs no locking.
    """

    def __init__(self, token_name: str, store: LedgerStore) -> None:
        """
        Initialize resolver.

        Args:
            token_name: Token ledger key
            store: Balance store
        """
        self.token_name = token_name
        self.store = store
        self._tag = f"[Resolver:{token_name}]"

    async def get_balance(self, address: str) -> int:
        """
        Read the current balance of an address.

        Args:
            address: Lowercase 20-byte address

        Returns:
            Balance in raw units, 0 if the address has no record

        Raises:
            BalanceLookupError: If the query fails
            StoreCorruptionError: If the stored value is not an integer
        """
        try:
            record = await self.store.get_latest_record(self.token_name, address)
        except StoreError as e:
            raise BalanceLookupError(
                f"query latest balance of {address} error: {e}"
            ) from e

        if record is None:
            return 0

        try:
            return parse_balance(record.balance)
        except ValueError as e:
            raise StoreCorruptionError(
                f"stored balance of {address} at block {record.block_number} "
                f"log {record.log_index} is not an integer: {record.balance!r}"
            ) from e

    def _build_record(self, event: TransferEvent, address: str, balance: int) -> BalanceRecord:
        return BalanceRecord(
            token_name=self.token_name,
            address=address,
            block_number=event.block_number,
            log_index=event.log_index,
            contract_address=event.contract_address,
            block_hash=event.block_hash,
            transaction_hash=event.transaction_hash,
            transaction_index=event.transaction_index,
            balance=str(balance),
        )

    async def apply(self, event: TransferEvent) -> int:
        """
        Apply one Transfer to the ledger.

        Both inserts are attempted even if the first fails.

        Args:
            event: Decoded transfer

        Returns:
            Number of records written (0, 1 or 2)

        Raises:
            BalanceLookupError: If a current balance cannot be read
            StoreCorruptionError: If a stored balance is corrupt
            NegativeBalanceError: If the sender would go below zero
        """
        from_balance = await self.get_balance(event.from_address)
        to_balance = await self.get_balance(event.to_address)

        from_balance -= event.amount
        to_balance += event.amount

        # The zero address mints and burns, its balance is minus the supply
        if from_balance < 0 and event.from_address != ZERO_ADDRESS:
            raise NegativeBalanceError(
                self.token_name, event.from_address, from_balance
            )

        written = 0
        for address, balance in (
            (event.from_address, from_balance),
            (event.to_address, to_balance),
        ):
            try:
                await self.store.insert_record(
                    self._build_record(event, address, balance)
                )
                written += 1
            except StoreWriteError as e:
                logger.error(
                    f"{self._tag} insert balance of {mask_address(address)} "
                    f"at block {event.block_number} log {event.log_index} "
                    f"error: {e}"
                )

        return written
