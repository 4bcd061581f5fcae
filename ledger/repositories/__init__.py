"""Data access layer."""

from ledger.repositories.balance_repository import BalanceRepository
from ledger.repositories.base import BaseRepository
from ledger.repositories.sync_state_repository import LedgerSyncStateRepository

__all__ = [
    "BaseRepository",
    "BalanceRepository",
    "LedgerSyncStateRepository",
]
