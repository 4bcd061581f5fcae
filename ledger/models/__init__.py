"""
Database models.

Exports all SQLAlchemy models for easy imports.
"""

from ledger.models.balance_record import BalanceRecord
from ledger.models.base import Base
from ledger.models.ledger_sync_state import LedgerSyncState

__all__ = [
    "Base",
    "BalanceRecord",
    "LedgerSyncState",
]
