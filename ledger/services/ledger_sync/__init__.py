"""
Ledger Sync Service.

Per-token polling-and-ledger pipeline: block scheduling, eth_getLogs
retrieval, Transfer decoding, balance resolution and restart recovery.

Key features:
- One independent worker per configured token
- Bounded queue between fetch and resolve (backpressure)
- Recovery discards the last recorded block and refetches it
- Graceful stop drains already fetched batches
"""

from .balance_resolver import BalanceResolver
from .block_scheduler import BlockScheduler, resolve_resume_block
from .event_decoder import EventDecoder
from .log_fetcher import LogFetcher
from .store import LedgerStore
from .supervisor import WorkerSupervisor
from .token_worker import TokenWorker
from .types import BlockCursor, LogBatch, RawLog, TransferEvent, WorkerState

__all__ = [
    "BalanceResolver",
    "BlockCursor",
    "BlockScheduler",
    "EventDecoder",
    "LedgerStore",
    "LogBatch",
    "LogFetcher",
    "RawLog",
    "TokenWorker",
    "TransferEvent",
    "WorkerState",
    "WorkerSupervisor",
    "resolve_resume_block",
]
