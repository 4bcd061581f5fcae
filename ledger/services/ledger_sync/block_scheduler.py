"""
Block Scheduler.

Owns the block cursor of a token: restores it on start (recovery), then
on every tick fetches the cursor's range, queues the batch for the
resolver and moves the cursor forward.
"""

import asyncio

from loguru import logger

from ledger.config.constants import RPC_MAX_RETRIES, RPC_RETRY_DELAY_BASE
from ledger.config.tokens import TokenConfig
from ledger.utils.exceptions import FetchError, RecoveryError, StoreError

from .log_fetcher import LogFetcher
from .store import LedgerStore
from .types import BlockCursor, LogBatch


async def resolve_resume_block(
    store: LedgerStore, token_name: str, configured_from_block: int
) -> int:
    """
    Determine where a token worker resumes and clean up its last block.

    The last recorded block may have been only partly applied, so all of
    its records are deleted and the block is fetched again from scratch.

    Args:
        store: Balance store
        token_name: Token ledger key
        configured_from_block: Start block for a fresh ledger

    Returns:
        First block to fetch

    Raises:
        RecoveryError: On any store failure
    """
    try:
        max_block = await store.get_max_block_number(token_name)
        resume_block = await store.get_resume_block(token_name)

        # Nothing written since the last recovery wiped its block
        if resume_block is not None and (max_block is None or resume_block > max_block):
            logger.info(
                f"[Recovery:{token_name}] no records past block {resume_block}, "
                f"resuming at previously recovered block"
            )
            return resume_block

        if max_block is None:
            return configured_from_block

        await store.save_resume_block(token_name, max_block)
        deleted = await store.delete_block(token_name, max_block)
        logger.info(
            f"[Recovery:{token_name}] deleted {deleted} records of block "
            f"{max_block}, resuming there"
        )
        return max_block

    except StoreError as e:
        raise RecoveryError(f"recover {token_name} from store error: {e}") from e


class BlockScheduler:
    """
    Tick-driven producer of log batches for one token.

    The cursor advances by block_step after every tick, whether the
    fetch succeeded or not; a failed range is not revisited.
    """

    def __init__(
        self,
        config: TokenConfig,
        store: LedgerStore,
        fetcher: LogFetcher,
        queue: asyncio.Queue[LogBatch | None],
        max_retries: int = RPC_MAX_RETRIES,
        retry_delay_base: float = RPC_RETRY_DELAY_BASE,
    ) -> None:
        """
        Initialize scheduler.

        Args:
            config: Token configuration
            store: Balance store, used by recovery
            fetcher: Log fetcher for the token
            queue: Bounded queue shared with the resolver loop
            max_retries: Retries of one range inside a tick
            retry_delay_base: Base of the exponential retry delay
        """
        self.config = config
        self.store = store
        self.fetcher = fetcher
        self.queue = queue
        self.max_retries = max_retries
        self.retry_delay_base = retry_delay_base
        self.cursor: BlockCursor | None = None
        self._tag = f"[Scheduler:{config.label}]"

        # Statistics
        self.ticks = 0
        self.failed_ticks = 0
        self.batches_queued = 0

    async def initialize(self) -> BlockCursor:
        """
        Restore the cursor from the ledger.

        Raises:
            RecoveryError: If the store cannot be read or cleaned
        """
        from_block = await resolve_resume_block(
            self.store, self.config.token_name, self.config.from_block
        )
        self.cursor = BlockCursor(
            from_block=from_block, block_step=self.config.block_step
        )
        logger.info(f"{self._tag} from block: {from_block}")
        return self.cursor

    async def _fetch_with_retry(self, cursor: BlockCursor) -> LogBatch | None:
        for attempt in range(self.max_retries + 1):
            try:
                return await self.fetcher.fetch(cursor.from_block, cursor.block_step)
            except FetchError as e:
                if attempt < self.max_retries:
                    delay = self.retry_delay_base * (2 ** attempt)
                    logger.warning(
                        f"{self._tag} fetch {cursor.from_block}-{cursor.to_block} "
                        f"failed ({e}), retry {attempt + 1}/{self.max_retries} "
                        f"in {delay:.1f}s"
                    )
                    await asyncio.sleep(delay)
                    continue
                logger.error(
                    f"{self._tag} fetch {cursor.from_block}-{cursor.to_block} "
                    f"failed, range skipped: {e}"
                )
        return None

    async def tick(self) -> bool:
        """
        Fetch the current range, queue it and advance the cursor.

        Blocks while the queue is full.

        Returns:
            True if the range was fetched
        """
        if self.cursor is None:
            raise RuntimeError("scheduler not initialized")

        self.ticks += 1
        batch = await self._fetch_with_retry(self.cursor)

        if batch is None:
            self.failed_ticks += 1
        elif batch.logs:
            await self.queue.put(batch)
            self.batches_queued += 1

        self.cursor.advance()
        return batch is not None

    async def run(self, stop_event: asyncio.Event) -> None:
        """
        Tick every poll interval until stop_event is set.

        The first tick fires one interval after start. Ticks missed
        while a slow tick was running are dropped.
        """
        loop = asyncio.get_running_loop()
        interval = self.config.poll_interval_seconds
        next_tick = loop.time() + interval

        while not stop_event.is_set():
            delay = max(0.0, next_tick - loop.time())
            try:
                await asyncio.wait_for(stop_event.wait(), timeout=delay)
                break
            except TimeoutError:
                pass

            await self.tick()

            next_tick += interval
            now = loop.time()
            if next_tick < now:
                next_tick = now + interval

        logger.info(f"{self._tag} polling stopped")
