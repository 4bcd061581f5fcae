"""
Token Worker.

Runs the ledger pipeline of one token: recovery, then two concurrent
loops joined by a bounded queue.

    poll loop:      tick -> fetch range -> queue.put(batch)
    resolver loop:  queue.get() -> decode batch -> apply events

Stopping ends the poll loop at once; batches already queued are still
resolved before the worker reports STOPPED.
"""

import asyncio

import aiohttp
from loguru import logger

from ledger.config.constants import (
    LOG_BATCH_QUEUE_SIZE,
    RPC_MAX_RETRIES,
    RPC_RETRY_DELAY_BASE,
)
from ledger.config.tokens import TokenConfig
from ledger.utils.exceptions import (
    BalanceLookupError,
    BatchDecodeError,
    RecoveryError,
    StreamIntegrityError,
)

from .balance_resolver import BalanceResolver
from .block_scheduler import BlockScheduler
from .event_decoder import EventDecoder
from .log_fetcher import LogFetcher
from .store import LedgerStore
from .types import LogBatch, WorkerState


class TokenWorker:
    """Lifecycle owner of one token's polling-and-ledger pipeline."""

    def __init__(
        self,
        config: TokenConfig,
        store: LedgerStore,
        http_session: aiohttp.ClientSession,
        queue_size: int = LOG_BATCH_QUEUE_SIZE,
        max_retries: int = RPC_MAX_RETRIES,
        retry_delay_base: float = RPC_RETRY_DELAY_BASE,
        fetcher: LogFetcher | None = None,
    ) -> None:
        """
        Initialize worker.

        Args:
            config: Token configuration
            store: Shared balance store
            http_session: Shared aiohttp session for RPC calls
            queue_size: Capacity of the batch queue
            max_retries: Retries of one range inside a tick
            retry_delay_base: Base of the exponential retry delay
            fetcher: Custom fetcher (defaults to one on http_session)
        """
        self.config = config
        self.name = config.token_name
        self.state = WorkerState.INITIALIZING
        self.failure: BaseException | None = None

        self.queue: asyncio.Queue[LogBatch | None] = asyncio.Queue(maxsize=queue_size)
        self.scheduler = BlockScheduler(
            config,
            store,
            fetcher or LogFetcher(config, http_session),
            self.queue,
            max_retries=max_retries,
            retry_delay_base=retry_delay_base,
        )
        self.decoder = EventDecoder(config.label)
        self.resolver = BalanceResolver(config.token_name, store)

        self._stop_event = asyncio.Event()
        self._stopped_event = asyncio.Event()
        self._tag = f"[Worker:{config.label}]"

        # Statistics
        self.batches_processed = 0
        self.batches_failed = 0
        self.events_applied = 0
        self.records_written = 0

    @property
    def is_running(self) -> bool:
        return self.state == WorkerState.RUNNING

    def stop(self) -> None:
        """Request a graceful stop."""
        if not self._stop_event.is_set():
            logger.info(f"{self._tag} stop requested")
            self._stop_event.set()

    async def wait_stopped(self) -> None:
        """Wait until the worker reaches STOPPED."""
        await self._stopped_event.wait()

    async def run(self) -> None:
        """
        Run the worker until stopped or until a fatal error.

        Never raises for pipeline errors: a failed start or a fatal
        stream error is kept in `failure` and the worker ends STOPPED.
        """
        try:
            try:
                await self.scheduler.initialize()
            except RecoveryError as e:
                self.failure = e
                logger.error(f"{self._tag} recovery failed, worker not started: {e}")
                return

            if self._stop_event.is_set():
                return

            self.state = WorkerState.RUNNING
            logger.info(f"{self._tag} running")
            await self._run_loops()
        finally:
            self.state = WorkerState.STOPPED
            self._stopped_event.set()
            logger.info(f"{self._tag} stopped")

    async def _run_loops(self) -> None:
        poll_task = asyncio.create_task(
            self.scheduler.run(self._stop_event), name=f"poll:{self.name}"
        )
        resolve_task = asyncio.create_task(
            self._resolve_loop(), name=f"resolve:{self.name}"
        )
        stop_wait = asyncio.create_task(self._stop_event.wait())

        try:
            await asyncio.wait(
                {poll_task, resolve_task, stop_wait},
                return_when=asyncio.FIRST_COMPLETED,
            )
        finally:
            self.state = WorkerState.STOPPING
            stop_wait.cancel()

            poll_task.cancel()
            await asyncio.gather(poll_task, return_exceptions=True)
            if not poll_task.cancelled() and poll_task.exception() is not None:
                self.failure = self.failure or poll_task.exception()
                logger.opt(exception=poll_task.exception()).error(
                    f"{self._tag} poll loop crashed"
                )

            if not resolve_task.done():
                # Sentinel goes behind every batch already queued
                await self.queue.put(None)
            await asyncio.gather(resolve_task, return_exceptions=True)

    async def _resolve_loop(self) -> None:
        while True:
            batch = await self.queue.get()
            try:
                if batch is None:
                    return
                await self.process_batch(batch)
            except StreamIntegrityError as e:
                self.failure = e
                self._discard_queue()
                logger.critical(
                    f"{self._tag} ledger integrity fault, stopping token stream: {e}"
                )
                return
            except Exception as e:
                self.failure = e
                self._discard_queue()
                logger.exception(f"{self._tag} resolver loop crashed: {e}")
                return
            finally:
                self.queue.task_done()

    def _discard_queue(self) -> None:
        while not self.queue.empty():
            self.queue.get_nowait()
            self.queue.task_done()

    async def process_batch(self, batch: LogBatch) -> None:
        """
        Decode a batch and apply its events in order.

        A decode error drops the batch; a failed balance lookup aborts
        the remaining events of the batch.

        Raises:
            StreamIntegrityError: Negative balance or corrupt stored value
        """
        try:
            events = self.decoder.decode_batch(batch)
        except BatchDecodeError as e:
            self.batches_failed += 1
            logger.error(
                f"{self._tag} batch {batch.from_block}-{batch.to_block} dropped: {e}"
            )
            return

        for index, event in enumerate(events):
            try:
                self.records_written += await self.resolver.apply(event)
            except BalanceLookupError as e:
                self.batches_failed += 1
                logger.error(
                    f"{self._tag} batch {batch.from_block}-{batch.to_block} aborted "
                    f"at event {index + 1}/{len(events)} (block {event.block_number} "
                    f"log {event.log_index}): {e}"
                )
                return
            self.events_applied += 1

        self.batches_processed += 1
        if events:
            logger.info(
                f"{self._tag} blocks {batch.from_block}-{batch.to_block}: "
                f"{len(events)} transfers applied"
            )

    def snapshot(self) -> dict:
        """Current state and counters, for health reporting."""
        cursor = self.scheduler.cursor
        return {
            "token": self.name,
            "state": str(self.state),
            "next_from_block": cursor.from_block if cursor else None,
            "block_step": self.config.block_step,
            "queued_batches": self.queue.qsize(),
            "ticks": self.scheduler.ticks,
            "failed_ticks": self.scheduler.failed_ticks,
            "batches_processed": self.batches_processed,
            "batches_failed": self.batches_failed,
            "events_applied": self.events_applied,
            "records_written": self.records_written,
            "failure": str(self.failure) if self.failure else None,
        }
