"""
Worker Supervisor.

Starts one TokenWorker per valid token configuration, relays the stop
signal to all of them and waits until every worker has drained.
"""

import asyncio

import aiohttp
from loguru import logger

from ledger.config.settings import Settings
from ledger.config.tokens import TokenConfig

from .store import LedgerStore
from .token_worker import TokenWorker


class WorkerSupervisor:
    """Owns the set of token workers of the process."""

    def __init__(
        self,
        settings: Settings,
        store: LedgerStore,
        http_session: aiohttp.ClientSession,
        token_configs: list[TokenConfig] | None = None,
    ) -> None:
        """
        Initialize supervisor.

        Args:
            settings: Application settings (pipeline tuning)
            store: Shared balance store
            http_session: Shared aiohttp session
            token_configs: Tokens to run (defaults to the valid entries
                of settings.tokens)
        """
        if token_configs is None:
            token_configs = settings.get_token_configs()

        self.workers: list[TokenWorker] = [
            TokenWorker(
                config,
                store,
                http_session,
                queue_size=settings.queue_size,
                max_retries=settings.rpc_max_retries,
                retry_delay_base=settings.rpc_retry_delay_base,
            )
            for config in token_configs
        ]
        self._tasks: list[asyncio.Task] = []

    def start(self) -> None:
        """Launch every worker as a background task."""
        for worker in self.workers:
            task = asyncio.create_task(worker.run(), name=f"worker:{worker.name}")
            task.add_done_callback(self._handle_task_error)
            self._tasks.append(task)
        logger.info(f"[Supervisor] started {len(self.workers)} token workers")

    def _handle_task_error(self, task: asyncio.Task) -> None:
        """Log unexpected errors from worker tasks."""
        if task.cancelled():
            return
        exc = task.exception()
        if exc:
            logger.opt(exception=exc).error(f"[Supervisor] {task.get_name()} crashed")

    def stop(self) -> None:
        """Ask every worker to stop."""
        for worker in self.workers:
            worker.stop()

    async def wait(self) -> None:
        """Wait until all workers are stopped."""
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)

    async def run(self, stop_event: asyncio.Event) -> None:
        """
        Run all workers until stop_event is set, then drain them.

        Returns early if every worker stops on its own.
        """
        if not self.workers:
            logger.warning("[Supervisor] no valid token configured, nothing to do")
            return

        self.start()
        all_done = asyncio.ensure_future(self.wait())
        stop_wait = asyncio.ensure_future(stop_event.wait())

        await asyncio.wait({all_done, stop_wait}, return_when=asyncio.FIRST_COMPLETED)
        stop_wait.cancel()

        if not all_done.done():
            logger.info("[Supervisor] stopping workers, waiting for queues to drain")
            self.stop()
        else:
            logger.warning("[Supervisor] all workers stopped on their own")

        await all_done
        logger.info("[Supervisor] all workers stopped")

    def snapshot(self) -> list[dict]:
        """State of every worker."""
        return [worker.snapshot() for worker in self.workers]
