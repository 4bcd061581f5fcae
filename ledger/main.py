"""
Ledger main entry point.

Loads settings, wires the shared database engine and HTTP session,
then runs one worker per configured token until SIGINT/SIGTERM.
"""

import argparse
import asyncio
import signal
import sys

import aiohttp
from loguru import logger
from pydantic import ValidationError

from ledger.config.database import create_engine, create_session_maker, create_tables
from ledger.config.settings import Settings
from ledger.health import start_health_server, stop_health_server
from ledger.services.ledger_sync.store import LedgerStore
from ledger.services.ledger_sync.supervisor import WorkerSupervisor
from ledger.utils.logging import setup_logging


def install_signal_handlers(stop_event: asyncio.Event) -> None:
    """Set stop_event on SIGINT/SIGTERM."""
    loop = asyncio.get_running_loop()

    def _handle(sig: signal.Signals) -> None:
        logger.info(f"Got signal: {sig.name}")
        stop_event.set()

    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, _handle, sig)
        except NotImplementedError:
            # Windows event loops have no signal handlers
            signal.signal(sig, lambda *_: loop.call_soon_threadsafe(stop_event.set))


async def main(settings: Settings) -> None:
    """Run all token workers until a stop signal arrives."""
    setup_logging(settings.log_level, settings.log_file, settings.debug)

    engine = create_engine(settings)
    health_runner = None
    try:
        if settings.database_create_tables:
            await create_tables(engine)

        store = LedgerStore(
            create_session_maker(engine),
            operation_timeout=settings.db_operation_timeout,
        )

        stop_event = asyncio.Event()
        install_signal_handlers(stop_event)

        async with aiohttp.ClientSession() as http_session:
            supervisor = WorkerSupervisor(settings, store, http_session)

            if settings.health_check_port:
                health_runner = await start_health_server(
                    supervisor, port=settings.health_check_port
                )

            await supervisor.run(stop_event)
    finally:
        if health_runner is not None:
            await stop_health_server(health_runner)
        await engine.dispose()
        logger.info("Database connections closed")


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Track ERC-20 balances from Transfer logs"
    )
    parser.add_argument(
        "-c",
        "--env-file",
        default=".env",
        help="Environment file with DATABASE_URL, TOKENS, ... (default: .env)",
    )
    return parser.parse_args(argv)


def run(argv: list[str] | None = None) -> None:
    """Console script entry point."""
    args = parse_args(argv)
    try:
        settings = Settings(_env_file=args.env_file)
    except ValidationError as e:
        logger.error(f"Invalid configuration: {e}")
        sys.exit(2)

    try:
        asyncio.run(main(settings))
    except KeyboardInterrupt:
        logger.info("Stopped by user (KeyboardInterrupt)")
    except Exception as e:
        logger.exception(f"Ledger crashed: {e}")
        sys.exit(1)


if __name__ == "__main__":
    run()
