"""
Logging setup.

Configures the loguru logger: a stderr sink at the configured level and an
optional rotating file sink.
"""

import sys

from loguru import logger


def setup_logging(
    level: str = "INFO",
    log_file: str | None = None,
    debug: bool = False,
) -> None:
    """
    Configure logger sinks.

    Args:
        level: Minimum level for all sinks
        log_file: Optional path of a rotating log file
        debug: Force DEBUG on stderr with extended tracebacks
    """
    logger.remove()

    logger.add(
        sys.stderr,
        level="DEBUG" if debug else level.upper(),
        backtrace=debug,
        diagnose=debug,
    )

    if log_file:
        logger.add(
            log_file,
            rotation="1 day",
            retention="7 days",
            level=level.upper(),
            encoding="utf-8",
            enqueue=True,
        )

    logger.info("Starting ERC-20 balance ledger...")
