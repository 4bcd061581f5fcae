"""
Health check server for token workers.

Provides HTTP endpoints reporting the state of every token worker.
"""

import asyncio

from aiohttp import web
from loguru import logger

from ledger.services.ledger_sync.supervisor import WorkerSupervisor
from ledger.services.ledger_sync.types import WorkerState

SUPERVISOR_KEY = web.AppKey("supervisor", WorkerSupervisor)


async def health_handler(request: web.Request) -> web.Response:
    """
    Health check endpoint.

    Returns:
        JSON response with per-worker status; 503 if a worker failed
        or none is running
    """
    supervisor = request.app[SUPERVISOR_KEY]
    workers = supervisor.snapshot()

    running = sum(1 for w in workers if w["state"] == WorkerState.RUNNING)
    failed = [w["token"] for w in workers if w["failure"]]
    healthy = running > 0 and not failed

    return web.json_response(
        {
            "status": "healthy" if healthy else "unhealthy",
            "workers_running": running,
            "workers_total": len(workers),
            "failed_tokens": failed,
            "workers": workers,
        },
        status=200 if healthy else 503,
    )


async def readiness_handler(request: web.Request) -> web.Response:
    """
    Readiness check endpoint.

    Ready once every worker finished recovery and is running.
    """
    supervisor = request.app[SUPERVISOR_KEY]
    ready = bool(supervisor.workers) and all(
        worker.is_running for worker in supervisor.workers
    )

    return web.json_response(
        {
            "status": "ready" if ready else "not_ready",
            "ready": ready,
        },
        status=200 if ready else 503,
    )


async def liveness_handler(request: web.Request) -> web.Response:
    """Liveness check endpoint."""
    return web.json_response(
        {
            "status": "alive",
            "alive": True,
        }
    )


def create_health_app(supervisor: WorkerSupervisor) -> web.Application:
    """Build the health check application."""
    app = web.Application()
    app[SUPERVISOR_KEY] = supervisor
    app.router.add_get("/health", health_handler)
    app.router.add_get("/health/ready", readiness_handler)
    app.router.add_get("/health/live", liveness_handler)
    return app


async def start_health_server(
    supervisor: WorkerSupervisor,
    host: str = "0.0.0.0",
    port: int = 8081,
) -> web.AppRunner:
    """
    Start health check server.

    Args:
        supervisor: Supervisor whose workers are reported
        host: Host to bind to
        port: Port to bind to

    Returns:
        AppRunner for cleanup
    """
    runner = web.AppRunner(create_health_app(supervisor))
    await runner.setup()
    site = web.TCPSite(runner, host, port)
    await site.start()

    logger.info(f"Health check server started on {host}:{port}")
    return runner


async def stop_health_server(
    runner: web.AppRunner,
    timeout: int = 5,
) -> None:
    """
    Stop health check server gracefully.

    Args:
        runner: AppRunner to cleanup
        timeout: Maximum time to wait for cleanup in seconds
    """
    logger.info("Stopping health check server...")
    try:
        await asyncio.wait_for(runner.cleanup(), timeout=timeout)
        logger.info("Health check server stopped")
    except TimeoutError:
        logger.warning(f"Health check server cleanup timed out after {timeout}s")
