"""
Integration tests for a token worker pipeline.

The worker runs its real scheduler, fetcher, decoder and resolver against
a fake JSON-RPC node and the in-memory store.

Tests cover:
- A single transfer end to end
- Balance conservation across mints, transfers and burns
- Timed-out ranges being skipped
- Restart recovery
- Queue drain on stop
- Fatal integrity errors and failed recovery
- Lookup failures contained to their batch
"""

import asyncio
from unittest.mock import AsyncMock

import pytest

from conftest import (
    ALICE,
    BOB,
    CAROL,
    make_batch,
    rpc_result,
    transfer_log,
    wait_until,
)
from ledger.config.constants import ZERO_ADDRESS
from ledger.services.ledger_sync.token_worker import TokenWorker
from ledger.services.ledger_sync.types import WorkerState
from ledger.utils.exceptions import NegativeBalanceError, RecoveryError


async def run_until(worker: TokenWorker, predicate, timeout: float = 2.0) -> None:
    """Run worker until predicate holds, then stop it and wait."""
    task = asyncio.create_task(worker.run())
    try:
        await wait_until(predicate, timeout)
    finally:
        worker.stop()
        await asyncio.wait_for(task, timeout=timeout)


def requested_from_blocks(session) -> list[int]:
    return [int(r["json"]["params"][0]["fromBlock"], 16) for r in session.requests]


@pytest.mark.asyncio
async def test_single_transfer(token_config, memory_store, fake_http):
    """One Transfer of 0x64 moves 100 units and writes two records."""
    session = fake_http(
        rpc_result([
            transfer_log(ZERO_ADDRESS, ALICE, 1000, block=5),
            transfer_log(ALICE, BOB, "0x64", block=10),
        ]),
        rpc_result([]),
    )
    worker = TokenWorker(token_config, memory_store, session)

    await run_until(worker, lambda: worker.records_written >= 4)

    assert memory_store.balance_of("TEST", ALICE) == 900
    assert memory_store.balance_of("TEST", BOB) == 100
    assert len([r for r in memory_store.rows("TEST") if r.block_number == 10]) == 2
    assert worker.state == WorkerState.STOPPED
    assert worker.failure is None


@pytest.mark.asyncio
async def test_balances_are_conserved(token_config, memory_store, fake_http):
    """Sum of latest balances, zero address included, stays zero."""
    logs = [
        transfer_log(ZERO_ADDRESS, ALICE, 1000, block=100, log_index=0),
        transfer_log(ALICE, BOB, 300, block=101, log_index=0),
        transfer_log(BOB, CAROL, 100, block=101, log_index=1),
        transfer_log(CAROL, CAROL, 50, block=102, log_index=0),
        transfer_log(ALICE, ZERO_ADDRESS, 200, block=103, log_index=0),
    ]
    session = fake_http(rpc_result(logs), rpc_result([]))
    worker = TokenWorker(token_config, memory_store, session)

    await run_until(worker, lambda: worker.events_applied >= 4)

    balances = {
        address: memory_store.balance_of("TEST", address)
        for address in (ZERO_ADDRESS, ALICE, BOB, CAROL)
    }
    assert balances == {ZERO_ADDRESS: -800, ALICE: 500, BOB: 200, CAROL: 100}
    assert sum(balances.values()) == 0
    # Self-transfer wrote nothing
    assert not [r for r in memory_store.rows("TEST") if r.block_number == 102]


@pytest.mark.asyncio
async def test_timed_out_range_is_skipped(token_config, memory_store, fake_http):
    """A timeout writes nothing and the next tick fetches from_block + block_step."""
    session = fake_http(TimeoutError(), rpc_result([]))
    worker = TokenWorker(token_config, memory_store, session)

    await run_until(worker, lambda: len(session.requests) >= 2)

    assert requested_from_blocks(session)[:2] == [100, 110]
    assert memory_store.records == []
    assert worker.scheduler.failed_ticks == 1


@pytest.mark.asyncio
async def test_restart_recovers_last_block(token_config, memory_store, fake_http):
    """A record at block 100 is deleted and fetching restarts at 100."""
    memory_store.seed("TEST", ALICE, block=100, log_index=0, balance=7)
    session = fake_http(rpc_result([]))
    worker = TokenWorker(
        token_config.model_copy(update={"from_block": 0}), memory_store, session
    )

    await run_until(worker, lambda: len(session.requests) >= 1)

    assert requested_from_blocks(session)[0] == 100
    assert memory_store.records == []


@pytest.mark.asyncio
async def test_stop_drains_queue(token_config, memory_store):
    """Batches queued before stop are all applied."""
    fetcher = AsyncMock()
    fetcher.fetch.side_effect = lambda start, step: make_batch(
        [transfer_log(ZERO_ADDRESS, ALICE, 1, block=start)], start, start + step - 1
    )
    worker = TokenWorker(
        token_config, memory_store, None, queue_size=3, fetcher=fetcher
    )

    apply = worker.resolver.apply

    async def slow_apply(event):
        await asyncio.sleep(0.03)
        return await apply(event)

    worker.resolver.apply = slow_apply

    await run_until(worker, lambda: worker.queue.qsize() >= 2)

    assert worker.queue.empty()
    assert worker.batches_processed == worker.scheduler.batches_queued
    assert memory_store.balance_of("TEST", ALICE) == worker.events_applied


@pytest.mark.asyncio
async def test_negative_balance_stops_stream(token_config, memory_store, fake_http):
    """A transfer from an empty address stops the worker on its own."""
    session = fake_http(
        rpc_result([transfer_log(ALICE, BOB, 5, block=100)]),
        rpc_result([]),
    )
    worker = TokenWorker(token_config, memory_store, session)

    await asyncio.wait_for(worker.run(), timeout=2)

    assert worker.state == WorkerState.STOPPED
    assert isinstance(worker.failure, NegativeBalanceError)
    assert memory_store.records == []
    assert worker.snapshot()["failure"] is not None


@pytest.mark.asyncio
async def test_bad_batch_dropped(token_config, memory_store, fake_http):
    """A malformed log drops its batch; later batches still apply."""
    bad = transfer_log(ZERO_ADDRESS, ALICE, 10, block=100)
    bad["logIndex"] = "zz"
    session = fake_http(
        rpc_result([transfer_log(ZERO_ADDRESS, BOB, 10, block=100), bad]),
        rpc_result([transfer_log(ZERO_ADDRESS, CAROL, 10, block=110)]),
        rpc_result([]),
    )
    worker = TokenWorker(token_config, memory_store, session)

    await run_until(worker, lambda: worker.events_applied >= 1)

    assert worker.batches_failed == 1
    assert memory_store.balance_of("TEST", BOB) == 0
    assert memory_store.balance_of("TEST", CAROL) == 10


@pytest.mark.asyncio
async def test_recovery_failure(token_config, memory_store, fake_http):
    """A store failure during recovery keeps the worker from polling."""
    memory_store.fail_recovery = True
    session = fake_http(rpc_result([]))
    worker = TokenWorker(token_config, memory_store, session)

    await asyncio.wait_for(worker.run(), timeout=1)

    assert worker.state == WorkerState.STOPPED
    assert isinstance(worker.failure, RecoveryError)
    assert session.requests == []
    assert worker.snapshot()["next_from_block"] is None


@pytest.mark.asyncio
async def test_lookup_failure_aborts_rest_of_batch(token_config, memory_store, fake_http):
    """A failed lookup drops the rest of its batch; the worker keeps running."""
    memory_store.fail_lookup_for.add(BOB)
    session = fake_http(
        rpc_result([
            transfer_log(ZERO_ADDRESS, ALICE, 10, block=100, log_index=0),
            transfer_log(ZERO_ADDRESS, BOB, 10, block=100, log_index=1),
            transfer_log(ZERO_ADDRESS, CAROL, 10, block=100, log_index=2),
        ]),
        rpc_result([transfer_log(ZERO_ADDRESS, CAROL, 5, block=110)]),
        rpc_result([]),
    )
    worker = TokenWorker(token_config, memory_store, session)

    task = asyncio.create_task(worker.run())
    try:
        await wait_until(lambda: worker.batches_processed >= 1)
        assert worker.is_running
    finally:
        worker.stop()
        await asyncio.wait_for(task, timeout=2)

    assert worker.batches_failed == 1
    assert worker.failure is None
    assert memory_store.balance_of("TEST", ALICE) == 10
    assert memory_store.balance_of("TEST", BOB) == 0
    # Event after the failed one in batch 1 was not applied, batch 2 was
    assert [r.block_number for r in memory_store.rows("TEST", CAROL)] == [110]
    assert memory_store.balance_of("TEST", CAROL) == 5
