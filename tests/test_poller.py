"""Tests for LuminodePoller scheduling."""

from __future__ import annotations

import asyncio
import logging
from unittest.mock import AsyncMock

import pytest

from luminode_core.poller import LuminodePoller, PollerState


@pytest.fixture
async def pollers():
    created: list[LuminodePoller] = []
    yield created
    for poller in created:
        await poller.stop()


def _poller(pollers, **kwargs) -> LuminodePoller:
    poller = LuminodePoller("10.0.0.5", **kwargs)
    pollers.append(poller)
    return poller


async def test_first_round_runs_immediately(pollers):
    fast = AsyncMock()
    slow = AsyncMock()
    poller = _poller(
        pollers, fast_jobs=[fast], slow_jobs=[slow], fast_interval=60, slow_interval=60
    )

    poller.start()
    await asyncio.sleep(0.01)

    assert poller.state is PollerState.ACTIVE
    fast.assert_awaited_once()
    slow.assert_awaited_once()


async def test_rounds_repeat_at_interval(pollers):
    fast = AsyncMock()
    slow = AsyncMock()
    poller = _poller(
        pollers,
        fast_jobs=[fast],
        slow_jobs=[slow],
        fast_interval=0.01,
        slow_interval=60,
    )

    poller.start()
    await asyncio.sleep(0.1)

    assert fast.await_count >= 3
    slow.assert_awaited_once()


async def test_stop_cancels_schedule(pollers):
    fast = AsyncMock()
    poller = _poller(pollers, fast_jobs=[fast], fast_interval=0.01)

    poller.start()
    await asyncio.sleep(0.03)
    await poller.stop()
    count = fast.await_count
    await asyncio.sleep(0.05)

    assert poller.state is PollerState.IDLE
    assert not poller.is_active
    assert fast.await_count == count


async def test_stop_is_idempotent(pollers):
    poller = _poller(pollers, fast_jobs=[AsyncMock()])

    await poller.stop()
    poller.start()
    await poller.stop()
    await poller.stop()

    assert poller.state is PollerState.IDLE


async def test_restart_does_not_duplicate_schedule(pollers):
    fast = AsyncMock()
    poller = _poller(pollers, fast_jobs=[fast], fast_interval=60)

    poller.start()
    poller.start()
    await asyncio.sleep(0.01)

    fast.assert_awaited_once()


async def test_failing_job_is_logged_and_schedule_continues(pollers, caplog):
    failing = AsyncMock(side_effect=RuntimeError("boom"))
    healthy = AsyncMock()
    poller = _poller(pollers, fast_jobs=[failing, healthy], fast_interval=0.01)

    with caplog.at_level(logging.WARNING, logger="luminode_core.poller"):
        poller.start()
        await asyncio.sleep(0.05)

    assert healthy.await_count >= 2
    assert failing.await_count >= 2
    assert poller.is_active
    assert "Poll job failed: boom" in caplog.text
