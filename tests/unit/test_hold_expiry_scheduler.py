import asyncio
from unittest.mock import AsyncMock

import pytest

from flashhold.jobs.hold_expiry_scheduler import HoldExpiryScheduler
from flashhold.services.hold_expiry import ReaperStats


@pytest.fixture
def reaper() -> AsyncMock:
    reaper = AsyncMock()
    reaper.run_once = AsyncMock(
        return_value=ReaperStats(found=3, expired=2, marked_used=1, units_released=5)
    )
    return reaper


@pytest.mark.anyio
async def test_run_updates_heartbeat(reaper):
    scheduler = HoldExpiryScheduler(reaper=reaper, interval_seconds=60)

    stats = await scheduler.run_once()

    assert stats.expired == 2
    status = scheduler.get_status()
    assert status["runs"] == 1
    assert status["holds_processed"] == 3
    assert status["units_released"] == 5
    assert status["errors"] == 0
    assert status["last_run"] is not None
    assert status["last_success"] is not None


@pytest.mark.anyio
async def test_failed_run_is_counted_not_raised(reaper):
    reaper.run_once.side_effect = RuntimeError("database unavailable")
    scheduler = HoldExpiryScheduler(reaper=reaper, interval_seconds=60)

    assert await scheduler.run_once() is None

    status = scheduler.get_status()
    assert status["runs"] == 1
    assert status["errors"] == 1
    assert status["last_success"] is None


@pytest.mark.anyio
async def test_start_and_stop(reaper):
    scheduler = HoldExpiryScheduler(reaper=reaper, interval_seconds=3600)

    await scheduler.start()
    await asyncio.sleep(0)
    await asyncio.sleep(0)
    assert scheduler.running

    await scheduler.start()  # second start is a no-op
    await scheduler.stop()

    assert not scheduler.running
    assert reaper.run_once.await_count == 1
