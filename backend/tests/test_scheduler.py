import asyncio

import pytest

from trucktracker.exceptions import FetchError
from trucktracker.services.ingestion import CycleResult
from trucktracker.services.scheduler import RefreshScheduler

from conftest import upstream


class _GatedPipeline:
    """Pipeline stand-in whose cycles block until the test opens the gate."""

    def __init__(self):
        self.calls = 0
        self.started = asyncio.Event()
        self.gate = asyncio.Event()

    async def run_cycle(self):
        self.calls += 1
        self.started.set()
        await self.gate.wait()
        return CycleResult(raw=[{"cycle": self.calls}])


class _FailingPipeline:
    def __init__(self, exc):
        self.exc = exc

    async def run_cycle(self):
        raise self.exc


@pytest.mark.asyncio
async def test_scheduled_trigger_logs_fetch_failure_without_raising(make_pipeline, caplog):
    pipeline = make_pipeline(upstream({"message": "Unauthorized"}, status_code=401))
    scheduler = RefreshScheduler(pipeline, refresh_on_startup=False)

    with caplog.at_level("ERROR", logger="trucktracker.scheduler"):
        result = await scheduler.run_scheduled()

    assert result is None
    assert "Error in scheduled refresh" in caplog.text


@pytest.mark.asyncio
async def test_scheduled_trigger_survives_unexpected_errors(caplog):
    scheduler = RefreshScheduler(_FailingPipeline(RuntimeError("boom")), refresh_on_startup=False)

    with caplog.at_level("ERROR", logger="trucktracker.scheduler"):
        assert await scheduler.run_scheduled() is None
    assert "boom" in caplog.text


@pytest.mark.asyncio
async def test_on_demand_trigger_propagates_fetch_failure():
    scheduler = RefreshScheduler(_FailingPipeline(FetchError("HTTP 401", status_code=401)))

    with pytest.raises(FetchError):
        await scheduler.refresh_now()
    assert not scheduler.cycle_in_flight


@pytest.mark.asyncio
async def test_scheduled_trigger_skips_while_cycle_in_flight():
    pipeline = _GatedPipeline()
    scheduler = RefreshScheduler(pipeline, refresh_on_startup=False)

    first = asyncio.create_task(scheduler.refresh_now())
    await pipeline.started.wait()
    assert scheduler.cycle_in_flight

    assert await scheduler.run_scheduled() is None
    assert pipeline.calls == 1

    pipeline.gate.set()
    await first
    assert not scheduler.cycle_in_flight


@pytest.mark.asyncio
async def test_on_demand_trigger_waits_for_in_flight_cycle():
    pipeline = _GatedPipeline()
    scheduler = RefreshScheduler(pipeline, refresh_on_startup=False)

    scheduled = asyncio.create_task(scheduler.run_scheduled())
    await pipeline.started.wait()

    on_demand = asyncio.create_task(scheduler.refresh_now())
    await asyncio.sleep(0.01)
    # Still blocked behind the scheduled cycle
    assert pipeline.calls == 1
    assert not on_demand.done()

    pipeline.gate.set()
    first = await scheduled
    second = await on_demand

    assert pipeline.calls == 2
    assert first.raw == [{"cycle": 1}]
    assert second.raw == [{"cycle": 2}]


@pytest.mark.asyncio
async def test_start_registers_cron_job_and_runs_startup_cycle():
    pipeline = _GatedPipeline()
    pipeline.gate.set()
    scheduler = RefreshScheduler(pipeline, interval_minutes=10, refresh_on_startup=True)

    scheduler.start()
    try:
        assert scheduler.running
        job = scheduler._scheduler.get_job("optimus-refresh")
        assert job is not None
        assert "minute='*/10'" in str(job.trigger)

        await asyncio.wait_for(pipeline.started.wait(), timeout=1.0)
        assert pipeline.calls == 1
    finally:
        await scheduler.shutdown()

    assert not scheduler.running


@pytest.mark.asyncio
async def test_start_without_startup_refresh():
    pipeline = _GatedPipeline()
    scheduler = RefreshScheduler(pipeline, refresh_on_startup=False)

    scheduler.start()
    try:
        await asyncio.sleep(0.01)
        assert pipeline.calls == 0
    finally:
        await scheduler.shutdown()


@pytest.mark.asyncio
async def test_shutdown_waits_for_in_flight_cycle():
    pipeline = _GatedPipeline()
    scheduler = RefreshScheduler(pipeline, refresh_on_startup=False)
    scheduler.start()

    cycle = asyncio.create_task(scheduler.run_scheduled())
    await pipeline.started.wait()

    stopping = asyncio.create_task(scheduler.shutdown())
    await asyncio.sleep(0.01)
    assert not stopping.done()

    pipeline.gate.set()
    await stopping
    assert cycle.done()
    assert not scheduler.running


def test_hourly_interval_fires_on_the_hour():
    assert RefreshScheduler(_GatedPipeline(), interval_minutes=60).cron_minute == "0"
    assert RefreshScheduler(_GatedPipeline(), interval_minutes=15).cron_minute == "*/15"
