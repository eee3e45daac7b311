"""Tests for the job registry and manual triggering."""

from unittest.mock import AsyncMock

import pytest
from apscheduler.triggers.interval import IntervalTrigger

from certvault.core import scheduler


@pytest.fixture(autouse=True)
def _empty_registry():
    scheduler.clear_registry()
    yield
    scheduler.clear_registry()


class TestTriggerJobManually:
    @pytest.mark.asyncio
    async def test_success_includes_result(self):
        job = AsyncMock(return_value={"total_processed": 2})
        scheduler.register_job("demo", job, IntervalTrigger(hours=1))

        result = await scheduler.trigger_job_manually("demo")

        job.assert_awaited_once()
        assert result["status"] == "success"
        assert result["result"] == {"total_processed": 2}

    @pytest.mark.asyncio
    async def test_failure_is_reported_not_raised(self):
        job = AsyncMock(side_effect=RuntimeError("boom"))
        scheduler.register_job("demo", job, IntervalTrigger(hours=1))

        result = await scheduler.trigger_job_manually("demo")

        assert result["status"] == "error"
        assert result["error"] == "boom"

    @pytest.mark.asyncio
    async def test_unknown_job(self):
        with pytest.raises(ValueError, match="not found"):
            await scheduler.trigger_job_manually("missing")


class TestRegistry:
    def test_list_without_running_scheduler(self):
        scheduler.register_job("a", AsyncMock(), IntervalTrigger(hours=1))
        scheduler.register_job("b", AsyncMock(), IntervalTrigger(hours=2))

        jobs = scheduler.list_registered_jobs()

        assert [job["job_id"] for job in jobs] == ["a", "b"]
        assert all(job["next_run_time"] is None for job in jobs)

    def test_register_same_id_replaces(self):
        first, second = AsyncMock(), AsyncMock()
        scheduler.register_job("a", first, IntervalTrigger(hours=1))
        scheduler.register_job("a", second, IntervalTrigger(hours=1))

        assert len(scheduler.list_registered_jobs()) == 1

    def test_pause_without_scheduler(self):
        assert scheduler.pause_job("a") is False
        assert scheduler.resume_job("a") is False
