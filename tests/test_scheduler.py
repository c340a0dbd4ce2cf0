"""Scheduler timing helpers and on-demand job runs."""
import asyncio
from datetime import datetime, timezone
from unittest.mock import MagicMock

import pytest

from errors import AdminUserNotFoundError
from ingestion import IngestionResult
from scheduler import DIGEST_JOB, INGESTION_JOB, IngestionScheduler, seconds_until_daily, seconds_until_next


def at(hour, minute=0, second=0):
    return datetime(2024, 5, 1, hour, minute, second, tzinfo=timezone.utc)


def test_seconds_until_next_hour():
    assert seconds_until_next(at(10, 15), 60) == 45 * 60
    assert seconds_until_next(at(10, 0), 60) == 60 * 60
    assert seconds_until_next(at(10, 59, 30), 60) == 30


def test_seconds_until_daily():
    assert seconds_until_daily(at(7, 0), 8) == 3600
    assert seconds_until_daily(at(9, 0), 8) == 23 * 3600


def test_run_now_records_result():
    pipeline = MagicMock()
    pipeline.run.return_value = IngestionResult(success=3, failed=1)
    scheduler = IngestionScheduler(pipeline)

    assert asyncio.run(scheduler.run_now(INGESTION_JOB)) is True

    stats = scheduler.get_stats()["jobs"][INGESTION_JOB]
    assert stats["status"] == "success"
    assert stats["result"] == {"success": 3, "failed": 1}


def test_run_now_logs_failure_without_raising():
    pipeline = MagicMock()
    pipeline.run.side_effect = AdminUserNotFoundError("Admin user not found")
    scheduler = IngestionScheduler(pipeline)

    assert asyncio.run(scheduler.run_now(INGESTION_JOB)) is False

    stats = scheduler.get_stats()["jobs"][INGESTION_JOB]
    assert stats["status"] == "error"
    assert "Admin user not found" in stats["error"]


def test_digest_job_only_when_configured():
    scheduler = IngestionScheduler(MagicMock())
    with pytest.raises(KeyError):
        asyncio.run(scheduler.run_now(DIGEST_JOB))

    digest = MagicMock()
    digest.send_daily_digests.return_value = {"sent": 1, "skipped": 0, "failed": 0}
    scheduler = IngestionScheduler(MagicMock(), digest_service=digest)
    assert asyncio.run(scheduler.run_now(DIGEST_JOB)) is True
    digest.send_daily_digests.assert_called_once()


def test_start_and_stop():
    async def scenario():
        scheduler = IngestionScheduler(MagicMock(), clock=lambda: at(10, 0))
        scheduler.start()
        assert scheduler.running
        await scheduler.stop()
        return scheduler

    scheduler = asyncio.run(scenario())
    assert not scheduler.running
    scheduler.pipeline.run.assert_not_called()
