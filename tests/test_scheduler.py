from __future__ import annotations

from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

import pytest

from app.workers.scheduler import WorkerScheduler


@pytest.mark.asyncio
async def test_start_registers_scan_and_flush_jobs() -> None:
    hub = SimpleNamespace(bot=None, alert_scanner=None, store=None)
    worker = WorkerScheduler(hub)  # type: ignore[arg-type]
    before = datetime.now(timezone.utc)

    worker.start()
    try:
        jobs = {job.func: job for job in worker.scheduler.get_jobs()}
        assert len(jobs) == 2

        scan = jobs[worker._scan_keyword_alerts]
        assert scan.trigger.interval == timedelta(seconds=300)
        assert scan.max_instances == 1
        delay = (scan.next_run_time - before).total_seconds()
        assert 29 <= delay <= 32

        flush = jobs[worker._flush_state]
        assert flush.trigger.interval == timedelta(seconds=15)
        assert flush.max_instances == 1
    finally:
        worker.stop()
