from functools import partial

from supporthub.shared.infrastructure import PipelineScheduler


async def test_jobs_are_registered_once_and_stop_cleanly():
    calls = []

    async def job(tag):
        calls.append(tag)

    scheduler = PipelineScheduler()
    scheduler.add_job("sla_monitor", partial(job, "sla"), 300, name="SLA Monitor")
    scheduler.add_job("sla_monitor", partial(job, "sla"), 60)

    await scheduler.start()
    await scheduler.start()

    assert scheduler.is_running
    assert scheduler.job_ids == ["sla_monitor"]
    apscheduler_job = scheduler._scheduler.get_job("sla_monitor")
    assert apscheduler_job.max_instances == 1
    assert apscheduler_job.trigger.interval.total_seconds() == 60

    await scheduler.stop()
    assert not scheduler.is_running
    assert calls == []
