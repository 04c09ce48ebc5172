"""
tests/test_batch_scheduler.py

Batch iteration, recurring task timing and scheduler wiring.

Coverage
--------
- Partial-failure isolation across entities
- Every selected entity is attempted, active or not
- Stop request and overlap lock
- Module ``enabled`` gate
- RecurringTask due-ness under a fixed clock
- build_scheduler job registration and rescheduling
"""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from app.repositories.module_settings_repository import SettingsStore
from app.repositories.research_run_repository import ResearchModule
from app.scheduler.batch import BatchStatus, EntityBatchRunner
from app.scheduler.jobs import (
    REVIEW_JOB_ID,
    TRACKING_JOB_ID,
    build_recurring_tasks,
    build_scheduler,
    reschedule_module,
    run_change_tracking_batch,
    run_due_tasks,
    scheduler_status,
)
from app.scheduler.recurring import RecurringTask
from app.tracking.change_tracker import ChangeTracker
from app.tracking.snapshot_store import SnapshotStore


def _at(hour: int, minute: int = 0) -> datetime:
    return datetime(2024, 1, 1, hour, minute, tzinfo=timezone.utc)


@pytest.fixture()
def three_entities(make_entity, fetcher):
    entities = [
        make_entity(name=f"Competitor {index}", url=f"https://competitor{index}.test")
        for index in (1, 2, 3)
    ]
    for entity in entities:
        fetcher.pages[entity.url] = f"Homepage of {entity.name}"
    fetcher.failing.add(entities[1].url)
    return entities


class TestPartialFailureIsolation:
    def test_one_failure_does_not_abort_batch(
        self, session_factory, fetcher, clock, three_entities, caplog
    ) -> None:
        tracker = ChangeTracker(fetcher=fetcher, clock=clock)

        with caplog.at_level("WARNING"):
            summary = run_change_tracking_batch(session_factory=session_factory, tracker=tracker)

        assert summary is not None
        assert summary.status == BatchStatus.COMPLETED
        assert summary.attempted == 3
        assert summary.succeeded == 2
        assert summary.failed == 1

        failed = [result for result in summary.results if not result.succeeded]
        assert [result.entity_id for result in failed] == [three_entities[1].id]
        assert failed[0].error_code == "fetch_failed"

        session = session_factory()
        try:
            store = SnapshotStore(session)
            assert store.count_for_entity(three_entities[0].id) == 1
            assert store.count_for_entity(three_entities[1].id) == 0
            assert store.count_for_entity(three_entities[2].id) == 1
        finally:
            session.close()

        failure_lines = [line for line in caplog.messages if "batch_entity_failed" in line]
        assert len(failure_lines) == 1
        assert str(three_entities[1].id) in failure_lines[0]
        assert "Competitor 2" in failure_lines[0]

    def test_only_selected_entities_are_attempted(
        self, session_factory, make_entity, fetcher, clock
    ) -> None:
        selected = make_entity(name="Selected", url="https://selected.test")
        make_entity(name="Unselected", url="https://unselected.test", is_selected=False)
        fetcher.pages["https://selected.test"] = "hello"

        summary = run_change_tracking_batch(
            session_factory=session_factory,
            tracker=ChangeTracker(fetcher=fetcher, clock=clock),
        )

        assert [result.entity_id for result in summary.results] == [selected.id]
        assert fetcher.calls == ["https://selected.test"]

    def test_inactive_selected_entity_is_still_attempted(
        self, session_factory, make_entity, fetcher, clock
    ) -> None:
        inactive = make_entity(name="Paused", url="https://paused.test", is_active=False)
        fetcher.pages["https://paused.test"] = "hello"

        summary = run_change_tracking_batch(
            session_factory=session_factory,
            tracker=ChangeTracker(fetcher=fetcher, clock=clock),
        )

        assert summary.attempted == 1
        assert summary.results[0].entity_id == inactive.id
        assert summary.results[0].succeeded


class TestRunnerControl:
    def test_stop_request_skips_remaining_entities(self, session_factory, three_entities) -> None:
        runner = EntityBatchRunner(session_factory, job_name="test_job")
        seen = []

        def action(db, entity_id) -> None:
            seen.append(entity_id)
            runner.request_stop()

        summary = runner.run(action)

        assert len(seen) == 1
        assert summary.attempted == 1
        assert summary.status == BatchStatus.STOPPED
        assert summary.stopped_early

    def test_overlapping_run_is_skipped(self, session_factory, three_entities) -> None:
        runner = EntityBatchRunner(session_factory, job_name="test_job")
        nested = []

        def action(db, entity_id) -> None:
            if not nested:
                nested.append(runner.run(lambda *_: None))

        summary = runner.run(action)

        assert summary.status == BatchStatus.COMPLETED
        assert nested[0].status == BatchStatus.SKIPPED
        assert nested[0].attempted == 0
        assert not runner.is_running

    def test_summary_to_dict(self, session_factory, three_entities) -> None:
        runner = EntityBatchRunner(session_factory, job_name="test_job")

        payload = runner.run(lambda *_: None).to_dict()

        assert payload["job_name"] == "test_job"
        assert payload["attempted"] == 3
        assert payload["failed"] == 0
        assert len(payload["results"]) == 3


class TestEnabledGate:
    def test_disabled_module_does_not_run(self, session_factory, fetcher, clock, three_entities) -> None:
        session = session_factory()
        try:
            SettingsStore(session).put(ResearchModule.WEBSITE_CHANGES, {"enabled": False})
            session.commit()
        finally:
            session.close()

        summary = run_change_tracking_batch(
            session_factory=session_factory,
            tracker=ChangeTracker(fetcher=fetcher, clock=clock),
        )

        assert summary is None
        assert fetcher.calls == []

    def test_force_overrides_disabled_module(self, session_factory, fetcher, clock, three_entities) -> None:
        session = session_factory()
        try:
            SettingsStore(session).put(ResearchModule.WEBSITE_CHANGES, {"enabled": False})
            session.commit()
        finally:
            session.close()

        summary = run_change_tracking_batch(
            session_factory=session_factory,
            tracker=ChangeTracker(fetcher=fetcher, clock=clock),
            force=True,
        )

        assert summary is not None
        assert summary.attempted == 3


class TestRecurringTask:
    def test_never_run_task_is_due(self) -> None:
        task = RecurringTask(name="t", schedule="0 */6 * * *", action=lambda: None)
        assert task.is_due(last_run=None, now=_at(1))

    def test_due_only_after_next_fire_time(self) -> None:
        task = RecurringTask(name="t", schedule="0 */6 * * *", action=lambda: None)

        assert task.next_run_after(_at(0)) == _at(6)
        assert not task.is_due(last_run=_at(0), now=_at(5, 59))
        assert task.is_due(last_run=_at(0), now=_at(6))

    def test_naive_times_are_treated_as_utc(self) -> None:
        task = RecurringTask(name="t", schedule="0 */6 * * *", action=lambda: None)
        assert task.is_due(last_run=_at(0).replace(tzinfo=None), now=_at(6).replace(tzinfo=None))

    def test_invalid_schedule_raises(self) -> None:
        task = RecurringTask(name="t", schedule="every six hours", action=lambda: None)
        with pytest.raises(ValueError):
            task.trigger()

    def test_run_due_tasks_under_fixed_clock(self) -> None:
        calls: list[str] = []
        tasks = [
            RecurringTask(name="six_hourly", schedule="0 */6 * * *", action=lambda: calls.append("six")),
            RecurringTask(name="daily", schedule="0 3 * * *", action=lambda: calls.append("daily")),
        ]
        last_runs = {"six_hourly": _at(0), "daily": _at(0)}

        assert run_due_tasks(tasks, last_runs=last_runs, now=_at(2)) == []
        assert run_due_tasks(tasks, last_runs=last_runs, now=_at(4)) == ["daily"]
        assert run_due_tasks(tasks, last_runs=last_runs, now=_at(6)) == ["six_hourly"]
        assert calls == ["daily", "six"]
        assert last_runs["six_hourly"] == _at(6)


class TestSchedulerWiring:
    def test_recurring_tasks_use_module_schedules(self, session_factory) -> None:
        tasks = {task.name: task for task in build_recurring_tasks(session_factory)}

        assert tasks[TRACKING_JOB_ID].schedule == "0 */6 * * *"
        assert tasks[REVIEW_JOB_ID].schedule == "0 3 * * *"

    def test_build_scheduler_registers_jobs(self, session_factory) -> None:
        scheduler = build_scheduler(session_factory)

        job_ids = sorted(job.id for job in scheduler.get_jobs())
        assert job_ids == sorted([TRACKING_JOB_ID, REVIEW_JOB_ID])
        job = scheduler.get_job(TRACKING_JOB_ID)
        assert job.max_instances == 1
        assert job.coalesce is True

    def test_reschedule_module(self, session_factory) -> None:
        scheduler = build_scheduler(session_factory)

        assert reschedule_module(scheduler, ResearchModule.WEBSITE_CHANGES, "30 1 * * *")
        assert "hour='1'" in str(scheduler.get_job(TRACKING_JOB_ID).trigger)
        assert not reschedule_module(scheduler, "seo", "0 1 * * *")
        assert not reschedule_module(None, ResearchModule.WEBSITE_CHANGES, "0 1 * * *")

    def test_status_without_scheduler(self, db) -> None:
        statuses = {status["job_id"]: status for status in scheduler_status(None, db)}

        assert statuses[TRACKING_JOB_ID]["module_id"] == ResearchModule.WEBSITE_CHANGES
        assert statuses[TRACKING_JOB_ID]["scheduled"] is False
        assert statuses[REVIEW_JOB_ID]["enabled"] is True
