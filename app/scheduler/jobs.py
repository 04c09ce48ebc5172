"""
app/scheduler/jobs.py

APScheduler-based batch scheduler for competitor monitoring.

Jobs
----
  website_change_tracking: ChangeTracker over every selected entity.
                            Schedule from the ``website-changes`` module
                            settings (default every 6 hours).
  review_ingestion:        ReviewIngester over the same entities.
                            Schedule from the ``trustpilot`` module settings
                            (default 03:00 daily).

Each job is a RecurringTask: its cron schedule is data read from
ModuleSettings and its action is a plain function, so jobs can be run
directly (CLI, tests) or by the BackgroundScheduler. A module whose settings
have ``enabled: false`` is skipped at run time.

Lifecycle
----------
Call ``build_scheduler()`` once to get a configured ``BackgroundScheduler``.
Start it on app boot; shut it down gracefully on app shutdown.
The scheduler is wired into FastAPI via the ``lifespan`` context in main.py.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from datetime import datetime
from typing import Any

from apscheduler.schedulers.background import BackgroundScheduler
from sqlalchemy.orm import Session, sessionmaker

from app.config import get_scheduler_settings
from app.repositories.module_settings_repository import SettingsStore
from app.repositories.research_run_repository import ResearchModule
from app.reviews.ingester import ReviewIngester
from app.scheduler.batch import BatchRunSummary, EntityBatchRunner
from app.scheduler.recurring import RecurringTask, as_utc
from app.tracking.change_tracker import ChangeTracker
from app.tracking.logging_utils import log_event
from db.session import get_session_factory

logger = logging.getLogger(__name__)

SessionFactory = sessionmaker[Session] | Callable[[], Session]

TRACKING_JOB_ID = "website_change_tracking"
REVIEW_JOB_ID = "review_ingestion"

# job id -> (module id, display name)
JOB_MODULES: dict[str, tuple[str, str]] = {
    TRACKING_JOB_ID: (ResearchModule.WEBSITE_CHANGES, "Website change tracking"),
    REVIEW_JOB_ID: (ResearchModule.TRUSTPILOT, "Review ingestion"),
}

_runners: dict[tuple[str, Any], EntityBatchRunner] = {}
_runners_lock = threading.Lock()


def _resolve_factory(session_factory: SessionFactory | None) -> SessionFactory:
    return session_factory if session_factory is not None else get_session_factory()


def get_batch_runner(job_id: str, session_factory: SessionFactory | None = None) -> EntityBatchRunner:
    """
    Shared runner per (job, session factory) so the overlap lock spans callers.
    """

    factory = _resolve_factory(session_factory)
    key = (job_id, factory)
    with _runners_lock:
        runner = _runners.get(key)
        if runner is None:
            runner = EntityBatchRunner(factory, job_name=job_id)
            _runners[key] = runner
        return runner


def job_id_for_module(module_id: str) -> str | None:
    for job_id, (job_module_id, _) in JOB_MODULES.items():
        if job_module_id == module_id:
            return job_id
    return None


def _module_enabled(session_factory: SessionFactory, module_id: str) -> bool:
    session = session_factory()
    try:
        enabled = SettingsStore(session).get_value(module_id).enabled
        session.commit()
        return enabled
    finally:
        session.close()


# ---------------------------------------------------------------------------
# Job actions
# ---------------------------------------------------------------------------


def run_change_tracking_batch(
    *,
    session_factory: SessionFactory | None = None,
    tracker: ChangeTracker | None = None,
    force: bool = False,
) -> BatchRunSummary | None:
    """
    Track every scheduled entity. Returns None when the module is disabled.
    """

    factory = _resolve_factory(session_factory)
    if not force and not _module_enabled(factory, ResearchModule.WEBSITE_CHANGES):
        log_event(logger, logging.INFO, "scheduled_job_disabled", job=TRACKING_JOB_ID)
        return None

    active_tracker = tracker or ChangeTracker()
    return get_batch_runner(TRACKING_JOB_ID, factory).run(
        lambda db, entity_id: active_tracker.track_or_fail(db, entity_id)
    )


def run_review_ingestion_batch(
    *,
    session_factory: SessionFactory | None = None,
    ingester: ReviewIngester | None = None,
    force: bool = False,
) -> BatchRunSummary | None:
    """
    Ingest reviews for every scheduled entity. Returns None when disabled.
    """

    factory = _resolve_factory(session_factory)
    if not force and not _module_enabled(factory, ResearchModule.TRUSTPILOT):
        log_event(logger, logging.INFO, "scheduled_job_disabled", job=REVIEW_JOB_ID)
        return None

    active_ingester = ingester or ReviewIngester()
    return get_batch_runner(REVIEW_JOB_ID, factory).run(
        lambda db, entity_id: active_ingester.ingest(db, entity_id)
    )


_JOB_ACTIONS: dict[str, Callable[..., BatchRunSummary | None]] = {
    TRACKING_JOB_ID: run_change_tracking_batch,
    REVIEW_JOB_ID: run_review_ingestion_batch,
}


# ---------------------------------------------------------------------------
# Recurring tasks
# ---------------------------------------------------------------------------


def build_recurring_tasks(session_factory: SessionFactory | None = None) -> list[RecurringTask]:
    """
    One RecurringTask per job with its schedule read from ModuleSettings.
    """

    factory = _resolve_factory(session_factory)
    timezone_name = get_scheduler_settings().timezone
    tasks: list[RecurringTask] = []

    session = factory()
    try:
        store = SettingsStore(session)
        for job_id, (module_id, _) in JOB_MODULES.items():
            schedule = store.get_value(module_id).schedule
            action = _JOB_ACTIONS[job_id]
            tasks.append(
                RecurringTask(
                    name=job_id,
                    schedule=schedule,
                    action=lambda action=action: action(session_factory=factory),
                    timezone_name=timezone_name,
                )
            )
        session.commit()
    finally:
        session.close()
    return tasks


def run_due_tasks(
    tasks: list[RecurringTask],
    *,
    last_runs: dict[str, datetime],
    now: datetime,
) -> list[str]:
    """
    Run every task due at ``now`` and record ``now`` as its last run.

    Timer-independent entry point; returns the names of tasks that ran.
    """

    ran: list[str] = []
    for task in tasks:
        if not task.is_due(last_run=last_runs.get(task.name), now=now):
            continue
        task.run()
        last_runs[task.name] = as_utc(now)
        ran.append(task.name)
    return ran


# ---------------------------------------------------------------------------
# Scheduler factory
# ---------------------------------------------------------------------------


def build_scheduler(session_factory: SessionFactory | None = None) -> BackgroundScheduler:
    """
    Build and register all periodic jobs.

    Returns a configured but *not yet started* ``BackgroundScheduler``.
    The caller must call ``.start()`` and ``.shutdown(wait=True)`` at the
    appropriate lifecycle points.
    """

    settings = get_scheduler_settings()
    scheduler = BackgroundScheduler(timezone=settings.timezone)

    for task in build_recurring_tasks(session_factory):
        scheduler.add_job(
            task.run,
            trigger=task.trigger(),
            id=task.name,
            name=JOB_MODULES[task.name][1],
            replace_existing=True,
            max_instances=1,
            coalesce=True,
            misfire_grace_time=settings.misfire_grace_seconds,
        )
        log_event(logger, logging.INFO, "scheduled_job_registered", job=task.name, schedule=task.schedule)

    return scheduler


def reschedule_module(scheduler: BackgroundScheduler | None, module_id: str, schedule: str) -> bool:
    """
    Apply a new cron schedule to the job backing ``module_id``.

    Returns False when there is no scheduler or no job for the module.
    """

    job_id = job_id_for_module(module_id)
    if scheduler is None or job_id is None or scheduler.get_job(job_id) is None:
        return False

    task = RecurringTask(
        name=job_id,
        schedule=schedule,
        action=lambda: None,
        timezone_name=get_scheduler_settings().timezone,
    )
    scheduler.reschedule_job(job_id, trigger=task.trigger())
    log_event(logger, logging.INFO, "scheduled_job_rescheduled", job=job_id, schedule=schedule)
    return True


def is_job_running(job_id: str) -> bool:
    with _runners_lock:
        return any(runner.is_running for (key, _), runner in _runners.items() if key == job_id)


def scheduler_status(scheduler: BackgroundScheduler | None, db: Session) -> list[dict[str, Any]]:
    """
    Per-job status: module settings plus next fire time when scheduled.
    """

    store = SettingsStore(db)
    statuses: list[dict[str, Any]] = []
    for job_id, (module_id, name) in JOB_MODULES.items():
        value = store.get_value(module_id)
        job = scheduler.get_job(job_id) if scheduler is not None else None
        statuses.append(
            {
                "job_id": job_id,
                "name": name,
                "module_id": module_id,
                "schedule": value.schedule,
                "enabled": value.enabled,
                "scheduled": job is not None,
                "next_run_time": getattr(job, "next_run_time", None),
                "running": is_job_running(job_id),
            }
        )
    return statuses
