"""
app/scheduler/batch.py

Per-entity batch iteration for scheduled jobs.

Every selected TrackedEntity is processed in its own session so a
failure (fetch, parse or storage) for one entity is logged and skipped while
the rest of the batch still runs.
"""

from __future__ import annotations

import logging
import threading
import uuid
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from sqlalchemy.orm import Session, sessionmaker

from app.repositories.tracked_entity_repository import TrackedEntityRepository
from app.scheduler.recurring import Clock, system_clock
from app.tracking.logging_utils import log_event

logger = logging.getLogger(__name__)

EntityAction = Callable[[Session, uuid.UUID], Any]


class BatchStatus:
    COMPLETED = "completed"
    STOPPED = "stopped"
    SKIPPED = "skipped"


@dataclass(frozen=True)
class EntityRunResult:
    entity_id: uuid.UUID
    entity_name: str
    succeeded: bool
    error: str | None = None
    error_code: str | None = None


@dataclass
class BatchRunSummary:
    job_name: str
    started_at: datetime
    finished_at: datetime | None = None
    status: str = BatchStatus.COMPLETED
    results: list[EntityRunResult] = field(default_factory=list)

    @property
    def attempted(self) -> int:
        return len(self.results)

    @property
    def succeeded(self) -> int:
        return sum(1 for result in self.results if result.succeeded)

    @property
    def failed(self) -> int:
        return sum(1 for result in self.results if not result.succeeded)

    @property
    def stopped_early(self) -> bool:
        return self.status == BatchStatus.STOPPED

    def to_dict(self) -> dict[str, Any]:
        return {
            "job_name": self.job_name,
            "status": self.status,
            "started_at": self.started_at.isoformat(),
            "finished_at": self.finished_at.isoformat() if self.finished_at else None,
            "attempted": self.attempted,
            "succeeded": self.succeeded,
            "failed": self.failed,
            "results": [
                {
                    "entity_id": str(result.entity_id),
                    "entity_name": result.entity_name,
                    "succeeded": result.succeeded,
                    "error": result.error,
                    "error_code": result.error_code,
                }
                for result in self.results
            ],
        }


class EntityBatchRunner:
    """
    Runs one action against every scheduled entity, sequentially.

    ``run`` is non-reentrant: a call made while another run is in progress
    returns a ``skipped`` summary immediately. ``request_stop`` lets the
    entity in flight finish and prevents any further entity from starting.
    """

    def __init__(
        self,
        session_factory: sessionmaker[Session] | Callable[[], Session],
        *,
        job_name: str,
        clock: Clock = system_clock,
    ) -> None:
        self._session_factory = session_factory
        self._job_name = job_name
        self._clock = clock
        self._run_lock = threading.Lock()
        self._stop_requested = threading.Event()

    @property
    def job_name(self) -> str:
        return self._job_name

    @property
    def is_running(self) -> bool:
        return self._run_lock.locked()

    def request_stop(self) -> None:
        self._stop_requested.set()

    def run(self, action: EntityAction) -> BatchRunSummary:
        summary = BatchRunSummary(job_name=self._job_name, started_at=self._clock())

        if not self._run_lock.acquire(blocking=False):
            summary.status = BatchStatus.SKIPPED
            summary.finished_at = self._clock()
            log_event(logger, logging.WARNING, "batch_run_skipped", job=self._job_name, reason="already_running")
            return summary

        try:
            self._stop_requested.clear()
            targets = self._load_targets()
            log_event(logger, logging.INFO, "batch_run_started", job=self._job_name, entities=len(targets))

            for entity_id, entity_name in targets:
                if self._stop_requested.is_set():
                    summary.status = BatchStatus.STOPPED
                    log_event(
                        logger,
                        logging.INFO,
                        "batch_run_stop_requested",
                        job=self._job_name,
                        remaining=len(targets) - summary.attempted,
                    )
                    break
                summary.results.append(self._run_one(action, entity_id, entity_name))
        finally:
            summary.finished_at = self._clock()
            self._run_lock.release()

        log_event(
            logger,
            logging.INFO,
            "batch_run_finished",
            job=self._job_name,
            status=summary.status,
            attempted=summary.attempted,
            succeeded=summary.succeeded,
            failed=summary.failed,
        )
        return summary

    def _load_targets(self) -> list[tuple[uuid.UUID, str]]:
        session = self._session_factory()
        try:
            entities = TrackedEntityRepository(session).list_scheduled()
            return [(entity.id, entity.name) for entity in entities]
        finally:
            session.close()

    def _run_one(self, action: EntityAction, entity_id: uuid.UUID, entity_name: str) -> EntityRunResult:
        session = self._session_factory()
        try:
            outcome = action(session, entity_id)
        except Exception as exc:  # noqa: BLE001
            session.rollback()
            return self._failed(
                entity_id,
                entity_name,
                error=str(exc),
                error_code=getattr(exc, "code", None),
                exc=exc,
            )
        finally:
            session.close()

        # Actions may report a failure through their outcome instead of raising.
        if getattr(outcome, "succeeded", True) is False:
            return self._failed(
                entity_id,
                entity_name,
                error=getattr(outcome, "error", None),
                error_code=getattr(outcome, "error_code", None),
            )
        return EntityRunResult(entity_id=entity_id, entity_name=entity_name, succeeded=True)

    def _failed(
        self,
        entity_id: uuid.UUID,
        entity_name: str,
        *,
        error: str | None,
        error_code: str | None,
        exc: BaseException | None = None,
    ) -> EntityRunResult:
        log_event(
            logger,
            logging.WARNING,
            "batch_entity_failed",
            job=self._job_name,
            entity_id=entity_id,
            entity_name=entity_name,
            error=error,
            error_code=error_code,
            exc=exc,
        )
        return EntityRunResult(
            entity_id=entity_id,
            entity_name=entity_name,
            succeeded=False,
            error=error,
            error_code=error_code,
        )
