"""
Per-entity change tracking: fetch, hash, compare, diff, persist.
"""

from __future__ import annotations

import enum
import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any

from sqlalchemy.orm import Session

from app.errors import PipelineError
from app.repositories.research_run_repository import ResearchModule, ResearchRunRecorder
from app.repositories.tracked_entity_repository import TrackedEntityRepository
from app.scheduler.recurring import Clock, as_utc, system_clock
from app.tracking.diff import DiffEngine, DiffSegment, SegmentType
from app.tracking.fetcher import ContentFetcher
from app.tracking.hashing import ContentHasher
from app.tracking.logging_utils import log_event
from app.tracking.snapshot_store import SnapshotStore
from db.models.change_record import ChangeClassification
from db.models.snapshot import Snapshot

logger = logging.getLogger(__name__)


class TrackerState(str, enum.Enum):
    FETCHING = "fetching"
    HASHING = "hashing"
    COMPARING = "comparing"
    UNCHANGED = "unchanged"
    DIFFING = "diffing"
    PERSISTING = "persisting"
    DONE = "done"
    FAILED = "failed"


class TrackingResult:
    INITIAL = "initial"
    NO_CHANGE = "no-change"
    CHANGED = "changed"


@dataclass(frozen=True)
class TrackingOutcome:
    """
    Result of one ChangeTracker run for one entity.
    """

    entity_id: uuid.UUID
    state: TrackerState
    result: str | None = None
    classification: str | None = None
    snapshot_id: uuid.UUID | None = None
    change_record_id: uuid.UUID | None = None
    research_run_id: uuid.UUID | None = None
    segments: list[DiffSegment] = field(default_factory=list)
    path: tuple[TrackerState, ...] = ()
    error: str | None = None
    error_code: str | None = None

    @property
    def succeeded(self) -> bool:
        return self.state is TrackerState.DONE


class ChangeTracker:
    """
    Runs the tracking state machine for one tracked entity.

    The fetch happens outside any lock. Comparison and persistence run in a
    single transaction that holds the entity's row lock, so concurrent runs
    for the same entity always diff against the true latest snapshot. Any
    error rolls back the whole transaction.
    """

    def __init__(
        self,
        *,
        fetcher: ContentFetcher | None = None,
        hasher: ContentHasher | None = None,
        diff_engine: DiffEngine | None = None,
        clock: Clock = system_clock,
    ) -> None:
        self._fetcher = fetcher or ContentFetcher()
        self._hasher = hasher or ContentHasher()
        self._diff_engine = diff_engine or DiffEngine()
        self._clock = clock

    def track(
        self,
        db: Session,
        entity_id: uuid.UUID,
        *,
        timeout_seconds: float | None = None,
    ) -> TrackingOutcome:
        """
        Track one entity and commit. Errors propagate after rollback.
        """

        return self._track(db, entity_id, timeout_seconds=timeout_seconds, path=[])

    def track_or_fail(
        self,
        db: Session,
        entity_id: uuid.UUID,
        *,
        timeout_seconds: float | None = None,
    ) -> TrackingOutcome:
        """
        Batch form of ``track``.

        Fetch, parse and lookup failures come back as a FAILED outcome with
        the states visited before the failure. Storage errors still raise.
        """

        path: list[TrackerState] = []
        try:
            return self._track(db, entity_id, timeout_seconds=timeout_seconds, path=path)
        except PipelineError as exc:
            return TrackingOutcome(
                entity_id=entity_id,
                state=TrackerState.FAILED,
                path=(*path, TrackerState.FAILED),
                error=str(exc),
                error_code=exc.code,
            )

    def _track(
        self,
        db: Session,
        entity_id: uuid.UUID,
        *,
        timeout_seconds: float | None,
        path: list[TrackerState],
    ) -> TrackingOutcome:
        entities = TrackedEntityRepository(db)
        url = entities.require(entity_id).url
        state = TrackerState.FETCHING

        try:
            path.append(state)
            content = self._fetcher.fetch(url, timeout_seconds=timeout_seconds)

            state = TrackerState.HASHING
            path.append(state)
            fingerprint = self._hasher.fingerprint(content)

            state = TrackerState.COMPARING
            path.append(state)
            entities.lock(entity_id)
            store = SnapshotStore(db)
            recorder = ResearchRunRecorder(db)
            latest = store.latest_for_entity(entity_id)
            captured_at = self._capture_time(latest)

            if latest is None:
                state = TrackerState.PERSISTING
                path.append(state)
                outcome = self._persist_transition(
                    store=store,
                    recorder=recorder,
                    entity_id=entity_id,
                    content=content,
                    fingerprint=fingerprint,
                    captured_at=captured_at,
                    previous=None,
                    segments=[],
                    classification=ChangeClassification.INITIAL,
                    result=TrackingResult.INITIAL,
                    path=path,
                )
            elif latest.fingerprint == fingerprint:
                state = TrackerState.UNCHANGED
                path.append(state)
                run = recorder.record(
                    entity_id=entity_id,
                    module_id=ResearchModule.WEBSITE_CHANGES,
                    result={
                        "outcome": TrackingResult.NO_CHANGE,
                        "fingerprint": fingerprint,
                        "latest_snapshot_id": str(latest.id),
                    },
                    changes_made=False,
                    change_details="No change detected.",
                    run_date=captured_at,
                )
                path.append(TrackerState.DONE)
                outcome = TrackingOutcome(
                    entity_id=entity_id,
                    state=TrackerState.DONE,
                    result=TrackingResult.NO_CHANGE,
                    snapshot_id=latest.id,
                    research_run_id=run.id,
                    path=tuple(path),
                )
            else:
                state = TrackerState.DIFFING
                path.append(state)
                segments = self._diff_engine.changes(latest.content, content)
                classification = (
                    ChangeClassification.UPDATE if segments else ChangeClassification.NONE
                )

                state = TrackerState.PERSISTING
                path.append(state)
                outcome = self._persist_transition(
                    store=store,
                    recorder=recorder,
                    entity_id=entity_id,
                    content=content,
                    fingerprint=fingerprint,
                    captured_at=captured_at,
                    previous=latest,
                    segments=segments,
                    classification=classification,
                    result=TrackingResult.CHANGED,
                    path=path,
                )

            db.commit()
        except Exception as exc:
            db.rollback()
            log_event(
                logger,
                logging.WARNING,
                "change_tracking_failed",
                entity_id=entity_id,
                failed_state=state.value,
                exc=exc,
            )
            raise

        log_event(
            logger,
            logging.INFO,
            "change_tracking_completed",
            entity_id=entity_id,
            result=outcome.result,
            classification=outcome.classification,
            added=_count(outcome.segments, SegmentType.ADDED),
            removed=_count(outcome.segments, SegmentType.REMOVED),
        )
        return outcome

    def _capture_time(self, latest: Snapshot | None) -> datetime:
        captured_at = as_utc(self._clock())
        if latest is not None:
            latest_at = as_utc(latest.captured_at)
            if captured_at <= latest_at:
                # Keep the per-entity sequence strictly ordered under clock skew.
                captured_at = latest_at + timedelta(microseconds=1)
        return captured_at

    def _persist_transition(
        self,
        *,
        store: SnapshotStore,
        recorder: ResearchRunRecorder,
        entity_id: uuid.UUID,
        content: str,
        fingerprint: str,
        captured_at: datetime,
        previous: Snapshot | None,
        segments: list[DiffSegment],
        classification: str,
        result: str,
        path: list[TrackerState],
    ) -> TrackingOutcome:
        snapshot = store.add_snapshot(
            entity_id=entity_id,
            content=content,
            fingerprint=fingerprint,
            captured_at=captured_at,
        )
        change_record = store.add_change_record(
            snapshot=snapshot,
            previous=previous,
            segments=segments,
            classification=classification,
        )
        run = recorder.record(
            entity_id=entity_id,
            module_id=ResearchModule.WEBSITE_CHANGES,
            result=_run_payload(
                result=result,
                classification=classification,
                snapshot_id=snapshot.id,
                change_record_id=change_record.id,
                fingerprint=fingerprint,
                segments=segments,
            ),
            changes_made=classification == ChangeClassification.UPDATE,
            change_details=_summarize(classification, segments),
            run_date=captured_at,
        )
        path.append(TrackerState.DONE)
        return TrackingOutcome(
            entity_id=entity_id,
            state=TrackerState.DONE,
            result=result,
            classification=classification,
            snapshot_id=snapshot.id,
            change_record_id=change_record.id,
            research_run_id=run.id,
            segments=list(segments),
            path=tuple(path),
        )


def _count(segments: list[DiffSegment], segment_type: str) -> int:
    return sum(1 for segment in segments if segment.type == segment_type)


def _run_payload(
    *,
    result: str,
    classification: str,
    snapshot_id: uuid.UUID,
    change_record_id: uuid.UUID,
    fingerprint: str,
    segments: list[DiffSegment],
) -> dict[str, Any]:
    return {
        "outcome": result,
        "classification": classification,
        "snapshot_id": str(snapshot_id),
        "change_record_id": str(change_record_id),
        "fingerprint": fingerprint,
        "added_segments": _count(segments, SegmentType.ADDED),
        "removed_segments": _count(segments, SegmentType.REMOVED),
    }


def _summarize(classification: str, segments: list[DiffSegment]) -> str:
    if classification == ChangeClassification.INITIAL:
        return "Initial snapshot captured."
    if classification == ChangeClassification.NONE:
        return "Content fingerprint changed without word-level differences."
    added = _count(segments, SegmentType.ADDED)
    removed = _count(segments, SegmentType.REMOVED)
    return f"{added} added and {removed} removed segment(s)."
