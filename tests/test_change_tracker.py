"""
tests/test_change_tracker.py

ChangeTracker against a real SQLite database with a fake fetcher.

Coverage
--------
- First run records an "initial" snapshot with an empty diff
- Unchanged content is idempotent (one snapshot, a no-change run)
- Changed content records an "update" with word segments
- Fingerprint change without word change is classified "none"
- Fetch failure writes nothing and propagates
- Batch form returns a FAILED outcome instead of raising
- A write failure after the snapshot is flushed leaves no partial rows
- Unknown entity raises NotFoundError
- Clock skew keeps snapshot order strict
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone

import pytest
from sqlalchemy import func, select

from app.errors import FetchError, NotFoundError
from app.repositories.research_run_repository import ResearchModule, ResearchRunRecorder
from app.scheduler.recurring import as_utc
from app.tracking.change_tracker import ChangeTracker, TrackerState, TrackingResult
from app.tracking.diff import DiffSegment, SegmentType
from app.tracking.snapshot_store import SnapshotStore
from db.models import ChangeClassification, ChangeRecord, ResearchRun, Snapshot

URL = "https://www.acme.test"


@pytest.fixture()
def tracker(fetcher, clock) -> ChangeTracker:
    return ChangeTracker(fetcher=fetcher, clock=clock)


@pytest.fixture()
def entity(make_entity):
    return make_entity(url=URL)


class TestInitialRun:
    def test_first_run_is_initial(self, db, tracker, fetcher, entity) -> None:
        fetcher.pages[URL] = "Welcome to X"

        outcome = tracker.track(db, entity.id)

        assert outcome.state is TrackerState.DONE
        assert outcome.result == TrackingResult.INITIAL
        assert outcome.classification == ChangeClassification.INITIAL
        assert outcome.segments == []
        assert outcome.path[0] is TrackerState.FETCHING
        assert TrackerState.DIFFING not in outcome.path

        record = db.get(ChangeRecord, outcome.change_record_id)
        assert record is not None
        assert record.previous_snapshot_id is None
        assert record.segments == []
        assert record.reported is False

    def test_first_run_records_research_run(self, db, tracker, fetcher, entity) -> None:
        fetcher.pages[URL] = "Welcome to X"

        outcome = tracker.track(db, entity.id)

        runs = ResearchRunRecorder(db).history(entity.id, module_id=ResearchModule.WEBSITE_CHANGES)
        assert [run.id for run in runs] == [outcome.research_run_id]
        assert runs[0].changes_made is False
        assert runs[0].result["classification"] == ChangeClassification.INITIAL


class TestIdempotence:
    def test_unchanged_content_creates_one_snapshot(self, db, tracker, fetcher, entity) -> None:
        fetcher.pages[URL] = "Welcome to X"

        first = tracker.track(db, entity.id)
        second = tracker.track(db, entity.id)

        assert second.result == TrackingResult.NO_CHANGE
        assert second.state is TrackerState.DONE
        assert TrackerState.UNCHANGED in second.path
        assert second.snapshot_id == first.snapshot_id
        assert second.change_record_id is None
        assert SnapshotStore(db).count_for_entity(entity.id) == 1
        assert db.scalar(select(func.count()).select_from(ChangeRecord)) == 1

    def test_no_change_run_is_still_recorded(self, db, tracker, fetcher, entity) -> None:
        fetcher.pages[URL] = "Welcome to X"

        tracker.track(db, entity.id)
        tracker.track(db, entity.id)

        runs = ResearchRunRecorder(db).history(entity.id)
        assert len(runs) == 2
        assert runs[0].changes_made is False
        assert runs[0].result["outcome"] == TrackingResult.NO_CHANGE


class TestChangedContent:
    def test_update_records_added_segment(self, db, tracker, fetcher, entity) -> None:
        fetcher.pages[URL] = "Welcome to X"
        first = tracker.track(db, entity.id)
        fetcher.pages[URL] = "Welcome to X and Y"

        outcome = tracker.track(db, entity.id)

        assert outcome.result == TrackingResult.CHANGED
        assert outcome.classification == ChangeClassification.UPDATE
        assert outcome.segments == [DiffSegment(SegmentType.ADDED, "and Y")]

        record = db.get(ChangeRecord, outcome.change_record_id)
        assert record.previous_snapshot_id == first.snapshot_id
        assert record.segments == [{"type": "added", "value": "and Y"}]

        latest = SnapshotStore(db).latest_for_entity(entity.id)
        assert latest.id == outcome.snapshot_id
        assert latest.content == "Welcome to X and Y"

        run = db.get(ResearchRun, outcome.research_run_id)
        assert run.changes_made is True
        assert run.result["added_segments"] == 1
        assert run.result["removed_segments"] == 0

    def test_whitespace_change_is_classified_none(self, db, tracker, fetcher, entity) -> None:
        fetcher.pages[URL] = "Welcome to X"
        tracker.track(db, entity.id)
        fetcher.pages[URL] = "Welcome  to X"

        outcome = tracker.track(db, entity.id)

        assert outcome.result == TrackingResult.CHANGED
        assert outcome.classification == ChangeClassification.NONE
        assert outcome.segments == []
        assert SnapshotStore(db).count_for_entity(entity.id) == 2

    def test_diffs_against_latest_snapshot(self, db, tracker, fetcher, entity) -> None:
        for content in ("one", "one two", "one two three"):
            fetcher.pages[URL] = content
            outcome = tracker.track(db, entity.id)

        assert outcome.segments == [DiffSegment(SegmentType.ADDED, "three")]


class TestFailures:
    def test_fetch_failure_writes_nothing(self, db, tracker, fetcher, entity) -> None:
        fetcher.failing.add(URL)

        with pytest.raises(FetchError):
            tracker.track(db, entity.id)

        assert db.scalar(select(func.count()).select_from(Snapshot)) == 0
        assert db.scalar(select(func.count()).select_from(ChangeRecord)) == 0
        assert ResearchRunRecorder(db).history(entity.id) == []

    def test_failure_is_logged(self, db, tracker, fetcher, entity, caplog) -> None:
        fetcher.failing.add(URL)

        with caplog.at_level("WARNING"), pytest.raises(FetchError):
            tracker.track(db, entity.id)

        assert "change_tracking_failed" in caplog.text
        assert str(entity.id) in caplog.text

    def test_track_or_fail_returns_failed_outcome(self, db, tracker, fetcher, entity) -> None:
        fetcher.failing.add(URL)

        outcome = tracker.track_or_fail(db, entity.id)

        assert outcome.state is TrackerState.FAILED
        assert not outcome.succeeded
        assert outcome.path == (TrackerState.FETCHING, TrackerState.FAILED)
        assert outcome.error_code == "fetch_failed"
        assert URL in outcome.error
        assert outcome.snapshot_id is None
        assert SnapshotStore(db).count_for_entity(entity.id) == 0

    def test_track_or_fail_passes_success_through(self, db, tracker, fetcher, entity) -> None:
        fetcher.pages[URL] = "Welcome to X"

        outcome = tracker.track_or_fail(db, entity.id)

        assert outcome.succeeded
        assert outcome.error is None

    def test_write_failure_after_snapshot_flush_rolls_back_everything(
        self, db, tracker, fetcher, entity, monkeypatch
    ) -> None:
        fetcher.pages[URL] = "Welcome to X"
        tracker.track(db, entity.id)
        fetcher.pages[URL] = "Welcome to X and Y"

        def fail_record(self, **_fields):
            raise RuntimeError("research_runs unavailable")

        monkeypatch.setattr(ResearchRunRecorder, "record", fail_record)

        with pytest.raises(RuntimeError):
            tracker.track(db, entity.id)

        assert SnapshotStore(db).count_for_entity(entity.id) == 1
        assert db.scalar(select(func.count()).select_from(ChangeRecord)) == 1
        assert db.scalar(select(func.count()).select_from(ResearchRun)) == 1

    def test_unknown_entity(self, db, tracker) -> None:
        with pytest.raises(NotFoundError):
            tracker.track(db, uuid.uuid4())


class TestCaptureOrdering:
    def test_clock_skew_keeps_order(self, db, fetcher, entity) -> None:
        frozen = datetime(2024, 1, 1, tzinfo=timezone.utc)
        tracker = ChangeTracker(fetcher=fetcher, clock=lambda: frozen)

        fetcher.pages[URL] = "first"
        first = tracker.track(db, entity.id)
        fetcher.pages[URL] = "second"
        second = tracker.track(db, entity.id)

        first_snapshot = db.get(Snapshot, first.snapshot_id)
        second_snapshot = db.get(Snapshot, second.snapshot_id)
        assert as_utc(second_snapshot.captured_at) > as_utc(first_snapshot.captured_at)
        assert SnapshotStore(db).latest_for_entity(entity.id).id == second.snapshot_id
