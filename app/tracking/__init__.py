"""
Website change tracking components.
"""

from app.tracking.change_tracker import ChangeTracker, TrackerState, TrackingOutcome, TrackingResult
from app.tracking.diff import DiffEngine, DiffSegment, SegmentType
from app.tracking.fetcher import ContentFetcher
from app.tracking.hashing import ContentHasher
from app.tracking.snapshot_store import SnapshotStore

__all__ = [
    "ChangeTracker",
    "ContentFetcher",
    "ContentHasher",
    "DiffEngine",
    "DiffSegment",
    "SegmentType",
    "SnapshotStore",
    "TrackerState",
    "TrackingOutcome",
    "TrackingResult",
]
