"""
Run website change tracking from CLI.

Without ``--entity-id`` the scheduled batch runs over every selected
entity; with it, only that entity is tracked and errors are reported.
"""

from __future__ import annotations

import argparse
import json
import logging
import uuid

from app.errors import PipelineError
from app.scheduler.jobs import run_change_tracking_batch
from app.tracking.change_tracker import ChangeTracker
from db.session import SessionLocal, get_session_factory


def main() -> int:
    parser = argparse.ArgumentParser(description="Run website change tracking.")
    parser.add_argument(
        "--entity-id",
        dest="entity_id",
        type=uuid.UUID,
        default=None,
        help="Track a single entity instead of the scheduled batch.",
    )
    parser.add_argument(
        "--timeout",
        dest="timeout_seconds",
        type=float,
        default=None,
        help="Fetch timeout override in seconds.",
    )
    parser.add_argument(
        "--force",
        action="store_true",
        help="Run the batch even when the module is disabled in settings.",
    )
    args = parser.parse_args()
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s [%(name)s] %(message)s")

    if args.entity_id is None:
        summary = run_change_tracking_batch(session_factory=get_session_factory(), force=args.force)
        payload = summary.to_dict() if summary is not None else {"status": "disabled"}
        print(json.dumps(payload, indent=2))
        return 0

    with SessionLocal() as db:
        try:
            outcome = ChangeTracker().track(db, args.entity_id, timeout_seconds=args.timeout_seconds)
        except PipelineError as exc:
            print(json.dumps({"status": "error", "error": exc.code, "message": str(exc)}, indent=2))
            return 1

    payload = {
        "entity_id": str(outcome.entity_id),
        "state": outcome.state.value,
        "result": outcome.result,
        "classification": outcome.classification,
        "snapshot_id": str(outcome.snapshot_id) if outcome.snapshot_id else None,
        "change_record_id": str(outcome.change_record_id) if outcome.change_record_id else None,
        "segments": [segment.to_dict() for segment in outcome.segments],
    }
    print(json.dumps(payload, indent=2))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
