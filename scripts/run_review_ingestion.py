"""
Run review ingestion from CLI.
"""

from __future__ import annotations

import argparse
import json
import logging
import uuid

from app.errors import PipelineError
from app.reviews.ingester import ReviewIngester
from app.scheduler.jobs import run_review_ingestion_batch
from db.session import SessionLocal, get_session_factory


def main() -> int:
    parser = argparse.ArgumentParser(description="Run review ingestion.")
    parser.add_argument(
        "--entity-id",
        dest="entity_id",
        type=uuid.UUID,
        default=None,
        help="Ingest a single entity instead of the scheduled batch.",
    )
    parser.add_argument(
        "--review-source-url",
        dest="review_source_url",
        default=None,
        help="Review page URL; resolved from the entity when omitted.",
    )
    parser.add_argument(
        "--force",
        action="store_true",
        help="Run the batch even when the module is disabled in settings.",
    )
    args = parser.parse_args()
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s [%(name)s] %(message)s")

    if args.entity_id is None:
        summary = run_review_ingestion_batch(session_factory=get_session_factory(), force=args.force)
        payload = summary.to_dict() if summary is not None else {"status": "disabled"}
        print(json.dumps(payload, indent=2))
        return 0

    with SessionLocal() as db:
        try:
            result = ReviewIngester().ingest(
                db,
                args.entity_id,
                review_source_url=args.review_source_url,
            )
        except PipelineError as exc:
            print(json.dumps({"status": "error", "error": exc.code, "message": str(exc)}, indent=2))
            return 1

    payload = {
        "entity_id": str(result.entity_id),
        "status": result.status.value,
        "review_source_url": result.review_source_url,
        "inserted_count": result.inserted_count,
        "inserted": [record.external_review_id for record in result.inserted],
        "skipped_duplicates": result.skipped_duplicates,
        "message": result.message,
    }
    print(json.dumps(payload, indent=2))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
