"""create tracked_entities, snapshots, change_records, review_records, research_runs, module_settings

Revision ID: 20261018_0001
Revises:
Create Date: 2026-10-18 00:00:00
"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

revision = "20261018_0001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    # ---------------------------------------------------------------------------
    # tracked_entities
    # No foreign keys. Every other pipeline table references it.
    # ---------------------------------------------------------------------------
    op.create_table(
        "tracked_entities",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column(
            "owner_id",
            sa.String(length=64),
            nullable=False,
            comment="Identifier of the owning user in the account service",
        ),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("url", sa.Text(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column(
            "is_selected",
            sa.Boolean(),
            nullable=False,
            server_default=sa.false(),
            comment="Included in scheduled change tracking",
        ),
        sa.Column(
            "review_source_url",
            sa.Text(),
            nullable=True,
            comment="Resolved third-party review page, cached after first discovery",
        ),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_tracked_entities_owner_id", "tracked_entities", ["owner_id"])
    op.create_index(
        "ix_tracked_entities_selected_active",
        "tracked_entities",
        ["is_selected", "is_active"],
    )

    # ---------------------------------------------------------------------------
    # snapshots
    # FK → tracked_entities.id ON DELETE CASCADE
    # ---------------------------------------------------------------------------
    op.create_table(
        "snapshots",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("tracked_entity_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column(
            "fingerprint",
            sa.String(length=64),
            nullable=False,
            comment="sha256 hex digest of content",
        ),
        sa.Column("captured_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(
            ["tracked_entity_id"],
            ["tracked_entities.id"],
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_snapshots_tracked_entity_id_captured_at",
        "snapshots",
        ["tracked_entity_id", "captured_at"],
    )

    # ---------------------------------------------------------------------------
    # change_records
    # One row per persisted snapshot; previous snapshot is SET NULL on delete.
    # ---------------------------------------------------------------------------
    op.create_table(
        "change_records",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("tracked_entity_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column(
            "snapshot_id",
            postgresql.UUID(as_uuid=True),
            nullable=False,
            comment="Snapshot this transition produced",
        ),
        sa.Column("previous_snapshot_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column(
            "segments",
            postgresql.JSONB(astext_type=sa.Text()),
            nullable=False,
            comment="Ordered added/removed word segments",
        ),
        sa.Column(
            "classification",
            sa.String(length=16),
            nullable=False,
            comment="initial, update, none",
        ),
        sa.Column("reported", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("detected_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(
            ["tracked_entity_id"],
            ["tracked_entities.id"],
            ondelete="CASCADE",
        ),
        sa.ForeignKeyConstraint(["snapshot_id"], ["snapshots.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(
            ["previous_snapshot_id"],
            ["snapshots.id"],
            ondelete="SET NULL",
        ),
        sa.UniqueConstraint("snapshot_id"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_change_records_tracked_entity_id_detected_at",
        "change_records",
        ["tracked_entity_id", "detected_at"],
    )
    op.create_index("ix_change_records_reported", "change_records", ["reported"])

    # ---------------------------------------------------------------------------
    # review_records
    # Dedupe key: (tracked_entity_id, external_review_id)
    # ---------------------------------------------------------------------------
    op.create_table(
        "review_records",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("tracked_entity_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("external_review_id", sa.String(length=255), nullable=False),
        sa.Column("rating", sa.Float(), nullable=False),
        sa.Column("title", sa.Text(), nullable=True),
        sa.Column("body", sa.Text(), nullable=False),
        sa.Column("author", sa.String(length=255), nullable=False),
        sa.Column("published_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("source_url", sa.Text(), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
        ),
        sa.ForeignKeyConstraint(
            ["tracked_entity_id"],
            ["tracked_entities.id"],
            ondelete="CASCADE",
        ),
        sa.UniqueConstraint(
            "tracked_entity_id",
            "external_review_id",
            name="uq_review_records_entity_external_id",
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_review_records_tracked_entity_id_published_at",
        "review_records",
        ["tracked_entity_id", "published_at"],
    )

    # ---------------------------------------------------------------------------
    # research_runs
    # Append-only audit trail.
    # ---------------------------------------------------------------------------
    op.create_table(
        "research_runs",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("tracked_entity_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column(
            "module_id",
            sa.String(length=64),
            nullable=False,
            comment="website-changes, trustpilot, ...",
        ),
        sa.Column("run_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column(
            "result",
            postgresql.JSONB(astext_type=sa.Text()),
            nullable=True,
            comment="Structured result payload of the operation",
        ),
        sa.Column("changes_made", sa.Boolean(), nullable=True),
        sa.Column(
            "change_details",
            sa.Text(),
            nullable=True,
            comment="Human-readable outcome summary",
        ),
        sa.ForeignKeyConstraint(
            ["tracked_entity_id"],
            ["tracked_entities.id"],
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_research_runs_tracked_entity_id_run_date",
        "research_runs",
        ["tracked_entity_id", "run_date"],
    )
    op.create_index("ix_research_runs_module_id", "research_runs", ["module_id"])

    # ---------------------------------------------------------------------------
    # module_settings
    # Rows are materialized on first read; no seed data required.
    # ---------------------------------------------------------------------------
    op.create_table(
        "module_settings",
        sa.Column("module_id", sa.String(length=64), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column(
            "value",
            postgresql.JSONB(astext_type=sa.Text()),
            nullable=False,
            comment="model, prompt_template, schedule, enabled",
        ),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
        ),
        sa.PrimaryKeyConstraint("module_id"),
    )


def downgrade() -> None:
    op.drop_table("module_settings")
    op.drop_index("ix_research_runs_module_id", table_name="research_runs")
    op.drop_index("ix_research_runs_tracked_entity_id_run_date", table_name="research_runs")
    op.drop_table("research_runs")
    op.drop_index("ix_review_records_tracked_entity_id_published_at", table_name="review_records")
    op.drop_table("review_records")
    op.drop_index("ix_change_records_reported", table_name="change_records")
    op.drop_index("ix_change_records_tracked_entity_id_detected_at", table_name="change_records")
    op.drop_table("change_records")
    op.drop_index("ix_snapshots_tracked_entity_id_captured_at", table_name="snapshots")
    op.drop_table("snapshots")
    op.drop_index("ix_tracked_entities_selected_active", table_name="tracked_entities")
    op.drop_index("ix_tracked_entities_owner_id", table_name="tracked_entities")
    op.drop_table("tracked_entities")
