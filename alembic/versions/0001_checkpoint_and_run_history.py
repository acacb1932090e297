"""checkpoint and run history tables

Revision ID: 0001
Revises:
Create Date: 2024-06-01 12:00:00
"""
from alembic import op
import sqlalchemy as sa


revision = "0001"
down_revision = None
branch_labels = None
depends_on = None

sync_mode = sa.Enum("INCREMENTAL", "FULL", name="syncmode")
sync_status = sa.Enum("RUNNING", "SUCCESS", "PARTIAL", "NO_CHANGES", "FAILED", name="syncstatus")


def upgrade():
    op.create_table(
        "sync_checkpoints",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("key", sa.String(100), nullable=False),
        sa.Column("value", sa.String(255), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("idx_sync_checkpoint_key", "sync_checkpoints", ["key"], unique=True)

    op.create_table(
        "sync_runs",
        sa.Column("id", sa.BigInteger().with_variant(sa.Integer(), "sqlite"), primary_key=True, autoincrement=True),
        sa.Column("run_id", sa.String(36), nullable=False),
        sa.Column("connection_id", sa.String(100), nullable=False),
        sa.Column("mode", sync_mode, nullable=False),
        sa.Column("catalog_filter", sa.String(255), nullable=True),
        sa.Column("status", sync_status, nullable=False),
        sa.Column("started_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("duration_seconds", sa.Float(), nullable=True),
        sa.Column("records_found", sa.Integer(), nullable=True),
        sa.Column("records_excluded", sa.Integer(), nullable=True),
        sa.Column("records_skipped", sa.Integer(), nullable=True),
        sa.Column("records_pushed", sa.Integer(), nullable=True),
        sa.Column("records_failed", sa.Integer(), nullable=True),
        sa.Column("catalogs_failed", sa.Integer(), nullable=True),
        sa.Column("checkpoint_before", sa.String(64), nullable=True),
        sa.Column("checkpoint_after", sa.String(64), nullable=True),
        sa.Column("checkpoint_advanced", sa.Boolean(), nullable=False),
        sa.Column("error_message", sa.Text(), nullable=True),
    )
    op.create_index("ix_sync_runs_run_id", "sync_runs", ["run_id"], unique=True)
    op.create_index("ix_sync_runs_connection_id", "sync_runs", ["connection_id"])
    op.create_index("ix_sync_runs_status", "sync_runs", ["status"])
    op.create_index("ix_sync_runs_started_at", "sync_runs", ["started_at"])
    op.create_index("idx_sync_run_connection_started", "sync_runs", ["connection_id", "started_at"])


def downgrade():
    op.drop_table("sync_runs")
    op.drop_table("sync_checkpoints")
    sync_status.drop(op.get_bind(), checkfirst=True)
    sync_mode.drop(op.get_bind(), checkfirst=True)
