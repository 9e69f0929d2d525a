"""audit trail schema

Revision ID: 0001_audit_trail
Revises:
Create Date: 2026-10-18
"""

from alembic import op
import sqlalchemy as sa

revision = "0001_audit_trail"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "action_types",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("code", sa.String(length=32), nullable=False),
        sa.Column("description", sa.String(length=255), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("1")),
    )
    op.create_index("ix_action_types_code", "action_types", ["code"], unique=True)

    op.create_table(
        "audit_records",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("entity_type", sa.String(length=100), nullable=False),
        sa.Column("entity_id", sa.String(length=100), nullable=False),
        sa.Column("action_type_id", sa.Integer(), sa.ForeignKey("action_types.id"), nullable=False),
        sa.Column("action_by", sa.String(length=100), nullable=True),
        sa.Column("action_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("previous_data", sa.JSON(), nullable=True),
        sa.Column("new_data", sa.JSON(), nullable=True),
        sa.Column("version", sa.Integer(), nullable=False),
        sa.Column("ip_address", sa.String(length=64), nullable=True),
        sa.Column("source_service", sa.String(length=64), nullable=False, server_default="system"),
        sa.Column("module_name", sa.String(length=100), nullable=False),
        sa.Column("processing_time_ms", sa.Float(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint("entity_type", "entity_id", "version", name="uq_audit_records_entity_version"),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_audit_records_entity", "audit_records", ["entity_type", "entity_id"])
    op.create_index("ix_audit_records_action_by", "audit_records", ["action_by"])
    op.create_index("ix_audit_records_action_at", "audit_records", ["action_at"])

    op.create_table(
        "service_credentials",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("key_hash", sa.String(length=64), nullable=False),
        sa.Column("service_name", sa.String(length=64), nullable=False),
        sa.Column("description", sa.String(length=255), nullable=True),
        sa.Column("can_write", sa.Boolean(), nullable=False, server_default=sa.text("1")),
        sa.Column("can_read", sa.Boolean(), nullable=False, server_default=sa.text("0")),
        sa.Column("allowed_modules", sa.JSON(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("1")),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_by", sa.String(length=128), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("last_used_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("revoked_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("revoked_by", sa.String(length=128), nullable=True),
    )
    op.create_index("ix_service_credentials_key_hash", "service_credentials", ["key_hash"], unique=True)

    op.create_table(
        "audit_summaries",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("source_service", sa.String(length=64), nullable=False),
        sa.Column("module_name", sa.String(length=100), nullable=False),
        sa.Column("action", sa.String(length=32), nullable=False),
        sa.Column("total_count", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("unique_users", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("avg_processing_time", sa.Float(), nullable=True),
        sa.Column("last_aggregated_at", sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint("date", "source_service", "module_name", "action", name="uq_audit_summaries_bucket"),
    )
    op.create_index("ix_audit_summaries_date", "audit_summaries", ["date"])

    op.create_table(
        "event_dedup",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("event_id", sa.String(length=128), nullable=False),
        sa.Column("source_service", sa.String(length=64), nullable=False),
        sa.Column(
            "audit_record_id",
            sa.Integer(),
            sa.ForeignKey("audit_records.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_event_dedup_event_id", "event_dedup", ["event_id"], unique=True)
    op.create_index("ix_event_dedup_expires_at", "event_dedup", ["expires_at"])


def downgrade() -> None:
    op.drop_index("ix_event_dedup_expires_at", table_name="event_dedup")
    op.drop_index("ix_event_dedup_event_id", table_name="event_dedup")
    op.drop_table("event_dedup")

    op.drop_index("ix_audit_summaries_date", table_name="audit_summaries")
    op.drop_table("audit_summaries")

    op.drop_index("ix_service_credentials_key_hash", table_name="service_credentials")
    op.drop_table("service_credentials")

    op.drop_index("ix_audit_records_action_at", table_name="audit_records")
    op.drop_index("ix_audit_records_action_by", table_name="audit_records")
    op.drop_index("ix_audit_records_entity", table_name="audit_records")
    op.drop_table("audit_records")

    op.drop_index("ix_action_types_code", table_name="action_types")
    op.drop_table("action_types")
