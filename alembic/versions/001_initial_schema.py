"""Initial schema — actors, hierarchy, reference codes, rates, jobs, audit.

Revision ID: 001_initial
Revises: None
Create Date: 2026-10-19

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import UUID

revision: str = "001_initial"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "actors",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("role", sa.String(20), nullable=False),
        sa.Column("display_name", sa.String(200), nullable=False, server_default=""),
        sa.Column("reference_code_used", sa.String(32), nullable=True),
        sa.Column("recruited_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint(
            "role IN ('root', 'issuer', 'subissuer', 'fulfiller', 'client')",
            name="ck_actors_role",
        ),
    )
    op.create_index("ix_actors_reference_code_used", "actors", ["reference_code_used"])

    op.create_table(
        "hierarchy_edges",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("actor_id", UUID(as_uuid=True), sa.ForeignKey("actors.id"), nullable=False, unique=True),
        sa.Column("parent_id", UUID(as_uuid=True), sa.ForeignKey("actors.id"), nullable=True),
        sa.Column("root_id", UUID(as_uuid=True), sa.ForeignKey("actors.id"), nullable=False),
        sa.Column("level", sa.Integer, nullable=False),
        sa.Column("version", sa.Integer, nullable=False, server_default="1"),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint("level BETWEEN 1 AND 4", name="ck_hierarchy_edges_level"),
        sa.CheckConstraint("parent_id IS NULL OR parent_id <> actor_id", name="ck_hierarchy_edges_not_self"),
    )
    op.create_index("ix_hierarchy_edges_parent_id", "hierarchy_edges", ["parent_id"])
    op.create_index("ix_hierarchy_edges_root_id", "hierarchy_edges", ["root_id"])

    op.create_table(
        "hierarchy_changes",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("actor_id", UUID(as_uuid=True), sa.ForeignKey("actors.id"), nullable=False),
        sa.Column("old_parent_id", UUID(as_uuid=True), nullable=True),
        sa.Column("new_parent_id", UUID(as_uuid=True), nullable=True),
        sa.Column("old_level", sa.Integer, nullable=True),
        sa.Column("new_level", sa.Integer, nullable=False),
        sa.Column("change_type", sa.String(20), nullable=False),
        sa.Column("changed_by", UUID(as_uuid=True), nullable=True),
        sa.Column("change_reason", sa.Text, nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_hierarchy_changes_actor_id", "hierarchy_changes", ["actor_id"])

    op.create_table(
        "reference_codes",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("code", sa.String(32), nullable=False),
        sa.Column("owner_id", UUID(as_uuid=True), sa.ForeignKey("actors.id"), nullable=False),
        sa.Column("purpose", sa.String(32), nullable=False),
        sa.Column("active", sa.Boolean, nullable=False, server_default="true"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("deactivated_at", sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint("code = upper(code)", name="ck_reference_codes_upper"),
    )
    op.create_index("ix_reference_codes_code", "reference_codes", ["code"], unique=True)
    op.create_index("ix_reference_codes_owner_id", "reference_codes", ["owner_id"])

    op.create_table(
        "rate_configs",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("issuer_id", UUID(as_uuid=True), sa.ForeignKey("actors.id"), nullable=False, unique=True),
        sa.Column("min_words", sa.Integer, nullable=False),
        sa.Column("max_words", sa.Integer, nullable=False),
        sa.Column("rate_per_500_words", sa.Numeric(10, 2), nullable=False),
        sa.Column("issuer_fee_percent", sa.Numeric(5, 2), nullable=False),
        sa.Column("effective_from", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_by", UUID(as_uuid=True), nullable=True),
        sa.CheckConstraint(
            "min_words >= 500 AND min_words < max_words AND max_words <= 20000",
            name="ck_rate_configs_range",
        ),
        sa.CheckConstraint("rate_per_500_words > 0", name="ck_rate_configs_rate"),
        sa.CheckConstraint(
            "issuer_fee_percent >= 0 AND issuer_fee_percent <= 100",
            name="ck_rate_configs_percent",
        ),
    )

    op.create_table(
        "rate_config_history",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("rate_config_id", UUID(as_uuid=True), sa.ForeignKey("rate_configs.id"), nullable=False),
        sa.Column("issuer_id", UUID(as_uuid=True), sa.ForeignKey("actors.id"), nullable=False),
        sa.Column("min_words", sa.Integer, nullable=False),
        sa.Column("max_words", sa.Integer, nullable=False),
        sa.Column("rate_per_500_words", sa.Numeric(10, 2), nullable=False),
        sa.Column("issuer_fee_percent", sa.Numeric(5, 2), nullable=False),
        sa.Column("effective_from", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_by", UUID(as_uuid=True), nullable=True),
        sa.Column("change_reason", sa.Text, nullable=True),
        sa.Column("changed_by", UUID(as_uuid=True), nullable=True),
        sa.Column("superseded_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_rate_config_history_issuer_id", "rate_config_history", ["issuer_id"])

    op.create_table(
        "jobs",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("client_id", UUID(as_uuid=True), sa.ForeignKey("actors.id"), nullable=True),
        sa.Column("fulfiller_id", UUID(as_uuid=True), sa.ForeignKey("actors.id"), nullable=True),
        sa.Column("issuer_id", UUID(as_uuid=True), sa.ForeignKey("actors.id"), nullable=True),
        sa.Column("sub_fulfiller_id", UUID(as_uuid=True), sa.ForeignKey("actors.id"), nullable=True),
        sa.Column("sub_issuer_id", UUID(as_uuid=True), sa.ForeignKey("actors.id"), nullable=True),
        sa.Column("word_count", sa.Integer, nullable=False),
        sa.Column("adjusted_word_count", sa.Integer, nullable=True),
        sa.Column("deadline", sa.DateTime(timezone=True), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="pending"),
        sa.Column("base_units", sa.Integer, nullable=False),
        sa.Column("base_cost", sa.Numeric(10, 2), nullable=False),
        sa.Column("urgency_surcharge", sa.Numeric(10, 2), nullable=False),
        sa.Column("total", sa.Numeric(10, 2), nullable=False),
        sa.Column("urgency_level", sa.String(20), nullable=False),
        sa.Column("priced_by_id", UUID(as_uuid=True), nullable=True),
        sa.Column("rate_per_500_words", sa.Numeric(10, 2), nullable=True),
        sa.Column("issuer_fee_percent", sa.Numeric(5, 2), nullable=False, server_default="0"),
        sa.Column("quoted_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_jobs_client_id", "jobs", ["client_id"])
    op.create_index("ix_jobs_fulfiller_id", "jobs", ["fulfiller_id"])
    op.create_index("ix_jobs_issuer_id", "jobs", ["issuer_id"])
    op.create_index("ix_jobs_completed_at", "jobs", ["completed_at"])

    op.create_table(
        "financial_access_audit",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("viewer_id", UUID(as_uuid=True), nullable=False),
        sa.Column("viewer_role", sa.String(20), nullable=False),
        sa.Column("permission", sa.String(50), nullable=False),
        sa.Column("resource_id", sa.String(64), nullable=True),
        sa.Column("resource_type", sa.String(30), nullable=True),
        sa.Column("granted", sa.Boolean, nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_financial_access_audit_viewer_id", "financial_access_audit", ["viewer_id"])


def downgrade() -> None:
    op.drop_table("financial_access_audit")
    op.drop_table("jobs")
    op.drop_table("rate_config_history")
    op.drop_table("rate_configs")
    op.drop_table("reference_codes")
    op.drop_table("hierarchy_changes")
    op.drop_table("hierarchy_edges")
    op.drop_table("actors")
