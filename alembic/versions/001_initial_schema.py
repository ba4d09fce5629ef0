"""Initial schema — organizations, case packages, rules and flow records.

Revision ID: 001
Revises: None
Create Date: 2026-10-19
"""

from typing import Sequence, Union

import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import ARRAY

from alembic import op

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Organizations
    op.create_table(
        "organizations",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(200), unique=True, nullable=False),
        sa.Column("type", sa.String(30), nullable=False),
        sa.Column("region", sa.String(200), nullable=True),
        sa.Column("service_regions", ARRAY(sa.String(200)), nullable=False, server_default="{}"),
        sa.Column("monthly_capacity", sa.Integer, nullable=True),
        sa.Column("current_load_percentage", sa.Float, nullable=False, server_default="0"),
        sa.Column("membership_active", sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column("contact_person", sa.String(100), nullable=True),
        sa.Column("contact_phone", sa.String(50), nullable=True),
        sa.Column("email", sa.String(200), nullable=True),
        sa.Column("cases_handled", sa.Integer, nullable=True),
        sa.Column("years_active", sa.Float, nullable=True),
        sa.Column("recovery_rate", sa.Float, nullable=True),
        sa.Column("avg_processing_days", sa.Float, nullable=True),
        sa.Column(
            "created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()
        ),
    )
    op.create_index("idx_organizations_active", "organizations", ["membership_active"])

    # Case packages
    op.create_table(
        "case_packages",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("code", sa.String(50), unique=True, nullable=False),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("case_count", sa.Integer, nullable=False),
        sa.Column("total_amount", sa.Numeric(18, 2), nullable=False),
        sa.Column(
            "source_org_id", sa.Integer, sa.ForeignKey("organizations.id"), nullable=True
        ),
        sa.Column(
            "disposal_org_id", sa.Integer, sa.ForeignKey("organizations.id"), nullable=True
        ),
        sa.Column("status", sa.String(20), nullable=False, server_default="DRAFT"),
        sa.Column("region", sa.String(200), nullable=True),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("case_type", sa.String(50), nullable=True),
        sa.Column("expected_disposal_days", sa.Integer, nullable=True),
        sa.Column("version", sa.Integer, nullable=False, server_default="0"),
        sa.Column("published_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("assigned_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("accepted_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("closed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()
        ),
    )
    op.create_index("idx_packages_status", "case_packages", ["status"])
    op.create_index("idx_packages_disposal_org", "case_packages", ["disposal_org_id"])

    # Assignment rules
    op.create_table(
        "assignment_rules",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("rule_type", sa.String(20), nullable=False, server_default="AUTO"),
        sa.Column("priority", sa.Integer, nullable=False, server_default="100"),
        sa.Column("enabled", sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column("min_matching_score", sa.Float, nullable=False, server_default="0"),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("target_amount_range", sa.String(100), nullable=True),
        sa.Column("target_regions", ARRAY(sa.String(200)), nullable=False, server_default="{}"),
        sa.Column("target_case_types", ARRAY(sa.String(50)), nullable=False, server_default="{}"),
        sa.Column("include_organizations", ARRAY(sa.Integer), nullable=False, server_default="{}"),
        sa.Column("exclude_organizations", ARRAY(sa.Integer), nullable=False, server_default="{}"),
        sa.Column("strategy_name", sa.String(30), nullable=True),
        sa.Column("max_assignments", sa.Integer, nullable=True),
        sa.Column("usage_count", sa.Integer, nullable=False, server_default="0"),
        sa.Column("success_count", sa.Integer, nullable=False, server_default="0"),
        sa.Column("last_used_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_by", sa.Integer, nullable=True),
        sa.Column("version", sa.Integer, nullable=False, server_default="0"),
        sa.CheckConstraint("success_count <= usage_count", name="ck_rules_success_le_usage"),
        sa.CheckConstraint(
            "min_matching_score >= 0 AND min_matching_score <= 1", name="ck_rules_score_range"
        ),
    )
    op.create_index("idx_rules_enabled_priority", "assignment_rules", ["enabled", "priority"])

    # Flow records (append-only)
    op.create_table(
        "flow_records",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("package_id", sa.Integer, nullable=False),
        sa.Column("case_id", sa.Integer, nullable=True),
        sa.Column("event_type", sa.String(40), nullable=False),
        sa.Column("event_time", sa.DateTime(timezone=True), nullable=False),
        sa.Column("operator_id", sa.Integer, nullable=True),
        sa.Column("operator_name", sa.String(100), nullable=False),
        sa.Column("operator_org_id", sa.Integer, nullable=True),
        sa.Column("disposal_org_id", sa.Integer, nullable=True),
        sa.Column("description", sa.Text, nullable=False),
        sa.Column("before_status", sa.String(20), nullable=True),
        sa.Column("after_status", sa.String(20), nullable=True),
        sa.Column("amount", sa.Numeric(18, 2), nullable=True),
        sa.Column("is_system_event", sa.Boolean, nullable=False, server_default=sa.false()),
    )
    op.create_index("idx_flows_package", "flow_records", ["package_id"])
    op.create_index("idx_flows_case", "flow_records", ["case_id"])
    op.create_index("idx_flows_operator", "flow_records", ["operator_id"])
    op.create_index("idx_flows_operator_org", "flow_records", ["operator_org_id"])
    op.create_index("idx_flows_disposal_org", "flow_records", ["disposal_org_id"])
    op.create_index("idx_flows_event_type_time", "flow_records", ["event_type", "event_time"])


def downgrade() -> None:
    op.drop_table("flow_records")
    op.drop_table("assignment_rules")
    op.drop_table("case_packages")
    op.drop_table("organizations")
