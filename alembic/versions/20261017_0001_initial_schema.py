"""initial schema

Revision ID: 20261017_0001
Revises:
Create Date: 2026-10-17
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = "20261017_0001"
down_revision = None
branch_labels = None
depends_on = None


project_status = postgresql.ENUM("active", "archived", name="project_status", create_type=False)
project_health = postgresql.ENUM(
    "healthy", "needs_attention", "at_risk", name="project_health", create_type=False
)
allocation_status = postgresql.ENUM("planned", "completed", name="allocation_status", create_type=False)
absence_type = postgresql.ENUM("vacation", "sick", "personal", "other", name="absence_type", create_type=False)
ads_platform = postgresql.ENUM("google", "meta", name="ads_platform", create_type=False)
sync_job_status = postgresql.ENUM(
    "pending", "running", "completed", "error", name="sync_job_status", create_type=False
)

HOURS = sa.Numeric(8, 2)


def _campaign_columns(with_budget: bool) -> list[sa.Column]:
    columns = [
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True, nullable=False),
        sa.Column("client_id", sa.String(length=64), nullable=False),
        sa.Column("client_name", sa.String(length=255), nullable=True),
        sa.Column("campaign_id", sa.String(length=64), nullable=False),
        sa.Column("campaign_name", sa.String(length=500), nullable=False),
        sa.Column("status", sa.String(length=32), nullable=False),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("cost", sa.Float(), nullable=False, server_default=sa.text("0")),
    ]
    if with_budget:
        columns.append(sa.Column("daily_budget", sa.Float(), nullable=False, server_default=sa.text("0")))
    columns.extend(
        [
            sa.Column("conversions_value", sa.Float(), nullable=False, server_default=sa.text("0")),
            sa.Column("conversions", sa.Float(), nullable=False, server_default=sa.text("0")),
            sa.Column("clicks", sa.Integer(), nullable=False, server_default=sa.text("0")),
            sa.Column("impressions", sa.Integer(), nullable=False, server_default=sa.text("0")),
        ]
    )
    return columns


def upgrade() -> None:
    for enum_type in (project_status, project_health, allocation_status, absence_type, ads_platform, sync_job_status):
        enum_type.create(op.get_bind(), checkfirst=True)

    op.create_table(
        "employees",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("first_name", sa.String(length=100), nullable=True),
        sa.Column("last_name", sa.String(length=100), nullable=True),
        sa.Column("email", sa.String(length=320), nullable=True),
        sa.Column("role", sa.String(length=100), nullable=False),
        sa.Column("department", sa.String(length=100), nullable=True),
        sa.Column("avatar_url", sa.String(length=1000), nullable=True),
        sa.Column("default_weekly_capacity", HOURS, nullable=False, server_default=sa.text("40")),
        sa.Column("hourly_rate", HOURS, nullable=True),
        sa.Column("schedule_monday", HOURS, nullable=False, server_default=sa.text("8")),
        sa.Column("schedule_tuesday", HOURS, nullable=False, server_default=sa.text("8")),
        sa.Column("schedule_wednesday", HOURS, nullable=False, server_default=sa.text("8")),
        sa.Column("schedule_thursday", HOURS, nullable=False, server_default=sa.text("8")),
        sa.Column("schedule_friday", HOURS, nullable=False, server_default=sa.text("8")),
        sa.Column("schedule_saturday", HOURS, nullable=False, server_default=sa.text("0")),
        sa.Column("schedule_sunday", HOURS, nullable=False, server_default=sa.text("0")),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint(
            "default_weekly_capacity >= 0 AND default_weekly_capacity <= 168",
            name="ck_employees_weekly_capacity_range",
        ),
        sa.CheckConstraint("hourly_rate IS NULL OR hourly_rate >= 0", name="ck_employees_hourly_rate_non_negative"),
    )
    op.create_index("ix_employees_is_active", "employees", ["is_active"])

    op.create_table(
        "users",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("subject", sa.String(length=128), nullable=False, unique=True),
        sa.Column("email", sa.String(length=320), nullable=False, unique=True),
        sa.Column("display_name", sa.String(length=255), nullable=False),
        sa.Column("is_admin", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("permissions", postgresql.JSONB(), nullable=False, server_default=sa.text("'{}'::jsonb")),
        sa.Column(
            "employee_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("employees.id"),
            nullable=True,
            unique=True,
        ),
        sa.Column("last_login_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    )

    op.create_table(
        "clients",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("name", sa.String(length=200), nullable=False, unique=True),
        sa.Column("color", sa.String(length=32), nullable=False, server_default=sa.text("'#6366f1'")),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )

    op.create_table(
        "projects",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("client_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("clients.id"), nullable=False),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("status", project_status, nullable=False),
        sa.Column("budget_hours", HOURS, nullable=False, server_default=sa.text("0")),
        sa.Column("minimum_hours", HOURS, nullable=False, server_default=sa.text("0")),
        sa.Column("monthly_fee", sa.Numeric(12, 2), nullable=True),
        sa.Column("health_status", project_health, nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint("budget_hours >= 0", name="ck_projects_budget_hours_non_negative"),
        sa.CheckConstraint("minimum_hours >= 0", name="ck_projects_minimum_hours_non_negative"),
        sa.CheckConstraint("monthly_fee IS NULL OR monthly_fee >= 0", name="ck_projects_monthly_fee_non_negative"),
    )
    op.create_index("ix_projects_client_id", "projects", ["client_id"])
    op.create_unique_constraint("uq_projects_client_name", "projects", ["client_id", "name"])

    op.create_table(
        "allocations",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("employee_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("employees.id"), nullable=False),
        sa.Column("project_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("projects.id"), nullable=False),
        sa.Column("week_start_date", sa.Date(), nullable=False),
        sa.Column("hours_assigned", HOURS, nullable=False, server_default=sa.text("0")),
        sa.Column("hours_actual", HOURS, nullable=True),
        sa.Column("status", allocation_status, nullable=False),
        sa.Column("description", sa.String(length=2000), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint("hours_assigned >= 0", name="ck_allocations_hours_assigned_non_negative"),
        sa.CheckConstraint("hours_actual IS NULL OR hours_actual >= 0", name="ck_allocations_hours_actual_non_negative"),
    )
    op.create_index("ix_allocations_employee_week", "allocations", ["employee_id", "week_start_date"])
    op.create_index("ix_allocations_project_week", "allocations", ["project_id", "week_start_date"])

    op.create_table(
        "absences",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("employee_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("employees.id"), nullable=False),
        sa.Column("start_date", sa.Date(), nullable=False),
        sa.Column("end_date", sa.Date(), nullable=False),
        sa.Column("type", absence_type, nullable=False),
        sa.Column("hours", HOURS, nullable=True),
        sa.Column("description", sa.String(length=1000), nullable=True),
        sa.CheckConstraint("end_date >= start_date", name="ck_absences_date_range"),
        sa.CheckConstraint("hours IS NULL OR hours >= 0", name="ck_absences_hours_non_negative"),
    )
    op.create_index("ix_absences_employee_range", "absences", ["employee_id", "start_date", "end_date"])

    op.create_table(
        "team_events",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("event_date", sa.Date(), nullable=False),
        sa.Column("hours_reduction", HOURS, nullable=False, server_default=sa.text("8")),
        sa.Column("affects_all", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column(
            "affected_employee_ids", postgresql.JSONB(), nullable=False, server_default=sa.text("'[]'::jsonb")
        ),
        sa.Column("description", sa.String(length=1000), nullable=True),
        sa.CheckConstraint("hours_reduction >= 0", name="ck_team_events_hours_reduction_non_negative"),
    )
    op.create_index("ix_team_events_event_date", "team_events", ["event_date"])

    op.create_table(
        "deadlines",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("project_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("projects.id"), nullable=False),
        sa.Column("month", sa.String(length=7), nullable=False),
        sa.Column("notes", sa.String(length=1000), nullable=True),
        sa.Column("employee_hours", postgresql.JSONB(), nullable=False, server_default=sa.text("'{}'::jsonb")),
        sa.Column("is_hidden", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_deadlines_month", "deadlines", ["month"])
    op.create_unique_constraint("uq_deadlines_project_month", "deadlines", ["project_id", "month"])

    op.create_table(
        "global_assignments",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("month", sa.String(length=7), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("hours", HOURS, nullable=False, server_default=sa.text("0")),
        sa.Column("affects_all", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column(
            "affected_employee_ids", postgresql.JSONB(), nullable=False, server_default=sa.text("'[]'::jsonb")
        ),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint("hours >= 0", name="ck_global_assignments_hours_non_negative"),
    )
    op.create_index("ix_global_assignments_month", "global_assignments", ["month"])

    op.create_table(
        "ads_sync_logs",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True, nullable=False),
        sa.Column("platform", ads_platform, nullable=False),
        sa.Column("status", sync_job_status, nullable=False),
        sa.Column("logs", postgresql.JSONB(), nullable=False, server_default=sa.text("'[]'::jsonb")),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_ads_sync_logs_platform_status", "ads_sync_logs", ["platform", "status"])

    op.create_table("google_ads_campaigns", *_campaign_columns(with_budget=True))
    op.create_unique_constraint(
        "uq_google_ads_campaigns_campaign_date", "google_ads_campaigns", ["campaign_id", "date"]
    )
    op.create_index("ix_google_ads_campaigns_client_date", "google_ads_campaigns", ["client_id", "date"])

    op.create_table("meta_ads_campaigns", *_campaign_columns(with_budget=False))
    op.create_unique_constraint("uq_meta_ads_campaigns_campaign_date", "meta_ads_campaigns", ["campaign_id", "date"])
    op.create_index("ix_meta_ads_campaigns_client_date", "meta_ads_campaigns", ["client_id", "date"])


def downgrade() -> None:
    op.drop_index("ix_meta_ads_campaigns_client_date", table_name="meta_ads_campaigns")
    op.drop_constraint("uq_meta_ads_campaigns_campaign_date", "meta_ads_campaigns", type_="unique")
    op.drop_table("meta_ads_campaigns")

    op.drop_index("ix_google_ads_campaigns_client_date", table_name="google_ads_campaigns")
    op.drop_constraint("uq_google_ads_campaigns_campaign_date", "google_ads_campaigns", type_="unique")
    op.drop_table("google_ads_campaigns")

    op.drop_index("ix_ads_sync_logs_platform_status", table_name="ads_sync_logs")
    op.drop_table("ads_sync_logs")

    op.drop_index("ix_global_assignments_month", table_name="global_assignments")
    op.drop_table("global_assignments")

    op.drop_constraint("uq_deadlines_project_month", "deadlines", type_="unique")
    op.drop_index("ix_deadlines_month", table_name="deadlines")
    op.drop_table("deadlines")

    op.drop_index("ix_team_events_event_date", table_name="team_events")
    op.drop_table("team_events")

    op.drop_index("ix_absences_employee_range", table_name="absences")
    op.drop_table("absences")

    op.drop_index("ix_allocations_project_week", table_name="allocations")
    op.drop_index("ix_allocations_employee_week", table_name="allocations")
    op.drop_table("allocations")

    op.drop_constraint("uq_projects_client_name", "projects", type_="unique")
    op.drop_index("ix_projects_client_id", table_name="projects")
    op.drop_table("projects")

    op.drop_table("clients")
    op.drop_table("users")

    op.drop_index("ix_employees_is_active", table_name="employees")
    op.drop_table("employees")

    for enum_type in (sync_job_status, ads_platform, absence_type, allocation_status, project_health, project_status):
        enum_type.drop(op.get_bind(), checkfirst=True)
