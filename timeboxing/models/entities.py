"""ORM entities for the Timeboxing schema."""

from __future__ import annotations

import datetime as dt
import enum
import uuid
from datetime import date, datetime

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    UniqueConstraint,
)
from sqlalchemy import Enum as SQLEnum
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column

from timeboxing.db.base import Base

JSONType = JSON().with_variant(JSONB(), "postgresql")
Hours = Numeric(8, 2, asdecimal=False)


def _enum_column(enum_cls: type[enum.Enum], name: str) -> SQLEnum:
    return SQLEnum(
        enum_cls,
        name=name,
        values_callable=lambda members: [member.value for member in members],
    )


class ProjectStatus(str, enum.Enum):
    ACTIVE = "active"
    ARCHIVED = "archived"


class ProjectHealth(str, enum.Enum):
    HEALTHY = "healthy"
    NEEDS_ATTENTION = "needs_attention"
    AT_RISK = "at_risk"


class AllocationStatus(str, enum.Enum):
    PLANNED = "planned"
    COMPLETED = "completed"


class AbsenceType(str, enum.Enum):
    VACATION = "vacation"
    SICK = "sick"
    PERSONAL = "personal"
    OTHER = "other"


class AdsPlatform(str, enum.Enum):
    GOOGLE = "google"
    META = "meta"


class SyncJobStatus(str, enum.Enum):
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    ERROR = "error"


class Employee(Base):
    __tablename__ = "employees"
    __table_args__ = (
        CheckConstraint(
            "default_weekly_capacity >= 0 AND default_weekly_capacity <= 168",
            name="ck_employees_weekly_capacity_range",
        ),
        CheckConstraint("hourly_rate IS NULL OR hourly_rate >= 0", name="ck_employees_hourly_rate_non_negative"),
        Index("ix_employees_is_active", "is_active"),
    )

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    first_name: Mapped[str | None] = mapped_column(String(100), nullable=True)
    last_name: Mapped[str | None] = mapped_column(String(100), nullable=True)
    email: Mapped[str | None] = mapped_column(String(320), nullable=True)
    role: Mapped[str] = mapped_column(String(100), nullable=False)
    department: Mapped[str | None] = mapped_column(String(100), nullable=True)
    avatar_url: Mapped[str | None] = mapped_column(String(1000), nullable=True)
    default_weekly_capacity: Mapped[float] = mapped_column(Hours, nullable=False, default=40.0)
    hourly_rate: Mapped[float | None] = mapped_column(Hours, nullable=True)
    schedule_monday: Mapped[float] = mapped_column(Hours, nullable=False, default=8.0)
    schedule_tuesday: Mapped[float] = mapped_column(Hours, nullable=False, default=8.0)
    schedule_wednesday: Mapped[float] = mapped_column(Hours, nullable=False, default=8.0)
    schedule_thursday: Mapped[float] = mapped_column(Hours, nullable=False, default=8.0)
    schedule_friday: Mapped[float] = mapped_column(Hours, nullable=False, default=8.0)
    schedule_saturday: Mapped[float] = mapped_column(Hours, nullable=False, default=0.0)
    schedule_sunday: Mapped[float] = mapped_column(Hours, nullable=False, default=0.0)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=datetime.utcnow)


class User(Base):
    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    subject: Mapped[str] = mapped_column(String(128), unique=True, nullable=False)
    email: Mapped[str] = mapped_column(String(320), unique=True, nullable=False)
    display_name: Mapped[str] = mapped_column(String(255), nullable=False)
    is_admin: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    permissions: Mapped[dict] = mapped_column(JSONType, nullable=False, default=dict)
    employee_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("employees.id"), unique=True, nullable=True
    )
    last_login_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=datetime.utcnow)


class Client(Base):
    __tablename__ = "clients"

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String(200), unique=True, nullable=False)
    color: Mapped[str] = mapped_column(String(32), nullable=False, default="#6366f1")
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=datetime.utcnow)


class Project(Base):
    __tablename__ = "projects"
    __table_args__ = (
        CheckConstraint("budget_hours >= 0", name="ck_projects_budget_hours_non_negative"),
        CheckConstraint("minimum_hours >= 0", name="ck_projects_minimum_hours_non_negative"),
        CheckConstraint("monthly_fee IS NULL OR monthly_fee >= 0", name="ck_projects_monthly_fee_non_negative"),
        Index("ix_projects_client_id", "client_id"),
        UniqueConstraint("client_id", "name", name="uq_projects_client_name"),
    )

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    client_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), ForeignKey("clients.id"), nullable=False)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    status: Mapped[ProjectStatus] = mapped_column(
        _enum_column(ProjectStatus, "project_status"),
        nullable=False,
        default=ProjectStatus.ACTIVE,
    )
    budget_hours: Mapped[float] = mapped_column(Hours, nullable=False, default=0.0)
    minimum_hours: Mapped[float] = mapped_column(Hours, nullable=False, default=0.0)
    monthly_fee: Mapped[float | None] = mapped_column(Numeric(12, 2, asdecimal=False), nullable=True)
    health_status: Mapped[ProjectHealth | None] = mapped_column(
        _enum_column(ProjectHealth, "project_health"),
        nullable=True,
    )
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=datetime.utcnow)


class Allocation(Base):
    __tablename__ = "allocations"
    __table_args__ = (
        CheckConstraint("hours_assigned >= 0", name="ck_allocations_hours_assigned_non_negative"),
        CheckConstraint("hours_actual IS NULL OR hours_actual >= 0", name="ck_allocations_hours_actual_non_negative"),
        Index("ix_allocations_employee_week", "employee_id", "week_start_date"),
        Index("ix_allocations_project_week", "project_id", "week_start_date"),
    )

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    employee_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), ForeignKey("employees.id"), nullable=False)
    project_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), ForeignKey("projects.id"), nullable=False)
    week_start_date: Mapped[date] = mapped_column(Date, nullable=False)
    hours_assigned: Mapped[float] = mapped_column(Hours, nullable=False, default=0.0)
    hours_actual: Mapped[float | None] = mapped_column(Hours, nullable=True)
    status: Mapped[AllocationStatus] = mapped_column(
        _enum_column(AllocationStatus, "allocation_status"),
        nullable=False,
        default=AllocationStatus.PLANNED,
    )
    description: Mapped[str | None] = mapped_column(String(2000), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=datetime.utcnow)


class Absence(Base):
    __tablename__ = "absences"
    __table_args__ = (
        CheckConstraint("end_date >= start_date", name="ck_absences_date_range"),
        CheckConstraint("hours IS NULL OR hours >= 0", name="ck_absences_hours_non_negative"),
        Index("ix_absences_employee_range", "employee_id", "start_date", "end_date"),
    )

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    employee_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), ForeignKey("employees.id"), nullable=False)
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date] = mapped_column(Date, nullable=False)
    type: Mapped[AbsenceType] = mapped_column(
        _enum_column(AbsenceType, "absence_type"),
        nullable=False,
        default=AbsenceType.VACATION,
    )
    hours: Mapped[float | None] = mapped_column(Hours, nullable=True)
    description: Mapped[str | None] = mapped_column(String(1000), nullable=True)


class TeamEvent(Base):
    __tablename__ = "team_events"
    __table_args__ = (
        CheckConstraint("hours_reduction >= 0", name="ck_team_events_hours_reduction_non_negative"),
        Index("ix_team_events_event_date", "event_date"),
    )

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    event_date: Mapped[date] = mapped_column(Date, nullable=False)
    hours_reduction: Mapped[float] = mapped_column(Hours, nullable=False, default=8.0)
    affects_all: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    affected_employee_ids: Mapped[list] = mapped_column(JSONType, nullable=False, default=list)
    description: Mapped[str | None] = mapped_column(String(1000), nullable=True)


class Deadline(Base):
    __tablename__ = "deadlines"
    __table_args__ = (
        Index("ix_deadlines_month", "month"),
        UniqueConstraint("project_id", "month", name="uq_deadlines_project_month"),
    )

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    project_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), ForeignKey("projects.id"), nullable=False)
    month: Mapped[str] = mapped_column(String(7), nullable=False)
    notes: Mapped[str | None] = mapped_column(String(1000), nullable=True)
    employee_hours: Mapped[dict] = mapped_column(JSONType, nullable=False, default=dict)
    is_hidden: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=datetime.utcnow)


class GlobalAssignment(Base):
    __tablename__ = "global_assignments"
    __table_args__ = (
        CheckConstraint("hours >= 0", name="ck_global_assignments_hours_non_negative"),
        Index("ix_global_assignments_month", "month"),
    )

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    month: Mapped[str] = mapped_column(String(7), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    hours: Mapped[float] = mapped_column(Hours, nullable=False, default=0.0)
    affects_all: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    affected_employee_ids: Mapped[list] = mapped_column(JSONType, nullable=False, default=list)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=datetime.utcnow)


class AdsSyncJob(Base):
    __tablename__ = "ads_sync_logs"
    __table_args__ = (Index("ix_ads_sync_logs_platform_status", "platform", "status"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    platform: Mapped[AdsPlatform] = mapped_column(
        _enum_column(AdsPlatform, "ads_platform"),
        nullable=False,
        default=AdsPlatform.GOOGLE,
    )
    status: Mapped[SyncJobStatus] = mapped_column(
        _enum_column(SyncJobStatus, "sync_job_status"),
        nullable=False,
        default=SyncJobStatus.PENDING,
    )
    logs: Mapped[list] = mapped_column(JSONType, nullable=False, default=list)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=datetime.utcnow)


class GoogleAdsCampaign(Base):
    __tablename__ = "google_ads_campaigns"
    __table_args__ = (
        UniqueConstraint("campaign_id", "date", name="uq_google_ads_campaigns_campaign_date"),
        Index("ix_google_ads_campaigns_client_date", "client_id", "date"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    client_id: Mapped[str] = mapped_column(String(64), nullable=False)
    client_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    campaign_id: Mapped[str] = mapped_column(String(64), nullable=False)
    campaign_name: Mapped[str] = mapped_column(String(500), nullable=False)
    status: Mapped[str] = mapped_column(String(32), nullable=False)
    date: Mapped[dt.date] = mapped_column(Date, nullable=False)
    cost: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    daily_budget: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    conversions_value: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    conversions: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    clicks: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    impressions: Mapped[int] = mapped_column(Integer, nullable=False, default=0)


class MetaAdsCampaign(Base):
    __tablename__ = "meta_ads_campaigns"
    __table_args__ = (
        UniqueConstraint("campaign_id", "date", name="uq_meta_ads_campaigns_campaign_date"),
        Index("ix_meta_ads_campaigns_client_date", "client_id", "date"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    client_id: Mapped[str] = mapped_column(String(64), nullable=False)
    client_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    campaign_id: Mapped[str] = mapped_column(String(64), nullable=False)
    campaign_name: Mapped[str] = mapped_column(String(500), nullable=False)
    status: Mapped[str] = mapped_column(String(32), nullable=False)
    date: Mapped[dt.date] = mapped_column(Date, nullable=False)
    cost: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    conversions_value: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    conversions: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    clicks: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    impressions: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
