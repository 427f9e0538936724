"""Repository helpers for team planning domain."""

from __future__ import annotations

from datetime import date
from uuid import UUID

from sqlalchemy import and_, func, select
from sqlalchemy.orm import Session

from timeboxing.models.entities import (
    Absence,
    Allocation,
    Client,
    Deadline,
    Employee,
    GlobalAssignment,
    Project,
    ProjectStatus,
    TeamEvent,
    User,
)


class PlanningRepository:
    """Persistence operations used by planning and reporting services."""

    def __init__(self, db: Session) -> None:
        self.db = db

    def add(self, row: object) -> object:
        self.db.add(row)
        self.db.flush()
        return row

    def delete(self, row: object) -> None:
        self.db.delete(row)
        self.db.flush()

    # ---------- Users ----------
    def list_users(self) -> list[User]:
        return self.db.scalars(select(User).order_by(User.email.asc())).all()

    def get_user(self, user_id: UUID) -> User | None:
        return self.db.scalar(select(User).where(User.id == user_id))

    def get_user_by_email(self, email: str) -> User | None:
        return self.db.scalar(select(User).where(User.email == email))

    # ---------- Employees ----------
    def list_employees(self, *, only_active: bool = False) -> list[Employee]:
        query = select(Employee)
        if only_active:
            query = query.where(Employee.is_active.is_(True))
        return self.db.scalars(query.order_by(Employee.name.asc())).all()

    def get_employee(self, employee_id: UUID) -> Employee | None:
        return self.db.scalar(select(Employee).where(Employee.id == employee_id))

    def allocation_count_for_employee(self, employee_id: UUID) -> int:
        return int(
            self.db.scalar(select(func.count(Allocation.id)).where(Allocation.employee_id == employee_id)) or 0
        )

    # ---------- Clients and projects ----------
    def list_clients(self) -> list[Client]:
        return self.db.scalars(select(Client).order_by(Client.name.asc())).all()

    def get_client(self, client_id: UUID) -> Client | None:
        return self.db.scalar(select(Client).where(Client.id == client_id))

    def list_projects(
        self,
        *,
        client_id: UUID | None = None,
        status: ProjectStatus | None = None,
    ) -> list[Project]:
        conditions = []
        if client_id is not None:
            conditions.append(Project.client_id == client_id)
        if status is not None:
            conditions.append(Project.status == status)

        query = select(Project)
        if conditions:
            query = query.where(and_(*conditions))
        return self.db.scalars(query.order_by(Project.name.asc())).all()

    def get_project(self, project_id: UUID) -> Project | None:
        return self.db.scalar(select(Project).where(Project.id == project_id))

    def project_count_for_client(self, client_id: UUID) -> int:
        return int(self.db.scalar(select(func.count(Project.id)).where(Project.client_id == client_id)) or 0)

    def allocation_count_for_project(self, project_id: UUID) -> int:
        return int(
            self.db.scalar(select(func.count(Allocation.id)).where(Allocation.project_id == project_id)) or 0
        )

    # ---------- Allocations ----------
    def get_allocation(self, allocation_id: UUID) -> Allocation | None:
        return self.db.scalar(select(Allocation).where(Allocation.id == allocation_id))

    def list_allocations(
        self,
        *,
        from_week: date,
        to_week: date,
        employee_id: UUID | None = None,
        project_ids: set[UUID] | None = None,
    ) -> list[Allocation]:
        conditions = [
            Allocation.week_start_date >= from_week,
            Allocation.week_start_date <= to_week,
        ]
        if employee_id is not None:
            conditions.append(Allocation.employee_id == employee_id)
        if project_ids is not None:
            if not project_ids:
                return []
            conditions.append(Allocation.project_id.in_(project_ids))

        return self.db.scalars(
            select(Allocation)
            .where(and_(*conditions))
            .order_by(
                Allocation.week_start_date.asc(),
                Allocation.employee_id.asc(),
                Allocation.created_at.asc(),
            )
        ).all()

    def list_allocations_for_employee(self, employee_id: UUID) -> list[Allocation]:
        return self.db.scalars(
            select(Allocation)
            .where(Allocation.employee_id == employee_id)
            .order_by(Allocation.week_start_date.asc())
        ).all()

    # ---------- Absences ----------
    def get_absence(self, absence_id: UUID) -> Absence | None:
        return self.db.scalar(select(Absence).where(Absence.id == absence_id))

    def list_absences(
        self,
        *,
        from_date: date | None = None,
        to_date: date | None = None,
        employee_id: UUID | None = None,
    ) -> list[Absence]:
        conditions = []
        if from_date is not None:
            conditions.append(Absence.end_date >= from_date)
        if to_date is not None:
            conditions.append(Absence.start_date <= to_date)
        if employee_id is not None:
            conditions.append(Absence.employee_id == employee_id)

        query = select(Absence)
        if conditions:
            query = query.where(and_(*conditions))
        return self.db.scalars(query.order_by(Absence.start_date.asc())).all()

    # ---------- Team events ----------
    def get_team_event(self, event_id: UUID) -> TeamEvent | None:
        return self.db.scalar(select(TeamEvent).where(TeamEvent.id == event_id))

    def list_team_events(self, *, from_date: date | None = None, to_date: date | None = None) -> list[TeamEvent]:
        conditions = []
        if from_date is not None:
            conditions.append(TeamEvent.event_date >= from_date)
        if to_date is not None:
            conditions.append(TeamEvent.event_date <= to_date)

        query = select(TeamEvent)
        if conditions:
            query = query.where(and_(*conditions))
        return self.db.scalars(query.order_by(TeamEvent.event_date.asc())).all()

    # ---------- Deadlines ----------
    def list_deadlines(self, month: str) -> list[Deadline]:
        return self.db.scalars(
            select(Deadline).where(Deadline.month == month).order_by(Deadline.created_at.desc())
        ).all()

    def get_deadline(self, deadline_id: UUID) -> Deadline | None:
        return self.db.scalar(select(Deadline).where(Deadline.id == deadline_id))

    def list_global_assignments(self, month: str) -> list[GlobalAssignment]:
        return self.db.scalars(
            select(GlobalAssignment)
            .where(GlobalAssignment.month == month)
            .order_by(GlobalAssignment.created_at.desc())
        ).all()

    def get_global_assignment(self, assignment_id: UUID) -> GlobalAssignment | None:
        return self.db.scalar(select(GlobalAssignment).where(GlobalAssignment.id == assignment_id))
