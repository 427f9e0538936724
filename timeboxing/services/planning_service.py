"""Application service for team, project and weekly allocation planning."""

from __future__ import annotations

import logging
from dataclasses import dataclass, fields
from datetime import date, datetime
from uuid import UUID

from fastapi import HTTPException, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from timeboxing.core.config import get_settings
from timeboxing.models.entities import (
    Absence,
    AbsenceType,
    Allocation,
    AllocationStatus,
    Client,
    Deadline,
    Employee,
    GlobalAssignment,
    Project,
    ProjectHealth,
    ProjectStatus,
    TeamEvent,
)
from timeboxing.repositories.planning_repository import PlanningRepository
from timeboxing.services.capacity import (
    DAY_KEYS,
    Deduction,
    LoadSummary,
    WorkSchedule,
    absence_type_label,
    classify_monthly_assignment,
    compute_employee_load,
    format_month_label,
    get_monthly_capacity,
    get_week_end,
    get_weeks_for_month,
    is_current_week,
    load_percentage,
    month_bounds,
    month_key,
    parse_month,
)
from timeboxing.services.formatting import format_full_name

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class EmployeeCreateData:
    name: str
    role: str
    default_weekly_capacity: float
    schedule: WorkSchedule
    email: str | None = None
    first_name: str | None = None
    last_name: str | None = None
    department: str | None = None
    avatar_url: str | None = None
    hourly_rate: float | None = None
    is_active: bool = True


@dataclass(slots=True)
class EmployeeUpdateData:
    name: str | None = None
    role: str | None = None
    default_weekly_capacity: float | None = None
    schedule: WorkSchedule | None = None
    email: str | None = None
    first_name: str | None = None
    last_name: str | None = None
    department: str | None = None
    avatar_url: str | None = None
    hourly_rate: float | None = None
    is_active: bool | None = None
    cleared: frozenset[str] = frozenset()


@dataclass(slots=True)
class ClientData:
    name: str | None = None
    color: str | None = None


@dataclass(slots=True)
class ProjectCreateData:
    client_id: UUID
    name: str
    budget_hours: float
    minimum_hours: float = 0.0
    status: ProjectStatus = ProjectStatus.ACTIVE
    monthly_fee: float | None = None
    health_status: ProjectHealth | None = None


@dataclass(slots=True)
class ProjectUpdateData:
    client_id: UUID | None = None
    name: str | None = None
    budget_hours: float | None = None
    minimum_hours: float | None = None
    status: ProjectStatus | None = None
    monthly_fee: float | None = None
    health_status: ProjectHealth | None = None
    cleared: frozenset[str] = frozenset()


@dataclass(slots=True)
class AllocationCreateData:
    employee_id: UUID
    project_id: UUID
    week_start_date: date
    hours_assigned: float
    hours_actual: float | None = None
    status: AllocationStatus = AllocationStatus.PLANNED
    description: str | None = None


@dataclass(slots=True)
class AllocationUpdateData:
    project_id: UUID | None = None
    week_start_date: date | None = None
    hours_assigned: float | None = None
    hours_actual: float | None = None
    status: AllocationStatus | None = None
    description: str | None = None
    cleared: frozenset[str] = frozenset()


@dataclass(slots=True)
class AbsenceCreateData:
    employee_id: UUID
    start_date: date
    end_date: date
    type: AbsenceType
    hours: float | None = None
    description: str | None = None


@dataclass(slots=True)
class TeamEventCreateData:
    name: str
    event_date: date
    hours_reduction: float
    affected_employee_ids: list[UUID] | None = None
    description: str | None = None


@dataclass(slots=True)
class DeadlineData:
    project_id: UUID
    month: str
    employee_hours: dict[UUID, float]
    notes: str | None = None
    is_hidden: bool = False


@dataclass(slots=True)
class GlobalAssignmentData:
    month: str
    name: str
    hours: float
    affected_employee_ids: list[UUID] | None = None


def ensure_week_start(value: date) -> date:
    if value.weekday() != 0:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="week_start_date must be a Monday.",
        )
    return value


def parse_month_or_422(value: str) -> tuple[int, int]:
    try:
        return parse_month(value)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc)) from exc


def _strip_or_none(value: str | None) -> str | None:
    if value is None:
        return None
    stripped = value.strip()
    return stripped or None


def _apply_updates(row: object, data: object, *, skip: set[str] = frozenset()) -> None:
    """Copy non-null fields onto ``row``; fields listed in ``data.cleared`` are set to null."""

    cleared = getattr(data, "cleared", frozenset())
    columns = row.__table__.columns
    for item in fields(data):
        if item.name in skip or item.name == "cleared":
            continue
        value = getattr(data, item.name)
        if value is None:
            if item.name not in cleared:
                continue
            if not columns[item.name].nullable:
                raise HTTPException(
                    status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                    detail=f"{item.name} cannot be null.",
                )
        elif isinstance(value, str):
            value = value.strip()
        setattr(row, item.name, value)


class PlanningService:
    """Service implementing team planning rules over the repository."""

    def __init__(self, db: Session) -> None:
        self.db = db
        self.repo = PlanningRepository(db)
        self.settings = get_settings()

    def _commit(self, conflict_detail: str) -> None:
        try:
            self.db.commit()
        except IntegrityError as exc:
            self.db.rollback()
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=conflict_detail) from exc

    # ---------- Lookups ----------
    def _get_employee_or_404(self, employee_id: UUID) -> Employee:
        employee = self.repo.get_employee(employee_id)
        if employee is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Employee not found.")
        return employee

    def _get_client_or_404(self, client_id: UUID) -> Client:
        client = self.repo.get_client(client_id)
        if client is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Client not found.")
        return client

    def _get_project_or_404(self, project_id: UUID) -> Project:
        project = self.repo.get_project(project_id)
        if project is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Project not found.")
        return project

    def _get_allocation_or_404(self, allocation_id: UUID) -> Allocation:
        allocation = self.repo.get_allocation(allocation_id)
        if allocation is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Allocation not found.")
        return allocation

    # ---------- Serialization ----------
    @staticmethod
    def serialize_employee(employee: Employee) -> dict[str, object]:
        return {
            "id": str(employee.id),
            "name": employee.name,
            "display_name": format_full_name(employee.first_name, employee.last_name) or employee.name,
            "first_name": employee.first_name,
            "last_name": employee.last_name,
            "email": employee.email,
            "role": employee.role,
            "department": employee.department,
            "avatar_url": employee.avatar_url,
            "default_weekly_capacity": employee.default_weekly_capacity,
            "hourly_rate": employee.hourly_rate,
            "work_schedule": WorkSchedule.from_employee(employee).as_dict(),
            "is_active": employee.is_active,
        }

    @staticmethod
    def serialize_client(client: Client) -> dict[str, object]:
        return {"id": str(client.id), "name": client.name, "color": client.color}

    @staticmethod
    def serialize_project(project: Project) -> dict[str, object]:
        return {
            "id": str(project.id),
            "client_id": str(project.client_id),
            "name": project.name,
            "status": project.status.value,
            "budget_hours": project.budget_hours,
            "minimum_hours": project.minimum_hours,
            "monthly_fee": project.monthly_fee,
            "health_status": project.health_status.value if project.health_status else None,
        }

    @staticmethod
    def serialize_allocation(allocation: Allocation) -> dict[str, object]:
        return {
            "id": str(allocation.id),
            "employee_id": str(allocation.employee_id),
            "project_id": str(allocation.project_id),
            "week_start_date": allocation.week_start_date.isoformat(),
            "hours_assigned": allocation.hours_assigned,
            "hours_actual": allocation.hours_actual,
            "status": allocation.status.value,
            "description": allocation.description,
        }

    @staticmethod
    def serialize_absence(absence: Absence) -> dict[str, object]:
        return {
            "id": str(absence.id),
            "employee_id": str(absence.employee_id),
            "start_date": absence.start_date.isoformat(),
            "end_date": absence.end_date.isoformat(),
            "type": absence.type.value,
            "type_label": absence_type_label(absence.type),
            "hours": absence.hours,
            "description": absence.description,
        }

    @staticmethod
    def serialize_team_event(event: TeamEvent) -> dict[str, object]:
        return {
            "id": str(event.id),
            "name": event.name,
            "event_date": event.event_date.isoformat(),
            "hours_reduction": event.hours_reduction,
            "affected_employee_ids": "all" if event.affects_all else list(event.affected_employee_ids or []),
            "description": event.description,
        }

    @staticmethod
    def serialize_deadline(deadline: Deadline) -> dict[str, object]:
        return {
            "id": str(deadline.id),
            "project_id": str(deadline.project_id),
            "month": deadline.month,
            "notes": deadline.notes,
            "employee_hours": dict(deadline.employee_hours or {}),
            "is_hidden": deadline.is_hidden,
        }

    @staticmethod
    def serialize_global_assignment(row: GlobalAssignment) -> dict[str, object]:
        return {
            "id": str(row.id),
            "month": row.month,
            "name": row.name,
            "hours": row.hours,
            "affects_all": row.affects_all,
            "affected_employee_ids": list(row.affected_employee_ids or []),
        }

    @staticmethod
    def serialize_deduction(item: Deduction) -> dict[str, object]:
        return {
            "kind": item.kind,
            "name": item.name,
            "date": item.day.isoformat() if item.day else None,
            "hours": item.hours,
        }

    def serialize_load(self, load: LoadSummary) -> dict[str, object]:
        return {
            "hours": load.hours,
            "capacity": load.capacity,
            "base_capacity": load.base_capacity,
            "percentage": load.percentage,
            "status": load.status,
            "breakdown": [self.serialize_deduction(item) for item in load.breakdown],
        }

    # ---------- Employees ----------
    def list_employees(self, *, only_active: bool = False) -> list[Employee]:
        return self.repo.list_employees(only_active=only_active)

    def get_employee(self, employee_id: UUID) -> Employee:
        return self._get_employee_or_404(employee_id)

    @staticmethod
    def _apply_schedule(employee: Employee, schedule: WorkSchedule) -> None:
        for key in DAY_KEYS:
            setattr(employee, f"schedule_{key}", getattr(schedule, key))

    def create_employee(self, data: EmployeeCreateData) -> Employee:
        now = datetime.utcnow()
        employee = Employee(
            name=data.name.strip(),
            role=data.role.strip(),
            email=_strip_or_none(data.email),
            first_name=_strip_or_none(data.first_name),
            last_name=_strip_or_none(data.last_name),
            department=_strip_or_none(data.department),
            avatar_url=_strip_or_none(data.avatar_url),
            default_weekly_capacity=data.default_weekly_capacity,
            hourly_rate=data.hourly_rate,
            is_active=data.is_active,
            created_at=now,
            updated_at=now,
        )
        self._apply_schedule(employee, data.schedule)
        self.repo.add(employee)
        self._commit("Employee could not be created.")
        self.db.refresh(employee)
        logger.info("Created employee %s (%s)", employee.id, employee.name)
        return employee

    def update_employee(self, employee_id: UUID, data: EmployeeUpdateData) -> Employee:
        employee = self._get_employee_or_404(employee_id)
        _apply_updates(employee, data, skip={"schedule"})
        if data.schedule is not None:
            self._apply_schedule(employee, data.schedule)
        employee.updated_at = datetime.utcnow()
        self._commit("Employee could not be updated.")
        self.db.refresh(employee)
        return employee

    def toggle_employee_active(self, employee_id: UUID) -> Employee:
        employee = self._get_employee_or_404(employee_id)
        employee.is_active = not employee.is_active
        employee.updated_at = datetime.utcnow()
        self.db.commit()
        self.db.refresh(employee)
        return employee

    def delete_employee(self, employee_id: UUID) -> None:
        employee = self._get_employee_or_404(employee_id)
        if self.repo.allocation_count_for_employee(employee.id) > 0:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Cannot delete employee with existing allocations. Deactivate instead.",
            )
        for absence in self.repo.list_absences(employee_id=employee.id):
            self.repo.delete(absence)
        self.repo.delete(employee)
        self.db.commit()

    # ---------- Clients ----------
    def list_clients(self) -> list[Client]:
        return self.repo.list_clients()

    def create_client(self, data: ClientData) -> Client:
        client = Client(name=(data.name or "").strip(), color=(data.color or "#6366f1").strip())
        self.repo.add(client)
        self._commit("Client name already exists.")
        self.db.refresh(client)
        return client

    def update_client(self, client_id: UUID, data: ClientData) -> Client:
        client = self._get_client_or_404(client_id)
        _apply_updates(client, data)
        self._commit("Client name already exists.")
        self.db.refresh(client)
        return client

    def delete_client(self, client_id: UUID) -> None:
        client = self._get_client_or_404(client_id)
        if self.repo.project_count_for_client(client.id) > 0:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Cannot delete client with existing projects.",
            )
        self.repo.delete(client)
        self.db.commit()

    # ---------- Projects ----------
    @staticmethod
    def _validate_project_hours(budget_hours: float, minimum_hours: float) -> None:
        if minimum_hours > budget_hours:
            raise HTTPException(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                detail="minimum_hours must be less than or equal to budget_hours.",
            )

    def list_projects(self, *, client_id: UUID | None = None, status_filter: ProjectStatus | None = None) -> list[Project]:
        return self.repo.list_projects(client_id=client_id, status=status_filter)

    def create_project(self, data: ProjectCreateData) -> Project:
        self._get_client_or_404(data.client_id)
        self._validate_project_hours(data.budget_hours, data.minimum_hours)

        now = datetime.utcnow()
        project = Project(
            client_id=data.client_id,
            name=data.name.strip(),
            status=data.status,
            budget_hours=data.budget_hours,
            minimum_hours=data.minimum_hours,
            monthly_fee=data.monthly_fee,
            health_status=data.health_status,
            created_at=now,
            updated_at=now,
        )
        self.repo.add(project)
        self._commit("Project name already exists for this client.")
        self.db.refresh(project)
        return project

    def update_project(self, project_id: UUID, data: ProjectUpdateData) -> Project:
        project = self._get_project_or_404(project_id)
        if data.client_id is not None:
            self._get_client_or_404(data.client_id)

        self._validate_project_hours(
            data.budget_hours if data.budget_hours is not None else project.budget_hours,
            data.minimum_hours if data.minimum_hours is not None else project.minimum_hours,
        )
        _apply_updates(project, data)
        project.updated_at = datetime.utcnow()
        self._commit("Project name already exists for this client.")
        self.db.refresh(project)
        return project

    def delete_project(self, project_id: UUID) -> None:
        project = self._get_project_or_404(project_id)
        if self.repo.allocation_count_for_project(project.id) > 0:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Cannot delete project with existing allocations. Archive it instead.",
            )
        self.repo.delete(project)
        self.db.commit()

    # ---------- Allocations ----------
    def list_allocations(
        self,
        *,
        from_week: date,
        to_week: date,
        employee_id: UUID | None = None,
    ) -> list[Allocation]:
        return self.repo.list_allocations(from_week=from_week, to_week=to_week, employee_id=employee_id)

    def create_allocation(self, data: AllocationCreateData) -> Allocation:
        self._get_employee_or_404(data.employee_id)
        self._get_project_or_404(data.project_id)

        now = datetime.utcnow()
        allocation = Allocation(
            employee_id=data.employee_id,
            project_id=data.project_id,
            week_start_date=ensure_week_start(data.week_start_date),
            hours_assigned=data.hours_assigned,
            hours_actual=data.hours_actual,
            status=data.status,
            description=_strip_or_none(data.description),
            created_at=now,
            updated_at=now,
        )
        self.repo.add(allocation)
        self.db.commit()
        self.db.refresh(allocation)
        return allocation

    def update_allocation(self, allocation_id: UUID, data: AllocationUpdateData) -> Allocation:
        allocation = self._get_allocation_or_404(allocation_id)
        if data.project_id is not None:
            self._get_project_or_404(data.project_id)
        if data.week_start_date is not None:
            ensure_week_start(data.week_start_date)

        _apply_updates(allocation, data)
        allocation.updated_at = datetime.utcnow()
        self.db.commit()
        self.db.refresh(allocation)
        return allocation

    def delete_allocation(self, allocation_id: UUID) -> None:
        allocation = self._get_allocation_or_404(allocation_id)
        self.repo.delete(allocation)
        self.db.commit()

    # ---------- Absences ----------
    def list_absences(
        self,
        *,
        from_date: date | None = None,
        to_date: date | None = None,
        employee_id: UUID | None = None,
    ) -> list[Absence]:
        return self.repo.list_absences(from_date=from_date, to_date=to_date, employee_id=employee_id)

    def create_absence(self, data: AbsenceCreateData) -> Absence:
        self._get_employee_or_404(data.employee_id)
        if data.end_date < data.start_date:
            raise HTTPException(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                detail="end_date must be greater than or equal to start_date.",
            )

        absence = Absence(
            employee_id=data.employee_id,
            start_date=data.start_date,
            end_date=data.end_date,
            type=data.type,
            hours=data.hours,
            description=_strip_or_none(data.description),
        )
        self.repo.add(absence)
        self.db.commit()
        self.db.refresh(absence)
        return absence

    def delete_absence(self, absence_id: UUID) -> None:
        absence = self.repo.get_absence(absence_id)
        if absence is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Absence not found.")
        self.repo.delete(absence)
        self.db.commit()

    # ---------- Team events ----------
    def list_team_events(self, *, from_date: date | None = None, to_date: date | None = None) -> list[TeamEvent]:
        return self.repo.list_team_events(from_date=from_date, to_date=to_date)

    def create_team_event(self, data: TeamEventCreateData) -> TeamEvent:
        affected = [str(employee_id) for employee_id in data.affected_employee_ids or []]
        for employee_id in data.affected_employee_ids or []:
            self._get_employee_or_404(employee_id)

        event = TeamEvent(
            name=data.name.strip(),
            event_date=data.event_date,
            hours_reduction=data.hours_reduction,
            affects_all=data.affected_employee_ids is None,
            affected_employee_ids=affected,
            description=_strip_or_none(data.description),
        )
        self.repo.add(event)
        self.db.commit()
        self.db.refresh(event)
        return event

    def delete_team_event(self, event_id: UUID) -> None:
        event = self.repo.get_team_event(event_id)
        if event is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Team event not found.")
        self.repo.delete(event)
        self.db.commit()

    # ---------- Load ----------
    def _load_for_range(
        self,
        employee: Employee,
        *,
        start: date,
        end: date,
        allocations: list[Allocation],
        absences: list[Absence],
        team_events: list[TeamEvent],
    ) -> LoadSummary:
        return compute_employee_load(
            employee_id=employee.id,
            schedule=WorkSchedule.from_employee(employee),
            start=start,
            end=end,
            allocations=allocations,
            absences=[row for row in absences if row.employee_id == employee.id],
            team_events=team_events,
            warning_threshold=self.settings.load_warning_threshold,
            overload_threshold=self.settings.load_overload_threshold,
            full_day_hours=self.settings.full_day_event_hours,
        )

    def employee_week_load(
        self,
        employee_id: UUID,
        week_start: date,
        *,
        effective_start: date | None = None,
        effective_end: date | None = None,
    ) -> LoadSummary:
        """Load of one employee in one week, optionally clipped to a month."""

        employee = self._get_employee_or_404(employee_id)
        week_start = ensure_week_start(week_start)
        start = effective_start or week_start
        end = effective_end or get_week_end(week_start)

        allocations = self.repo.list_allocations(from_week=week_start, to_week=week_start, employee_id=employee.id)
        absences = self.repo.list_absences(from_date=start, to_date=end, employee_id=employee.id)
        team_events = self.repo.list_team_events(from_date=start, to_date=end)
        return self._load_for_range(
            employee,
            start=start,
            end=end,
            allocations=allocations,
            absences=absences,
            team_events=team_events,
        )

    def employee_month_load(self, employee_id: UUID, month: str) -> LoadSummary:
        """Load over a calendar month from allocations of the month's weeks."""

        employee = self._get_employee_or_404(employee_id)
        year, month_no = parse_month_or_422(month)
        month_start, month_end = month_bounds(year, month_no)
        weeks = get_weeks_for_month(year, month_no)
        if not weeks:
            return self._load_for_range(
                employee, start=month_start, end=month_end, allocations=[], absences=[], team_events=[]
            )

        allocations = self.repo.list_allocations(
            from_week=weeks[0].week_start,
            to_week=weeks[-1].week_start,
            employee_id=employee.id,
        )
        return self._load_for_range(
            employee,
            start=month_start,
            end=month_end,
            allocations=allocations,
            absences=self.repo.list_absences(from_date=month_start, to_date=month_end, employee_id=employee.id),
            team_events=self.repo.list_team_events(from_date=month_start, to_date=month_end),
        )

    def planner_grid(self, month: str, *, today: date | None = None) -> dict[str, object]:
        """Weeks of a month crossed with active employees.

        Each cell carries the employee's load for the part of the week that
        falls inside the month.
        """

        year, month_no = parse_month_or_422(month)
        month_start, month_end = month_bounds(year, month_no)
        weeks = get_weeks_for_month(year, month_no)
        employees = self.repo.list_employees(only_active=True)

        range_start = min([week.week_start for week in weeks] or [month_start])
        range_end = max([week.week_end for week in weeks] or [month_end])
        allocations = self.repo.list_allocations(from_week=range_start, to_week=range_end)
        absences = self.repo.list_absences(from_date=range_start, to_date=range_end)
        team_events = self.repo.list_team_events(from_date=range_start, to_date=range_end)

        allocations_by_cell: dict[tuple[UUID, date], list[Allocation]] = {}
        for allocation in allocations:
            allocations_by_cell.setdefault((allocation.employee_id, allocation.week_start_date), []).append(allocation)

        rows: list[dict[str, object]] = []
        for employee in employees:
            cells: list[dict[str, object]] = []
            for week in weeks:
                cell_allocations = allocations_by_cell.get((employee.id, week.week_start), [])
                load = self._load_for_range(
                    employee,
                    start=week.effective_start,
                    end=week.effective_end,
                    allocations=cell_allocations,
                    absences=absences,
                    team_events=team_events,
                )
                cells.append(
                    {
                        "week_start": week.week_start.isoformat(),
                        "allocations": [self.serialize_allocation(row) for row in cell_allocations],
                        **self.serialize_load(load),
                    }
                )
            rows.append(
                {
                    "employee": self.serialize_employee(employee),
                    "weeks": cells,
                }
            )

        return {
            "month": month_key(month_start),
            "label": format_month_label(year, month_no),
            "weeks": [
                {
                    "week_start": week.week_start.isoformat(),
                    "week_end": week.week_end.isoformat(),
                    "label": week.week_label,
                    "effective_start": week.effective_start.isoformat(),
                    "effective_end": week.effective_end.isoformat(),
                    "is_current": is_current_week(week.week_start, today),
                }
                for week in weeks
            ],
            "rows": rows,
        }

    def copy_week_allocations(self, employee_id: UUID, *, source_week: date, target_week: date) -> list[Allocation]:
        """Duplicate an employee's planned allocations into another week."""

        employee = self._get_employee_or_404(employee_id)
        source_week = ensure_week_start(source_week)
        target_week = ensure_week_start(target_week)
        if source_week == target_week:
            raise HTTPException(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                detail="target_week must differ from source_week.",
            )

        now = datetime.utcnow()
        created: list[Allocation] = []
        for source in self.repo.list_allocations(from_week=source_week, to_week=source_week, employee_id=employee.id):
            copy = Allocation(
                employee_id=source.employee_id,
                project_id=source.project_id,
                week_start_date=target_week,
                hours_assigned=source.hours_assigned,
                hours_actual=None,
                status=AllocationStatus.PLANNED,
                description=source.description,
                created_at=now,
                updated_at=now,
            )
            self.repo.add(copy)
            created.append(copy)
        self.db.commit()
        return created

    # ---------- Deadlines ----------
    def _validate_employee_hours(self, employee_hours: dict[UUID, float]) -> dict[str, float]:
        resolved: dict[str, float] = {}
        for employee_id, hours in employee_hours.items():
            self._get_employee_or_404(employee_id)
            if hours < 0:
                raise HTTPException(
                    status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                    detail="Assigned hours must be non-negative.",
                )
            if hours > 0:
                resolved[str(employee_id)] = float(hours)
        return resolved

    def list_deadlines(self, month: str) -> list[Deadline]:
        parse_month_or_422(month)
        return self.repo.list_deadlines(month)

    def upsert_deadline(self, data: DeadlineData) -> Deadline:
        parse_month_or_422(data.month)
        self._get_project_or_404(data.project_id)
        employee_hours = self._validate_employee_hours(data.employee_hours)

        existing = [row for row in self.repo.list_deadlines(data.month) if row.project_id == data.project_id]
        if existing:
            deadline = existing[0]
            deadline.employee_hours = employee_hours
            deadline.notes = _strip_or_none(data.notes)
            deadline.is_hidden = data.is_hidden
        else:
            deadline = Deadline(
                project_id=data.project_id,
                month=data.month,
                notes=_strip_or_none(data.notes),
                employee_hours=employee_hours,
                is_hidden=data.is_hidden,
                created_at=datetime.utcnow(),
            )
            self.repo.add(deadline)

        self._commit("Deadline already exists for this project and month.")
        self.db.refresh(deadline)
        return deadline

    def delete_deadline(self, deadline_id: UUID) -> None:
        deadline = self.repo.get_deadline(deadline_id)
        if deadline is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Deadline not found.")
        self.repo.delete(deadline)
        self.db.commit()

    def list_global_assignments(self, month: str) -> list[GlobalAssignment]:
        parse_month_or_422(month)
        return self.repo.list_global_assignments(month)

    def create_global_assignment(self, data: GlobalAssignmentData) -> GlobalAssignment:
        parse_month_or_422(data.month)
        for employee_id in data.affected_employee_ids or []:
            self._get_employee_or_404(employee_id)

        row = GlobalAssignment(
            month=data.month,
            name=data.name.strip(),
            hours=data.hours,
            affects_all=data.affected_employee_ids is None,
            affected_employee_ids=[str(item) for item in data.affected_employee_ids or []],
            created_at=datetime.utcnow(),
        )
        self.repo.add(row)
        self.db.commit()
        self.db.refresh(row)
        return row

    def delete_global_assignment(self, assignment_id: UUID) -> None:
        row = self.repo.get_global_assignment(assignment_id)
        if row is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Global assignment not found.")
        self.repo.delete(row)
        self.db.commit()

    def deadlines_overview(self, month: str) -> dict[str, object]:
        """Monthly capacity vs hours promised in deadlines and global assignments."""

        year, month_no = parse_month_or_422(month)
        deadlines = self.repo.list_deadlines(month)
        global_assignments = self.repo.list_global_assignments(month)
        visible = [row for row in deadlines if not row.is_hidden]

        employees = sorted(
            self.repo.list_employees(only_active=True),
            key=lambda row: (row.first_name or row.name).lower(),
        )
        rows: list[dict[str, object]] = []
        for employee in employees:
            key = str(employee.id)
            capacity = get_monthly_capacity(year, month_no, WorkSchedule.from_employee(employee))
            deadline_hours = sum(float((row.employee_hours or {}).get(key, 0)) for row in visible)
            global_hours = sum(
                float(row.hours)
                for row in global_assignments
                if row.affects_all or key in {str(item) for item in row.affected_employee_ids or []}
            )
            assigned = round(deadline_hours + global_hours, 2)
            percentage = load_percentage(assigned, capacity)
            rows.append(
                {
                    "employee_id": key,
                    "employee_name": employee.name,
                    "capacity": capacity,
                    "deadline_hours": round(deadline_hours, 2),
                    "global_hours": round(global_hours, 2),
                    "assigned_hours": assigned,
                    "available_hours": round(capacity - assigned, 2),
                    "percentage": percentage,
                    "status": classify_monthly_assignment(
                        percentage,
                        warning_threshold=self.settings.load_warning_threshold,
                        overload_threshold=self.settings.load_overload_threshold,
                    ),
                }
            )

        return {
            "month": month,
            "label": format_month_label(year, month_no),
            "deadlines": [self.serialize_deadline(row) for row in deadlines],
            "global_assignments": [self.serialize_global_assignment(row) for row in global_assignments],
            "employees": rows,
        }
