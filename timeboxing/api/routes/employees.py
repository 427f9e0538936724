"""Team member endpoints."""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response, status
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from timeboxing.core.auth import Permission, RequestUserContext, require_admin, require_permission
from timeboxing.db.dependencies import get_db_session
from timeboxing.services.capacity import WorkSchedule
from timeboxing.services.planning_service import EmployeeCreateData, EmployeeUpdateData, PlanningService

router = APIRouter(prefix="/employees", tags=["employees"])


class WorkSchedulePayload(BaseModel):
    monday: float = Field(default=8.0, ge=0, le=24)
    tuesday: float = Field(default=8.0, ge=0, le=24)
    wednesday: float = Field(default=8.0, ge=0, le=24)
    thursday: float = Field(default=8.0, ge=0, le=24)
    friday: float = Field(default=8.0, ge=0, le=24)
    saturday: float = Field(default=0.0, ge=0, le=24)
    sunday: float = Field(default=0.0, ge=0, le=24)

    def to_schedule(self) -> WorkSchedule:
        return WorkSchedule(**self.model_dump())


class EmployeeCreatePayload(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    role: str = Field(min_length=1, max_length=100)
    default_weekly_capacity: float = Field(default=40.0, ge=0, le=168)
    work_schedule: WorkSchedulePayload = Field(default_factory=WorkSchedulePayload)
    email: str | None = Field(default=None, max_length=320)
    first_name: str | None = Field(default=None, max_length=100)
    last_name: str | None = Field(default=None, max_length=100)
    department: str | None = Field(default=None, max_length=100)
    avatar_url: str | None = Field(default=None, max_length=1000)
    hourly_rate: float | None = Field(default=None, ge=0)
    is_active: bool = True


class EmployeeUpdatePayload(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=100)
    role: str | None = Field(default=None, min_length=1, max_length=100)
    default_weekly_capacity: float | None = Field(default=None, ge=0, le=168)
    work_schedule: WorkSchedulePayload | None = None
    email: str | None = Field(default=None, max_length=320)
    first_name: str | None = Field(default=None, max_length=100)
    last_name: str | None = Field(default=None, max_length=100)
    department: str | None = Field(default=None, max_length=100)
    avatar_url: str | None = Field(default=None, max_length=1000)
    hourly_rate: float | None = Field(default=None, ge=0)
    is_active: bool | None = None


def _explicit_nulls(payload: BaseModel) -> frozenset[str]:
    return frozenset(name for name, value in payload.model_dump(exclude_unset=True).items() if value is None)


def _service(db: Session) -> PlanningService:
    return PlanningService(db)


@router.get("")
def list_employees(
    only_active: bool = Query(default=False),
    _: RequestUserContext = Depends(require_permission(Permission.TEAM, Permission.PLANNER)),
    db: Session = Depends(get_db_session),
) -> dict[str, list[object]]:
    service = _service(db)
    return {"items": [service.serialize_employee(row) for row in service.list_employees(only_active=only_active)]}


@router.post("", status_code=status.HTTP_201_CREATED)
def create_employee(
    payload: EmployeeCreatePayload,
    _: RequestUserContext = Depends(require_admin()),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _service(db)
    employee = service.create_employee(
        EmployeeCreateData(
            name=payload.name,
            role=payload.role,
            default_weekly_capacity=payload.default_weekly_capacity,
            schedule=payload.work_schedule.to_schedule(),
            email=payload.email,
            first_name=payload.first_name,
            last_name=payload.last_name,
            department=payload.department,
            avatar_url=payload.avatar_url,
            hourly_rate=payload.hourly_rate,
            is_active=payload.is_active,
        )
    )
    return service.serialize_employee(employee)


@router.get("/{employee_id}")
def get_employee(
    employee_id: UUID,
    _: RequestUserContext = Depends(require_permission(Permission.TEAM, Permission.PLANNER)),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _service(db)
    return service.serialize_employee(service.get_employee(employee_id))


@router.patch("/{employee_id}")
def update_employee(
    employee_id: UUID,
    payload: EmployeeUpdatePayload,
    _: RequestUserContext = Depends(require_permission(Permission.TEAM)),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _service(db)
    employee = service.update_employee(
        employee_id,
        EmployeeUpdateData(
            name=payload.name,
            role=payload.role,
            default_weekly_capacity=payload.default_weekly_capacity,
            schedule=payload.work_schedule.to_schedule() if payload.work_schedule else None,
            email=payload.email,
            first_name=payload.first_name,
            last_name=payload.last_name,
            department=payload.department,
            avatar_url=payload.avatar_url,
            hourly_rate=payload.hourly_rate,
            is_active=payload.is_active,
            cleared=_explicit_nulls(payload),
        ),
    )
    return service.serialize_employee(employee)


@router.post("/{employee_id}/toggle-active")
def toggle_employee_active(
    employee_id: UUID,
    _: RequestUserContext = Depends(require_permission(Permission.TEAM)),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _service(db)
    return service.serialize_employee(service.toggle_employee_active(employee_id))


@router.delete("/{employee_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_employee(
    employee_id: UUID,
    _: RequestUserContext = Depends(require_admin()),
    db: Session = Depends(get_db_session),
) -> Response:
    _service(db).delete_employee(employee_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
