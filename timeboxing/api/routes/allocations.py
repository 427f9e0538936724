"""Weekly allocation endpoints."""

from __future__ import annotations

from datetime import date
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response, status
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from timeboxing.core.auth import Permission, RequestUserContext, require_permission
from timeboxing.db.dependencies import get_db_session
from timeboxing.models.entities import AllocationStatus
from timeboxing.services.planning_service import AllocationCreateData, AllocationUpdateData, PlanningService

router = APIRouter(prefix="/allocations", tags=["allocations"])


class AllocationCreatePayload(BaseModel):
    employee_id: UUID
    project_id: UUID
    week_start_date: date
    hours_assigned: float = Field(ge=0, le=168)
    hours_actual: float | None = Field(default=None, ge=0, le=168)
    status: AllocationStatus = AllocationStatus.PLANNED
    description: str | None = Field(default=None, max_length=2000)


class AllocationUpdatePayload(BaseModel):
    project_id: UUID | None = None
    week_start_date: date | None = None
    hours_assigned: float | None = Field(default=None, ge=0, le=168)
    hours_actual: float | None = Field(default=None, ge=0, le=168)
    status: AllocationStatus | None = None
    description: str | None = Field(default=None, max_length=2000)


class WeekCopyPayload(BaseModel):
    employee_id: UUID
    source_week: date
    target_week: date


def _explicit_nulls(payload: BaseModel) -> frozenset[str]:
    return frozenset(name for name, value in payload.model_dump(exclude_unset=True).items() if value is None)


def _service(db: Session) -> PlanningService:
    return PlanningService(db)


@router.get("")
def list_allocations(
    from_week: date = Query(...),
    to_week: date = Query(...),
    employee_id: UUID | None = Query(default=None),
    _: RequestUserContext = Depends(require_permission(Permission.PLANNER)),
    db: Session = Depends(get_db_session),
) -> dict[str, list[object]]:
    service = _service(db)
    items = service.list_allocations(from_week=from_week, to_week=to_week, employee_id=employee_id)
    return {"items": [service.serialize_allocation(row) for row in items]}


@router.post("", status_code=status.HTTP_201_CREATED)
def create_allocation(
    payload: AllocationCreatePayload,
    _: RequestUserContext = Depends(require_permission(Permission.PLANNER)),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _service(db)
    allocation = service.create_allocation(
        AllocationCreateData(
            employee_id=payload.employee_id,
            project_id=payload.project_id,
            week_start_date=payload.week_start_date,
            hours_assigned=payload.hours_assigned,
            hours_actual=payload.hours_actual,
            status=payload.status,
            description=payload.description,
        )
    )
    return service.serialize_allocation(allocation)


@router.post("/copy-week", status_code=status.HTTP_201_CREATED)
def copy_week(
    payload: WeekCopyPayload,
    _: RequestUserContext = Depends(require_permission(Permission.PLANNER)),
    db: Session = Depends(get_db_session),
) -> dict[str, list[object]]:
    service = _service(db)
    created = service.copy_week_allocations(
        payload.employee_id,
        source_week=payload.source_week,
        target_week=payload.target_week,
    )
    return {"items": [service.serialize_allocation(row) for row in created]}


@router.patch("/{allocation_id}")
def update_allocation(
    allocation_id: UUID,
    payload: AllocationUpdatePayload,
    _: RequestUserContext = Depends(require_permission(Permission.PLANNER)),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _service(db)
    allocation = service.update_allocation(
        allocation_id,
        AllocationUpdateData(
            project_id=payload.project_id,
            week_start_date=payload.week_start_date,
            hours_assigned=payload.hours_assigned,
            hours_actual=payload.hours_actual,
            status=payload.status,
            description=payload.description,
            cleared=_explicit_nulls(payload),
        ),
    )
    return service.serialize_allocation(allocation)


@router.delete("/{allocation_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_allocation(
    allocation_id: UUID,
    _: RequestUserContext = Depends(require_permission(Permission.PLANNER)),
    db: Session = Depends(get_db_session),
) -> Response:
    _service(db).delete_allocation(allocation_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
