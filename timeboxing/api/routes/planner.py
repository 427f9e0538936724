"""Planner grid and workload endpoints."""

from __future__ import annotations

from datetime import date
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from timeboxing.core.auth import Permission, RequestUserContext, require_permission
from timeboxing.db.dependencies import get_db_session
from timeboxing.services.planning_service import PlanningService

router = APIRouter(prefix="/planner", tags=["planner"])


def _service(db: Session) -> PlanningService:
    return PlanningService(db)


@router.get("")
def get_planner_grid(
    month: str = Query(..., description="YYYY-MM"),
    _: RequestUserContext = Depends(require_permission(Permission.PLANNER)),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    """Weeks of the month for every active employee, with load per cell."""

    return _service(db).planner_grid(month)


@router.get("/employees/{employee_id}/week")
def get_employee_week_load(
    employee_id: UUID,
    week_start: date = Query(...),
    _: RequestUserContext = Depends(require_permission(Permission.PLANNER, Permission.TEAM)),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _service(db)
    load = service.employee_week_load(employee_id, week_start)
    return {"employee_id": str(employee_id), "week_start": week_start.isoformat(), **service.serialize_load(load)}


@router.get("/employees/{employee_id}/month")
def get_employee_month_load(
    employee_id: UUID,
    month: str = Query(..., description="YYYY-MM"),
    _: RequestUserContext = Depends(require_permission(Permission.PLANNER, Permission.TEAM)),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _service(db)
    load = service.employee_month_load(employee_id, month)
    return {"employee_id": str(employee_id), "month": month, **service.serialize_load(load)}
