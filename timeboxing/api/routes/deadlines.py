"""Monthly deadline and global assignment endpoints."""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response, status
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from timeboxing.core.auth import Permission, RequestUserContext, require_permission
from timeboxing.db.dependencies import get_db_session
from timeboxing.services.planning_service import DeadlineData, GlobalAssignmentData, PlanningService

router = APIRouter(prefix="/deadlines", tags=["deadlines"])

MONTH_PATTERN = r"^\d{4}-\d{2}$"


class DeadlinePayload(BaseModel):
    project_id: UUID
    month: str = Field(pattern=MONTH_PATTERN)
    employee_hours: dict[UUID, float] = Field(default_factory=dict)
    notes: str | None = Field(default=None, max_length=1000)
    is_hidden: bool = False


class GlobalAssignmentPayload(BaseModel):
    month: str = Field(pattern=MONTH_PATTERN)
    name: str = Field(min_length=1, max_length=255)
    hours: float = Field(ge=0, le=744)
    affected_employee_ids: list[UUID] | None = None


def _service(db: Session) -> PlanningService:
    return PlanningService(db)


@router.get("")
def get_deadlines_overview(
    month: str = Query(..., description="YYYY-MM"),
    _: RequestUserContext = Depends(require_permission(Permission.DEADLINES)),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    """Deadlines of the month with per-employee capacity usage."""

    return _service(db).deadlines_overview(month)


@router.put("")
def upsert_deadline(
    payload: DeadlinePayload,
    _: RequestUserContext = Depends(require_permission(Permission.DEADLINES)),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _service(db)
    deadline = service.upsert_deadline(
        DeadlineData(
            project_id=payload.project_id,
            month=payload.month,
            employee_hours=payload.employee_hours,
            notes=payload.notes,
            is_hidden=payload.is_hidden,
        )
    )
    return service.serialize_deadline(deadline)


@router.delete("/{deadline_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_deadline(
    deadline_id: UUID,
    _: RequestUserContext = Depends(require_permission(Permission.DEADLINES)),
    db: Session = Depends(get_db_session),
) -> Response:
    _service(db).delete_deadline(deadline_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/global-assignments")
def list_global_assignments(
    month: str = Query(..., description="YYYY-MM"),
    _: RequestUserContext = Depends(require_permission(Permission.DEADLINES)),
    db: Session = Depends(get_db_session),
) -> dict[str, list[object]]:
    service = _service(db)
    return {"items": [service.serialize_global_assignment(row) for row in service.list_global_assignments(month)]}


@router.post("/global-assignments", status_code=status.HTTP_201_CREATED)
def create_global_assignment(
    payload: GlobalAssignmentPayload,
    _: RequestUserContext = Depends(require_permission(Permission.DEADLINES)),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _service(db)
    row = service.create_global_assignment(
        GlobalAssignmentData(
            month=payload.month,
            name=payload.name,
            hours=payload.hours,
            affected_employee_ids=payload.affected_employee_ids,
        )
    )
    return service.serialize_global_assignment(row)


@router.delete("/global-assignments/{assignment_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_global_assignment(
    assignment_id: UUID,
    _: RequestUserContext = Depends(require_permission(Permission.DEADLINES)),
    db: Session = Depends(get_db_session),
) -> Response:
    _service(db).delete_global_assignment(assignment_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
