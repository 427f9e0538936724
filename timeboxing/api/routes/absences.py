"""Absence and team event endpoints."""

from __future__ import annotations

from datetime import date
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response, status
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from timeboxing.core.auth import Permission, RequestUserContext, require_permission
from timeboxing.db.dependencies import get_db_session
from timeboxing.models.entities import AbsenceType
from timeboxing.services.planning_service import AbsenceCreateData, PlanningService, TeamEventCreateData

router = APIRouter(tags=["absences"])


class AbsenceCreatePayload(BaseModel):
    employee_id: UUID
    start_date: date
    end_date: date
    type: AbsenceType = AbsenceType.VACATION
    hours: float | None = Field(default=None, gt=0, le=24)
    description: str | None = Field(default=None, max_length=1000)


class TeamEventCreatePayload(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    event_date: date
    hours_reduction: float = Field(ge=0, le=24)
    # Omitted means the whole team.
    affected_employee_ids: list[UUID] | None = None
    description: str | None = Field(default=None, max_length=1000)


def _service(db: Session) -> PlanningService:
    return PlanningService(db)


# ---------- Absences ----------
@router.get("/absences")
def list_absences(
    from_date: date | None = Query(default=None),
    to_date: date | None = Query(default=None),
    employee_id: UUID | None = Query(default=None),
    _: RequestUserContext = Depends(require_permission(Permission.TEAM, Permission.PLANNER)),
    db: Session = Depends(get_db_session),
) -> dict[str, list[object]]:
    service = _service(db)
    items = service.list_absences(from_date=from_date, to_date=to_date, employee_id=employee_id)
    return {"items": [service.serialize_absence(row) for row in items]}


@router.post("/absences", status_code=status.HTTP_201_CREATED)
def create_absence(
    payload: AbsenceCreatePayload,
    _: RequestUserContext = Depends(require_permission(Permission.TEAM, Permission.PLANNER)),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _service(db)
    absence = service.create_absence(
        AbsenceCreateData(
            employee_id=payload.employee_id,
            start_date=payload.start_date,
            end_date=payload.end_date,
            type=payload.type,
            hours=payload.hours,
            description=payload.description,
        )
    )
    return service.serialize_absence(absence)


@router.delete("/absences/{absence_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_absence(
    absence_id: UUID,
    _: RequestUserContext = Depends(require_permission(Permission.TEAM, Permission.PLANNER)),
    db: Session = Depends(get_db_session),
) -> Response:
    _service(db).delete_absence(absence_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ---------- Team events ----------
@router.get("/team-events")
def list_team_events(
    from_date: date | None = Query(default=None),
    to_date: date | None = Query(default=None),
    _: RequestUserContext = Depends(require_permission(Permission.TEAM, Permission.PLANNER)),
    db: Session = Depends(get_db_session),
) -> dict[str, list[object]]:
    service = _service(db)
    items = service.list_team_events(from_date=from_date, to_date=to_date)
    return {"items": [service.serialize_team_event(row) for row in items]}


@router.post("/team-events", status_code=status.HTTP_201_CREATED)
def create_team_event(
    payload: TeamEventCreatePayload,
    _: RequestUserContext = Depends(require_permission(Permission.TEAM)),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _service(db)
    event = service.create_team_event(
        TeamEventCreateData(
            name=payload.name,
            event_date=payload.event_date,
            hours_reduction=payload.hours_reduction,
            affected_employee_ids=payload.affected_employee_ids,
            description=payload.description,
        )
    )
    return service.serialize_team_event(event)


@router.delete("/team-events/{event_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_team_event(
    event_id: UUID,
    _: RequestUserContext = Depends(require_permission(Permission.TEAM)),
    db: Session = Depends(get_db_session),
) -> Response:
    _service(db).delete_team_event(event_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
