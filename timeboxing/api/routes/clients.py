"""Client and project endpoints."""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response, status
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from timeboxing.core.auth import Permission, RequestUserContext, require_permission
from timeboxing.db.dependencies import get_db_session
from timeboxing.models.entities import ProjectHealth, ProjectStatus
from timeboxing.services.planning_service import (
    ClientData,
    PlanningService,
    ProjectCreateData,
    ProjectUpdateData,
)
from timeboxing.services.reporting_service import ReportingService

router = APIRouter(tags=["clients"])

HEX_COLOR = r"^#[0-9a-fA-F]{6}$"


class ClientCreatePayload(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    color: str = Field(default="#6366f1", pattern=HEX_COLOR)


class ClientUpdatePayload(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=200)
    color: str | None = Field(default=None, pattern=HEX_COLOR)


class ProjectCreatePayload(BaseModel):
    client_id: UUID
    name: str = Field(min_length=1, max_length=200)
    budget_hours: float = Field(default=0.0, ge=0, le=10000)
    minimum_hours: float = Field(default=0.0, ge=0, le=10000)
    status: ProjectStatus = ProjectStatus.ACTIVE
    monthly_fee: float | None = Field(default=None, ge=0)
    health_status: ProjectHealth | None = None


class ProjectUpdatePayload(BaseModel):
    client_id: UUID | None = None
    name: str | None = Field(default=None, min_length=1, max_length=200)
    budget_hours: float | None = Field(default=None, ge=0, le=10000)
    minimum_hours: float | None = Field(default=None, ge=0, le=10000)
    status: ProjectStatus | None = None
    monthly_fee: float | None = Field(default=None, ge=0)
    health_status: ProjectHealth | None = None


def _explicit_nulls(payload: BaseModel) -> frozenset[str]:
    return frozenset(name for name, value in payload.model_dump(exclude_unset=True).items() if value is None)


def _service(db: Session) -> PlanningService:
    return PlanningService(db)


# ---------- Clients ----------
@router.get("/clients")
def list_clients(
    _: RequestUserContext = Depends(require_permission(Permission.CLIENTS, Permission.PROJECTS, Permission.PLANNER)),
    db: Session = Depends(get_db_session),
) -> dict[str, list[object]]:
    service = _service(db)
    return {"items": [service.serialize_client(row) for row in service.list_clients()]}


@router.post("/clients", status_code=status.HTTP_201_CREATED)
def create_client(
    payload: ClientCreatePayload,
    _: RequestUserContext = Depends(require_permission(Permission.CLIENTS)),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _service(db)
    return service.serialize_client(service.create_client(ClientData(name=payload.name, color=payload.color)))


@router.patch("/clients/{client_id}")
def update_client(
    client_id: UUID,
    payload: ClientUpdatePayload,
    _: RequestUserContext = Depends(require_permission(Permission.CLIENTS)),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _service(db)
    client = service.update_client(client_id, ClientData(name=payload.name, color=payload.color))
    return service.serialize_client(client)


@router.delete("/clients/{client_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_client(
    client_id: UUID,
    _: RequestUserContext = Depends(require_permission(Permission.CLIENTS)),
    db: Session = Depends(get_db_session),
) -> Response:
    _service(db).delete_client(client_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/clients/{client_id}/usage")
def get_client_usage(
    client_id: UUID,
    month: str = Query(...),
    _: RequestUserContext = Depends(require_permission(Permission.CLIENTS, Permission.CLIENT_REPORTS)),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = ReportingService(db)
    usage = service.client_month_usage(client_id, month)
    return {"client_id": str(client_id), "month": month, **service.serialize_usage(usage)}


# ---------- Projects ----------
@router.get("/projects")
def list_projects(
    client_id: UUID | None = Query(default=None),
    status_filter: ProjectStatus | None = Query(default=None, alias="status"),
    _: RequestUserContext = Depends(require_permission(Permission.PROJECTS, Permission.PLANNER)),
    db: Session = Depends(get_db_session),
) -> dict[str, list[object]]:
    service = _service(db)
    items = service.list_projects(client_id=client_id, status_filter=status_filter)
    return {"items": [service.serialize_project(row) for row in items]}


@router.post("/projects", status_code=status.HTTP_201_CREATED)
def create_project(
    payload: ProjectCreatePayload,
    _: RequestUserContext = Depends(require_permission(Permission.PROJECTS)),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _service(db)
    project = service.create_project(
        ProjectCreateData(
            client_id=payload.client_id,
            name=payload.name,
            budget_hours=payload.budget_hours,
            minimum_hours=payload.minimum_hours,
            status=payload.status,
            monthly_fee=payload.monthly_fee,
            health_status=payload.health_status,
        )
    )
    return service.serialize_project(project)


@router.patch("/projects/{project_id}")
def update_project(
    project_id: UUID,
    payload: ProjectUpdatePayload,
    _: RequestUserContext = Depends(require_permission(Permission.PROJECTS)),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _service(db)
    project = service.update_project(
        project_id,
        ProjectUpdateData(
            client_id=payload.client_id,
            name=payload.name,
            budget_hours=payload.budget_hours,
            minimum_hours=payload.minimum_hours,
            status=payload.status,
            monthly_fee=payload.monthly_fee,
            health_status=payload.health_status,
            cleared=_explicit_nulls(payload),
        ),
    )
    return service.serialize_project(project)


@router.delete("/projects/{project_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_project(
    project_id: UUID,
    _: RequestUserContext = Depends(require_permission(Permission.PROJECTS)),
    db: Session = Depends(get_db_session),
) -> Response:
    _service(db).delete_project(project_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
