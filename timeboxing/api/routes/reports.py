"""Client report, employee dashboard and export endpoints."""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.responses import Response
from sqlalchemy.orm import Session

from timeboxing.core.auth import Permission, RequestUserContext, require_permission
from timeboxing.db.dependencies import get_db_session
from timeboxing.services.reporting_service import ReportingService

router = APIRouter(tags=["reports"])


def _service(db: Session) -> ReportingService:
    return ReportingService(db)


@router.get("/reports/clients")
def get_client_report(
    month: str = Query(..., description="YYYY-MM"),
    _: RequestUserContext = Depends(require_permission(Permission.REPORTS, Permission.CLIENT_REPORTS)),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    return _service(db).client_report(month)


@router.get("/reports/employees/{employee_id}")
def get_employee_dashboard(
    employee_id: UUID,
    month: str = Query(..., description="YYYY-MM"),
    _: RequestUserContext = Depends(require_permission(Permission.REPORTS, Permission.PLANNER)),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    return _service(db).employee_dashboard(employee_id, month)


@router.get("/reports/me")
def get_my_dashboard(
    month: str = Query(..., description="YYYY-MM"),
    context: RequestUserContext = Depends(require_permission(Permission.PLANNER)),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    """Dashboard of the employee linked to the current user."""

    if context.employee_id is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Current user is not linked to an employee.",
        )
    return _service(db).employee_dashboard(context.employee_id, month)


@router.get("/exports/client-report")
def export_client_report(
    month: str = Query(..., description="YYYY-MM"),
    format: str = Query(default="xlsx"),
    _: RequestUserContext = Depends(require_permission(Permission.REPORTS, Permission.CLIENT_REPORTS)),
    db: Session = Depends(get_db_session),
) -> Response:
    exported = _service(db).export_client_report(month, format)
    return Response(
        content=exported.content,
        media_type=exported.media_type,
        headers={"Content-Disposition": f'attachment; filename="{exported.filename}"'},
    )
