"""Health check endpoints."""

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from timeboxing.core.errors import handle_error
from timeboxing.db.dependencies import get_db_session

router = APIRouter()


@router.get("/health")
def health() -> dict[str, str]:
    """Simple liveness endpoint."""

    return {"status": "ok"}


@router.get("/health/db")
def database_health(db: Session = Depends(get_db_session)) -> dict[str, str]:
    """Readiness endpoint checking the database connection."""

    try:
        db.execute(text("SELECT 1"))
    except SQLAlchemyError as exc:
        app_error = handle_error(exc, "health:db")
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=app_error.message) from exc
    return {"status": "ok", "database": db.get_bind().dialect.name}
