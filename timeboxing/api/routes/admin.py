"""Administration endpoints for users and their section permissions."""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from timeboxing.core.auth import (
    Permission,
    RequestUserContext,
    ensure_user_principal,
    normalize_permissions,
    require_admin,
)
from timeboxing.db.dependencies import get_db_session
from timeboxing.models.entities import User
from timeboxing.repositories.planning_repository import PlanningRepository
from timeboxing.services.formatting import is_valid_email

router = APIRouter(prefix="/admin", tags=["admin"])


class UserCreatePayload(BaseModel):
    subject: str = Field(min_length=1, max_length=128)
    email: str = Field(min_length=3, max_length=320)
    display_name: str | None = Field(default=None, min_length=1, max_length=255)
    is_admin: bool = False
    permissions: dict[Permission, bool] | None = None


class UserUpdatePayload(BaseModel):
    display_name: str | None = Field(default=None, min_length=1, max_length=255)
    is_admin: bool | None = None
    permissions: dict[Permission, bool] | None = None
    employee_id: UUID | None = None


def _serialize_user(user: User) -> dict[str, object]:
    return {
        "id": str(user.id),
        "subject": user.subject,
        "email": user.email,
        "display_name": user.display_name,
        "is_admin": user.is_admin,
        "permissions": normalize_permissions(user.permissions),
        "employee_id": str(user.employee_id) if user.employee_id else None,
        "last_login_at": user.last_login_at.isoformat() if user.last_login_at else None,
        "created_at": user.created_at.isoformat(),
        "updated_at": user.updated_at.isoformat(),
    }


def _permission_flags(raw: dict[Permission, bool] | None) -> dict[str, bool] | None:
    if raw is None:
        return None
    return {permission.value: allowed for permission, allowed in raw.items()}


def _validate_email(value: str) -> str:
    normalized = value.strip().lower()
    if not is_valid_email(normalized):
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="email must be a valid email address.",
        )
    return normalized


@router.get("/users")
def list_users(
    _: RequestUserContext = Depends(require_admin()),
    db: Session = Depends(get_db_session),
) -> dict[str, list[object]]:
    return {"items": [_serialize_user(user) for user in PlanningRepository(db).list_users()]}


@router.post("/users", status_code=status.HTTP_201_CREATED)
def create_user(
    payload: UserCreatePayload,
    _: RequestUserContext = Depends(require_admin()),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    """Provision a user ahead of their first login."""

    email = _validate_email(payload.email)
    existing = PlanningRepository(db).get_user_by_email(email)
    if existing is not None and existing.subject != payload.subject.strip():
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="User with this email already exists with a different subject.",
        )

    try:
        user = ensure_user_principal(
            db,
            subject=payload.subject,
            email=email,
            display_name=payload.display_name or email,
            is_admin=payload.is_admin,
            permissions=_permission_flags(payload.permissions),
        )
    except IntegrityError as exc:
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="User subject or email already exists.",
        ) from exc
    return _serialize_user(user)


@router.patch("/users/{user_id}")
def update_user(
    user_id: UUID,
    payload: UserUpdatePayload,
    context: RequestUserContext = Depends(require_admin()),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    repo = PlanningRepository(db)
    user = repo.get_user(user_id)
    if user is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found.")

    if payload.is_admin is False and user.id == context.user_id:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Administrators cannot revoke their own admin role.",
        )
    if payload.employee_id is not None and repo.get_employee(payload.employee_id) is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Employee not found.")

    if payload.display_name is not None:
        user.display_name = payload.display_name.strip()
    if payload.is_admin is not None:
        user.is_admin = payload.is_admin
    if payload.permissions is not None:
        merged = normalize_permissions(user.permissions)
        merged.update(_permission_flags(payload.permissions))
        user.permissions = merged
    if "employee_id" in payload.model_fields_set:
        user.employee_id = payload.employee_id
    user.updated_at = datetime.utcnow()

    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Employee is already linked to another user.",
        ) from exc
    db.refresh(user)
    return _serialize_user(user)
