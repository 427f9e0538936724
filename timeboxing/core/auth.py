"""Authentication context extraction and section-permission guards."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from uuid import UUID

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy import select
from sqlalchemy.orm import Session

from timeboxing.core.config import get_settings
from timeboxing.db.dependencies import get_db_session
from timeboxing.models.entities import User


class Permission(str, Enum):
    """Application sections a user may be granted access to."""

    PLANNER = "can_access_planner"
    PROJECTS = "can_access_projects"
    CLIENTS = "can_access_clients"
    TEAM = "can_access_team"
    REPORTS = "can_access_reports"
    CLIENT_REPORTS = "can_access_client_reports"
    GOOGLE_ADS = "can_access_google_ads"
    META_ADS = "can_access_meta_ads"
    ADS_REPORTS = "can_access_ads_reports"
    DEADLINES = "can_access_deadlines"


PERMISSION_LABELS: dict[Permission, str] = {
    Permission.PLANNER: "Planificador",
    Permission.PROJECTS: "Proyectos",
    Permission.CLIENTS: "Clientes",
    Permission.TEAM: "Equipo",
    Permission.REPORTS: "Reportes",
    Permission.CLIENT_REPORTS: "Informes de clientes",
    Permission.GOOGLE_ADS: "Google Ads",
    Permission.META_ADS: "Meta Ads",
    Permission.ADS_REPORTS: "Informes automatizados",
    Permission.DEADLINES: "Deadlines",
}


def default_permissions() -> dict[str, bool]:
    return {permission.value: True for permission in Permission}


def normalize_permissions(raw: dict | None) -> dict[str, bool]:
    """Fill missing flags with the default (allowed) and drop unknown keys."""

    resolved = default_permissions()
    for key, value in (raw or {}).items():
        if key in resolved:
            resolved[key] = bool(value)
    return resolved


@dataclass(frozen=True)
class RequestUserContext:
    """Authenticated request actor resolved from headers and DB state."""

    user_id: UUID
    subject: str
    email: str
    display_name: str
    is_admin: bool
    employee_id: UUID | None = None
    permissions: dict[str, bool] = field(default_factory=default_permissions)

    def can(self, permission: Permission) -> bool:
        if self.is_admin:
            return True
        return self.permissions.get(permission.value, True)


def _require_identity_headers(
    x_auth_subject: str | None,
    x_auth_email: str | None,
    x_auth_display_name: str | None,
) -> tuple[str, str, str]:
    if not x_auth_subject or not x_auth_email:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=(
                "Missing identity headers. Expected X-AUTH-SUBJECT and X-AUTH-EMAIL or enable development "
                "principal fallback."
            ),
        )

    display_name = x_auth_display_name or x_auth_email
    return x_auth_subject.strip(), x_auth_email.strip().lower(), display_name.strip()


def _resolve_identity(
    x_auth_subject: str | None,
    x_auth_email: str | None,
    x_auth_display_name: str | None,
) -> tuple[str, str, str]:
    settings = get_settings()
    if x_auth_subject and x_auth_email:
        return _require_identity_headers(x_auth_subject, x_auth_email, x_auth_display_name)

    if settings.auth_allow_dev_principal:
        return (
            settings.auth_dev_subject.strip(),
            settings.auth_dev_email.strip().lower(),
            settings.auth_dev_display_name.strip(),
        )

    return _require_identity_headers(x_auth_subject, x_auth_email, x_auth_display_name)


def _upsert_user(db: Session, *, subject: str, email: str, display_name: str) -> User:
    user = db.scalar(select(User).where(User.subject == subject))
    now = datetime.utcnow()

    if user is None:
        user = User(
            subject=subject,
            email=email,
            display_name=display_name,
            is_admin=False,
            permissions=default_permissions(),
            last_login_at=now,
            created_at=now,
            updated_at=now,
        )
        db.add(user)
        db.flush()
        return user

    changed = False
    if user.email != email:
        user.email = email
        changed = True
    if user.display_name != display_name:
        user.display_name = display_name
        changed = True

    user.last_login_at = now
    if changed:
        user.updated_at = now
    db.flush()
    return user


def ensure_user_principal(
    db: Session,
    *,
    subject: str,
    email: str,
    display_name: str,
    is_admin: bool | None = None,
    permissions: dict[str, bool] | None = None,
) -> User:
    """Ensure user exists and return persisted row.

    Utility exported for tests, seed helpers and admin user provisioning.
    """

    normalized_email = email.strip().lower()
    user = _upsert_user(
        db,
        subject=subject.strip(),
        email=normalized_email,
        display_name=display_name.strip() or normalized_email,
    )
    if is_admin is not None:
        user.is_admin = is_admin
    if permissions is not None:
        user.permissions = normalize_permissions(permissions)
    db.commit()
    db.refresh(user)
    return user


def context_from_user(user: User) -> RequestUserContext:
    return RequestUserContext(
        user_id=user.id,
        subject=user.subject,
        email=user.email,
        display_name=user.display_name,
        is_admin=user.is_admin,
        employee_id=user.employee_id,
        permissions=normalize_permissions(user.permissions),
    )


def get_current_user_context(
    x_auth_subject: str | None = Header(default=None, alias="X-AUTH-SUBJECT"),
    x_auth_email: str | None = Header(default=None, alias="X-AUTH-EMAIL"),
    x_auth_display_name: str | None = Header(default=None, alias="X-AUTH-DISPLAY-NAME"),
    db: Session = Depends(get_db_session),
) -> RequestUserContext:
    """Resolve current request user and section permissions.

    Identity headers are set by the trusted auth proxy in front of the API.
    """

    subject, email, display_name = _resolve_identity(x_auth_subject, x_auth_email, x_auth_display_name)
    user = _upsert_user(db, subject=subject, email=email, display_name=display_name)
    db.commit()
    return context_from_user(user)


def has_permission(context: RequestUserContext, required: set[Permission]) -> bool:
    """Check whether user may access any of the required sections."""

    return any(context.can(permission) for permission in required)


def require_permission(*permissions: Permission):
    """Dependency factory requiring access to at least one section."""

    required = set(permissions)

    def dependency(context: RequestUserContext = Depends(get_current_user_context)) -> RequestUserContext:
        if not has_permission(context, required):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Insufficient permissions for this section.",
            )
        return context

    return dependency


def require_admin():
    """Dependency factory restricting an endpoint to administrators."""

    def dependency(context: RequestUserContext = Depends(get_current_user_context)) -> RequestUserContext:
        if not context.is_admin:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Administrator role required for this operation.",
            )
        return context

    return dependency
