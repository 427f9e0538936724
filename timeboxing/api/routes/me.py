"""Current user endpoint."""

from fastapi import APIRouter, Depends

from timeboxing.core.auth import PERMISSION_LABELS, RequestUserContext, get_current_user_context

router = APIRouter(prefix="/me", tags=["me"])


@router.get("")
def get_me(context: RequestUserContext = Depends(get_current_user_context)) -> dict[str, object]:
    """Return current authenticated user profile and section permissions."""

    return {
        "id": str(context.user_id),
        "subject": context.subject,
        "email": context.email,
        "display_name": context.display_name,
        "is_admin": context.is_admin,
        "employee_id": str(context.employee_id) if context.employee_id else None,
        "permissions": {
            permission.value: {"label": label, "allowed": context.can(permission)}
            for permission, label in PERMISSION_LABELS.items()
        },
    }
