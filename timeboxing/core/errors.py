"""Error categorisation used to pick user-facing messages."""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass

import httpx
from fastapi import HTTPException
from pydantic import ValidationError
from sqlalchemy.exc import IntegrityError

logger = logging.getLogger(__name__)


class ErrorType(str, enum.Enum):
    NETWORK = "network"
    VALIDATION = "validation"
    AUTHENTICATION = "authentication"
    PERMISSION = "permission"
    NOT_FOUND = "not_found"
    SERVER = "server"
    UNKNOWN = "unknown"


USER_MESSAGES: dict[ErrorType, str] = {
    ErrorType.NETWORK: "Error de conexión. Verifica tu internet e intenta de nuevo.",
    ErrorType.VALIDATION: "Por favor, completa todos los campos correctamente.",
    ErrorType.AUTHENTICATION: "Tu sesión ha expirado. Por favor, inicia sesión de nuevo.",
    ErrorType.PERMISSION: "No tienes permisos para realizar esta acción.",
    ErrorType.NOT_FOUND: "No se encontró el recurso solicitado.",
    ErrorType.SERVER: "Error del servidor. Por favor, intenta más tarde.",
    ErrorType.UNKNOWN: "Ocurrió un error inesperado. Por favor, intenta de nuevo.",
}

RETRYABLE_TYPES = {ErrorType.NETWORK, ErrorType.SERVER}


@dataclass(frozen=True)
class AppError:
    """Structured error resolved from an exception."""

    type: ErrorType
    message: str
    context: str | None = None
    user_message: str | None = None
    retryable: bool = False

    def to_payload(self) -> dict[str, object]:
        return {
            "detail": self.user_message or USER_MESSAGES[self.type],
            "error_type": self.type.value,
            "retryable": self.retryable,
        }


def _status_code_of(error: BaseException) -> int | None:
    if isinstance(error, HTTPException):
        return error.status_code
    if isinstance(error, httpx.HTTPStatusError):
        return error.response.status_code
    status_code = getattr(error, "status_code", None)
    return status_code if isinstance(status_code, int) else None


def detect_error_type(error: BaseException | None) -> ErrorType:
    """Map an exception to the coarse category shown to users."""

    if error is None:
        return ErrorType.UNKNOWN

    message = str(error).lower()
    if isinstance(error, (httpx.TransportError, ConnectionError)) or "network" in message:
        return ErrorType.NETWORK

    if isinstance(error, (ValidationError, IntegrityError, ValueError)) or any(
        token in message for token in ("validation", "required")
    ):
        return ErrorType.VALIDATION

    status_code = _status_code_of(error)
    if status_code == 401 or "auth" in message:
        return ErrorType.AUTHENTICATION
    if status_code == 403 or "permission" in message:
        return ErrorType.PERMISSION
    if status_code == 404:
        return ErrorType.NOT_FOUND
    if status_code is not None and status_code >= 500:
        return ErrorType.SERVER
    return ErrorType.UNKNOWN


def create_error(message: str, error_type: ErrorType = ErrorType.UNKNOWN, context: str | None = None) -> AppError:
    return AppError(
        type=error_type,
        message=message,
        context=context,
        user_message=USER_MESSAGES[error_type],
        retryable=error_type in RETRYABLE_TYPES,
    )


def handle_error(
    error: BaseException,
    context: str,
    *,
    log_level: str = "error",
    user_message: str | None = None,
) -> AppError:
    """Log an exception under ``context`` and return its structured form."""

    error_type = detect_error_type(error)
    app_error = AppError(
        type=error_type,
        message=str(error) or error.__class__.__name__,
        context=context,
        user_message=user_message or USER_MESSAGES[error_type],
        retryable=error_type in RETRYABLE_TYPES,
    )

    if log_level in {"warn", "warning"}:
        logger.warning("Error in %s: %s", context, app_error.message)
    else:
        logger.error("Error in %s: %s", context, app_error.message, exc_info=error)
    return app_error
