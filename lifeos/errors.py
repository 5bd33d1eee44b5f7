"""
Exception hierarchy for Life OS.

Every error carries a machine-readable `code` so callers (HTTP clients and
the in-process controllers alike) can branch on it without parsing English
messages.
"""
from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Any

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette import status

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Exception classes
# ---------------------------------------------------------------------------

class LifeOSError(Exception):
    """Base class for all application-level errors."""
    http_status: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    code: str = "INTERNAL_ERROR"

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict:
        payload: dict[str, Any] = {"code": self.code, "message": self.message}
        if self.details:
            payload["details"] = self.details
        return payload


class TransientIOError(LifeOSError):
    http_status = status.HTTP_503_SERVICE_UNAVAILABLE
    code = "STORE_UNAVAILABLE"

    def __init__(self, action: str, cause: BaseException | None = None):
        details = {"action": action}
        if cause is not None:
            details["cause"] = type(cause).__name__
        super().__init__(message=f"Could not {action}. Please try again.", details=details)


class ValidationError(LifeOSError):
    http_status = status.HTTP_422_UNPROCESSABLE_ENTITY
    code = "VALIDATION_ERROR"

    def __init__(self, message: str, field: str | None = None):
        super().__init__(message=message, details={"field": field} if field else {})


class NotFoundError(LifeOSError):
    http_status = status.HTTP_404_NOT_FOUND
    code = "NOT_FOUND"

    def __init__(self, entity: str, entity_id: str):
        super().__init__(
            message=f"{entity.capitalize()} {entity_id} not found.",
            details={"entity": entity, "id": entity_id},
        )


class ConsistencyWarning(LifeOSError):
    """The completion row changed but the streak counters were not updated."""
    http_status = status.HTTP_409_CONFLICT
    code = "STREAK_INCONSISTENT"

    def __init__(self, habit_id: str, day: str, completion_exists: bool, current_streak: int, best_streak: int):
        super().__init__(
            message=f"Habit {habit_id} completion for {day} was saved but its streak was not updated.",
            details={
                "habit_id": habit_id,
                "date": day,
                "completion_exists": completion_exists,
                "current_streak": current_streak,
                "best_streak": best_streak,
            },
        )


class ToggleInProgress(LifeOSError):
    http_status = status.HTTP_409_CONFLICT
    code = "TOGGLE_IN_PROGRESS"

    def __init__(self, key: str):
        super().__init__(
            message="This item is already being updated.",
            details={"key": key},
        )


class ConfigurationError(LifeOSError):
    code = "NOT_CONFIGURED"


# Driver, network and timeout failures; anything else is a bug and propagates.
BACKEND_ERRORS = (SQLAlchemyError, OSError, asyncio.TimeoutError)


@asynccontextmanager
async def transient_io(action: str):
    """Wrap store calls so backend failures surface as TransientIOError."""
    try:
        yield
    except BACKEND_ERRORS as exc:
        logger.warning("Store call failed while trying to %s: %s", action, exc)
        raise TransientIOError(action, exc) from exc


# ---------------------------------------------------------------------------
# FastAPI exception handlers
# ---------------------------------------------------------------------------

async def lifeos_exception_handler(request: Request, exc: LifeOSError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.http_status,
        content=exc.to_dict(),
    )


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    field_errors = []
    for error in exc.errors():
        field_errors.append({
            "field": ".".join(str(loc) for loc in error["loc"] if loc != "body"),
            "message": error["msg"],
            "type": error["type"],
        })
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "code": "VALIDATION_ERROR",
            "message": "Request validation failed.",
            "details": {"errors": field_errors},
        },
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled exception: %s", exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "code": "INTERNAL_ERROR",
            "message": "An unexpected error occurred.",
        },
    )
