from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel


class ErrorResponse(BaseModel):
    """Standard error response schema."""

    error: str
    detail: str | None = None
    status_code: int


class AppError(Exception):
    """Base application exception."""

    def __init__(self, message: str, status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR) -> None:
        self.message = message
        self.status_code = status_code
        super().__init__(self.message)


class DraftValidationError(AppError):
    """Client-local validation failure. Never reaches the HR API."""

    def __init__(self, message: str, missing: list[str] | None = None) -> None:
        super().__init__(message, status_code=status.HTTP_422_UNPROCESSABLE_ENTITY)
        self.missing = missing or []


class NotAuthenticatedError(AppError):
    """No valid portal session, or the HR API refused the token."""

    def __init__(self, message: str = "Not authenticated") -> None:
        super().__init__(message, status_code=status.HTTP_401_UNAUTHORIZED)


class AuthorizationError(AppError):
    """The acting user lacks the role for the operation."""

    def __init__(self, message: str = "Not authorized") -> None:
        super().__init__(message, status_code=status.HTTP_403_FORBIDDEN)


class StateConflictError(AppError):
    """Transition attempted on a request that is terminal or already moved on."""

    def __init__(self, message: str, upstream_status: int | None = None) -> None:
        super().__init__(message, status_code=status.HTTP_409_CONFLICT)
        self.upstream_status = upstream_status


class UpstreamError(AppError):
    """Transport failure or 5xx from the HR API."""

    def __init__(self, message: str, upstream_status: int | None = None) -> None:
        super().__init__(message, status_code=status.HTTP_502_BAD_GATEWAY)
        self.upstream_status = upstream_status


async def _app_exception_handler(request: Request, exc: AppError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(
            error=type(exc).__name__,
            detail=exc.message,
            status_code=exc.status_code,
        ).model_dump(),
    )


async def _validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content=ErrorResponse(
            error="ValidationError",
            detail=str(exc.errors()),
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        ).model_dump(),
    )


def setup_exception_handlers(app: FastAPI) -> None:
    """Register exception handlers on the application."""
    app.add_exception_handler(AppError, _app_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, _validation_exception_handler)  # type: ignore[arg-type]
