"""
Error taxonomy for admin operations and the HTTP handlers that render them.
"""

from __future__ import annotations

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse


class AdminError(Exception):
    """Base class for failures surfaced to the operator as an alert."""

    status_code = 400

    @property
    def message(self) -> str:
        return str(self.args[0]) if self.args else self.__class__.__name__


class ValidationError(AdminError):
    """A draft is missing required fields; raised before any backend call."""

    status_code = 422

    def __init__(self, message: str, missing: list[str] | None = None):
        super().__init__(message)
        self.missing = missing or []


class NotFoundError(AdminError):
    status_code = 404


class PolicyRejectedError(AdminError):
    """The backend accepted the call but affected zero rows."""

    status_code = 403


class BackendError(AdminError):
    """The backend raised; carries its raw message."""

    status_code = 502


class UploadInProgressError(AdminError):
    status_code = 409


class AuthError(AdminError):
    status_code = 401


def register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(AdminError)
    async def handle_admin_error(request: Request, error: AdminError):
        payload = {"error": error.__class__.__name__, "message": error.message}
        if isinstance(error, ValidationError) and error.missing:
            payload["missing"] = error.missing
        return JSONResponse(status_code=error.status_code, content=payload)
