"""Domain exceptions raised by services and translated by the global error handlers."""

from __future__ import annotations

from typing import Any


class AppError(Exception):
    """Base class for errors that map onto a JSON error response."""

    status_code = 400

    def __init__(self, detail: str) -> None:
        super().__init__(detail)
        self.detail = detail

    def payload(self) -> dict[str, Any]:
        return {"detail": self.detail}


class AuthenticationRequired(AppError):
    status_code = 401

    def __init__(self, detail: str = "Authentication required") -> None:
        super().__init__(detail)


class AuthorizationError(AppError):
    """Caller lacks the role required for the action. Raised before any mutation."""

    status_code = 403

    def __init__(self, detail: str = "Unauthorized: Admin access required") -> None:
        super().__init__(detail)


class NotFoundError(AppError):
    status_code = 404


class ConflictError(AppError):
    """Uniqueness or immutability violation with a user-facing message."""

    status_code = 409


class UploadValidationError(AppError):
    """Image rejected before any network call."""

    status_code = 400

    def __init__(self, detail: str, code: str) -> None:
        super().__init__(detail)
        self.code = code

    def payload(self) -> dict[str, Any]:
        return {"detail": self.detail, "code": self.code}


class ReorderError(AppError):
    """A bulk reorder stopped partway; the already-applied positions stay persisted."""

    status_code = 409

    def __init__(self, detail: str, log: Any) -> None:  # noqa: ANN401
        super().__init__(detail)
        self.log = log

    def payload(self) -> dict[str, Any]:
        return {"detail": self.detail, "reorder": self.log.as_dict()}


class StorageError(AppError):
    """The object store rejected or failed an operation."""

    status_code = 502
