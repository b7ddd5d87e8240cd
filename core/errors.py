"""
core/errors.py -- Domain exception hierarchy.

Services raise these; api/main.py renders every TaskboardError into the
ErrorResponse envelope with the status and code carried on the class. Nothing
below the api/ layer imports fastapi, so stores and services stay usable from
scripts and unit tests.

Layer rule: core/ is the kernel and imports nothing from the project.
"""

from __future__ import annotations


class TaskboardError(Exception):
    """Base class for errors that map onto an HTTP response.

    Subclasses set status_code and code. Store failures and bugs are not
    TaskboardErrors: they reach the catch-all handler in api/main.py, which
    logs the traceback and answers 500 with a generic message.
    """

    status_code: int = 500
    code: str = "internal_error"

    def __init__(self, message: str, detail: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.detail = detail


class ValidationError(TaskboardError):
    """Malformed or missing request fields. Message lists each failing field."""

    status_code = 400
    code = "validation_error"


class AuthenticationError(TaskboardError):
    """Missing, malformed, expired, or orphaned bearer token."""

    status_code = 401
    code = "unauthenticated"


class AuthorizationError(TaskboardError):
    """Valid identity, insufficient role or ownership."""

    status_code = 403
    code = "forbidden"


class NotFoundError(TaskboardError):
    status_code = 404
    code = "not_found"


class ConflictError(TaskboardError):
    """Duplicate unique field. Reported as 400 to match the register contract."""

    status_code = 400
    code = "conflict"

