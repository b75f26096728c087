"""
Error taxonomy shared by the persistence layer, the auth service and the
RPC host.

Each layer wraps the failure below it with a short context
(``raise BackendError("unable to create user") from exc``) and the RPC
boundary maps the class to a status code.
"""

from __future__ import annotations

from typing import Iterable, Tuple


class AuthServiceError(Exception):
    """Base class for every error raised by this service."""


class ValidationError(AuthServiceError):
    """Malformed request fields.  Carries the names of the violating fields."""

    def __init__(self, fields: Iterable[str]):
        self.fields: Tuple[str, ...] = tuple(sorted(set(fields)))
        super().__init__("invalid fields: " + ", ".join(self.fields))


class ConflictError(AuthServiceError):
    """A uniqueness collision (username or email already taken)."""


class NotFoundError(AuthServiceError):
    """User lookup miss."""


class AuthError(AuthServiceError):
    """Credential mismatch."""


class BackendError(AuthServiceError):
    """Any transport, pool or SQL failure."""


class FatalError(AuthServiceError):
    """Startup failure; the process exits non-zero."""


class UniqueViolation(ConflictError):
    """Insert rejected by the unique constraint on email or username."""


class UserNotFound(NotFoundError):
    pass
