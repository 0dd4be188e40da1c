"""Typed errors for the request lifecycle.

Every failure a caller can act on is a ``WorkflowError`` tagged with an
``ErrorKind``, so the HTTP layer (and tests) can branch on ``error.kind``
instead of parsing messages. Each error carries the status code and message
that are surfaced verbatim to the client.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Optional


class ErrorKind(str, enum.Enum):
    """Error taxonomy for lifecycle operations."""
    NOT_FOUND = "not_found"
    INVALID_TRANSITION = "invalid_transition"
    UNAUTHORIZED = "unauthorized"
    VALIDATION = "validation"
    PERSISTENCE = "persistence"


@dataclass
class WorkflowError(Exception):
    """Base error for request lifecycle operations.

    Attributes:
        message: Caller-facing description
        cause: Optional underlying exception, never exposed to clients
    """

    message: str
    cause: Optional[Exception] = field(default=None, repr=False)

    kind = ErrorKind.PERSISTENCE
    status_code = 500

    def __str__(self) -> str:
        return self.message

    def __post_init__(self) -> None:
        super().__init__(self.message)


@dataclass
class NotFoundError(WorkflowError):
    """Request, receipt, or actor does not exist."""

    kind = ErrorKind.NOT_FOUND
    status_code = 404


@dataclass
class InvalidTransitionError(WorkflowError):
    """Action is not legal for the current status.

    Attributes:
        current_status: Status code the entity was in when the action was refused
    """

    current_status: Optional[int] = None

    kind = ErrorKind.INVALID_TRANSITION
    status_code = 400


@dataclass
class UnauthorizedError(WorkflowError):
    """Actor's role is not permitted to perform the action.

    Attributes:
        role: Role value that was refused
    """

    role: Optional[int] = None

    kind = ErrorKind.UNAUTHORIZED
    status_code = 400


@dataclass
class ValidationFailedError(WorkflowError):
    """Malformed input.

    Attributes:
        field_name: Name of the offending field, if a single field is at fault
        index: Position of the offending item in a batch
    """

    field_name: Optional[str] = None
    index: Optional[int] = None

    kind = ErrorKind.VALIDATION
    status_code = 400


@dataclass
class PersistenceError(WorkflowError):
    """Store failure during a transactional write.

    The message is kept generic; the original exception is only kept in
    ``cause`` for logging.
    """

    kind = ErrorKind.PERSISTENCE
    status_code = 500
