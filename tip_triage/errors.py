"""Error taxonomy for the tip verification engine.

Every error carries an HTTP status, a stable code and a details dict so the
API layer can render it without knowing the concrete type.

| Error                 | Status | Raised when                                        |
|-----------------------|--------|----------------------------------------------------|
| ValidationError       | 400    | Missing or malformed request field                 |
| AuthenticationError   | 401    | No caller could be resolved from the request       |
| ForbiddenError        | 403    | Caller lacks the role for the operation            |
| NotFoundError         | 404    | Referenced tip, record or queue item is missing    |
| ConflictError         | 409    | Existing record, non-pending claim, non-assignee   |
| PersistenceError      | 500    | Storage failure; aborts the whole operation        |
| UpstreamDegradation   | n/a    | Optional vision call failed; recovered locally     |
"""

from http import HTTPStatus
from typing import Any, Dict, List, Optional


class TipTriageError(Exception):
    """
    Base exception for all engine errors.

    Attributes:
        message: Error message
        status_code: HTTP status code
        code: Application error code
        details: Additional error details
    """

    def __init__(
        self,
        message: str,
        status_code: int = HTTPStatus.INTERNAL_SERVER_ERROR,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.status_code = int(status_code)
        self.code = code or self.__class__.__name__
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for API responses."""
        return {
            "error": {
                "code": self.code,
                "message": self.message,
                "details": self.details,
            }
        }

    def __str__(self) -> str:
        return f"{self.code}: {self.message}"


class ValidationError(TipTriageError):
    """Raised when a request is missing a required field or has a bad value."""

    def __init__(
        self,
        message: str,
        field_errors: Optional[Dict[str, List[str]]] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        details = details or {}
        if field_errors:
            details["field_errors"] = field_errors
        super().__init__(
            message=message,
            status_code=HTTPStatus.BAD_REQUEST,
            code="VALIDATION_ERROR",
            details=details,
        )


class AuthenticationError(TipTriageError):
    """Raised when the request carries no resolvable caller identity."""

    def __init__(self, message: str = "Authentication required"):
        super().__init__(
            message=message,
            status_code=HTTPStatus.UNAUTHORIZED,
            code="AUTHENTICATION_REQUIRED",
        )


class ForbiddenError(TipTriageError):
    """Raised when the caller lacks the role required for an operation."""

    def __init__(self, message: str, required_roles: Optional[List[str]] = None):
        details = {}
        if required_roles:
            details["required_roles"] = sorted(required_roles)
        super().__init__(
            message=message,
            status_code=HTTPStatus.FORBIDDEN,
            code="FORBIDDEN",
            details=details,
        )


class NotFoundError(TipTriageError):
    """Raised when a referenced entity does not exist."""

    def __init__(self, resource: str, resource_id: str):
        super().__init__(
            message=f"{resource} '{resource_id}' not found",
            status_code=HTTPStatus.NOT_FOUND,
            code="NOT_FOUND",
            details={"resource": resource, "id": resource_id},
        )


class ConflictError(TipTriageError):
    """Raised when the current state of an entity forbids the operation.

    ``reason`` is a stable machine-readable string (e.g. ``already_verified``,
    ``not_pending``, ``not_assignee``) surfaced to the caller verbatim.
    """

    def __init__(
        self,
        message: str,
        reason: str,
        details: Optional[Dict[str, Any]] = None,
    ):
        details = dict(details or {})
        details["reason"] = reason
        self.reason = reason
        super().__init__(
            message=message,
            status_code=HTTPStatus.CONFLICT,
            code="CONFLICT",
            details=details,
        )


class InvalidTransitionError(ConflictError):
    """Raised when a state machine transition is not in its transition table."""

    def __init__(self, entity: str, current: str, target: str):
        super().__init__(
            message=f"{entity} cannot move from '{current}' to '{target}'",
            reason="invalid_transition",
            details={"entity": entity, "current": current, "target": target},
        )


class PersistenceError(TipTriageError):
    """Raised when the storage layer fails.

    Details always include the tip id and the stage reached so the
    verification can be replayed from logs.
    """

    def __init__(
        self,
        message: str,
        tip_id: Optional[str] = None,
        stage: Optional[str] = None,
    ):
        details: Dict[str, Any] = {}
        if tip_id:
            details["tip_id"] = tip_id
        if stage:
            details["stage"] = stage
        super().__init__(
            message=message,
            status_code=HTTPStatus.INTERNAL_SERVER_ERROR,
            code="PERSISTENCE_ERROR",
            details=details,
        )


class UpstreamDegradation(TipTriageError):
    """Raised by optional upstream collaborators (vision analysis).

    Never surfaced to API callers: the scoring engine catches it, logs it and
    scores the affected signal as if the collaborator were absent.
    """

    def __init__(self, provider: str, message: str):
        super().__init__(
            message=message,
            status_code=HTTPStatus.BAD_GATEWAY,
            code="UPSTREAM_DEGRADED",
            details={"provider": provider},
        )
        self.provider = provider


__all__ = [
    "TipTriageError",
    "ValidationError",
    "AuthenticationError",
    "ForbiddenError",
    "NotFoundError",
    "ConflictError",
    "InvalidTransitionError",
    "PersistenceError",
    "UpstreamDegradation",
]
