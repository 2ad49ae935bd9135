"""Domain errors raised by the services.

Every error carries a ``kind`` so API clients can tell a client mistake
(``validation``, ``not_found``) from a defined outcome (``already_done``)
and from a storage failure worth retrying (``persistence``).
"""


class ServiceError(ValueError):
    """Base class for service-level errors."""

    kind = "error"

    def __init__(self, message: str = ""):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {"kind": self.kind, "detail": self.message}


class ValidationError(ServiceError):
    """Request data is well-formed but violates a goal or task invariant."""

    kind = "validation"


class NotFoundError(ServiceError):
    """Entity does not exist or is not owned by the requesting user."""

    kind = "not_found"


class AuthenticationError(ServiceError):
    """Credentials did not match a user."""

    kind = "unauthorized"


class AlreadyCompletedTodayError(ServiceError):
    """The goal already has a completion logged for the given day."""

    kind = "already_done"

    def __init__(self, message: str = "Already completed today"):
        super().__init__(message)


class PersistenceError(ServiceError):
    """A storage operation failed; the surrounding transaction was aborted."""

    kind = "persistence"
