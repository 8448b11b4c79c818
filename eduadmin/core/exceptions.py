"""
Platform-wide exception hierarchy.

Services raise these; the API blueprint registers one handler per type and
turns them into the standard failure envelope. Every message is safe to
show to the end user.

Usage:
    from eduadmin.core.exceptions import NotFoundError, ForbiddenError

    raise NotFoundError(resource="Program", resource_id="prog_1a2b")
    raise ForbiddenError("Access denied. Only HQ can create programs.")
    raise InvalidInputError("Invalid visibility", details={"visibility": "..."})
"""


class NotFoundError(Exception):
    """Raised when a record does not exist in the requested collection.

    Hidden-but-existing records raise ForbiddenError instead, so callers can
    tell "doesn't exist" apart from "exists but not visible to you".

    Args:
        resource: Human-readable entity label (e.g. "Program", "Teacher").
        resource_id: The identifier that was looked up.
    """

    def __init__(self, resource: str, resource_id: str | None = None) -> None:
        self.resource = resource
        self.resource_id = resource_id
        super().__init__(f"{resource} not found")


class ForbiddenError(Exception):
    """Raised when role or visibility rules deny a read or a mutation.

    Args:
        message: Reason shown to the caller.
        role: Caller role, kept for logging.
        operation: create | update | delete | read, kept for logging.
    """

    def __init__(
        self,
        message: str = "Access denied",
        *,
        role: str | None = None,
        operation: str | None = None,
    ) -> None:
        self.role = role
        self.operation = operation
        super().__init__(message)


class InvalidInputError(Exception):
    """Raised when a request body or query parameter is malformed.

    Args:
        message: Human-readable explanation of what failed.
        details: Optional field-level breakdown; keys are field names.
    """

    def __init__(self, message: str, details: dict | None = None) -> None:
        self.details = details or {}
        super().__init__(message)
