"""
Domain errors raised by the authorization and session core.

Services raise these; only the API layer turns them into HTTP responses
(see the handlers registered in aloha.main).
"""


class AlohaError(Exception):
    """Base class for all domain errors."""

    detail = "Request failed"

    def __init__(self, detail: str | None = None) -> None:
        super().__init__(detail or self.detail)
        if detail:
            self.detail = detail


class DuplicateUsername(AlohaError):
    detail = "Username already taken"


class ConstraintViolation(AlohaError):
    """A uniqueness or referential constraint would be broken."""

    detail = "Constraint violation"


class NotFound(AlohaError):
    detail = "Not found"


class InvalidCredentials(AlohaError):
    """Wrong password or unknown username. The two are never distinguished."""

    detail = "Invalid username or password"


class SessionNotFound(AlohaError):
    detail = "Session not found"


class SessionExpired(AlohaError):
    detail = "Session expired"


class InsufficientPermission(AlohaError):
    detail = "Forbidden"


class StoreUnavailable(AlohaError):
    """
    A backing store timed out or could not be reached.

    Always retryable by the caller.
    """

    detail = "Service temporarily unavailable"
