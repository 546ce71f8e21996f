"""Domain error taxonomy shared by every feature module.

Services raise these; the HTTP layer maps ``code`` to a status code in a
single exception handler (see ``learnhub.main``).
"""


class DomainError(Exception):
    """Base domain error."""

    code = "domain_error"

    def __init__(self, message: str, code: str | None = None):
        self.message = message
        if code is not None:
            self.code = code
        super().__init__(message)


class NotFoundError(DomainError):
    """A referenced course, lecture, progress record or purchase is missing."""

    code = "not_found"


class ConflictError(DomainError):
    """The operation would duplicate an existing record (e.g. a paid purchase)."""

    code = "conflict"


class InvalidStateError(DomainError):
    """The record is in a state that does not allow the transition."""

    code = "invalid_state"


class ValidationError(DomainError):
    """Input violates a domain constraint (e.g. negative watch time)."""

    code = "validation_error"
