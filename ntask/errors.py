"""Domain error taxonomy.

Every error carries the HTTP status it maps to; the API layer renders them as
``{"success": false, "error": <message>}``.
"""


class NTaskError(Exception):
    """Base class for all domain errors."""

    status_code: int = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(NTaskError):
    """Missing or malformed input. Never retried."""

    status_code = 400


class NotFoundError(NTaskError):
    """Unknown task, board, request or document id."""

    status_code = 404


class StateConflictError(NTaskError):
    """Action attempted against an entity in the wrong state."""

    status_code = 400


class DownstreamUnavailableError(NTaskError):
    """A required collaborator (e.g. the document parser) is missing or failing."""

    status_code = 500


class PersistenceError(NTaskError):
    """The store rejected a write."""

    status_code = 500
