"""Domain errors raised by the team hub services.

Services raise these instead of HTTPException; ``teamhub.main`` maps them to
status codes in a single exception handler.
"""
from typing import Any, Optional


class TeamHubError(Exception):
    """Base class for domain errors."""
    code = "error"

    def __init__(self, message: str, details: Optional[dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ValidationError(TeamHubError):
    """Malformed input: unknown request type, missing payload field."""
    code = "validation_error"


class NotFoundError(TeamHubError):
    """Referenced request, team, user or membership does not exist."""
    code = "not_found"


class InvalidStateError(TeamHubError):
    """Decision attempted on a change request that is no longer pending."""
    code = "already_decided"


class ForbiddenError(TeamHubError):
    """Actor is not allowed to perform the operation."""
    code = "forbidden"


class ConflictError(TeamHubError):
    """Invariant violation: duplicate membership, duplicate edge, cycle."""
    code = "conflict"


class IntegrityError(TeamHubError):
    """Stored data violates an invariant that writes should have prevented."""
    code = "integrity_error"
