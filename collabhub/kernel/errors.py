"""
Error taxonomy of the collaboration core.

Guard and registry failures are raised before any mutation is committed and
surface to the caller unchanged; the API layer maps them to HTTP responses.
"""

from typing import Optional

from fastapi import status


class CollaborationError(Exception):
    """Base class for failures reported to the caller of a core operation."""

    status_code: int = status.HTTP_400_BAD_REQUEST
    code: str = "collaboration_error"

    def __init__(self, detail: Optional[str] = None):
        self.detail = detail or self.__class__.__doc__ or self.code
        super().__init__(self.detail)


class NotFound(CollaborationError):
    """Resource not found"""

    status_code = status.HTTP_404_NOT_FOUND
    code = "not_found"


class Forbidden(CollaborationError):
    """Access denied"""

    status_code = status.HTTP_403_FORBIDDEN
    code = "forbidden"


class Conflict(CollaborationError):
    """Conflicting state"""

    status_code = status.HTTP_409_CONFLICT
    code = "conflict"


class InvariantViolation(CollaborationError):
    """Operation would break a structural guarantee"""

    status_code = status.HTTP_400_BAD_REQUEST
    code = "invariant_violation"
