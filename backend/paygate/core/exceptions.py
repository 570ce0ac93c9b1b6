"""
Typed application errors.

Services raise these instead of HTTPException so the same failure kinds can
be produced outside a request. The handlers in ``paygate.main`` translate
each one into the standard error envelope.
"""
from typing import Any, Dict, List, Optional
from fastapi import status


class AppError(Exception):
    """Base class for errors that map onto an HTTP status code."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str, errors: Optional[List[Dict[str, Any]]] = None):
        super().__init__(message)
        self.message = message
        self.errors = errors or []


class ValidationError(AppError):
    """Malformed input that slipped past schema validation."""
    status_code = status.HTTP_400_BAD_REQUEST


class ConflictError(AppError):
    """Duplicate unique value (email, role name)."""
    status_code = status.HTTP_409_CONFLICT


class InvalidStateError(ConflictError):
    """Operation not allowed in the record's current state."""
    status_code = status.HTTP_400_BAD_REQUEST


class UnauthorizedError(AppError):
    """Missing, invalid or expired credential."""
    status_code = status.HTTP_401_UNAUTHORIZED


class ForbiddenError(AppError):
    """Authenticated, but not allowed to do this."""
    status_code = status.HTTP_403_FORBIDDEN


class NotFoundError(AppError):
    """Referenced entity does not exist."""
    status_code = status.HTTP_404_NOT_FOUND


class InvalidTokenError(UnauthorizedError):
    """Token signature, format or kind is wrong."""

    def __init__(self, message: str = "Invalid token", errors=None):
        super().__init__(message, errors)


class ExpiredTokenError(UnauthorizedError):
    """Token signature has expired."""

    def __init__(self, message: str = "Token expired", errors=None):
        super().__init__(message, errors)
