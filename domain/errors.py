"""Domain Errors

Every failure a command can report to its caller. They subclass ValueError so
callers that only care about "the request was rejected" can catch that.
"""
from typing import Optional


class DomainError(ValueError):
    """Base class for recoverable command failures"""

    def __init__(self, message: str, code: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.code = code


class ValidationError(DomainError):
    """Malformed input or an illegal state transition"""


class ConflictError(DomainError):
    """Scheduling conflict or uniqueness violation"""


class AuthorizationError(DomainError):
    """Credential mismatch or a pending account validation"""


class NotFoundError(DomainError):
    """Referenced user, reservation or payment does not exist"""
