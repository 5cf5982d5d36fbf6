"""
gearguard/errors.py

Domain error taxonomy.

Domain modules raise these; gearguard.main maps every subclass of
GearGuardError to a JSON response with the class's status code.
"""

from __future__ import annotations


class GearGuardError(Exception):
    """Base class for errors that map to an HTTP status."""
    status_code = 500
    default_message = "Internal server error"

    def __init__(self, message: str = ""):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationFailed(GearGuardError):
    """Raised when input passes schema validation but is semantically invalid."""
    status_code = 400
    default_message = "Invalid input"


class Unauthorized(GearGuardError):
    """Raised when a bearer token is missing, malformed or expired."""
    status_code = 401
    default_message = "Unauthorized access"


class Forbidden(GearGuardError):
    """Raised on role or ownership mismatch."""
    status_code = 403
    default_message = "Forbidden access"


class NotFound(GearGuardError):
    status_code = 404
    default_message = "Not found"


class Conflict(GearGuardError):
    """Raised when a write would break a uniqueness or state-machine rule."""
    status_code = 409
    default_message = "Conflict"


class PaymentProviderError(GearGuardError):
    status_code = 502
    default_message = "Payment provider error"


class UploadError(GearGuardError):
    status_code = 502
    default_message = "Image upload failed"
