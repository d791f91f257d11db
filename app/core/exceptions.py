"""Custom application exceptions."""

from typing import Any


class AppException(Exception):
    """Base application exception."""

    def __init__(
        self,
        message: str,
        status_code: int = 500,
        errors: list[dict[str, Any]] | None = None,
    ):
        """Initialize exception with message, status code and optional error details."""
        self.message = message
        self.status_code = status_code
        self.errors = errors
        super().__init__(self.message)


class ValidationException(AppException):
    """Malformed or missing input, reported field by field."""

    def __init__(
        self,
        message: str = "Validation errors",
        errors: list[dict[str, Any]] | None = None,
    ):
        """Initialize with 400 status code."""
        super().__init__(message, status_code=400, errors=errors or [])


class NotFoundException(AppException):
    """Resource not found exception."""

    def __init__(self, message: str = "Resource not found"):
        """Initialize with 404 status code."""
        super().__init__(message, status_code=404)


class PatientNotFoundException(NotFoundException):
    def __init__(self, message: str = "Patient not found"):
        super().__init__(message)


class PractitionerNotFoundException(NotFoundException):
    def __init__(self, message: str = "Practitioner not found"):
        super().__init__(message)


class AppointmentNotFoundException(NotFoundException):
    def __init__(self, message: str = "Appointment not found"):
        super().__init__(message)


class UnauthorizedException(AppException):
    """Unauthorized access exception."""

    def __init__(self, message: str = "Unauthorized"):
        """Initialize with 401 status code."""
        super().__init__(message, status_code=401)


class ForbiddenException(AppException):
    """Role or ownership mismatch."""

    def __init__(self, message: str = "Access denied"):
        """Initialize with 403 status code."""
        super().__init__(message, status_code=403)


class ConflictException(AppException):
    """Conflict exception."""

    def __init__(self, message: str = "Conflict"):
        """Initialize with 409 status code."""
        super().__init__(message, status_code=409)


class SlotConflictException(ConflictException):
    """The practitioner already has an active booking for the requested slot."""

    def __init__(self, message: str = "Time slot is already booked"):
        super().__init__(message)


class InvalidStatusTransitionException(ConflictException):
    """Status change rejected by the strict transition table."""

    def __init__(self, current: str, requested: str):
        self.current = current
        self.requested = requested
        super().__init__(f"Cannot change appointment status from '{current}' to '{requested}'")
