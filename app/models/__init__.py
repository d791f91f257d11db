"""Database models."""

from app.models.appointments import appointments
from app.models.base import metadata
from app.models.notifications import notifications
from app.models.patients import patients
from app.models.practitioners import practitioners
from app.models.users import users

__all__ = [
    "appointments",
    "metadata",
    "notifications",
    "patients",
    "practitioners",
    "users",
]
