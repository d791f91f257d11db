"""Who may book, see and change which appointments."""

from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import ForbiddenException, NotFoundException
from app.models.patients import patients
from app.models.practitioners import practitioners
from app.services.record_store import patient_store, practitioner_store


class Role(str, Enum):
    """User roles issued by the identity service."""

    PATIENT = "patient"
    PRACTITIONER = "practitioner"
    ADMIN = "admin"


@dataclass(frozen=True)
class Actor:
    """An authenticated user together with the profile they act through."""

    user_id: UUID
    role: Role
    patient_id: UUID | None = None
    practitioner_id: UUID | None = None

    @property
    def is_admin(self) -> bool:
        return self.role is Role.ADMIN

    def owns(self, appointment: Mapping[str, Any]) -> bool:
        """Admins own everything; patients and practitioners only their own bookings."""
        if self.role is Role.ADMIN:
            return True
        if self.role is Role.PATIENT:
            return self.patient_id is not None and appointment["patient_id"] == self.patient_id
        if self.role is Role.PRACTITIONER:
            return (
                self.practitioner_id is not None
                and appointment["practitioner_id"] == self.practitioner_id
            )
        return False

    def scope(self) -> dict[str, UUID]:
        """Filters every appointment query of this actor is restricted to."""
        if self.role is Role.PATIENT and self.patient_id:
            return {"patient_id": self.patient_id}
        if self.role is Role.PRACTITIONER and self.practitioner_id:
            return {"practitioner_id": self.practitioner_id}
        return {}


def ensure_can_access(actor: Actor, appointment: Mapping[str, Any]) -> None:
    """
    Check view/modify rights on an appointment.

    Raises:
        ForbiddenException: If the actor does not own the appointment
    """
    if not actor.owns(appointment):
        raise ForbiddenException("Access denied")


def ensure_can_book(actor: Actor, patient_id: UUID, practitioner_id: UUID) -> None:
    """
    Check booking rights for a patient/practitioner pair.

    Raises:
        ForbiddenException: If a patient books for someone else, or a
            practitioner books another practitioner
    """
    if actor.role is Role.PATIENT and patient_id != actor.patient_id:
        raise ForbiddenException("Patients can only book appointments for themselves")
    if actor.role is Role.PRACTITIONER and practitioner_id != actor.practitioner_id:
        raise ForbiddenException("Practitioners can only book their own schedule")


async def resolve_actor(db: AsyncSession, user: Mapping[str, Any]) -> Actor:
    """
    Build the actor for an authenticated user.

    Args:
        db: Database session
        user: User row

    Returns:
        Actor with the profile id matching the user's role

    Raises:
        NotFoundException: If a patient or practitioner has no profile yet
    """
    role = Role(user["role"])

    if role is Role.PATIENT:
        profile = await patient_store(db).find_one(patients.c.user_id == user["id"])
        if not profile:
            raise NotFoundException("Patient profile not found")
        return Actor(user_id=user["id"], role=role, patient_id=profile["id"])

    if role is Role.PRACTITIONER:
        profile = await practitioner_store(db).find_one(practitioners.c.user_id == user["id"])
        if not profile:
            raise NotFoundException("Practitioner profile not found")
        return Actor(user_id=user["id"], role=role, practitioner_id=profile["id"])

    return Actor(user_id=user["id"], role=role)
