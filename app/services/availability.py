"""Open-slot computation over a practitioner's fixed daily grid."""

from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass
from datetime import date
from typing import Any
from uuid import UUID

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.core.exceptions import PractitionerNotFoundException
from app.services.record_store import AppointmentStore, RecordStore, practitioner_store

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class Slot:
    """A candidate interval [start_time, end_time) on one date."""

    date: date
    start_time: str
    end_time: str
    available: bool


def to_minutes(clock: str) -> int:
    """Minutes since midnight for an "HH:MM" string."""
    hours, minutes = clock.split(":")
    return int(hours) * 60 + int(minutes)


def to_clock(minutes: int) -> str:
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def overlaps(start_a: int, end_a: int, start_b: int, end_b: int) -> bool:
    """Half-open interval overlap test."""
    return start_a < end_b and end_a > start_b


def slot_grid(day_start: str, day_end: str, step: int) -> Iterator[tuple[int, int]]:
    """Yield (start, end) minute pairs of every whole slot between the day bounds."""
    slot_start = to_minutes(day_start)
    close = to_minutes(day_end)
    while slot_start + step <= close:
        yield slot_start, slot_start + step
        slot_start += step


def iter_slots(
    scheduled_date: date,
    bookings: Iterable[Mapping[str, Any]],
    day_start: str | None = None,
    day_end: str | None = None,
    step: int | None = None,
) -> Iterator[Slot]:
    """
    Tag every grid slot of a day as available or not.

    A slot is unavailable when it overlaps any of the given bookings.

    Args:
        scheduled_date: Day being computed
        bookings: Active bookings with "start_time"/"end_time" strings
        day_start: First slot start, defaults to the clinic opening time
        day_end: Last slot end, defaults to the clinic closing time
        step: Slot length in minutes

    Returns:
        Chronological iterator of slots
    """
    booked = [(to_minutes(b["start_time"]), to_minutes(b["end_time"])) for b in bookings]

    grid = slot_grid(
        day_start or settings.clinic_day_start,
        day_end or settings.clinic_day_end,
        step or settings.slot_duration_minutes,
    )
    for slot_start, slot_end in grid:
        taken = any(overlaps(slot_start, slot_end, start, end) for start, end in booked)
        yield Slot(
            date=scheduled_date,
            start_time=to_clock(slot_start),
            end_time=to_clock(slot_end),
            available=not taken,
        )


class AvailabilityService:
    """Computes a practitioner's open slots for a given day."""

    def __init__(
        self,
        db: AsyncSession | None = None,
        *,
        appointments: AppointmentStore | None = None,
        practitioners: RecordStore | None = None,
    ):
        """Initialize service with a database session or explicit stores."""
        self.appointments = appointments or AppointmentStore(db)
        self.practitioners = practitioners or practitioner_store(db)

    async def compute_availability(
        self,
        practitioner_id: UUID,
        scheduled_date: date,
    ) -> Iterator[Slot]:
        """
        Compute the slot grid for a practitioner's day.

        Raises:
            PractitionerNotFoundException: If the practitioner does not exist
        """
        practitioner = await self.practitioners.get_by_id(practitioner_id)
        if not practitioner:
            raise PractitionerNotFoundException()

        active = await self.appointments.find_active(practitioner_id, scheduled_date)
        logger.debug(
            "availability_computed",
            practitioner_id=str(practitioner_id),
            date=scheduled_date.isoformat(),
            active_bookings=len(active),
        )
        return iter_slots(scheduled_date, active)
