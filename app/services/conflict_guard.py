"""Booking collision checks for a practitioner's day."""

from collections.abc import Callable, Iterable, Mapping
from datetime import date
from enum import Enum
from typing import Any
from uuid import UUID

from app.config import settings
from app.services.availability import overlaps, to_minutes
from app.services.record_store import AppointmentStore


class ConflictPolicy(str, Enum):
    """How a requested booking is compared with the day's active bookings."""

    # Only an identical start time collides
    EXACT_START = "exact_start"
    # Any overlap of [start, end) collides, same test as the availability grid
    INTERVAL_OVERLAP = "interval_overlap"


def is_slot_taken(
    active: Iterable[Mapping[str, Any]],
    start_time: str,
    end_time: str | None,
    policy: ConflictPolicy,
) -> bool:
    """Check a requested slot against active bookings under the given policy."""
    if policy is ConflictPolicy.EXACT_START:
        return any(booking["start_time"] == start_time for booking in active)

    if end_time is None:
        raise ValueError("end_time is required for interval overlap checks")

    start, end = to_minutes(start_time), to_minutes(end_time)
    return any(
        overlaps(start, end, to_minutes(booking["start_time"]), to_minutes(booking["end_time"]))
        for booking in active
    )


class ConflictGuard:
    """Answers whether a practitioner already holds an active booking for a slot."""

    def __init__(self, store: AppointmentStore, policy: ConflictPolicy | str | None = None):
        """Initialize guard with an appointment store and policy."""
        self.store = store
        self.policy = ConflictPolicy(policy or settings.conflict_policy)

    def slot_taken(
        self,
        start_time: str,
        end_time: str | None = None,
    ) -> Callable[[list[dict[str, Any]]], bool]:
        """Predicate for the store's atomic insert/update primitives."""

        def predicate(active: list[dict[str, Any]]) -> bool:
            return is_slot_taken(active, start_time, end_time, self.policy)

        return predicate

    async def has_conflict(
        self,
        practitioner_id: UUID,
        scheduled_date: date,
        start_time: str,
        end_time: str | None = None,
    ) -> bool:
        """
        Read-only conflict check.

        Args:
            practitioner_id: Practitioner being booked
            scheduled_date: Calendar date of the booking
            start_time: Requested "HH:MM" start
            end_time: Requested "HH:MM" end, needed for interval overlap

        Returns:
            True if an active booking collides
        """
        if self.policy is ConflictPolicy.EXACT_START:
            matches = await self.store.find_active(
                practitioner_id, scheduled_date, start_time=start_time
            )
            return bool(matches)

        active = await self.store.find_active(practitioner_id, scheduled_date)
        return is_slot_taken(active, start_time, end_time, self.policy)
