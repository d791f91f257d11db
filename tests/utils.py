"""In-memory stand-ins for the stores and notifier used by service-level tests."""

import asyncio
from collections.abc import Callable
from datetime import UTC, date, datetime
from typing import Any
from uuid import UUID, uuid4

from app.models.appointments import ACTIVE_STATUSES


class FakeRecordStore:
    """Dict-backed store exposing the RecordStore calls the services make."""

    defaults: dict[str, Any] = {}

    def __init__(self) -> None:
        self.rows: dict[UUID, dict[str, Any]] = {}

    def add(self, **values: Any) -> dict[str, Any]:
        """Seed a row synchronously."""
        now = datetime.now(UTC)
        row = {**self.defaults, "created_at": now, "updated_at": now, **values}
        row.setdefault("id", uuid4())
        self.rows[row["id"]] = row
        return dict(row)

    async def create(self, values: dict[str, Any], commit: bool = True) -> dict[str, Any]:
        return self.add(**values)

    async def get_by_id(self, record_id: UUID) -> dict[str, Any] | None:
        row = self.rows.get(record_id)
        return dict(row) if row else None

    async def update(
        self,
        record_id: UUID,
        values: dict[str, Any],
        commit: bool = True,
    ) -> dict[str, Any] | None:
        row = self.rows.get(record_id)
        if row is None:
            return None
        row.update(values, updated_at=datetime.now(UTC))
        return dict(row)


class FakeAppointmentStore(FakeRecordStore):
    """Appointment store whose booking primitive is serialized by an asyncio lock."""

    defaults = {
        "status": "scheduled",
        "cancellation_reason": None,
        "cancelled_by": None,
        "cancelled_at": None,
        "notes": None,
        "pre_session_instructions": None,
        "post_session_instructions": None,
        "reminders": [],
    }

    def __init__(self) -> None:
        super().__init__()
        self._lock = asyncio.Lock()

    async def find_active(
        self,
        practitioner_id: UUID,
        scheduled_date: date,
        start_time: str | None = None,
    ) -> list[dict[str, Any]]:
        return sorted(
            (
                dict(row)
                for row in self.rows.values()
                if row["practitioner_id"] == practitioner_id
                and row["scheduled_date"] == scheduled_date
                and row["status"] in ACTIVE_STATUSES
                and (start_time is None or row["start_time"] == start_time)
            ),
            key=lambda row: row["start_time"],
        )

    async def find_active_between(self, from_date: date, to_date: date) -> list[dict[str, Any]]:
        return [
            dict(row)
            for row in self.rows.values()
            if from_date <= row["scheduled_date"] <= to_date and row["status"] in ACTIVE_STATUSES
        ]

    async def create_if_available(
        self,
        values: dict[str, Any],
        is_taken: Callable[[list[dict[str, Any]]], bool],
    ) -> dict[str, Any] | None:
        async with self._lock:
            active = await self.find_active(values["practitioner_id"], values["scheduled_date"])
            # Let a competing booking run up to the lock
            await asyncio.sleep(0)
            if is_taken(active):
                return None
            return await self.create(values)

    async def update_if_available(
        self,
        appointment_id: UUID,
        values: dict[str, Any],
        is_taken: Callable[[list[dict[str, Any]]], bool],
    ) -> dict[str, Any] | None:
        async with self._lock:
            active = await self.find_active(values["practitioner_id"], values["scheduled_date"])
            if is_taken([row for row in active if row["id"] != appointment_id]):
                return None
            changes = {k: v for k, v in values.items() if k != "practitioner_id"}
            return await self.update(appointment_id, changes)


class FakeNotifier:
    """Records every notification the lifecycle asks for."""

    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.sent: list[tuple[str, UUID, dict[str, Any]]] = []

    async def _record(self, event: str, recipient_id: UUID, appointment: dict[str, Any]) -> None:
        if self.fail:
            raise ConnectionError("Redis unavailable")
        self.sent.append((event, recipient_id, appointment))

    async def send_appointment_confirmation(self, recipient_id, appointment):
        await self._record("confirmation", recipient_id, appointment)

    async def send_status_change(self, recipient_id, appointment):
        await self._record("status_change", recipient_id, appointment)

    async def send_cancellation(self, recipient_id, appointment):
        await self._record("cancellation", recipient_id, appointment)

    async def send_feedback_request(self, recipient_id, appointment):
        await self._record("feedback_request", recipient_id, appointment)

    async def send_reminder(self, recipient_id, appointment, channel):
        await self._record(f"reminder:{channel}", recipient_id, appointment)

    @property
    def events(self) -> list[str]:
        return [event for event, _, _ in self.sent]


def booking_values(
    patient_id: UUID,
    practitioner_id: UUID,
    scheduled_date: date,
    start_time: str = "10:00",
    end_time: str = "11:00",
    **overrides: Any,
) -> dict[str, Any]:
    """Request body for a booking, JSON-ready."""
    return {
        "patient_id": str(patient_id),
        "practitioner_id": str(practitioner_id),
        "therapy_type": "abhyanga",
        "scheduled_date": scheduled_date.isoformat(),
        "start_time": start_time,
        "end_time": end_time,
        "duration": 60,
        "cost": 1500,
        **overrides,
    }


