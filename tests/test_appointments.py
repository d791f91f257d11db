"""Tests for appointment endpoints against the test database."""

import asyncio
from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest
from httpx import AsyncClient
from sqlalchemy import func, select

from app.core.authorization import Actor, Role
from app.core.exceptions import SlotConflictException
from app.models.appointments import appointments
from app.models.notifications import notifications
from app.schemas.appointments import AppointmentCreate
from app.services.appointment_service import AppointmentService
from tests.utils import booking_values

DAY = date(2026, 11, 2)
BASE = "/api/v1/appointments"


async def _book(client: AsyncClient, patient: dict, practitioner: dict, **kwargs):
    return await client.post(
        f"{BASE}/",
        json=booking_values(patient["id"], practitioner["id"], DAY, **kwargs),
        headers=patient["headers"],
    )


@pytest.mark.asyncio
async def test_create_appointment(
    client: AsyncClient,
    patient: dict,
    practitioner: dict,
    mock_redis,
    db_session,
) -> None:
    """Test creating an appointment."""
    response = await _book(client, patient, practitioner)

    assert response.status_code == 201
    body = response.json()
    assert body["success"] is True
    assert body["message"] == "Appointment created successfully"
    data = body["data"]
    assert data["status"] == "scheduled"
    assert data["therapy_type"] == "abhyanga"
    assert data["cost"] == 1500.0
    assert [r["channel"] for r in data["reminders"]] == ["email", "sms"]

    # Confirmation persisted and handed to the outbox
    mock_redis.lpush.assert_called_once()
    result = await db_session.execute(select(notifications))
    (notification,) = result.mappings().all()
    assert notification["recipient_id"] == patient["user"]["id"]
    assert notification["notification_type"] == "appointment_confirmation"
    assert notification["status"] == "queued"


@pytest.mark.asyncio
async def test_create_appointment_slot_conflict(
    client: AsyncClient,
    patient: dict,
    other_patient: dict,
    practitioner: dict,
) -> None:
    """Second booking of the same start time is rejected with 409."""
    assert (await _book(client, patient, practitioner)).status_code == 201

    response = await _book(client, other_patient, practitioner, end_time="10:30", duration=30)

    assert response.status_code == 409
    assert response.json() == {
        "success": False,
        "error": "SlotConflictException",
        "message": "Time slot is already booked",
    }


@pytest.mark.asyncio
async def test_create_appointment_validation(
    client: AsyncClient,
    patient: dict,
    practitioner: dict,
) -> None:
    response = await _book(client, patient, practitioner, start_time="11:00", end_time="10:00")

    assert response.status_code == 400
    body = response.json()
    assert body["success"] is False
    assert body["errors"]

    response = await _book(client, patient, practitioner, therapy_type="reiki", duration=5)
    fields = {error["field"] for error in response.json()["errors"]}
    assert {"therapy_type", "duration"} <= fields


@pytest.mark.asyncio
async def test_patient_cannot_book_for_another_patient(
    client: AsyncClient,
    patient: dict,
    other_patient: dict,
    practitioner: dict,
) -> None:
    response = await client.post(
        f"{BASE}/",
        json=booking_values(other_patient["id"], practitioner["id"], DAY),
        headers=patient["headers"],
    )

    assert response.status_code == 403


@pytest.mark.asyncio
async def test_create_appointment_unknown_practitioner(
    client: AsyncClient,
    patient: dict,
    admin: dict,
) -> None:
    response = await client.post(
        f"{BASE}/",
        json=booking_values(patient["id"], uuid4(), DAY),
        headers=admin["headers"],
    )

    assert response.status_code == 404
    assert response.json()["message"] == "Practitioner not found"


@pytest.mark.asyncio
async def test_availability(
    client: AsyncClient,
    patient: dict,
    practitioner: dict,
) -> None:
    """Availability is public and reflects active bookings."""
    params = {"practitioner_id": str(practitioner["id"]), "date": DAY.isoformat()}

    response = await client.get(f"{BASE}/availability", params=params)
    assert response.status_code == 200
    slots = response.json()["data"]
    assert len(slots) == 16
    assert slots[0] == {
        "date": "2026-11-02",
        "time": "10:00",
        "end_time": "10:30",
        "available": True,
    }

    await _book(client, patient, practitioner)

    slots = (await client.get(f"{BASE}/availability", params=params)).json()["data"]
    assert [s["time"] for s in slots if not s["available"]] == ["10:00", "10:30"]

    open_only = (
        await client.get(f"{BASE}/availability", params={**params, "available_only": "true"})
    ).json()["data"]
    assert len(open_only) == 14


@pytest.mark.asyncio
async def test_availability_unknown_practitioner(client: AsyncClient) -> None:
    response = await client.get(
        f"{BASE}/availability",
        params={"practitioner_id": str(uuid4()), "date": DAY.isoformat()},
    )
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_list_appointments_is_scoped(
    client: AsyncClient,
    patient: dict,
    other_patient: dict,
    practitioner: dict,
    admin: dict,
) -> None:
    """Patients see their own bookings, whatever filter they pass."""
    await _book(client, patient, practitioner, start_time="10:00", end_time="11:00")
    await _book(client, patient, practitioner, start_time="12:00", end_time="13:00")
    await _book(client, other_patient, practitioner, start_time="14:00", end_time="15:00")

    response = await client.get(f"{BASE}/", headers=patient["headers"])
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["pagination"] == {"current": 1, "pages": 1, "total": 2}
    # Newest first
    assert [a["start_time"] for a in data["appointments"]] == ["12:00", "10:00"]

    spoofed = await client.get(
        f"{BASE}/",
        params={"patient_id": str(other_patient["id"])},
        headers=patient["headers"],
    )
    assert spoofed.json()["data"]["pagination"]["total"] == 2

    practitioner_view = await client.get(f"{BASE}/", headers=practitioner["headers"])
    assert practitioner_view.json()["data"]["pagination"]["total"] == 3

    admin_view = await client.get(
        f"{BASE}/",
        params={"patient_id": str(other_patient["id"])},
        headers=admin["headers"],
    )
    assert admin_view.json()["data"]["pagination"]["total"] == 1


@pytest.mark.asyncio
async def test_list_appointments_pagination_and_filters(
    client: AsyncClient,
    patient: dict,
    practitioner: dict,
) -> None:
    for start, end in [("10:00", "10:30"), ("11:00", "11:30"), ("12:00", "12:30")]:
        await _book(client, patient, practitioner, start_time=start, end_time=end, duration=30)

    page = (
        await client.get(f"{BASE}/", params={"page": 2, "limit": 2}, headers=patient["headers"])
    ).json()["data"]
    assert page["pagination"] == {"current": 2, "pages": 2, "total": 3}
    assert len(page["appointments"]) == 1

    filtered = (
        await client.get(
            f"{BASE}/",
            params={"status": "cancelled", "start_date": "2026-11-01"},
            headers=patient["headers"],
        )
    ).json()["data"]
    assert filtered["pagination"]["total"] == 0


@pytest.mark.asyncio
async def test_get_appointment_ownership(
    client: AsyncClient,
    patient: dict,
    other_patient: dict,
    practitioner: dict,
) -> None:
    appointment_id = (await _book(client, patient, practitioner)).json()["data"]["id"]

    own = await client.get(f"{BASE}/{appointment_id}", headers=patient["headers"])
    assert own.status_code == 200
    assert own.json()["data"]["id"] == appointment_id

    theirs = await client.get(f"{BASE}/{appointment_id}", headers=other_patient["headers"])
    assert theirs.status_code == 403

    missing = await client.get(f"{BASE}/{uuid4()}", headers=patient["headers"])
    assert missing.status_code == 404


@pytest.mark.asyncio
async def test_update_appointment(
    client: AsyncClient,
    patient: dict,
    practitioner: dict,
) -> None:
    """Test updating an appointment."""
    appointment_id = (await _book(client, patient, practitioner)).json()["data"]["id"]

    response = await client.put(
        f"{BASE}/{appointment_id}",
        json={"notes": "Updated notes", "post_session_instructions": "Rest for two hours"},
        headers=practitioner["headers"],
    )

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["notes"] == "Updated notes"
    assert data["post_session_instructions"] == "Rest for two hours"


@pytest.mark.asyncio
async def test_update_appointment_status(
    client: AsyncClient,
    patient: dict,
    practitioner: dict,
    mock_redis,
) -> None:
    """Test updating appointment status."""
    appointment_id = (await _book(client, patient, practitioner)).json()["data"]["id"]

    response = await client.put(
        f"{BASE}/{appointment_id}/status",
        json={"status": "completed"},
        headers=practitioner["headers"],
    )

    assert response.status_code == 200
    assert response.json()["data"]["status"] == "completed"
    # Confirmation, status change and feedback request
    assert mock_redis.lpush.call_count == 3

    invalid = await client.put(
        f"{BASE}/{appointment_id}/status",
        json={"status": "postponed"},
        headers=practitioner["headers"],
    )
    assert invalid.status_code == 400


@pytest.mark.asyncio
async def test_cancel_appointment(
    client: AsyncClient,
    patient: dict,
    practitioner: dict,
    db_session,
) -> None:
    """Cancelling keeps the record and frees the slot."""
    appointment_id = (await _book(client, patient, practitioner)).json()["data"]["id"]

    response = await client.delete(f"{BASE}/{appointment_id}", headers=patient["headers"])

    assert response.status_code == 200
    body = response.json()
    assert body["message"] == "Appointment cancelled successfully"
    assert body["data"]["status"] == "cancelled"
    assert body["data"]["cancelled_by"] == "patient"

    count = await db_session.scalar(select(func.count()).select_from(appointments))
    assert count == 1

    rebook = await _book(client, patient, practitioner)
    assert rebook.status_code == 201


@pytest.mark.asyncio
async def test_concurrent_bookings_against_database(
    session_factory,
    patient: dict,
    practitioner: dict,
    db_session,
) -> None:
    """The practitioner-day lock lets exactly one of two racing bookings through."""
    actor = Actor(user_id=patient["user"]["id"], role=Role.PATIENT, patient_id=patient["id"])
    data = AppointmentCreate(
        patient_id=patient["id"],
        practitioner_id=practitioner["id"],
        therapy_type="basti",
        scheduled_date=DAY,
        start_time="15:00",
        end_time="16:00",
        duration=60,
        cost=Decimal("2000"),
    )

    async def attempt():
        async with session_factory() as session:
            return await AppointmentService(session).create_appointment(actor, data)

    results = await asyncio.gather(attempt(), attempt(), return_exceptions=True)

    assert sum(isinstance(r, SlotConflictException) for r in results) == 1
    count = await db_session.scalar(select(func.count()).select_from(appointments))
    assert count == 1
