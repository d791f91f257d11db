"""Appointment endpoints."""

from datetime import date
from uuid import UUID

from fastapi import APIRouter, Query, status

from app.dependencies import AppointmentServiceDep, AvailabilityServiceDep, CurrentActor
from app.schemas.appointments import (
    AppointmentCreate,
    AppointmentFilters,
    AppointmentListData,
    AppointmentResponse,
    AppointmentStatus,
    AppointmentStatusUpdate,
    AppointmentUpdate,
    SlotResponse,
    TherapyType,
)
from app.schemas.common import ApiResponse

router = APIRouter()


@router.post(
    "/",
    response_model=ApiResponse[AppointmentResponse],
    status_code=status.HTTP_201_CREATED,
    summary="Book new appointment",
)
async def create_appointment(
    data: AppointmentCreate,
    actor: CurrentActor,
    service: AppointmentServiceDep,
) -> ApiResponse[AppointmentResponse]:
    """
    Book an appointment with a practitioner.

    Returns:
        Created appointment with its reminders
    """
    appointment = await service.create_appointment(actor, data)
    return ApiResponse(message="Appointment created successfully", data=appointment)


@router.get(
    "/",
    response_model=ApiResponse[AppointmentListData],
    status_code=status.HTTP_200_OK,
    summary="List appointments",
)
async def list_appointments(
    actor: CurrentActor,
    service: AppointmentServiceDep,
    status_filter: AppointmentStatus | None = Query(None, alias="status"),
    therapy_type: TherapyType | None = Query(None),
    practitioner_id: UUID | None = Query(None),
    patient_id: UUID | None = Query(None),
    start_date: date | None = Query(None),
    end_date: date | None = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
) -> ApiResponse[AppointmentListData]:
    """
    List appointments visible to the caller.

    Patients only see their own bookings and practitioners their own
    schedule; admins see everything.
    """
    filters = AppointmentFilters(
        status=status_filter,
        therapy_type=therapy_type,
        practitioner_id=practitioner_id,
        patient_id=patient_id,
        start_date=start_date,
        end_date=end_date,
        page=page,
        limit=limit,
    )
    return ApiResponse(data=await service.list_appointments(actor, filters))


@router.get(
    "/availability",
    response_model=ApiResponse[list[SlotResponse]],
    status_code=status.HTTP_200_OK,
    summary="Practitioner availability for a day",
)
async def get_availability(
    service: AvailabilityServiceDep,
    practitioner_id: UUID = Query(...),
    day: date = Query(..., alias="date"),
    available_only: bool = Query(False),
) -> ApiResponse[list[SlotResponse]]:
    """
    Slot grid of a practitioner's day, each slot tagged available or not.

    Public endpoint; no authentication required.
    """
    slots = await service.compute_availability(practitioner_id, day)
    return ApiResponse(
        data=[
            SlotResponse(
                date=slot.date,
                time=slot.start_time,
                end_time=slot.end_time,
                available=slot.available,
            )
            for slot in slots
            if slot.available or not available_only
        ]
    )


@router.get(
    "/{appointment_id}",
    response_model=ApiResponse[AppointmentResponse],
    status_code=status.HTTP_200_OK,
    summary="Get appointment by ID",
)
async def get_appointment(
    appointment_id: UUID,
    actor: CurrentActor,
    service: AppointmentServiceDep,
) -> ApiResponse[AppointmentResponse]:
    """Get a specific appointment by ID."""
    return ApiResponse(data=await service.get_appointment(actor, appointment_id))


@router.put(
    "/{appointment_id}",
    response_model=ApiResponse[AppointmentResponse],
    status_code=status.HTTP_200_OK,
    summary="Update appointment",
)
async def update_appointment(
    appointment_id: UUID,
    data: AppointmentUpdate,
    actor: CurrentActor,
    service: AppointmentServiceDep,
) -> ApiResponse[AppointmentResponse]:
    """Change date, times, duration or notes of an appointment."""
    appointment = await service.update_appointment(actor, appointment_id, data)
    return ApiResponse(message="Appointment updated successfully", data=appointment)


@router.put(
    "/{appointment_id}/status",
    response_model=ApiResponse[AppointmentResponse],
    status_code=status.HTTP_200_OK,
    summary="Update appointment status",
)
async def update_appointment_status(
    appointment_id: UUID,
    data: AppointmentStatusUpdate,
    actor: CurrentActor,
    service: AppointmentServiceDep,
) -> ApiResponse[AppointmentResponse]:
    """Update appointment status (e.g., confirm, cancel, complete)."""
    appointment = await service.update_appointment_status(actor, appointment_id, data)
    return ApiResponse(message="Appointment status updated successfully", data=appointment)


@router.delete(
    "/{appointment_id}",
    response_model=ApiResponse[AppointmentResponse],
    status_code=status.HTTP_200_OK,
    summary="Cancel appointment",
)
async def cancel_appointment(
    appointment_id: UUID,
    actor: CurrentActor,
    service: AppointmentServiceDep,
) -> ApiResponse[AppointmentResponse]:
    """Cancel an appointment. The record is kept with status 'cancelled'."""
    appointment = await service.cancel_appointment(actor, appointment_id)
    return ApiResponse(message="Appointment cancelled successfully", data=appointment)
