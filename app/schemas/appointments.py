"""Appointment schemas for request/response validation."""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, Field, field_serializer, model_validator

# "HH:MM", 24-hour clock
CLOCK_PATTERN = r"^([01]\d|2[0-3]):[0-5]\d$"


class AppointmentStatus(str, Enum):
    """Appointment status enumeration."""

    SCHEDULED = "scheduled"
    CONFIRMED = "confirmed"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    NO_SHOW = "no-show"


class TherapyType(str, Enum):
    """Panchakarma treatment categories."""

    ABHYANGA = "abhyanga"
    SHIRODHARA = "shirodhara"
    BASTI = "basti"
    NASYA = "nasya"
    VIRECHANA = "virechana"
    RAKTA_MOKSHANA = "rakta-mokshana"
    CONSULTATION = "consultation"


class AppointmentBase(BaseModel):
    """Fields shared by booking requests and responses."""

    therapy_type: TherapyType
    scheduled_date: date
    start_time: str = Field(..., pattern=CLOCK_PATTERN, examples=["10:00"])
    end_time: str = Field(..., pattern=CLOCK_PATTERN, examples=["10:30"])
    duration: int = Field(..., ge=15, description="Session length in minutes")
    cost: Decimal = Field(..., ge=0, decimal_places=2)
    notes: str | None = Field(None, max_length=1000)
    pre_session_instructions: str | None = Field(None, max_length=2000)
    post_session_instructions: str | None = Field(None, max_length=2000)


class AppointmentCreate(AppointmentBase):
    """Schema for booking a new appointment."""

    patient_id: UUID
    practitioner_id: UUID

    @model_validator(mode="after")
    def validate_end_time(self) -> "AppointmentCreate":
        """Validate end time is after start time."""
        if self.end_time <= self.start_time:
            raise ValueError("End time must be after start time")
        return self


class AppointmentUpdate(BaseModel):
    """Schedule and note fields that may be changed on an existing booking."""

    scheduled_date: date | None = None
    start_time: str | None = Field(None, pattern=CLOCK_PATTERN)
    end_time: str | None = Field(None, pattern=CLOCK_PATTERN)
    duration: int | None = Field(None, ge=15)
    notes: str | None = Field(None, max_length=1000)
    pre_session_instructions: str | None = Field(None, max_length=2000)
    post_session_instructions: str | None = Field(None, max_length=2000)

    @model_validator(mode="after")
    def validate_end_time(self) -> "AppointmentUpdate":
        """Validate end time is after start time when both are given."""
        if self.start_time and self.end_time and self.end_time <= self.start_time:
            raise ValueError("End time must be after start time")
        return self


class AppointmentStatusUpdate(BaseModel):
    """Schema for updating appointment status."""

    status: AppointmentStatus
    cancellation_reason: str | None = Field(None, min_length=1, max_length=500)


class Reminder(BaseModel):
    """A reminder attached to an appointment at booking time."""

    channel: Literal["email", "sms"]
    scheduled_time: datetime
    sent: bool = False
    sent_at: datetime | None = None


class AppointmentResponse(AppointmentBase):
    """Schema for appointment response."""

    id: UUID
    patient_id: UUID
    practitioner_id: UUID
    status: AppointmentStatus
    cancellation_reason: str | None = None
    cancelled_by: str | None = None
    cancelled_at: datetime | None = None
    reminders: list[Reminder] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}

    @field_serializer("cost", when_used="json")
    def serialize_cost(self, value: Decimal) -> float:
        """Serialize Decimal to float for JSON."""
        return float(value)


class Pagination(BaseModel):
    """Pagination block of list payloads."""

    current: int
    pages: int
    total: int


class AppointmentListData(BaseModel):
    """Paginated appointment list."""

    appointments: list[AppointmentResponse]
    pagination: Pagination


class AppointmentFilters(BaseModel):
    """Schema for appointment filtering."""

    status: AppointmentStatus | None = None
    therapy_type: TherapyType | None = None
    practitioner_id: UUID | None = None
    patient_id: UUID | None = None
    start_date: date | None = None
    end_date: date | None = None
    page: int = Field(default=1, ge=1)
    limit: int = Field(default=10, ge=1, le=100)


class SlotResponse(BaseModel):
    """One candidate slot of a practitioner's day."""

    date: date
    time: str
    end_time: str
    available: bool
