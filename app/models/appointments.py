"""Appointments table model using SQLAlchemy Core."""

from sqlalchemy import (
    CheckConstraint,
    Column,
    Date,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Table,
    Text,
    text,
)
from sqlalchemy.dialects.postgresql import JSONB, TIMESTAMP, UUID

from app.models.base import metadata

THERAPY_TYPES = (
    "abhyanga",
    "shirodhara",
    "basti",
    "nasya",
    "virechana",
    "rakta-mokshana",
    "consultation",
)

APPOINTMENT_STATUSES = (
    "scheduled",
    "confirmed",
    "in-progress",
    "completed",
    "cancelled",
    "no-show",
)

# Statuses that hold a practitioner's slot
ACTIVE_STATUSES = ("scheduled", "confirmed")


def _sql_list(values: tuple[str, ...]) -> str:
    return ", ".join(f"'{value}'" for value in values)


appointments = Table(
    "appointments",
    metadata,
    Column(
        "id",
        UUID(as_uuid=True),
        primary_key=True,
        server_default=text("gen_random_uuid()"),
    ),
    # References
    Column(
        "patient_id",
        UUID(as_uuid=True),
        ForeignKey("patients.id", ondelete="RESTRICT"),
        nullable=False,
    ),
    Column(
        "practitioner_id",
        UUID(as_uuid=True),
        ForeignKey("practitioners.id", ondelete="RESTRICT"),
        nullable=False,
    ),
    # Scheduling (wall-clock "HH:MM" strings, no timezone)
    Column("therapy_type", Text, nullable=False),
    Column("scheduled_date", Date, nullable=False),
    Column("start_time", String(5), nullable=False),
    Column("end_time", String(5), nullable=False),
    Column("duration", Integer, nullable=False),
    # Status management
    Column("status", Text, nullable=False, server_default="scheduled"),
    Column("cancellation_reason", Text, nullable=True),
    Column("cancelled_by", Text, nullable=True),
    Column("cancelled_at", TIMESTAMP(timezone=True), nullable=True),
    # Billing
    Column("cost", Numeric(10, 2), nullable=False, server_default=text("0")),
    # Session details
    Column("notes", Text, nullable=True),
    Column("pre_session_instructions", Text, nullable=True),
    Column("post_session_instructions", Text, nullable=True),
    # [{"channel": ..., "scheduled_time": ..., "sent": ...}]
    Column("reminders", JSONB, nullable=False, server_default=text("'[]'::jsonb")),
    # Audit fields
    Column("created_at", TIMESTAMP(timezone=True), nullable=False, server_default=text("NOW()")),
    Column("updated_at", TIMESTAMP(timezone=True), nullable=False, server_default=text("NOW()")),
    # Constraints
    CheckConstraint(
        f"status IN ({_sql_list(APPOINTMENT_STATUSES)})",
        name="appointments_status_check",
    ),
    CheckConstraint(
        f"therapy_type IN ({_sql_list(THERAPY_TYPES)})",
        name="appointments_therapy_type_check",
    ),
    CheckConstraint("duration >= 15", name="appointments_duration_check"),
    CheckConstraint("cost >= 0", name="appointments_cost_check"),
    Index("idx_appointments_patient_id", "patient_id"),
    Index("idx_appointments_scheduled_date", "scheduled_date"),
    Index(
        "idx_appointments_practitioner_active_day",
        "practitioner_id",
        "scheduled_date",
        "start_time",
        postgresql_where=text(f"status IN ({_sql_list(ACTIVE_STATUSES)})"),
    ),
)
