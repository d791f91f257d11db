"""Notification outbox model."""

from sqlalchemy import (
    CheckConstraint,
    Column,
    ForeignKey,
    Index,
    Integer,
    String,
    Table,
    Text,
    text,
)
from sqlalchemy.dialects.postgresql import JSONB, TIMESTAMP, UUID

from app.models.base import metadata

notifications = Table(
    "notifications",
    metadata,
    Column(
        "id",
        UUID(as_uuid=True),
        primary_key=True,
        server_default=text("gen_random_uuid()"),
    ),
    Column(
        "recipient_id",
        UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    ),
    Column("notification_type", String(50), nullable=False),
    Column("title", Text, nullable=False),
    Column("message", Text, nullable=False),
    Column("priority", String(20), nullable=False, server_default="medium"),
    # [{"type": "email"}, {"type": "in-app"}]
    Column("channels", JSONB, nullable=False, server_default=text("'[]'::jsonb")),
    Column("data", JSONB, nullable=True),
    Column("status", String(20), nullable=False, server_default="pending"),
    Column("enqueue_count", Integer, nullable=False, server_default="0"),
    Column("queued_at", TIMESTAMP(timezone=True), nullable=True),
    # Written by the external dispatcher, as are the sent, failed and read statuses
    Column("failure_reason", Text, nullable=True),
    Column("created_at", TIMESTAMP(timezone=True), nullable=False, server_default=text("NOW()")),
    Column("updated_at", TIMESTAMP(timezone=True), nullable=False, server_default=text("NOW()")),
    Column("deleted_at", TIMESTAMP(timezone=True), nullable=True),
    CheckConstraint(
        "notification_type IN ('appointment_confirmation', 'appointment_status', "
        "'appointment_cancelled', 'appointment_reminder', 'feedback_request', 'other')",
        name="notifications_type_check",
    ),
    CheckConstraint(
        "priority IN ('low', 'medium', 'high', 'urgent')",
        name="notifications_priority_check",
    ),
    CheckConstraint(
        "status IN ('pending', 'queued', 'sent', 'failed', 'read')",
        name="notifications_status_check",
    ),
    Index("idx_notifications_recipient_id", "recipient_id"),
    Index("idx_notifications_recipient_status", "recipient_id", "status"),
    Index(
        "idx_notifications_pending",
        "created_at",
        postgresql_where=text("status = 'pending'"),
    ),
)
