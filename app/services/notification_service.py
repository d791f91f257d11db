"""Notification emission through the outbox table and Redis queue."""

import json
from collections.abc import Iterable, Mapping
from datetime import UTC, date, datetime, timedelta
from typing import Any
from uuid import UUID

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.core.redis_client import OutboxQueue
from app.models.notifications import notifications
from app.services.record_store import RecordStore, notification_store

logger = structlog.get_logger(__name__)


def _describe_date(value: date | str) -> str:
    if isinstance(value, str):
        value = date.fromisoformat(value)
    return value.strftime("%b %d, %Y")


def _therapy_label(appointment: Mapping[str, Any]) -> str:
    return str(appointment["therapy_type"])


class NotificationService:
    """
    Persists notifications and hands them to the external dispatcher.

    Every notification is written as a ``pending`` row first, then its
    envelope is pushed onto the Redis outbox and the row becomes ``queued``.
    A row left ``pending`` (Redis unavailable, process crash) is pushed again
    by ``requeue_pending``, so delivery is at-least-once.
    """

    def __init__(
        self,
        db: AsyncSession | None,
        queue: OutboxQueue,
        store: RecordStore | None = None,
    ):
        """Initialize service with a database session and outbox queue."""
        self.store = store or notification_store(db)
        self.queue = queue

    @staticmethod
    def _envelope(record: Mapping[str, Any]) -> str:
        return json.dumps(
            {
                "notification_id": str(record["id"]),
                "recipient_id": str(record["recipient_id"]),
                "type": record["notification_type"],
                "title": record["title"],
                "message": record["message"],
                "priority": record["priority"],
                "channels": record["channels"],
                "data": record.get("data"),
            },
            default=str,
        )

    async def _enqueue(self, record: Mapping[str, Any]) -> dict[str, Any] | None:
        self.queue.push(self._envelope(record))
        return await self.store.update(
            record["id"],
            {
                "status": "queued",
                "queued_at": datetime.now(UTC),
                "enqueue_count": record.get("enqueue_count", 0) + 1,
            },
        )

    async def emit(
        self,
        recipient_id: UUID,
        notification_type: str,
        title: str,
        message: str,
        priority: str = "medium",
        channels: Iterable[str] = ("email", "in-app"),
        data: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """
        Record a notification and queue it for delivery.

        Args:
            recipient_id: User receiving the notification
            notification_type: Notification type (appointment_confirmation, etc.)
            title: Notification title
            message: Notification body
            priority: Priority level (low, medium, high, urgent)
            channels: Delivery channels for the dispatcher
            data: Optional JSON payload

        Returns:
            The notification row, still ``pending`` when the queue was unavailable

        Raises:
            Exception: Store failures propagate; callers decide whether
                they are fatal
        """
        record = await self.store.create(
            {
                "recipient_id": recipient_id,
                "notification_type": notification_type,
                "title": title,
                "message": message,
                "priority": priority,
                "channels": [{"type": channel} for channel in channels],
                "data": data,
                "status": "pending",
            }
        )

        try:
            queued = await self._enqueue(record)
        except Exception as e:
            # The pending row is picked up again by requeue_pending
            logger.warning(
                "notification_enqueue_failed",
                notification_id=str(record["id"]),
                notification_type=notification_type,
                error=str(e),
            )
            return record

        logger.info(
            "notification_queued",
            notification_id=str(record["id"]),
            notification_type=notification_type,
            recipient_id=str(recipient_id),
        )
        return queued or record

    async def requeue_pending(self, older_than: timedelta | None = None) -> int:
        """
        Push notifications still pending after the grace period again.

        Args:
            older_than: Minimum age of a pending row, defaults to settings

        Returns:
            Number of notifications re-queued
        """
        if older_than is None:
            older_than = timedelta(minutes=settings.notification_requeue_after_minutes)
        cutoff = datetime.now(UTC) - older_than

        pending = await self.store.find_all(
            notifications.c.status == "pending",
            notifications.c.created_at < cutoff,
            order_by=[notifications.c.created_at],
        )

        requeued = 0
        for record in pending:
            try:
                await self._enqueue(record)
                requeued += 1
            except Exception as e:
                logger.error(
                    "notification_requeue_failed",
                    notification_id=str(record["id"]),
                    error=str(e),
                )
                break

        logger.info("pending_notifications_requeued", count=requeued, found=len(pending))
        return requeued

    async def send_appointment_confirmation(
        self,
        recipient_id: UUID,
        appointment: Mapping[str, Any],
    ) -> dict[str, Any]:
        """Notify the patient that a booking was made."""
        therapy = _therapy_label(appointment)
        when = _describe_date(appointment["scheduled_date"])
        return await self.emit(
            recipient_id=recipient_id,
            notification_type="appointment_confirmation",
            title="Appointment Confirmed",
            message=(
                f"Your {therapy} appointment has been scheduled for {when} "
                f"at {appointment['start_time']}"
            ),
            priority="high",
            data={
                "appointment_id": str(appointment["id"]),
                "therapy_type": therapy,
                "scheduled_date": str(appointment["scheduled_date"]),
            },
        )

    async def send_status_change(
        self,
        recipient_id: UUID,
        appointment: Mapping[str, Any],
    ) -> dict[str, Any]:
        """Notify the patient about a new appointment status."""
        status = appointment["status"]
        return await self.emit(
            recipient_id=recipient_id,
            notification_type="appointment_status",
            title=f"Appointment {status}",
            message=f"Your appointment has been {status}",
            priority="medium",
            data={"appointment_id": str(appointment["id"]), "status": status},
        )

    async def send_cancellation(
        self,
        recipient_id: UUID,
        appointment: Mapping[str, Any],
    ) -> dict[str, Any]:
        """Notify the patient that an appointment was cancelled."""
        therapy = _therapy_label(appointment)
        when = _describe_date(appointment["scheduled_date"])
        message = (
            f"Your {therapy} appointment scheduled for {when} at "
            f"{appointment['start_time']} has been cancelled."
        )
        if appointment.get("cancellation_reason"):
            message += f" Reason: {appointment['cancellation_reason']}"

        return await self.emit(
            recipient_id=recipient_id,
            notification_type="appointment_cancelled",
            title="Appointment Cancelled",
            message=message,
            priority="high",
            data={
                "appointment_id": str(appointment["id"]),
                "cancelled_by": appointment.get("cancelled_by"),
            },
        )

    async def send_feedback_request(
        self,
        recipient_id: UUID,
        appointment: Mapping[str, Any],
    ) -> dict[str, Any]:
        """Ask the patient to review a completed session."""
        therapy = _therapy_label(appointment)
        return await self.emit(
            recipient_id=recipient_id,
            notification_type="feedback_request",
            title=f"How was your {therapy} session?",
            message=(
                f"We hope you had a great {therapy} session on "
                f"{_describe_date(appointment['scheduled_date'])}. "
                "Please take a moment to share your experience."
            ),
            priority="low",
            channels=("email",),
            data={"appointment_id": str(appointment["id"])},
        )

    async def send_reminder(
        self,
        recipient_id: UUID,
        appointment: Mapping[str, Any],
        channel: str,
    ) -> dict[str, Any]:
        """Remind the patient of an upcoming session on one channel."""
        therapy = _therapy_label(appointment)
        when = _describe_date(appointment["scheduled_date"])
        return await self.emit(
            recipient_id=recipient_id,
            notification_type="appointment_reminder",
            title=f"Appointment Reminder - {therapy}",
            message=(
                f"Reminder: your {therapy} appointment is on {when} at "
                f"{appointment['start_time']}. Please arrive 15 minutes early."
            ),
            priority="high",
            channels=(channel,),
            data={"appointment_id": str(appointment["id"]), "channel": channel},
        )
