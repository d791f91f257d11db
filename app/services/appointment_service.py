"""Appointment lifecycle: booking, status changes, rescheduling and reminders."""

import math
from collections.abc import Awaitable, Callable
from datetime import UTC, datetime, timedelta
from typing import Any
from uuid import UUID

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.core.authorization import Actor, ensure_can_access, ensure_can_book
from app.core.exceptions import (
    AppointmentNotFoundException,
    PatientNotFoundException,
    PractitionerNotFoundException,
    SlotConflictException,
    ValidationException,
)
from app.models.appointments import ACTIVE_STATUSES, appointments
from app.schemas.appointments import (
    AppointmentCreate,
    AppointmentFilters,
    AppointmentListData,
    AppointmentResponse,
    AppointmentStatus,
    AppointmentStatusUpdate,
    AppointmentUpdate,
    Pagination,
)
from app.services.conflict_guard import ConflictGuard, ConflictPolicy
from app.services.notification_service import NotificationService
from app.services.record_store import (
    AppointmentStore,
    RecordStore,
    patient_store,
    practitioner_store,
)
from app.services.reminders import as_utc, is_due, reminder_horizon_days, schedule_reminders
from app.services.status_transitions import TransitionPolicy, check_transition

logger = structlog.get_logger(__name__)

SCHEDULE_FIELDS = ("scheduled_date", "start_time", "end_time", "duration")
# An explicit null clears these
CLEARABLE_FIELDS = ("notes", "pre_session_instructions", "post_session_instructions")


class AppointmentService:
    """Service for managing appointments."""

    def __init__(
        self,
        db: AsyncSession | None,
        notifications: NotificationService | None = None,
        *,
        appointments_store: AppointmentStore | None = None,
        patients: RecordStore | None = None,
        practitioners: RecordStore | None = None,
        conflict_policy: ConflictPolicy | str | None = None,
        transition_policy: TransitionPolicy | str | None = None,
        recheck_on_reschedule: bool | None = None,
    ):
        """Initialize service with database session, notifier and policies."""
        self.db = db
        self.notifications = notifications
        self.appointments = appointments_store or AppointmentStore(db)
        self.patients = patients or patient_store(db)
        self.practitioners = practitioners or practitioner_store(db)
        self.guard = ConflictGuard(self.appointments, conflict_policy)
        self.transition_policy = TransitionPolicy(
            transition_policy or settings.status_transition_policy
        )
        self.recheck_on_reschedule = (
            settings.recheck_conflicts_on_reschedule
            if recheck_on_reschedule is None
            else recheck_on_reschedule
        )

    async def _notify_patient(
        self,
        event: str,
        appointment: dict[str, Any],
        send: Callable[[UUID, dict[str, Any]], Awaitable[Any]],
    ) -> None:
        """Best-effort notification; failures are logged, never raised."""
        if self.notifications is None:
            return

        try:
            patient = await self.patients.get_by_id(appointment["patient_id"])
            if not patient:
                logger.warning(
                    "notification_recipient_missing",
                    notification_event=event,
                    appointment_id=str(appointment["id"]),
                )
                return
            await send(patient["user_id"], appointment)
        except Exception as e:
            logger.warning(
                "failed_to_send_appointment_notification",
                notification_event=event,
                appointment_id=str(appointment["id"]),
                error=str(e),
            )

    async def _load(self, actor: Actor, appointment_id: UUID) -> dict[str, Any]:
        appointment = await self.appointments.get_by_id(appointment_id)
        if not appointment:
            raise AppointmentNotFoundException()
        ensure_can_access(actor, appointment)
        return appointment

    async def create_appointment(
        self,
        actor: Actor,
        data: AppointmentCreate,
    ) -> AppointmentResponse:
        """
        Book a new appointment.

        Args:
            actor: Requesting user
            data: Booking request

        Returns:
            Created appointment with default reminders attached

        Raises:
            ForbiddenException: If the actor may not book this pair
            PatientNotFoundException: If the patient does not exist
            PractitionerNotFoundException: If the practitioner does not exist
            SlotConflictException: If the practitioner's slot is already taken
        """
        ensure_can_book(actor, data.patient_id, data.practitioner_id)

        if not await self.patients.get_by_id(data.patient_id):
            raise PatientNotFoundException()
        if not await self.practitioners.get_by_id(data.practitioner_id):
            raise PractitionerNotFoundException()

        values = {
            "patient_id": data.patient_id,
            "practitioner_id": data.practitioner_id,
            "therapy_type": data.therapy_type.value,
            "scheduled_date": data.scheduled_date,
            "start_time": data.start_time,
            "end_time": data.end_time,
            "duration": data.duration,
            "cost": data.cost,
            "notes": data.notes,
            "pre_session_instructions": data.pre_session_instructions,
            "post_session_instructions": data.post_session_instructions,
            "status": AppointmentStatus.SCHEDULED.value,
            "reminders": schedule_reminders(data.scheduled_date),
        }

        row = await self.appointments.create_if_available(
            values, self.guard.slot_taken(data.start_time, data.end_time)
        )
        if row is None:
            logger.info(
                "slot_conflict",
                practitioner_id=str(data.practitioner_id),
                date=data.scheduled_date.isoformat(),
                start_time=data.start_time,
                policy=self.guard.policy.value,
            )
            raise SlotConflictException()

        logger.info(
            "appointment_created",
            appointment_id=str(row["id"]),
            practitioner_id=str(row["practitioner_id"]),
            date=data.scheduled_date.isoformat(),
            start_time=data.start_time,
        )

        if self.notifications is not None:
            await self._notify_patient(
                "created", row, self.notifications.send_appointment_confirmation
            )

        return AppointmentResponse.model_validate(row)

    async def get_appointment(self, actor: Actor, appointment_id: UUID) -> AppointmentResponse:
        """
        Get appointment by ID.

        Raises:
            AppointmentNotFoundException: If appointment not found
            ForbiddenException: If the actor doesn't own the appointment
        """
        return AppointmentResponse.model_validate(await self._load(actor, appointment_id))

    async def list_appointments(
        self,
        actor: Actor,
        filters: AppointmentFilters,
    ) -> AppointmentListData:
        """
        List appointments visible to the actor, newest first.

        The actor's own patient/practitioner scope replaces any matching filter.
        """
        criteria: dict[str, Any] = {
            "patient_id": filters.patient_id,
            "practitioner_id": filters.practitioner_id,
        }
        criteria.update(actor.scope())

        conditions = []
        if criteria["patient_id"]:
            conditions.append(appointments.c.patient_id == criteria["patient_id"])
        if criteria["practitioner_id"]:
            conditions.append(appointments.c.practitioner_id == criteria["practitioner_id"])
        if filters.status:
            conditions.append(appointments.c.status == filters.status.value)
        if filters.therapy_type:
            conditions.append(appointments.c.therapy_type == filters.therapy_type.value)
        if filters.start_date:
            conditions.append(appointments.c.scheduled_date >= filters.start_date)
        if filters.end_date:
            conditions.append(appointments.c.scheduled_date <= filters.end_date)

        rows, total = await self.appointments.find(
            *conditions,
            page=filters.page,
            limit=filters.limit,
            order_by=[appointments.c.scheduled_date.desc(), appointments.c.start_time.desc()],
        )

        return AppointmentListData(
            appointments=[AppointmentResponse.model_validate(row) for row in rows],
            pagination=Pagination(
                current=filters.page,
                pages=math.ceil(total / filters.limit),
                total=total,
            ),
        )

    async def update_appointment(
        self,
        actor: Actor,
        appointment_id: UUID,
        data: AppointmentUpdate,
    ) -> AppointmentResponse:
        """
        Change schedule or note fields of an existing appointment.

        The conflict guard only runs here when re-checking on reschedule is
        enabled; otherwise an update may move a booking onto a taken slot.

        Raises:
            AppointmentNotFoundException: If appointment not found
            ForbiddenException: If the actor doesn't own the appointment
            ValidationException: If the merged times are inconsistent
            SlotConflictException: If re-checking is enabled and the new slot is taken
        """
        current = await self._load(actor, appointment_id)

        changes = {
            field: value
            for field, value in data.model_dump(exclude_unset=True).items()
            if value is not None or field in CLEARABLE_FIELDS
        }
        if not changes:
            return AppointmentResponse.model_validate(current)

        merged = {**current, **changes}
        if merged["end_time"] <= merged["start_time"]:
            raise ValidationException(
                errors=[{"field": "end_time", "message": "End time must be after start time"}]
            )

        reschedules = any(
            field in changes and changes[field] != current[field] for field in SCHEDULE_FIELDS
        )
        if changes.get("scheduled_date", current["scheduled_date"]) != current["scheduled_date"]:
            # Sent reminders stay as history; pending ones follow the new date
            sent = [dict(r) for r in current.get("reminders") or [] if r.get("sent")]
            changes["reminders"] = sent + schedule_reminders(changes["scheduled_date"])

        if reschedules and self.recheck_on_reschedule and current["status"] in ACTIVE_STATUSES:
            row = await self.appointments.update_if_available(
                appointment_id,
                {**changes, **{f: merged[f] for f in ("practitioner_id", "scheduled_date")}},
                self.guard.slot_taken(merged["start_time"], merged["end_time"]),
            )
            if row is None:
                raise SlotConflictException()
        else:
            row = await self.appointments.update(appointment_id, changes)

        if row is None:
            raise AppointmentNotFoundException()

        logger.info(
            "appointment_updated",
            appointment_id=str(appointment_id),
            fields=sorted(changes),
            rescheduled=reschedules,
        )
        return AppointmentResponse.model_validate(row)

    async def update_appointment_status(
        self,
        actor: Actor,
        appointment_id: UUID,
        data: AppointmentStatusUpdate,
    ) -> AppointmentResponse:
        """
        Move an appointment to a new status.

        Under the permissive policy any status may follow any other, and a
        cancellation reason stamps the cancellation fields whatever the new
        status is. Under the strict policy the transition table applies and
        cancellation fields are only written when cancelling.

        Raises:
            AppointmentNotFoundException: If appointment not found
            ForbiddenException: If the actor doesn't own the appointment
            InvalidStatusTransitionException: Under the strict policy
        """
        current = await self._load(actor, appointment_id)
        new_status = data.status

        if current["status"] == new_status.value == AppointmentStatus.CANCELLED.value:
            return AppointmentResponse.model_validate(current)

        check_transition(current["status"], new_status, self.transition_policy)

        values: dict[str, Any] = {"status": new_status.value}
        cancelling = new_status is AppointmentStatus.CANCELLED
        stamp = cancelling or (
            data.cancellation_reason is not None
            and self.transition_policy is TransitionPolicy.PERMISSIVE
        )
        if stamp:
            values["cancelled_by"] = actor.role.value
            values["cancelled_at"] = datetime.now(UTC)
            if data.cancellation_reason:
                values["cancellation_reason"] = data.cancellation_reason

        row = await self.appointments.update(appointment_id, values)
        if row is None:
            raise AppointmentNotFoundException()

        logger.info(
            "appointment_status_updated",
            appointment_id=str(appointment_id),
            old_status=current["status"],
            new_status=new_status.value,
        )

        if self.notifications is not None:
            if cancelling:
                await self._notify_patient("cancelled", row, self.notifications.send_cancellation)
            else:
                await self._notify_patient(
                    "status_changed", row, self.notifications.send_status_change
                )
            if new_status is AppointmentStatus.COMPLETED:
                await self._notify_patient(
                    "feedback_request", row, self.notifications.send_feedback_request
                )

        return AppointmentResponse.model_validate(row)

    async def cancel_appointment(self, actor: Actor, appointment_id: UUID) -> AppointmentResponse:
        """
        Cancel an appointment on behalf of the actor.

        Cancelling an already cancelled appointment returns it unchanged.

        Raises:
            AppointmentNotFoundException: If appointment not found
            ForbiddenException: If the actor doesn't own the appointment
            InvalidStatusTransitionException: Under the strict policy, for
                completed or no-show appointments
        """
        current = await self._load(actor, appointment_id)
        if current["status"] == AppointmentStatus.CANCELLED.value:
            return AppointmentResponse.model_validate(current)

        check_transition(current["status"], AppointmentStatus.CANCELLED, self.transition_policy)

        row = await self.appointments.update(
            appointment_id,
            {
                "status": AppointmentStatus.CANCELLED.value,
                "cancelled_by": actor.role.value,
                "cancelled_at": datetime.now(UTC),
            },
        )
        if row is None:
            raise AppointmentNotFoundException()

        logger.info(
            "appointment_cancelled",
            appointment_id=str(appointment_id),
            cancelled_by=actor.role.value,
        )

        if self.notifications is not None:
            await self._notify_patient("cancelled", row, self.notifications.send_cancellation)

        return AppointmentResponse.model_validate(row)

    async def dispatch_due_reminders(self, now: datetime | None = None) -> int:
        """
        Queue every due, unsent reminder of upcoming active appointments.

        A reminder is flagged as sent once its notification row exists;
        getting that row onto the queue is left to ``requeue_pending``.

        Returns:
            Number of reminders queued
        """
        if self.notifications is None:
            raise RuntimeError("Reminder dispatch needs a notification service")

        now = as_utc(now) if now else datetime.now(UTC)
        upcoming = await self.appointments.find_active_between(
            now.date(), now.date() + timedelta(days=reminder_horizon_days())
        )

        dispatched = 0
        for appointment in upcoming:
            reminders = [dict(reminder) for reminder in appointment.get("reminders") or []]
            due = [reminder for reminder in reminders if is_due(reminder, now)]
            if not due:
                continue

            patient = await self.patients.get_by_id(appointment["patient_id"])
            if not patient:
                continue

            for reminder in due:
                try:
                    await self.notifications.send_reminder(
                        patient["user_id"], appointment, reminder["channel"]
                    )
                except Exception as e:
                    logger.warning(
                        "reminder_dispatch_failed",
                        appointment_id=str(appointment["id"]),
                        channel=reminder["channel"],
                        error=str(e),
                    )
                    continue
                reminder["sent"] = True
                reminder["sent_at"] = now.isoformat()
                dispatched += 1

            await self.appointments.update(appointment["id"], {"reminders": reminders})

        logger.info("due_reminders_dispatched", count=dispatched, checked=len(upcoming))
        return dispatched
