"""Default reminder derivation for new appointments."""

from collections.abc import Mapping
from datetime import UTC, date, datetime, time, timedelta
from typing import Any

from app.config import settings


def schedule_reminders(
    scheduled_date: date,
    email_hours_before: int | None = None,
    sms_hours_before: int | None = None,
) -> list[dict[str, Any]]:
    """
    Build the reminder list attached to a booking.

    Offsets are measured back from the start of the scheduled date (UTC
    midnight), not from the session start time.

    Args:
        scheduled_date: Appointment date
        email_hours_before: Email offset, defaults to settings
        sms_hours_before: SMS offset, defaults to settings

    Returns:
        JSON-ready reminder dicts, email first
    """
    if email_hours_before is None:
        email_hours_before = settings.reminder_email_hours_before
    if sms_hours_before is None:
        sms_hours_before = settings.reminder_sms_hours_before

    anchor = datetime.combine(scheduled_date, time.min, tzinfo=UTC)
    return [
        {
            "channel": "email",
            "scheduled_time": (anchor - timedelta(hours=email_hours_before)).isoformat(),
            "sent": False,
        },
        {
            "channel": "sms",
            "scheduled_time": (anchor - timedelta(hours=sms_hours_before)).isoformat(),
            "sent": False,
        },
    ]


def is_due(reminder: Mapping[str, Any], now: datetime) -> bool:
    """Unsent reminder whose dispatch time has passed."""
    if reminder.get("sent"):
        return False
    scheduled_time = reminder["scheduled_time"]
    if isinstance(scheduled_time, str):
        scheduled_time = datetime.fromisoformat(scheduled_time)
    return scheduled_time <= now


def reminder_horizon_days() -> int:
    """How many days ahead a reminder sweep has to look."""
    longest = max(settings.reminder_email_hours_before, settings.reminder_sms_hours_before)
    return longest // 24 + 1


def as_utc(value: datetime) -> datetime:
    """Treat a naive timestamp as UTC so it compares with stored reminder times."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value
