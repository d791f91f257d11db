#!/usr/bin/env python3
"""
Queue every appointment reminder whose dispatch time has passed.

Intended to run every few minutes from a scheduler. Each reminder is
flagged as sent once recorded, so repeated runs never send it twice.

Usage:
    python scripts/dispatch_due_reminders.py
    python scripts/dispatch_due_reminders.py --now 2026-11-01T22:00:00+00:00
"""

import argparse
import asyncio
from datetime import datetime

import structlog

from app.core.redis_client import OutboxQueue, close_redis_connection, get_redis_client
from app.database import AsyncSessionLocal, engine
from app.middleware.logging import configure_logging
from app.services.appointment_service import AppointmentService
from app.services.notification_service import NotificationService
from app.services.reminders import as_utc

logger = structlog.get_logger()


def sweep_time(value: str) -> datetime:
    """ISO timestamp argument; a value without an offset is taken as UTC."""
    return as_utc(datetime.fromisoformat(value))


async def dispatch(now: datetime | None = None) -> int:
    """Run one reminder sweep."""
    try:
        async with AsyncSessionLocal() as session:
            notifications = NotificationService(session, OutboxQueue(get_redis_client()))
            return await AppointmentService(session, notifications).dispatch_due_reminders(now)
    finally:
        await engine.dispose()
        close_redis_connection()


def main() -> int:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[1])
    parser.add_argument(
        "--now",
        type=sweep_time,
        default=None,
        help="Sweep as of this ISO timestamp (UTC when no offset is given)",
    )
    args = parser.parse_args()

    configure_logging()
    count = asyncio.run(dispatch(args.now))
    logger.info("reminder_sweep_finished", count=count)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
