#!/usr/bin/env python3
"""
Push notifications stuck in ``pending`` onto the Redis outbox again.

Rows stay pending when Redis was unreachable at emission time. Run this
periodically (cron, k8s CronJob) to get at-least-once delivery.

Usage:
    python scripts/requeue_notifications.py
    python scripts/requeue_notifications.py --older-than 30
"""

import argparse
import asyncio
from datetime import timedelta

import structlog

from app.config import settings
from app.core.redis_client import OutboxQueue, close_redis_connection, get_redis_client
from app.database import AsyncSessionLocal, engine
from app.middleware.logging import configure_logging
from app.services.notification_service import NotificationService

logger = structlog.get_logger()


async def requeue(older_than_minutes: int) -> int:
    """Re-queue pending notifications older than the given age."""
    async with AsyncSessionLocal() as session:
        service = NotificationService(session, OutboxQueue(get_redis_client()))
        return await service.requeue_pending(timedelta(minutes=older_than_minutes))


def main() -> int:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[1])
    parser.add_argument(
        "--older-than",
        type=int,
        default=settings.notification_requeue_after_minutes,
        help="Minimum age in minutes of a pending notification",
    )
    args = parser.parse_args()

    configure_logging()

    async def run() -> int:
        try:
            return await requeue(args.older_than)
        finally:
            await engine.dispose()
            close_redis_connection()

    count = asyncio.run(run())
    logger.info("requeue_finished", count=count)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
