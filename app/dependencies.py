"""FastAPI dependencies."""

from typing import Annotated, Any
from uuid import UUID

import redis
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.authorization import Actor, resolve_actor
from app.core.exceptions import ForbiddenException, UnauthorizedException
from app.core.redis_client import OutboxQueue, get_redis_client
from app.core.security import decode_access_token
from app.database import get_db
from app.models.users import users
from app.services.appointment_service import AppointmentService
from app.services.availability import AvailabilityService
from app.services.notification_service import NotificationService
from app.services.record_store import RecordStore

# Security
security = HTTPBearer(auto_error=False)


def _credentials_error(detail: str = "Could not validate credentials") -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_current_user_id(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
) -> UUID:
    """
    Extract and validate user ID from JWT token.

    Args:
        credentials: Bearer token credentials

    Returns:
        User ID from token

    Raises:
        HTTPException: If token is missing, invalid or expired
    """
    if credentials is None:
        raise _credentials_error("Not authenticated")

    payload = decode_access_token(credentials.credentials)
    if payload is None:
        raise _credentials_error()

    user_id_str = payload.get("sub")
    if user_id_str is None or not isinstance(user_id_str, str):
        raise _credentials_error()

    try:
        return UUID(user_id_str)
    except ValueError:
        raise _credentials_error("Invalid user ID format")


async def get_current_user(
    user_id: Annotated[UUID, Depends(get_current_user_id)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> dict[str, Any]:
    """
    Get current user from database.

    Raises:
        UnauthorizedException: If the token names an unknown user
        ForbiddenException: If the account is deactivated
    """
    user = await RecordStore(db, users).get_by_id(user_id)

    if not user:
        raise UnauthorizedException("User not found")

    if not user["is_active"]:
        raise ForbiddenException("User account is deactivated")

    return user


async def get_current_actor(
    user: Annotated[dict[str, Any], Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> Actor:
    """Resolve the authenticated user's role and profile."""
    return await resolve_actor(db, user)


def get_notification_service(
    db: Annotated[AsyncSession, Depends(get_db)],
    redis_client: Annotated[redis.Redis, Depends(get_redis_client)],
) -> NotificationService:
    return NotificationService(db, OutboxQueue(redis_client))


def get_appointment_service(
    db: Annotated[AsyncSession, Depends(get_db)],
    notifications: Annotated[NotificationService, Depends(get_notification_service)],
) -> AppointmentService:
    return AppointmentService(db, notifications)


def get_availability_service(
    db: Annotated[AsyncSession, Depends(get_db)],
) -> AvailabilityService:
    return AvailabilityService(db)


# Type aliases for dependency injection
CurrentActor = Annotated[Actor, Depends(get_current_actor)]
AppointmentServiceDep = Annotated[AppointmentService, Depends(get_appointment_service)]
AvailabilityServiceDep = Annotated[AvailabilityService, Depends(get_availability_service)]
