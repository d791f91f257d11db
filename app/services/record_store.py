"""Generic persistence for SQLAlchemy Core tables."""

import hashlib
from collections.abc import Callable, Sequence
from datetime import UTC, date, datetime
from typing import Any
from uuid import UUID

from sqlalchemy import ColumnElement, Table, and_, func, insert, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.appointments import ACTIVE_STATUSES, appointments
from app.models.notifications import notifications
from app.models.patients import patients
from app.models.practitioners import practitioners


class RecordStore:
    """Create, read, page through, update and soft-delete rows of one table.

    Tables carrying a ``deleted_at`` column are soft-deletable; rows with
    ``deleted_at`` set are invisible to every read.
    """

    def __init__(self, db: AsyncSession, table: Table):
        """Initialize store with database session and table."""
        self.db = db
        self.table = table

    @property
    def soft_deletable(self) -> bool:
        return "deleted_at" in self.table.c

    def _visible(self, *conditions: ColumnElement[bool]) -> list[ColumnElement[bool]]:
        where = list(conditions)
        if self.soft_deletable:
            where.append(self.table.c.deleted_at.is_(None))
        return where

    async def create(self, values: dict[str, Any], commit: bool = True) -> dict[str, Any]:
        """Insert a row and return it."""
        result = await self.db.execute(insert(self.table).values(**values).returning(self.table))
        row = result.mappings().one()
        if commit:
            await self.db.commit()
        return dict(row)

    async def get_by_id(self, record_id: UUID) -> dict[str, Any] | None:
        """Fetch a visible row by primary key."""
        stmt = select(self.table).where(and_(*self._visible(self.table.c.id == record_id)))
        result = await self.db.execute(stmt)
        row = result.mappings().first()
        return dict(row) if row else None

    async def find_one(self, *conditions: ColumnElement[bool]) -> dict[str, Any] | None:
        """Fetch the first visible row matching every condition."""
        stmt = select(self.table).where(and_(*self._visible(*conditions))).limit(1)
        result = await self.db.execute(stmt)
        row = result.mappings().first()
        return dict(row) if row else None

    async def find(
        self,
        *conditions: ColumnElement[bool],
        page: int = 1,
        limit: int = 10,
        order_by: Sequence[Any] = (),
    ) -> tuple[list[dict[str, Any]], int]:
        """
        Page through visible rows.

        Args:
            conditions: SQL conditions combined with AND
            page: 1-based page number
            limit: Page size
            order_by: Ordering clauses

        Returns:
            Tuple of (rows on the page, total matching rows)
        """
        where = and_(*self._visible(*conditions))

        count_stmt = select(func.count()).select_from(self.table).where(where)
        total = (await self.db.execute(count_stmt)).scalar() or 0

        stmt = (
            select(self.table)
            .where(where)
            .order_by(*order_by)
            .limit(limit)
            .offset((page - 1) * limit)
        )
        result = await self.db.execute(stmt)
        return [dict(row) for row in result.mappings().all()], total

    async def find_all(
        self,
        *conditions: ColumnElement[bool],
        order_by: Sequence[Any] = (),
    ) -> list[dict[str, Any]]:
        """Fetch every visible row matching the conditions."""
        stmt = select(self.table).where(and_(*self._visible(*conditions))).order_by(*order_by)
        result = await self.db.execute(stmt)
        return [dict(row) for row in result.mappings().all()]

    async def update(
        self,
        record_id: UUID,
        values: dict[str, Any],
        commit: bool = True,
    ) -> dict[str, Any] | None:
        """Apply values to a visible row and return the updated row."""
        if "updated_at" in self.table.c:
            values = {**values, "updated_at": datetime.now(UTC)}

        stmt = (
            update(self.table)
            .where(and_(*self._visible(self.table.c.id == record_id)))
            .values(**values)
            .returning(self.table)
        )
        result = await self.db.execute(stmt)
        row = result.mappings().first()
        if commit:
            await self.db.commit()
        return dict(row) if row else None

    async def soft_delete(self, record_id: UUID) -> bool:
        """Hide a row from reads without removing it."""
        if not self.soft_deletable:
            raise TypeError(f"Table '{self.table.name}' does not support soft delete")

        now = datetime.now(UTC)
        stmt = (
            update(self.table)
            .where(and_(*self._visible(self.table.c.id == record_id)))
            .values(deleted_at=now, updated_at=now)
        )
        result = await self.db.execute(stmt)
        await self.db.commit()
        return result.rowcount > 0


def practitioner_day_lock_key(practitioner_id: UUID, scheduled_date: date) -> int:
    """Stable signed 64-bit key for a practitioner's calendar day."""
    raw = f"{practitioner_id}:{scheduled_date.isoformat()}".encode()
    digest = hashlib.blake2b(raw, digest_size=8).digest()
    return int.from_bytes(digest, "big", signed=True)


class AppointmentStore(RecordStore):
    """Appointment persistence with the atomic booking primitive."""

    def __init__(self, db: AsyncSession):
        """Initialize store for the appointments table."""
        super().__init__(db, appointments)

    async def find_active(
        self,
        practitioner_id: UUID,
        scheduled_date: date,
        start_time: str | None = None,
    ) -> list[dict[str, Any]]:
        """Active bookings of a practitioner on a date, optionally at one start time."""
        conditions = [
            appointments.c.practitioner_id == practitioner_id,
            appointments.c.scheduled_date == scheduled_date,
            appointments.c.status.in_(ACTIVE_STATUSES),
        ]
        if start_time is not None:
            conditions.append(appointments.c.start_time == start_time)

        return await self.find_all(*conditions, order_by=[appointments.c.start_time])

    async def find_active_between(self, from_date: date, to_date: date) -> list[dict[str, Any]]:
        """Active bookings of every practitioner within an inclusive date range."""
        return await self.find_all(
            appointments.c.scheduled_date >= from_date,
            appointments.c.scheduled_date <= to_date,
            appointments.c.status.in_(ACTIVE_STATUSES),
            order_by=[appointments.c.scheduled_date, appointments.c.start_time],
        )

    async def lock_practitioner_day(self, practitioner_id: UUID, scheduled_date: date) -> None:
        """Serialize writers for one practitioner day until the transaction ends."""
        key = practitioner_day_lock_key(practitioner_id, scheduled_date)
        await self.db.execute(select(func.pg_advisory_xact_lock(key)))

    async def create_if_available(
        self,
        values: dict[str, Any],
        is_taken: Callable[[list[dict[str, Any]]], bool],
    ) -> dict[str, Any] | None:
        """
        Insert a booking unless the slot is taken, as one atomic step.

        The practitioner day is locked before the active bookings are read, so
        two concurrent requests for the same day are checked one after the other.

        Args:
            values: Column values of the new appointment
            is_taken: Predicate over the day's active bookings

        Returns:
            The created appointment, or None when the slot is taken
        """
        practitioner_id = values["practitioner_id"]
        scheduled_date = values["scheduled_date"]

        try:
            await self.lock_practitioner_day(practitioner_id, scheduled_date)
            active = await self.find_active(practitioner_id, scheduled_date)
            if is_taken(active):
                await self.db.rollback()
                return None
            return await self.create(values)
        except Exception:
            await self.db.rollback()
            raise

    async def update_if_available(
        self,
        appointment_id: UUID,
        values: dict[str, Any],
        is_taken: Callable[[list[dict[str, Any]]], bool],
    ) -> dict[str, Any] | None:
        """Reschedule under the same lock; None when the target slot is taken."""
        try:
            await self.lock_practitioner_day(values["practitioner_id"], values["scheduled_date"])
            active = await self.find_active(values["practitioner_id"], values["scheduled_date"])
            others = [row for row in active if row["id"] != appointment_id]
            if is_taken(others):
                await self.db.rollback()
                return None
            changes = {k: v for k, v in values.items() if k != "practitioner_id"}
            return await self.update(appointment_id, changes)
        except Exception:
            await self.db.rollback()
            raise


def patient_store(db: AsyncSession) -> RecordStore:
    return RecordStore(db, patients)


def practitioner_store(db: AsyncSession) -> RecordStore:
    return RecordStore(db, practitioners)


def notification_store(db: AsyncSession) -> RecordStore:
    return RecordStore(db, notifications)
