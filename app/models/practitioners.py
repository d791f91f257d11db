"""Practitioner model definition using SQLAlchemy Core."""

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Table,
    Text,
    text,
)
from sqlalchemy.dialects.postgresql import UUID

from app.models.base import metadata

practitioners = Table(
    "practitioners",
    metadata,
    Column("id", UUID(as_uuid=True), primary_key=True, server_default=text("gen_random_uuid()")),
    Column(
        "user_id",
        UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
        index=True,
    ),
    # Professional credentials
    Column("license_number", String(100), unique=True),
    Column("specializations", JSON),
    Column("qualification", Text),
    Column("experience_years", Integer),
    Column("consultation_fee", Numeric(10, 2)),
    Column("bio", Text),
    Column("is_verified", Boolean, nullable=False, server_default=text("false")),
    # Metadata
    Column("created_at", DateTime(timezone=True), nullable=False, server_default=text("NOW()")),
    Column("updated_at", DateTime(timezone=True), nullable=False, server_default=text("NOW()")),
    Column("deleted_at", DateTime(timezone=True), nullable=True),
)
