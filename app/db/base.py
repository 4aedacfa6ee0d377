"""SQLAlchemy 2.0 declarative base and shared column mixins."""

from datetime import datetime

from sqlalchemy import DateTime, Integer, MetaData
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, registry

from app.utils.time import utc_now

# Constraint names must be stable for Alembic diffs
NAMING_CONVENTION = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}

_mapper_registry = registry(metadata=MetaData(naming_convention=NAMING_CONVENTION))


class Base(DeclarativeBase):
    """Base for tables keyed by an autoincrement integer id.

    Ids appear in URLs (/api/bookings/7/approve), so every such table
    shares the same primary key shape.
    """

    registry = _mapper_registry
    metadata = _mapper_registry.metadata

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)


class BaseNoId(DeclarativeBase):
    """Base for tables keyed by something else, such as session tokens."""

    registry = _mapper_registry
    metadata = _mapper_registry.metadata


class CreatedAtMixin:
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utc_now,
        nullable=False,
    )


class TimestampMixin(CreatedAtMixin):
    """created_at plus an updated_at that is set on every UPDATE."""

    updated_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        default=None,
        onupdate=utc_now,
        nullable=True,
    )
