"""
Base model class for all SQLAlchemy models.

WHY: Centralizing common model functionality (timestamps, ID) in a base class
ensures consistency across all models and reduces code duplication.
"""

import enum
from datetime import datetime, timezone
from typing import Type

from sqlalchemy import Column, Integer, DateTime, Enum as SQLEnum
from sqlalchemy.orm import DeclarativeBase


def utcnow() -> datetime:
    """
    Current UTC time as a naive datetime.

    WHY: Timestamps are stored without a zone (UTC by convention) so values
    read back from PostgreSQL and SQLite compare cleanly with fresh ones.
    """
    return datetime.now(timezone.utc).replace(tzinfo=None)


def enum_column(enum_cls: Type[enum.Enum], name: str) -> SQLEnum:
    """
    Build an Enum column type that stores the lowercase member values.

    WHY: Stored values match the API vocabulary ("queue", "admin"), so raw
    rows and JSON audit snapshots read the same.
    """
    return SQLEnum(
        enum_cls,
        name=name,
        values_callable=lambda members: [member.value for member in members],
    )


class Base(DeclarativeBase):
    """
    Base class for all SQLAlchemy models.

    WHY: DeclarativeBase provides the foundation for SQLAlchemy 2.0 models
    with improved type hints and async support.
    """

    pass


class TimestampMixin:
    """
    Mixin to add created_at and updated_at timestamps to models.

    WHY: Most models need timestamp tracking for audit trails and debugging.
    Using a mixin ensures consistent timestamp behavior across all models.
    """

    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)


class PrimaryKeyMixin:
    """
    Mixin to add an integer primary key to models.

    WHY: Most models use an auto-incrementing integer primary key.
    This mixin ensures consistency and reduces boilerplate.
    """

    id = Column(Integer, primary_key=True, index=True)
