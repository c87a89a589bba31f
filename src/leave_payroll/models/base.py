"""Declarative base, shared column types and the created_at mixin."""

from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal
from typing import Annotated
from uuid import UUID

from sqlalchemy import DateTime, Numeric, Uuid, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

# Salaries and pay lines: 2-decimal fixed point
Money = Annotated[Decimal, "money"]
# Leave day counts; half days are allowed
DayCount = Annotated[Decimal, "day_count"]


def utcnow() -> datetime:
    """Timezone-aware current time."""
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    """Base class for all leave and payroll tables."""

    type_annotation_map = {
        UUID: Uuid(as_uuid=True),
        datetime: DateTime(timezone=True),
        Money: Numeric(14, 2),
        DayCount: Numeric(6, 2),
    }


class TimestampMixin:
    """Adds created_at, set by the application and defaulted by the database."""

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        server_default=func.now(),
        nullable=False,
    )
