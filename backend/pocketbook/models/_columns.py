"""Column helpers shared by every table."""

from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional

from sqlalchemy import Numeric, String, Text, text
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.types import TIMESTAMP, TypeDecorator

ID_LENGTH = 36


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def id_column(**kwargs) -> Mapped[str]:
    """Opaque identifier assigned by the interactor, never by the database."""
    return mapped_column(String(ID_LENGTH), **kwargs)


class TimestampMixin:
    """created_at / updated_at in UTC, filled on insert and refreshed on update."""

    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        nullable=False,
        default=_utcnow,
        server_default=text("CURRENT_TIMESTAMP"),
    )
    updated_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        nullable=False,
        default=_utcnow,
        onupdate=_utcnow,
        server_default=text("CURRENT_TIMESTAMP"),
    )


class ExactDecimal(TypeDecorator):
    """
    NUMERIC on PostgreSQL; on SQLite, whose NUMERIC affinity keeps a double,
    the decimal's text form is stored instead so every digit survives.
    """

    impl = Numeric
    cache_ok = True

    def load_dialect_impl(self, dialect):
        if dialect.name == "sqlite":
            return dialect.type_descriptor(Text())
        return dialect.type_descriptor(Numeric(asdecimal=True))

    def process_bind_param(self, value: Optional[Decimal], dialect) -> Optional[object]:
        if value is None or dialect.name != "sqlite":
            return value
        return str(Decimal(value))

    def process_result_value(self, value: Optional[object], dialect) -> Optional[Decimal]:
        if value is None:
            return None
        return value if isinstance(value, Decimal) else Decimal(str(value))
