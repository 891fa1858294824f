"""
Pocketbook Backend — Account Model
===================================

What:  ORM model for the `accounts` table.
How:   One row per registered user. `credential` holds the HMAC-derived
       value of the account secret; the secret itself is never stored.
Who:   SqlStorage; Alembic reads it for migrations.

Deleting an account cascades (ON DELETE CASCADE) to sessions, wallets,
images, categories and transactions.
"""

from sqlalchemy import String, Text
from sqlalchemy.orm import Mapped, mapped_column

from pocketbook.database import Base
from pocketbook.models._columns import TimestampMixin, id_column


class AccountRow(TimestampMixin, Base):
    __tablename__ = "accounts"

    id: Mapped[str] = id_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)

    # Login key. Unique so that login-by-email resolves to at most one row.
    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)

    credential: Mapped[str] = mapped_column(String(128), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")

    def __repr__(self) -> str:
        return f"<AccountRow(id={self.id}, email='{self.email}')>"
