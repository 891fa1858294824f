"""ORM model for the `wallets` table."""

from typing import Optional

from sqlalchemy import ForeignKey, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from pocketbook.database import Base
from pocketbook.models._columns import ID_LENGTH, TimestampMixin, id_column


class WalletRow(TimestampMixin, Base):
    __tablename__ = "wallets"

    id: Mapped[str] = id_column(primary_key=True)
    account_id: Mapped[str] = mapped_column(
        String(ID_LENGTH),
        ForeignKey("accounts.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")

    # Optional wallet-specific access secret.
    secret: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    __table_args__ = (
        UniqueConstraint("account_id", "name", name="uq_wallets_account_name"),
    )
