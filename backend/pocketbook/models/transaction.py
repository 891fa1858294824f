"""
Pocketbook Backend — Transaction Model
=======================================

What:  ORM model for the `transactions` table.
How:   `amount` is an unconstrained NUMERIC (text on SQLite, see
       ExactDecimal) so any precision survives the round trip. Transactions go with their wallet (CASCADE) but block
       deletion of a category still in use. The category key is NO ACTION
       rather than RESTRICT so the check runs at statement end, after an
       account delete has cascaded through both tables.
"""

from datetime import datetime
from decimal import Decimal

from sqlalchemy import ForeignKey, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.types import TIMESTAMP

from pocketbook.database import Base
from pocketbook.models._columns import ID_LENGTH, ExactDecimal, TimestampMixin, id_column


class TransactionRow(TimestampMixin, Base):
    __tablename__ = "transactions"

    id: Mapped[str] = id_column(primary_key=True)
    account_id: Mapped[str] = mapped_column(
        String(ID_LENGTH),
        ForeignKey("accounts.id", ondelete="CASCADE"),
        nullable=False,
    )
    wallet_id: Mapped[str] = mapped_column(
        String(ID_LENGTH),
        ForeignKey("wallets.id", ondelete="CASCADE"),
        nullable=False,
    )
    category_id: Mapped[str] = mapped_column(
        String(ID_LENGTH),
        ForeignKey("categories.id"),
        nullable=False,
    )
    amount: Mapped[Decimal] = mapped_column(ExactDecimal(), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    date: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), nullable=False)

    __table_args__ = (
        Index("idx_transactions_account_wallet", "account_id", "wallet_id"),
    )
