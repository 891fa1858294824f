"""
Pocketbook Backend — Session Model
===================================

What:  ORM model for the `sessions` table.
How:   Looked up by (account_id, token) on every authenticated request;
       the composite index below serves exactly that query.
Who:   SqlStorage on behalf of the SessionAuthenticator.
"""

from sqlalchemy import ForeignKey, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from pocketbook.database import Base
from pocketbook.models._columns import ID_LENGTH, TimestampMixin, id_column


class SessionRow(TimestampMixin, Base):
    __tablename__ = "sessions"

    id: Mapped[str] = id_column(primary_key=True)
    account_id: Mapped[str] = mapped_column(
        String(ID_LENGTH),
        ForeignKey("accounts.id", ondelete="CASCADE"),
        nullable=False,
    )

    # Random per-session secret; the token's signing key.
    original: Mapped[str] = mapped_column(String(128), nullable=False)
    token: Mapped[str] = mapped_column(Text, nullable=False, unique=True)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")

    __table_args__ = (
        Index("idx_sessions_account_token", "account_id", "token"),
    )

    def __repr__(self) -> str:
        return f"<SessionRow(id={self.id}, account_id={self.account_id})>"
