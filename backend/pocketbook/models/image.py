"""
Pocketbook Backend — Image Model
=================================

What:  ORM model for the `images` table.
How:   `payload` always holds the raw bytes, whichever PayloadStrategy is
       configured. With blob storage enabled it is written but not read.
"""

from typing import Optional

from sqlalchemy import ForeignKey, LargeBinary, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from pocketbook.database import Base
from pocketbook.models._columns import ID_LENGTH, TimestampMixin, id_column


class ImageRow(TimestampMixin, Base):
    __tablename__ = "images"

    id: Mapped[str] = id_column(primary_key=True)
    account_id: Mapped[str] = mapped_column(
        String(ID_LENGTH),
        ForeignKey("accounts.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    file_name: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    format: Mapped[str] = mapped_column(String(16), nullable=False, default="")
    payload: Mapped[bytes] = mapped_column(LargeBinary, nullable=False, default=b"")

    def __repr__(self) -> str:
        return f"<ImageRow(id={self.id}, account_id={self.account_id}, format='{self.format}')>"
