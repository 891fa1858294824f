"""ORM model for the `categories` table."""

from typing import Optional

from sqlalchemy import ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from pocketbook.database import Base
from pocketbook.models._columns import ID_LENGTH, TimestampMixin, id_column


class CategoryRow(TimestampMixin, Base):
    __tablename__ = "categories"

    id: Mapped[str] = id_column(primary_key=True)
    account_id: Mapped[str] = mapped_column(
        String(ID_LENGTH),
        ForeignKey("accounts.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    # Deleting the image leaves the category without an icon.
    image_id: Mapped[Optional[str]] = mapped_column(
        String(ID_LENGTH),
        ForeignKey("images.id", ondelete="SET NULL"),
        nullable=True,
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
