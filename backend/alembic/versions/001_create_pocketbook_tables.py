"""Create the pocketbook tables

Revision ID: 001
Revises: None
Create Date: 2026-10-19 00:00:00.000000+00:00

What:  accounts, sessions, wallets, images, categories, transactions.
How:   Ids are application-assigned strings (uuid4), so no server-side
       id defaults. Owned rows cascade from their account; transactions
       cascade from their wallet; a category in use cannot be deleted.

Rollback: downgrade() drops every table (destructive).
"""

from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

# revision identifiers
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps():
    return [
        sa.Column(
            "created_at",
            sa.TIMESTAMP(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.TIMESTAMP(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
    ]


def _owner():
    return sa.Column(
        "account_id",
        sa.String(36),
        sa.ForeignKey("accounts.id", ondelete="CASCADE"),
        nullable=False,
    )


def upgrade() -> None:
    op.create_table(
        "accounts",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("email", sa.String(255), nullable=False, unique=True),
        sa.Column("credential", sa.String(128), nullable=False),
        sa.Column("description", sa.Text(), nullable=False, server_default=sa.text("''")),
        *_timestamps(),
    )

    op.create_table(
        "sessions",
        sa.Column("id", sa.String(36), primary_key=True),
        _owner(),
        sa.Column("original", sa.String(128), nullable=False),
        sa.Column("token", sa.Text(), nullable=False, unique=True),
        sa.Column("description", sa.Text(), nullable=False, server_default=sa.text("''")),
        *_timestamps(),
    )
    # Every authenticated request runs this lookup.
    op.create_index("idx_sessions_account_token", "sessions", ["account_id", "token"])

    op.create_table(
        "wallets",
        sa.Column("id", sa.String(36), primary_key=True),
        _owner(),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("description", sa.Text(), nullable=False, server_default=sa.text("''")),
        sa.Column("secret", sa.String(255), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint("account_id", "name", name="uq_wallets_account_name"),
    )
    op.create_index("ix_wallets_account_id", "wallets", ["account_id"])

    op.create_table(
        "images",
        sa.Column("id", sa.String(36), primary_key=True),
        _owner(),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("description", sa.Text(), nullable=False, server_default=sa.text("''")),
        sa.Column("url", sa.Text(), nullable=True),
        sa.Column("file_name", sa.String(255), nullable=False, server_default=sa.text("''")),
        sa.Column("format", sa.String(16), nullable=False, server_default=sa.text("''")),
        sa.Column("payload", sa.LargeBinary(), nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_images_account_id", "images", ["account_id"])

    op.create_table(
        "categories",
        sa.Column("id", sa.String(36), primary_key=True),
        _owner(),
        sa.Column(
            "image_id",
            sa.String(36),
            sa.ForeignKey("images.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("description", sa.Text(), nullable=False, server_default=sa.text("''")),
        *_timestamps(),
    )
    op.create_index("ix_categories_account_id", "categories", ["account_id"])

    op.create_table(
        "transactions",
        sa.Column("id", sa.String(36), primary_key=True),
        _owner(),
        sa.Column(
            "wallet_id",
            sa.String(36),
            sa.ForeignKey("wallets.id", ondelete="CASCADE"),
            nullable=False,
        ),
        # NO ACTION: checked at statement end, after account cascades ran.
        sa.Column("category_id", sa.String(36), sa.ForeignKey("categories.id"), nullable=False),
        sa.Column("amount", sa.Numeric().with_variant(sa.Text(), "sqlite"), nullable=False),
        sa.Column("description", sa.Text(), nullable=False, server_default=sa.text("''")),
        sa.Column("date", sa.TIMESTAMP(timezone=True), nullable=False),
        *_timestamps(),
    )
    op.create_index(
        "idx_transactions_account_wallet", "transactions", ["account_id", "wallet_id"]
    )


def downgrade() -> None:
    op.drop_table("transactions")
    op.drop_table("categories")
    op.drop_table("images")
    op.drop_table("wallets")
    op.drop_table("sessions")
    op.drop_table("accounts")
