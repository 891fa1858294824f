"""
Pocketbook Backend — SQLAlchemy Models
=======================================

Importing this package registers every table with `Base.metadata`
(used by Alembic autogenerate and by Database.create_all()).
"""

from pocketbook.models.account import AccountRow
from pocketbook.models.category import CategoryRow
from pocketbook.models.image import ImageRow
from pocketbook.models.session import SessionRow
from pocketbook.models.transaction import TransactionRow
from pocketbook.models.wallet import WalletRow

__all__ = [
    "AccountRow",
    "CategoryRow",
    "ImageRow",
    "SessionRow",
    "TransactionRow",
    "WalletRow",
]
