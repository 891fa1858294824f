"""
Pocketbook Backend — Wallet, Category and Transaction Schemas
==============================================================

Create requests are lists: one POST creates the whole batch or nothing.
Drafts carry no ids; the interactor assigns them.
"""

from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from pocketbook.domain import Category, Transaction, Wallet


def _changes(model: BaseModel) -> Dict[str, Any]:
    return model.model_dump(exclude_unset=True)


# ── Wallets ───────────────────────────────────────────────────────────────

class WalletDraft(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    description: str = Field(default="", max_length=4096)
    password: Optional[str] = Field(default=None, description="Optional wallet access secret")

    def to_domain(self, account_id: str) -> Wallet:
        return Wallet(
            account_id=account_id,
            name=self.name,
            description=self.description,
            secret=self.password,
        )


class WalletUpdateRequest(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    description: Optional[str] = Field(default=None, max_length=4096)
    password: Optional[str] = None

    def changes(self) -> Dict[str, Any]:
        values = _changes(self)
        if "password" in values:
            values["secret"] = values.pop("password")
        return {k: v for k, v in values.items() if v is not None or k == "secret"}


class WalletResponse(BaseModel):
    wallet_id: str
    user_id: str
    name: str
    description: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_domain(cls, wallet: Wallet) -> "WalletResponse":
        return cls(
            wallet_id=wallet.id,
            user_id=wallet.account_id,
            name=wallet.name,
            description=wallet.description,
            created_at=wallet.created_at,
            updated_at=wallet.updated_at,
        )


class WalletBatchRequest(BaseModel):
    wallets: List[WalletDraft]


class WalletListResponse(BaseModel):
    wallets: List[WalletResponse]


# ── Categories ────────────────────────────────────────────────────────────

class CategoryDraft(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    description: str = Field(default="", max_length=4096)
    image_id: Optional[str] = Field(default=None, description="Icon image of the same user")

    def to_domain(self, account_id: str) -> Category:
        return Category(
            account_id=account_id,
            name=self.name,
            description=self.description,
            image_id=self.image_id,
        )


class CategoryUpdateRequest(BaseModel):
    """Send `"image_id": null` to detach the icon."""
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    description: Optional[str] = Field(default=None, max_length=4096)
    image_id: Optional[str] = None

    def changes(self) -> Dict[str, Any]:
        return {k: v for k, v in _changes(self).items() if v is not None or k == "image_id"}


class CategoryResponse(BaseModel):
    category_id: str
    user_id: str
    image_id: Optional[str] = None
    name: str
    description: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_domain(cls, category: Category) -> "CategoryResponse":
        return cls(
            category_id=category.id,
            user_id=category.account_id,
            image_id=category.image_id,
            name=category.name,
            description=category.description,
            created_at=category.created_at,
            updated_at=category.updated_at,
        )


class CategoryBatchRequest(BaseModel):
    categories: List[CategoryDraft]


class CategoryListResponse(BaseModel):
    categories: List[CategoryResponse]


# ── Transactions ──────────────────────────────────────────────────────────

class TransactionDraft(BaseModel):
    """Negative amounts are expenses."""
    category_id: str
    amount: Decimal
    description: str = Field(default="", max_length=4096)
    date: datetime

    def to_domain(self, account_id: str, wallet_id: str) -> Transaction:
        return Transaction(
            account_id=account_id,
            wallet_id=wallet_id,
            category_id=self.category_id,
            amount=self.amount,
            description=self.description,
            date=self.date,
        )


class TransactionUpdateRequest(BaseModel):
    category_id: Optional[str] = None
    amount: Optional[Decimal] = None
    description: Optional[str] = Field(default=None, max_length=4096)
    date: Optional[datetime] = None

    def changes(self) -> Dict[str, Any]:
        return {k: v for k, v in _changes(self).items() if v is not None}


class TransactionResponse(BaseModel):
    transaction_id: str
    user_id: str
    wallet_id: str
    category_id: str
    amount: Decimal
    description: str
    date: datetime
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_domain(cls, transaction: Transaction) -> "TransactionResponse":
        return cls(
            transaction_id=transaction.id,
            user_id=transaction.account_id,
            wallet_id=transaction.wallet_id,
            category_id=transaction.category_id,
            amount=transaction.amount,
            description=transaction.description,
            date=transaction.date,
            created_at=transaction.created_at,
            updated_at=transaction.updated_at,
        )


class TransactionBatchRequest(BaseModel):
    transactions: List[TransactionDraft]


class TransactionListResponse(BaseModel):
    transactions: List[TransactionResponse]
