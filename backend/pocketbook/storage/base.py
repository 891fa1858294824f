"""
Pocketbook Backend — Storage and Blob Adapter Contracts
========================================================

What:  Abstract interfaces for the relational store and the blob store.
How:   The interactor and the session authenticator depend only on these
       ABCs. Concrete adapters: SqlStorage (SQLAlchemy), LocalBlobStore
       (filesystem), and the in-memory doubles used by the test-suite.

Outcome contract (every adapter must honor it):
    - get-one for a missing row returns None.
    - A store that cannot be reached raises StoreUnavailableError.
    - A uniqueness or foreign-key violation raises ConflictError
      (DuplicateKeyError for key collisions).
    - create_* batch methods are atomic: either every row is written or
      none is, and the returned records are re-read from the store so
      they carry store-assigned timestamps, in input order.
    - Updates return the re-read record, or None when no row matched.
    - Deletes of a missing row are not errors.
"""

from abc import ABC, abstractmethod
from typing import List, Optional

from pocketbook.domain import Account, Category, Image, Session, Transaction, Wallet


class StorageAdapter(ABC):
    """Relational persistence for every entity, scoped by owning account."""

    # ── Accounts ──────────────────────────────────────────────────────────

    @abstractmethod
    async def list_accounts(self) -> List[Account]:
        ...

    @abstractmethod
    async def get_account(self, account_id: str) -> Optional[Account]:
        ...

    @abstractmethod
    async def get_account_by_email(self, email: str) -> Optional[Account]:
        ...

    @abstractmethod
    async def create_account(self, account: Account) -> Account:
        ...

    @abstractmethod
    async def update_account(self, account: Account) -> Optional[Account]:
        ...

    @abstractmethod
    async def delete_account(self, account_id: str) -> None:
        """Delete the account; owned rows go with it."""

    # ── Sessions ──────────────────────────────────────────────────────────

    @abstractmethod
    async def list_sessions(self, account_id: str) -> List[Session]:
        ...

    @abstractmethod
    async def get_session(self, account_id: str, token: str) -> Optional[Session]:
        """Look a session up by (account_id, token)."""

    @abstractmethod
    async def create_session(self, session: Session) -> Session:
        ...

    @abstractmethod
    async def delete_session(self, account_id: str, token: str) -> None:
        ...

    @abstractmethod
    async def delete_sessions(self, account_id: str) -> None:
        ...

    # ── Wallets ───────────────────────────────────────────────────────────

    @abstractmethod
    async def list_wallets(self, account_id: str) -> List[Wallet]:
        ...

    @abstractmethod
    async def get_wallet(self, account_id: str, wallet_id: str) -> Optional[Wallet]:
        ...

    @abstractmethod
    async def create_wallets(self, wallets: List[Wallet]) -> List[Wallet]:
        ...

    @abstractmethod
    async def update_wallet(self, wallet: Wallet) -> Optional[Wallet]:
        ...

    @abstractmethod
    async def delete_wallet(self, account_id: str, wallet_id: str) -> None:
        ...

    # ── Images ────────────────────────────────────────────────────────────

    @abstractmethod
    async def list_images(self, account_id: str) -> List[Image]:
        ...

    @abstractmethod
    async def get_image(self, account_id: str, image_id: str) -> Optional[Image]:
        ...

    @abstractmethod
    async def create_image(self, image: Image) -> Image:
        ...

    @abstractmethod
    async def update_image(self, image: Image) -> Optional[Image]:
        ...

    @abstractmethod
    async def delete_image(self, account_id: str, image_id: str) -> None:
        ...

    # ── Categories ────────────────────────────────────────────────────────

    @abstractmethod
    async def list_categories(self, account_id: str) -> List[Category]:
        ...

    @abstractmethod
    async def get_category(self, account_id: str, category_id: str) -> Optional[Category]:
        ...

    @abstractmethod
    async def create_categories(self, categories: List[Category]) -> List[Category]:
        ...

    @abstractmethod
    async def update_category(self, category: Category) -> Optional[Category]:
        ...

    @abstractmethod
    async def delete_category(self, account_id: str, category_id: str) -> None:
        ...

    # ── Transactions ──────────────────────────────────────────────────────

    @abstractmethod
    async def list_transactions(
        self, account_id: str, wallet_id: Optional[str] = None
    ) -> List[Transaction]:
        """Transactions of the account, only those of `wallet_id` when given."""

    @abstractmethod
    async def get_transaction(
        self, account_id: str, wallet_id: str, transaction_id: str
    ) -> Optional[Transaction]:
        ...

    @abstractmethod
    async def create_transactions(self, transactions: List[Transaction]) -> List[Transaction]:
        ...

    @abstractmethod
    async def update_transaction(self, transaction: Transaction) -> Optional[Transaction]:
        ...

    @abstractmethod
    async def delete_transaction(
        self, account_id: str, wallet_id: str, transaction_id: str
    ) -> None:
        ...

    # ── Health ────────────────────────────────────────────────────────────

    @abstractmethod
    async def ping(self) -> None:
        """Raise StoreUnavailableError if the store cannot be reached."""


class BlobAdapter(ABC):
    """
    Binary payload storage addressed by path.

    get() returns None for a missing path; an unreachable store raises
    StoreUnavailableError(store="blob store"). put() overwrites.
    """

    @abstractmethod
    async def put(self, path: str, data: bytes) -> None:
        ...

    @abstractmethod
    async def get(self, path: str) -> Optional[bytes]:
        ...

    @abstractmethod
    async def delete(self, path: str) -> None:
        ...

    async def ping(self) -> None:
        """Raise StoreUnavailableError if the store cannot be reached."""


def image_blob_path(account_id: str, image_id: str) -> str:
    """Deterministic blob path for an image payload."""
    return f"/users/{account_id}/images/{image_id}"
