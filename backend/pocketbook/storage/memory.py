"""
Pocketbook Backend — In-Memory Storage and Blob Doubles
========================================================

What:  Dict-backed implementations of StorageAdapter and BlobAdapter.
How:   Enforce the same constraints as the SQL schema (unique email,
       unique wallet name per account, foreign keys, cascades) and the
       same outcome contract (None for missing rows, StoreUnavailableError
       when switched off, atomic batches).
Who:   The test-suite, and local experiments that need no database.

Outage simulation:
    Set `available = False` on either double to make every call raise
    StoreUnavailableError. On the blob double, add operation names to
    `failing` ("put", "get", "delete") to fail only those operations.
"""

from datetime import datetime, timezone
from typing import Dict, List, Optional, Set, TypeVar

from pocketbook.domain import (
    Account,
    Category,
    DomainRecord,
    Image,
    Session,
    Transaction,
    Wallet,
)
from pocketbook.exceptions import ConflictError, DuplicateKeyError, StoreUnavailableError
from pocketbook.storage.base import BlobAdapter, StorageAdapter

R = TypeVar("R", bound=DomainRecord)


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _copy(record: R) -> R:
    return record.model_copy(deep=True)


class InMemoryStorage(StorageAdapter):
    """Relational store double with the SQL schema's constraints."""

    def __init__(self):
        self.available = True
        self.accounts: Dict[str, Account] = {}
        self.sessions: Dict[str, Session] = {}
        self.wallets: Dict[str, Wallet] = {}
        self.images: Dict[str, Image] = {}
        self.categories: Dict[str, Category] = {}
        self.transactions: Dict[str, Transaction] = {}

    def _check(self) -> None:
        if not self.available:
            raise StoreUnavailableError(store="database")

    @staticmethod
    def _stamp(record: R) -> R:
        stored = _copy(record)
        now = _now()
        stored.created_at = now
        stored.updated_at = now
        return stored

    @staticmethod
    def _restamp(existing: R, record: R) -> R:
        stored = _copy(record)
        stored.created_at = existing.created_at
        stored.updated_at = _now()
        return stored

    def _require_account(self, account_id: str) -> None:
        if account_id not in self.accounts:
            raise ConflictError(
                message="Referenced account does not exist",
                context={"account_id": account_id},
            )

    # ── Accounts ──────────────────────────────────────────────────────────

    async def list_accounts(self) -> List[Account]:
        self._check()
        return [_copy(a) for a in self.accounts.values()]

    async def get_account(self, account_id: str) -> Optional[Account]:
        self._check()
        account = self.accounts.get(account_id)
        return _copy(account) if account else None

    async def get_account_by_email(self, email: str) -> Optional[Account]:
        self._check()
        for account in self.accounts.values():
            if account.email == email:
                return _copy(account)
        return None

    def _check_email(self, account: Account) -> None:
        for other in self.accounts.values():
            if other.email == account.email and other.id != account.id:
                raise DuplicateKeyError(
                    message="An account with this email already exists",
                    context={"constraint": "uq_accounts_email"},
                )

    async def create_account(self, account: Account) -> Account:
        self._check()
        if account.id in self.accounts:
            raise DuplicateKeyError(context={"constraint": "accounts_pkey"})
        self._check_email(account)
        stored = self._stamp(account)
        self.accounts[stored.id] = stored
        return _copy(stored)

    async def update_account(self, account: Account) -> Optional[Account]:
        self._check()
        existing = self.accounts.get(account.id)
        if existing is None:
            return None
        self._check_email(account)
        stored = self._restamp(existing, account)
        self.accounts[stored.id] = stored
        return _copy(stored)

    async def delete_account(self, account_id: str) -> None:
        self._check()
        self.accounts.pop(account_id, None)
        for table in (self.sessions, self.transactions, self.categories, self.images, self.wallets):
            for key in [k for k, v in table.items() if v.account_id == account_id]:
                del table[key]

    # ── Sessions ──────────────────────────────────────────────────────────

    async def list_sessions(self, account_id: str) -> List[Session]:
        self._check()
        return [_copy(s) for s in self.sessions.values() if s.account_id == account_id]

    async def get_session(self, account_id: str, token: str) -> Optional[Session]:
        self._check()
        for session in self.sessions.values():
            if session.account_id == account_id and session.token == token:
                return _copy(session)
        return None

    async def create_session(self, session: Session) -> Session:
        self._check()
        if session.id in self.sessions:
            raise DuplicateKeyError(context={"constraint": "sessions_pkey"})
        if any(s.token == session.token for s in self.sessions.values()):
            raise DuplicateKeyError(context={"constraint": "uq_sessions_token"})
        self._require_account(session.account_id)
        stored = self._stamp(session)
        self.sessions[stored.id] = stored
        return _copy(stored)

    async def delete_session(self, account_id: str, token: str) -> None:
        self._check()
        for key in [
            k for k, s in self.sessions.items()
            if s.account_id == account_id and s.token == token
        ]:
            del self.sessions[key]

    async def delete_sessions(self, account_id: str) -> None:
        self._check()
        for key in [k for k, s in self.sessions.items() if s.account_id == account_id]:
            del self.sessions[key]

    # ── Wallets ───────────────────────────────────────────────────────────

    async def list_wallets(self, account_id: str) -> List[Wallet]:
        self._check()
        return [_copy(w) for w in self.wallets.values() if w.account_id == account_id]

    async def get_wallet(self, account_id: str, wallet_id: str) -> Optional[Wallet]:
        self._check()
        wallet = self.wallets.get(wallet_id)
        if wallet is None or wallet.account_id != account_id:
            return None
        return _copy(wallet)

    def _check_wallet(self, wallet: Wallet, pending: List[Wallet]) -> None:
        self._require_account(wallet.account_id)
        names = [
            w.name for w in list(self.wallets.values()) + pending
            if w.account_id == wallet.account_id and w.id != wallet.id
        ]
        if wallet.name in names:
            raise DuplicateKeyError(
                message=f"A wallet named '{wallet.name}' already exists",
                context={"constraint": "uq_wallets_account_name"},
            )

    async def create_wallets(self, wallets: List[Wallet]) -> List[Wallet]:
        self._check()
        pending: List[Wallet] = []
        for wallet in wallets:
            if wallet.id in self.wallets or any(p.id == wallet.id for p in pending):
                raise DuplicateKeyError(context={"constraint": "wallets_pkey"})
            self._check_wallet(wallet, pending)
            pending.append(self._stamp(wallet))
        for wallet in pending:
            self.wallets[wallet.id] = wallet
        return [_copy(self.wallets[w.id]) for w in wallets]

    async def update_wallet(self, wallet: Wallet) -> Optional[Wallet]:
        self._check()
        existing = self.wallets.get(wallet.id)
        if existing is None or existing.account_id != wallet.account_id:
            return None
        self._check_wallet(wallet, [])
        stored = self._restamp(existing, wallet)
        self.wallets[stored.id] = stored
        return _copy(stored)

    async def delete_wallet(self, account_id: str, wallet_id: str) -> None:
        self._check()
        wallet = self.wallets.get(wallet_id)
        if wallet is None or wallet.account_id != account_id:
            return
        del self.wallets[wallet_id]
        for key in [k for k, t in self.transactions.items() if t.wallet_id == wallet_id]:
            del self.transactions[key]

    # ── Images ────────────────────────────────────────────────────────────

    async def list_images(self, account_id: str) -> List[Image]:
        self._check()
        return [_copy(i) for i in self.images.values() if i.account_id == account_id]

    async def get_image(self, account_id: str, image_id: str) -> Optional[Image]:
        self._check()
        image = self.images.get(image_id)
        if image is None or image.account_id != account_id:
            return None
        return _copy(image)

    async def create_image(self, image: Image) -> Image:
        self._check()
        if image.id in self.images:
            raise DuplicateKeyError(context={"constraint": "images_pkey"})
        self._require_account(image.account_id)
        stored = self._stamp(image)
        self.images[stored.id] = stored
        return _copy(stored)

    async def update_image(self, image: Image) -> Optional[Image]:
        self._check()
        existing = self.images.get(image.id)
        if existing is None or existing.account_id != image.account_id:
            return None
        stored = self._restamp(existing, image)
        self.images[stored.id] = stored
        return _copy(stored)

    async def delete_image(self, account_id: str, image_id: str) -> None:
        self._check()
        image = self.images.get(image_id)
        if image is None or image.account_id != account_id:
            return
        del self.images[image_id]
        for category in self.categories.values():
            if category.image_id == image_id:
                category.image_id = None

    # ── Categories ────────────────────────────────────────────────────────

    async def list_categories(self, account_id: str) -> List[Category]:
        self._check()
        return [_copy(c) for c in self.categories.values() if c.account_id == account_id]

    async def get_category(self, account_id: str, category_id: str) -> Optional[Category]:
        self._check()
        category = self.categories.get(category_id)
        if category is None or category.account_id != account_id:
            return None
        return _copy(category)

    def _check_category(self, category: Category) -> None:
        self._require_account(category.account_id)
        if category.image_id is not None:
            image = self.images.get(category.image_id)
            if image is None or image.account_id != category.account_id:
                raise ConflictError(
                    message="Referenced image does not exist",
                    context={"constraint": "fk_categories_image", "image_id": category.image_id},
                )

    async def create_categories(self, categories: List[Category]) -> List[Category]:
        self._check()
        pending: List[Category] = []
        for category in categories:
            if category.id in self.categories or any(p.id == category.id for p in pending):
                raise DuplicateKeyError(context={"constraint": "categories_pkey"})
            self._check_category(category)
            pending.append(self._stamp(category))
        for category in pending:
            self.categories[category.id] = category
        return [_copy(self.categories[c.id]) for c in categories]

    async def update_category(self, category: Category) -> Optional[Category]:
        self._check()
        existing = self.categories.get(category.id)
        if existing is None or existing.account_id != category.account_id:
            return None
        self._check_category(category)
        stored = self._restamp(existing, category)
        self.categories[stored.id] = stored
        return _copy(stored)

    async def delete_category(self, account_id: str, category_id: str) -> None:
        self._check()
        category = self.categories.get(category_id)
        if category is None or category.account_id != account_id:
            return
        if any(t.category_id == category_id for t in self.transactions.values()):
            raise ConflictError(
                message="Category is still used by transactions",
                context={"constraint": "fk_transactions_category"},
            )
        del self.categories[category_id]

    # ── Transactions ──────────────────────────────────────────────────────

    async def list_transactions(
        self, account_id: str, wallet_id: Optional[str] = None
    ) -> List[Transaction]:
        self._check()
        return [
            _copy(t) for t in self.transactions.values()
            if t.account_id == account_id and wallet_id in (None, t.wallet_id)
        ]

    async def get_transaction(
        self, account_id: str, wallet_id: str, transaction_id: str
    ) -> Optional[Transaction]:
        self._check()
        transaction = self.transactions.get(transaction_id)
        if (
            transaction is None
            or transaction.account_id != account_id
            or transaction.wallet_id != wallet_id
        ):
            return None
        return _copy(transaction)

    def _check_transaction(self, transaction: Transaction) -> None:
        self._require_account(transaction.account_id)
        wallet = self.wallets.get(transaction.wallet_id)
        if wallet is None or wallet.account_id != transaction.account_id:
            raise ConflictError(
                message="Referenced wallet does not exist",
                context={"constraint": "fk_transactions_wallet", "wallet_id": transaction.wallet_id},
            )
        category = self.categories.get(transaction.category_id)
        if category is None or category.account_id != transaction.account_id:
            raise ConflictError(
                message="Referenced category does not exist",
                context={
                    "constraint": "fk_transactions_category",
                    "category_id": transaction.category_id,
                },
            )

    async def create_transactions(self, transactions: List[Transaction]) -> List[Transaction]:
        self._check()
        pending: List[Transaction] = []
        for transaction in transactions:
            if transaction.id in self.transactions or any(p.id == transaction.id for p in pending):
                raise DuplicateKeyError(context={"constraint": "transactions_pkey"})
            self._check_transaction(transaction)
            pending.append(self._stamp(transaction))
        for transaction in pending:
            self.transactions[transaction.id] = transaction
        return [_copy(self.transactions[t.id]) for t in transactions]

    async def update_transaction(self, transaction: Transaction) -> Optional[Transaction]:
        self._check()
        existing = self.transactions.get(transaction.id)
        if (
            existing is None
            or existing.account_id != transaction.account_id
            or existing.wallet_id != transaction.wallet_id
        ):
            return None
        self._check_transaction(transaction)
        stored = self._restamp(existing, transaction)
        self.transactions[stored.id] = stored
        return _copy(stored)

    async def delete_transaction(
        self, account_id: str, wallet_id: str, transaction_id: str
    ) -> None:
        self._check()
        if await self.get_transaction(account_id, wallet_id, transaction_id) is not None:
            del self.transactions[transaction_id]

    async def ping(self) -> None:
        self._check()


class InMemoryBlobStore(BlobAdapter):
    """Blob store double keyed by path."""

    def __init__(self):
        self.available = True
        self.failing: Set[str] = set()
        self.blobs: Dict[str, bytes] = {}

    def _check(self, operation: str) -> None:
        if not self.available or operation in self.failing:
            raise StoreUnavailableError(
                store="blob store",
                context={"operation": operation},
            )

    async def put(self, path: str, data: bytes) -> None:
        self._check("put")
        self.blobs[path] = bytes(data)

    async def get(self, path: str) -> Optional[bytes]:
        self._check("get")
        return self.blobs.get(path)

    async def delete(self, path: str) -> None:
        self._check("delete")
        self.blobs.pop(path, None)

    async def ping(self) -> None:
        self._check("ping")
