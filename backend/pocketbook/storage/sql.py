"""
Pocketbook Backend — SQLAlchemy Storage Adapter
================================================

What:  StorageAdapter implementation over async SQLAlchemy (asyncpg in
       production, aiosqlite in the test-suite).
How:   Every public method opens its own AsyncSession and runs inside one
       transaction (`session.begin()`), committed on success and rolled
       back on any error. Rows are converted to domain records with
       `model_validate(row)` before the session closes.
Who:   Built by main.create_app() from the shared Database instance.

Error Translation:
    IntegrityError (unique key)      → DuplicateKeyError
    IntegrityError (foreign key etc) → ConflictError
    OperationalError / InterfaceError / OSError / timeouts
                                     → StoreUnavailableError
    Any other SQLAlchemyError        → PocketbookError (500)

Batch Writes:
    create_wallets / create_categories / create_transactions add all rows
    and flush once. A violation anywhere rolls the whole transaction back,
    so nothing of the batch is persisted. On success the rows are read
    back within the same transaction and returned in input order.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Iterable, List, Optional, Sequence, Type, TypeVar

from sqlalchemy import delete, select, text
from sqlalchemy.exc import IntegrityError, InterfaceError, OperationalError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from pocketbook.database import Base, Database
from pocketbook.domain import (
    Account,
    Category,
    DomainRecord,
    Image,
    Session,
    Transaction,
    Wallet,
)
from pocketbook.exceptions import (
    ConflictError,
    DuplicateKeyError,
    PocketbookError,
    StoreUnavailableError,
)
from pocketbook.models import (
    AccountRow,
    CategoryRow,
    ImageRow,
    SessionRow,
    TransactionRow,
    WalletRow,
)
from pocketbook.storage.base import StorageAdapter

R = TypeVar("R", bound=DomainRecord)
M = TypeVar("M", bound=Base)

UNIQUE_VIOLATION = "23505"
_UNIQUE_MARKERS = ("unique constraint", "duplicate key")


def _is_unique_violation(error: IntegrityError) -> bool:
    orig = error.orig
    code = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
    if code is not None:
        return code == UNIQUE_VIOLATION
    message = str(orig).lower()
    return any(marker in message for marker in _UNIQUE_MARKERS)


def _columns(record: DomainRecord, model: Type[M]) -> dict:
    """Domain fields that map onto `model` columns, timestamps excluded."""
    names = {c.key for c in model.__table__.columns} - {"created_at", "updated_at"}
    return {k: v for k, v in record.model_dump().items() if k in names}


class SqlStorage(StorageAdapter):
    """Relational store backed by a SQLAlchemy async engine."""

    def __init__(self, database: Database, logger: Optional[logging.Logger] = None):
        self._db = database
        self._logger = logger or logging.getLogger(__name__)

    @asynccontextmanager
    async def _transaction(self, operation: str) -> AsyncIterator[AsyncSession]:
        try:
            async with self._db.session_factory() as session:
                async with session.begin():
                    yield session
        except PocketbookError:
            raise
        except IntegrityError as e:
            self._logger.info("Constraint violation during %s: %s", operation, str(e.orig))
            context = {"operation": operation}
            if _is_unique_violation(e):
                raise DuplicateKeyError(
                    message="A record with the same key already exists",
                    context=context,
                ) from e
            raise ConflictError(context=context) from e
        except (OperationalError, InterfaceError, OSError, asyncio.TimeoutError) as e:
            self._logger.error("Database unreachable during %s: %s", operation, str(e))
            raise StoreUnavailableError(
                store="database",
                context={"operation": operation, "error_type": type(e).__name__},
            ) from e
        except SQLAlchemyError as e:
            self._logger.error("Database error during %s: %s", operation, str(e), exc_info=True)
            raise PocketbookError(
                message="A database error occurred. Please try again.",
                context={"operation": operation, "error_type": type(e).__name__},
            ) from e

    async def _list(self, operation: str, model: Type[M], record: Type[R], *criteria) -> List[R]:
        async with self._transaction(operation) as session:
            result = await session.execute(
                select(model).where(*criteria).order_by(model.created_at, model.id)
            )
            return [record.model_validate(row) for row in result.scalars().all()]

    async def _get(self, operation: str, model: Type[M], record: Type[R], *criteria) -> Optional[R]:
        async with self._transaction(operation) as session:
            row = (await session.execute(select(model).where(*criteria))).scalar_one_or_none()
            return record.model_validate(row) if row is not None else None

    async def _create(self, operation: str, model: Type[M], record: R) -> R:
        async with self._transaction(operation) as session:
            row = model(**_columns(record, model))
            session.add(row)
            await session.flush()
            await session.refresh(row)
            return type(record).model_validate(row)

    async def _create_many(
        self, session: AsyncSession, model: Type[M], records: Sequence[R]
    ) -> List[R]:
        rows = [model(**_columns(r, model)) for r in records]
        session.add_all(rows)
        await session.flush()
        ids = [r.id for r in records]
        result = await session.execute(select(model).where(model.id.in_(ids)))
        by_id = {row.id: row for row in result.scalars().all()}
        for row in by_id.values():
            await session.refresh(row)
        return [type(r).model_validate(by_id[r.id]) for r in records]

    async def _update(self, operation: str, model: Type[M], record: R, *criteria) -> Optional[R]:
        async with self._transaction(operation) as session:
            row = (await session.execute(select(model).where(*criteria))).scalar_one_or_none()
            if row is None:
                return None
            for key, value in _columns(record, model).items():
                setattr(row, key, value)
            await session.flush()
            await session.refresh(row)
            return type(record).model_validate(row)

    async def _delete(self, operation: str, model: Type[M], *criteria) -> None:
        async with self._transaction(operation) as session:
            await session.execute(delete(model).where(*criteria))

    async def _require_owned(
        self,
        session: AsyncSession,
        model: Type[M],
        account_id: str,
        ids: Iterable[Optional[str]],
        constraint: str,
    ) -> None:
        """Raise ConflictError unless every referenced id exists under `account_id`."""
        wanted = {i for i in ids if i is not None}
        if not wanted:
            return
        result = await session.execute(
            select(model.id).where(model.id.in_(wanted), model.account_id == account_id)
        )
        missing = wanted - set(result.scalars().all())
        if missing:
            raise ConflictError(
                message=f"Referenced {model.__tablename__[:-1]} does not exist",
                context={"constraint": constraint, "missing": sorted(missing)},
            )

    # ── Accounts ──────────────────────────────────────────────────────────

    async def list_accounts(self) -> List[Account]:
        return await self._list("list_accounts", AccountRow, Account)

    async def get_account(self, account_id: str) -> Optional[Account]:
        return await self._get("get_account", AccountRow, Account, AccountRow.id == account_id)

    async def get_account_by_email(self, email: str) -> Optional[Account]:
        return await self._get(
            "get_account_by_email", AccountRow, Account, AccountRow.email == email
        )

    async def create_account(self, account: Account) -> Account:
        return await self._create("create_account", AccountRow, account)

    async def update_account(self, account: Account) -> Optional[Account]:
        return await self._update(
            "update_account", AccountRow, account, AccountRow.id == account.id
        )

    async def delete_account(self, account_id: str) -> None:
        await self._delete("delete_account", AccountRow, AccountRow.id == account_id)

    # ── Sessions ──────────────────────────────────────────────────────────

    async def list_sessions(self, account_id: str) -> List[Session]:
        return await self._list(
            "list_sessions", SessionRow, Session, SessionRow.account_id == account_id
        )

    async def get_session(self, account_id: str, token: str) -> Optional[Session]:
        return await self._get(
            "get_session",
            SessionRow,
            Session,
            SessionRow.account_id == account_id,
            SessionRow.token == token,
        )

    async def create_session(self, session: Session) -> Session:
        return await self._create("create_session", SessionRow, session)

    async def delete_session(self, account_id: str, token: str) -> None:
        await self._delete(
            "delete_session",
            SessionRow,
            SessionRow.account_id == account_id,
            SessionRow.token == token,
        )

    async def delete_sessions(self, account_id: str) -> None:
        await self._delete("delete_sessions", SessionRow, SessionRow.account_id == account_id)

    # ── Wallets ───────────────────────────────────────────────────────────

    async def list_wallets(self, account_id: str) -> List[Wallet]:
        return await self._list(
            "list_wallets", WalletRow, Wallet, WalletRow.account_id == account_id
        )

    async def get_wallet(self, account_id: str, wallet_id: str) -> Optional[Wallet]:
        return await self._get(
            "get_wallet",
            WalletRow,
            Wallet,
            WalletRow.account_id == account_id,
            WalletRow.id == wallet_id,
        )

    async def create_wallets(self, wallets: List[Wallet]) -> List[Wallet]:
        if not wallets:
            return []
        async with self._transaction("create_wallets") as session:
            return await self._create_many(session, WalletRow, wallets)

    async def update_wallet(self, wallet: Wallet) -> Optional[Wallet]:
        return await self._update(
            "update_wallet",
            WalletRow,
            wallet,
            WalletRow.account_id == wallet.account_id,
            WalletRow.id == wallet.id,
        )

    async def delete_wallet(self, account_id: str, wallet_id: str) -> None:
        await self._delete(
            "delete_wallet",
            WalletRow,
            WalletRow.account_id == account_id,
            WalletRow.id == wallet_id,
        )

    # ── Images ────────────────────────────────────────────────────────────

    async def list_images(self, account_id: str) -> List[Image]:
        return await self._list("list_images", ImageRow, Image, ImageRow.account_id == account_id)

    async def get_image(self, account_id: str, image_id: str) -> Optional[Image]:
        return await self._get(
            "get_image",
            ImageRow,
            Image,
            ImageRow.account_id == account_id,
            ImageRow.id == image_id,
        )

    async def create_image(self, image: Image) -> Image:
        return await self._create("create_image", ImageRow, image)

    async def update_image(self, image: Image) -> Optional[Image]:
        return await self._update(
            "update_image",
            ImageRow,
            image,
            ImageRow.account_id == image.account_id,
            ImageRow.id == image.id,
        )

    async def delete_image(self, account_id: str, image_id: str) -> None:
        await self._delete(
            "delete_image",
            ImageRow,
            ImageRow.account_id == account_id,
            ImageRow.id == image_id,
        )

    # ── Categories ────────────────────────────────────────────────────────

    async def list_categories(self, account_id: str) -> List[Category]:
        return await self._list(
            "list_categories", CategoryRow, Category, CategoryRow.account_id == account_id
        )

    async def get_category(self, account_id: str, category_id: str) -> Optional[Category]:
        return await self._get(
            "get_category",
            CategoryRow,
            Category,
            CategoryRow.account_id == account_id,
            CategoryRow.id == category_id,
        )

    async def create_categories(self, categories: List[Category]) -> List[Category]:
        if not categories:
            return []
        async with self._transaction("create_categories") as session:
            for account_id in {c.account_id for c in categories}:
                await self._require_owned(
                    session,
                    ImageRow,
                    account_id,
                    [c.image_id for c in categories if c.account_id == account_id],
                    "fk_categories_image",
                )
            return await self._create_many(session, CategoryRow, categories)

    async def update_category(self, category: Category) -> Optional[Category]:
        async with self._transaction("update_category") as session:
            row = (
                await session.execute(
                    select(CategoryRow).where(
                        CategoryRow.account_id == category.account_id,
                        CategoryRow.id == category.id,
                    )
                )
            ).scalar_one_or_none()
            if row is None:
                return None
            await self._require_owned(
                session, ImageRow, category.account_id, [category.image_id], "fk_categories_image"
            )
            for key, value in _columns(category, CategoryRow).items():
                setattr(row, key, value)
            await session.flush()
            await session.refresh(row)
            return Category.model_validate(row)

    async def delete_category(self, account_id: str, category_id: str) -> None:
        await self._delete(
            "delete_category",
            CategoryRow,
            CategoryRow.account_id == account_id,
            CategoryRow.id == category_id,
        )

    # ── Transactions ──────────────────────────────────────────────────────

    async def list_transactions(
        self, account_id: str, wallet_id: Optional[str] = None
    ) -> List[Transaction]:
        criteria = [TransactionRow.account_id == account_id]
        if wallet_id is not None:
            criteria.append(TransactionRow.wallet_id == wallet_id)
        return await self._list("list_transactions", TransactionRow, Transaction, *criteria)

    async def get_transaction(
        self, account_id: str, wallet_id: str, transaction_id: str
    ) -> Optional[Transaction]:
        return await self._get(
            "get_transaction",
            TransactionRow,
            Transaction,
            TransactionRow.account_id == account_id,
            TransactionRow.wallet_id == wallet_id,
            TransactionRow.id == transaction_id,
        )

    async def _check_references(
        self, session: AsyncSession, transactions: Sequence[Transaction]
    ) -> None:
        for account_id in {t.account_id for t in transactions}:
            owned = [t for t in transactions if t.account_id == account_id]
            await self._require_owned(
                session, WalletRow, account_id, [t.wallet_id for t in owned],
                "fk_transactions_wallet",
            )
            await self._require_owned(
                session, CategoryRow, account_id, [t.category_id for t in owned],
                "fk_transactions_category",
            )

    async def create_transactions(self, transactions: List[Transaction]) -> List[Transaction]:
        if not transactions:
            return []
        async with self._transaction("create_transactions") as session:
            await self._check_references(session, transactions)
            return await self._create_many(session, TransactionRow, transactions)

    async def update_transaction(self, transaction: Transaction) -> Optional[Transaction]:
        async with self._transaction("update_transaction") as session:
            row = (
                await session.execute(
                    select(TransactionRow).where(
                        TransactionRow.account_id == transaction.account_id,
                        TransactionRow.wallet_id == transaction.wallet_id,
                        TransactionRow.id == transaction.id,
                    )
                )
            ).scalar_one_or_none()
            if row is None:
                return None
            await self._check_references(session, [transaction])
            for key, value in _columns(transaction, TransactionRow).items():
                setattr(row, key, value)
            await session.flush()
            await session.refresh(row)
            return Transaction.model_validate(row)

    async def delete_transaction(
        self, account_id: str, wallet_id: str, transaction_id: str
    ) -> None:
        await self._delete(
            "delete_transaction",
            TransactionRow,
            TransactionRow.account_id == account_id,
            TransactionRow.wallet_id == wallet_id,
            TransactionRow.id == transaction_id,
        )

    # ── Health ────────────────────────────────────────────────────────────

    async def ping(self) -> None:
        async with self._transaction("ping") as session:
            await session.execute(text("SELECT 1"))
