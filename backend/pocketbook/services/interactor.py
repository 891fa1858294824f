"""
Pocketbook Backend — Interactor (Business Operation Orchestrator)
==================================================================

What:  The one place that sequences the session authenticator, the
       relational store and the image payload strategy for every business
       operation.
How:   Each operation runs its sub-steps inside `_stage(...)`, which tags
       any PocketbookError escaping the step with the stage name and logs
       it. Errors are forwarded, never recovered from or converted into
       another kind. A None from a get-one becomes NotFoundError here.
Who:   Route handlers, through the `get_interactor` dependency.

Identifiers:
    Ids are generated here (uuid4) immediately before the write, in the
    order the items were given, and never accepted from callers. The owning
    account id is taken from the authenticated path, not from the payload.

Batch Creates:
    create_wallets / create_categories / create_transactions pass the whole
    list to one atomic adapter call. A failure means no item was stored; the
    caller gets one error for the batch. An empty list is a no-op.

Image Writes (create / update):
    1. write the row, payload included          stage: primary_write
    2. payload strategy store()                  stage: secondary_write
    A failure in step 2 is raised as PartialConsistencyError. The row stays
    as written. update_image on the reported image id reconciles it, since
    it pushes the stored payload to the same blob path; a second
    create_image would record a new image instead.

Image Deletes:
    1. delete the row                            stage: primary_write
    2. payload strategy remove()                 stage: secondary_write
    A failure in step 2 is raised as PartialConsistencyError.
"""

import logging
import uuid
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Awaitable, Callable, Dict, List, Optional, Tuple, TypeVar

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
    STAGE_PRIMARY_READ,
    STAGE_PRIMARY_WRITE,
    STAGE_SECONDARY_READ,
    STAGE_SECONDARY_WRITE,
    STAGE_SESSION_CHECK,
    NotFoundError,
    PartialConsistencyError,
    PocketbookError,
    StoreUnavailableError,
)
from pocketbook.security import CredentialHasher
from pocketbook.services.auth_service import SessionAuthenticator
from pocketbook.services.payloads import PayloadStrategy
from pocketbook.storage.base import StorageAdapter

R = TypeVar("R", bound=DomainRecord)

# Fields an update may never touch.
IMMUTABLE_FIELDS = frozenset({"id", "account_id", "created_at", "updated_at"})


def _new_id() -> str:
    return str(uuid.uuid4())


def _found(record: Optional[R], resource: str, resource_id: Optional[str]) -> R:
    if record is None:
        raise NotFoundError(resource=resource, resource_id=resource_id)
    return record


def _merge(record: R, changes: Dict[str, Any], frozen: frozenset = IMMUTABLE_FIELDS) -> R:
    return record.model_copy(update={k: v for k, v in changes.items() if k not in frozen})


class Interactor:
    """
    Business operations over a StorageAdapter, a SessionAuthenticator and
    a PayloadStrategy.

    Every method takes the owning account id first; records of other
    accounts are invisible to it (they come back as NotFoundError).
    """

    def __init__(
        self,
        storage: StorageAdapter,
        authenticator: SessionAuthenticator,
        hasher: CredentialHasher,
        payloads: PayloadStrategy,
        logger: Optional[logging.Logger] = None,
        id_factory: Callable[[], str] = _new_id,
    ):
        self._storage = storage
        self._auth = authenticator
        self._hasher = hasher
        self._payloads = payloads
        self._logger = logger or logging.getLogger(__name__)
        self._new_id = id_factory

    @property
    def payloads(self) -> PayloadStrategy:
        return self._payloads

    @asynccontextmanager
    async def _stage(self, operation: str, stage: str) -> AsyncIterator[None]:
        try:
            yield
        except PocketbookError as e:
            e.at_stage(stage)
            level = (
                logging.ERROR
                if isinstance(e, (StoreUnavailableError, PartialConsistencyError))
                else logging.INFO
            )
            self._logger.log(
                level, "%s failed at %s: %s (%s)", operation, e.stage, type(e).__name__, e.message
            )
            raise

    # ── Sessions ──────────────────────────────────────────────────────────

    async def authorize(self, account_id: str, credential: Optional[str]) -> Session:
        """Resolve a bearer credential to a live session of `account_id`."""
        async with self._stage("authorize", STAGE_SESSION_CHECK):
            return await self._auth.validate_bearer(account_id, credential)

    async def login(self, email: str, secret: str, description: str = "") -> Session:
        self._logger.info("login")
        async with self._stage("login", STAGE_SESSION_CHECK):
            return await self._auth.login(email, secret, description)

    async def list_sessions(self, account_id: str) -> List[Session]:
        async with self._stage("list_sessions", STAGE_PRIMARY_READ):
            return await self._auth.list_sessions(account_id)

    async def logout(self, account_id: str, token: str) -> None:
        self._logger.info("logout account=%s", account_id)
        async with self._stage("logout", STAGE_PRIMARY_WRITE):
            await self._auth.revoke(account_id, token)

    async def logout_everywhere(self, account_id: str) -> None:
        self._logger.info("logout_everywhere account=%s", account_id)
        async with self._stage("logout_everywhere", STAGE_PRIMARY_WRITE):
            await self._auth.revoke_all(account_id)

    # ── Accounts ──────────────────────────────────────────────────────────

    async def register_account(
        self, name: str, email: str, secret: str, description: str = ""
    ) -> Account:
        account = Account(
            id=self._new_id(),
            name=name,
            email=email,
            credential=self._hasher.derive(secret),
            description=description,
        )
        self._logger.info("register_account id=%s", account.id)
        async with self._stage("register_account", STAGE_PRIMARY_WRITE):
            return await self._storage.create_account(account)

    async def get_account(self, account_id: str) -> Account:
        async with self._stage("get_account", STAGE_PRIMARY_READ):
            return _found(await self._storage.get_account(account_id), "account", account_id)

    async def update_account(self, account_id: str, changes: Dict[str, Any]) -> Account:
        """
        Apply `changes` to an account. A non-empty "secret" key replaces the
        stored credential with one derived from it; the secret is not kept.
        """
        self._logger.info("update_account id=%s", account_id)
        changes = dict(changes)
        secret = changes.pop("secret", None)
        changes.pop("credential", None)
        if secret:
            changes["credential"] = self._hasher.derive(secret)
        account = await self.get_account(account_id)
        async with self._stage("update_account", STAGE_PRIMARY_WRITE):
            updated = await self._storage.update_account(_merge(account, changes))
            return _found(updated, "account", account_id)

    async def delete_account(self, account_id: str) -> None:
        """
        Revoke every session, then delete the account and everything it owns.
        Offloaded image payloads are left in the blob store.
        """
        self._logger.info("delete_account id=%s", account_id)
        await self.get_account(account_id)
        async with self._stage("delete_account", STAGE_PRIMARY_WRITE):
            await self._auth.revoke_all(account_id)
            await self._storage.delete_account(account_id)

    # ── Batch helper ──────────────────────────────────────────────────────

    def _assign(self, account_id: str, drafts: List[R], **fixed: Any) -> List[R]:
        """Give each draft a fresh id and the owning ids, keeping input order."""
        return [
            draft.model_copy(update={"id": self._new_id(), "account_id": account_id, **fixed})
            for draft in drafts
        ]

    # ── Wallets ───────────────────────────────────────────────────────────

    async def list_wallets(self, account_id: str) -> List[Wallet]:
        async with self._stage("list_wallets", STAGE_PRIMARY_READ):
            return await self._storage.list_wallets(account_id)

    async def get_wallet(self, account_id: str, wallet_id: str) -> Wallet:
        async with self._stage("get_wallet", STAGE_PRIMARY_READ):
            return _found(await self._storage.get_wallet(account_id, wallet_id), "wallet", wallet_id)

    async def create_wallets(self, account_id: str, drafts: List[Wallet]) -> List[Wallet]:
        self._logger.info("create_wallets account=%s count=%d", account_id, len(drafts))
        if not drafts:
            return []
        wallets = self._assign(account_id, drafts)
        async with self._stage("create_wallets", STAGE_PRIMARY_WRITE):
            return await self._storage.create_wallets(wallets)

    async def update_wallet(
        self, account_id: str, wallet_id: str, changes: Dict[str, Any]
    ) -> Wallet:
        self._logger.info("update_wallet account=%s id=%s", account_id, wallet_id)
        wallet = await self.get_wallet(account_id, wallet_id)
        async with self._stage("update_wallet", STAGE_PRIMARY_WRITE):
            return _found(
                await self._storage.update_wallet(_merge(wallet, changes)), "wallet", wallet_id
            )

    async def delete_wallet(self, account_id: str, wallet_id: str) -> None:
        self._logger.info("delete_wallet account=%s id=%s", account_id, wallet_id)
        await self.get_wallet(account_id, wallet_id)
        async with self._stage("delete_wallet", STAGE_PRIMARY_WRITE):
            await self._storage.delete_wallet(account_id, wallet_id)

    # ── Categories ────────────────────────────────────────────────────────

    async def list_categories(self, account_id: str) -> List[Category]:
        async with self._stage("list_categories", STAGE_PRIMARY_READ):
            return await self._storage.list_categories(account_id)

    async def get_category(self, account_id: str, category_id: str) -> Category:
        async with self._stage("get_category", STAGE_PRIMARY_READ):
            return _found(
                await self._storage.get_category(account_id, category_id), "category", category_id
            )

    async def create_categories(self, account_id: str, drafts: List[Category]) -> List[Category]:
        self._logger.info("create_categories account=%s count=%d", account_id, len(drafts))
        if not drafts:
            return []
        categories = self._assign(account_id, drafts)
        async with self._stage("create_categories", STAGE_PRIMARY_WRITE):
            return await self._storage.create_categories(categories)

    async def update_category(
        self, account_id: str, category_id: str, changes: Dict[str, Any]
    ) -> Category:
        self._logger.info("update_category account=%s id=%s", account_id, category_id)
        category = await self.get_category(account_id, category_id)
        async with self._stage("update_category", STAGE_PRIMARY_WRITE):
            return _found(
                await self._storage.update_category(_merge(category, changes)),
                "category",
                category_id,
            )

    async def delete_category(self, account_id: str, category_id: str) -> None:
        self._logger.info("delete_category account=%s id=%s", account_id, category_id)
        await self.get_category(account_id, category_id)
        async with self._stage("delete_category", STAGE_PRIMARY_WRITE):
            await self._storage.delete_category(account_id, category_id)

    # ── Transactions ──────────────────────────────────────────────────────

    async def list_transactions(
        self, account_id: str, wallet_id: Optional[str] = None
    ) -> List[Transaction]:
        """All transactions of the account, or only those of `wallet_id` (which must exist)."""
        if wallet_id is not None:
            await self.get_wallet(account_id, wallet_id)
        async with self._stage("list_transactions", STAGE_PRIMARY_READ):
            return await self._storage.list_transactions(account_id, wallet_id)

    async def get_transaction(
        self, account_id: str, wallet_id: str, transaction_id: str
    ) -> Transaction:
        async with self._stage("get_transaction", STAGE_PRIMARY_READ):
            return _found(
                await self._storage.get_transaction(account_id, wallet_id, transaction_id),
                "transaction",
                transaction_id,
            )

    async def create_transactions(
        self, account_id: str, wallet_id: str, drafts: List[Transaction]
    ) -> List[Transaction]:
        self._logger.info(
            "create_transactions account=%s wallet=%s count=%d", account_id, wallet_id, len(drafts)
        )
        if not drafts:
            return []
        transactions = self._assign(account_id, drafts, wallet_id=wallet_id)
        async with self._stage("create_transactions", STAGE_PRIMARY_WRITE):
            return await self._storage.create_transactions(transactions)

    async def update_transaction(
        self, account_id: str, wallet_id: str, transaction_id: str, changes: Dict[str, Any]
    ) -> Transaction:
        self._logger.info("update_transaction account=%s id=%s", account_id, transaction_id)
        transaction = await self.get_transaction(account_id, wallet_id, transaction_id)
        merged = _merge(transaction, changes, IMMUTABLE_FIELDS | {"wallet_id"})
        async with self._stage("update_transaction", STAGE_PRIMARY_WRITE):
            return _found(
                await self._storage.update_transaction(merged), "transaction", transaction_id
            )

    async def delete_transaction(
        self, account_id: str, wallet_id: str, transaction_id: str
    ) -> None:
        self._logger.info("delete_transaction account=%s id=%s", account_id, transaction_id)
        await self.get_transaction(account_id, wallet_id, transaction_id)
        async with self._stage("delete_transaction", STAGE_PRIMARY_WRITE):
            await self._storage.delete_transaction(account_id, wallet_id, transaction_id)

    # ── Images ────────────────────────────────────────────────────────────

    async def list_images(self, account_id: str) -> List[Image]:
        async with self._stage("list_images", STAGE_PRIMARY_READ):
            return await self._storage.list_images(account_id)

    async def get_image(self, account_id: str, image_id: str) -> Image:
        """Image metadata from the relational row; use get_image_payload for the bytes."""
        async with self._stage("get_image", STAGE_PRIMARY_READ):
            return _found(await self._storage.get_image(account_id, image_id), "image", image_id)

    async def get_image_payload(self, account_id: str, image_id: str) -> Tuple[Image, bytes]:
        image = await self.get_image(account_id, image_id)
        async with self._stage("get_image_payload", STAGE_SECONDARY_READ):
            return image, await self._payloads.load(image)

    async def _offload(self, operation: str, image: Image) -> None:
        async with self._stage(operation, STAGE_SECONDARY_WRITE):
            try:
                await self._payloads.store(image)
            except PocketbookError as e:
                raise PartialConsistencyError(
                    operation=operation, account_id=image.account_id, image_id=image.id, cause=e
                ) from e

    async def create_image(self, account_id: str, draft: Image) -> Image:
        image = draft.model_copy(update={"id": self._new_id(), "account_id": account_id})
        self._logger.info(
            "create_image account=%s id=%s strategy=%s", account_id, image.id, self._payloads.name
        )
        async with self._stage("create_image", STAGE_PRIMARY_WRITE):
            created = await self._storage.create_image(image)
        await self._offload("create", created)
        return created

    async def update_image(self, account_id: str, image_id: str, changes: Dict[str, Any]) -> Image:
        self._logger.info("update_image account=%s id=%s", account_id, image_id)
        image = await self.get_image(account_id, image_id)
        async with self._stage("update_image", STAGE_PRIMARY_WRITE):
            updated = _found(
                await self._storage.update_image(_merge(image, changes)), "image", image_id
            )
        await self._offload("update", updated)
        return updated

    async def delete_image(self, account_id: str, image_id: str) -> None:
        self._logger.info("delete_image account=%s id=%s", account_id, image_id)
        await self.get_image(account_id, image_id)
        async with self._stage("delete_image", STAGE_PRIMARY_WRITE):
            await self._storage.delete_image(account_id, image_id)
        async with self._stage("delete_image", STAGE_SECONDARY_WRITE):
            try:
                await self._payloads.remove(account_id, image_id)
            except PocketbookError as e:
                raise PartialConsistencyError(
                    operation="delete", account_id=account_id, image_id=image_id, cause=e
                ) from e

    # ── Health ────────────────────────────────────────────────────────────

    async def check_health(self) -> Dict[str, str]:
        """Ping both stores; values are "connected", "disabled" or "unavailable"."""
        status = {
            "database": await self._ping_store("database", self._storage.ping),
            "blob_store": "disabled",
        }
        if self._payloads.offloaded:
            status["blob_store"] = await self._ping_store("blob store", self._payloads.ping)
        return status

    async def _ping_store(self, store: str, ping: Callable[[], Awaitable[None]]) -> str:
        try:
            await ping()
        except StoreUnavailableError as e:
            self._logger.warning("Health check: %s unreachable: %s", store, e.message)
            return "unavailable"
        except PocketbookError as e:
            self._logger.error("Health check: %s failed: %s | %s", store, e.message, e.context)
            return "unavailable"
        return "connected"
