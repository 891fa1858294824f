"""
Pocketbook Backend — Interactor Unit Tests
===========================================

What:  Business operations over the in-memory store, inline payloads.

What we test:
    ✅ batch creates: ids assigned in input order, owner taken from the path
    ✅ batch creates are all-or-nothing, reported as one error
    ✅ empty batches never reach the store
    ✅ "not found" and "store unavailable" stay distinct, each with its stage
    ✅ account updates re-derive the credential; deletes revoke sessions
    ✅ referential rules: category in use, transaction wallet frozen
"""

from datetime import datetime, timezone
from decimal import Decimal

import pytest

from pocketbook.domain import Category, Transaction, Wallet
from pocketbook.exceptions import (
    STAGE_PRIMARY_READ,
    STAGE_PRIMARY_WRITE,
    STAGE_SESSION_CHECK,
    ConflictError,
    DuplicateKeyError,
    NotFoundError,
    PocketbookError,
    StoreUnavailableError,
    UnauthorizedError,
)

WHEN = datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)


def wallet(name: str) -> Wallet:
    return Wallet(account_id="", name=name)


def category(name: str, image_id=None) -> Category:
    return Category(account_id="", name=name, image_id=image_id)


def transaction(category_id: str, amount: str, description: str = "") -> Transaction:
    return Transaction(
        account_id="",
        wallet_id="",
        category_id=category_id,
        amount=Decimal(amount),
        description=description,
        date=WHEN,
    )


class TestBatchCreate:
    @pytest.mark.asyncio
    async def test_wallet_batch_keeps_order_and_owner(self, interactor, account):
        created = await interactor.create_wallets(
            account.id, [wallet("Cash"), wallet("Bank"), wallet("Card")]
        )

        assert [w.name for w in created] == ["Cash", "Bank", "Card"]
        assert len({w.id for w in created}) == 3
        assert all(w.account_id == account.id for w in created)

    @pytest.mark.asyncio
    async def test_ids_are_assigned_in_input_order(self, interactor, account):
        # account took id-1
        created = await interactor.create_wallets(
            account.id, [wallet("Cash"), wallet("Bank"), wallet("Card")]
        )
        assert [w.id for w in created] == ["id-2", "id-3", "id-4"]

    @pytest.mark.asyncio
    async def test_caller_supplied_ids_are_replaced(self, interactor, account):
        draft = Wallet(id="chosen-by-client", account_id="someone-else", name="Cash")

        [created] = await interactor.create_wallets(account.id, [draft])

        assert created.id != "chosen-by-client"
        assert created.account_id == account.id

    @pytest.mark.asyncio
    async def test_duplicate_in_batch_stores_nothing(self, interactor, storage, account):
        with pytest.raises(DuplicateKeyError) as exc_info:
            await interactor.create_wallets(
                account.id, [wallet("Cash"), wallet("Cash"), wallet("Card")]
            )

        assert exc_info.value.stage == STAGE_PRIMARY_WRITE
        assert storage.wallets == {}

    @pytest.mark.asyncio
    async def test_transaction_batch_with_bad_reference_stores_nothing(
        self, interactor, storage, account
    ):
        [cash] = await interactor.create_wallets(account.id, [wallet("Cash")])
        [food] = await interactor.create_categories(account.id, [category("Food")])

        with pytest.raises(ConflictError) as exc_info:
            await interactor.create_transactions(
                account.id,
                cash.id,
                [
                    transaction(food.id, "-4.50"),
                    transaction(food.id, "-12.00"),
                    transaction("no-such-category", "-1.00"),
                ],
            )

        assert exc_info.value.stage == STAGE_PRIMARY_WRITE
        assert storage.transactions == {}

    @pytest.mark.asyncio
    async def test_empty_batch_does_not_touch_the_store(self, interactor, storage, account):
        storage.available = False

        assert await interactor.create_wallets(account.id, []) == []
        assert await interactor.create_categories(account.id, []) == []
        assert await interactor.create_transactions(account.id, "any", []) == []

    @pytest.mark.asyncio
    async def test_transactions_take_the_wallet_from_the_path(self, interactor, account):
        [cash, bank] = await interactor.create_wallets(account.id, [wallet("Cash"), wallet("Bank")])
        [food] = await interactor.create_categories(account.id, [category("Food")])
        draft = transaction(food.id, "-3.20")
        draft.wallet_id = bank.id

        [created] = await interactor.create_transactions(account.id, cash.id, [draft])

        assert created.wallet_id == cash.id
        assert created.amount == Decimal("-3.20")


class TestOutcomes:
    @pytest.mark.asyncio
    async def test_missing_record_is_not_found_at_primary_read(self, interactor, account):
        with pytest.raises(NotFoundError) as exc_info:
            await interactor.get_wallet(account.id, "missing")
        assert exc_info.value.stage == STAGE_PRIMARY_READ

    @pytest.mark.asyncio
    async def test_store_outage_is_unavailable_at_primary_read(self, interactor, storage, account):
        storage.available = False
        with pytest.raises(StoreUnavailableError) as exc_info:
            await interactor.get_wallet(account.id, "missing")
        assert exc_info.value.stage == STAGE_PRIMARY_READ

    @pytest.mark.asyncio
    async def test_store_outage_on_write_is_unavailable_at_primary_write(
        self, interactor, storage, account
    ):
        real_create = storage.create_wallets

        async def down(wallets):
            raise StoreUnavailableError(store="database")

        storage.create_wallets = down
        with pytest.raises(StoreUnavailableError) as exc_info:
            await interactor.create_wallets(account.id, [wallet("Cash")])
        storage.create_wallets = real_create
        assert exc_info.value.stage == STAGE_PRIMARY_WRITE

    @pytest.mark.asyncio
    async def test_other_accounts_records_are_not_found(self, interactor, account):
        other = await interactor.register_account("Eve", "eve@example.com", "pw")
        [cash] = await interactor.create_wallets(account.id, [wallet("Cash")])

        with pytest.raises(NotFoundError):
            await interactor.get_wallet(other.id, cash.id)
        with pytest.raises(NotFoundError):
            await interactor.delete_wallet(other.id, cash.id)

    @pytest.mark.asyncio
    async def test_authorize_with_store_down_is_unavailable_at_session_check(
        self, interactor, storage, account
    ):
        session = await interactor.login("alice@example.com", "correct-horse")
        storage.available = False

        with pytest.raises(StoreUnavailableError) as exc_info:
            await interactor.authorize(account.id, f"Bearer {session.token}")
        assert exc_info.value.stage == STAGE_SESSION_CHECK

    @pytest.mark.asyncio
    async def test_authorize_with_bad_token_is_unauthorized(self, interactor, account):
        with pytest.raises(UnauthorizedError) as exc_info:
            await interactor.authorize(account.id, "Bearer nope")
        assert exc_info.value.stage == STAGE_SESSION_CHECK


class TestAccounts:
    @pytest.mark.asyncio
    async def test_register_stores_credential_not_secret(self, interactor, hasher, account):
        stored = await interactor.get_account(account.id)
        assert stored.credential == hasher.derive("correct-horse")
        assert "correct-horse" not in stored.model_dump_json()

    @pytest.mark.asyncio
    async def test_duplicate_email_is_conflict(self, interactor, account):
        with pytest.raises(ConflictError) as exc_info:
            await interactor.register_account("Alice 2", "alice@example.com", "pw")
        assert exc_info.value.stage == STAGE_PRIMARY_WRITE

    @pytest.mark.asyncio
    async def test_update_secret_rederives_credential(self, interactor, account):
        await interactor.update_account(account.id, {"secret": "battery-staple"})

        await interactor.login("alice@example.com", "battery-staple")
        with pytest.raises(UnauthorizedError):
            await interactor.login("alice@example.com", "correct-horse")

    @pytest.mark.asyncio
    async def test_update_cannot_change_id(self, interactor, account):
        updated = await interactor.update_account(account.id, {"id": "other", "name": "Alicia"})
        assert updated.id == account.id
        assert updated.name == "Alicia"

    @pytest.mark.asyncio
    async def test_delete_account_revokes_sessions_and_data(self, interactor, storage, account):
        session = await interactor.login("alice@example.com", "correct-horse")
        await interactor.create_wallets(account.id, [wallet("Cash")])

        await interactor.delete_account(account.id)

        assert storage.sessions == {}
        assert storage.wallets == {}
        with pytest.raises(UnauthorizedError):
            await interactor.authorize(account.id, f"Bearer {session.token}")

    @pytest.mark.asyncio
    async def test_logout_revokes_only_that_session(self, interactor, account):
        first = await interactor.login("alice@example.com", "correct-horse", "phone")
        second = await interactor.login("alice@example.com", "correct-horse", "laptop")

        await interactor.logout(account.id, first.token)

        remaining = await interactor.list_sessions(account.id)
        assert [s.id for s in remaining] == [second.id]


class TestLedgerRules:
    @pytest.mark.asyncio
    async def test_category_in_use_cannot_be_deleted(self, interactor, account):
        [cash] = await interactor.create_wallets(account.id, [wallet("Cash")])
        [food] = await interactor.create_categories(account.id, [category("Food")])
        await interactor.create_transactions(account.id, cash.id, [transaction(food.id, "-1")])

        with pytest.raises(ConflictError):
            await interactor.delete_category(account.id, food.id)
        assert (await interactor.get_category(account.id, food.id)).name == "Food"

    @pytest.mark.asyncio
    async def test_update_transaction_keeps_wallet(self, interactor, account):
        [cash, bank] = await interactor.create_wallets(account.id, [wallet("Cash"), wallet("Bank")])
        [food] = await interactor.create_categories(account.id, [category("Food")])
        [spent] = await interactor.create_transactions(
            account.id, cash.id, [transaction(food.id, "-9.99")]
        )

        updated = await interactor.update_transaction(
            account.id, cash.id, spent.id, {"wallet_id": bank.id, "amount": Decimal("-10.49")}
        )

        assert updated.wallet_id == cash.id
        assert updated.amount == Decimal("-10.49")

    @pytest.mark.asyncio
    async def test_list_transactions_filters_by_wallet(self, interactor, account):
        [cash, bank] = await interactor.create_wallets(account.id, [wallet("Cash"), wallet("Bank")])
        [food] = await interactor.create_categories(account.id, [category("Food")])
        await interactor.create_transactions(account.id, cash.id, [transaction(food.id, "-1")])
        await interactor.create_transactions(
            account.id, bank.id, [transaction(food.id, "-2"), transaction(food.id, "100")]
        )

        assert len(await interactor.list_transactions(account.id, bank.id)) == 2
        assert len(await interactor.list_transactions(account.id)) == 3

    @pytest.mark.asyncio
    async def test_list_transactions_hands_the_wallet_to_the_store(
        self, interactor, storage, account, monkeypatch
    ):
        [cash] = await interactor.create_wallets(account.id, [wallet("Cash")])
        calls = []
        listing = storage.list_transactions

        async def recording(account_id, wallet_id=None):
            calls.append((account_id, wallet_id))
            return await listing(account_id, wallet_id)

        monkeypatch.setattr(storage, "list_transactions", recording)

        assert await interactor.list_transactions(account.id, cash.id) == []
        assert calls == [(account.id, cash.id)]

    @pytest.mark.asyncio
    async def test_list_transactions_of_missing_wallet_is_not_found(self, interactor, account):
        with pytest.raises(NotFoundError):
            await interactor.list_transactions(account.id, "missing")

    @pytest.mark.asyncio
    async def test_deleting_wallet_removes_its_transactions(self, interactor, storage, account):
        [cash] = await interactor.create_wallets(account.id, [wallet("Cash")])
        [food] = await interactor.create_categories(account.id, [category("Food")])
        await interactor.create_transactions(account.id, cash.id, [transaction(food.id, "-1")])

        await interactor.delete_wallet(account.id, cash.id)

        assert storage.transactions == {}

    @pytest.mark.asyncio
    async def test_rename_wallet_to_taken_name_is_conflict(self, interactor, account):
        [cash, _] = await interactor.create_wallets(account.id, [wallet("Cash"), wallet("Bank")])
        with pytest.raises(ConflictError):
            await interactor.update_wallet(account.id, cash.id, {"name": "Bank"})


class TestHealth:
    @pytest.mark.asyncio
    async def test_inline_reports_blob_store_disabled(self, interactor):
        assert await interactor.check_health() == {
            "database": "connected",
            "blob_store": "disabled",
        }

    @pytest.mark.asyncio
    async def test_reports_unavailable_stores(self, offloaded_interactor, storage, blob):
        storage.available = False
        blob.available = False
        assert await offloaded_interactor.check_health() == {
            "database": "unavailable",
            "blob_store": "unavailable",
        }

    @pytest.mark.asyncio
    async def test_unexpected_store_error_reports_unavailable(self, interactor, storage):
        async def broken_ping():
            raise PocketbookError(message="A database error occurred. Please try again.")

        storage.ping = broken_ping

        assert (await interactor.check_health())["database"] == "unavailable"

    @pytest.mark.asyncio
    async def test_blob_store_is_pinged_only_when_offloaded(self, interactor, blob):
        blob.available = False
        assert interactor.payloads.offloaded is False
        assert (await interactor.check_health())["blob_store"] == "disabled"

    @pytest.mark.asyncio
    async def test_unexpected_blob_error_reports_unavailable(self, offloaded_interactor, blob):
        async def broken_ping():
            raise PocketbookError(message="blob store misbehaved")

        blob.ping = broken_ping

        assert (await offloaded_interactor.check_health())["blob_store"] == "unavailable"
