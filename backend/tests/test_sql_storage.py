"""
Pocketbook Backend — SQL Storage Adapter Tests
===============================================

What:  SqlStorage against a fresh in-memory SQLite database per test.
How:   The schema comes from Database.create_all(); SQLite foreign keys are
       switched on by the Database connect hook, so cascades and
       constraint violations behave as they do on PostgreSQL.

What we test:
    ✅ None for missing rows, records for present ones
    ✅ unique keys → DuplicateKeyError, references → ConflictError
    ✅ batch inserts are atomic and come back in input order
    ✅ cascades: account → everything, image → category icon set to NULL
    ✅ Decimal amounts survive the round trip
    ✅ transaction listing filters by wallet in the query
    ✅ an unreachable database → StoreUnavailableError
"""

from datetime import datetime
from decimal import Decimal

import pytest

from pocketbook.config import Settings
from pocketbook.database import Database
from pocketbook.domain import Account, Category, Image, Session, Transaction, Wallet
from pocketbook.exceptions import ConflictError, DuplicateKeyError, StoreUnavailableError
from pocketbook.storage.sql import SqlStorage

WHEN = datetime(2024, 3, 1, 12, 0)


async def make_account(storage, account_id="a1", email="a1@example.com") -> Account:
    return await storage.create_account(
        Account(id=account_id, name=account_id.upper(), email=email, credential="c" * 64)
    )


class TestAccounts:
    @pytest.mark.asyncio
    async def test_create_and_get(self, sql_storage):
        created = await make_account(sql_storage)

        fetched = await sql_storage.get_account("a1")

        assert fetched.email == "a1@example.com"
        assert fetched.credential == "c" * 64
        assert created.created_at is not None

    @pytest.mark.asyncio
    async def test_get_missing_is_none(self, sql_storage):
        assert await sql_storage.get_account("missing") is None
        assert await sql_storage.get_account_by_email("missing@example.com") is None

    @pytest.mark.asyncio
    async def test_get_by_email(self, sql_storage):
        await make_account(sql_storage)
        assert (await sql_storage.get_account_by_email("a1@example.com")).id == "a1"

    @pytest.mark.asyncio
    async def test_duplicate_email_is_duplicate_key(self, sql_storage):
        await make_account(sql_storage)
        with pytest.raises(DuplicateKeyError):
            await make_account(sql_storage, account_id="a2", email="a1@example.com")

    @pytest.mark.asyncio
    async def test_update(self, sql_storage):
        account = await make_account(sql_storage)
        updated = await sql_storage.update_account(account.model_copy(update={"name": "Renamed"}))
        assert updated.name == "Renamed"
        assert (await sql_storage.get_account("a1")).name == "Renamed"

    @pytest.mark.asyncio
    async def test_update_missing_is_none(self, sql_storage):
        ghost = Account(id="ghost", name="G", email="g@example.com")
        assert await sql_storage.update_account(ghost) is None

    @pytest.mark.asyncio
    async def test_list_accounts(self, sql_storage):
        await make_account(sql_storage)
        await make_account(sql_storage, account_id="a2", email="a2@example.com")
        assert {a.id for a in await sql_storage.list_accounts()} == {"a1", "a2"}


class TestSessions:
    @pytest.mark.asyncio
    async def test_lookup_by_account_and_token(self, sql_storage):
        await make_account(sql_storage)
        await sql_storage.create_session(
            Session(id="s1", account_id="a1", original="o", token="tok-1", description="web")
        )

        found = await sql_storage.get_session("a1", "tok-1")

        assert found.id == "s1"
        assert found.original == "o"
        assert await sql_storage.get_session("a2", "tok-1") is None

    @pytest.mark.asyncio
    async def test_duplicate_token_is_duplicate_key(self, sql_storage):
        await make_account(sql_storage)
        await sql_storage.create_session(Session(id="s1", account_id="a1", token="tok"))
        with pytest.raises(DuplicateKeyError):
            await sql_storage.create_session(Session(id="s2", account_id="a1", token="tok"))

    @pytest.mark.asyncio
    async def test_delete_one_and_all(self, sql_storage):
        await make_account(sql_storage)
        for n in range(3):
            await sql_storage.create_session(Session(id=f"s{n}", account_id="a1", token=f"t{n}"))

        await sql_storage.delete_session("a1", "t0")
        assert {s.id for s in await sql_storage.list_sessions("a1")} == {"s1", "s2"}

        await sql_storage.delete_sessions("a1")
        assert await sql_storage.list_sessions("a1") == []


class TestBatches:
    @pytest.mark.asyncio
    async def test_wallet_batch_in_input_order(self, sql_storage):
        await make_account(sql_storage)
        wallets = [Wallet(id=f"w{n}", account_id="a1", name=name)
                   for n, name in enumerate(["Cash", "Bank", "Card"])]

        created = await sql_storage.create_wallets(wallets)

        assert [w.name for w in created] == ["Cash", "Bank", "Card"]
        assert [w.id for w in created] == ["w0", "w1", "w2"]
        assert all(w.created_at is not None for w in created)

    @pytest.mark.asyncio
    async def test_wallet_batch_with_duplicate_name_stores_nothing(self, sql_storage):
        await make_account(sql_storage)
        wallets = [
            Wallet(id="w0", account_id="a1", name="Cash"),
            Wallet(id="w1", account_id="a1", name="Cash"),
        ]

        with pytest.raises(DuplicateKeyError):
            await sql_storage.create_wallets(wallets)
        assert await sql_storage.list_wallets("a1") == []

    @pytest.mark.asyncio
    async def test_same_wallet_name_in_two_accounts_is_fine(self, sql_storage):
        await make_account(sql_storage)
        await make_account(sql_storage, account_id="a2", email="a2@example.com")
        await sql_storage.create_wallets([Wallet(id="w0", account_id="a1", name="Cash")])
        await sql_storage.create_wallets([Wallet(id="w1", account_id="a2", name="Cash")])

        assert [w.id for w in await sql_storage.list_wallets("a2")] == ["w1"]

    @pytest.mark.asyncio
    async def test_transaction_batch_with_foreign_category_stores_nothing(self, sql_storage):
        await make_account(sql_storage)
        await make_account(sql_storage, account_id="a2", email="a2@example.com")
        await sql_storage.create_wallets([Wallet(id="w0", account_id="a1", name="Cash")])
        await sql_storage.create_categories([
            Category(id="c-mine", account_id="a1", name="Food"),
            Category(id="c-theirs", account_id="a2", name="Food"),
        ])
        batch = [
            Transaction(id="t0", account_id="a1", wallet_id="w0", category_id="c-mine",
                        amount=Decimal("-1.00"), date=WHEN),
            Transaction(id="t1", account_id="a1", wallet_id="w0", category_id="c-theirs",
                        amount=Decimal("-2.00"), date=WHEN),
        ]

        with pytest.raises(ConflictError):
            await sql_storage.create_transactions(batch)
        assert await sql_storage.list_transactions("a1") == []

    @pytest.mark.asyncio
    async def test_category_with_foreign_image_is_conflict(self, sql_storage):
        await make_account(sql_storage)
        await make_account(sql_storage, account_id="a2", email="a2@example.com")
        await sql_storage.create_image(Image(id="i2", account_id="a2", name="icon", payload=b"x"))

        with pytest.raises(ConflictError):
            await sql_storage.create_categories(
                [Category(id="c1", account_id="a1", name="Food", image_id="i2")]
            )

    @pytest.mark.asyncio
    async def test_amount_keeps_its_value(self, sql_storage):
        await make_account(sql_storage)
        await sql_storage.create_wallets([Wallet(id="w0", account_id="a1", name="Cash")])
        await sql_storage.create_categories([Category(id="c0", account_id="a1", name="Food")])
        await sql_storage.create_transactions([
            Transaction(id="t0", account_id="a1", wallet_id="w0", category_id="c0",
                        amount=Decimal("-12.34"), description="lunch", date=WHEN),
        ])

        stored = await sql_storage.get_transaction("a1", "w0", "t0")

        assert stored.amount == Decimal("-12.34")
        assert stored.description == "lunch"

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "amount",
        ["12345678901234567.89", "-0.000000000000000000001", "99999999999999999999999.99"],
    )
    async def test_amount_beyond_double_precision_is_exact(self, sql_storage, amount):
        await make_account(sql_storage)
        await sql_storage.create_wallets([Wallet(id="w0", account_id="a1", name="Cash")])
        await sql_storage.create_categories([Category(id="c0", account_id="a1", name="Food")])
        await sql_storage.create_transactions([
            Transaction(id="t0", account_id="a1", wallet_id="w0", category_id="c0",
                        amount=Decimal(amount), date=WHEN),
        ])

        stored = await sql_storage.get_transaction("a1", "w0", "t0")
        updated = await sql_storage.update_transaction(
            stored.model_copy(update={"amount": Decimal(amount) * 2})
        )

        assert stored.amount == Decimal(amount)
        assert str(stored.amount) == str(Decimal(amount))
        assert updated.amount == Decimal(amount) * 2


class TestReferentialRules:
    async def _ledger(self, sql_storage):
        await make_account(sql_storage)
        await sql_storage.create_image(Image(id="i0", account_id="a1", name="icon", payload=b"x"))
        await sql_storage.create_wallets([Wallet(id="w0", account_id="a1", name="Cash")])
        await sql_storage.create_categories(
            [Category(id="c0", account_id="a1", name="Food", image_id="i0")]
        )
        await sql_storage.create_transactions([
            Transaction(id="t0", account_id="a1", wallet_id="w0", category_id="c0",
                        amount=Decimal("-1"), date=WHEN),
        ])
        await sql_storage.create_session(Session(id="s0", account_id="a1", token="tok"))

    @pytest.mark.asyncio
    async def test_account_delete_cascades(self, sql_storage):
        await self._ledger(sql_storage)

        await sql_storage.delete_account("a1")

        assert await sql_storage.get_account("a1") is None
        assert await sql_storage.list_sessions("a1") == []
        assert await sql_storage.list_wallets("a1") == []
        assert await sql_storage.list_categories("a1") == []
        assert await sql_storage.list_images("a1") == []
        assert await sql_storage.list_transactions("a1") == []

    @pytest.mark.asyncio
    async def test_category_in_use_cannot_be_deleted(self, sql_storage):
        await self._ledger(sql_storage)

        with pytest.raises(ConflictError):
            await sql_storage.delete_category("a1", "c0")
        assert await sql_storage.get_category("a1", "c0") is not None

    @pytest.mark.asyncio
    async def test_image_delete_detaches_category(self, sql_storage):
        await self._ledger(sql_storage)

        await sql_storage.delete_image("a1", "i0")

        assert (await sql_storage.get_category("a1", "c0")).image_id is None

    @pytest.mark.asyncio
    async def test_wallet_delete_removes_transactions(self, sql_storage):
        await self._ledger(sql_storage)

        await sql_storage.delete_wallet("a1", "w0")

        assert await sql_storage.list_transactions("a1") == []

    @pytest.mark.asyncio
    async def test_records_are_scoped_to_their_account(self, sql_storage):
        await self._ledger(sql_storage)
        assert await sql_storage.get_wallet("a2", "w0") is None
        assert await sql_storage.get_image("a2", "i0") is None
        assert await sql_storage.get_transaction("a1", "other-wallet", "t0") is None

    @pytest.mark.asyncio
    async def test_image_payload_round_trip(self, sql_storage, sample_image_bytes):
        await make_account(sql_storage)
        await sql_storage.create_image(
            Image(id="i1", account_id="a1", name="r", format="jpg", payload=sample_image_bytes)
        )
        assert (await sql_storage.get_image("a1", "i1")).payload == sample_image_bytes


class TestUnavailable:
    @pytest.mark.asyncio
    async def test_unreachable_database_is_store_unavailable(self):
        database = Database(
            Settings(database_url="sqlite+aiosqlite:////nonexistent/dir/pocketbook.db")
        )
        storage = SqlStorage(database)
        try:
            with pytest.raises(StoreUnavailableError) as exc_info:
                await storage.get_account("a1")
            assert exc_info.value.store == "database"
            with pytest.raises(StoreUnavailableError):
                await storage.ping()
        finally:
            await database.dispose()


class TestTransactionListing:
    @pytest.mark.asyncio
    async def test_list_is_scoped_to_wallet_in_the_query(self, sql_storage):
        await make_account(sql_storage)
        await sql_storage.create_wallets([
            Wallet(id="w0", account_id="a1", name="Cash"),
            Wallet(id="w1", account_id="a1", name="Bank"),
        ])
        await sql_storage.create_categories([Category(id="c0", account_id="a1", name="Food")])
        await sql_storage.create_transactions([
            Transaction(id=f"t{n}", account_id="a1", wallet_id=wallet_id, category_id="c0",
                        amount=Decimal(n), date=WHEN)
            for n, wallet_id in enumerate(["w0", "w1", "w1"])
        ])

        assert [t.id for t in await sql_storage.list_transactions("a1", "w1")] == ["t1", "t2"]
        assert [t.id for t in await sql_storage.list_transactions("a1", "w0")] == ["t0"]
        assert len(await sql_storage.list_transactions("a1")) == 3
        assert await sql_storage.list_transactions("a2", "w1") == []
