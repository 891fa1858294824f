"""
Pocketbook Backend — Test Configuration (conftest.py)
======================================================

What:  Shared pytest fixtures for the entire test suite.
How:   Components are assembled by hand around the in-memory doubles from
       pocketbook.storage.memory, so nothing needs a database server. The
       SQL adapter tests get their own in-memory aiosqlite database.

Fixture Hierarchy (all function-scoped):
    settings ─┬─ hasher ─┬─ authenticator ─┬─ interactor            (inline payloads)
              │          │                 └─ offloaded_interactor  (blob payloads)
    storage ──┘          │
    blob ────────────────┘
    sql_storage:  SqlStorage over a fresh in-memory SQLite database
    test_client / offloaded_client:  HTTPX AsyncClient over create_app()
"""

import itertools
import os
from typing import AsyncGenerator, Callable, Dict, Tuple

# Before any pocketbook import: the module-level app in pocketbook.main
# must not point at a production database.
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["CREDENTIAL_KEY"] = "test-credential-key-not-real"
os.environ["BLOB_STORAGE_ENABLED"] = "false"
os.environ["LOG_LEVEL"] = "WARNING"

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from pocketbook.config import Settings
from pocketbook.database import Database
from pocketbook.domain import Account
from pocketbook.main import create_app
from pocketbook.security import CredentialHasher
from pocketbook.services.auth_service import SessionAuthenticator
from pocketbook.services.interactor import Interactor
from pocketbook.services.payloads import InlinePayloads, OffloadedPayloads
from pocketbook.storage.memory import InMemoryBlobStore, InMemoryStorage
from pocketbook.storage.sql import SqlStorage

# Smallest valid JPEG: SOI + JFIF APP0 + EOI.
JPEG_BYTES = (
    b"\xff\xd8\xff\xe0\x00\x10JFIF\x00\x01\x01\x00\x00\x01\x00\x01\x00\x00"
    b"\xff\xd9"
)


@pytest.fixture
def settings() -> Settings:
    return Settings(
        database_url="sqlite+aiosqlite:///:memory:",
        credential_key="test-credential-key-not-real",
        blob_storage_enabled=False,
        max_image_size=1_048_576,
        log_level="WARNING",
    )


@pytest.fixture
def storage() -> InMemoryStorage:
    return InMemoryStorage()


@pytest.fixture
def blob() -> InMemoryBlobStore:
    return InMemoryBlobStore()


@pytest.fixture
def hasher(settings) -> CredentialHasher:
    return CredentialHasher(settings.credential_key, settings.token_algorithm)


@pytest.fixture
def authenticator(storage, hasher, settings) -> SessionAuthenticator:
    return SessionAuthenticator(storage, hasher, issue_attempts=settings.session_issue_attempts)


@pytest.fixture
def id_factory() -> Callable[[], str]:
    """Predictable ids: id-1, id-2, ... in the order they are requested."""
    counter = itertools.count(1)
    return lambda: f"id-{next(counter)}"


@pytest.fixture
def interactor(storage, authenticator, hasher, id_factory) -> Interactor:
    return Interactor(storage, authenticator, hasher, InlinePayloads(), id_factory=id_factory)


@pytest.fixture
def offloaded_interactor(storage, authenticator, hasher, blob, id_factory) -> Interactor:
    return Interactor(
        storage, authenticator, hasher, OffloadedPayloads(blob), id_factory=id_factory
    )


@pytest.fixture
def sample_image_bytes() -> bytes:
    return JPEG_BYTES


@pytest_asyncio.fixture
async def account(interactor) -> Account:
    """A registered account: alice@example.com / correct-horse."""
    return await interactor.register_account(
        name="Alice", email="alice@example.com", secret="correct-horse"
    )


@pytest_asyncio.fixture
async def sql_storage() -> AsyncGenerator[SqlStorage, None]:
    """SqlStorage over a fresh in-memory SQLite database with the full schema."""
    database = Database(Settings(database_url="sqlite+aiosqlite:///:memory:", log_level="WARNING"))
    await database.create_all()
    try:
        yield SqlStorage(database)
    finally:
        await database.dispose()


async def _client(app) -> AsyncGenerator[AsyncClient, None]:
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest_asyncio.fixture
async def test_client(settings, storage) -> AsyncGenerator[AsyncClient, None]:
    """API client with inline image payloads over the in-memory store."""
    async for client in _client(create_app(settings=settings, storage=storage)):
        yield client


@pytest_asyncio.fixture
async def offloaded_client(settings, storage, blob) -> AsyncGenerator[AsyncClient, None]:
    """API client with blob storage enabled, backed by the in-memory blob double."""
    offloaded = settings.model_copy(update={"blob_storage_enabled": True})
    async for client in _client(create_app(settings=offloaded, storage=storage, blob=blob)):
        yield client


@pytest.fixture
def register_and_login() -> Callable:
    """
    Returns `async (client, email) -> (user_id, headers)`: registers a user
    over the API, logs in, and builds the Authorization header.
    """

    async def _register_and_login(
        client: AsyncClient, email: str = "bob@example.com", password: str = "s3cret"
    ) -> Tuple[str, Dict[str, str]]:
        created = await client.post(
            "/api/1/users", json={"name": "Bob", "email": email, "password": password}
        )
        assert created.status_code == 201, created.text
        login = await client.post(
            "/api/1/sessions",
            json={"email": email, "password": password, "description": "tests"},
        )
        assert login.status_code == 201, login.text
        return created.json()["user_id"], {"Authorization": f"Bearer {login.json()['token']}"}

    return _register_and_login
