"""
Pocketbook Backend — Session Authenticator
===========================================

What:  Issues sessions at login and validates bearer credentials on every
       authenticated request.
How:   A session row holds a random secret ("original") and a token signed
       with it. Validation first looks the (account_id, token) pair up in
       the relational store and only then checks the signature against the
       stored secret, so a revoked session stops working on the very next
       request even though its token is still cryptographically valid.
Who:   Built by main.create_app(); called by the Interactor.

Outcomes:
    A wrong secret, an unknown email, a malformed header, a token that is
    not on file and a token whose signature does not match are all the same
    UnauthorizedError. StoreUnavailableError from the store propagates
    unchanged, so "you may not" and "we could not check" stay distinct.
"""

import logging
import uuid
from typing import List, Optional

from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
)

from pocketbook.domain import Session
from pocketbook.exceptions import DuplicateKeyError, UnauthorizedError
from pocketbook.security import CredentialHasher, JWTError
from pocketbook.storage.base import StorageAdapter

BEARER_SCHEME = "bearer"


def parse_bearer(credential: Optional[str]) -> str:
    """
    Strip the scheme from an "<scheme> <token>" credential.

    Raises:
        UnauthorizedError: missing credential, other scheme, or empty token
    """
    if not credential:
        raise UnauthorizedError(context={"reason": "missing_credential"})
    scheme, _, token = credential.strip().partition(" ")
    token = token.strip()
    if scheme.lower() != BEARER_SCHEME or not token:
        raise UnauthorizedError(context={"reason": "malformed_credential"})
    return token


class SessionAuthenticator:
    """
    Session issue, validation and revocation over a StorageAdapter.

    Args:
        storage:         relational store holding accounts and sessions
        hasher:          derives credentials and signs/verifies tokens
        issue_attempts:  how many times issue_session() tries again after a
                         DuplicateKeyError (colliding session id or token)
        logger:          defaults to this module's logger
    """

    def __init__(
        self,
        storage: StorageAdapter,
        hasher: CredentialHasher,
        issue_attempts: int = 3,
        logger: Optional[logging.Logger] = None,
    ):
        self._storage = storage
        self._hasher = hasher
        self._issue_attempts = issue_attempts
        self._logger = logger or logging.getLogger(__name__)

    def authenticate(self, secret: str, credential: str) -> bool:
        """True iff `credential` was derived from `secret` by this hasher."""
        return self._hasher.matches(secret, credential)

    async def login(self, email: str, secret: str, description: str = "") -> Session:
        """Check an email/secret pair and issue a session for the account."""
        account = await self._storage.get_account_by_email(email)
        if account is None:
            self._logger.info("Login rejected: unknown email")
            raise UnauthorizedError(context={"reason": "unknown_account"})
        if not self.authenticate(secret, account.credential):
            self._logger.info("Login rejected for account %s: secret mismatch", account.id)
            raise UnauthorizedError(context={"reason": "secret_mismatch", "account_id": account.id})
        return await self.issue_session(account.id, description)

    async def issue_session(self, account_id: str, description: str = "") -> Session:
        """
        Create and persist a new session for `account_id`.

        Each attempt draws a fresh id and secret, so retrying after a
        DuplicateKeyError cannot collide on the same values again. Any other
        error, including StoreUnavailableError, is raised on the first try.
        """
        async for attempt in AsyncRetrying(
            retry=retry_if_exception_type(DuplicateKeyError),
            stop=stop_after_attempt(self._issue_attempts),
            before_sleep=before_sleep_log(self._logger, logging.WARNING),
            reraise=True,
        ):
            with attempt:
                session = await self._storage.create_session(self._new_session(account_id, description))
        self._logger.info("Session %s issued for account %s", session.id, account_id)
        return session

    def _new_session(self, account_id: str, description: str) -> Session:
        session_id = str(uuid.uuid4())
        original = self._hasher.generate_secret()
        token = self._hasher.sign(original, {"sub": account_id, "sid": session_id})
        return Session(
            id=session_id,
            account_id=account_id,
            original=original,
            token=token,
            description=description,
        )

    async def validate_bearer(self, account_id: str, credential: Optional[str]) -> Session:
        """
        Resolve an "Authorization" header value to a live session of `account_id`.

        Raises:
            UnauthorizedError:      the credential does not name a live session
            StoreUnavailableError:  the session store could not be queried
        """
        token = parse_bearer(credential)
        session = await self._storage.get_session(account_id, token)
        if session is None:
            raise UnauthorizedError(context={"reason": "unknown_session", "account_id": account_id})
        try:
            claims = self._hasher.verify(token, session.original)
        except JWTError as e:
            self._logger.warning("Stored session %s failed signature check", session.id)
            raise UnauthorizedError(
                context={"reason": "bad_signature", "account_id": account_id}
            ) from e
        if claims.get("sub") != account_id or claims.get("sid") != session.id:
            raise UnauthorizedError(context={"reason": "claims_mismatch", "account_id": account_id})
        return session

    async def list_sessions(self, account_id: str) -> List[Session]:
        return await self._storage.list_sessions(account_id)

    async def revoke(self, account_id: str, token: str) -> None:
        await self._storage.delete_session(account_id, token)
        self._logger.info("Session revoked for account %s", account_id)

    async def revoke_all(self, account_id: str) -> None:
        await self._storage.delete_sessions(account_id)
        self._logger.info("All sessions revoked for account %s", account_id)
