"""
Pocketbook Backend — Credential Hasher
=======================================

What:  Derives irreversible credentials from secrets and signs/verifies
       session bearer tokens.
How:   Account credentials are HMAC-SHA256 of the secret under the
       application key. Session tokens are HS256 JWTs (python-jose) signed
       with the per-session random secret, so a token can only be verified
       by someone holding that session's row.
Who:   Used by the SessionAuthenticator (login, issue, validate) and by the
       interactor when an account secret is set or changed.

This component holds no state besides its key and never touches a store.
"""

import hashlib
import hmac
import secrets
import time
from typing import Any, Dict

from jose import JWTError, jwt

SECRET_BYTES = 32


class CredentialHasher:
    """
    Keyed one-way derivation for account secrets plus token signing.

    derive(secret) is deterministic: the same secret under the same key
    always yields the same credential, and any change to either yields a
    different one.
    """

    def __init__(self, key: str, algorithm: str = "HS256"):
        self._key = key.encode("utf-8")
        self.algorithm = algorithm

    def derive(self, secret: str) -> str:
        """Return the hex credential stored in place of `secret`."""
        return hmac.new(self._key, secret.encode("utf-8"), hashlib.sha256).hexdigest()

    def matches(self, secret: str, credential: str) -> bool:
        """Constant-time comparison of a freshly derived credential against a stored one."""
        return hmac.compare_digest(self.derive(secret), credential or "")

    @staticmethod
    def generate_secret() -> str:
        """256 bits of randomness, URL-safe."""
        return secrets.token_urlsafe(SECRET_BYTES)

    def sign(self, secret: str, claims: Dict[str, Any]) -> str:
        """Sign `claims` with `secret`; an `iat` claim is added when missing."""
        payload = dict(claims)
        payload.setdefault("iat", int(time.time()))
        return jwt.encode(payload, secret, algorithm=self.algorithm)

    def verify(self, token: str, secret: str) -> Dict[str, Any]:
        """
        Check the token signature against `secret` and return its claims.

        Raises:
            jose.JWTError: signature mismatch or malformed token
        """
        return jwt.decode(token, secret, algorithms=[self.algorithm])


__all__ = ["CredentialHasher", "JWTError"]
