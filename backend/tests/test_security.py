"""
Pocketbook Backend — Credential Hasher Unit Tests
==================================================

What we test:
    ✅ derive() is deterministic per (key, secret)
    ✅ any change to the secret or the key changes the credential
    ✅ matches() accepts exactly the secret a credential came from
    ✅ generated secrets are unique and URL-safe
    ✅ sign()/verify() only succeed with the signing secret
"""

import pytest

from pocketbook.security import CredentialHasher, JWTError


class TestCredentialDerivation:
    """derive() and matches()."""

    def setup_method(self):
        self.hasher = CredentialHasher("unit-test-key-0123456789")

    def test_derive_is_deterministic(self):
        assert self.hasher.derive("hunter2") == self.hasher.derive("hunter2")

    def test_derive_never_returns_the_secret(self):
        credential = self.hasher.derive("hunter2")
        assert "hunter2" not in credential
        assert len(credential) == 64  # hex SHA-256

    def test_one_bit_change_in_secret_changes_credential(self):
        """'hunter2' and 'hunter3' differ in the lowest bit of the last byte."""
        assert self.hasher.derive("hunter2") != self.hasher.derive("hunter3")

    def test_different_key_changes_credential(self):
        other = CredentialHasher("another-key-0123456789")
        assert other.derive("hunter2") != self.hasher.derive("hunter2")

    def test_matches_same_secret(self):
        credential = self.hasher.derive("correct-horse")
        assert self.hasher.matches("correct-horse", credential) is True

    @pytest.mark.parametrize("attempt", ["correct-hors", "correct-horse ", "Correct-horse", ""])
    def test_matches_rejects_other_secrets(self, attempt):
        credential = self.hasher.derive("correct-horse")
        assert self.hasher.matches(attempt, credential) is False

    def test_matches_rejects_empty_stored_credential(self):
        assert self.hasher.matches("anything", "") is False

    def test_matches_rejects_credential_from_other_key(self):
        other = CredentialHasher("another-key-0123456789")
        assert self.hasher.matches("correct-horse", other.derive("correct-horse")) is False


class TestSecretsAndTokens:
    """generate_secret(), sign() and verify()."""

    def setup_method(self):
        self.hasher = CredentialHasher("unit-test-key-0123456789")

    def test_generated_secrets_are_unique(self):
        secrets = {CredentialHasher.generate_secret() for _ in range(200)}
        assert len(secrets) == 200

    def test_generated_secret_is_url_safe(self):
        secret = CredentialHasher.generate_secret()
        assert len(secret) >= 43  # 32 bytes, base64url
        assert all(c.isalnum() or c in "-_" for c in secret)

    def test_sign_and_verify_round_trip(self):
        token = self.hasher.sign("session-secret", {"sub": "a1", "sid": "s1"})
        claims = self.hasher.verify(token, "session-secret")
        assert claims["sub"] == "a1"
        assert claims["sid"] == "s1"
        assert "iat" in claims

    def test_verify_with_other_secret_fails(self):
        token = self.hasher.sign("session-secret", {"sub": "a1"})
        with pytest.raises(JWTError):
            self.hasher.verify(token, "not-the-session-secret")

    def test_verify_rejects_garbage(self):
        with pytest.raises(JWTError):
            self.hasher.verify("not.a.token", "session-secret")

    def test_same_claims_different_secrets_give_different_tokens(self):
        claims = {"sub": "a1", "sid": "s1", "iat": 1700000000}
        assert self.hasher.sign("one", claims) != self.hasher.sign("two", claims)
