"""Unit tests for single-use token issuance and verification."""

import hashlib
from datetime import datetime, timedelta, timezone

import pytest

from karibu.application.services.token_codec import TokenCodec
from karibu.domain.models import Account, TokenPurpose


def _account_with(token, purpose):
    now = datetime(2025, 1, 1, tzinfo=timezone.utc)
    account = Account(
        id=1,
        email="a@x.com",
        first_name="A",
        last_name="B",
        created_at=now,
        updated_at=now,
    )
    setattr(account, purpose.hash_field, token.token_hash)
    setattr(account, purpose.expiry_field, token.expires_at)
    return account


@pytest.fixture
def codec(clock):
    return TokenCodec(clock=clock)


class TestIssue:
    def test_plaintext_is_url_safe_and_not_stored_hash(self, codec):
        token = codec.issue(TokenPurpose.PASSWORD_RESET)

        assert len(token.plaintext) >= 27  # 20 bytes, base64 encoded
        assert all(ch.isalnum() or ch in "-_" for ch in token.plaintext)
        assert token.token_hash != token.plaintext
        assert token.token_hash == hashlib.sha256(token.plaintext.encode()).hexdigest()

    def test_hash_is_deterministic(self, codec):
        assert codec.hash_token("abc") == codec.hash_token("abc")

    def test_each_issue_is_unique(self, codec):
        tokens = {codec.issue(TokenPurpose.EMAIL_VERIFICATION).plaintext for _ in range(50)}
        assert len(tokens) == 50

    def test_default_ttls(self, codec, clock):
        verification = codec.issue(TokenPurpose.EMAIL_VERIFICATION)
        reset = codec.issue(TokenPurpose.PASSWORD_RESET)

        assert verification.expires_at == clock.now() + timedelta(hours=24)
        assert reset.expires_at == clock.now() + timedelta(minutes=10)

    def test_explicit_ttl_overrides_default(self, codec, clock):
        token = codec.issue(TokenPurpose.PASSWORD_RESET, ttl=timedelta(minutes=1))
        assert token.expires_at == clock.now() + timedelta(minutes=1)

    def test_rejects_low_entropy(self, clock):
        with pytest.raises(ValueError):
            TokenCodec(clock=clock, token_bytes=8)

    def test_repr_hides_plaintext(self, codec):
        token = codec.issue(TokenPurpose.PASSWORD_RESET)
        assert token.plaintext not in repr(token)


class TestVerify:
    def test_matching_token_verifies(self, codec):
        token = codec.issue(TokenPurpose.PASSWORD_RESET)
        account = _account_with(token, TokenPurpose.PASSWORD_RESET)

        assert codec.verify(TokenPurpose.PASSWORD_RESET, account, token.plaintext)

    def test_tampered_token_fails(self, codec):
        token = codec.issue(TokenPurpose.PASSWORD_RESET)
        account = _account_with(token, TokenPurpose.PASSWORD_RESET)

        assert not codec.verify(TokenPurpose.PASSWORD_RESET, account, token.plaintext + "x")
        assert not codec.verify(TokenPurpose.PASSWORD_RESET, account, "")

    def test_token_is_bound_to_purpose(self, codec):
        token = codec.issue(TokenPurpose.PASSWORD_RESET)
        account = _account_with(token, TokenPurpose.PASSWORD_RESET)

        assert not codec.verify(TokenPurpose.EMAIL_VERIFICATION, account, token.plaintext)

    def test_cleared_fields_fail(self, codec):
        token = codec.issue(TokenPurpose.EMAIL_VERIFICATION)
        account = _account_with(token, TokenPurpose.EMAIL_VERIFICATION)
        account.email_verification_token_hash = None
        account.email_verification_expires_at = None

        assert not codec.verify(TokenPurpose.EMAIL_VERIFICATION, account, token.plaintext)

    def test_expiry_boundary(self, codec, clock):
        issued_at = clock.now()
        token = codec.issue(TokenPurpose.PASSWORD_RESET)
        account = _account_with(token, TokenPurpose.PASSWORD_RESET)
        ttl = timedelta(minutes=10)

        clock.current = issued_at + ttl - timedelta(milliseconds=1)
        assert codec.verify(TokenPurpose.PASSWORD_RESET, account, token.plaintext)

        clock.current = issued_at + ttl
        assert not codec.verify(TokenPurpose.PASSWORD_RESET, account, token.plaintext)

        clock.current = issued_at + ttl + timedelta(milliseconds=1)
        assert not codec.verify(TokenPurpose.PASSWORD_RESET, account, token.plaintext)
