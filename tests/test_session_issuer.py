from datetime import timedelta

import jwt
import pytest

from karibu.application.services.session_issuer import SessionIssuer
from karibu.domain.errors import InvalidToken, MissingToken


@pytest.fixture
def issuer(clock):
    return SessionIssuer(
        access_secret="access-secret-0123456789abcdef0123456789",
        refresh_secret="refresh-secret-0123456789abcdef0123456789",
        clock=clock,
        access_ttl=timedelta(minutes=15),
        refresh_ttl=timedelta(days=7),
    )


def test_access_token_round_trip(issuer):
    token = issuer.issue_access_token(42)
    assert issuer.verify_access_token(token) == 42


def test_refresh_token_round_trip(issuer):
    token = issuer.issue_refresh_token(42)
    assert issuer.verify_refresh_token(token) == 42


def test_claims_carry_subject_and_expiry(issuer, clock):
    token = issuer.issue_access_token(7)
    claims = jwt.decode(token, options={"verify_signature": False})

    assert claims["sub"] == "7"
    assert claims["type"] == "access"
    assert claims["exp"] - claims["iat"] == 15 * 60
    assert claims["iat"] == int(clock.now().timestamp())


def test_token_types_are_not_interchangeable(issuer):
    access = issuer.issue_access_token(1)
    refresh = issuer.issue_refresh_token(1)

    with pytest.raises(InvalidToken):
        issuer.verify_refresh_token(access)
    with pytest.raises(InvalidToken):
        issuer.verify_access_token(refresh)


def test_expired_access_token_rejected(issuer, clock):
    token = issuer.issue_access_token(1)
    clock.advance(timedelta(minutes=15))

    with pytest.raises(InvalidToken):
        issuer.verify_access_token(token)


def test_refresh_token_outlives_access_token(issuer, clock):
    refresh = issuer.issue_refresh_token(1)
    clock.advance(timedelta(days=6))

    assert issuer.verify_refresh_token(refresh) == 1


def test_tampered_token_rejected(issuer):
    token = issuer.issue_refresh_token(1)
    header, payload, signature = token.split(".")
    tampered = ".".join([header, payload, signature[::-1]])

    with pytest.raises(InvalidToken):
        issuer.verify_refresh_token(tampered)
    with pytest.raises(InvalidToken):
        issuer.verify_refresh_token("not-a-jwt")


def test_missing_token(issuer):
    with pytest.raises(MissingToken):
        issuer.verify_refresh_token(None)
    with pytest.raises(MissingToken):
        issuer.verify_access_token("")


def test_refresh_mints_new_pair(issuer):
    refresh = issuer.issue_refresh_token(3)

    pair = issuer.refresh(refresh)

    assert pair.refresh_token != refresh
    assert issuer.verify_access_token(pair.access_token) == 3
    assert issuer.verify_refresh_token(pair.refresh_token) == 3
    # No rotation tracking: the old refresh token keeps working until it expires.
    assert issuer.verify_refresh_token(refresh) == 3


def test_secrets_must_differ(clock):
    with pytest.raises(RuntimeError):
        SessionIssuer(access_secret="same", refresh_secret="same", clock=clock)
