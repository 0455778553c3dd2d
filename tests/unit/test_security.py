"""Unit tests for password hashing and session tokens"""

import pytest
from loyalty_gateway.domain.exceptions import InvalidTokenError
from loyalty_gateway.infrastructure.auth.security import PasswordHasher, TokenIssuer


@pytest.fixture
def hasher():
    # Low cost keeps the suite fast
    return PasswordHasher(n=2**4)


def test_hash_verifies_original_password(hasher):
    password_hash = hasher.hash("s3cret")

    assert password_hash.startswith("scrypt$16$8$1$")
    assert "s3cret" not in password_hash
    assert hasher.verify("s3cret", password_hash)


def test_wrong_password_does_not_verify(hasher):
    assert not hasher.verify("guess", hasher.hash("s3cret"))


def test_each_hash_is_salted(hasher):
    assert hasher.hash("s3cret") != hasher.hash("s3cret")


def test_hash_keeps_its_own_cost_parameters(hasher):
    password_hash = hasher.hash("s3cret")

    assert PasswordHasher(n=2**5).verify("s3cret", password_hash)


@pytest.mark.parametrize("password_hash", ["", "plain", "bcrypt$16$8$1$AAAA$AAAA", "scrypt$x$8$1$AAAA$AAAA"])
def test_malformed_hash_never_verifies(hasher, password_hash):
    assert not hasher.verify("s3cret", password_hash)


def test_token_carries_user_id():
    tokens = TokenIssuer("secret", ttl_seconds=60)

    assert tokens.verify(tokens.issue("user-1")) == "user-1"


def test_token_from_another_secret_rejected():
    token = TokenIssuer("other", ttl_seconds=60).issue("user-1")

    with pytest.raises(InvalidTokenError):
        TokenIssuer("secret", ttl_seconds=60).verify(token)


def test_tampered_token_rejected():
    tokens = TokenIssuer("secret", ttl_seconds=60)
    token = tokens.issue("user-1")
    tampered = token[:-2] + ("AA" if token[-2:] != "AA" else "BB")

    with pytest.raises(InvalidTokenError):
        tokens.verify(tampered)


def test_token_expires_after_ttl():
    tokens = TokenIssuer("secret", ttl_seconds=60)
    token = tokens.issue("user-1", now=1_000_000)

    assert tokens.verify(token, now=1_000_060) == "user-1"
    with pytest.raises(InvalidTokenError):
        tokens.verify(token, now=1_000_061)


@pytest.mark.parametrize("token", ["", "not-a-token", "ünicode"])
def test_garbage_token_rejected(token):
    with pytest.raises(InvalidTokenError):
        TokenIssuer("secret", ttl_seconds=60).verify(token)
