"""Unit tests for registration and login rules"""

import pytest
from loyalty_gateway.domain.exceptions import InvalidCredentialsError, LoginAlreadyExistsError
from loyalty_gateway.domain.users import authenticate_user, register_user
from loyalty_gateway.infrastructure.auth.security import PasswordHasher


@pytest.fixture
def hasher():
    return PasswordHasher(n=2**4)


def test_register_stores_hash_only(memory_storage, hasher):
    user = register_user(memory_storage, hasher, "alice", "s3cret")

    stored = memory_storage.get_user_by_login("alice")
    assert stored == user
    assert stored.password_hash != "s3cret"
    assert hasher.verify("s3cret", stored.password_hash)


def test_register_taken_login(memory_storage, hasher):
    register_user(memory_storage, hasher, "alice", "s3cret")

    with pytest.raises(LoginAlreadyExistsError):
        register_user(memory_storage, hasher, "alice", "other")


def test_authenticate_returns_user(memory_storage, hasher):
    user = register_user(memory_storage, hasher, "alice", "s3cret")

    assert authenticate_user(memory_storage, hasher, "alice", "s3cret") == user


@pytest.mark.parametrize("login,password", [("alice", "wrong"), ("bob", "s3cret")])
def test_authenticate_rejects_bad_credentials(memory_storage, hasher, login, password):
    register_user(memory_storage, hasher, "alice", "s3cret")

    with pytest.raises(InvalidCredentialsError):
        authenticate_user(memory_storage, hasher, login, password)
