"""User registration and login rules"""

import logging
from typing import Protocol

from loyalty_gateway.domain.exceptions import InvalidCredentialsError
from loyalty_gateway.domain.models import User
from loyalty_gateway.domain.storage import UserStorage

logger = logging.getLogger(__name__)


class PasswordHashing(Protocol):
    def hash(self, password: str) -> str: ...

    def verify(self, password: str, password_hash: str) -> bool: ...


def register_user(storage: UserStorage, hasher: PasswordHashing, login: str, password: str) -> User:
    """
    Create a user with a hashed password.

    Raises:
        LoginAlreadyExistsError: Login is taken
    """
    user = storage.create_user(login, hasher.hash(password))
    logger.info("User registered", extra={"user_id": user.id})
    return user


def authenticate_user(storage: UserStorage, hasher: PasswordHashing, login: str, password: str) -> User:
    """
    Check a login and password pair.

    Raises:
        InvalidCredentialsError: Unknown login or wrong password
    """
    user = storage.get_user_by_login(login)
    if user is None or not hasher.verify(password, user.password_hash):
        raise InvalidCredentialsError("Invalid login or password")
    return user
