"""Password hashing and signed session tokens"""

import base64
import os
from typing import Optional
from cryptography.exceptions import InvalidKey
from cryptography.fernet import Fernet, InvalidToken
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.scrypt import Scrypt
from loyalty_gateway.domain.exceptions import InvalidTokenError


def _b64encode(raw: bytes) -> str:
    return base64.urlsafe_b64encode(raw).decode("ascii")


def _b64decode(value: str) -> bytes:
    return base64.urlsafe_b64decode(value.encode("ascii"))


class PasswordHasher:
    """
    scrypt password hashes.

    Stored form: "scrypt$<n>$<r>$<p>$<salt>$<key>" with base64 salt and key,
    so cost parameters can change without invalidating existing hashes.
    """

    scheme = "scrypt"

    def __init__(self, n: int = 2**14, r: int = 8, p: int = 1, length: int = 32):
        self.n = n
        self.r = r
        self.p = p
        self.length = length

    def hash(self, password: str) -> str:
        salt = os.urandom(16)
        key = Scrypt(salt=salt, length=self.length, n=self.n, r=self.r, p=self.p).derive(password.encode("utf-8"))
        return "$".join([self.scheme, str(self.n), str(self.r), str(self.p), _b64encode(salt), _b64encode(key)])

    def verify(self, password: str, password_hash: str) -> bool:
        """Check a password against a stored hash; malformed hashes never match"""
        try:
            scheme, n, r, p, salt, key = password_hash.split("$")
            expected = _b64decode(key)
            kdf = Scrypt(salt=_b64decode(salt), length=len(expected), n=int(n), r=int(r), p=int(p))
        except ValueError:
            return False
        if scheme != self.scheme:
            return False

        try:
            kdf.verify(password.encode("utf-8"), expected)
        except InvalidKey:
            return False
        return True


class TokenIssuer:
    """
    Session tokens carrying the user id.

    Tokens are Fernet-encrypted and signed with a key derived from the
    configured secret; the timestamp Fernet embeds enforces expiry.
    """

    def __init__(self, secret_key: str, ttl_seconds: int):
        digest = hashes.Hash(hashes.SHA256())
        digest.update(secret_key.encode("utf-8"))
        self._fernet = Fernet(base64.urlsafe_b64encode(digest.finalize()))
        self.ttl_seconds = ttl_seconds

    def issue(self, user_id: str, now: Optional[int] = None) -> str:
        data = user_id.encode("utf-8")
        if now is None:
            return self._fernet.encrypt(data).decode("ascii")
        return self._fernet.encrypt_at_time(data, now).decode("ascii")

    def verify(self, token: str, now: Optional[int] = None) -> str:
        """
        Return the user id a token was issued for.

        Raises:
            InvalidTokenError: Token is malformed, signed with another key or expired
        """
        try:
            raw = token.encode("ascii")
            if now is None:
                user_id = self._fernet.decrypt(raw, ttl=self.ttl_seconds)
            else:
                user_id = self._fernet.decrypt_at_time(raw, self.ttl_seconds, now)
        except (InvalidToken, UnicodeError) as e:
            raise InvalidTokenError("Invalid or expired token") from e
        return user_id.decode("utf-8")
