"""Dependency injection for FastAPI endpoints"""

from fastapi import Depends, Header, HTTPException, Request, status
from loyalty_gateway.config import settings
from loyalty_gateway.domain.exceptions import InvalidTokenError
from loyalty_gateway.domain.ledger import LedgerGuard
from loyalty_gateway.infrastructure.auth.security import PasswordHasher, TokenIssuer
from loyalty_gateway.infrastructure.database.session import SessionLocal
from loyalty_gateway.infrastructure.database.storage import DatabaseStorage

password_hasher = PasswordHasher()
token_issuer = TokenIssuer(settings.secret_key, settings.token_expiration_seconds)


def get_request_id(request: Request) -> str:
    """Extract request ID from request state"""
    return getattr(request.state, "request_id", "unknown")


def get_password_hasher() -> PasswordHasher:
    return password_hasher


def get_token_issuer() -> TokenIssuer:
    return token_issuer


def get_current_user_id(
    authorization: str | None = Header(default=None),
    tokens: TokenIssuer = Depends(get_token_issuer),
) -> str:
    """User id from the session token in the Authorization header ("Bearer <token>" or the bare token)"""
    if not authorization or not authorization.strip():
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing auth token")

    token = authorization.strip()
    if token.startswith("Bearer "):
        token = token[len("Bearer "):].strip()

    try:
        return tokens.verify(token)
    except InvalidTokenError:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid auth token")


def get_storage() -> DatabaseStorage:
    """Provide the SQL storage shared by all handlers"""
    return DatabaseStorage(SessionLocal)


def get_ledger(storage: DatabaseStorage = Depends(get_storage)) -> LedgerGuard:
    """Provide the balance ledger guard over the shared storage"""
    return LedgerGuard(storage)
