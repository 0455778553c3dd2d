"""POST /api/user/register and /api/user/login - Session token issuance"""

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status
from pydantic import ValidationError
from starlette.concurrency import run_in_threadpool

from loyalty_gateway.api.v1.schemas import Credentials
from loyalty_gateway.api.dependencies import get_password_hasher, get_storage, get_token_issuer
from loyalty_gateway.domain.exceptions import InvalidCredentialsError, LoginAlreadyExistsError
from loyalty_gateway.domain.users import authenticate_user, register_user
from loyalty_gateway.infrastructure.auth.security import PasswordHasher, TokenIssuer
from loyalty_gateway.infrastructure.database.storage import DatabaseStorage
from loyalty_gateway.infrastructure.observability.metrics import auth_counter

router = APIRouter()

AUTH_RESPONSES = {
    200: {"description": "Authenticated; token in the Authorization header"},
    400: {"description": "Malformed credentials"},
}


async def read_credentials(request: Request) -> Credentials:
    try:
        return Credentials.model_validate_json(await request.body())
    except ValidationError:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid credentials format")


def authorized(token: str) -> Response:
    return Response(status_code=status.HTTP_200_OK, headers={"Authorization": f"Bearer {token}"})


@router.post("/register", responses={**AUTH_RESPONSES, 409: {"description": "Login already taken"}})
async def register(
    request: Request,
    storage: DatabaseStorage = Depends(get_storage),
    hasher: PasswordHasher = Depends(get_password_hasher),
    tokens: TokenIssuer = Depends(get_token_issuer),
):
    """Register a user and log them in"""
    credentials = await read_credentials(request)

    try:
        # Hashing is CPU bound and storage is synchronous
        user = await run_in_threadpool(register_user, storage, hasher, credentials.login, credentials.password)
    except LoginAlreadyExistsError as e:
        auth_counter.labels(action="register", outcome="conflict").inc()
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))

    auth_counter.labels(action="register", outcome="success").inc()
    return authorized(tokens.issue(user.id))


@router.post("/login", responses={**AUTH_RESPONSES, 401: {"description": "Wrong login or password"}})
async def login(
    request: Request,
    storage: DatabaseStorage = Depends(get_storage),
    hasher: PasswordHasher = Depends(get_password_hasher),
    tokens: TokenIssuer = Depends(get_token_issuer),
):
    """Exchange a login and password for a session token"""
    credentials = await read_credentials(request)

    try:
        user = await run_in_threadpool(authenticate_user, storage, hasher, credentials.login, credentials.password)
    except InvalidCredentialsError as e:
        auth_counter.labels(action="login", outcome="rejected").inc()
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=str(e))

    auth_counter.labels(action="login", outcome="success").inc()
    return authorized(tokens.issue(user.id))
