"""Registration and login endpoints."""

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from listenstats.api.dependencies import get_auth_service, get_db_session
from listenstats.api.schemas.auth import (
    CredentialsRequest,
    LoginResponse,
    RegisterResponse,
)
from listenstats.application.services import AuthService

router = APIRouter()


@router.post(
    "/register", response_model=RegisterResponse, status_code=status.HTTP_201_CREATED
)
async def register(
    credentials: CredentialsRequest | None = None,
    auth_service: AuthService = Depends(get_auth_service),
    session: AsyncSession = Depends(get_db_session),
) -> RegisterResponse:
    """Create an account. 400 if a field is missing or the email is taken."""
    credentials = credentials or CredentialsRequest()
    user_id = await auth_service.register(credentials.email, credentials.password)
    # Commit before answering so an immediate /login sees the user
    await session.commit()
    return RegisterResponse(id=user_id)


@router.post("/login", response_model=LoginResponse)
async def login(
    credentials: CredentialsRequest | None = None,
    auth_service: AuthService = Depends(get_auth_service),
) -> LoginResponse:
    """Exchange email/password for a bearer token. 401 on bad credentials."""
    credentials = credentials or CredentialsRequest()
    token = await auth_service.login(credentials.email, credentials.password)
    return LoginResponse(accessToken=token)
