"""User registration and login."""

import asyncio
import logging

from sqlalchemy.ext.asyncio import AsyncSession

from listenstats.config import Settings
from listenstats.domain.exceptions import (
    AuthenticationError,
    DuplicateEntityException,
    ValidationError,
)
from listenstats.infrastructure.persistence.repositories import UserRepository
from listenstats.infrastructure.security import (
    create_access_token,
    hash_password,
    verify_password,
)

logger = logging.getLogger(__name__)


def normalize_email(email: str | None) -> str:
    """Strip and lowercase an email address ("" for None)."""
    return (email or "").strip().lower()


class AuthService:
    """Registers users and issues access tokens.

    Hey future me - bcrypt is deliberately slow (~50-100ms at 10 rounds), so hashing
    and checking run in a worker thread to keep the event loop free for the poller.
    """

    def __init__(self, session: AsyncSession, settings: Settings) -> None:
        self._session = session
        self._settings = settings
        self._users = UserRepository(session)

    async def register(self, email: str | None, password: str | None) -> int:
        """Create a user and return its id.

        Raises:
            ValidationError: email or password missing
            DuplicateEntityException: email already registered
        """
        email = normalize_email(email)
        if not email or not password:
            raise ValidationError("Email and password are required")

        if await self._users.get_by_email(email) is not None:
            raise DuplicateEntityException("Email already exists")

        password_hash = await asyncio.to_thread(
            hash_password, password, self._settings.security.bcrypt_rounds
        )
        user = await self._users.add(email, password_hash)
        logger.info("auth.registered", extra={"user_id": user.id})
        return user.id

    async def login(self, email: str | None, password: str | None) -> str:
        """Check credentials and return a signed access token.

        Unknown email and wrong password produce the same error so callers
        cannot probe which addresses are registered.

        Raises:
            ValidationError: email or password missing
            AuthenticationError: credentials do not match
        """
        email = normalize_email(email)
        if not email or not password:
            raise ValidationError("Email and password are required")

        user = await self._users.get_by_email(email)
        if user is None:
            logger.info("auth.login.rejected", extra={"reason": "unknown_email"})
            raise AuthenticationError("Invalid credentials")

        if not await asyncio.to_thread(verify_password, password, user.password_hash):
            logger.info(
                "auth.login.rejected",
                extra={"reason": "bad_password", "user_id": user.id},
            )
            raise AuthenticationError("Invalid credentials")

        return create_access_token(user.id, user.email, self._settings)
