"""Tests for AuthService registration and login."""

from unittest.mock import AsyncMock, patch

import pytest

from listenstats.application.services.auth_service import AuthService
from listenstats.config import Settings
from listenstats.domain.exceptions import (
    AuthenticationError,
    DuplicateEntityException,
    ValidationError,
)
from listenstats.infrastructure.persistence import Database, UserRepository


class TestRegister:
    @pytest.mark.asyncio
    async def test_normalizes_email(self, db: Database, settings: Settings) -> None:
        async with db.session_scope() as session:
            user_id = await AuthService(session, settings).register(
                "  Listener@Example.COM ", "hunter22"
            )

        async with db.session_scope() as session:
            user = await UserRepository(session).get_by_id(user_id)
        assert user.email == "listener@example.com"
        assert user.password_hash != "hunter22"

    @pytest.mark.asyncio
    async def test_missing_password(self, db: Database, settings: Settings) -> None:
        async with db.session_scope() as session:
            with pytest.raises(ValidationError):
                await AuthService(session, settings).register("a@example.com", "")

    @pytest.mark.asyncio
    async def test_concurrent_duplicate_is_reported_as_duplicate(
        self, db: Database, settings: Settings, user_id: int
    ) -> None:
        # The other registration committed between our lookup and our insert
        with patch.object(UserRepository, "get_by_email", AsyncMock(return_value=None)):
            with pytest.raises(DuplicateEntityException, match="Email already exists"):
                async with db.session_scope() as session:
                    await AuthService(session, settings).register(
                        "listener@example.com", "hunter22"
                    )


class TestLogin:
    @pytest.mark.asyncio
    async def test_long_password_round_trip(self, db: Database, settings: Settings) -> None:
        password = "p" * 100
        async with db.session_scope() as session:
            await AuthService(session, settings).register("long@example.com", password)

        async with db.session_scope() as session:
            token = await AuthService(session, settings).login("long@example.com", password)
        assert token

    @pytest.mark.asyncio
    async def test_wrong_password(self, db: Database, settings: Settings) -> None:
        async with db.session_scope() as session:
            await AuthService(session, settings).register("a@example.com", "right")

        async with db.session_scope() as session:
            with pytest.raises(AuthenticationError, match="Invalid credentials"):
                await AuthService(session, settings).login("a@example.com", "wrong")
