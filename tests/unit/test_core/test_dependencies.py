"""Tests for FastAPI dependency injection module."""

from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi import HTTPException

from manacity_api.core.config import Settings
from manacity_api.core.dependencies import get_current_user, require_role
from manacity_api.core.security import create_access_token, create_refresh_token

SECRET = "test-secret-key-that-is-at-least-32-characters-long"


def _settings() -> Settings:
    return Settings(
        _env_file=None,  # type: ignore[call-arg]
        database_url="sqlite+aiosqlite:///:memory:",
        jwt_secret_key=SECRET,
    )


def _session_returning(user: object) -> AsyncMock:
    session = AsyncMock()
    result = MagicMock()
    result.scalar_one_or_none.return_value = user
    session.execute.return_value = result
    return session


class TestRequireRole:
    """Tests for require_role factory."""

    async def test_admin_role_passes(self) -> None:
        checker = require_role("admin")
        user = MagicMock()
        user.role = "admin"

        result = await checker(current_user=user)
        assert result is user

    async def test_multiple_allowed_roles(self) -> None:
        checker = require_role("admin", "business")
        user = MagicMock()
        user.role = "business"

        result = await checker(current_user=user)
        assert result is user

    async def test_insufficient_role_raises_403(self) -> None:
        checker = require_role("admin")
        user = MagicMock()
        user.role = "customer"

        with pytest.raises(HTTPException) as exc_info:
            await checker(current_user=user)
        assert exc_info.value.status_code == 403
        assert "customer" in str(exc_info.value.detail)


class TestGetCurrentUser:
    """Tests for get_current_user."""

    async def test_valid_access_token(self) -> None:
        user = MagicMock()
        user.is_active = True
        token = create_access_token("ravi", "customer", SECRET)

        result = await get_current_user(token=token, session=_session_returning(user), settings=_settings())
        assert result is user

    async def test_invalid_token_raises_401(self) -> None:
        with pytest.raises(HTTPException) as exc_info:
            await get_current_user(token="garbage", session=_session_returning(None), settings=_settings())
        assert exc_info.value.status_code == 401

    async def test_refresh_token_rejected(self) -> None:
        user = MagicMock()
        user.is_active = True
        token = create_refresh_token("ravi", SECRET)

        with pytest.raises(HTTPException) as exc_info:
            await get_current_user(token=token, session=_session_returning(user), settings=_settings())
        assert exc_info.value.status_code == 401

    async def test_unknown_user_raises_401(self) -> None:
        token = create_access_token("ghost", "customer", SECRET)
        with pytest.raises(HTTPException) as exc_info:
            await get_current_user(token=token, session=_session_returning(None), settings=_settings())
        assert exc_info.value.status_code == 401

    async def test_inactive_user_raises_401(self) -> None:
        user = MagicMock()
        user.is_active = False
        token = create_access_token("ravi", "customer", SECRET)

        with pytest.raises(HTTPException) as exc_info:
            await get_current_user(token=token, session=_session_returning(user), settings=_settings())
        assert exc_info.value.status_code == 401
