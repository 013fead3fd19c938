"""Tests for the FastAPI application factory module."""

from unittest.mock import AsyncMock, patch

import pytest
from fastapi.testclient import TestClient

from manacity_api.core.config import Settings
from manacity_api.main import create_app, lifespan
from manacity_api.services.address_book_service import AddressValidationError


def _settings() -> Settings:
    return Settings(
        _env_file=None,  # type: ignore[call-arg]
        database_url="sqlite+aiosqlite:///:memory:",
        jwt_secret_key="test-secret-key-not-for-production",
    )


class TestCreateApp:
    """Tests for create_app."""

    @pytest.fixture
    def app(self):
        with patch("manacity_api.main.get_settings", return_value=_settings()):
            return create_app()

    def test_app_is_created(self, app) -> None:
        assert app.title == "Manacity API"

    def test_app_has_openapi_schema(self, app) -> None:
        client = TestClient(app, raise_server_exceptions=False)
        response = client.get("/openapi.json")
        assert response.status_code == 200
        paths = response.json()["paths"]
        assert "/api/v1/addresses" in paths
        assert "/api/v1/addresses/{address_id}/default" in paths

    def test_exception_handlers_registered(self, app) -> None:
        assert app.exception_handlers.get(ValueError) is not None
        assert app.exception_handlers.get(AddressValidationError) is not None


class TestAppLifespan:
    """Tests for lifespan management."""

    async def test_lifespan_init_and_dispose(self) -> None:
        """Lifespan context manager initializes and disposes engine."""
        mock_app = AsyncMock()

        with (
            patch("manacity_api.main.get_settings", return_value=_settings()),
            patch("manacity_api.main.setup_logging") as mock_setup_logging,
            patch("manacity_api.main.init_engine") as mock_init_engine,
            patch("manacity_api.main.dispose_engine", new_callable=AsyncMock) as mock_dispose,
        ):
            async with lifespan(mock_app):
                mock_setup_logging.assert_called_once_with("INFO", log_dir=None)
                mock_init_engine.assert_called_once_with("sqlite+aiosqlite:///:memory:", echo=False, schema=None)

            mock_dispose.assert_awaited_once()
