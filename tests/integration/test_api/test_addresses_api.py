"""Integration tests for the address book API endpoints."""

import uuid
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from manacity_api.api.errors import register_exception_handlers
from manacity_api.api.v1.addresses import addresses_router
from manacity_api.core.config import Settings, get_settings
from manacity_api.core.dependencies import get_async_session, get_current_user
from manacity_api.models.user import User
from manacity_api.services.address_book_service import create_or_update_address

HOME = {
    "label": "Home",
    "line1": "12, MG Road",
    "city": "Bengaluru",
    "state": "Karnataka",
    "pincode": "560001",
}


@pytest.fixture
def app(async_session: AsyncSession, settings: Settings) -> FastAPI:
    app = FastAPI()
    register_exception_handlers(app)
    app.include_router(addresses_router, prefix="/api/v1")
    app.dependency_overrides[get_async_session] = lambda: async_session
    app.dependency_overrides[get_settings] = lambda: settings
    return app


@pytest.fixture
async def client(app: FastAPI, sample_user: User, customer_token: str) -> AsyncClient:
    transport = ASGITransport(app=app)
    async with AsyncClient(
        transport=transport,
        base_url="https://test",
        headers={"Authorization": f"Bearer {customer_token}"},
    ) as client:
        yield client


@pytest.fixture
async def anonymous_client(app: FastAPI) -> AsyncClient:
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="https://test") as client:
        yield client


@pytest.fixture
async def failing_client() -> AsyncClient:
    """Client whose session is a mock, for exercising the 500 paths."""
    user = MagicMock()
    user.id = uuid.uuid4()
    app = FastAPI()
    register_exception_handlers(app)
    app.include_router(addresses_router, prefix="/api/v1")
    app.dependency_overrides[get_async_session] = lambda: AsyncMock()
    app.dependency_overrides[get_current_user] = lambda: user
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="https://test") as client:
        yield client


class TestAuthentication:
    async def test_requires_token(self, anonymous_client: AsyncClient) -> None:
        resp = await anonymous_client.get("/api/v1/addresses")
        assert resp.status_code == 401

    async def test_rejects_bad_token(self, anonymous_client: AsyncClient) -> None:
        resp = await anonymous_client.get("/api/v1/addresses", headers={"Authorization": "Bearer not-a-jwt"})
        assert resp.status_code == 401


class TestCreateAddress:
    """Tests for POST /api/v1/addresses."""

    async def test_creates_first_address_as_default(self, client: AsyncClient) -> None:
        resp = await client.post("/api/v1/addresses", json=HOME)
        assert resp.status_code == 201
        address = resp.json()["address"]
        assert address["label"] == "Home"
        assert address["isDefault"] is True
        assert address["line2"] == ""
        assert address["coords"] is None
        assert "lastUsedAt" in address

    async def test_repeat_returns_same_address(self, client: AsyncClient) -> None:
        first = (await client.post("/api/v1/addresses", json=HOME)).json()["address"]
        resp = await client.post(
            "/api/v1/addresses",
            json={**HOME, "label": "Parents", "line1": "12,  mg ROAD", "coords": {"lat": "12.97", "lng": "x"}},
        )
        assert resp.status_code == 201
        second = resp.json()["address"]
        assert second["id"] == first["id"]
        assert second["label"] == "Parents"
        assert second["coords"] == {"lat": 12.97, "lng": None}

        listing = (await client.get("/api/v1/addresses")).json()
        assert len(listing["items"]) == 1

    async def test_missing_fields_returns_invalid_address(self, client: AsyncClient) -> None:
        resp = await client.post("/api/v1/addresses", json={"label": "Home"})
        assert resp.status_code == 400
        body = resp.json()
        assert body["code"] == "INVALID_ADDRESS"
        fields = {error["field"] for error in body["errors"]}
        assert fields == {"line1", "city", "state", "pincode"}

        listing = (await client.get("/api/v1/addresses")).json()
        assert listing["items"] == []

    async def test_out_of_bounds_returns_validation_error(self, client: AsyncClient) -> None:
        resp = await client.post("/api/v1/addresses", json={**HOME, "pincode": "56"})
        assert resp.status_code == 400
        body = resp.json()
        assert body["code"] == "VALIDATION_ERROR"
        assert body["errors"][0]["field"] == "pincode"

    async def test_numeric_pincode_returns_invalid_address(self, client: AsyncClient) -> None:
        resp = await client.post("/api/v1/addresses", json={**HOME, "pincode": 560001})
        assert resp.status_code == 400
        body = resp.json()
        assert body["code"] == "INVALID_ADDRESS"
        assert [error["field"] for error in body["errors"]] == ["pincode"]

    @pytest.mark.parametrize("coords", [[12.9, 77.5], "12.9,77.5", 12.9])
    async def test_non_object_coords_are_dropped(self, client: AsyncClient, coords: object) -> None:
        resp = await client.post("/api/v1/addresses", json={**HOME, "coords": coords})
        assert resp.status_code == 201
        assert resp.json()["address"]["coords"] is None

    @pytest.mark.parametrize("body", [[HOME], "12 MG Road", 42])
    async def test_non_object_body_returns_invalid_address(self, client: AsyncClient, body: object) -> None:
        resp = await client.post("/api/v1/addresses", json=body)
        assert resp.status_code == 400
        assert resp.json()["code"] == "INVALID_ADDRESS"

        listing = (await client.get("/api/v1/addresses")).json()
        assert listing["items"] == []

    async def test_string_true_is_not_default(self, client: AsyncClient) -> None:
        await client.post("/api/v1/addresses", json=HOME)
        resp = await client.post(
            "/api/v1/addresses",
            json={**HOME, "line1": "7 Residency Road", "isDefault": "true"},
        )
        assert resp.status_code == 201
        assert resp.json()["address"]["isDefault"] is False

    async def test_unexpected_error_returns_500(self, failing_client: AsyncClient) -> None:
        with patch(
            "manacity_api.api.v1.addresses.create_or_update_address",
            new_callable=AsyncMock,
            side_effect=RuntimeError("connection reset"),
        ):
            resp = await failing_client.post("/api/v1/addresses", json=HOME)
        assert resp.status_code == 500
        assert "connection reset" not in resp.text


class TestListAddresses:
    """Tests for GET /api/v1/addresses."""

    async def test_default_first(self, client: AsyncClient) -> None:
        await client.post("/api/v1/addresses", json=HOME)
        work = (
            await client.post(
                "/api/v1/addresses",
                json={**HOME, "label": "Work", "line1": "7 Residency Road", "isDefault": True},
            )
        ).json()["address"]

        resp = await client.get("/api/v1/addresses")
        assert resp.status_code == 200
        items = resp.json()["items"]
        assert [item["id"] for item in items][0] == work["id"]
        assert [item["isDefault"] for item in items] == [True, False]

    async def test_excludes_other_users(
        self,
        client: AsyncClient,
        async_session: AsyncSession,
        other_user: User,
    ) -> None:
        await create_or_update_address(async_session, other_user.id, HOME)
        resp = await client.get("/api/v1/addresses")
        assert resp.json()["items"] == []

    async def test_unexpected_error_returns_500(self, failing_client: AsyncClient) -> None:
        with patch(
            "manacity_api.api.v1.addresses.list_address_responses",
            new_callable=AsyncMock,
            side_effect=RuntimeError("boom"),
        ):
            resp = await failing_client.get("/api/v1/addresses")
        assert resp.status_code == 500


class TestMarkDefault:
    """Tests for PATCH /api/v1/addresses/{id}/default."""

    async def test_moves_default(self, client: AsyncClient) -> None:
        home = (await client.post("/api/v1/addresses", json=HOME)).json()["address"]
        work = (await client.post("/api/v1/addresses", json={**HOME, "line1": "7 Residency Road"})).json()["address"]

        resp = await client.patch(f"/api/v1/addresses/{work['id']}/default")
        assert resp.status_code == 200
        assert resp.json()["address"]["isDefault"] is True

        items = (await client.get("/api/v1/addresses")).json()["items"]
        defaults = [item["id"] for item in items if item["isDefault"]]
        assert defaults == [work["id"]]
        assert home["id"] not in defaults

    async def test_unknown_address_returns_404(self, client: AsyncClient) -> None:
        resp = await client.patch(f"/api/v1/addresses/{uuid.uuid4()}/default")
        assert resp.status_code == 404

    async def test_other_users_address_returns_404(
        self,
        client: AsyncClient,
        async_session: AsyncSession,
        other_user: User,
    ) -> None:
        theirs = await create_or_update_address(async_session, other_user.id, HOME)
        resp = await client.patch(f"/api/v1/addresses/{theirs.id}/default")
        assert resp.status_code == 404

    async def test_malformed_id_returns_422(self, client: AsyncClient) -> None:
        resp = await client.patch("/api/v1/addresses/not-a-uuid/default")
        assert resp.status_code == 422
