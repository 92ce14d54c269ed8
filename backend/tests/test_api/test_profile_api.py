"""Tests for the profile endpoints."""

from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from conftest import create_user, headers_for, make_image
from stayhub.config import settings
from stayhub.models.user import User


class TestProfile:
    async def test_get_profile(self, client: AsyncClient, test_user: User, auth_headers: dict) -> None:
        response = await client.get("/api/v1/profile/me", headers=auth_headers)
        assert response.status_code == 200
        data = response.json()
        assert data["id"] == str(test_user.id)
        assert data["display_name"] == "Test Host"

    async def test_missing_profile_then_create(self, client: AsyncClient, db_session: AsyncSession) -> None:
        user = await create_user(db_session, "No Profile", with_profile=False)
        headers = headers_for(user)

        missing = await client.get("/api/v1/profile/me", headers=headers)
        assert missing.status_code == 404

        created = await client.post("/api/v1/profile/me", headers=headers)
        assert created.status_code == 201
        assert created.json()["display_name"] == "No Profile"
        assert created.json()["email"] == user.email

        # Idempotent
        again = await client.post("/api/v1/profile/me", headers=headers)
        assert again.json()["id"] == created.json()["id"]

        assert (await client.get("/api/v1/profile/me", headers=headers)).status_code == 200

    async def test_update_name_and_photo(
        self, client: AsyncClient, test_user: User, auth_headers: dict, storage
    ) -> None:
        response = await client.patch(
            "/api/v1/profile/me",
            data={"display_name": "Renamed Host", "bio": "Hosting since 2019"},
            files={"photo": ("me.png", make_image(), "image/png")},
            headers=auth_headers,
        )
        assert response.status_code == 200
        data = response.json()
        assert data["display_name"] == "Renamed Host"
        assert data["bio"] == "Hosting since 2019"
        assert data["photo_url"].startswith(f"http://testserver/media/users/{test_user.id}/profile/")

        # Identity mirrors the profile.
        me = (await client.get("/api/v1/auth/me", headers=auth_headers)).json()
        assert me["name"] == "Renamed Host"
        assert me["avatar_url"] == data["photo_url"]

        key = data["photo_url"].removeprefix("http://testserver/media/")
        assert (storage.root / key).exists()

    async def test_update_rejects_oversized_photo(self, client: AsyncClient, auth_headers: dict, monkeypatch) -> None:
        monkeypatch.setattr(settings, "image_max_bytes", 10_000)
        response = await client.patch(
            "/api/v1/profile/me",
            files={"photo": ("me.png", make_image(600, 600, noise=True), "image/png")},
            headers=auth_headers,
        )
        assert response.status_code == 422

        profile = (await client.get("/api/v1/profile/me", headers=auth_headers)).json()
        assert profile["photo_url"] is None
