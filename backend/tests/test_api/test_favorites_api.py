"""Tests for favorites endpoints."""

import uuid

from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from stayhub.models.user import User
from conftest import make_property


class TestFavorites:
    async def test_add_check_list_remove(
        self, client: AsyncClient, db_session: AsyncSession, test_user: User, other_headers: dict
    ) -> None:
        prop = await make_property(db_session, test_user)

        status = await client.get(f"/api/v1/favorites/{prop.id}", headers=other_headers)
        assert status.json() == {"property_id": str(prop.id), "is_favorite": False}

        added = await client.post(f"/api/v1/favorites/{prop.id}", headers=other_headers)
        assert added.status_code == 201
        assert added.json()["is_favorite"] is True

        listed = await client.get("/api/v1/favorites", headers=other_headers)
        assert [p["id"] for p in listed.json()["items"]] == [str(prop.id)]

        removed = await client.delete(f"/api/v1/favorites/{prop.id}", headers=other_headers)
        assert removed.status_code == 200
        assert removed.json()["is_favorite"] is False

        status = await client.get(f"/api/v1/favorites/{prop.id}", headers=other_headers)
        assert status.json()["is_favorite"] is False

    async def test_add_twice_is_idempotent(
        self, client: AsyncClient, db_session: AsyncSession, test_user: User, other_headers: dict
    ) -> None:
        prop = await make_property(db_session, test_user)
        await client.post(f"/api/v1/favorites/{prop.id}", headers=other_headers)
        again = await client.post(f"/api/v1/favorites/{prop.id}", headers=other_headers)
        assert again.status_code == 201

        listed = await client.get("/api/v1/favorites", headers=other_headers)
        assert len(listed.json()["items"]) == 1

    async def test_remove_missing_is_404(self, client: AsyncClient, other_headers: dict) -> None:
        response = await client.delete(f"/api/v1/favorites/{uuid.uuid4()}", headers=other_headers)
        assert response.status_code == 404

    async def test_add_unknown_property_is_404(self, client: AsyncClient, other_headers: dict) -> None:
        response = await client.post(f"/api/v1/favorites/{uuid.uuid4()}", headers=other_headers)
        assert response.status_code == 404

    async def test_favorites_are_per_user(
        self, client: AsyncClient, db_session: AsyncSession, test_user: User, auth_headers: dict, other_headers: dict
    ) -> None:
        prop = await make_property(db_session, test_user)
        await client.post(f"/api/v1/favorites/{prop.id}", headers=other_headers)

        mine = await client.get(f"/api/v1/favorites/{prop.id}", headers=auth_headers)
        assert mine.json()["is_favorite"] is False
