"""Tests for favorites: add/remove/is consistency."""

import uuid

import pytest
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from conftest import make_property
from stayhub.exceptions import FavoriteNotFoundError
from stayhub.models.favorite import Favorite
from stayhub.models.user import User
from stayhub.services import favorite_service


class TestFavorites:
    async def test_add_then_is_favorite(self, db_session: AsyncSession, test_user: User, other_user: User):
        prop = await make_property(db_session, test_user)
        await favorite_service.add_favorite(db_session, other_user.id, prop.id)
        assert await favorite_service.is_favorite(db_session, other_user.id, prop.id)
        assert not await favorite_service.is_favorite(db_session, test_user.id, prop.id)

    async def test_add_is_idempotent(self, db_session: AsyncSession, test_user: User, other_user: User):
        prop = await make_property(db_session, test_user)
        first = await favorite_service.add_favorite(db_session, other_user.id, prop.id)
        second = await favorite_service.add_favorite(db_session, other_user.id, prop.id)
        assert first.id == second.id
        count = await db_session.scalar(select(func.count()).select_from(Favorite))
        assert count == 1

    async def test_remove_then_not_favorite(self, db_session: AsyncSession, test_user: User, other_user: User):
        prop = await make_property(db_session, test_user)
        await favorite_service.add_favorite(db_session, other_user.id, prop.id)
        assert await favorite_service.remove_favorite(db_session, other_user.id, prop.id) == 1
        assert not await favorite_service.is_favorite(db_session, other_user.id, prop.id)

    async def test_remove_missing_raises(self, db_session: AsyncSession, other_user: User):
        with pytest.raises(FavoriteNotFoundError):
            await favorite_service.remove_favorite(db_session, other_user.id, uuid.uuid4())

    async def test_favorite_properties_skip_unresolvable(
        self, db_session: AsyncSession, test_user: User, other_user: User
    ):
        kept = await make_property(db_session, test_user)
        await favorite_service.add_favorite(db_session, other_user.id, kept.id)
        # A dangling favorite, e.g. left behind by a listing removed out of band.
        db_session.add(Favorite(user_id=other_user.id, property_id=uuid.uuid4()))
        await db_session.flush()

        properties = await favorite_service.get_favorite_properties(db_session, other_user.id)
        assert [p.id for p in properties] == [kept.id]
