"""Favorites: a user's saved listings."""

import logging
import uuid

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from stayhub.exceptions import FavoriteNotFoundError
from stayhub.models.favorite import Favorite
from stayhub.models.property import Property
from stayhub.services.property_service import get_property

logger = logging.getLogger(__name__)


async def _find_favorite(db: AsyncSession, user_id: uuid.UUID, property_id: uuid.UUID) -> Favorite | None:
    result = await db.execute(
        select(Favorite).where(Favorite.user_id == user_id, Favorite.property_id == property_id)
    )
    return result.scalars().first()


async def add_favorite(db: AsyncSession, user_id: uuid.UUID, property_id: uuid.UUID) -> Favorite:
    """Save a listing for the user. Saving twice returns the existing row."""
    existing = await _find_favorite(db, user_id, property_id)
    if existing is not None:
        return existing

    favorite = Favorite(user_id=user_id, property_id=property_id)
    try:
        async with db.begin_nested():
            db.add(favorite)
    except IntegrityError:
        existing = await _find_favorite(db, user_id, property_id)
        if existing is None:
            raise
        return existing
    return favorite


async def remove_favorite(db: AsyncSession, user_id: uuid.UUID, property_id: uuid.UUID) -> int:
    """Delete every favorite row for the pair.

    Raises:
        FavoriteNotFoundError: Nothing matched.
    """
    result = await db.execute(
        delete(Favorite).where(Favorite.user_id == user_id, Favorite.property_id == property_id)
    )
    if not result.rowcount:
        raise FavoriteNotFoundError("Favorite not found")
    return result.rowcount


async def is_favorite(db: AsyncSession, user_id: uuid.UUID, property_id: uuid.UUID) -> bool:
    return await _find_favorite(db, user_id, property_id) is not None


async def get_favorite_properties(db: AsyncSession, user_id: uuid.UUID) -> list[Property]:
    """Resolve the user's favorites to listings, newest favorite first.

    Favorites whose listing can no longer be loaded are skipped.
    """
    try:
        result = await db.execute(
            select(Favorite.property_id).where(Favorite.user_id == user_id).order_by(Favorite.created_at.desc())
        )
        property_ids = list(result.scalars().all())
    except SQLAlchemyError:
        logger.warning("Loading favorites for %s failed", user_id, exc_info=True)
        return []

    properties: list[Property] = []
    for property_id in property_ids:
        try:
            prop = await get_property(db, property_id)
        except SQLAlchemyError:
            logger.warning("Could not resolve favorite property %s", property_id, exc_info=True)
            continue
        if prop is not None:
            properties.append(prop)
    return properties
