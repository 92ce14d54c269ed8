"""UserProfile service: the public profile mirrored from a login identity."""

import logging
import time
import uuid

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from stayhub.imaging import PreparedImage
from stayhub.models.profile import UserProfile
from stayhub.models.user import User
from stayhub.storage import BlobStorage, delete_blobs

logger = logging.getLogger(__name__)


async def get_profile(db: AsyncSession, user_id: uuid.UUID) -> UserProfile | None:
    return await db.get(UserProfile, user_id)


async def create_profile(db: AsyncSession, user: User) -> UserProfile:
    """Create the minimal profile for ``user`` from its identity fields."""
    profile = UserProfile(
        id=user.id,
        email=user.email,
        display_name=user.name,
        photo_url=user.avatar_url,
    )
    db.add(profile)
    await db.flush()
    await db.refresh(user, attribute_names=["profile"])
    logger.info("Created profile for user %s", user.id)
    return profile


async def get_or_create_profile(db: AsyncSession, user: User) -> UserProfile:
    profile = await get_profile(db, user.id)
    if profile is not None:
        return profile
    return await create_profile(db, user)


async def update_profile(
    db: AsyncSession,
    storage: BlobStorage,
    user: User,
    display_name: str | None = None,
    bio: str | None = None,
    photo: PreparedImage | None = None,
) -> UserProfile:
    """Patch the profile, uploading a new photo first when one is given.

    The identity row's ``name``/``avatar_url`` are kept in sync so tokens and
    ``/auth/me`` reflect the change. Upload failures propagate as
    :class:`~stayhub.exceptions.StorageError` before anything is written;
    if the write fails after the upload, the new photo is deleted again.
    """
    profile = await get_or_create_profile(db, user)

    key = photo_url = None
    if photo is not None:
        key = f"users/{user.id}/profile/{int(time.time() * 1000)}-{photo.filename}"
        await storage.upload(key, photo.data, photo.content_type)
        photo_url = storage.get_url(key)

    if display_name:
        profile.display_name = display_name
        user.name = display_name
    if bio is not None:
        profile.bio = bio
    if photo_url:
        profile.photo_url = photo_url
        user.avatar_url = photo_url

    try:
        await db.flush()
    except SQLAlchemyError:
        if key:
            await delete_blobs(storage, [key])
        raise
    await db.refresh(profile)
    logger.info("Updated profile for user %s", user.id)
    return profile
