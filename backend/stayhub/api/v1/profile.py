"""Profile API router: the signed-in user's public profile."""

import logging

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile, status
from sqlalchemy.ext.asyncio import AsyncSession

from stayhub.api.deps import get_current_user, get_db, get_storage
from stayhub.api.errors import http_error
from stayhub.exceptions import StayHubError
from stayhub.imaging import prepare_image
from stayhub.models.user import User
from stayhub.schemas.profile import ProfileResponse
from stayhub.services.profile_service import get_or_create_profile, get_profile, update_profile
from stayhub.storage import BlobStorage

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/profile", tags=["profile"])


@router.get("/me", response_model=ProfileResponse)
async def read_my_profile(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> ProfileResponse:
    profile = await get_profile(db, current_user.id)
    if profile is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Profile not found")
    return ProfileResponse.model_validate(profile)


@router.post("/me", response_model=ProfileResponse, status_code=status.HTTP_201_CREATED)
async def create_my_profile(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> ProfileResponse:
    """Create the minimal profile from the identity. Returns the existing one if present."""
    profile = await get_or_create_profile(db, current_user)
    return ProfileResponse.model_validate(profile)


@router.patch("/me", response_model=ProfileResponse)
async def update_my_profile(
    display_name: str | None = Form(None, max_length=255),
    bio: str | None = Form(None, max_length=2000),
    photo: UploadFile | None = File(None),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
    storage: BlobStorage = Depends(get_storage),
) -> ProfileResponse:
    """Update display name, bio and/or photo (multipart form)."""
    try:
        prepared = None
        if photo is not None and photo.filename:
            prepared = prepare_image(await photo.read(), photo.filename)
        profile = await update_profile(
            db,
            storage,
            current_user,
            display_name=display_name,
            bio=bio,
            photo=prepared,
        )
    except StayHubError as exc:
        raise http_error(exc) from exc
    return ProfileResponse.model_validate(profile)
