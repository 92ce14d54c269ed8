"""Favorites API routes: the current user's saved listings."""

import uuid

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from stayhub.api.deps import get_current_user, get_db
from stayhub.api.errors import http_error
from stayhub.exceptions import StayHubError
from stayhub.models.user import User
from stayhub.schemas.property import PropertyResponse
from stayhub.schemas.reference import FavoriteListResponse, FavoriteStatusResponse
from stayhub.services import favorite_service
from stayhub.services.property_service import get_property

router = APIRouter(prefix="/api/v1/favorites", tags=["favorites"])


@router.get("", response_model=FavoriteListResponse)
async def list_favorites(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> FavoriteListResponse:
    properties = await favorite_service.get_favorite_properties(db, current_user.id)
    return FavoriteListResponse(items=[PropertyResponse.model_validate(p) for p in properties])


@router.get("/{property_id}", response_model=FavoriteStatusResponse)
async def favorite_status(
    property_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> FavoriteStatusResponse:
    return FavoriteStatusResponse(
        property_id=property_id,
        is_favorite=await favorite_service.is_favorite(db, current_user.id, property_id),
    )


@router.post("/{property_id}", response_model=FavoriteStatusResponse, status_code=status.HTTP_201_CREATED)
async def add_favorite(
    property_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> FavoriteStatusResponse:
    """Save a listing. Saving an already saved listing is a no-op."""
    if await get_property(db, property_id) is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Property not found")
    await favorite_service.add_favorite(db, current_user.id, property_id)
    return FavoriteStatusResponse(property_id=property_id, is_favorite=True)


@router.delete("/{property_id}", response_model=FavoriteStatusResponse)
async def remove_favorite(
    property_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> FavoriteStatusResponse:
    try:
        await favorite_service.remove_favorite(db, current_user.id, property_id)
    except StayHubError as exc:
        raise http_error(exc) from exc
    return FavoriteStatusResponse(property_id=property_id, is_favorite=False)
