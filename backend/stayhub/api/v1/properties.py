"""Properties API routes: public search and owner-scoped listing management."""

import logging
import uuid
from dataclasses import asdict
from decimal import Decimal

from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, UploadFile, status
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from stayhub.api.deps import get_current_user, get_db, get_storage
from stayhub.api.errors import http_error
from stayhub.exceptions import StayHubError
from stayhub.imaging import prepare_image
from stayhub.models.property import Property
from stayhub.models.user import User
from stayhub.schemas.auth import MessageResponse
from stayhub.schemas.property import (
    PropertyCreate,
    PropertyPageResponse,
    PropertyResponse,
    PropertyUpdate,
    StayQuoteRequest,
    StayQuoteResponse,
    StructuredQuery,
    TextSearchQuery,
)
from stayhub.services import property_service
from stayhub.storage import BlobStorage, delete_blobs

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/properties", tags=["properties"])


async def _get_owned_property(db: AsyncSession, property_id: uuid.UUID, user: User) -> Property:
    prop = await property_service.get_property(db, property_id)
    if prop is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Property not found")
    if prop.owner_id != user.id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not the owner of this property")
    return prop


@router.get(
    "",
    response_model=PropertyPageResponse,
    summary="Search available properties",
)
async def search_properties(
    min_price: Decimal | None = Query(None, ge=0),
    max_price: Decimal | None = Query(None, ge=0),
    bedrooms: int | None = Query(None, ge=0),
    bathrooms: Decimal | None = Query(None, ge=0),
    property_type: str | None = Query(None),
    location: str | None = Query(None),
    q: str | None = Query(None, max_length=200),
    cursor: str | None = Query(None),
    page_size: int = Query(property_service.DEFAULT_PAGE_SIZE, ge=1, le=50),
    db: AsyncSession = Depends(get_db),
) -> PropertyPageResponse:
    """Return one page of available listings, newest first.

    Pass the returned ``next_cursor`` back as ``cursor`` for the next page.
    A non-blank ``q`` switches to a free-text search on top of the filters.
    """
    filters = {
        "min_price": min_price,
        "max_price": max_price,
        "bedrooms": bedrooms,
        "bathrooms": bathrooms,
        "property_type": property_type,
        "location": location,
    }
    query = TextSearchQuery(term=q.strip(), **filters) if q and q.strip() else StructuredQuery(**filters)

    try:
        page = await property_service.get_properties(db, query, cursor=cursor, page_size=page_size)
    except StayHubError as exc:
        raise http_error(exc) from exc

    return PropertyPageResponse(
        items=[PropertyResponse.model_validate(p) for p in page.items],
        next_cursor=page.next_cursor,
    )


@router.get("/featured", response_model=list[PropertyResponse], summary="Featured listings")
async def featured_properties(db: AsyncSession = Depends(get_db)) -> list[PropertyResponse]:
    items = await property_service.get_featured_properties(db)
    return [PropertyResponse.model_validate(p) for p in items]


@router.get("/mine", response_model=list[PropertyResponse], summary="Listings owned by the current user")
async def my_properties(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> list[PropertyResponse]:
    items = await property_service.get_properties_by_owner(db, current_user.id)
    return [PropertyResponse.model_validate(p) for p in items]


@router.get("/{property_id}", response_model=PropertyResponse, summary="Get a property by ID")
async def get_property(property_id: uuid.UUID, db: AsyncSession = Depends(get_db)) -> PropertyResponse:
    prop = await property_service.get_property(db, property_id)
    if prop is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Property not found")
    return PropertyResponse.model_validate(prop)


@router.post(
    "",
    response_model=PropertyResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a new property",
)
async def create_property(
    data: str = Form(..., description="PropertyCreate as JSON"),
    images: list[UploadFile] = File(...),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
    storage: BlobStorage = Depends(get_storage),
) -> PropertyResponse:
    """Create a listing owned by the current user from a multipart form.

    Every image is validated and shrunk before the first upload, so a bad
    file rejects the whole request without touching storage.
    """
    try:
        body = PropertyCreate.model_validate_json(data)
    except PydanticValidationError as exc:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=exc.errors(include_url=False, include_context=False),
        ) from None

    try:
        prepared = [prepare_image(await upload.read(), upload.filename) for upload in images]
        prop = await property_service.add_property(db, storage, current_user, body, prepared)
    except StayHubError as exc:
        raise http_error(exc) from exc

    return PropertyResponse.model_validate(prop)


@router.patch("/{property_id}", response_model=PropertyResponse, summary="Update a property")
async def update_property(
    property_id: uuid.UUID,
    body: PropertyUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> PropertyResponse:
    """Partially update a property. Only explicitly set fields are changed."""
    prop = await _get_owned_property(db, property_id, current_user)
    try:
        prop = await property_service.update_property(db, prop, body.model_dump(exclude_unset=True))
    except StayHubError as exc:
        raise http_error(exc) from exc
    return PropertyResponse.model_validate(prop)


@router.delete("/{property_id}", response_model=MessageResponse, summary="Delete a property")
async def delete_property(
    property_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
    storage: BlobStorage = Depends(get_storage),
) -> MessageResponse:
    """Delete a property, its favorites and its images.

    Images are removed only after the deletion has committed.
    """
    prop = await _get_owned_property(db, property_id, current_user)
    keys = await property_service.delete_property(db, prop)
    await db.commit()
    await delete_blobs(storage, keys)
    return MessageResponse(message="Property deleted")


@router.post("/{property_id}/quote", response_model=StayQuoteResponse, summary="Price a stay")
async def quote_property(
    property_id: uuid.UUID,
    body: StayQuoteRequest,
    db: AsyncSession = Depends(get_db),
) -> StayQuoteResponse:
    prop = await property_service.get_property(db, property_id)
    if prop is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Property not found")
    try:
        quote = property_service.quote_stay(prop, body.check_in, body.check_out, body.guests)
    except StayHubError as exc:
        raise http_error(exc) from exc
    return StayQuoteResponse(**asdict(quote))
