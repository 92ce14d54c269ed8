"""Pydantic v2 request/response schemas for property endpoints."""

import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator

_PRICE_TYPE_PATTERN = "^(night|week|month)$"
_PROPERTY_TYPE_PATTERN = "^(Apartment|House|Condo|Villa|Cabin|Loft|Studio|Penthouse)$"

# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------


class PropertyCreate(BaseModel):
    """Listing fields submitted alongside the image files."""

    title: str = Field(..., min_length=10, max_length=100)
    description: str = Field(..., min_length=50, max_length=2000)
    location: str = Field(..., min_length=3, max_length=255)
    price: Decimal = Field(..., ge=10, le=10000)
    price_type: str = Field("night", pattern=_PRICE_TYPE_PATTERN)
    bedrooms: int = Field(..., ge=1)
    bathrooms: Decimal = Field(..., ge=1)
    guests: int | None = Field(None, ge=1)  # defaults to 2 per bedroom
    amenities: list[str] = Field(..., min_length=1)
    property_type: str = Field("Apartment", pattern=_PROPERTY_TYPE_PATTERN)
    latitude: float | None = Field(None, ge=-90, le=90)
    longitude: float | None = Field(None, ge=-180, le=180)


class PropertyUpdate(BaseModel):
    """Schema for partially updating a property. All fields optional."""

    title: str | None = Field(None, min_length=10, max_length=100)
    description: str | None = Field(None, min_length=50, max_length=2000)
    location: str | None = Field(None, min_length=3, max_length=255)
    price: Decimal | None = Field(None, ge=10, le=10000)
    price_type: str | None = Field(None, pattern=_PRICE_TYPE_PATTERN)
    bedrooms: int | None = Field(None, ge=1)
    bathrooms: Decimal | None = Field(None, ge=1)
    guests: int | None = Field(None, ge=1)
    amenities: list[str] | None = None
    property_type: str | None = Field(None, pattern=_PROPERTY_TYPE_PATTERN)
    latitude: float | None = Field(None, ge=-90, le=90)
    longitude: float | None = Field(None, ge=-180, le=180)
    images: list[str] | None = None  # reorder or drop existing image URLs
    status: str | None = Field(None, pattern="^(available|booked)$")


class PropertyFilter(BaseModel):
    """Optional search constraints; ``None`` means no constraint."""

    min_price: Decimal | None = Field(None, ge=0)
    max_price: Decimal | None = Field(None, ge=0)
    bedrooms: int | None = Field(None, ge=0)
    bathrooms: Decimal | None = Field(None, ge=0)
    property_type: str | None = None
    location: str | None = None


class StructuredQuery(PropertyFilter):
    """Plain predicate query over the listing columns."""

    kind: Literal["structured"] = "structured"


class TextSearchQuery(PropertyFilter):
    """Free-text term matched server-side, with the same filters applied."""

    kind: Literal["text"] = "text"
    term: str = Field(..., min_length=1, max_length=200)


PropertyQuery = Annotated[StructuredQuery | TextSearchQuery, Field(discriminator="kind")]


class GuestCount(BaseModel):
    adults: int = Field(1, ge=1)
    children: int = Field(0, ge=0)
    infants: int = Field(0, ge=0)
    pets: int = Field(0, ge=0)

    @property
    def total(self) -> int:
        """Guests counted against capacity; infants and pets are not."""
        return self.adults + self.children


class StayQuoteRequest(BaseModel):
    check_in: date
    check_out: date
    guests: GuestCount = Field(default_factory=GuestCount)

    @model_validator(mode="after")
    def check_dates(self) -> "StayQuoteRequest":
        """Validate that check_out is strictly after check_in."""
        if self.check_out <= self.check_in:
            raise ValueError("check_out must be after check_in")
        return self


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class PropertyResponse(BaseModel):
    """Public listing information returned from the API."""

    id: uuid.UUID
    owner_id: uuid.UUID
    owner_name: str
    owner_image: str | None = None
    title: str
    description: str
    location: str
    price: Decimal
    price_type: str
    images: list[str]
    bedrooms: int
    bathrooms: Decimal
    guests: int
    amenities: list[str]
    property_type: str
    featured: bool
    rating: float
    review_count: int
    latitude: float | None = None
    longitude: float | None = None
    status: str
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class PropertyPageResponse(BaseModel):
    """One page of search results. ``next_cursor`` is null on the last page."""

    items: list[PropertyResponse]
    next_cursor: str | None = None


class StayQuoteResponse(BaseModel):
    property_id: uuid.UUID
    check_in: date
    check_out: date
    nights: int
    guests: int
    nightly_price: Decimal
    subtotal: Decimal
    cleaning_fee: Decimal
    service_fee: Decimal
    total: Decimal
