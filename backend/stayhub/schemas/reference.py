"""Pydantic v2 schemas for read-only reference data."""

import uuid
from decimal import Decimal

from pydantic import BaseModel, ConfigDict

from stayhub.schemas.property import PropertyResponse


class CategoryResponse(BaseModel):
    id: uuid.UUID
    name: str
    image: str
    count: int

    model_config = ConfigDict(from_attributes=True)


class ExperienceResponse(BaseModel):
    id: uuid.UUID
    title: str
    description: str
    location: str
    price: Decimal
    image: str
    rating: float
    review_count: int
    host_name: str
    duration: int
    languages: list[str]

    model_config = ConfigDict(from_attributes=True)


class FavoriteStatusResponse(BaseModel):
    property_id: uuid.UUID
    is_favorite: bool


class FavoriteListResponse(BaseModel):
    items: list[PropertyResponse]
