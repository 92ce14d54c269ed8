"""Pydantic v2 schemas for the profile endpoints."""

import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict


class ProfileResponse(BaseModel):
    id: uuid.UUID
    email: str
    display_name: str | None = None
    photo_url: str | None = None
    bio: str | None = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)
