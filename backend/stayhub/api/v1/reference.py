"""Read-only reference data shown on the home page."""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from stayhub.api.deps import get_db
from stayhub.schemas.reference import CategoryResponse, ExperienceResponse
from stayhub.services import property_service

router = APIRouter(prefix="/api/v1", tags=["reference"])


@router.get("/categories", response_model=list[CategoryResponse])
async def list_categories(db: AsyncSession = Depends(get_db)) -> list[CategoryResponse]:
    return [CategoryResponse.model_validate(c) for c in await property_service.get_categories(db)]


@router.get("/experiences", response_model=list[ExperienceResponse])
async def list_experiences(
    limit: int = Query(4, ge=1, le=50),
    db: AsyncSession = Depends(get_db),
) -> list[ExperienceResponse]:
    return [ExperienceResponse.model_validate(e) for e in await property_service.get_experiences(db, limit)]
